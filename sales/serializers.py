"""
Serializers for the Sales application.
"""

from rest_framework import serializers

from promotions.serializers import CartItemSerializer, DiscountVerdictSerializer
from sales.models import PaymentMethod, Sale, SaleItem
from sales.services import SaleRequest


class SaleItemSerializer(serializers.ModelSerializer):
    product_name = serializers.CharField(source="product.name", read_only=True)

    class Meta:
        model = SaleItem
        fields = ["id", "product", "product_name", "quantity", "unit_price", "total_amount"]
        read_only_fields = fields


class SaleSerializer(serializers.ModelSerializer):
    """
    Read-only view of a sale and its lines.
    """

    items = SaleItemSerializer(many=True, read_only=True)
    discount_code = serializers.SlugRelatedField(slug_field="code", read_only=True)

    class Meta:
        model = Sale
        fields = [
            "id",
            "receipt_number",
            "customer",
            "status",
            "payment_method",
            "subtotal",
            "discount_amount",
            "tax_amount",
            "total_amount",
            "cash_received",
            "change_given",
            "loyalty_points_used",
            "loyalty_points_earned",
            "discount_code",
            "campaign",
            "notes",
            "items",
            "created_at",
        ]
        read_only_fields = fields


class CheckoutSerializer(serializers.Serializer):
    """
    Input of POST /api/sales/sales/. Prices always come from the catalog.
    """

    items = CartItemSerializer(many=True, allow_empty=False)
    payment_method = serializers.ChoiceField(choices=PaymentMethod.choices)
    customer = serializers.IntegerField(required=False, allow_null=True)
    discount_code = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    cash_received = serializers.DecimalField(max_digits=12, decimal_places=2, required=False, allow_null=True)
    loyalty_points_used = serializers.IntegerField(min_value=0, default=0)
    notes = serializers.CharField(required=False, allow_blank=True, default="")

    def validate(self, attrs):
        if attrs.get("loyalty_points_used") and attrs.get("customer") is None:
            raise serializers.ValidationError({"loyalty_points_used": "Points can only be redeemed by a customer."})
        if attrs["payment_method"] == PaymentMethod.CASH and attrs.get("cash_received") is None:
            raise serializers.ValidationError({"cash_received": "Cash received is required for cash payments."})
        return attrs

    def to_request(self) -> SaleRequest:
        data = self.validated_data
        return SaleRequest(
            items=tuple((item["product"], item["quantity"]) for item in data["items"]),
            payment_method=data["payment_method"],
            customer_id=data.get("customer"),
            discount_code=data.get("discount_code") or None,
            cash_received=data.get("cash_received"),
            loyalty_points_used=data["loyalty_points_used"],
            notes=data["notes"],
        )


class QuoteSerializer(serializers.Serializer):
    subtotal = serializers.DecimalField(source="totals.subtotal", max_digits=12, decimal_places=2)
    discount_amount = serializers.DecimalField(source="totals.discount_amount", max_digits=12, decimal_places=2)
    tax_amount = serializers.DecimalField(source="totals.tax_amount", max_digits=12, decimal_places=2)
    total_amount = serializers.DecimalField(source="totals.total_amount", max_digits=12, decimal_places=2)
    change_given = serializers.DecimalField(max_digits=12, decimal_places=2, allow_null=True)
    discount = DiscountVerdictSerializer(source="verdict", allow_null=True)


class ReasonSerializer(serializers.Serializer):
    reason = serializers.CharField(required=False, allow_blank=True, default="")
