"""
Serializers for the Promotions application.
"""

from rest_framework import serializers

from catalog.models import Category, Product
from loyalty.models import Customer
from promotions.models import Campaign, DiscountCode, DiscountType
from promotions.services import CampaignService, DiscountCodeService


def _validate_rule(attrs, instance=None):
    """
    Checks shared by codes and campaigns, run against the merged old and new values.
    """
    discount_type = attrs.get("discount_type", getattr(instance, "discount_type", None))
    discount_value = attrs.get("discount_value", getattr(instance, "discount_value", None))

    if discount_value is not None and discount_value <= 0:
        raise serializers.ValidationError({"discount_value": "Discount value must be greater than 0."})
    if discount_type == DiscountType.PERCENTAGE and discount_value is not None and discount_value > 100:
        raise serializers.ValidationError({"discount_value": "Percentage discount cannot exceed 100%."})

    usage_limit = attrs.get("usage_limit")
    if instance is not None and usage_limit is not None and usage_limit < instance.usage_count:
        raise serializers.ValidationError(
            {"usage_limit": f"Usage limit cannot be lower than the current usage count ({instance.usage_count})."}
        )


class CartItemSerializer(serializers.Serializer):
    product = serializers.IntegerField()
    quantity = serializers.IntegerField(min_value=1)


class CartSerializer(serializers.Serializer):
    """
    A cart to evaluate without checking out.
    """

    items = CartItemSerializer(many=True, allow_empty=False)
    customer = serializers.PrimaryKeyRelatedField(queryset=Customer.objects.all(), required=False, allow_null=True)

    def get_cart_items(self):
        return [(item["product"], item["quantity"]) for item in self.validated_data["items"]]


class ValidateCodeSerializer(CartSerializer):
    code = serializers.CharField()


class DiscountVerdictSerializer(serializers.Serializer):
    source = serializers.CharField(read_only=True)
    label = serializers.CharField(read_only=True)
    amount = serializers.DecimalField(max_digits=12, decimal_places=2, read_only=True)
    eligible_subtotal = serializers.DecimalField(max_digits=12, decimal_places=2, read_only=True)
    discount_code = serializers.PrimaryKeyRelatedField(read_only=True)
    campaign = serializers.PrimaryKeyRelatedField(read_only=True)


class DiscountCodeSerializer(serializers.ModelSerializer):
    """
    Serializer for the DiscountCode model. The code is generated when left empty.
    """

    code = serializers.CharField(max_length=64, required=False, allow_blank=True)
    products = serializers.PrimaryKeyRelatedField(queryset=Product.objects.all(), many=True, required=False)

    class Meta:
        model = DiscountCode
        fields = [
            "id",
            "code",
            "name",
            "description",
            "discount_type",
            "discount_value",
            "min_purchase",
            "max_discount",
            "usage_limit",
            "usage_count",
            "customer",
            "starts_at",
            "expires_at",
            "is_active",
            "product_restricted",
            "products",
        ]
        read_only_fields = ["id", "usage_count", "product_restricted"]

    def validate_code(self, value):
        value = value.strip().upper()
        queryset = DiscountCode.objects.filter(code=value)
        if self.instance is not None:
            queryset = queryset.exclude(pk=self.instance.pk)
        if value and queryset.exists():
            raise serializers.ValidationError("Discount code already exists.")
        return value

    def validate(self, attrs):
        _validate_rule(attrs, self.instance)
        starts_at = attrs.get("starts_at", getattr(self.instance, "starts_at", None))
        expires_at = attrs.get("expires_at", getattr(self.instance, "expires_at", None))
        if starts_at and expires_at and starts_at >= expires_at:
            raise serializers.ValidationError({"expires_at": "Start date must be before expiration date."})
        return attrs

    def create(self, validated_data):
        return DiscountCodeService().create_code(**validated_data)

    def update(self, instance, validated_data):
        if "products" in validated_data:
            validated_data["product_restricted"] = bool(validated_data["products"])
        if not validated_data.get("code", True):
            validated_data.pop("code")
        return super().update(instance, validated_data)


class BulkCodeSerializer(serializers.Serializer):
    prefix = serializers.CharField(max_length=20)
    count = serializers.IntegerField(min_value=1, max_value=500)
    discount_type = serializers.ChoiceField(choices=DiscountType.choices)
    discount_value = serializers.DecimalField(max_digits=12, decimal_places=2)
    min_purchase = serializers.DecimalField(max_digits=12, decimal_places=2, required=False, allow_null=True)
    max_discount = serializers.DecimalField(max_digits=12, decimal_places=2, required=False, allow_null=True)
    usage_limit = serializers.IntegerField(min_value=1, required=False, allow_null=True)
    expires_at = serializers.DateTimeField(required=False, allow_null=True)

    def validate(self, attrs):
        _validate_rule(attrs)
        return attrs

    def create(self, validated_data):
        return DiscountCodeService().create_bulk_codes(**validated_data)


class PersonalCodeSerializer(serializers.Serializer):
    customer = serializers.PrimaryKeyRelatedField(queryset=Customer.objects.all())
    count = serializers.IntegerField(min_value=1, max_value=50, default=1)

    def create(self, validated_data):
        return DiscountCodeService().create_personal_codes(validated_data["customer"], count=validated_data["count"])


class CampaignSerializer(serializers.ModelSerializer):
    """
    Serializer for the Campaign model. Status moves only through the lifecycle actions.
    """

    products = serializers.PrimaryKeyRelatedField(queryset=Product.objects.all(), many=True, required=False)
    categories = serializers.PrimaryKeyRelatedField(queryset=Category.objects.all(), many=True, required=False)

    class Meta:
        model = Campaign
        fields = [
            "id",
            "name",
            "description",
            "campaign_type",
            "status",
            "start_date",
            "end_date",
            "discount_type",
            "discount_value",
            "min_purchase",
            "max_discount",
            "usage_limit",
            "usage_count",
            "target_tier",
            "is_active",
            "products",
            "categories",
        ]
        read_only_fields = ["id", "status", "usage_count", "is_active"]

    def validate(self, attrs):
        _validate_rule(attrs, self.instance)
        start_date = attrs.get("start_date", getattr(self.instance, "start_date", None))
        end_date = attrs.get("end_date", getattr(self.instance, "end_date", None))
        if start_date and end_date and start_date >= end_date:
            raise serializers.ValidationError({"end_date": "End date must be after start date."})
        return attrs

    def create(self, validated_data):
        return CampaignService().create_campaign(**validated_data)
