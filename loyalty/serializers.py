"""
Serializers for the Loyalty application.
"""

from rest_framework import serializers

from loyalty.models import Customer, LoyaltyTransaction
from loyalty.services import LoyaltyService, next_tier_progress

RECENT_HISTORY_SIZE = 10


class LoyaltyTransactionSerializer(serializers.ModelSerializer):
    sale_receipt_number = serializers.CharField(source="sale.receipt_number", read_only=True, default=None)

    class Meta:
        model = LoyaltyTransaction
        fields = [
            "id",
            "customer",
            "points",
            "transaction_type",
            "sale",
            "sale_receipt_number",
            "description",
            "created_at",
        ]
        read_only_fields = fields


class CustomerSerializer(serializers.ModelSerializer):
    """
    Serializer for Customer model.
    Read-only view of customer data including the balance recomputed from the ledger.
    """

    balance = serializers.IntegerField(source="get_balance", read_only=True)

    class Meta:
        model = Customer
        fields = [
            "id",
            "name",
            "phone",
            "email",
            "loyalty_points",
            "loyalty_tier",
            "total_spent",
            "visit_count",
            "last_visit",
            "balance",
        ]
        read_only_fields = fields


class CustomerSummarySerializer(CustomerSerializer):
    """
    Balance, tier, progress towards the next tier and the latest ledger rows.
    """

    next_tier = serializers.SerializerMethodField()
    recent_transactions = serializers.SerializerMethodField()

    class Meta(CustomerSerializer.Meta):
        fields = CustomerSerializer.Meta.fields + ["next_tier", "recent_transactions"]
        read_only_fields = fields

    def get_next_tier(self, customer):
        progress = next_tier_progress(customer)
        if progress is None:
            return None
        remaining = progress["remaining_spend"]
        return {
            "tier": progress["tier"],
            "remaining_spend": str(remaining) if remaining is not None else None,
            "visit_count": progress["visit_count"],
        }

    def get_recent_transactions(self, customer):
        recent = customer.loyalty_transactions.select_related("sale").order_by("-created_at", "-id")
        return LoyaltyTransactionSerializer(recent[:RECENT_HISTORY_SIZE], many=True).data


class AdjustmentSerializer(serializers.Serializer):
    """
    Manual correction of a customer's balance. `points` may be negative.
    """

    points = serializers.IntegerField()
    description = serializers.CharField()

    def validate_points(self, value):
        if value == 0:
            raise serializers.ValidationError("Adjustment must move at least one point.")
        return value

    def create(self, validated_data):
        return LoyaltyService().adjust(
            customer=self.context["customer"],
            points=validated_data["points"],
            description=validated_data["description"],
        )


class BonusSerializer(serializers.Serializer):
    points = serializers.IntegerField(min_value=1)
    reason = serializers.CharField()
    transaction_type = serializers.ChoiceField(
        choices=LoyaltyTransaction.BONUS_TYPES, default=LoyaltyTransaction.BONUS
    )

    def create(self, validated_data):
        return LoyaltyService().award_bonus(
            customer=self.context["customer"],
            points=validated_data["points"],
            reason=validated_data["reason"],
            transaction_type=validated_data["transaction_type"],
        )
