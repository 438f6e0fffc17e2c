"""
Models for the Loyalty application.
"""

from django.db import models
from django.db.models import Sum

from core.models import TimeStampedModel


class LoyaltyTier(models.TextChoices):
    """
    Loyalty ranks, lowest first. Comparisons go through `rank`.
    """

    BRONZE = "BRONZE", "Bronze"
    SILVER = "SILVER", "Silver"
    GOLD = "GOLD", "Gold"
    PLATINUM = "PLATINUM", "Platinum"

    @classmethod
    def ordered(cls):
        return [cls.BRONZE, cls.SILVER, cls.GOLD, cls.PLATINUM]

    @classmethod
    def rank(cls, tier) -> int:
        return cls.ordered().index(cls(tier))


class Customer(TimeStampedModel):
    """
    A café customer enrolled in the loyalty programme.

    Profile fields belong to the customer CRUD service. `loyalty_points` and
    `loyalty_tier` are written only by LoyaltyService.
    """

    name = models.CharField(max_length=255)
    phone = models.CharField(max_length=32, blank=True)
    email = models.EmailField(blank=True, null=True)

    # Cached projection of the ledger. The ledger stays the source of truth.
    loyalty_points = models.PositiveIntegerField(default=0)
    loyalty_tier = models.CharField(max_length=10, choices=LoyaltyTier.choices, default=LoyaltyTier.BRONZE)

    total_spent = models.DecimalField(max_digits=12, decimal_places=2, default=0)
    visit_count = models.PositiveIntegerField(default=0)
    last_visit = models.DateTimeField(null=True, blank=True)

    def __str__(self):
        return f"{self.name} ({self.get_loyalty_tier_display()})"

    def get_balance(self):
        """
        Calculates the current balance by summing up all related transactions.
        Returns 0 if no transactions exist.
        """
        result = self.loyalty_transactions.aggregate(total=Sum("points"))["total"]

        # If there are no transactions, Sum returns None. We must return 0 instead.
        return result or 0


class LoyaltyTransaction(models.Model):
    """
    The Ledger (Journal).
    Records every point change (+ or -). Rows are never updated or deleted;
    corrections are new ADJUSTED rows.
    """

    EARNED = "EARNED"
    REDEEMED = "REDEEMED"
    EXPIRED = "EXPIRED"
    ADJUSTED = "ADJUSTED"
    BONUS = "BONUS"
    SIGNUP_BONUS = "SIGNUP_BONUS"
    REFERRAL_BONUS = "REFERRAL_BONUS"

    TRANSACTION_TYPES = [
        (EARNED, "Earned on a sale"),
        (REDEEMED, "Redeemed on a sale"),
        (EXPIRED, "Expired"),
        (ADJUSTED, "Manual or compensating adjustment"),
        (BONUS, "Bonus"),
        (SIGNUP_BONUS, "Sign-up bonus"),
        (REFERRAL_BONUS, "Referral bonus"),
    ]

    BONUS_TYPES = (BONUS, SIGNUP_BONUS, REFERRAL_BONUS)

    customer = models.ForeignKey(
        Customer,
        on_delete=models.CASCADE,
        related_name="loyalty_transactions",
    )

    # Positive (+) = credit, Negative (-) = debit
    points = models.IntegerField()
    transaction_type = models.CharField(max_length=20, choices=TRANSACTION_TYPES)
    sale = models.ForeignKey(
        "sales.Sale",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="loyalty_transactions",
    )
    description = models.TextField(blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["created_at", "id"]
        indexes = [models.Index(fields=["customer", "created_at"])]

    def __str__(self):
        return f"{self.customer} {self.points:+d} ({self.get_transaction_type_display()})"

    def save(self, *args, **kwargs):
        if self.pk is not None:
            raise ValueError("Loyalty transactions are append-only.")
        super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise ValueError("Loyalty transactions are append-only.")
