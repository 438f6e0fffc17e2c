"""
Models for the Sales application.
"""

from django.db import models
from django.db.models import F, Q

from core.exceptions import InvalidTransition
from core.models import TimeStampedModel


class PaymentMethod(models.TextChoices):
    CASH = "CASH", "Cash"
    CARD = "CARD", "Card"
    DIGITAL = "DIGITAL", "Digital wallet"


class SaleStatus(models.TextChoices):
    PENDING = "PENDING", "Pending"
    COMPLETED = "COMPLETED", "Completed"
    CANCELLED = "CANCELLED", "Cancelled"
    REFUNDED = "REFUNDED", "Refunded"


# CANCELLED and REFUNDED are terminal.
ALLOWED_TRANSITIONS = {
    SaleStatus.PENDING: {SaleStatus.COMPLETED, SaleStatus.CANCELLED},
    SaleStatus.COMPLETED: {SaleStatus.REFUNDED},
}


class Sale(TimeStampedModel):
    """
    A receipt. Totals satisfy total_amount = subtotal - discount_amount + tax_amount.
    """

    receipt_number = models.CharField(max_length=32, unique=True, null=True, blank=True)
    customer = models.ForeignKey(
        "loyalty.Customer",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="sales",
    )

    subtotal = models.DecimalField(max_digits=12, decimal_places=2)
    discount_amount = models.DecimalField(max_digits=12, decimal_places=2, default=0)
    tax_amount = models.DecimalField(max_digits=12, decimal_places=2, default=0)
    total_amount = models.DecimalField(max_digits=12, decimal_places=2)

    payment_method = models.CharField(max_length=10, choices=PaymentMethod.choices)
    status = models.CharField(max_length=10, choices=SaleStatus.choices, default=SaleStatus.PENDING)

    # CASH only
    cash_received = models.DecimalField(max_digits=12, decimal_places=2, null=True, blank=True)
    change_given = models.DecimalField(max_digits=12, decimal_places=2, null=True, blank=True)

    loyalty_points_used = models.PositiveIntegerField(default=0)
    loyalty_points_earned = models.PositiveIntegerField(default=0)

    # At most one discount source per sale.
    discount_code = models.ForeignKey(
        "promotions.DiscountCode",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="sales",
    )
    campaign = models.ForeignKey(
        "promotions.Campaign",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="sales",
    )

    notes = models.TextField(blank=True)

    class Meta:
        ordering = ["-created_at"]
        constraints = [
            models.CheckConstraint(
                condition=Q(discount_code__isnull=True) | Q(campaign__isnull=True),
                name="sale_single_discount_source",
            ),
            models.CheckConstraint(
                condition=Q(discount_amount__lte=F("subtotal")),
                name="sale_discount_within_subtotal",
            ),
            models.CheckConstraint(condition=Q(total_amount__gte=0), name="sale_total_not_negative"),
        ]

    def __str__(self):
        return f"{self.receipt_number or 'draft'} {self.total_amount} ({self.status})"

    def can_transition_to(self, target_status) -> bool:
        return target_status in ALLOWED_TRANSITIONS.get(self.status, set())

    def transition_to(self, target_status):
        """
        Moves the sale to `target_status` in memory. The caller saves.
        """
        if not self.can_transition_to(target_status):
            raise InvalidTransition(
                f"Sale {self.receipt_number or self.pk} cannot transition from '{self.status}' to '{target_status}'",
                rule="invalid_transition",
            )
        self.status = target_status


class SaleItem(models.Model):
    sale = models.ForeignKey(Sale, on_delete=models.CASCADE, related_name="items")
    product = models.ForeignKey("catalog.Product", on_delete=models.PROTECT, related_name="sale_items")
    quantity = models.PositiveIntegerField()
    unit_price = models.DecimalField(max_digits=12, decimal_places=2)
    total_amount = models.DecimalField(max_digits=12, decimal_places=2)

    def __str__(self):
        return f"{self.quantity} x {self.product_id} @ {self.unit_price}"
