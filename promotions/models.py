"""
Models for the Promotions application: discount codes and campaigns.
"""

from django.core.exceptions import ValidationError
from django.core.validators import MinValueValidator
from django.db import models
from django.db.models import F, Q

from core.managers import UsageLimitedQuerySet
from core.models import TimeStampedModel
from loyalty.models import LoyaltyTier


class DiscountType(models.TextChoices):
    """
    How `discount_value` is applied. Shared by discount codes and campaigns.
    """

    PERCENTAGE = "PERCENTAGE", "Percentage of the eligible subtotal"
    FIXED = "FIXED", "Fixed amount"


class CampaignType(models.TextChoices):
    LOYALTY_BONUS = "LOYALTY_BONUS", "Loyalty bonus"
    PRODUCT_DISCOUNT = "PRODUCT_DISCOUNT", "Product discount"
    CATEGORY_DISCOUNT = "CATEGORY_DISCOUNT", "Category discount"
    BULK_DISCOUNT = "BULK_DISCOUNT", "Bulk discount"
    SEASONAL = "SEASONAL", "Seasonal"
    FLASH_SALE = "FLASH_SALE", "Flash sale"
    CUSTOMER_TIER = "CUSTOMER_TIER", "Customer tier"
    REFERRAL = "REFERRAL", "Referral"
    WELCOME = "WELCOME", "Welcome"


class CampaignStatus(models.TextChoices):
    DRAFT = "DRAFT", "Draft"
    SCHEDULED = "SCHEDULED", "Scheduled"
    ACTIVE = "ACTIVE", "Active"
    PAUSED = "PAUSED", "Paused"
    COMPLETED = "COMPLETED", "Completed"
    CANCELLED = "CANCELLED", "Cancelled"


class PromotionRule(TimeStampedModel):
    """
    Fields common to every discount source.
    """

    discount_type = models.CharField(max_length=10, choices=DiscountType.choices)
    discount_value = models.DecimalField(max_digits=12, decimal_places=2, validators=[MinValueValidator(0)])
    min_purchase = models.DecimalField(max_digits=12, decimal_places=2, null=True, blank=True)
    max_discount = models.DecimalField(max_digits=12, decimal_places=2, null=True, blank=True)

    # None = unlimited
    usage_limit = models.PositiveIntegerField(null=True, blank=True)
    usage_count = models.PositiveIntegerField(default=0)

    # Advisory. Expiry and usage are re-checked at redemption time regardless.
    is_active = models.BooleanField(default=True)

    objects = UsageLimitedQuerySet.as_manager()

    class Meta:
        abstract = True

    @property
    def is_exhausted(self) -> bool:
        return self.usage_limit is not None and self.usage_count >= self.usage_limit

    def clean(self):
        super().clean()
        if self.discount_value is not None and self.discount_value <= 0:
            raise ValidationError({"discount_value": "Discount value must be greater than 0."})
        if self.discount_type == DiscountType.PERCENTAGE and self.discount_value and self.discount_value > 100:
            raise ValidationError({"discount_value": "Percentage discount cannot exceed 100%."})


class DiscountCode(PromotionRule):
    """
    A code the operator types in at checkout.
    """

    code = models.CharField(max_length=64, unique=True)
    name = models.CharField(max_length=255, blank=True)
    description = models.TextField(blank=True)

    # Restricts the code to one customer when set; the customer cannot be deleted while it exists.
    customer = models.ForeignKey(
        "loyalty.Customer",
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="discount_codes",
    )

    starts_at = models.DateTimeField(null=True, blank=True)
    expires_at = models.DateTimeField(null=True, blank=True)

    product_restricted = models.BooleanField(default=False)
    products = models.ManyToManyField("catalog.Product", blank=True, related_name="discount_codes")

    class Meta:
        constraints = [
            models.CheckConstraint(
                condition=Q(usage_limit__isnull=True) | Q(usage_count__lte=F("usage_limit")),
                name="discount_code_usage_within_limit",
            ),
        ]

    def __str__(self):
        return self.code

    def save(self, *args, **kwargs):
        self.code = self.code.strip().upper()
        super().save(*args, **kwargs)

    def clean(self):
        super().clean()
        if self.starts_at and self.expires_at and self.starts_at >= self.expires_at:
            raise ValidationError({"expires_at": "Start date must be before expiration date."})

    def is_expired(self, now) -> bool:
        return self.expires_at is not None and now > self.expires_at


class CampaignQuerySet(UsageLimitedQuerySet):
    def running(self, now):
        """
        Campaigns inside their half-open window [start_date, end_date).
        """
        return self.filter(
            status=CampaignStatus.ACTIVE,
            is_active=True,
            start_date__lte=now,
            end_date__gt=now,
        )


class Campaign(PromotionRule):
    """
    A promotion applied automatically when no discount code is given.
    """

    name = models.CharField(max_length=255)
    description = models.TextField(blank=True)
    campaign_type = models.CharField(max_length=20, choices=CampaignType.choices)
    status = models.CharField(max_length=10, choices=CampaignStatus.choices, default=CampaignStatus.DRAFT)

    start_date = models.DateTimeField()
    end_date = models.DateTimeField()

    # Only customers at or above this tier qualify.
    target_tier = models.CharField(max_length=10, choices=LoyaltyTier.choices, null=True, blank=True)

    products = models.ManyToManyField("catalog.Product", blank=True, related_name="campaigns")
    categories = models.ManyToManyField("catalog.Category", blank=True, related_name="campaigns")

    objects = CampaignQuerySet.as_manager()

    class Meta:
        constraints = [
            models.CheckConstraint(condition=Q(end_date__gt=F("start_date")), name="campaign_ends_after_start"),
            models.CheckConstraint(
                condition=Q(usage_limit__isnull=True) | Q(usage_count__lte=F("usage_limit")),
                name="campaign_usage_within_limit",
            ),
        ]

    def __str__(self):
        return f"{self.name} ({self.get_campaign_type_display()})"

    def clean(self):
        super().clean()
        if self.start_date and self.end_date and self.start_date >= self.end_date:
            raise ValidationError({"end_date": "End date must be after start date."})

    def is_running(self, now) -> bool:
        return (
            self.status == CampaignStatus.ACTIVE
            and self.is_active
            and self.start_date <= now < self.end_date
        )


class ParticipationQuerySet(models.QuerySet):
    def claim_usage(self, pk, limit) -> bool:
        """
        Per-customer counterpart of UsageLimitedQuerySet.claim_usage.
        The limit lives on the campaign, so it is passed in.
        """
        queryset = self.filter(pk=pk)
        if limit is not None:
            queryset = queryset.filter(usage_count__lt=limit)
        return queryset.update(usage_count=F("usage_count") + 1) == 1


class CampaignParticipation(TimeStampedModel):
    """
    How many times one customer has redeemed one campaign.
    """

    campaign = models.ForeignKey(Campaign, on_delete=models.CASCADE, related_name="participations")
    customer = models.ForeignKey("loyalty.Customer", on_delete=models.CASCADE, related_name="campaign_participations")
    usage_count = models.PositiveIntegerField(default=0)

    objects = ParticipationQuerySet.as_manager()

    class Meta:
        unique_together = [("campaign", "customer")]

    def __str__(self):
        return f"{self.customer} in {self.campaign} x{self.usage_count}"
