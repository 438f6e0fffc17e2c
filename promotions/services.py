"""
Administrative operations on discount codes and campaigns.

Checkout never goes through this module: it only reads promotions through
the resolver and the matcher and moves counters through claim_usage.
"""

import logging
import string
from datetime import timedelta
from decimal import Decimal

from django.core.exceptions import ValidationError as DjangoValidationError
from django.db import transaction
from django.utils import timezone
from django.utils.crypto import get_random_string

from core.exceptions import InvalidRequest, InvalidTransition
from promotions.matcher import invalidate_running_campaigns
from promotions.models import Campaign, CampaignStatus, DiscountCode, DiscountType

logger = logging.getLogger(__name__)

CODE_ALPHABET = string.ascii_uppercase + string.digits
GENERATED_CODE_LENGTH = 8

PERSONAL_CODE_VALUE = Decimal("10")
PERSONAL_CODE_VALIDITY = timedelta(days=30)

CAMPAIGN_TRANSITIONS = {
    CampaignStatus.DRAFT: {CampaignStatus.SCHEDULED, CampaignStatus.ACTIVE, CampaignStatus.CANCELLED},
    CampaignStatus.SCHEDULED: {
        CampaignStatus.ACTIVE,
        CampaignStatus.PAUSED,
        CampaignStatus.COMPLETED,
        CampaignStatus.CANCELLED,
    },
    CampaignStatus.ACTIVE: {CampaignStatus.PAUSED, CampaignStatus.COMPLETED, CampaignStatus.CANCELLED},
    CampaignStatus.PAUSED: {CampaignStatus.SCHEDULED, CampaignStatus.ACTIVE, CampaignStatus.CANCELLED},
}


def generate_code(prefix: str = "") -> str:
    """
    A random upper-case code, optionally prefixed ("SUMMER-7KQ2M9XA").
    """
    suffix = get_random_string(GENERATED_CODE_LENGTH, allowed_chars=CODE_ALPHABET)
    return f"{prefix}-{suffix}".upper() if prefix else suffix


def _full_clean(instance, exclude=None):
    try:
        instance.full_clean(exclude=exclude)
    except DjangoValidationError as e:
        raise InvalidRequest(" ".join(e.messages), rule="invalid_fields") from e


class DiscountCodeService:
    """
    Creation and maintenance of discount codes.
    """

    @transaction.atomic
    def create_code(self, code=None, products=None, **fields) -> DiscountCode:
        """
        Creates a code. A random one is generated when `code` is empty.
        Passing products marks the code as product restricted.
        """
        code = (code or generate_code()).strip().upper()
        if DiscountCode.objects.filter(code=code).exists():
            raise InvalidRequest("Discount code already exists", rule="duplicate_code")

        products = list(products or [])
        discount = DiscountCode(code=code, product_restricted=bool(products), **fields)
        _full_clean(discount, exclude=["products"])
        discount.save()
        if products:
            discount.products.set(products)

        logger.info("Discount code %s created (%s %s)", discount.code, discount.discount_type, discount.discount_value)
        return discount

    @transaction.atomic
    def create_personal_codes(self, customer, count: int = 1, **fields):
        """
        Codes usable only by `customer`. Defaults to 10% off for 30 days.
        """
        fields.setdefault("name", f"Personal code for {customer.name}")
        fields.setdefault("discount_type", DiscountType.PERCENTAGE)
        fields.setdefault("discount_value", PERSONAL_CODE_VALUE)
        fields.setdefault("expires_at", timezone.now() + PERSONAL_CODE_VALIDITY)
        prefix = f"CUST{customer.pk}"
        return [self.create_code(code=generate_code(prefix), customer=customer, **fields) for _ in range(count)]

    @transaction.atomic
    def create_bulk_codes(self, prefix: str, count: int, **fields):
        if count < 1:
            raise InvalidRequest("Count must be at least 1.", rule="invalid_count")
        return [self.create_code(code=generate_code(prefix), **fields) for _ in range(count)]

    def toggle_active(self, discount: DiscountCode) -> DiscountCode:
        discount.is_active = not discount.is_active
        discount.save(update_fields=["is_active", "updated_at"])
        logger.info("Discount code %s is_active=%s", discount.code, discount.is_active)
        return discount

    def release_usage(self, discount: DiscountCode) -> DiscountCode:
        """
        Gives back one usage slot. The only operation that lowers usage_count.
        """
        if not DiscountCode.objects.release_usage(discount.pk):
            raise InvalidRequest("Discount code has no recorded usage to release.", rule="nothing_to_release")
        discount.refresh_from_db(fields=["usage_count"])
        logger.info("Released one usage of discount code %s (now %s)", discount.code, discount.usage_count)
        return discount

    def deactivate_spent_codes(self, now=None) -> int:
        """
        Flags expired or exhausted codes as inactive. Advisory only, the
        resolver re-checks expiry and usage at every redemption.
        """
        now = now or timezone.now()
        expired = DiscountCode.objects.filter(is_active=True, expires_at__lt=now).update(is_active=False)
        exhausted = DiscountCode.objects.filter(is_active=True).exhausted().update(is_active=False)
        return expired + exhausted


class CampaignService:
    """
    Campaign lifecycle: DRAFT -> (SCHEDULED | ACTIVE) <-> PAUSED -> COMPLETED, CANCELLED from anywhere open.
    """

    @transaction.atomic
    def create_campaign(self, products=None, categories=None, **fields) -> Campaign:
        fields["status"] = CampaignStatus.DRAFT
        campaign = Campaign(**fields)
        _full_clean(campaign, exclude=["products", "categories"])
        campaign.save()
        if products:
            campaign.products.set(products)
        if categories:
            campaign.categories.set(categories)
        logger.info("Campaign %s created as draft", campaign.pk)
        return campaign

    def activate(self, campaign: Campaign, now=None) -> Campaign:
        """
        ACTIVE when the window is open, SCHEDULED when it opens later.
        """
        now = now or timezone.now()
        if campaign.end_date <= now:
            raise InvalidTransition("Campaign has already ended.", rule="campaign_ended")
        target = CampaignStatus.SCHEDULED if campaign.start_date > now else CampaignStatus.ACTIVE
        return self._transition(campaign, target, is_active=True)

    def pause(self, campaign: Campaign) -> Campaign:
        return self._transition(campaign, CampaignStatus.PAUSED, is_active=False)

    def cancel(self, campaign: Campaign) -> Campaign:
        return self._transition(campaign, CampaignStatus.CANCELLED, is_active=False)

    def sync_statuses(self, now=None) -> dict:
        """
        SCHEDULED campaigns whose window opened become ACTIVE; open campaigns
        whose window closed become COMPLETED.
        """
        now = now or timezone.now()
        completed = Campaign.objects.filter(
            status__in=[CampaignStatus.SCHEDULED, CampaignStatus.ACTIVE], end_date__lte=now
        ).update(status=CampaignStatus.COMPLETED, is_active=False, updated_at=now)
        started = Campaign.objects.filter(
            status=CampaignStatus.SCHEDULED, start_date__lte=now, end_date__gt=now
        ).update(status=CampaignStatus.ACTIVE, updated_at=now)

        # update() bypasses post_save.
        if completed or started:
            invalidate_running_campaigns()
        return {"started": started, "completed": completed}

    def _transition(self, campaign: Campaign, target, **changes) -> Campaign:
        if campaign.status == target:
            return campaign
        if target not in CAMPAIGN_TRANSITIONS.get(campaign.status, set()):
            raise InvalidTransition(
                f"Campaign cannot transition from '{campaign.status}' to '{target}'", rule="invalid_transition"
            )
        campaign.status = target
        for field, value in changes.items():
            setattr(campaign, field, value)
        campaign.save(update_fields=["status", *changes, "updated_at"])
        logger.info("Campaign %s is now %s", campaign.pk, target)
        return campaign
