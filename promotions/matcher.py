"""
Automatic campaign matching for carts checked out without a discount code.
"""

import logging

from django.conf import settings
from django.core.cache import cache
from django.utils import timezone

from core.exceptions import UsageExhausted
from loyalty.models import LoyaltyTier
from promotions.models import Campaign, CampaignParticipation, CampaignStatus, CampaignType
from promotions.verdicts import DiscountVerdict, compute_discount_amount

logger = logging.getLogger(__name__)

RUNNING_CAMPAIGNS_CACHE_KEY = "promotions:running_campaign_ids"

# Types that only apply when the cart touches their bound products or categories.
BOUND_CAMPAIGN_TYPES = (CampaignType.PRODUCT_DISCOUNT, CampaignType.CATEGORY_DISCOUNT)


def get_running_campaign_ids(now=None):
    """
    Ids of ACTIVE campaigns that have not ended yet, cached.

    Campaigns that start later are included on purpose: the start bound is
    re-checked per request, so a cached list never hides a campaign that
    starts before the cache expires. Signals clear the key on every change.
    """
    ids = cache.get(RUNNING_CAMPAIGNS_CACHE_KEY)
    if ids is None:
        now = now or timezone.now()
        ids = list(
            Campaign.objects.filter(status=CampaignStatus.ACTIVE, is_active=True, end_date__gt=now)
            .order_by("pk")
            .values_list("pk", flat=True)
        )
        cache.set(RUNNING_CAMPAIGNS_CACHE_KEY, ids, timeout=settings.RUNNING_CAMPAIGNS_CACHE_TIMEOUT)
    return ids


def invalidate_running_campaigns():
    cache.delete(RUNNING_CAMPAIGNS_CACHE_KEY)


def tier_satisfies(customer_tier, target_tier) -> bool:
    """
    True when customer_tier is at or above target_tier. A missing target is always satisfied.
    """
    if not target_tier:
        return True
    if not customer_tier:
        return False
    return LoyaltyTier.rank(customer_tier) >= LoyaltyTier.rank(target_tier)


class CampaignMatcher:
    """
    Finds the campaigns a cart qualifies for and ranks them.

    Ranking: greatest discount amount first, then earliest start_date, then lowest id.
    """

    def __init__(self, now=None):
        self._now = now

    @property
    def now(self):
        return self._now or timezone.now()

    def find_applicable(self, cart, customer=None):
        """
        Returns:
            A list of DiscountVerdict, best first. Empty if nothing applies.
        """
        now = self.now
        campaigns = list(
            Campaign.objects.running(now)
            .filter(pk__in=get_running_campaign_ids(now))
            .with_remaining_usage()
            .prefetch_related("products", "categories")
        )

        participations = {}
        if customer is not None:
            participations = dict(
                CampaignParticipation.objects.filter(
                    customer=customer, campaign__in=[campaign.pk for campaign in campaigns]
                ).values_list("campaign_id", "usage_count")
            )

        verdicts = []
        for campaign in campaigns:
            verdict = self._evaluate(campaign, cart, customer, participations.get(campaign.pk, 0))
            if verdict is not None:
                verdicts.append(verdict)

        verdicts.sort(key=lambda v: (-v.amount, v.campaign.start_date, v.campaign.pk))
        return verdicts

    def best(self, cart, customer=None):
        verdicts = self.find_applicable(cart, customer=customer)
        return verdicts[0] if verdicts else None

    def _evaluate(self, campaign, cart, customer, customer_usage):
        """
        Returns a verdict for one campaign, or None if the cart or customer does not qualify.
        """
        if campaign.min_purchase is not None and cart.subtotal < campaign.min_purchase:
            return None

        if campaign.is_exhausted:
            return None

        customer_tier = customer.loyalty_tier if customer is not None else None
        if not tier_satisfies(customer_tier, campaign.target_tier):
            return None

        if campaign.campaign_type == CampaignType.WELCOME:
            if customer is None or customer.visit_count > 0:
                return None

        if customer is not None and campaign.usage_limit is not None and customer_usage >= campaign.usage_limit:
            return None

        product_ids = {product.pk for product in campaign.products.all()}
        category_ids = {category.pk for category in campaign.categories.all()}

        if product_ids or category_ids:
            if not (cart.product_ids & product_ids or cart.category_ids & category_ids):
                return None
            eligible_subtotal = cart.eligible_subtotal(product_ids=product_ids, category_ids=category_ids)
        elif campaign.campaign_type in BOUND_CAMPAIGN_TYPES:
            return None
        else:
            eligible_subtotal = cart.subtotal

        amount = compute_discount_amount(
            campaign.discount_type,
            campaign.discount_value,
            eligible_subtotal,
            max_discount=campaign.max_discount,
        )
        if amount <= 0:
            return None

        return DiscountVerdict(amount=amount, eligible_subtotal=eligible_subtotal, campaign=campaign)

    def redeem(self, verdict: DiscountVerdict, customer=None) -> None:
        """
        Takes one campaign-wide usage slot and, for a known customer, one
        per-customer slot. Call inside transaction.atomic().

        Raises:
            UsageExhausted: either limit was reached by a concurrent sale.
        """
        campaign = verdict.campaign
        if not Campaign.objects.claim_usage(campaign.pk):
            logger.warning("Campaign %s exhausted at redemption time", campaign.pk)
            raise UsageExhausted("Campaign has reached its usage limit.")

        if customer is not None:
            participation, _ = CampaignParticipation.objects.get_or_create(campaign=campaign, customer=customer)
            if not CampaignParticipation.objects.claim_usage(participation.pk, campaign.usage_limit):
                logger.warning("Customer %s reached the limit of campaign %s", customer.pk, campaign.pk)
                raise UsageExhausted(
                    "Customer has reached the usage limit of this campaign.", rule="customer_usage_exhausted"
                )

        logger.info("Campaign %s redeemed", campaign.pk)

