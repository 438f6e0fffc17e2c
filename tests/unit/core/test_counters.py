"""
Unit tests for the guarded usage counters.
"""

from promotions.models import Campaign, DiscountCode
from tests.factories.promotions import CampaignFactory, DiscountCodeFactory


class TestUsageLimitedQuerySet:
    def test_claim_increments_until_limit(self):
        code = DiscountCodeFactory(usage_limit=2)

        assert DiscountCode.objects.claim_usage(code.pk) is True
        assert DiscountCode.objects.claim_usage(code.pk) is True
        assert DiscountCode.objects.claim_usage(code.pk) is False

        code.refresh_from_db()
        assert code.usage_count == 2
        assert code.is_exhausted

    def test_claim_without_limit_never_fails(self):
        code = DiscountCodeFactory(usage_limit=None, usage_count=1000)

        assert DiscountCode.objects.claim_usage(code.pk) is True

        code.refresh_from_db()
        assert code.usage_count == 1001

    def test_release_never_goes_below_zero(self):
        code = DiscountCodeFactory(usage_limit=5, usage_count=1)

        assert DiscountCode.objects.release_usage(code.pk) is True
        assert DiscountCode.objects.release_usage(code.pk) is False

        code.refresh_from_db()
        assert code.usage_count == 0

    def test_remaining_and_exhausted_filters(self):
        open_code = DiscountCodeFactory(usage_limit=3, usage_count=1)
        unlimited = DiscountCodeFactory(usage_limit=None)
        spent = DiscountCodeFactory(usage_limit=1, usage_count=1)

        assert set(DiscountCode.objects.with_remaining_usage()) == {open_code, unlimited}
        assert list(DiscountCode.objects.exhausted()) == [spent]

    def test_campaign_counters_share_the_guard(self):
        campaign = CampaignFactory(usage_limit=1)

        assert Campaign.objects.claim_usage(campaign.pk) is True
        assert Campaign.objects.claim_usage(campaign.pk) is False
