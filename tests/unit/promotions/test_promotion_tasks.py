"""
Unit tests for Celery tasks in the Promotions application.
These tests call the tasks synchronously (without the broker).
"""

from django.core.cache import cache

from promotions.matcher import RUNNING_CAMPAIGNS_CACHE_KEY, get_running_campaign_ids
from promotions.models import CampaignStatus
from promotions.tasks import deactivate_spent_discount_codes, sync_campaign_statuses
from tests.factories.promotions import CampaignFactory, DiscountCodeFactory


class TestPromotionTasks:
    def test_deactivate_spent_discount_codes(self):
        DiscountCodeFactory(expired=True)
        DiscountCodeFactory()

        result = deactivate_spent_discount_codes()

        assert result == "Deactivated 1 discount codes."

    def test_sync_campaign_statuses_clears_cache(self):
        campaign = CampaignFactory(ended=True)
        get_running_campaign_ids()

        result = sync_campaign_statuses.delay().get()

        campaign.refresh_from_db()
        assert result == {"started": 0, "completed": 1}
        assert campaign.status == CampaignStatus.COMPLETED
        assert cache.get(RUNNING_CAMPAIGNS_CACHE_KEY) is None

    def test_sync_without_changes_keeps_cache(self):
        CampaignFactory()
        ids = get_running_campaign_ids()

        sync_campaign_statuses()

        assert cache.get(RUNNING_CAMPAIGNS_CACHE_KEY) == ids
