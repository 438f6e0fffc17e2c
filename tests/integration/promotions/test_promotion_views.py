"""
Integration tests for the Promotions API (discount codes and campaigns).
"""

from datetime import timedelta
from decimal import Decimal

from django.utils import timezone
from rest_framework import status
from rest_framework.test import APIClient

from promotions.models import Campaign, CampaignStatus, DiscountCode
from tests.factories.catalog import ProductFactory
from tests.factories.loyalty import CustomerFactory
from tests.factories.promotions import CampaignFactory, DiscountCodeFactory

CODES_URL = "/api/promotions/discount-codes/"
CAMPAIGNS_URL = "/api/promotions/campaigns/"


class TestDiscountCodeAPI:
    def setup_method(self):
        self.client = APIClient()

    def test_create_code_is_normalized(self):
        payload = {"code": " summer ", "name": "Summer", "discount_type": "PERCENTAGE", "discount_value": "15"}

        response = self.client.post(CODES_URL, payload, format="json")

        assert response.status_code == status.HTTP_201_CREATED
        assert response.data["code"] == "SUMMER"
        assert response.data["usage_count"] == 0

    def test_create_code_generates_one_when_blank(self):
        payload = {"name": "Anything", "discount_type": "FIXED", "discount_value": "2.00"}

        response = self.client.post(CODES_URL, payload, format="json")

        assert response.status_code == status.HTTP_201_CREATED
        assert len(response.data["code"]) == 8

    def test_create_restricted_code(self):
        product = ProductFactory()
        payload = {
            "code": "MUFFIN",
            "name": "Muffin deal",
            "discount_type": "PERCENTAGE",
            "discount_value": "50",
            "products": [product.pk],
        }

        response = self.client.post(CODES_URL, payload, format="json")

        assert response.status_code == status.HTTP_201_CREATED
        assert response.data["product_restricted"] is True
        assert response.data["products"] == [product.pk]

    def test_rejects_invalid_rules(self):
        DiscountCodeFactory(code="TAKEN")

        over_hundred = {"code": "BIG", "name": "Big", "discount_type": "PERCENTAGE", "discount_value": "120"}
        duplicate = {"code": "taken", "name": "Dup", "discount_type": "FIXED", "discount_value": "1"}

        assert self.client.post(CODES_URL, over_hundred, format="json").status_code == status.HTTP_400_BAD_REQUEST
        response = self.client.post(CODES_URL, duplicate, format="json")
        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert "code" in response.data

    def test_usage_limit_cannot_drop_below_usage(self):
        code = DiscountCodeFactory(usage_limit=5, usage_count=3)

        rejected = self.client.patch(f"{CODES_URL}{code.pk}/", {"usage_limit": 1}, format="json")
        accepted = self.client.patch(f"{CODES_URL}{code.pk}/", {"usage_limit": 3}, format="json")

        assert rejected.status_code == status.HTTP_400_BAD_REQUEST
        assert "usage_limit" in rejected.data
        assert accepted.status_code == status.HTTP_200_OK
        code.refresh_from_db()
        assert code.usage_limit == 3

    def test_validate_code_against_cart(self):
        """
        POST /api/promotions/discount-codes/validate/
        Returns the verdict without consuming a usage.
        """
        product = ProductFactory(price=Decimal("10.00"))
        code = DiscountCodeFactory(code="SAVE10", usage_limit=1)
        payload = {"code": "SAVE10", "items": [{"product": product.pk, "quantity": 3}]}

        response = self.client.post(f"{CODES_URL}validate/", payload, format="json")

        assert response.status_code == status.HTTP_200_OK
        assert response.data["amount"] == "3.00"
        assert response.data["discount_code"] == code.pk
        code.refresh_from_db()
        assert code.usage_count == 0

    def test_validate_unknown_code(self):
        product = ProductFactory()
        payload = {"code": "NOPE", "items": [{"product": product.pk, "quantity": 1}]}

        response = self.client.post(f"{CODES_URL}validate/", payload, format="json")

        assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY
        assert response.data["rule"] == "unknown_code"

    def test_bulk_creation(self):
        payload = {"prefix": "flyer", "count": 3, "discount_type": "FIXED", "discount_value": "2.00"}

        response = self.client.post(f"{CODES_URL}bulk/", payload, format="json")

        assert response.status_code == status.HTTP_201_CREATED
        assert len(response.data) == 3
        assert all(item["code"].startswith("FLYER-") for item in response.data)

    def test_personal_codes(self):
        customer = CustomerFactory()

        response = self.client.post(f"{CODES_URL}personal/", {"customer": customer.pk, "count": 2}, format="json")

        assert response.status_code == status.HTTP_201_CREATED
        assert len(response.data) == 2
        assert {item["customer"] for item in response.data} == {customer.pk}
        assert DiscountCode.objects.filter(customer=customer).count() == 2

    def test_toggle(self):
        code = DiscountCodeFactory()

        response = self.client.post(f"{CODES_URL}{code.pk}/toggle/")

        assert response.status_code == status.HTTP_200_OK
        assert response.data["is_active"] is False

    def test_release_usage(self):
        code = DiscountCodeFactory(usage_limit=1, usage_count=1)

        response = self.client.post(f"{CODES_URL}{code.pk}/release-usage/")

        assert response.status_code == status.HTTP_200_OK
        assert response.data["usage_count"] == 0

        again = self.client.post(f"{CODES_URL}{code.pk}/release-usage/")
        assert again.status_code == status.HTTP_400_BAD_REQUEST
        assert again.data["rule"] == "nothing_to_release"


class TestCampaignAPI:
    def setup_method(self):
        self.client = APIClient()

    def test_created_campaign_is_draft(self):
        now = timezone.now()
        payload = {
            "name": "Autumn",
            "campaign_type": "SEASONAL",
            "start_date": (now - timedelta(days=1)).isoformat(),
            "end_date": (now + timedelta(days=7)).isoformat(),
            "discount_type": "PERCENTAGE",
            "discount_value": "10",
            "status": "ACTIVE",
        }

        response = self.client.post(CAMPAIGNS_URL, payload, format="json")

        assert response.status_code == status.HTTP_201_CREATED
        assert response.data["status"] == CampaignStatus.DRAFT

    def test_end_before_start_is_rejected(self):
        now = timezone.now()
        payload = {
            "name": "Backwards",
            "campaign_type": "SEASONAL",
            "start_date": now.isoformat(),
            "end_date": (now - timedelta(days=1)).isoformat(),
            "discount_type": "FIXED",
            "discount_value": "1.00",
        }

        response = self.client.post(CAMPAIGNS_URL, payload, format="json")

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert "end_date" in response.data

    def test_lifecycle_actions(self):
        campaign = CampaignFactory(draft=True)

        activated = self.client.post(f"{CAMPAIGNS_URL}{campaign.pk}/activate/")
        paused = self.client.post(f"{CAMPAIGNS_URL}{campaign.pk}/pause/")
        cancelled = self.client.post(f"{CAMPAIGNS_URL}{campaign.pk}/cancel/")

        assert activated.data["status"] == CampaignStatus.ACTIVE
        assert paused.data["status"] == CampaignStatus.PAUSED
        assert paused.data["is_active"] is False
        assert cancelled.data["status"] == CampaignStatus.CANCELLED

    def test_usage_limit_cannot_drop_below_usage(self):
        campaign = CampaignFactory(usage_limit=5, usage_count=3)

        response = self.client.patch(f"{CAMPAIGNS_URL}{campaign.pk}/", {"usage_limit": 2}, format="json")

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert "usage_limit" in response.data
        campaign.refresh_from_db()
        assert campaign.usage_limit == 5

    def test_invalid_transition_is_a_conflict(self):
        campaign = CampaignFactory(draft=True)

        response = self.client.post(f"{CAMPAIGNS_URL}{campaign.pk}/pause/")

        assert response.status_code == status.HTTP_409_CONFLICT
        assert response.data["rule"] == "invalid_transition"
        assert Campaign.objects.get(pk=campaign.pk).status == CampaignStatus.DRAFT

    def test_filter_by_status(self):
        CampaignFactory(draft=True)
        running = CampaignFactory()

        response = self.client.get(CAMPAIGNS_URL, {"status": "active"})

        assert [item["id"] for item in response.data] == [running.pk]

    def test_applicable_campaigns(self):
        """
        POST /api/promotions/campaigns/applicable/
        """
        product = ProductFactory(price=Decimal("10.00"))
        campaign = CampaignFactory(discount_value=Decimal("10"))
        CampaignFactory(draft=True)

        response = self.client.post(
            f"{CAMPAIGNS_URL}applicable/", {"items": [{"product": product.pk, "quantity": 2}]}, format="json"
        )

        assert response.status_code == status.HTTP_200_OK
        assert len(response.data) == 1
        assert response.data[0]["campaign"] == campaign.pk
        assert response.data[0]["amount"] == "2.00"
