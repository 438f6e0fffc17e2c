"""
Factories for the promotions application
"""

from datetime import timedelta
from decimal import Decimal

import factory
from django.utils import timezone
from factory.django import DjangoModelFactory

from promotions.models import Campaign, CampaignStatus, CampaignType, DiscountCode, DiscountType


class DiscountCodeFactory(DjangoModelFactory):
    """
    A 10% code with no limits. Restrict it with DiscountCodeFactory(products=[...]).
    """

    class Meta:
        model = DiscountCode
        skip_postgeneration_save = True

    code = factory.Sequence(lambda n: f"CODE{n:04d}")
    name = factory.Faker("catch_phrase")
    discount_type = DiscountType.PERCENTAGE
    discount_value = Decimal("10.00")
    is_active = True

    class Params:
        fixed = factory.Trait(discount_type=DiscountType.FIXED, discount_value=Decimal("2.00"))

        expired = factory.Trait(
            starts_at=factory.LazyFunction(lambda: timezone.now() - timedelta(days=10)),
            expires_at=factory.LazyFunction(lambda: timezone.now() - timedelta(days=1)),
        )

    @factory.post_generation
    def products(self, create, extracted, **kwargs):
        if not create or not extracted:
            return
        self.product_restricted = True
        self.save(update_fields=["product_restricted"])
        self.products.set(extracted)


class CampaignFactory(DjangoModelFactory):
    """
    Factory for creating Campaign instances in tests.
    Defaults to a running 10% SEASONAL campaign open for everyone.
    """

    class Meta:
        model = Campaign
        skip_postgeneration_save = True

    name = factory.Faker("catch_phrase")
    description = factory.Faker("sentence")
    campaign_type = CampaignType.SEASONAL
    status = CampaignStatus.ACTIVE
    start_date = factory.LazyFunction(lambda: timezone.now() - timedelta(days=1))
    end_date = factory.LazyFunction(lambda: timezone.now() + timedelta(days=7))
    discount_type = DiscountType.PERCENTAGE
    discount_value = Decimal("10.00")
    is_active = True

    class Params:
        draft = factory.Trait(status=CampaignStatus.DRAFT)

        scheduled = factory.Trait(
            status=CampaignStatus.SCHEDULED,
            start_date=factory.LazyFunction(lambda: timezone.now() + timedelta(days=1)),
            end_date=factory.LazyFunction(lambda: timezone.now() + timedelta(days=8)),
        )

        ended = factory.Trait(
            start_date=factory.LazyFunction(lambda: timezone.now() - timedelta(days=8)),
            end_date=factory.LazyFunction(lambda: timezone.now() - timedelta(days=1)),
        )

    @factory.post_generation
    def products(self, create, extracted, **kwargs):
        if create and extracted:
            self.products.set(extracted)

    @factory.post_generation
    def categories(self, create, extracted, **kwargs):
        if create and extracted:
            self.categories.set(extracted)
