"""
Factories for the catalog reference
"""

from decimal import Decimal

import factory
from factory.django import DjangoModelFactory

from catalog.models import Category, Product


class CategoryFactory(DjangoModelFactory):
    class Meta:
        model = Category

    name = factory.Sequence(lambda n: f"Category {n}")
    description = factory.Faker("sentence")


class ProductFactory(DjangoModelFactory):
    """
    Factory for creating Product instances in tests.
    Prices are fixed by default so totals stay predictable; pass price= to change them.
    """

    class Meta:
        model = Product

    name = factory.Faker("word")
    price = Decimal("10.00")
    cost = Decimal("3.00")
    stock = 50
    category = factory.SubFactory(CategoryFactory)
    is_available = True

    class Params:
        unavailable = factory.Trait(is_available=False, stock=0)
