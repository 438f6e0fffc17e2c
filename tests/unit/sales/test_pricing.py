"""
Unit tests for receipt arithmetic.
"""

from decimal import Decimal

import pytest

from catalog.cart import build_cart
from promotions.verdicts import DiscountVerdict
from sales.pricing import PricingEngine
from tests.factories.catalog import ProductFactory


def make_cart(*prices):
    return build_cart([(ProductFactory(price=Decimal(price)).pk, 1) for price in prices])


def verdict_of(amount, eligible="0"):
    return DiscountVerdict(amount=Decimal(amount), eligible_subtotal=Decimal(eligible))


class TestPricingEngine:
    def test_tax_after_discount(self):
        """
        50.00 subtotal, 5.00 discount, 8% tax: 3.60 tax and 48.60 total.
        """
        totals = PricingEngine(tax_rate="0.08").price(make_cart("30.00", "20.00"), verdict_of("5.00", "50.00"))

        assert totals.subtotal == Decimal("50.00")
        assert totals.discount_amount == Decimal("5.00")
        assert totals.taxable_base == Decimal("45.00")
        assert totals.tax_amount == Decimal("3.60")
        assert totals.total_amount == Decimal("48.60")

    def test_fully_discounted_cart_costs_nothing(self):
        totals = PricingEngine(tax_rate="0.08").price(make_cart("1.50"), verdict_of("1.50", "1.50"))

        assert totals.discount_amount == Decimal("1.50")
        assert totals.tax_amount == Decimal("0.00")
        assert totals.total_amount == Decimal("0.00")

    def test_oversized_discount_is_clamped(self):
        totals = PricingEngine(tax_rate="0.10").price(make_cart("4.00"), verdict_of("9.99"))

        assert totals.discount_amount == Decimal("4.00")
        assert totals.total_amount == Decimal("0.00")

    def test_no_discount(self):
        totals = PricingEngine(tax_rate="0.08").price(make_cart("3.33", "3.33"))

        assert totals.discount_amount == Decimal("0.00")
        assert totals.tax_amount == Decimal("0.53")  # 0.5328
        assert totals.total_amount == Decimal("7.19")

    def test_tax_rate_defaults_to_settings(self, settings):
        settings.SALES_TAX_RATE = Decimal("0.20")

        totals = PricingEngine().price(make_cart("10.00"))

        assert totals.tax_amount == Decimal("2.00")

    @pytest.mark.parametrize("discount", ["0.00", "0.01", "2.50", "9.99", "10.00", "25.00"])
    def test_totals_identity(self, discount):
        totals = PricingEngine(tax_rate="0.075").price(make_cart("7.49", "2.51"), verdict_of(discount))

        assert totals.discount_amount <= totals.subtotal
        assert totals.total_amount >= 0
        assert totals.total_amount == totals.subtotal - totals.discount_amount + totals.tax_amount
