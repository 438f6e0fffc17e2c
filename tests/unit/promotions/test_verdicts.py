"""
Unit tests for the discount amount arithmetic.
"""

from decimal import Decimal

import pytest

from promotions.models import DiscountType
from promotions.verdicts import compute_discount_amount


class TestComputeDiscountAmount:
    @pytest.mark.parametrize(
        "discount_type, value, eligible, max_discount, expected",
        [
            (DiscountType.PERCENTAGE, "10", "50.00", None, "5.00"),
            (DiscountType.PERCENTAGE, "15", "3.30", None, "0.50"),  # 0.495 rounds half-up
            (DiscountType.PERCENTAGE, "100", "12.40", None, "12.40"),
            (DiscountType.PERCENTAGE, "50", "40.00", "5.00", "5.00"),
            (DiscountType.FIXED, "2.00", "1.50", None, "1.50"),
            (DiscountType.FIXED, "2.00", "9.00", None, "2.00"),
            (DiscountType.FIXED, "5.00", "9.00", "3.00", "3.00"),
            (DiscountType.FIXED, "5.00", "0.00", None, "0.00"),
        ],
    )
    def test_amounts(self, discount_type, value, eligible, max_discount, expected):
        amount = compute_discount_amount(
            discount_type,
            Decimal(value),
            Decimal(eligible),
            max_discount=Decimal(max_discount) if max_discount else None,
        )

        assert amount == Decimal(expected)

    def test_never_exceeds_eligible_subtotal(self):
        for eligible in ("0.01", "0.99", "7.77", "1000.00"):
            amount = compute_discount_amount(DiscountType.FIXED, Decimal("999999"), Decimal(eligible))
            assert Decimal("0") <= amount <= Decimal(eligible)
