"""
Discount verdicts and the amount arithmetic shared by codes and campaigns.
"""

from dataclasses import dataclass
from decimal import Decimal
from typing import Optional

from core.money import ZERO, to_money
from promotions.models import Campaign, DiscountCode, DiscountType


def compute_discount_amount(discount_type, value, eligible_subtotal, max_discount=None) -> Decimal:
    """
    PERCENTAGE: eligible_subtotal * value / 100, rounded half-up, capped at max_discount.
    FIXED: value, never more than the eligible subtotal.

    The result never exceeds eligible_subtotal and is never negative.
    """
    eligible_subtotal = to_money(eligible_subtotal)
    if eligible_subtotal <= ZERO:
        return ZERO

    if discount_type == DiscountType.PERCENTAGE:
        amount = to_money(eligible_subtotal * Decimal(value) / Decimal(100))
    else:
        amount = to_money(value)

    if max_discount is not None:
        amount = min(amount, to_money(max_discount))

    return max(ZERO, min(amount, eligible_subtotal))


@dataclass(frozen=True)
class DiscountVerdict:
    """
    An approved discount for one cart. Exactly one of `discount_code` or `campaign` is set.
    """

    amount: Decimal
    eligible_subtotal: Decimal
    discount_code: Optional[DiscountCode] = None
    campaign: Optional[Campaign] = None

    @property
    def source(self) -> str:
        return "discount_code" if self.discount_code is not None else "campaign"

    @property
    def label(self) -> str:
        if self.discount_code is not None:
            return self.discount_code.code
        return self.campaign.name
