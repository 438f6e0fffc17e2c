"""
Receipt arithmetic: subtotal -> discount -> tax -> total.
"""

from dataclasses import dataclass
from decimal import Decimal

from django.conf import settings

from core.money import ZERO, to_money


@dataclass(frozen=True)
class Totals:
    subtotal: Decimal
    discount_amount: Decimal
    tax_amount: Decimal
    total_amount: Decimal

    @property
    def taxable_base(self) -> Decimal:
        return self.subtotal - self.discount_amount


class PricingEngine:
    """
    Combines a priced cart, an optional discount verdict and the tax rate.

    Tax is charged on the discounted amount. A discount larger than the
    subtotal is clamped, so the total can never go negative.
    """

    def __init__(self, tax_rate=None):
        self.tax_rate = Decimal(str(settings.SALES_TAX_RATE if tax_rate is None else tax_rate))

    def price(self, cart, verdict=None) -> Totals:
        subtotal = cart.subtotal
        discount_amount = to_money(verdict.amount) if verdict is not None else ZERO
        discount_amount = max(ZERO, min(discount_amount, subtotal))

        taxable_base = subtotal - discount_amount
        tax_amount = to_money(taxable_base * self.tax_rate)

        return Totals(
            subtotal=subtotal,
            discount_amount=discount_amount,
            tax_amount=tax_amount,
            total_amount=taxable_base + tax_amount,
        )
