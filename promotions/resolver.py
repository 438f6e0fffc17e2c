"""
Discount code resolution.

`resolve` is read-only: it validates a code against a cart and returns a
verdict. `redeem` takes the usage slot and must run inside the sale's
transaction so that a sale which fails to commit gives the slot back.
"""

import logging

from django.utils import timezone

from core.exceptions import InvalidRequest, NotEligible, UsageExhausted
from promotions.models import DiscountCode
from promotions.verdicts import DiscountVerdict, compute_discount_amount

logger = logging.getLogger(__name__)


class DiscountResolver:
    """
    Validates discount codes in a fixed order; the first failing check wins:

    1. the code exists and is active
    2. now is inside [starts_at, expires_at]
    3. the usage limit is not reached
    4. the customer restriction matches
    5. a product-restricted code has at least one eligible line in the cart
    6. the cart subtotal reaches min_purchase
    """

    def __init__(self, now=None):
        self._now = now

    @property
    def now(self):
        return self._now or timezone.now()

    def get_code(self, code: str) -> DiscountCode:
        normalized = (code or "").strip().upper()
        if not normalized:
            raise InvalidRequest("Please enter a discount code.", rule="missing_code")
        try:
            return DiscountCode.objects.prefetch_related("products").get(code=normalized)
        except DiscountCode.DoesNotExist:
            raise NotEligible(f'Discount code "{normalized}" not found.', rule="unknown_code") from None

    def resolve(self, code: str, cart, customer=None) -> DiscountVerdict:
        discount = self.get_code(code)
        now = self.now

        if not discount.is_active:
            raise NotEligible("Discount code is inactive.", rule="inactive")

        if discount.starts_at and now < discount.starts_at:
            raise NotEligible("Discount code is not yet valid.", rule="not_started")

        if discount.is_expired(now):
            raise NotEligible("Discount code expired.", rule="expired")

        if discount.is_exhausted:
            raise UsageExhausted("Discount code has reached its usage limit.")

        if discount.customer_id is not None:
            if customer is None or customer.pk != discount.customer_id:
                raise NotEligible("Discount code is not valid for this customer.", rule="customer_mismatch")

        if discount.product_restricted:
            eligible_ids = {product.pk for product in discount.products.all()}
            if not cart.product_ids & eligible_ids:
                raise NotEligible("Discount code is not valid for the selected products.", rule="no_eligible_products")
            eligible_subtotal = cart.eligible_subtotal(product_ids=eligible_ids)
        else:
            eligible_subtotal = cart.subtotal

        if discount.min_purchase is not None and cart.subtotal < discount.min_purchase:
            raise NotEligible(
                f"Minimum purchase of {discount.min_purchase} required for this discount code.",
                rule="min_purchase_not_met",
            )

        amount = compute_discount_amount(
            discount.discount_type,
            discount.discount_value,
            eligible_subtotal,
            max_discount=discount.max_discount,
        )
        return DiscountVerdict(amount=amount, eligible_subtotal=eligible_subtotal, discount_code=discount)

    def redeem(self, verdict: DiscountVerdict) -> None:
        """
        Takes one usage slot of the verdict's code. Call inside transaction.atomic().

        Raises:
            UsageExhausted: another sale took the last slot first.
        """
        discount = verdict.discount_code
        if not DiscountCode.objects.claim_usage(discount.pk):
            logger.warning("Discount code %s exhausted at redemption time", discount.code)
            raise UsageExhausted("Discount code has reached its usage limit.")
        logger.info("Discount code %s redeemed", discount.code)
