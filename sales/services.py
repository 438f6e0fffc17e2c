"""
Sale orchestration: the transactional boundary around pricing, promotions and loyalty.
"""

import logging
from contextlib import contextmanager
from dataclasses import dataclass
from decimal import Decimal
from typing import Optional

from django.db import DatabaseError, OperationalError, transaction
from django.utils import timezone

from catalog.cart import build_cart
from core.exceptions import (
    ConcurrencyConflict,
    InsufficientPayment,
    InsufficientPoints,
    InvalidRequest,
    PersistenceFailure,
    PointOfSaleError,
)
from core.money import to_money
from loyalty.models import Customer
from loyalty.services import LoyaltyService
from promotions.matcher import CampaignMatcher
from promotions.resolver import DiscountResolver
from sales.models import PaymentMethod, Sale, SaleItem, SaleStatus
from sales.pricing import PricingEngine

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SaleRequest:
    """
    What the operator terminal sends at checkout.
    `items` is a sequence of (product_id, quantity) pairs.
    """

    items: tuple
    payment_method: str
    customer_id: Optional[int] = None
    discount_code: Optional[str] = None
    cash_received: Optional[Decimal] = None
    loyalty_points_used: int = 0
    notes: str = ""


@dataclass(frozen=True)
class Quote:
    """
    Everything decided before the commit. Holds no database locks.
    """

    cart: object
    totals: object
    customer: Optional[Customer] = None
    verdict: Optional[object] = None
    change_given: Optional[Decimal] = None


@contextmanager
def commit_guard(action: str):
    """
    Translates store errors raised inside an atomic block into the POS taxonomy.
    The atomic block has already rolled back when the exception reaches here.
    """
    try:
        yield
    except PointOfSaleError as exc:
        logger.info("%s rejected: %s (%s)", action, exc.message, exc.rule or exc.code)
        raise
    except OperationalError as exc:
        logger.warning("%s lost a race: %s", action, exc)
        raise ConcurrencyConflict() from exc
    except DatabaseError as exc:
        logger.error("%s failed in the store: %s", action, exc, exc_info=True)
        raise PersistenceFailure() from exc


class SaleService:
    """
    Runs a checkout in order: discount verdict, pricing, tender check, then a
    single atomic commit of the sale, its items, usage counters and loyalty
    postings. Any failure leaves nothing behind.
    """

    def __init__(self, resolver=None, matcher=None, pricing=None, loyalty=None):
        self.resolver = resolver or DiscountResolver()
        self.matcher = matcher or CampaignMatcher()
        self.pricing = pricing or PricingEngine()
        self.loyalty = loyalty or LoyaltyService()

    def quote(self, request: SaleRequest) -> Quote:
        """
        Validates the request and prices it without writing anything.
        """
        self._validate(request)
        customer = self._get_customer(request.customer_id)
        cart = build_cart(request.items)

        # A code always wins; campaigns are only matched when no code is given.
        if request.discount_code:
            verdict = self.resolver.resolve(request.discount_code, cart, customer=customer)
        else:
            verdict = self.matcher.best(cart, customer=customer)

        totals = self.pricing.price(cart, verdict)
        change_given = self._tender(request, totals)

        if customer is not None and request.loyalty_points_used > customer.loyalty_points:
            raise InsufficientPoints(
                f"Insufficient loyalty points. Balance: {customer.loyalty_points}, "
                f"Required: {request.loyalty_points_used}",
                balance=customer.loyalty_points,
                requested=request.loyalty_points_used,
            )

        return Quote(cart=cart, totals=totals, customer=customer, verdict=verdict, change_given=change_given)

    def checkout(self, request: SaleRequest) -> Sale:
        try:
            quote = self.quote(request)
        except PointOfSaleError as exc:
            logger.info("Sale cancelled before commit: %s (%s)", exc.message, exc.rule or exc.code)
            raise

        with commit_guard("Checkout"):
            with transaction.atomic():
                sale = self._commit(request, quote)

        logger.info(
            "Sale %s completed: subtotal=%s discount=%s tax=%s total=%s",
            sale.receipt_number,
            sale.subtotal,
            sale.discount_amount,
            sale.tax_amount,
            sale.total_amount,
        )
        return sale

    def refund(self, sale: Sale, reason: str = "") -> Sale:
        """
        COMPLETED -> REFUNDED. Posts compensating loyalty entries.
        Usage counters are not given back; that is an explicit admin action.
        """
        with commit_guard("Refund"):
            with transaction.atomic():
                locked = Sale.objects.select_for_update().get(pk=sale.pk)
                locked.transition_to(SaleStatus.REFUNDED)
                self.loyalty.reverse_sale(locked, revert_visit=True, reason=reason or "refund")
                locked.save(update_fields=["status", "updated_at"])

        logger.info("Sale %s refunded", locked.receipt_number)
        return locked

    def cancel(self, sale: Sale, reason: str = "") -> Sale:
        """
        PENDING -> CANCELLED.
        """
        with commit_guard("Cancel"):
            with transaction.atomic():
                locked = Sale.objects.select_for_update().get(pk=sale.pk)
                locked.transition_to(SaleStatus.CANCELLED)
                self.loyalty.reverse_sale(locked, revert_visit=False, reason=reason or "cancellation")
                locked.save(update_fields=["status", "updated_at"])

        logger.info("Sale %s cancelled", locked.pk)
        return locked

    def _commit(self, request: SaleRequest, quote: Quote) -> Sale:
        totals = quote.totals
        verdict = quote.verdict

        sale = Sale.objects.create(
            customer=quote.customer,
            subtotal=totals.subtotal,
            discount_amount=totals.discount_amount,
            tax_amount=totals.tax_amount,
            total_amount=totals.total_amount,
            payment_method=request.payment_method,
            status=SaleStatus.PENDING,
            cash_received=to_money(request.cash_received) if request.payment_method == PaymentMethod.CASH else None,
            change_given=quote.change_given,
            loyalty_points_used=request.loyalty_points_used,
            discount_code=verdict.discount_code if verdict is not None else None,
            campaign=verdict.campaign if verdict is not None else None,
            notes=request.notes,
        )
        sale.receipt_number = f"RCP-{timezone.localdate():%Y%m%d}-{sale.pk:06d}"

        SaleItem.objects.bulk_create(
            [
                SaleItem(
                    sale=sale,
                    product_id=line.product_id,
                    quantity=line.quantity,
                    unit_price=line.unit_price,
                    total_amount=line.total,
                )
                for line in quote.cart.lines
            ]
        )

        if verdict is not None and verdict.discount_code is not None:
            self.resolver.redeem(verdict)
        elif verdict is not None:
            self.matcher.redeem(verdict, customer=quote.customer)

        if quote.customer is not None:
            outcome = self.loyalty.settle(quote.customer, sale)
            sale.loyalty_points_earned = outcome.points_earned

        sale.transition_to(SaleStatus.COMPLETED)
        sale.save(update_fields=["receipt_number", "loyalty_points_earned", "status", "updated_at"])
        return sale

    def _validate(self, request: SaleRequest):
        if request.payment_method not in PaymentMethod.values:
            raise InvalidRequest(f"Unknown payment method {request.payment_method!r}.", rule="invalid_payment_method")
        if not request.items:
            raise InvalidRequest("A sale needs at least one item.", rule="empty_cart")
        if request.loyalty_points_used < 0:
            raise InvalidRequest("Loyalty points used cannot be negative.", rule="negative_points")
        if request.loyalty_points_used and request.customer_id is None:
            raise InvalidRequest(
                "Loyalty points can only be redeemed by a known customer.", rule="points_without_customer"
            )
        if request.payment_method == PaymentMethod.CASH and request.cash_received is None:
            raise InvalidRequest("Cash received is required for cash payments.", rule="missing_cash_received")

    def _get_customer(self, customer_id):
        if customer_id is None:
            return None
        try:
            return Customer.objects.get(pk=customer_id)
        except Customer.DoesNotExist:
            raise InvalidRequest(f"Customer with ID {customer_id} not found.", rule="unknown_customer") from None

    def _tender(self, request: SaleRequest, totals):
        """
        Change for cash payments. Raises InsufficientPayment when the tender is short.
        """
        if request.payment_method != PaymentMethod.CASH:
            return None

        cash_received = to_money(request.cash_received)
        if cash_received < totals.total_amount:
            raise InsufficientPayment(
                f"Cash received {cash_received} is less than the total amount {totals.total_amount}."
            )
        return cash_received - totals.total_amount
