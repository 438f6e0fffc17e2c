"""
Service layer for Loyalty business logic.
Handles point calculations, tier computation, and ledger postings.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal

from django.conf import settings
from django.db import transaction
from django.db.models import Sum
from django.utils import timezone as django_timezone

from core.exceptions import InsufficientPoints, InvalidRequest
from core.money import ZERO, floor_points, to_money
from loyalty.models import Customer, LoyaltyTier, LoyaltyTransaction
from sales.models import SaleStatus

logger = logging.getLogger(__name__)

REVERSED_SALE_STATUSES = (SaleStatus.REFUNDED, SaleStatus.CANCELLED)


@dataclass(frozen=True)
class LoyaltyOutcome:
    """
    Result of settling one sale against a customer's ledger.
    """

    points_earned: int
    points_redeemed: int
    balance: int
    tier: str
    previous_tier: str
    transactions: tuple

    @property
    def tier_changed(self) -> bool:
        return self.tier != self.previous_tier


def calculate_points(amount) -> int:
    """
    Points earned for a sale total: floor(amount * LOYALTY_EARN_RATE).
    """
    amount = to_money(amount)
    if amount <= 0:
        return 0
    return floor_points(amount * Decimal(settings.LOYALTY_EARN_RATE))


def get_tier_thresholds():
    """
    Tier thresholds from settings, highest tier first.
    """
    thresholds = settings.LOYALTY_TIER_THRESHOLDS
    tiers = [tier for tier in reversed(LoyaltyTier.ordered()) if tier.value in thresholds]
    return [(tier, thresholds[tier.value]) for tier in tiers]


def compute_tier(total_spent, visit_count) -> str:
    """
    Highest tier whose spend OR visit threshold the customer reaches. BRONZE otherwise.
    """
    total_spent = to_money(total_spent)
    for tier, rule in get_tier_thresholds():
        min_spent = rule.get("total_spent")
        min_visits = rule.get("visit_count")
        if min_spent is not None and total_spent >= Decimal(min_spent):
            return tier.value
        if min_visits is not None and visit_count >= min_visits:
            return tier.value
    return LoyaltyTier.BRONZE.value


def next_tier_progress(customer):
    """
    The next tier above the customer's current one and the spend still needed to reach it.
    Returns None at the top tier.
    """
    current_rank = LoyaltyTier.rank(customer.loyalty_tier)
    for tier, rule in reversed(get_tier_thresholds()):
        if LoyaltyTier.rank(tier) <= current_rank:
            continue
        min_spent = rule.get("total_spent")
        remaining = None
        if min_spent is not None:
            remaining = max(ZERO, to_money(Decimal(min_spent) - customer.total_spent))
        return {"tier": tier.value, "remaining_spend": remaining, "visit_count": rule.get("visit_count")}
    return None


class LoyaltyService:
    """
    Encapsulates the rules for earning, redeeming and correcting points.

    Every posting locks the customer row first, so concurrent postings for one
    customer serialise and the cached balance always equals the ledger sum.
    """

    def _lock(self, customer) -> Customer:
        return Customer.objects.select_for_update().get(pk=customer.pk)

    def _post(self, customer, points: int, transaction_type: str, description: str = "", sale=None):
        """
        Appends one ledger row and moves the cached balance. `customer` must be locked.
        """
        if points == 0:
            raise InvalidRequest("A loyalty transaction must move at least one point.", rule="zero_points")

        if customer.loyalty_points + points < 0:
            raise InsufficientPoints(
                f"Insufficient loyalty points. Balance: {customer.loyalty_points}, Required: {abs(points)}",
                balance=customer.loyalty_points,
                requested=abs(points),
            )

        entry = LoyaltyTransaction.objects.create(
            customer=customer,
            points=points,
            transaction_type=transaction_type,
            sale=sale,
            description=description,
        )
        customer.loyalty_points += points
        return entry

    @transaction.atomic
    def process_transaction(self, customer, points: int, transaction_type: str, description: str = "", sale=None):
        """
        Safely posts a single point movement.

        Args:
            customer: The Customer instance.
            points: Integer (positive to credit, negative to debit).
            transaction_type: One of LoyaltyTransaction.TRANSACTION_TYPES.
            description: Reason for the transaction.
            sale: Optional linked Sale.

        Returns:
            The created LoyaltyTransaction object.
        """
        locked = self._lock(customer)
        entry = self._post(locked, points, transaction_type, description, sale=sale)
        locked.save(update_fields=["loyalty_points", "updated_at"])
        self._refresh(customer, locked)
        return entry

    @transaction.atomic
    def settle(self, customer, sale) -> LoyaltyOutcome:
        """
        Posts the REDEEMED and EARNED rows of a completed sale, updates the
        customer's spend and visit counters and recomputes the tier.

        Redemption is posted before earning, so points earned on a sale can
        never pay for that same sale. The tier never goes down here.
        """
        locked = self._lock(customer)
        previous_tier = locked.loyalty_tier
        entries = []

        points_used = sale.loyalty_points_used or 0
        if points_used < 0:
            raise InvalidRequest("Loyalty points used cannot be negative.", rule="negative_points")
        if points_used > locked.loyalty_points:
            raise InsufficientPoints(
                f"Insufficient loyalty points. Balance: {locked.loyalty_points}, Required: {points_used}",
                balance=locked.loyalty_points,
                requested=points_used,
            )
        if points_used:
            entries.append(
                self._post(
                    locked, -points_used, LoyaltyTransaction.REDEEMED, f"Redeemed on sale {sale.receipt_number}", sale
                )
            )

        points_earned = calculate_points(sale.total_amount)
        if points_earned:
            entries.append(
                self._post(
                    locked, points_earned, LoyaltyTransaction.EARNED, f"Earned on sale {sale.receipt_number}", sale
                )
            )

        locked.total_spent = to_money(locked.total_spent + sale.total_amount)
        locked.visit_count += 1
        locked.last_visit = django_timezone.now()

        computed = compute_tier(locked.total_spent, locked.visit_count)
        if LoyaltyTier.rank(computed) > LoyaltyTier.rank(locked.loyalty_tier):
            locked.loyalty_tier = computed

        locked.save(
            update_fields=[
                "loyalty_points",
                "loyalty_tier",
                "total_spent",
                "visit_count",
                "last_visit",
                "updated_at",
            ]
        )
        self._refresh(customer, locked)

        if locked.loyalty_tier != previous_tier:
            logger.info("Customer %s promoted from %s to %s", locked.pk, previous_tier, locked.loyalty_tier)

        return LoyaltyOutcome(
            points_earned=points_earned,
            points_redeemed=points_used,
            balance=locked.loyalty_points,
            tier=locked.loyalty_tier,
            previous_tier=previous_tier,
            transactions=tuple(entries),
        )

    @transaction.atomic
    def reverse_sale(self, sale, revert_visit: bool = True, reason: str = ""):
        """
        Posts compensating ADJUSTED rows for every point movement of a sale.

        Redeemed points are credited back first, then earned points are debited.
        If the customer already spent part of the earned points elsewhere, the
        debit is capped at the available balance so the balance stays
        non-negative; the shortfall is written into the row's description.

        Returns:
            The list of ADJUSTED rows created. Empty for walk-in sales or sales
            already reversed.
        """
        if sale.customer_id is None:
            return []

        locked = Customer.objects.select_for_update().get(pk=sale.customer_id)
        postings = LoyaltyTransaction.objects.filter(sale=sale)

        if postings.filter(transaction_type=LoyaltyTransaction.ADJUSTED).exists():
            logger.info("Sale %s already reversed; skipping", sale.pk)
            return []

        earned = self._sum_points(postings.filter(transaction_type=LoyaltyTransaction.EARNED))
        redeemed = -self._sum_points(postings.filter(transaction_type=LoyaltyTransaction.REDEEMED))
        suffix = f": {reason}" if reason else ""
        entries = []

        if redeemed:
            entries.append(
                self._post(
                    locked,
                    redeemed,
                    LoyaltyTransaction.ADJUSTED,
                    f"Reversal of points redeemed on sale {sale.receipt_number}{suffix}",
                    sale,
                )
            )

        if earned:
            debit = min(earned, locked.loyalty_points)
            description = f"Reversal of points earned on sale {sale.receipt_number}{suffix}"
            if debit < earned:
                description += f" (capped: {earned - debit} points already spent)"
                logger.warning("Reversal of sale %s capped at %s of %s points", sale.pk, debit, earned)
            if debit:
                entries.append(self._post(locked, -debit, LoyaltyTransaction.ADJUSTED, description, sale))

        if revert_visit:
            locked.total_spent = max(ZERO, to_money(locked.total_spent - sale.total_amount))
            locked.visit_count = max(0, locked.visit_count - 1)
            locked.loyalty_tier = compute_tier(locked.total_spent, locked.visit_count)

        locked.save(update_fields=["loyalty_points", "loyalty_tier", "total_spent", "visit_count", "updated_at"])
        if sale.customer is not None:
            self._refresh(sale.customer, locked)

        logger.info("Reversed %s loyalty postings of sale %s", len(entries), sale.pk)
        return entries

    @transaction.atomic
    def adjust(self, customer, points: int, description: str):
        """
        Administrative correction. May lower the tier: the tier is recomputed
        from the threshold table without the monotonic guard.
        """
        if not description:
            raise InvalidRequest("Adjustments need a description.", rule="missing_description")

        locked = self._lock(customer)
        entry = self._post(locked, points, LoyaltyTransaction.ADJUSTED, description)
        locked.loyalty_tier = compute_tier(locked.total_spent, locked.visit_count)
        locked.save(update_fields=["loyalty_points", "loyalty_tier", "updated_at"])
        self._refresh(customer, locked)
        return entry

    def award_bonus(self, customer, points: int, reason: str, transaction_type: str = LoyaltyTransaction.BONUS):
        """
        Credits bonus points (BONUS, SIGNUP_BONUS or REFERRAL_BONUS).
        """
        if transaction_type not in LoyaltyTransaction.BONUS_TYPES:
            raise InvalidRequest(f"{transaction_type} is not a bonus type.", rule="invalid_bonus_type")
        if points <= 0:
            raise InvalidRequest("Bonus points must be positive.", rule="non_positive_bonus")

        logger.info("Awarding %s %s points to customer %s: %s", points, transaction_type, customer.pk, reason)
        return self.process_transaction(customer, points, transaction_type, reason)

    def enroll(self, customer):
        """
        Credits the sign-up bonus once per customer. Returns None when disabled or already credited.
        """
        bonus = settings.LOYALTY_SIGNUP_BONUS
        if bonus <= 0:
            return None
        if customer.loyalty_transactions.filter(transaction_type=LoyaltyTransaction.SIGNUP_BONUS).exists():
            return None
        return self.award_bonus(customer, bonus, "Welcome to the loyalty programme", LoyaltyTransaction.SIGNUP_BONUS)

    def process_yearly_expiration(self, customer, target_year: int) -> int:
        """
        Expires points credited in or before `target_year` that have not been used (FIFO).

        Logic:
        Customers always spend their oldest points first, so the unused part of
        old credits is (credits up to the cutoff) - (all debits ever posted).
        Postings of refunded or cancelled sales cancel each other out and are
        left out on both sides.

        Args:
            customer: The customer to check.
            target_year: The year to audit (e.g., 2023).

        Returns:
            int: The amount of points expired (positive integer).
        """

        # Define the cutoff date: The very last second of the target year.
        cutoff_date = datetime(target_year, 12, 31, 23, 59, 59, 999999, tzinfo=timezone.utc)
        ledger = LoyaltyTransaction.objects.filter(customer=customer).exclude(sale__status__in=REVERSED_SALE_STATUSES)

        # 1. Credits posted up to the end of the target year.
        credited = self._sum_points(ledger.filter(points__gt=0, created_at__lte=cutoff_date))

        # 2. Every debit ever posted (redemptions, expirations, negative adjustments).
        debited = abs(self._sum_points(ledger.filter(points__lt=0)))

        # 3. Calculate Remainder
        # Example: Earned 1000 in 2023. Spent 200 in 2024.
        # Points to expire = 1000 - 200 = 800.
        points_to_expire = min(credited - debited, customer.get_balance())

        if points_to_expire > 0:
            self.process_transaction(
                customer=customer,
                points=-points_to_expire,
                transaction_type=LoyaltyTransaction.EXPIRED,
                description=f"Expiration of points earned in {target_year}",
            )
            return points_to_expire

        return 0

    @staticmethod
    def _sum_points(queryset) -> int:
        return queryset.aggregate(total=Sum("points"))["total"] or 0

    @staticmethod
    def _refresh(customer, locked):
        """
        Copies the loyalty fields of the locked row back onto the caller's instance.
        """
        for field in ("loyalty_points", "loyalty_tier", "total_spent", "visit_count", "last_visit"):
            setattr(customer, field, getattr(locked, field))
