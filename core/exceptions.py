"""
Typed failures raised by the pricing, promotion and loyalty core.

Every error knows its machine code, its HTTP status and whether the whole
sale attempt may be retried unchanged.
"""

import logging

from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import exception_handler

logger = logging.getLogger(__name__)


class PointOfSaleError(Exception):
    """
    Base class for every failure the core reports to its callers.
    """

    code = "pos_error"
    status_code = status.HTTP_400_BAD_REQUEST
    retryable = False
    default_message = "The sale could not be processed."

    def __init__(self, message: str = None, *, rule: str = None):
        self.message = message or self.default_message
        self.rule = rule
        super().__init__(self.message)

    def as_dict(self) -> dict:
        return {
            "detail": self.message,
            "code": self.code,
            "rule": self.rule,
            "retryable": self.retryable,
        }


class InvalidRequest(PointOfSaleError):
    """Malformed input, rejected before any side effect."""

    code = "invalid_request"
    default_message = "The request is invalid."


class InvalidTransition(InvalidRequest):
    """A sale was asked to move to a status its lifecycle does not allow."""

    code = "invalid_transition"
    status_code = status.HTTP_409_CONFLICT


class NotEligible(PointOfSaleError):
    """
    A discount code or campaign exists but fails an eligibility rule.
    `rule` names the failing check.
    """

    code = "not_eligible"
    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY
    default_message = "The discount is not applicable to this sale."


class UsageExhausted(NotEligible):
    """The usage limit of a code or campaign has been reached."""

    code = "usage_exhausted"
    status_code = status.HTTP_409_CONFLICT
    default_message = "This discount has reached its usage limit."

    def __init__(self, message: str = None, *, rule: str = "usage_exhausted"):
        super().__init__(message, rule=rule)


class InsufficientPoints(PointOfSaleError):
    code = "insufficient_points"
    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY
    default_message = "Insufficient loyalty points."

    def __init__(self, message: str = None, *, balance: int = None, requested: int = None):
        super().__init__(message, rule="insufficient_points")
        self.balance = balance
        self.requested = requested


class InsufficientPayment(PointOfSaleError):
    code = "insufficient_payment"
    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY
    default_message = "Cash received is less than the total amount."

    def __init__(self, message: str = None):
        super().__init__(message, rule="insufficient_payment")


class ConcurrencyConflict(PointOfSaleError):
    """A guarded update lost a race. Retrying the whole sale is safe."""

    code = "concurrency_conflict"
    status_code = status.HTTP_409_CONFLICT
    retryable = True
    default_message = "Another sale updated the same records. Please retry."


class PersistenceFailure(PointOfSaleError):
    """The store failed during commit. Nothing was written; retrying is safe."""

    code = "persistence_failure"
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    retryable = True
    default_message = "The sale could not be saved. Please retry."


def pos_exception_handler(exc, context):
    """
    DRF exception handler that renders PointOfSaleError subclasses with their rule.
    Everything else falls through to the default DRF handler.
    """
    if isinstance(exc, PointOfSaleError):
        if exc.retryable:
            logger.warning("Retryable failure in %s: %s", context.get("view").__class__.__name__, exc.message)
        return Response(exc.as_dict(), status=exc.status_code)

    return exception_handler(exc, context)
