"""
Unit tests for the error taxonomy and its DRF rendering.
"""

from django.http import Http404
from rest_framework import status

from core.exceptions import (
    ConcurrencyConflict,
    InsufficientPoints,
    NotEligible,
    PersistenceFailure,
    UsageExhausted,
    pos_exception_handler,
)


class TestErrorTaxonomy:
    def test_not_eligible_carries_rule(self):
        error = NotEligible("Discount code expired.", rule="expired")

        assert error.as_dict() == {
            "detail": "Discount code expired.",
            "code": "not_eligible",
            "rule": "expired",
            "retryable": False,
        }

    def test_usage_exhausted_is_a_not_eligible(self):
        error = UsageExhausted()

        assert isinstance(error, NotEligible)
        assert error.rule == "usage_exhausted"
        assert error.status_code == status.HTTP_409_CONFLICT

    def test_insufficient_points_keeps_amounts(self):
        error = InsufficientPoints("Not enough", balance=100, requested=150)

        assert error.balance == 100
        assert error.requested == 150
        assert error.rule == "insufficient_points"

    def test_only_store_failures_are_retryable(self):
        assert ConcurrencyConflict().retryable
        assert PersistenceFailure().retryable
        assert not NotEligible().retryable
        assert not InsufficientPoints().retryable


class TestExceptionHandler:
    def test_renders_pos_errors(self):
        response = pos_exception_handler(NotEligible("Inactive", rule="inactive"), {"view": None})

        assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY
        assert response.data["rule"] == "inactive"

    def test_retryable_error_status(self):
        response = pos_exception_handler(PersistenceFailure(), {"view": None})

        assert response.status_code == status.HTTP_503_SERVICE_UNAVAILABLE
        assert response.data["retryable"] is True

    def test_other_errors_fall_through_to_drf(self):
        response = pos_exception_handler(Http404(), {"view": None})

        assert response.status_code == status.HTTP_404_NOT_FOUND
