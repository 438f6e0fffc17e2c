"""
Custom querysets shared by the promotion models.
"""

from django.db import models
from django.db.models import F, Q


class UsageLimitedQuerySet(models.QuerySet):
    """
    QuerySet for models carrying `usage_count` and an optional `usage_limit`.

    The counter is only ever moved through a single conditional UPDATE, so the
    limit check and the increment happen in one statement on the database side.
    Reading the row and saving it back would let two concurrent redemptions
    both see the last free slot.
    """

    def with_remaining_usage(self):
        """
        Rows whose limit is unset or not yet reached.
        """
        return self.filter(Q(usage_limit__isnull=True) | Q(usage_count__lt=F("usage_limit")))

    def exhausted(self):
        return self.filter(usage_limit__isnull=False, usage_count__gte=F("usage_limit"))

    def claim_usage(self, pk) -> bool:
        """
        Increments usage_count by one only if the row still has a free slot.

        Returns:
            True if the slot was taken, False if the limit was already reached.
        """
        updated = self.filter(pk=pk).with_remaining_usage().update(usage_count=F("usage_count") + 1)
        return updated == 1

    def release_usage(self, pk) -> bool:
        """
        Gives one slot back. Never drops the counter below zero.
        """
        updated = self.filter(pk=pk, usage_count__gt=0).update(usage_count=F("usage_count") - 1)
        return updated == 1
