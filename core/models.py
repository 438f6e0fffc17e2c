"""
Abstract base models shared by the POS apps.
"""

from django.db import models


class TimeStampedModel(models.Model):
    """
    Abstract base class adding creation and modification timestamps.
    """

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        abstract = True
