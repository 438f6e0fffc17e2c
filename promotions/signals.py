"""
Signals for the Promotions application.
Handles cache invalidation when campaigns or their bindings change.
"""

from django.db.models.signals import m2m_changed, post_delete, post_save
from django.dispatch import receiver

from promotions.matcher import invalidate_running_campaigns
from promotions.models import Campaign


@receiver([post_save, post_delete], sender=Campaign)
def clear_running_campaigns_cache(sender, instance, **kwargs):
    """
    Clears the running campaigns cache whenever a campaign is saved or deleted.
    """
    invalidate_running_campaigns()


@receiver(m2m_changed, sender=Campaign.products.through)
@receiver(m2m_changed, sender=Campaign.categories.through)
def clear_running_campaigns_cache_on_binding(sender, instance, action, **kwargs):
    if action in ("post_add", "post_remove", "post_clear"):
        invalidate_running_campaigns()
