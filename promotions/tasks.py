import logging

from celery import shared_task

from promotions.services import CampaignService, DiscountCodeService

logger = logging.getLogger(__name__)


@shared_task
def deactivate_spent_discount_codes():
    """
    Periodic task flagging expired and exhausted discount codes as inactive.
    """
    deactivated = DiscountCodeService().deactivate_spent_codes()
    logger.info("Deactivated %s spent discount codes", deactivated)
    return f"Deactivated {deactivated} discount codes."


@shared_task
def sync_campaign_statuses():
    """
    Periodic task moving campaigns between SCHEDULED, ACTIVE and COMPLETED as their windows open and close.
    """
    result = CampaignService().sync_statuses()
    logger.info("Campaign status sync: %(started)s started, %(completed)s completed", result)
    return result
