import logging

from celery import shared_task
from django.conf import settings
from django.utils import timezone

from core.exceptions import PointOfSaleError
from loyalty.models import Customer
from loyalty.services import LoyaltyService

logger = logging.getLogger(__name__)


@shared_task
def process_yearly_points_expiration():
    """
    Periodic task to run the N+retention expiration strategy.
    Should be scheduled to run once a year (e.g., Jan 1st).
    """
    # With a retention of 2 years, running in 2026 expires what is left of 2024 and earlier.
    today = timezone.now()
    target_year = today.year - settings.LOYALTY_POINTS_RETENTION_YEARS

    logger.info("Starting points expiration task for target year: %s", target_year)

    batch_size = 1000
    service = LoyaltyService()

    processed_count = 0
    expired_points_total = 0

    # Customers without a balance have nothing to expire.
    customers = Customer.objects.filter(loyalty_points__gt=0).iterator(chunk_size=batch_size)

    for customer in customers:
        try:
            expired = service.process_yearly_expiration(customer, target_year)
        except PointOfSaleError as e:
            logger.error("Error processing customer %s: %s", customer.pk, e)
            continue
        if expired > 0:
            expired_points_total += expired
            logger.info("Expired %s points for customer %s", expired, customer.pk)
        processed_count += 1

    return f"Finished. Processed {processed_count} customers. Total expired: {expired_points_total}"
