from __future__ import annotations

import logging
from datetime import timedelta

from celery import shared_task
from django.conf import settings
from django.utils import timezone

from bookings.domain import PAYABLE_PAYMENT_STATUSES
from bookings.models import Booking
from core.exceptions import PaymentFlowError
from payments.providers import get_provider
from payments.reconciliation import reconcile_payment

logger = logging.getLogger(__name__)

RECONCILE_LOOKBACK = timedelta(days=7)


@shared_task(name="payments.reconcile_stale_checkouts")
def reconcile_stale_checkouts():
    """
    Re-check approved bookings whose checkout never produced a webhook.

    Covers lost notifications; reconciliation is idempotent so overlapping runs
    and late webhooks are harmless.
    """
    now = timezone.now()
    threshold = timedelta(minutes=getattr(settings, "CHECKOUT_RECONCILE_AFTER_MINUTES", 60))
    bookings = list(
        Booking.objects.filter(
            status=Booking.Status.APPROVED,
            payment_status__in=PAYABLE_PAYMENT_STATUSES,
            updated_at__lte=now - threshold,
            updated_at__gte=now - RECONCILE_LOOKBACK,
        )
        .exclude(payment_provider="")
        .select_related("vehicle", "renter", "owner")
    )

    reconciled = 0
    for booking in bookings:
        try:
            provider = get_provider(booking.payment_provider)
            payment_id = provider.find_payment_for_booking(booking)
            if not payment_id:
                continue
            result = reconcile_payment(provider, payment_id)
            reconciled += 1
            logger.info(
                "reconcile_stale_checkouts: booking %s -> %s",
                booking.pk,
                result.outcome,
            )
        except PaymentFlowError as exc:
            logger.warning(
                "reconcile_stale_checkouts failed for booking %s: %s",
                booking.pk,
                exc.message,
                exc_info=True,
            )
    return {"reconciled": reconciled, "checked": len(bookings)}
