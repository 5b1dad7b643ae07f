"""Domain helpers for booking payment state transitions."""

from __future__ import annotations

import logging
from datetime import date
from typing import Any, Iterable

from django.db import transaction
from django.utils import timezone

from .models import Booking

logger = logging.getLogger(__name__)

# payment_status values a confirmed payment may move from. A failed attempt can
# be followed by a successful retry on the same checkout.
PAYABLE_PAYMENT_STATUSES = (
    Booking.PaymentStatus.UNPAID,
    Booking.PaymentStatus.FAILED,
)

# Booking statuses a confirmed payment may advance to paid. Rejected and
# cancelled bookings are terminal and keep their status.
PAYABLE_BOOKING_STATUSES = (
    Booking.Status.PENDING,
    Booking.Status.APPROVED,
)


def days_until_start(today: date, booking: Booking) -> int:
    """Return whole calendar days from today until the booking starts."""
    if not booking.start_date:
        return 0
    return (booking.start_date - today).days


def transition_payment_status(
    booking: Booking,
    *,
    from_statuses: Iterable[str],
    to_status: str,
    metadata_updates: dict[str, Any] | None = None,
    advance_status: tuple[Iterable[str], str] | None = None,
    **fields: Any,
) -> bool:
    """
    Move ``booking.payment_status`` to ``to_status`` only if it is currently one of
    ``from_statuses``.

    The row is locked and re-read inside a transaction so concurrent webhook
    deliveries or a webhook racing a refund cannot both win. When
    ``advance_status`` is ``(from_booking_statuses, to_booking_status)`` the booking
    status moves too, but only if it is currently one of ``from_booking_statuses``.
    Returns True when this call performed the payment transition; the in-memory
    booking is refreshed either way.
    """
    allowed = list(from_statuses)
    with transaction.atomic():
        locked = (
            Booking.objects.select_for_update()
            .filter(pk=booking.pk, payment_status__in=allowed)
            .first()
        )
        if locked is None:
            booking.refresh_from_db()
            return False

        update_fields = ["payment_status", "updated_at"]
        locked.payment_status = to_status
        if advance_status is not None:
            status_from, status_to = advance_status
            if locked.status in list(status_from):
                locked.status = status_to
                update_fields.append("status")
        for name, value in fields.items():
            setattr(locked, name, value)
            update_fields.append(name)
        if metadata_updates:
            locked.metadata = {**(locked.metadata or {}), **metadata_updates}
            update_fields.append("metadata")
        locked.updated_at = timezone.now()
        locked.save(update_fields=update_fields)

    booking.refresh_from_db()
    return True


def merge_booking_metadata(booking: Booking, updates: dict[str, Any], **fields: Any) -> None:
    """Merge keys into booking.metadata without clobbering concurrent writers."""
    with transaction.atomic():
        locked = Booking.objects.select_for_update().get(pk=booking.pk)
        locked.metadata = {**(locked.metadata or {}), **updates}
        update_fields = ["metadata", "updated_at"]
        for name, value in fields.items():
            setattr(locked, name, value)
            update_fields.append(name)
        locked.save(update_fields=update_fields)
    booking.refresh_from_db()
