"""Cancellation refunds for paid bookings."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import Decimal

from django.db import transaction
from django.utils import timezone

from bookings.domain import transition_payment_status
from bookings.models import Booking
from core.exceptions import InvalidState, NotFound, Unauthorized

from .cancellation_policy import RefundQuote, compute_refund_quote
from .ledger import log_transaction
from .models import Transaction
from .providers import provider_for_booking

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RefundResult:
    success: bool
    refund_amount: Decimal
    refund_percentage: int
    refund_id: str | None
    days_until_start: int

    def as_dict(self) -> dict:
        return {
            "success": self.success,
            "refund_amount": str(self.refund_amount),
            "refund_percentage": self.refund_percentage,
            "refund_id": self.refund_id,
            "days_until_start": self.days_until_start,
        }


def refund_idempotency_key(booking: Booking) -> str:
    return f"booking:{booking.pk}:refund"


def _load_booking_for(booking_id, user) -> Booking:
    try:
        booking = Booking.objects.select_related("vehicle", "renter", "owner").get(pk=booking_id)
    except (Booking.DoesNotExist, ValueError, TypeError):
        raise NotFound() from None
    if booking.renter_id != user.id and not user.is_staff:
        raise Unauthorized("Only the renter or an administrator can refund this booking.")
    return booking


def quote_refund(booking_id, user) -> RefundQuote:
    """Return the refund the caller would receive if the booking were cancelled today."""
    booking = _load_booking_for(booking_id, user)
    return compute_refund_quote(booking, timezone.localdate())


def _zero_result(quote: RefundQuote) -> RefundResult:
    return RefundResult(
        success=True,
        refund_amount=quote.refund_amount,
        refund_percentage=quote.refund_percentage,
        refund_id=None,
        days_until_start=quote.days_until_start,
    )


def process_refund(booking_id, user) -> RefundResult:
    """
    Refund a paid booking according to the tier table.

    The provider is called before any local write; a provider failure leaves the
    booking and ledger untouched so the whole request can be retried.
    """
    booking = _load_booking_for(booking_id, user)
    if booking.payment_status == Booking.PaymentStatus.REFUNDED:
        raise InvalidState("Booking has already been refunded.")

    quote = compute_refund_quote(booking, timezone.localdate())
    if quote.is_zero:
        logger.info(
            "refund: booking %s starts in %s day(s); nothing to refund",
            booking.pk,
            quote.days_until_start,
        )
        return _zero_result(quote)

    provider, payment_id = provider_for_booking(booking)
    if booking.payment_status != Booking.PaymentStatus.PAID:
        raise InvalidState(f"Booking payment is {booking.payment_status}; nothing to refund.")

    provider_refund = provider.refund(
        payment_id,
        quote.refund_amount,
        idempotency_key=refund_idempotency_key(booking),
        metadata={"booking_id": booking.pk, "days_until_start": quote.days_until_start},
    )

    refund_metadata = {
        "refund_amount": str(quote.refund_amount),
        "refund_percentage": quote.refund_percentage,
        "days_until_start": quote.days_until_start,
        "refund_id": provider_refund.id,
    }
    with transaction.atomic():
        moved = transition_payment_status(
            booking,
            from_statuses=[Booking.PaymentStatus.PAID],
            to_status=Booking.PaymentStatus.REFUNDED,
            metadata_updates=refund_metadata,
        )
        if not moved:
            logger.error(
                "refund: booking %s changed state during refund %s; ledger not written",
                booking.pk,
                provider_refund.id,
            )
            raise InvalidState("Booking payment state changed during refund.")
        log_transaction(
            booking=booking,
            kind=Transaction.Kind.REFUND,
            amount=quote.refund_amount,
            user=booking.renter,
            actor_email=booking.renter.email,
            actor_role=Transaction.ActorRole.RENTER,
            currency=booking.currency,
            description=f"Refund ({quote.refund_percentage}%) - {booking.vehicle_title}",
            provider_reference=provider_refund.id,
            metadata={**refund_metadata, "provider": provider.name},
        )

    logger.info(
        "refund: booking %s refunded %s via %s (%s)",
        booking.pk,
        quote.refund_amount,
        provider.name,
        provider_refund.id,
    )
    return RefundResult(
        success=True,
        refund_amount=quote.refund_amount,
        refund_percentage=quote.refund_percentage,
        refund_id=provider_refund.id,
        days_until_start=quote.days_until_start,
    )
