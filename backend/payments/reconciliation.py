"""Turn provider payment notifications into booking and ledger state."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from django.db import transaction

from bookings.domain import (
    PAYABLE_BOOKING_STATUSES,
    PAYABLE_PAYMENT_STATUSES,
    transition_payment_status,
)
from bookings.models import Booking
from core.exceptions import ProviderConfigurationError, ProviderError, ProviderUnavailable

from .ledger import record_payment
from .models import Transaction
from .providers import PaymentProvider, ProviderPayment, StripeProvider

logger = logging.getLogger(__name__)


class Outcome:
    PAID = "paid"
    DUPLICATE = "duplicate"
    FAILED = "failed"
    IGNORED = "ignored"
    UNKNOWN_BOOKING = "unknown_booking"
    LOOKUP_FAILED = "lookup_failed"


@dataclass(frozen=True)
class ReconcileResult:
    outcome: str
    booking_id: int | None = None
    payment_id: str = ""
    retryable: bool = False


def _resolve_booking(payment: ProviderPayment) -> Booking | None:
    reference = (payment.external_reference or "").strip()
    if not reference:
        return None
    try:
        booking_id = int(reference)
    except ValueError:
        return None
    return Booking.objects.select_related("vehicle", "renter", "owner").filter(pk=booking_id).first()


def _queue_paid_notifications(booking_id: int) -> None:
    from notifications import tasks as notification_tasks

    try:
        notification_tasks.notify_booking_paid.delay(booking_id)
    except Exception:
        logger.info(
            "notifications: failed to queue notify_booking_paid for booking %s",
            booking_id,
            exc_info=True,
        )


def _mark_paid(booking: Booking, provider: PaymentProvider, payment: ProviderPayment) -> bool:
    """Apply the paid transition and its four ledger rows exactly once."""
    payment_field = provider.booking_payment_field
    other_field = (
        "mercadopago_payment_id"
        if payment_field == StripeProvider.booking_payment_field
        else "stripe_payment_intent_id"
    )
    with transaction.atomic():
        if Transaction.objects.filter(
            booking=booking,
            kind=Transaction.Kind.PAYMENT,
            provider_reference=payment.id,
        ).exists():
            return False
        moved = transition_payment_status(
            booking,
            from_statuses=PAYABLE_PAYMENT_STATUSES,
            to_status=Booking.PaymentStatus.PAID,
            metadata_updates={"payment_confirmed_via": provider.name},
            advance_status=(PAYABLE_BOOKING_STATUSES, Booking.Status.PAID),
            payment_provider=provider.name,
            **{payment_field: payment.id, other_field: ""},
        )
        if not moved:
            return False
        if booking.status != Booking.Status.PAID:
            logger.warning(
                "reconcile: booking %s is %s; recording %s payment %s without reopening it",
                booking.pk,
                booking.status,
                provider.name,
                payment.id,
            )
        record_payment(
            booking,
            provider_reference=payment.id,
            metadata={"provider": provider.name, **payment.metadata},
        )
        if booking.status == Booking.Status.PAID:
            transaction.on_commit(lambda: _queue_paid_notifications(booking.pk))
    return True


def _mark_failed(booking: Booking, payment: ProviderPayment) -> bool:
    return transition_payment_status(
        booking,
        from_statuses=[Booking.PaymentStatus.UNPAID],
        to_status=Booking.PaymentStatus.FAILED,
        metadata_updates={
            "payment_error": payment.status_detail or payment.status,
            "failed_payment_id": payment.id,
        },
    )


def reconcile_payment(provider: PaymentProvider, payment_id: str) -> ReconcileResult:
    """
    Re-fetch ``payment_id`` from the provider and apply its authoritative status.

    Safe to call any number of times for the same payment: the conditional
    payment_status write and the ledger check make repeats no-ops.
    """
    try:
        payment = provider.get_payment(payment_id)
    except (ProviderUnavailable, ProviderConfigurationError) as exc:
        logger.warning(
            "reconcile: %s lookup for %s failed, will retry: %s",
            provider.name,
            payment_id,
            exc.message,
        )
        return ReconcileResult(Outcome.LOOKUP_FAILED, payment_id=payment_id, retryable=True)
    except ProviderError as exc:
        logger.warning(
            "reconcile: %s lookup for %s rejected: %s",
            provider.name,
            payment_id,
            exc.message,
        )
        return ReconcileResult(Outcome.LOOKUP_FAILED, payment_id=payment_id)

    booking = _resolve_booking(payment)
    if booking is None:
        logger.warning(
            "reconcile: no booking for %s payment %s (reference %r)",
            provider.name,
            payment.id,
            payment.external_reference,
        )
        return ReconcileResult(Outcome.UNKNOWN_BOOKING, payment_id=payment.id)

    if payment.is_approved:
        if payment.amount is not None and payment.amount != booking.total_amount:
            logger.warning(
                "reconcile: booking %s paid %s but total is %s",
                booking.pk,
                payment.amount,
                booking.total_amount,
            )
        if _mark_paid(booking, provider, payment):
            logger.info("reconcile: booking %s paid via %s %s", booking.pk, provider.name, payment.id)
            return ReconcileResult(Outcome.PAID, booking_id=booking.pk, payment_id=payment.id)
        logger.info(
            "reconcile: duplicate approval %s for booking %s (payment_status=%s)",
            payment.id,
            booking.pk,
            booking.payment_status,
        )
        return ReconcileResult(Outcome.DUPLICATE, booking_id=booking.pk, payment_id=payment.id)

    if payment.is_failed:
        if _mark_failed(booking, payment):
            logger.info(
                "reconcile: booking %s payment %s %s (%s)",
                booking.pk,
                payment.id,
                payment.status,
                payment.status_detail,
            )
            return ReconcileResult(Outcome.FAILED, booking_id=booking.pk, payment_id=payment.id)
        return ReconcileResult(Outcome.DUPLICATE, booking_id=booking.pk, payment_id=payment.id)

    logger.debug("reconcile: payment %s status %s ignored", payment.id, payment.status)
    return ReconcileResult(Outcome.IGNORED, booking_id=booking.pk, payment_id=payment.id)
