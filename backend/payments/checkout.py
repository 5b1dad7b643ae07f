"""Create hosted provider checkouts for approved bookings."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from django.conf import settings

from bookings.domain import merge_booking_metadata
from bookings.models import Booking
from core.exceptions import InvalidState, NotFound, Unauthorized

from .providers import LineItem, PaymentProvider, select_checkout_provider

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CheckoutResult:
    checkout_url: str
    session_id: str
    provider: str


def _get_frontend_origin() -> str:
    """Return the configured frontend origin or a local fallback."""
    configured = (getattr(settings, "FRONTEND_ORIGIN", "") or "").strip()
    base = configured or "http://localhost:5173"
    return base.rstrip("/") or base


def checkout_return_urls(booking: Booking) -> tuple[str, str]:
    base = f"{_get_frontend_origin()}/BookingDetails?id={booking.pk}"
    return f"{base}&payment=success", f"{base}&payment=cancelled"


def build_line_items(booking: Booking) -> list[LineItem]:
    """Rental charge plus a separate refundable deposit line."""
    title = booking.vehicle_title or "Vehicle rental"
    date_range = f"{booking.start_date.isoformat()} to {booking.end_date.isoformat()}"
    items = [
        LineItem(
            name=f"{title} rental",
            amount=booking.rental_charge,
            description=f"{booking.days} day(s), {date_range}",
            image_url=booking.vehicle.photo_url if booking.vehicle_id else "",
        )
    ]
    if booking.security_deposit > 0:
        items.append(
            LineItem(
                name="Security deposit (refundable)",
                amount=booking.security_deposit,
                description="Returned after the vehicle is handed back.",
            )
        )
    return items


def build_checkout_metadata(booking: Booking) -> dict[str, str]:
    return {
        "booking_id": str(booking.pk),
        "renter_id": str(booking.renter_id),
        "renter_email": booking.renter.email,
        "owner_id": str(booking.owner_id),
        "owner_email": booking.owner.email,
        "vehicle_id": str(booking.vehicle_id),
    }


def _load_booking(booking_id) -> Booking:
    try:
        return Booking.objects.select_related("vehicle", "renter", "owner").get(pk=booking_id)
    except (Booking.DoesNotExist, ValueError, TypeError):
        raise NotFound() from None


def create_checkout(booking_id, user, *, provider_name: str | None = None) -> CheckoutResult:
    """
    Open a provider checkout for an approved booking owned by ``user``.

    Only the session/preference id is stored on the booking; the payment id is
    written once the webhook confirms the payment.
    """
    booking = _load_booking(booking_id)
    if booking.renter_id != user.id:
        raise Unauthorized("Only the renter can pay for this booking.")
    if booking.status != Booking.Status.APPROVED:
        raise InvalidState(f"Booking must be approved before checkout (status: {booking.status}).")
    if booking.payment_status == Booking.PaymentStatus.PAID:
        raise InvalidState("Booking has already been paid.")

    provider: PaymentProvider = select_checkout_provider(booking.currency, provider_name)
    success_url, cancel_url = checkout_return_urls(booking)
    session = provider.create_checkout_session(
        line_items=build_line_items(booking),
        currency=booking.currency,
        success_url=success_url,
        cancel_url=cancel_url,
        metadata=build_checkout_metadata(booking),
        reference=str(booking.pk),
        customer_email=booking.renter.email,
    )

    merge_booking_metadata(
        booking,
        {provider.session_metadata_key: session.id},
        payment_provider=provider.name,
    )
    logger.info(
        "checkout: created %s session %s for booking %s",
        provider.name,
        session.id,
        booking.pk,
    )
    return CheckoutResult(checkout_url=session.url, session_id=session.id, provider=provider.name)
