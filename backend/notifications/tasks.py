from __future__ import annotations

import logging
from datetime import date
from typing import Optional

from celery import shared_task
from django.conf import settings
from django.contrib.auth import get_user_model
from django.core.mail import EmailMultiAlternatives
from django.template.loader import render_to_string

from notifications.models import Notification, NotificationLog

logger = logging.getLogger(__name__)
User = get_user_model()


def _render(template: str, context: dict) -> str:
    """Render a template relative to the notifications app."""
    return render_to_string(template, context).strip()


def _build_email_context(extra: Optional[dict]) -> dict:
    frontend_origin = (getattr(settings, "FRONTEND_ORIGIN", "") or "").rstrip("/")
    context = {
        "site_name": getattr(settings, "SITE_NAME", "GoRentals"),
        "site_url": frontend_origin,
    }
    if extra:
        context.update(extra)
    return context


def _log_notification(
    channel: str,
    type_: str,
    status: str,
    *,
    user_id: int | None = None,
    booking_id: int | None = None,
    error: str | None = None,
) -> None:
    try:
        NotificationLog.objects.create(
            channel=channel,
            type=type_,
            status=status,
            user_id=user_id,
            booking_id=booking_id,
            error=error or "",
        )
    except Exception:
        logger.exception(
            "notifications: failed to persist notification log",
            extra={"channel": channel, "type": type_, "status": status},
        )


def _send_email_logged(
    type_: str,
    *,
    to_email: str | None,
    subject: str,
    template: str,
    context: dict | None = None,
    user_id: int | None = None,
    booking_id: int | None = None,
) -> bool:
    if not to_email:
        _log_notification(
            NotificationLog.Channel.EMAIL,
            type_,
            NotificationLog.Status.FAILED,
            user_id=user_id,
            booking_id=booking_id,
            error="missing recipient email",
        )
        logger.warning("notifications: cannot send email without recipient")
        return False

    body = _render(f"email/{template}", _build_email_context(context))
    message = EmailMultiAlternatives(
        subject=subject,
        body=body,
        from_email=settings.DEFAULT_FROM_EMAIL,
        to=[to_email],
    )
    try:
        message.send(fail_silently=False)
    except Exception as exc:
        logger.exception(
            "notifications: email send failed",
            extra={"type": type_, "booking_id": booking_id, "user_id": user_id},
        )
        _log_notification(
            NotificationLog.Channel.EMAIL,
            type_,
            NotificationLog.Status.FAILED,
            user_id=user_id,
            booking_id=booking_id,
            error=str(exc) or exc.__class__.__name__,
        )
        return False

    _log_notification(
        NotificationLog.Channel.EMAIL,
        type_,
        NotificationLog.Status.SENT,
        user_id=user_id,
        booking_id=booking_id,
    )
    return True


def _notify_in_app(user, type_: str, *, title: str, message: str, booking_id: int) -> Notification:
    notification = Notification.objects.create(
        user=user,
        type=type_,
        title=title,
        message=message,
        booking_id=booking_id,
    )
    _log_notification(
        NotificationLog.Channel.IN_APP,
        type_,
        NotificationLog.Status.SENT,
        user_id=user.pk,
        booking_id=booking_id,
    )
    return notification


def _format_date(value: Optional[date]) -> str:
    if not value:
        return ""
    return value.strftime("%b %d, %Y")


@shared_task(queue="emails")
def notify_booking_paid(booking_id: int) -> None:
    """Tell the renter and the owner that a booking payment was confirmed."""
    from bookings.models import Booking

    try:
        booking = Booking.objects.select_related("vehicle", "owner", "renter").get(pk=booking_id)
    except Booking.DoesNotExist:
        logger.warning("notifications: booking %s no longer exists", booking_id)
        return

    renter = booking.renter
    owner = booking.owner
    vehicle_title = booking.vehicle_title or "your vehicle"
    frontend_origin = (getattr(settings, "FRONTEND_ORIGIN", "") or "").rstrip("/")
    context = {
        "renter_name": renter.display_name,
        "owner_name": owner.display_name,
        "vehicle_title": vehicle_title,
        "date_range_display": (
            f"{_format_date(booking.start_date)} - {_format_date(booking.end_date)}"
        ),
        "total_amount": booking.total_amount,
        "security_deposit": booking.security_deposit,
        "owner_payout": booking.owner_payout,
        "currency": booking.currency,
        "cta_url": (
            f"{frontend_origin}/BookingDetails?id={booking.pk}" if frontend_origin else ""
        ),
    }

    _notify_in_app(
        renter,
        Notification.Type.BOOKING_PAID,
        title="Payment confirmed",
        message=f"Your booking for {vehicle_title} is paid and confirmed.",
        booking_id=booking.pk,
    )
    _notify_in_app(
        owner,
        Notification.Type.PAYMENT_RECEIVED,
        title="Booking paid",
        message=f"{renter.display_name} paid for {vehicle_title}.",
        booking_id=booking.pk,
    )
    _send_email_logged(
        Notification.Type.BOOKING_PAID,
        to_email=renter.email,
        subject=f"Payment confirmed: {vehicle_title}",
        template="booking_paid_renter.txt",
        context=context,
        user_id=renter.pk,
        booking_id=booking.pk,
    )
    _send_email_logged(
        Notification.Type.PAYMENT_RECEIVED,
        to_email=owner.email,
        subject=f"New paid booking: {vehicle_title}",
        template="booking_paid_owner.txt",
        context=context,
        user_id=owner.pk,
        booking_id=booking.pk,
    )
