from datetime import timedelta

import pytest
from django.utils import timezone

from bookings.models import Booking
from payments.models import Transaction
from payments.tasks import reconcile_stale_checkouts

pytestmark = pytest.mark.django_db


def _age(booking, minutes: int) -> None:
    Booking.objects.filter(pk=booking.pk).update(
        updated_at=timezone.now() - timedelta(minutes=minutes)
    )


def test_stale_checkout_is_reconciled(booking_factory, fake_stripe, settings):
    settings.CHECKOUT_RECONCILE_AFTER_MINUTES = 60
    booking = booking_factory(payment_provider="stripe", metadata={"stripe_session_id": "cs_lost"})
    fake_stripe.approve("cs_lost", booking)
    _age(booking, 90)

    result = reconcile_stale_checkouts()

    assert result == {"reconciled": 1, "checked": 1}
    booking.refresh_from_db()
    assert booking.payment_status == Booking.PaymentStatus.PAID
    assert Transaction.objects.filter(booking=booking).count() == 4


def test_recent_checkouts_are_left_alone(booking_factory, fake_stripe):
    booking = booking_factory(payment_provider="stripe", metadata={"stripe_session_id": "cs_new"})
    _age(booking, 5)

    result = reconcile_stale_checkouts()

    assert result == {"reconciled": 0, "checked": 0}
    assert fake_stripe.lookups == []


def test_bookings_without_checkout_are_skipped(booking_factory, fake_stripe):
    booking = booking_factory(payment_provider="stripe")
    _age(booking, 90)

    result = reconcile_stale_checkouts()

    assert result == {"reconciled": 0, "checked": 1}
    assert fake_stripe.lookups == []
