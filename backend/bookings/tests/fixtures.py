"""Shared fixtures for booking, payment and coupon tests."""

from __future__ import annotations

from datetime import timedelta
from decimal import Decimal
from typing import Callable

import pytest
from django.contrib.auth import get_user_model
from django.utils import timezone

from bookings.models import Booking
from vehicles.models import Vehicle

User = get_user_model()


def _create_user(*, username: str, can_list: bool, can_rent: bool, **extra) -> User:
    return User.objects.create_user(
        username=username,
        email=f"{username}@example.com",
        password="testpass",
        can_list=can_list,
        can_rent=can_rent,
        **extra,
    )


@pytest.fixture
def owner_user():
    return _create_user(username="owner", can_list=True, can_rent=True, first_name="Olivia")


@pytest.fixture
def renter_user():
    return _create_user(username="renter", can_list=False, can_rent=True, first_name="Ramon")


@pytest.fixture
def other_user():
    return _create_user(username="other", can_list=True, can_rent=True)


@pytest.fixture
def staff_user():
    return _create_user(username="support", can_list=False, can_rent=False, is_staff=True)


@pytest.fixture
def vehicle(owner_user):
    return Vehicle.objects.create(
        owner=owner_user,
        title="Jeep Wrangler",
        vehicle_type=Vehicle.VehicleType.CAR,
        photo_url="https://cdn.example.com/jeep.jpg",
    )


@pytest.fixture
def booking_factory(vehicle, owner_user, renter_user) -> Callable[..., Booking]:
    """Create bookings with the 1000/150/850/100 breakdown unless overridden."""

    def _factory(**overrides) -> Booking:
        today = timezone.localdate()
        start = overrides.pop("start_date", today + timedelta(days=10))
        end = overrides.pop("end_date", start + timedelta(days=3))
        values = {
            "vehicle": vehicle,
            "owner": owner_user,
            "renter": renter_user,
            "start_date": start,
            "end_date": end,
            "total_days": (end - start).days,
            "subtotal": Decimal("750.00"),
            "platform_fee": Decimal("150.00"),
            "insurance_cost": Decimal("0.00"),
            "extras_total": Decimal("0.00"),
            "security_deposit": Decimal("100.00"),
            "total_amount": Decimal("1000.00"),
            "owner_payout": Decimal("850.00"),
            "currency": "USD",
            "status": Booking.Status.APPROVED,
            "payment_status": Booking.PaymentStatus.UNPAID,
        }
        values.update(overrides)
        return Booking.objects.create(**values)

    return _factory


@pytest.fixture
def approved_booking(booking_factory):
    return booking_factory()


@pytest.fixture
def paid_booking(booking_factory):
    """Booking paid through Stripe with the 200/30/50 refund scenario amounts."""
    return booking_factory(
        subtotal=Decimal("200.00"),
        platform_fee=Decimal("30.00"),
        security_deposit=Decimal("50.00"),
        total_amount=Decimal("280.00"),
        owner_payout=Decimal("170.00"),
        status=Booking.Status.PAID,
        payment_status=Booking.PaymentStatus.PAID,
        payment_provider=Booking.Provider.STRIPE,
        stripe_payment_intent_id="pi_paid_123",
    )
