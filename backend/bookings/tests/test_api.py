import pytest
from django.urls import reverse

from bookings.models import Booking

pytestmark = pytest.mark.django_db


def test_participants_list_their_bookings(api_client, approved_booking, renter_user, owner_user):
    for user in (renter_user, owner_user):
        api_client.force_authenticate(user)
        response = api_client.get(reverse("bookings:booking-list"))

        assert response.status_code == 200
        assert [row["id"] for row in response.data] == [approved_booking.pk]


def test_outsider_cannot_read_booking(api_client, approved_booking, other_user):
    api_client.force_authenticate(other_user)

    detail = api_client.get(reverse("bookings:booking-detail", args=[approved_booking.pk]))
    listing = api_client.get(reverse("bookings:booking-list"))

    assert detail.status_code == 403
    assert listing.data == []


def test_detail_exposes_payment_state(api_client, paid_booking, renter_user):
    api_client.force_authenticate(renter_user)

    response = api_client.get(reverse("bookings:booking-detail", args=[paid_booking.pk]))

    assert response.status_code == 200
    assert response.data["payment_status"] == Booking.PaymentStatus.PAID
    assert response.data["payment_provider"] == "stripe"
    assert response.data["vehicle_title"] == "Jeep Wrangler"
    assert response.data["rental_charge"] == "230.00"


def test_renting_only_returns_rentals(api_client, booking_factory, renter_user, owner_user):
    booking_factory()
    api_client.force_authenticate(owner_user)

    response = api_client.get(reverse("bookings:booking-renting"))

    assert response.status_code == 200
    assert response.data == []


def test_filter_by_payment_status(api_client, booking_factory, renter_user):
    booking_factory()
    paid = booking_factory(payment_status=Booking.PaymentStatus.PAID)
    api_client.force_authenticate(renter_user)

    response = api_client.get(reverse("bookings:booking-list"), {"payment_status": "paid"})

    assert [row["id"] for row in response.data] == [paid.pk]
