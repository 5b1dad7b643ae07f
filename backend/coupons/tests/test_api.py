from decimal import Decimal

import pytest
from django.urls import reverse

from coupons.models import Coupon

pytestmark = pytest.mark.django_db


@pytest.fixture
def coupon():
    return Coupon.objects.create(
        code="WELCOME",
        discount_type=Coupon.DiscountType.FIXED,
        discount_value=Decimal("25"),
        min_booking_amount=Decimal("100"),
    )


def test_validate_endpoint_returns_discount(api_client, renter_user, coupon):
    api_client.force_authenticate(renter_user)

    response = api_client.post(
        reverse("coupons:validate"),
        {"code": "welcome", "total_amount": "180.00", "vehicle_type": "car"},
        format="json",
    )

    assert response.status_code == 200
    assert response.data == {
        "valid": True,
        "code": "WELCOME",
        "discount_type": "fixed",
        "discount_amount": "25.00",
        "final_amount": "155.00",
    }


def test_validate_endpoint_returns_reason(api_client, renter_user, coupon):
    api_client.force_authenticate(renter_user)

    response = api_client.post(
        reverse("coupons:validate"),
        {"code": "WELCOME", "total_amount": "50.00"},
        format="json",
    )

    assert response.status_code == 400
    assert response.data["valid"] is False
    assert response.data["reason"] == "BelowMinimum"


def test_validate_endpoint_requires_auth(api_client, coupon):
    response = api_client.post(
        reverse("coupons:validate"), {"code": "WELCOME", "total_amount": "150"}, format="json"
    )

    assert response.status_code == 401
