from datetime import timedelta
from decimal import Decimal

import pytest
from django.utils import timezone

from core.exceptions import ValidationFailed
from coupons.models import Coupon, CouponUsage
from coupons.services import CouponRejection, compute_discount, redeem_coupon, validate_coupon

pytestmark = pytest.mark.django_db


@pytest.fixture
def coupon_factory():
    def _factory(**overrides) -> Coupon:
        values = {
            "code": "SUMMER20",
            "discount_type": Coupon.DiscountType.PERCENTAGE,
            "discount_value": Decimal("20"),
            "max_discount_amount": Decimal("30"),
            "usage_per_user": 1,
        }
        values.update(overrides)
        return Coupon.objects.create(**values)

    return _factory


def test_percentage_discount_is_capped(coupon_factory, renter_user):
    coupon_factory()

    quote = validate_coupon("summer20", Decimal("200"), "car", renter_user)

    assert quote.discount_amount == Decimal("30.00")
    assert quote.final_amount == Decimal("170.00")


def test_percentage_discount_below_cap(coupon_factory, renter_user):
    coupon_factory(max_discount_amount=None)

    quote = validate_coupon("SUMMER20", Decimal("200"), "car", renter_user)

    assert quote.discount_amount == Decimal("40.00")


def test_fixed_discount_never_exceeds_total(coupon_factory, renter_user):
    coupon_factory(discount_type=Coupon.DiscountType.FIXED, discount_value=Decimal("75"))

    quote = validate_coupon("SUMMER20", Decimal("50"), "car", renter_user)

    assert quote.discount_amount == Decimal("50.00")
    assert quote.final_amount == Decimal("0.00")


@pytest.mark.parametrize(
    "discount_type, value, cap",
    [
        (Coupon.DiscountType.PERCENTAGE, Decimal("150"), None),
        (Coupon.DiscountType.PERCENTAGE, Decimal("0"), Decimal("10")),
        (Coupon.DiscountType.PERCENTAGE, Decimal("35"), Decimal("0")),
        (Coupon.DiscountType.FIXED, Decimal("0.01"), None),
        (Coupon.DiscountType.FIXED, Decimal("1000"), None),
    ],
)
@pytest.mark.parametrize("total", [Decimal("0"), Decimal("0.99"), Decimal("120"), Decimal("5000")])
def test_discount_stays_within_bounds(discount_type, value, cap, total):
    coupon = Coupon(discount_type=discount_type, discount_value=value, max_discount_amount=cap)

    discount = compute_discount(coupon, total)

    assert Decimal("0") <= discount <= total


def test_unknown_code(renter_user):
    with pytest.raises(ValidationFailed) as exc_info:
        validate_coupon("NOPE", Decimal("100"), "car", renter_user)
    assert exc_info.value.reason == CouponRejection.INVALID


def test_inactive_code_is_invalid(coupon_factory, renter_user):
    coupon_factory(is_active=False)

    with pytest.raises(ValidationFailed) as exc_info:
        validate_coupon("SUMMER20", Decimal("100"), "car", renter_user)
    assert exc_info.value.reason == CouponRejection.INVALID


@pytest.mark.parametrize(
    "overrides, reason",
    [
        ({"valid_from": timedelta(days=1)}, CouponRejection.NOT_YET_ACTIVE),
        ({"valid_until": -timedelta(days=1)}, CouponRejection.EXPIRED),
        ({"usage_limit": 5, "used_count": 5}, CouponRejection.GLOBAL_LIMIT_REACHED),
        ({"min_booking_amount": Decimal("500")}, CouponRejection.BELOW_MINIMUM),
        ({"applicable_vehicle_types": ["boat"]}, CouponRejection.VEHICLE_TYPE_EXCLUDED),
    ],
)
def test_rejection_reasons(coupon_factory, renter_user, overrides, reason):
    now = timezone.now()
    values = {
        key: now + value if isinstance(value, timedelta) else value
        for key, value in overrides.items()
    }
    coupon_factory(**values)

    with pytest.raises(ValidationFailed) as exc_info:
        validate_coupon("SUMMER20", Decimal("200"), "car", renter_user, now=now)
    assert exc_info.value.reason == reason


def test_user_limit(coupon_factory, renter_user):
    coupon = coupon_factory()
    CouponUsage.objects.create(coupon=coupon, user=renter_user)

    with pytest.raises(ValidationFailed) as exc_info:
        validate_coupon("SUMMER20", Decimal("200"), "car", renter_user)
    assert exc_info.value.reason == CouponRejection.USER_LIMIT_REACHED


def test_checks_short_circuit_in_order(coupon_factory, renter_user):
    now = timezone.now()
    coupon_factory(
        valid_until=now - timedelta(days=1),
        usage_limit=1,
        used_count=1,
        min_booking_amount=Decimal("1000"),
    )

    with pytest.raises(ValidationFailed) as exc_info:
        validate_coupon("SUMMER20", Decimal("10"), "boat", renter_user, now=now)
    assert exc_info.value.reason == CouponRejection.EXPIRED


def test_vehicle_type_allowed(coupon_factory, renter_user):
    coupon_factory(applicable_vehicle_types=["car", "motorcycle"])

    quote = validate_coupon("SUMMER20", Decimal("100"), "motorcycle", renter_user)

    assert quote.discount_amount == Decimal("20.00")


def test_validate_does_not_consume_the_coupon(coupon_factory, renter_user):
    coupon = coupon_factory()

    validate_coupon("SUMMER20", Decimal("100"), "car", renter_user)

    coupon.refresh_from_db()
    assert coupon.used_count == 0
    assert CouponUsage.objects.count() == 0


def test_redeem_increments_and_records_usage(coupon_factory, renter_user, approved_booking):
    coupon = coupon_factory(usage_limit=2)

    usage = redeem_coupon(
        coupon, renter_user, discount_amount=Decimal("30"), booking=approved_booking
    )

    assert usage.booking == approved_booking
    assert usage.discount_amount == Decimal("30.00")
    assert coupon.used_count == 1


def test_redeem_stops_at_global_limit(coupon_factory, renter_user, other_user):
    coupon = coupon_factory(usage_limit=1)
    redeem_coupon(coupon, renter_user, discount_amount=Decimal("10"))

    with pytest.raises(ValidationFailed) as exc_info:
        redeem_coupon(coupon, other_user, discount_amount=Decimal("10"))
    assert exc_info.value.reason == CouponRejection.GLOBAL_LIMIT_REACHED
    coupon.refresh_from_db()
    assert coupon.used_count == 1


def test_redeem_enforces_per_user_limit(coupon_factory, renter_user):
    coupon = coupon_factory(usage_per_user=1)
    redeem_coupon(coupon, renter_user, discount_amount=Decimal("10"))

    with pytest.raises(ValidationFailed) as exc_info:
        redeem_coupon(coupon, renter_user, discount_amount=Decimal("10"))
    assert exc_info.value.reason == CouponRejection.USER_LIMIT_REACHED
