"""Coupon validation, pricing and redemption."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal

from django.db import transaction
from django.db.models import F, Q
from django.utils import timezone

from core.exceptions import ValidationFailed

from .models import Coupon, CouponUsage

logger = logging.getLogger(__name__)

_ZERO = Decimal("0.00")
_CENT = Decimal("0.01")


class CouponRejection:
    """Reason codes returned when a coupon cannot be applied."""

    INVALID = "Invalid"
    NOT_YET_ACTIVE = "NotYetActive"
    EXPIRED = "Expired"
    GLOBAL_LIMIT_REACHED = "GlobalLimitReached"
    USER_LIMIT_REACHED = "UserLimitReached"
    BELOW_MINIMUM = "BelowMinimum"
    VEHICLE_TYPE_EXCLUDED = "VehicleTypeExcluded"


MESSAGES = {
    CouponRejection.INVALID: "Invalid coupon code.",
    CouponRejection.NOT_YET_ACTIVE: "This coupon is not active yet.",
    CouponRejection.EXPIRED: "This coupon has expired.",
    CouponRejection.GLOBAL_LIMIT_REACHED: "This coupon has reached its usage limit.",
    CouponRejection.USER_LIMIT_REACHED: "You have already used this coupon.",
    CouponRejection.BELOW_MINIMUM: "Booking total is below the coupon minimum.",
    CouponRejection.VEHICLE_TYPE_EXCLUDED: "This coupon does not apply to this vehicle type.",
}


@dataclass(frozen=True)
class CouponQuote:
    coupon: Coupon
    discount_amount: Decimal
    final_amount: Decimal


def _reject(reason: str) -> ValidationFailed:
    return ValidationFailed(reason, MESSAGES[reason])


def _quantize(value: Decimal) -> Decimal:
    return value.quantize(_CENT, rounding=ROUND_HALF_UP)


def compute_discount(coupon: Coupon, total_amount: Decimal) -> Decimal:
    """Discount for ``total_amount``; never negative and never above the total."""
    total = Decimal(total_amount)
    if total <= 0:
        return _ZERO
    value = Decimal(coupon.discount_value)
    if coupon.discount_type == Coupon.DiscountType.PERCENTAGE:
        discount = total * value / Decimal("100")
        if coupon.max_discount_amount is not None:
            discount = min(discount, Decimal(coupon.max_discount_amount))
    else:
        discount = value
    discount = max(min(discount, total), _ZERO)
    return _quantize(discount)


def validate_coupon(
    code: str,
    total_amount: Decimal,
    vehicle_type: str | None,
    user,
    *,
    now: datetime | None = None,
) -> CouponQuote:
    """
    Check a code against a prospective booking and price it.

    Checks run in a fixed order and the first failure raises ``ValidationFailed``
    with its reason code. Nothing is written; see ``redeem_coupon``.
    """
    normalized = (code or "").strip().upper()
    coupon = Coupon.objects.filter(code=normalized, is_active=True).first() if normalized else None
    if coupon is None:
        raise _reject(CouponRejection.INVALID)

    current_time = now or timezone.now()
    if coupon.valid_from and current_time < coupon.valid_from:
        raise _reject(CouponRejection.NOT_YET_ACTIVE)
    if coupon.valid_until and current_time > coupon.valid_until:
        raise _reject(CouponRejection.EXPIRED)
    if coupon.usage_limit is not None and coupon.used_count >= coupon.usage_limit:
        raise _reject(CouponRejection.GLOBAL_LIMIT_REACHED)
    if CouponUsage.objects.filter(coupon=coupon, user=user).count() >= coupon.usage_per_user:
        raise _reject(CouponRejection.USER_LIMIT_REACHED)

    total = Decimal(total_amount)
    if total < coupon.min_booking_amount:
        raise _reject(CouponRejection.BELOW_MINIMUM)
    allowed_types = coupon.applicable_vehicle_types or []
    if allowed_types and vehicle_type not in allowed_types:
        raise _reject(CouponRejection.VEHICLE_TYPE_EXCLUDED)

    discount = compute_discount(coupon, total)
    return CouponQuote(coupon=coupon, discount_amount=discount, final_amount=_quantize(total - discount))


def redeem_coupon(coupon: Coupon, user, *, discount_amount: Decimal, booking=None) -> CouponUsage:
    """
    Record one redemption of ``coupon`` by ``user``.

    The global counter is bumped with a conditional update so concurrent
    redemptions cannot push ``used_count`` past ``usage_limit``.
    """
    with transaction.atomic():
        locked = Coupon.objects.select_for_update().get(pk=coupon.pk)
        if CouponUsage.objects.filter(coupon=locked, user=user).count() >= locked.usage_per_user:
            raise _reject(CouponRejection.USER_LIMIT_REACHED)

        updated = (
            Coupon.objects.filter(pk=locked.pk, is_active=True)
            .filter(Q(usage_limit__isnull=True) | Q(used_count__lt=F("usage_limit")))
            .update(used_count=F("used_count") + 1)
        )
        if not updated:
            raise _reject(CouponRejection.GLOBAL_LIMIT_REACHED)

        usage = CouponUsage.objects.create(
            coupon=locked,
            user=user,
            booking=booking,
            discount_amount=_quantize(Decimal(discount_amount)),
        )
    coupon.refresh_from_db(fields=["used_count"])
    logger.info("coupons: %s redeemed by user %s", coupon.code, user.pk)
    return usage
