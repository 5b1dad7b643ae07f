"""Tiered refund policy for cancelling a paid booking."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import ROUND_HALF_UP, Decimal

from bookings.domain import days_until_start
from bookings.models import Booking


@dataclass(frozen=True)
class RefundQuote:
    """How much of a booking is returned to the renter if cancelled today."""

    refund_amount: Decimal
    refund_percentage: int
    days_until_start: int

    @property
    def is_zero(self) -> bool:
        return self.refund_amount <= _ZERO


@dataclass(frozen=True)
class RefundTier:
    min_days: int
    percentage: int
    includes_deposit: bool = True


_ZERO = Decimal("0.00")
_CENT = Decimal("0.01")

# Evaluated top-down, first match wins. The platform fee is never refunded.
REFUND_TIERS = (
    RefundTier(min_days=7, percentage=100),
    RefundTier(min_days=3, percentage=50),
    RefundTier(min_days=1, percentage=0),
)


def _quantize(value: Decimal) -> Decimal:
    """Round a Decimal value to cents using HALF_UP."""
    return value.quantize(_CENT, rounding=ROUND_HALF_UP)


def refund_for(days: int, *, subtotal: Decimal, security_deposit: Decimal) -> RefundQuote:
    for tier in REFUND_TIERS:
        if days >= tier.min_days:
            amount = Decimal(subtotal) * Decimal(tier.percentage) / Decimal("100")
            if tier.includes_deposit:
                amount += Decimal(security_deposit)
            return RefundQuote(
                refund_amount=_quantize(amount),
                refund_percentage=tier.percentage,
                days_until_start=days,
            )
    return RefundQuote(refund_amount=_ZERO, refund_percentage=0, days_until_start=days)


def compute_refund_quote(booking: Booking, today: date) -> RefundQuote:
    """Apply the refund tiers to a booking using calendar days until it starts."""
    return refund_for(
        days_until_start(today, booking),
        subtotal=booking.subtotal,
        security_deposit=booking.security_deposit,
    )
