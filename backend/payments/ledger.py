from datetime import timedelta
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Optional

from django.conf import settings
from django.contrib.auth import get_user_model
from django.utils import timezone

from .models import Transaction

User = get_user_model()
TWO_PLACES = Decimal("0.01")
OWNER_EARNING_KINDS = [
    Transaction.Kind.PAYOUT,
]


def log_transaction(
    *,
    booking,
    kind: str,
    amount: Decimal,
    actor_email: str,
    actor_role: str,
    user: Optional[User] = None,
    currency: str = "USD",
    status: str = Transaction.Status.COMPLETED,
    description: str = "",
    provider_reference: Optional[str] = None,
    metadata: Optional[dict[str, Any]] = None,
) -> Transaction:
    """
    Append and return a Transaction row.

    Pure append: never touches existing rows and applies no business rules, so
    every money-moving path produces structurally identical records.
    """
    return Transaction.objects.create(
        booking=booking,
        user=user,
        kind=kind,
        amount=Decimal(amount).quantize(TWO_PLACES, rounding=ROUND_HALF_UP),
        currency=currency,
        status=status,
        actor_email=actor_email,
        actor_role=actor_role,
        description=description,
        provider_reference=provider_reference,
        metadata=metadata or {},
    )


def platform_ledger_email() -> str:
    return getattr(settings, "PLATFORM_LEDGER_EMAIL", "") or "platform@gorentals.com"


def record_payment(booking, *, provider_reference: str, metadata: dict | None = None) -> list:
    """Write the four rows a confirmed booking payment produces."""
    title = booking.vehicle_title
    renter = booking.renter
    owner = booking.owner
    common = {
        "booking": booking,
        "currency": booking.currency,
        "provider_reference": provider_reference,
    }
    return [
        log_transaction(
            **common,
            kind=Transaction.Kind.PAYMENT,
            amount=booking.total_amount,
            user=renter,
            actor_email=renter.email,
            actor_role=Transaction.ActorRole.RENTER,
            description=f"Booking payment - {title}",
            metadata={
                "days": booking.days,
                "start_date": booking.start_date.isoformat(),
                "end_date": booking.end_date.isoformat(),
                **(metadata or {}),
            },
        ),
        log_transaction(
            **common,
            kind=Transaction.Kind.COMMISSION,
            amount=booking.platform_fee,
            actor_email=platform_ledger_email(),
            actor_role=Transaction.ActorRole.PLATFORM,
            description=f"Platform commission - {title}",
        ),
        log_transaction(
            **common,
            kind=Transaction.Kind.PAYOUT,
            amount=booking.owner_payout,
            user=owner,
            actor_email=owner.email,
            actor_role=Transaction.ActorRole.OWNER,
            status=Transaction.Status.PENDING,
            description=f"Pending owner payout - {title}",
        ),
        log_transaction(
            **common,
            kind=Transaction.Kind.DEPOSIT_HOLD,
            amount=booking.security_deposit,
            user=renter,
            actor_email=renter.email,
            actor_role=Transaction.ActorRole.RENTER,
            status=Transaction.Status.PENDING,
            description=f"Security deposit - {title}",
        ),
    ]


def get_owner_earnings_queryset(user: User):
    """Return the queryset of owner-facing transactions for a user."""
    return Transaction.objects.filter(
        user=user,
        actor_role=Transaction.ActorRole.OWNER,
        kind__in=OWNER_EARNING_KINDS,
    ).order_by("-created_at")


def compute_owner_balances(user: User) -> dict[str, str]:
    """Compute lifetime and recent payout figures for an owner."""
    queryset = get_owner_earnings_queryset(user)

    completed = Decimal("0.00")
    pending = Decimal("0.00")
    last_30_days = Decimal("0.00")
    booking_ids = set()
    cutoff = timezone.now() - timedelta(days=30)

    for tx in queryset:
        amount = Decimal(tx.amount)
        booking_ids.add(tx.booking_id)
        if tx.status == Transaction.Status.COMPLETED:
            completed += amount
        else:
            pending += amount
        if tx.created_at >= cutoff:
            last_30_days += amount

    # Refunds are paid back to the renter; the owner's share of those bookings is lost.
    refunded = Decimal("0.00")
    if booking_ids:
        refunded_ids = set(
            Transaction.objects.filter(
                booking_id__in=booking_ids,
                kind=Transaction.Kind.REFUND,
            ).values_list("booking_id", flat=True)
        )
        for tx in queryset:
            if tx.booking_id in refunded_ids:
                refunded += Decimal(tx.amount)

    bookings_count = len(booking_ids)
    gross = completed + pending
    average = gross / bookings_count if bookings_count else Decimal("0.00")

    def _format(value: Decimal) -> str:
        return f"{value.quantize(TWO_PLACES, rounding=ROUND_HALF_UP)}"

    return {
        "completed_payouts": _format(completed),
        "pending_payouts": _format(pending),
        "refunded_bookings_payouts": _format(refunded),
        "net_earnings": _format(gross - refunded),
        "last_30_days": _format(last_30_days),
        "bookings_count": bookings_count,
        "average_per_booking": _format(average),
    }
