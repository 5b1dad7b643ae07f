from django.conf import settings
from django.db import models


class Transaction(models.Model):
    """One immutable ledger row for a money movement tied to a booking."""

    class Kind(models.TextChoices):
        PAYMENT = "payment", "Payment"
        COMMISSION = "commission", "Commission"
        PAYOUT = "payout", "Payout"
        DEPOSIT_HOLD = "deposit_hold", "Deposit hold"
        REFUND = "refund", "Refund"

    class ActorRole(models.TextChoices):
        RENTER = "renter", "Renter"
        OWNER = "owner", "Owner"
        PLATFORM = "platform", "Platform"

    class Status(models.TextChoices):
        COMPLETED = "completed", "Completed"
        PENDING = "pending", "Pending"

    booking = models.ForeignKey(
        "bookings.Booking",
        on_delete=models.PROTECT,
        related_name="transactions",
    )
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="transactions",
        help_text="Account the row belongs to; empty for platform rows.",
    )
    actor_email = models.EmailField()
    actor_role = models.CharField(max_length=16, choices=ActorRole.choices)
    kind = models.CharField(max_length=32, choices=Kind.choices)
    amount = models.DecimalField(max_digits=12, decimal_places=2)
    currency = models.CharField(max_length=8, default="USD")
    status = models.CharField(max_length=16, choices=Status.choices, default=Status.COMPLETED)
    description = models.CharField(max_length=255, blank=True, default="")
    provider_reference = models.CharField(
        max_length=255,
        blank=True,
        null=True,
        help_text="Related provider payment / refund id.",
    )
    metadata = models.JSONField(default=dict, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-created_at", "-id"]
        indexes = [
            models.Index(fields=["booking", "kind"], name="txn_booking_kind_idx"),
            models.Index(fields=["actor_email", "created_at"], name="txn_actor_created_idx"),
        ]

    def __str__(self) -> str:
        return f"{self.actor_email} {self.kind} {self.amount} {self.currency} ({self.status})"
