"""Database models for vehicle rental bookings."""

from __future__ import annotations

from decimal import Decimal

from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import models
from django.utils import timezone

from vehicles.models import Vehicle


class Booking(models.Model):
    """A rental agreement between a renter and a vehicle owner."""

    class Status(models.TextChoices):
        PENDING = "pending", "pending"
        APPROVED = "approved", "approved"
        REJECTED = "rejected", "rejected"
        PAID = "paid", "paid"
        ACTIVE = "active", "active"
        COMPLETED = "completed", "completed"
        CANCELLED = "cancelled", "cancelled"

    class PaymentStatus(models.TextChoices):
        UNPAID = "unpaid", "unpaid"
        PAID = "paid", "paid"
        REFUNDED = "refunded", "refunded"
        FAILED = "failed", "failed"

    class Provider(models.TextChoices):
        STRIPE = "stripe", "Stripe"
        MERCADOPAGO = "mercadopago", "MercadoPago"

    vehicle = models.ForeignKey(
        Vehicle,
        related_name="bookings",
        on_delete=models.CASCADE,
    )
    owner = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        related_name="bookings_as_owner",
        on_delete=models.CASCADE,
    )
    renter = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        related_name="bookings_as_renter",
        on_delete=models.CASCADE,
    )
    start_date = models.DateField()
    end_date = models.DateField(help_text="End date (return), must be after start_date.")
    total_days = models.PositiveIntegerField(default=0)

    subtotal = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0"))
    platform_fee = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0"))
    insurance_cost = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0"))
    extras_total = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0"))
    security_deposit = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0"))
    total_amount = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0"))
    owner_payout = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0"))
    currency = models.CharField(max_length=8, default="USD")

    status = models.CharField(
        max_length=16,
        choices=Status.choices,
        default=Status.PENDING,
    )
    payment_status = models.CharField(
        max_length=16,
        choices=PaymentStatus.choices,
        default=PaymentStatus.UNPAID,
    )
    payment_provider = models.CharField(
        max_length=16,
        choices=Provider.choices,
        blank=True,
        default="",
        help_text="Provider selected at checkout.",
    )
    stripe_payment_intent_id = models.CharField(max_length=120, blank=True, default="")
    mercadopago_payment_id = models.CharField(max_length=120, blank=True, default="")
    metadata = models.JSONField(default=dict, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["renter", "status"], name="booking_renter_status_idx"),
            models.Index(fields=["owner", "status"], name="booking_owner_status_idx"),
            models.Index(fields=["status", "payment_status"], name="booking_payment_state_idx"),
        ]

    def __str__(self) -> str:
        """Return a human-readable representation."""
        return f"Booking #{self.pk} for {self.vehicle_id} ({self.status}/{self.payment_status})"

    def clean(self):
        if self.start_date and self.end_date and self.start_date >= self.end_date:
            raise ValidationError({"end_date": ["End date must be after start date."]})
        if self.stripe_payment_intent_id and self.mercadopago_payment_id:
            raise ValidationError("A booking can hold only one provider payment reference.")

    @property
    def days(self) -> int:
        """Return the count of booked days."""
        if self.total_days:
            return self.total_days
        if not self.start_date or not self.end_date:
            return 0
        return (self.end_date - self.start_date).days

    @property
    def rental_charge(self) -> Decimal:
        """Amount charged for the rental itself, excluding the refundable deposit."""
        return self.subtotal + self.platform_fee + self.insurance_cost + self.extras_total

    @property
    def vehicle_title(self) -> str:
        return self.vehicle.title if self.vehicle_id else ""

    @property
    def payment_reference(self) -> str:
        """The provider payment id recorded on confirmed payment, if any."""
        return self.mercadopago_payment_id or self.stripe_payment_intent_id

    def is_pre_payment(self) -> bool:
        return self.status in {self.Status.PENDING, self.Status.APPROVED}

    def starts_in_past(self) -> bool:
        """Return True when the booking starts before today."""
        if not self.start_date:
            return False
        return self.start_date < timezone.localdate()
