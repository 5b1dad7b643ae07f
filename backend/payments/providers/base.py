"""Provider-neutral payment gateway interface."""

from __future__ import annotations

import abc
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Mapping, Optional


class ProviderStatus:
    """Normalized payment states returned by every gateway adapter."""

    APPROVED = "approved"
    REJECTED = "rejected"
    CANCELLED = "cancelled"
    PENDING = "pending"

    FAILED = (REJECTED, CANCELLED)


@dataclass(frozen=True)
class LineItem:
    name: str
    amount: Decimal
    quantity: int = 1
    description: str = ""
    image_url: str = ""


@dataclass(frozen=True)
class CheckoutSession:
    """Hosted checkout created by a provider; the renter is redirected to ``url``."""

    id: str
    url: str


@dataclass(frozen=True)
class ProviderPayment:
    """Authoritative payment snapshot fetched from a provider."""

    id: str
    status: str
    amount: Optional[Decimal] = None
    external_reference: str = ""
    status_detail: str = ""
    metadata: dict[str, Any] = field(default_factory=dict)

    @property
    def is_approved(self) -> bool:
        return self.status == ProviderStatus.APPROVED

    @property
    def is_failed(self) -> bool:
        return self.status in ProviderStatus.FAILED


@dataclass(frozen=True)
class ProviderRefund:
    id: str
    status: str = ""


@dataclass(frozen=True)
class WebhookHint:
    """
    Identifier extracted from an inbound notification.

    Notifications are treated as hints only: the payment is always re-fetched
    from the provider before any state changes.
    """

    payment_id: str
    event_type: str = ""


class PaymentProvider(abc.ABC):
    """Interface implemented by each payment gateway adapter."""

    name: str = ""
    # Booking column that stores this provider's confirmed payment id.
    booking_payment_field: str = ""
    # booking.metadata key holding the checkout session / preference id.
    session_metadata_key: str = ""

    @abc.abstractmethod
    def create_checkout_session(
        self,
        *,
        line_items: list[LineItem],
        currency: str,
        success_url: str,
        cancel_url: str,
        metadata: Mapping[str, Any],
        reference: str,
        customer_email: str = "",
    ) -> CheckoutSession:
        """Create a hosted checkout and return its id and redirect URL."""

    @abc.abstractmethod
    def get_payment(self, payment_id: str) -> ProviderPayment:
        """Fetch the authoritative status of a payment."""

    @abc.abstractmethod
    def refund(
        self,
        payment_id: str,
        amount: Decimal,
        *,
        idempotency_key: str,
        metadata: Mapping[str, Any] | None = None,
    ) -> ProviderRefund:
        """Issue a (partial) refund against a confirmed payment."""

    @abc.abstractmethod
    def parse_webhook(
        self,
        *,
        body: bytes,
        headers: Mapping[str, str],
        query: Mapping[str, str],
    ) -> WebhookHint | None:
        """
        Verify an inbound notification and extract the payment id to reconcile.

        Returns None for notifications this integration does not act on and raises
        ``WebhookVerificationError`` for malformed or unsigned payloads.
        """

    def find_payment_for_booking(self, booking) -> str | None:
        """Return a payment id to reconcile for a booking stuck in checkout."""
        return None
