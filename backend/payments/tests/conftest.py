"""Fake payment provider used to drive checkout, webhook and refund flows."""

from __future__ import annotations

from decimal import Decimal

import pytest

from core.exceptions import ProviderError
from payments import providers
from payments.providers import (
    CheckoutSession,
    PaymentProvider,
    ProviderPayment,
    ProviderRefund,
    ProviderStatus,
    WebhookHint,
)


class FakeProvider(PaymentProvider):
    """In-memory provider; tests set ``payments`` / ``refund_error`` as needed."""

    def __init__(self, name: str, booking_payment_field: str, session_metadata_key: str):
        self.name = name
        self.booking_payment_field = booking_payment_field
        self.session_metadata_key = session_metadata_key
        self.payments: dict[str, ProviderPayment] = {}
        self.lookup_error: Exception | None = None
        self.refund_error: Exception | None = None
        self.sessions: list[dict] = []
        self.refunds: list[dict] = []
        self.lookups: list[str] = []

    def __call__(self):
        return self

    def approve(self, payment_id: str, booking, *, amount=None) -> ProviderPayment:
        payment = ProviderPayment(
            id=payment_id,
            status=ProviderStatus.APPROVED,
            amount=amount if amount is not None else booking.total_amount,
            external_reference=str(booking.pk),
        )
        self.payments[payment_id] = payment
        return payment

    def create_checkout_session(self, **kwargs) -> CheckoutSession:
        self.sessions.append(kwargs)
        session_id = f"{self.name}_session_{len(self.sessions)}"
        return CheckoutSession(id=session_id, url=f"https://pay.example.com/{session_id}")

    def get_payment(self, payment_id: str) -> ProviderPayment:
        self.lookups.append(payment_id)
        if self.lookup_error is not None:
            raise self.lookup_error
        try:
            return self.payments[payment_id]
        except KeyError:
            raise ProviderError("No such payment.") from None

    def refund(self, payment_id, amount, *, idempotency_key, metadata=None) -> ProviderRefund:
        if self.refund_error is not None:
            raise self.refund_error
        self.refunds.append(
            {"payment_id": payment_id, "amount": Decimal(amount), "idempotency_key": idempotency_key}
        )
        return ProviderRefund(id=f"re_{len(self.refunds)}", status="succeeded")

    def parse_webhook(self, *, body, headers, query):
        return WebhookHint(payment_id=query.get("id", ""), event_type="payment")

    def find_payment_for_booking(self, booking):
        return (booking.metadata or {}).get(self.session_metadata_key)


@pytest.fixture
def fake_stripe(monkeypatch):
    fake = FakeProvider("stripe", "stripe_payment_intent_id", "stripe_session_id")
    monkeypatch.setitem(providers.PROVIDERS, "stripe", fake)
    return fake


@pytest.fixture
def fake_mercadopago(monkeypatch):
    fake = FakeProvider("mercadopago", "mercadopago_payment_id", "mp_preference_id")
    monkeypatch.setitem(providers.PROVIDERS, "mercadopago", fake)
    return fake
