"""Payment provider registry."""

from __future__ import annotations

from django.conf import settings

from core.exceptions import InvalidState, ValidationFailed

from .base import (
    CheckoutSession,
    LineItem,
    PaymentProvider,
    ProviderPayment,
    ProviderRefund,
    ProviderStatus,
    WebhookHint,
)
from .mercadopago_provider import MercadoPagoProvider
from .stripe_provider import StripeProvider

PROVIDERS: dict[str, type[PaymentProvider]] = {
    StripeProvider.name: StripeProvider,
    MercadoPagoProvider.name: MercadoPagoProvider,
}


def get_provider(name: str) -> PaymentProvider:
    try:
        return PROVIDERS[name]()
    except KeyError:
        raise ValidationFailed("unknown_provider", f"Unknown payment provider '{name}'.") from None


def select_checkout_provider(currency: str, requested: str | None = None) -> PaymentProvider:
    """Pick the provider for a new checkout: explicit choice, then currency routing."""
    if requested:
        return get_provider(requested)
    routing = getattr(settings, "PAYMENT_PROVIDER_BY_CURRENCY", {}) or {}
    name = routing.get((currency or "").upper())
    return get_provider(name or getattr(settings, "DEFAULT_PAYMENT_PROVIDER", "stripe"))


def provider_for_booking(booking) -> tuple[PaymentProvider, str]:
    """
    Return the provider holding the booking's confirmed payment and its id.

    A MercadoPago payment id takes precedence over a Stripe one.
    """
    if booking.mercadopago_payment_id:
        return get_provider(MercadoPagoProvider.name), booking.mercadopago_payment_id
    if booking.stripe_payment_intent_id:
        return get_provider(StripeProvider.name), booking.stripe_payment_intent_id
    raise InvalidState("No payment method found for refund.")


__all__ = [
    "CheckoutSession",
    "LineItem",
    "MercadoPagoProvider",
    "PROVIDERS",
    "PaymentProvider",
    "ProviderPayment",
    "ProviderRefund",
    "ProviderStatus",
    "StripeProvider",
    "WebhookHint",
    "get_provider",
    "provider_for_booking",
    "select_checkout_provider",
]
