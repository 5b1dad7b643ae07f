"""Stripe Checkout adapter."""

from __future__ import annotations

import logging
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Mapping

import stripe
from django.conf import settings

from core.exceptions import (
    ProviderConfigurationError,
    ProviderError,
    ProviderUnavailable,
    WebhookVerificationError,
)

from .base import (
    CheckoutSession,
    LineItem,
    PaymentProvider,
    ProviderPayment,
    ProviderRefund,
    ProviderStatus,
    WebhookHint,
)

logger = logging.getLogger(__name__)

SESSION_EVENTS = {
    "checkout.session.completed",
    "checkout.session.async_payment_succeeded",
    "checkout.session.async_payment_failed",
    "checkout.session.expired",
}
PAYMENT_INTENT_EVENTS = {
    "payment_intent.succeeded",
    "payment_intent.payment_failed",
    "payment_intent.canceled",
}
FAILED_REFUND_STATUSES = {"failed", "canceled"}


def _get_stripe_api_key() -> str:
    """Return the configured Stripe API key or raise if missing."""
    api_key = getattr(settings, "STRIPE_SECRET_KEY", "")
    if not api_key:
        raise ProviderConfigurationError("Stripe secret key not configured.")
    return api_key


def _to_cents(amount: Decimal) -> int:
    """Convert Decimal amounts to integer cents, rounding to the nearest cent."""
    cents = (Decimal(amount) * Decimal("100")).quantize(Decimal("1"), rounding=ROUND_HALF_UP)
    return int(cents)


def _from_cents(cents: Any) -> Decimal | None:
    if cents is None:
        return None
    return (Decimal(int(cents)) / Decimal("100")).quantize(Decimal("0.01"))


def _field(obj: Any, name: str, default: Any = None) -> Any:
    """Safely fetch a field from a Stripe object or dict payload."""
    if obj is None:
        return default
    if isinstance(obj, dict):
        return obj.get(name, default)
    return getattr(obj, name, default)


def _handle_stripe_error(exc: stripe.StripeError) -> None:
    """Map Stripe SDK errors onto internal exception types."""
    if isinstance(exc, stripe.CardError):
        raise ProviderError(exc.user_message or "Your card was declined.") from exc
    if isinstance(exc, (stripe.RateLimitError, stripe.APIConnectionError, stripe.APIError)):
        raise ProviderUnavailable("Temporary Stripe error, please retry.") from exc
    if isinstance(exc, (stripe.AuthenticationError, stripe.PermissionError)):
        raise ProviderConfigurationError(
            "Stripe credentials are invalid or unauthorized."
        ) from exc
    if isinstance(exc, stripe.InvalidRequestError):
        raise ProviderError(exc.user_message or "Invalid payment request.") from exc
    raise ProviderError(exc.user_message or "Stripe payment failure.") from exc


def _stringify_metadata(metadata: Mapping[str, Any] | None) -> dict[str, str]:
    payload = {key: str(value) for key, value in (metadata or {}).items() if value is not None}
    payload.setdefault("env", getattr(settings, "STRIPE_ENV", "dev") or "dev")
    return payload


def _intent_status(intent: Any) -> str:
    status = _field(intent, "status", "") or ""
    if status == "succeeded":
        return ProviderStatus.APPROVED
    if status == "canceled":
        return ProviderStatus.CANCELLED
    if status == "requires_payment_method" and _field(intent, "last_payment_error"):
        return ProviderStatus.REJECTED
    return ProviderStatus.PENDING


def _intent_status_detail(intent: Any) -> str:
    error = _field(intent, "last_payment_error")
    if error:
        return _field(error, "code") or _field(error, "message") or ""
    return _field(intent, "cancellation_reason") or ""


class StripeProvider(PaymentProvider):
    name = "stripe"
    booking_payment_field = "stripe_payment_intent_id"
    session_metadata_key = "stripe_session_id"

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
        stripe.api_key = _get_stripe_api_key()
        stripe_metadata = _stringify_metadata(metadata)

        items = []
        for item in line_items:
            product_data: dict[str, Any] = {"name": item.name}
            if item.description:
                product_data["description"] = item.description
            if item.image_url:
                product_data["images"] = [item.image_url]
            items.append(
                {
                    "price_data": {
                        "currency": currency.lower(),
                        "unit_amount": _to_cents(item.amount),
                        "product_data": product_data,
                    },
                    "quantity": item.quantity,
                }
            )

        params: dict[str, Any] = {
            "mode": "payment",
            "payment_method_types": ["card"],
            "line_items": items,
            "success_url": success_url,
            "cancel_url": cancel_url,
            "client_reference_id": reference,
            "metadata": stripe_metadata,
            "payment_intent_data": {"metadata": stripe_metadata},
        }
        if customer_email:
            params["customer_email"] = customer_email

        try:
            session = stripe.checkout.Session.create(**params)
        except stripe.StripeError as exc:
            _handle_stripe_error(exc)

        session_id = _field(session, "id")
        session_url = _field(session, "url")
        if not session_id or not session_url:
            raise ProviderError("Stripe did not return a checkout session URL.")
        return CheckoutSession(id=session_id, url=session_url)

    def get_payment(self, payment_id: str) -> ProviderPayment:
        stripe.api_key = _get_stripe_api_key()
        try:
            if payment_id.startswith("cs_"):
                session = stripe.checkout.Session.retrieve(payment_id, expand=["payment_intent"])
                return self._payment_from_session(session)
            intent = stripe.PaymentIntent.retrieve(payment_id)
        except stripe.StripeError as exc:
            _handle_stripe_error(exc)
        return self._payment_from_intent(intent)

    def _payment_from_session(self, session: Any) -> ProviderPayment:
        intent = _field(session, "payment_intent")
        if isinstance(intent, str):
            intent_id, intent = intent, None
        else:
            intent_id = _field(intent, "id")
        metadata = _field(session, "metadata")
        reference = _field(session, "client_reference_id") or _field(metadata, "booking_id") or ""

        if _field(session, "payment_status") in ("paid", "no_payment_required"):
            status = ProviderStatus.APPROVED
        elif _field(session, "status") == "expired":
            status = ProviderStatus.CANCELLED
        elif intent is not None:
            status = _intent_status(intent)
        else:
            status = ProviderStatus.PENDING

        return ProviderPayment(
            id=intent_id or _field(session, "id"),
            status=status,
            amount=_from_cents(_field(session, "amount_total")),
            external_reference=str(reference),
            status_detail=_intent_status_detail(intent) if intent is not None else "",
            metadata={"checkout_session_id": _field(session, "id")},
        )

    def _payment_from_intent(self, intent: Any) -> ProviderPayment:
        metadata = _field(intent, "metadata")
        method_types = _field(intent, "payment_method_types") or []
        return ProviderPayment(
            id=_field(intent, "id"),
            status=_intent_status(intent),
            amount=_from_cents(_field(intent, "amount")),
            external_reference=str(_field(metadata, "booking_id") or ""),
            status_detail=_intent_status_detail(intent),
            metadata={"payment_method_types": list(method_types)},
        )

    def refund(
        self,
        payment_id: str,
        amount: Decimal,
        *,
        idempotency_key: str,
        metadata: Mapping[str, Any] | None = None,
    ) -> ProviderRefund:
        stripe.api_key = _get_stripe_api_key()
        try:
            refund = stripe.Refund.create(
                payment_intent=payment_id,
                amount=_to_cents(amount),
                reason="requested_by_customer",
                metadata=_stringify_metadata(metadata),
                idempotency_key=idempotency_key,
            )
        except stripe.StripeError as exc:
            _handle_stripe_error(exc)

        refund_status = _field(refund, "status", "") or ""
        if refund_status in FAILED_REFUND_STATUSES:
            raise ProviderError(f"Stripe refund {refund_status}.")
        return ProviderRefund(id=_field(refund, "id", ""), status=refund_status)

    def parse_webhook(
        self,
        *,
        body: bytes,
        headers: Mapping[str, str],
        query: Mapping[str, str],
    ) -> WebhookHint | None:
        endpoint_secret = getattr(settings, "STRIPE_WEBHOOK_SECRET", "")
        if not endpoint_secret:
            raise ProviderConfigurationError("Stripe webhook secret not configured.")

        try:
            event = stripe.Webhook.construct_event(
                payload=body,
                sig_header=headers.get("Stripe-Signature", ""),
                secret=endpoint_secret,
            )
        except ValueError as exc:
            raise WebhookVerificationError("Invalid Stripe payload.") from exc
        except stripe.SignatureVerificationError as exc:
            raise WebhookVerificationError("Invalid Stripe signature.") from exc

        event_type = _field(event, "type", "") or ""
        if event_type not in SESSION_EVENTS and event_type not in PAYMENT_INTENT_EVENTS:
            logger.debug("stripe_webhook: ignoring event type %s", event_type)
            return None

        data_object = _field(_field(event, "data"), "object")
        object_id = _field(data_object, "id")
        if not object_id:
            logger.warning("stripe_webhook: %s event missing object id", event_type)
            return None
        return WebhookHint(payment_id=object_id, event_type=event_type)

    def find_payment_for_booking(self, booking) -> str | None:
        return (booking.metadata or {}).get(self.session_metadata_key) or None
