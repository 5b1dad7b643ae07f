"""MercadoPago Checkout Pro adapter backed by the REST API."""

from __future__ import annotations

import hashlib
import hmac
import json
import logging
from decimal import Decimal
from typing import Any, Mapping

import requests
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

WEBHOOK_PATH = "/api/payments/webhooks/mercadopago/"
STATUS_MAP = {
    "approved": ProviderStatus.APPROVED,
    "rejected": ProviderStatus.REJECTED,
    "cancelled": ProviderStatus.CANCELLED,
}
FAILED_REFUND_STATUSES = {"rejected", "cancelled"}


def _get_access_token() -> str:
    token = getattr(settings, "MERCADOPAGO_ACCESS_TOKEN", "")
    if not token:
        raise ProviderConfigurationError("MercadoPago access token not configured.")
    return token


def _api_url(path: str) -> str:
    base = getattr(settings, "MERCADOPAGO_API_BASE", "") or "https://api.mercadopago.com"
    return f"{base.rstrip('/')}{path}"


def _request(
    method: str,
    path: str,
    *,
    payload: dict[str, Any] | None = None,
    params: dict[str, Any] | None = None,
    idempotency_key: str | None = None,
) -> dict[str, Any]:
    """Call the MercadoPago API and map transport / HTTP failures onto provider errors."""
    headers = {
        "Authorization": f"Bearer {_get_access_token()}",
        "Content-Type": "application/json",
        "Accept": "application/json",
    }
    if idempotency_key:
        headers["X-Idempotency-Key"] = idempotency_key
    timeout = float(getattr(settings, "MERCADOPAGO_REQUEST_TIMEOUT", 10.0))

    try:
        response = requests.request(
            method,
            _api_url(path),
            json=payload,
            params=params,
            headers=headers,
            timeout=timeout,
        )
    except (requests.Timeout, requests.ConnectionError) as exc:
        raise ProviderUnavailable("MercadoPago is unreachable, please retry.") from exc
    except requests.RequestException as exc:
        raise ProviderError("MercadoPago request failed.") from exc

    if response.status_code in (401, 403):
        raise ProviderConfigurationError("MercadoPago credentials are invalid or unauthorized.")
    if response.status_code == 429 or response.status_code >= 500:
        raise ProviderUnavailable("Temporary MercadoPago error, please retry.")
    if response.status_code >= 400:
        logger.warning(
            "mercadopago: %s %s failed with %s: %s",
            method,
            path,
            response.status_code,
            response.text[:500],
        )
        raise ProviderError("MercadoPago rejected the request.")

    try:
        return response.json()
    except ValueError as exc:
        raise ProviderError("MercadoPago returned an invalid response.") from exc


def _webhook_url() -> str:
    configured = (getattr(settings, "BACKEND_ORIGIN", "") or "").strip()
    base = configured or "http://localhost:8000"
    return f"{base.rstrip('/')}{WEBHOOK_PATH}"


def _parse_signature_header(value: str) -> dict[str, str]:
    parts = {}
    for chunk in (value or "").split(","):
        key, _, item = chunk.partition("=")
        if key.strip() and item:
            parts[key.strip()] = item.strip()
    return parts


class MercadoPagoProvider(PaymentProvider):
    name = "mercadopago"
    booking_payment_field = "mercadopago_payment_id"
    session_metadata_key = "mp_preference_id"

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
        items = []
        for item in line_items:
            entry = {
                "title": item.name,
                "quantity": item.quantity,
                "unit_price": float(item.amount),
                "currency_id": currency.upper(),
            }
            if item.description:
                entry["description"] = item.description
            if item.image_url:
                entry["picture_url"] = item.image_url
            items.append(entry)

        preference = {
            "items": items,
            "back_urls": {
                "success": success_url,
                "failure": cancel_url,
                "pending": success_url,
            },
            "auto_return": "approved",
            "external_reference": reference,
            "notification_url": _webhook_url(),
            "metadata": dict(metadata),
        }
        if customer_email:
            preference["payer"] = {"email": customer_email}

        data = _request("POST", "/checkout/preferences", payload=preference)
        preference_id = data.get("id")
        url = data.get("init_point")
        if _get_access_token().startswith("TEST-"):
            url = data.get("sandbox_init_point") or url
        if not preference_id or not url:
            raise ProviderError("MercadoPago did not return a checkout URL.")
        return CheckoutSession(id=str(preference_id), url=url)

    def get_payment(self, payment_id: str) -> ProviderPayment:
        if not str(payment_id).isdigit():
            raise ProviderError("Invalid MercadoPago payment id.")
        data = _request("GET", f"/v1/payments/{payment_id}")
        amount = data.get("transaction_amount")
        return ProviderPayment(
            id=str(data.get("id") or payment_id),
            status=STATUS_MAP.get(data.get("status") or "", ProviderStatus.PENDING),
            amount=Decimal(str(amount)).quantize(Decimal("0.01")) if amount is not None else None,
            external_reference=str(data.get("external_reference") or ""),
            status_detail=data.get("status_detail") or "",
            metadata={
                "payment_method_id": data.get("payment_method_id") or "",
                "payment_type_id": data.get("payment_type_id") or "",
            },
        )

    def refund(
        self,
        payment_id: str,
        amount: Decimal,
        *,
        idempotency_key: str,
        metadata: Mapping[str, Any] | None = None,
    ) -> ProviderRefund:
        data = _request(
            "POST",
            f"/v1/payments/{payment_id}/refunds",
            payload={"amount": float(amount)},
            idempotency_key=idempotency_key,
        )
        refund_status = data.get("status") or ""
        if refund_status in FAILED_REFUND_STATUSES:
            raise ProviderError(f"MercadoPago refund {refund_status}.")
        return ProviderRefund(id=str(data.get("id") or ""), status=refund_status)

    def parse_webhook(
        self,
        *,
        body: bytes,
        headers: Mapping[str, str],
        query: Mapping[str, str],
    ) -> WebhookHint | None:
        payload: Any = {}
        if body:
            try:
                payload = json.loads(body)
            except ValueError as exc:
                raise WebhookVerificationError("Invalid MercadoPago payload.") from exc
        if not isinstance(payload, dict):
            raise WebhookVerificationError("Invalid MercadoPago payload.")

        event_type = (
            payload.get("type")
            or payload.get("topic")
            or query.get("type")
            or query.get("topic")
            or ""
        )
        data = payload.get("data") if isinstance(payload.get("data"), dict) else {}
        payment_id = data.get("id") or query.get("data.id") or query.get("id")
        if event_type != "payment" or not payment_id:
            logger.debug("mercadopago_webhook: ignoring notification type %r", event_type)
            return None

        payment_id = str(payment_id)
        if not payment_id.isdigit():
            raise WebhookVerificationError("Invalid MercadoPago payment id.")
        self._verify_signature(payment_id, headers)
        return WebhookHint(payment_id=payment_id, event_type=event_type)

    def _verify_signature(self, data_id: str, headers: Mapping[str, str]) -> None:
        secret = getattr(settings, "MERCADOPAGO_WEBHOOK_SECRET", "")
        if not secret:
            return
        parts = _parse_signature_header(headers.get("x-signature", ""))
        ts = parts.get("ts")
        received = parts.get("v1")
        if not ts or not received:
            raise WebhookVerificationError("Missing MercadoPago signature.")

        manifest = f"id:{data_id.lower()};request-id:{headers.get('x-request-id', '')};ts:{ts};"
        expected = hmac.new(
            secret.encode("utf-8"),
            manifest.encode("utf-8"),
            hashlib.sha256,
        ).hexdigest()
        if not hmac.compare_digest(expected, received):
            raise WebhookVerificationError("Invalid MercadoPago signature.")

    def find_payment_for_booking(self, booking) -> str | None:
        data = _request(
            "GET",
            "/v1/payments/search",
            params={
                "external_reference": str(booking.pk),
                "sort": "date_created",
                "criteria": "desc",
            },
        )
        results = data.get("results") or []
        if not results:
            return None
        return str(results[0].get("id") or "") or None
