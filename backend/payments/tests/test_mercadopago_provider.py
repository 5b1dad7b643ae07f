import hashlib
import hmac
import json
from decimal import Decimal

import pytest
import requests

from core.exceptions import (
    ProviderConfigurationError,
    ProviderError,
    ProviderUnavailable,
    WebhookVerificationError,
)
from payments.providers import LineItem, MercadoPagoProvider, ProviderStatus
from payments.providers import mercadopago_provider


class FakeResponse:
    def __init__(self, status_code=200, payload=None):
        self.status_code = status_code
        self._payload = payload if payload is not None else {}
        self.text = json.dumps(self._payload)

    def json(self):
        return self._payload


@pytest.fixture
def mp_calls(monkeypatch):
    """Record outgoing MercadoPago requests and answer from a queue of responses."""
    calls = []
    responses = []

    def fake_request(method, url, **kwargs):
        calls.append({"method": method, "url": url, **kwargs})
        response = responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response

    monkeypatch.setattr(mercadopago_provider.requests, "request", fake_request)
    return calls, responses


def test_create_preference(mp_calls, settings):
    settings.MERCADOPAGO_ACCESS_TOKEN = "APP_USR-live"
    settings.BACKEND_ORIGIN = "https://api.gorentals.test"
    calls, responses = mp_calls
    responses.append(
        FakeResponse(201, {"id": "pref_1", "init_point": "https://mp.example/init/pref_1"})
    )

    session = MercadoPagoProvider().create_checkout_session(
        line_items=[
            LineItem(name="Moto rental", amount=Decimal("45000.50")),
            LineItem(name="Security deposit (refundable)", amount=Decimal("10000.00")),
        ],
        currency="ars",
        success_url="http://front/ok",
        cancel_url="http://front/cancel",
        metadata={"booking_id": "12"},
        reference="12",
    )

    assert session.id == "pref_1"
    assert session.url == "https://mp.example/init/pref_1"
    call = calls[0]
    assert call["method"] == "POST"
    assert call["url"] == "https://api.mercadopago.com/checkout/preferences"
    assert call["headers"]["Authorization"] == "Bearer APP_USR-live"
    body = call["json"]
    assert body["external_reference"] == "12"
    assert body["notification_url"] == "https://api.gorentals.test/api/payments/webhooks/mercadopago/"
    assert [item["unit_price"] for item in body["items"]] == [45000.5, 10000.0]
    assert body["items"][0]["currency_id"] == "ARS"
    assert body["back_urls"]["failure"] == "http://front/cancel"


def test_test_token_uses_sandbox_url(mp_calls):
    _, responses = mp_calls
    responses.append(
        FakeResponse(
            201,
            {"id": "pref_2", "init_point": "https://live", "sandbox_init_point": "https://sandbox"},
        )
    )

    session = MercadoPagoProvider().create_checkout_session(
        line_items=[LineItem(name="Rental", amount=Decimal("10"))],
        currency="ARS",
        success_url="s",
        cancel_url="c",
        metadata={},
        reference="1",
    )

    assert session.url == "https://sandbox"


@pytest.mark.parametrize(
    "mp_status, expected",
    [
        ("approved", ProviderStatus.APPROVED),
        ("rejected", ProviderStatus.REJECTED),
        ("cancelled", ProviderStatus.CANCELLED),
        ("in_process", ProviderStatus.PENDING),
    ],
)
def test_get_payment_normalizes_status(mp_calls, mp_status, expected):
    calls, responses = mp_calls
    responses.append(
        FakeResponse(
            200,
            {
                "id": 555,
                "status": mp_status,
                "status_detail": "accredited",
                "transaction_amount": 1000,
                "external_reference": "12",
            },
        )
    )

    payment = MercadoPagoProvider().get_payment("555")

    assert calls[0]["url"] == "https://api.mercadopago.com/v1/payments/555"
    assert payment.id == "555"
    assert payment.status == expected
    assert payment.amount == Decimal("1000.00")
    assert payment.external_reference == "12"


def test_refund_sends_idempotency_key(mp_calls):
    calls, responses = mp_calls
    responses.append(FakeResponse(201, {"id": 9001, "status": "approved"}))

    refund = MercadoPagoProvider().refund(
        "555", Decimal("150.00"), idempotency_key="booking:12:refund"
    )

    assert refund.id == "9001"
    assert calls[0]["url"] == "https://api.mercadopago.com/v1/payments/555/refunds"
    assert calls[0]["json"] == {"amount": 150.0}
    assert calls[0]["headers"]["X-Idempotency-Key"] == "booking:12:refund"


@pytest.mark.parametrize(
    "response, expected",
    [
        (requests.Timeout("slow"), ProviderUnavailable),
        (requests.ConnectionError("down"), ProviderUnavailable),
        (FakeResponse(503, {"message": "unavailable"}), ProviderUnavailable),
        (FakeResponse(429, {"message": "too many"}), ProviderUnavailable),
        (FakeResponse(401, {"message": "invalid token"}), ProviderConfigurationError),
        (FakeResponse(404, {"message": "not found"}), ProviderError),
    ],
)
def test_http_failures_are_mapped(mp_calls, response, expected):
    _, responses = mp_calls
    responses.append(response)

    with pytest.raises(expected):
        MercadoPagoProvider().get_payment("555")


def test_missing_access_token(settings):
    settings.MERCADOPAGO_ACCESS_TOKEN = ""

    with pytest.raises(ProviderConfigurationError):
        MercadoPagoProvider().get_payment("555")


def test_find_payment_for_booking_uses_latest_result(mp_calls):
    calls, responses = mp_calls
    responses.append(FakeResponse(200, {"results": [{"id": 777}, {"id": 555}]}))

    class StubBooking:
        pk = 12

    assert MercadoPagoProvider().find_payment_for_booking(StubBooking()) == "777"
    assert calls[0]["params"]["external_reference"] == "12"


@pytest.mark.parametrize(
    "body, query, expected_id",
    [
        (b'{"type": "payment", "data": {"id": "555"}}', {}, "555"),
        (b"", {"type": "payment", "data.id": "556"}, "556"),
        (b"", {"topic": "payment", "id": "557"}, "557"),
    ],
)
def test_parse_webhook_shapes(body, query, expected_id):
    hint = MercadoPagoProvider().parse_webhook(body=body, headers={}, query=query)

    assert hint.payment_id == expected_id


def test_parse_webhook_ignores_other_topics():
    hint = MercadoPagoProvider().parse_webhook(
        body=b'{"type": "merchant_order", "data": {"id": "1"}}', headers={}, query={}
    )

    assert hint is None


def test_parse_webhook_rejects_malformed_json():
    with pytest.raises(WebhookVerificationError):
        MercadoPagoProvider().parse_webhook(body=b"{not json", headers={}, query={})


@pytest.mark.parametrize("payment_id", ["../v1/account", "555?x=1", "abc"])
def test_parse_webhook_rejects_non_numeric_ids(payment_id):
    with pytest.raises(WebhookVerificationError):
        MercadoPagoProvider().parse_webhook(
            body=b"", headers={}, query={"topic": "payment", "id": payment_id}
        )


def test_get_payment_rejects_non_numeric_id_without_calling_api(mp_calls):
    calls, _ = mp_calls

    with pytest.raises(ProviderError):
        MercadoPagoProvider().get_payment("../users/me")

    assert calls == []


def test_parse_webhook_checks_signature_when_secret_set(settings):
    settings.MERCADOPAGO_WEBHOOK_SECRET = "mp-secret"
    manifest = "id:555;request-id:req-1;ts:1704908010;"
    digest = hmac.new(b"mp-secret", manifest.encode(), hashlib.sha256).hexdigest()
    body = b'{"type": "payment", "data": {"id": "555"}}'

    hint = MercadoPagoProvider().parse_webhook(
        body=body,
        headers={"x-signature": f"ts=1704908010,v1={digest}", "x-request-id": "req-1"},
        query={},
    )
    assert hint.payment_id == "555"

    with pytest.raises(WebhookVerificationError):
        MercadoPagoProvider().parse_webhook(
            body=body,
            headers={"x-signature": "ts=1704908010,v1=deadbeef", "x-request-id": "req-1"},
            query={},
        )
