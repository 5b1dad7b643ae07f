"""Inbound payment provider notifications."""

from __future__ import annotations

import logging

from rest_framework import status
from rest_framework.decorators import (
    api_view,
    authentication_classes,
    permission_classes,
    throttle_classes,
)
from rest_framework.response import Response

from core.exceptions import ProviderConfigurationError, WebhookVerificationError

from .providers import MercadoPagoProvider, StripeProvider, get_provider
from .reconciliation import Outcome, reconcile_payment

logger = logging.getLogger(__name__)


def _handle_notification(request, provider_name: str) -> Response:
    """
    Verify a notification, then reconcile the payment it points to.

    Everything except a bad signature or a retryable lookup failure is
    acknowledged with 200 so the provider stops redelivering.
    """
    provider = get_provider(provider_name)
    try:
        hint = provider.parse_webhook(
            body=request.body,
            headers=request.headers,
            query=request.query_params,
        )
    except WebhookVerificationError as exc:
        logger.warning("%s_webhook: rejected notification: %s", provider_name, exc)
        return Response({"detail": str(exc)}, status=status.HTTP_400_BAD_REQUEST)
    except ProviderConfigurationError as exc:
        logger.error("%s_webhook: %s", provider_name, exc.message)
        return Response({"detail": exc.message}, status=exc.status_code)

    if hint is None:
        return Response({"status": Outcome.IGNORED}, status=status.HTTP_200_OK)

    result = reconcile_payment(provider, hint.payment_id)
    if result.retryable:
        return Response(
            {"status": result.outcome, "detail": "Payment lookup failed, retry later."},
            status=status.HTTP_503_SERVICE_UNAVAILABLE,
        )
    return Response({"status": result.outcome}, status=status.HTTP_200_OK)


@api_view(["POST"])
@authentication_classes([])
@permission_classes([])
@throttle_classes([])
def stripe_webhook(request):
    """Handle Stripe Checkout / PaymentIntent events for booking payments."""
    return _handle_notification(request, StripeProvider.name)


@api_view(["POST"])
@authentication_classes([])
@permission_classes([])
@throttle_classes([])
def mercadopago_webhook(request):
    """Handle MercadoPago payment notifications (webhooks and IPN style)."""
    return _handle_notification(request, MercadoPagoProvider.name)
