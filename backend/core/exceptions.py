"""Error taxonomy shared by checkout, webhook, refund and coupon flows."""

from __future__ import annotations

from rest_framework import status


class PaymentFlowError(Exception):
    """Base error; API views turn it into an ``{"error", "status"}`` body."""

    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Payment request failed."

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class Unauthorized(PaymentFlowError):
    """The caller is not the party allowed to act on the resource."""

    status_code = status.HTTP_403_FORBIDDEN
    default_message = "Not authorized for this booking."


class NotFound(PaymentFlowError):
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Booking not found."


class InvalidState(PaymentFlowError):
    """The operation is not valid for the current booking/payment status."""

    default_message = "Booking is not in a valid state for this operation."


class ValidationFailed(PaymentFlowError):
    """An input or coupon constraint was violated."""

    default_message = "Validation failed."

    def __init__(self, reason: str, message: str | None = None):
        self.reason = reason
        super().__init__(message)


class ProviderError(PaymentFlowError):
    """A payment gateway call failed or returned a non-success result."""

    status_code = status.HTTP_502_BAD_GATEWAY
    default_message = "Payment provider error."


class ProviderUnavailable(ProviderError):
    """Temporary provider issue (network, rate limit, 5xx) that should be retried."""

    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    default_message = "Temporary payment provider error, please retry."


class ProviderConfigurationError(ProviderError):
    """Provider credentials are missing or were rejected."""

    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    default_message = "Payment provider is not configured."


class WebhookVerificationError(Exception):
    """Inbound notification failed signature or payload verification."""
