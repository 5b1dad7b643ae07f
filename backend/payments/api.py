"""Checkout, refund and ledger API endpoints."""

from __future__ import annotations

import logging

from django.db.models import Q
from django_filters.rest_framework import DjangoFilterBackend
from rest_framework import generics, status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.filters import OrderingFilter
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from core.exceptions import PaymentFlowError

from .checkout import create_checkout
from .filters import TransactionFilter
from .ledger import compute_owner_balances
from .models import Transaction
from .refunds import process_refund, quote_refund
from .serializers import CheckoutRequestSerializer, RefundRequestSerializer, TransactionSerializer

logger = logging.getLogger(__name__)


def _error_response(exc: PaymentFlowError) -> Response:
    return Response(
        {"error": exc.message, "status": exc.status_code},
        status=exc.status_code,
    )


@api_view(["POST"])
@permission_classes([IsAuthenticated])
def checkout(request):
    """Create a provider checkout for an approved booking and return the redirect URL."""
    serializer = CheckoutRequestSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    try:
        result = create_checkout(
            serializer.validated_data["booking_id"],
            request.user,
            provider_name=serializer.validated_data.get("provider"),
        )
    except PaymentFlowError as exc:
        logger.info(
            "payments: checkout for booking %s refused: %s",
            serializer.validated_data["booking_id"],
            exc.message,
        )
        return _error_response(exc)
    return Response(
        {
            "checkout_url": result.checkout_url,
            "session_id": result.session_id,
            "provider": result.provider,
        },
        status=status.HTTP_201_CREATED,
    )


@api_view(["POST"])
@permission_classes([IsAuthenticated])
def refund(request):
    serializer = RefundRequestSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    try:
        result = process_refund(serializer.validated_data["booking_id"], request.user)
    except PaymentFlowError as exc:
        logger.warning(
            "payments: refund for booking %s failed: %s",
            serializer.validated_data["booking_id"],
            exc.message,
        )
        return _error_response(exc)
    return Response(result.as_dict())


@api_view(["GET"])
@permission_classes([IsAuthenticated])
def refund_quote(request):
    """Preview the refund for cancelling a booking today; no provider call is made."""
    serializer = RefundRequestSerializer(data=request.query_params)
    serializer.is_valid(raise_exception=True)
    try:
        quote = quote_refund(serializer.validated_data["booking_id"], request.user)
    except PaymentFlowError as exc:
        return _error_response(exc)
    return Response(
        {
            "refund_amount": str(quote.refund_amount),
            "refund_percentage": quote.refund_percentage,
            "days_until_start": quote.days_until_start,
        }
    )


class TransactionListView(generics.ListAPIView):
    """Ledger rows visible to the caller; staff see every row."""

    serializer_class = TransactionSerializer
    permission_classes = [IsAuthenticated]
    filter_backends = [DjangoFilterBackend, OrderingFilter]
    filterset_class = TransactionFilter
    ordering_fields = ["created_at", "amount"]
    http_method_names = ["get"]

    def get_queryset(self):
        qs = Transaction.objects.select_related("booking", "booking__vehicle")
        user = self.request.user
        if user.is_staff:
            return qs
        return qs.filter(Q(user=user) | Q(actor_email__iexact=user.email))


@api_view(["GET"])
@permission_classes([IsAuthenticated])
def owner_earnings(request):
    """Return ledger balances for the owner's payouts."""
    return Response({"balances": compute_owner_balances(request.user)})
