"""Coupon validation endpoint used while composing a booking price."""

from __future__ import annotations

from decimal import Decimal

from rest_framework import serializers, status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from core.exceptions import ValidationFailed

from .services import validate_coupon


class CouponValidateSerializer(serializers.Serializer):
    code = serializers.CharField(max_length=40)
    total_amount = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=Decimal("0"))
    vehicle_type = serializers.CharField(max_length=16, required=False, allow_blank=True)


@api_view(["POST"])
@permission_classes([IsAuthenticated])
def validate(request):
    serializer = CouponValidateSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    data = serializer.validated_data
    try:
        quote = validate_coupon(
            data["code"],
            data["total_amount"],
            data.get("vehicle_type") or None,
            request.user,
        )
    except ValidationFailed as exc:
        return Response(
            {"valid": False, "reason": exc.reason, "error": exc.message},
            status=status.HTTP_400_BAD_REQUEST,
        )
    coupon = quote.coupon
    return Response(
        {
            "valid": True,
            "code": coupon.code,
            "discount_type": coupon.discount_type,
            "discount_amount": str(quote.discount_amount),
            "final_amount": str(quote.final_amount),
        }
    )
