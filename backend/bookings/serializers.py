"""Serializers for booking-related API endpoints."""

from __future__ import annotations

from rest_framework import serializers

from .models import Booking


class BookingSerializer(serializers.ModelSerializer):
    """Read-only view of a booking and its payment state."""

    vehicle_title = serializers.ReadOnlyField(source="vehicle.title")
    vehicle_type = serializers.ReadOnlyField(source="vehicle.vehicle_type")
    vehicle_photo_url = serializers.ReadOnlyField(source="vehicle.photo_url")
    owner_name = serializers.ReadOnlyField(source="owner.display_name")
    owner_email = serializers.ReadOnlyField(source="owner.email")
    renter_name = serializers.ReadOnlyField(source="renter.display_name")
    renter_email = serializers.ReadOnlyField(source="renter.email")
    days = serializers.ReadOnlyField()
    rental_charge = serializers.DecimalField(max_digits=12, decimal_places=2, read_only=True)

    class Meta:
        model = Booking
        fields = (
            "id",
            "status",
            "payment_status",
            "payment_provider",
            "vehicle",
            "vehicle_title",
            "vehicle_type",
            "vehicle_photo_url",
            "owner",
            "owner_name",
            "owner_email",
            "renter",
            "renter_name",
            "renter_email",
            "start_date",
            "end_date",
            "days",
            "subtotal",
            "platform_fee",
            "insurance_cost",
            "extras_total",
            "security_deposit",
            "rental_charge",
            "total_amount",
            "owner_payout",
            "currency",
            "created_at",
            "updated_at",
        )
        read_only_fields = fields
