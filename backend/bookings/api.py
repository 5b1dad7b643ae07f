"""Read API for bookings; payment actions live under /api/payments/."""

from __future__ import annotations

from django.db.models import Q
from django.shortcuts import get_object_or_404
from rest_framework import permissions, viewsets
from rest_framework.decorators import action

from .models import Booking
from .serializers import BookingSerializer


class IsBookingParticipant(permissions.BasePermission):
    """Allow access only to users tied to the booking."""

    def has_permission(self, request, view) -> bool:
        """Always allow; actual checks happen at object level."""
        return True

    def has_object_permission(self, request, view, obj: Booking) -> bool:
        """Check that the user is the booking owner or renter."""
        user_id = getattr(request.user, "id", None)
        return user_id in (obj.owner_id, obj.renter_id)


class BookingViewSet(viewsets.ReadOnlyModelViewSet):
    serializer_class = BookingSerializer
    permission_classes = (permissions.IsAuthenticated, IsBookingParticipant)
    filterset_fields = ("status", "payment_status", "payment_provider")
    ordering_fields = ("created_at", "start_date", "total_amount")

    def get_queryset(self):
        """Restrict bookings to the authenticated participant."""
        user = self.request.user
        if not user.is_authenticated:
            return Booking.objects.none()
        queryset = Booking.objects.select_related("vehicle", "owner", "renter").filter(
            Q(owner=user) | Q(renter=user)
        )
        if self.action == "renting":
            queryset = queryset.filter(renter=user)
        return queryset.order_by("-created_at")

    def get_object(self):
        """Fetch a single booking and enforce participant permissions."""
        obj = get_object_or_404(
            Booking.objects.select_related("vehicle", "owner", "renter"),
            pk=self.kwargs["pk"],
        )
        self.check_object_permissions(self.request, obj)
        return obj

    @action(detail=False, methods=["get"], url_path="renting")
    def renting(self, request, *args, **kwargs):
        """Bookings where the caller is the renter."""
        return self.list(request, *args, **kwargs)
