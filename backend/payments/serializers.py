from decimal import Decimal

from rest_framework import serializers

from .models import Transaction
from .providers import PROVIDERS


def _format_money(value) -> str:
    return f"{Decimal(value).quantize(Decimal('0.01'))}"


class TransactionSerializer(serializers.ModelSerializer):
    vehicle_title = serializers.CharField(source="booking.vehicle.title", read_only=True)
    amount = serializers.SerializerMethodField()

    class Meta:
        model = Transaction
        fields = [
            "id",
            "booking_id",
            "vehicle_title",
            "kind",
            "status",
            "amount",
            "currency",
            "actor_email",
            "actor_role",
            "description",
            "provider_reference",
            "metadata",
            "created_at",
        ]
        read_only_fields = fields

    def get_amount(self, obj: Transaction) -> str:
        return _format_money(obj.amount)


class CheckoutRequestSerializer(serializers.Serializer):
    booking_id = serializers.IntegerField(min_value=1)
    provider = serializers.ChoiceField(choices=sorted(PROVIDERS), required=False)


class RefundRequestSerializer(serializers.Serializer):
    booking_id = serializers.IntegerField(min_value=1)
