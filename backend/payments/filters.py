import django_filters as filters

from .models import Transaction


class TransactionFilter(filters.FilterSet):
    kind = filters.CharFilter(field_name="kind", lookup_expr="iexact")
    status = filters.CharFilter(field_name="status", lookup_expr="iexact")
    actor_role = filters.CharFilter(field_name="actor_role", lookup_expr="iexact")
    booking = filters.NumberFilter(field_name="booking_id")
    created_at_after = filters.IsoDateTimeFilter(field_name="created_at", lookup_expr="gte")
    created_at_before = filters.IsoDateTimeFilter(field_name="created_at", lookup_expr="lte")

    class Meta:
        model = Transaction
        fields = ["kind", "status", "actor_role", "booking"]
