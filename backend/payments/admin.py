from django.contrib import admin

from .models import Transaction


@admin.register(Transaction)
class TransactionAdmin(admin.ModelAdmin):
    list_display = (
        "id",
        "booking",
        "kind",
        "amount",
        "currency",
        "status",
        "actor_email",
        "actor_role",
        "created_at",
    )
    list_filter = ("kind", "status", "actor_role", "currency")
    search_fields = ("actor_email", "provider_reference", "booking__id")
    readonly_fields = [field.name for field in Transaction._meta.fields]

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False
