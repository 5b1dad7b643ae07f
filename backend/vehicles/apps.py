"""Application configuration for the vehicles app."""

from django.apps import AppConfig


class VehiclesConfig(AppConfig):
    """Register the vehicles app."""

    default_auto_field = "django.db.models.BigAutoField"
    name = "vehicles"
