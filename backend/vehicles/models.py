from django.conf import settings
from django.db import models


class Vehicle(models.Model):
    class VehicleType(models.TextChoices):
        CAR = "car", "Car"
        MOTORCYCLE = "motorcycle", "Motorcycle"
        SCOOTER = "scooter", "Scooter"
        ATV = "atv", "ATV"
        BOAT = "boat", "Boat"
        BICYCLE = "bicycle", "Bicycle"

    owner = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="vehicles",
    )
    title = models.CharField(max_length=140)
    vehicle_type = models.CharField(
        max_length=16,
        choices=VehicleType.choices,
        default=VehicleType.CAR,
    )
    photo_url = models.URLField(max_length=1024, blank=True, default="")
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-created_at"]

    def __str__(self) -> str:
        return f"{self.title} ({self.vehicle_type})"
