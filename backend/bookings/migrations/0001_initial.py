from decimal import Decimal

import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


def _money_field():
    return models.DecimalField(decimal_places=2, default=Decimal("0"), max_digits=12)


class Migration(migrations.Migration):
    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
        ("vehicles", "0001_initial"),
    ]

    operations = [
        migrations.CreateModel(
            name="Booking",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("start_date", models.DateField()),
                ("end_date", models.DateField(help_text="End date (return), must be after start_date.")),
                ("total_days", models.PositiveIntegerField(default=0)),
                ("subtotal", _money_field()),
                ("platform_fee", _money_field()),
                ("insurance_cost", _money_field()),
                ("extras_total", _money_field()),
                ("security_deposit", _money_field()),
                ("total_amount", _money_field()),
                ("owner_payout", _money_field()),
                ("currency", models.CharField(default="USD", max_length=8)),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("pending", "pending"),
                            ("approved", "approved"),
                            ("rejected", "rejected"),
                            ("paid", "paid"),
                            ("active", "active"),
                            ("completed", "completed"),
                            ("cancelled", "cancelled"),
                        ],
                        default="pending",
                        max_length=16,
                    ),
                ),
                (
                    "payment_status",
                    models.CharField(
                        choices=[
                            ("unpaid", "unpaid"),
                            ("paid", "paid"),
                            ("refunded", "refunded"),
                            ("failed", "failed"),
                        ],
                        default="unpaid",
                        max_length=16,
                    ),
                ),
                (
                    "payment_provider",
                    models.CharField(
                        blank=True,
                        choices=[("stripe", "Stripe"), ("mercadopago", "MercadoPago")],
                        default="",
                        help_text="Provider selected at checkout.",
                        max_length=16,
                    ),
                ),
                ("stripe_payment_intent_id", models.CharField(blank=True, default="", max_length=120)),
                ("mercadopago_payment_id", models.CharField(blank=True, default="", max_length=120)),
                ("metadata", models.JSONField(blank=True, default=dict)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "owner",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="bookings_as_owner",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
                (
                    "renter",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="bookings_as_renter",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
                (
                    "vehicle",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="bookings",
                        to="vehicles.vehicle",
                    ),
                ),
            ],
            options={
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(fields=["renter", "status"], name="booking_renter_status_idx"),
                    models.Index(fields=["owner", "status"], name="booking_owner_status_idx"),
                    models.Index(fields=["status", "payment_status"], name="booking_payment_state_idx"),
                ],
            },
        ),
    ]
