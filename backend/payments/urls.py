from django.urls import path

from . import api
from .webhooks import mercadopago_webhook, stripe_webhook

app_name = "payments"

urlpatterns = [
    path("checkout/", api.checkout, name="checkout"),
    path("refunds/", api.refund, name="refund"),
    path("refunds/quote/", api.refund_quote, name="refund_quote"),
    path("transactions/", api.TransactionListView.as_view(), name="transactions"),
    path("owner/earnings/", api.owner_earnings, name="owner_earnings"),
    path("webhooks/stripe/", stripe_webhook, name="stripe_webhook"),
    path("webhooks/mercadopago/", mercadopago_webhook, name="mercadopago_webhook"),
]
