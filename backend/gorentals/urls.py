from django.conf import settings
from django.contrib import admin
from django.urls import include, path

urlpatterns = [
    path("api/users/", include("users.urls")),
    path("api/bookings/", include(("bookings.urls", "bookings"), namespace="bookings")),
    path("api/payments/", include("payments.urls")),
    path("api/coupons/", include("coupons.urls")),
]

if settings.ENABLE_DJANGO_ADMIN:
    urlpatterns.insert(0, path("admin/", admin.site.urls))
