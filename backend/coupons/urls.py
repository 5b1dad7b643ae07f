from django.urls import path

from . import api

app_name = "coupons"

urlpatterns = [
    path("validate/", api.validate, name="validate"),
]
