import pytest
from django.contrib.auth import get_user_model
from django.urls import reverse

pytestmark = pytest.mark.django_db

User = get_user_model()


@pytest.fixture
def user():
    return User.objects.create_user(
        username="demo",
        email="demo@example.com",
        password="Secret123!",
        first_name="Demo",
        last_name="User",
    )


def test_token_pair_and_refresh(api_client, user):
    response = api_client.post(
        reverse("users:token_obtain_pair"),
        {"username": "demo", "password": "Secret123!"},
        format="json",
    )

    assert response.status_code == 200
    assert {"access", "refresh"} <= set(response.data)

    refreshed = api_client.post(
        reverse("users:token_refresh"), {"refresh": response.data["refresh"]}, format="json"
    )
    assert refreshed.status_code == 200
    assert "access" in refreshed.data


def test_bad_password_is_rejected(api_client, user):
    response = api_client.post(
        reverse("users:token_obtain_pair"),
        {"username": "demo", "password": "wrong"},
        format="json",
    )

    assert response.status_code == 401


def test_display_name_falls_back_to_username():
    user = User(username="solo")

    assert user.display_name == "solo"
    assert User(username="x", first_name="Ada", last_name="Lovelace").display_name == "Ada Lovelace"
