"""Admin smoke tests for the email-login user model."""

import pytest

from community.models import User


pytestmark = pytest.mark.django_db


@pytest.fixture
def staff_client(client):
    admin_user = User.objects.create_superuser(email="admin@example.com", password="pw-admin-1")
    client.force_login(admin_user)
    return client


def test_create_superuser_flags():
    admin_user = User.objects.create_superuser(email="Root@Example.com", password="x")

    assert admin_user.is_staff and admin_user.is_superuser
    assert admin_user.email == "root@example.com"
    assert admin_user.profile.username is None


def test_create_user_requires_email():
    with pytest.raises(ValueError):
        User.objects.create_user(email="", password="x")


@pytest.mark.parametrize("model", [
    "user", "forum", "question", "answer", "messagethread", "message", "notification",
])
def test_changelists_render(staff_client, question, model):
    response = staff_client.get(f"/admin/community/{model}/")
    assert response.status_code == 200


def test_user_change_page_renders(staff_client, alice):
    response = staff_client.get(f"/admin/community/user/{alice.pk}/change/")
    assert response.status_code == 200


def test_activate_users_action(staff_client):
    pending = User.objects.create_user(
        email="pending@example.com", password="x", is_active=False, activation_token="tok"
    )

    staff_client.post("/admin/community/user/", {
        "action": "activate_users",
        "_selected_action": [str(pending.pk)],
    })

    pending.refresh_from_db()
    assert pending.is_active is True
    assert pending.activation_token == ""
