"""Profile settings tests.

Tests cover:
    - Username normalization on save
    - Too-short and already-taken handles (case-insensitive)
    - A uniqueness conflict caught only by the database constraint
    - Field cleaning: age clamping, avatar and personnel whitelists, text limits
"""

from unittest import mock

import pytest
from django.db import IntegrityError, transaction
from django.urls import reverse

from community.models import AVATAR_CHOICES, Profile, ProfileQuerySet, User
from community.usernames import USERNAME_TAKEN_MESSAGE, USERNAME_TOO_SHORT_MESSAGE


pytestmark = pytest.mark.django_db

URL = "/settings/profile"


def _post(client, **fields):
    data = {"username": "chief_eng"}
    data.update(fields)
    return client.post(URL, data, follow=True)


def test_url_name_matches_path():
    assert reverse("profile_settings") == URL


def test_requires_login(client):
    response = client.get(URL)
    assert response.status_code == 302
    assert response.url.startswith("/login")


def test_saves_normalized_username(client, carol):
    client.force_login(carol)

    response = _post(client, username="  Chief Engineer  ")

    assert "Saved ✅" in response.content.decode()
    carol.profile.refresh_from_db()
    assert carol.profile.username == "chief_engineer"


def test_rejects_short_username(client, carol):
    client.force_login(carol)

    response = _post(client, username=" a! ")

    assert USERNAME_TOO_SHORT_MESSAGE in response.content.decode()
    carol.profile.refresh_from_db()
    assert carol.profile.username is None


def test_rejects_taken_username_ignoring_case(client, bob, carol):
    client.force_login(carol)

    response = _post(client, username="SeaMan21")

    assert USERNAME_TAKEN_MESSAGE in response.content.decode()
    carol.profile.refresh_from_db()
    assert carol.profile.username is None


def test_keeping_own_username_is_not_a_conflict(client, bob):
    client.force_login(bob)

    response = _post(client, username="seaman21", bio="Bosun")

    assert "Saved ✅" in response.content.decode()
    bob.profile.refresh_from_db()
    assert bob.profile.bio == "Bosun"


def test_database_constraint_conflict_shows_taken_message(client, bob, carol):
    """A conflict that slips past the pre-check gets the same message."""
    client.force_login(carol)

    with mock.patch.object(ProfileQuerySet, "username_taken", return_value=False):
        response = _post(client, username="SEAMAN21")

    assert response.status_code == 200
    assert USERNAME_TAKEN_MESSAGE in response.content.decode()
    carol.profile.refresh_from_db()
    assert carol.profile.username is None


def test_case_insensitive_constraint(bob, carol):
    carol.profile.username = "SeaMan21"
    with pytest.raises(IntegrityError):
        with transaction.atomic():
            carol.profile.save()


def test_profiles_without_username_do_not_conflict(carol, db):
    other = User.objects.create_user(email="dave@example.com", password="pw-12345678")

    assert Profile.objects.filter(username__isnull=True, user__in=[carol, other]).count() == 2


@pytest.mark.parametrize("raw, expected", [
    ("150", 120),
    ("-5", 0),
    ("42", 42),
    ("42.7", 42),
    ("", None),
    ("abc", None),
])
def test_age_is_clamped(client, carol, raw, expected):
    client.force_login(carol)

    _post(client, age=raw)

    carol.profile.refresh_from_db()
    assert carol.profile.age == expected


def test_fields_are_cleaned(client, carol):
    client.force_login(carol)
    avatar = AVATAR_CHOICES[2][0]

    _post(
        client,
        avatar_url=avatar,
        personnel_type="shore",
        gender="  " + "x" * 40,
        specialty="   ",
        bio="b" * 600,
    )

    profile = Profile.objects.get(user=carol)
    assert profile.avatar_url == avatar
    assert profile.personnel_type == "shore"
    assert profile.gender == "x" * 32
    assert profile.specialty is None
    assert len(profile.bio) == 500


def test_unknown_choices_are_dropped(client, carol):
    client.force_login(carol)

    _post(client, avatar_url="https://evil.example.com/a.png", personnel_type="pilot")

    profile = Profile.objects.get(user=carol)
    assert profile.avatar_url is None
    assert profile.personnel_type is None


def test_context_offers_choices(client, carol):
    client.force_login(carol)

    response = client.get(URL)

    assert response.context["avatar_choices"] == AVATAR_CHOICES
    assert response.context["profile"].pk == carol.pk


@pytest.mark.parametrize("username", ["a", "SEAMAN21"])
def test_rejected_form_keeps_submitted_values(client, bob, carol, username):
    client.force_login(carol)

    response = _post(
        client, username=username, bio="Bosun on a VLCC", specialty="Bosun", age="41",
    )

    body = response.content.decode()
    assert "Bosun on a VLCC" in body
    assert response.context["profile"].specialty == "Bosun"
    assert response.context["profile"].age == 41
    stored = Profile.objects.get(user=carol)
    assert stored.bio is None
    assert stored.username is None


def test_database_conflict_keeps_submitted_values(client, bob, carol):
    client.force_login(carol)

    with mock.patch.object(ProfileQuerySet, "username_taken", return_value=False):
        response = _post(client, username="seaman21", bio="Chief cook")

    assert USERNAME_TAKEN_MESSAGE in response.content.decode()
    assert "Chief cook" in response.content.decode()
    assert Profile.objects.get(user=carol).bio is None
