"""Shared fixtures for the community test suite.

Fixture overview
----------------
alice, bob, carol   signed-up, active users with empty profiles
sea_forum           the seeded sea personnel forum
shore_forum         the seeded shore personnel forum
question            an open question by alice in the sea forum
"""

import pytest

from community.models import SEA_FORUM_SLUG, SHORE_FORUM_SLUG, Forum, Question, User


@pytest.fixture(autouse=True)
def _test_settings(settings):
    """Plain HTTP, unhashed static files and a fast password hasher."""
    settings.SECURE_SSL_REDIRECT = False
    settings.SESSION_COOKIE_SECURE = False
    settings.CSRF_COOKIE_SECURE = False
    settings.STORAGES = {
        **settings.STORAGES,
        "staticfiles": {
            "BACKEND": "django.contrib.staticfiles.storage.StaticFilesStorage",
        },
    }
    settings.PASSWORD_HASHERS = ["django.contrib.auth.hashers.MD5PasswordHasher"]


# -- Users --------------------------------------------------------------------

def _make_user(email, username=None):
    user = User.objects.create_user(email=email, password="correct-horse-1")
    if username:
        user.profile.username = username
        user.profile.save()
    return user


@pytest.fixture
def alice(db):
    return _make_user("alice@example.com", username="alice")


@pytest.fixture
def bob(db):
    return _make_user("bob@example.com", username="seaman21")


@pytest.fixture
def carol(db):
    """User who never picked a username."""
    return _make_user("carol@example.com")


# -- Forum content ------------------------------------------------------------

@pytest.fixture
def sea_forum(db):
    forum, _ = Forum.objects.get_or_create(
        slug=SEA_FORUM_SLUG, defaults={"title": "Topics related to Sea Personnel"}
    )
    return forum


@pytest.fixture
def shore_forum(db):
    forum, _ = Forum.objects.get_or_create(
        slug=SHORE_FORUM_SLUG, defaults={"title": "Topics related to Shore Personnel"}
    )
    return forum


@pytest.fixture
def question(alice, sea_forum):
    return Question.objects.create(
        title="Ballast pump cavitation",
        body="Pump loses suction at low tank levels.",
        user=alice,
        forum=sea_forum,
    )
