"""
Username handling for community profiles.

Handles are free-form input folded into a constrained form: lowercase,
whitespace runs collapsed to underscores, only ``[a-z0-9_]`` kept, and at most
24 characters. Normalizing an already-normalized handle returns it unchanged.

Uniqueness is case-insensitive. Views check it up front through
``Profile.objects.username_taken()``; the ``Lower(username)`` unique
constraint on ``Profile`` is the authoritative guard.
"""

import re


USERNAME_MIN_LENGTH = 3
USERNAME_MAX_LENGTH = 24

USERNAME_TOO_SHORT_MESSAGE = (
    "Username must be at least 3 characters (letters/numbers/underscore)."
)
USERNAME_TAKEN_MESSAGE = "That username is already taken. Please choose another one."

_WHITESPACE_RE = re.compile(r"\s+")
_DISALLOWED_RE = re.compile(r"[^a-z0-9_]")


def normalize_username(raw):
    """Fold free-form input into a handle. Never raises; may return ''."""
    value = (raw or "").strip().lower()
    value = _WHITESPACE_RE.sub("_", value)
    value = _DISALLOWED_RE.sub("", value)
    return value[:USERNAME_MAX_LENGTH]


def is_valid_username(clean):
    return len(clean) >= USERNAME_MIN_LENGTH


def short_id(user_id):
    return str(user_id)[:8] if user_id else ""


def display_name(user_id, username=None):
    """Public label for a user: the handle, or ``user_<first 8 of id>``."""
    name = (username or "").strip()
    return name or f"user_{short_id(user_id)}"
