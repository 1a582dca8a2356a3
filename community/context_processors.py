"""
================================================================================
SHIPPING AID COMMUNITY - CONTEXT PROCESSORS
================================================================================

@file        context_processors.py
@description Template-wide data for the top bar

CONTEXT PROCESSORS DEFINED
================================================================================
1. top_bar() - Signed-in user's label, avatar and unread notification count

Available in all templates as:
    {{ top_bar_label }}
    {{ top_bar_avatar }}
    {{ unread_notifications_count }}

USAGE IN SETTINGS.PY
================================================================================
TEMPLATES[0]['OPTIONS']['context_processors'] += [
    'community.context_processors.top_bar',
]

================================================================================
"""

from .models import Notification, Profile
from .usernames import display_name


def top_bar(request):
    """
    Inject the signed-in user's top bar data into all templates.

    Anonymous visitors get empty values without touching the database.

    Returns:
        dict:
            - top_bar_label (str|None): username, or user_<short id>
            - top_bar_avatar (str|None): avatar path
            - unread_notifications_count (int)
    """
    if not request.user.is_authenticated:
        return {
            "top_bar_label": None,
            "top_bar_avatar": None,
            "unread_notifications_count": 0,
        }

    profile = Profile.objects.filter(user=request.user).first()
    username = profile.username if profile else None

    return {
        "top_bar_label": display_name(request.user.pk, username),
        "top_bar_avatar": profile.avatar_url if profile else None,
        "unread_notifications_count": Notification.objects.filter(
            user=request.user
        ).unread().count(),
    }
