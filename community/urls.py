"""
================================================================================
SHIPPING AID COMMUNITY - URL CONFIGURATION
================================================================================

@file        urls.py
@description URL routing for the community app

URL STRUCTURE OVERVIEW
================================================================================
1. Core Pages & Authentication (/, login, logout, activate)
2. Forums & Questions (forum pages, ask, question detail and owner actions)
3. Private Messages (inbox, threads)
4. Notifications (list, mark read)
5. Profile Settings

NAMING CONVENTIONS
================================================================================
URL names use underscore_case:
- Resource actions: <action>_<resource> (e.g., 'close_question')
- Detail pages: <resource>_detail (e.g., 'thread_detail')

URL PARAMETER TYPES
================================================================================
- <slug:slug>: Forum slug
- <uuid:question_id>, <uuid:thread_id>, <uuid:notification_id>: Row ids
- <str:token>: Activation token string

ACCESS
================================================================================
- /ask, /notifications and /q/... are gated by LoginRequiredPathMiddleware
- Other signed-in views use @login_required
- State-changing question and notification actions accept POST only

================================================================================
"""

from django.urls import path
from . import views


urlpatterns = [

    # ========================================================================
    # SECTION 1: CORE PAGES & AUTHENTICATION
    # ========================================================================

    path("", views.index, name="index"),  # Landing page / forum list

    path("login", views.login_view, name="login"),  # Sign in and sign up

    path("logout", views.logout_view, name="logout"),

    path(
        "activate/<str:token>/",
        views.activate,
        name="activate"
    ),  # Email confirmation link


    # ========================================================================
    # SECTION 2: FORUMS & QUESTIONS
    # ========================================================================

    path("f/<slug:slug>", views.forum_detail, name="forum_detail"),  # Forum landing

    path("q/<slug:slug>", views.forum_questions, name="forum_questions"),  # Question list

    path("ask", views.ask, name="ask"),  # New question (?forum=<slug>)

    path(
        "questions/<uuid:question_id>",
        views.question_detail,
        name="question_detail"
    ),  # Question with answers (public)

    path(
        "questions/<uuid:question_id>/answer",
        views.answer_question,
        name="answer_question"
    ),

    path(
        "questions/<uuid:question_id>/edit",
        views.edit_question,
        name="edit_question"
    ),  # Owner only

    path(
        "questions/<uuid:question_id>/close",
        views.close_question,
        name="close_question"
    ),  # Owner only

    path(
        "questions/<uuid:question_id>/delete",
        views.delete_question,
        name="delete_question"
    ),  # Owner only, removes answers too


    # ========================================================================
    # SECTION 3: PRIVATE MESSAGES
    # ========================================================================

    path("messages", views.messages_inbox, name="messages_inbox"),  # Inbox, ?to=<user>

    path(
        "messages/<uuid:thread_id>",
        views.thread_detail,
        name="thread_detail"
    ),  # Conversation (participants only)


    # ========================================================================
    # SECTION 4: NOTIFICATIONS
    # ========================================================================

    path("notifications", views.notifications_view, name="notifications"),

    path(
        "notifications/<uuid:notification_id>/read",
        views.mark_notification_read,
        name="mark_notification_read"
    ),

    path(
        "notifications/read-all",
        views.mark_all_notifications_read,
        name="mark_all_notifications_read"
    ),


    # ========================================================================
    # SECTION 5: PROFILE SETTINGS
    # ========================================================================

    path("settings/profile", views.profile_settings, name="profile_settings"),
]
