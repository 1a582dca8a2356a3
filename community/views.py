import logging
import re
from datetime import datetime

from django.conf import settings
from django.contrib import messages
from django.contrib.auth import authenticate, login, logout
from django.contrib.auth.decorators import login_required
from django.core.exceptions import ValidationError
from django.core.mail import EmailMultiAlternatives
from django.db import IntegrityError, transaction
from django.db.models import OuterRef, Subquery
from django.http import HttpResponseForbidden, HttpResponseRedirect
from django.shortcuts import get_object_or_404, redirect, render
from django.template.loader import render_to_string
from django.urls import reverse
from django.utils.crypto import get_random_string
from django.utils.html import strip_tags
from django.utils.http import url_has_allowed_host_and_scheme
from django.views.decorators.http import require_POST

from .models import (
    AVATAR_CHOICES, PERSONNEL_CHOICES, Answer, Forum, Message, MessageThread,
    Notification, Profile, Question, User,
)
from .usernames import (
    USERNAME_TAKEN_MESSAGE, USERNAME_TOO_SHORT_MESSAGE, display_name,
    is_valid_username, normalize_username,
)


# Logger
logger = logging.getLogger(__name__)

UUID_RE = re.compile(
    r"^[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}$", re.IGNORECASE
)
PASSWORD_MIN_LENGTH = 8


def _first_error(error):
    return error.messages[0] if error.messages else str(error)


def _safe_next(request, fallback="/"):
    next_url = request.POST.get("next") or request.GET.get("next") or ""
    if next_url and url_has_allowed_host_and_scheme(
        next_url, allowed_hosts={request.get_host()}, require_https=request.is_secure()
    ):
        return next_url
    return fallback


# ============================================================================
# HOME & AUTHENTICATION
# ============================================================================

def index(request):
    forums = Forum.objects.all() if request.user.is_authenticated else []
    return render(request, "community/index.html", {"forums": forums})


def login_view(request):
    mode = "signup" if request.GET.get("mode", "").lower() == "signup" else "signin"
    notice = request.GET.get("msg", "")

    if request.method == "POST":
        mode = "signup" if request.POST.get("mode") == "signup" else "signin"
        email = request.POST.get("email", "").strip().lower()
        password = request.POST.get("password", "")

        if mode == "signup":
            return register(request, email, password)

        user = authenticate(request, email=email, password=password)
        if user is not None:
            login(request, user)
            return HttpResponseRedirect(_safe_next(request))

        pending = User.objects.filter(email__iexact=email, is_active=False).first()
        if pending is not None and pending.check_password(password):
            messages.error(request, "Please confirm your email address before signing in.")
        else:
            messages.error(request, "Invalid email or password.")

    return render(request, "community/login.html", {
        "mode": mode,
        "notice": notice,
        "next": request.POST.get("next") or request.GET.get("next", ""),
    })


def register(request, email, password):
    context = {"mode": "signup", "next": request.POST.get("next", "")}

    errors = []
    if not email or "@" not in email or "." not in email.split("@")[-1]:
        errors.append("Please enter a valid email address.")
    if len(password) < PASSWORD_MIN_LENGTH:
        errors.append(f"Password must be at least {PASSWORD_MIN_LENGTH} characters.")

    if errors:
        for error in errors:
            messages.error(request, error)
        return render(request, "community/login.html", context)

    if User.objects.filter(email__iexact=email).exists():
        messages.error(request, "Email already registered.")
        return render(request, "community/login.html", context)

    try:
        user = User.objects.create_user(
            email=email,
            password=password,
            is_active=False,
            activation_token=get_random_string(32),
        )
    except IntegrityError as e:
        logger.warning(f"IntegrityError during registration: {str(e)}")
        messages.error(request, "Email already registered.")
        return render(request, "community/login.html", context)

    activation_link = request.build_absolute_uri(
        reverse("activate", kwargs={"token": user.activation_token})
    )
    email_context = {
        "email": email,
        "activation_link": activation_link,
        "site_name": settings.SITE_NAME,
        "support_email": settings.DEFAULT_FROM_EMAIL,
        "current_year": datetime.now().year,
    }

    try:
        html_message = render_to_string("community/emails/activation_email.html", email_context)
        email_msg = EmailMultiAlternatives(
            subject=f"Confirm your {settings.SITE_NAME} account",
            body=strip_tags(html_message),
            from_email=settings.DEFAULT_FROM_EMAIL,
            to=[email],
        )
        email_msg.attach_alternative(html_message, "text/html")
        email_msg.send(fail_silently=False)
    except Exception as email_error:
        user.delete()
        logger.error(f"Activation email failed for {email}: {str(email_error)}")
        messages.error(request, "Failed to send activation email. Please try again later.")
        return render(request, "community/login.html", context)

    logger.info(f"Registration success for {email}. Activation email sent.")
    messages.success(
        request, "Account created. Please check your email to confirm your address."
    )
    return render(request, "community/login.html", {**context, "mode": "signin"})


def activate(request, token):
    user = User.objects.filter(activation_token=token, is_active=False).first()
    if user is None:
        messages.error(request, "Invalid or expired activation link.")
        return render(request, "community/login.html", {"mode": "signin"}, status=404)

    user.is_active = True
    user.activation_token = ""
    user.save(update_fields=["is_active", "activation_token"])
    login(request, user, backend="django.contrib.auth.backends.ModelBackend")
    logger.info(f"Account {user.pk} activated")
    messages.success(request, "Your email is confirmed. Welcome aboard!")
    return redirect("index")


def logout_view(request):
    logout(request)
    return HttpResponseRedirect(reverse("index"))


# ============================================================================
# FORUMS & QUESTIONS
# ============================================================================

def forum_detail(request, slug):
    forum = Forum.objects.filter(slug=slug).first()
    if forum is None:
        messages.error(request, "Forum not found.")
        return render(request, "community/forum.html", {"forum": None}, status=404)
    return render(request, "community/forum.html", {"forum": forum})


def question_activity(questions, answers):
    """
    Reply count and last activity for each question.

    ``answers`` must be ordered oldest first. A question without answers
    reports its own creation as the last activity.

    Returns:
        (counts, last): dicts keyed by question id; ``last`` maps to
        ``{"at": datetime, "by": user id}``
    """
    counts = {}
    last = {}
    for q in questions:
        counts[q.pk] = 0
        last[q.pk] = {"at": q.created_at, "by": q.user_id}
    for a in answers:
        counts[a["question_id"]] = counts.get(a["question_id"], 0) + 1
        last[a["question_id"]] = {"at": a["created_at"], "by": a["user_id"]}
    return counts, last


@login_required
def forum_questions(request, slug):
    forum = Forum.objects.filter(slug=slug).first()
    if forum is None:
        messages.error(request, "Forum not found.")
        return render(request, "community/forum_questions.html", {
            "forum": None, "rows": [],
        }, status=404)

    questions = list(forum.questions.order_by("-created_at"))
    answers = Answer.objects.filter(question__in=questions).order_by(
        "created_at"
    ).values("question_id", "user_id", "created_at")
    counts, last = question_activity(questions, answers)

    names = Profile.objects.display_names(
        [q.user_id for q in questions] + [x["by"] for x in last.values()]
    )

    rows = []
    for q in questions:
        activity = last[q.pk]
        rows.append({
            "question": q,
            "author": names.get(str(q.user_id), display_name(q.user_id)),
            "replies": counts[q.pk],
            "last_at": activity["at"],
            "last_by_id": activity["by"],
            "last_by": names.get(str(activity["by"]), display_name(activity["by"])),
        })

    return render(request, "community/forum_questions.html", {"forum": forum, "rows": rows})


@login_required
def ask(request):
    slug = Forum.normalize_slug(request.GET.get("forum") or request.POST.get("forum"))
    forum = Forum.objects.filter(slug=slug).first()
    context = {"forum": forum, "forum_slug": slug, "title": "", "body": ""}

    if forum is None:
        messages.error(request, "Forum not found.")
        return render(request, "community/ask.html", context, status=404)

    if request.method == "POST":
        title = request.POST.get("title", "").strip()
        body = request.POST.get("body", "").strip()
        context.update(title=title, body=body)

        if not title:
            messages.error(request, "Title is required.")
            return render(request, "community/ask.html", context)

        Question.objects.create(title=title, body=body, user=request.user, forum=forum)
        return redirect("forum_questions", slug=forum.slug)

    return render(request, "community/ask.html", context)


def question_detail(request, question_id):
    question = Question.objects.select_related("forum").filter(pk=question_id).first()
    if question is None:
        messages.error(request, "Question not found.")
        return render(request, "community/question_detail.html", {"question": None}, status=404)

    answers = list(question.answers.order_by("created_at"))
    names = Profile.objects.display_names([question.user_id] + [a.user_id for a in answers])

    return render(request, "community/question_detail.html", {
        "question": question,
        "forum": question.forum,
        "owner_name": names.get(str(question.user_id)),
        "answers": answers,
        "names": names,
        "is_owner": question.is_owned_by(request.user),
        "can_reply": request.user.is_authenticated and not question.is_closed,
    })


@login_required
@require_POST
def answer_question(request, question_id):
    question = get_object_or_404(Question, pk=question_id)
    try:
        question.add_answer(request.user, request.POST.get("body", ""))
    except ValidationError as e:
        messages.error(request, _first_error(e))
    return redirect("question_detail", question_id=question.pk)


@login_required
@require_POST
def edit_question(request, question_id):
    question = get_object_or_404(Question, pk=question_id)
    if not question.is_owned_by(request.user):
        return HttpResponseForbidden("Only the author can edit this question.")
    try:
        question.edit(request.POST.get("title", ""), request.POST.get("body", ""))
    except ValidationError as e:
        messages.error(request, _first_error(e))
    return redirect("question_detail", question_id=question.pk)


@login_required
@require_POST
def close_question(request, question_id):
    question = get_object_or_404(Question, pk=question_id)
    if not question.is_owned_by(request.user):
        return HttpResponseForbidden("Only the author can close this question.")
    question.close()
    messages.success(request, "Question closed. No new answers will be accepted.")
    return redirect("question_detail", question_id=question.pk)


@login_required
@require_POST
def delete_question(request, question_id):
    question = get_object_or_404(Question.objects.select_related("forum"), pk=question_id)
    if not question.is_owned_by(request.user):
        return HttpResponseForbidden("Only the author can delete this question.")

    forum = question.forum
    logger.info(f"Question {question.pk} deleted by {request.user.pk}")
    question.delete()
    messages.success(request, "Question deleted.")

    if forum is not None:
        return redirect("forum_questions", slug=forum.slug)
    return redirect("index")


# ============================================================================
# PRIVATE MESSAGES
# ============================================================================

def resolve_target_user(raw):
    """Find a user by id or (case-insensitive) username; None if missing."""
    raw = (raw or "").strip()
    if not raw:
        return None
    if UUID_RE.match(raw):
        return User.objects.filter(pk=raw).first()
    profile = Profile.objects.select_related("user").filter(username__iexact=raw).first()
    return profile.user if profile else None


@login_required
def messages_inbox(request):
    if request.method == "POST":
        raw = request.POST.get("target", "").strip()
        if not raw:
            messages.error(request, "Enter a username or user id.")
            return redirect("messages_inbox")

        other = resolve_target_user(raw)
        if other is None:
            messages.error(request, "User not found.")
            return redirect("messages_inbox")

        try:
            thread, _ = MessageThread.objects.resolve(request.user, other)
        except ValidationError as e:
            messages.error(request, _first_error(e))
            return redirect("messages_inbox")
        return redirect("thread_detail", thread_id=thread.pk)

    target = None
    to = request.GET.get("to")
    if to:
        target_user = resolve_target_user(to)
        if target_user is None:
            messages.error(request, "User not found.")
        else:
            target, _ = Profile.objects.get_or_create(user=target_user)

    newest = Message.objects.filter(thread=OuterRef("pk")).order_by("-created_at")
    threads = list(
        MessageThread.objects.for_user(request.user).annotate(
            latest_message_id=Subquery(newest.values("pk")[:1])
        )
    )
    latest = Message.objects.in_bulk(
        [t.latest_message_id for t in threads if t.latest_message_id]
    )
    other_ids = [t.other_participant_id(request.user) for t in threads]
    names = Profile.objects.display_names(other_ids)
    avatars = dict(
        Profile.objects.filter(user_id__in=other_ids).values_list("user_id", "avatar_url")
    )

    conversations = []
    for thread in threads:
        other_id = thread.other_participant_id(request.user)
        conversations.append({
            "thread": thread,
            "other_name": names.get(str(other_id), display_name(other_id)),
            "other_avatar": avatars.get(other_id),
            "latest_message": latest.get(thread.latest_message_id),
        })
    conversations.sort(
        key=lambda c: c["latest_message"].created_at if c["latest_message"] else c["thread"].created_at,
        reverse=True,
    )

    return render(request, "community/messages_inbox.html", {
        "target": target,
        "conversations": conversations,
    })


@login_required
def thread_detail(request, thread_id):
    thread = MessageThread.objects.filter(pk=thread_id).first()
    if thread is None:
        messages.error(request, "Thread not found.")
        return render(request, "community/thread.html", {"thread": None}, status=404)

    if not thread.has_participant(request.user):
        messages.error(request, "You do not have access to this conversation.")
        return render(request, "community/thread.html", {"thread": None}, status=403)

    if request.method == "POST":
        try:
            thread.post_message(request.user, request.POST.get("body", ""))
        except ValidationError as e:
            messages.error(request, _first_error(e))
        return redirect("thread_detail", thread_id=thread.pk)

    other_id = thread.other_participant_id(request.user)
    other = Profile.objects.filter(user_id=other_id).first()
    thread_messages = list(thread.messages.order_by("created_at"))
    names = Profile.objects.display_names(
        [request.user.pk, other_id] + [m.sender_id for m in thread_messages]
    )

    return render(request, "community/thread.html", {
        "thread": thread,
        "other_name": names.get(str(other_id)),
        "other_avatar": other.avatar_url if other else None,
        "thread_messages": thread_messages,
        "names": names,
    })


# ============================================================================
# NOTIFICATIONS
# ============================================================================

@login_required
def notifications_view(request):
    notifs = request.user.notifications.all()
    return render(request, "community/notifications.html", {"notifications": notifs})


@login_required
@require_POST
def mark_notification_read(request, notification_id):
    notification = get_object_or_404(Notification, pk=notification_id, user=request.user)
    if not notification.read:
        notification.read = True
        notification.save(update_fields=["read"])
    return redirect("notifications")


@login_required
@require_POST
def mark_all_notifications_read(request):
    request.user.notifications.mark_all_as_read()
    return redirect("notifications")


# ============================================================================
# PROFILE SETTINGS
# ============================================================================

def _clean_age(raw):
    raw = (raw or "").strip()
    if not raw:
        return None
    try:
        age = int(float(raw))
    except (TypeError, ValueError, OverflowError):
        return None
    return max(0, min(120, age))


def _clean_text(raw, max_length):
    value = (raw or "").strip()
    return value[:max_length] if value else None


@login_required
def profile_settings(request):
    profile, _ = Profile.objects.get_or_create(user=request.user)
    avatar_paths = [path for path, _ in AVATAR_CHOICES]
    personnel_values = [value for value, _ in PERSONNEL_CHOICES]
    context = {
        "profile": profile,
        "avatar_choices": AVATAR_CHOICES,
        "personnel_choices": PERSONNEL_CHOICES,
    }

    if request.method == "POST":
        raw_username = request.POST.get("username", "")
        clean_username = normalize_username(raw_username)
        avatar = request.POST.get("avatar_url") or None
        personnel_type = request.POST.get("personnel_type", "").strip()

        # Submitted values stay on the unsaved instance so a rejected form re-renders them
        profile.username = clean_username or raw_username.strip() or None
        profile.avatar_url = avatar if avatar in avatar_paths else None
        profile.age = _clean_age(request.POST.get("age"))
        profile.gender = _clean_text(request.POST.get("gender"), 32)
        profile.specialty = _clean_text(request.POST.get("specialty"), 80)
        profile.personnel_type = personnel_type if personnel_type in personnel_values else None
        profile.bio = _clean_text(request.POST.get("bio"), 500)

        if not is_valid_username(clean_username):
            messages.error(request, USERNAME_TOO_SHORT_MESSAGE)
            return render(request, "community/profile_settings.html", context)

        if Profile.objects.username_taken(clean_username, exclude_user=request.user):
            messages.error(request, USERNAME_TAKEN_MESSAGE)
            return render(request, "community/profile_settings.html", context)

        try:
            with transaction.atomic():
                profile.save()
        except IntegrityError:
            logger.warning(f"Username conflict on save for {request.user.pk}: {clean_username}")
            messages.error(request, USERNAME_TAKEN_MESSAGE)
            return render(request, "community/profile_settings.html", context)

        messages.success(request, "Saved ✅")
        return redirect("profile_settings")

    return render(request, "community/profile_settings.html", context)
