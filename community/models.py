"""
================================================================================
SHIPPING AID COMMUNITY - DATABASE MODELS
================================================================================

@file        models.py
@description Django ORM models defining the community database schema

MODULE PURPOSE
================================================================================
This module defines all database models for the Shipping Aid community:
- User model (email login, extended from AbstractUser)
- Profile (public identity: username, avatar, demographic fields)
- Forums, questions and answers
- Private messaging (two-party threads and their messages)
- Notifications

DATABASE STRUCTURE
================================================================================
1. User & Identity
   - User (AbstractUser extension, no username column)
   - Profile (OneToOne with User, shares its primary key)

2. Forum
   - Forum (subject category, addressed by slug)
   - Question (belongs to a forum, can be closed by its owner)
   - Answer (deleted together with its question)

3. Messaging
   - MessageThread (unordered pair of users, unique per pair)
   - Message

4. Notifications
   - Notification

MODEL RELATIONSHIPS
================================================================================
User (1) ──────> (1) Profile
User (1) ──────> (N) Question
User (1) ──────> (N) Answer
User (1) ──────> (N) Notification
Forum (1) ─────> (N) Question
Question (1) ──> (N) Answer
MessageThread (1) ──> (N) Message
User (N) <─────> (N) User (MessageThread, one row per pair)

CONSTRAINTS
================================================================================
- Profile.username is unique case-insensitively (Lower(username))
- MessageThread stores each pair once regardless of order
  (Least/Greatest unique constraint), and never pairs a user with themself

================================================================================
"""

import logging
import uuid

from django.contrib.auth.models import AbstractUser, BaseUserManager
from django.core.exceptions import ValidationError
from django.db import IntegrityError, models, transaction
from django.db.models.functions import Greatest, Least, Lower
from django.utils import timezone as dj_timezone

from .usernames import USERNAME_MAX_LENGTH, display_name


logger = logging.getLogger(__name__)


# ============================================================================
# CONSTANTS & CHOICES
# ============================================================================

PERSONNEL_CHOICES = [
    ('sea', 'Sea Personnel (Seafarer)'),
    ('shore', 'Shore Personnel'),
]

"""
Fixed avatar choices. Profiles store the public path, not an upload.
"""
AVATAR_CHOICES = [
    (f"/static/community/avatars/a{n}.svg", f"Avatar {n}") for n in range(1, 7)
]

SEA_FORUM_SLUG = 'sea-personnel'
SHORE_FORUM_SLUG = 'shore-personnel'

QUESTION_CLOSED_MESSAGE = "This question is closed. New answers are not accepted."
SELF_THREAD_MESSAGE = "You cannot message yourself."


def _pk(user_or_id):
    """User primary key as a UUID; accepts a user or any valid UUID spelling."""
    value = getattr(user_or_id, 'pk', user_or_id)
    if isinstance(value, uuid.UUID):
        return value
    return uuid.UUID(str(value))


# ============================================================================
# SECTION 1: USER & IDENTITY MODELS
# ============================================================================

class UserManager(BaseUserManager):
    """
    Manager for the email-login User model.

    Every user created here also gets an empty Profile, so views can rely
    on ``user.profile`` existing.
    """

    use_in_migrations = True

    def _create_user(self, email, password, **extra_fields):
        if not email:
            raise ValueError("An email address is required.")
        email = self.normalize_email(email).lower()
        user = self.model(email=email, **extra_fields)
        user.set_password(password)
        with transaction.atomic(using=self._db):
            user.save(using=self._db)
            Profile.objects.using(self._db).create(user=user)
        return user

    def create_user(self, email, password=None, **extra_fields):
        extra_fields.setdefault('is_staff', False)
        extra_fields.setdefault('is_superuser', False)
        return self._create_user(email, password, **extra_fields)

    def create_superuser(self, email, password=None, **extra_fields):
        extra_fields.setdefault('is_staff', True)
        extra_fields.setdefault('is_superuser', True)
        if extra_fields.get('is_staff') is not True:
            raise ValueError("Superuser must have is_staff=True.")
        if extra_fields.get('is_superuser') is not True:
            raise ValueError("Superuser must have is_superuser=True.")
        return self._create_user(email, password, **extra_fields)


class User(AbstractUser):
    """
    Account record used for authentication.

    Users sign in with email and password. The public handle shown on
    forum posts and messages lives on Profile, not here.

    Attributes:
        id (UUIDField): Opaque user identifier
        email (EmailField): Login identifier, unique
        activation_token (CharField): Email verification token

    Related Names:
        profile: The user's Profile
        questions: QuerySet of Question objects
        answers: QuerySet of Answer objects
        sent_messages: QuerySet of Message objects
        notifications: QuerySet of Notification objects
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    username = None
    email = models.EmailField(
        unique=True,
        help_text="Login email address"
    )
    activation_token = models.CharField(
        max_length=32,
        blank=True,
        null=True,
        help_text="Token for email verification"
    )

    USERNAME_FIELD = 'email'
    REQUIRED_FIELDS = []

    objects = UserManager()

    def __str__(self):
        return self.email


class ProfileQuerySet(models.QuerySet):

    def username_taken(self, clean_username, exclude_user=None):
        """True if another profile already holds this handle, ignoring case."""
        qs = self.filter(username__iexact=clean_username)
        if exclude_user is not None:
            qs = qs.exclude(user_id=_pk(exclude_user))
        return qs.exists()

    def display_names(self, user_ids):
        """Map str(user id) -> display name for every id given."""
        ids = {uid for uid in user_ids if uid}
        if not ids:
            return {}
        found = dict(self.filter(user_id__in=ids).values_list('user_id', 'username'))
        return {str(uid): display_name(uid, found.get(uid)) for uid in ids}


class Profile(models.Model):
    """
    Public identity of a user.

    Attributes:
        user (OneToOneField): Owning user, also the primary key
        username (CharField): Normalized public handle (optional until set)
        avatar_url (CharField): One of AVATAR_CHOICES, or empty
        age (PositiveSmallIntegerField): 0..120, optional
        gender (CharField): Free text, optional
        specialty (CharField): Job or rank, optional
        personnel_type (CharField): 'sea' or 'shore', optional
        bio (TextField): Short biography, optional
    """

    user = models.OneToOneField(
        User,
        on_delete=models.CASCADE,
        primary_key=True,
        related_name='profile',
        help_text="User this profile belongs to"
    )
    username = models.CharField(
        max_length=USERNAME_MAX_LENGTH,
        null=True,
        blank=True,
        help_text="Public handle shown on posts and messages"
    )
    avatar_url = models.CharField(
        max_length=200,
        null=True,
        blank=True,
        help_text="Path of the selected avatar image"
    )
    age = models.PositiveSmallIntegerField(null=True, blank=True)
    gender = models.CharField(max_length=32, null=True, blank=True)
    specialty = models.CharField(max_length=80, null=True, blank=True)
    personnel_type = models.CharField(
        max_length=5,
        choices=PERSONNEL_CHOICES,
        null=True,
        blank=True,
    )
    bio = models.TextField(max_length=500, null=True, blank=True)

    objects = ProfileQuerySet.as_manager()

    class Meta:
        constraints = [
            models.UniqueConstraint(
                Lower('username'),
                name='unique_profile_username_ci',
            ),
        ]

    def __str__(self):
        return self.display_name

    @property
    def display_name(self):
        return display_name(self.user_id, self.username)


# ============================================================================
# SECTION 2: FORUM MODELS
# ============================================================================

class Forum(models.Model):
    """
    Discussion category, addressed in URLs by its slug.

    The two standard forums are created by a data migration.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    slug = models.SlugField(unique=True)
    title = models.CharField(max_length=200)
    description = models.TextField(blank=True)

    class Meta:
        ordering = ['slug']

    def __str__(self):
        return self.title

    @staticmethod
    def normalize_slug(raw):
        """
        Map a forum query value to a known slug.

        Accepts the short legacy values ('sea', 'shore'); anything
        unrecognized falls back to the sea forum.
        """
        if raw in ('shore', SHORE_FORUM_SLUG):
            return SHORE_FORUM_SLUG
        return SEA_FORUM_SLUG


class Question(models.Model):
    """
    A question posted in a forum.

    Only the owner may edit, close or delete it. Once closed, no further
    answers are accepted.

    Attributes:
        title (CharField): Question title (required)
        body (TextField): Optional details
        user (ForeignKey): Author
        forum (ForeignKey): Forum the question was asked in
        created_at (DateTimeField): Creation timestamp
        updated_at (DateTimeField): Last edit or close timestamp
        is_closed (BooleanField): Closed to new answers
        closed_at (DateTimeField): When the question was closed
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    title = models.CharField(max_length=300)
    body = models.TextField(blank=True, default='')
    user = models.ForeignKey(
        User,
        on_delete=models.CASCADE,
        related_name='questions',
        help_text="Author of this question"
    )
    forum = models.ForeignKey(
        Forum,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='questions',
        help_text="Forum this question belongs to"
    )
    created_at = models.DateTimeField(default=dj_timezone.now)
    updated_at = models.DateTimeField(null=True, blank=True)
    is_closed = models.BooleanField(default=False)
    closed_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        ordering = ['-created_at']

    def __str__(self):
        return self.title

    def is_owned_by(self, user):
        return user.is_authenticated and self.user_id == user.pk

    def edit(self, title, body):
        title = (title or '').strip()
        if not title:
            raise ValidationError("Title is required.")
        self.title = title
        self.body = (body or '').strip()
        self.updated_at = dj_timezone.now()
        self.save(update_fields=['title', 'body', 'updated_at'])

    def close(self):
        if self.is_closed:
            return
        now = dj_timezone.now()
        self.is_closed = True
        self.closed_at = now
        self.updated_at = now
        self.save(update_fields=['is_closed', 'closed_at', 'updated_at'])
        logger.info(f"Question {self.pk} closed")

    def add_answer(self, user, body):
        """
        Post an answer and notify the question owner.

        The closed flag is re-read under a row lock so an answer can't slip
        in after a concurrent close.
        """
        body = (body or '').strip()
        if not body:
            raise ValidationError("Answer cannot be empty.")

        with transaction.atomic():
            current = Question.objects.select_for_update().get(pk=self.pk)
            if current.is_closed:
                self.is_closed = True
                raise ValidationError(QUESTION_CLOSED_MESSAGE)
            answer = Answer.objects.create(question=current, user=user, body=body)

            if self.user_id != user.pk:
                Notification.objects.create(
                    user_id=self.user_id,
                    title="New answer to your question",
                    body=f'Someone answered "{self.title}".',
                )
        return answer


class Answer(models.Model):
    """Reply to a question. Removed when its question is deleted."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    body = models.TextField()
    user = models.ForeignKey(
        User,
        on_delete=models.CASCADE,
        related_name='answers',
        help_text="Author of this answer"
    )
    question = models.ForeignKey(
        Question,
        on_delete=models.CASCADE,
        related_name='answers',
        help_text="Question being answered"
    )
    created_at = models.DateTimeField(default=dj_timezone.now)

    class Meta:
        ordering = ['created_at']

    def __str__(self):
        return f"{self.user} on {self.question_id}: {self.body[:30]}"


# ============================================================================
# SECTION 3: MESSAGING MODELS
# ============================================================================

class MessageThreadQuerySet(models.QuerySet):

    def between(self, first, second):
        """Threads whose stored pair matches either ordering."""
        a, b = _pk(first), _pk(second)
        return self.filter(
            models.Q(user1_id=a, user2_id=b) | models.Q(user1_id=b, user2_id=a)
        )

    def for_user(self, user):
        return self.filter(models.Q(user1=user) | models.Q(user2=user))


class MessageThreadManager(models.Manager.from_queryset(MessageThreadQuerySet)):

    def resolve(self, me, other):
        """
        Return ``(thread, created)`` for the single thread between two users.

        Looks the pair up in both orderings and reuses what it finds;
        otherwise creates a thread storing the ids in the order given. If
        the insert loses a race against a concurrent request for the same
        pair, the pair constraint rejects it and the winner's thread is
        returned instead.

        Raises:
            ValidationError: both arguments are the same user
        """
        me_id, other_id = _pk(me), _pk(other)
        if me_id == other_id:
            raise ValidationError(SELF_THREAD_MESSAGE)

        existing = self.between(me_id, other_id).first()
        if existing is not None:
            return existing, False

        try:
            with transaction.atomic(using=self.db):
                thread = self.create(user1_id=me_id, user2_id=other_id)
        except IntegrityError:
            winner = self.between(me_id, other_id).first()
            if winner is None:
                raise
            logger.info(f"Thread race for {me_id}/{other_id} resolved to {winner.pk}")
            return winner, False

        logger.info(f"Created message thread {thread.pk}")
        return thread, True


class MessageThread(models.Model):
    """
    Private conversation between exactly two users.

    A pair has at most one thread, whichever user started it.
    Use ``MessageThread.objects.resolve(a, b)`` rather than ``create()``.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    user1 = models.ForeignKey(
        User,
        on_delete=models.CASCADE,
        related_name='threads_started',
        help_text="User who opened the thread"
    )
    user2 = models.ForeignKey(
        User,
        on_delete=models.CASCADE,
        related_name='threads_received',
        help_text="Other participant"
    )
    created_at = models.DateTimeField(default=dj_timezone.now)

    objects = MessageThreadManager()

    class Meta:
        ordering = ['-created_at']
        constraints = [
            models.UniqueConstraint(
                Least('user1', 'user2'),
                Greatest('user1', 'user2'),
                name='unique_message_thread_pair',
            ),
            models.CheckConstraint(
                condition=~models.Q(user1=models.F('user2')),
                name='message_thread_distinct_users',
            ),
        ]

    def __str__(self):
        return f"Thread {self.pk}"

    def has_participant(self, user):
        return _pk(user) in (self.user1_id, self.user2_id)

    def other_participant_id(self, user):
        return self.user2_id if _pk(user) == self.user1_id else self.user1_id

    def post_message(self, sender, body):
        body = (body or '').strip()
        if not body:
            raise ValidationError("Message cannot be empty.")
        if not self.has_participant(sender):
            raise ValidationError("You do not have access to this conversation.")

        with transaction.atomic():
            message = Message.objects.create(thread=self, sender=sender, body=body)
            Notification.objects.create(
                user_id=self.other_participant_id(sender),
                title="New private message",
                body=body[:140],
            )
        return message


class Message(models.Model):
    """Single message in a thread, listed oldest first."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    thread = models.ForeignKey(
        MessageThread,
        on_delete=models.CASCADE,
        related_name='messages',
        help_text="Thread this message belongs to"
    )
    sender = models.ForeignKey(
        User,
        on_delete=models.CASCADE,
        related_name='sent_messages',
        help_text="User who sent this message"
    )
    body = models.TextField()
    created_at = models.DateTimeField(default=dj_timezone.now)

    class Meta:
        ordering = ['created_at']

    def __str__(self):
        return f"{self.sender}: {self.body[:30]}"


# ============================================================================
# SECTION 4: NOTIFICATION MODELS
# ============================================================================

class NotificationQuerySet(models.QuerySet):

    def unread(self):
        return self.filter(read=False)

    def mark_all_as_read(self):
        return self.filter(read=False).update(read=True)


class Notification(models.Model):
    """
    Activity alert for a user.

    Created when someone answers the user's question or sends them a
    private message.

    Example:
        request.user.notifications.unread().count()
        request.user.notifications.mark_all_as_read()
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    user = models.ForeignKey(
        User,
        on_delete=models.CASCADE,
        related_name='notifications',
        help_text="User receiving this notification"
    )
    title = models.CharField(max_length=200)
    body = models.TextField(null=True, blank=True)
    read = models.BooleanField(
        default=False,
        help_text="Whether notification has been read"
    )
    created_at = models.DateTimeField(default=dj_timezone.now)

    objects = NotificationQuerySet.as_manager()

    class Meta:
        ordering = ['-created_at']

    def __str__(self):
        return f"{self.user}: {self.title}"
