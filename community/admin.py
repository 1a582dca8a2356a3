from django.contrib import admin
from django.contrib.auth.admin import UserAdmin as BaseUserAdmin
from django.contrib.auth.forms import UserChangeForm, UserCreationForm
from django.contrib.auth.models import Group
from django.urls import reverse
from django.utils.html import format_html
from .models import (
    User, Profile, Forum, Question, Answer, MessageThread, Message, Notification
)

# ==================== ADMIN FORMS ====================

class EmailUserCreationForm(UserCreationForm):
    class Meta:
        model = User
        fields = ('email',)


class EmailUserChangeForm(UserChangeForm):
    class Meta:
        model = User
        fields = ('email',)


# ==================== ADMIN CLASSES ====================

class ProfileInline(admin.StackedInline):
    model = Profile
    can_delete = False


@admin.register(User)
class UserAdmin(BaseUserAdmin):
    add_form = EmailUserCreationForm
    form = EmailUserChangeForm
    list_display = ('email', 'is_active', 'is_staff', 'is_superuser', 'date_joined')
    search_fields = ('email', 'profile__username')
    ordering = ('email',)
    inlines = [ProfileInline]
    actions = ['activate_users', 'deactivate_users']

    fieldsets = (
        (None, {'fields': ('email', 'password')}),
        ('Permissions', {'fields': ('is_active', 'is_staff', 'is_superuser', 'user_permissions')}),
        ('Important dates', {'fields': ('last_login', 'date_joined')}),
    )
    add_fieldsets = (
        (None, {
            'classes': ('wide',),
            'fields': ('email', 'password1', 'password2'),
        }),
    )

    def activate_users(self, request, queryset):
        queryset.update(is_active=True, activation_token='')
        self.message_user(request, f"{queryset.count()} users activated")
    activate_users.short_description = "Activate selected users"

    def deactivate_users(self, request, queryset):
        queryset.update(is_active=False)
        self.message_user(request, f"{queryset.count()} users deactivated")
    deactivate_users.short_description = "Deactivate selected users"


@admin.register(Forum)
class ForumAdmin(admin.ModelAdmin):
    list_display = ('slug', 'title')
    search_fields = ('slug', 'title')


@admin.register(Question)
class QuestionAdmin(admin.ModelAdmin):
    list_display = ('title', 'forum', 'user_link', 'created_at', 'is_closed')
    list_filter = ('forum', 'is_closed', 'created_at')
    search_fields = ('title', 'body', 'user__email', 'user__profile__username')

    def user_link(self, obj):
        url = reverse("admin:community_user_change", args=[obj.user.pk])
        return format_html('<a href="{}">{}</a>', url, obj.user.email)
    user_link.short_description = 'User'
    user_link.admin_order_field = 'user__email'


@admin.register(Answer)
class AnswerAdmin(admin.ModelAdmin):
    list_display = ('id', 'question', 'user', 'created_at', 'body_short')
    search_fields = ('body', 'user__email')

    def body_short(self, obj):
        return obj.body[:50] + '...' if len(obj.body) > 50 else obj.body
    body_short.short_description = 'Body'


@admin.register(MessageThread)
class MessageThreadAdmin(admin.ModelAdmin):
    list_display = ('id', 'user1', 'user2', 'created_at', 'message_count')
    search_fields = ('user1__email', 'user2__email')

    def message_count(self, obj):
        return obj.messages.count()
    message_count.short_description = 'Messages'


@admin.register(Message)
class MessageAdmin(admin.ModelAdmin):
    list_display = ('id', 'thread', 'sender', 'created_at')
    search_fields = ('body', 'sender__email')


@admin.register(Notification)
class NotificationAdmin(admin.ModelAdmin):
    list_display = ('id', 'user', 'title', 'created_at', 'read')
    list_filter = ('read', 'created_at')
    search_fields = ('user__email', 'title')


# Unregister Django's default Group
admin.site.unregister(Group)

# Basic admin site configuration
admin.site.site_header = "Shipping Aid Admin"
admin.site.site_title = "Shipping Aid Admin Portal"
admin.site.index_title = "Welcome"
