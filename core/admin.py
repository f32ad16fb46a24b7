from django.contrib import admin, messages
from django.contrib.auth import get_user_model
from django.contrib.auth.admin import UserAdmin as DjangoUserAdmin

from .models import (
    ContentFlag,
    Dispute,
    DisputeActionItem,
    DisputeCommunication,
    DisputeTimelineEntry,
    FreelancerProfile,
    MentorProfile,
    Mentorship,
    MentorshipSession,
    Message,
    Notification,
    Project,
    UserProfile,
    UserWarning,
)

User = get_user_model()


class UserProfileInline(admin.StackedInline):
    model = UserProfile
    can_delete = False
    extra = 0
    max_num = 1


class UserWarningInline(admin.TabularInline):
    model = UserWarning
    extra = 0
    readonly_fields = ('issued_at',)


class AppUserAdmin(DjangoUserAdmin):
    inlines = (UserProfileInline, UserWarningInline)
    list_display = DjangoUserAdmin.list_display + ('profile_role', 'is_active')
    actions = ('mark_as_admin_role', 'verify_mentors')

    @admin.display(description='Role')
    def profile_role(self, obj):
        return getattr(getattr(obj, 'userprofile', None), 'role', '-')

    @admin.action(description='Set selected users role as admin')
    def mark_as_admin_role(self, request, queryset):
        updated_count = 0
        for user in queryset:
            UserProfile.objects.update_or_create(user=user, defaults={'role': 'admin'})
            updated_count += 1
        self.message_user(
            request,
            f'{updated_count} user(s) updated with admin role.',
            level=messages.SUCCESS,
        )

    @admin.action(description='Mark selected mentors as verified')
    def verify_mentors(self, request, queryset):
        updated_count = UserProfile.objects.filter(
            user__in=queryset, role='mentor'
        ).update(is_verified=True)
        self.message_user(
            request,
            f'{updated_count} mentor(s) verified.',
            level=messages.SUCCESS,
        )


try:
    admin.site.unregister(User)
except admin.sites.NotRegistered:
    pass
admin.site.register(User, AppUserAdmin)


@admin.register(MentorProfile)
class MentorProfileAdmin(admin.ModelAdmin):
    list_display = (
        'user',
        'years_experience',
        'mentoring_capacity',
        'rating',
        'total_mentees',
    )
    search_fields = ('user__username', 'user__email')


@admin.register(FreelancerProfile)
class FreelancerProfileAdmin(admin.ModelAdmin):
    list_display = ('user', 'experience_level', 'hourly_rate')
    list_filter = ('experience_level',)
    search_fields = ('user__username', 'user__email')


class MentorshipSessionInline(admin.TabularInline):
    model = MentorshipSession
    extra = 0


@admin.register(Mentorship)
class MentorshipAdmin(admin.ModelAdmin):
    list_display = ('id', 'mentor', 'mentee', 'status', 'session_count', 'requested_at', 'start_date')
    list_filter = ('status',)
    search_fields = ('mentor__email', 'mentee__email')
    inlines = (MentorshipSessionInline,)


@admin.register(ContentFlag)
class ContentFlagAdmin(admin.ModelAdmin):
    list_display = (
        'id',
        'content_type',
        'content_id',
        'reason',
        'status',
        'priority',
        'severity',
        'auto_detected',
        'created_at',
    )
    list_filter = ('status', 'priority', 'reason', 'content_type', 'auto_detected')
    search_fields = ('reporter__email', 'target_user__email', 'content_id')


class DisputeTimelineInline(admin.TabularInline):
    model = DisputeTimelineEntry
    extra = 0
    can_delete = False
    readonly_fields = ('action', 'performed_by', 'description', 'metadata', 'timestamp')

    def has_add_permission(self, request, obj=None):
        return False


class DisputeCommunicationInline(admin.TabularInline):
    model = DisputeCommunication
    extra = 0


class DisputeActionItemInline(admin.TabularInline):
    model = DisputeActionItem
    extra = 0


@admin.register(Dispute)
class DisputeAdmin(admin.ModelAdmin):
    list_display = ('dispute_id', 'type', 'status', 'priority', 'initiator', 'respondent', 'mediator', 'created_at')
    list_filter = ('status', 'priority', 'type')
    search_fields = ('dispute_id', 'title', 'initiator__email', 'respondent__email')
    readonly_fields = ('dispute_id',)
    inlines = (DisputeTimelineInline, DisputeCommunicationInline, DisputeActionItemInline)


@admin.register(Notification)
class NotificationAdmin(admin.ModelAdmin):
    list_display = ('user', 'type', 'title', 'priority', 'is_read', 'created_at')
    list_filter = ('type', 'priority', 'is_read')


@admin.register(Message)
class MessageAdmin(admin.ModelAdmin):
    list_display = ('id', 'sender', 'recipient', 'is_moderated', 'created_at')
    list_filter = ('is_moderated',)


@admin.register(Project)
class ProjectAdmin(admin.ModelAdmin):
    list_display = ('id', 'title', 'client', 'status', 'created_at')
    list_filter = ('status',)
    search_fields = ('title',)
