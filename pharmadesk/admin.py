from django import forms
from django.contrib import admin
from unfold.admin import ModelAdmin, TabularInline
from unfold.decorators import display
from unfold.contrib.filters.admin import RangeDateFilter, ChoicesDropdownFilter
from .models import (
    Organization, Member, Task, TaskComment, Message, MessageRecipient,
    MessageAttachment, Folder, KnowledgeResource, SystemLog, SystemSettings
)
from .encryption import encrypt_data, decrypt_secret


def dashboard_callback(request, context):
    """
    Dashboard callback for Unfold admin.
    Provides task and team statistics for the dashboard.
    """
    from django.utils import timezone

    now = timezone.now()
    organization = getattr(request, 'organization', None)

    if request.user.is_superuser and organization is None:
        tasks = Task.all_objects.all()
        members = Member.all_objects.all()
        total_organizations = Organization.objects.count()
    else:
        tasks = Task.all_objects.filter(organization=organization)
        members = Member.all_objects.filter(organization=organization)
        total_organizations = 1

    context.update({
        "kpi": [
            {"title": "Open tasks", "metric": tasks.filter(status__in=['TO_DO', 'IN_PROGRESS'], is_archived=False).count(), "icon": "task_alt"},
            {"title": "Overdue", "metric": tasks.filter(deadline__lt=now, is_archived=False).exclude(status='DONE').count(), "icon": "schedule"},
            {"title": "Pending approval", "metric": tasks.filter(status='PENDING_APPROVAL').count(), "icon": "pending_actions"},
            {"title": "Active members", "metric": members.filter(status='ACTIVE').count(), "icon": "badge"},
            {"title": "Organizations", "metric": total_organizations, "icon": "domain"},
        ],
        "completed_today": tasks.filter(completed_at__date=timezone.localdate()).count(),
    })

    return context


class OrganizationFilterMixin:
    """
    Mixin for admin classes to filter querysets by organization.
    Superusers see all data; organization admins see only their own.
    """

    def get_queryset(self, request):
        qs = super().get_queryset(request)
        if request.user.is_superuser:
            return qs
        organization = getattr(request, 'organization', None)
        if hasattr(self.model, 'organization'):
            return qs.filter(organization=organization)
        return qs

    def formfield_for_foreignkey(self, db_field, request, **kwargs):
        if db_field.name == 'organization' and not request.user.is_superuser:
            organization = getattr(request, 'organization', None)
            kwargs['queryset'] = Organization.objects.filter(pk=organization.pk if organization else None)
        return super().formfield_for_foreignkey(db_field, request, **kwargs)


class MemberInline(TabularInline):
    model = Member
    extra = 0
    fields = ['name', 'email', 'role', 'status']
    show_change_link = True
    readonly_fields = fields
    can_delete = False

    def has_add_permission(self, request, obj=None):
        return False


@admin.register(Organization)
class OrganizationAdmin(ModelAdmin):
    list_display = ['name', 'slug', 'is_active_badge', 'member_count', 'created_at']
    list_filter = ['is_active']
    search_fields = ['name', 'slug']
    inlines = [MemberInline]

    @display(description="Status", label={"Active": "success", "Inactive": "danger"})
    def is_active_badge(self, obj):
        return "Active" if obj.is_active else "Inactive"

    def member_count(self, obj):
        return obj.members.count()
    member_count.short_description = 'Members'

    def has_module_permission(self, request):
        return request.user.is_superuser

    def has_view_permission(self, request, obj=None):
        return request.user.is_superuser

    def has_add_permission(self, request):
        return request.user.is_superuser


@admin.register(Member)
class MemberAdmin(OrganizationFilterMixin, ModelAdmin):
    list_display = ['name', 'email', 'organization', 'role_badge', 'status_badge', 'last_login_at']
    list_filter = [
        ('role', ChoicesDropdownFilter),
        ('status', ChoicesDropdownFilter),
        'organization',
    ]
    search_fields = ['name', 'email', 'user__username']
    raw_id_fields = ['user']
    readonly_fields = ['last_login_at', 'created_at']

    @display(description="Role", label={"Admin": "info", "Employee": "secondary"})
    def role_badge(self, obj):
        return obj.get_role_display()

    @display(description="Status", label={"Active": "success", "Inactive": "warning", "Archived": "danger"})
    def status_badge(self, obj):
        return obj.get_status_display()

    def save_model(self, request, obj, form, change):
        super().save_model(request, obj, form, change)
        active = obj.status == Member.STATUS_ACTIVE
        if obj.user.is_active != active:
            obj.user.is_active = active
            obj.user.save(update_fields=['is_active'])


class TaskCommentInline(TabularInline):
    model = TaskComment
    extra = 0
    fields = ['author', 'text', 'created_at']
    readonly_fields = ['created_at']


@admin.register(Task)
class TaskAdmin(OrganizationFilterMixin, ModelAdmin):
    list_display = ['title', 'status_badge', 'priority_badge', 'deadline', 'is_recurring', 'is_private', 'is_archived']
    list_filter = [
        ('status', ChoicesDropdownFilter),
        ('priority', ChoicesDropdownFilter),
        ('deadline', RangeDateFilter),
        'is_archived',
        'is_recurring',
    ]
    search_fields = ['title']
    raw_id_fields = ['created_by', 'successor']
    filter_horizontal = ['assignees']
    readonly_fields = ['completed_at', 'created_at', 'updated_at']
    date_hierarchy = 'deadline'
    inlines = [TaskCommentInline]

    @display(
        description="Status",
        label={
            "To Do": "warning",
            "In Progress": "info",
            "Done": "success",
            "Pending Approval": "secondary",
        }
    )
    def status_badge(self, obj):
        return obj.get_status_display()

    @display(
        description="Priority",
        label={
            "General": "secondary",
            "Important": "warning",
            "Urgent": "danger",
        }
    )
    def priority_badge(self, obj):
        return obj.get_priority_display()


class MessageRecipientInline(TabularInline):
    model = MessageRecipient
    extra = 0
    fields = ['member', 'is_read', 'is_archived', 'is_deleted']


class MessageAttachmentInline(TabularInline):
    model = MessageAttachment
    extra = 0


@admin.register(Message)
class MessageAdmin(OrganizationFilterMixin, ModelAdmin):
    list_display = ['subject', 'sender', 'timestamp', 'recipient_count']
    list_filter = [('timestamp', RangeDateFilter)]
    search_fields = ['subject', 'sender__name']
    readonly_fields = ['timestamp']
    inlines = [MessageRecipientInline, MessageAttachmentInline]

    def recipient_count(self, obj):
        return obj.recipients.count()
    recipient_count.short_description = 'Recipients'


@admin.register(Folder)
class FolderAdmin(OrganizationFilterMixin, ModelAdmin):
    list_display = ['name', 'organization', 'resource_count']
    search_fields = ['name']

    def resource_count(self, obj):
        return obj.resources.count()
    resource_count.short_description = 'Resources'


@admin.register(KnowledgeResource)
class KnowledgeResourceAdmin(OrganizationFilterMixin, ModelAdmin):
    list_display = ['title', 'folder', 'tag_list', 'updated_at']
    list_filter = ['folder']
    search_fields = ['title', 'content']

    def tag_list(self, obj):
        return ', '.join(obj.tags or [])
    tag_list.short_description = 'Tags'


@admin.register(SystemLog)
class SystemLogAdmin(OrganizationFilterMixin, ModelAdmin):
    list_display = ['timestamp', 'level_badge', 'source', 'message_short']
    list_filter = [
        ('level', ChoicesDropdownFilter),
        'source',
        ('timestamp', RangeDateFilter),
    ]
    search_fields = ['message', 'source']
    readonly_fields = ['timestamp', 'organization', 'level', 'source', 'message', 'details']
    date_hierarchy = 'timestamp'

    @display(
        description="Level",
        label={
            "DEBUG": "secondary",
            "INFO": "info",
            "WARNING": "warning",
            "ERROR": "danger",
            "CRITICAL": "danger",
        }
    )
    def level_badge(self, obj):
        return obj.level

    def message_short(self, obj):
        return obj.message[:100] + '...' if len(obj.message) > 100 else obj.message
    message_short.short_description = 'Message'

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False


class SystemSettingsAdminForm(forms.ModelForm):
    ai_api_key = forms.CharField(
        widget=forms.PasswordInput(render_value=True),
        required=False,
        label="Gemini API key",
        help_text="Stored encrypted. Leave empty to use the GEMINI_API_KEY environment variable."
    )

    class Meta:
        model = SystemSettings
        exclude = ['encrypted_ai_api_key', 'updated_by']

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        if self.instance.pk and self.instance.encrypted_ai_api_key:
            self.fields['ai_api_key'].initial = decrypt_secret(self.instance.encrypted_ai_api_key)

    def save(self, commit=True):
        instance = super().save(commit=False)

        ai_api_key = self.cleaned_data.get('ai_api_key')
        if ai_api_key:
            instance.encrypted_ai_api_key = encrypt_data(ai_api_key.encode())

        if commit:
            instance.save()
        return instance


@admin.register(SystemSettings)
class SystemSettingsAdmin(ModelAdmin):
    form = SystemSettingsAdminForm
    list_display = ('__str__', 'ai_model', 'updated_at')

    fieldsets = (
        ('AI assistant (Gemini)', {
            'fields': ('ai_model', 'ai_api_key'),
            'description': 'Used for the daily briefing and knowledge base questions'
        }),
    )

    def has_add_permission(self, request):
        return not SystemSettings.objects.exists()

    def has_delete_permission(self, request, obj=None):
        return False

    def has_module_permission(self, request):
        return request.user.is_superuser

    def save_model(self, request, obj, form, change):
        obj.updated_by = request.user
        super().save_model(request, obj, form, change)
