import uuid
from django.db import models
from django.contrib.auth.models import User
from django.utils import timezone
from django.utils.text import slugify
from pharmadesk.managers import OrganizationManager


def attachment_upload_path(instance, filename):
    """
    Storage path for message attachments: organization/year/month/uuid_filename
    """
    now = timezone.now()
    org_slug = instance.message.organization.slug
    return f"attachments/{org_slug}/{now.year}/{now.month:02d}/{uuid.uuid4().hex}_{filename}"


class Organization(models.Model):
    """
    A pharmacy (tenant). All data belongs to exactly one organization and is
    invisible to every other organization.
    """
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    name = models.CharField(max_length=200, verbose_name="Pharmacy name")
    slug = models.SlugField(max_length=80, unique=True)
    is_active = models.BooleanField(default=True, verbose_name="Active")
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.name

    def save(self, *args, **kwargs):
        if not self.slug:
            base = slugify(self.name)[:60] or 'pharmacy'
            slug = base
            suffix = 1
            while Organization.objects.filter(slug=slug).exclude(pk=self.pk).exists():
                suffix += 1
                slug = f"{base}-{suffix}"
            self.slug = slug
        super().save(*args, **kwargs)

    class Meta:
        ordering = ['name']
        verbose_name = "Organization"
        verbose_name_plural = "Organizations"


class Member(models.Model):
    ROLE_ADMIN = 'ADMIN'
    ROLE_EMPLOYEE = 'EMPLOYEE'
    ROLE_CHOICES = [
        (ROLE_ADMIN, 'Admin'),
        (ROLE_EMPLOYEE, 'Employee'),
    ]

    STATUS_ACTIVE = 'ACTIVE'
    STATUS_INACTIVE = 'INACTIVE'
    STATUS_ARCHIVED = 'ARCHIVED'
    STATUS_CHOICES = [
        (STATUS_ACTIVE, 'Active'),
        (STATUS_INACTIVE, 'Inactive'),
        (STATUS_ARCHIVED, 'Archived'),
    ]

    THEME_CHOICES = [
        ('light', 'Light'),
        ('dark', 'Dark'),
    ]

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    organization = models.ForeignKey(Organization, on_delete=models.CASCADE, related_name='members')
    user = models.OneToOneField(User, on_delete=models.CASCADE, related_name='member')
    name = models.CharField(max_length=200)
    email = models.EmailField(blank=True)
    role = models.CharField(max_length=20, choices=ROLE_CHOICES, default=ROLE_EMPLOYEE)
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default=STATUS_ACTIVE)
    avatar = models.CharField(max_length=500, blank=True, help_text="Avatar URL or reference")
    theme = models.CharField(max_length=10, choices=THEME_CHOICES, default='light')
    force_password_change = models.BooleanField(default=False)
    last_login_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    objects = OrganizationManager()
    all_objects = models.Manager()

    def __str__(self):
        return f"{self.name} ({self.get_role_display()})"

    @property
    def is_admin(self):
        return self.role == self.ROLE_ADMIN

    @property
    def is_active_member(self):
        return self.status == self.STATUS_ACTIVE

    def set_status(self, status):
        """Update status and keep sign-in access in sync with it."""
        self.status = status
        self.save(update_fields=['status'])
        active = status == self.STATUS_ACTIVE
        if self.user.is_active != active:
            self.user.is_active = active
            self.user.save(update_fields=['is_active'])

    class Meta:
        ordering = ['name']
        verbose_name = "Member"
        verbose_name_plural = "Members"


class Task(models.Model):
    STATUS_TODO = 'TO_DO'
    STATUS_IN_PROGRESS = 'IN_PROGRESS'
    STATUS_DONE = 'DONE'
    STATUS_PENDING_APPROVAL = 'PENDING_APPROVAL'
    STATUS_CHOICES = [
        (STATUS_TODO, 'To Do'),
        (STATUS_IN_PROGRESS, 'In Progress'),
        (STATUS_DONE, 'Done'),
        (STATUS_PENDING_APPROVAL, 'Pending Approval'),
    ]

    PRIORITY_URGENT = 'URGENT'
    PRIORITY_IMPORTANT = 'IMPORTANT'
    PRIORITY_GENERAL = 'GENERAL'
    PRIORITY_CHOICES = [
        (PRIORITY_URGENT, 'Urgent'),
        (PRIORITY_IMPORTANT, 'Important'),
        (PRIORITY_GENERAL, 'General'),
    ]

    FREQUENCY_DAILY = 'DAILY'
    FREQUENCY_WEEKLY = 'WEEKLY'
    FREQUENCY_BIWEEKLY = 'BIWEEKLY'
    FREQUENCY_MONTHLY = 'MONTHLY'
    FREQUENCY_CHOICES = [
        (FREQUENCY_DAILY, 'Daily'),
        (FREQUENCY_WEEKLY, 'Weekly'),
        (FREQUENCY_BIWEEKLY, 'Biweekly'),
        (FREQUENCY_MONTHLY, 'Monthly'),
    ]

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    organization = models.ForeignKey(Organization, on_delete=models.CASCADE, related_name='tasks')
    title = models.CharField(max_length=255)
    checklist = models.JSONField(default=list, blank=True,
                                 help_text="Ordered list of {id, text, is_completed}")
    assignees = models.ManyToManyField(Member, blank=True, related_name='assigned_tasks')
    deadline = models.DateTimeField()
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default=STATUS_TODO)
    priority = models.CharField(max_length=20, choices=PRIORITY_CHOICES, default=PRIORITY_GENERAL)
    is_private = models.BooleanField(default=False)

    is_recurring = models.BooleanField(default=False)
    recurrence_frequency = models.CharField(max_length=20, choices=FREQUENCY_CHOICES, blank=True, null=True)
    recurrence_end_date = models.DateTimeField(null=True, blank=True)
    successor = models.OneToOneField('self', on_delete=models.SET_NULL, null=True, blank=True,
                                     related_name='predecessor')

    is_archived = models.BooleanField(default=False)
    created_by = models.ForeignKey(Member, on_delete=models.SET_NULL, null=True, blank=True,
                                   related_name='created_tasks')
    completed_at = models.DateTimeField(null=True, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = OrganizationManager()
    all_objects = models.Manager()

    def __str__(self):
        return f"{self.title} - {self.get_status_display()}"

    @property
    def assignee_ids(self):
        return [member.pk for member in self.assignees.all()]

    @property
    def is_overdue(self):
        return self.status != self.STATUS_DONE and self.deadline < timezone.now()

    class Meta:
        ordering = ['deadline']
        indexes = [
            models.Index(fields=['organization', 'is_archived', 'deadline'], name='pharmadesk_task_board_idx'),
        ]


class TaskComment(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    organization = models.ForeignKey(Organization, on_delete=models.CASCADE, related_name='task_comments')
    task = models.ForeignKey(Task, on_delete=models.CASCADE, related_name='comments')
    author = models.ForeignKey(Member, on_delete=models.SET_NULL, null=True, related_name='task_comments')
    text = models.TextField()
    created_at = models.DateTimeField(default=timezone.now)

    objects = OrganizationManager()
    all_objects = models.Manager()

    def __str__(self):
        return f"{self.author} @ {self.created_at:%Y-%m-%d %H:%M}"

    def save(self, *args, **kwargs):
        if not self.organization_id and self.task_id:
            self.organization_id = self.task.organization_id
        super().save(*args, **kwargs)

    class Meta:
        ordering = ['created_at']


class Message(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    organization = models.ForeignKey(Organization, on_delete=models.CASCADE, related_name='messages')
    sender = models.ForeignKey(Member, on_delete=models.SET_NULL, null=True, related_name='sent_messages')
    sender_deleted = models.BooleanField(default=False)
    sender_purged = models.BooleanField(default=False, help_text="Sender removed their copy from the trash")
    subject = models.CharField(max_length=255)
    body = models.TextField(blank=True, help_text="Sanitised rich text (HTML)")
    timestamp = models.DateTimeField(default=timezone.now)

    objects = OrganizationManager()
    all_objects = models.Manager()

    def __str__(self):
        return self.subject

    class Meta:
        ordering = ['-timestamp']


class MessageRecipient(models.Model):
    """Per-recipient copy state. One recipient's flags never affect another's."""
    message = models.ForeignKey(Message, on_delete=models.CASCADE, related_name='recipients')
    member = models.ForeignKey(Member, on_delete=models.CASCADE, related_name='received_messages')
    is_read = models.BooleanField(default=False)
    is_archived = models.BooleanField(default=False)
    is_deleted = models.BooleanField(default=False)

    def __str__(self):
        return f"{self.member} <- {self.message}"

    class Meta:
        unique_together = ['message', 'member']


class MessageAttachment(models.Model):
    message = models.ForeignKey(Message, on_delete=models.CASCADE, related_name='attachments')
    name = models.CharField(max_length=255)
    content_type = models.CharField(max_length=100, blank=True)
    file = models.FileField(upload_to=attachment_upload_path)

    def __str__(self):
        return self.name


class Folder(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    organization = models.ForeignKey(Organization, on_delete=models.CASCADE, related_name='folders')
    name = models.CharField(max_length=200)
    created_at = models.DateTimeField(auto_now_add=True)

    objects = OrganizationManager()
    all_objects = models.Manager()

    def __str__(self):
        return self.name

    class Meta:
        ordering = ['name']


class KnowledgeResource(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    organization = models.ForeignKey(Organization, on_delete=models.CASCADE, related_name='knowledge_resources')
    folder = models.ForeignKey(Folder, on_delete=models.SET_NULL, null=True, blank=True, related_name='resources')
    title = models.CharField(max_length=255)
    content = models.TextField(blank=True)
    tags = models.JSONField(default=list, blank=True)
    created_at = models.DateTimeField(default=timezone.now)
    updated_at = models.DateTimeField(auto_now=True)

    objects = OrganizationManager()
    all_objects = models.Manager()

    def __str__(self):
        return self.title

    class Meta:
        ordering = ['title']
        verbose_name = "Knowledge resource"
        verbose_name_plural = "Knowledge resources"


class SystemLog(models.Model):
    LEVEL_CHOICES = [
        ('DEBUG', 'Debug'),
        ('INFO', 'Info'),
        ('WARNING', 'Warning'),
        ('ERROR', 'Error'),
        ('CRITICAL', 'Critical'),
    ]

    organization = models.ForeignKey(Organization, on_delete=models.CASCADE, null=True, blank=True,
                                     related_name='system_logs')
    timestamp = models.DateTimeField(auto_now_add=True)
    level = models.CharField(max_length=10, choices=LEVEL_CHOICES, default='INFO')
    source = models.CharField(max_length=100)
    message = models.TextField()
    details = models.JSONField(default=dict, blank=True)

    def __str__(self):
        return f"[{self.level}] {self.timestamp} - {self.source}"

    class Meta:
        ordering = ['-timestamp']
        verbose_name = "System log"
        verbose_name_plural = "System logs"


class SystemSettings(models.Model):
    """Singleton model for system-wide configuration - editable via Django Admin"""

    ai_model = models.CharField(
        max_length=100,
        blank=True,
        verbose_name="AI model",
        help_text="Overrides GEMINI_MODEL, e.g. gemini-2.5-flash"
    )
    encrypted_ai_api_key = models.BinaryField(blank=True, null=True, verbose_name="AI API key (encrypted)")

    updated_at = models.DateTimeField(auto_now=True)
    updated_by = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True)

    def save(self, *args, **kwargs):
        self.pk = 1
        super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        pass

    @classmethod
    def load(cls):
        """
        Load the singleton instance, creating it on first access.
        """
        from django.db import transaction

        try:
            return cls.objects.get(pk=1)
        except cls.DoesNotExist:
            with transaction.atomic():
                obj, _ = cls.objects.select_for_update().get_or_create(pk=1)
                return obj

    def __str__(self):
        return "System settings"

    class Meta:
        verbose_name = "System settings"
        verbose_name_plural = "System settings"
