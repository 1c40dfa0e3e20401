from django import forms
from django.contrib.auth import authenticate
from django.contrib.auth.forms import AuthenticationForm
from django.contrib.auth.models import User
from django.core.cache import cache

from .auth import auth_error_message
from .models import Folder, Member, Task

MAX_LOGIN_ATTEMPTS = 5
LOGIN_LOCKOUT_SECONDS = 15 * 60


class EmailAuthenticationForm(AuthenticationForm):
    """Sign in with e-mail address and password."""

    username = forms.EmailField(
        label="Email",
        widget=forms.EmailInput(attrs={'autofocus': True, 'autocomplete': 'email'}),
    )

    error_messages = {
        'invalid_login': auth_error_message('wrong-password'),
        'inactive': auth_error_message('user-disabled'),
    }

    def _attempts_key(self, email):
        return f"login-attempts:{email}"

    def clean(self):
        email = (self.cleaned_data.get('username') or '').strip().lower()
        password = self.cleaned_data.get('password')
        if not email or not password:
            return self.cleaned_data

        key = self._attempts_key(email)
        if cache.get(key, 0) >= MAX_LOGIN_ATTEMPTS:
            raise forms.ValidationError(auth_error_message('too-many-requests'), code='too_many_requests')

        self.user_cache = authenticate(self.request, username=email, password=password)
        if self.user_cache is None:
            cache.set(key, cache.get(key, 0) + 1, LOGIN_LOCKOUT_SECONDS)
            disabled = User.objects.filter(username=email, is_active=False).first()
            if disabled is not None and disabled.check_password(password):
                raise forms.ValidationError(self.error_messages['inactive'], code='inactive')
            raise self.get_invalid_login_error()

        cache.delete(key)
        self.confirm_login_allowed(self.user_cache)
        return self.cleaned_data


class OrganizationFormMixin:
    """Restrict member and folder choices to one organization."""

    def __init__(self, *args, organization=None, **kwargs):
        super().__init__(*args, **kwargs)
        if 'assignees' in self.fields:
            self.fields['assignees'].queryset = Member.objects.for_organization(organization).filter(
                status=Member.STATUS_ACTIVE)
        if 'recipients' in self.fields:
            self.fields['recipients'].queryset = Member.objects.for_organization(organization).filter(
                status=Member.STATUS_ACTIVE)
        if 'folder' in self.fields:
            self.fields['folder'].queryset = Folder.objects.for_organization(organization)


class TaskForm(OrganizationFormMixin, forms.Form):
    title = forms.CharField(max_length=255)
    checklist = forms.CharField(widget=forms.Textarea, required=False, help_text="One item per line")
    assignees = forms.ModelMultipleChoiceField(queryset=Member.objects.none(), required=False)
    deadline = forms.DateTimeField(widget=forms.DateTimeInput(attrs={'type': 'datetime-local'}))
    priority = forms.ChoiceField(choices=Task.PRIORITY_CHOICES, initial=Task.PRIORITY_GENERAL)
    is_private = forms.BooleanField(required=False)
    is_recurring = forms.BooleanField(required=False)
    recurrence_frequency = forms.ChoiceField(choices=[('', '---')] + Task.FREQUENCY_CHOICES, required=False)
    recurrence_end_date = forms.DateTimeField(required=False, widget=forms.DateTimeInput(attrs={'type': 'datetime-local'}))

    def clean(self):
        cleaned = super().clean()
        if cleaned.get('is_recurring') and not cleaned.get('recurrence_frequency'):
            self.add_error('recurrence_frequency', "Choose how often the task repeats.")
        return cleaned

    def task_fields(self):
        data = self.cleaned_data
        return {
            'title': data['title'],
            'checklist': [line for line in data['checklist'].splitlines() if line.strip()],
            'assignee_ids': [m.pk for m in data['assignees']],
            'deadline': data['deadline'],
            'priority': data['priority'],
            'is_private': data['is_private'],
            'is_recurring': data['is_recurring'],
            'recurrence_frequency': data['recurrence_frequency'] or None,
            'recurrence_end_date': data['recurrence_end_date'],
        }


class MultipleFileInput(forms.ClearableFileInput):
    allow_multiple_selected = True


class MultipleFileField(forms.FileField):

    def __init__(self, *args, **kwargs):
        kwargs.setdefault('widget', MultipleFileInput())
        super().__init__(*args, **kwargs)

    def clean(self, data, initial=None):
        single_file_clean = super().clean
        if isinstance(data, (list, tuple)):
            return [single_file_clean(d, initial) for d in data]
        return [single_file_clean(data, initial)] if data else []


class MessageForm(OrganizationFormMixin, forms.Form):
    recipients = forms.ModelMultipleChoiceField(queryset=Member.objects.none())
    subject = forms.CharField(max_length=255)
    body = forms.CharField(widget=forms.Textarea, required=False)
    attachments = MultipleFileField(required=False)

    def __init__(self, *args, max_attachment_size=None, sender=None, **kwargs):
        super().__init__(*args, **kwargs)
        self.max_attachment_size = max_attachment_size
        if sender is not None:
            self.fields['recipients'].queryset = self.fields['recipients'].queryset.exclude(pk=sender.pk)

    def clean_attachments(self):
        files = self.cleaned_data.get('attachments') or []
        if self.max_attachment_size:
            for f in files:
                if f.size > self.max_attachment_size:
                    raise forms.ValidationError(f"{f.name} is too large.")
        return files


class ResourceForm(OrganizationFormMixin, forms.Form):
    title = forms.CharField(max_length=255)
    content = forms.CharField(widget=forms.Textarea, required=False)
    tags = forms.CharField(required=False, help_text="Comma separated")
    folder = forms.ModelChoiceField(queryset=Folder.objects.none(), required=False)


class FolderForm(forms.Form):
    name = forms.CharField(max_length=200)


class AddMemberForm(forms.Form):
    name = forms.CharField(max_length=200)
    email = forms.EmailField()
    role = forms.ChoiceField(choices=Member.ROLE_CHOICES, initial=Member.ROLE_EMPLOYEE)


class AccountForm(forms.ModelForm):
    class Meta:
        model = Member
        fields = ['name', 'avatar', 'theme']
