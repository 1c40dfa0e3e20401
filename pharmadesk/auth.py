"""
Sign-in helpers: user-facing error strings, login bookkeeping and member
provisioning.
"""
import logging
import secrets

from django.contrib.auth.models import User
from django.contrib.auth.signals import user_logged_in
from django.core.exceptions import ValidationError
from django.core.validators import validate_email
from django.db import transaction
from django.dispatch import receiver
from django.utils import timezone
from django.utils.dateparse import parse_datetime

from .exceptions import WorkflowError
from .models import Member

logger = logging.getLogger('pharmadesk')

AUTH_ERROR_MESSAGES = {
    'user-not-found': 'Invalid email or password',
    'wrong-password': 'Invalid email or password',
    'email-already-in-use': 'This email is already registered',
    'weak-password': 'Password should be at least 6 characters',
    'invalid-email': 'Invalid email address',
    'user-disabled': 'This account has been disabled',
    'too-many-requests': 'Too many attempts. Please try again later',
    'network-request-failed': 'Network error. Please check your connection',
    'requires-recent-login': 'Please sign in again to perform this action',
}
DEFAULT_AUTH_ERROR = 'An error occurred. Please try again'

PREVIOUS_LOGIN_SESSION_KEY = 'previous_login_at'


def auth_error_message(code):
    if code and code.startswith('auth/'):
        code = code[len('auth/'):]
    return AUTH_ERROR_MESSAGES.get(code, DEFAULT_AUTH_ERROR)


@receiver(user_logged_in)
def record_member_login(sender, request, user, **kwargs):
    """
    Stamp ``last_login_at`` and keep the previous value in the session for
    the "welcome back" summary.
    """
    member = Member.all_objects.filter(user=user).first()
    if member is None:
        return
    if request is not None and hasattr(request, 'session'):
        previous = member.last_login_at.isoformat() if member.last_login_at else None
        request.session[PREVIOUS_LOGIN_SESSION_KEY] = previous
    member.last_login_at = timezone.now()
    member.save(update_fields=['last_login_at'])


def previous_login(request):
    value = request.session.get(PREVIOUS_LOGIN_SESSION_KEY)
    return parse_datetime(value) if value else None


def generate_temporary_password():
    return secrets.token_urlsafe(9)


@transaction.atomic
def add_member(organization, name, email, role=Member.ROLE_EMPLOYEE, password=None):
    """
    Create a sign-in account and member profile. The member must change the
    temporary password on first login. Returns ``(member, password)``.
    """
    email = (email or '').strip().lower()
    try:
        validate_email(email)
    except ValidationError:
        raise WorkflowError(auth_error_message('invalid-email'))
    if User.objects.filter(username=email).exists() or User.objects.filter(email__iexact=email).exists():
        raise WorkflowError(auth_error_message('email-already-in-use'))

    password = password or generate_temporary_password()
    if len(password) < 6:
        raise WorkflowError(auth_error_message('weak-password'))

    user = User.objects.create_user(username=email, email=email, password=password)
    member = Member.objects.create(
        organization=organization,
        user=user,
        name=name.strip(),
        email=email,
        role=role,
        status=Member.STATUS_ACTIVE,
        force_password_change=True,
    )
    logger.info(f"[Accounts] Added member {email} to {organization}")
    return member, password
