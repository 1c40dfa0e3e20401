"""
Organization Middleware for the multi-tenant pharmacy workspace.

Every authenticated request is bound to the organization of the signed-in
member. The organization and member are stored in thread-local storage so
that tenant-aware managers can filter querysets without passing the tenant
around explicitly.
"""

import threading
from django.shortcuts import redirect
from django.urls import reverse
from django.utils.deprecation import MiddlewareMixin

_thread_locals = threading.local()


def get_current_organization():
    """
    Retrieve the current organization from thread-local storage.
    Returns None if no organization is set (anonymous user or superuser).
    """
    return getattr(_thread_locals, 'organization', None)


def get_current_user():
    """
    Retrieve the current user from thread-local storage.
    """
    return getattr(_thread_locals, 'user', None)


def set_current_organization(organization):
    _thread_locals.organization = organization


def set_current_user(user):
    _thread_locals.user = user


def clear_organization_context():
    """
    Clear organization context from thread-local storage.
    Called at the end of each request to prevent data leakage.
    """
    _thread_locals.organization = None
    _thread_locals.user = None


class OrganizationMiddleware(MiddlewareMixin):
    """
    Identifies the current organization based on the authenticated user's
    member profile and exposes it as ``request.organization`` and
    ``request.member``.

    Superusers without a member profile get no organization, giving them
    global access through the admin.
    """

    def process_request(self, request):
        clear_organization_context()
        request.organization = None
        request.member = None

        if not hasattr(request, 'user') or not request.user.is_authenticated:
            return None

        user = request.user
        set_current_user(user)

        member = self._get_member(user)
        if member is not None:
            request.member = member
            request.organization = member.organization
            set_current_organization(member.organization)

        return None

    def _get_member(self, user):
        from pharmadesk.models import Member

        return Member.objects.unfiltered().select_related('organization').filter(
            user=user,
            organization__is_active=True,
        ).first()

    def process_response(self, request, response):
        clear_organization_context()
        return response

    def process_exception(self, request, exception):
        clear_organization_context()
        return None


class ForcePasswordChangeMiddleware(MiddlewareMixin):
    """
    Members flagged with ``force_password_change`` must set a new password
    before they can use any other page.
    """

    allowed_url_names = ('force_password_change', 'logout')

    def process_request(self, request):
        member = getattr(request, 'member', None)
        if member is None or not member.force_password_change:
            return None

        allowed = [reverse(f'pharmadesk:{name}') if name != 'logout' else reverse(name)
                   for name in self.allowed_url_names]
        if request.path in allowed or request.path.startswith('/static/'):
            return None
        return redirect('pharmadesk:force_password_change')
