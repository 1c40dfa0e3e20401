"""
Test utilities and factories for creating test data
"""
import random
import string
from datetime import timedelta

from django.contrib.auth.models import User
from django.utils import timezone

from pharmadesk.models import Folder, KnowledgeResource, Member, Organization, Task

DEFAULT_PASSWORD = 'testpass123'


class TestDataFactory:
    """Factory class for creating test data"""

    @staticmethod
    def random_string(length=10):
        """Generate a random string"""
        return ''.join(random.choices(string.ascii_lowercase + string.digits, k=length))

    @staticmethod
    def create_organization(name=None):
        """Create a test pharmacy"""
        return Organization.objects.create(name=name or f'Pharmacy {TestDataFactory.random_string(6)}')

    @staticmethod
    def create_member(organization=None, role=Member.ROLE_EMPLOYEE, name=None, email=None,
                      password=DEFAULT_PASSWORD, status=Member.STATUS_ACTIVE, force_password_change=False):
        """Create a sign-in user together with its member profile"""
        organization = organization or TestDataFactory.create_organization()
        if not email:
            email = f'{TestDataFactory.random_string(8)}@test.com'
        user = User.objects.create_user(
            username=email,
            email=email,
            password=password,
            is_active=status == Member.STATUS_ACTIVE,
        )
        return Member.objects.create(
            organization=organization,
            user=user,
            name=name or f'Member {TestDataFactory.random_string(4)}',
            email=email,
            role=role,
            status=status,
            force_password_change=force_password_change,
        )

    @staticmethod
    def create_admin(organization=None, **kwargs):
        return TestDataFactory.create_member(organization, role=Member.ROLE_ADMIN, **kwargs)

    @staticmethod
    def create_task(organization, title=None, assignees=(), deadline=None, checklist=None, **fields):
        """Create a board task directly, bypassing the workflow"""
        task = Task.objects.create(
            organization=organization,
            title=title or f'Task {TestDataFactory.random_string(6)}',
            deadline=deadline or timezone.now() + timedelta(days=1),
            checklist=checklist if checklist is not None else [
                {'id': 'a', 'text': 'First', 'is_completed': False},
                {'id': 'b', 'text': 'Second', 'is_completed': False},
            ],
            **fields
        )
        if assignees:
            task.assignees.set(assignees)
        return task

    @staticmethod
    def create_folder(organization, name=None):
        return Folder.objects.create(organization=organization, name=name or f'Folder {TestDataFactory.random_string(4)}')

    @staticmethod
    def create_resource(organization, title=None, content='', tags=None, folder=None):
        return KnowledgeResource.objects.create(
            organization=organization,
            title=title or f'Resource {TestDataFactory.random_string(4)}',
            content=content,
            tags=tags or [],
            folder=folder,
        )
