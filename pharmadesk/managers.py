"""
Organization-aware model managers.

These managers automatically filter querysets by the current organization,
so one pharmacy's data is never visible to another's. Superusers bypass
filtering to enable global administration and support.
"""

from django.db import models
from pharmadesk.middleware import get_current_organization, get_current_user


class OrganizationQuerySet(models.QuerySet):

    def for_organization(self, organization):
        """
        Explicitly filter for a specific organization.
        """
        if organization is None:
            return self
        return self.filter(organization=organization)


class OrganizationManager(models.Manager):
    """
    Model manager that automatically filters by the current organization.

    Usage:
        class MyModel(models.Model):
            organization = models.ForeignKey(Organization, on_delete=models.CASCADE)

            objects = OrganizationManager()
            all_objects = models.Manager()  # Unfiltered access for migrations/admin

    Superusers see everything; outside a request (management commands,
    Celery jobs, tests) no filter is applied and callers must scope
    explicitly with ``for_organization``.
    """

    def get_queryset(self):
        qs = OrganizationQuerySet(self.model, using=self._db)

        user = get_current_user()
        if user and user.is_superuser:
            return qs

        organization = get_current_organization()
        if organization:
            return qs.filter(organization=organization)

        return qs

    def unfiltered(self):
        """
        Return an unfiltered queryset (use with caution).
        """
        return OrganizationQuerySet(self.model, using=self._db)

    def for_organization(self, organization):
        return self.unfiltered().filter(organization=organization)
