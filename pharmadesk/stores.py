"""
Data-access layer.

Every entity type is reached through an ``EntityStore``: list/get/create/
update/delete plus a push-style ``subscribe`` that hands the subscriber a
fresh snapshot of the collection whenever one of its rows changes. The
Django implementation is scoped to a single organization.
"""
import logging
import uuid
from typing import Any, Callable, List, Protocol

from django.core.exceptions import ValidationError
from django.db import DatabaseError, transaction
from django.db.models.signals import m2m_changed, post_delete, post_save

from .exceptions import EntityNotFound, StoreError

logger = logging.getLogger('pharmadesk')

Unsubscribe = Callable[[], None]


class EntityStore(Protocol):
    def subscribe(self, callback: Callable[[List[Any]], None]) -> Unsubscribe: ...
    def list(self) -> List[Any]: ...
    def get(self, entity_id) -> Any: ...
    def create(self, **fields) -> Any: ...
    def update(self, entity_id, **fields) -> Any: ...
    def update_where(self, entity_id, expected: dict, **fields) -> Any: ...
    def delete(self, entity_id) -> None: ...


class ModelStore:
    """
    EntityStore backed by a Django model with an ``organization`` foreign key
    and an ``OrganizationManager``.

    Many-to-many relations are written as id lists, e.g. ``assignee_ids`` for
    ``assignees``.
    """

    def __init__(self, model, organization):
        self.model = model
        self.organization = organization
        self.m2m_fields = {
            f"{field.name[:-1] if field.name.endswith('s') else field.name}_ids": field.name
            for field in model._meta.many_to_many
        }

    def __repr__(self):
        return f"<ModelStore {self.model.__name__} org={self.organization.pk}>"

    def queryset(self):
        qs = self.model.objects.for_organization(self.organization)
        if self.m2m_fields:
            qs = qs.prefetch_related(*self.m2m_fields.values())
        return qs

    def list(self):
        return list(self.queryset())

    def get(self, entity_id):
        try:
            return self.queryset().get(pk=entity_id)
        except (self.model.DoesNotExist, ValueError, ValidationError):
            raise EntityNotFound(f"{self.model.__name__} {entity_id} not found")

    def _split_fields(self, fields):
        m2m = {}
        for key in list(fields):
            if key in self.m2m_fields:
                m2m[self.m2m_fields[key]] = fields.pop(key)
        return fields, m2m

    def create(self, **fields):
        fields, m2m = self._split_fields(fields)
        try:
            with transaction.atomic():
                obj = self.model.objects.create(organization=self.organization, **fields)
                for name, ids in m2m.items():
                    getattr(obj, name).set(ids or [])
        except DatabaseError as exc:
            logger.error(f"[ModelStore] create {self.model.__name__} failed: {exc}")
            raise StoreError(f"Could not save {self.model._meta.verbose_name}.") from exc
        return self.get(obj.pk)

    def update(self, entity_id, **fields):
        obj = self.get(entity_id)
        fields, m2m = self._split_fields(fields)
        try:
            with transaction.atomic():
                for name, value in fields.items():
                    setattr(obj, name, value)
                if fields:
                    obj.save()
                for name, ids in m2m.items():
                    getattr(obj, name).set(ids or [])
        except DatabaseError as exc:
            logger.error(f"[ModelStore] update {self.model.__name__} {entity_id} failed: {exc}")
            raise StoreError(f"Could not update {self.model._meta.verbose_name}.") from exc
        return self.get(entity_id)

    def update_where(self, entity_id, expected, **fields):
        """
        Update the row only while it still matches ``expected`` (field ->
        value). The row is locked for the check, so of two concurrent callers
        with the same expectation only the first one writes. Returns the
        updated entity, or None when the row no longer matches.
        """
        self.get(entity_id)
        fields, m2m = self._split_fields(fields)
        try:
            with transaction.atomic():
                obj = (
                    self.model.objects.for_organization(self.organization)
                    .select_for_update()
                    .filter(pk=entity_id, **expected)
                    .first()
                )
                if obj is None:
                    return None
                for name, value in fields.items():
                    setattr(obj, name, value)
                if fields:
                    obj.save()
                for name, ids in m2m.items():
                    getattr(obj, name).set(ids or [])
        except DatabaseError as exc:
            logger.error(f"[ModelStore] conditional update {self.model.__name__} {entity_id} failed: {exc}")
            raise StoreError(f"Could not update {self.model._meta.verbose_name}.") from exc
        return self.get(entity_id)

    def delete(self, entity_id):
        obj = self.get(entity_id)
        try:
            obj.delete()
        except DatabaseError as exc:
            logger.error(f"[ModelStore] delete {self.model.__name__} {entity_id} failed: {exc}")
            raise StoreError(f"Could not delete {self.model._meta.verbose_name}.") from exc

    def subscribe(self, callback):
        """
        Deliver ``callback(snapshot)`` synchronously after every save, delete
        or many-to-many change of a row in this organization.
        """
        uid = f"modelstore-{self.model._meta.label_lower}-{uuid.uuid4().hex}"
        organization_id = self.organization.pk

        def on_change(sender, instance, **kwargs):
            action = kwargs.get('action')
            if action is not None and not action.startswith('post_'):
                return
            if getattr(instance, 'organization_id', None) != organization_id:
                return
            callback(self.list())

        post_save.connect(on_change, sender=self.model, weak=False, dispatch_uid=uid)
        post_delete.connect(on_change, sender=self.model, weak=False, dispatch_uid=uid)
        through_models = [getattr(self.model, name).through for name in self.m2m_fields.values()]
        for through in through_models:
            m2m_changed.connect(on_change, sender=through, weak=False, dispatch_uid=uid)

        def unsubscribe():
            post_save.disconnect(sender=self.model, dispatch_uid=uid)
            post_delete.disconnect(sender=self.model, dispatch_uid=uid)
            for through in through_models:
                m2m_changed.disconnect(sender=through, dispatch_uid=uid)

        return unsubscribe
