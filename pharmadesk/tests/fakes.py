# pharmadesk/tests/fakes.py

from __future__ import annotations

import uuid
from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Any, Callable, Optional

from pharmadesk.exceptions import EntityNotFound


@dataclass(frozen=True)
class FakeMember:
    pk: str = field(default_factory=lambda: uuid.uuid4().hex)
    name: str = "Member"
    role: str = "EMPLOYEE"
    status: str = "ACTIVE"


@dataclass(frozen=True)
class FakeTask:
    """Plain task record with the attributes the pure task modules read."""

    deadline: datetime
    title: str = "Task"
    pk: str = field(default_factory=lambda: uuid.uuid4().hex)
    checklist: list = field(default_factory=list)
    assignee_ids: list = field(default_factory=list)
    status: str = "TO_DO"
    priority: str = "GENERAL"
    is_private: bool = False
    is_recurring: bool = False
    recurrence_frequency: Optional[str] = None
    recurrence_end_date: Optional[datetime] = None
    successor_id: Optional[str] = None
    is_archived: bool = False
    created_by_id: Optional[str] = None
    completed_at: Optional[datetime] = None


@dataclass(frozen=True)
class FakeComment:
    task_id: str
    author_id: str
    text: str
    created_at: datetime
    pk: str = field(default_factory=lambda: uuid.uuid4().hex)


@dataclass(frozen=True)
class FakeFolder:
    name: str
    pk: str = field(default_factory=lambda: uuid.uuid4().hex)


@dataclass(frozen=True)
class FakeResource:
    title: str
    content: str = ""
    tags: list = field(default_factory=list)
    folder_id: Optional[str] = None
    pk: str = field(default_factory=lambda: uuid.uuid4().hex)


class InMemoryStore:
    """
    Dict-backed EntityStore for unit tests.

    Records are immutable dataclasses; updates replace them. Subscribers are
    only notified when ``push()`` is called, so tests control delivery.
    """

    def __init__(self, record_type: type, records: Optional[list] = None) -> None:
        self.record_type = record_type
        self.records: dict[str, Any] = {}
        self.subscribers: list[Callable[[list], None]] = []
        self.calls: list[tuple[str, Any]] = []
        for record in records or []:
            self.records[record.pk] = record

    def subscribe(self, callback):
        self.subscribers.append(callback)
        return lambda: self.subscribers.remove(callback)

    def push(self) -> None:
        snapshot = self.list()
        for callback in list(self.subscribers):
            callback(snapshot)

    def list(self) -> list:
        return list(self.records.values())

    def get(self, entity_id):
        try:
            return self.records[str(entity_id)]
        except KeyError:
            raise EntityNotFound(f"{self.record_type.__name__} {entity_id} not found")

    def create(self, **fields):
        record = self.record_type(**fields)
        self.records[record.pk] = record
        self.calls.append(('create', record.pk))
        return record

    def update(self, entity_id, **fields):
        record = replace(self.get(entity_id), **fields)
        self.records[record.pk] = record
        self.calls.append(('update', record.pk))
        return record

    def update_where(self, entity_id, expected: dict, **fields):
        current = self.get(entity_id)
        if any(getattr(current, name) != value for name, value in expected.items()):
            self.calls.append(('update_where', str(entity_id)))
            return None
        return self.update(entity_id, **fields)

    def delete(self, entity_id) -> None:
        self.get(entity_id)
        del self.records[str(entity_id)]
        self.calls.append(('delete', str(entity_id)))


class FixedClock:
    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now


class FakeResponse:
    def __init__(self, status_code: int = 200, payload: Any = None, text: str = "") -> None:
        self.status_code = status_code
        self._payload = payload
        self.text = text

    def json(self):
        if self._payload is None:
            raise ValueError("No JSON body")
        return self._payload


class FakeSession:
    """
    Stand-in for ``requests.Session`` that records every POST.
    """

    def __init__(self, response: Optional[FakeResponse] = None, error: Optional[Exception] = None) -> None:
        self.response = response or FakeResponse(payload=gemini_payload("ok"))
        self.error = error
        self.posts: list[dict] = []

    def post(self, url, json=None, headers=None, timeout=None):
        self.posts.append({'url': url, 'json': json, 'headers': headers, 'timeout': timeout})
        if self.error is not None:
            raise self.error
        return self.response


def gemini_payload(text: str) -> dict:
    return {'candidates': [{'content': {'parts': [{'text': text}]}}]}
