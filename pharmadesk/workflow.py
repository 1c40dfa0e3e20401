"""
Task lifecycle.

Status machine::

    PENDING_APPROVAL --approve--> TO_DO
    PENDING_APPROVAL --reject---> (deleted)
    TO_DO <--> IN_PROGRESS <--> DONE   (checklist toggles or explicit moves)

Every status change goes through ``TaskWorkflow._transition``. Entering DONE
stamps ``completed_at`` and runs the post-completion hook, which spawns the
recurrence successor; leaving DONE clears ``completed_at``.
"""
import logging
import uuid

from django.core.exceptions import PermissionDenied
from django.utils import timezone

from .audit import log_system_event
from .exceptions import EntityNotFound, WorkflowError
from .recurrence import compute_recurrence_successor

logger = logging.getLogger('pharmadesk')

TO_DO = 'TO_DO'
IN_PROGRESS = 'IN_PROGRESS'
DONE = 'DONE'
PENDING_APPROVAL = 'PENDING_APPROVAL'

BOARD_STATUSES = (TO_DO, IN_PROGRESS, DONE)
PRIORITIES = ('URGENT', 'IMPORTANT', 'GENERAL')
FREQUENCIES = ('DAILY', 'WEEKLY', 'BIWEEKLY', 'MONTHLY')

EDITABLE_FIELDS = {
    'title', 'checklist', 'assignee_ids', 'deadline', 'priority', 'is_private',
    'is_recurring', 'recurrence_frequency', 'recurrence_end_date',
}


def build_checklist(items):
    """
    Normalise checklist input (plain strings or dicts) into
    ``[{id, text, is_completed}]``, dropping blank entries and keeping
    existing item ids.
    """
    checklist = []
    for item in items or []:
        if isinstance(item, str):
            item = {'text': item}
        text = (item.get('text') or '').strip()
        if not text:
            continue
        checklist.append({
            'id': str(item.get('id') or uuid.uuid4().hex),
            'text': text,
            'is_completed': bool(item.get('is_completed', False)),
        })
    return checklist


def _is_admin(member):
    return member is not None and member.role == 'ADMIN'


class TaskWorkflow:

    def __init__(self, store, clock=timezone.now, comments=None):
        self.store = store
        self.clock = clock
        self.comments = comments

    @property
    def organization(self):
        return getattr(self.store, 'organization', None)

    def _get(self, task_id):
        return self.store.get(task_id)

    def _require_board_task(self, task):
        if task.status == PENDING_APPROVAL:
            raise WorkflowError("Task is awaiting approval.")

    def _clean_fields(self, fields):
        unknown = set(fields) - EDITABLE_FIELDS
        if unknown:
            raise WorkflowError(f"Fields cannot be edited: {', '.join(sorted(unknown))}")

        if 'title' in fields:
            fields['title'] = (fields['title'] or '').strip()
            if not fields['title']:
                raise WorkflowError("Task title is required.")
        if 'checklist' in fields:
            fields['checklist'] = build_checklist(fields['checklist'])
        if 'priority' in fields and fields['priority'] not in PRIORITIES:
            raise WorkflowError(f"Unknown priority: {fields['priority']}")
        if 'assignee_ids' in fields:
            fields['assignee_ids'] = list(dict.fromkeys(fields['assignee_ids'] or []))

        if 'is_recurring' in fields:
            if fields['is_recurring']:
                if fields.get('recurrence_frequency') not in FREQUENCIES:
                    raise WorkflowError("Recurring tasks need a frequency.")
            else:
                fields['recurrence_frequency'] = None
                fields['recurrence_end_date'] = None
        elif fields.get('recurrence_frequency') not in (None, *FREQUENCIES):
            raise WorkflowError(f"Unknown frequency: {fields['recurrence_frequency']}")
        return fields

    # creation and approval

    def create_task(self, author, **fields):
        """
        Admins create board tasks directly; tasks created by employees wait in
        PENDING_APPROVAL until an admin approves them.
        """
        fields.setdefault('title', '')
        if fields.get('deadline') is None:
            raise WorkflowError("Task deadline is required.")
        fields.setdefault('priority', 'GENERAL')
        fields.setdefault('is_recurring', False)
        fields = self._clean_fields(fields)

        status = TO_DO if _is_admin(author) else PENDING_APPROVAL
        return self.store.create(
            status=status,
            is_archived=False,
            completed_at=None,
            created_by_id=author.pk if author is not None else None,
            checklist=fields.pop('checklist', []),
            **fields
        )

    def approve(self, task_id):
        task = self._get(task_id)
        if task.status != PENDING_APPROVAL:
            raise WorkflowError("Only pending tasks can be approved.")
        task = self.store.update(task_id, status=TO_DO)
        log_system_event('INFO', 'TaskApproval', f"Approved task '{task.title}'",
                         {'task_id': str(task_id)}, organization=self.organization)
        return task

    def reject(self, task_id):
        task = self._get(task_id)
        if task.status != PENDING_APPROVAL:
            raise WorkflowError("Only pending tasks can be rejected.")
        self.store.delete(task_id)
        log_system_event('INFO', 'TaskApproval', f"Rejected task '{task.title}'",
                         {'task_id': str(task_id)}, organization=self.organization)

    # status machine

    def toggle_checklist_item(self, task_id, item_id):
        task = self._get(task_id)
        self._require_board_task(task)

        item_id = str(item_id)
        if not any(str(item['id']) == item_id for item in task.checklist):
            raise EntityNotFound(f"Checklist item {item_id} not found")

        checklist = [
            dict(item, is_completed=not item['is_completed']) if str(item['id']) == item_id else dict(item)
            for item in task.checklist
        ]
        all_completed = all(item['is_completed'] for item in checklist)
        any_completed = any(item['is_completed'] for item in checklist)

        status = task.status
        if all_completed and task.status != DONE:
            status = DONE
        elif task.status == TO_DO and any_completed:
            status = IN_PROGRESS
        elif task.status == IN_PROGRESS and not any_completed:
            status = TO_DO

        return self._transition(task, status, checklist=checklist)

    def set_status(self, task_id, status, checklist=None):
        if status not in BOARD_STATUSES:
            raise WorkflowError(f"Invalid status: {status}")
        task = self._get(task_id)
        self._require_board_task(task)

        changes = {}
        if checklist is not None:
            changes['checklist'] = build_checklist(checklist)
        return self._transition(task, status, **changes)

    def _transition(self, task, status, **changes):
        completing = status == DONE and task.status != DONE
        if not completing:
            if status != DONE:
                changes['completed_at'] = None
            return self.store.update(task.pk, status=status, **changes)

        # Only the caller that moves the task out of the status it read completes it.
        changes['completed_at'] = self.clock()
        updated = self.store.update_where(task.pk, {'status': task.status}, status=status, **changes)
        if updated is None:
            logger.info(f"[Workflow] Task {task.pk} was already moved from {task.status}; skipping completion")
            return self._get(task.pk)
        if self.on_completed(updated) is not None:
            return self._get(task.pk)
        return updated

    def on_completed(self, task):
        """
        Post-completion hook. Spawns at most one recurrence successor per
        task; the successor and the link back to it are separate writes.
        """
        if getattr(task, 'successor_id', None):
            return None

        fields = compute_recurrence_successor(task)
        if fields is None:
            return None

        successor = self.store.create(**fields)
        self.store.update(task.pk, successor_id=successor.pk)
        log_system_event('INFO', 'Recurrence',
                         f"Created next occurrence of '{task.title}' due {successor.deadline:%Y-%m-%d}",
                         {'task_id': str(task.pk), 'successor_id': str(successor.pk)},
                         organization=self.organization)
        return successor

    # edits

    def archive(self, task_id, archived, actor):
        if not _is_admin(actor):
            raise PermissionDenied("Only admins can archive tasks.")
        self._get(task_id)
        return self.store.update(task_id, is_archived=bool(archived))

    def delete(self, task_id):
        self._get(task_id)
        self.store.delete(task_id)

    def update_privacy(self, task_id, is_private):
        self._get(task_id)
        return self.store.update(task_id, is_private=bool(is_private))

    def update_priority(self, task_id, priority):
        if priority not in PRIORITIES:
            raise WorkflowError(f"Unknown priority: {priority}")
        self._get(task_id)
        return self.store.update(task_id, priority=priority)

    def update_task(self, task_id, **fields):
        task = self._get(task_id)
        if fields.get('is_recurring') is None and 'recurrence_frequency' in fields:
            fields['is_recurring'] = task.is_recurring
        fields = self._clean_fields(fields)
        return self.store.update(task_id, **fields)

    def add_comment(self, task_id, author, text):
        if self.comments is None:
            raise WorkflowError("Comments are not available.")
        text = (text or '').strip()
        if not text:
            raise WorkflowError("Comment cannot be empty.")
        self._get(task_id)
        return self.comments.create(
            task_id=task_id,
            author_id=author.pk,
            text=text,
            created_at=self.clock(),
        )


def workflow_for(organization, clock=timezone.now):
    """TaskWorkflow over the ORM-backed task and comment stores of one organization."""
    from .models import Task, TaskComment
    from .stores import ModelStore

    return TaskWorkflow(
        ModelStore(Task, organization),
        clock=clock,
        comments=ModelStore(TaskComment, organization),
    )
