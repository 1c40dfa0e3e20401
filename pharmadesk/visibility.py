"""
Task visibility and board grouping.

The privacy filter is re-applied to the live task list on every request;
its result is never cached.
"""
from collections import defaultdict

from .recurrence import local_day

PRIORITY_ORDER = {'URGENT': 1, 'IMPORTANT': 2, 'GENERAL': 3}


def can_view(member, task):
    if member.role == 'ADMIN' or not task.is_private:
        return True
    return task.created_by_id == member.pk or member.pk in task.assignee_ids


def visible_tasks(member, tasks):
    return [task for task in tasks if can_view(member, task)]


def active_tasks(tasks):
    return [t for t in tasks if not t.is_archived and t.status != 'PENDING_APPROVAL']


def archived_tasks(tasks):
    return [t for t in tasks if t.is_archived]


def pending_tasks(tasks):
    return [t for t in tasks if t.status == 'PENDING_APPROVAL' and not t.is_archived]


def assigned_to(member, tasks):
    """The "my tasks only" filter."""
    return [t for t in tasks if member.pk in t.assignee_ids]


def by_priority(tasks):
    return sorted(tasks, key=lambda t: PRIORITY_ORDER.get(t.priority, len(PRIORITY_ORDER) + 1))


def tasks_by_status(tasks):
    """Kanban columns. Open columns are ordered by priority, DONE by completion, newest first."""
    tasks = list(tasks)
    done = [t for t in tasks if t.status == 'DONE']
    done.sort(key=lambda t: t.completed_at.timestamp() if t.completed_at else 0, reverse=True)
    return {
        'TO_DO': by_priority(t for t in tasks if t.status == 'TO_DO'),
        'IN_PROGRESS': by_priority(t for t in tasks if t.status == 'IN_PROGRESS'),
        'DONE': done,
    }


def tasks_by_day(tasks, year=None, month=None):
    """
    Group tasks by the local calendar day of their deadline. When ``year`` and
    ``month`` are given only that month is kept.
    """
    grouped = defaultdict(list)
    for task in tasks:
        day = local_day(task.deadline)
        if year is not None and month is not None and (day.year, day.month) != (year, month):
            continue
        grouped[day].append(task)
    for day_tasks in grouped.values():
        day_tasks.sort(key=lambda t: t.deadline)
    return dict(grouped)
