"""
Derived, display-only figures: completion streaks, daily progress and the
admin reports. Nothing here is persisted.
"""
from dataclasses import dataclass
from datetime import date, datetime
from typing import Iterable, Optional

from django.utils import timezone

from .recurrence import local_day

PRIORITIES = ('URGENT', 'IMPORTANT', 'GENERAL')


@dataclass(frozen=True)
class Streak:
    count: int = 0
    last_completion: Optional[date] = None

    def __bool__(self):
        return self.count > 0


def _is_assigned(task, member_id) -> bool:
    return member_id in task.assignee_ids


def _completed(tasks: Iterable) -> list:
    return [t for t in tasks if t.status == 'DONE']


def calculate_streak(member_id, tasks: Iterable) -> Streak:
    """
    Count consecutive local calendar days, walking back from the most recent
    completion, on which the member completed at least one task.
    """
    completed = sorted(
        (t for t in tasks
         if _is_assigned(t, member_id) and t.status == 'DONE' and t.completed_at is not None),
        key=lambda t: t.completed_at,
        reverse=True,
    )
    if not completed:
        return Streak()

    days = [local_day(t.completed_at) for t in completed]
    count = 1
    current = days[0]
    for day in days[1:]:
        gap = (current - day).days
        if gap == 0:
            continue
        if gap != 1:
            break
        count += 1
        current = day

    return Streak(count=count, last_completion=days[0])


def streaks_for_members(members: Iterable, tasks: Iterable) -> dict:
    tasks = list(tasks)
    return {member.pk: calculate_streak(member.pk, tasks) for member in members}


def daily_progress(member_id, tasks: Iterable, today: Optional[date] = None) -> dict:
    """
    Per-priority totals for the member's tasks due on the current local day.
    All three priority buckets are always present.
    """
    today = today or timezone.localdate()
    progress = {priority: {'total': 0, 'completed': 0} for priority in PRIORITIES}
    for task in tasks:
        if not _is_assigned(task, member_id) or local_day(task.deadline) != today:
            continue
        bucket = progress.get(task.priority)
        if bucket is None:
            continue
        bucket['total'] += 1
        if task.status == 'DONE':
            bucket['completed'] += 1
    return progress


def overdue_tasks(tasks: Iterable, now: Optional[datetime] = None) -> list:
    """Tasks past their deadline and not done, most overdue first."""
    now = now or timezone.now()
    return sorted(
        (t for t in tasks if t.deadline < now and t.status != 'DONE'),
        key=lambda t: t.deadline,
    )


def days_overdue(task, now: Optional[datetime] = None) -> int:
    now = now or timezone.now()
    return max(0, (now - task.deadline).days)


def _count_by_priority(tasks) -> dict:
    counts = {priority: 0 for priority in PRIORITIES}
    for task in tasks:
        if task.priority in counts:
            counts[task.priority] += 1
    return counts


def report_summary(tasks: Iterable, members: Iterable, now: Optional[datetime] = None) -> dict:
    tasks = list(tasks)
    completed = _completed(tasks)
    total = len(tasks)
    employees = [m for m in members if m.role == 'EMPLOYEE' and m.status == 'ACTIVE']

    employee_stats = []
    for employee in employees:
        done = [t for t in completed if _is_assigned(t, employee.pk)]
        employee_stats.append({
            'member': employee,
            'completed': len(done),
            'by_priority': _count_by_priority(done),
        })

    overdue = overdue_tasks(tasks, now)
    return {
        'total': total,
        'completed': len(completed),
        'completion_rate': int(len(completed) * 100 / total + 0.5) if total else 0,
        'overdue': overdue,
        'overdue_count': len(overdue),
        'completed_by_priority': _count_by_priority(completed),
        'employees': employee_stats,
    }


def completed_since(tasks: Iterable, since: Optional[datetime]) -> list:
    """Tasks completed after ``since``, newest first. Empty when ``since`` is None."""
    if since is None:
        return []
    return sorted(
        (t for t in tasks
         if t.status == 'DONE' and t.completed_at is not None and t.completed_at > since),
        key=lambda t: t.completed_at,
        reverse=True,
    )
