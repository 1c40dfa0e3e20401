"""
Recurring task rollover.

When a recurring task is completed, exactly one successor task is created
with the next deadline and a fully reset checklist.
"""
import calendar
from datetime import timedelta

from django.utils import timezone

FREQUENCY_OFFSETS = {
    'DAILY': timedelta(days=1),
    'WEEKLY': timedelta(days=7),
    'BIWEEKLY': timedelta(days=14),
}


def add_months(value, months=1):
    """
    Shift a date or datetime by whole calendar months. A day past the end of
    the target month rolls over into the following month
    (Jan 31 2024 + 1 month -> Mar 2 2024).
    """
    month_index = value.month - 1 + months
    year = value.year + month_index // 12
    month = month_index % 12 + 1
    last_day = calendar.monthrange(year, month)[1]
    if value.day <= last_day:
        return value.replace(year=year, month=month)
    return value.replace(year=year, month=month, day=last_day) + timedelta(days=value.day - last_day)


def next_deadline(deadline, frequency):
    if frequency == 'MONTHLY':
        return add_months(deadline, 1)
    try:
        return deadline + FREQUENCY_OFFSETS[frequency]
    except KeyError:
        raise ValueError(f"Unknown recurrence frequency: {frequency!r}")


def local_day(value):
    if timezone.is_aware(value):
        return timezone.localtime(value).date()
    return value.date()


def reset_checklist(checklist):
    return [
        {'id': item['id'], 'text': item['text'], 'is_completed': False}
        for item in checklist or []
    ]


def compute_recurrence_successor(task):
    """
    Return the field set for the successor of a just-completed task, or None
    when the task does not recur or its recurrence has ended.

    No successor is created when the end date falls strictly before the next
    deadline; a next deadline exactly at the end date still produces one.
    """
    if not task.is_recurring or not task.recurrence_frequency:
        return None

    deadline = next_deadline(task.deadline, task.recurrence_frequency)
    end_date = task.recurrence_end_date
    if end_date is not None and deadline > end_date:
        return None

    return {
        'title': task.title,
        'checklist': reset_checklist(task.checklist),
        'assignee_ids': list(task.assignee_ids),
        'deadline': deadline,
        'status': 'TO_DO',
        'priority': task.priority,
        'is_private': task.is_private,
        'is_recurring': True,
        'recurrence_frequency': task.recurrence_frequency,
        'recurrence_end_date': end_date,
        'is_archived': False,
        'created_by_id': task.created_by_id,
        'completed_at': None,
    }
