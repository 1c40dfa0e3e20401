import logging

from celery import shared_task
from django.conf import settings
from django.core.mail import send_mail
from django.utils import timezone

from .audit import log_system_event
from .exceptions import WorkflowError
from .models import Task

logger = logging.getLogger('pharmadesk')

NO_ASSIGNEE_EMAIL = "No assignees with email addresses found for this task."


def assignee_emails(task):
    emails = []
    for member in task.assignees.all():
        email = member.email or member.user.email
        if email and email not in emails:
            emails.append(email)
    return emails


def queue_task_reminder(task, note, sender_name=''):
    """
    Queue the reminder e-mail for every assignee with an address. Fails
    before queueing when nobody can be reached.
    """
    if not assignee_emails(task):
        raise WorkflowError(NO_ASSIGNEE_EMAIL)
    return send_task_reminder.delay(str(task.pk), note or '', sender_name)


@shared_task(bind=True)
def send_task_reminder(self, task_id, note, sender_name=''):
    """
    E-mail a reminder about one task to its assignees. Runs once; a failed
    delivery is logged and re-raised, not retried.
    """
    task = Task.all_objects.select_related('organization').prefetch_related('assignees__user').filter(
        pk=task_id).first()
    if task is None:
        logger.warning(f"[Reminder] Task {task_id} no longer exists")
        return {'sent': 0}

    recipients = assignee_emails(task)
    if not recipients:
        log_system_event('WARNING', 'Reminder', NO_ASSIGNEE_EMAIL,
                         {'task_id': str(task_id)}, organization=task.organization)
        return {'sent': 0}

    deadline = timezone.localtime(task.deadline)
    lines = [
        f"Reminder about the task \"{task.title}\"",
        f"Due: {deadline:%Y-%m-%d %H:%M}",
        f"Priority: {task.get_priority_display()}",
    ]
    if note:
        lines += ["", note]
    if sender_name:
        lines += ["", f"Sent by {sender_name}"]
    lines += ["", settings.SITE_URL]

    try:
        send_mail(
            subject=f"Reminder: {task.title}",
            message='\n'.join(lines),
            from_email=settings.DEFAULT_FROM_EMAIL,
            recipient_list=recipients,
        )
    except Exception as e:
        log_system_event('ERROR', 'Reminder', f"Reminder for '{task.title}' could not be sent: {e}",
                         {'task_id': str(task_id), 'recipients': recipients}, organization=task.organization)
        raise
    log_system_event('INFO', 'Reminder', f"Sent reminder for '{task.title}' to {len(recipients)} assignee(s)",
                     {'task_id': str(task_id), 'recipients': recipients}, organization=task.organization)
    return {'sent': len(recipients)}
