"""
Internal messaging.

A message has one sender copy and one copy per recipient. Read, archive and
trash flags live on each copy, so one member's actions never change what
another member sees.
"""
import logging

import bleach
from django.db import transaction
from django.db.models import Q
from django.utils import timezone
from django.utils.html import strip_tags

from .exceptions import EntityNotFound, WorkflowError
from .models import Member, Message, MessageAttachment, MessageRecipient

logger = logging.getLogger('pharmadesk')

FOLDERS = ('inbox', 'sent', 'archived', 'trash')
STATUS_FLAGS = ('is_read', 'is_archived', 'is_deleted')

ALLOWED_TAGS = ['b', 'i', 'u', 'p', 'br', 'strong', 'em', 'h1', 'h2', 'h3',
                'h4', 'ul', 'ol', 'li', 'a', 'blockquote', 'pre', 'code', 'hr', 'div', 'span']
ALLOWED_ATTRIBUTES = {
    'a': ['href', 'title'],
}


def sanitize_body(body):
    return bleach.clean(body or '', tags=ALLOWED_TAGS, attributes=ALLOWED_ATTRIBUTES, strip=True)


def reply_subject(subject):
    subject = subject or ''
    return subject if subject.startswith('Re: ') else f"Re: {subject}"


def briefing_subject(today=None):
    today = today or timezone.localdate()
    return f"Daily Briefing for {today:%B} {today.day}"


def messages_for_member(organization, member):
    """Messages the member sent or received, with copies prefetched."""
    return (
        Message.objects.for_organization(organization)
        .filter(Q(sender=member) | Q(recipients__member=member))
        .select_related('sender')
        .prefetch_related('recipients', 'attachments')
        .distinct()
    )


@transaction.atomic
def send_message(organization, sender, recipient_ids, subject, body, attachments=()):
    subject = (subject or '').strip()
    if not subject:
        raise WorkflowError("Subject is required.")

    recipient_ids = list(dict.fromkeys(str(pk) for pk in recipient_ids or []))
    recipients = list(
        Member.objects.for_organization(organization).filter(pk__in=recipient_ids).exclude(pk=sender.pk)
    )
    if not recipients:
        raise WorkflowError("Select at least one recipient.")

    message = Message.objects.create(
        organization=organization,
        sender=sender,
        subject=subject,
        body=sanitize_body(body),
    )
    MessageRecipient.objects.bulk_create([
        MessageRecipient(message=message, member=member) for member in recipients
    ])
    for upload in attachments:
        MessageAttachment.objects.create(
            message=message,
            name=upload.name,
            content_type=getattr(upload, 'content_type', '') or '',
            file=upload,
        )

    logger.info(f"[Messaging] {sender} sent '{subject}' to {len(recipients)} recipient(s)")
    return message


def _recipient_copy(message, member):
    for recipient in message.recipients.all():
        if recipient.member_id == member.pk:
            return recipient
    return None


def update_message_status(message, member, **flags):
    """
    Update the acting member's copy only. A sender trashing their own
    message flips ``sender_deleted``; every other flag goes to the member's
    recipient record.
    """
    unknown = set(flags) - set(STATUS_FLAGS)
    if unknown:
        raise WorkflowError(f"Unknown message flags: {', '.join(sorted(unknown))}")

    if message.sender_id == member.pk and 'is_deleted' in flags:
        message.sender_deleted = bool(flags['is_deleted'])
        message.save(update_fields=['sender_deleted'])
        return message

    recipient = _recipient_copy(message, member)
    if recipient is None:
        raise EntityNotFound("Message not found in your mailbox.")
    for name, value in flags.items():
        setattr(recipient, name, bool(value))
    recipient.save(update_fields=list(flags))
    return message


@transaction.atomic
def permanently_delete(message, member):
    """
    Remove the member's trashed copies of a message. The message itself is
    deleted once neither the sender nor any recipient still holds a copy.
    """
    removed = False
    recipient = _recipient_copy(message, member)
    if recipient is not None and recipient.is_deleted:
        recipient.delete()
        removed = True
    if message.sender_id == member.pk and message.sender_deleted and not message.sender_purged:
        message.sender_purged = True
        message.save(update_fields=['sender_purged'])
        removed = True

    if not removed:
        raise WorkflowError("Only messages in the trash can be deleted permanently.")

    sender_holds_copy = message.sender_id is not None and not message.sender_purged
    if not sender_holds_copy and not MessageRecipient.objects.filter(message=message).exists():
        message.delete()
        return None
    return message


def _in_folder(message, member, folder):
    recipient = _recipient_copy(message, member)
    is_sender = message.sender_id == member.pk
    if folder == 'inbox':
        return recipient is not None and not recipient.is_archived and not recipient.is_deleted
    if folder == 'sent':
        return is_sender and not message.sender_deleted
    if folder == 'archived':
        return recipient is not None and recipient.is_archived and not recipient.is_deleted
    if folder == 'trash':
        return ((recipient is not None and recipient.is_deleted)
                or (is_sender and message.sender_deleted and not message.sender_purged))
    raise ValueError(f"Unknown folder: {folder}")


def is_unread(message, member):
    recipient = _recipient_copy(message, member)
    return recipient is not None and not recipient.is_read


def _matches(message, query):
    sender_name = message.sender.name if message.sender else ''
    haystack = ' '.join([sender_name, message.subject, strip_tags(message.body)]).lower()
    return query.lower() in haystack


def folder_messages(messages, member, folder, query='', unread_only=False):
    result = [m for m in messages if _in_folder(m, member, folder)]
    if query:
        result = [m for m in result if _matches(m, query)]
    if unread_only:
        result = [m for m in result if folder == 'inbox' and is_unread(m, member)]
    return sorted(result, key=lambda m: m.timestamp, reverse=True)


def folder_counts(messages, member):
    messages = list(messages)
    return {folder: sum(1 for m in messages if _in_folder(m, member, folder)) for folder in FOLDERS}


def unread_count(messages, member):
    return sum(1 for m in messages if _in_folder(m, member, 'inbox') and is_unread(m, member))
