"""
JSON endpoints.

Board actions (checklist toggles, status moves, approvals), mailbox actions,
knowledge base uploads and the AI proxy. Every action answers with
``{"success": true, ...}`` or ``{"success": false, "error": "..."}``; the AI
proxy keeps its own ``{report}`` / ``{answer}`` / ``{message}`` contract.
"""
import json
import logging
from functools import wraps

from django.conf import settings
from django.core.exceptions import PermissionDenied
from django.http import JsonResponse
from django.views.decorators.http import require_http_methods

from . import knowledge, messaging
from .ai import ask_knowledge_base, generate_daily_briefing
from .decorators import api_admin_required, api_member_required
from .exceptions import (AIServiceError, EntityNotFound, FileParseError,
                         PharmadeskError, StoreError, WorkflowError)
from .models import Folder, KnowledgeResource, Member, Task
from .stores import ModelStore
from .tasks import queue_task_reminder
from .visibility import active_tasks, can_view, visible_tasks
from .workflow import workflow_for

logger = logging.getLogger('pharmadesk')

ERROR_STATUS = [
    (EntityNotFound, 404),
    (WorkflowError, 400),
    (FileParseError, 400),
    (AIServiceError, 502),
    (StoreError, 500),
]

AI_ACTIONS = ('generateDailyBriefing', 'askKnowledgeBase')


def _json_body(request):
    try:
        data = json.loads(request.body or b'{}')
    except (ValueError, UnicodeDecodeError):
        return None
    return data if isinstance(data, dict) else None


def _error(message, status):
    return JsonResponse({'success': False, 'error': message}, status=status)


def json_action(view_func):
    """Translate application errors raised by an action into JSON error responses."""
    @wraps(view_func)
    def wrapper(request, *args, **kwargs):
        try:
            return view_func(request, *args, **kwargs)
        except PermissionDenied as e:
            return _error(str(e) or 'Permission denied', 403)
        except PharmadeskError as e:
            for exc_class, status in ERROR_STATUS:
                if isinstance(e, exc_class):
                    return _error(str(e), status)
            return _error(str(e), 400)
    return wrapper


def _task_json(task):
    return {
        'id': str(task.pk),
        'title': task.title,
        'status': task.status,
        'priority': task.priority,
        'is_private': task.is_private,
        'is_archived': task.is_archived,
        'deadline': task.deadline.isoformat(),
        'completed_at': task.completed_at.isoformat() if task.completed_at else None,
        'checklist': task.checklist,
        'assignee_ids': [str(pk) for pk in task.assignee_ids],
        'successor_id': str(task.successor_id) if task.successor_id else None,
    }


def _visible_task(request, workflow, task_id):
    task = workflow.store.get(task_id)
    if not can_view(request.member, task):
        raise EntityNotFound(f"Task {task_id} not found")
    return task


# Tasks

@api_member_required
@require_http_methods(["POST"])
@json_action
def task_toggle_item(request, pk, item_id):
    workflow = workflow_for(request.organization)
    _visible_task(request, workflow, pk)
    task = workflow.toggle_checklist_item(pk, item_id)
    return JsonResponse({'success': True, 'task': _task_json(task)})


@api_member_required
@require_http_methods(["POST"])
@json_action
def task_status(request, pk):
    data = _json_body(request)
    if data is None:
        return _error('Invalid JSON', 400)
    workflow = workflow_for(request.organization)
    _visible_task(request, workflow, pk)
    task = workflow.set_status(pk, data.get('status'), checklist=data.get('checklist'))
    return JsonResponse({'success': True, 'task': _task_json(task)})


@api_member_required
@require_http_methods(["POST"])
@json_action
def task_privacy(request, pk):
    data = _json_body(request)
    if data is None:
        return _error('Invalid JSON', 400)
    workflow = workflow_for(request.organization)
    _visible_task(request, workflow, pk)
    task = workflow.update_privacy(pk, data.get('is_private', False))
    return JsonResponse({'success': True, 'task': _task_json(task)})


@api_member_required
@require_http_methods(["POST"])
@json_action
def task_priority(request, pk):
    data = _json_body(request)
    if data is None:
        return _error('Invalid JSON', 400)
    workflow = workflow_for(request.organization)
    _visible_task(request, workflow, pk)
    task = workflow.update_priority(pk, data.get('priority'))
    return JsonResponse({'success': True, 'task': _task_json(task)})


@api_member_required
@require_http_methods(["POST"])
@json_action
def task_comment(request, pk):
    data = _json_body(request)
    if data is None:
        return _error('Invalid JSON', 400)
    workflow = workflow_for(request.organization)
    _visible_task(request, workflow, pk)
    comment = workflow.add_comment(pk, request.member, data.get('text', ''))
    return JsonResponse({
        'success': True,
        'comment': {
            'id': str(comment.pk),
            'author': request.member.name,
            'text': comment.text,
            'timestamp': comment.created_at.isoformat(),
        },
    })


@api_member_required
@require_http_methods(["POST"])
@json_action
def task_delete(request, pk):
    workflow = workflow_for(request.organization)
    task = _visible_task(request, workflow, pk)
    if not request.member.is_admin and task.created_by_id != request.member.pk:
        raise PermissionDenied("Only admins or the task creator can delete a task.")
    workflow.delete(pk)
    return JsonResponse({'success': True})


@api_member_required
@require_http_methods(["POST"])
@json_action
def task_archive(request, pk):
    data = _json_body(request)
    if data is None:
        return _error('Invalid JSON', 400)
    task = workflow_for(request.organization).archive(pk, data.get('archived', True), request.member)
    return JsonResponse({'success': True, 'task': _task_json(task)})


@api_admin_required
@require_http_methods(["POST"])
@json_action
def task_approve(request, pk):
    task = workflow_for(request.organization).approve(pk)
    return JsonResponse({'success': True, 'task': _task_json(task)})


@api_admin_required
@require_http_methods(["POST"])
@json_action
def task_reject(request, pk):
    workflow_for(request.organization).reject(pk)
    return JsonResponse({'success': True})


@api_member_required
@require_http_methods(["POST"])
@json_action
def task_remind(request, pk):
    data = _json_body(request)
    if data is None:
        return _error('Invalid JSON', 400)
    workflow = workflow_for(request.organization)
    task = _visible_task(request, workflow, pk)
    queue_task_reminder(task, data.get('note', ''), sender_name=request.member.name)
    return JsonResponse({'success': True, 'message': 'Reminder sent'})


# Messages

def _mailbox_message(request, pk):
    message = messaging.messages_for_member(request.organization, request.member).filter(pk=pk).first()
    if message is None:
        raise EntityNotFound("Message not found")
    return message


@api_member_required
@require_http_methods(["POST"])
@json_action
def message_status(request, pk):
    data = _json_body(request)
    if data is None:
        return _error('Invalid JSON', 400)
    flags = {k: v for k, v in data.items() if k in messaging.STATUS_FLAGS}
    if not flags:
        return _error('No status change given', 400)
    messaging.update_message_status(_mailbox_message(request, pk), request.member, **flags)
    return JsonResponse({'success': True})


@api_member_required
@require_http_methods(["POST"])
@json_action
def message_delete(request, pk):
    remaining = messaging.permanently_delete(_mailbox_message(request, pk), request.member)
    return JsonResponse({'success': True, 'message_deleted': remaining is None})


@api_admin_required
@require_http_methods(["POST"])
@json_action
def briefing_send(request):
    data = _json_body(request)
    if data is None:
        return _error('Invalid JSON', 400)
    report = (data.get('report') or '').strip()
    if not report:
        return _error('Nothing to send', 400)
    message = messaging.send_message(
        request.organization,
        request.member,
        data.get('recipient_ids') or [],
        messaging.briefing_subject(),
        report,
    )
    return JsonResponse({'success': True, 'message_id': str(message.pk)})


# Knowledge base

@api_admin_required
@require_http_methods(["POST"])
@json_action
def knowledge_upload(request):
    if 'file' not in request.FILES:
        return _error('No file provided', 400)
    uploaded_file = request.FILES['file']
    if uploaded_file.size > settings.KNOWLEDGE_MAX_UPLOAD_SIZE:
        return _error('File too large', 400)

    folder_id = request.POST.get('folder') or None
    if folder_id:
        ModelStore(Folder, request.organization).get(folder_id)

    resource = knowledge.resource_from_upload(
        ModelStore(KnowledgeResource, request.organization),
        uploaded_file.name,
        uploaded_file.read(),
        folder_id=folder_id,
    )
    return JsonResponse({'success': True, 'resource_id': str(resource.pk), 'title': resource.title})


@api_admin_required
@require_http_methods(["POST"])
@json_action
def resource_delete(request, pk):
    ModelStore(KnowledgeResource, request.organization).delete(pk)
    return JsonResponse({'success': True})


@api_admin_required
@require_http_methods(["POST"])
@json_action
def folder_delete(request, pk):
    knowledge.delete_folder(
        ModelStore(Folder, request.organization),
        ModelStore(KnowledgeResource, request.organization),
        pk,
    )
    return JsonResponse({'success': True})


@api_member_required
@require_http_methods(["POST"])
@json_action
def resource_ask(request, pk):
    data = _json_body(request)
    if data is None:
        return _error('Invalid JSON', 400)
    question = (data.get('question') or '').strip()
    if not question:
        return _error('Please enter a question', 400)
    resource = ModelStore(KnowledgeResource, request.organization).get(pk)
    answer = ask_knowledge_base(question, resource.content, organization=request.organization)
    return JsonResponse({'success': True, 'answer': answer})


@api_admin_required
@require_http_methods(["POST"])
@json_action
def briefing_generate(request):
    organization = request.organization
    tasks = (
        Task.objects.for_organization(organization)
        .prefetch_related('assignees')
    )
    tasks = active_tasks(visible_tasks(request.member, list(tasks)))
    members = Member.objects.for_organization(organization).filter(status=Member.STATUS_ACTIVE)
    report = generate_daily_briefing(tasks, members, organization=organization)
    return JsonResponse({'success': True, 'report': report})


# AI proxy

@require_http_methods(["POST"])
@api_member_required
def api_ai(request):
    """
    AI proxy.

    Endpoint: POST /api/ai/
    Body: {"action": "generateDailyBriefing" | "askKnowledgeBase", "payload": {...}}

    Returns:
        - 200: {"report": "..."} or {"answer": "..."}
        - 400: {"message": "Invalid action."}
        - 405: method other than POST
        - 500: {"message": "..."} when the key is missing or generation fails
    """
    data = _json_body(request)
    if data is None:
        return JsonResponse({'message': 'Invalid JSON body.'}, status=400)

    action = data.get('action')
    payload = data.get('payload') or {}
    if action not in AI_ACTIONS or not isinstance(payload, dict):
        return JsonResponse({'message': 'Invalid action.'}, status=400)

    try:
        if action == 'generateDailyBriefing':
            report = generate_daily_briefing(
                payload.get('tasks') or [], payload.get('users') or [],
                organization=request.organization,
            )
            return JsonResponse({'report': report})

        answer = ask_knowledge_base(
            payload.get('question', ''), payload.get('context', ''),
            organization=request.organization,
        )
        return JsonResponse({'answer': answer})
    except AIServiceError as e:
        return JsonResponse({'message': str(e) or 'An internal server error occurred.'}, status=500)
