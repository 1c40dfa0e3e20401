import calendar

from django.conf import settings
from django.contrib import messages
from django.contrib.auth import update_session_auth_hash
from django.contrib.auth.forms import PasswordChangeForm, SetPasswordForm
from django.http import Http404, HttpResponse
from django.shortcuts import redirect, render
from django.urls import reverse
from django.utils import timezone
from django.views.decorators.http import require_http_methods

from . import knowledge, messaging
from .auth import PREVIOUS_LOGIN_SESSION_KEY, add_member, previous_login
from .decorators import admin_required, member_required
from .exceptions import EntityNotFound, PharmadeskError
from .forms import (AccountForm, AddMemberForm, FolderForm, MessageForm,
                    ResourceForm, TaskForm)
from .metrics import (calculate_streak, completed_since, daily_progress,
                      days_overdue, report_summary, streaks_for_members)
from .models import Folder, KnowledgeResource, Member, Task
from .stores import ModelStore
from .viewstate import ViewState
from .visibility import (active_tasks, archived_tasks, assigned_to,
                         pending_tasks, tasks_by_day, tasks_by_status,
                         visible_tasks)
from .workflow import workflow_for


def _organization_tasks(organization):
    return list(
        Task.objects.for_organization(organization)
        .select_related('created_by')
        .prefetch_related('assignees', 'comments__author')
    )


def _members(organization):
    return list(Member.objects.for_organization(organization).select_related('user'))


def _view_state(request, **changes):
    state = ViewState.from_session(request.session).update(**changes)
    state.save(request.session)
    return state


def _month_weeks(year, month, by_day):
    weeks = []
    for week in calendar.Calendar(firstweekday=6).monthdatescalendar(year, month):
        weeks.append([
            {'date': day, 'in_month': day.month == month, 'tasks': by_day.get(day, [])}
            for day in week
        ])
    return weeks


@member_required
def dashboard(request):
    member = request.member
    organization = request.organization

    changes = {'view': 'dashboard'}
    if request.GET.get('mode') in ('kanban', 'calendar'):
        changes['task_view'] = request.GET['mode']
    if 'mine' in request.GET:
        changes['my_tasks_only'] = request.GET.get('mine')
    state = _view_state(request, **changes)

    tasks = _organization_tasks(organization)
    visible = visible_tasks(member, tasks)
    board = active_tasks(visible)
    if state.my_tasks_only:
        board = assigned_to(member, board)

    today = timezone.localdate()
    try:
        year = int(request.GET.get('year', today.year))
        month = int(request.GET.get('month', today.month))
        if not 1 <= month <= 12:
            raise ValueError
    except ValueError:
        year, month = today.year, today.month

    members = _members(organization)
    context = {
        'state': state,
        'columns': tasks_by_status(board),
        'weeks': _month_weeks(year, month, tasks_by_day(board, year, month)),
        'year': year,
        'month': month,
        'month_name': calendar.month_name[month],
        'prev_month': (year - 1, 12) if month == 1 else (year, month - 1),
        'next_month': (year + 1, 1) if month == 12 else (year, month + 1),
        'progress': daily_progress(member.pk, active_tasks(visible), today),
        'streak': calculate_streak(member.pk, visible),
        'task_form': TaskForm(organization=organization),
        'pending_count': len(pending_tasks(visible)) if member.is_admin else 0,
    }

    if member.is_admin:
        employees = [m for m in members if m.role == Member.ROLE_EMPLOYEE and m.is_active_member]
        streaks = streaks_for_members(employees, visible)
        context['team_streaks'] = [(m, streaks[m.pk]) for m in employees]
        if PREVIOUS_LOGIN_SESSION_KEY in request.session:
            context['welcome_back'] = completed_since(visible, previous_login(request))
            del request.session[PREVIOUS_LOGIN_SESSION_KEY]

    return render(request, 'pharmadesk/dashboard.html', context)


@member_required
@require_http_methods(["GET", "POST"])
def task_create(request):
    form = TaskForm(request.POST or None, organization=request.organization)
    if request.method == 'POST' and form.is_valid():
        try:
            task = workflow_for(request.organization).create_task(request.member, **form.task_fields())
        except PharmadeskError as e:
            form.add_error(None, str(e))
        else:
            if task.status == Task.STATUS_PENDING_APPROVAL:
                messages.info(request, "Task submitted for approval.")
            else:
                messages.success(request, "Task created.")
            return redirect('pharmadesk:dashboard')
    return render(request, 'pharmadesk/task_form.html', {'form': form})


@member_required
@require_http_methods(["GET", "POST"])
def task_edit(request, pk):
    workflow = workflow_for(request.organization)
    try:
        task = workflow.store.get(pk)
    except EntityNotFound:
        raise Http404("Task not found")
    if not request.member.is_admin and task.created_by_id != request.member.pk:
        return HttpResponse('Permission denied', status=403)

    initial = {
        'title': task.title,
        'checklist': '\n'.join(item['text'] for item in task.checklist),
        'assignees': task.assignee_ids,
        'deadline': timezone.localtime(task.deadline),
        'priority': task.priority,
        'is_private': task.is_private,
        'is_recurring': task.is_recurring,
        'recurrence_frequency': task.recurrence_frequency or '',
        'recurrence_end_date': task.recurrence_end_date,
    }
    form = TaskForm(request.POST or None, initial=initial, organization=request.organization)
    if request.method == 'POST' and form.is_valid():
        fields = form.task_fields()
        # keep completion state of items whose text is unchanged
        done = {item['text']: item for item in task.checklist}
        fields['checklist'] = [done.get(text, text) for text in fields['checklist']]
        try:
            workflow.update_task(pk, **fields)
        except PharmadeskError as e:
            form.add_error(None, str(e))
        else:
            messages.success(request, "Task updated.")
            return redirect('pharmadesk:dashboard')
    return render(request, 'pharmadesk/task_form.html', {'form': form, 'task': task})


@admin_required
def pending(request):
    _view_state(request, view='pending')
    tasks = visible_tasks(request.member, _organization_tasks(request.organization))
    return render(request, 'pharmadesk/pending.html', {
        'tasks': sorted(pending_tasks(tasks), key=lambda t: t.deadline),
    })


@admin_required
def archives(request):
    _view_state(request, view='archives')
    tasks = visible_tasks(request.member, _organization_tasks(request.organization))
    return render(request, 'pharmadesk/archives.html', {
        'tasks': sorted(archived_tasks(tasks), key=lambda t: t.deadline, reverse=True),
    })


@admin_required
def reports(request):
    _view_state(request, view='reports')
    tasks = [t for t in _organization_tasks(request.organization) if t.status != Task.STATUS_PENDING_APPROVAL]
    now = timezone.now()
    summary = report_summary(tasks, _members(request.organization), now=now)
    overdue = [(task, days_overdue(task, now)) for task in summary['overdue']]
    return render(request, 'pharmadesk/reports.html', {'summary': summary, 'overdue': overdue})


@admin_required
@require_http_methods(["GET", "POST"])
def users(request):
    _view_state(request, view='users')
    form = AddMemberForm(request.POST or None)
    if request.method == 'POST' and form.is_valid():
        try:
            member, password = add_member(
                request.organization,
                form.cleaned_data['name'],
                form.cleaned_data['email'],
                role=form.cleaned_data['role'],
            )
        except PharmadeskError as e:
            form.add_error('email', str(e))
        else:
            messages.success(
                request,
                f"{member.name} was added. Temporary password: {password} "
                f"(must be changed at first sign-in)."
            )
            return redirect('pharmadesk:users')

    tasks = _organization_tasks(request.organization)
    members = _members(request.organization)
    streaks = streaks_for_members(members, tasks)
    return render(request, 'pharmadesk/users.html', {
        'form': form,
        'rows': [(m, streaks[m.pk]) for m in members],
        'status_choices': Member.STATUS_CHOICES,
    })


@admin_required
def user_detail(request, pk):
    member = Member.objects.for_organization(request.organization).filter(pk=pk).first()
    if member is None:
        raise Http404("Member not found")
    _view_state(request, view='users', selected_member_id=member.pk)

    tasks = _organization_tasks(request.organization)
    assigned = assigned_to(member, tasks)
    completed = sorted(
        (t for t in assigned if t.status == Task.STATUS_DONE),
        key=lambda t: t.completed_at or t.deadline,
        reverse=True,
    )
    return render(request, 'pharmadesk/user_detail.html', {
        'subject': member,
        'open_tasks': [t for t in active_tasks(assigned) if t.status != Task.STATUS_DONE],
        'completed_tasks': completed,
        'streak': calculate_streak(member.pk, tasks),
        'progress': daily_progress(member.pk, active_tasks(tasks)),
    })


@admin_required
@require_http_methods(["POST"])
def user_status(request, pk):
    member = Member.objects.for_organization(request.organization).filter(pk=pk).first()
    if member is None:
        raise Http404("Member not found")
    status = request.POST.get('status')
    if status not in dict(Member.STATUS_CHOICES):
        messages.error(request, "Invalid status.")
    elif member.pk == request.member.pk:
        messages.error(request, "You cannot change your own status.")
    else:
        member.set_status(status)
        messages.success(request, f"{member.name} is now {member.get_status_display().lower()}.")
    return redirect('pharmadesk:users')


@member_required
def messages_page(request):
    member = request.member
    folder = request.GET.get('folder')
    state = _view_state(request, view='messages', **({'message_folder': folder} if folder else {}))
    query = request.GET.get('q', '').strip()
    unread_only = request.GET.get('unread') == '1'

    mailbox = list(messaging.messages_for_member(request.organization, member))
    listing = messaging.folder_messages(mailbox, member, state.message_folder, query, unread_only)

    selected = None
    selected_id = request.GET.get('message')
    if selected_id:
        selected = next((m for m in listing if str(m.pk) == selected_id), None)
    elif listing:
        selected = listing[0]
    if selected is not None and state.message_folder == 'inbox' and messaging.is_unread(selected, member):
        messaging.update_message_status(selected, member, is_read=True)

    return render(request, 'pharmadesk/messages.html', {
        'state': state,
        'listing': [(m, messaging.is_unread(m, member)) for m in listing],
        'selected': selected,
        'counts': messaging.folder_counts(mailbox, member),
        'unread': messaging.unread_count(mailbox, member),
        'query': query,
        'unread_only': unread_only,
    })


@member_required
@require_http_methods(["GET", "POST"])
def compose(request):
    initial = {}
    reply_to = request.GET.get('reply_to')
    if reply_to:
        original = messaging.messages_for_member(request.organization, request.member).filter(pk=reply_to).first()
        if original is not None:
            initial = {
                'subject': messaging.reply_subject(original.subject),
                'recipients': [original.sender_id] if original.sender_id else [],
            }

    form = MessageForm(
        request.POST or None,
        request.FILES or None,
        initial=initial,
        organization=request.organization,
        max_attachment_size=settings.MESSAGE_MAX_ATTACHMENT_SIZE,
        sender=request.member,
    )
    if request.method == 'POST' and form.is_valid():
        try:
            messaging.send_message(
                request.organization,
                request.member,
                [m.pk for m in form.cleaned_data['recipients']],
                form.cleaned_data['subject'],
                form.cleaned_data['body'],
                attachments=form.cleaned_data['attachments'],
            )
        except PharmadeskError as e:
            form.add_error(None, str(e))
        else:
            messages.success(request, "Message sent.")
            return redirect(f"{reverse('pharmadesk:messages')}?folder=sent")
    return render(request, 'pharmadesk/compose.html', {'form': form})


@member_required
def knowledge_base(request):
    folder_id = request.GET.get('folder') or None
    state = _view_state(request, view='knowledge', kb_folder_id=folder_id)
    organization = request.organization

    folders = ModelStore(Folder, organization).list()
    current_folder = next((f for f in folders if str(f.pk) == state.kb_folder_id), None)
    if current_folder is None:
        state = _view_state(request, kb_folder_id=None)

    resources = ModelStore(KnowledgeResource, organization).list()
    listing = knowledge.folder_view(
        folders, resources,
        folder_id=state.kb_folder_id,
        search=request.GET.get('q', ''),
        tag=request.GET.get('tag') or None,
    )
    return render(request, 'pharmadesk/knowledge_base.html', {
        'state': state,
        'current_folder': current_folder,
        'folders': listing['folders'],
        'resources': listing['resources'],
        'tags': knowledge.all_tags(resources),
        'active_tag': request.GET.get('tag', ''),
        'query': request.GET.get('q', ''),
        'resource_form': ResourceForm(organization=organization,
                                      initial={'folder': current_folder.pk if current_folder else None}),
        'folder_form': FolderForm(),
    })


@member_required
def resource_detail(request, pk):
    try:
        resource = ModelStore(KnowledgeResource, request.organization).get(pk)
    except EntityNotFound:
        raise Http404("Resource not found")
    return render(request, 'pharmadesk/resource_detail.html', {'resource': resource})


@admin_required
@require_http_methods(["GET", "POST"])
def resource_edit(request, pk=None):
    store = ModelStore(KnowledgeResource, request.organization)
    resource = None
    initial = {}
    if pk is not None:
        try:
            resource = store.get(pk)
        except EntityNotFound:
            raise Http404("Resource not found")
        initial = {
            'title': resource.title,
            'content': resource.content,
            'tags': ', '.join(resource.tags),
            'folder': resource.folder_id,
        }

    form = ResourceForm(request.POST or None, initial=initial, organization=request.organization)
    if request.method == 'POST' and form.is_valid():
        data = form.cleaned_data
        folder_id = data['folder'].pk if data['folder'] else None
        try:
            if resource is None:
                resource = knowledge.create_resource(store, data['title'], data['content'], data['tags'], folder_id)
            else:
                resource = knowledge.update_resource(store, pk, title=data['title'], content=data['content'],
                                                     tags=data['tags'], folder_id=folder_id)
        except PharmadeskError as e:
            form.add_error(None, str(e))
        else:
            messages.success(request, "Resource saved.")
            return redirect('pharmadesk:resource_detail', pk=resource.pk)
    return render(request, 'pharmadesk/resource_form.html', {'form': form, 'resource': resource})


@admin_required
@require_http_methods(["POST"])
def folder_save(request, pk=None):
    store = ModelStore(Folder, request.organization)
    form = FolderForm(request.POST)
    if not form.is_valid():
        messages.error(request, "Folder name is required.")
        return redirect('pharmadesk:knowledge')
    try:
        if pk is None:
            knowledge.create_folder(store, form.cleaned_data['name'])
        else:
            knowledge.rename_folder(store, pk, form.cleaned_data['name'])
    except EntityNotFound:
        raise Http404("Folder not found")
    except PharmadeskError as e:
        messages.error(request, str(e))
    return redirect('pharmadesk:knowledge')


@admin_required
def briefing(request):
    return render(request, 'pharmadesk/briefing.html', {
        'members': [m for m in _members(request.organization) if m.is_active_member],
    })


@member_required
@require_http_methods(["GET", "POST"])
def account(request):
    _view_state(request, view='account')
    member = request.member
    action = request.POST.get('form')

    profile_form = AccountForm(request.POST if action == 'profile' else None, instance=member)
    password_form = PasswordChangeForm(request.user, request.POST if action == 'password' else None)

    if action == 'profile' and profile_form.is_valid():
        profile_form.save()
        messages.success(request, "Profile updated.")
        return redirect('pharmadesk:account')
    if action == 'password' and password_form.is_valid():
        user = password_form.save()
        update_session_auth_hash(request, user)
        if member.force_password_change:
            member.force_password_change = False
            member.save(update_fields=['force_password_change'])
        messages.success(request, "Password changed.")
        return redirect('pharmadesk:account')

    return render(request, 'pharmadesk/account.html', {
        'profile_form': profile_form,
        'password_form': password_form,
    })


@member_required
@require_http_methods(["GET", "POST"])
def force_password_change(request):
    member = request.member
    if not member.force_password_change:
        return redirect('pharmadesk:dashboard')

    form = SetPasswordForm(request.user, request.POST or None)
    if request.method == 'POST' and form.is_valid():
        user = form.save()
        update_session_auth_hash(request, user)
        member.force_password_change = False
        member.save(update_fields=['force_password_change'])
        messages.success(request, "Password changed.")
        return redirect('pharmadesk:dashboard')
    return render(request, 'pharmadesk/force_password_change.html', {'form': form})
