"""
Page tests: permissions, board rendering, team management and the mailbox
"""
from datetime import timedelta

from django.test import TestCase
from django.urls import reverse
from django.utils import timezone

from pharmadesk import messaging
from pharmadesk.auth import PREVIOUS_LOGIN_SESSION_KEY
from pharmadesk.models import Member, Task
from pharmadesk.viewstate import SESSION_KEY

from .utils import TestDataFactory


class PageTestCase(TestCase):

    def setUp(self):
        self.organization = TestDataFactory.create_organization(name='Corner Pharmacy')
        self.admin = TestDataFactory.create_admin(self.organization, name='Boss')
        self.employee = TestDataFactory.create_member(self.organization, name='Alice')


class PermissionTests(PageTestCase):

    def test_anonymous_redirected_to_login(self):
        response = self.client.get(reverse('pharmadesk:dashboard'))
        self.assertRedirects(response, f"{reverse('login')}?next=/", fetch_redirect_response=False)

    def test_employee_cannot_open_admin_pages(self):
        self.client.force_login(self.employee.user)
        for name in ('pending', 'archives', 'reports', 'users', 'briefing'):
            self.assertEqual(self.client.get(reverse(f'pharmadesk:{name}')).status_code, 403, name)

    def test_admin_pages_render(self):
        self.client.force_login(self.admin.user)
        for name in ('dashboard', 'pending', 'archives', 'reports', 'users', 'briefing',
                     'messages', 'compose', 'knowledge', 'account'):
            self.assertEqual(self.client.get(reverse(f'pharmadesk:{name}')).status_code, 200, name)


class DashboardTests(PageTestCase):

    def test_board_hides_private_pending_and_foreign_tasks(self):
        TestDataFactory.create_task(self.organization, title='Shared job')
        TestDataFactory.create_task(self.organization, title='Secret job', is_private=True, assignees=[self.admin])
        TestDataFactory.create_task(self.organization, title='Proposed job', status=Task.STATUS_PENDING_APPROVAL)
        TestDataFactory.create_task(TestDataFactory.create_organization(), title='Elsewhere job')

        self.client.force_login(self.employee.user)
        response = self.client.get(reverse('pharmadesk:dashboard'))

        self.assertContains(response, 'Shared job')
        self.assertNotContains(response, 'Secret job')
        self.assertNotContains(response, 'Proposed job')
        self.assertNotContains(response, 'Elsewhere job')

    def test_my_tasks_filter_is_remembered(self):
        TestDataFactory.create_task(self.organization, title='Mine', assignees=[self.employee])
        TestDataFactory.create_task(self.organization, title='Not mine')
        self.client.force_login(self.employee.user)

        self.client.get(reverse('pharmadesk:dashboard'), {'mine': '1'})
        response = self.client.get(reverse('pharmadesk:dashboard'))

        self.assertTrue(self.client.session[SESSION_KEY]['my_tasks_only'])
        self.assertEqual([t.title for t in response.context['columns']['TO_DO']], ['Mine'])

    def test_calendar_view(self):
        TestDataFactory.create_task(self.organization, title='Due soon', deadline=timezone.now())
        self.client.force_login(self.employee.user)
        response = self.client.get(reverse('pharmadesk:dashboard'), {'mode': 'calendar'})
        self.assertEqual(response.context['state'].task_view, 'calendar')
        self.assertContains(response, 'Due soon')

    def test_welcome_back_shown_once(self):
        since = timezone.now() - timedelta(days=1)
        TestDataFactory.create_task(self.organization, title='Finished overnight', status=Task.STATUS_DONE,
                                    completed_at=timezone.now(), assignees=[self.employee])
        self.client.force_login(self.admin.user)
        session = self.client.session
        session[PREVIOUS_LOGIN_SESSION_KEY] = since.isoformat()
        session.save()

        response = self.client.get(reverse('pharmadesk:dashboard'))
        self.assertContains(response, 'Welcome back!')
        self.assertContains(response, 'Finished overnight')

        response = self.client.get(reverse('pharmadesk:dashboard'))
        self.assertNotContains(response, 'Welcome back!')


class TaskFormTests(PageTestCase):

    def _payload(self, **overrides):
        data = {
            'title': 'Order insulin',
            'checklist': 'Call supplier\nCheck delivery',
            'assignees': [str(self.employee.pk)],
            'deadline': (timezone.localtime() + timedelta(days=1)).strftime('%Y-%m-%d %H:%M'),
            'priority': Task.PRIORITY_URGENT,
        }
        data.update(overrides)
        return data

    def test_admin_task_goes_on_board(self):
        self.client.force_login(self.admin.user)
        response = self.client.post(reverse('pharmadesk:task_create'), self._payload())
        self.assertRedirects(response, reverse('pharmadesk:dashboard'))

        task = Task.objects.get()
        self.assertEqual(task.status, Task.STATUS_TODO)
        self.assertEqual([item['text'] for item in task.checklist], ['Call supplier', 'Check delivery'])
        self.assertEqual(task.assignee_ids, [self.employee.pk])
        self.assertEqual(task.created_by, self.admin)

    def test_employee_task_needs_approval(self):
        self.client.force_login(self.employee.user)
        self.client.post(reverse('pharmadesk:task_create'), self._payload())
        self.assertEqual(Task.objects.get().status, Task.STATUS_PENDING_APPROVAL)

    def test_recurring_without_frequency(self):
        self.client.force_login(self.admin.user)
        response = self.client.post(reverse('pharmadesk:task_create'), self._payload(is_recurring='on'))
        self.assertEqual(response.status_code, 200)
        self.assertFalse(Task.objects.exists())

    def test_edit_keeps_completed_items(self):
        task = TestDataFactory.create_task(self.organization, checklist=[
            {'id': 'a', 'text': 'Call supplier', 'is_completed': True},
        ], created_by=self.admin)
        self.client.force_login(self.admin.user)

        self.client.post(reverse('pharmadesk:task_edit', args=[task.pk]),
                         self._payload(checklist='Call supplier\nFile invoice'))

        task.refresh_from_db()
        self.assertEqual(task.title, 'Order insulin')
        self.assertEqual(task.checklist[0], {'id': 'a', 'text': 'Call supplier', 'is_completed': True})
        self.assertFalse(task.checklist[1]['is_completed'])

    def test_employee_cannot_edit_others_task(self):
        task = TestDataFactory.create_task(self.organization, created_by=self.admin)
        self.client.force_login(self.employee.user)
        self.assertEqual(self.client.get(reverse('pharmadesk:task_edit', args=[task.pk])).status_code, 403)


class TeamTests(PageTestCase):

    def setUp(self):
        super().setUp()
        self.client.force_login(self.admin.user)

    def test_add_member_shows_temporary_password(self):
        response = self.client.post(reverse('pharmadesk:users'), {
            'name': 'Bob', 'email': 'bob@example.com', 'role': Member.ROLE_EMPLOYEE,
        }, follow=True)
        member = Member.objects.get(email='bob@example.com')
        self.assertTrue(member.force_password_change)
        self.assertContains(response, 'Temporary password')

    def test_deactivate_member_blocks_sign_in(self):
        self.client.post(reverse('pharmadesk:user_status', args=[self.employee.pk]), {'status': Member.STATUS_INACTIVE})
        self.employee.refresh_from_db()
        self.assertEqual(self.employee.status, Member.STATUS_INACTIVE)
        self.assertFalse(self.employee.user.is_active)

    def test_cannot_change_own_status(self):
        self.client.post(reverse('pharmadesk:user_status', args=[self.admin.pk]), {'status': Member.STATUS_ARCHIVED})
        self.admin.refresh_from_db()
        self.assertEqual(self.admin.status, Member.STATUS_ACTIVE)

    def test_member_detail(self):
        TestDataFactory.create_task(self.organization, title='Alice job', assignees=[self.employee])
        response = self.client.get(reverse('pharmadesk:user_detail', args=[self.employee.pk]))
        self.assertContains(response, 'Alice job')

    def test_member_of_other_organization(self):
        stranger = TestDataFactory.create_member()
        self.assertEqual(self.client.get(reverse('pharmadesk:user_detail', args=[stranger.pk])).status_code, 404)

    def test_reports(self):
        TestDataFactory.create_task(self.organization, title='Late job', deadline=timezone.now() - timedelta(days=3))
        response = self.client.get(reverse('pharmadesk:reports'))
        self.assertEqual(response.context['summary']['overdue_count'], 1)
        self.assertContains(response, 'Late job')


class MailboxPageTests(PageTestCase):

    def test_opening_inbox_marks_message_read(self):
        message = messaging.send_message(self.organization, self.admin, [self.employee.pk], 'Rota', '<p>Hi</p>')
        self.client.force_login(self.employee.user)

        response = self.client.get(reverse('pharmadesk:messages'))

        self.assertEqual(response.context['selected'], message)
        self.assertTrue(message.recipients.get().is_read)

    def test_compose_sends(self):
        self.client.force_login(self.admin.user)
        response = self.client.post(reverse('pharmadesk:compose'), {
            'recipients': [str(self.employee.pk)],
            'subject': 'Stock take',
            'body': '<p>Friday</p>',
        })
        self.assertRedirects(response, f"{reverse('pharmadesk:messages')}?folder=sent")
        self.assertEqual(self.employee.received_messages.get().message.subject, 'Stock take')

    def test_compose_does_not_offer_self_as_recipient(self):
        self.client.force_login(self.admin.user)
        response = self.client.get(reverse('pharmadesk:compose'))
        choices = response.context['form'].fields['recipients'].queryset
        self.assertNotIn(self.admin, choices)
        self.assertIn(self.employee, choices)

        response = self.client.post(reverse('pharmadesk:compose'), {
            'recipients': [str(self.admin.pk)],
            'subject': 'Note to self',
        })
        self.assertEqual(response.status_code, 200)
        self.assertIn('recipients', response.context['form'].errors)

    def test_reply_prefills_subject(self):
        message = messaging.send_message(self.organization, self.admin, [self.employee.pk], 'Rota', '')
        self.client.force_login(self.employee.user)
        response = self.client.get(reverse('pharmadesk:compose'), {'reply_to': message.pk})
        self.assertEqual(response.context['form'].initial['subject'], 'Re: Rota')


class KnowledgePageTests(PageTestCase):

    def test_folder_navigation_and_search(self):
        folder = TestDataFactory.create_folder(self.organization, name='SOPs')
        TestDataFactory.create_resource(self.organization, title='Fridge log', folder=folder)
        TestDataFactory.create_resource(self.organization, title='Contacts')
        self.client.force_login(self.employee.user)

        root = self.client.get(reverse('pharmadesk:knowledge'))
        self.assertEqual([r.title for r in root.context['resources']], ['Contacts'])
        self.assertEqual(root.context['folders'], [folder])

        inside = self.client.get(reverse('pharmadesk:knowledge'), {'folder': folder.pk})
        self.assertEqual([r.title for r in inside.context['resources']], ['Fridge log'])

    def test_admin_creates_resource(self):
        self.client.force_login(self.admin.user)
        response = self.client.post(reverse('pharmadesk:resource_create'), {
            'title': 'Returns policy', 'content': 'Within 14 days', 'tags': 'Policy, returns',
        })
        resource = self.organization.knowledge_resources.get()
        self.assertRedirects(response, reverse('pharmadesk:resource_detail', args=[resource.pk]))
        self.assertEqual(resource.tags, ['policy', 'returns'])

    def test_employee_cannot_edit_resources(self):
        self.client.force_login(self.employee.user)
        self.assertEqual(self.client.get(reverse('pharmadesk:resource_create')).status_code, 403)
