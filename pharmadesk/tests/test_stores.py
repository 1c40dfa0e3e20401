from datetime import timedelta

from django.test import TestCase
from django.utils import timezone

from pharmadesk.exceptions import EntityNotFound
from pharmadesk.models import Task
from pharmadesk.stores import ModelStore

from .utils import TestDataFactory


class ModelStoreTests(TestCase):
    """Test the ORM-backed entity store"""

    def setUp(self):
        self.organization = TestDataFactory.create_organization()
        self.other_organization = TestDataFactory.create_organization()
        self.member = TestDataFactory.create_member(self.organization)
        self.store = ModelStore(Task, self.organization)

    def _create(self, **fields):
        fields.setdefault('title', 'Check controlled drugs register')
        fields.setdefault('deadline', timezone.now() + timedelta(days=1))
        return self.store.create(**fields)

    def test_create_writes_assignee_ids(self):
        task = self._create(assignee_ids=[self.member.pk])
        self.assertEqual(task.organization, self.organization)
        self.assertEqual(task.assignee_ids, [self.member.pk])

    def test_update_replaces_assignees_and_fields(self):
        task = self._create(assignee_ids=[self.member.pk])
        task = self.store.update(task.pk, title='Renamed', assignee_ids=[])
        self.assertEqual(task.title, 'Renamed')
        self.assertEqual(task.assignee_ids, [])

    def test_get_is_scoped_to_organization(self):
        foreign = TestDataFactory.create_task(self.other_organization)
        with self.assertRaises(EntityNotFound):
            self.store.get(foreign.pk)
        self.assertNotIn(foreign, self.store.list())

    def test_get_with_malformed_id(self):
        with self.assertRaises(EntityNotFound):
            self.store.get('not-a-uuid')

    def test_update_where_writes_only_while_row_matches(self):
        task = self._create(status='IN_PROGRESS')

        done = self.store.update_where(task.pk, {'status': 'IN_PROGRESS'}, status='DONE')
        self.assertEqual(done.status, 'DONE')

        again = self.store.update_where(task.pk, {'status': 'IN_PROGRESS'}, status='DONE', title='Twice')
        self.assertIsNone(again)
        self.assertEqual(self.store.get(task.pk).title, 'Check controlled drugs register')

    def test_delete(self):
        task = self._create()
        self.store.delete(task.pk)
        self.assertFalse(Task.all_objects.filter(pk=task.pk).exists())
        with self.assertRaises(EntityNotFound):
            self.store.delete(task.pk)

    def test_subscribe_pushes_snapshots(self):
        snapshots = []
        unsubscribe = self.store.subscribe(snapshots.append)
        try:
            task = self._create()
            self.assertTrue(snapshots)
            self.assertEqual([t.pk for t in snapshots[-1]], [task.pk])

            count = len(snapshots)
            self.store.update(task.pk, title='Updated')
            self.assertGreater(len(snapshots), count)
            self.assertEqual(snapshots[-1][0].title, 'Updated')
        finally:
            unsubscribe()

        count = len(snapshots)
        self.store.update(task.pk, title='After unsubscribe')
        self.assertEqual(len(snapshots), count)

    def test_subscribe_ignores_other_organizations(self):
        snapshots = []
        unsubscribe = self.store.subscribe(snapshots.append)
        try:
            TestDataFactory.create_task(self.other_organization)
        finally:
            unsubscribe()
        self.assertEqual(snapshots, [])
