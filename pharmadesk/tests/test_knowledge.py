from unittest import mock

from django.test import TestCase

from pharmadesk import knowledge
from pharmadesk.exceptions import FileParseError, UnsupportedFileType
from pharmadesk.models import Folder, KnowledgeResource
from pharmadesk.stores import ModelStore

from .fakes import FakeFolder, FakeResource, InMemoryStore
from .utils import TestDataFactory


class TextExtractionTests(TestCase):

    def test_plain_text_and_markdown(self):
        self.assertEqual(knowledge.extract_text('notes.txt', 'Dosage: 5mg'.encode()), 'Dosage: 5mg')
        self.assertEqual(knowledge.extract_text('README.MD', b'# SOP'), '# SOP')

    def test_unsupported_extension(self):
        with self.assertRaises(UnsupportedFileType) as ctx:
            knowledge.extract_text('scan.docx', b'PK')
        self.assertEqual(str(ctx.exception), 'Unsupported file type. Please upload a .txt, .md, or .pdf file.')

    def test_undecodable_text(self):
        with self.assertRaises(FileParseError) as ctx:
            knowledge.extract_text('notes.txt', b'\xff\xfe\xfa')
        self.assertEqual(str(ctx.exception), 'Failed to read file. Please ensure it is a valid text or PDF file.')

    def test_pdf_goes_through_pymupdf(self):
        with mock.patch.object(knowledge, 'extract_text_from_pdf', return_value='Page one') as extract:
            self.assertEqual(knowledge.extract_text('sop.pdf', b'%PDF-1.7'), 'Page one')
        extract.assert_called_once_with(b'%PDF-1.7')

    def test_broken_pdf(self):
        with self.assertRaises(FileParseError):
            knowledge.extract_text('broken.pdf', b'not a pdf')


class ResourceHelperTests(TestCase):

    def test_normalize_tags(self):
        self.assertEqual(knowledge.normalize_tags(' SOP, fridge,,sop '), ['sop', 'fridge'])
        self.assertEqual(knowledge.normalize_tags(['A', 'b']), ['a', 'b'])

    def test_upload_uses_file_name_as_title(self):
        store = InMemoryStore(FakeResource)
        resource = knowledge.resource_from_upload(store, 'Cold chain.md', b'Keep between 2 and 8C')
        self.assertEqual(resource.title, 'Cold chain')
        self.assertEqual(resource.content, 'Keep between 2 and 8C')
        self.assertEqual(resource.tags, [])

    def test_folder_view_root_and_folder(self):
        sops = FakeFolder(name='SOPs')
        archive = FakeFolder(name='archive')
        inside = FakeResource(title='Fridge', tags=['cold'], folder_id=sops.pk)
        loose = FakeResource(title='Contacts')

        root = knowledge.folder_view([sops, archive], [inside, loose])
        self.assertEqual(root['folders'], [archive, sops])
        self.assertEqual(root['resources'], [loose])

        inside_view = knowledge.folder_view([sops, archive], [inside, loose], folder_id=sops.pk)
        self.assertEqual(inside_view['folders'], [])
        self.assertEqual(inside_view['resources'], [inside])

    def test_folder_view_tag_filter_hides_empty_folders(self):
        sops = FakeFolder(name='SOPs')
        other = FakeFolder(name='Other')
        inside = FakeResource(title='Fridge', tags=['cold'], folder_id=sops.pk)

        view = knowledge.folder_view([sops, other], [inside], tag='cold')
        self.assertEqual(view['folders'], [sops])

    def test_all_tags(self):
        resources = [FakeResource(title='a', tags=['x', 'y']), FakeResource(title='b', tags=['y'])]
        self.assertEqual(knowledge.all_tags(resources), ['x', 'y'])


class FolderTests(TestCase):

    def setUp(self):
        self.organization = TestDataFactory.create_organization()
        self.folders = ModelStore(Folder, self.organization)
        self.resources = ModelStore(KnowledgeResource, self.organization)

    def test_delete_folder_keeps_resources(self):
        folder = knowledge.create_folder(self.folders, '  SOPs ')
        self.assertEqual(folder.name, 'SOPs')
        resource = knowledge.create_resource(self.resources, 'Fridge', tags='cold', folder_id=folder.pk)

        knowledge.delete_folder(self.folders, self.resources, folder.pk)

        self.assertFalse(Folder.all_objects.filter(pk=folder.pk).exists())
        resource = self.resources.get(resource.pk)
        self.assertIsNone(resource.folder_id)
        self.assertEqual(resource.tags, ['cold'])
