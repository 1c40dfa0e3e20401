"""
Knowledge base: document text extraction, resources and folders.
"""
import logging
import os

from .exceptions import FileParseError, UnsupportedFileType

logger = logging.getLogger('pharmadesk')

TEXT_EXTENSIONS = {'.txt', '.md'}
PDF_EXTENSIONS = {'.pdf'}


def extract_text_from_pdf(pdf_content: bytes) -> str:
    """
    Extract the text layer of a PDF page by page. Scanned pages without a
    text layer contribute nothing.
    """
    import fitz

    doc = fitz.open(stream=pdf_content, filetype="pdf")
    try:
        return '\n'.join(page.get_text() for page in doc).strip()
    finally:
        doc.close()


def extract_text(filename: str, content: bytes) -> str:
    ext = os.path.splitext(filename or '')[1].lower()
    if ext not in TEXT_EXTENSIONS | PDF_EXTENSIONS:
        raise UnsupportedFileType()

    try:
        if ext in PDF_EXTENSIONS:
            return extract_text_from_pdf(content)
        return content.decode('utf-8')
    except Exception as e:
        logger.error(f"[Knowledge] Failed to read {filename}: {e}")
        raise FileParseError() from e


def title_from_filename(filename: str) -> str:
    return os.path.splitext(os.path.basename(filename))[0] or filename


def normalize_tags(tags):
    """Trim and lower-case tags, dropping blanks and duplicates while keeping order."""
    if isinstance(tags, str):
        tags = tags.split(',')
    result = []
    for tag in tags or []:
        tag = str(tag).strip().lower()
        if tag and tag not in result:
            result.append(tag)
    return result


def resource_from_upload(store, filename, content, folder_id=None):
    text = extract_text(filename, content)
    resource = store.create(
        title=title_from_filename(filename),
        content=text,
        tags=[],
        folder_id=folder_id,
    )
    logger.info(f"[Knowledge] Added resource '{resource.title}' from {filename}")
    return resource


def create_resource(store, title, content='', tags=(), folder_id=None):
    return store.create(title=title.strip(), content=content, tags=normalize_tags(tags), folder_id=folder_id)


def update_resource(store, resource_id, **fields):
    if 'tags' in fields:
        fields['tags'] = normalize_tags(fields['tags'])
    if 'title' in fields:
        fields['title'] = fields['title'].strip()
    return store.update(resource_id, **fields)


def create_folder(store, name):
    return store.create(name=name.strip())


def rename_folder(store, folder_id, name):
    return store.update(folder_id, name=name.strip())


def delete_folder(folder_store, resource_store, folder_id):
    """Delete a folder. Its resources stay and become uncategorised."""
    folder_store.get(folder_id)
    for resource in resource_store.list():
        if resource.folder_id is not None and str(resource.folder_id) == str(folder_id):
            resource_store.update(resource.pk, folder_id=None)
    folder_store.delete(folder_id)


def all_tags(resources):
    return sorted({tag for resource in resources for tag in (resource.tags or [])})


def folder_view(folders, resources, folder_id=None, search='', tag=None):
    """
    Contents of one level of the knowledge base. Folders are listed only at
    the root; resources are those directly inside ``folder_id`` (or
    uncategorised at the root). Both are sorted by name.
    """
    search = (search or '').strip().lower()
    resources = list(resources)
    current = str(folder_id) if folder_id else None

    visible_folders = []
    if current is None:
        for folder in folders:
            name_matches = not search or search in folder.name.lower()
            has_tagged = any(
                r.folder_id is not None and str(r.folder_id) == str(folder.pk) and (not tag or tag in (r.tags or []))
                for r in resources
            )
            if name_matches and (has_tagged or not tag):
                visible_folders.append(folder)
        visible_folders.sort(key=lambda f: f.name.casefold())

    visible_resources = [
        r for r in resources
        if (str(r.folder_id) if r.folder_id else None) == current
        and (not search or search in r.title.lower())
        and (not tag or tag in (r.tags or []))
    ]
    visible_resources.sort(key=lambda r: r.title.casefold())

    return {'folders': visible_folders, 'resources': visible_resources}
