"""Dump a content store subtree back to local wiki files and a content model"""

import logging
from pathlib import Path
from typing import Optional
from uuid import UUID

from mdconf.core.errors import ConversionIOError, PageNotFoundError
from mdconf.core.models import ContentModel, ContentType, OutputPage
from mdconf.core.utils.fs import ensure_dir, write_text_atomic
from mdconf.core.utils.slug import slugify
from mdconf.crud.store import SqlContentStore
from mdconf.crud.tables import StoredPage


logger = logging.getLogger(__name__)


def _dump_page(store: SqlContentStore, page: StoredPage, directory: Path, used: set[str]) -> OutputPage:
    stem = slugify(page.title)
    n = 2
    while stem in used:
        stem = f"{slugify(page.title)}-{n}"
        n += 1
    used.add(stem)

    target = write_text_atomic(directory / f"{stem}.{page.content_type}", page.content)
    attachments: dict[str, str] = {}
    stored_attachments = store.list_attachments(page.id)
    if stored_attachments:
        attachment_dir = ensure_dir(directory / f"{stem}_attachments")
        for a in stored_attachments:
            dest = attachment_dir / a.file_name
            try:
                dest.write_bytes(a.data)
            except OSError as e:
                raise ConversionIOError(dest, "write", str(e)) from e
            attachments[a.file_name] = str(dest)

    children: list[OutputPage] = []
    child_pages = store.list_child_pages(page.id)
    if child_pages:
        child_dir = ensure_dir(directory / stem)
        child_used: set[str] = set()
        children = [_dump_page(store, c, child_dir, child_used) for c in child_pages]

    logger.debug(f"Dumped '{page.title}' -> {target}")
    return OutputPage(
        title=page.title,
        content_file_path=str(target),
        type=ContentType(page.content_type),
        attachments=attachments,
        children=children,
    )


def dump_store(store: SqlContentStore, output_dir: Path, parent_title: Optional[str] = None) -> ContentModel:
    """Write the pages below parent_title (space root when None) under output_dir."""
    parent_id: Optional[UUID] = None
    if parent_title:
        parent = store.get_page_by_title(parent_title)
        if parent is None:
            raise PageNotFoundError(parent_title)
        parent_id = parent.id

    output_dir = ensure_dir(Path(output_dir).absolute())
    used: set[str] = set()
    pages = [_dump_page(store, p, output_dir, used) for p in store.list_child_pages(parent_id)]
    logger.info(f"Dumped {len(pages)} top-level page(s) to {output_dir}")
    return ContentModel(pages=pages)
