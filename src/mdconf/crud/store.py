"""SQL-backed content store: pages and attachments addressed by title or id.

Mirrors the request surface of a wiki content API (create/update/delete page,
add/update/delete attachment, lookups by title or id). Every mutation flushes
but does not commit; the caller controls the transaction.
"""

import logging
from datetime import datetime
from typing import Optional
from uuid import UUID

from sqlmodel import Session, select

from mdconf.core.errors import (
    AttachmentNotFoundError,
    PageAlreadyExistsError,
    PageNotFoundError,
    VersionConflictError,
)
from mdconf.core.utils.hashing import sha256, sha256_bytes
from mdconf.crud.tables import StoredAttachment, StoredPage
from mdconf.crud.versioning import delete_versions, save_version


logger = logging.getLogger(__name__)

# update_page default: leave the page under its current parent
_KEEP_PARENT = object()


class SqlContentStore:
    def __init__(self, session: Session, space_key: str, max_versions: int = 10):
        self.session = session
        self.space_key = space_key
        self.max_versions = max_versions

    # --- pages ---

    def get_page_by_title(self, title: str) -> Optional[StoredPage]:
        """Return the page with the given title in this space, or None."""
        return self.session.exec(
            select(StoredPage)
            .where(StoredPage.space_key == self.space_key)
            .where(StoredPage.title == title)
        ).one_or_none()

    def get_page_by_id(self, page_id: UUID) -> StoredPage:
        page = self.session.get(StoredPage, page_id)
        if page is None or page.space_key != self.space_key:
            raise PageNotFoundError(str(page_id))
        return page

    def list_child_pages(self, parent_id: Optional[UUID]) -> list[StoredPage]:
        """Children of parent_id (space root when None) in sibling order."""
        return list(
            self.session.exec(
                select(StoredPage)
                .where(StoredPage.space_key == self.space_key)
                .where(StoredPage.parent_id == parent_id)
                .order_by(StoredPage.position, StoredPage.title)
            ).all()
        )

    def create_page(
        self,
        title: str,
        content: str,
        parent_id: Optional[UUID] = None,
        content_type: str = "wiki",
        position: int = 0,
        ) -> StoredPage:
        """Create a page at version 1. Raises PageAlreadyExistsError on a duplicate title."""
        if self.get_page_by_title(title) is not None:
            raise PageAlreadyExistsError(title, self.space_key)
        if parent_id is not None:
            self.get_page_by_id(parent_id)
        page = StoredPage(
            space_key=self.space_key,
            title=title,
            content=content,
            content_type=content_type,
            hash=sha256(content),
            parent_id=parent_id,
            position=position,
        )
        self.session.add(page)
        self.session.flush()
        logger.debug(f"Created page '{title}' ({page.id})")
        return page

    def update_page(
        self,
        page_id: UUID,
        title: str,
        content: str,
        version: int,
        parent_id: Optional[UUID] | object = _KEEP_PARENT,
        position: Optional[int] = None,
        ) -> StoredPage:
        """Replace title/content; version must be exactly the current version + 1.

        The page is re-parented only when parent_id is passed (None means the space
        root). The previous state is kept as a PageVersion snapshot.
        """
        page = self.get_page_by_id(page_id)
        if version != page.version + 1:
            raise VersionConflictError(str(page_id), page.version + 1, version)
        if title != page.title:
            clash = self.get_page_by_title(title)
            if clash is not None and clash.id != page.id:
                raise PageAlreadyExistsError(title, self.space_key)

        save_version(self.session, page, self.max_versions)
        page.title = title
        page.content = content
        page.hash = sha256(content)
        if parent_id is not _KEEP_PARENT:
            page.parent_id = parent_id
        if position is not None:
            page.position = position
        page.version = version
        page.updated_at = datetime.now()
        self.session.add(page)
        self.session.flush()
        logger.debug(f"Updated page '{title}' to v{version}")
        return page

    def move_page(self, page_id: UUID, parent_id: Optional[UUID], position: int) -> StoredPage:
        """Change placement only; does not create a content version."""
        page = self.get_page_by_id(page_id)
        page.parent_id = parent_id
        page.position = position
        self.session.add(page)
        self.session.flush()
        return page

    def delete_page(self, page_id: UUID) -> int:
        """Delete a page with its subtree, attachments, and history. Returns pages deleted."""
        page = self.get_page_by_id(page_id)
        deleted = 0
        for child in self.list_child_pages(page.id):
            deleted += self.delete_page(child.id)
        for attachment in self.list_attachments(page.id):
            self.session.delete(attachment)
        delete_versions(self.session, page.id)
        self.session.delete(page)
        self.session.flush()
        logger.debug(f"Deleted page '{page.title}' ({page_id})")
        return deleted + 1

    # --- attachments ---

    def list_attachments(self, page_id: UUID) -> list[StoredAttachment]:
        return list(
            self.session.exec(
                select(StoredAttachment)
                .where(StoredAttachment.page_id == page_id)
                .order_by(StoredAttachment.file_name)
            ).all()
        )

    def get_attachment_by_filename(self, page_id: UUID, file_name: str) -> Optional[StoredAttachment]:
        return self.session.exec(
            select(StoredAttachment)
            .where(StoredAttachment.page_id == page_id)
            .where(StoredAttachment.file_name == file_name)
        ).one_or_none()

    def add_attachment(self, page_id: UUID, file_name: str, data: bytes) -> StoredAttachment:
        self.get_page_by_id(page_id)
        attachment = StoredAttachment(page_id=page_id, file_name=file_name, data=data, hash=sha256_bytes(data))
        self.session.add(attachment)
        self.session.flush()
        logger.debug(f"Added attachment '{file_name}' to page {page_id}")
        return attachment

    def update_attachment_content(self, page_id: UUID, attachment_id: UUID, data: bytes) -> StoredAttachment:
        attachment = self.session.get(StoredAttachment, attachment_id)
        if attachment is None or attachment.page_id != page_id:
            raise AttachmentNotFoundError(str(attachment_id))
        attachment.data = data
        attachment.hash = sha256_bytes(data)
        attachment.version += 1
        attachment.updated_at = datetime.now()
        self.session.add(attachment)
        self.session.flush()
        return attachment

    def delete_attachment(self, attachment_id: UUID) -> None:
        attachment = self.session.get(StoredAttachment, attachment_id)
        if attachment is None:
            raise AttachmentNotFoundError(str(attachment_id))
        self.session.delete(attachment)
        self.session.flush()
