"""Publish a content model into a content store.

Pages are matched by title. A page is created when the store has no page with
its title, updated (version + 1) when its content or placement changed, and
left alone when it is unchanged or flagged skip_update. Attachments are synced
by content hash. With orphan removal enabled, stored pages under a published
parent whose titles no longer appear anywhere in the model are deleted along
with their subtrees.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Optional
from uuid import UUID

from mdconf.core.errors import ConversionIOError, PageNotFoundError
from mdconf.core.models import ContentModel, OutputPage
from mdconf.core.utils.diff import diff_summary, page_diff
from mdconf.core.utils.hashing import sha256, sha256_file
from mdconf.crud.store import SqlContentStore


logger = logging.getLogger(__name__)


class OrphanRemoval(str, Enum):
    remove = "remove"
    keep = "keep"


@dataclass
class PublishReport:
    created:   list[str] = field(default_factory=list)
    updated:   list[str] = field(default_factory=list)
    moved:     list[str] = field(default_factory=list)
    unchanged: list[str] = field(default_factory=list)
    skipped:   list[str] = field(default_factory=list)
    deleted:   list[str] = field(default_factory=list)
    attachments_added:   int = 0
    attachments_updated: int = 0
    attachments_deleted: int = 0
    changes: dict[str, dict[str, int]] = field(default_factory=dict)

    def counts(self) -> dict[str, int]:
        return {
            "created": len(self.created),
            "updated": len(self.updated),
            "moved": len(self.moved),
            "unchanged": len(self.unchanged),
            "skipped": len(self.skipped),
            "deleted": len(self.deleted),
        }


def _read_text(path: Path, charset: str) -> str:
    try:
        return path.read_text(encoding=charset)
    except OSError as e:
        raise ConversionIOError(path, "read", str(e)) from e


def _read_bytes(path: Path) -> bytes:
    try:
        return path.read_bytes()
    except OSError as e:
        raise ConversionIOError(path, "read", str(e)) from e


def _hash_file(path: Path) -> str:
    try:
        return sha256_file(path)
    except OSError as e:
        raise ConversionIOError(path, "read", str(e)) from e


class Publisher:
    def __init__(
        self,
        store: SqlContentStore,
        orphan_removal: OrphanRemoval = OrphanRemoval.remove,
        charset: str = 'utf-8',
        ):
        self.store = store
        self.orphan_removal = OrphanRemoval(orphan_removal)
        self.charset = charset

    def publish(self, model: ContentModel, parent_title: Optional[str] = None) -> PublishReport:
        """Publish every page of the model under parent_title (space root when None)."""
        parent_id: Optional[UUID] = None
        if parent_title:
            parent = self.store.get_page_by_title(parent_title)
            if parent is None:
                raise PageNotFoundError(parent_title)
            parent_id = parent.id

        report = PublishReport()
        parents: list[Optional[UUID]] = []
        self._publish_pages(model.pages, parent_id, report, parents)

        if self.orphan_removal == OrphanRemoval.remove:
            titles = {p.title for p in model.walk()}
            for pid in parents:
                for stored in self.store.list_child_pages(pid):
                    if stored.title not in titles:
                        logger.info(f"Removing orphan page '{stored.title}'")
                        self.store.delete_page(stored.id)
                        report.deleted.append(stored.title)

        logger.info(f"Publish complete: {report.counts()}")
        return report

    def _publish_pages(
        self,
        pages: list[OutputPage],
        parent_id: Optional[UUID],
        report: PublishReport,
        parents: list[Optional[UUID]],
        ) -> None:
        parents.append(parent_id)
        for position, page in enumerate(pages):
            page_id = self._publish_page(page, parent_id, position, report)
            self._publish_pages(page.children, page_id, report, parents)

    def _publish_page(self, page: OutputPage, parent_id: Optional[UUID], position: int, report: PublishReport) -> UUID:
        content = _read_text(Path(page.content_file_path), self.charset)
        existing = self.store.get_page_by_title(page.title)

        if existing is None:
            stored = self.store.create_page(page.title, content, parent_id, page.type.value, position)
            report.created.append(page.title)
            logger.info(f"Created '{page.title}'")
        elif page.skip_update:
            report.skipped.append(page.title)
            logger.info(f"Skipped '{page.title}' (skip_update)")
            return existing.id
        elif existing.hash != sha256(content):
            report.changes[page.title] = diff_summary(existing.content, content)
            if logger.isEnabledFor(logging.DEBUG):
                logger.debug(page_diff(existing.content, content, page.title))
            stored = self.store.update_page(
                existing.id, page.title, content, existing.version + 1, parent_id, position,
            )
            report.updated.append(page.title)
            logger.info(f"Updated '{page.title}' to v{stored.version}")
        elif existing.parent_id != parent_id or existing.position != position:
            stored = self.store.move_page(existing.id, parent_id, position)
            report.moved.append(page.title)
            logger.info(f"Moved '{page.title}'")
        else:
            stored = existing
            report.unchanged.append(page.title)
            logger.debug(f"Unchanged '{page.title}'")

        self._sync_attachments(stored.id, page, report)
        return stored.id

    def _sync_attachments(self, page_id: UUID, page: OutputPage, report: PublishReport) -> None:
        existing = {a.file_name: a for a in self.store.list_attachments(page_id)}
        for name, path in page.attachments.items():
            current = existing.get(name)
            if current is None:
                self.store.add_attachment(page_id, name, _read_bytes(Path(path)))
                report.attachments_added += 1
            elif current.hash != _hash_file(Path(path)):
                self.store.update_attachment_content(page_id, current.id, _read_bytes(Path(path)))
                report.attachments_updated += 1
        for name, attachment in existing.items():
            if name not in page.attachments:
                self.store.delete_attachment(attachment.id)
                report.attachments_deleted += 1


def publish_model(
    model: ContentModel,
    store: SqlContentStore,
    parent_title: Optional[str] = None,
    orphan_removal: OrphanRemoval = OrphanRemoval.remove,
    charset: str = 'utf-8',
    ) -> PublishReport:
    return Publisher(store, orphan_removal, charset).publish(model, parent_title)
