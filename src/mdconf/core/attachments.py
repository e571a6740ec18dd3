"""Attachment de-duplication and copying next to a rendered page"""

import logging
import shutil
from pathlib import Path
from typing import Iterable

from mdconf.core.errors import AttachmentNameCollisionError, ConversionIOError, MissingAttachmentError
from mdconf.core.models import normalize_path


logger = logging.getLogger(__name__)


def plan_attachments(
    target: Path,
    document: Path,
    explicit: Iterable[Path],
    images: Iterable[Path],
    links: Iterable[Path],
    ) -> dict[str, tuple[Path, Path]]:
    """Map display name -> (source, destination) for the union of all references.

    Sources are de-duplicated by normalized path, first occurrence wins, in the
    order explicit, images, links. Nothing is written.
    Raises MissingAttachmentError or AttachmentNameCollisionError.
    """
    plan: dict[str, tuple[Path, Path]] = {}
    seen: set[Path] = set()
    for ref in (*explicit, *images, *links):
        source = normalize_path(ref)
        if source in seen:
            continue
        seen.add(source)
        if not source.is_file():
            raise MissingAttachmentError(source, document)
        name = source.name
        if name in plan:
            raise AttachmentNameCollisionError(name, plan[name][0], source, document)
        plan[name] = (source, target.parent / name)
    return plan


def copy_attachments(plan: dict[str, tuple[Path, Path]]) -> dict[str, Path]:
    """Copy every planned attachment; return display name -> copied path."""
    copied: dict[str, Path] = {}
    for name, (source, dest) in plan.items():
        try:
            dest.parent.mkdir(parents=True, exist_ok=True)
            if not dest.exists() or not dest.samefile(source):
                shutil.copy2(source, dest)
        except OSError as e:
            raise ConversionIOError(dest, "copy", str(e)) from e
        logger.debug(f"  attachment {source} -> {dest}")
        copied[name] = dest
    return copied


def copy_page_attachments(
    target: Path,
    document: Path,
    explicit: Iterable[Path],
    images: Iterable[Path],
    links: Iterable[Path],
    ) -> dict[str, Path]:
    """Plan and copy in one step."""
    return copy_attachments(plan_attachments(target, document, explicit, images, links))
