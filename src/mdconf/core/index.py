"""Page structure discovery: markdown files under a directory -> PagesStructure.

Two layouts are supported:

- sub_directory: the children of ``a.md`` are the pages in the sibling
  directory ``a/``. Directories matching no page are orphans and are either
  ignored or indexed as additional top-level pages.
- same_directory: a directory's ``index.md`` is the parent of the other
  markdown files in that directory and of the pages found in its
  subdirectories. A directory without an index page contributes its pages to
  the enclosing level.

In both layouts the files in ``<stem>_attachments/`` are attached to
``<stem>.md``, and ``skip_update: true`` in the front matter marks a page that
the publisher must not update.
"""

import fnmatch
import logging
from enum import Enum
from pathlib import Path
from typing import Optional

from mdconf.core.errors import ConversionIOError, IndexerError
from mdconf.core.models import PagesStructure, SourcePage, normalize_path
from mdconf.core.parse import read_markdown, strip_frontmatter


logger = logging.getLogger(__name__)

ATTACHMENTS_SUFFIX = "_attachments"
INDEX_STEM = "index"


class ChildLayout(str, Enum):
    sub_directory = "sub_directory"
    same_directory = "same_directory"


class OrphanFileAction(str, Enum):
    ignore = "ignore"
    add_to_top_level = "add_to_top_level"


class Indexer:
    """Walk a directory tree and build the ordered page forest."""

    def __init__(
        self,
        file_extension: str = 'md',
        exclude_pattern: Optional[str] = None,
        child_layout: ChildLayout = ChildLayout.sub_directory,
        orphan_file_action: OrphanFileAction = OrphanFileAction.ignore,
        charset: str = 'utf-8',
        ):
        self.suffix = '.' + file_extension.lstrip('.')
        self.exclude_pattern = exclude_pattern
        self.child_layout = ChildLayout(child_layout)
        self.orphan_file_action = OrphanFileAction(orphan_file_action)
        self.charset = charset
        self._root = Path('.')

    def index(self, root: Path) -> PagesStructure:
        root = normalize_path(Path(root))
        if not root.exists():
            raise IndexerError(root, "path does not exist")
        if root.is_file():
            if root.suffix != self.suffix:
                raise IndexerError(root, f"not a '{self.suffix}' file")
            return PagesStructure(pages=(self._page(root, ()),))

        self._root = root
        if self.child_layout == ChildLayout.same_directory:
            pages = self._same_directory(root)
        else:
            orphans: list[SourcePage] = []
            pages = self._sub_directory(root, orphans) + orphans
        logger.info(f"Indexed {root}: {len(pages)} top-level page(s)")
        return PagesStructure(pages=tuple(pages))

    # --- helpers ---

    def _excluded(self, path: Path) -> bool:
        if path.name.startswith('.'):
            return True
        if not self.exclude_pattern:
            return False
        rel = path.relative_to(self._root).as_posix()
        return fnmatch.fnmatch(rel, self.exclude_pattern)

    def _page_files(self, directory: Path) -> list[Path]:
        return sorted(
            p for p in directory.iterdir()
            if p.is_file() and p.suffix == self.suffix and not self._excluded(p)
        )

    def _sub_dirs(self, directory: Path) -> list[Path]:
        return sorted(
            p for p in directory.iterdir()
            if p.is_dir() and not p.name.endswith(ATTACHMENTS_SUFFIX) and not self._excluded(p)
        )

    def _attachments(self, page_path: Path) -> tuple[Path, ...]:
        directory = page_path.with_name(page_path.stem + ATTACHMENTS_SUFFIX)
        if not directory.is_dir():
            return ()
        return tuple(sorted(p for p in directory.iterdir() if p.is_file() and not p.name.startswith('.')))

    def _skip_update(self, page_path: Path) -> bool:
        try:
            fm, _ = strip_frontmatter(read_markdown(page_path, self.charset))
        except (ValueError, ConversionIOError) as e:
            raise IndexerError(page_path, str(e)) from e
        return bool(fm.get('skip_update', False))

    def _page(self, path: Path, children: tuple[SourcePage, ...]) -> SourcePage:
        return SourcePage(
            path=path,
            attachments=self._attachments(path),
            children=children,
            skip_update=self._skip_update(path),
        )

    # --- layouts ---

    def _sub_directory(self, directory: Path, orphans: list[SourcePage]) -> list[SourcePage]:
        files = self._page_files(directory)
        stems = {f.stem for f in files}
        pages = []
        for f in files:
            child_dir = directory / f.stem
            children = self._sub_directory(child_dir, orphans) if child_dir.is_dir() else []
            pages.append(self._page(f, tuple(children)))
        for d in self._sub_dirs(directory):
            if d.name in stems:
                continue
            if self.orphan_file_action == OrphanFileAction.add_to_top_level:
                logger.debug(f"Orphan directory {d} added to top level")
                orphans.extend(self._sub_directory(d, orphans))
            else:
                logger.warning(f"Ignoring orphan directory {d}: no page named '{d.name}{self.suffix}'")
        return pages

    def _same_directory(self, directory: Path) -> list[SourcePage]:
        files = self._page_files(directory)
        index = next((f for f in files if f.stem.lower() == INDEX_STEM), None)
        pages = [self._page(f, ()) for f in files if f != index]
        for d in self._sub_dirs(directory):
            pages.extend(self._same_directory(d))
        if index is None:
            return pages
        return [self._page(index, tuple(pages))]


def index_directory(root: Path, **options) -> PagesStructure:
    """Index root with a fresh Indexer."""
    return Indexer(**options).index(root)
