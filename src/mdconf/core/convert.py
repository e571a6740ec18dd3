"""Page-tree conversion: title index, per-page rendering, attachments, and output layout.

For a page ``docs/a.md`` converted under output relative directory ``rel``:

    <output_dir>/rel/a.wiki          rendered content
    <output_dir>/rel/<attachment>    every attachment the page declares or references
    <output_dir>/rel/a/              output directory for the page's children

Pages are converted depth-first, children in declaration order. The title index
is built over the whole forest before the first page is rendered. Every output
path is owned by exactly one source: rendered files and child directories are
reserved up front, attachment destinations are claimed before the page is
written, and a second source for an owned path fails the conversion.
"""

import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Optional, Sequence

from mdconf.core.attachments import copy_attachments, plan_attachments
from mdconf.core.errors import (
    AttachmentNameCollisionError,
    ConversionCancelledError,
    ConversionError,
    OutputPathConflictError,
    TitleUnresolvedError,
)
from mdconf.core.models import (
    ContentModel,
    ContentType,
    ConvertContext,
    OutputPage,
    PagesStructure,
    SourcePage,
    TitleIndex,
    normalize_path,
)
from mdconf.core.parse import read_markdown
from mdconf.core.references import collect_local_attachments, collect_local_images
from mdconf.core.render.pipeline import Pipeline
from mdconf.core.title_remover import strip_title_tokens
from mdconf.core.titles import TitleResolver, build_title_index, make_title_resolver
from mdconf.core.utils.fs import ensure_dir, write_text_atomic


logger = logging.getLogger(__name__)


def output_layout(
    structure: PagesStructure,
    file_extension: str = 'wiki',
    ) -> dict[Path, Path]:
    """Map every relative output path a page owns to its source page path.

    A page owns its rendered file and, when it has children, the directory they
    are written to. Raises OutputPathConflictError when two pages claim one path.
    """
    layout: dict[Path, Path] = {}

    def _claim(out: Path, source: Path) -> None:
        if out in layout:
            raise OutputPathConflictError(out, layout[out], source)
        layout[out] = source

    def _visit(page: SourcePage, relative_dir: Path) -> None:
        source = normalize_path(page.path)
        _claim(relative_dir / f"{page.path.stem}.{file_extension}", source)
        if page.children:
            child_dir = relative_dir / page.path.stem
            _claim(child_dir, source)
            for child in page.children:
                _visit(child, child_dir)

    for page in structure.pages:
        _visit(page, Path(''))
    return layout


class Converter:
    """Convert a PagesStructure into wiki files under output_dir and a ContentModel.

    ``workers > 1`` converts the top-level subtrees in parallel, each subtree
    depth-first on one worker; the assembled model keeps declaration order
    either way. ``cancel()`` stops the current (or next) conversion at the next
    page boundary; the converter can be reused once that run has ended.
    """

    def __init__(
        self,
        output_dir: Path,
        pipeline: Optional[Pipeline] = None,
        title_resolver: Optional[TitleResolver] = None,
        title_child_prefixed: bool = False,
        remove_title: bool = False,
        plantuml_macro_name: str = 'plantuml',
        file_extension: str = 'wiki',
        charset: str = 'utf-8',
        workers: int = 1,
        ):
        self.output_dir = Path(output_dir).absolute()
        self.pipeline = pipeline or Pipeline()
        self.title_resolver = title_resolver or make_title_resolver(charset=charset)
        self.title_child_prefixed = title_child_prefixed
        self.remove_title = remove_title
        self.plantuml_macro_name = plantuml_macro_name
        self.file_extension = file_extension
        self.charset = charset
        self.workers = max(1, workers)
        self._cancelled = threading.Event()
        self._aborted = threading.Event()
        self._claims_lock = threading.Lock()
        self._reserved: dict[Path, Path] = {}
        self._claims: dict[Path, Path] = {}

    def cancel(self) -> None:
        self._cancelled.set()

    def convert(self, structure: PagesStructure) -> ContentModel:
        """Build the title index, then materialize every top-level page."""
        self._aborted.clear()
        try:
            title_index = build_title_index(structure, self.title_resolver, self.title_child_prefixed)
            layout = output_layout(structure, self.file_extension)
            self._reserved = {self.output_dir / rel: source for rel, source in layout.items()}
            self._claims = {}
            ensure_dir(self.output_dir)
            logger.info(f"Converting {len(title_index)} page(s) into {self.output_dir}")
            pages = self._materialize_all(structure.pages, Path(''), title_index, self.workers > 1)
        finally:
            self._cancelled.clear()
        return ContentModel(pages=pages)

    def _materialize_all(
        self,
        pages: Sequence[SourcePage],
        relative_dir: Path,
        title_index: TitleIndex,
        parallel: bool = False,
        ) -> list[OutputPage]:
        if not parallel or len(pages) < 2:
            return [self.materialize(p, relative_dir, title_index) for p in pages]

        with ThreadPoolExecutor(max_workers=self.workers, thread_name_prefix="mdconf") as pool:
            futures = [pool.submit(self.materialize, p, relative_dir, title_index) for p in pages]
            results: list[OutputPage] = []
            errors: list[ConversionError] = []
            for future in futures:
                try:
                    results.append(future.result())
                except ConversionError as e:
                    self._aborted.set()
                    errors.append(e)
        if errors:
            # Prefer the real failure over siblings stopped because of it.
            raise next((e for e in errors if not isinstance(e, ConversionCancelledError)), errors[0])
        return results

    def _claim_attachments(self, plan: dict[str, tuple[Path, Path]], document: Path) -> None:
        """Record each planned destination as owned by its source for the rest of the run."""
        with self._claims_lock:
            for name, (source, dest) in plan.items():
                if dest in self._reserved:
                    raise OutputPathConflictError(dest, self._reserved[dest], source)
                owner = self._claims.get(dest)
                if owner is not None and owner != source:
                    raise AttachmentNameCollisionError(name, owner, source, document)
            for source, dest in plan.values():
                self._claims[dest] = source

    def materialize(self, page: SourcePage, relative_dir: Path, title_index: TitleIndex) -> OutputPage:
        """Convert one page and, recursively, its children; returns the assembled node."""
        path = normalize_path(page.path)
        if self._cancelled.is_set() or self._aborted.is_set():
            raise ConversionCancelledError(path)
        try:
            title = title_index[path]
        except KeyError:
            raise TitleUnresolvedError(path, "page is missing from the title index") from None

        logger.info(f"Converting {path} ({title})")
        markdown = read_markdown(path, self.charset)
        ctx = ConvertContext(
            source_path=path,
            current_dir=path.parent,
            title_index=title_index,
            plantuml_macro_name=self.plantuml_macro_name,
        )
        rendered = self.pipeline.convert(markdown, ctx)
        tokens, wiki = rendered.tokens, rendered.wiki
        if self.remove_title:
            tokens = strip_title_tokens(tokens, title)
            if tokens is not rendered.tokens:
                logger.debug(f"  removed title heading '{title}'")
                wiki = self.pipeline.render(tokens, rendered.env)

        target = self.output_dir / relative_dir / f"{path.stem}.{self.file_extension}"
        plan = plan_attachments(
            target,
            path,
            page.attachments,
            collect_local_images(tokens),
            collect_local_attachments(tokens),
        )
        self._claim_attachments(plan, path)
        write_text_atomic(target, wiki, self.charset)
        attachments = copy_attachments(plan)
        logger.debug(f"  wrote {target} with {len(attachments)} attachment(s)")

        children: list[OutputPage] = []
        if page.children:
            child_dir = relative_dir / target.stem
            ensure_dir(self.output_dir / child_dir)
            children = self._materialize_all(page.children, child_dir, title_index)

        return OutputPage(
            title=title,
            content_file_path=str(target),
            type=ContentType.WIKI,
            attachments={name: str(p) for name, p in attachments.items()},
            skip_update=page.skip_update,
            children=children,
        )


def convert_structure(structure: PagesStructure, output_dir: Path, **options) -> ContentModel:
    """One-shot conversion with a fresh Converter."""
    return Converter(output_dir, **options).convert(structure)
