"""Title index construction and title resolution strategies.

Titles are resolved once per page, before any rendering, and are frozen for
the rest of the conversion: cross-page links are rendered against the index
built here, and the content store addresses pages by title.
"""

import logging
from collections import Counter
from pathlib import Path
from typing import Callable, Optional

from mdconf.core.errors import ConversionIOError, TitleUnresolvedError
from mdconf.core.models import PagesStructure, SourcePage, TitleIndex, freeze_titles, normalize_path
from mdconf.core.parse import first_heading, make_parser, read_markdown, strip_frontmatter


logger = logging.getLogger(__name__)

TitleResolver = Callable[[SourcePage], Optional[str]]


def _frontmatter_and_tokens(page: SourcePage, charset: str) -> tuple[dict, list]:
    try:
        fm, body = strip_frontmatter(read_markdown(page.path, charset))
    except ValueError as e:
        raise TitleUnresolvedError(page.path, str(e)) from e
    return fm, make_parser().parse(body)


def from_filename(page: SourcePage) -> Optional[str]:
    """Use the file name without extension."""
    return page.path.stem


def from_first_heading(page: SourcePage, charset: str = 'utf-8') -> Optional[str]:
    """Use the text of the first heading of any level."""
    _, tokens = _frontmatter_and_tokens(page, charset)
    return first_heading(tokens)


def from_frontmatter_or_heading(page: SourcePage, charset: str = 'utf-8') -> Optional[str]:
    """Front-matter 'title', else first heading, else file name."""
    fm, tokens = _frontmatter_and_tokens(page, charset)
    title = fm.get('title')
    if title is not None and str(title).strip():
        return str(title).strip()
    return first_heading(tokens) or from_filename(page)


STRATEGIES: dict[str, Callable[..., Optional[str]]] = {
    'default':       from_frontmatter_or_heading,
    'first_heading': from_first_heading,
    'filename':      from_filename,
}


def make_title_resolver(
    strategy: str = 'default',
    prefix: str = '',
    suffix: str = '',
    charset: str = 'utf-8',
    ) -> TitleResolver:
    """Return a resolver for the named strategy, decorated with prefix/suffix."""
    try:
        base = STRATEGIES[strategy]
    except KeyError:
        raise ValueError(f"Unknown title strategy '{strategy}'; expected one of {sorted(STRATEGIES)}") from None

    def resolve(page: SourcePage) -> Optional[str]:
        title = base(page) if base is from_filename else base(page, charset)
        if not title:
            return None
        return f"{prefix}{title}{suffix}"

    return resolve


def build_title_index(
    structure: PagesStructure,
    resolver: TitleResolver,
    child_prefixed: bool = False,
    ) -> TitleIndex:
    """Resolve a title for every page in the forest, keyed by absolute path.

    The resolver is called exactly once per page. With child_prefixed, each
    child title becomes "<parent title> - <child title>".
    Raises TitleUnresolvedError for the first page without a title.
    """
    titles: dict[Path, str] = {}

    def _visit(page: SourcePage, parent_title: Optional[str]) -> None:
        path = normalize_path(page.path)
        try:
            title = resolver(page)
        except ConversionIOError as e:
            raise TitleUnresolvedError(path, str(e)) from e
        if not title or not title.strip():
            raise TitleUnresolvedError(path)
        title = title.strip()
        if child_prefixed and parent_title:
            title = f"{parent_title} - {title}"
        titles[path] = title
        logger.debug(f"Title for {path}: {title}")
        for child in page.children:
            _visit(child, title)

    for page in structure.pages:
        _visit(page, None)

    for title, count in Counter(titles.values()).items():
        if count > 1:
            logger.warning(f"Title '{title}' is used by {count} pages; the content store addresses pages by title")

    return freeze_titles(titles)
