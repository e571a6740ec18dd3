"""Render extensions: stateless token-stream transformations.

Each extension enables the parser rules it needs in ``setup`` and rewrites or
annotates the token stream in ``apply``. Per-document inputs (the document
directory, the title index, the diagram macro name) arrive through the
ConvertContext argument only; extensions hold no per-document state.
"""

import re
from pathlib import Path
from typing import Iterator
from urllib.parse import unquote

from markdown_it import MarkdownIt

from mdconf.core.errors import UnresolvedCrossLinkError
from mdconf.core.models import ConvertContext, normalize_path


MARKDOWN_SUFFIXES = {'.md', '.markdown', '.mdx'}
PLANTUML_LANGUAGES = {'plantuml', 'puml'}

_SCHEME_RE = re.compile(r'^[a-zA-Z][a-zA-Z0-9+.\-]*:')
_MACRO_RE = re.compile(r'^\{[a-zA-Z][\w\-]*(:[^{}]*)?\}$')
_CURLY_RE = re.compile(r'([{}])')


def iter_tokens(tokens: list) -> Iterator:
    """Yield every token, descending into inline children."""
    for tok in tokens:
        yield tok
        if tok.children:
            yield from iter_tokens(tok.children)


def is_local_target(target: str | None) -> bool:
    """True for relative filesystem references; URLs, anchors and absolute paths are not."""
    if not target or target.startswith(('#', '/', '\\')):
        return False
    return not _SCHEME_RE.match(target)


def resolve_local(target: str, current_dir: Path) -> tuple[Path, str]:
    """Split a relative reference into (normalized absolute path, '#fragment' or '')."""
    path_part, _, fragment = target.partition('#')
    path_part = unquote(path_part.split('?', 1)[0])
    resolved = normalize_path(current_dir / path_part)
    return resolved, f"#{fragment}" if fragment else ''


class Extension:
    """Base render extension: no parser changes, identity transform."""
    name = "base"

    def setup(self, md: MarkdownIt) -> None:
        pass

    def apply(self, tokens: list, ctx: ConvertContext) -> list:
        return tokens


class TablesExtension(Extension):
    name = "tables"

    def setup(self, md: MarkdownIt) -> None:
        md.enable('table')


class StrikethroughExtension(Extension):
    name = "strikethrough"

    def setup(self, md: MarkdownIt) -> None:
        md.enable('strikethrough')


class PlantUmlExtension(Extension):
    """Wrap ```plantuml fences in the configured diagram macro."""
    name = "plantuml"

    def apply(self, tokens: list, ctx: ConvertContext) -> list:
        for tok in tokens:
            if tok.type == 'fence' and tok.info.strip().lower() in PLANTUML_LANGUAGES:
                tok.meta['macro'] = ctx.plantuml_macro_name
        return tokens


class FencedCodeExtension(Extension):
    """Render unclaimed fences as {code} macros carrying the fence language."""
    name = "fenced_code"

    def apply(self, tokens: list, ctx: ConvertContext) -> list:
        for tok in tokens:
            if tok.type != 'fence' or 'macro' in tok.meta:
                continue
            tok.meta['macro'] = 'code'
            language = tok.info.strip().split()[0] if tok.info.strip() else ''
            if language:
                tok.meta['macro_params'] = {'language': language}
        return tokens


class MacroBlockExtension(Extension):
    """Pass paragraphs that consist of a single {macro} through unescaped."""
    name = "macros"

    def apply(self, tokens: list, ctx: ConvertContext) -> list:
        for i, tok in enumerate(tokens):
            if tok.type == 'inline' and i and tokens[i - 1].type == 'paragraph_open':
                if _MACRO_RE.match(tok.content.strip()):
                    tok.meta['raw'] = True
        return tokens


class CurlyBracesExtension(Extension):
    """Escape curly braces in text so they are not read as wiki macros."""
    name = "curly_braces"

    def apply(self, tokens: list, ctx: ConvertContext) -> list:
        for tok in tokens:
            if tok.type != 'inline' or tok.meta.get('raw'):
                continue
            for child in iter_tokens(tok.children or []):
                if child.type == 'text':
                    child.content = _CURLY_RE.sub(r'\\\1', child.content)
        return tokens


class LocalImageExtension(Extension):
    """Resolve relative image sources against the document directory."""
    name = "local_images"

    def apply(self, tokens: list, ctx: ConvertContext) -> list:
        for tok in iter_tokens(tokens):
            if tok.type == 'image' and is_local_target(tok.attrGet('src')):
                path, _ = resolve_local(tok.attrGet('src'), ctx.current_dir)
                tok.meta['local_image'] = path
                tok.meta['wiki_src'] = path.name
        return tokens


class LocalAttachmentLinkExtension(Extension):
    """Turn relative links to non-markdown files into attachment links."""
    name = "local_attachments"

    def apply(self, tokens: list, ctx: ConvertContext) -> list:
        for tok in iter_tokens(tokens):
            if tok.type != 'link_open' or not is_local_target(tok.attrGet('href')):
                continue
            path, _ = resolve_local(tok.attrGet('href'), ctx.current_dir)
            if path.suffix.lower() in MARKDOWN_SUFFIXES:
                continue
            tok.meta['local_attachment'] = path
            tok.meta['wiki_target'] = f"^{path.name}"
        return tokens


class CrosspageLinkExtension(Extension):
    """Rewrite relative links to markdown documents as links to their page titles."""
    name = "crosspage_links"

    def apply(self, tokens: list, ctx: ConvertContext) -> list:
        for tok in iter_tokens(tokens):
            href = tok.attrGet('href') if tok.type == 'link_open' else None
            if not is_local_target(href):
                continue
            path, fragment = resolve_local(href, ctx.current_dir)
            if path.suffix.lower() not in MARKDOWN_SUFFIXES:
                continue
            title = ctx.title_index.get(path)
            if title is None:
                raise UnresolvedCrossLinkError(ctx.source_path, href)
            tok.meta['crosspage_path'] = path
            tok.meta['wiki_target'] = f"{title}{fragment}"
        return tokens


_EXTENSIONS = (
    TablesExtension(),
    StrikethroughExtension(),
    PlantUmlExtension(),
    FencedCodeExtension(),
    MacroBlockExtension(),
    CurlyBracesExtension(),
    LocalImageExtension(),
    LocalAttachmentLinkExtension(),
    CrosspageLinkExtension(),
)

REGISTRY: dict[str, Extension] = {ext.name: ext for ext in _EXTENSIONS}

# Code and macro blocks are claimed before the link extensions rewrite inline tokens.
EXTENSION_ORDER: tuple[str, ...] = tuple(ext.name for ext in _EXTENSIONS)

DEFAULT_EXTENSIONS: frozenset[str] = frozenset(EXTENSION_ORDER) - {'plantuml'}
