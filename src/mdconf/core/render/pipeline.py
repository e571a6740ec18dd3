"""Markdown -> wiki transformation pipeline built from registered extensions"""

from typing import Iterable

from markdown_it import MarkdownIt

from mdconf.core.models import ConvertContext, RenderedDoc
from mdconf.core.parse import make_parser, strip_frontmatter
from mdconf.core.render.extensions import DEFAULT_EXTENSIONS, EXTENSION_ORDER, REGISTRY
from mdconf.core.render.wiki import WikiRenderer


HTML_TOKENS = {'html_block', 'html_inline'}


def drop_html(tokens: list) -> list:
    """Return tokens without raw HTML blocks or inline HTML."""
    kept = []
    for tok in tokens:
        if tok.type in HTML_TOKENS:
            continue
        if tok.children:
            tok.children = [c for c in tok.children if c.type not in HTML_TOKENS]
        kept.append(tok)
    return kept


class Pipeline:
    """Parse markdown into a token stream, apply extensions in order, render wiki markup.

    The pipeline holds only configuration; everything document-specific is
    passed to ``convert`` through the ConvertContext, so one instance can be
    shared across threads.
    """

    def __init__(self, extensions: Iterable[str] = DEFAULT_EXTENSIONS, suppress_html: bool = True):
        names = set(extensions)
        unknown = names - set(REGISTRY)
        if unknown:
            raise ValueError(f"Unknown render extension(s): {', '.join(sorted(unknown))}")
        self.extensions = [REGISTRY[name] for name in EXTENSION_ORDER if name in names]
        self.suppress_html = suppress_html
        self.md = self._make_md()
        self.renderer = WikiRenderer(self.md)

    def _make_md(self) -> MarkdownIt:
        md = make_parser()
        for ext in self.extensions:
            ext.setup(md)
        return md

    @property
    def extension_names(self) -> list[str]:
        return [ext.name for ext in self.extensions]

    def parse(self, markdown: str) -> tuple[list, dict]:
        """Tokenize markdown body (frontmatter stripped); never raises on malformed input."""
        try:
            _, body = strip_frontmatter(markdown)
        except ValueError:
            body = markdown
        env: dict = {}
        tokens = self.md.parse(body, env)
        if self.suppress_html:
            tokens = drop_html(tokens)
        return tokens, env

    def render(self, tokens: list, env: dict) -> str:
        return self.renderer.render(tokens, self.md.options, env)

    def convert(self, markdown: str, ctx: ConvertContext) -> RenderedDoc:
        tokens, env = self.parse(markdown)
        for ext in self.extensions:
            tokens = ext.apply(tokens, ctx)
        return RenderedDoc(tokens=tokens, wiki=self.render(tokens, env), env=env)
