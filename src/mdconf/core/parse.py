"""Markdown reading, frontmatter extraction, and markdown-it tokenization"""

import re
from pathlib import Path
from typing import Any, Optional

import yaml
from markdown_it import MarkdownIt

from mdconf.core.errors import ConversionIOError


FRONTMATTER_RE = re.compile(r'^---\s*\n(.*?)\n---\s*\n', re.DOTALL)


def make_parser(preset: str = 'commonmark') -> MarkdownIt:
    """Build a bare MarkdownIt instance; render extensions enable their own rules."""
    return MarkdownIt(preset, options_update={"linkify": False})


def strip_frontmatter(text: str) -> tuple[dict[str, Any], str]:
    """Return (frontmatter_dict, body) with YAML header removed."""
    m = FRONTMATTER_RE.match(text)
    if m:
        try:
            fm = yaml.safe_load(m.group(1)) or {}
        except yaml.YAMLError as e:
            raise ValueError(f"Invalid YAML frontmatter: {e}") from e
        if not isinstance(fm, dict):
            raise ValueError(f"Invalid YAML frontmatter: expected a mapping, got {type(fm).__name__}")
        return fm, text[m.end():]
    return {}, text


def read_markdown(path: Path, charset: str = 'utf-8') -> str:
    """Read a markdown file, wrapping I/O failures with the offending path."""
    try:
        return path.read_text(encoding=charset)
    except (OSError, UnicodeDecodeError) as e:
        raise ConversionIOError(path, "read", str(e)) from e


def inline_text(inline) -> str:
    """Plain text of an inline token: text and code spans, markup dropped."""
    return ''.join(c.content for c in (inline.children or []) if c.type in ('text', 'code_inline')).strip()


def first_heading(tokens: list) -> Optional[str]:
    """Return the plain text of the first heading in a token stream, else None."""
    for i, tok in enumerate(tokens):
        if tok.type == 'heading_open' and i + 1 < len(tokens):
            return inline_text(tokens[i + 1]) or None
    return None
