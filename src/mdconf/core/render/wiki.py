"""Confluence wiki markup renderer for markdown-it token streams.

Extensions annotate tokens through ``token.meta`` before rendering:

- ``meta['macro']`` / ``meta['macro_params']`` on fence tokens choose the
  wrapping macro (``{code:language=python}``, ``{plantuml}``, ...);
- ``meta['raw']`` on an inline token emits its source verbatim;
- ``meta['wiki_target']`` on link_open replaces the href;
- ``meta['wiki_src']`` on image replaces the src.
"""

import re


_WIKI_SPECIAL_RE = re.compile(r'([*_\[\]|])')


def escape(text: str) -> str:
    """Backslash-escape characters that would start wiki formatting."""
    return _WIKI_SPECIAL_RE.sub(r'\\\1', text)


def _macro(name: str, params: dict | None) -> str:
    if not params:
        return f"{{{name}}}"
    return f"{{{name}:" + "|".join(f"{k}={v}" for k, v in params.items()) + "}"


def _trim_blank(parts: list[str]) -> None:
    """Collapse a trailing paragraph gap to a single newline."""
    if parts and parts[-1].endswith("\n\n"):
        parts[-1] = parts[-1][:-1]


class WikiRenderer:
    """Render block and inline tokens as Confluence wiki markup."""

    __output__ = "wiki"

    def __init__(self, parser=None):
        self.parser = parser

    def render(self, tokens: list, options=None, env=None) -> str:
        parts: list[str] = []
        lists: list[str] = []
        cells: list[str] = []
        header_row = False
        in_cell = False

        for tok in tokens:
            t = tok.type
            if t == 'heading_open':
                parts.append(f"{tok.tag}. ")
            elif t == 'heading_close':
                parts.append("\n\n")
            elif t == 'paragraph_close':
                parts.append("\n" if lists else "\n\n")
            elif t == 'inline':
                text = self.render_inline(tok)
                if in_cell:
                    cells[-1] = text.strip()
                else:
                    parts.append(text)
            elif t in ('bullet_list_open', 'ordered_list_open'):
                lists.append('*' if t == 'bullet_list_open' else '#')
            elif t in ('bullet_list_close', 'ordered_list_close'):
                lists.pop()
                if not lists:
                    parts.append("\n")
            elif t == 'list_item_open':
                parts.append(''.join(lists) + ' ')
            elif t == 'list_item_close':
                if parts and not parts[-1].endswith("\n"):
                    parts.append("\n")
            elif t == 'blockquote_open':
                parts.append("{quote}\n")
            elif t == 'blockquote_close':
                _trim_blank(parts)
                parts.append("{quote}\n\n")
            elif t in ('fence', 'code_block'):
                parts.append(self.render_code(tok, nested=bool(lists)))
            elif t == 'hr':
                parts.append("----\n\n")
            elif t == 'html_block':
                parts.append(tok.content.rstrip("\n") + "\n\n")
            elif t == 'tr_open':
                cells = []
            elif t in ('th_open', 'td_open'):
                header_row = t == 'th_open'
                cells.append('')
                in_cell = True
            elif t in ('th_close', 'td_close'):
                in_cell = False
            elif t == 'tr_close':
                sep = '||' if header_row else '|'
                parts.append(sep + sep.join(cells) + sep + "\n")
            elif t == 'table_close':
                parts.append("\n")

        return ''.join(parts).rstrip("\n") + "\n" if parts else ""

    def render_code(self, tok, nested: bool = False) -> str:
        name = tok.meta.get('macro', 'noformat')
        body = tok.content if tok.content.endswith("\n") or not tok.content else tok.content + "\n"
        gap = "\n" if nested else "\n\n"
        return f"{_macro(name, tok.meta.get('macro_params'))}\n{body}{{{name}}}{gap}"

    def render_inline(self, token) -> str:
        if token.meta.get('raw'):
            return token.content
        out: list[str] = []
        targets: list[str] = []
        for child in token.children or []:
            t = child.type
            if t == 'text':
                out.append(escape(child.content))
            elif t == 'softbreak':
                out.append(" ")
            elif t == 'hardbreak':
                out.append("\\\\\n")
            elif t in ('em_open', 'em_close'):
                out.append("_")
            elif t in ('strong_open', 'strong_close'):
                out.append("*")
            elif t in ('s_open', 's_close'):
                out.append("-")
            elif t == 'code_inline':
                out.append("{{" + child.content + "}}")
            elif t == 'link_open':
                targets.append(child.meta.get('wiki_target') or child.attrGet('href') or '')
                out.append("[")
            elif t == 'link_close':
                out.append("|" + targets.pop() + "]")
            elif t == 'image':
                src = child.meta.get('wiki_src') or child.attrGet('src') or ''
                out.append(f"!{src}|alt={child.content}!" if child.content else f"!{src}!")
            else:
                out.append(child.content)
        return ''.join(out)
