"""Drop the page title heading from a converted token stream.

Confluence shows the page title above the body, so a heading that repeats it
would be displayed twice. Headings are compared by plain text, the same text
the first_heading title strategy resolves titles from, so code spans, emphasis
or links inside the heading still match.
"""

import re
from typing import Optional

from mdconf.core.parse import inline_text


_ESCAPED_BRACE_RE = re.compile(r'\\([{}])')


def heading_text(inline) -> str:
    """Plain heading text with the curly-brace escaping of the render pipeline undone."""
    return _ESCAPED_BRACE_RE.sub(r'\1', inline_text(inline))


def find_title_heading(tokens: list, title: str) -> Optional[int]:
    """Index of the heading_open token of the first heading equal to title, else None."""
    for i, tok in enumerate(tokens[:-2]):
        if tok.type == 'heading_open' and heading_text(tokens[i + 1]) == title:
            return i
    return None


def strip_title_tokens(tokens: list, title: str) -> list:
    """Return tokens without the first heading equal to title.

    The same list object comes back when no heading matches.
    """
    i = find_title_heading(tokens, title)
    if i is None:
        return tokens
    # heading_open, inline, heading_close
    return tokens[:i] + tokens[i + 3:]
