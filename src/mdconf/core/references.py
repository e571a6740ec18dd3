"""Collect local image and attachment references from a rendered token stream"""

from pathlib import Path

from mdconf.core.render.extensions import iter_tokens


def collect_local_images(tokens: list) -> list[Path]:
    """Absolute paths of local images in document order; duplicates kept."""
    return [t.meta['local_image'] for t in iter_tokens(tokens) if t.type == 'image' and 'local_image' in t.meta]


def collect_local_attachments(tokens: list) -> list[Path]:
    """Absolute paths of local attachment links in document order; duplicates kept."""
    return [
        t.meta['local_attachment']
        for t in iter_tokens(tokens)
        if t.type == 'link_open' and 'local_attachment' in t.meta
    ]
