"""File-safe names for pages dumped from the content store"""

import re


def slugify(text: str) -> str:
    """Convert a page title to a lowercase, hyphen-separated file stem."""
    text = text.lower()
    text = re.sub(r'[^\w\s-]', '', text)
    text = re.sub(r'[\s_]+', '-', text)
    return re.sub(r'-+', '-', text).strip('-') or 'page'
