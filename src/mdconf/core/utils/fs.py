"""Filesystem helpers used while materializing output"""

import os
from pathlib import Path

from mdconf.core.errors import ConversionIOError


def ensure_dir(path: Path) -> Path:
    """Create path and parents; an existing directory is not an error."""
    try:
        path.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise ConversionIOError(path, "mkdir", str(e)) from e
    return path


def write_text_atomic(path: Path, text: str, encoding: str = "utf-8") -> Path:
    """Write text through a sibling temp file and rename, replacing any prior content."""
    ensure_dir(path.parent)
    tmp = path.with_name(f".{path.name}.tmp")
    try:
        tmp.write_text(text, encoding=encoding)
        os.replace(tmp, path)
    except OSError as e:
        tmp.unlink(missing_ok=True)
        raise ConversionIOError(path, "write", str(e)) from e
    return path
