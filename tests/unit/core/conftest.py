"""Shared fixtures for core unit tests"""

from pathlib import Path

import pytest

from mdconf.core.models import ConvertContext, freeze_titles, normalize_path
from mdconf.core.render.pipeline import Pipeline


SAMPLE_MD = """\
# Heading 1

A paragraph with **bold** text.

## Heading 2

- item one
- item two

```python
print("hello")
```

---

Footer paragraph.
"""

SAMPLE_FM_MD = """\
---
title: Test Doc
skip_update: true
---

# Title

Body content.
"""


@pytest.fixture(name="docs")
def docs_fixture(tmp_path) -> Path:
    d = tmp_path / "docs"
    d.mkdir()
    return d


@pytest.fixture(name="write")
def write_fixture():
    """Write text to a path, creating parents; returns the path."""
    def _write(path: Path, text: str = "") -> Path:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(text, encoding="utf-8")
        return path
    return _write


@pytest.fixture(name="pipeline")
def pipeline_fixture():
    return Pipeline()


@pytest.fixture(name="make_ctx")
def make_ctx_fixture(docs):
    """Build a ConvertContext for a document under docs with the given path -> title entries."""
    def _make(name: str = "page.md", titles: dict = None, plantuml: str = "plantuml") -> ConvertContext:
        source = normalize_path(docs / name)
        index = {normalize_path(docs / k): v for k, v in (titles or {}).items()}
        return ConvertContext(
            source_path=source,
            current_dir=source.parent,
            title_index=freeze_titles(index),
            plantuml_macro_name=plantuml,
        )
    return _make


@pytest.fixture(name="sample_md")
def sample_md_fixture():
    return SAMPLE_MD


@pytest.fixture(name="sample_fm_md")
def sample_fm_md_fixture():
    return SAMPLE_FM_MD
