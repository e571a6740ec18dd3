"""Data models for the page structure, conversion context, and content model"""

import os
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from types import MappingProxyType
from typing import Iterator, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field


TitleIndex = Mapping[Path, str]


def normalize_path(path: Path) -> Path:
    """Absolute path with . and .. segments collapsed; symlinks are not followed."""
    return Path(os.path.normpath(path.absolute()))


def freeze_titles(titles: dict[Path, str]) -> TitleIndex:
    """Return a read-only view over a path -> title dict."""
    return MappingProxyType(dict(titles))


@dataclass(frozen=True)
class SourcePage:
    """A markdown document in the input tree; identity is its absolute path."""
    path:        Path
    attachments: tuple[Path, ...] = ()
    children:    tuple["SourcePage", ...] = ()
    skip_update: bool = False


@dataclass(frozen=True)
class PagesStructure:
    """Ordered forest of top-level pages as produced by the indexer."""
    pages: tuple[SourcePage, ...] = ()

    def walk(self) -> Iterator[SourcePage]:
        """Yield every page depth-first, parents before children."""
        stack = list(reversed(self.pages))
        while stack:
            page = stack.pop()
            yield page
            stack.extend(reversed(page.children))


@dataclass(frozen=True)
class ConvertContext:
    """Per-document inputs handed to every render extension."""
    source_path:         Path
    current_dir:         Path
    title_index:         TitleIndex
    plantuml_macro_name: str = "plantuml"


@dataclass
class RenderedDoc:
    """Transient parse + render result for one document; not persisted."""
    tokens: list            # markdown-it Token objects (the intermediate tree)
    wiki:   str
    env:    dict = field(default_factory=dict)


class ContentType(str, Enum):
    """Markup format of a rendered content file"""
    WIKI = "wiki"
    STORAGE = "storage"


class OutputPage(BaseModel):
    """A converted page: rendered content file, title, attachments, and children."""
    model_config = ConfigDict(frozen=True)

    title:             str
    content_file_path: str
    type:              ContentType = ContentType.WIKI
    attachments:       dict[str, str] = Field(default_factory=dict, description="display name -> copied file path")
    skip_update:       bool = False
    children:          list["OutputPage"] = Field(default_factory=list)

    def walk(self) -> Iterator["OutputPage"]:
        yield self
        for child in self.children:
            yield from child.walk()


class ContentModel(BaseModel):
    """Root of the content model: the converted page forest."""
    pages: list[OutputPage] = Field(default_factory=list)

    def walk(self) -> Iterator[OutputPage]:
        for page in self.pages:
            yield from page.walk()

    def find(self, title: str) -> Optional[OutputPage]:
        return next((p for p in self.walk() if p.title == title), None)
