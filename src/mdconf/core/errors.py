"""Typed exception hierarchy for conversion, indexing, and content store errors.

Every error carries the path (or title) it concerns so a failure deep in the
tree walk can be reported to the user as a single message.
"""

from pathlib import Path
from typing import Optional


class MdconfError(Exception):
    """Base exception for all mdconf errors."""
    pass


class ConfigError(MdconfError, ValueError):
    """Raised when config.yaml cannot be parsed or validated."""
    pass


class IndexerError(MdconfError):
    """Raised when the input directory cannot be indexed into a page structure."""

    def __init__(self, path: Path, reason: str):
        super().__init__(f"Cannot index {path}: {reason}")
        self.path = path
        self.reason = reason


# --- conversion ---

class ConversionError(MdconfError):
    """Base exception for document-tree conversion failures."""
    pass


class TitleUnresolvedError(ConversionError):
    """Raised when no title can be derived for a document."""

    def __init__(self, path: Path, reason: Optional[str] = None):
        message = f"Title unresolved for {path}"
        if reason:
            message += f": {reason}"
        super().__init__(message)
        self.path = path


class UnresolvedCrossLinkError(ConversionError):
    """Raised when a link points at a markdown document outside the page tree."""

    def __init__(self, source: Path, target: str):
        super().__init__(f"Unresolved cross-page link '{target}' in {source}")
        self.source = source
        self.target = target


class MissingAttachmentError(ConversionError):
    """Raised when a referenced local image or attachment does not exist."""

    def __init__(self, path: Path, document: Path):
        super().__init__(f"Attachment {path} referenced by {document} does not exist")
        self.path = path
        self.document = document


class AttachmentNameCollisionError(ConversionError):
    """Raised when two distinct files would be copied to the same attachment name."""

    def __init__(self, name: str, first: Path, second: Path, document: Path):
        super().__init__(
            f"Attachment name '{name}' of {document} is used by both {first} and {second}"
        )
        self.name = name
        self.first = first
        self.second = second
        self.document = document


class OutputPathConflictError(ConversionError):
    """Raised when two sources would be written to the same output path."""

    def __init__(self, output: Path, first: Path, second: Path):
        super().__init__(f"{first} and {second} are both written to {output}")
        self.output = output
        self.first = first
        self.second = second


class ConversionIOError(ConversionError):
    """Raised when a read, write, copy, or mkdir fails during conversion."""

    def __init__(self, path: Path, operation: str, reason: Optional[str] = None):
        message = f"Filesystem operation '{operation}' failed for {path}"
        if reason:
            message += f": {reason}"
        super().__init__(message)
        self.path = path
        self.operation = operation
        self.reason = reason


class ConversionCancelledError(ConversionError):
    """Raised at node entry once the conversion has been cancelled."""

    def __init__(self, path: Path):
        super().__init__(f"Conversion cancelled before {path}")
        self.path = path


# --- content store ---

class StoreError(MdconfError):
    """Base exception for content store errors."""
    pass


class PageNotFoundError(StoreError):
    def __init__(self, page_ref: str):
        super().__init__(f"Page {page_ref} not found")
        self.page_ref = page_ref


class PageAlreadyExistsError(StoreError):
    def __init__(self, title: str, space_key: str):
        super().__init__(f"Page with title '{title}' already exists in space {space_key}")
        self.title = title
        self.space_key = space_key


class VersionConflictError(StoreError):
    """Raised when an update does not carry the next version number."""

    def __init__(self, page_id: str, expected: int, actual: int):
        super().__init__(f"Version conflict on page {page_id}: expected {expected}, got {actual}")
        self.page_id = page_id
        self.expected = expected
        self.actual = actual


class AttachmentNotFoundError(StoreError):
    def __init__(self, attachment_ref: str):
        super().__init__(f"Attachment {attachment_ref} not found")
        self.attachment_ref = attachment_ref
