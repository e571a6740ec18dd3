"""Content store tables: pages, attachments, and page version history"""

from datetime import datetime
from typing import List, Optional
from uuid import UUID, uuid4

from sqlalchemy import Column, DateTime, LargeBinary, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped
from sqlmodel import Field, Relationship, SQLModel


class StoredPage(SQLModel, table=True):
    """A page in the content store, addressed by title within its space"""
    __tablename__ = "pages"
    __table_args__ = (UniqueConstraint("space_key", "title", name="uq_page_space_title"),)
    id: UUID = Field(default_factory=uuid4, primary_key=True)
    space_key: str = Field(..., index=True, nullable=False)
    title: str = Field(..., sa_column=Column(Text, nullable=False))
    content: str = Field(..., sa_column=Column(Text, nullable=False))
    content_type: str = Field(default="wiki", nullable=False)
    hash: str = Field(..., sa_column=Column(String(64), nullable=False))
    version: int = Field(default=1, nullable=False, description="Incremented by one on every update")
    parent_id: Optional[UUID] = Field(default=None, foreign_key="pages.id", index=True)
    position: int = Field(default=0, nullable=False, description="Order among siblings")
    created_at: datetime = Field(default_factory=datetime.now, sa_column=Column(DateTime(timezone=False), nullable=False))
    updated_at: datetime = Field(default_factory=datetime.now, sa_column=Column(DateTime(timezone=False), nullable=False))
    attachments: Mapped[List["StoredAttachment"]] = Relationship(back_populates="page")


class StoredAttachment(SQLModel, table=True):
    """A file attached to a page, unique by file name per page"""
    __tablename__ = "attachments"
    __table_args__ = (UniqueConstraint("page_id", "file_name", name="uq_attachment_page_name"),)
    id: UUID = Field(default_factory=uuid4, primary_key=True)
    page_id: UUID = Field(..., foreign_key="pages.id", index=True, nullable=False)
    file_name: str = Field(..., sa_column=Column(Text, nullable=False))
    data: bytes = Field(..., sa_column=Column(LargeBinary, nullable=False))
    hash: str = Field(..., sa_column=Column(String(64), nullable=False))
    version: int = Field(default=1, nullable=False)
    updated_at: datetime = Field(default_factory=datetime.now, sa_column=Column(DateTime(timezone=False), nullable=False))
    page: Mapped[Optional[StoredPage]] = Relationship(back_populates="attachments")


class PageVersion(SQLModel, table=True):
    """Immutable snapshot of a page before an update"""
    __tablename__ = "page_versions"
    __table_args__ = (UniqueConstraint("page_id", "version", name="uq_pagever_page_num"),)
    id: UUID = Field(default_factory=uuid4, primary_key=True)
    page_id: UUID = Field(..., foreign_key="pages.id", index=True, nullable=False)
    version: int = Field(..., nullable=False)
    title: str = Field(..., sa_column=Column(Text, nullable=False))
    content: str = Field(..., sa_column=Column(Text, nullable=False))
    hash: str = Field(..., sa_column=Column(String(64), nullable=False))
    created_at: datetime = Field(default_factory=datetime.now, sa_column=Column(DateTime(timezone=False), nullable=False))
