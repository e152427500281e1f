"""Database table definition for slugged documents"""

from datetime import datetime
from typing import Any, Optional

from sqlalchemy import Column, DateTime, Index, JSON, String, Text
from sqlmodel import Field, SQLModel


class SlugDocumentRow(SQLModel, table=True):
    """One stored document with its slug and history denormalized for scope queries"""
    __tablename__ = "slug_documents"
    __table_args__ = (Index("ix_slug_documents_collection_slug", "collection", "slug"),)

    collection: str = Field(sa_column=Column(String(128), primary_key=True))
    id: str = Field(sa_column=Column(String(64), primary_key=True))
    type: str = Field(sa_column=Column(String(128), nullable=False))
    parent_id: Optional[str] = Field(default=None, sa_column=Column(String(64), nullable=True))
    scope_key: str = Field(sa_column=Column(Text, nullable=False), description="Slug scope instance")
    scope_targets: list[str] = Field(default_factory=list, sa_column=Column(JSON, nullable=False),
                                     description="Per-target scope keys of many-to-many reference scopes")
    slug_field: str = Field(default="slug", sa_column=Column(String(128), nullable=False))
    slug: Optional[str] = Field(default=None, sa_column=Column(Text, nullable=True))
    slug_history: list[str] = Field(default_factory=list, sa_column=Column(JSON, nullable=False))
    data: dict[str, Any] = Field(default_factory=dict, sa_column=Column(JSON, nullable=False))
    created_at: datetime = Field(default_factory=datetime.now, sa_column=Column(DateTime(timezone=False), nullable=False))
    updated_at: datetime = Field(default_factory=datetime.now, sa_column=Column(DateTime(timezone=False), nullable=False))
