"""
Note Model Module

This module defines the Note model. A note belongs to exactly one folio (and
optionally one of its folders) and has at most one PublishedPage, its public
projection. Deleting a note cascades to the published page and everything
hanging off it (shares and collaborators).
"""
from typing import Any, Dict, Optional
from sqlmodel import SQLModel, Field, Relationship, Column, JSON
from datetime import datetime
from typing import TYPE_CHECKING

from edfolio.core.time import utcnow

if TYPE_CHECKING:
    from edfolio.models.folio import Folio
    from edfolio.models.published_page import PublishedPage


class NoteBase(SQLModel):
    """
    Base properties for a Note.
    """
    title: str = Field(nullable=False, max_length=255)

    # Editor document tree, stored as-is (e.g. {"type": "doc", "content": [...]})
    content: Optional[Dict[str, Any]] = Field(default=None, sa_column=Column(JSON))

    folder_id: Optional[int] = Field(default=None, foreign_key="folders.id")


class Note(NoteBase, table=True):
    """
    Note table model.
    """
    __tablename__ = "notes"

    id: Optional[int] = Field(default=None, primary_key=True)
    folio_id: int = Field(foreign_key="folios.id", index=True, nullable=False)

    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    folio: Optional["Folio"] = Relationship(back_populates="notes")

    # One-to-one: a note has at most one published page
    published_page: Optional["PublishedPage"] = Relationship(
        back_populates="note",
        sa_relationship_kwargs={"uselist": False, "cascade": "all, delete-orphan"},
    )

    @property
    def owner_id(self) -> Optional[str]:
        """Owner of the folio this note lives in."""
        return self.folio.owner_id if self.folio else None
