"""
Folio Model Module

A folio is a user's top-level workspace. Folders nest inside a folio and
notes live in a folio, optionally inside one of its folders. The folio owner
is the root of the ownership chain for every note, published page, share and
collaborator below it.
"""
from typing import List, Optional
from sqlmodel import SQLModel, Field, Relationship
from datetime import datetime
from typing import TYPE_CHECKING

from edfolio.core.time import utcnow

if TYPE_CHECKING:
    from edfolio.models.user import User
    from edfolio.models.note import Note


DEFAULT_FOLIO_NAME = "My Folio"


class FolioBase(SQLModel):
    name: str = Field(nullable=False, max_length=255)


class Folio(FolioBase, table=True):
    """
    Folio table model.
    """
    __tablename__ = "folios"

    id: Optional[int] = Field(default=None, primary_key=True)
    owner_id: str = Field(foreign_key="users.id", index=True, nullable=False)
    created_at: datetime = Field(default_factory=utcnow)

    owner: Optional["User"] = Relationship(back_populates="folios")
    notes: List["Note"] = Relationship(
        back_populates="folio",
        sa_relationship_kwargs={"cascade": "all, delete-orphan"},
    )


class Folder(SQLModel, table=True):
    """
    Folder table model. Folders can nest through parent_id.
    """
    __tablename__ = "folders"

    id: Optional[int] = Field(default=None, primary_key=True)
    name: str = Field(nullable=False, max_length=255)
    folio_id: int = Field(foreign_key="folios.id", index=True, nullable=False)
    parent_id: Optional[int] = Field(default=None, foreign_key="folders.id")
    created_at: datetime = Field(default_factory=utcnow)


class FolioCreate(FolioBase):
    """Schema for creating a folio."""


class FolioRead(FolioBase):
    """Schema for reading a folio."""
    id: int
    owner_id: str
    created_at: datetime
