"""
PublishedPage Model Module

The public-facing projection of a Note. There is at most one row per note;
unpublishing only flips is_published so the slug and short_id survive and are
handed back out when the note is published again.
"""
from typing import List, Optional
from sqlmodel import SQLModel, Field, Relationship
from datetime import datetime
from typing import TYPE_CHECKING

from edfolio.core.time import utcnow

if TYPE_CHECKING:
    from edfolio.models.note import Note
    from edfolio.models.page_share import PageShare
    from edfolio.models.page_collaborator import PageCollaborator


class PublishedPage(SQLModel, table=True):
    """
    Published page table model.

    Attributes:
        note_id: The note this page publishes (unique, 1:1)
        slug: "{title-slug}-{short_id}", globally unique
        short_id: 8-character random identifier, globally unique
        is_published: False after an unpublish (soft delete)
        published_at: Time of the most recent publish
    """
    __tablename__ = "published_pages"

    id: Optional[int] = Field(default=None, primary_key=True)

    # The unique constraints here are the real uniqueness guarantee;
    # the slug generator's collision checks only avoid most IntegrityErrors.
    note_id: int = Field(foreign_key="notes.id", unique=True, nullable=False)
    slug: str = Field(unique=True, index=True, nullable=False, max_length=120)
    short_id: str = Field(unique=True, index=True, nullable=False, max_length=16)

    is_published: bool = Field(default=True, nullable=False)
    published_at: datetime = Field(default_factory=utcnow, index=True)
    last_updated: datetime = Field(default_factory=utcnow)

    note: Optional["Note"] = Relationship(back_populates="published_page")
    shares: List["PageShare"] = Relationship(
        back_populates="page",
        sa_relationship_kwargs={"cascade": "all, delete-orphan"},
    )
    collaborators: List["PageCollaborator"] = Relationship(
        back_populates="page",
        sa_relationship_kwargs={"cascade": "all, delete-orphan"},
    )

    @property
    def public_url(self) -> str:
        return f"/public/{self.slug}"

    @property
    def owner_id(self) -> Optional[str]:
        return self.note.owner_id if self.note else None
