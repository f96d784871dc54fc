"""
PageCollaborator Model Module

A collaborator record is the durable, revocable form of a share for one
account: it is created when a share is issued to an email that already has
an account, or on the invitee's first successful token exchange.
"""
from enum import Enum
from typing import Optional
from sqlmodel import SQLModel, Field, Relationship, Column, String
from sqlalchemy import ForeignKey, Integer, UniqueConstraint
from datetime import datetime
from typing import TYPE_CHECKING

from edfolio.core.time import utcnow
from edfolio.models.page_share import SharePermission

if TYPE_CHECKING:
    from edfolio.models.published_page import PublishedPage
    from edfolio.models.page_share import PageShare
    from edfolio.models.user import User


class CollaboratorRole(str, Enum):
    VIEWER = "viewer"
    EDITOR = "editor"

    @classmethod
    def for_permission(cls, permission: str) -> "CollaboratorRole":
        """Role encoded by a share permission: edit -> editor, read -> viewer."""
        if permission == SharePermission.EDIT.value:
            return cls.EDITOR
        return cls.VIEWER


class PageCollaborator(SQLModel, table=True):
    """
    Page collaborator table model, one row per (page, user).
    """
    __tablename__ = "page_collaborators"
    __table_args__ = (
        UniqueConstraint("page_id", "user_id", name="uq_page_collaborators_page_user"),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    page_id: int = Field(foreign_key="published_pages.id", index=True, nullable=False)
    user_id: str = Field(foreign_key="users.id", index=True, nullable=False)

    # Originating share; kept when the share row itself goes away
    share_id: Optional[int] = Field(
        default=None,
        sa_column=Column(Integer, ForeignKey("page_shares.id", ondelete="SET NULL"), index=True, nullable=True),
    )
    role: str = Field(sa_column=Column(String(16), nullable=False))

    last_edited_at: Optional[datetime] = None
    created_at: datetime = Field(default_factory=utcnow)

    page: Optional["PublishedPage"] = Relationship(back_populates="collaborators")
    share: Optional["PageShare"] = Relationship()
    user: Optional["User"] = Relationship()

    @property
    def can_edit(self) -> bool:
        return self.role == CollaboratorRole.EDITOR.value
