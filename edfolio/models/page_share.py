"""
PageShare Model Module

A PageShare is an invitation granting one email address read or edit access
to a published page through a bearer access token. Shares are never deleted
by the API: revoking one flips its status so the row stays for auditing.
"""
from enum import Enum
from typing import Optional
from sqlmodel import SQLModel, Field, Relationship, Column, String
from sqlalchemy import UniqueConstraint
from datetime import datetime
from typing import TYPE_CHECKING

from edfolio.core.time import to_utc, utcnow

if TYPE_CHECKING:
    from edfolio.models.published_page import PublishedPage


class SharePermission(str, Enum):
    """Access level granted by a share."""
    READ = "read"
    EDIT = "edit"


class ShareStatus(str, Enum):
    ACTIVE = "active"
    REVOKED = "revoked"


class PageShare(SQLModel, table=True):
    """
    Page share table model.

    At most one *active* share may exist per (page, invited email). The
    active_email column carries the invited email while the share is active
    and NULL once it is revoked, so the (page_id, active_email) unique
    constraint enforces that rule in the database on every backend without
    blocking re-invitations after a revoke.

    Attributes:
        page_id: Published page this share grants access to
        invited_email: Lower-cased invitee address
        invited_by: User id of the page owner who issued the invitation
        permission: "read" or "edit"
        access_token: 43-character URL-safe bearer secret, globally unique
        status: "active" or "revoked"
        expires_at: Optional expiry (UTC)
        last_accessed_at / access_count: Telemetry written on each successful
            token verification
    """
    __tablename__ = "page_shares"
    __table_args__ = (
        UniqueConstraint("page_id", "active_email", name="uq_page_shares_active_email"),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    page_id: int = Field(foreign_key="published_pages.id", index=True, nullable=False)

    invited_email: str = Field(index=True, nullable=False, max_length=320)
    invited_by: str = Field(foreign_key="users.id", nullable=False)

    permission: str = Field(
        default=SharePermission.READ.value,
        sa_column=Column(String(16), nullable=False, default=SharePermission.READ.value),
    )
    access_token: str = Field(unique=True, index=True, nullable=False, max_length=64)
    status: str = Field(
        default=ShareStatus.ACTIVE.value,
        sa_column=Column(String(16), nullable=False, index=True, default=ShareStatus.ACTIVE.value),
    )
    active_email: Optional[str] = Field(default=None, max_length=320)

    expires_at: Optional[datetime] = Field(default=None, index=True)
    created_at: datetime = Field(default_factory=utcnow)
    last_accessed_at: Optional[datetime] = None
    access_count: int = Field(default=0, nullable=False)

    page: Optional["PublishedPage"] = Relationship(back_populates="shares")

    @property
    def is_active(self) -> bool:
        return self.status == ShareStatus.ACTIVE.value

    def is_expired(self, now: datetime) -> bool:
        return self.expires_at is not None and to_utc(self.expires_at) < to_utc(now)

    def mark_active(self) -> None:
        self.status = ShareStatus.ACTIVE.value
        self.active_email = self.invited_email

    def mark_revoked(self) -> None:
        self.status = ShareStatus.REVOKED.value
        self.active_email = None
