"""
User Model Module

This module defines the User model used for authentication and for matching
share invitations to existing accounts.
"""
from typing import List, Optional
from sqlmodel import SQLModel, Field, Relationship
import uuid
from datetime import datetime
from typing import TYPE_CHECKING

from edfolio.core.time import utcnow

if TYPE_CHECKING:
    from edfolio.models.folio import Folio


class User(SQLModel, table=True):
    """
    User model representing authenticated users in the system.

    Users are identified by UUID and authenticated via email/password. Emails
    are stored lower-cased so that share invitations (also lower-cased) match
    accounts exactly.

    Attributes:
        id: Unique identifier (UUID) automatically generated for each user
        email: User's email address, used for authentication (required, unique, indexed)
        password: Hashed password (bcrypt)
        full_name: User's full display name, shown in share notifications
        created_at: UTC timestamp when the account was created
    """
    __tablename__ = "users"

    # Primary key - auto-generated UUID for global uniqueness
    id: str = Field(default_factory=lambda: str(uuid.uuid4()), primary_key=True)

    # Authentication fields
    email: str = Field(unique=True, index=True, nullable=False)
    password: Optional[str] = None

    # Profile information
    full_name: Optional[str] = None

    created_at: datetime = Field(default_factory=utcnow)

    folios: List["Folio"] = Relationship(back_populates="owner")

    @property
    def display_name(self) -> str:
        """Name used when this user appears in notifications."""
        return self.full_name or self.email
