"""Request and response bodies for share management."""
from pydantic import BaseModel, EmailStr, field_validator
from typing import Optional
from datetime import datetime

from edfolio.core.time import to_utc, utcnow
from edfolio.models.page_share import SharePermission, ShareStatus


class ShareCreate(BaseModel):
    invited_email: EmailStr
    permission: SharePermission
    expires_at: Optional[datetime] = None

    @field_validator("invited_email")
    @classmethod
    def lowercase_email(cls, value: str) -> str:
        return value.strip().lower()

    @field_validator("expires_at")
    @classmethod
    def expiry_in_future(cls, value: Optional[datetime]) -> Optional[datetime]:
        if value is None:
            return None
        value = to_utc(value)
        if value <= utcnow():
            raise ValueError("Expiry date must be in the future")
        return value


class ShareUpdate(BaseModel):
    permission: Optional[SharePermission] = None
    status: Optional[ShareStatus] = None


# Never carries the access token
class ShareRead(BaseModel):
    id: int
    page_id: int
    invited_email: str
    permission: SharePermission
    status: ShareStatus
    expires_at: Optional[datetime] = None
    created_at: datetime
    last_accessed_at: Optional[datetime] = None
    access_count: int

    class Config:
        from_attributes = True


class ShareCreated(BaseModel):
    id: int
    invited_email: str
    permission: SharePermission
    status: ShareStatus
    expires_at: Optional[datetime] = None
    access_link: str


class ShareRevoked(BaseModel):
    success: bool = True
    message: str = "Share revoked successfully"


class SharedPageRead(BaseModel):
    id: int
    page_id: int
    note_id: int
    page_title: str
    slug: str
    is_published: bool
    sharer_name: str
    sharer_email: str
    permission: SharePermission
    last_accessed_at: Optional[datetime] = None
    shared_at: datetime

    class Config:
        from_attributes = True
