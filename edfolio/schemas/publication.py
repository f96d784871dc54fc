from pydantic import BaseModel
from typing import Optional
from datetime import datetime


class PublishResult(BaseModel):
    slug: str
    short_id: str
    public_url: str


class UnpublishResult(BaseModel):
    success: bool = True
    message: str = "Page unpublished successfully"


class PublicationStatusRead(BaseModel):
    is_published: bool
    page_id: Optional[int] = None
    slug: Optional[str] = None
    short_id: Optional[str] = None
    public_url: Optional[str] = None
    published_at: Optional[datetime] = None
