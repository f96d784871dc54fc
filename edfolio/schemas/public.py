from pydantic import BaseModel
from typing import Any, Dict, Optional
from datetime import datetime


class AccessRequest(BaseModel):
    """Token exchange body. The token is untyped so malformed values can be reported as invalid."""
    access_token: Any = None

    @classmethod
    def from_payload(cls, payload: Any) -> "AccessRequest":
        if isinstance(payload, dict):
            return cls(access_token=payload.get("access_token"))
        return cls()


class PublicPage(BaseModel):
    id: int
    slug: str
    title: str
    content: Optional[Dict[str, Any]] = None
    excerpt: Optional[str] = None
    author_name: Optional[str] = None
    published_at: Optional[datetime] = None
    last_updated: Optional[datetime] = None


class AccessResponse(BaseModel):
    """Outcome of a token exchange. Invalid tokens are reported here, never as an HTTP error."""
    valid: bool
    error: Optional[str] = None
    permission: Optional[str] = None
    access_level: Optional[str] = None
    page: Optional[PublicPage] = None
