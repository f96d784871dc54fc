"""
Access token issuing and verification for page shares.

A share's access token is the only credential an invitee needs, so it is
drawn from `secrets` and never written to the logs.
"""
import logging
import secrets
from dataclasses import dataclass
from typing import Optional

from sqlalchemy import update
from sqlmodel import Session, select

from edfolio.core.time import utcnow
from edfolio.models.folio import Folio
from edfolio.models.note import Note
from edfolio.models.page_share import PageShare
from edfolio.models.published_page import PublishedPage

logger = logging.getLogger(__name__)

TOKEN_BYTES = 32  # 256 bits -> 43 URL-safe base64 characters, no padding
MAX_TOKEN_ATTEMPTS = 10

INVALID_TOKEN = "Invalid access token"
ACCESS_REVOKED = "Access has been revoked"
TOKEN_EXPIRED = "Access token has expired"
PAGE_UNPUBLISHED = "Page is no longer published"


class AccessTokenError(Exception):
    """Raised when a unique access token cannot be issued."""


class ShareNotFoundError(LookupError):
    def __init__(self, message: str = "Share not found"):
        super().__init__(message)


class NotPageOwnerError(PermissionError):
    def __init__(self, message: str = "Only the page owner can manage shares"):
        super().__init__(message)


@dataclass
class TokenVerification:
    valid: bool
    share: Optional[PageShare] = None
    error: Optional[str] = None


def generate_access_token(db: Session) -> str:
    """Return a fresh token not held by any existing share."""
    for _ in range(MAX_TOKEN_ATTEMPTS):
        token = secrets.token_urlsafe(TOKEN_BYTES)
        existing = db.exec(select(PageShare.id).where(PageShare.access_token == token)).first()
        if existing is None:
            return token
        logger.warning("Access token collision, regenerating")
    raise AccessTokenError("Failed to generate unique access token")


def verify_access_token(db: Session, token: str) -> TokenVerification:
    """
    Check a bearer token against its share and page.

    Checks run in a fixed order and stop at the first failure: unknown token,
    revoked share, expired share, unpublished page. A revoked share therefore
    reports revocation even when it has also expired or its page was
    unpublished. On success the share's access telemetry is bumped in a
    single UPDATE and committed.
    """
    share = db.exec(select(PageShare).where(PageShare.access_token == token)).first()
    if share is None:
        return TokenVerification(valid=False, error=INVALID_TOKEN)

    if not share.is_active:
        return TokenVerification(valid=False, error=ACCESS_REVOKED)

    now = utcnow()
    if share.is_expired(now):
        return TokenVerification(valid=False, error=TOKEN_EXPIRED)

    page = share.page
    if page is None or not page.is_published:
        return TokenVerification(valid=False, error=PAGE_UNPUBLISHED)

    db.exec(
        update(PageShare)
        .where(PageShare.id == share.id)
        .values(access_count=PageShare.access_count + 1, last_accessed_at=now)
    )
    db.commit()
    db.refresh(share)
    logger.info("Access token verified for share %s (page %s)", share.id, share.page_id)
    return TokenVerification(valid=True, share=share)


def get_share_owner_id(db: Session, share: PageShare) -> Optional[str]:
    """Walk share -> page -> note -> folio and return the folio owner's id."""
    return db.exec(
        select(Folio.owner_id)
        .join(Note, Note.folio_id == Folio.id)
        .join(PublishedPage, PublishedPage.note_id == Note.id)
        .where(PublishedPage.id == share.page_id)
    ).first()


def revoke_access_token(db: Session, share_id: int, requester_id: str) -> bool:
    """
    Mark a share revoked on behalf of the page owner.

    Revoking an already revoked share succeeds without changes.

    Returns:
        bool: True when this call changed the share's status

    Raises:
        ShareNotFoundError: No share with this id
        NotPageOwnerError: requester does not own the page's folio
    """
    share = db.get(PageShare, share_id)
    if share is None:
        raise ShareNotFoundError()

    if get_share_owner_id(db, share) != requester_id:
        raise NotPageOwnerError("Only the page owner can revoke access")

    if not share.is_active:
        return False

    share.mark_revoked()
    db.add(share)
    db.commit()
    db.refresh(share)
    logger.info("Share %s revoked", share.id)
    return True
