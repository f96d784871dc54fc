"""
Public Endpoints Module

Anonymous page views and the access-token exchange. These routes sit outside
the CSRF gate: the page is public and the access token is the credential.
"""
import logging
from typing import Any, Optional
from fastapi import APIRouter, Body, Depends, HTTPException
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, select

from edfolio.api import deps
from edfolio.db.session import get_db
from edfolio.models.published_page import PublishedPage
from edfolio.models.user import User
from edfolio.schemas.public import AccessRequest, AccessResponse, PublicPage
from edfolio.services.access_tokens import INVALID_TOKEN, verify_access_token
from edfolio.services.authorization import TOKEN_PAGE_MISMATCH, grant_token_access
from edfolio.services.publication import extract_excerpt

logger = logging.getLogger(__name__)

router = APIRouter()


def _get_page_by_slug(db: Session, slug: str) -> Optional[PublishedPage]:
    return db.exec(select(PublishedPage).where(PublishedPage.slug == slug)).first()


def _public_page(page: PublishedPage) -> PublicPage:
    note = page.note
    owner = note.folio.owner if note.folio else None
    return PublicPage(
        id=page.id,
        slug=page.slug,
        title=note.title,
        content=note.content,
        excerpt=extract_excerpt(note.content),
        author_name=owner.display_name if owner else None,
        published_at=page.published_at,
        last_updated=page.last_updated,
    )


@router.get("/{slug}", response_model=PublicPage)
def read_public_page(slug: str, db: Session = Depends(get_db)):
    """
    Get a published page by slug.

    Raises:
        HTTPException 404: If no page has this slug or it is unpublished
    """
    page = _get_page_by_slug(db, slug)
    if page is None or not page.is_published:
        raise HTTPException(status_code=404, detail="Page not found")
    return _public_page(page)


@router.post("/{slug}/access", response_model=AccessResponse)
def exchange_access_token(
    slug: str,
    payload: Any = Body(default=None),
    db: Session = Depends(get_db),
    current_user: Optional[User] = Depends(deps.get_optional_user),
):
    """
    Exchange a share access token for the page and the caller's access level.

    Always answers 200; a rejected token is reported through valid/error.
    A signed-in caller with a valid token becomes a collaborator on the page.
    """
    body = AccessRequest.from_payload(payload)
    if body.access_token is None or body.access_token == "":
        return AccessResponse(valid=False, error="Access token is required")
    if not isinstance(body.access_token, str):
        return AccessResponse(valid=False, error=INVALID_TOKEN)

    try:
        verification = verify_access_token(db, body.access_token)
        if not verification.valid:
            return AccessResponse(valid=False, error=verification.error)

        page = _get_page_by_slug(db, slug)
        if page is None:
            return AccessResponse(valid=False, error="Page not found")

        share = verification.share
        if share.page_id != page.id:
            return AccessResponse(valid=False, error=TOKEN_PAGE_MISMATCH)

        access = grant_token_access(db, share, current_user)
        return AccessResponse(
            valid=True,
            permission=share.permission,
            access_level=access.level.value,
            page=_public_page(page),
        )
    except SQLAlchemyError:
        db.rollback()
        logger.exception("Access token exchange failed for page %s", slug)
        return AccessResponse(valid=False, error="Failed to verify access token")
