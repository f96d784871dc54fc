"""
Page Share Endpoints Module

Share management addressed by published page id. The note-addressed routes
in note_shares resolve the note's page and reuse the handlers below, so both
surfaces answer identically.
"""
from typing import List
from fastapi import APIRouter, Depends, HTTPException, status
from sqlmodel import Session

from edfolio.api import deps
from edfolio.db.session import get_db
from edfolio.models.published_page import PublishedPage
from edfolio.models.user import User
from edfolio.schemas.share import ShareCreate, ShareCreated, ShareRead, ShareRevoked, ShareUpdate
from edfolio.services.access_tokens import AccessTokenError, NotPageOwnerError, ShareNotFoundError
from edfolio.services.authorization import resolve_note_access
from edfolio.services.notifications import Notifier
from edfolio.services.shares import (
    DuplicateShareError,
    NothingToUpdateError,
    PageNotPublishedError,
    create_share,
    get_share_for_page,
    list_shares,
    revoke_share,
    update_share,
)

router = APIRouter()


def share_http_error(exc: Exception) -> HTTPException:
    """Map a share-management failure to its HTTP status."""
    if isinstance(exc, ShareNotFoundError):
        return HTTPException(status_code=404, detail=str(exc))
    if isinstance(exc, NotPageOwnerError):
        return HTTPException(status_code=403, detail=str(exc))
    if isinstance(exc, DuplicateShareError):
        return HTTPException(status_code=409, detail=str(exc))
    return HTTPException(status_code=400, detail=str(exc))


SHARE_ERRORS = (
    ShareNotFoundError,
    NotPageOwnerError,
    DuplicateShareError,
    NothingToUpdateError,
    PageNotPublishedError,
    AccessTokenError,
)


def get_owned_page(db: Session, page_id: int, user: User) -> PublishedPage:
    """
    Load a page the user owns.

    Raises:
        HTTPException 404: If the page doesn't exist or the user has no access to its note
        HTTPException 403: If the user can read the note but does not own it
    """
    page = db.get(PublishedPage, page_id)
    if page is None:
        raise HTTPException(status_code=404, detail="Page not found")
    access = resolve_note_access(db, page.note, user)
    if not access.can_read:
        raise HTTPException(status_code=404, detail="Page not found")
    if not access.is_owner:
        raise share_http_error(NotPageOwnerError())
    return page


def list_page_shares(db: Session, page: PublishedPage, user: User) -> List[ShareRead]:
    try:
        shares = list_shares(db, page, user)
    except SHARE_ERRORS as exc:
        raise share_http_error(exc)
    return [ShareRead.model_validate(share) for share in shares]


def create_page_share(
    db: Session,
    page: PublishedPage,
    user: User,
    share_in: ShareCreate,
    notifier: Notifier,
    base_url: str,
) -> ShareCreated:
    try:
        created = create_share(
            db,
            page,
            user,
            share_in.invited_email,
            share_in.permission,
            share_in.expires_at,
            notifier=notifier,
            base_url=base_url,
        )
    except SHARE_ERRORS as exc:
        raise share_http_error(exc)

    share = created.share
    return ShareCreated(
        id=share.id,
        invited_email=share.invited_email,
        permission=share.permission,
        status=share.status,
        expires_at=share.expires_at,
        access_link=created.access_link,
    )


def update_page_share(
    db: Session,
    page: PublishedPage,
    share_id: int,
    user: User,
    share_in: ShareUpdate,
    notifier: Notifier,
    base_url: str,
) -> ShareRead:
    try:
        share = get_share_for_page(db, page.id, share_id)
        share = update_share(
            db,
            share,
            user,
            permission=share_in.permission,
            status=share_in.status,
            notifier=notifier,
            base_url=base_url,
        )
    except SHARE_ERRORS as exc:
        raise share_http_error(exc)
    return ShareRead.model_validate(share)


def revoke_page_share(
    db: Session,
    page: PublishedPage,
    share_id: int,
    user: User,
    notifier: Notifier,
) -> ShareRevoked:
    try:
        share = get_share_for_page(db, page.id, share_id)
        revoked = revoke_share(db, share, user, notifier=notifier)
    except SHARE_ERRORS as exc:
        raise share_http_error(exc)
    if not revoked:
        return ShareRevoked(message="Share was already revoked")
    return ShareRevoked()


@router.get("/{page_id}/shares", response_model=List[ShareRead])
def list_shares_for_page(
    page_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(deps.get_current_active_user),
):
    """List a page's shares, newest first. Access tokens are never included."""
    page = get_owned_page(db, page_id, current_user)
    return list_page_shares(db, page, current_user)


@router.post("/{page_id}/shares", response_model=ShareCreated, status_code=status.HTTP_201_CREATED)
def create_share_for_page(
    page_id: int,
    share_in: ShareCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(deps.get_current_active_user),
    notifier: Notifier = Depends(deps.get_notifier),
    base_url: str = Depends(deps.get_base_url),
):
    """
    Invite an email address to a published page.

    Raises:
        HTTPException 400: If the page is unpublished
        HTTPException 403: If the caller is not the owner
        HTTPException 409: If the email already has an active share
    """
    page = get_owned_page(db, page_id, current_user)
    return create_page_share(db, page, current_user, share_in, notifier, base_url)


@router.patch("/{page_id}/shares/{share_id}", response_model=ShareRead)
def update_share_for_page(
    page_id: int,
    share_id: int,
    share_in: ShareUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(deps.get_current_active_user),
    notifier: Notifier = Depends(deps.get_notifier),
    base_url: str = Depends(deps.get_base_url),
):
    page = get_owned_page(db, page_id, current_user)
    return update_page_share(db, page, share_id, current_user, share_in, notifier, base_url)


@router.delete("/{page_id}/shares/{share_id}", response_model=ShareRevoked)
def revoke_share_for_page(
    page_id: int,
    share_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(deps.get_current_active_user),
    notifier: Notifier = Depends(deps.get_notifier),
):
    page = get_owned_page(db, page_id, current_user)
    return revoke_page_share(db, page, share_id, current_user, notifier)
