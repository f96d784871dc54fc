"""
Note Share Endpoints Module

Share management addressed by note id. The note's published page is looked
up here and the page-share handlers do the rest.
"""
from typing import List
from fastapi import APIRouter, Depends, HTTPException, status
from sqlmodel import Session

from edfolio.api import deps
from edfolio.api.v1.endpoints.page_shares import (
    create_page_share,
    list_page_shares,
    revoke_page_share,
    share_http_error,
    update_page_share,
)
from edfolio.db.session import get_db
from edfolio.models.published_page import PublishedPage
from edfolio.models.user import User
from edfolio.schemas.share import ShareCreate, ShareCreated, ShareRead, ShareRevoked, ShareUpdate
from edfolio.services.access_tokens import NotPageOwnerError
from edfolio.services.notifications import Notifier
from edfolio.services.shares import PageNotPublishedError

router = APIRouter()


def get_owned_note_page(db: Session, note_id: int, user: User, missing: Exception) -> PublishedPage:
    note, access = deps.get_note_access(db, note_id, user)
    if not access.is_owner:
        raise share_http_error(NotPageOwnerError())
    page = note.published_page
    if page is None:
        raise missing
    return page


@router.get("/{note_id}/shares", response_model=List[ShareRead])
def list_shares_for_note(
    note_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(deps.get_current_active_user),
):
    page = get_owned_note_page(
        db, note_id, current_user, HTTPException(status_code=404, detail="Note is not published")
    )
    return list_page_shares(db, page, current_user)


@router.post("/{note_id}/shares", response_model=ShareCreated, status_code=status.HTTP_201_CREATED)
def create_share_for_note(
    note_id: int,
    share_in: ShareCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(deps.get_current_active_user),
    notifier: Notifier = Depends(deps.get_notifier),
    base_url: str = Depends(deps.get_base_url),
):
    """
    Invite an email address to the note's published page.

    Raises:
        HTTPException 404: If the note doesn't exist or the caller has no access
        HTTPException 403: If the caller is not the owner
        HTTPException 400: If the note is not published
        HTTPException 409: If the email already has an active share
    """
    page = get_owned_note_page(db, note_id, current_user, share_http_error(PageNotPublishedError()))
    return create_page_share(db, page, current_user, share_in, notifier, base_url)


@router.patch("/{note_id}/shares/{share_id}", response_model=ShareRead)
def update_share_for_note(
    note_id: int,
    share_id: int,
    share_in: ShareUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(deps.get_current_active_user),
    notifier: Notifier = Depends(deps.get_notifier),
    base_url: str = Depends(deps.get_base_url),
):
    page = get_owned_note_page(db, note_id, current_user, HTTPException(status_code=404, detail="Share not found"))
    return update_page_share(db, page, share_id, current_user, share_in, notifier, base_url)


@router.delete("/{note_id}/shares/{share_id}", response_model=ShareRevoked)
def revoke_share_for_note(
    note_id: int,
    share_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(deps.get_current_active_user),
    notifier: Notifier = Depends(deps.get_notifier),
):
    page = get_owned_note_page(db, note_id, current_user, HTTPException(status_code=404, detail="Share not found"))
    return revoke_page_share(db, page, share_id, current_user, notifier)
