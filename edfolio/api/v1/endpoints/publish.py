"""
Publish Endpoints Module

Publish, unpublish and publication status for a note. Only the folio owner
may change or inspect a note's publication; collaborators get a 403 and
everyone else a 404.
"""
from fastapi import APIRouter, Depends, HTTPException
from sqlmodel import Session

from edfolio.api import deps
from edfolio.db.session import get_db
from edfolio.models.user import User
from edfolio.schemas.publication import PublicationStatusRead, PublishResult, UnpublishResult
from edfolio.services.publication import (
    AlreadyPublishedError,
    AlreadyUnpublishedError,
    NotNoteOwnerError,
    NotPublishedError,
    get_publication_status,
    publish_note,
    unpublish_note,
)
from edfolio.services.slugs import SlugError

router = APIRouter()


@router.post("/{note_id}/publish", response_model=PublishResult)
def publish(
    note_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(deps.get_current_active_user),
):
    """
    Publish a note as a public page.

    Raises:
        HTTPException 404: If the note doesn't exist or the caller has no access
        HTTPException 403: If the caller is not the owner
        HTTPException 409: If the note is already published (detail carries its URL)
        HTTPException 400: If the title maps to a reserved slug or no unique URL was found
    """
    note, _ = deps.get_note_access(db, note_id, current_user)
    try:
        page = publish_note(db, note, current_user.id)
    except NotNoteOwnerError as exc:
        raise HTTPException(status_code=403, detail=str(exc))
    except AlreadyPublishedError as exc:
        raise HTTPException(
            status_code=409,
            detail={
                "message": str(exc),
                "slug": exc.page.slug,
                "public_url": exc.page.public_url,
            },
        )
    except SlugError as exc:
        raise HTTPException(status_code=400, detail=str(exc))

    return PublishResult(slug=page.slug, short_id=page.short_id, public_url=page.public_url)


@router.delete("/{note_id}/publish", response_model=UnpublishResult)
def unpublish(
    note_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(deps.get_current_active_user),
):
    """
    Unpublish a note. The page row and its URL are kept for a later republish.

    Raises:
        HTTPException 404: If the note is missing, was never published or is already unpublished
        HTTPException 403: If the caller is not the owner
    """
    note, _ = deps.get_note_access(db, note_id, current_user)
    try:
        unpublish_note(db, note, current_user.id)
    except NotNoteOwnerError as exc:
        raise HTTPException(status_code=403, detail=str(exc))
    except (NotPublishedError, AlreadyUnpublishedError) as exc:
        raise HTTPException(status_code=404, detail=str(exc))
    return UnpublishResult()


@router.get("/{note_id}/publish/status", response_model=PublicationStatusRead)
def publication_status(
    note_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(deps.get_current_active_user),
):
    note, _ = deps.get_note_access(db, note_id, current_user)
    try:
        result = get_publication_status(db, note, current_user.id)
    except NotNoteOwnerError as exc:
        raise HTTPException(status_code=403, detail=str(exc))

    page = result.page
    if page is None:
        return PublicationStatusRead(is_published=False)
    return PublicationStatusRead(
        is_published=result.is_published,
        page_id=page.id,
        slug=page.slug,
        short_id=page.short_id,
        public_url=page.public_url,
        published_at=page.published_at,
    )
