"""
Note Endpoints Module

CRUD endpoints for notes. Every handler resolves the caller's access through
the shared authorization resolver: owners and editors may write, viewers and
token bearers may only read, and anyone else gets a 404.
"""
import logging
from typing import List, Optional
from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlmodel import Session, select

from edfolio.api import deps
from edfolio.core.time import to_utc, utcnow
from edfolio.db.session import get_db
from edfolio.models.folio import DEFAULT_FOLIO_NAME, Folder, Folio
from edfolio.models.note import Note
from edfolio.models.page_collaborator import PageCollaborator
from edfolio.models.published_page import PublishedPage
from edfolio.models.user import User
from edfolio.schemas.note import (
    NoteAccessMeta,
    NoteCloned,
    NoteCloneRequest,
    NoteCloneResult,
    NoteCreate,
    NoteDetail,
    NoteRead,
    NoteUpdate,
)
from edfolio.services.authorization import NoteAccess

logger = logging.getLogger(__name__)

router = APIRouter()


def _detail(note: Note, access: NoteAccess) -> NoteDetail:
    return NoteDetail(
        data=NoteRead.model_validate(note),
        meta=NoteAccessMeta(
            access_level=access.level.value,
            is_owner=access.is_owner,
            collaborator_role=access.collaborator_role,
            can_edit=access.can_edit,
        ),
    )


def _default_folio(db: Session, user: User) -> Folio:
    folio = db.exec(
        select(Folio).where(Folio.owner_id == user.id).order_by(Folio.created_at, Folio.id)
    ).first()
    if folio is None:
        folio = Folio(name=DEFAULT_FOLIO_NAME, owner_id=user.id)
        db.add(folio)
        db.flush()
    return folio


@router.get("", response_model=List[NoteRead])
def list_notes(
    folio_id: Optional[int] = None,
    skip: int = 0,
    limit: int = Query(default=100, le=500),
    db: Session = Depends(get_db),
    current_user: User = Depends(deps.get_current_active_user),
):
    """
    List the notes the current user can open: their own notes plus notes
    shared with them as a collaborator. Most recently updated first.
    """
    owned = select(Note).join(Folio, Folio.id == Note.folio_id).where(Folio.owner_id == current_user.id)
    if folio_id is not None:
        owned = owned.where(Note.folio_id == folio_id)
    notes = {note.id: note for note in db.exec(owned).all()}

    if folio_id is None:
        shared = (
            select(Note)
            .join(PublishedPage, PublishedPage.note_id == Note.id)
            .join(PageCollaborator, PageCollaborator.page_id == PublishedPage.id)
            .where(PageCollaborator.user_id == current_user.id)
        )
        for note in db.exec(shared).all():
            notes.setdefault(note.id, note)

    ordered = sorted(notes.values(), key=lambda n: (to_utc(n.updated_at), n.id), reverse=True)
    return ordered[skip:skip + limit]


@router.post("", response_model=NoteRead, status_code=status.HTTP_201_CREATED)
def create_note(
    note_in: NoteCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(deps.get_current_active_user),
):
    """
    Create a note in one of the current user's folios (their first folio by default).

    Raises:
        HTTPException 404: If the folio does not belong to the user
        HTTPException 400: If the folder is not in that folio
    """
    if note_in.folio_id is None:
        folio = _default_folio(db, current_user)
    else:
        folio = db.get(Folio, note_in.folio_id)
        if folio is None or folio.owner_id != current_user.id:
            raise HTTPException(status_code=404, detail="Folio not found")

    if note_in.folder_id is not None:
        folder = db.get(Folder, note_in.folder_id)
        if folder is None or folder.folio_id != folio.id:
            raise HTTPException(status_code=400, detail="Folder does not belong to this folio")

    note = Note(
        title=note_in.title,
        content=note_in.content,
        folio_id=folio.id,
        folder_id=note_in.folder_id,
    )
    db.add(note)
    db.commit()
    db.refresh(note)
    return note


@router.get("/{note_id}", response_model=NoteDetail)
def read_note(
    note_id: int,
    token: Optional[str] = None,
    db: Session = Depends(get_db),
    current_user: Optional[User] = Depends(deps.get_optional_user),
):
    """
    Get a note together with how the caller may use it.

    A share access token may be passed as ?token=; for a signed-in caller it
    turns into a collaborator grant, for an anonymous one it allows reading.

    Raises:
        HTTPException 404: If the note doesn't exist or the caller has no access
    """
    note, access = deps.get_note_access(db, note_id, current_user, token)
    return _detail(note, access)


@router.patch("/{note_id}", response_model=NoteDetail)
def update_note(
    note_id: int,
    note_update: NoteUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(deps.get_current_active_user),
):
    """
    Update a note's title and/or content. Owners and editors only.

    Raises:
        HTTPException 404: If the note doesn't exist or the caller has no access
        HTTPException 403: If the caller may read but not edit
    """
    note, access = deps.get_note_access(db, note_id, current_user)
    if not access.can_edit:
        raise HTTPException(status_code=403, detail="You don't have permission to edit this note")

    changes = note_update.model_dump(exclude_unset=True)
    if changes.get("title") is None:
        changes.pop("title", None)
    for key, value in changes.items():
        setattr(note, key, value)

    now = utcnow()
    note.updated_at = now
    page = note.published_page
    if page is not None:
        page.last_updated = now
        db.add(page)
    if access.collaborator is not None:
        access.collaborator.last_edited_at = now
        db.add(access.collaborator)

    db.add(note)
    db.commit()
    db.refresh(note)
    return _detail(note, access)


def _copy_title(db: Session, title: str, folio_id: int, folder_id: Optional[int]) -> str:
    """First free "Title (Copy)" or "Title (Copy N)" in the destination folder."""
    candidate = f"{title} (Copy)"
    counter = 2
    while db.exec(
        select(Note.id).where(
            Note.folio_id == folio_id,
            Note.folder_id == folder_id,
            Note.title == candidate,
        )
    ).first() is not None:
        candidate = f"{title} (Copy {counter})"
        counter += 1
    return candidate


@router.post("/{note_id}/clone", response_model=NoteCloned, status_code=status.HTTP_201_CREATED)
def clone_note(
    note_id: int,
    clone_in: NoteCloneRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(deps.get_current_active_user),
):
    """
    Copy a note into the current user's default folio.

    Anyone who can read the note may clone it: the owner, a collaborator, or
    the holder of a valid share access token. The copy is never published.

    Raises:
        HTTPException 404: If the note doesn't exist or the caller has no access
        HTTPException 400: If the target folder is not in the caller's default folio
    """
    note, _ = deps.get_note_access(db, note_id, current_user, clone_in.access_token)
    folio = _default_folio(db, current_user)

    if "target_folder_id" in clone_in.model_fields_set:
        folder_id = clone_in.target_folder_id
    elif note.folio_id == folio.id:
        folder_id = note.folder_id
    else:
        folder_id = None

    if folder_id is not None:
        folder = db.get(Folder, folder_id)
        if folder is None or folder.folio_id != folio.id:
            raise HTTPException(status_code=400, detail="Folder does not belong to this folio")

    clone = Note(
        title=_copy_title(db, note.title, folio.id, folder_id),
        content=note.content,
        folio_id=folio.id,
        folder_id=folder_id,
    )
    db.add(clone)
    db.commit()
    db.refresh(clone)
    logger.info("Note %s cloned to %s by %s", note_id, clone.id, current_user.id)
    return NoteCloned(
        data=NoteCloneResult(note_id=clone.id, title=clone.title, redirect_url=f"/editor/{clone.id}")
    )


@router.delete("/{note_id}")
def delete_note(
    note_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(deps.get_current_active_user),
):
    """
    Delete a note together with its published page, shares and collaborators.

    Raises:
        HTTPException 404: If the note doesn't exist or the caller has no access
        HTTPException 403: If the caller is not the owner
    """
    note, access = deps.get_note_access(db, note_id, current_user)
    if not access.is_owner:
        raise HTTPException(status_code=403, detail="You don't have permission to delete this note")

    db.delete(note)
    db.commit()
    logger.info("Note %s deleted by %s", note_id, current_user.id)
    return {"ok": True}
