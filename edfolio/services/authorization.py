"""
Note access resolution.

Every note read, note write and share-management endpoint resolves the
caller's access through `resolve_note_access`, so the answer for a given
(user, note) pair is the same everywhere:

    owner         folio owner, full control
    editor        collaborator with the editor role, read + write
    viewer        collaborator with the viewer role, read only
    token_bearer  anonymous caller holding a valid access token, read only
    none          no grant; callers answer 404
"""
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from sqlalchemy.dialects import mysql, postgresql, sqlite
from sqlmodel import Session, select

from edfolio.core.time import utcnow
from edfolio.models.note import Note
from edfolio.models.page_collaborator import CollaboratorRole, PageCollaborator
from edfolio.models.page_share import PageShare
from edfolio.models.published_page import PublishedPage
from edfolio.models.user import User
from edfolio.services.access_tokens import verify_access_token

logger = logging.getLogger(__name__)

TOKEN_PAGE_MISMATCH = "Access token does not match this page"


class AccessLevel(str, Enum):
    OWNER = "owner"
    EDITOR = "editor"
    VIEWER = "viewer"
    TOKEN_BEARER = "token_bearer"
    NONE = "none"


@dataclass
class NoteAccess:
    level: AccessLevel
    collaborator: Optional[PageCollaborator] = None
    share: Optional[PageShare] = None
    token_error: Optional[str] = None

    @property
    def is_owner(self) -> bool:
        return self.level == AccessLevel.OWNER

    @property
    def can_read(self) -> bool:
        return self.level != AccessLevel.NONE

    @property
    def can_edit(self) -> bool:
        return self.level in (AccessLevel.OWNER, AccessLevel.EDITOR)

    @property
    def collaborator_role(self) -> Optional[str]:
        return self.collaborator.role if self.collaborator else None


def _level_for_role(role: str) -> AccessLevel:
    if role == CollaboratorRole.EDITOR.value:
        return AccessLevel.EDITOR
    return AccessLevel.VIEWER


def find_collaborator(db: Session, note: Note, user_id: str) -> Optional[PageCollaborator]:
    """
    Look up the user's collaborator row for a note.

    The current published page is tried first; a second lookup joins through
    published_pages.note_id so a grant is still found if the note's page
    identity has drifted since the row was written. Neither lookup cares
    whether the page is currently published.
    """
    page = note.published_page
    if page is not None:
        collaborator = db.exec(
            select(PageCollaborator).where(
                PageCollaborator.page_id == page.id,
                PageCollaborator.user_id == user_id,
            )
        ).first()
        if collaborator is not None:
            return collaborator

    return db.exec(
        select(PageCollaborator)
        .join(PublishedPage, PublishedPage.id == PageCollaborator.page_id)
        .where(PublishedPage.note_id == note.id, PageCollaborator.user_id == user_id)
    ).first()


def upsert_collaborator(
    db: Session,
    page_id: int,
    user_id: str,
    share: PageShare,
    *,
    update_role: bool = False,
) -> None:
    """
    Insert or refresh the (page, user) collaborator row in one statement.

    A new row takes its role from the share's permission. On conflict only
    share_id is rewritten, so re-using an older read token never downgrades
    an editor; owner-driven callers pass update_role=True to rewrite the role
    as well. The caller commits.
    """
    role = CollaboratorRole.for_permission(share.permission).value
    values = {
        "page_id": page_id,
        "user_id": user_id,
        "share_id": share.id,
        "role": role,
        "created_at": utcnow(),
    }
    table = PageCollaborator.__table__
    dialect = db.get_bind().dialect.name

    if dialect == "mysql":
        stmt = mysql.insert(table).values(**values)
        updates = {"share_id": stmt.inserted.share_id}
        if update_role:
            updates["role"] = stmt.inserted.role
        db.exec(stmt.on_duplicate_key_update(**updates))
        return

    if dialect in ("postgresql", "sqlite"):
        insert = postgresql.insert if dialect == "postgresql" else sqlite.insert
        stmt = insert(table).values(**values)
        updates = {"share_id": stmt.excluded.share_id}
        if update_role:
            updates["role"] = stmt.excluded.role
        db.exec(stmt.on_conflict_do_update(index_elements=["page_id", "user_id"], set_=updates))
        return

    # No native upsert; the unique constraint still rejects a racing duplicate.
    logger.debug("Dialect %s has no upsert, falling back to select-then-write", dialect)
    existing = db.exec(
        select(PageCollaborator).where(
            PageCollaborator.page_id == page_id,
            PageCollaborator.user_id == user_id,
        )
    ).first()
    if existing is None:
        db.add(PageCollaborator(**values))
    else:
        existing.share_id = share.id
        if update_role:
            existing.role = role
        db.add(existing)
    db.flush()


def resolve_note_access(
    db: Session,
    note: Note,
    user: Optional[User],
    access_token: Optional[str] = None,
) -> NoteAccess:
    """
    Resolve the caller's access level for a note.

    Order: ownership, then an existing collaborator row, then the bearer
    token. A valid token held by a signed-in user is turned into a durable
    collaborator grant; held by an anonymous caller it only allows reading.
    """
    if user is not None and note.owner_id == user.id:
        return NoteAccess(level=AccessLevel.OWNER)

    if user is not None:
        collaborator = find_collaborator(db, note, user.id)
        if collaborator is not None:
            return NoteAccess(level=_level_for_role(collaborator.role), collaborator=collaborator)

    if not access_token:
        return NoteAccess(level=AccessLevel.NONE)

    verification = verify_access_token(db, access_token)
    if not verification.valid:
        return NoteAccess(level=AccessLevel.NONE, token_error=verification.error)

    share = verification.share
    if share.page.note_id != note.id:
        return NoteAccess(level=AccessLevel.NONE, token_error=TOKEN_PAGE_MISMATCH)

    return grant_token_access(db, share, user)


def grant_token_access(db: Session, share: PageShare, user: Optional[User]) -> NoteAccess:
    """
    Turn a verified share into an access level for the caller.

    An anonymous caller is a read-only token bearer. A signed-in caller gets
    a collaborator row upserted for (page, user), which is what makes the
    grant durable and revocable.
    """
    if user is None:
        return NoteAccess(level=AccessLevel.TOKEN_BEARER, share=share)

    page = share.page
    if page.owner_id == user.id:
        return NoteAccess(level=AccessLevel.OWNER, share=share)

    page_id = page.id
    user_id = user.id
    upsert_collaborator(db, page_id, user_id, share)
    db.commit()
    collaborator = db.exec(
        select(PageCollaborator).where(
            PageCollaborator.page_id == page_id,
            PageCollaborator.user_id == user_id,
        )
    ).one()
    logger.info("User %s granted %s access to page %s via share %s", user_id, collaborator.role, page_id, share.id)
    return NoteAccess(level=_level_for_role(collaborator.role), collaborator=collaborator, share=share)
