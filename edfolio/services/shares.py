"""
Share management for published pages.

Only the owner of a page's folio may invite, update, revoke or list shares.
Notifications go out after the database work has been committed and their
failure never rolls it back.
"""
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional, Union

from sqlalchemy import delete, update
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select

from edfolio.models.folio import Folio
from edfolio.models.note import Note
from edfolio.models.page_collaborator import CollaboratorRole, PageCollaborator
from edfolio.models.page_share import PageShare, SharePermission, ShareStatus
from edfolio.models.published_page import PublishedPage
from edfolio.models.user import User
from edfolio.services.access_tokens import (
    AccessTokenError,
    NotPageOwnerError,
    ShareNotFoundError,
    generate_access_token,
)
from edfolio.services.authorization import upsert_collaborator
from edfolio.services.notifications import Notifier

logger = logging.getLogger(__name__)

MAX_SHARE_INSERT_ATTEMPTS = 3


class ShareError(Exception):
    """Base class for share management failures; the message is user-facing."""


class PageNotPublishedError(ShareError):
    def __init__(self):
        super().__init__("Page must be published before sharing")


class DuplicateShareError(ShareError):
    def __init__(self):
        super().__init__("This email already has access to this page")


class NothingToUpdateError(ShareError):
    def __init__(self):
        super().__init__("No fields to update")


@dataclass
class CreatedShare:
    share: PageShare
    access_link: str


@dataclass
class SharedPage:
    """A page shared with the current user, as shown in "Shared with me"."""
    id: int
    page_id: int
    note_id: int
    page_title: str
    slug: str
    is_published: bool
    sharer_name: str
    sharer_email: str
    permission: str
    last_accessed_at: Optional[datetime]
    shared_at: datetime


def _permission_value(permission: Union[SharePermission, str]) -> str:
    return SharePermission(permission).value


def build_access_link(base_url: str, page: PublishedPage, token: str) -> str:
    return f"{base_url.rstrip('/')}/public/{page.slug}?token={token}"


def build_page_link(base_url: str, page: PublishedPage) -> str:
    return f"{base_url.rstrip('/')}{page.public_url}"


def ensure_page_owner(page: PublishedPage, requester_id: str) -> None:
    if page.owner_id != requester_id:
        raise NotPageOwnerError()


def get_share_for_page(db: Session, page_id: int, share_id: int) -> PageShare:
    share = db.get(PageShare, share_id)
    if share is None or share.page_id != page_id:
        raise ShareNotFoundError()
    return share


def has_active_share(db: Session, page_id: int, email: str) -> bool:
    return db.exec(
        select(PageShare.id).where(
            PageShare.page_id == page_id,
            PageShare.active_email == email,
        )
    ).first() is not None


def delete_share_collaborators(db: Session, share: PageShare) -> None:
    db.exec(
        delete(PageCollaborator).where(
            PageCollaborator.page_id == share.page_id,
            PageCollaborator.share_id == share.id,
        )
    )


def create_share(
    db: Session,
    page: PublishedPage,
    requester: User,
    invited_email: str,
    permission: Union[SharePermission, str],
    expires_at: Optional[datetime] = None,
    *,
    notifier: Notifier,
    base_url: str,
) -> CreatedShare:
    """
    Invite an email address to a published page.

    Steps run in order: duplicate check, token issue, share insert,
    collaborator creation (only when an account already exists for the
    email), then the invitation email carrying the access link.

    Raises:
        NotPageOwnerError: requester does not own the page
        PageNotPublishedError: the page is unpublished
        DuplicateShareError: an active share exists for this email
        AccessTokenError: no unique token could be stored
    """
    ensure_page_owner(page, requester.id)
    if not page.is_published:
        raise PageNotPublishedError()

    email = invited_email.strip().lower()
    permission = _permission_value(permission)
    page_id = page.id
    page_title = page.note.title
    sender_name = requester.display_name

    if has_active_share(db, page_id, email):
        raise DuplicateShareError()

    share = None
    for attempt in range(1, MAX_SHARE_INSERT_ATTEMPTS + 1):
        share = PageShare(
            page_id=page_id,
            invited_email=email,
            invited_by=requester.id,
            permission=permission,
            access_token=generate_access_token(db),
            expires_at=expires_at,
        )
        share.mark_active()
        db.add(share)
        try:
            db.flush()
        except IntegrityError:
            db.rollback()
            if has_active_share(db, page_id, email):
                raise DuplicateShareError()
            logger.warning("Share insert for page %s collided on access token (attempt %d)", page_id, attempt)
            share = None
            continue
        break

    if share is None:
        raise AccessTokenError("Failed to generate unique access token")

    account = db.exec(select(User).where(User.email == email)).first()
    if account is not None:
        upsert_collaborator(db, page_id, account.id, share, update_role=True)

    db.commit()
    db.refresh(share)
    logger.info(
        "Share %s created for page %s (permission=%s, existing_account=%s)",
        share.id, page_id, permission, account is not None,
    )

    access_link = build_access_link(base_url, page, share.access_token)
    notifier.send_share_invitation(
        to_email=email,
        from_user_name=sender_name,
        page_title=page_title,
        access_link=access_link,
        permission=permission,
        expires_at=share.expires_at,
    )
    return CreatedShare(share=share, access_link=access_link)


def update_share(
    db: Session,
    share: PageShare,
    requester: User,
    *,
    permission: Optional[Union[SharePermission, str]] = None,
    status: Optional[Union[ShareStatus, str]] = None,
    notifier: Notifier,
    base_url: str,
) -> PageShare:
    """
    Change a share's permission and/or status.

    A permission change is mirrored onto the share's collaborator row and
    notified only when the value actually differs. Moving an active share to
    revoked deletes its collaborator rows and notifies the invitee; revoking
    a revoked share changes nothing. Moving a revoked share back to active
    reactivates it without recreating collaborators.

    Raises:
        NothingToUpdateError: neither field supplied
        NotPageOwnerError: requester does not own the page
        DuplicateShareError: reactivation would create a second active share
    """
    if permission is None and status is None:
        raise NothingToUpdateError()

    page = share.page
    ensure_page_owner(page, requester.id)

    page_title = page.note.title
    page_link = build_page_link(base_url, page)
    email = share.invited_email
    permission_change = None
    revoked = False

    if permission is not None:
        new_permission = _permission_value(permission)
        if new_permission != share.permission:
            permission_change = (share.permission, new_permission)
            share.permission = new_permission
            db.exec(
                update(PageCollaborator)
                .where(PageCollaborator.share_id == share.id)
                .values(role=CollaboratorRole.for_permission(new_permission).value)
            )

    if status is not None:
        new_status = ShareStatus(status)
        if new_status == ShareStatus.REVOKED and share.is_active:
            share.mark_revoked()
            delete_share_collaborators(db, share)
            revoked = True
        elif new_status == ShareStatus.ACTIVE and not share.is_active:
            if has_active_share(db, share.page_id, email):
                raise DuplicateShareError()
            share.mark_active()

    db.add(share)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise DuplicateShareError()
    db.refresh(share)

    if permission_change is not None:
        old_permission, new_permission = permission_change
        logger.info("Share %s permission %s -> %s", share.id, old_permission, new_permission)
        notifier.send_permission_changed(
            to_email=email,
            page_title=page_title,
            old_permission=old_permission,
            new_permission=new_permission,
            page_link=page_link,
        )
    if revoked:
        logger.info("Share %s revoked by owner", share.id)
        notifier.send_access_revoked(to_email=email, page_title=page_title, revoked_by=requester.display_name)
    return share


def revoke_share(db: Session, share: PageShare, requester: User, *, notifier: Notifier) -> bool:
    """
    Revoke a share, remove its collaborator rows and notify the invitee.

    Returns:
        bool: False when the share was already revoked (nothing sent)
    """
    page = share.page
    ensure_page_owner(page, requester.id)
    if not share.is_active:
        return False

    page_title = page.note.title
    email = share.invited_email
    share.mark_revoked()
    delete_share_collaborators(db, share)
    db.add(share)
    db.commit()
    logger.info("Share %s revoked by owner", share.id)

    notifier.send_access_revoked(to_email=email, page_title=page_title, revoked_by=requester.display_name)
    return True


def list_shares(db: Session, page: PublishedPage, requester: User) -> List[PageShare]:
    """All shares of a page, newest first."""
    ensure_page_owner(page, requester.id)
    return list(
        db.exec(
            select(PageShare)
            .where(PageShare.page_id == page.id)
            .order_by(PageShare.created_at.desc(), PageShare.id.desc())
        ).all()
    )


def list_shared_with_user(db: Session, user: User) -> List[SharedPage]:
    rows = db.exec(
        select(PageCollaborator, PublishedPage, Note, User)
        .join(PublishedPage, PublishedPage.id == PageCollaborator.page_id)
        .join(Note, Note.id == PublishedPage.note_id)
        .join(Folio, Folio.id == Note.folio_id)
        .join(User, User.id == Folio.owner_id)
        .where(PageCollaborator.user_id == user.id)
        .order_by(PageCollaborator.created_at.desc(), PageCollaborator.id.desc())
    ).all()

    shared = []
    for collaborator, page, note, owner in rows:
        share = collaborator.share
        shared.append(
            SharedPage(
                id=collaborator.id,
                page_id=page.id,
                note_id=note.id,
                page_title=note.title,
                slug=page.slug,
                is_published=page.is_published,
                sharer_name=owner.display_name,
                sharer_email=owner.email,
                permission=share.permission if share else (
                    SharePermission.EDIT.value if collaborator.can_edit else SharePermission.READ.value
                ),
                last_accessed_at=(share.last_accessed_at if share else None) or collaborator.created_at,
                shared_at=collaborator.created_at,
            )
        )
    return shared
