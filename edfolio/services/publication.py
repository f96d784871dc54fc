"""
Publish / unpublish lifecycle for notes.

A note is unpublished when it has no PublishedPage row or its row has
is_published = False. Unpublishing is a soft delete: the row, slug and
short id stay so a later publish hands the same short id back.
"""
import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select

from edfolio.core.time import utcnow
from edfolio.models.note import Note
from edfolio.models.published_page import PublishedPage
from edfolio.services.slugs import SlugUniquenessError, generate_unique_slug, slugify

logger = logging.getLogger(__name__)

MAX_PUBLISH_ATTEMPTS = 3


class PublicationError(Exception):
    """Base class for publish/unpublish failures; the message is user-facing."""


class NotNoteOwnerError(PublicationError):
    def __init__(self, action: str = "publish"):
        super().__init__(f"You don't have permission to {action} this note")


class AlreadyPublishedError(PublicationError):
    def __init__(self, page: PublishedPage):
        super().__init__("Page is already published")
        self.page = page


class NotPublishedError(PublicationError):
    def __init__(self):
        super().__init__("Page is not published")


class AlreadyUnpublishedError(PublicationError):
    def __init__(self):
        super().__init__("Page is already unpublished")


@dataclass
class PublicationStatus:
    is_published: bool
    page: Optional[PublishedPage] = None


def ensure_note_owner(note: Note, requester_id: str, action: str = "publish") -> None:
    if note.owner_id != requester_id:
        raise NotNoteOwnerError(action)


def get_page_for_note(db: Session, note_id: int) -> Optional[PublishedPage]:
    return db.exec(select(PublishedPage).where(PublishedPage.note_id == note_id)).first()


def publish_note(db: Session, note: Note, requester_id: str) -> PublishedPage:
    """
    Publish a note, creating its page or reviving an unpublished one.

    Raises:
        NotNoteOwnerError: requester does not own the note's folio
        AlreadyPublishedError: the note is currently published
        ReservedSlugError: the title slugifies to a reserved route
        SlugUniquenessError: no unique identifier could be stored
    """
    ensure_note_owner(note, requester_id, "publish")
    note_id = note.id

    page = get_page_for_note(db, note_id)
    if page is not None and page.is_published:
        raise AlreadyPublishedError(page)

    base_slug = slugify(note.title)
    for attempt in range(1, MAX_PUBLISH_ATTEMPTS + 1):
        unique = generate_unique_slug(db, base_slug, note_id)
        now = utcnow()
        if page is None:
            page = PublishedPage(note_id=note_id, slug=unique.slug, short_id=unique.short_id)
        page.slug = unique.slug
        page.short_id = unique.short_id
        page.is_published = True
        page.published_at = now
        page.last_updated = now
        db.add(page)
        try:
            db.commit()
        except IntegrityError:
            # Another request claimed the identifier (or published this note)
            # between our check and the insert.
            db.rollback()
            logger.warning("Publish of note %s hit a unique constraint (attempt %d)", note_id, attempt)
            page = get_page_for_note(db, note_id)
            if page is not None and page.is_published:
                raise AlreadyPublishedError(page)
            continue
        db.refresh(page)
        logger.info("Note %s published as page %s", note_id, page.id)
        return page

    raise SlugUniquenessError(MAX_PUBLISH_ATTEMPTS)


def unpublish_note(db: Session, note: Note, requester_id: str) -> PublishedPage:
    """
    Soft-delete a note's page by clearing is_published.

    Raises:
        NotNoteOwnerError: requester does not own the note's folio
        NotPublishedError: the note was never published
        AlreadyUnpublishedError: the page is already unpublished
    """
    ensure_note_owner(note, requester_id, "unpublish")

    page = get_page_for_note(db, note.id)
    if page is None:
        raise NotPublishedError()
    if not page.is_published:
        raise AlreadyUnpublishedError()

    page.is_published = False
    page.last_updated = utcnow()
    db.add(page)
    db.commit()
    db.refresh(page)
    logger.info("Note %s unpublished (page %s kept)", note.id, page.id)
    return page


def get_publication_status(db: Session, note: Note, requester_id: str) -> PublicationStatus:
    ensure_note_owner(note, requester_id, "access")
    page = get_page_for_note(db, note.id)
    if page is None:
        return PublicationStatus(is_published=False)
    return PublicationStatus(is_published=page.is_published, page=page)


DEFAULT_EXCERPT = "Read this article on Edfolio."


def extract_excerpt(content: Optional[Dict[str, Any]], max_length: int = 160) -> str:
    """
    First non-empty paragraph of an editor document, for link previews.

    >>> extract_excerpt({"type": "doc", "content": [
    ...     {"type": "paragraph", "content": [{"type": "text", "text": "Hello"}]}]})
    'Hello'
    """
    if not isinstance(content, dict) or content.get("type") != "doc":
        return DEFAULT_EXCERPT

    for node in content.get("content") or []:
        if not isinstance(node, dict) or node.get("type") != "paragraph":
            continue
        text = "".join(
            child.get("text", "") for child in node.get("content") or [] if isinstance(child, dict)
        ).strip()
        if text:
            if len(text) > max_length:
                return text[:max_length] + "..."
            return text
    return DEFAULT_EXCERPT
