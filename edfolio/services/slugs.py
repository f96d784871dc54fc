"""
Slug generation for published pages.

Public URLs look like /public/{title-slug}-{short_id}. The random short id
makes every URL unique without any global counter, and a note keeps its
short id for life so links survive renames and unpublish/republish cycles.
"""
import logging
import re
import secrets
import string
from dataclasses import dataclass

from sqlmodel import Session, select

from edfolio.models.published_page import PublishedPage

logger = logging.getLogger(__name__)

# Path segments that collide with application routes
RESERVED_SLUGS = frozenset({
    "api",
    "auth",
    "admin",
    "public",
    "login",
    "signup",
    "settings",
    "account",
})

MAX_SLUG_LENGTH = 100
MAX_UNIQUENESS_ATTEMPTS = 100
SHORT_ID_LENGTH = 8
SHORT_ID_ALPHABET = string.ascii_letters + string.digits + "_-"
FALLBACK_SLUG = "untitled"

_WHITESPACE_RE = re.compile(r"\s+")
_INVALID_CHARS_RE = re.compile(r"[^a-z0-9-]")
_HYPHEN_RUN_RE = re.compile(r"-+")


class SlugError(Exception):
    """Base class for slug generation failures; the message is user-facing."""


class ReservedSlugError(SlugError):
    def __init__(self, slug: str):
        super().__init__(f'The slug "{slug}" is reserved and cannot be used for published pages.')
        self.slug = slug


class SlugUniquenessError(SlugError):
    def __init__(self, attempts: int = MAX_UNIQUENESS_ATTEMPTS):
        super().__init__(
            "Unable to generate a unique URL for this page. Please try renaming the page."
        )
        self.attempts = attempts


@dataclass(frozen=True)
class UniqueSlug:
    slug: str
    short_id: str


def slugify(title: str) -> str:
    """
    Turn a page title into a URL-friendly slug.

    >>> slugify("Hello, World!!!")
    'hello-world'
    >>> slugify("   Spaces   Everywhere   ")
    'spaces-everywhere'
    >>> slugify("   ")
    'untitled'
    """
    slug = _WHITESPACE_RE.sub("-", title.lower().strip())
    slug = _INVALID_CHARS_RE.sub("", slug)
    slug = _HYPHEN_RUN_RE.sub("-", slug).strip("-")
    slug = slug[:MAX_SLUG_LENGTH]
    return slug or FALLBACK_SLUG


def is_reserved(slug: str) -> bool:
    return slug.lower() in RESERVED_SLUGS


def generate_short_id() -> str:
    return "".join(secrets.choice(SHORT_ID_ALPHABET) for _ in range(SHORT_ID_LENGTH))


def generate_unique_slug(db: Session, base_slug: str, note_id: int) -> UniqueSlug:
    """
    Pair a base slug with a globally unique short id for the given note.

    A note that already has a published page (even an unpublished one) gets
    its existing short id back, combined with the new base slug. Otherwise a
    fresh short id is drawn until one is free.

    Raises:
        ReservedSlugError: base_slug collides with an application route
        SlugUniquenessError: no free short id after MAX_UNIQUENESS_ATTEMPTS
    """
    if is_reserved(base_slug):
        raise ReservedSlugError(base_slug)

    existing_short_id = db.exec(
        select(PublishedPage.short_id).where(PublishedPage.note_id == note_id)
    ).first()
    if existing_short_id:
        return UniqueSlug(slug=f"{base_slug}-{existing_short_id}", short_id=existing_short_id)

    for attempt in range(1, MAX_UNIQUENESS_ATTEMPTS + 1):
        short_id = generate_short_id()
        collision = db.exec(
            select(PublishedPage.id).where(PublishedPage.short_id == short_id)
        ).first()
        if collision is None:
            return UniqueSlug(slug=f"{base_slug}-{short_id}", short_id=short_id)
        logger.warning("Short id collision for note %s (attempt %d)", note_id, attempt)

    raise SlugUniquenessError(MAX_UNIQUENESS_ATTEMPTS)
