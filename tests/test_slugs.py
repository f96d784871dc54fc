import re

import pytest

from edfolio.models import PublishedPage
from edfolio.services import slugs
from edfolio.services.slugs import (
    ReservedSlugError,
    SlugUniquenessError,
    generate_short_id,
    generate_unique_slug,
    is_reserved,
    slugify,
)

SHORT_ID_RE = re.compile(r"^[A-Za-z0-9_-]{8}$")


@pytest.mark.parametrize(
    "title, expected",
    [
        ("Hello, World!!!", "hello-world"),
        ("   Spaces   Everywhere   ", "spaces-everywhere"),
        ("   ", "untitled"),
        ("", "untitled"),
        ("!!!", "untitled"),
        ("Multi---hyphen -- title", "multi-hyphen-title"),
        ("Café au lait", "caf-au-lait"),
        ("Q3 2024 Roadmap", "q3-2024-roadmap"),
    ],
)
def test_slugify_examples(title, expected):
    assert slugify(title) == expected


def test_slugify_is_deterministic_and_bounded():
    title = "A very long title " * 20
    assert slugify(title) == slugify(title)
    assert len(slugify(title)) <= slugs.MAX_SLUG_LENGTH


def test_reserved_slugs_are_case_insensitive():
    assert is_reserved("api")
    assert is_reserved("Admin")
    assert not is_reserved("apis")


def test_short_id_uses_url_safe_alphabet():
    for _ in range(50):
        assert SHORT_ID_RE.match(generate_short_id())


@pytest.mark.parametrize("note_id", [1, 2, 999])
def test_reserved_base_slug_always_fails(session, note_id):
    with pytest.raises(ReservedSlugError) as excinfo:
        generate_unique_slug(session, "api", note_id)
    assert 'The slug "api" is reserved' in str(excinfo.value)


def test_generate_unique_slug_for_new_note(session, note):
    result = generate_unique_slug(session, "guide", note.id)
    assert SHORT_ID_RE.match(result.short_id)
    assert result.slug == f"guide-{result.short_id}"


def test_existing_page_keeps_its_short_id(session, note):
    session.add(PublishedPage(note_id=note.id, slug="guide-AbCd1234", short_id="AbCd1234", is_published=False))
    session.commit()

    result = generate_unique_slug(session, "renamed-guide", note.id)

    assert result.short_id == "AbCd1234"
    assert result.slug == "renamed-guide-AbCd1234"


def test_short_id_collision_is_retried(session, make_note, owner, monkeypatch):
    first = make_note(owner, "First")
    second = make_note(owner, "Second")
    session.add(PublishedPage(note_id=first.id, slug="first-taken123", short_id="taken123"))
    session.commit()

    candidates = iter(["taken123", "taken123", "fresh456"])
    monkeypatch.setattr(slugs, "generate_short_id", lambda: next(candidates))

    result = generate_unique_slug(session, "second", second.id)

    assert result.short_id == "fresh456"
    assert result.slug == "second-fresh456"


def test_exhausted_attempts_raise(session, make_note, owner, monkeypatch):
    first = make_note(owner, "First")
    second = make_note(owner, "Second")
    session.add(PublishedPage(note_id=first.id, slug="first-taken123", short_id="taken123"))
    session.commit()
    monkeypatch.setattr(slugs, "generate_short_id", lambda: "taken123")

    with pytest.raises(SlugUniquenessError) as excinfo:
        generate_unique_slug(session, "second", second.id)
    assert "Please try renaming the page" in str(excinfo.value)
