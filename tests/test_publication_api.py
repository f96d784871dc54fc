import re

from sqlmodel import select

from edfolio.models import PublishedPage
from edfolio.services import publication, slugs
from edfolio.services.slugs import UniqueSlug

API = "/api/v1"
SLUG_RE = re.compile(r"^guide-[A-Za-z0-9_-]{8}$")


def publish(client, note_id, headers):
    return client.post(f"{API}/notes/{note_id}/publish", headers=headers)


def test_publish_returns_public_identifiers(client, note, owner, headers_for):
    response = publish(client, note.id, headers_for(owner))
    assert response.status_code == 200, response.text

    body = response.json()
    assert SLUG_RE.match(body["slug"])
    assert body["slug"].endswith(body["short_id"])
    assert body["public_url"] == f"/public/{body['slug']}"


def test_publish_twice_conflicts_with_existing_url(client, note, owner, headers_for):
    first = publish(client, note.id, headers_for(owner)).json()

    response = publish(client, note.id, headers_for(owner))

    assert response.status_code == 409
    detail = response.json()["detail"]
    assert detail["message"] == "Page is already published"
    assert detail["slug"] == first["slug"]
    assert detail["public_url"] == first["public_url"]


def test_reserved_title_is_a_client_error(client, make_note, owner, headers_for):
    note = make_note(owner, "API")
    response = publish(client, note.id, headers_for(owner))
    assert response.status_code == 400
    assert "reserved" in response.json()["detail"]


def test_exhausted_slug_generation_is_a_client_error(client, session, make_note, owner, headers_for, monkeypatch):
    taken = make_note(owner, "Taken")
    session.add(PublishedPage(note_id=taken.id, slug="taken-dup00000", short_id="dup00000"))
    session.commit()
    note = make_note(owner, "Guide")
    monkeypatch.setattr(slugs, "generate_short_id", lambda: "dup00000")

    response = publish(client, note.id, headers_for(owner))

    assert response.status_code == 400
    assert response.json()["detail"] == (
        "Unable to generate a unique URL for this page. Please try renaming the page."
    )


def test_publish_retries_after_losing_an_identifier_race(client, session, make_note, owner, headers_for, monkeypatch):
    rival = make_note(owner, "Rival")
    session.add(PublishedPage(note_id=rival.id, slug="rival-race0000", short_id="race0000"))
    session.commit()
    note = make_note(owner, "Target")
    # The first identifier passes the pre-check but is already stored; the insert must fail and retry.
    candidates = iter([UniqueSlug("target-race0000", "race0000"), UniqueSlug("target-fresh678", "fresh678")])
    monkeypatch.setattr(publication, "generate_unique_slug", lambda db, base_slug, note_id: next(candidates))

    response = publish(client, note.id, headers_for(owner))

    assert response.status_code == 200, response.text
    assert response.json()["slug"] == "target-fresh678"
    assert response.json()["short_id"] == "fresh678"
    session.expire_all()
    assert len(session.exec(select(PublishedPage).where(PublishedPage.note_id == note.id)).all()) == 1


def test_republish_keeps_short_id_after_rename(client, note, owner, headers_for):
    first = publish(client, note.id, headers_for(owner)).json()
    assert client.delete(f"{API}/notes/{note.id}/publish", headers=headers_for(owner)).status_code == 200
    rename = client.patch(f"{API}/notes/{note.id}", json={"title": "Field Guide"}, headers=headers_for(owner))
    assert rename.status_code == 200, rename.text

    second = publish(client, note.id, headers_for(owner)).json()

    assert second["short_id"] == first["short_id"]
    assert second["slug"] == f"field-guide-{first['short_id']}"


def test_unpublish_is_a_soft_delete(client, session, note, owner, headers_for):
    publish(client, note.id, headers_for(owner))

    response = client.delete(f"{API}/notes/{note.id}/publish", headers=headers_for(owner))

    assert response.status_code == 200
    page = session.exec(select(PublishedPage).where(PublishedPage.note_id == note.id)).one()
    assert page.is_published is False


def test_unpublish_errors_are_distinct(client, note, owner, headers_for):
    never = client.delete(f"{API}/notes/{note.id}/publish", headers=headers_for(owner))
    assert never.status_code == 404
    assert never.json()["detail"] == "Page is not published"

    publish(client, note.id, headers_for(owner))
    client.delete(f"{API}/notes/{note.id}/publish", headers=headers_for(owner))
    again = client.delete(f"{API}/notes/{note.id}/publish", headers=headers_for(owner))
    assert again.status_code == 404
    assert again.json()["detail"] == "Page is already unpublished"


def test_publish_missing_note(client, owner, headers_for):
    assert publish(client, 4040, headers_for(owner)).status_code == 404


def test_stranger_cannot_see_the_note(client, note, make_user, headers_for):
    stranger = make_user("stranger@x.com")
    response = publish(client, note.id, headers_for(stranger))
    assert response.status_code == 404


def test_publication_status(client, note, owner, headers_for):
    before = client.get(f"{API}/notes/{note.id}/publish/status", headers=headers_for(owner))
    assert before.json() == {
        "is_published": False,
        "page_id": None,
        "slug": None,
        "short_id": None,
        "public_url": None,
        "published_at": None,
    }

    published = publish(client, note.id, headers_for(owner)).json()
    after = client.get(f"{API}/notes/{note.id}/publish/status", headers=headers_for(owner)).json()
    assert after["is_published"] is True
    assert after["slug"] == published["slug"]
    assert after["published_at"] is not None


def test_publish_requires_csrf_token(client, note, owner, headers_for):
    response = publish(client, note.id, headers_for(owner, csrf=False))

    assert response.status_code == 403
    assert response.json()["detail"]["code"] == "CSRF_TOKEN_INVALID"


def test_short_csrf_token_is_rejected(client, note, owner, headers_for):
    headers = headers_for(owner, csrf=False)
    headers["X-CSRF-Token"] = "too-short"
    assert publish(client, note.id, headers).status_code == 403


def test_publish_requires_authentication(client, note):
    response = client.post(
        f"{API}/notes/{note.id}/publish",
        headers={"X-CSRF-Token": "csrf-0123456789abcdef"},
    )
    assert response.status_code == 401
