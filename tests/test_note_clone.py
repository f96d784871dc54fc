import pytest
from sqlmodel import select

from edfolio.models import Folder, Folio, Note, PageShare

API = "/api/v1"


@pytest.fixture()
def published(client, note, owner, headers_for):
    return client.post(f"{API}/notes/{note.id}/publish", headers=headers_for(owner)).json()


@pytest.fixture()
def invite(client, note, owner, headers_for, published):
    def _invite(email, permission="read"):
        response = client.post(
            f"{API}/notes/{note.id}/shares",
            json={"invited_email": email, "permission": permission},
            headers=headers_for(owner),
        )
        assert response.status_code == 201, response.text
        return response.json()

    return _invite


def clone(client, note_id, headers, **body):
    return client.post(f"{API}/notes/{note_id}/clone", json=body, headers=headers)


def folio_of(session, user):
    return session.exec(select(Folio).where(Folio.owner_id == user.id)).one()


def test_owner_clones_with_copy_suffixes(client, session, note, owner, headers_for):
    first = clone(client, note.id, headers_for(owner))
    second = clone(client, note.id, headers_for(owner))

    assert first.status_code == 201, first.text
    assert first.json()["data"]["title"] == "Guide (Copy)"
    assert second.json()["data"]["title"] == "Guide (Copy 2)"
    copy = session.get(Note, first.json()["data"]["note_id"])
    assert copy.content == note.content
    assert first.json()["data"]["redirect_url"] == f"/editor/{copy.id}"
    assert copy.published_page is None


def test_collaborator_clones_into_own_folio(client, session, note, make_user, headers_for, invite):
    viewer = make_user("viewer@x.com")
    invite("viewer@x.com")

    response = clone(client, note.id, headers_for(viewer))

    assert response.status_code == 201, response.text
    copy = session.get(Note, response.json()["data"]["note_id"])
    assert copy.folio_id == folio_of(session, viewer).id
    assert copy.folder_id is None
    assert copy.title == "Guide (Copy)"


def test_token_holder_clones(client, session, note, make_user, headers_for, invite):
    share = session.get(PageShare, invite("guest@x.com")["id"])
    holder = make_user("holder@x.com")

    without_token = clone(client, note.id, headers_for(holder))
    with_token = clone(client, note.id, headers_for(holder), access_token=share.access_token)

    assert without_token.status_code == 404
    assert with_token.status_code == 201, with_token.text
    assert session.get(Note, with_token.json()["data"]["note_id"]).folio_id == folio_of(session, holder).id


def test_revoked_token_cannot_clone(client, session, note, owner, make_user, headers_for, invite):
    created = invite("guest@x.com")
    token = session.get(PageShare, created["id"]).access_token
    client.delete(f"{API}/notes/{note.id}/shares/{created['id']}", headers=headers_for(owner))

    response = clone(client, note.id, headers_for(make_user("holder@x.com")), access_token=token)

    assert response.status_code == 404


def test_stranger_cannot_clone(client, note, make_user, headers_for, published):
    response = clone(client, note.id, headers_for(make_user("stranger@x.com")))
    assert response.status_code == 404
    assert response.json()["detail"] == "Note not found"


def test_clone_requires_sign_in(client, note):
    assert clone(client, note.id, {"X-CSRF-Token": "csrf-0123456789abcdef"}).status_code == 401


def test_clone_into_chosen_folder(client, session, note, owner, make_user, headers_for, invite):
    viewer = make_user("viewer@x.com")
    invite("viewer@x.com")
    own_folder = Folder(name="Reading", folio_id=folio_of(session, viewer).id)
    foreign_folder = Folder(name="Drafts", folio_id=folio_of(session, owner).id)
    session.add(own_folder)
    session.add(foreign_folder)
    session.commit()

    placed = clone(client, note.id, headers_for(viewer), target_folder_id=own_folder.id)
    rejected = clone(client, note.id, headers_for(viewer), target_folder_id=foreign_folder.id)

    assert placed.status_code == 201, placed.text
    assert session.get(Note, placed.json()["data"]["note_id"]).folder_id == own_folder.id
    assert rejected.status_code == 400
