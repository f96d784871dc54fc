import pytest
from sqlmodel import select

from edfolio.models import Note, PageCollaborator, PageShare, PublishedPage
from edfolio.services.authorization import AccessLevel, find_collaborator, resolve_note_access

API = "/api/v1"


@pytest.fixture()
def published(client, note, owner, headers_for):
    return client.post(f"{API}/notes/{note.id}/publish", headers=headers_for(owner)).json()


@pytest.fixture()
def share_with(client, note, owner, headers_for, published):
    def _share(email, permission):
        response = client.post(
            f"{API}/notes/{note.id}/shares",
            json={"invited_email": email, "permission": permission},
            headers=headers_for(owner),
        )
        assert response.status_code == 201, response.text
        return response.json()

    return _share


def outcomes(client, note_id, headers):
    """Status codes for note read, note write and share listing."""
    return (
        client.get(f"{API}/notes/{note_id}", headers=headers).status_code,
        client.patch(f"{API}/notes/{note_id}", json={"title": "Edited"}, headers=headers).status_code,
        client.get(f"{API}/notes/{note_id}/shares", headers=headers).status_code,
    )


def test_owner_has_full_access(client, note, owner, headers_for, published):
    assert outcomes(client, note.id, headers_for(owner)) == (200, 200, 200)


def test_stranger_never_learns_the_note_exists(client, note, make_user, headers_for, published):
    stranger = make_user("stranger@x.com")
    assert outcomes(client, note.id, headers_for(stranger)) == (404, 404, 404)
    assert client.delete(f"{API}/notes/{note.id}", headers=headers_for(stranger)).status_code == 404


def test_viewer_reads_but_cannot_write(client, note, make_user, headers_for, share_with):
    viewer = make_user("viewer@x.com")
    share_with("viewer@x.com", "read")

    assert outcomes(client, note.id, headers_for(viewer)) == (200, 403, 403)
    assert client.delete(f"{API}/notes/{note.id}", headers=headers_for(viewer)).status_code == 403
    meta = client.get(f"{API}/notes/{note.id}", headers=headers_for(viewer)).json()["meta"]
    assert meta == {"access_level": "viewer", "is_owner": False, "collaborator_role": "viewer", "can_edit": False}


def test_editor_writes_but_cannot_manage_shares(client, session, note, make_user, headers_for, share_with):
    editor = make_user("editor@x.com")
    share_with("editor@x.com", "edit")

    assert outcomes(client, note.id, headers_for(editor)) == (200, 200, 403)
    session.expire_all()
    assert session.get(Note, note.id).title == "Edited"
    collaborator = session.exec(select(PageCollaborator)).one()
    assert collaborator.last_edited_at is not None


def test_revoked_collaborator_loses_access(client, note, owner, make_user, headers_for, share_with):
    viewer = make_user("viewer@x.com")
    share_id = share_with("viewer@x.com", "read")["id"]
    client.delete(f"{API}/notes/{note.id}/shares/{share_id}", headers=headers_for(owner))

    assert outcomes(client, note.id, headers_for(viewer)) == (404, 404, 404)


def test_collaborator_keeps_access_while_unpublished(client, note, owner, make_user, headers_for, share_with):
    viewer = make_user("viewer@x.com")
    share_with("viewer@x.com", "read")
    client.delete(f"{API}/notes/{note.id}/publish", headers=headers_for(owner))

    assert client.get(f"{API}/notes/{note.id}", headers=headers_for(viewer)).status_code == 200


def test_note_token_query_for_anonymous_reader(client, session, note, share_with):
    share = session.get(PageShare, share_with("viewer@x.com", "read")["id"])

    response = client.get(f"{API}/notes/{note.id}", params={"token": share.access_token})

    assert response.status_code == 200
    assert response.json()["meta"]["access_level"] == "token_bearer"
    assert response.json()["meta"]["can_edit"] is False
    assert client.get(f"{API}/notes/{note.id}").status_code == 404


def test_note_token_query_grants_signed_in_user(client, session, note, make_user, headers_for, share_with):
    share = session.get(PageShare, share_with("invitee@x.com", "edit")["id"])
    user = make_user("invitee@x.com")

    response = client.get(
        f"{API}/notes/{note.id}", params={"token": share.access_token}, headers=headers_for(user)
    )

    assert response.json()["meta"]["access_level"] == "editor"
    # The grant is durable: no token needed afterwards
    assert client.get(f"{API}/notes/{note.id}", headers=headers_for(user)).status_code == 200


def test_token_for_another_note_grants_nothing(session, make_note, owner, make_user, share_with):
    share = session.get(PageShare, share_with("viewer@x.com", "read")["id"])
    other = make_note(owner, "Other")

    access = resolve_note_access(session, other, make_user("viewer@x.com"), share.access_token)

    assert access.level == AccessLevel.NONE
    assert access.token_error == "Access token does not match this page"


def test_collaborator_found_through_note_join(session, note, make_user, share_with):
    viewer = make_user("viewer@x.com")
    share_with("viewer@x.com", "read")
    session.expire_all()
    note = session.get(Note, note.id)
    page = session.exec(select(PublishedPage).where(PublishedPage.note_id == note.id)).one()

    assert find_collaborator(session, note, viewer.id).page_id == page.id
    assert resolve_note_access(session, note, viewer).level == AccessLevel.VIEWER
    assert resolve_note_access(session, note, None).level == AccessLevel.NONE


def test_notes_listing_includes_shared_notes(client, note, make_note, owner, make_user, headers_for, share_with):
    viewer = make_user("viewer@x.com")
    own = make_note(viewer, "Viewer's own")
    share_with("viewer@x.com", "read")

    response = client.get(f"{API}/notes", headers=headers_for(viewer))

    assert {item["id"] for item in response.json()} == {note.id, own.id}
    assert [item["id"] for item in client.get(f"{API}/notes", headers=headers_for(owner)).json()] == [note.id]
