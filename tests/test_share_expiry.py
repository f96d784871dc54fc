from datetime import timedelta

import pytest
from sqlmodel import select

from edfolio.core.config import settings
from edfolio.core.time import utcnow
from edfolio.models import PageCollaborator, PageShare, PublishedPage
from edfolio.services.access_tokens import generate_access_token
from edfolio.services.authorization import upsert_collaborator
from edfolio.services.notifications import SHARE_EXPIRED
from edfolio.services.share_expiry import expire_shares

API = "/api/v1"


@pytest.fixture()
def page(session, note):
    page = PublishedPage(note_id=note.id, slug="guide-AbCd1234", short_id="AbCd1234")
    session.add(page)
    session.commit()
    session.refresh(page)
    return page


@pytest.fixture()
def make_share(session, page, owner):
    def _make(email, expires_in=None, revoked=False):
        share = PageShare(
            page_id=page.id,
            invited_email=email,
            invited_by=owner.id,
            access_token=generate_access_token(session),
            expires_at=utcnow() + expires_in if expires_in is not None else None,
        )
        if revoked:
            share.mark_revoked()
        else:
            share.mark_active()
        session.add(share)
        session.commit()
        session.refresh(share)
        return share

    return _make


def test_only_expired_active_shares_are_revoked(session, make_share, notifier):
    expired = make_share("late@x.com", expires_in=timedelta(hours=-1))
    upcoming = make_share("soon@x.com", expires_in=timedelta(days=1))
    open_ended = make_share("forever@x.com")
    already = make_share("gone@x.com", expires_in=timedelta(days=-3), revoked=True)

    assert expire_shares(session, notifier) == 1

    for share in (expired, upcoming, open_ended, already):
        session.refresh(share)
    assert expired.status == "revoked"
    assert upcoming.is_active
    assert open_ended.is_active
    assert [message["to"] for message in notifier.of_kind(SHARE_EXPIRED)] == ["late@x.com"]


def test_expiry_removes_collaborators(session, make_share, make_user, page, notifier):
    user = make_user("late@x.com")
    share = make_share("late@x.com", expires_in=timedelta(minutes=-5))
    upsert_collaborator(session, page.id, user.id, share)
    session.commit()

    expire_shares(session, notifier)

    assert session.exec(select(PageCollaborator)).all() == []


def test_nothing_to_expire(session, make_share, notifier):
    make_share("soon@x.com", expires_in=timedelta(days=1))
    assert expire_shares(session, notifier) == 0
    assert notifier.sent == []


def test_cron_endpoint_requires_secret(client, make_share, monkeypatch):
    monkeypatch.setattr(settings, "CRON_SECRET", "cron-secret-value")
    make_share("late@x.com", expires_in=timedelta(hours=-1))

    denied = client.get(f"{API}/cron/expire-shares", headers={"Authorization": "Bearer wrong"})
    allowed = client.get(f"{API}/cron/expire-shares", headers={"Authorization": "Bearer cron-secret-value"})

    assert denied.status_code == 401
    assert allowed.status_code == 200
    assert allowed.json()["success"] is True
    assert allowed.json()["expired"] == 1


def test_cron_endpoint_without_secret_outside_development(client, monkeypatch):
    monkeypatch.setattr(settings, "CRON_SECRET", None)
    monkeypatch.setattr(settings, "ENVIRONMENT", "production")

    response = client.get(f"{API}/cron/expire-shares")

    assert response.status_code == 500
    assert response.json()["detail"] == "Server configuration error"


def test_cron_endpoint_open_in_development(client, monkeypatch):
    monkeypatch.setattr(settings, "CRON_SECRET", None)
    monkeypatch.setattr(settings, "ENVIRONMENT", "development")

    response = client.get(f"{API}/cron/expire-shares")

    assert response.status_code == 200
    assert response.json()["expired"] == 0
