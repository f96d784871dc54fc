import os
from typing import Callable, Dict, Iterator, List, Optional

os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("SECRET_KEY", "test-secret-key-not-for-production")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, SQLModel, create_engine, select

from edfolio.api import deps
from edfolio.core.security import create_access_token, get_password_hash
from edfolio.db.session import get_db
from edfolio.main import app
from edfolio.models import Folio, Note, User
from edfolio.models.folio import DEFAULT_FOLIO_NAME
from edfolio.services.notifications import Notifier

CSRF_HEADERS = {"X-CSRF-Token": "csrf-0123456789abcdef"}


class RecordingNotifier(Notifier):
    """Renders every email for real but keeps it instead of sending it."""

    def __init__(self) -> None:
        super().__init__(from_address="Edfolio <noreply@edfolio.app>")
        self.sent: List[Dict[str, str]] = []

    def deliver(self, kind: str, to_email: str, subject: str, body: str) -> None:
        self.sent.append({"kind": kind, "to": to_email, "subject": subject, "body": body})

    def of_kind(self, kind: str) -> List[Dict[str, str]]:
        return [message for message in self.sent if message["kind"] == kind]


@pytest.fixture()
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    SQLModel.metadata.create_all(engine)
    try:
        yield engine
    finally:
        SQLModel.metadata.drop_all(engine)
        engine.dispose()


@pytest.fixture()
def session(engine) -> Iterator[Session]:
    with Session(engine) as session:
        yield session


@pytest.fixture()
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture()
def client(session: Session, notifier: RecordingNotifier) -> Iterator[TestClient]:
    app.dependency_overrides[get_db] = lambda: session
    app.dependency_overrides[deps.get_notifier] = lambda: notifier
    client = TestClient(app, base_url="http://edfolio.local")
    try:
        yield client
    finally:
        client.close()
        app.dependency_overrides.clear()


@pytest.fixture()
def make_user(session: Session) -> Callable[..., User]:
    def _make(email: str, full_name: Optional[str] = None, password: Optional[str] = None) -> User:
        user = User(
            email=email,
            full_name=full_name,
            password=get_password_hash(password) if password else None,
        )
        session.add(user)
        session.add(Folio(name=DEFAULT_FOLIO_NAME, owner_id=user.id))
        session.commit()
        session.refresh(user)
        return user

    return _make


@pytest.fixture()
def make_note(session: Session) -> Callable[..., Note]:
    def _make(owner: User, title: str = "Guide", content: Optional[dict] = None) -> Note:
        folio = session.exec(select(Folio).where(Folio.owner_id == owner.id)).first()
        note = Note(title=title, content=content, folio_id=folio.id)
        session.add(note)
        session.commit()
        session.refresh(note)
        return note

    return _make


@pytest.fixture()
def owner(make_user) -> User:
    return make_user("owner@acme.io", full_name="Olivia Owner")


@pytest.fixture()
def note(make_note, owner) -> Note:
    return make_note(
        owner,
        "Guide",
        {"type": "doc", "content": [{"type": "paragraph", "content": [{"type": "text", "text": "Start here."}]}]},
    )


@pytest.fixture()
def headers_for() -> Callable[..., Dict[str, str]]:
    """Bearer (and by default CSRF) headers for a user."""

    def _headers(user: User, csrf: bool = True) -> Dict[str, str]:
        headers = {"Authorization": f"Bearer {create_access_token(subject=user.email)}"}
        if csrf:
            headers.update(CSRF_HEADERS)
        return headers

    return _headers
