import io
import os
import tempfile
import uuid
import zipfile
from collections.abc import Callable, Iterator
from datetime import timedelta

os.environ["DATABASE_URL"] = "sqlite://"
os.environ.setdefault("STORAGE_ROOT", tempfile.mkdtemp(prefix="game-console-"))

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy.orm import Session  # noqa: E402

from app.core.db import Base, SessionLocal, engine  # noqa: E402
from app.core.security import create_access_token, get_password_hash  # noqa: E402
from app.main import app  # noqa: E402
from app.models.user import User  # noqa: E402
from app.repositories.registry import RepositoryRegistry  # noqa: E402
from app.services.object_store import LocalObjectStore  # noqa: E402
from app.services.storage import StorageGateway  # noqa: E402

CDN_BASE = "https://cdn.example.test/iruka-edu-mini-game"
PASSWORD = "pw"


@pytest.fixture(autouse=True)
def _schema() -> Iterator[None]:
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def db_session() -> Iterator[Session]:
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture
def repos(db_session: Session) -> RepositoryRegistry:
    return RepositoryRegistry(db_session)


@pytest.fixture
def store(tmp_path) -> LocalObjectStore:
    return LocalObjectStore(tmp_path / "bucket", public_api_base_url="http://testserver")


@pytest.fixture
def gateway(store: LocalObjectStore) -> Iterator[StorageGateway]:
    gateway = StorageGateway(store, cdn_base=CDN_BASE, delete_batch_size=3)
    previous = app.state.storage_gateway
    app.state.storage_gateway = gateway
    try:
        yield gateway
    finally:
        app.state.storage_gateway = previous


@pytest.fixture
def client(gateway: StorageGateway) -> TestClient:
    return TestClient(app)


@pytest.fixture
def make_user(db_session: Session) -> Callable[..., User]:
    def _make(*roles: str, email: str | None = None) -> User:
        user = User(
            id=uuid.uuid4(),
            email=email or f"{'-'.join(roles) or 'nobody'}_{uuid.uuid4().hex[:8]}@example.com",
            hashed_password=get_password_hash(PASSWORD),
            full_name=" ".join(roles).title() or None,
            roles=list(roles),
            is_active=True,
        )
        db_session.add(user)
        db_session.commit()
        db_session.refresh(user)
        return user

    return _make


def auth_headers(user: User) -> dict[str, str]:
    token = create_access_token(user.id, expires_delta=timedelta(minutes=5))
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def headers_for() -> Callable[[User], dict[str, str]]:
    return auth_headers


def build_zip(files: dict[str, bytes | str]) -> bytes:
    buf = io.BytesIO()
    with zipfile.ZipFile(buf, "w") as archive:
        for name, content in files.items():
            archive.writestr(name, content)
    return buf.getvalue()


@pytest.fixture
def make_zip() -> Callable[[dict[str, bytes | str]], bytes]:
    return build_zip
