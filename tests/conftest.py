import io
import os
import sys
import tempfile
import uuid
from pathlib import Path

import pytest
from fastapi.testclient import TestClient
from PIL import Image
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool
from sqlalchemy.dialects.postgresql import UUID as PG_UUID
from sqlalchemy.ext.compiler import compiles

os.environ.setdefault("DATABASE_URL", "sqlite+pysqlite:///:memory:")
os.environ.setdefault("UPLOAD_DIR", tempfile.mkdtemp(prefix="inspection-uploads-"))

ROOT_DIR = Path(__file__).resolve().parents[1]
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))


@compiles(PG_UUID, "sqlite")
def _compile_uuid_sqlite(type_, compiler, **kwargs):
    return "CHAR(36)"


from main import app  # noqa: E402
from core import config  # noqa: E402
from core.database import Base, get_db  # noqa: E402
from core.security import get_current_user  # noqa: E402
from models.trip_segment import TripSegment  # noqa: E402
from models.user import User  # noqa: E402
from schemas.user import UserCreate  # noqa: E402
from services.auth_service import AuthService  # noqa: E402


class MockUser:
    def __init__(self, role: str) -> None:
        self.id = uuid.UUID("00000000-0000-0000-0000-000000000001")
        self.role = role
        self.email = "inspector@example.com"
        self.is_active = True


@pytest.fixture(scope="function")
def db_session():
    engine = create_engine(
        "sqlite+pysqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool
    )
    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

    Base.metadata.create_all(bind=engine)
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture(autouse=True)
def upload_dir(tmp_path, monkeypatch):
    target = tmp_path / "uploads"
    monkeypatch.setattr(config, "UPLOAD_DIR", target)
    return target


def _override_db(db_session):
    def _override_get_db():
        try:
            yield db_session
        finally:
            pass
    return _override_get_db


@pytest.fixture(scope="function")
def client(db_session):
    """Client logged in as an inspector."""
    app.dependency_overrides[get_db] = _override_db(db_session)
    app.dependency_overrides[get_current_user] = lambda: MockUser("INSPECTOR")

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()


@pytest.fixture(scope="function")
def anon_client(db_session):
    """Client without a session, for the login flows."""
    app.dependency_overrides[get_db] = _override_db(db_session)

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()


@pytest.fixture
def inspector(db_session) -> User:
    return AuthService.register_user(
        UserCreate(
            email="Thomas.Mushi@example.com",
            first_name="Thomas",
            last_name="Mushi",
            password="depot-pass-123",
            phone="+255700000001",
        ),
        db_session,
    )


@pytest.fixture
def trip_segment(db_session) -> TripSegment:
    segment = TripSegment(
        trip_segment_number="ST26-00001",
        bl_number="BL-7781",
        container_number="MSCU1234567",
        shipping_line="MSC",
        vessel_name="MSC AURORA",
    )
    db_session.add(segment)
    db_session.commit()
    db_session.refresh(segment)
    return segment


def make_jpeg(width: int = 120, height: int = 80, color=(200, 30, 30)) -> bytes:
    buffer = io.BytesIO()
    Image.new("RGB", (width, height), color).save(buffer, format="JPEG")
    return buffer.getvalue()


@pytest.fixture
def jpeg_bytes() -> bytes:
    return make_jpeg()


@pytest.fixture
def jpeg_factory():
    return make_jpeg
