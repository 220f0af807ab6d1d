import os
import tempfile

# Settings are read at import time, so the environment must be ready first
_TEST_ROOT = tempfile.mkdtemp(prefix="grant-portal-tests-")
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["SECRET_KEY"] = "test-secret-key"
os.environ["TEMPLATES_DIR"] = os.path.join(_TEST_ROOT, "templates")
os.environ["UPLOAD_DIR"] = os.path.join(_TEST_ROOT, "uploads")
os.environ["AWS_ACCESS_KEY_ID"] = ""
os.environ["AWS_BUCKET_NAME"] = ""

import httpx  # noqa: E402
import pytest  # noqa: E402
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine, AsyncSession  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from grant_portal.core.db import Base, get_db  # noqa: E402
from grant_portal.core.security import create_access_token, hash_password  # noqa: E402
from grant_portal.models.auth import User  # noqa: E402
from grant_portal.models.domain import GrantApplication  # noqa: E402
from grant_portal.models.enums import UserRole  # noqa: E402
from grant_portal.services.file_upload import LocalFileStorage, get_file_storage  # noqa: E402
from grant_portal.services.templates import template_service  # noqa: E402
from grant_portal.workflow.canvas import SignatureCanvas  # noqa: E402
from main import app  # noqa: E402


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
def storage(tmp_path):
    return LocalFileStorage(tmp_path / "uploads")


@pytest.fixture
async def client(session_factory, storage, tmp_path, monkeypatch):
    async def override_get_db():
        async with session_factory() as session:
            yield session

    monkeypatch.setattr(template_service, "templates_dir", tmp_path / "templates")
    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_file_storage] = lambda: storage

    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()


async def _create_user(session_factory, email: str, role: UserRole = UserRole.USER) -> User:
    async with session_factory() as session:
        user = User(
            email=email,
            first_name="Jane",
            last_name="Doe",
            hashed_password=hash_password("correct-horse"),
            role=role,
        )
        session.add(user)
        await session.commit()
        await session.refresh(user)
        return user


async def _create_application(session_factory, user: User, **values) -> GrantApplication:
    async with session_factory() as session:
        application = GrantApplication(user_id=user.id, year=2026, **values)
        session.add(application)
        await session.commit()
        await session.refresh(application)
        return application


def _auth_headers(user: User) -> dict[str, str]:
    return {"Authorization": f"Bearer {create_access_token({'sub': str(user.id)})}"}


@pytest.fixture
async def applicant(session_factory):
    return await _create_user(session_factory, "jane@example.com")


@pytest.fixture
async def other_applicant(session_factory):
    return await _create_user(session_factory, "john@example.com")


@pytest.fixture
async def admin(session_factory):
    return await _create_user(session_factory, "admin@example.com", role=UserRole.ADMIN)


@pytest.fixture
async def application(session_factory, applicant):
    return await _create_application(session_factory, applicant)


@pytest.fixture
def jane_doe():
    return {
        "name": "Jane Doe",
        "address": "1 Farm Lane",
        "farmCode": "FC-001",
        "email": "jane@example.com",
    }


@pytest.fixture
def signature_data_url():
    canvas = SignatureCanvas()
    canvas.begin_stroke((20, 150))
    canvas.extend_stroke((120, 40))
    canvas.extend_stroke((260, 160))
    canvas.extend_stroke((420, 60))
    return canvas.end_stroke()


@pytest.fixture
def auth_headers():
    return _auth_headers


@pytest.fixture
def make_application(session_factory):
    async def make(user: User, **values) -> GrantApplication:
        return await _create_application(session_factory, user, **values)
    return make
