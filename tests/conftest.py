"""Pytest configuration and fixtures."""
import os
import uuid
from pathlib import Path

import jwt
import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.pool import StaticPool
from fastapi.testclient import TestClient

TEST_DB_PATH = Path("test_app.db")
if TEST_DB_PATH.exists():
    TEST_DB_PATH.unlink()

TEST_DATABASE_URL = f"sqlite+aiosqlite:///{TEST_DB_PATH}"
os.environ.setdefault("DATABASE_URL", TEST_DATABASE_URL)
os.environ.setdefault("ENCRYPTION_SECRET", "YWFhYWFhYWFhYWFhYWFhYWFhYWFhYWFhYWFhYWFhYWE=")
os.environ.setdefault("LOG_FORMAT", "text")

from app.main import app  # noqa: E402
from app.config import settings  # noqa: E402
from app.database import Base, get_db  # noqa: E402
from app.core.security import UserRole  # noqa: E402
from app.models.user import User  # noqa: E402
from app.models.group import GroupMember, Project, StudentGroup  # noqa: E402
from app.models.integration import JiraIntegration, SyncStatus  # noqa: E402
from app.security.encryption import get_protector  # noqa: E402
from app.services.jira_vault_service import JiraVaultService, jira_vault_service  # noqa: E402
from jira_fakes import FakeJira  # noqa: E402

TEST_API_TOKEN = "secret-token-123"


# Create test engine
test_engine = create_async_engine(
    TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)

TestSessionLocal = async_sessionmaker(
    test_engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


@pytest_asyncio.fixture(scope="function")
async def db_session():
    """Create a test database session."""
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with TestSessionLocal() as session:
        yield session

    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


@pytest.fixture(scope="function")
def client(db_session: AsyncSession):
    """Create a test client overriding database dependency."""

    async def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


async def _create_user(
    db: AsyncSession,
    email: str,
    role: UserRole,
    jira_account_id: str = None,
) -> User:
    user = User(
        id=uuid.uuid4(),
        email=email,
        full_name=email.split("@")[0].title(),
        role=role,
        jira_account_id=jira_account_id,
        is_active=True,
    )
    db.add(user)
    await db.commit()
    await db.refresh(user)
    return user


@pytest_asyncio.fixture
async def admin_user(db_session: AsyncSession):
    return await _create_user(db_session, "admin@example.com", UserRole.ADMIN)


@pytest_asyncio.fixture
async def lecturer_user(db_session: AsyncSession):
    return await _create_user(db_session, "lecturer@example.com", UserRole.LECTURER)


@pytest_asyncio.fixture
async def other_lecturer(db_session: AsyncSession):
    return await _create_user(db_session, "other.lecturer@example.com", UserRole.LECTURER)


@pytest_asyncio.fixture
async def leader_user(db_session: AsyncSession):
    return await _create_user(db_session, "leader@example.com", UserRole.STUDENT, "acc-leader")


@pytest_asyncio.fixture
async def member_user(db_session: AsyncSession):
    return await _create_user(db_session, "member@example.com", UserRole.STUDENT, "acc-member")


@pytest_asyncio.fixture
async def unlinked_member(db_session: AsyncSession):
    """Group member without a linked Jira account."""
    return await _create_user(db_session, "unlinked@example.com", UserRole.STUDENT)


@pytest_asyncio.fixture
async def outsider_user(db_session: AsyncSession):
    return await _create_user(db_session, "outsider@example.com", UserRole.STUDENT, "acc-outsider")


@pytest_asyncio.fixture
async def student_group(
    db_session: AsyncSession,
    lecturer_user: User,
    leader_user: User,
    member_user: User,
    unlinked_member: User,
):
    """Group SE1801 with a leader and two ordinary members."""
    group = StudentGroup(
        id=uuid.uuid4(),
        group_code="SE1801",
        group_name="Team Alpha",
        lecturer_id=lecturer_user.id,
        leader_id=leader_user.id,
    )
    db_session.add(group)
    await db_session.commit()

    for student in (leader_user, member_user, unlinked_member):
        db_session.add(GroupMember(group_id=group.id, user_id=student.id))
    await db_session.commit()
    await db_session.refresh(group)
    return group


@pytest_asyncio.fixture
async def project(db_session: AsyncSession, student_group: StudentGroup):
    project = Project(id=uuid.uuid4(), group_id=student_group.id, project_name="Alpha Project")
    db_session.add(project)
    await db_session.commit()
    await db_session.refresh(project)
    return project


@pytest.fixture
def protector():
    return get_protector(settings.JIRA_TOKEN_PURPOSE)


@pytest.fixture
def fake_jira(monkeypatch):
    """Fake Jira site wired into the shared vault service."""
    fake = FakeJira()
    monkeypatch.setattr(jira_vault_service, "client_factory", fake.factory)
    return fake


@pytest.fixture
def vault(protector, fake_jira):
    return JiraVaultService(protector=protector, client_factory=fake_jira.factory)


@pytest_asyncio.fixture
async def integration(db_session: AsyncSession, project: Project, protector):
    """Stored integration for the project, pointing at Jira project ABC."""
    record = JiraIntegration(
        project_id=project.id,
        jira_url="https://alpha.atlassian.net",
        jira_email="bot@example.com",
        api_token_encrypted=protector.encrypt_text(TEST_API_TOKEN),
        project_key="ABC",
        sync_status=SyncStatus.PENDING,
    )
    db_session.add(record)
    await db_session.commit()
    await db_session.refresh(record)
    return record


@pytest.fixture
def auth_headers():
    """Build bearer headers for a user."""

    def _headers(user: User) -> dict:
        token = jwt.encode(
            {"sub": str(user.id), "type": "access"},
            settings.SECRET_KEY,
            algorithm=settings.ALGORITHM,
        )
        return {"Authorization": f"Bearer {token}"}

    return _headers
