"""
Test configuration and fixtures.

Provides:
- In-memory SQLite database, fresh schema per test
- Users for each portal role and a complaint factory
- JWT session cookies for authenticated API tests
- HTTPX AsyncClient with the CSRF header set
"""

import os
import uuid
from datetime import timedelta
from typing import AsyncGenerator, Callable, Generator

os.environ["TESTING"] = "1"
os.environ["ENV"] = "test"
os.environ["DATABASE_URL"] = "sqlite+pysqlite://"
os.environ["INTERNAL_SECRET"] = "test-internal-secret"

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from app.core.deps import COOKIE_NAME, get_db
from app.core.security import create_session_token
from app.db.base import Base
from app.db.enums import ComplaintCategory, ComplaintPriority, ComplaintStatus, Role
from app.db.models import Complaint, User
from app.db.types import utcnow
from app.main import app
from app.schemas.auth import Actor
from app.schemas.complaint import ComplaintCreate
from app.services import complaint_service

INTERNAL_SECRET = os.environ["INTERNAL_SECRET"]


# =============================================================================
# Database Fixtures
# =============================================================================

@pytest.fixture(scope="function")
def engine():
    """One private in-memory database per test (StaticPool shares the connection)."""
    test_engine = create_engine(
        "sqlite+pysqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(test_engine)
    yield test_engine
    Base.metadata.drop_all(test_engine)
    test_engine.dispose()


@pytest.fixture(scope="function")
def session_factory(engine) -> sessionmaker:
    return sessionmaker(bind=engine, autocommit=False, autoflush=False)


@pytest.fixture(scope="function")
def db(session_factory) -> Generator[Session, None, None]:
    """
    Session for the test body and (via dependency override) the API.

    Services commit freely; isolation comes from the per-test database.
    """
    session = session_factory()
    yield session
    session.close()


# =============================================================================
# Users
# =============================================================================

@pytest.fixture(scope="function")
def make_user(db: Session) -> Callable[..., User]:
    def _make(role: Role = Role.STUDENT, name: str | None = None, is_active: bool = True) -> User:
        user = User(
            id=uuid.uuid4(),
            email=f"{role.value}-{uuid.uuid4().hex[:8]}@uni.test",
            display_name=name or f"Test {role.value.title()}",
            role=role.value,
            is_active=is_active,
        )
        db.add(user)
        db.commit()
        return user

    return _make


@pytest.fixture(scope="function")
def student(make_user) -> User:
    return make_user(Role.STUDENT, "Sam Student")


@pytest.fixture(scope="function")
def other_student(make_user) -> User:
    return make_user(Role.STUDENT, "Olive Other")


@pytest.fixture(scope="function")
def lecturer(make_user) -> User:
    return make_user(Role.LECTURER, "Dr. Lee")


@pytest.fixture(scope="function")
def other_lecturer(make_user) -> User:
    return make_user(Role.LECTURER, "Dr. Park")


@pytest.fixture(scope="function")
def admin(make_user) -> User:
    return make_user(Role.ADMIN, "Ada Admin")


@pytest.fixture(scope="function")
def actor_of() -> Callable[[User], Actor]:
    def _actor(user: User) -> Actor:
        return Actor(user_id=user.id, role=Role(user.role))

    return _actor


# =============================================================================
# Complaints
# =============================================================================

@pytest.fixture(scope="function")
def make_complaint(db: Session, actor_of) -> Callable[..., Complaint]:
    """File a complaint through the service (so it gets its `created` entry)."""

    def _make(
        owner: User,
        *,
        title: str = "Broken projector in LT2",
        category: ComplaintCategory = ComplaintCategory.FACILITIES,
        priority: ComplaintPriority = ComplaintPriority.MEDIUM,
        is_anonymous: bool = False,
        is_draft: bool = False,
    ) -> Complaint:
        return complaint_service.create_complaint(
            db,
            actor_of(owner),
            ComplaintCreate(
                title=title,
                description="The projector has not worked for two weeks.",
                category=category,
                priority=priority,
                is_anonymous=is_anonymous,
                is_draft=is_draft,
            ),
        )

    return _make


@pytest.fixture(scope="function")
def insert_complaint(db: Session) -> Callable[..., Complaint]:
    """Insert a complaint row directly in any status, with no history."""

    def _insert(
        owner: User,
        status: ComplaintStatus = ComplaintStatus.NEW,
        *,
        category: ComplaintCategory = ComplaintCategory.ACADEMIC,
        priority: ComplaintPriority = ComplaintPriority.HIGH,
        age_hours: int = 0,
        resolved: bool = False,
        is_anonymous: bool = False,
    ) -> Complaint:
        created = utcnow() - timedelta(hours=age_hours)
        complaint = Complaint(
            student_id=owner.id,
            title="Marks not released",
            description="Coursework marks are three weeks late.",
            category=category.value,
            priority=priority.value,
            status=status.value,
            is_draft=status == ComplaintStatus.DRAFT,
            is_anonymous=is_anonymous,
            created_at=created,
            updated_at=created,
            resolved_at=created if resolved else None,
        )
        db.add(complaint)
        db.commit()
        return complaint

    return _insert


# =============================================================================
# Client Fixtures
# =============================================================================

def session_cookie(user: User) -> dict[str, str]:
    token = create_session_token(
        user_id=user.id,
        role=user.role,
        token_version=user.token_version,
    )
    return {COOKIE_NAME: token}


@pytest.fixture(scope="function")
async def client_for(db: Session) -> AsyncGenerator[Callable[..., AsyncClient], None]:
    """
    Factory for AsyncClients sharing the test session.

    client_for(user) sends that user's session cookie; client_for(None) is
    unauthenticated. Every client sends the CSRF header unless csrf=False.
    """
    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    clients: list[AsyncClient] = []

    def _make(user: User | None = None, csrf: bool = True) -> AsyncClient:
        headers = {"X-Requested-With": "XMLHttpRequest"} if csrf else {}
        c = AsyncClient(
            transport=ASGITransport(app=app),
            base_url="http://test",
            cookies=session_cookie(user) if user else {},
            headers=headers,
        )
        clients.append(c)
        return c

    yield _make

    for c in clients:
        await c.aclose()
    app.dependency_overrides.clear()


@pytest.fixture(scope="function")
async def client(client_for) -> AsyncClient:
    """Unauthenticated client."""
    return client_for(None)
