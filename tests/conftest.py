"""
Test configuration and fixtures.

Provides:
- A fresh SQLite (aiosqlite) file database per test, schema via create_all
- Factories for organizations, profiles, tickets and invitations
- JWT minting for authenticated API calls
- HTTPX AsyncClient bound to the app with the session dependency overridden
"""
import os
import uuid
from datetime import timedelta

# Settings are read at import time; configure before importing the app
os.environ["ENV"] = "test"
os.environ["DATABASE_URL"] = "sqlite+aiosqlite://"
os.environ["JWT_SECRET"] = "test-secret"
os.environ["OUTBOX_RELAY_ENABLED"] = "false"
os.environ["EVENT_BUS_PROVIDER"] = "noop"
os.environ["DB_MANAGE"] = "create_all"

import pytest
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession

from app.core.base import Base, utcnow
from app.core.db import get_session, _import_models
from app.core.security import Identity, create_access_token
from app.modules.identity.models import Profile
from app.modules.invitations.models import OrganizationInvitation
from app.modules.organizations.models import Organization
from app.modules.tickets.models import Ticket


# =============================================================================
# Database Fixtures
# =============================================================================

@pytest.fixture
async def engine(tmp_path):
    _import_models()
    eng = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'helpdesk.db'}")
    async with eng.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield eng
    await eng.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, expire_on_commit=False, class_=AsyncSession)


@pytest.fixture
async def session(session_factory):
    async with session_factory() as s:
        yield s


# =============================================================================
# Factories
# =============================================================================

class Factory:
    """Seeds rows directly, bypassing services and their permission checks."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def _save(self, obj):
        self.session.add(obj)
        await self.session.commit()
        return obj

    async def org(self, name: str = "Acme", slug: str | None = None) -> Organization:
        return await self._save(Organization(name=name, slug=slug or f"{name.lower()}-{uuid.uuid4().hex[:6]}"))

    async def profile(self, org: Organization | None, role: str | None, full_name: str = "Someone", *,
                      email: str | None = None, ticket_code: str | None = None, is_active: bool = True) -> Profile:
        pid = uuid.uuid4()
        return await self._save(Profile(
            id=pid,
            organization_id=org.id if org else None,
            role=role,
            full_name=full_name,
            email=email or f"{pid.hex[:8]}@example.test",
            ticket_code=ticket_code,
            is_active=is_active,
        ))

    async def ticket(self, org: Organization, *, title: str = "Printer is jammed", created_by: Profile | None = None,
                     assigned_to: Profile | None = None, ticket_code: str | None = None,
                     status: str = "open", priority: str = "medium") -> Ticket:
        return await self._save(Ticket(
            organization_id=org.id,
            title=title,
            description="It makes a grinding noise",
            category="general",
            tags=[],
            status=status,
            priority=priority,
            created_by=created_by.id if created_by else None,
            assigned_to=assigned_to.id if assigned_to else None,
            ticket_code=ticket_code,
        ))

    async def invitation(self, org: Organization, inviter: Profile, *, token: str, role: str = "agent",
                         email: str | None = None, expires_in: timedelta = timedelta(days=7),
                         status: str = "pending") -> OrganizationInvitation:
        return await self._save(OrganizationInvitation(
            organization_id=org.id,
            invited_by=inviter.id,
            token=token,
            role=role,
            email=email,
            expires_at=utcnow() + expires_in,
            status=status,
        ))


@pytest.fixture
def factory(session) -> Factory:
    return Factory(session)


def identity(email: str | None = None) -> Identity:
    return Identity(id=uuid.uuid4(), email=email)


@pytest.fixture
def new_identity():
    return identity


# =============================================================================
# Auth + HTTP client
# =============================================================================

@pytest.fixture
def auth_headers():
    def _headers(subject, email: str | None = None) -> dict:
        subject_id = subject.id if hasattr(subject, "id") else subject
        email = email if email is not None else getattr(subject, "email", None)
        return {"Authorization": f"Bearer {create_access_token(subject_id, email)}"}
    return _headers


@pytest.fixture
async def client(session_factory):
    from app.main import app

    async def _session():
        async with session_factory() as s:
            yield s

    app.dependency_overrides[get_session] = _session
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test/api/v1") as c:
        yield c
    app.dependency_overrides.clear()
