"""
Pytest configuration and fixtures.

WHY: Fixtures provide reusable test setup/teardown logic, reducing
duplication and ensuring consistent test environments.
"""

import os

# Settings are loaded at import time and OTP_HASH_SECRET is required
os.environ.setdefault("OTP_HASH_SECRET", "test-otp-secret")

import pytest
import pytest_asyncio
from typing import AsyncGenerator
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker

from client_portal.core import config
from client_portal.models import Base, UserRole
from client_portal.services import email as email_module
from client_portal.services.email import EmailService, MockEmailProvider
from client_portal.services.notification_service import NotificationDispatcher
from client_portal.services.quotation_action_service import ActionWorkflowCoordinator
from tests.factories import (
    ContactFactory,
    LeadFactory,
    OrganizationFactory,
    QuotationFactory,
    UserFactory,
)


@pytest_asyncio.fixture(scope="function")
async def db_engine(tmp_path):
    """
    Create a test database engine.

    WHY: A file-backed SQLite database (one per test) lets several sessions
    see each other's committed rows, which the workflow relies on: every
    operation opens its own session.
    """
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'client_portal.db'}",
        echo=False,
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest.fixture
def session_factory(db_engine) -> async_sessionmaker:
    """Session factory bound to the test engine, configured like production."""
    return async_sessionmaker(
        db_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


@pytest_asyncio.fixture
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """
    Create a test database session.

    Yields:
        AsyncSession: Database session for setup and assertions
    """
    async with session_factory() as session:
        yield session
        await session.rollback()


@pytest_asyncio.fixture
async def test_org(db_session: AsyncSession):
    """Client organization owning the test lead and quotation."""
    return await OrganizationFactory.create(db_session)


@pytest_asyncio.fixture
async def other_org(db_session: AsyncSession):
    """A second organization, for isolation tests."""
    return await OrganizationFactory.create(
        db_session, name="Globex", email="accounts@globex.example"
    )


@pytest_asyncio.fixture
async def test_admin(db_session: AsyncSession):
    """Internal staff member who uploads quotations."""
    return await UserFactory.create(
        db_session,
        email="staff@portal.example",
        first_name="Sam",
        last_name="Staff",
        role=UserRole.ADMIN,
    )


@pytest_asyncio.fixture
async def test_contact(db_session: AsyncSession):
    """Primary contact of the test lead."""
    return await ContactFactory.create(db_session)


@pytest_asyncio.fixture
async def test_lead(db_session: AsyncSession, test_org, test_contact):
    """Lead of test_org with test_contact as primary contact."""
    return await LeadFactory.create(
        db_session, org_id=test_org.id, contact_id=test_contact.id
    )


@pytest_asyncio.fixture
async def test_client_user(db_session: AsyncSession, test_org):
    """Active client user of test_org."""
    return await UserFactory.create(db_session, organization=test_org)


@pytest_asyncio.fixture
async def sent_quotation(db_session: AsyncSession, test_lead, test_admin):
    """SENT quotation on test_lead, uploaded by test_admin."""
    return await QuotationFactory.create(
        db_session, lead_id=test_lead.id, uploaded_by=test_admin.id
    )


@pytest.fixture
def coordinator(session_factory) -> ActionWorkflowCoordinator:
    """Workflow coordinator wired to the test database and the mock mailer."""
    return ActionWorkflowCoordinator(
        session_factory=session_factory,
        dispatcher=NotificationDispatcher(EmailService(provider=MockEmailProvider())),
    )


@pytest.fixture(autouse=True)
def use_mock_email_provider(monkeypatch):
    """
    Use mock email provider for all tests.

    WHY: Tests should not send real emails. The mock provider tracks sent
    emails for assertions and needs no API key.
    """
    email_module.MockEmailProvider.clear_sent_emails()
    monkeypatch.setattr(config.settings, "RESEND_API_KEY", None)
    monkeypatch.setattr(email_module, "_email_service", None)

    yield

    email_module.MockEmailProvider.clear_sent_emails()
