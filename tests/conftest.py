'''
Pytest configuration for the FastAPI application.

This file sets up fixtures for:
1. Forcing the application into TEST_MODE before any app code is imported.
2. Providing a fresh in-memory SQLite database (full schema) for each test.
3. Seeding a small two-center sandbox with factory_boy factories.
4. Providing instances of all service classes, pre-injected with the test session.
5. Providing an httpx AsyncClient bound to the app for endpoint testing.
'''
import os

# Settings are read at import time; these must exist first.
os.environ["TEST_MODE"] = "True"
os.environ.setdefault("SECRET_KEY", "test-secret-key-not-for-production")
os.environ.setdefault("DATABASE_URL_PROD", "sqlite+aiosqlite:///:memory:")

import pytest
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import AsyncGenerator

import httpx
from sqlalchemy import event
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, AsyncEngine
from sqlalchemy.pool import StaticPool

# --- Application Imports ---
from src.center_hub_backend.main import app
from src.center_hub_backend.common.config import settings
from src.center_hub_backend.database.engine import get_db_session, get_session_factory
from src.center_hub_backend.database.utils import create_all_tables
from src.center_hub_backend.database.db_enums import UserRole
from src.center_hub_backend.database import models as db_models
from src.center_hub_backend.services.user_service import UserService, ParentLinkService
from src.center_hub_backend.services.permission_service import FeaturePermissionService
from src.center_hub_backend.services.auth_service import LoginService
from src.center_hub_backend.services.finance_service import (
    InvoiceGenerationService,
    InvoiceService,
    PaymentService,
    FeeSetupService,
    ExpenseService,
    FinancialSummaryService
)
from src.center_hub_backend.services.meeting_service import MeetingService
from src.center_hub_backend.services.chat_service import ChatService
from src.center_hub_backend.services.catalog_service import CatalogService

from tests.constants import (
    CENTER_A_ID, CENTER_B_ID,
    TEACHER_A_ID, TEACHER_A_NO_ACCOUNT_ID, TEACHER_B_ID,
    STUDENT_A1_ID, STUDENT_A2_ID, STUDENT_B1_ID,
    ADMIN_USER_ID, CENTER_A_USER_ID, PRINCIPAL_A_USER_ID, CENTER_B_USER_ID,
    TEACHER_A_USER_ID, PARENT_A_USER_ID, PARENT_B_USER_ID, VENDOR_USER_ID, INACTIVE_USER_ID,
    ADMIN_USERNAME, CENTER_A_USERNAME, TEACHER_A_USERNAME, PARENT_A_USERNAME, INACTIVE_USERNAME
)
from tests.database.factories import (
    CenterFactory, TeacherFactory, StudentFactory, UserFactory, ParentStudentFactory
)


@pytest.fixture(scope="session")
def anyio_backend():
    """
    Override the default 'anyio_backend' fixture.
    1. Forces the backend to 'asyncio'.
    2. Promotes the scope to 'session'.
    """
    return "asyncio"


# --- 1. Database ---

@pytest.fixture(scope="function")
async def db_engine() -> AsyncGenerator[AsyncEngine, None]:
    """
    A private in-memory database per test, schema created from the ORM
    metadata. One shared connection (StaticPool) keeps the data alive
    for the whole test.
    """
    assert settings.TEST_MODE is True, \
        "TEST_MODE was not set to True! Check your .env file or environment."

    engine = create_async_engine(
        settings.DATABASE_URL_TEST,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )

    # pysqlite's own transaction handling breaks SAVEPOINT; let SQLAlchemy emit BEGIN.
    @event.listens_for(engine.sync_engine, "connect")
    def _disable_pysqlite_transactions(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine.sync_engine, "begin")
    def _emit_begin(conn):
        conn.exec_driver_sql("BEGIN")

    await create_all_tables(engine)
    yield engine
    await engine.dispose()


@pytest.fixture(scope="function")
async def db_session(db_engine: AsyncEngine) -> AsyncGenerator[AsyncSession, None]:
    """
    The session shared by services and (through the dependency override)
    by the API under test.
    """
    async with AsyncSession(db_engine, expire_on_commit=False, autoflush=False) as session:
        yield session


@pytest.fixture(scope="function")
def session_factory(db_session: AsyncSession):
    """
    Stand-in for the app's session factory that hands out the test session.
    """
    @asynccontextmanager
    async def _factory():
        yield db_session
    return _factory


# --- 2. Sandbox Data ---

@dataclass
class Sandbox:
    center_a: db_models.Centers
    center_b: db_models.Centers
    teacher_a: db_models.Teachers
    teacher_a_no_account: db_models.Teachers
    teacher_b: db_models.Teachers
    student_a1: db_models.Students
    student_a2: db_models.Students
    student_b1: db_models.Students
    admin: db_models.Users
    center_user_a: db_models.Users
    principal_a: db_models.Users
    center_user_b: db_models.Users
    teacher_user_a: db_models.Users
    parent_a: db_models.Users
    parent_b: db_models.Users
    vendor: db_models.Users
    inactive_user: db_models.Users


@pytest.fixture(scope="function")
async def sandbox(db_session: AsyncSession) -> Sandbox:
    """
    Two centers. Center A has two teachers (one without a login account)
    and two students (Alice, linked to parent A; Bob, without a parent).
    Center B has one teacher and one student linked to parent B.
    """
    center_a = CenterFactory.build(id=CENTER_A_ID, name="Center A")
    center_b = CenterFactory.build(id=CENTER_B_ID, name="Center B")

    teacher_a = TeacherFactory.build(id=TEACHER_A_ID, center_id=CENTER_A_ID)
    teacher_a_no_account = TeacherFactory.build(id=TEACHER_A_NO_ACCOUNT_ID, center_id=CENTER_A_ID)
    teacher_b = TeacherFactory.build(id=TEACHER_B_ID, center_id=CENTER_B_ID)

    student_a1 = StudentFactory.build(id=STUDENT_A1_ID, center_id=CENTER_A_ID, name="Alice Adams")
    student_a2 = StudentFactory.build(id=STUDENT_A2_ID, center_id=CENTER_A_ID, name="Bob Brown")
    student_b1 = StudentFactory.build(id=STUDENT_B1_ID, center_id=CENTER_B_ID, name="Carol Clark")

    admin = UserFactory.build(id=ADMIN_USER_ID, username=ADMIN_USERNAME, role=UserRole.ADMIN.value)
    center_user_a = UserFactory.build(id=CENTER_A_USER_ID, username=CENTER_A_USERNAME, role=UserRole.CENTER.value, center_id=CENTER_A_ID)
    principal_a = UserFactory.build(id=PRINCIPAL_A_USER_ID, role=UserRole.PRINCIPAL.value, center_id=CENTER_A_ID)
    center_user_b = UserFactory.build(id=CENTER_B_USER_ID, role=UserRole.CENTER.value, center_id=CENTER_B_ID)
    teacher_user_a = UserFactory.build(
        id=TEACHER_A_USER_ID, username=TEACHER_A_USERNAME, role=UserRole.TEACHER.value,
        center_id=CENTER_A_ID, teacher_id=TEACHER_A_ID
    )
    parent_a = UserFactory.build(id=PARENT_A_USER_ID, username=PARENT_A_USERNAME, role=UserRole.PARENT.value, center_id=CENTER_A_ID)
    parent_b = UserFactory.build(id=PARENT_B_USER_ID, role=UserRole.PARENT.value, center_id=CENTER_B_ID)
    vendor = UserFactory.build(id=VENDOR_USER_ID, role=UserRole.VENDOR.value, center_id=CENTER_A_ID)
    inactive_user = UserFactory.build(
        id=INACTIVE_USER_ID, username=INACTIVE_USERNAME, role=UserRole.PARENT.value,
        center_id=CENTER_A_ID, is_active=False
    )

    links = [
        ParentStudentFactory.build(parent_user_id=PARENT_A_USER_ID, student_id=STUDENT_A1_ID),
        ParentStudentFactory.build(parent_user_id=PARENT_B_USER_ID, student_id=STUDENT_B1_ID),
    ]

    db_session.add_all([center_a, center_b])
    await db_session.flush()
    db_session.add_all([teacher_a, teacher_a_no_account, teacher_b, student_a1, student_a2, student_b1])
    await db_session.flush()
    db_session.add_all([admin, center_user_a, principal_a, center_user_b, teacher_user_a,
                        parent_a, parent_b, vendor, inactive_user])
    await db_session.flush()
    db_session.add_all(links)
    await db_session.commit()

    return Sandbox(
        center_a=center_a, center_b=center_b,
        teacher_a=teacher_a, teacher_a_no_account=teacher_a_no_account, teacher_b=teacher_b,
        student_a1=student_a1, student_a2=student_a2, student_b1=student_b1,
        admin=admin, center_user_a=center_user_a, principal_a=principal_a,
        center_user_b=center_user_b, teacher_user_a=teacher_user_a,
        parent_a=parent_a, parent_b=parent_b, vendor=vendor, inactive_user=inactive_user
    )


# --- 3. Service Fixtures ---

@pytest.fixture(scope="function")
def user_service(db_session: AsyncSession) -> UserService:
    return UserService(db_session)

@pytest.fixture(scope="function")
def parent_link_service(db_session: AsyncSession) -> ParentLinkService:
    return ParentLinkService(db_session)

@pytest.fixture(scope="function")
def permission_service(db_session: AsyncSession) -> FeaturePermissionService:
    return FeaturePermissionService(db_session)

@pytest.fixture(scope="function")
def login_service(user_service: UserService, permission_service: FeaturePermissionService) -> LoginService:
    return LoginService(user_service, permission_service)

@pytest.fixture(scope="function")
def invoice_generation_service(db_session: AsyncSession) -> InvoiceGenerationService:
    return InvoiceGenerationService(db_session)

@pytest.fixture(scope="function")
def invoice_service(db_session: AsyncSession, user_service: UserService) -> InvoiceService:
    return InvoiceService(db_session, user_service)

@pytest.fixture(scope="function")
def payment_service(db_session: AsyncSession) -> PaymentService:
    return PaymentService(db_session)

@pytest.fixture(scope="function")
def fee_setup_service(db_session: AsyncSession) -> FeeSetupService:
    return FeeSetupService(db_session)

@pytest.fixture(scope="function")
def expense_service(db_session: AsyncSession) -> ExpenseService:
    return ExpenseService(db_session)

@pytest.fixture(scope="function")
def financial_summary_service(db_session: AsyncSession) -> FinancialSummaryService:
    return FinancialSummaryService(db_session)

@pytest.fixture(scope="function")
def meeting_service(db_session: AsyncSession) -> MeetingService:
    return MeetingService(db_session)

@pytest.fixture(scope="function")
def chat_service(db_session: AsyncSession, user_service: UserService) -> ChatService:
    return ChatService(db_session, user_service)

@pytest.fixture(scope="function")
def catalog_service(db_session: AsyncSession) -> CatalogService:
    return CatalogService(db_session)


# --- 4. API Client ---

@pytest.fixture(scope="function")
async def client(db_session: AsyncSession, session_factory) -> AsyncGenerator[httpx.AsyncClient, None]:
    """
    An AsyncClient talking to the app in-process. `get_db_session` is
    overridden to hand out the test session with the same
    commit-or-rollback behaviour as the real dependency.
    """
    async def override_get_db_session() -> AsyncGenerator[AsyncSession, None]:
        try:
            yield db_session
            await db_session.commit()
        except Exception:
            await db_session.rollback()
            raise

    app.dependency_overrides[get_db_session] = override_get_db_session
    app.dependency_overrides[get_session_factory] = lambda: session_factory

    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as test_client:
        yield test_client

    app.dependency_overrides.clear()
