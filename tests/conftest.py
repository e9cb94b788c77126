"""Shared test fixtures."""

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from signoff.db.base import Base
# Import all models to register with Base.metadata
import signoff.db.models  # noqa: F401
from signoff.models.enums import SelectorKind
from signoff.models.process import PrincipalSelector
from signoff.services.catalog import ProcessCatalog
from signoff.services.directory import StaticOrgDirectory
from signoff.services.workflow import ApprovalWorkflowService

ORG = "org_acme"


@pytest.fixture
async def db_engine():
    """Create an in-memory SQLite async engine for testing."""
    engine = create_async_engine("sqlite+aiosqlite:///", echo=False)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
async def db_session(db_engine):
    """Create a test database session."""
    session_factory = async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)
    async with session_factory() as session:
        yield session


@pytest.fixture
def directory():
    """Directory with a manager, a finance role holder and a finance unit."""
    return (
        StaticOrgDirectory()
        .add_employee("emp_requester")
        .grant_role("emp_manager", "role_manager", scope=ORG)
        .grant_role("emp_cfo", "role_finance", scope=ORG)
        .add_to_unit("emp_analyst", "unit_finance")
        .add_employee("emp_outsider")
    )


@pytest.fixture
def catalog(db_session):
    return ProcessCatalog(db_session)


@pytest.fixture
def workflow(db_session, directory):
    return ApprovalWorkflowService(db_session, directory, admin_principals=["emp_admin"])


@pytest.fixture
async def two_step_process(catalog):
    """Published process: manager approves, then finance approves."""
    process = await catalog.define_process(ORG, "Purchase order approval")
    manager_step = await catalog.add_step(process.process_uid, step_order=1)
    finance_step = await catalog.add_step(process.process_uid, step_order=2)
    await catalog.add_responsibility(manager_step.step_uid, primary=_role("role_manager"))
    await catalog.add_responsibility(finance_step.step_uid, primary=_role("role_finance"))
    await catalog.publish(process.process_uid)
    return process, manager_step, finance_step


def _role(uid):
    return PrincipalSelector(kind=SelectorKind.ROLE, uid=uid)


@pytest.fixture
def app(db_engine, directory):
    """Create a test application instance with in-memory DB."""
    from signoff.main import create_app

    _app = create_app()
    session_factory = async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)
    _app.state.db_engine = db_engine
    _app.state.db_session_factory = session_factory
    _app.state.org_directory = directory
    return _app


@pytest.fixture
async def client(app):
    """Async HTTP test client."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
