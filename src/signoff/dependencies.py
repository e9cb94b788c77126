"""FastAPI dependency injection providers."""

from collections.abc import AsyncGenerator
from typing import Annotated

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from signoff.config import settings
from signoff.services.catalog import ProcessCatalog
from signoff.services.directory import OrgDirectory, SqlOrgDirectory
from signoff.services.workflow import ApprovalWorkflowService


async def get_db(request: Request) -> AsyncGenerator:
    """Yield a database session from the app's session factory."""
    session_factory = request.app.state.db_session_factory
    async with session_factory() as session:
        yield session


def get_trace_id(request: Request) -> str:
    """Extract trace_id from request state (set by middleware)."""
    return getattr(request.state, "trace_id", "trc_unknown")


async def get_org_directory(request: Request, db: AsyncSession = Depends(get_db)) -> OrgDirectory:
    """Use an app-provided directory when one is installed, else the SQL read model."""
    directory = getattr(request.app.state, "org_directory", None)
    if directory is not None:
        return directory
    return SqlOrgDirectory(db)


async def get_catalog(db: AsyncSession = Depends(get_db)) -> ProcessCatalog:
    return ProcessCatalog(db)


async def get_workflow_service(
    db: AsyncSession = Depends(get_db),
    directory: OrgDirectory = Depends(get_org_directory),
) -> ApprovalWorkflowService:
    return ApprovalWorkflowService(db, directory, admin_principals=settings.admin_principals)


# Type aliases for dependency injection
TraceId = Annotated[str, Depends(get_trace_id)]
Catalog = Annotated[ProcessCatalog, Depends(get_catalog)]
Workflow = Annotated[ApprovalWorkflowService, Depends(get_workflow_service)]
