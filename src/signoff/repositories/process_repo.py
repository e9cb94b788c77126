"""Approval process, step and responsibility repositories."""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from signoff.db.models.process import (
    ApprovalProcessRow,
    ApprovalResponsibilityRow,
    ApprovalStepRow,
)
from signoff.repositories.base import BaseRepository


class ApprovalProcessRepository(BaseRepository[ApprovalProcessRow]):
    def __init__(self, session: AsyncSession):
        super().__init__(session, ApprovalProcessRow)

    async def get(self, process_uid: str) -> ApprovalProcessRow | None:
        return await self.get_by_id("process_uid", process_uid)

    async def list_live(self, organization_uid: str | None = None) -> list[ApprovalProcessRow]:
        """List processes that have not been soft-deleted."""
        stmt = select(ApprovalProcessRow).where(ApprovalProcessRow.deleted_at.is_(None))
        if organization_uid is not None:
            stmt = stmt.where(ApprovalProcessRow.organization_uid == organization_uid)
        stmt = stmt.order_by(ApprovalProcessRow.created_at.asc(), ApprovalProcessRow.process_uid)
        result = await self.session.execute(stmt)
        return list(result.scalars().all())


class ApprovalStepRepository(BaseRepository[ApprovalStepRow]):
    def __init__(self, session: AsyncSession):
        super().__init__(session, ApprovalStepRow)

    async def get(self, step_uid: str) -> ApprovalStepRow | None:
        return await self.get_by_id("step_uid", step_uid)

    async def list_by_process(self, process_uid: str) -> list[ApprovalStepRow]:
        """Steps of a process in ascending step_order."""
        stmt = (
            select(ApprovalStepRow)
            .where(ApprovalStepRow.process_uid == process_uid)
            .order_by(ApprovalStepRow.step_order.asc())
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def first_step(self, process_uid: str) -> ApprovalStepRow | None:
        steps = await self.list_by_process(process_uid)
        return steps[0] if steps else None

    async def next_after(self, process_uid: str, step_order: int) -> ApprovalStepRow | None:
        """Step with the smallest step_order strictly greater than ``step_order``."""
        stmt = (
            select(ApprovalStepRow)
            .where(
                ApprovalStepRow.process_uid == process_uid,
                ApprovalStepRow.step_order > step_order,
            )
            .order_by(ApprovalStepRow.step_order.asc())
            .limit(1)
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()


class ApprovalResponsibilityRepository(BaseRepository[ApprovalResponsibilityRow]):
    def __init__(self, session: AsyncSession):
        super().__init__(session, ApprovalResponsibilityRow)

    async def get(self, responsibility_uid: str) -> ApprovalResponsibilityRow | None:
        return await self.get_by_id("responsibility_uid", responsibility_uid)

    async def list_by_step(self, step_uid: str) -> list[ApprovalResponsibilityRow]:
        stmt = (
            select(ApprovalResponsibilityRow)
            .where(ApprovalResponsibilityRow.step_uid == step_uid)
            .order_by(ApprovalResponsibilityRow.created_at.asc())
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())
