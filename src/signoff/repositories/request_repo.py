"""Approval request repository."""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from signoff.db.models.request import ApprovalRequestRow
from signoff.repositories.base import BaseRepository


class ApprovalRequestRepository(BaseRepository[ApprovalRequestRow]):
    def __init__(self, session: AsyncSession):
        super().__init__(session, ApprovalRequestRow)

    async def get(self, request_uid: str) -> ApprovalRequestRow | None:
        return await self.get_by_id("request_uid", request_uid)

    async def list_filtered(
        self,
        status: str | None = None,
        process_uid: str | None = None,
    ) -> list[ApprovalRequestRow]:
        stmt = select(ApprovalRequestRow)
        if status is not None:
            stmt = stmt.where(ApprovalRequestRow.status == status)
        if process_uid is not None:
            stmt = stmt.where(ApprovalRequestRow.process_uid == process_uid)
        stmt = stmt.order_by(ApprovalRequestRow.created_at.asc(), ApprovalRequestRow.request_uid)
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def list_by_subject(self, subject_type: str, subject_uid: str) -> list[ApprovalRequestRow]:
        stmt = (
            select(ApprovalRequestRow)
            .where(
                ApprovalRequestRow.subject_type == subject_type,
                ApprovalRequestRow.subject_uid == subject_uid,
            )
            .order_by(ApprovalRequestRow.created_at.asc())
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())
