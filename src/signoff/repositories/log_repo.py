"""Append-only audit log repository."""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from signoff.db.models.request import ApprovalLogRow
from signoff.repositories.base import BaseRepository


class ApprovalLogRepository(BaseRepository[ApprovalLogRow]):
    """Audit entries are inserted once and never updated or removed."""

    def __init__(self, session: AsyncSession):
        super().__init__(session, ApprovalLogRow)

    async def append(self, entry: ApprovalLogRow) -> ApprovalLogRow:
        """Stage an entry in the current unit of work; the caller flushes and commits."""
        self.session.add(entry)
        return entry

    async def update(self, row, **kwargs):
        raise TypeError("approval log entries are immutable")

    async def delete(self, row) -> None:
        raise TypeError("approval log entries are immutable")

    async def list_by_request(self, request_uid: str) -> list[ApprovalLogRow]:
        stmt = (
            select(ApprovalLogRow)
            .where(ApprovalLogRow.request_uid == request_uid)
            .order_by(ApprovalLogRow.created_at.asc(), ApprovalLogRow.sequence.asc())
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())
