"""Approval comment thread repository."""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from signoff.db.models.request import ApprovalCommentRow
from signoff.repositories.base import BaseRepository


class ApprovalCommentRepository(BaseRepository[ApprovalCommentRow]):
    def __init__(self, session: AsyncSession):
        super().__init__(session, ApprovalCommentRow)

    async def append(self, comment: ApprovalCommentRow) -> ApprovalCommentRow:
        self.session.add(comment)
        await self.session.flush()
        return comment

    async def update(self, row, **kwargs):
        raise TypeError("approval comments are immutable")

    async def delete(self, row) -> None:
        raise TypeError("approval comments are immutable")

    async def list_by_request(self, request_uid: str) -> list[ApprovalCommentRow]:
        stmt = (
            select(ApprovalCommentRow)
            .where(ApprovalCommentRow.request_uid == request_uid)
            .order_by(ApprovalCommentRow.created_at.asc(), ApprovalCommentRow.id.asc())
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())
