"""Read-only queries over the organization directory tables."""

from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from signoff.db.models.directory import EmployeeRoleRow, EmployeeRow, OrgUnitMemberRow


class DirectoryRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def active_role_holders(self, role_uid: str, organization_uid: str | None) -> set[str]:
        """Active employees holding ``role_uid`` globally or within ``organization_uid``."""
        scope_clause = EmployeeRoleRow.organization_uid.is_(None)
        if organization_uid is not None:
            scope_clause = or_(scope_clause, EmployeeRoleRow.organization_uid == organization_uid)
        stmt = (
            select(EmployeeRoleRow.employee_uid)
            .join(EmployeeRow, EmployeeRow.employee_uid == EmployeeRoleRow.employee_uid)
            .where(EmployeeRoleRow.role_uid == role_uid, scope_clause, EmployeeRow.is_active.is_(True))
        )
        result = await self.session.execute(stmt)
        return set(result.scalars().all())

    async def active_unit_members(self, org_unit_uid: str) -> set[str]:
        stmt = (
            select(OrgUnitMemberRow.employee_uid)
            .join(EmployeeRow, EmployeeRow.employee_uid == OrgUnitMemberRow.employee_uid)
            .where(OrgUnitMemberRow.org_unit_uid == org_unit_uid, EmployeeRow.is_active.is_(True))
        )
        result = await self.session.execute(stmt)
        return set(result.scalars().all())

    async def is_active_employee(self, employee_uid: str) -> bool:
        stmt = select(EmployeeRow.is_active).where(EmployeeRow.employee_uid == employee_uid)
        result = await self.session.execute(stmt)
        return bool(result.scalar_one_or_none())
