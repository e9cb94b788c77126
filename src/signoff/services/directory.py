"""Organization directory collaborators used by the responsibility resolver.

The engine never computes role or org-unit membership itself; it asks an
``OrgDirectory``. Both implementations here are read-only from the engine's
point of view and answer from current state on every call.
"""

from collections import defaultdict
from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from signoff.repositories.directory_repo import DirectoryRepository


class OrgDirectory(Protocol):
    async def members_with_role(self, role_uid: str, scope: str | None) -> set[str]: ...

    async def members_of_unit(self, org_unit_uid: str) -> set[str]: ...

    async def employee_exists(self, employee_uid: str) -> bool: ...


class SqlOrgDirectory:
    """Directory backed by the employees / employee_roles / org_unit_members tables."""

    def __init__(self, session: AsyncSession):
        self._repo = DirectoryRepository(session)

    async def members_with_role(self, role_uid: str, scope: str | None) -> set[str]:
        return await self._repo.active_role_holders(role_uid, scope)

    async def members_of_unit(self, org_unit_uid: str) -> set[str]:
        return await self._repo.active_unit_members(org_unit_uid)

    async def employee_exists(self, employee_uid: str) -> bool:
        return await self._repo.is_active_employee(employee_uid)


class StaticOrgDirectory:
    """Mutable in-memory directory snapshot, for tests and local scripts."""

    def __init__(self) -> None:
        self._active: dict[str, bool] = {}
        # role_uid -> {(employee_uid, scope)}; scope None means every organization
        self._roles: dict[str, set[tuple[str, str | None]]] = defaultdict(set)
        self._units: dict[str, set[str]] = defaultdict(set)

    def add_employee(self, employee_uid: str, active: bool = True) -> "StaticOrgDirectory":
        self._active[employee_uid] = active
        return self

    def deactivate(self, employee_uid: str) -> "StaticOrgDirectory":
        self._active[employee_uid] = False
        return self

    def grant_role(self, employee_uid: str, role_uid: str, scope: str | None = None) -> "StaticOrgDirectory":
        self._active.setdefault(employee_uid, True)
        self._roles[role_uid].add((employee_uid, scope))
        return self

    def revoke_role(self, employee_uid: str, role_uid: str, scope: str | None = None) -> "StaticOrgDirectory":
        self._roles[role_uid].discard((employee_uid, scope))
        return self

    def add_to_unit(self, employee_uid: str, org_unit_uid: str) -> "StaticOrgDirectory":
        self._active.setdefault(employee_uid, True)
        self._units[org_unit_uid].add(employee_uid)
        return self

    def remove_from_unit(self, employee_uid: str, org_unit_uid: str) -> "StaticOrgDirectory":
        self._units[org_unit_uid].discard(employee_uid)
        return self

    async def members_with_role(self, role_uid: str, scope: str | None) -> set[str]:
        return {
            employee_uid
            for employee_uid, held_scope in self._roles.get(role_uid, set())
            if (held_scope is None or held_scope == scope) and self._active.get(employee_uid, False)
        }

    async def members_of_unit(self, org_unit_uid: str) -> set[str]:
        return {uid for uid in self._units.get(org_unit_uid, set()) if self._active.get(uid, False)}

    async def employee_exists(self, employee_uid: str) -> bool:
        return self._active.get(employee_uid, False)
