"""Responsibility resolver: expands step selectors into eligible principals.

Resolution rules:
- Every responsibility's primary selector is expanded and the results unioned
- Only if that union is empty are the fallback selectors expanded instead
- An empty result is returned as-is; callers decide that it is an error
- Nothing is cached: each call reads the directory's current state
"""

from dataclasses import dataclass

from sqlalchemy.ext.asyncio import AsyncSession

from signoff.db.models.process import ApprovalResponsibilityRow, ApprovalStepRow
from signoff.models.enums import ResolutionTier, SelectorKind
from signoff.models.process import PrincipalSelector
from signoff.repositories.process_repo import (
    ApprovalProcessRepository,
    ApprovalResponsibilityRepository,
)
from signoff.services.directory import OrgDirectory
from signoff.services.selectors import usable_selectors


@dataclass(frozen=True)
class Resolution:
    principals: frozenset[str]
    tier: ResolutionTier

    @property
    def is_empty(self) -> bool:
        return not self.principals


async def expand_selector(
    selector: PrincipalSelector,
    directory: OrgDirectory,
    scope: str | None,
) -> set[str]:
    """Expand one selector to the employee ids it currently denotes."""
    if selector.kind == SelectorKind.ROLE:
        return set(await directory.members_with_role(selector.uid, scope))
    if selector.kind == SelectorKind.ORG_UNIT:
        return set(await directory.members_of_unit(selector.uid))
    if selector.kind == SelectorKind.EMPLOYEE:
        return {selector.uid} if await directory.employee_exists(selector.uid) else set()
    raise ValueError(f"Unknown selector kind: {selector.kind}")


async def resolve_responsibilities(
    responsibilities: list[ApprovalResponsibilityRow],
    directory: OrgDirectory,
    scope: str | None,
) -> Resolution:
    """Apply primary-then-fallback expansion across a step's responsibilities."""
    pairs = [usable_selectors(row) for row in responsibilities]

    primary: set[str] = set()
    for selector, _ in pairs:
        if selector is not None:
            primary |= await expand_selector(selector, directory, scope)
    if primary:
        return Resolution(frozenset(primary), ResolutionTier.PRIMARY)

    fallback: set[str] = set()
    for _, selector in pairs:
        if selector is not None:
            fallback |= await expand_selector(selector, directory, scope)
    if fallback:
        return Resolution(frozenset(fallback), ResolutionTier.FALLBACK)

    return Resolution(frozenset(), ResolutionTier.NONE)


class ResponsibilityResolver:
    """Resolves eligible principals for persisted steps.

    Role lookups are scoped to the organization that owns the step's process.
    """

    def __init__(self, session: AsyncSession, directory: OrgDirectory):
        self._processes = ApprovalProcessRepository(session)
        self._responsibilities = ApprovalResponsibilityRepository(session)
        self._directory = directory

    async def resolve(self, step: ApprovalStepRow) -> Resolution:
        process = await self._processes.get(step.process_uid)
        scope = process.organization_uid if process is not None else None
        responsibilities = await self._responsibilities.list_by_step(step.step_uid)
        return await resolve_responsibilities(responsibilities, self._directory, scope)

    async def resolve_eligible_principals(self, step: ApprovalStepRow) -> frozenset[str]:
        resolution = await self.resolve(step)
        return resolution.principals
