"""Process catalog: defines approval processes and freezes them on publish."""

import logging
from typing import Any

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.exc import StaleDataError

from signoff.db.base import utc_now
from signoff.db.models.process import (
    ApprovalProcessRow,
    ApprovalResponsibilityRow,
    ApprovalStepRow,
)
from signoff.errors.exceptions import InvalidTransitionError, NotFoundError, ValidationError
from signoff.models.enums import ProcessStatus
from signoff.models.process import PrincipalSelector
from signoff.repositories.process_repo import (
    ApprovalProcessRepository,
    ApprovalResponsibilityRepository,
    ApprovalStepRepository,
)
from signoff.services.id_generator import (
    PROCESS_PREFIX,
    RESPONSIBILITY_PREFIX,
    STEP_PREFIX,
    generate_id,
)
from signoff.services.selectors import selector_columns, usable_selectors

logger = logging.getLogger(__name__)


def find_definition_violations(
    steps: list[ApprovalStepRow],
    responsibilities_by_step: dict[str, list[ApprovalResponsibilityRow]],
) -> list[str]:
    """Return every structural problem that blocks publishing.

    ``steps`` must be sorted by step_order.
    """
    violations: list[str] = []
    if not steps:
        return ["process has no steps"]

    previous: int | None = None
    for step in steps:
        if step.step_order < 1:
            violations.append(f"step {step.step_uid} has non-positive step_order {step.step_order}")
        if previous is not None and step.step_order <= previous:
            violations.append(
                f"step {step.step_uid} step_order {step.step_order} does not follow {previous}"
            )
        previous = step.step_order

        usable = [
            row for row in responsibilities_by_step.get(step.step_uid, [])
            if any(selector is not None for selector in usable_selectors(row))
        ]
        if not usable:
            violations.append(f"step {step.step_uid} has no responsibility with a well-formed selector")
    return violations



def _check_changes(changes: dict[str, Any], *, required: set[str], optional: set[str]) -> None:
    """Reject unknown fields and nulls for fields that cannot be cleared."""
    unknown = sorted(set(changes) - required - optional)
    if unknown:
        raise ValidationError(f"Unknown fields: {', '.join(unknown)}", details={"fields": unknown})
    nulled = sorted(key for key in required if key in changes and changes[key] is None)
    if nulled:
        raise ValidationError(f"Fields may not be null: {', '.join(nulled)}", details={"fields": nulled})


class ProcessCatalog:
    """Create, inspect and publish approval process definitions.

    Steps and responsibilities may only change while the process is DRAFT.
    A published definition is frozen; a changed workflow is a new process.

    Every write that depends on the process being DRAFT also writes the
    process row, whose version column turns a concurrent publish (or a
    concurrent edit racing a publish) into a refused stale write.
    """

    def __init__(self, session: AsyncSession):
        self.session = session
        self._processes = ApprovalProcessRepository(session)
        self._steps = ApprovalStepRepository(session)
        self._responsibilities = ApprovalResponsibilityRepository(session)

    # -- processes -----------------------------------------------------------

    async def define_process(
        self,
        organization_uid: str,
        name: str,
        description: str | None = None,
        extra_data: dict[str, Any] | None = None,
    ) -> ApprovalProcessRow:
        process = await self._processes.create(
            process_uid=generate_id(PROCESS_PREFIX),
            organization_uid=organization_uid,
            name=name,
            description=description,
            status=ProcessStatus.DRAFT,
            is_active=True,
            extra_data=extra_data,
        )
        await self.session.commit()
        logger.info(
            "approval_process_defined",
            extra={"process_uid": process.process_uid, "organization_uid": organization_uid},
        )
        return process

    async def get_process(self, process_uid: str) -> ApprovalProcessRow:
        process = await self._processes.get(process_uid)
        if process is None:
            raise NotFoundError("Approval process", process_uid)
        return process

    async def list_processes(self, organization_uid: str | None = None) -> list[ApprovalProcessRow]:
        return await self._processes.list_live(organization_uid)

    async def update_process(self, process_uid: str, **changes: Any) -> ApprovalProcessRow:
        """Update descriptive fields; these carry no workflow meaning and stay editable.

        Accepts ``name``, ``is_active``, ``description`` and ``extra_data``.
        Passing None for the last two clears them.
        """
        _check_changes(changes, required={"name", "is_active"}, optional={"description", "extra_data"})
        process = await self._live_process(process_uid)
        if changes:
            await self._write_process(process, **changes)
            await self.session.commit()
        return process

    async def soft_delete_process(self, process_uid: str) -> ApprovalProcessRow:
        """Retire a process. It stays readable so in-flight requests still resolve."""
        process = await self._live_process(process_uid)
        await self._write_process(process, deleted_at=utc_now(), is_active=False)
        await self.session.commit()
        logger.info("approval_process_deleted", extra={"process_uid": process_uid})
        return process

    # -- steps ---------------------------------------------------------------

    async def add_step(
        self,
        process_uid: str,
        step_order: int,
        step_type: str = "review",
        description: str | None = None,
        extra_data: dict[str, Any] | None = None,
    ) -> ApprovalStepRow:
        process = await self._draft_process(process_uid)
        await self._check_step_order(process.process_uid, step_order)
        await self._touch(process)
        try:
            step = await self._steps.create(
                step_uid=generate_id(STEP_PREFIX),
                process_uid=process_uid,
                step_order=step_order,
                step_type=step_type,
                description=description,
                extra_data=extra_data,
            )
        except IntegrityError as exc:
            await self.session.rollback()
            raise _duplicate_step_order(process_uid, step_order) from exc
        await self.session.commit()
        return step

    async def get_step(self, step_uid: str) -> ApprovalStepRow:
        step = await self._steps.get(step_uid)
        if step is None:
            raise NotFoundError("Approval step", step_uid)
        return step

    async def list_steps(self, process_uid: str) -> list[ApprovalStepRow]:
        await self.get_process(process_uid)
        return await self._steps.list_by_process(process_uid)

    async def update_step(self, step_uid: str, **changes: Any) -> ApprovalStepRow:
        """Accepts ``step_order``, ``step_type``, ``description`` and ``extra_data``.

        Passing None for the last two clears them.
        """
        _check_changes(changes, required={"step_order", "step_type"}, optional={"description", "extra_data"})
        step = await self.get_step(step_uid)
        process_uid = step.process_uid
        process = await self._draft_process(process_uid)
        step_order = changes.get("step_order")
        if step_order is not None and step_order != step.step_order:
            await self._check_step_order(process_uid, step_order)
        if changes:
            await self._touch(process)
            try:
                await self._steps.update(step, **changes)
            except IntegrityError as exc:
                await self.session.rollback()
                raise _duplicate_step_order(process_uid, step_order) from exc
            await self.session.commit()
        return step

    async def remove_step(self, step_uid: str) -> None:
        step = await self.get_step(step_uid)
        process = await self._draft_process(step.process_uid)
        await self._touch(process)
        for row in await self._responsibilities.list_by_step(step_uid):
            await self._responsibilities.delete(row)
        await self._steps.delete(step)
        await self.session.commit()

    # -- responsibilities ----------------------------------------------------

    async def add_responsibility(
        self,
        step_uid: str,
        primary: PrincipalSelector | None,
        action: str = "approve",
        fallback: PrincipalSelector | None = None,
        extra_data: dict[str, Any] | None = None,
    ) -> ApprovalResponsibilityRow:
        _check_selectors(step_uid, primary, fallback)
        step = await self.get_step(step_uid)
        process = await self._draft_process(step.process_uid)
        await self._touch(process)
        responsibility = await self._responsibilities.create(
            responsibility_uid=generate_id(RESPONSIBILITY_PREFIX),
            step_uid=step_uid,
            action=action,
            extra_data=extra_data,
            **selector_columns(primary),
            **selector_columns(fallback, prefix="fallback_"),
        )
        await self.session.commit()
        return responsibility

    async def get_responsibility(self, responsibility_uid: str) -> ApprovalResponsibilityRow:
        responsibility = await self._responsibilities.get(responsibility_uid)
        if responsibility is None:
            raise NotFoundError("Approval responsibility", responsibility_uid)
        return responsibility

    async def list_responsibilities(self, step_uid: str) -> list[ApprovalResponsibilityRow]:
        await self.get_step(step_uid)
        return await self._responsibilities.list_by_step(step_uid)

    async def update_responsibility(self, responsibility_uid: str, **changes: Any) -> ApprovalResponsibilityRow:
        """Accepts ``primary``, ``fallback``, ``action`` and ``extra_data``.

        Selectors are replaced whole. ``fallback=None`` removes the fallback,
        ``extra_data=None`` clears it.
        """
        _check_changes(changes, required={"primary", "action"}, optional={"fallback", "extra_data"})
        responsibility = await self.get_responsibility(responsibility_uid)
        step_uid = responsibility.step_uid
        step = await self.get_step(step_uid)
        process = await self._draft_process(step.process_uid)

        current_primary, current_fallback = usable_selectors(responsibility)
        primary = changes.pop("primary", current_primary)
        fallback = changes.pop("fallback", current_fallback)
        _check_selectors(step_uid, primary, fallback)

        await self._touch(process)
        await self._responsibilities.update(
            responsibility,
            **changes,
            **selector_columns(primary),
            **selector_columns(fallback, prefix="fallback_"),
        )
        await self.session.commit()
        return responsibility

    async def remove_responsibility(self, responsibility_uid: str) -> None:
        responsibility = await self.get_responsibility(responsibility_uid)
        step = await self.get_step(responsibility.step_uid)
        process = await self._draft_process(step.process_uid)
        await self._touch(process)
        await self._responsibilities.delete(responsibility)
        await self.session.commit()

    # -- publishing ----------------------------------------------------------

    async def publish(self, process_uid: str) -> ApprovalProcessRow:
        process = await self._draft_process(process_uid)
        steps = await self._steps.list_by_process(process_uid)
        responsibilities_by_step = {
            step.step_uid: await self._responsibilities.list_by_step(step.step_uid)
            for step in steps
        }
        violations = find_definition_violations(steps, responsibilities_by_step)
        if violations:
            raise ValidationError(
                f"Approval process '{process_uid}' cannot be published",
                details={"process_uid": process_uid, "violations": violations},
            )
        await self._write_process(process, status=ProcessStatus.PUBLISHED, published_at=utc_now())
        await self.session.commit()
        logger.info(
            "approval_process_published",
            extra={"process_uid": process_uid, "step_count": len(steps), "version": process.version},
        )
        return process

    # -- helpers -------------------------------------------------------------

    async def _live_process(self, process_uid: str) -> ApprovalProcessRow:
        process = await self.get_process(process_uid)
        if process.is_deleted:
            raise InvalidTransitionError(
                f"Approval process '{process_uid}' is deleted",
                details={"process_uid": process_uid},
            )
        return process

    async def _draft_process(self, process_uid: str) -> ApprovalProcessRow:
        process = await self._live_process(process_uid)
        if process.status != ProcessStatus.DRAFT:
            raise InvalidTransitionError(
                f"Approval process '{process_uid}' is published and its definition is frozen",
                details={"process_uid": process_uid, "status": process.status},
            )
        return process

    async def _write_process(self, process: ApprovalProcessRow, **changes: Any) -> None:
        """Flush a change to the process row, guarded by its version column."""
        process_uid = process.process_uid
        observed_version = process.version
        try:
            await self._processes.update(process, **changes)
        except StaleDataError as exc:
            # rollback expires the row; only the captured values are safe to use
            await self.session.rollback()
            logger.warning(
                "approval_process_conflict",
                extra={"process_uid": process_uid, "expected_version": observed_version},
            )
            raise InvalidTransitionError(
                f"Approval process '{process_uid}' was changed concurrently",
                details={"process_uid": process_uid, "expected_version": observed_version},
            ) from exc

    async def _touch(self, process: ApprovalProcessRow) -> None:
        await self._write_process(process, updated_at=utc_now())

    async def _check_step_order(self, process_uid: str, step_order: int) -> None:
        if step_order < 1:
            raise ValidationError(
                "step_order must be a positive integer",
                details={"process_uid": process_uid, "step_order": step_order},
            )
        existing = await self._steps.list_by_process(process_uid)
        if any(step.step_order == step_order for step in existing):
            raise _duplicate_step_order(process_uid, step_order)


def _check_selectors(
    step_uid: str,
    primary: PrincipalSelector | None,
    fallback: PrincipalSelector | None,
) -> None:
    if primary is None:
        raise ValidationError(
            "primary selector must reference exactly one of role, org unit or employee",
            details={"step_uid": step_uid},
        )
    if fallback is not None and fallback == primary:
        raise ValidationError(
            "fallback selector must differ from the primary selector",
            details={"step_uid": step_uid, "selector": str(primary)},
        )


def _duplicate_step_order(process_uid: str, step_order: int | None) -> ValidationError:
    return ValidationError(
        f"step_order {step_order} is already used in process '{process_uid}'",
        details={"process_uid": process_uid, "step_order": step_order},
    )
