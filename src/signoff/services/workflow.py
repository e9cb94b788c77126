"""Approval request state machine.

PENDING is the only non-terminal status and is parameterized by the current
step. approve() walks the process's steps in ascending step_order and ends in
APPROVED; reject() and cancel() end the request immediately. Every transition
is one unit of work: the request row (guarded by its version column) and the
audit log entry are flushed and committed together, or not at all.
"""

import logging
from collections.abc import Iterable

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.exc import StaleDataError

from signoff.db.base import utc_now
from signoff.db.models.process import ApprovalStepRow
from signoff.db.models.request import ApprovalCommentRow, ApprovalLogRow, ApprovalRequestRow
from signoff.errors.exceptions import (
    AuthorizationError,
    ConcurrentModificationError,
    InvalidTransitionError,
    NotFoundError,
    UnresolvableStepError,
    ValidationError,
)
from signoff.models.enums import (
    TERMINAL_STATUSES,
    LogAction,
    ProcessStatus,
    RequestStatus,
    ResolutionTier,
)
from signoff.repositories.comment_repo import ApprovalCommentRepository
from signoff.repositories.log_repo import ApprovalLogRepository
from signoff.repositories.process_repo import ApprovalProcessRepository, ApprovalStepRepository
from signoff.repositories.request_repo import ApprovalRequestRepository
from signoff.services.directory import OrgDirectory
from signoff.services.id_generator import COMMENT_PREFIX, LOG_PREFIX, REQUEST_PREFIX, generate_id
from signoff.services.resolver import Resolution, ResponsibilityResolver

logger = logging.getLogger(__name__)


class ApprovalWorkflowService:
    def __init__(
        self,
        session: AsyncSession,
        directory: OrgDirectory,
        admin_principals: Iterable[str] = (),
    ):
        self.session = session
        self._processes = ApprovalProcessRepository(session)
        self._steps = ApprovalStepRepository(session)
        self._requests = ApprovalRequestRepository(session)
        self._logs = ApprovalLogRepository(session)
        self._comments = ApprovalCommentRepository(session)
        self._resolver = ResponsibilityResolver(session, directory)
        self._admin_principals = frozenset(admin_principals)

    # -- creation and queries ------------------------------------------------

    async def create_request(
        self,
        process_uid: str,
        subject_type: str,
        subject_uid: str,
        requested_by: str,
    ) -> ApprovalRequestRow:
        """Start a PENDING request at the process's lowest step_order."""
        process = await self._processes.get(process_uid)
        if process is None:
            raise NotFoundError("Approval process", process_uid)
        if process.status != ProcessStatus.PUBLISHED or process.is_deleted or not process.is_active:
            raise ValidationError(
                f"Approval process '{process_uid}' is not published and active",
                details={
                    "process_uid": process_uid,
                    "status": process.status,
                    "is_active": process.is_active,
                    "deleted": process.is_deleted,
                },
            )
        first_step = await self._steps.first_step(process_uid)
        if first_step is None:
            raise ValidationError(
                f"Approval process '{process_uid}' has no steps",
                details={"process_uid": process_uid},
            )
        request = await self._requests.create(
            request_uid=generate_id(REQUEST_PREFIX),
            process_uid=process_uid,
            current_step_uid=first_step.step_uid,
            status=RequestStatus.PENDING,
            subject_type=subject_type,
            subject_uid=subject_uid,
            requested_by=requested_by,
        )
        await self.session.commit()
        logger.info(
            "approval_request_created",
            extra={
                "request_uid": request.request_uid,
                "process_uid": process_uid,
                "subject": f"{subject_type}:{subject_uid}",
                "step_uid": first_step.step_uid,
            },
        )
        return request

    async def get_request(self, request_uid: str) -> ApprovalRequestRow:
        return await self._load_request(request_uid)

    async def list_requests(
        self,
        status: RequestStatus | None = None,
        process_uid: str | None = None,
    ) -> list[ApprovalRequestRow]:
        return await self._requests.list_filtered(status=status, process_uid=process_uid)

    async def list_requests_for_subject(self, subject_type: str, subject_uid: str) -> list[ApprovalRequestRow]:
        return await self._requests.list_by_subject(subject_type, subject_uid)

    async def eligible_principals(self, request_uid: str) -> Resolution:
        """Who may approve or reject the request right now."""
        request = await self._load_request(request_uid)
        if request.status in TERMINAL_STATUSES:
            return Resolution(frozenset(), ResolutionTier.NONE)
        step = await self._current_step(request)
        return await self._resolver.resolve(step)

    async def list_actionable(self, actor_uid: str) -> list[ApprovalRequestRow]:
        """Pending requests whose current step the actor may act on now.

        Requests whose step resolves to nobody are skipped, not reported.
        """
        actionable = []
        for request in await self._requests.list_filtered(status=RequestStatus.PENDING):
            if request.current_step_uid is None:
                continue
            step = await self._steps.get(request.current_step_uid)
            if step is None:
                continue
            if actor_uid in await self._resolver.resolve_eligible_principals(step):
                actionable.append(request)
        return actionable

    # -- transitions ---------------------------------------------------------

    async def approve(
        self,
        request_uid: str,
        actor_uid: str,
        *,
        expected_version: int | None = None,
        note: str | None = None,
    ) -> ApprovalRequestRow:
        request = await self._load_request(request_uid)
        self._check_version(request, expected_version)
        self._require_pending(request, LogAction.APPROVE)
        step = await self._current_step(request)
        resolution = await self._authorize(request, step, actor_uid)

        next_step = await self._steps.next_after(step.process_uid, step.step_order)
        if next_step is None:
            to_status, to_step_uid = RequestStatus.APPROVED, None
        else:
            to_status, to_step_uid = RequestStatus.PENDING, next_step.step_uid

        return await self._commit_transition(
            request,
            actor_uid=actor_uid,
            action=LogAction.APPROVE,
            acted_step_uid=step.step_uid,
            to_status=to_status,
            to_step_uid=to_step_uid,
            note=note,
            tier=resolution.tier,
        )

    async def reject(
        self,
        request_uid: str,
        actor_uid: str,
        *,
        expected_version: int | None = None,
        note: str | None = None,
    ) -> ApprovalRequestRow:
        request = await self._load_request(request_uid)
        self._check_version(request, expected_version)
        self._require_pending(request, LogAction.REJECT)
        step = await self._current_step(request)
        resolution = await self._authorize(request, step, actor_uid)

        # The request keeps pointing at the step that rejected it
        return await self._commit_transition(
            request,
            actor_uid=actor_uid,
            action=LogAction.REJECT,
            acted_step_uid=step.step_uid,
            to_status=RequestStatus.REJECTED,
            to_step_uid=step.step_uid,
            note=note,
            tier=resolution.tier,
        )

    async def cancel(
        self,
        request_uid: str,
        actor_uid: str,
        *,
        expected_version: int | None = None,
        note: str | None = None,
        is_admin: bool = False,
    ) -> ApprovalRequestRow:
        """Withdraw a pending request. Not gated by the resolver.

        Allowed for the requester and for configured admin principals. Callers
        with their own permission layer may vouch for an actor via ``is_admin``.
        """
        request = await self._load_request(request_uid)
        self._check_version(request, expected_version)
        self._require_pending(request, LogAction.CANCEL)
        if not (is_admin or actor_uid == request.requested_by or actor_uid in self._admin_principals):
            raise AuthorizationError(
                "Only the requester or an administrator may cancel an approval request",
                details={"request_uid": request_uid, "actor_uid": actor_uid},
            )
        return await self._commit_transition(
            request,
            actor_uid=actor_uid,
            action=LogAction.CANCEL,
            acted_step_uid=request.current_step_uid,
            to_status=RequestStatus.CANCELED,
            to_step_uid=request.current_step_uid,
            note=note,
            tier=None,
        )

    # -- audit log and comments ----------------------------------------------

    async def list_logs(self, request_uid: str) -> list[ApprovalLogRow]:
        await self._load_request(request_uid)
        return await self._logs.list_by_request(request_uid)

    async def add_comment(self, request_uid: str, author_uid: str, text: str) -> ApprovalCommentRow:
        """Comments are allowed in every status and never touch the request row."""
        if not text or not text.strip():
            raise ValidationError("Comment content must not be empty", details={"request_uid": request_uid})
        await self._load_request(request_uid)
        comment = await self._comments.append(
            ApprovalCommentRow(
                comment_uid=generate_id(COMMENT_PREFIX),
                request_uid=request_uid,
                author_uid=author_uid,
                content=text,
                created_at=utc_now(),
            )
        )
        await self.session.commit()
        return comment

    async def list_comments(self, request_uid: str) -> list[ApprovalCommentRow]:
        await self._load_request(request_uid)
        return await self._comments.list_by_request(request_uid)

    # -- helpers -------------------------------------------------------------

    async def _load_request(self, request_uid: str) -> ApprovalRequestRow:
        # populate_existing: always check against the stored row, not an identity-map copy
        stmt = (
            select(ApprovalRequestRow)
            .where(ApprovalRequestRow.request_uid == request_uid)
            .execution_options(populate_existing=True)
        )
        result = await self.session.execute(stmt)
        request = result.scalar_one_or_none()
        if request is None:
            raise NotFoundError("Approval request", request_uid)
        return request

    async def _stored_version(self, request_uid: str) -> int | None:
        stmt = select(ApprovalRequestRow.version).where(ApprovalRequestRow.request_uid == request_uid)
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    def _check_version(self, request: ApprovalRequestRow, expected_version: int | None) -> None:
        if expected_version is not None and expected_version != request.version:
            raise ConcurrentModificationError(request.request_uid, expected_version, request.version)

    def _require_pending(self, request: ApprovalRequestRow, action: LogAction) -> None:
        if request.status != RequestStatus.PENDING:
            raise InvalidTransitionError(
                f"Cannot {action.lower()} approval request in status {request.status}",
                details={
                    "request_uid": request.request_uid,
                    "status": request.status,
                    "action": action,
                },
            )

    async def _current_step(self, request: ApprovalRequestRow) -> ApprovalStepRow:
        if request.current_step_uid is None:
            raise InvalidTransitionError(
                "Pending approval request has no current step",
                details={"request_uid": request.request_uid},
            )
        step = await self._steps.get(request.current_step_uid)
        if step is None:
            raise NotFoundError("Approval step", request.current_step_uid)
        return step

    async def _authorize(
        self,
        request: ApprovalRequestRow,
        step: ApprovalStepRow,
        actor_uid: str,
    ) -> Resolution:
        resolution = await self._resolver.resolve(step)
        if resolution.is_empty:
            raise UnresolvableStepError(request.request_uid, step.step_uid)
        if actor_uid not in resolution.principals:
            raise AuthorizationError(
                f"Actor '{actor_uid}' is not eligible to act on step '{step.step_uid}'",
                details={
                    "request_uid": request.request_uid,
                    "step_uid": step.step_uid,
                    "actor_uid": actor_uid,
                },
            )
        return resolution

    async def _commit_transition(
        self,
        request: ApprovalRequestRow,
        *,
        actor_uid: str,
        action: LogAction,
        acted_step_uid: str | None,
        to_status: RequestStatus,
        to_step_uid: str | None,
        note: str | None,
        tier: ResolutionTier | None,
    ) -> ApprovalRequestRow:
        request_uid = request.request_uid
        observed_version = request.version
        from_status = request.status
        from_step_uid = request.current_step_uid

        request.status = to_status
        request.current_step_uid = to_step_uid
        await self._logs.append(
            ApprovalLogRow(
                log_uid=generate_id(LOG_PREFIX),
                request_uid=request_uid,
                actor_uid=actor_uid,
                action=action,
                step_uid=acted_step_uid,
                from_step_uid=from_step_uid,
                to_step_uid=to_step_uid,
                from_status=from_status,
                to_status=to_status,
                sequence=observed_version + 1,
                note=note,
                created_at=utc_now(),
            )
        )
        try:
            await self.session.flush()
        except StaleDataError as exc:
            await self.session.rollback()
            actual_version = await self._stored_version(request_uid)
            logger.warning(
                "approval_transition_conflict",
                extra={
                    "request_uid": request_uid,
                    "action": action,
                    "actor_uid": actor_uid,
                    "expected_version": observed_version,
                    "actual_version": actual_version,
                },
            )
            raise ConcurrentModificationError(request_uid, observed_version, actual_version) from exc
        await self.session.commit()

        logger.info(
            "approval_transition",
            extra={
                "request_uid": request_uid,
                "action": action,
                "actor_uid": actor_uid,
                "from_step_uid": from_step_uid,
                "to_step_uid": to_step_uid,
                "from_status": from_status,
                "to_status": to_status,
                "version": request.version,
                "resolution_tier": tier,
            },
        )
        return request
