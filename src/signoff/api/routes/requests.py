"""Approval request API routes: lifecycle transitions, audit log and comments."""

from fastapi import APIRouter

from signoff.dependencies import TraceId, Workflow
from signoff.logging_config import bind_request_context
from signoff.models.enums import RequestStatus
from signoff.models.request import (
    CommentCreate,
    CommentOut,
    LogOut,
    RequestCreate,
    RequestOut,
    TransitionBody,
)

router = APIRouter(tags=["Approval Requests"])


def _request(row) -> dict:
    return RequestOut.model_validate(row).model_dump(mode="json")


@router.get("/approval-requests")
async def list_requests(
    workflow: Workflow,
    status: RequestStatus | None = None,
    process_uid: str | None = None,
) -> list[dict]:
    return [_request(r) for r in await workflow.list_requests(status=status, process_uid=process_uid)]


@router.post("/approval-requests", status_code=201)
async def create_request(body: RequestCreate, workflow: Workflow) -> dict:
    request = await workflow.create_request(
        process_uid=body.process_uid,
        subject_type=body.subject_type,
        subject_uid=body.subject_uid,
        requested_by=body.requested_by,
    )
    return _request(request)


@router.get("/approval-requests/subject/{subject_type}/{subject_uid}")
async def list_requests_for_subject(subject_type: str, subject_uid: str, workflow: Workflow) -> list[dict]:
    return [_request(r) for r in await workflow.list_requests_for_subject(subject_type, subject_uid)]


@router.get("/approval-requests/actionable/{actor_uid}")
async def list_actionable(actor_uid: str, workflow: Workflow) -> list[dict]:
    return [_request(r) for r in await workflow.list_actionable(actor_uid)]


@router.get("/approval-requests/{request_uid}")
async def get_request(request_uid: str, workflow: Workflow) -> dict:
    return _request(await workflow.get_request(request_uid))


@router.get("/approval-requests/{request_uid}/eligible")
async def get_eligible_principals(request_uid: str, workflow: Workflow) -> dict:
    resolution = await workflow.eligible_principals(request_uid)
    return {
        "request_uid": request_uid,
        "tier": resolution.tier,
        "principals": sorted(resolution.principals),
    }


@router.post("/approval-requests/{request_uid}/approve")
async def approve_request(
    request_uid: str, body: TransitionBody, workflow: Workflow, trace_id: TraceId
) -> dict:
    bind_request_context(trace_id, actor_uid=body.actor_uid)
    request = await workflow.approve(
        request_uid, body.actor_uid, expected_version=body.expected_version, note=body.note
    )
    return _request(request)


@router.post("/approval-requests/{request_uid}/reject")
async def reject_request(
    request_uid: str, body: TransitionBody, workflow: Workflow, trace_id: TraceId
) -> dict:
    bind_request_context(trace_id, actor_uid=body.actor_uid)
    request = await workflow.reject(
        request_uid, body.actor_uid, expected_version=body.expected_version, note=body.note
    )
    return _request(request)


@router.post("/approval-requests/{request_uid}/cancel")
async def cancel_request(
    request_uid: str, body: TransitionBody, workflow: Workflow, trace_id: TraceId
) -> dict:
    bind_request_context(trace_id, actor_uid=body.actor_uid)
    request = await workflow.cancel(
        request_uid, body.actor_uid, expected_version=body.expected_version, note=body.note
    )
    return _request(request)


@router.get("/approval-requests/{request_uid}/logs")
async def list_logs(request_uid: str, workflow: Workflow) -> list[dict]:
    return [LogOut.model_validate(entry).model_dump(mode="json") for entry in await workflow.list_logs(request_uid)]


@router.get("/approval-requests/{request_uid}/comments")
async def list_comments(request_uid: str, workflow: Workflow) -> list[dict]:
    return [CommentOut.model_validate(c).model_dump(mode="json") for c in await workflow.list_comments(request_uid)]


@router.post("/approval-requests/{request_uid}/comments", status_code=201)
async def add_comment(request_uid: str, body: CommentCreate, workflow: Workflow, trace_id: TraceId) -> dict:
    bind_request_context(trace_id, actor_uid=body.author_uid)
    comment = await workflow.add_comment(request_uid, body.author_uid, body.content)
    return CommentOut.model_validate(comment).model_dump(mode="json")
