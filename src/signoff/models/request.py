"""Pydantic models for ApprovalRequest, ApprovalLog and ApprovalComment."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from signoff.models.enums import LogAction, RequestStatus


class RequestCreate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    process_uid: str = Field(..., min_length=1, max_length=128)
    subject_type: str = Field(..., min_length=1, max_length=50)
    subject_uid: str = Field(..., min_length=1, max_length=128)
    requested_by: str = Field(..., min_length=1, max_length=128)


class TransitionBody(BaseModel):
    """Body for approve/reject/cancel.

    ``expected_version`` is the version the caller last observed; when given,
    the transition is refused if the request has moved on since.
    """

    model_config = ConfigDict(extra="forbid")

    actor_uid: str = Field(..., min_length=1, max_length=128)
    expected_version: int | None = Field(None, ge=1)
    note: str | None = Field(None, max_length=2000)


class CommentCreate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    author_uid: str = Field(..., min_length=1, max_length=128)
    content: str = Field(..., min_length=1, max_length=10000)


class RequestOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    request_uid: str
    process_uid: str
    current_step_uid: str | None
    status: RequestStatus
    subject_type: str
    subject_uid: str
    requested_by: str
    version: int
    created_at: datetime | None = None
    updated_at: datetime | None = None


class LogOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    log_uid: str
    request_uid: str
    actor_uid: str
    action: LogAction
    step_uid: str | None
    from_step_uid: str | None
    to_step_uid: str | None
    from_status: RequestStatus
    to_status: RequestStatus
    sequence: int
    note: str | None = None
    created_at: datetime


class CommentOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    comment_uid: str
    request_uid: str
    author_uid: str
    content: str
    created_at: datetime | None = None
