"""Pydantic models for ApprovalProcess, ApprovalStep and ApprovalResponsibility."""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from signoff.models.enums import ProcessStatus, SelectorKind


class PrincipalSelector(BaseModel):
    """Tagged reference to who may act: exactly one role, org unit or employee."""

    model_config = ConfigDict(frozen=True)

    kind: SelectorKind
    uid: str = Field(..., min_length=1, max_length=128)

    def __str__(self) -> str:
        return f"{self.kind}:{self.uid}"


class ProcessCreate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    organization_uid: str = Field(..., min_length=1, max_length=128)
    name: str = Field(..., min_length=1, max_length=200)
    description: str | None = Field(None, max_length=2000)
    extra_data: dict[str, Any] | None = None


class ProcessUpdate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    name: str | None = Field(None, min_length=1, max_length=200)
    description: str | None = Field(None, max_length=2000)
    is_active: bool | None = None
    extra_data: dict[str, Any] | None = None


class StepCreate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    step_order: int = Field(..., ge=1)
    step_type: str = Field("review", min_length=1, max_length=50)
    description: str | None = Field(None, max_length=2000)
    extra_data: dict[str, Any] | None = None


class StepUpdate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    step_order: int | None = Field(None, ge=1)
    step_type: str | None = Field(None, min_length=1, max_length=50)
    description: str | None = Field(None, max_length=2000)
    extra_data: dict[str, Any] | None = None


class ResponsibilityCreate(BaseModel):
    """Selector columns as flat optional fields; exactly one primary must be set."""

    model_config = ConfigDict(extra="forbid")

    role_uid: str | None = None
    org_unit_uid: str | None = None
    employee_uid: str | None = None
    action: str = Field("approve", min_length=1, max_length=50)
    fallback_role_uid: str | None = None
    fallback_org_unit_uid: str | None = None
    fallback_employee_uid: str | None = None
    extra_data: dict[str, Any] | None = None


class ResponsibilityUpdate(BaseModel):
    """Partial update. Sending any primary field replaces the whole primary
    selector; likewise for the fallback, where all-null clears it."""

    model_config = ConfigDict(extra="forbid")

    role_uid: str | None = None
    org_unit_uid: str | None = None
    employee_uid: str | None = None
    action: str | None = Field(None, min_length=1, max_length=50)
    fallback_role_uid: str | None = None
    fallback_org_unit_uid: str | None = None
    fallback_employee_uid: str | None = None
    extra_data: dict[str, Any] | None = None


class ResponsibilityOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    responsibility_uid: str
    step_uid: str
    role_uid: str | None
    org_unit_uid: str | None
    employee_uid: str | None
    action: str
    fallback_role_uid: str | None
    fallback_org_unit_uid: str | None
    fallback_employee_uid: str | None
    extra_data: dict[str, Any] | None = None


class StepOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    step_uid: str
    process_uid: str
    step_order: int
    step_type: str
    description: str | None = None
    extra_data: dict[str, Any] | None = None


class ProcessOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    process_uid: str
    organization_uid: str
    name: str
    description: str | None = None
    status: ProcessStatus
    is_active: bool
    version: int
    published_at: datetime | None = None
    deleted_at: datetime | None = None
    extra_data: dict[str, Any] | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
