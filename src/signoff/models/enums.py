"""String enums for approval workflow entities."""

from enum import StrEnum


class ProcessStatus(StrEnum):
    DRAFT = "DRAFT"
    PUBLISHED = "PUBLISHED"


class RequestStatus(StrEnum):
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"
    CANCELED = "CANCELED"


TERMINAL_STATUSES = frozenset(
    {RequestStatus.APPROVED, RequestStatus.REJECTED, RequestStatus.CANCELED}
)


class SelectorKind(StrEnum):
    ROLE = "role"
    ORG_UNIT = "org_unit"
    EMPLOYEE = "employee"


class LogAction(StrEnum):
    APPROVE = "APPROVE"
    REJECT = "REJECT"
    CANCEL = "CANCEL"


class ResolutionTier(StrEnum):
    PRIMARY = "primary"
    FALLBACK = "fallback"
    NONE = "none"
