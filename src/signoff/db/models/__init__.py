"""SQLAlchemy ORM models - import all to register with Base.metadata."""

from signoff.db.models.process import (
    ApprovalProcessRow,
    ApprovalResponsibilityRow,
    ApprovalStepRow,
)
from signoff.db.models.request import ApprovalCommentRow, ApprovalLogRow, ApprovalRequestRow
from signoff.db.models.directory import EmployeeRoleRow, EmployeeRow, OrgUnitMemberRow

__all__ = [
    "ApprovalProcessRow",
    "ApprovalStepRow",
    "ApprovalResponsibilityRow",
    "ApprovalRequestRow",
    "ApprovalLogRow",
    "ApprovalCommentRow",
    "EmployeeRow",
    "EmployeeRoleRow",
    "OrgUnitMemberRow",
]
