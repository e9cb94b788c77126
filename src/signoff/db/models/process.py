"""Approval process definition tables."""

from datetime import datetime

from sqlalchemy import JSON, Boolean, DateTime, ForeignKey, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from signoff.db.base import Base, SoftDeleteMixin, TimestampMixin


class ApprovalProcessRow(Base, TimestampMixin, SoftDeleteMixin):
    __tablename__ = "approval_processes"

    process_uid: Mapped[str] = mapped_column(String(128), primary_key=True)
    organization_uid: Mapped[str] = mapped_column(String(128), nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    status: Mapped[str] = mapped_column(String(20), nullable=False)  # DRAFT, PUBLISHED
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    published_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    extra_data: Mapped[dict | None] = mapped_column(JSON, nullable=True)
    version: Mapped[int] = mapped_column(Integer, nullable=False)

    # Definition edits and publish both write this row, so they serialize on it
    __mapper_args__ = {"version_id_col": version}


class ApprovalStepRow(Base, TimestampMixin):
    __tablename__ = "approval_steps"
    __table_args__ = (UniqueConstraint("process_uid", "step_order", name="uq_approval_steps_order"),)

    step_uid: Mapped[str] = mapped_column(String(128), primary_key=True)
    process_uid: Mapped[str] = mapped_column(
        String(128), ForeignKey("approval_processes.process_uid"), nullable=False, index=True
    )
    step_order: Mapped[int] = mapped_column(Integer, nullable=False)
    step_type: Mapped[str] = mapped_column(String(50), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    extra_data: Mapped[dict | None] = mapped_column(JSON, nullable=True)


class ApprovalResponsibilityRow(Base, TimestampMixin):
    __tablename__ = "approval_responsibilities"

    responsibility_uid: Mapped[str] = mapped_column(String(128), primary_key=True)
    step_uid: Mapped[str] = mapped_column(
        String(128), ForeignKey("approval_steps.step_uid"), nullable=False, index=True
    )
    # Primary selector: exactly one of the three is set
    role_uid: Mapped[str | None] = mapped_column(String(128), nullable=True)
    org_unit_uid: Mapped[str | None] = mapped_column(String(128), nullable=True)
    employee_uid: Mapped[str | None] = mapped_column(String(128), nullable=True)
    action: Mapped[str] = mapped_column(String(50), nullable=False)
    # Fallback selector: none, or exactly one
    fallback_role_uid: Mapped[str | None] = mapped_column(String(128), nullable=True)
    fallback_org_unit_uid: Mapped[str | None] = mapped_column(String(128), nullable=True)
    fallback_employee_uid: Mapped[str | None] = mapped_column(String(128), nullable=True)
    extra_data: Mapped[dict | None] = mapped_column(JSON, nullable=True)
