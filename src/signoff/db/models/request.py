"""Approval request, audit log and comment tables."""

from sqlalchemy import ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from signoff.db.base import Base, CreatedAtMixin, TimestampMixin


class ApprovalRequestRow(Base, TimestampMixin):
    __tablename__ = "approval_requests"

    request_uid: Mapped[str] = mapped_column(String(128), primary_key=True)
    process_uid: Mapped[str] = mapped_column(
        String(128), ForeignKey("approval_processes.process_uid"), nullable=False, index=True
    )
    current_step_uid: Mapped[str | None] = mapped_column(
        String(128), ForeignKey("approval_steps.step_uid"), nullable=True
    )
    status: Mapped[str] = mapped_column(String(20), nullable=False, index=True)
    subject_type: Mapped[str] = mapped_column(String(50), nullable=False)
    subject_uid: Mapped[str] = mapped_column(String(128), nullable=False, index=True)
    requested_by: Mapped[str] = mapped_column(String(128), nullable=False)
    version: Mapped[int] = mapped_column(Integer, nullable=False)

    # Every flush of a changed row becomes UPDATE ... WHERE version = <loaded>
    __mapper_args__ = {"version_id_col": version}


class ApprovalLogRow(Base, CreatedAtMixin):
    __tablename__ = "approval_logs"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    log_uid: Mapped[str] = mapped_column(String(128), unique=True, nullable=False)
    request_uid: Mapped[str] = mapped_column(
        String(128), ForeignKey("approval_requests.request_uid"), nullable=False, index=True
    )
    actor_uid: Mapped[str] = mapped_column(String(128), nullable=False)
    action: Mapped[str] = mapped_column(String(20), nullable=False)
    step_uid: Mapped[str | None] = mapped_column(String(128), nullable=True)
    from_step_uid: Mapped[str | None] = mapped_column(String(128), nullable=True)
    to_step_uid: Mapped[str | None] = mapped_column(String(128), nullable=True)
    from_status: Mapped[str] = mapped_column(String(20), nullable=False)
    to_status: Mapped[str] = mapped_column(String(20), nullable=False)
    sequence: Mapped[int] = mapped_column(Integer, nullable=False)
    note: Mapped[str | None] = mapped_column(Text, nullable=True)


class ApprovalCommentRow(Base, CreatedAtMixin):
    __tablename__ = "approval_comments"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    comment_uid: Mapped[str] = mapped_column(String(128), unique=True, nullable=False)
    request_uid: Mapped[str] = mapped_column(
        String(128), ForeignKey("approval_requests.request_uid"), nullable=False, index=True
    )
    author_uid: Mapped[str] = mapped_column(String(128), nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False)
