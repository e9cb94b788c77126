"""Read model of the organization directory (employees, roles, org units).

These tables are owned and written by the master-data services; the engine
only reads them to resolve responsibilities.
"""

from sqlalchemy import Boolean, ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from signoff.db.base import Base, TimestampMixin


class EmployeeRow(Base, TimestampMixin):
    __tablename__ = "employees"

    employee_uid: Mapped[str] = mapped_column(String(128), primary_key=True)
    organization_uid: Mapped[str | None] = mapped_column(String(128), nullable=True, index=True)
    display_name: Mapped[str] = mapped_column(String(200), nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)


class EmployeeRoleRow(Base, TimestampMixin):
    __tablename__ = "employee_roles"
    __table_args__ = (
        UniqueConstraint("employee_uid", "role_uid", "organization_uid", name="uq_employee_roles"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    employee_uid: Mapped[str] = mapped_column(
        String(128), ForeignKey("employees.employee_uid"), nullable=False, index=True
    )
    role_uid: Mapped[str] = mapped_column(String(128), nullable=False, index=True)
    # NULL scope means the role is held in every organization
    organization_uid: Mapped[str | None] = mapped_column(String(128), nullable=True)


class OrgUnitMemberRow(Base, TimestampMixin):
    __tablename__ = "org_unit_members"
    __table_args__ = (
        UniqueConstraint("org_unit_uid", "employee_uid", name="uq_org_unit_members"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    org_unit_uid: Mapped[str] = mapped_column(String(128), nullable=False, index=True)
    employee_uid: Mapped[str] = mapped_column(
        String(128), ForeignKey("employees.employee_uid"), nullable=False, index=True
    )
