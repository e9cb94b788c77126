"""Responsibility resolver tests: primary union, fallback tier, scoping and determinism."""

import pytest

from signoff.db.models.directory import EmployeeRoleRow, EmployeeRow, OrgUnitMemberRow
from signoff.db.models.process import ApprovalResponsibilityRow
from signoff.models.enums import ResolutionTier, SelectorKind
from signoff.models.process import PrincipalSelector
from signoff.services.directory import SqlOrgDirectory, StaticOrgDirectory
from signoff.services.resolver import ResponsibilityResolver, expand_selector, resolve_responsibilities

ORG = "org_acme"


def responsibility(uid="aresp_test", fallback=None, **primary):
    columns = {f"fallback_{k}": v for k, v in (fallback or {}).items()}
    return ApprovalResponsibilityRow(
        responsibility_uid=uid, step_uid="astep_test", action="approve", **primary, **columns
    )


@pytest.fixture
def org():
    return (
        StaticOrgDirectory()
        .grant_role("emp_a", "role_manager", scope=ORG)
        .grant_role("emp_b", "role_manager", scope="org_other")
        .grant_role("emp_c", "role_auditor")
        .add_to_unit("emp_d", "unit_finance")
        .add_to_unit("emp_e", "unit_finance")
        .add_employee("emp_f")
    )


@pytest.mark.asyncio
async def test_role_expansion_is_scoped_to_organization(org):
    members = await expand_selector(PrincipalSelector(kind=SelectorKind.ROLE, uid="role_manager"), org, ORG)
    assert members == {"emp_a"}

    # A role granted without scope applies everywhere
    auditors = await expand_selector(PrincipalSelector(kind=SelectorKind.ROLE, uid="role_auditor"), org, ORG)
    assert auditors == {"emp_c"}


@pytest.mark.asyncio
async def test_primary_selectors_are_unioned(org):
    rows = [
        responsibility("aresp_1", role_uid="role_manager"),
        responsibility("aresp_2", org_unit_uid="unit_finance"),
        responsibility("aresp_3", employee_uid="emp_f", fallback={"role_uid": "role_auditor"}),
    ]
    resolution = await resolve_responsibilities(rows, org, ORG)
    assert resolution.tier == ResolutionTier.PRIMARY
    assert resolution.principals == {"emp_a", "emp_d", "emp_e", "emp_f"}


@pytest.mark.asyncio
async def test_fallback_used_only_when_primary_union_is_empty(org):
    rows = [
        responsibility("aresp_1", role_uid="role_vacant", fallback={"employee_uid": "emp_f"}),
        responsibility("aresp_2", org_unit_uid="unit_empty", fallback={"role_uid": "role_auditor"}),
    ]
    resolution = await resolve_responsibilities(rows, org, ORG)
    assert resolution.tier == ResolutionTier.FALLBACK
    assert resolution.principals == {"emp_f", "emp_c"}

    # One non-empty primary suppresses every fallback
    rows.append(responsibility("aresp_3", employee_uid="emp_a"))
    resolution = await resolve_responsibilities(rows, org, ORG)
    assert resolution.tier == ResolutionTier.PRIMARY
    assert resolution.principals == {"emp_a"}


@pytest.mark.asyncio
async def test_nobody_resolves_to_empty(org):
    rows = [responsibility(role_uid="role_vacant", fallback={"org_unit_uid": "unit_empty"})]
    resolution = await resolve_responsibilities(rows, org, ORG)
    assert resolution.is_empty
    assert resolution.tier == ResolutionTier.NONE


@pytest.mark.asyncio
async def test_malformed_primary_half_is_ignored(org):
    rows = [
        responsibility(role_uid="role_manager", employee_uid="emp_f", fallback={"employee_uid": "emp_c"}),
    ]
    resolution = await resolve_responsibilities(rows, org, ORG)
    assert resolution.tier == ResolutionTier.FALLBACK
    assert resolution.principals == {"emp_c"}


@pytest.mark.asyncio
async def test_inactive_and_unknown_employees_excluded(org):
    org.deactivate("emp_a")
    rows = [
        responsibility("aresp_1", role_uid="role_manager"),
        responsibility("aresp_2", employee_uid="emp_ghost"),
    ]
    resolution = await resolve_responsibilities(rows, org, ORG)
    assert resolution.is_empty


@pytest.mark.asyncio
async def test_resolution_is_deterministic_and_reflects_directory_changes(org):
    rows = [responsibility(org_unit_uid="unit_finance")]
    first = await resolve_responsibilities(rows, org, ORG)
    second = await resolve_responsibilities(rows, org, ORG)
    assert first == second

    org.remove_from_unit("emp_d", "unit_finance")
    third = await resolve_responsibilities(rows, org, ORG)
    assert third.principals == {"emp_e"}


@pytest.mark.asyncio
async def test_persisted_step_resolves_through_sql_directory(catalog, db_session):
    db_session.add_all([
        EmployeeRow(employee_uid="emp_sql_mgr", organization_uid=ORG, display_name="Manager", is_active=True),
        EmployeeRow(employee_uid="emp_sql_old", organization_uid=ORG, display_name="Former", is_active=False),
        EmployeeRow(employee_uid="emp_sql_fin", organization_uid=ORG, display_name="Finance", is_active=True),
    ])
    await db_session.flush()
    db_session.add_all([
        EmployeeRoleRow(employee_uid="emp_sql_mgr", role_uid="role_manager", organization_uid=ORG),
        EmployeeRoleRow(employee_uid="emp_sql_old", role_uid="role_manager", organization_uid=ORG),
        OrgUnitMemberRow(org_unit_uid="unit_finance", employee_uid="emp_sql_fin"),
    ])
    await db_session.commit()

    process = await catalog.define_process(ORG, "SQL backed")
    step = await catalog.add_step(process.process_uid, step_order=1)
    await catalog.add_responsibility(step.step_uid, primary=PrincipalSelector(kind=SelectorKind.ROLE, uid="role_manager"))
    await catalog.add_responsibility(step.step_uid, primary=PrincipalSelector(kind=SelectorKind.ORG_UNIT, uid="unit_finance"))

    resolver = ResponsibilityResolver(db_session, SqlOrgDirectory(db_session))
    assert await resolver.resolve_eligible_principals(step) == {"emp_sql_mgr", "emp_sql_fin"}
