"""Conversion between selector column triplets and PrincipalSelector values."""

from signoff.db.models.process import ApprovalResponsibilityRow
from signoff.errors.exceptions import ValidationError
from signoff.models.enums import SelectorKind
from signoff.models.process import PrincipalSelector


def parse_selector(
    role_uid: str | None,
    org_unit_uid: str | None,
    employee_uid: str | None,
    *,
    label: str = "selector",
) -> PrincipalSelector | None:
    """Build a selector from its three nullable columns.

    Returns None when all three are empty. Raises ValidationError when more
    than one is populated.
    """
    populated = [
        (kind, uid)
        for kind, uid in (
            (SelectorKind.ROLE, role_uid),
            (SelectorKind.ORG_UNIT, org_unit_uid),
            (SelectorKind.EMPLOYEE, employee_uid),
        )
        if uid
    ]
    if not populated:
        return None
    if len(populated) > 1:
        raise ValidationError(
            f"{label} must reference exactly one of role, org unit or employee",
            details={"populated": [str(kind) for kind, _ in populated]},
        )
    kind, uid = populated[0]
    return PrincipalSelector(kind=kind, uid=uid)


def selector_columns(selector: PrincipalSelector | None, *, prefix: str = "") -> dict[str, str | None]:
    """Inverse of parse_selector: column values for a (possibly absent) selector."""
    columns = {
        f"{prefix}role_uid": None,
        f"{prefix}org_unit_uid": None,
        f"{prefix}employee_uid": None,
    }
    if selector is not None:
        columns[f"{prefix}{selector.kind}_uid"] = selector.uid
    return columns


def primary_selector(row: ApprovalResponsibilityRow) -> PrincipalSelector | None:
    return parse_selector(row.role_uid, row.org_unit_uid, row.employee_uid, label="primary selector")


def fallback_selector(row: ApprovalResponsibilityRow) -> PrincipalSelector | None:
    return parse_selector(
        row.fallback_role_uid,
        row.fallback_org_unit_uid,
        row.fallback_employee_uid,
        label="fallback selector",
    )


def usable_selectors(row: ApprovalResponsibilityRow) -> tuple[PrincipalSelector | None, PrincipalSelector | None]:
    """Well-formed (primary, fallback) pair; malformed halves come back as None.

    A fallback identical to the primary adds nothing and is dropped.
    """
    try:
        primary = primary_selector(row)
    except ValidationError:
        primary = None
    try:
        fallback = fallback_selector(row)
    except ValidationError:
        fallback = None
    if fallback is not None and fallback == primary:
        fallback = None
    return primary, fallback
