"""Approval process catalog API routes."""

from fastapi import APIRouter, Response

from signoff.dependencies import Catalog
from signoff.models.process import (
    ProcessCreate,
    ProcessOut,
    ProcessUpdate,
    ResponsibilityCreate,
    ResponsibilityOut,
    ResponsibilityUpdate,
    StepCreate,
    StepOut,
    StepUpdate,
)
from signoff.services.selectors import parse_selector

router = APIRouter(tags=["Approval Processes"])

_PRIMARY_FIELDS = {"role_uid", "org_unit_uid", "employee_uid"}
_FALLBACK_FIELDS = {"fallback_role_uid", "fallback_org_unit_uid", "fallback_employee_uid"}


def _process(row) -> dict:
    return ProcessOut.model_validate(row).model_dump(mode="json")


def _step(row) -> dict:
    return StepOut.model_validate(row).model_dump(mode="json")


def _responsibility(row) -> dict:
    return ResponsibilityOut.model_validate(row).model_dump(mode="json")


@router.get("/approval-processes")
async def list_processes(catalog: Catalog, organization_uid: str | None = None) -> list[dict]:
    return [_process(p) for p in await catalog.list_processes(organization_uid)]


@router.post("/approval-processes", status_code=201)
async def define_process(body: ProcessCreate, catalog: Catalog) -> dict:
    process = await catalog.define_process(
        organization_uid=body.organization_uid,
        name=body.name,
        description=body.description,
        extra_data=body.extra_data,
    )
    return _process(process)


@router.get("/approval-processes/{process_uid}")
async def get_process(process_uid: str, catalog: Catalog) -> dict:
    return _process(await catalog.get_process(process_uid))


@router.patch("/approval-processes/{process_uid}")
async def update_process(process_uid: str, body: ProcessUpdate, catalog: Catalog) -> dict:
    process = await catalog.update_process(process_uid, **body.model_dump(exclude_unset=True))
    return _process(process)


@router.delete("/approval-processes/{process_uid}", status_code=204)
async def delete_process(process_uid: str, catalog: Catalog) -> Response:
    await catalog.soft_delete_process(process_uid)
    return Response(status_code=204)


@router.post("/approval-processes/{process_uid}/publish")
async def publish_process(process_uid: str, catalog: Catalog) -> dict:
    return _process(await catalog.publish(process_uid))


@router.get("/approval-processes/{process_uid}/steps")
async def list_steps(process_uid: str, catalog: Catalog) -> list[dict]:
    return [_step(s) for s in await catalog.list_steps(process_uid)]


@router.post("/approval-processes/{process_uid}/steps", status_code=201)
async def add_step(process_uid: str, body: StepCreate, catalog: Catalog) -> dict:
    step = await catalog.add_step(
        process_uid,
        step_order=body.step_order,
        step_type=body.step_type,
        description=body.description,
        extra_data=body.extra_data,
    )
    return _step(step)


@router.get("/approval-steps/{step_uid}")
async def get_step(step_uid: str, catalog: Catalog) -> dict:
    return _step(await catalog.get_step(step_uid))


@router.patch("/approval-steps/{step_uid}")
async def update_step(step_uid: str, body: StepUpdate, catalog: Catalog) -> dict:
    step = await catalog.update_step(step_uid, **body.model_dump(exclude_unset=True))
    return _step(step)


@router.delete("/approval-steps/{step_uid}", status_code=204)
async def remove_step(step_uid: str, catalog: Catalog) -> Response:
    await catalog.remove_step(step_uid)
    return Response(status_code=204)


@router.get("/approval-steps/{step_uid}/responsibilities")
async def list_responsibilities(step_uid: str, catalog: Catalog) -> list[dict]:
    return [_responsibility(r) for r in await catalog.list_responsibilities(step_uid)]


@router.post("/approval-steps/{step_uid}/responsibilities", status_code=201)
async def add_responsibility(step_uid: str, body: ResponsibilityCreate, catalog: Catalog) -> dict:
    primary = parse_selector(body.role_uid, body.org_unit_uid, body.employee_uid, label="primary selector")
    fallback = parse_selector(
        body.fallback_role_uid,
        body.fallback_org_unit_uid,
        body.fallback_employee_uid,
        label="fallback selector",
    )
    responsibility = await catalog.add_responsibility(
        step_uid,
        primary=primary,
        action=body.action,
        fallback=fallback,
        extra_data=body.extra_data,
    )
    return _responsibility(responsibility)


@router.get("/approval-responsibilities/{responsibility_uid}")
async def get_responsibility(responsibility_uid: str, catalog: Catalog) -> dict:
    return _responsibility(await catalog.get_responsibility(responsibility_uid))


@router.patch("/approval-responsibilities/{responsibility_uid}")
async def update_responsibility(responsibility_uid: str, body: ResponsibilityUpdate, catalog: Catalog) -> dict:
    sent = body.model_fields_set
    changes = {key: getattr(body, key) for key in ("action", "extra_data") if key in sent}
    if sent & _PRIMARY_FIELDS:
        changes["primary"] = parse_selector(
            body.role_uid, body.org_unit_uid, body.employee_uid, label="primary selector"
        )
    if sent & _FALLBACK_FIELDS:
        changes["fallback"] = parse_selector(
            body.fallback_role_uid,
            body.fallback_org_unit_uid,
            body.fallback_employee_uid,
            label="fallback selector",
        )
    return _responsibility(await catalog.update_responsibility(responsibility_uid, **changes))


@router.delete("/approval-responsibilities/{responsibility_uid}", status_code=204)
async def remove_responsibility(responsibility_uid: str, catalog: Catalog) -> Response:
    await catalog.remove_responsibility(responsibility_uid)
    return Response(status_code=204)
