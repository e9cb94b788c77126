"""HTTP tests for approval process and request routes."""

import pytest

API = "/api/v1"
ORG = "org_acme"


async def _publish_two_step_process(client) -> str:
    resp = await client.post(f"{API}/approval-processes", json={"organization_uid": ORG, "name": "PO approval"})
    assert resp.status_code == 201
    process_uid = resp.json()["process_uid"]

    for order, role_uid in ((1, "role_manager"), (2, "role_finance")):
        resp = await client.post(f"{API}/approval-processes/{process_uid}/steps", json={"step_order": order})
        assert resp.status_code == 201
        step_uid = resp.json()["step_uid"]
        resp = await client.post(
            f"{API}/approval-steps/{step_uid}/responsibilities",
            json={"role_uid": role_uid, "fallback_org_unit_uid": "unit_finance"},
        )
        assert resp.status_code == 201

    resp = await client.post(f"{API}/approval-processes/{process_uid}/publish")
    assert resp.status_code == 200
    assert resp.json()["status"] == "PUBLISHED"
    return process_uid


async def _create_request(client, process_uid) -> dict:
    resp = await client.post(
        f"{API}/approval-requests",
        json={
            "process_uid": process_uid,
            "subject_type": "purchase_order",
            "subject_uid": "po_77",
            "requested_by": "emp_requester",
        },
    )
    assert resp.status_code == 201
    return resp.json()


@pytest.mark.asyncio
async def test_full_approval_flow(client):
    process_uid = await _publish_two_step_process(client)
    request = await _create_request(client, process_uid)
    request_uid = request["request_uid"]
    assert request["status"] == "PENDING"
    assert request["version"] == 1

    resp = await client.get(f"{API}/approval-requests/{request_uid}/eligible")
    assert resp.json() == {"request_uid": request_uid, "tier": "primary", "principals": ["emp_manager"]}

    resp = await client.post(
        f"{API}/approval-requests/{request_uid}/approve",
        json={"actor_uid": "emp_manager", "expected_version": 1},
    )
    assert resp.status_code == 200
    assert resp.json()["status"] == "PENDING"
    assert resp.json()["version"] == 2

    resp = await client.get(f"{API}/approval-requests/actionable/emp_cfo")
    assert [r["request_uid"] for r in resp.json()] == [request_uid]

    resp = await client.post(f"{API}/approval-requests/{request_uid}/approve", json={"actor_uid": "emp_cfo"})
    assert resp.status_code == 200
    body = resp.json()
    assert body["status"] == "APPROVED"
    assert body["current_step_uid"] is None

    resp = await client.get(f"{API}/approval-requests/{request_uid}/logs")
    assert [entry["actor_uid"] for entry in resp.json()] == ["emp_manager", "emp_cfo"]

    resp = await client.get(f"{API}/approval-requests/subject/purchase_order/po_77")
    assert [r["request_uid"] for r in resp.json()] == [request_uid]


@pytest.mark.asyncio
async def test_error_envelopes(client):
    process_uid = await _publish_two_step_process(client)
    request_uid = (await _create_request(client, process_uid))["request_uid"]

    resp = await client.post(f"{API}/approval-requests/{request_uid}/approve", json={"actor_uid": "emp_outsider"})
    assert resp.status_code == 403
    error = resp.json()["error"]
    assert error["code"] == "AUTHORIZATION_ERROR"
    assert error["trace_id"] == resp.headers["X-Trace-Id"]

    resp = await client.post(
        f"{API}/approval-requests/{request_uid}/approve",
        json={"actor_uid": "emp_manager", "expected_version": 5},
    )
    assert resp.status_code == 409
    assert resp.json()["error"]["code"] == "CONCURRENT_MODIFICATION"

    resp = await client.post(f"{API}/approval-requests/{request_uid}/reject", json={"actor_uid": "emp_manager"})
    assert resp.status_code == 200
    resp = await client.post(f"{API}/approval-requests/{request_uid}/cancel", json={"actor_uid": "emp_requester"})
    assert resp.status_code == 409
    assert resp.json()["error"]["code"] == "INVALID_TRANSITION"

    resp = await client.get(f"{API}/approval-requests/areq_missing")
    assert resp.status_code == 404
    assert resp.json()["error"]["code"] == "NOT_FOUND"

    resp = await client.post(f"{API}/approval-requests/{request_uid}/approve", json={})
    assert resp.status_code == 400
    assert resp.json()["error"]["code"] == "VALIDATION_ERROR"


@pytest.mark.asyncio
async def test_unresolvable_step_returns_422(client, directory):
    process_uid = await _publish_two_step_process(client)
    request_uid = (await _create_request(client, process_uid))["request_uid"]
    directory.revoke_role("emp_manager", "role_manager", scope=ORG)
    directory.deactivate("emp_analyst")

    resp = await client.post(f"{API}/approval-requests/{request_uid}/approve", json={"actor_uid": "emp_manager"})
    assert resp.status_code == 422
    assert resp.json()["error"]["code"] == "UNRESOLVABLE_STEP"


@pytest.mark.asyncio
async def test_fallback_unit_acts_when_role_is_vacant(client, directory):
    process_uid = await _publish_two_step_process(client)
    request_uid = (await _create_request(client, process_uid))["request_uid"]
    directory.revoke_role("emp_manager", "role_manager", scope=ORG)

    resp = await client.get(f"{API}/approval-requests/{request_uid}/eligible")
    assert resp.json()["tier"] == "fallback"
    assert resp.json()["principals"] == ["emp_analyst"]

    resp = await client.post(f"{API}/approval-requests/{request_uid}/approve", json={"actor_uid": "emp_analyst"})
    assert resp.status_code == 200


@pytest.mark.asyncio
async def test_published_process_is_frozen(client):
    process_uid = await _publish_two_step_process(client)
    resp = await client.post(f"{API}/approval-processes/{process_uid}/steps", json={"step_order": 3})
    assert resp.status_code == 409

    resp = await client.get(f"{API}/approval-processes/{process_uid}/steps")
    step_uid = resp.json()[0]["step_uid"]
    resp = await client.delete(f"{API}/approval-steps/{step_uid}")
    assert resp.status_code == 409

    resp = await client.patch(f"{API}/approval-processes/{process_uid}", json={"name": "PO approval (2025)"})
    assert resp.status_code == 200
    assert resp.json()["name"] == "PO approval (2025)"


@pytest.mark.asyncio
async def test_publish_incomplete_process_returns_violations(client):
    resp = await client.post(f"{API}/approval-processes", json={"organization_uid": ORG, "name": "Incomplete"})
    process_uid = resp.json()["process_uid"]
    await client.post(f"{API}/approval-processes/{process_uid}/steps", json={"step_order": 1})

    resp = await client.post(f"{API}/approval-processes/{process_uid}/publish")
    assert resp.status_code == 400
    assert len(resp.json()["error"]["details"]["violations"]) == 1


@pytest.mark.asyncio
async def test_two_primary_selectors_rejected(client):
    resp = await client.post(f"{API}/approval-processes", json={"organization_uid": ORG, "name": "Bad selector"})
    process_uid = resp.json()["process_uid"]
    resp = await client.post(f"{API}/approval-processes/{process_uid}/steps", json={"step_order": 1})
    step_uid = resp.json()["step_uid"]

    resp = await client.post(
        f"{API}/approval-steps/{step_uid}/responsibilities",
        json={"role_uid": "role_manager", "employee_uid": "emp_manager"},
    )
    assert resp.status_code == 400


@pytest.mark.asyncio
async def test_delete_process_hides_it_from_listing(client):
    resp = await client.post(f"{API}/approval-processes", json={"organization_uid": ORG, "name": "Short lived"})
    process_uid = resp.json()["process_uid"]

    resp = await client.delete(f"{API}/approval-processes/{process_uid}")
    assert resp.status_code == 204
    resp = await client.get(f"{API}/approval-processes", params={"organization_uid": ORG})
    assert process_uid not in [p["process_uid"] for p in resp.json()]
    resp = await client.get(f"{API}/approval-processes/{process_uid}")
    assert resp.json()["deleted_at"] is not None


@pytest.mark.asyncio
async def test_comments_routes(client):
    process_uid = await _publish_two_step_process(client)
    request_uid = (await _create_request(client, process_uid))["request_uid"]

    resp = await client.post(
        f"{API}/approval-requests/{request_uid}/comments",
        json={"author_uid": "emp_manager", "content": "Need the vendor quote"},
    )
    assert resp.status_code == 201
    resp = await client.get(f"{API}/approval-requests/{request_uid}/comments")
    assert [c["content"] for c in resp.json()] == ["Need the vendor quote"]

    resp = await client.get(f"{API}/approval-requests/{request_uid}")
    assert resp.json()["version"] == 1


@pytest.mark.asyncio
async def test_list_requests_filters_by_status(client):
    process_uid = await _publish_two_step_process(client)
    first = (await _create_request(client, process_uid))["request_uid"]
    second = (await _create_request(client, process_uid))["request_uid"]
    await client.post(f"{API}/approval-requests/{second}/cancel", json={"actor_uid": "emp_requester"})

    resp = await client.get(f"{API}/approval-requests", params={"status": "PENDING"})
    assert [r["request_uid"] for r in resp.json()] == [first]
    resp = await client.get(f"{API}/approval-requests", params={"status": "CANCELED", "process_uid": process_uid})
    assert [r["request_uid"] for r in resp.json()] == [second]


async def _draft_step(client) -> tuple[str, str]:
    resp = await client.post(
        f"{API}/approval-processes",
        json={"organization_uid": ORG, "name": "Draft", "description": "To be cleared"},
    )
    process_uid = resp.json()["process_uid"]
    resp = await client.post(f"{API}/approval-processes/{process_uid}/steps", json={"step_order": 1})
    return process_uid, resp.json()["step_uid"]


@pytest.mark.asyncio
async def test_get_step_and_responsibility(client):
    _, step_uid = await _draft_step(client)
    resp = await client.post(
        f"{API}/approval-steps/{step_uid}/responsibilities", json={"role_uid": "role_manager"}
    )
    responsibility_uid = resp.json()["responsibility_uid"]

    resp = await client.get(f"{API}/approval-steps/{step_uid}")
    assert resp.status_code == 200
    assert resp.json()["step_order"] == 1

    resp = await client.get(f"{API}/approval-responsibilities/{responsibility_uid}")
    assert resp.status_code == 200
    assert resp.json()["role_uid"] == "role_manager"

    assert (await client.get(f"{API}/approval-steps/astep_missing")).status_code == 404
    assert (await client.get(f"{API}/approval-responsibilities/aresp_missing")).status_code == 404


@pytest.mark.asyncio
async def test_patch_responsibility(client):
    _, step_uid = await _draft_step(client)
    resp = await client.post(
        f"{API}/approval-steps/{step_uid}/responsibilities",
        json={"role_uid": "role_manager", "fallback_employee_uid": "emp_cfo"},
    )
    uid = resp.json()["responsibility_uid"]

    resp = await client.patch(f"{API}/approval-responsibilities/{uid}", json={"employee_uid": "emp_manager"})
    assert resp.status_code == 200
    body = resp.json()
    assert body["role_uid"] is None
    assert body["employee_uid"] == "emp_manager"
    assert body["fallback_employee_uid"] == "emp_cfo"

    resp = await client.patch(
        f"{API}/approval-responsibilities/{uid}", json={"fallback_employee_uid": None, "action": "review"}
    )
    assert resp.status_code == 200
    assert resp.json()["fallback_employee_uid"] is None
    assert resp.json()["action"] == "review"

    resp = await client.patch(
        f"{API}/approval-responsibilities/{uid}", json={"fallback_employee_uid": "emp_manager"}
    )
    assert resp.status_code == 400

    resp = await client.patch(
        f"{API}/approval-responsibilities/{uid}", json={"role_uid": "role_a", "org_unit_uid": "unit_b"}
    )
    assert resp.status_code == 400


@pytest.mark.asyncio
async def test_patch_responsibility_of_published_process_conflicts(client):
    process_uid = await _publish_two_step_process(client)
    resp = await client.get(f"{API}/approval-processes/{process_uid}/steps")
    step_uid = resp.json()[0]["step_uid"]
    resp = await client.get(f"{API}/approval-steps/{step_uid}/responsibilities")
    uid = resp.json()[0]["responsibility_uid"]

    resp = await client.patch(f"{API}/approval-responsibilities/{uid}", json={"action": "review"})
    assert resp.status_code == 409
    assert resp.json()["error"]["code"] == "INVALID_TRANSITION"


@pytest.mark.asyncio
async def test_patch_with_null_clears_optional_fields(client):
    process_uid, step_uid = await _draft_step(client)
    await client.patch(f"{API}/approval-steps/{step_uid}", json={"description": "Manager check"})

    resp = await client.patch(f"{API}/approval-processes/{process_uid}", json={"description": None})
    assert resp.status_code == 200
    assert resp.json()["description"] is None
    assert resp.json()["name"] == "Draft"

    resp = await client.patch(f"{API}/approval-steps/{step_uid}", json={"description": None})
    assert resp.status_code == 200
    assert resp.json()["description"] is None

    resp = await client.patch(f"{API}/approval-processes/{process_uid}", json={"name": None})
    assert resp.status_code == 400


@pytest.mark.asyncio
async def test_transition_binds_actor_into_log_context(client, monkeypatch):
    from signoff.api.routes import requests as request_routes

    bound = []
    monkeypatch.setattr(
        request_routes, "bind_request_context", lambda trace_id, actor_uid=None: bound.append((trace_id, actor_uid))
    )
    process_uid = await _publish_two_step_process(client)
    request_uid = (await _create_request(client, process_uid))["request_uid"]

    resp = await client.post(
        f"{API}/approval-requests/{request_uid}/approve",
        json={"actor_uid": "emp_manager"},
        headers={"X-Trace-Id": "trc_approve0001"},
    )
    assert resp.status_code == 200
    assert bound == [("trc_approve0001", "emp_manager")]
