"""API tests for auth, profiles, pricing, briefs, jobs, admin webhooks and the event stream."""

import pytest

from swiftjobs.events.webhook_config import webhook_registry


@pytest.mark.asyncio
async def test_missing_token_is_401(client):
    response = await client.get("/api/v1/jobs")
    assert response.status_code == 401
    assert response.json()["error"]["code"] == "AUTHENTICATION_ERROR"


@pytest.mark.asyncio
async def test_wrong_audience_is_401(client, bearer):
    response = await client.get("/api/v1/jobs", headers=bearer("usr_client_alice", "client", aud="someone-else"))
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_freelancer_cannot_create_job(client, freelancer_headers):
    response = await client.post(
        "/api/v1/jobs",
        json={"one_line_request": "Fix a bug", "deadline_hours": 24},
        headers=freelancer_headers("usr_fl_a"),
    )
    assert response.status_code == 403
    assert response.json()["error"]["code"] == "AUTHORIZATION_ERROR"


@pytest.mark.asyncio
async def test_admin_routes_need_admin_role(client, client_headers):
    response = await client.get("/api/v1/admin/escalations", headers=client_headers)
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_profile_upsert_is_idempotent(client, freelancer_headers):
    headers = freelancer_headers("usr_fl_a")
    await client.put("/api/v1/users/me", json={"display_name": "Ada", "skills": ["figma"]}, headers=headers)
    response = await client.put(
        "/api/v1/users/me", json={"display_name": "Ada L.", "skills": ["figma", " ", "ui design"]}, headers=headers
    )
    assert response.status_code == 200
    body = response.json()
    assert body["role"] == "freelancer"
    assert body["skills"] == ["figma", "ui design"]

    response = await client.get("/api/v1/users/usr_fl_a", headers=headers)
    assert response.json()["display_name"] == "Ada L."


@pytest.mark.asyncio
async def test_unknown_user_is_404(client, client_headers):
    response = await client.get("/api/v1/users/usr_nobody", headers=client_headers)
    assert response.status_code == 404
    assert response.json()["error"]["code"] == "NOT_FOUND"


@pytest.mark.asyncio
async def test_price_estimate(client):
    response = await client.get(
        "/api/v1/pricing/estimate", params={"deliverable_type": "landing_page", "deadline_hours": 12}
    )
    assert response.status_code == 200
    body = response.json()
    assert body["estimated_price"] == 225
    assert body["fast_price"] == 270
    assert body["formatted_price"] == "$225"


@pytest.mark.asyncio
async def test_brief_suggestion_uses_fallback(client, client_headers):
    response = await client.post("/api/v1/briefs", json={"one_line_request": "Make a 60s video ad"}, headers=client_headers)
    assert response.status_code == 200
    body = response.json()
    assert body["deliverable_type"] == "ad_1min"
    assert body["source"] == "fallback"
    assert len(body["acceptance_criteria"]) == 3


@pytest.mark.asyncio
async def test_draft_job_completes_with_budget(client, client_headers):
    response = await client.post(
        "/api/v1/jobs", json={"one_line_request": "Design a logo for my cafe", "deadline_hours": 96}, headers=client_headers
    )
    assert response.status_code == 201
    job = response.json()
    assert job["status"] == "draft"
    assert job["deliverable_type"] == "design"
    assert job["estimated_price"] == 250
    assert job["final_price"] is None

    response = await client.patch(
        f"/api/v1/jobs/{job['job_id']}", json={"budget": 300, "priority": "fast"}, headers=client_headers
    )
    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "brief_complete"
    assert body["final_price"] == 300
    assert body["estimated_price"] == 300


@pytest.mark.asyncio
async def test_brief_locked_after_payment(client, client_headers):
    job = (await client.post(
        "/api/v1/jobs", json={"one_line_request": "Fix a bug", "deadline_hours": 24, "budget": 150}, headers=client_headers
    )).json()
    await client.post(f"/api/v1/jobs/{job['job_id']}/payment", json={"payment_method": "paypal"}, headers=client_headers)

    response = await client.patch(f"/api/v1/jobs/{job['job_id']}", json={"budget": 10}, headers=client_headers)
    assert response.status_code == 409
    assert response.json()["error"]["code"] == "CONFLICT"


@pytest.mark.asyncio
async def test_cancel_and_terminal_state(client, client_headers):
    job = (await client.post(
        "/api/v1/jobs", json={"one_line_request": "Fix a bug", "deadline_hours": 24, "budget": 150}, headers=client_headers
    )).json()

    response = await client.post(f"/api/v1/jobs/{job['job_id']}/cancel", json={"reason": "changed my mind"}, headers=client_headers)
    assert response.status_code == 200
    assert response.json()["status"] == "cancelled"

    response = await client.post(f"/api/v1/jobs/{job['job_id']}/cancel", headers=client_headers)
    assert response.status_code == 409
    error = response.json()["error"]
    assert error["code"] == "INVALID_TRANSITION"
    assert error["details"] == {"current_status": "cancelled", "requested_status": "cancelled"}


@pytest.mark.asyncio
async def test_jobs_are_private_to_their_client(client, client_headers, other_client_headers):
    job = (await client.post(
        "/api/v1/jobs", json={"one_line_request": "Fix a bug", "deadline_hours": 24}, headers=client_headers
    )).json()

    other = other_client_headers
    response = await client.get(f"/api/v1/jobs/{job['job_id']}", headers=other)
    assert response.status_code == 403
    assert (await client.get("/api/v1/jobs", headers=other)).json() == []
    assert len((await client.get("/api/v1/jobs", headers=client_headers)).json()) == 1


@pytest.mark.asyncio
async def test_payment_requires_verification_before_matching(client, client_headers):
    job = (await client.post(
        "/api/v1/jobs", json={"one_line_request": "Fix a bug", "deadline_hours": 24, "budget": 150}, headers=client_headers
    )).json()
    await client.post(f"/api/v1/jobs/{job['job_id']}/payment", json={"payment_method": "paypal"}, headers=client_headers)

    response = await client.post(f"/api/v1/jobs/{job['job_id']}/matches", headers=client_headers)
    assert response.status_code == 409
    assert response.json()["error"]["details"]["current_status"] == "payment_pending"


@pytest.mark.asyncio
async def test_event_stream_replays_job_events(client, client_headers):
    job = (await client.post(
        "/api/v1/jobs", json={"one_line_request": "Fix a bug", "deadline_hours": 24, "budget": 150}, headers=client_headers
    )).json()
    await client.post(f"/api/v1/jobs/{job['job_id']}/payment", json={"payment_method": "paypal"}, headers=client_headers)

    response = await client.get(
        f"/api/v1/jobs/{job['job_id']}/events/stream", params={"follow": "false"}, headers=client_headers
    )
    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/event-stream")
    assert "event: connected" in response.text
    assert "event: transaction.status_changed" in response.text
    assert '"to_status":"payment_pending"' in response.text


@pytest.mark.asyncio
async def test_webhook_subscription_lifecycle(client, admin_headers):
    url = "https://hooks.test/swiftjobs"
    try:
        response = await client.post(
            "/api/v1/admin/webhooks",
            json={"url": url, "secret": "0123456789abcdef", "event_types": ["job.status_changed"]},
            headers=admin_headers,
        )
        assert response.status_code == 201
        assert response.json()["url"] == url

        listed = await client.get("/api/v1/admin/webhooks", headers=admin_headers)
        assert [w["url"] for w in listed.json()] == [url]

        response = await client.post(
            "/api/v1/admin/webhooks",
            json={"url": url, "secret": "0123456789abcdef", "event_types": ["job.exploded"]},
            headers=admin_headers,
        )
        assert response.status_code == 400

        response = await client.delete("/api/v1/admin/webhooks", params={"url": url}, headers=admin_headers)
        assert response.status_code == 204
        assert webhook_registry.list_all() == []

        response = await client.delete("/api/v1/admin/webhooks", params={"url": url}, headers=admin_headers)
        assert response.status_code == 404
    finally:
        webhook_registry.unregister(url)


@pytest.mark.asyncio
async def test_trace_id_propagation(client):
    response = await client.get("/api/v1/health", headers={"X-Trace-Id": "trc_custom_12345678"})
    assert response.headers["X-Trace-Id"] == "trc_custom_12345678"


@pytest.mark.asyncio
async def test_malformed_trace_id_is_replaced(client):
    response = await client.get("/api/v1/health", headers={"X-Trace-Id": "bad id with spaces"})
    assert response.headers["X-Trace-Id"].startswith("trc_")


@pytest.mark.asyncio
async def test_request_validation_uses_error_envelope(client, client_headers):
    response = await client.post(
        "/api/v1/jobs",
        json={"one_line_request": "Fix the checkout bug", "deadline_hours": 0},
        headers={**client_headers, "X-Trace-Id": "trc_validation_01"},
    )
    assert response.status_code == 400
    error = response.json()["error"]
    assert error["code"] == "VALIDATION_ERROR"
    assert error["trace_id"] == "trc_validation_01"
    assert [d["field"] for d in error["details"]] == ["deadline_hours"]
