"""HTTP surface: envelope, auth, validation and the main routes."""

from datetime import date, timedelta
from uuid import uuid4

import pytest
from sqlalchemy import func, select

from talento_local.db.models import JobApplication, JobEventLog

JOB_BODY = {
    "title": "Install ceiling fan",
    "description": "Install a ceiling fan in the living room, wiring already in place.",
    "category": "electrical",
    "budgetAmount": 80000,
    "budgetType": "fixed",
    "address": "Carrera 43A # 1-50",
    "city": "Medellin",
    "department": "Antioquia",
    "urgency": "high",
}

MESSAGE = "I am a certified electrician and can do it this afternoon."


async def _create_job(client, headers, **overrides):
    resp = await client.post("/api/v1/jobs", headers=headers, json={**JOB_BODY, **overrides})
    assert resp.status_code == 201, resp.text
    return resp.json()["data"]


async def _apply(client, headers, job_id):
    resp = await client.post("/api/v1/applications", headers=headers, json={"jobId": job_id, "message": MESSAGE})
    assert resp.status_code == 201, resp.text
    return resp.json()["data"]


@pytest.mark.asyncio
async def test_health(client):
    resp = await client.get("/health")
    assert resp.status_code == 200
    assert resp.json() == {"status": "ok"}


@pytest.mark.asyncio
async def test_metrics_exposed(client):
    resp = await client.get("/metrics")
    assert resp.status_code == 200
    assert "applications_submitted_total" in resp.text


@pytest.mark.asyncio
async def test_missing_token_is_401(client):
    resp = await client.post("/api/v1/jobs", json=JOB_BODY)
    assert resp.status_code == 401
    assert resp.json()["success"] is False


@pytest.mark.asyncio
async def test_bad_token_is_401(client):
    resp = await client.get("/api/v1/applications/my", headers={"Authorization": "Bearer not-a-jwt"})
    assert resp.status_code == 401
    assert resp.json() == {"success": False, "message": "Invalid or expired token"}


@pytest.mark.asyncio
async def test_create_job_envelope(client, auth_headers, client_user):
    resp = await client.post("/api/v1/jobs", headers=auth_headers(client_user), json=JOB_BODY)

    assert resp.status_code == 201
    body = resp.json()
    assert body["success"] is True
    assert body["message"] == "Job created"
    assert "pagination" not in body
    job = body["data"]
    assert job["status"] == "active"
    assert job["client_id"] == str(client_user.user_id)
    assert job["budget_type"] == "fixed"
    assert job["assigned_worker_id"] is None
    assert job["published_at"] is not None


@pytest.mark.asyncio
async def test_create_job_validation_errors(client, auth_headers, client_user):
    resp = await client.post(
        "/api/v1/jobs",
        headers=auth_headers(client_user),
        json={**JOB_BODY, "title": "Fix", "latitude": 123},
    )

    assert resp.status_code == 400
    body = resp.json()
    assert body["success"] is False
    fields = {e["field"] for e in body["errors"]}
    assert {"title", "latitude"} <= fields


@pytest.mark.asyncio
async def test_create_job_rejects_past_date(client, auth_headers, client_user):
    yesterday = (date.today() - timedelta(days=1)).isoformat()
    resp = await client.post(
        "/api/v1/jobs", headers=auth_headers(client_user), json={**JOB_BODY, "neededDate": yesterday}
    )
    assert resp.status_code == 400


@pytest.mark.asyncio
async def test_worker_cannot_create_job(client, auth_headers, make_worker):
    resp = await client.post("/api/v1/jobs", headers=auth_headers(make_worker()), json=JOB_BODY)
    assert resp.status_code == 403
    assert resp.json()["success"] is False


@pytest.mark.asyncio
async def test_list_active_jobs_filters_and_paginates(client, auth_headers, client_user):
    headers = auth_headers(client_user)
    for i in range(3):
        await _create_job(client, headers, budgetAmount=10000 * (i + 1))
    await _create_job(client, headers, city="Bogota", department="Cundinamarca")
    await _create_job(client, headers, status="draft")

    resp = await client.get("/api/v1/jobs", params={"city": "medellin", "limit": 2, "sort_by": "budget_amount", "sort_order": "asc"})

    assert resp.status_code == 200
    body = resp.json()
    assert body["pagination"] == {"page": 1, "limit": 2, "total": 3, "pages": 2}
    budgets = [float(j["budget_amount"]) for j in body["data"]]
    assert budgets == [10000.0, 20000.0]

    resp = await client.get("/api/v1/jobs", params={"budget_min": 25000})
    assert resp.json()["pagination"]["total"] == 2

    resp = await client.get("/api/v1/jobs")
    assert resp.json()["pagination"]["total"] == 4


@pytest.mark.asyncio
async def test_list_limit_capped(client):
    resp = await client.get("/api/v1/jobs", params={"limit": 500})
    assert resp.status_code == 400


@pytest.mark.asyncio
async def test_get_job_counts_views(client, auth_headers, client_user):
    job = await _create_job(client, auth_headers(client_user))

    first = (await client.get(f"/api/v1/jobs/{job['id']}")).json()["data"]
    second = (await client.get(f"/api/v1/jobs/{job['id']}")).json()["data"]

    assert first["views_count"] == 1
    assert second["views_count"] == 2


@pytest.mark.asyncio
async def test_get_missing_job_is_404(client):
    resp = await client.get(f"/api/v1/jobs/{uuid4()}")
    assert resp.status_code == 404
    assert resp.json()["success"] is False
    assert "not found" in resp.json()["message"]


@pytest.mark.asyncio
async def test_update_job(client, auth_headers, client_user, other_client):
    job = await _create_job(client, auth_headers(client_user))

    resp = await client.put(f"/api/v1/jobs/{job['id']}", headers=auth_headers(client_user), json={"city": "Envigado"})
    assert resp.status_code == 200
    assert resp.json()["data"]["city"] == "Envigado"
    assert resp.json()["data"]["title"] == JOB_BODY["title"]

    resp = await client.put(f"/api/v1/jobs/{job['id']}", headers=auth_headers(other_client), json={"city": "Itagui"})
    assert resp.status_code == 403

    resp = await client.put(f"/api/v1/jobs/{job['id']}", headers=auth_headers(client_user), json={})
    assert resp.status_code == 400


@pytest.mark.asyncio
async def test_delete_job_cascades_to_applications(client, sessionmaker, auth_headers, client_user, make_worker):
    job = await _create_job(client, auth_headers(client_user))
    await _apply(client, auth_headers(make_worker()), job["id"])

    resp = await client.delete(f"/api/v1/jobs/{job['id']}", headers=auth_headers(client_user))
    assert resp.status_code == 200
    assert resp.json() == {"success": True, "message": "Job deleted"}

    assert (await client.get(f"/api/v1/jobs/{job['id']}")).status_code == 404
    async with sessionmaker() as session:
        remaining = await session.scalar(select(func.count()).select_from(JobApplication))
        events = await session.scalar(select(func.count()).select_from(JobEventLog))
    assert remaining == 0
    assert events == 0


@pytest.mark.asyncio
async def test_cannot_delete_assigned_job(client, auth_headers, client_user, make_worker):
    headers = auth_headers(client_user)
    job = await _create_job(client, headers)
    application = await _apply(client, auth_headers(make_worker()), job["id"])
    await client.post(f"/api/v1/applications/{application['id']}/accept", headers=headers)

    resp = await client.delete(f"/api/v1/jobs/{job['id']}", headers=headers)
    assert resp.status_code == 400


@pytest.mark.asyncio
async def test_full_flow_over_http(client, auth_headers, client_user, make_worker):
    client_h = auth_headers(client_user)
    ana, luis = make_worker(), make_worker()

    job = await _create_job(client, client_h, status="draft")
    resp = await client.post("/api/v1/applications", headers=auth_headers(ana), json={"jobId": job["id"], "message": MESSAGE})
    assert resp.status_code == 400

    resp = await client.patch(f"/api/v1/jobs/{job['id']}/status", headers=client_h, json={"status": "active"})
    assert resp.status_code == 200

    ana_app = await _apply(client, auth_headers(ana), job["id"])
    luis_app = await _apply(client, auth_headers(luis), job["id"])

    resp = await client.post("/api/v1/applications", headers=auth_headers(ana), json={"jobId": job["id"], "message": MESSAGE})
    assert resp.status_code == 409

    check = (await client.get(f"/api/v1/applications/check/{job['id']}", headers=auth_headers(luis))).json()
    assert check["data"] == {"job_id": job["id"], "has_applied": True}

    listed = (await client.get(f"/api/v1/applications/job/{job['id']}", headers=client_h)).json()
    assert listed["pagination"]["total"] == 2

    resp = await client.post(f"/api/v1/applications/{ana_app['id']}/accept", headers=client_h)
    assert resp.status_code == 200
    result = resp.json()["data"]
    assert result["job"]["status"] == "in_progress"
    assert result["job"]["assigned_worker_id"] == str(ana.user_id)
    assert result["application"]["status"] == "accepted"
    assert result["rejected_application_ids"] == [luis_app["id"]]

    resp = await client.post(f"/api/v1/applications/{luis_app['id']}/accept", headers=client_h)
    assert resp.status_code == 409

    assigned = (await client.get("/api/v1/jobs/my/assigned", headers=auth_headers(ana))).json()
    assert [j["id"] for j in assigned["data"]] == [job["id"]]

    resp = await client.patch(f"/api/v1/jobs/{job['id']}/status", headers=auth_headers(ana), json={"status": "completed"})
    assert resp.status_code == 403

    resp = await client.patch(f"/api/v1/jobs/{job['id']}/status", headers=client_h, json={"status": "completed"})
    assert resp.status_code == 200
    assert resp.json()["data"]["status"] == "completed"

    resp = await client.patch(f"/api/v1/jobs/{job['id']}/status", headers=client_h, json={"status": "active"})
    assert resp.status_code == 400
    assert resp.json()["message"] == "Cannot transition job from completed to active"

    mine = (await client.get("/api/v1/jobs/my/all", headers=client_h, params={"status": "completed"})).json()
    assert mine["pagination"]["total"] == 1

    stats = (await client.get("/api/v1/applications/stats", headers=auth_headers(ana))).json()["data"]
    assert stats["accepted_applications"] == 1
    assert stats["success_rate"] == 100.0


@pytest.mark.asyncio
async def test_application_visibility(client, auth_headers, client_user, other_client, admin, make_worker):
    worker = make_worker()
    job = await _create_job(client, auth_headers(client_user))
    application = await _apply(client, auth_headers(worker), job["id"])
    url = f"/api/v1/applications/{application['id']}"

    for viewer in (worker, client_user, admin):
        assert (await client.get(url, headers=auth_headers(viewer))).status_code == 200
    assert (await client.get(url, headers=auth_headers(other_client))).status_code == 403
    assert (await client.get(url, headers=auth_headers(make_worker()))).status_code == 403


@pytest.mark.asyncio
async def test_my_applications_and_cancel(client, auth_headers, client_user, make_worker):
    worker = make_worker()
    job = await _create_job(client, auth_headers(client_user))
    application = await _apply(client, auth_headers(worker), job["id"])

    resp = await client.post(f"/api/v1/applications/{application['id']}/cancel", headers=auth_headers(worker))
    assert resp.status_code == 200
    assert resp.json()["data"]["status"] == "cancelled"

    mine = (await client.get("/api/v1/applications/my", headers=auth_headers(worker), params={"status": "cancelled"})).json()
    assert [a["id"] for a in mine["data"]] == [application["id"]]

    resp = await client.post(f"/api/v1/applications/{application['id']}/reject", headers=auth_headers(client_user))
    assert resp.status_code == 409
