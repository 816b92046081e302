#!/usr/bin/env python3
"""
Walks one job through its whole life against a running server:
publish, apply (x2), accept, complete. Uses the same settings as the
API to sign tokens.
"""
import asyncio
import os
import sys
import uuid

sys.path.append(os.getcwd())

import httpx

from talento_local.auth.security import create_access_token
from talento_local.domain.states import Role
from talento_local.settings import settings

API_URL = os.environ.get("API_URL", "http://localhost:8000")

def auth(user_id, role):
    return {"Authorization": f"Bearer {create_access_token(settings, user_id, role)}"}

def check(resp, expected=200):
    if resp.status_code != expected:
        print(f"FAILURE: {resp.request.method} {resp.request.url} -> {resp.status_code}: {resp.text}")
        sys.exit(1)
    return resp.json().get("data")

async def verify():
    # 0. Wait for API Readiness
    print("Waiting for API to be ready...")
    async with httpx.AsyncClient(base_url=API_URL, timeout=5.0) as check_client:
        for i in range(30):
            try:
                resp = await check_client.get("/health")
                if resp.status_code == 200:
                    print("API is ready!")
                    break
            except httpx.HTTPError:
                pass
            await asyncio.sleep(1)
        else:
            print("API failed to become ready.")
            sys.exit(1)

    client_h = auth(uuid.uuid4(), Role.CLIENT)
    ana_id, luis_id = uuid.uuid4(), uuid.uuid4()
    ana_h, luis_h = auth(ana_id, Role.WORKER), auth(luis_id, Role.WORKER)

    async with httpx.AsyncClient(base_url=API_URL, timeout=30.0) as client:
        print("1. Client publishes a draft job...")
        job = check(await client.post("/api/v1/jobs", headers=client_h, json={
            "title": "Paint two bedrooms",
            "description": "Two bedrooms, about 40m2 of wall in total, paint provided.",
            "category": "painting",
            "budgetAmount": 350000,
            "budgetType": "fixed",
            "address": "Carrera 7 # 72-41",
            "city": "Bogota",
            "department": "Cundinamarca",
            "status": "draft",
        }), 201)
        job_id = job["id"]
        check(await client.patch(f"/api/v1/jobs/{job_id}/status", headers=client_h, json={"status": "active"}))

        print("2. Two workers apply...")
        ana_app = check(await client.post("/api/v1/applications", headers=ana_h, json={
            "jobId": job_id, "message": "I have painted dozens of apartments in Chapinero.",
        }), 201)
        luis_app = check(await client.post("/api/v1/applications", headers=luis_h, json={
            "jobId": job_id, "message": "Available this weekend with my own equipment.",
        }), 201)

        print("3. Client accepts Ana...")
        result = check(await client.post(f"/api/v1/applications/{ana_app['id']}/accept", headers=client_h))
        assert result["job"]["status"] == "in_progress"
        assert result["rejected_application_ids"] == [luis_app["id"]]

        print("4. Ana completes, client confirms...")
        resp = await client.patch(f"/api/v1/jobs/{job_id}/status", headers=ana_h, json={"status": "completed"})
        check(resp, 403)
        done = check(await client.patch(f"/api/v1/jobs/{job_id}/status", headers=client_h, json={"status": "completed"}))
        assert done["status"] == "completed"
        assert done["assigned_worker_id"] == str(ana_id)

        stats = check(await client.get("/api/v1/applications/stats", headers=luis_h))
        print(f"   Luis stats: {stats}")

    print("SUCCESS: E2E flow completed.")

if __name__ == "__main__":
    asyncio.run(verify())
