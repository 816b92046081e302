#!/usr/bin/env python3
"""
Races several accept requests for different applications of the same job
against a running server (Postgres). Exactly one must win; every other
request must get 409 and the job must end with a single accepted application.

Tokens are signed with the server's JWT_SECRET_KEY, so run this with the same
environment / .env as the API.
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
WORKERS = 10

def auth(user_id, role):
    return {"Authorization": f"Bearer {create_access_token(settings, user_id, role)}"}

async def attempt_accept(client, headers, application_id):
    resp = await client.post(f"/api/v1/applications/{application_id}/accept", headers=headers)
    return application_id, resp.status_code

async def verify_no_double_accept():
    client_id = uuid.uuid4()
    client_headers = auth(client_id, Role.CLIENT)

    async with httpx.AsyncClient(base_url=API_URL, timeout=10.0) as client:
        # 1. Create 1 job
        print("1. Creating 1 job...")
        resp = await client.post("/api/v1/jobs", headers=client_headers, json={
            "title": "Concurrency test job",
            "description": "Fix the kitchen sink, it has been leaking for days.",
            "category": "plumbing",
            "address": "Calle 10 # 43-12",
            "city": "Medellin",
            "department": "Antioquia",
        })
        resp.raise_for_status()
        job_id = resp.json()["data"]["id"]
        print(f"   Job created: {job_id}")

        # 2. One application per worker
        print(f"2. Submitting {WORKERS} applications...")
        application_ids = []
        for i in range(WORKERS):
            resp = await client.post("/api/v1/applications", headers=auth(uuid.uuid4(), Role.WORKER), json={
                "jobId": job_id,
                "message": f"Worker {i}: I can do this job tomorrow morning.",
            })
            resp.raise_for_status()
            application_ids.append(resp.json()["data"]["id"])

        # 3. Accept all of them at once
        print(f"3. Sending {WORKERS} concurrent accepts...")
        results = await asyncio.gather(*[
            attempt_accept(client, client_headers, app_id) for app_id in application_ids
        ])

        winners = [app_id for app_id, code in results if code == 200]
        conflicts = [app_id for app_id, code in results if code == 409]
        other = [(app_id, code) for app_id, code in results if code not in (200, 409)]
        print(f"   {len(winners)} accepted, {len(conflicts)} conflicts, {len(other)} other")

        # 4. Check final state
        resp = await client.get(f"/api/v1/applications/job/{job_id}", headers=client_headers, params={"limit": 50})
        resp.raise_for_status()
        accepted = [a for a in resp.json()["data"] if a["status"] == "accepted"]
        job = (await client.get(f"/api/v1/jobs/{job_id}")).json()["data"]

    if len(winners) == 1 and len(accepted) == 1 and not other and accepted[0]["id"] == winners[0]:
        print("SUCCESS: Exactly one application was accepted.")
        print(f"   Winner: {winners[0]} -> job status {job['status']}, worker {job['assigned_worker_id']}")
    else:
        print(f"FAILURE: winners={winners} accepted_rows={[a['id'] for a in accepted]} other={other}")
        sys.exit(1)

if __name__ == "__main__":
    asyncio.run(verify_no_double_accept())
