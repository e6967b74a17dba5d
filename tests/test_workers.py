"""Tests for worker endpoints."""

import pytest
from conftest import auth_headers, make_user
from httpx import AsyncClient

from site_attendance.core.enums import Role

NEW_WORKER = {
    "name": "Anil Tiwari",
    "fatherName": "Shankar Tiwari",
    "designation": "Welder",
    "dailyWage": 1100,
    "phone": "9000000001",
}


@pytest.mark.asyncio
async def test_foreman_creates_worker_on_own_site(async_client: AsyncClient, foreman, site):
    resp = await async_client.post("/api/workers", json=NEW_WORKER, headers=auth_headers(foreman))
    assert resp.status_code == 201
    data = resp.json()["data"]
    assert data["siteId"] == site.id
    assert data["dailyWage"] == 1100
    assert data["designation"] == "Welder"


@pytest.mark.asyncio
async def test_only_foremen_create_workers(async_client: AsyncClient, admin, incharge):
    for user in (admin, incharge):
        resp = await async_client.post("/api/workers", json=NEW_WORKER, headers=auth_headers(user))
        assert resp.status_code == 403


@pytest.mark.asyncio
async def test_worker_validation(async_client: AsyncClient, foreman):
    resp = await async_client.post(
        "/api/workers", json={**NEW_WORKER, "dailyWage": -5}, headers=auth_headers(foreman)
    )
    assert resp.status_code == 422
    blank = await async_client.post(
        "/api/workers", json={**NEW_WORKER, "name": "  "}, headers=auth_headers(foreman)
    )
    assert blank.status_code == 422


@pytest.mark.asyncio
async def test_list_site_workers(async_client: AsyncClient, foreman, incharge, admin, site, workers):
    for user in (foreman, incharge, admin):
        resp = await async_client.get(f"/api/workers/site/{site.id}", headers=auth_headers(user))
        assert resp.status_code == 200
        assert len(resp.json()["data"]) == 3


@pytest.mark.asyncio
async def test_list_other_site_workers_denied(async_client: AsyncClient, foreman, other_site):
    resp = await async_client.get(
        f"/api/workers/site/{other_site.id}", headers=auth_headers(foreman)
    )
    assert resp.status_code == 403
    assert resp.json()["message"] == "Access denied to this site"


@pytest.mark.asyncio
async def test_update_and_delete_worker(async_client: AsyncClient, foreman, site, workers):
    headers = auth_headers(foreman)
    target = workers[0]
    resp = await async_client.put(
        f"/api/workers/{target.id}", json={"dailyWage": 950, "designation": "Head Mason"},
        headers=headers,
    )
    assert resp.status_code == 200
    assert resp.json()["data"]["dailyWage"] == 950
    assert resp.json()["data"]["name"] == target.name

    gone = await async_client.delete(f"/api/workers/{target.id}", headers=headers)
    assert gone.status_code == 200
    listing = await async_client.get(f"/api/workers/site/{site.id}", headers=headers)
    assert target.id not in [w["id"] for w in listing.json()["data"]]


@pytest.mark.asyncio
async def test_foreman_cannot_touch_other_site_worker(
    async_client: AsyncClient, db_session, other_site, workers
):
    stranger = await make_user(db_session, "foreman_far", Role.FOREMAN, other_site.id)
    headers = auth_headers(stranger)
    resp = await async_client.put(f"/api/workers/{workers[0].id}", json={"name": "X"}, headers=headers)
    assert resp.status_code == 404
    resp = await async_client.delete(f"/api/workers/{workers[0].id}", headers=headers)
    assert resp.status_code == 404


@pytest.mark.asyncio
async def test_admin_may_edit_any_worker(async_client: AsyncClient, admin, workers):
    resp = await async_client.put(
        f"/api/workers/{workers[1].id}", json={"phone": "9111111111"}, headers=auth_headers(admin)
    )
    assert resp.status_code == 200
    assert resp.json()["data"]["phone"] == "9111111111"
