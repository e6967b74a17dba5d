"""Tests for the foreman → site incharge → admin attendance workflow."""

import json
from datetime import datetime

import pytest
from conftest import auth_headers, entry, make_user
from httpx import AsyncClient
from sqlalchemy import select

from site_attendance.core.config import settings
from site_attendance.core.enums import Role
from site_attendance.core.exceptions import ConflictError
from site_attendance.models.attendance import AttendanceRecord
from site_attendance.models.user import User
from site_attendance.repositories.attendance import SqlAttendanceRepository

DAY = "2024-01-10"


async def submit(client: AsyncClient, foreman, rows, date=DAY):
    return await client.post(
        "/api/attendance/submit",
        json={"date": date, "entries": rows, "inTime": "08:00", "outTime": "17:00"},
        headers=auth_headers(foreman),
    )


async def review(client: AsyncClient, incharge, record_id, action="approve", checked=(), edits=(),
                 comments=None):
    return await client.post(
        f"/api/attendance/review/{record_id}",
        json={
            "action": action,
            "entries": list(edits),
            "checkedEntries": list(checked),
            "inchargeComments": comments,
        },
        headers=auth_headers(incharge),
    )


async def decide(client: AsyncClient, admin, record_id, action="approve", comments=None):
    return await client.post(
        f"/api/attendance/admin-approve/{record_id}",
        json={"action": action, "adminComments": comments},
        headers=auth_headers(admin),
    )


# ── End to end ──────────────────────────────────────────────────────
@pytest.mark.asyncio
async def test_full_workflow(async_client, foreman, incharge, admin, workers):
    """Submit, review, approve; a second submission for the day conflicts."""
    w1, w2 = workers[0], workers[1]
    resp = await submit(async_client, foreman, [entry(w1, x=1, y=0), entry(w2, present=False)])
    assert resp.status_code == 200
    body = resp.json()
    assert body["success"] is True
    record = body["data"]
    assert record["status"] == "submitted"
    assert record["presentWorkers"] == 1
    assert record["totalWorkers"] == 2
    assert record["siteName"] == "Site One"
    assert record["foremanName"] == foreman.name
    assert record["totalHours"] == 8
    assert record["submittedAt"] is not None

    pending = await async_client.get(
        "/api/attendance/pending-review", headers=auth_headers(incharge)
    )
    assert [r["id"] for r in pending.json()["data"]] == [record["id"]]

    resp = await review(async_client, incharge, record["id"], checked=[w1.id])
    assert resp.status_code == 200
    reviewed = resp.json()["data"]
    assert reviewed["status"] == "incharge_reviewed"
    assert [e["workerId"] for e in reviewed["entries"]] == [w1.id]
    assert reviewed["reviewedBy"] == incharge.id

    queue = await async_client.get("/api/attendance/pending-admin", headers=auth_headers(admin))
    assert [r["id"] for r in queue.json()["data"]] == [record["id"]]

    resp = await decide(async_client, admin, record["id"], comments="ok")
    assert resp.status_code == 200
    approved = resp.json()["data"]
    assert approved["status"] == "admin_approved"
    assert approved["approvedBy"] == admin.id
    assert approved["adminComments"] == "ok"

    resp = await submit(async_client, foreman, [entry(w1)])
    assert resp.status_code == 409
    assert resp.json() == {
        "success": False,
        "message": "Attendance already submitted for this date",
    }


# ── Submission ──────────────────────────────────────────────────────
@pytest.mark.asyncio
async def test_submit_requires_a_present_worker(async_client, foreman, workers):
    resp = await submit(async_client, foreman, [entry(w, present=False) for w in workers])
    assert resp.status_code == 400
    assert resp.json()["success"] is False

    check = await async_client.get(f"/api/attendance/check/{DAY}", headers=auth_headers(foreman))
    assert check.json()["data"] is False


@pytest.mark.asyncio
async def test_submit_empty_sheet_is_validation_error(async_client, foreman):
    resp = await submit(async_client, foreman, [])
    assert resp.status_code == 422
    assert resp.json()["success"] is False


@pytest.mark.asyncio
async def test_submit_duplicate_worker_rejected(async_client, foreman, workers):
    resp = await submit(async_client, foreman, [entry(workers[0]), entry(workers[0])])
    assert resp.status_code == 400


@pytest.mark.asyncio
async def test_only_foremen_submit(async_client, incharge, workers):
    resp = await submit(async_client, incharge, [entry(workers[0])])
    assert resp.status_code == 403


@pytest.mark.asyncio
async def test_submit_without_token(async_client, workers):
    resp = await async_client.post(
        "/api/attendance/submit", json={"date": DAY, "entries": [entry(workers[0])]}
    )
    assert resp.status_code == 401
    assert resp.json()["success"] is False


@pytest.mark.asyncio
async def test_foreman_without_site_cannot_submit(async_client, db_session, workers):
    drifter = await make_user(db_session, "drifter", Role.FOREMAN)
    resp = await submit(async_client, drifter, [entry(workers[0])])
    assert resp.status_code == 400


@pytest.mark.asyncio
async def test_submit_clamps_hours(async_client, foreman, workers):
    """Y is clamped to 0-7 and absent workers carry no hours."""
    w1, w2, w3 = workers
    rows = [
        entry(w1, x=1, y=9),
        {**entry(w2, present=False), "formulaX": 2, "formulaY": 3, "hoursWorked": 19},
        {"workerId": w3.id, "workerName": w3.name, "isPresent": True, "hoursWorked": 12},
    ]
    resp = await submit(async_client, foreman, rows)
    assert resp.status_code == 200
    entries = {e["workerId"]: e for e in resp.json()["data"]["entries"]}
    assert (entries[w1.id]["formulaX"], entries[w1.id]["formulaY"]) == (1, 7)
    assert entries[w1.id]["hoursWorked"] == 15
    assert entries[w2.id]["hoursWorked"] == 0
    assert entries[w2.id]["formulaX"] == 0
    assert (entries[w3.id]["formulaX"], entries[w3.id]["formulaY"]) == (1, 4)


@pytest.mark.asyncio
async def test_check_submission(async_client, foreman, workers):
    url = f"/api/attendance/check/{DAY}"
    before = await async_client.get(url, headers=auth_headers(foreman))
    assert before.json() == {"success": True, "data": False, "message": None}

    await submit(async_client, foreman, [entry(workers[0])])
    after = await async_client.get(url, headers=auth_headers(foreman))
    assert after.json()["data"] is True

    other_day = await async_client.get(
        "/api/attendance/check/2024-01-11", headers=auth_headers(foreman)
    )
    assert other_day.json()["data"] is False


@pytest.mark.asyncio
async def test_duplicate_insert_race_maps_to_conflict(session_factory, foreman, site, monkeypatch):
    """The unique (foreman, date) constraint catches what the pre-check misses."""
    async def _never_exists(self, foreman_id, date):
        return False

    monkeypatch.setattr(SqlAttendanceRepository, "exists_for_date", _never_exists)

    def _record():
        return AttendanceRecord(
            date=DAY, site_id=site.id, site_name=site.name, foreman_id=foreman.id,
            foreman_name=foreman.name, status="submitted", total_workers=0,
            present_workers=0, created_by=foreman.id, entries=[],
        )

    async with session_factory() as session:
        await SqlAttendanceRepository(session).create(_record())
    async with session_factory() as session:
        with pytest.raises(ConflictError):
            await SqlAttendanceRepository(session).create(_record())
    async with session_factory() as session:
        rows = (await session.execute(select(AttendanceRecord))).scalars().all()
    assert len(rows) == 1


# ── Review ──────────────────────────────────────────────────────────
@pytest.mark.asyncio
async def test_review_approve_requires_checked_entries(async_client, foreman, incharge, workers):
    w1, w2 = workers[0], workers[1]
    record = (await submit(async_client, foreman, [entry(w1), entry(w2)])).json()["data"]

    resp = await review(async_client, incharge, record["id"], checked=[w1.id])
    assert resp.status_code == 400

    # Nothing was written by the failed review
    pending = await async_client.get(
        "/api/attendance/pending-review", headers=auth_headers(incharge)
    )
    row = pending.json()["data"][0]
    assert row["status"] == "submitted"
    assert row["reviewedAt"] is None


@pytest.mark.asyncio
async def test_review_edits_are_merged_and_clamped(async_client, foreman, incharge, workers):
    w1, w2, w3 = workers
    rows = [entry(w1, x=1, y=0), entry(w2, present=False), entry(w3, x=1, y=2)]
    record = (await submit(async_client, foreman, rows)).json()["data"]

    edits = [
        {"workerId": w1.id, "formulaY": 12, "remarks": "stayed late"},
        {"workerId": w2.id, "isPresent": True, "hoursWorked": 10},
        {"workerId": w3.id, "isPresent": False},
    ]
    resp = await review(
        async_client, incharge, record["id"], checked=[w1.id, w2.id], edits=edits,
        comments="checked on site",
    )
    assert resp.status_code == 200
    data = resp.json()["data"]
    assert data["inchargeComments"] == "checked on site"
    entries = {e["workerId"]: e for e in data["entries"]}
    assert set(entries) == {w1.id, w2.id}
    assert (entries[w1.id]["formulaX"], entries[w1.id]["formulaY"]) == (1, 7)
    assert entries[w1.id]["hoursWorked"] == 15
    assert entries[w1.id]["remarks"] == "stayed late"
    assert (entries[w2.id]["formulaX"], entries[w2.id]["formulaY"]) == (1, 2)
    assert entries[w2.id]["workerName"] == w2.name


@pytest.mark.asyncio
async def test_review_reject_keeps_every_entry(async_client, foreman, incharge, workers):
    w1, w2 = workers[0], workers[1]
    record = (await submit(async_client, foreman, [entry(w1), entry(w2, present=False)])).json()["data"]

    resp = await review(async_client, incharge, record["id"], action="reject", comments="redo")
    assert resp.status_code == 200
    assert resp.json()["message"] == "Attendance rejected successfully"
    data = resp.json()["data"]
    assert data["status"] == "rejected"
    assert len(data["entries"]) == 2

    pending = await async_client.get(
        "/api/attendance/pending-review", headers=auth_headers(incharge)
    )
    assert pending.json()["data"] == []


@pytest.mark.asyncio
async def test_review_edit_for_unknown_worker(async_client, foreman, incharge, workers):
    record = (await submit(async_client, foreman, [entry(workers[0])])).json()["data"]
    resp = await review(
        async_client, incharge, record["id"], action="reject",
        edits=[{"workerId": 9999, "isPresent": True}],
    )
    assert resp.status_code == 400


@pytest.mark.asyncio
async def test_review_other_site_forbidden(async_client, db_session, foreman, other_site, workers):
    outsider = await make_user(db_session, "incharge_two", Role.SITE_INCHARGE, other_site.id)
    record = (await submit(async_client, foreman, [entry(workers[0])])).json()["data"]

    resp = await review(async_client, outsider, record["id"], checked=[workers[0].id])
    assert resp.status_code == 403

    pending = await async_client.get(
        "/api/attendance/pending-review", headers=auth_headers(outsider)
    )
    assert pending.json()["data"] == []


@pytest.mark.asyncio
async def test_review_twice_is_invalid_transition(async_client, foreman, incharge, workers):
    w1 = workers[0]
    record = (await submit(async_client, foreman, [entry(w1)])).json()["data"]
    await review(async_client, incharge, record["id"], checked=[w1.id])

    resp = await review(async_client, incharge, record["id"], checked=[w1.id])
    assert resp.status_code == 409
    assert "incharge_reviewed" in resp.json()["message"]


@pytest.mark.asyncio
async def test_review_missing_record(async_client, incharge):
    resp = await review(async_client, incharge, 4242, action="reject")
    assert resp.status_code == 404


@pytest.mark.asyncio
async def test_foreman_cannot_review(async_client, foreman, workers):
    record = (await submit(async_client, foreman, [entry(workers[0])])).json()["data"]
    resp = await review(async_client, foreman, record["id"], action="reject")
    assert resp.status_code == 403


@pytest.mark.asyncio
async def test_review_bad_action_is_validation_error(async_client, foreman, incharge, workers):
    record = (await submit(async_client, foreman, [entry(workers[0])])).json()["data"]
    resp = await review(async_client, incharge, record["id"], action="maybe")
    assert resp.status_code == 422


# ── Admin ───────────────────────────────────────────────────────────
@pytest.mark.asyncio
async def test_admin_cannot_skip_review(async_client, foreman, admin, workers):
    record = (await submit(async_client, foreman, [entry(workers[0])])).json()["data"]
    resp = await decide(async_client, admin, record["id"])
    assert resp.status_code == 409


@pytest.mark.asyncio
async def test_admin_reject(async_client, foreman, incharge, admin, workers):
    w1 = workers[0]
    record = (await submit(async_client, foreman, [entry(w1)])).json()["data"]
    await review(async_client, incharge, record["id"], checked=[w1.id])

    resp = await decide(async_client, admin, record["id"], action="reject", comments="wrong day")
    assert resp.status_code == 200
    data = resp.json()["data"]
    assert data["status"] == "rejected"
    assert data["adminComments"] == "wrong day"

    again = await decide(async_client, admin, record["id"])
    assert again.status_code == 409


@pytest.mark.asyncio
async def test_incharge_cannot_admin_approve(async_client, foreman, incharge, workers):
    w1 = workers[0]
    record = (await submit(async_client, foreman, [entry(w1)])).json()["data"]
    await review(async_client, incharge, record["id"], checked=[w1.id])

    resp = await decide(async_client, incharge, record["id"])
    assert resp.status_code == 403

    queue = await async_client.get("/api/attendance/pending-admin", headers=auth_headers(incharge))
    assert queue.status_code == 403


@pytest.mark.asyncio
async def test_approved_list_newest_first_and_limited(
    async_client, foreman, incharge, admin, workers, monkeypatch
):
    monkeypatch.setattr(settings, "APPROVED_PAGE_SIZE", 2)
    w1 = workers[0]
    ids = []
    for day in ("2024-01-01", "2024-01-02", "2024-01-03"):
        record = (await submit(async_client, foreman, [entry(w1)], date=day)).json()["data"]
        await review(async_client, incharge, record["id"], checked=[w1.id])
        await decide(async_client, admin, record["id"])
        ids.append(record["id"])

    resp = await async_client.get("/api/attendance/approved", headers=auth_headers(admin))
    assert resp.status_code == 200
    assert [r["id"] for r in resp.json()["data"]] == [ids[2], ids[1]]

    forbidden = await async_client.get("/api/attendance/approved", headers=auth_headers(foreman))
    assert forbidden.status_code == 403


@pytest.mark.asyncio
async def test_records_by_foreman(async_client, foreman, admin, workers):
    for day in ("2024-01-01", "2024-01-02"):
        await submit(async_client, foreman, [entry(workers[0])], date=day)

    resp = await async_client.get(
        f"/api/attendance/foreman/{foreman.id}", headers=auth_headers(admin)
    )
    assert [r["date"] for r in resp.json()["data"]] == ["2024-01-02", "2024-01-01"]

    forbidden = await async_client.get(
        f"/api/attendance/foreman/{foreman.id}", headers=auth_headers(foreman)
    )
    assert forbidden.status_code == 403


@pytest.mark.asyncio
async def test_recent_is_role_scoped(
    async_client, db_session, foreman, incharge, admin, other_site, workers
):
    other_foreman = await make_user(db_session, "foreman_two", Role.FOREMAN, other_site.id)
    await submit(async_client, foreman, [entry(workers[0])])
    await submit(async_client, other_foreman, [entry(workers[0])])

    mine = await async_client.get("/api/attendance/recent", headers=auth_headers(foreman))
    assert mine.json()["data"] == []

    site_view = await async_client.get("/api/attendance/recent", headers=auth_headers(incharge))
    assert [r["foremanId"] for r in site_view.json()["data"]] == [foreman.id]

    everything = await async_client.get("/api/attendance/recent", headers=auth_headers(admin))
    assert len(everything.json()["data"]) == 2


@pytest.mark.asyncio
async def test_lists_show_current_foreman_name(
    async_client, session_factory, foreman, incharge, workers
):
    await submit(async_client, foreman, [entry(workers[0])])
    async with session_factory() as session:
        user = await session.get(User, foreman.id)
        user.name = "Renamed Foreman"
        await session.commit()

    pending = await async_client.get(
        "/api/attendance/pending-review", headers=auth_headers(incharge)
    )
    assert pending.json()["data"][0]["foremanName"] == "Renamed Foreman"


# ── Drafts ──────────────────────────────────────────────────────────
@pytest.mark.asyncio
async def test_draft_save_fetch_and_discard_on_submit(async_client, foreman, workers):
    w1, w2 = workers[0], workers[1]
    headers = auth_headers(foreman)
    resp = await async_client.post(
        "/api/attendance/save-draft",
        json={"date": DAY, "entries": [entry(w1, x=0, y=11), entry(w2, present=False)]},
        headers=headers,
    )
    assert resp.status_code == 200

    # Saving again overwrites
    await async_client.post(
        "/api/attendance/save-draft",
        json={"date": DAY, "entries": [entry(w1, x=1, y=11)], "inTime": "07:30"},
        headers=headers,
    )
    draft = await async_client.get(f"/api/attendance/draft/{DAY}", headers=headers)
    assert draft.status_code == 200
    data = draft.json()["data"]
    assert data["inTime"] == "07:30"
    assert len(data["entries"]) == 1
    assert data["entries"][0]["formulaY"] == 7
    assert data["entries"][0]["hoursWorked"] == 15

    await submit(async_client, foreman, [entry(w1)])
    gone = await async_client.get(f"/api/attendance/draft/{DAY}", headers=headers)
    assert gone.status_code == 404

    late = await async_client.post(
        "/api/attendance/save-draft", json={"date": DAY, "entries": []}, headers=headers
    )
    assert late.status_code == 409


@pytest.mark.asyncio
async def test_draft_is_per_foreman(async_client, db_session, foreman, site, workers):
    other = await make_user(db_session, "foreman_three", Role.FOREMAN, site.id)
    await async_client.post(
        "/api/attendance/save-draft",
        json={"date": DAY, "entries": [entry(workers[0])]},
        headers=auth_headers(foreman),
    )
    resp = await async_client.get(f"/api/attendance/draft/{DAY}", headers=auth_headers(other))
    assert resp.status_code == 404


# ── Input bounds & invariants ───────────────────────────────────────
def _raw_json(payload: dict, number: str) -> str:
    """Serialise ``payload`` and splice in a literal the json module won't emit."""
    return json.dumps(payload).replace('"__NUMBER__"', number)


@pytest.mark.asyncio
@pytest.mark.parametrize("number", ["NaN", "Infinity", "-Infinity", "1e300", "1e18"])
async def test_submit_rejects_unusable_hours(async_client, foreman, workers, number):
    row = {**entry(workers[0]), "formulaX": "__NUMBER__"}
    resp = await async_client.post(
        "/api/attendance/submit",
        content=_raw_json({"date": DAY, "entries": [row]}, number),
        headers={**auth_headers(foreman), "Content-Type": "application/json"},
    )
    assert resp.status_code == 422
    assert resp.json()["success"] is False

    check = await async_client.get(f"/api/attendance/check/{DAY}", headers=auth_headers(foreman))
    assert check.json()["data"] is False


@pytest.mark.asyncio
@pytest.mark.parametrize("number", ["NaN", "Infinity", "1e18"])
async def test_draft_and_review_reject_unusable_hours(
    async_client, foreman, incharge, workers, number
):
    row = {**entry(workers[0]), "hoursWorked": "__NUMBER__"}
    draft = await async_client.post(
        "/api/attendance/save-draft",
        content=_raw_json({"date": DAY, "entries": [row]}, number),
        headers={**auth_headers(foreman), "Content-Type": "application/json"},
    )
    assert draft.status_code == 422

    record = (await submit(async_client, foreman, [entry(workers[0])])).json()["data"]
    edit = {"workerId": workers[0].id, "formulaY": "__NUMBER__"}
    resp = await async_client.post(
        f"/api/attendance/review/{record['id']}",
        content=_raw_json({"action": "approve", "entries": [edit],
                           "checkedEntries": [workers[0].id]}, number),
        headers={**auth_headers(incharge), "Content-Type": "application/json"},
    )
    assert resp.status_code == 422


@pytest.mark.asyncio
async def test_duplicate_submit_leaves_first_record_untouched(
    async_client, foreman, admin, workers
):
    w1, w2 = workers[0], workers[1]
    first = (await submit(async_client, foreman, [entry(w1, x=1, y=2), entry(w2, present=False)])).json()["data"]

    again = await submit(async_client, foreman, [entry(w1, x=3, y=0), entry(w2, x=2, y=0)])
    assert again.status_code == 409

    resp = await async_client.get(
        f"/api/attendance/foreman/{foreman.id}", headers=auth_headers(admin)
    )
    records = resp.json()["data"]
    assert len(records) == 1
    stored = records[0]
    assert stored["id"] == first["id"]
    assert stored["status"] == "submitted"
    assert stored["submittedAt"] == first["submittedAt"]
    assert stored["presentWorkers"] == 1
    assert stored["entries"] == first["entries"]


@pytest.mark.asyncio
async def test_worker_marked_present_in_review_must_be_checked(
    async_client, foreman, incharge, workers
):
    w1, w2 = workers[0], workers[1]
    record = (await submit(async_client, foreman, [entry(w1), entry(w2, present=False)])).json()["data"]

    edits = [{"workerId": w2.id, "isPresent": True, "formulaX": 1, "formulaY": 0}]
    resp = await review(async_client, incharge, record["id"], checked=[w1.id], edits=edits)
    assert resp.status_code == 400

    pending = await async_client.get(
        "/api/attendance/pending-review", headers=auth_headers(incharge)
    )
    row = pending.json()["data"][0]
    assert row["status"] == "submitted"
    assert [e["isPresent"] for e in row["entries"]] == [True, False]


@pytest.mark.asyncio
async def test_review_null_presence_keeps_submitted_value(
    async_client, foreman, incharge, workers
):
    w1 = workers[0]
    record = (await submit(async_client, foreman, [entry(w1, x=1, y=1)])).json()["data"]

    edits = [{"workerId": w1.id, "isPresent": None, "remarks": "ok"}]
    resp = await review(async_client, incharge, record["id"], checked=[w1.id], edits=edits)
    assert resp.status_code == 200
    kept = resp.json()["data"]["entries"][0]
    assert kept["isPresent"] is True
    assert kept["hoursWorked"] == 9
    assert kept["remarks"] == "ok"


@pytest.mark.asyncio
async def test_timestamps_are_utc(async_client, foreman, incharge, workers):
    w1 = workers[0]
    record = (await submit(async_client, foreman, [entry(w1)])).json()["data"]
    reviewed = (await review(async_client, incharge, record["id"], checked=[w1.id])).json()["data"]

    for value in (record["submittedAt"], reviewed["submittedAt"], reviewed["reviewedAt"]):
        stamp = datetime.fromisoformat(value.replace("Z", "+00:00"))
        assert stamp.utcoffset().total_seconds() == 0
