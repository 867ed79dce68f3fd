"""Tests for the owner-side request workflow: create, edit, delete, submit, reads."""

from __future__ import annotations

import uuid
from typing import TYPE_CHECKING, Any

from sqlalchemy import select
from sqlmodel import col

from vacation_scheduler.config import Settings, set_settings
from vacation_scheduler.models.audit import AuditLog
from vacation_scheduler.models.enums import LimitEntryType
from vacation_scheduler.models.limit import VacationLimitEntry
from vacation_scheduler.models.request import VacationPeriod
from vacation_scheduler.services.org_unit import InMemoryOrgUnitService, OrgUnitInfo

if TYPE_CHECKING:
    from httpx import AsyncClient, Response
    from sqlalchemy.ext.asyncio import AsyncSession

OWNER_ID = uuid.uuid4()
MANAGER_ID = uuid.uuid4()
OUTSIDER_ID = uuid.uuid4()
ADMIN_ID = uuid.uuid4()
TEAM_UNIT_ID = uuid.uuid4()

OWNER_HEADERS = {"X-User-Id": str(OWNER_ID)}
MANAGER_HEADERS = {"X-User-Id": str(MANAGER_ID)}
OUTSIDER_HEADERS = {"X-User-Id": str(OUTSIDER_ID)}
ADMIN_HEADERS = {"X-User-Id": str(ADMIN_ID), "X-Role": "admin"}

TWO_WEEKS = {"start_date": "2025-07-01", "end_date": "2025-07-14"}
FIVE_DAYS = {"start_date": "2025-03-03", "end_date": "2025-03-07"}


# ---------------------------------------------------------------------------
# Fixtures and helpers
# ---------------------------------------------------------------------------


def _seed_team(org_units: InMemoryOrgUnitService) -> None:
    org_units.seed(OrgUnitInfo(id=TEAM_UNIT_ID, name="Team", manager_id=MANAGER_ID, member_ids={OWNER_ID}))


async def _grant(client: AsyncClient, days: int, employee_id: uuid.UUID = OWNER_ID, year: int = 2025) -> None:
    resp = await client.put(
        f"/employees/{employee_id}/limits/{year}",
        json={"total_days": days},
        headers=ADMIN_HEADERS,
    )
    assert resp.status_code == 200, resp.json()


async def _create(
    client: AsyncClient,
    periods: list[dict[str, str]],
    year: int = 2025,
    headers: dict[str, str] | None = None,
    comment: str = "",
) -> dict[str, Any]:
    resp = await client.post(
        "/requests",
        json={"year": year, "periods": periods, "comment": comment},
        headers=headers or OWNER_HEADERS,
    )
    assert resp.status_code == 201, resp.json()
    result: dict[str, Any] = resp.json()
    return result


async def _submit(client: AsyncClient, request_id: str, headers: dict[str, str] | None = None) -> Response:
    return await client.post(f"/requests/{request_id}/submit", headers=headers or OWNER_HEADERS)


async def _committed_days(client: AsyncClient, employee_id: uuid.UUID = OWNER_ID) -> int:
    resp = await client.get(f"/employees/{employee_id}/limits/2025", headers=ADMIN_HEADERS)
    assert resp.status_code == 200
    result: int = resp.json()["committed_days"]
    return result


# ---------------------------------------------------------------------------
# Create
# ---------------------------------------------------------------------------


async def test_create_request_draft(async_client: AsyncClient) -> None:
    data = await _create(async_client, [TWO_WEEKS, FIVE_DAYS], comment="Summer")

    assert data["status"] == "DRAFT"
    assert data["owner_id"] == str(OWNER_ID)
    assert data["days_requested"] == 19
    assert data["comment"] == "Summer"
    assert data["submitted_at"] is None
    # Periods are stored sorted by start date.
    assert [p["start_date"] for p in data["periods"]] == ["2025-03-03", "2025-07-01"]
    assert [p["day_count"] for p in data["periods"]] == [5, 14]


async def test_create_request_requires_user_header(async_client: AsyncClient) -> None:
    resp = await async_client.post("/requests", json={"year": 2025, "periods": [TWO_WEEKS]})
    assert resp.status_code == 422
    body = resp.json()
    assert body["error"] == "ValidationError"
    assert ["header", "x-user-id"] in [error["loc"] for error in body["context"]["errors"]]


async def test_create_request_end_before_start(async_client: AsyncClient) -> None:
    resp = await async_client.post(
        "/requests",
        json={"year": 2025, "periods": [{"start_date": "2025-07-14", "end_date": "2025-07-01"}]},
        headers=OWNER_HEADERS,
    )
    assert resp.status_code == 422
    assert resp.json()["error"] == "ValidationError"


async def test_create_request_period_outside_year(async_client: AsyncClient) -> None:
    resp = await async_client.post(
        "/requests",
        json={"year": 2026, "periods": [TWO_WEEKS]},
        headers=OWNER_HEADERS,
    )
    assert resp.status_code == 422
    assert "outside year 2026" in resp.json()["detail"]


async def test_create_request_overlapping_periods(async_client: AsyncClient) -> None:
    resp = await async_client.post(
        "/requests",
        json={"year": 2025, "periods": [TWO_WEEKS, {"start_date": "2025-07-14", "end_date": "2025-07-20"}]},
        headers=OWNER_HEADERS,
    )
    assert resp.status_code == 422


async def test_create_request_wrong_day_count(async_client: AsyncClient) -> None:
    resp = await async_client.post(
        "/requests",
        json={"year": 2025, "periods": [{**TWO_WEEKS, "day_count": 10}]},
        headers=OWNER_HEADERS,
    )
    assert resp.status_code == 422


async def test_create_does_not_touch_ledger(async_client: AsyncClient) -> None:
    await _grant(async_client, 20)
    await _create(async_client, [TWO_WEEKS])
    assert await _committed_days(async_client) == 0


# ---------------------------------------------------------------------------
# Edit / delete
# ---------------------------------------------------------------------------


async def test_edit_draft_periods(async_client: AsyncClient) -> None:
    data = await _create(async_client, [FIVE_DAYS])

    resp = await async_client.put(
        f"/requests/{data['id']}",
        json={"periods": [FIVE_DAYS, TWO_WEEKS], "comment": "Updated"},
        headers=OWNER_HEADERS,
    )
    assert resp.status_code == 200
    body = resp.json()
    assert body["days_requested"] == 19
    assert body["comment"] == "Updated"
    assert len(body["periods"]) == 2


async def test_edit_replaces_period_rows(async_client: AsyncClient, db_session: AsyncSession) -> None:
    data = await _create(async_client, [FIVE_DAYS, TWO_WEEKS])
    await async_client.put(f"/requests/{data['id']}", json={"periods": [TWO_WEEKS]}, headers=OWNER_HEADERS)

    result = await db_session.execute(
        select(VacationPeriod).where(col(VacationPeriod.request_id) == uuid.UUID(data["id"]))
    )
    rows = list(result.scalars().all())
    assert len(rows) == 1
    assert rows[0].day_count == 14


async def test_edit_year_revalidates_stored_periods(async_client: AsyncClient) -> None:
    data = await _create(async_client, [TWO_WEEKS])
    resp = await async_client.put(f"/requests/{data['id']}", json={"year": 2026}, headers=OWNER_HEADERS)
    assert resp.status_code == 422


async def test_edit_by_non_owner_forbidden(
    async_client: AsyncClient,
    org_units: InMemoryOrgUnitService,
) -> None:
    _seed_team(org_units)
    data = await _create(async_client, [TWO_WEEKS])
    resp = await async_client.put(f"/requests/{data['id']}", json={"comment": "x"}, headers=MANAGER_HEADERS)
    assert resp.status_code == 403


async def test_edit_pending_is_invalid_transition(async_client: AsyncClient) -> None:
    await _grant(async_client, 20)
    data = await _create(async_client, [TWO_WEEKS])
    assert (await _submit(async_client, data["id"])).status_code == 200

    resp = await async_client.put(f"/requests/{data['id']}", json={"comment": "late"}, headers=OWNER_HEADERS)
    assert resp.status_code == 400
    body = resp.json()
    assert body["error"] == "InvalidTransition"
    assert body["context"] == {"current_status": "PENDING", "event": "EDIT"}


async def test_delete_draft(async_client: AsyncClient) -> None:
    data = await _create(async_client, [TWO_WEEKS])

    resp = await async_client.delete(f"/requests/{data['id']}", headers=OWNER_HEADERS)
    assert resp.status_code == 204

    resp = await async_client.get(f"/requests/{data['id']}", headers=OWNER_HEADERS)
    assert resp.status_code == 404


async def test_delete_pending_is_invalid(async_client: AsyncClient) -> None:
    await _grant(async_client, 20)
    data = await _create(async_client, [TWO_WEEKS])
    await _submit(async_client, data["id"])

    resp = await async_client.delete(f"/requests/{data['id']}", headers=OWNER_HEADERS)
    assert resp.status_code == 400


async def test_delete_unknown_request(async_client: AsyncClient) -> None:
    resp = await async_client.delete(f"/requests/{uuid.uuid4()}", headers=OWNER_HEADERS)
    assert resp.status_code == 404
    assert resp.json()["error"] == "NotFoundError"


# ---------------------------------------------------------------------------
# Submit
# ---------------------------------------------------------------------------


async def test_submit_reserves_days(async_client: AsyncClient) -> None:
    await _grant(async_client, 28)
    data = await _create(async_client, [FIVE_DAYS, TWO_WEEKS])

    resp = await _submit(async_client, data["id"])

    assert resp.status_code == 200
    body = resp.json()
    assert body["status"] == "PENDING"
    assert body["submitted_at"] is not None
    assert await _committed_days(async_client) == 19


async def test_submit_without_long_block_fails(async_client: AsyncClient) -> None:
    await _grant(async_client, 28)
    data = await _create(async_client, [FIVE_DAYS])

    resp = await _submit(async_client, data["id"])
    assert resp.status_code == 422
    assert "minimum 14-day block" in resp.json()["detail"]
    assert await _committed_days(async_client) == 0

    # Adding a two-week period makes the request acceptable.
    await async_client.put(f"/requests/{data['id']}", json={"periods": [FIVE_DAYS, TWO_WEEKS]}, headers=OWNER_HEADERS)
    resp = await _submit(async_client, data["id"])
    assert resp.status_code == 200
    assert resp.json()["status"] == "PENDING"


async def test_submit_insufficient_allowance(async_client: AsyncClient) -> None:
    set_settings(Settings(long_block_days=1))
    await _grant(async_client, 20)

    first = await _create(async_client, [{"start_date": "2025-02-01", "end_date": "2025-02-10"}])
    assert (await _submit(async_client, first["id"])).status_code == 200
    limit = (await async_client.get(f"/employees/{OWNER_ID}/limits/2025", headers=OWNER_HEADERS)).json()
    assert limit["available_days"] == 10

    second = await _create(async_client, [{"start_date": "2025-08-01", "end_date": "2025-08-15"}])
    resp = await _submit(async_client, second["id"])

    assert resp.status_code == 400
    body = resp.json()
    assert body["error"] == "InsufficientAllowance"
    assert body["context"] == {"requested_days": 15, "available_days": 10}
    # Still a draft; nothing reserved.
    check = await async_client.get(f"/requests/{second['id']}", headers=OWNER_HEADERS)
    assert check.json()["status"] == "DRAFT"
    assert await _committed_days(async_client) == 10


async def test_submit_with_exact_allowance_policy(async_client: AsyncClient) -> None:
    set_settings(Settings(require_exact_allowance=True))
    await _grant(async_client, 20)

    data = await _create(async_client, [TWO_WEEKS])
    resp = await _submit(async_client, data["id"])
    assert resp.status_code == 422
    assert resp.json()["context"] == {"requested_days": 14, "available_days": 20}

    await async_client.put(
        f"/requests/{data['id']}",
        json={"periods": [TWO_WEEKS, {"start_date": "2025-09-01", "end_date": "2025-09-06"}]},
        headers=OWNER_HEADERS,
    )
    assert (await _submit(async_client, data["id"])).status_code == 200


async def test_submit_twice_is_invalid(async_client: AsyncClient) -> None:
    await _grant(async_client, 28)
    data = await _create(async_client, [TWO_WEEKS])
    await _submit(async_client, data["id"])

    resp = await _submit(async_client, data["id"])
    assert resp.status_code == 400
    assert await _committed_days(async_client) == 14


async def test_submit_by_non_owner_forbidden(async_client: AsyncClient) -> None:
    await _grant(async_client, 28)
    data = await _create(async_client, [TWO_WEEKS])
    resp = await _submit(async_client, data["id"], headers=ADMIN_HEADERS)
    assert resp.status_code == 403


async def test_submit_creates_reserve_entry(async_client: AsyncClient, db_session: AsyncSession) -> None:
    await _grant(async_client, 28)
    data = await _create(async_client, [TWO_WEEKS])
    await _submit(async_client, data["id"])

    result = await db_session.execute(
        select(VacationLimitEntry).where(
            col(VacationLimitEntry.source_id) == data["id"],
            col(VacationLimitEntry.entry_type) == LimitEntryType.RESERVE.value,
        )
    )
    entry = result.scalar_one()
    assert entry.days == 14
    assert entry.overdraft is False


async def test_submit_creates_audit_entry(async_client: AsyncClient, db_session: AsyncSession) -> None:
    await _grant(async_client, 28)
    data = await _create(async_client, [TWO_WEEKS])
    await _submit(async_client, data["id"])

    result = await db_session.execute(
        select(AuditLog).where(
            col(AuditLog.entity_type) == "REQUEST",
            col(AuditLog.entity_id) == data["id"],
        )
    )
    actions = sorted(a.action for a in result.scalars().all())
    assert actions == ["CREATE", "SUBMIT"]

    result = await db_session.execute(select(AuditLog).where(col(AuditLog.action) == "SUBMIT"))
    audit = result.scalar_one()
    assert audit.actor_id == OWNER_ID
    assert audit.before_json is not None
    assert audit.before_json["status"] == "DRAFT"
    assert audit.after_json is not None
    assert audit.after_json["status"] == "PENDING"
    assert audit.after_json["committed_days"] == 14


# ---------------------------------------------------------------------------
# Reads
# ---------------------------------------------------------------------------


async def test_get_request_as_owner(async_client: AsyncClient) -> None:
    data = await _create(async_client, [TWO_WEEKS])
    resp = await async_client.get(f"/requests/{data['id']}", headers=OWNER_HEADERS)
    assert resp.status_code == 200
    assert resp.json()["id"] == data["id"]


async def test_get_request_as_manager_in_scope(
    async_client: AsyncClient,
    org_units: InMemoryOrgUnitService,
) -> None:
    _seed_team(org_units)
    data = await _create(async_client, [TWO_WEEKS])
    resp = await async_client.get(f"/requests/{data['id']}", headers=MANAGER_HEADERS)
    assert resp.status_code == 200


async def test_get_request_outside_scope_forbidden(async_client: AsyncClient) -> None:
    data = await _create(async_client, [TWO_WEEKS])
    resp = await async_client.get(f"/requests/{data['id']}", headers=OUTSIDER_HEADERS)
    assert resp.status_code == 403
    assert resp.json()["error"] == "AuthorizationError"


async def test_list_own_requests(async_client: AsyncClient) -> None:
    await _create(async_client, [TWO_WEEKS])
    await _create(async_client, [FIVE_DAYS])
    await _create(async_client, [{"start_date": "2026-07-01", "end_date": "2026-07-14"}], year=2026)

    resp = await async_client.get("/requests", params={"year": 2025}, headers=OWNER_HEADERS)
    assert resp.status_code == 200
    assert resp.json()["total"] == 2


async def test_list_filter_by_status(async_client: AsyncClient) -> None:
    await _grant(async_client, 28)
    submitted = await _create(async_client, [TWO_WEEKS])
    await _submit(async_client, submitted["id"])
    await _create(async_client, [FIVE_DAYS])

    resp = await async_client.get("/requests", params={"status": "PENDING"}, headers=OWNER_HEADERS)
    items = resp.json()["items"]
    assert [i["id"] for i in items] == [submitted["id"]]


async def test_list_pagination(async_client: AsyncClient) -> None:
    for _ in range(3):
        await _create(async_client, [TWO_WEEKS])

    resp = await async_client.get("/requests", params={"offset": 1, "limit": 1}, headers=OWNER_HEADERS)
    body = resp.json()
    assert body["total"] == 3
    assert len(body["items"]) == 1


async def test_list_scope_for_manager(
    async_client: AsyncClient,
    org_units: InMemoryOrgUnitService,
) -> None:
    _seed_team(org_units)
    await _create(async_client, [TWO_WEEKS])
    await _create(async_client, [TWO_WEEKS], headers=OUTSIDER_HEADERS)

    resp = await async_client.get("/requests", headers=MANAGER_HEADERS)
    owners = {i["owner_id"] for i in resp.json()["items"]}
    assert owners == {str(OWNER_ID)}


async def test_list_by_owner_outside_scope_forbidden(async_client: AsyncClient) -> None:
    resp = await async_client.get("/requests", params={"owner_id": str(OWNER_ID)}, headers=OUTSIDER_HEADERS)
    assert resp.status_code == 403


async def test_list_by_owner_in_scope(
    async_client: AsyncClient,
    org_units: InMemoryOrgUnitService,
) -> None:
    _seed_team(org_units)
    await _create(async_client, [TWO_WEEKS])
    resp = await async_client.get("/requests", params={"owner_id": str(OWNER_ID)}, headers=MANAGER_HEADERS)
    assert resp.status_code == 200
    assert resp.json()["total"] == 1


async def test_admin_lists_every_request(async_client: AsyncClient) -> None:
    await _create(async_client, [TWO_WEEKS])
    await _create(async_client, [TWO_WEEKS], headers=OUTSIDER_HEADERS)

    resp = await async_client.get("/requests", params={"year": 2025}, headers=ADMIN_HEADERS)

    assert resp.status_code == 200
    body = resp.json()
    assert body["total"] == 2
    assert {item["owner_id"] for item in body["items"]} == {str(OWNER_ID), str(OUTSIDER_ID)}


async def test_admin_reads_any_request(async_client: AsyncClient) -> None:
    data = await _create(async_client, [TWO_WEEKS])

    resp = await async_client.get(f"/requests/{data['id']}", headers=ADMIN_HEADERS)
    assert resp.status_code == 200

    resp = await async_client.get("/requests", params={"owner_id": str(OWNER_ID)}, headers=ADMIN_HEADERS)
    assert resp.json()["total"] == 1


async def test_employee_without_team_lists_only_own(async_client: AsyncClient) -> None:
    await _create(async_client, [TWO_WEEKS])

    resp = await async_client.get("/requests", params={"year": 2025}, headers=OUTSIDER_HEADERS)

    assert resp.json()["total"] == 0


async def test_list_by_unit(async_client: AsyncClient, org_units: InMemoryOrgUnitService) -> None:
    _seed_team(org_units)
    await _create(async_client, [TWO_WEEKS])
    await _create(async_client, [TWO_WEEKS], headers=OUTSIDER_HEADERS)
    params = {"unit_id": str(TEAM_UNIT_ID)}

    for headers in (MANAGER_HEADERS, ADMIN_HEADERS):
        resp = await async_client.get("/requests", params=params, headers=headers)
        assert resp.status_code == 200
        assert [item["owner_id"] for item in resp.json()["items"]] == [str(OWNER_ID)]

    resp = await async_client.get("/requests", params=params, headers=OUTSIDER_HEADERS)
    assert resp.status_code == 403


async def test_list_by_unknown_unit(async_client: AsyncClient) -> None:
    resp = await async_client.get("/requests", params={"unit_id": str(uuid.uuid4())}, headers=ADMIN_HEADERS)
    assert resp.status_code == 404
