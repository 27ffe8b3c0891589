import pytest
from fastapi import HTTPException
from sqlalchemy import func, select
from sqlalchemy.exc import OperationalError

from levelgate.access.results import AccessResult
from levelgate.access.store import get_store
from levelgate.db.models import AccessRequest, AccessStatus
from levelgate.routes.errors import raise_for_failure


async def count_requests(session) -> int:
    res = await session.execute(select(func.count()).select_from(AccessRequest))
    return res.scalar_one()


@pytest.mark.asyncio
async def test_create_access_request(client, test_session):
    resp = await client.post("/student/access-request", json={"level": " Flyers "})

    assert resp.status_code == 200
    data = resp.json()
    assert data["success"] is True
    assert data["message"] == "Access request created successfully"

    row = await test_session.get(AccessRequest, data["requestId"])
    assert (row.student_id, row.level_id, row.status) == ("u1", "L2", "pending")


@pytest.mark.asyncio
async def test_beginner_level_rejected(client, test_session):
    resp = await client.post("/student/access-request", json={"level": "beginner"})

    assert resp.status_code == 400
    assert resp.json() == {"error": "Beginner level is always accessible"}
    assert await count_requests(test_session) == 0


@pytest.mark.asyncio
async def test_duplicate_request_conflicts(client):
    first = await client.post("/student/access-request", json={"level": "pet"})
    second = await client.post("/student/access-request", json={"level": "pet"})

    assert first.status_code == 200
    assert second.status_code == 409
    assert second.json() == {
        "error": "You already have a pending request for this level"
    }


@pytest.mark.asyncio
async def test_already_has_access_conflicts(client, add_request):
    await add_request("u1", "L-pet", AccessStatus.APPROVED)

    resp = await client.post("/student/access-request", json={"level": "PET"})

    assert resp.status_code == 409
    assert resp.json() == {"error": "You already have access to this level"}


@pytest.mark.asyncio
async def test_unknown_level_not_found(client, test_session):
    resp = await client.post("/student/access-request", json={"level": "nonexistent"})

    assert resp.status_code == 404
    assert resp.json() == {"error": "Level not found"}
    assert await count_requests(test_session) == 0


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "payload",
    [{}, {"level": ""}, {"level": "   "}, {"level": 7}, {"level": None}],
)
async def test_invalid_payload(client, test_session, payload):
    resp = await client.post("/student/access-request", json=payload)

    assert resp.status_code == 400
    assert "error" in resp.json()
    assert await count_requests(test_session) == 0


@pytest.mark.asyncio
async def test_non_json_body(client):
    resp = await client.post(
        "/student/access-request",
        content=b"level=flyers",
        headers={"Content-Type": "application/json"},
    )

    assert resp.status_code == 400


@pytest.mark.asyncio
async def test_store_failure_is_generic_500(app, client):
    class BrokenStore:
        async def find_level_by_name(self, name):
            raise OperationalError("SELECT", {}, Exception("db password wrong"))

    app.dependency_overrides[get_store] = lambda: BrokenStore()

    resp = await client.post("/student/access-request", json={"level": "flyers"})

    assert resp.status_code == 500
    assert resp.json() == {"error": "Internal server error"}


@pytest.mark.asyncio
async def test_my_requests_and_levels(client, add_request):
    await add_request("u1", "L2", AccessStatus.APPROVED)
    await client.post("/student/access-request", json={"level": "movers"})

    resp = await client.get("/student/access-requests")
    assert resp.status_code == 200
    names = sorted(r["levelName"] for r in resp.json()["requests"])
    assert names == ["Flyers", "Movers"]

    resp = await client.get("/student/access-requests", params={"status": "pending"})
    assert [r["levelName"] for r in resp.json()["requests"]] == ["Movers"]

    resp = await client.get("/student/levels")
    assert resp.json() == {"levels": ["beginner", "flyers"]}


@pytest.mark.asyncio
async def test_level_catalogue(client):
    resp = await client.get("/levels")

    assert resp.status_code == 200
    assert [lvl["name"] for lvl in resp.json()] == ["Beginner", "Movers", "Flyers", "PET"]


def test_result_without_id_or_failure_is_server_error():
    with pytest.raises(HTTPException) as exc:
        raise_for_failure(AccessResult())

    assert exc.value.status_code == 500


def test_successful_result_yields_request_id():
    assert raise_for_failure(AccessResult.success("req-1")) == "req-1"
