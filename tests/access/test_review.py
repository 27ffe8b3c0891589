import pytest
from sqlalchemy.exc import OperationalError

from levelgate.access import review, service
from levelgate.access.results import AccessFailure
from levelgate.access.store import AccessStore
from levelgate.db.models import AccessRequest, AccessStatus


@pytest.mark.asyncio
async def test_approve_pending_request(store, test_session, add_request):
    await add_request("u1", "L2", request_id="r1")

    result = await review.approve(store, "r1", "admin-1")

    assert result.ok
    row = await test_session.get(AccessRequest, "r1")
    assert row.status == AccessStatus.APPROVED.value
    assert row.reviewed_by == "admin-1"
    assert row.reviewed_at is not None


@pytest.mark.asyncio
async def test_reject_pending_request(store, test_session, add_request):
    await add_request("u1", "L2", request_id="r1")

    result = await review.reject(store, "r1", "admin-1")

    assert result.ok
    row = await test_session.get(AccessRequest, "r1")
    assert row.status == AccessStatus.REJECTED.value


@pytest.mark.asyncio
async def test_review_unknown_request(store):
    result = await review.approve(store, "missing", "admin-1")

    assert result.failure is AccessFailure.REQUEST_NOT_FOUND


@pytest.mark.asyncio
async def test_review_only_pending(store, add_request):
    await add_request("u1", "L2", AccessStatus.REJECTED, request_id="r1")

    result = await review.approve(store, "r1", "admin-1")

    assert result.failure is AccessFailure.NOT_PENDING
    assert result.policy.status_code == 409


@pytest.mark.asyncio
async def test_approved_request_grants_access(store):
    created = await service.request_access(store, "u1", "PET")
    await review.approve(store, created.request_id, "admin-1")

    again = await service.request_access(store, "u1", "pet")

    assert again.failure is AccessFailure.ALREADY_HAS_ACCESS
    assert "pet" in await service.accessible_levels(store, "u1")


@pytest.mark.asyncio
async def test_list_pending(store, add_request):
    await add_request("u1", "L2", request_id="r1")
    await add_request("u2", "L-pet", request_id="r2")
    await add_request("u3", "L2", AccessStatus.APPROVED, request_id="r3")

    rows = await review.list_pending(store)

    assert sorted((req.id, name) for req, name in rows) == [
        ("r1", "Flyers"),
        ("r2", "PET"),
    ]


@pytest.mark.asyncio
async def test_bulk_review_reports_each_request(store, add_request):
    await add_request("u1", "L2", request_id="r1")
    await add_request("u2", "L2", AccessStatus.APPROVED, request_id="r2")

    outcome = await review.bulk_review(
        store, ["r1", "r2", "nope"], "admin-1", review.ReviewAction.REJECT
    )

    assert outcome["successful"] == ["r1"]
    assert outcome["failed"] == [
        {"requestId": "r2", "error": "Access request is not pending"},
        {"requestId": "nope", "error": "Access request not found"},
    ]


class FailingFirstCommit:
    """Session wrapper whose first commit flushes, then loses the connection."""

    def __init__(self, session):
        self.session = session
        self.commits = 0

    def __getattr__(self, name):
        return getattr(self.session, name)

    async def commit(self):
        self.commits += 1
        if self.commits == 1:
            await self.session.flush()
            raise OperationalError("COMMIT", {}, Exception("server closed connection"))
        await self.session.commit()


@pytest.mark.asyncio
async def test_bulk_review_rolls_back_failed_commit(test_session, add_request):
    await add_request("u1", "L2", request_id="r1")
    await add_request("u2", "L-pet", request_id="r2")
    store = AccessStore(FailingFirstCommit(test_session))

    outcome = await review.bulk_review(
        store, ["r1", "r2"], "admin-1", review.ReviewAction.APPROVE
    )

    assert outcome == {
        "successful": ["r2"],
        "failed": [{"requestId": "r1", "error": "Internal server error"}],
    }
    r1 = await test_session.get(AccessRequest, "r1")
    r2 = await test_session.get(AccessRequest, "r2")
    assert r1.status == AccessStatus.PENDING.value
    assert r1.reviewed_by is None
    assert r2.status == AccessStatus.APPROVED.value
