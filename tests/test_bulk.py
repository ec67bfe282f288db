"""
Tests for the bulk operation engine.

Tests cover:
- Per-item outcomes in input order
- Failure downgrade to 400 with the failure message
- Success status per operation class
- Savepoint isolation of items written through a session
- The 207 response envelope
"""
import json

import pytest
from fastapi import HTTPException, status
from starlette.requests import Request

from orgroles.core.bulk import (
    HTTP_207_MULTI_STATUS,
    BulkResponseItem,
    Failure,
    Success,
    attempt,
    multi_status_response,
    run_bulk,
)
from orgroles.core.errors import BadRequestError, ConflictError, NotFoundError
from orgroles.features.roles.models import OrganizationRole
from orgroles.features.roles.service import list_roles


def make_request(path: str = "/organizations/o1/roles", query: bytes = b"") -> Request:
    return Request({
        "type": "http",
        "method": "PUT",
        "scheme": "http",
        "server": ("test", 80),
        "path": path,
        "query_string": query,
        "headers": [],
    })


class TestAttempt:
    """Tests for the single-item outcome conversion."""

    async def test_success(self):
        async def ok(item):
            return item

        assert await attempt(ok, "x", status.HTTP_201_CREATED) == Success(status=201)

    async def test_http_error_becomes_bad_request(self):
        async def conflict(item):
            raise ConflictError(f"Role {item} already exists")

        outcome = await attempt(conflict, "billing", status.HTTP_201_CREATED)
        assert outcome == Failure(status=400, reason="Role billing already exists")

    async def test_plain_exception_message(self):
        async def boom(item):
            raise ValueError("store unavailable")

        outcome = await attempt(boom, 1, status.HTTP_204_NO_CONTENT)
        assert isinstance(outcome, Failure)
        assert outcome.status == 400
        assert outcome.reason == "store unavailable"

    async def test_exception_without_message_uses_class_name(self):
        async def boom(item):
            raise RuntimeError()

        outcome = await attempt(boom, 1, status.HTTP_201_CREATED)
        assert outcome.reason == "RuntimeError"


class TestRunBulk:
    """Tests for batch execution."""

    async def test_every_item_is_attempted_in_order(self):
        seen = []

        async def record(item):
            seen.append(item)
            if item % 2:
                raise NotFoundError(f"{item} missing")

        results = await run_bulk([1, 2, 3, 4, 5], record, success_status=status.HTTP_201_CREATED)

        assert seen == [1, 2, 3, 4, 5]
        assert [r.item for r in results] == [1, 2, 3, 4, 5]
        assert [r.status for r in results] == [400, 201, 400, 201, 400]
        assert [r.error for r in results] == ["1 missing", None, "3 missing", None, "5 missing"]

    async def test_k_failures_out_of_n(self):
        existing = {"admin", "member"}

        async def create(name):
            if name in existing:
                raise ConflictError(f"Role {name} already exists")
            existing.add(name)

        names = ["billing", "admin", "ops", "billing", "member", "audit"]
        results = await run_bulk(names, create, success_status=status.HTTP_201_CREATED)

        assert len(results) == 6
        failed = [r for r in results if r.status == 400]
        assert len(failed) == 3
        assert [r.item for r in failed] == ["admin", "billing", "member"]
        assert all(r.status == 201 and r.error is None for r in results if r not in failed)

    async def test_destructive_success_status(self):
        async def noop(item):
            return None

        results = await run_bulk(["a", "b"], noop, success_status=status.HTTP_204_NO_CONTENT)
        assert [r.status for r in results] == [204, 204]

    async def test_all_items_fail_without_raising(self):
        async def deny(item):
            raise HTTPException(status_code=401, detail="nope")

        results = await run_bulk(["a", "b", "c"], deny, success_status=status.HTTP_201_CREATED)
        assert [r.status for r in results] == [400, 400, 400]
        assert {r.error for r in results} == {"nope"}

    async def test_empty_batch(self):
        async def never(item):
            pytest.fail("operation must not run")

        assert await run_bulk([], never, success_status=status.HTTP_201_CREATED) == []


class TestRunBulkWithSession:
    """Items written through a session are isolated by savepoints."""

    async def test_failed_item_leaves_no_writes(self, db, acme):
        async def create(name):
            db.add(OrganizationRole(organization_id=acme.id, name=name))
            await db.flush()
            if name == "broken":
                raise BadRequestError("broken item")

        results = await run_bulk(["first", "broken", "last"], create, success_status=status.HTTP_201_CREATED, db=db)
        await db.commit()

        assert [r.status for r in results] == [201, 400, 201]
        names = [r.name for r in await list_roles(db, acme.id)]
        assert names == ["admin", "first", "last", "member"]

    async def test_store_failure_does_not_poison_the_session(self, db, acme):
        async def create(name):
            db.add(OrganizationRole(organization_id=acme.id, name=name))
            await db.flush()

        results = await run_bulk(["first", "admin", "last"], create, success_status=status.HTTP_201_CREATED, db=db)
        await db.commit()

        assert [r.status for r in results] == [201, 400, 201]
        names = [r.name for r in await list_roles(db, acme.id)]
        assert names == ["admin", "first", "last", "member"]


class TestMultiStatusResponse:
    """Tests for the 207 envelope."""

    def test_status_body_and_location(self):
        items = [
            BulkResponseItem(status=201, error=None, item={"name": "billing"}),
            BulkResponseItem(status=400, error="Organization acme doesn't contain role ghost", item={"name": "ghost"}),
        ]
        response = multi_status_response(make_request(), items)

        assert response.status_code == HTTP_207_MULTI_STATUS
        assert response.headers["location"] == "http://test/organizations/o1/roles"
        assert json.loads(response.body) == [
            {"status": 201, "error": None, "item": {"name": "billing"}},
            {"status": 400, "error": "Organization acme doesn't contain role ghost", "item": {"name": "ghost"}},
        ]
