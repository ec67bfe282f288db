"""
Bulk operation engine.

Applies one operation to every item of a batch, independently and in order,
and reports one outcome per item. A failing item never stops the batch and
never fails the call: the aggregate response is always 207 Multi-Status.

Usage:
    items = await run_bulk(roles, create_one, success_status=status.HTTP_201_CREATED, db=db)
    return multi_status_response(request, items)
"""
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Generic, Iterable, Optional, TypeVar, Union
from fastapi import status
from fastapi.encoders import jsonable_encoder
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.requests import Request
from starlette.responses import JSONResponse

from orgroles.core.errors import error_message
from orgroles.utils import get_logger


log = get_logger(__name__)

T = TypeVar("T")

HTTP_207_MULTI_STATUS = 207


@dataclass(frozen=True)
class Success:
    status: int


@dataclass(frozen=True)
class Failure:
    status: int
    reason: str


Outcome = Union[Success, Failure]


class BulkResponseItem(BaseModel, Generic[T]):
    """Outcome of one item in a batch, echoing the submitted item."""
    status: int
    error: Optional[str] = None
    item: T


async def attempt(
    operation: Callable[[T], Awaitable[Any]],
    item: T,
    success_status: int,
    db: Optional[AsyncSession] = None,
) -> Outcome:
    """
    Run ``operation`` on a single item and turn its result into an Outcome.

    Any failure raised by the operation becomes a 400 Failure carrying the
    failure's message. With a session, the item runs inside a savepoint so
    a failed item leaves no writes behind and the session stays usable.
    """
    try:
        if db is None:
            await operation(item)
        else:
            async with db.begin_nested():
                await operation(item)
    except Exception as exc:
        reason = error_message(exc)
        log.warning("Bulk item failed: %s", reason)
        return Failure(status=status.HTTP_400_BAD_REQUEST, reason=reason)
    return Success(status=success_status)


def to_response_item(item: T, outcome: Outcome) -> BulkResponseItem[T]:
    if isinstance(outcome, Failure):
        return BulkResponseItem(status=outcome.status, error=outcome.reason, item=item)
    return BulkResponseItem(status=outcome.status, error=None, item=item)


async def run_bulk(
    items: Iterable[T],
    operation: Callable[[T], Awaitable[Any]],
    success_status: int,
    db: Optional[AsyncSession] = None,
) -> list[BulkResponseItem[T]]:
    """
    Apply ``operation`` to each item in input order.

    Args:
        items: Submitted items
        operation: Single-item operation; raising means the item failed
        success_status: Status reported for items that succeed
            (201 for additive operations, 204 for destructive ones)
        db: Session the operation writes through; each item gets its own savepoint

    Returns:
        One BulkResponseItem per input item, same order
    """
    results = []
    for item in items:
        outcome = await attempt(operation, item, success_status, db=db)
        results.append(to_response_item(item, outcome))

    failed = sum(1 for r in results if r.error is not None)
    log.debug("Bulk run finished: %d items, %d failed", len(results), failed)
    return results


def multi_status_response(request: Request, items: list[BulkResponseItem]) -> JSONResponse:
    """207 response listing per-item outcomes, located at the request URL."""
    return JSONResponse(
        status_code=HTTP_207_MULTI_STATUS,
        content=jsonable_encoder(items),
        headers={"Location": str(request.url)},
    )
