"""Bounded-concurrency fan-out over the fee API."""

import asyncio
import logging
from collections.abc import Awaitable, Callable, Iterable
from dataclasses import dataclass
from typing import Any, Generic, TypeVar

import httpx

from src.core.config import settings
from src.integrations.fee_api.client import FeeApiClient, FeeApiError
from src.modules.fees.schemas import FeeRecordResponse

logger = logging.getLogger(__name__)

K = TypeVar("K")
V = TypeVar("V")


@dataclass
class BatchResult(Generic[K, V]):
    key: K
    value: V | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


async def run_bounded(
    items: Iterable[K],
    fn: Callable[[K], Awaitable[V]],
    limit: int,
) -> list[BatchResult[K, V]]:
    """
    Call fn for every item with at most `limit` calls in flight.

    Results come back in input order. A failing item is reported in its own
    BatchResult and does not cancel the others.
    """
    semaphore = asyncio.Semaphore(max(1, limit))

    async def run_one(item: K) -> BatchResult[K, V]:
        async with semaphore:
            try:
                return BatchResult(key=item, value=await fn(item))
            except (FeeApiError, httpx.HTTPError) as exc:
                logger.warning("Fee API batch item %s failed: %s", item, exc)
                return BatchResult(key=item, error=str(exc) or exc.__class__.__name__)

    return list(await asyncio.gather(*(run_one(item) for item in items)))


async def fetch_class_fees(
    client: FeeApiClient,
    student_ids: Iterable[int],
    batch_size: int | None = None,
    **filters: Any,
) -> list[BatchResult[int, list[FeeRecordResponse]]]:
    """Fee records of every student in a class, a few requests at a time."""
    ids = list(dict.fromkeys(student_ids))
    return await run_bounded(
        ids,
        lambda student_id: client.get_student_fees(student_id, **filters),
        batch_size or settings.fee_api_batch_size,
    )
