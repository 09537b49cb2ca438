from __future__ import annotations

import logging
import time
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FuturesTimeout
from typing import Callable, Sequence, TypeVar


logger = logging.getLogger(__name__)

T = TypeVar("T")
R = TypeVar("R")


def parallel_map(
    fn: Callable[[T], R],
    items: Sequence[T],
    *,
    max_workers: int,
    threshold: int,
    timeout: float | None = None,
) -> list[R]:
    """Apply ``fn`` to every item, preserving input order.

    Small inputs run on the calling thread; inputs of ``threshold`` items or more
    fan out over a thread pool. Either way the whole map is bounded by ``timeout``
    seconds and raises ``concurrent.futures.TimeoutError`` when it is exceeded.
    """

    if len(items) < threshold or max_workers <= 1:
        deadline = time.monotonic() + timeout if timeout is not None else None
        results: list[R] = []
        for item in items:
            if deadline is not None and time.monotonic() > deadline:
                raise FuturesTimeout()
            results.append(fn(item))
        return results

    logger.debug("parallel_map items=%s workers=%s", len(items), max_workers)
    executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="jobgraph-score")
    try:
        return list(executor.map(fn, items, timeout=timeout))
    finally:
        # Pending work is dropped on timeout; finished runs have nothing left to cancel.
        executor.shutdown(wait=False, cancel_futures=True)
