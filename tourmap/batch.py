"""
batch.py – bounded thread pool that hands results back in input order.

Geocoding and routing are independent network round trips, so they fan out
over a small pool; callers still get one result per input, same position.
"""
from __future__ import annotations

import concurrent.futures
import logging
from typing import Callable, Iterable, List, TypeVar

log = logging.getLogger("tourmap.batch")

T = TypeVar("T")
R = TypeVar("R")


def map_ordered(func: Callable[[T], R], items: Iterable[T], workers: int = 1,
                name: str = "tourmap") -> List[R]:
    """
    ``[func(x) for x in items]`` over at most ``workers`` threads.

    The first exception cancels whatever has not started yet and is
    re-raised; nothing partial is returned.
    """
    items = list(items)
    if workers <= 1 or len(items) <= 1:
        return [func(item) for item in items]

    pool = concurrent.futures.ThreadPoolExecutor(
        max_workers=min(workers, len(items)), thread_name_prefix=name
    )
    try:
        futures = [pool.submit(func, item) for item in items]
        results = [future.result() for future in futures]
    except BaseException:
        log.debug("%s batch aborted – cancelling pending requests", name)
        pool.shutdown(wait=False, cancel_futures=True)
        raise
    pool.shutdown(wait=True)
    return results
