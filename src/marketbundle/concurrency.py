from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor, as_completed
from contextvars import copy_context
from typing import Callable, Iterable, TypeVar

T = TypeVar("T")
R = TypeVar("R")


def map_bounded_fail_fast(
    func: Callable[[T], R],
    items: Iterable[T],
    *,
    max_workers: int,
) -> list[R]:
    """Apply ``func`` to every item with at most ``max_workers`` in flight.

    Results keep the input order. The first exception cancels the work that
    has not started yet and is re-raised to the caller.
    """
    work = list(items)
    if not work:
        return []
    if max_workers <= 1 or len(work) == 1:
        return [func(item) for item in work]

    results: dict[int, R] = {}
    with ThreadPoolExecutor(max_workers=min(max_workers, len(work))) as executor:
        future_to_index = {
            executor.submit(copy_context().run, func, item): index
            for index, item in enumerate(work)
        }
        try:
            for future in as_completed(future_to_index):
                results[future_to_index[future]] = future.result()
        except Exception:
            for future in future_to_index:
                future.cancel()
            raise

    return [results[index] for index in range(len(work))]
