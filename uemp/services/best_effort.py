"""Best-Effort Gather — run independent reads, keep what succeeds, log what does not.

Invariants:
    - Items are processed sequentially in input order (no extra concurrency)
    - A failing item is logged and skipped; the gather itself never raises for one
      bad item
    - Results keep input order for the items that succeeded

Design Decisions:
    - Returns (item, result) pairs so callers can join results back to their inputs
"""

import logging
from typing import Awaitable, Callable, Iterable, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")
R = TypeVar("R")


async def gather_best_effort(
    items: Iterable[T],
    fetch: Callable[[T], Awaitable[R]],
    label: str = "item",
) -> list[tuple[T, R]]:
    results: list[tuple[T, R]] = []
    for item in items:
        try:
            results.append((item, await fetch(item)))
        except Exception as e:
            logger.warning(f"Skipping {label} {item!r}: {e}")
    return results
