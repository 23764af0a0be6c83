"""Best-effort gather — failures are skipped, order is kept."""

from uemp.services.best_effort import gather_best_effort


async def test_failed_items_are_skipped_in_order():
    async def fetch(n):
        if n == 2:
            raise ValueError("boom")
        return n * 10

    assert await gather_best_effort([1, 2, 3], fetch) == [(1, 10), (3, 30)]
