import asyncio

import pytest

from politecrawl.crawler.url_frontier import URLFrontier


def test_try_claim_only_succeeds_once():
    frontier = URLFrontier()

    assert frontier.try_claim("https://a.example/") is True
    assert frontier.try_claim("https://a.example/") is False
    assert frontier.try_claim("https://a.example/") is False
    assert "https://a.example/" in frontier


def test_try_claim_treats_trailing_slash_and_fragment_as_distinct():
    frontier = URLFrontier()

    assert frontier.try_claim("https://a.example")
    assert frontier.try_claim("https://a.example/")
    assert frontier.try_claim("https://a.example/#top")
    assert frontier.seen_count == 3


def test_concurrent_try_claim_has_exactly_one_winner():
    async def scenario():
        frontier = URLFrontier()

        async def claim():
            await asyncio.sleep(0)
            return frontier.try_claim("https://a.example/shared")

        return await asyncio.gather(*(claim() for _ in range(50)))

    results = asyncio.run(scenario())
    assert results.count(True) == 1
    assert results.count(False) == 49


def test_concurrent_discovery_enqueues_once():
    async def scenario():
        frontier = URLFrontier()
        added = await asyncio.gather(
            *(frontier.add_url("https://a.example/p1") for _ in range(10))
        )
        return frontier, added

    frontier, added = asyncio.run(scenario())
    assert added.count(True) == 1
    assert len(frontier) == 1


def test_queue_is_fifo():
    async def scenario():
        frontier = URLFrontier()
        count = await frontier.add_urls(["u1", "u2", "u1", "u3"])
        return count, [frontier.pop_front() for _ in range(4)]

    count, popped = asyncio.run(scenario())
    assert count == 3
    assert popped == ["u1", "u2", "u3", None]


def test_pop_front_moves_url_from_queue_to_visited():
    async def scenario():
        frontier = URLFrontier()
        await frontier.add_urls(["u1", "u2"])
        return frontier, frontier.pop_front()

    frontier, url = asyncio.run(scenario())
    assert url == "u1"
    assert frontier.visited == ["u1"]
    assert len(frontier) == 1
    # a URL is never queued and visited at the same time
    assert frontier.pop_front() == "u2"
    assert frontier.visited == ["u1", "u2"]
    assert len(frontier) == 0


def test_visited_never_shrinks_and_claims_stay_taken():
    async def scenario():
        frontier = URLFrontier()
        sizes = []
        await frontier.add_urls(["u1", "u2", "u3"])
        while (await frontier.next_url()) is not None:
            sizes.append(len(frontier.visited))
            await frontier.task_done()
        return frontier, sizes

    frontier, sizes = asyncio.run(scenario())
    assert sizes == [1, 2, 3]
    assert not frontier.try_claim("u1")
    assert frontier.visited == ["u1", "u2", "u3"]


def test_next_url_returns_none_when_nothing_is_queued_or_in_flight():
    async def scenario():
        frontier = URLFrontier()
        return await frontier.next_url(), frontier.is_exhausted()

    assert asyncio.run(scenario()) == (None, True)


def test_waiting_worker_gets_links_pushed_by_in_flight_fetch():
    async def scenario():
        frontier = URLFrontier()
        await frontier.add_url("seed")
        first = await frontier.next_url()

        waiter = asyncio.create_task(frontier.next_url())
        await asyncio.sleep(0.01)
        assert not waiter.done()

        await frontier.add_url("child")
        await frontier.task_done()
        second = await asyncio.wait_for(waiter, timeout=1)
        return first, second, frontier.in_flight

    assert asyncio.run(scenario()) == ("seed", "child", 1)


def test_waiters_released_when_last_fetch_finishes_without_new_links():
    async def scenario():
        frontier = URLFrontier()
        await frontier.add_url("seed")
        await frontier.next_url()

        waiters = [asyncio.create_task(frontier.next_url()) for _ in range(3)]
        await asyncio.sleep(0.01)
        assert not any(w.done() for w in waiters)

        await frontier.task_done()
        return await asyncio.wait_for(asyncio.gather(*waiters), timeout=1)

    assert asyncio.run(scenario()) == [None, None, None]


def test_close_releases_waiting_workers():
    async def scenario():
        frontier = URLFrontier()
        await frontier.add_url("seed")
        await frontier.next_url()

        waiter = asyncio.create_task(frontier.next_url())
        await asyncio.sleep(0.01)
        assert not waiter.done()

        await frontier.close()
        return await asyncio.wait_for(waiter, timeout=1)

    assert asyncio.run(scenario()) is None


def test_closed_frontier_returns_none_even_with_queued_urls():
    async def scenario():
        frontier = URLFrontier()
        await frontier.add_urls(["seed", "other"])
        await frontier.close()
        return await frontier.next_url(), len(frontier), frontier.closed

    assert asyncio.run(scenario()) == (None, 2, True)


def test_task_done_without_a_fetch_raises():
    async def scenario():
        await URLFrontier().task_done()

    with pytest.raises(ValueError):
        asyncio.run(scenario())


def test_get_stats():
    async def scenario():
        frontier = URLFrontier()
        await frontier.add_urls(["u1", "u2", "u3"])
        await frontier.next_url()
        return frontier.get_stats()

    assert asyncio.run(scenario()) == {
        'total_queued': 2,
        'total_seen': 3,
        'total_visited': 1,
        'in_flight': 1,
    }
