"""Tests for the job queue contract, run against both implementations."""

import asyncio

import fakeredis
import pytest

from product_visuals.services.generation_worker import run_stall_sweeper
from product_visuals.services.job_queue import InMemoryJobQueue, QueuedJob, RedisJobQueue, backoff_delay


@pytest.fixture
def clock():
    return [0.0]


@pytest.fixture(params=["memory", "redis"])
async def fake_queue(request, clock):
    options = dict(max_attempts=3, backoff_base_s=5.0, stall_timeout_s=300.0, clock=lambda: clock[0])
    if request.param == "memory":
        yield InMemoryJobQueue(**options)
        return
    redis = fakeredis.FakeAsyncRedis(server=fakeredis.FakeServer())
    yield RedisJobQueue(redis, prefix="test:jobs", **options)
    await redis.aclose()


@pytest.fixture
def memory_queue(clock) -> InMemoryJobQueue:
    return InMemoryJobQueue(max_attempts=3, backoff_base_s=5.0, stall_timeout_s=300.0, clock=lambda: clock[0])


def test_backoff_is_exponential():
    assert [backoff_delay(a, 5.0) for a in (1, 2, 3, 4)] == [5.0, 10.0, 20.0, 40.0]


class TestJobQueueContract:
    async def test_fifo_and_attempt_counting(self, fake_queue):
        await fake_queue.enqueue("a")
        await fake_queue.enqueue("b")
        assert await fake_queue.dequeue(timeout_s=0) == QueuedJob("a", 1)
        assert await fake_queue.dequeue(timeout_s=0) == QueuedJob("b", 1)
        assert await fake_queue.dequeue(timeout_s=0) is None

    async def test_delayed_job_waits_for_its_time(self, fake_queue, clock):
        await fake_queue.enqueue("a", delay_s=10.0)
        assert await fake_queue.dequeue(timeout_s=0) is None

        clock[0] = 10.0
        assert await fake_queue.dequeue(timeout_s=0) == QueuedJob("a", 1)

    async def test_retry_schedules_with_backoff(self, fake_queue, clock):
        await fake_queue.enqueue("a")
        first = await fake_queue.dequeue(timeout_s=0)

        assert await fake_queue.retry(first) == 5.0
        assert await fake_queue.dequeue(timeout_s=0) is None

        clock[0] = 5.0
        second = await fake_queue.dequeue(timeout_s=0)
        assert second == QueuedJob("a", 2)
        assert await fake_queue.retry(second) == 10.0

        clock[0] = 14.0
        assert await fake_queue.dequeue(timeout_s=0) is None
        clock[0] = 15.0
        assert await fake_queue.dequeue(timeout_s=0) == QueuedJob("a", 3)

    async def test_retry_exhausted_acks(self, fake_queue, clock):
        await fake_queue.enqueue("a")
        for _ in range(2):
            await fake_queue.dequeue(timeout_s=0)
            await fake_queue.enqueue("a")
        last = await fake_queue.dequeue(timeout_s=0)
        assert last == QueuedJob("a", 3)

        assert await fake_queue.retry(last) is None

        clock[0] = 1000.0
        assert await fake_queue.dequeue(timeout_s=0) is None
        assert await fake_queue.requeue_stalled() == []

    async def test_ack_resets_attempts(self, fake_queue, clock):
        await fake_queue.enqueue("a")
        queued = await fake_queue.dequeue(timeout_s=0)
        await fake_queue.ack(queued.job_id)

        clock[0] = 1000.0
        assert await fake_queue.requeue_stalled() == []

        await fake_queue.enqueue("a")
        assert (await fake_queue.dequeue(timeout_s=0)).attempt == 1

    async def test_stalled_job_is_requeued(self, fake_queue, clock):
        await fake_queue.enqueue("a")
        await fake_queue.enqueue("b")
        await fake_queue.dequeue(timeout_s=0)
        await fake_queue.dequeue(timeout_s=0)

        clock[0] = 200.0
        await fake_queue.heartbeat("b")
        clock[0] = 301.0

        assert await fake_queue.requeue_stalled() == ["a"]
        assert await fake_queue.dequeue(timeout_s=0) == QueuedJob("a", 2)

        clock[0] = 501.0
        assert await fake_queue.requeue_stalled() == ["b"]


class TestInMemoryJobQueue:
    async def test_dequeue_waits_for_enqueue(self, memory_queue):
        async def later():
            await asyncio.sleep(0.05)
            await memory_queue.enqueue("late")

        task = asyncio.create_task(later())
        queued = await memory_queue.dequeue(timeout_s=1.0)
        await task
        assert queued.job_id == "late"

    async def test_in_flight_tracking(self, memory_queue):
        await memory_queue.enqueue("a")
        queued = await memory_queue.dequeue(timeout_s=0)
        assert memory_queue.in_flight() == {"a"}

        await memory_queue.retry(queued)
        assert memory_queue.in_flight() == set()
        assert memory_queue.pending() == ["a"]


class TestRedisJobQueue:
    @pytest.fixture
    async def redis(self):
        redis = fakeredis.FakeAsyncRedis(server=fakeredis.FakeServer())
        yield redis
        await redis.aclose()

    @pytest.fixture
    def redis_queue(self, redis, clock) -> RedisJobQueue:
        return RedisJobQueue(redis, prefix="test:jobs", max_attempts=3, backoff_base_s=5.0, clock=lambda: clock[0])

    async def test_retry_moves_job_to_delayed_set(self, redis, redis_queue):
        await redis_queue.enqueue("a")
        queued = await redis_queue.dequeue(timeout_s=0)
        assert await redis.hget("test:jobs:attempts", "a") == b"1"
        assert await redis.hexists("test:jobs:active", "a")

        await redis_queue.retry(queued)

        assert await redis.zscore("test:jobs:delayed", "a") == 5.0
        assert not await redis.hexists("test:jobs:active", "a")
        assert await redis.llen("test:jobs:ready") == 0

    async def test_due_jobs_are_promoted_once(self, redis, redis_queue, clock):
        await redis_queue.enqueue("a", delay_s=5.0)
        await redis_queue.enqueue("b", delay_s=50.0)
        clock[0] = 6.0

        assert await redis_queue.dequeue(timeout_s=0) == QueuedJob("a", 1)
        assert await redis_queue.dequeue(timeout_s=0) is None
        assert await redis.zrange("test:jobs:delayed", 0, -1) == [b"b"]

    async def test_ack_clears_bookkeeping(self, redis, redis_queue):
        await redis_queue.enqueue("a")
        await redis_queue.dequeue(timeout_s=0)

        await redis_queue.ack("a")

        assert await redis.hgetall("test:jobs:active") == {}
        assert await redis.hgetall("test:jobs:attempts") == {}


async def test_stall_sweeper_stops():
    queue = InMemoryJobQueue(stall_timeout_s=0.01)
    await queue.enqueue("a")
    await queue.dequeue(timeout_s=0)

    stop = asyncio.Event()
    sweeper = asyncio.create_task(run_stall_sweeper(queue, stop, interval_s=0.05))
    await asyncio.sleep(0.2)
    stop.set()
    await asyncio.wait_for(sweeper, timeout=1)

    assert queue.pending() == ["a"]
