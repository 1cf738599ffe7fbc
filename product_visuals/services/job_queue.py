# product_visuals/services/job_queue.py
"""
Generation job queue.

Contract shared by both implementations:
  - attempts are bounded (`max_attempts`, counted on every dequeue);
  - `retry` re-schedules with exponential backoff, base * 2 ** (attempt - 1);
  - a job whose heartbeat is older than `stall_timeout_s` is put back on the
    ready list by `requeue_stalled`;
  - `ack` removes a job from the in-flight set for good.
"""
import asyncio
import time
from abc import ABC, abstractmethod
from collections import deque
from collections.abc import Callable
from dataclasses import dataclass

import structlog
from redis.asyncio import Redis

from product_visuals.data.settings import settings

logger = structlog.get_logger(__name__)


def backoff_delay(attempt: int, base_s: float) -> float:
    return base_s * 2 ** (max(attempt, 1) - 1)


@dataclass(frozen=True)
class QueuedJob:
    job_id: str
    attempt: int


class JobQueue(ABC):
    def __init__(
        self,
        *,
        max_attempts: int | None = None,
        backoff_base_s: float | None = None,
        stall_timeout_s: float | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        cfg = settings.generation
        self.max_attempts = max_attempts or cfg.max_job_attempts
        self.backoff_base_s = cfg.backoff_base_s if backoff_base_s is None else backoff_base_s
        self.stall_timeout_s = stall_timeout_s or cfg.stall_timeout_s
        self.clock = clock

    @abstractmethod
    async def enqueue(self, job_id: str, delay_s: float = 0.0) -> None:
        ...

    @abstractmethod
    async def dequeue(self, timeout_s: float = 1.0) -> QueuedJob | None:
        """Next ready job, or None when nothing became ready within the timeout."""

    @abstractmethod
    async def heartbeat(self, job_id: str) -> None:
        ...

    @abstractmethod
    async def ack(self, job_id: str) -> None:
        ...

    @abstractmethod
    async def _schedule_retry(self, job_id: str, delay_s: float) -> None:
        ...

    @abstractmethod
    async def requeue_stalled(self) -> list[str]:
        ...

    def exhausted(self, queued: QueuedJob) -> bool:
        return queued.attempt >= self.max_attempts

    async def retry(self, queued: QueuedJob) -> float | None:
        """
        Re-schedules a failed attempt. Returns the backoff delay, or None when
        the job is out of attempts (it is acked in that case).
        """
        if self.exhausted(queued):
            await self.ack(queued.job_id)
            logger.warning("Job out of attempts", job_id=queued.job_id, attempt=queued.attempt)
            return None
        delay = backoff_delay(queued.attempt, self.backoff_base_s)
        await self._schedule_retry(queued.job_id, delay)
        logger.info("Job scheduled for retry", job_id=queued.job_id, attempt=queued.attempt, delay_s=delay)
        return delay


class InMemoryJobQueue(JobQueue):
    def __init__(self, **kwargs) -> None:
        super().__init__(**kwargs)
        self._ready: deque[str] = deque()
        self._delayed: dict[str, float] = {}
        self._active: dict[str, float] = {}
        self._attempts: dict[str, int] = {}
        self._wakeup = asyncio.Event()

    async def enqueue(self, job_id: str, delay_s: float = 0.0) -> None:
        if delay_s > 0:
            self._delayed[job_id] = self.clock() + delay_s
        elif job_id not in self._ready:
            self._ready.append(job_id)
            self._wakeup.set()

    def _promote_due(self) -> None:
        now = self.clock()
        for job_id, ready_at in sorted(self._delayed.items(), key=lambda kv: kv[1]):
            if ready_at <= now:
                del self._delayed[job_id]
                self._ready.append(job_id)

    async def dequeue(self, timeout_s: float = 1.0) -> QueuedJob | None:
        deadline = time.monotonic() + timeout_s
        while True:
            self._promote_due()
            if self._ready:
                job_id = self._ready.popleft()
                self._attempts[job_id] = self._attempts.get(job_id, 0) + 1
                self._active[job_id] = self.clock()
                return QueuedJob(job_id=job_id, attempt=self._attempts[job_id])
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                return None
            self._wakeup.clear()
            try:
                await asyncio.wait_for(self._wakeup.wait(), timeout=min(remaining, 0.05))
            except asyncio.TimeoutError:
                pass

    async def heartbeat(self, job_id: str) -> None:
        if job_id in self._active:
            self._active[job_id] = self.clock()

    async def ack(self, job_id: str) -> None:
        self._active.pop(job_id, None)
        self._attempts.pop(job_id, None)

    async def _schedule_retry(self, job_id: str, delay_s: float) -> None:
        self._active.pop(job_id, None)
        await self.enqueue(job_id, delay_s)

    async def requeue_stalled(self) -> list[str]:
        cutoff = self.clock() - self.stall_timeout_s
        stalled = [job_id for job_id, beat in self._active.items() if beat < cutoff]
        for job_id in stalled:
            del self._active[job_id]
            self._ready.append(job_id)
            logger.warning("Stalled job re-queued", job_id=job_id)
        if stalled:
            self._wakeup.set()
        return stalled

    def in_flight(self) -> set[str]:
        return set(self._active)

    def pending(self) -> list[str]:
        return list(self._ready) + list(self._delayed)


def _s(value: bytes | str) -> str:
    return value.decode() if isinstance(value, bytes) else value


class RedisJobQueue(JobQueue):
    """
    Redis layout under `prefix`: `:ready` list, `:delayed` sorted set scored by
    ready time, `:active` hash of heartbeats, `:attempts` hash of counters.
    """

    def __init__(self, redis: Redis, prefix: str = "visuals:jobs", **kwargs) -> None:
        super().__init__(**kwargs)
        self.redis = redis
        self.ready_key = f"{prefix}:ready"
        self.delayed_key = f"{prefix}:delayed"
        self.active_key = f"{prefix}:active"
        self.attempts_key = f"{prefix}:attempts"

    async def enqueue(self, job_id: str, delay_s: float = 0.0) -> None:
        if delay_s > 0:
            await self.redis.zadd(self.delayed_key, {job_id: self.clock() + delay_s})
        else:
            await self.redis.rpush(self.ready_key, job_id)
        logger.debug("Job enqueued", job_id=job_id, delay_s=delay_s)

    async def _promote_due(self) -> None:
        due = await self.redis.zrangebyscore(self.delayed_key, 0, self.clock())
        for raw in due:
            # zrem is the claim; only the caller that removed the member pushes it.
            if await self.redis.zrem(self.delayed_key, raw):
                await self.redis.rpush(self.ready_key, raw)

    async def dequeue(self, timeout_s: float = 1.0) -> QueuedJob | None:
        await self._promote_due()
        if timeout_s > 0:
            popped = await self.redis.blpop([self.ready_key], timeout=timeout_s)
            raw = popped[1] if popped else None
        else:
            raw = await self.redis.lpop(self.ready_key)
        if raw is None:
            return None
        job_id = _s(raw)
        async with self.redis.pipeline(transaction=True) as pipe:
            pipe.hincrby(self.attempts_key, job_id, 1)
            pipe.hset(self.active_key, job_id, self.clock())
            attempt, _ = await pipe.execute()
        return QueuedJob(job_id=job_id, attempt=int(attempt))

    async def heartbeat(self, job_id: str) -> None:
        await self.redis.hset(self.active_key, job_id, self.clock())

    async def ack(self, job_id: str) -> None:
        async with self.redis.pipeline(transaction=True) as pipe:
            pipe.hdel(self.active_key, job_id)
            pipe.hdel(self.attempts_key, job_id)
            await pipe.execute()

    async def _schedule_retry(self, job_id: str, delay_s: float) -> None:
        async with self.redis.pipeline(transaction=True) as pipe:
            pipe.hdel(self.active_key, job_id)
            pipe.zadd(self.delayed_key, {job_id: self.clock() + delay_s})
            await pipe.execute()

    async def requeue_stalled(self) -> list[str]:
        cutoff = self.clock() - self.stall_timeout_s
        beats = await self.redis.hgetall(self.active_key)
        stalled = []
        for raw_id, raw_beat in beats.items():
            if float(_s(raw_beat)) >= cutoff:
                continue
            job_id = _s(raw_id)
            if await self.redis.hdel(self.active_key, job_id):
                await self.redis.rpush(self.ready_key, job_id)
                stalled.append(job_id)
                logger.warning("Stalled job re-queued", job_id=job_id)
        return stalled
