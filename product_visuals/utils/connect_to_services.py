# product_visuals/utils/connect_to_services.py
import asyncpg
import structlog
import tenacity
from redis.asyncio import Redis
from redis.exceptions import RedisError

from product_visuals.data.settings import settings


def _retrying(logger: structlog.typing.FilteringBoundLogger, service: str) -> tenacity.AsyncRetrying:
    def before_sleep(state: tenacity.RetryCallState) -> None:
        logger.warning(
            f"Waiting for {service}",
            attempt=state.attempt_number,
            error=str(state.outcome.exception()) if state.outcome else None,
        )

    return tenacity.AsyncRetrying(
        stop=tenacity.stop_after_attempt(7),
        wait=tenacity.wait_exponential(multiplier=0.5, max=10),
        before_sleep=before_sleep,
    )


async def wait_postgres(
    logger: structlog.typing.FilteringBoundLogger,
    dsn: str,
    min_size: int | None = None,
    max_size: int | None = None,
) -> asyncpg.Pool:
    """Raises tenacity.RetryError when PostgreSQL stays unreachable."""
    async for attempt in _retrying(logger, "PostgreSQL"):
        with attempt:
            pool = await asyncpg.create_pool(
                dsn=dsn,
                min_size=min_size or settings.db.min_pool_size,
                max_size=max_size or settings.db.max_pool_size,
            )
            async with pool.acquire() as con:
                version = await con.fetchval("SHOW server_version;")
    logger.info("Connected to PostgreSQL", version=version)
    return pool


async def wait_redis_pool(
    logger: structlog.typing.FilteringBoundLogger,
    host: str,
    port: int,
    username: str | None = None,
    password: str | None = None,
    database: int = 0,
) -> Redis:
    """Raises tenacity.RetryError when Redis stays unreachable."""
    async for attempt in _retrying(logger, "Redis"):
        with attempt:
            redis = Redis(host=host, port=port, username=username, password=password, db=database)
            try:
                await redis.ping()
            except RedisError:
                await redis.aclose()
                raise
    logger.info("Connected to Redis", host=host, port=port, db=database)
    return redis
