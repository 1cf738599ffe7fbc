# product_visuals/app.py
import asyncio
import sys
from typing import TYPE_CHECKING

import aiojobs
import structlog
import tenacity
from aiohttp import web
from redis.asyncio import Redis

from product_visuals import utils
from product_visuals.data.settings import settings
from product_visuals.db.repo.generations import PostgresGenerationRepository
from product_visuals.services.artifact_store import RedisArtifactStore
from product_visuals.services.broadcast import EventStream, ProgressPublisher, RoomBroker
from product_visuals.services.clients.factory import get_ai_client
from product_visuals.services.generation_worker import (
    GenerationOrchestrator,
    run_generation_worker,
    run_stall_sweeper,
)
from product_visuals.services.job_queue import RedisJobQueue
from product_visuals.services.utils.http_client import http_client
from product_visuals.web_handlers.artifacts import routes as artifact_routes
from product_visuals.web_handlers.event_stream import routes as event_stream_routes
from product_visuals.web_handlers.jobs import routes as job_routes
from product_visuals.web_handlers.rooms_ws import routes as rooms_ws_routes

if TYPE_CHECKING:
    import asyncpg

    from product_visuals.db.repo.base import GenerationRepository
    from product_visuals.services.artifact_store import ArtifactStore
    from product_visuals.services.clients.base import ImageGenerationAdapter
    from product_visuals.services.job_queue import JobQueue

logger = structlog.get_logger(__name__)


def create_app(
    repository: "GenerationRepository",
    queue: "JobQueue",
    artifact_store: "ArtifactStore",
    adapter: "ImageGenerationAdapter",
    *,
    run_worker: bool = True,
    shot_timeout_s: float | None = None,
    sse_keepalive_s: float | None = None,
) -> web.Application:
    """
    Wires the HTTP, WebSocket and SSE surfaces to one orchestrator.

    With `run_worker` the generation worker and the stall sweeper run as
    background jobs for the lifetime of the app.
    """
    app = web.Application()
    broker = RoomBroker()
    event_stream = EventStream()
    publisher = ProgressPublisher(broker, event_stream)

    app["repository"] = repository
    app["queue"] = queue
    app["artifact_store"] = artifact_store
    app["adapter"] = adapter
    app["broker"] = broker
    app["event_stream"] = event_stream
    app["publisher"] = publisher
    app["orchestrator"] = GenerationOrchestrator(
        repository, adapter, artifact_store, publisher, shot_timeout_s=shot_timeout_s
    )
    app["sse_keepalive_s"] = sse_keepalive_s or settings.web.sse_keepalive_s
    app["run_worker"] = run_worker

    app.add_routes(job_routes)
    app.add_routes(event_stream_routes)
    app.add_routes(rooms_ws_routes)
    app.add_routes(artifact_routes)

    app.on_startup.append(aiohttp_on_startup)
    app.on_shutdown.append(aiohttp_on_shutdown)
    return app


async def aiohttp_on_startup(app: web.Application) -> None:
    app["stop"] = asyncio.Event()
    app["scheduler"] = aiojobs.Scheduler()
    if not app["run_worker"]:
        return
    scheduler: aiojobs.Scheduler = app["scheduler"]
    await scheduler.spawn(run_generation_worker(app["queue"], app["orchestrator"], app["stop"]))
    await scheduler.spawn(run_stall_sweeper(app["queue"], app["stop"]))
    logger.info("Generation worker scheduled", adapter=app["adapter"].name)


async def aiohttp_on_shutdown(app: web.Application) -> None:
    app["stop"].set()
    scheduler: aiojobs.Scheduler = app["scheduler"]
    await scheduler.close()
    await app["adapter"].close()
    await http_client.close()
    if "db_pool" in app:
        db_pool: asyncpg.Pool = app["db_pool"]
        await db_pool.close()
    for key in ("queue_pool", "cache_pool"):
        if key in app:
            pool: Redis = app[key]
            await pool.aclose()


async def _redis(logger: "structlog.typing.FilteringBoundLogger", database: int) -> Redis:
    return await utils.connect_to_services.wait_redis_pool(
        logger=logger,
        host=settings.redis.host,
        port=settings.redis.port,
        username=settings.redis.username,
        password=settings.redis.password.get_secret_value()
        if settings.redis.password
        else None,
        database=database,
    )


async def create_service_connections(
    logger: "structlog.typing.FilteringBoundLogger",
) -> tuple["asyncpg.Pool", Redis, Redis]:
    try:
        db_pool = await utils.connect_to_services.wait_postgres(
            logger=logger.bind(type="db"), dsn=settings.db.pg_link
        )
    except tenacity.RetryError:
        logger.exception("Failed to connect to PostgreSQL")
        sys.exit(1)

    try:
        queue_pool = await _redis(logger.bind(type="queue"), settings.redis.queue_db)
        cache_pool = await _redis(logger.bind(type="cache"), settings.redis.cache_db)
    except tenacity.RetryError:
        logger.exception("Failed to connect to Redis")
        sys.exit(1)

    return db_pool, queue_pool, cache_pool


async def setup_app() -> web.Application:
    logger = utils.logging.setup_logger().bind(type="business")
    logger.debug("Configuring application")
    db_pool, queue_pool, cache_pool = await create_service_connections(logger)

    app = create_app(
        repository=PostgresGenerationRepository(db_pool),
        queue=RedisJobQueue(queue_pool),
        artifact_store=RedisArtifactStore(cache_pool),
        adapter=get_ai_client(),
    )
    app["db_pool"] = db_pool
    app["queue_pool"] = queue_pool
    app["cache_pool"] = cache_pool
    logger.info("Configured application", adapter=app["adapter"].name)
    return app


def main() -> None:
    web.run_app(
        setup_app(),
        handle_signals=True,
        host=settings.web.listening_host,
        port=settings.web.listening_port,
    )


if __name__ == "__main__":
    main()
