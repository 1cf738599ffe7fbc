# product_visuals/web_handlers/jobs.py
from typing import TYPE_CHECKING

import orjson
import structlog
from aiohttp import web

if TYPE_CHECKING:
    from product_visuals.db.repo.base import GenerationRepository
    from product_visuals.services.job_queue import JobQueue

logger = structlog.get_logger(__name__)


def _json(data) -> web.Response:
    return web.Response(body=orjson.dumps(data), content_type="application/json")


async def get_generation(req: web.Request) -> web.Response:
    """Current job state; clients use it to catch up after missed events."""
    repository: GenerationRepository = req.app["repository"]
    job = await repository.get_job(req.match_info["job_id"])
    if job is None:
        raise web.HTTPNotFound(reason="Generation not found")
    return _json(job.model_dump(mode="json"))


async def enqueue_generation(req: web.Request) -> web.Response:
    job_id = req.match_info["job_id"]
    repository: GenerationRepository = req.app["repository"]
    queue: JobQueue = req.app["queue"]

    job = await repository.get_job(job_id)
    if job is None:
        raise web.HTTPNotFound(reason="Generation not found")
    if job.status.is_terminal:
        raise web.HTTPConflict(reason=f"Generation is already {job.status.value}")

    await queue.enqueue(job_id)
    logger.info("Generation enqueued", job_id=job_id)
    return web.Response(
        status=202,
        body=orjson.dumps({"generation_id": job_id, "status": job.status.value}),
        content_type="application/json",
    )


routes = [
    web.get("/generations/{job_id}", get_generation),
    web.post("/generations/{job_id}/enqueue", enqueue_generation),
]
