# product_visuals/services/generation_worker.py
import asyncio
import time
from contextlib import suppress

import structlog

from product_visuals.data.constants import EventName, ShotStatus
from product_visuals.data.settings import settings
from product_visuals.db.repo.base import GenerationRepository
from product_visuals.dto.generation_job import GenerationJob, ShotResult
from product_visuals.dto.shot_spec import ShotSpec
from product_visuals.errors import (
    ArtifactStorageError,
    ImageGenerationError,
    JobNotFoundError,
    JobStartError,
    PreconditionError,
)
from product_visuals.services.artifact_store import ArtifactStore, artifact_key
from product_visuals.services.broadcast.publisher import ProgressPublisher
from product_visuals.services.clients.base import ImageGenerationAdapter
from product_visuals.services.image_generation_service import generate_shot
from product_visuals.services.job_queue import JobQueue, QueuedJob
from product_visuals.services.prompting import synthesize

logger = structlog.get_logger(__name__)


def _result_summary(result: ShotResult) -> dict:
    return {
        "shot_kind": result.kind.value,
        "index": result.index,
        "status": result.status.value,
        "artifact_ref": result.artifact_ref,
        "error": result.error,
    }


class GenerationOrchestrator:
    """
    Drives one GenerationJob from PENDING to COMPLETED or FAILED.

    All shots of a job are generated concurrently. Every change to the job
    record after dispatch happens under the job's lock, so completions that
    race each other cannot lose an increment, and events leave in the order
    the shots finished.
    """

    def __init__(
        self,
        repository: GenerationRepository,
        adapter: ImageGenerationAdapter,
        artifact_store: ArtifactStore,
        publisher: ProgressPublisher,
        shot_timeout_s: float | None = None,
    ) -> None:
        self.repository = repository
        self.adapter = adapter
        self.artifact_store = artifact_store
        self.publisher = publisher
        self.shot_timeout_s = shot_timeout_s or settings.generation.shot_timeout_s
        self._locks: dict[str, asyncio.Lock] = {}

    def _lock_for(self, job_id: str) -> asyncio.Lock:
        return self._locks.setdefault(job_id, asyncio.Lock())

    async def run(self, job_id: str, attempt: int = 1) -> GenerationJob:
        """
        Raises JobNotFoundError for an unknown id and JobStartError when the
        job could not be started; only JobStartError may be retried.
        Precondition failures end the job as FAILED without raising.

        A job that already dispatched shots is never started again: a
        redelivered one is settled from its recorded results.
        """
        try:
            job = await self.repository.get_job(job_id)
        except Exception as e:
            raise JobStartError(job_id, e) from e
        if job is None:
            raise JobNotFoundError(job_id)

        log = logger.bind(job_id=job_id, attempt=attempt)
        if job.status.is_terminal:
            log.info("Job already finished, skipping", status=job.status.value)
            return job

        if job.results:
            log.warning("Job was interrupted after dispatch, settling recorded shots", recorded=len(job.results))
            await self._settle(job, "Shot was interrupted before it finished.", time.monotonic())
            return job

        try:
            references, synthesis_shots = await self._prepare(job)
        except PreconditionError as e:
            log.warning("Job preconditions not met", error=str(e))
            job.fail(str(e))
            await self.repository.save_job(job)
            await self._emit_complete(job)
            return job
        except Exception as e:
            raise JobStartError(job_id, e) from e

        job.attempts = attempt
        job.start(synthesis_shots)
        try:
            await self.repository.save_job(job)
        except Exception as e:
            raise JobStartError(job_id, e) from e
        log.info("Job processing started", shots=job.total_count)

        lock = self._lock_for(job_id)
        started = time.monotonic()
        try:
            outcomes = await asyncio.gather(
                *(
                    self._run_shot(job, index, shot, references, lock, started)
                    for index, shot in enumerate(job.shots)
                ),
                return_exceptions=True,
            )
            errors = []
            for outcome in outcomes:
                if isinstance(outcome, Exception):
                    errors.append(outcome)
                elif isinstance(outcome, BaseException):
                    raise outcome

            async with lock:
                if errors:
                    log.error("Shot bookkeeping failed", error=str(errors[-1]), failures=len(errors))
                    await self._settle(job, f"Shot was interrupted: {errors[-1]}", started)
                else:
                    job.finalize()
                    await self.repository.save_job(job)
                    await self._emit_complete(job)
        finally:
            self._locks.pop(job_id, None)

        log.info(
            "Job finished",
            status=job.status.value,
            succeeded=job.succeeded_count,
            total=job.total_count,
            elapsed_s=round(time.monotonic() - started, 1),
        )
        return job

    async def _prepare(self, job: GenerationJob) -> tuple[list[str], list[ShotSpec]]:
        product = await self.repository.get_product(job.product_id)
        if product is None:
            raise PreconditionError(f"Product id={job.product_id} not found.")
        scene = await self.repository.get_scene(job.scene_id)
        if scene is None:
            raise PreconditionError(f"Scene id={job.scene_id} not found.")

        synthesis = synthesize(product, scene, job.shot_options)
        references = product.reference_image_urls()
        if scene.reference_image_url:
            # The scene reference goes last; prompts refer to it as the LAST image.
            references.append(scene.reference_image_url)
        return references, list(synthesis.shots)

    async def _settle(self, job: GenerationJob, reason: str, started: float) -> None:
        """Fails every shot that has no terminal result yet, then finalizes the job."""
        for index in range(len(job.shots)):
            try:
                result = job.result_for(index)
            except KeyError:
                result = job.dispatch_shot(index)
            if result.status is not ShotStatus.PROCESSING:
                continue
            result = job.record_shot(index, error=reason)
            await self._emit_shot_completed(job, result)
            await self._emit_progress(job, started)
        job.finalize()
        await self.repository.save_job(job)
        await self._emit_complete(job)

    async def _run_shot(
        self,
        job: GenerationJob,
        index: int,
        shot: ShotSpec,
        references: list[str],
        lock: asyncio.Lock,
        started: float,
    ) -> None:
        log = logger.bind(job_id=job.id, shot_kind=shot.kind.value, index=index)

        async with lock:
            job.dispatch_shot(index)
            await self.repository.save_job(job)
            await self.publisher.emit(
                EventName.SHOT_PROCESSING, job.id, job.owner_id, shot_kind=shot.kind.value, index=index
            )

        artifact_ref = error = None
        generation_time_ms = None
        try:
            generated = await generate_shot(self.adapter, shot, references, timeout_s=self.shot_timeout_s)
            generation_time_ms = generated.generation_time_ms
            artifact_ref = await self.artifact_store.put(
                artifact_key(job.id, index, shot.kind.value), generated.image_bytes, generated.content_type
            )
        except (ImageGenerationError, ArtifactStorageError) as e:
            error = str(e) or type(e).__name__
            log.warning("Shot failed", error=error, error_type=type(e).__name__)

        async with lock:
            result = job.record_shot(
                index, artifact_ref=artifact_ref, error=error, generation_time_ms=generation_time_ms
            )
            await self.repository.save_job(job)
            await self._emit_shot_completed(job, result)
            await self._emit_progress(job, started)
        if result.status is ShotStatus.COMPLETED:
            log.info("Shot completed", generation_time_ms=generation_time_ms, progress=job.progress_percent)

    async def _emit_progress(self, job: GenerationJob, started: float) -> None:
        elapsed = time.monotonic() - started
        remaining = job.total_count - job.completed_count
        await self.publisher.emit(
            EventName.PROGRESS,
            job.id,
            job.owner_id,
            percent=job.progress_percent,
            completed=job.completed_count,
            total=job.total_count,
            elapsed_seconds=round(elapsed, 1),
            estimated_remaining_seconds=round(elapsed / job.completed_count * remaining, 1),
        )

    async def _emit_shot_completed(self, job: GenerationJob, result: ShotResult) -> None:
        data = {
            "shot_kind": result.kind.value,
            "index": result.index,
            "status": result.status.value,
            "prompt": result.prompt,
            "generated_at": result.completed_at.isoformat() if result.completed_at else None,
        }
        match result.status:
            case ShotStatus.COMPLETED:
                data["artifact_ref"] = result.artifact_ref
            case ShotStatus.FAILED:
                data["error"] = result.error
            case ShotStatus.PROCESSING:
                raise ValueError("shot_completed emitted for an unfinished shot")
        await self.publisher.emit(EventName.SHOT_COMPLETED, job.id, job.owner_id, **data)

    async def _emit_complete(self, job: GenerationJob) -> None:
        await self.publisher.emit(
            EventName.COMPLETE,
            job.id,
            job.owner_id,
            status=job.status.value,
            completed=job.succeeded_count,
            total=job.total_count,
            error=job.error,
            results=[_result_summary(r) for r in job.results],
        )

    async def fail_job(self, job_id: str, reason: str) -> GenerationJob | None:
        """
        Ends a job after its last attempt. No-op for finished or unknown jobs.
        A job with dispatched shots keeps the ones that succeeded.
        """
        job = await self.repository.get_job(job_id)
        if job is None or job.status.is_terminal:
            return job
        if job.results:
            await self._settle(job, reason, time.monotonic())
        else:
            job.fail(reason)
            await self.repository.save_job(job)
            await self._emit_complete(job)
        logger.warning("Job ended after its last attempt", job_id=job_id, reason=reason, status=job.status.value)
        return job


async def _keep_alive(queue: JobQueue, job_id: str, interval_s: float) -> None:
    while True:
        await asyncio.sleep(interval_s)
        await queue.heartbeat(job_id)


async def process_queued_job(queue: JobQueue, orchestrator: GenerationOrchestrator, queued: QueuedJob) -> None:
    """
    Runs one dequeued job and settles it on the queue.

    Only start failures are retried with backoff. A job that fails after its
    shots were dispatched stays in flight; the stall sweeper redelivers it and
    the orchestrator then settles it from its recorded results.
    """
    log = logger.bind(job_id=queued.job_id, attempt=queued.attempt)

    if queued.attempt > queue.max_attempts:
        await orchestrator.fail_job(queued.job_id, f"Job exceeded {queue.max_attempts} attempts.")
        await queue.ack(queued.job_id)
        return

    heartbeat = asyncio.create_task(_keep_alive(queue, queued.job_id, max(queue.stall_timeout_s / 3, 0.01)))
    try:
        await orchestrator.run(queued.job_id, attempt=queued.attempt)
    except JobNotFoundError:
        log.warning("Dequeued job does not exist, dropping it")
        await queue.ack(queued.job_id)
    except JobStartError as e:
        log.warning("Job could not be started", error=str(e))
        delay = await queue.retry(queued)
        if delay is None:
            await orchestrator.fail_job(queued.job_id, f"Job failed after {queued.attempt} attempts: {e}")
    except Exception:
        log.exception("Job failed after its shots were dispatched, leaving it to the stall sweeper")
    else:
        await queue.ack(queued.job_id)
    finally:
        heartbeat.cancel()
        try:
            await heartbeat
        except asyncio.CancelledError:
            pass
        except Exception:
            log.exception("Job heartbeat failed")


async def run_generation_worker(
    queue: JobQueue,
    orchestrator: GenerationOrchestrator,
    stop: asyncio.Event,
    poll_interval_s: float | None = None,
) -> None:
    """One worker: jobs are taken one at a time and run to completion."""
    poll = poll_interval_s or settings.generation.poll_interval_s
    logger.info("Generation worker started", adapter=orchestrator.adapter.name)
    while not stop.is_set():
        queued = await queue.dequeue(timeout_s=poll)
        if queued is None:
            continue
        await process_queued_job(queue, orchestrator, queued)
    logger.info("Generation worker stopped")


async def run_stall_sweeper(queue: JobQueue, stop: asyncio.Event, interval_s: float | None = None) -> None:
    interval = interval_s or settings.generation.stall_check_interval_s
    while not stop.is_set():
        with suppress(asyncio.TimeoutError):
            await asyncio.wait_for(stop.wait(), timeout=interval)
        if not stop.is_set():
            await queue.requeue_stalled()
