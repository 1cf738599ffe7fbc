# File: product_visuals/dto/generation_job.py
from datetime import datetime, timezone
from uuid import uuid4

from pydantic import BaseModel, Field

from product_visuals.data.constants import JobStatus, ShotKind, ShotStatus
from product_visuals.dto.shot_options import ShotOptions
from product_visuals.dto.shot_spec import ShotSpec
from product_visuals.errors import JobStateError


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ShotResult(BaseModel):
    kind: ShotKind
    index: int
    status: ShotStatus = ShotStatus.PROCESSING
    artifact_ref: str | None = None
    error: str | None = None
    prompt: str
    completed_at: datetime | None = None
    generation_time_ms: int | None = None


class GenerationJob(BaseModel):
    """
    The unit of asynchronous work. Mutated only by the orchestrator; the
    transition helpers below enforce the state machine.
    """
    id: str = Field(default_factory=lambda: uuid4().hex)
    request_id: str | None = None
    owner_id: str | None = None
    product_id: str
    scene_id: str
    shot_options: ShotOptions = Field(default_factory=ShotOptions)
    status: JobStatus = JobStatus.PENDING
    shots: list[ShotSpec] = Field(default_factory=list)
    results: list[ShotResult] = Field(default_factory=list)
    progress_percent: int = 0
    completed_count: int = 0
    total_count: int = 0
    attempts: int = 0
    created_at: datetime = Field(default_factory=utcnow)
    started_at: datetime | None = None
    completed_at: datetime | None = None
    error: str | None = None

    def _ensure_mutable(self) -> None:
        if self.status.is_terminal:
            raise JobStateError(f"Job {self.id} is already {self.status.value}")

    def start(self, shots: list[ShotSpec]) -> None:
        self._ensure_mutable()
        self.status = JobStatus.PROCESSING
        self.started_at = utcnow()
        self.shots = list(shots)
        self.results = []
        self.total_count = len(shots)
        self.completed_count = 0
        self.progress_percent = 0
        self.error = None

    def dispatch_shot(self, index: int) -> ShotResult:
        """Creates the PROCESSING result for a shot whose call is being dispatched."""
        self._ensure_mutable()
        shot = self.shots[index]
        result = ShotResult(kind=shot.kind, index=index, prompt=shot.prompt)
        self.results.append(result)
        return result

    def result_for(self, index: int) -> ShotResult:
        for result in self.results:
            if result.index == index:
                return result
        raise KeyError(index)

    def record_shot(
        self,
        index: int,
        *,
        artifact_ref: str | None = None,
        error: str | None = None,
        generation_time_ms: int | None = None,
    ) -> ShotResult:
        """Moves one shot to its terminal state and advances progress."""
        self._ensure_mutable()
        result = self.result_for(index)
        if result.status is not ShotStatus.PROCESSING:
            raise JobStateError(f"Shot {index} of job {self.id} is already {result.status.value}")
        if self.completed_count >= self.total_count:
            raise JobStateError(f"Job {self.id} has no shots left to complete")

        result.status = ShotStatus.FAILED if error is not None else ShotStatus.COMPLETED
        result.artifact_ref = artifact_ref
        result.error = error
        result.completed_at = utcnow()
        result.generation_time_ms = generation_time_ms

        self.completed_count += 1
        self.progress_percent = round(100 * self.completed_count / self.total_count)
        return result

    @property
    def succeeded_count(self) -> int:
        return sum(1 for r in self.results if r.status is ShotStatus.COMPLETED)

    def finalize(self) -> JobStatus:
        """PROCESSING -> COMPLETED if any shot succeeded, otherwise FAILED."""
        self._ensure_mutable()
        if self.status is not JobStatus.PROCESSING:
            raise JobStateError(f"Job {self.id} cannot finalize from {self.status.value}")
        if any(r.status is ShotStatus.PROCESSING for r in self.results):
            raise JobStateError(f"Job {self.id} still has shots in flight")

        if self.succeeded_count > 0:
            self.status = JobStatus.COMPLETED
        else:
            self.status = JobStatus.FAILED
            last_error = next(
                (r.error for r in reversed(self.results) if r.error), "no shots were generated"
            )
            self.error = f"All {self.total_count} shots failed. Last error: {last_error}"
        self.completed_at = utcnow()
        return self.status

    def fail(self, reason: str) -> None:
        self._ensure_mutable()
        self.status = JobStatus.FAILED
        self.error = reason
        self.completed_at = utcnow()
