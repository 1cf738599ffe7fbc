# product_visuals/errors.py


class VisualsError(Exception):
    pass


class PreconditionError(VisualsError):
    """Inputs are not ready; the job must not start and is never retried."""


class ProductNotAnalyzedError(PreconditionError):
    def __init__(self, product_id: str | None = None) -> None:
        super().__init__(f"Product must be analyzed first (no product attributes found, id={product_id})")
        self.product_id = product_id


class SceneNotAnalyzedError(PreconditionError):
    def __init__(self, scene_id: str | None = None) -> None:
        super().__init__(f"Scene must be analyzed first (no background attributes found, id={scene_id})")
        self.scene_id = scene_id


class JobNotFoundError(PreconditionError):
    def __init__(self, job_id: str) -> None:
        super().__init__(f"GenerationJob id={job_id} not found.")
        self.job_id = job_id


class JobStateError(VisualsError):
    """Raised on an attempt to mutate a job that already reached a terminal state."""


class ImageGenerationError(VisualsError):
    kind = "provider_error"


class GenerationTimeoutError(ImageGenerationError):
    kind = "timeout"


class SafetyFilteredError(ImageGenerationError):
    kind = "safety_filtered"


class ProviderError(ImageGenerationError):
    kind = "provider_error"


class ArtifactStorageError(VisualsError):
    pass


class JobStartError(VisualsError):
    """Infrastructure failure before any shot was dispatched; the job may be retried."""

    def __init__(self, job_id: str, cause: BaseException) -> None:
        super().__init__(f"GenerationJob id={job_id} could not be started: {cause}")
        self.job_id = job_id
