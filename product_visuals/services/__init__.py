# product_visuals/services/__init__.py
from . import artifact_store, job_queue
from .generation_worker import GenerationOrchestrator
from .image_generation_service import GenerationResult, generate_shot

__all__ = [
    "GenerationOrchestrator",
    "GenerationResult",
    "artifact_store",
    "generate_shot",
    "job_queue",
]
