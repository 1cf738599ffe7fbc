from .base import GenerationRepository, InMemoryGenerationRepository
from .generations import PostgresGenerationRepository

__all__ = [
    "GenerationRepository",
    "InMemoryGenerationRepository",
    "PostgresGenerationRepository",
]
