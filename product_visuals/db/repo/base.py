# product_visuals/db/repo/base.py
from abc import ABC, abstractmethod

from product_visuals.dto.generation_job import GenerationJob
from product_visuals.dto.product import Product
from product_visuals.dto.scene import Scene


class GenerationRepository(ABC):
    """Load/save access to the records the orchestrator reads and writes."""

    @abstractmethod
    async def get_job(self, job_id: str) -> GenerationJob | None:
        ...

    @abstractmethod
    async def save_job(self, job: GenerationJob) -> None:
        """Inserts or fully overwrites the job record."""

    @abstractmethod
    async def get_product(self, product_id: str) -> Product | None:
        ...

    @abstractmethod
    async def get_scene(self, scene_id: str) -> Scene | None:
        ...


class InMemoryGenerationRepository(GenerationRepository):
    """Keeps deep copies so callers never share mutable state with the store."""

    def __init__(self) -> None:
        self.jobs: dict[str, GenerationJob] = {}
        self.products: dict[str, Product] = {}
        self.scenes: dict[str, Scene] = {}
        self.save_count = 0

    def add_product(self, product: Product) -> Product:
        self.products[product.id] = product
        return product

    def add_scene(self, scene: Scene) -> Scene:
        self.scenes[scene.id] = scene
        return scene

    async def get_job(self, job_id: str) -> GenerationJob | None:
        job = self.jobs.get(job_id)
        return job.model_copy(deep=True) if job else None

    async def save_job(self, job: GenerationJob) -> None:
        self.jobs[job.id] = job.model_copy(deep=True)
        self.save_count += 1

    async def get_product(self, product_id: str) -> Product | None:
        return self.products.get(product_id)

    async def get_scene(self, scene_id: str) -> Scene | None:
        return self.scenes.get(scene_id)
