"""Pytest configuration and shared fixtures."""

import pytest

from product_visuals.db.repo.base import InMemoryGenerationRepository
from product_visuals.dto.generation_job import GenerationJob
from product_visuals.dto.product import (
    DesignBack,
    DesignFront,
    GarmentDetails,
    GeneralInfo,
    PocketItem,
    Product,
    ProductAttributes,
    VisualSpecs,
)
from product_visuals.dto.scene import Ground, Lighting, Scene, Styling, Surface
from product_visuals.services.artifact_store import InMemoryArtifactStore
from product_visuals.services.broadcast import EventStream, ProgressPublisher, RoomBroker
from product_visuals.services.clients.mock_ai_client import MockAIClient
from product_visuals.services.generation_worker import GenerationOrchestrator
from product_visuals.services.job_queue import InMemoryJobQueue

SCENE_PANTS = "Navy cargo pants (#1F2A44)"


def make_attributes(**overrides) -> ProductAttributes:
    """A suede jacket with a chest pocket and a square back patch."""
    data = {
        "general_info": GeneralInfo(
            product_name="Suede Trucker Jacket",
            category="Jacket",
            fit_type="Regular",
            gender_target="Unisex",
        ),
        "visual_specs": VisualSpecs(
            color_name="DEEP BURGUNDY SUEDE", hex_code="#5A1F2B", fabric_texture="Suede"
        ),
        "design_front": DesignFront(
            has_logo=False,
            description="Button front with two flap pockets",
            micro_details="Tonal topstitching",
        ),
        "design_back": DesignBack(
            has_patch=True,
            description="Plain back with yoke",
            technique="Debossed",
            patch_shape="square",
            patch_color="tan",
            patch_detail="Square leather patch with debossed monogram",
            yoke_material="leather",
        ),
        "garment_details": GarmentDetails(
            pockets="Two chest flap pockets",
            pockets_array=[
                PocketItem(
                    name="Chest pocket",
                    position="left chest",
                    material="leather",
                    shape="square",
                    color="tan",
                    special_features="Embossed monogram grid",
                )
            ],
            bottom_termination="Ribbed hem",
            closure_details="Snap buttons",
            hardware_finish="Antique brass",
            seam_architecture="Double-needle seams",
        ),
    }
    data.update(overrides)
    return ProductAttributes(**data)


def make_product(product_id: str = "prod-1", attributes: ProductAttributes | None = None, **kwargs) -> Product:
    return Product(
        id=product_id,
        name="Suede Trucker Jacket",
        analyzed=attributes if attributes is not None else make_attributes(),
        front_image_url="https://cdn.example.com/front.png",
        back_image_url="https://cdn.example.com/back.png",
        **kwargs,
    )


def make_scene(scene_id: str = "scene-1", **overrides) -> Scene:
    data = {
        "id": scene_id,
        "name": "Warm studio",
        "background": Surface(type="Warm beige plaster", hex="#E8DCCB"),
        "floor": Surface(type="Light oak parquet", hex="#C8A57A"),
        "ground": Ground(left_items=["ceramic vase"], right_items=[]),
        "styling": Styling(pants=SCENE_PANTS, footwear=""),
        "lighting": Lighting(type="Soft window light", temperature="warm tones"),
        "mood": "calm editorial",
        "quality": "",
        "reference_image_url": "https://cdn.example.com/scene.png",
    }
    data.update(overrides)
    return Scene(**data)


@pytest.fixture
def attributes() -> ProductAttributes:
    return make_attributes()


@pytest.fixture
def scene() -> Scene:
    return make_scene()


@pytest.fixture
def repository() -> InMemoryGenerationRepository:
    repo = InMemoryGenerationRepository()
    repo.add_product(make_product())
    repo.add_scene(make_scene())
    return repo


@pytest.fixture
async def job(repository: InMemoryGenerationRepository) -> GenerationJob:
    job = GenerationJob(id="job-1", owner_id="owner-1", product_id="prod-1", scene_id="scene-1")
    await repository.save_job(job)
    return job


@pytest.fixture
def artifact_store() -> InMemoryArtifactStore:
    return InMemoryArtifactStore()


@pytest.fixture
def broker() -> RoomBroker:
    return RoomBroker()


@pytest.fixture
def event_stream() -> EventStream:
    return EventStream()


@pytest.fixture
def publisher(broker: RoomBroker, event_stream: EventStream) -> ProgressPublisher:
    return ProgressPublisher(broker, event_stream)


@pytest.fixture
def adapter() -> MockAIClient:
    return MockAIClient(delay_s=0)


@pytest.fixture
def orchestrator(repository, adapter, artifact_store, publisher) -> GenerationOrchestrator:
    return GenerationOrchestrator(repository, adapter, artifact_store, publisher, shot_timeout_s=2.0)


@pytest.fixture
def queue() -> InMemoryJobQueue:
    return InMemoryJobQueue(max_attempts=2, backoff_base_s=5.0, stall_timeout_s=30.0)
