from .events import GenerationEvent
from .generation_job import GenerationJob, ShotResult
from .product import Product, ProductAttributes
from .scene import Scene
from .shot_options import ShotOptions
from .shot_spec import CameraSettings, ShotSpec, SynthesisResult

__all__ = [
    "CameraSettings",
    "GenerationEvent",
    "GenerationJob",
    "Product",
    "ProductAttributes",
    "Scene",
    "ShotOptions",
    "ShotResult",
    "ShotSpec",
    "SynthesisResult",
]
