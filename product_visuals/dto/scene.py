# File: product_visuals/dto/scene.py

from pydantic import BaseModel, Field


class Surface(BaseModel):
    type: str = ""
    hex: str = ""


class Ground(BaseModel):
    left_items: list[str] = Field(default_factory=list)
    right_items: list[str] = Field(default_factory=list)


class Styling(BaseModel):
    """Default styling for the human subject(s) of a scene."""
    pants: str = ""
    footwear: str = ""


class Lighting(BaseModel):
    type: str = ""
    temperature: str = ""


class Scene(BaseModel):
    """
    A reusable art-direction preset: background, floor, props, lighting, mood
    and default styling. Owned independently of any product.
    """
    id: str
    owner_id: str | None = None
    name: str = ""
    background: Surface = Field(default_factory=Surface)
    floor: Surface = Field(default_factory=Surface)
    ground: Ground = Field(default_factory=Ground)
    styling: Styling = Field(default_factory=Styling)
    lighting: Lighting = Field(default_factory=Lighting)
    mood: str = ""
    quality: str = ""
    reference_image_url: str | None = None

    @property
    def is_analyzed(self) -> bool:
        return bool(self.background.type.strip())
