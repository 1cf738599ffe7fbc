# File: product_visuals/dto/product.py

from pydantic import BaseModel, Field

from product_visuals.errors import ProductNotAnalyzedError


class GeneralInfo(BaseModel):
    product_name: str = ""
    category: str = ""
    fit_type: str = ""
    gender_target: str = ""


class VisualSpecs(BaseModel):
    color_name: str = ""
    hex_code: str = ""
    fabric_texture: str = ""


class DesignFront(BaseModel):
    has_logo: bool = False
    logo_text: str = ""
    logo_type: str = ""
    font_family: str | None = None
    size_relative_pct: str | None = None
    description: str = ""
    micro_details: str | None = None


class DesignBack(BaseModel):
    has_logo: bool = False
    has_patch: bool = False
    description: str = ""
    technique: str = ""
    patch_shape: str | None = None
    patch_color: str = ""
    patch_detail: str = ""
    yoke_material: str | None = None


class PocketItem(BaseModel):
    name: str = ""
    position: str = ""
    material: str | None = None
    shape: str | None = None
    color: str | None = None
    size: str | None = None
    special_features: str | None = None


class GarmentDetails(BaseModel):
    pockets: str = ""
    pockets_array: list[PocketItem] = Field(default_factory=list)
    # Closure/termination of the garment ("zippered ankle cuffs", "ribbed hem").
    bottom_termination: str = ""
    closure_details: str | None = None
    hardware_finish: str | None = None
    seam_architecture: str | None = None

    def chest_pocket(self) -> PocketItem | None:
        for pocket in self.pockets_array:
            position = (pocket.position or "").lower()
            if "chest" in position or "left" in position or "chest" in (pocket.name or "").lower():
                return pocket
        return None


class ProductAttributes(BaseModel):
    """
    Semantic attributes extracted from the product photos by the analysis step.
    Used as the single source of truth for every shot prompt.
    """
    general_info: GeneralInfo = Field(default_factory=GeneralInfo)
    visual_specs: VisualSpecs = Field(default_factory=VisualSpecs)
    design_front: DesignFront = Field(default_factory=DesignFront)
    design_back: DesignBack = Field(default_factory=DesignBack)
    garment_details: GarmentDetails = Field(default_factory=GarmentDetails)


class Product(BaseModel):
    id: str
    owner_id: str | None = None
    name: str = ""
    analyzed: ProductAttributes | None = None
    # User edits on top of the analysis; wins over `analyzed` when present.
    final: ProductAttributes | None = None
    front_image_url: str | None = None
    back_image_url: str | None = None
    reference_images: list[str] = Field(default_factory=list)

    def effective_attributes(self) -> ProductAttributes:
        attributes = self.final or self.analyzed
        if attributes is None:
            raise ProductNotAnalyzedError(self.id)
        return attributes

    def reference_image_urls(self) -> list[str]:
        urls = [u for u in (self.front_image_url, self.back_image_url) if u]
        urls.extend(self.reference_images)
        return urls
