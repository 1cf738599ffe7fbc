"""Tests for shot catalog synthesis."""

import pytest

from product_visuals.data.constants import SHOT_CATALOG, HUMAN_SHOT_KINDS, ShotKind, Subject
from product_visuals.dto.product import DesignBack, DesignFront, GarmentDetails, GeneralInfo, Product
from product_visuals.dto.scene import Styling, Surface
from product_visuals.dto.shot_options import ShotOptions
from product_visuals.errors import PreconditionError, ProductNotAnalyzedError, SceneNotAnalyzedError
from product_visuals.services.prompting import rules, synthesize, synthesize_from_attributes
from product_visuals.services.prompting.negative import (
    ANTI_NUDITY_TERMS,
    BASE_NEGATIVE_TERMS,
    NOT_ADULT_TERMS,
    ROUND_GEOMETRY_TERMS,
)
from product_visuals.services.prompting.shots import PLAIN_TOP_ATTIRE

from conftest import SCENE_PANTS, make_attributes, make_product, make_scene


def _track_pants(**overrides):
    return make_attributes(
        general_info=GeneralInfo(product_name="Track Pants", category="Track Pants"),
        garment_details=GarmentDetails(bottom_termination="Zippered ankle cuffs"),
        **overrides,
    )


class TestCatalog:
    def test_exact_catalog_in_order(self, attributes, scene):
        result = synthesize_from_attributes(attributes, scene)
        assert [s.kind for s in result.shots] == list(SHOT_CATALOG)
        assert len(result.shots) == 6

    def test_every_shot_has_text(self, attributes, scene):
        result = synthesize_from_attributes(attributes, scene)
        for shot in result.shots:
            assert shot.prompt.strip()
            assert shot.negative_prompt.strip()
            assert shot.camera_lighting.strip()
            assert shot.has_human_subject == (shot.kind in HUMAN_SHOT_KINDS)

    def test_sparse_attributes_still_produce_catalog(self, scene):
        result = synthesize_from_attributes(make_attributes(
            design_front=DesignFront(), design_back=DesignBack(), garment_details=GarmentDetails()
        ), scene)
        assert len(result.shots) == 6
        assert all(s.prompt for s in result.shots)

    def test_visual_ids_and_subjects(self, attributes, scene):
        options = ShotOptions.from_model_type("kid")
        result = synthesize_from_attributes(attributes, scene, options)
        assert result.by_kind(ShotKind.DUO).visual_id == "visual_1_duo_family"
        assert result.by_kind(ShotKind.SOLO).visual_id == "visual_2_solo_kid"
        assert result.by_kind(ShotKind.SOLO).display_name == "SOLO Kid Model"
        assert result.by_kind(ShotKind.CLOSEUP_BACK).subject is Subject.PRODUCT

    def test_resolution_suffix_is_last(self, attributes, scene):
        result = synthesize_from_attributes(attributes, scene, ShotOptions(resolution="2K"))
        suffix = rules.resolution_suffix("2K")
        for shot in result.shots:
            assert shot.prompt.endswith(suffix)
            assert shot.resolution == "2K"

    def test_shared_negative_is_base_plus_nudity(self, attributes, scene):
        result = synthesize_from_attributes(attributes, scene)
        for term in BASE_NEGATIVE_TERMS + ANTI_NUDITY_TERMS:
            assert term in result.shared_negative_prompt


class TestPreconditions:
    def test_product_without_attributes(self, scene):
        product = Product(id="p-empty")
        with pytest.raises(ProductNotAnalyzedError):
            synthesize(product, scene)

    def test_final_attributes_win(self, scene):
        product = make_product(final=make_attributes(general_info=GeneralInfo(product_name="Edited Name")))
        result = synthesize(product, scene)
        assert "Edited Name" in result.by_kind(ShotKind.FLATLAY_FRONT).prompt

    def test_scene_without_background(self, attributes):
        scene = make_scene(background=Surface(type="", hex=""))
        with pytest.raises(SceneNotAnalyzedError) as exc_info:
            synthesize_from_attributes(attributes, scene)
        assert isinstance(exc_info.value, PreconditionError)


class TestBottomGarment:
    def test_track_pants_on_sidewalk(self):
        scene = make_scene(
            background=Surface(type="Sidewalk", hex="#9A9A9A"),
            styling=Styling(pants=SCENE_PANTS, footwear=""),
        )
        result = synthesize_from_attributes(_track_pants(), scene)
        for kind in HUMAN_SHOT_KINDS:
            prompt = result.by_kind(kind).prompt
            assert "Minimalist white leather sneakers" in prompt
            assert PLAIN_TOP_ATTIRE in prompt
            assert SCENE_PANTS not in prompt

    def test_top_garment_keeps_scene_pants(self, attributes, scene):
        result = synthesize_from_attributes(attributes, scene)
        duo = result.by_kind(ShotKind.DUO).prompt
        assert f"Wearing {SCENE_PANTS}" in duo
        assert PLAIN_TOP_ATTIRE not in duo


class TestZipperGuard:
    def test_clause_once_per_human_shot(self, scene):
        result = synthesize_from_attributes(_track_pants(), scene)
        for kind in HUMAN_SHOT_KINDS:
            assert result.by_kind(kind).prompt.count("visible ankle zippers") == 1

    def test_no_zipper_anywhere_without_closure_field(self, scene):
        attributes = make_attributes(
            design_front=DesignFront(description="Half zip collar", micro_details="Zip garage"),
            design_back=DesignBack(
                has_patch=True,
                description="Plain back with yoke",
                technique="Zip-pull embossing",
                patch_shape="square",
                patch_detail="Square leather patch with debossed monogram",
                yoke_material="leather",
            ),
        )
        result = synthesize_from_attributes(attributes, scene)
        for shot in result.shots:
            assert "zip" not in shot.prompt.lower()

    def test_technique_kept_with_closure_zipper(self, scene):
        attributes = _track_pants(
            design_back=DesignBack(has_patch=True, technique="Zip-pull embossing", patch_detail="Square patch"),
        )
        result = synthesize_from_attributes(attributes, scene)
        assert "Technique: Zip-pull embossing" in result.by_kind(ShotKind.FLATLAY_BACK).prompt
        assert "Technique: Zip-pull embossing" in result.by_kind(ShotKind.CLOSEUP_BACK).prompt


class TestLogoGuard:
    def test_no_logo_phrase_without_logo(self, attributes, scene):
        result = synthesize_from_attributes(attributes, scene)
        for shot in result.shots:
            assert "and logo" not in shot.prompt
            assert "Visible logo" not in shot.prompt

    def test_logo_phrase_with_logo(self, scene):
        attributes = make_attributes(
            design_front=DesignFront(has_logo=True, logo_text="ACME", logo_type="embroidered"),
        )
        result = synthesize_from_attributes(attributes, scene)
        assert "and logo" in result.by_kind(ShotKind.CLOSEUP_FRONT).prompt
        assert "Visible logo: ACME" in result.by_kind(ShotKind.SOLO).prompt


class TestNegativePrompts:
    def test_human_shots_include_base_and_nudity(self, attributes, scene):
        result = synthesize_from_attributes(attributes, scene)
        for kind in HUMAN_SHOT_KINDS:
            negative = result.by_kind(kind).negative_prompt
            for term in BASE_NEGATIVE_TERMS + ANTI_NUDITY_TERMS:
                assert term in negative

    def test_kid_solo_blocks_adults(self, attributes, scene):
        result = synthesize_from_attributes(attributes, scene, ShotOptions.from_model_type("kid"))
        negative = result.by_kind(ShotKind.SOLO).negative_prompt
        for term in NOT_ADULT_TERMS:
            assert term in negative

    def test_square_patch_blocks_round_geometry(self, attributes, scene):
        result = synthesize_from_attributes(attributes, scene)
        negative = result.by_kind(ShotKind.CLOSEUP_BACK).negative_prompt
        for term in ROUND_GEOMETRY_TERMS:
            assert term in negative
        assert "SQUARE leather patch" in result.by_kind(ShotKind.CLOSEUP_BACK).prompt

    def test_no_duplicate_terms(self, attributes, scene):
        result = synthesize_from_attributes(attributes, scene)
        for shot in result.shots:
            terms = shot.negative_prompt.split(", ")
            assert len(terms) == len(set(terms))


class TestSceneReference:
    def test_human_shots_pin_background(self, attributes, scene):
        result = synthesize_from_attributes(attributes, scene)
        for kind in HUMAN_SHOT_KINDS:
            prompt = result.by_kind(kind).prompt
            assert prompt.startswith("COPY THE EXACT BACKGROUND AND FLOOR")
            assert "Warm beige plaster" in prompt
            assert "ceramic vase on the left" in prompt
