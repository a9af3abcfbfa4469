"""
Tests for ad concept generation and image prompt writing.
"""
import json

import pytest

from adstudio.errors import GenerationError
from adstudio.models import MediaType
from adstudio.services.concept_generator import (
    CONCEPT_MAX_TOKENS,
    HOOKS_PER_CONCEPT,
    build_image_prompt_request,
    build_static_concepts_prompt,
    build_video_concepts_prompt,
    concept_headline,
    generate_concepts,
    generate_image_prompt,
    parse_concepts,
)


def _concept(stage="TOFU", **overrides):
    data = {
        "funnel_stage": stage,
        "concept": f"{stage} idea",
        "format": "UGC",
        "hooks": ["h1", "h2", "h3"],
        "marketing_objective": "awareness",
        "scroll_stopper": "Loud noise",
        "problem": "p",
        "solution": "s",
        "benefits": "b",
        "proof": "pr",
        "cta": "Buy",
        "suggested_visual": "v",
        "script_outline": "so",
    }
    data.update(overrides)
    return data


class TestParseConcepts:

    def test_parses_array_wrapped_in_prose(self):
        raw = "Here are your concepts:\n" + json.dumps([_concept("TOFU"), _concept("MOFU"), _concept("BOFU")])

        concepts = parse_concepts(raw, MediaType.video)

        assert [c.funnel_stage for c in concepts] == ["TOFU", "MOFU", "BOFU"]
        assert all(c.media_type == MediaType.video for c in concepts)
        assert concepts[0].scroll_stopper == "Loud noise"

    def test_hooks_are_normalised_to_three(self):
        raw = json.dumps([
            _concept(hooks=["only one"]),
            _concept(hooks=["a", "b", "c", "d"]),
            _concept(hooks="single string"),
            _concept(hooks=None),
        ])

        concepts = parse_concepts(raw, MediaType.static)

        assert all(len(c.hooks) == HOOKS_PER_CONCEPT for c in concepts)
        assert concepts[0].hooks == ["only one", "", ""]
        assert concepts[1].hooks == ["a", "b", "c"]
        assert concepts[2].hooks == ["single string", "", ""]
        assert concepts[3].hooks == ["", "", ""]

    def test_stage_is_case_insensitive_and_unknown_stages_are_dropped(self):
        raw = json.dumps([_concept("tofu"), _concept("AWARENESS"), "not an object", _concept("Bofu")])

        concepts = parse_concepts(raw, MediaType.video)

        assert [c.funnel_stage for c in concepts] == ["TOFU", "BOFU"]

    def test_missing_string_fields_become_empty(self):
        raw = json.dumps([{"funnel_stage": "MOFU", "concept": "Bare"}])

        concept = parse_concepts(raw, MediaType.static)[0]

        assert concept.concept == "Bare"
        assert concept.script_outline == ""
        assert concept.cta == ""

    def test_no_array_raises(self):
        with pytest.raises(GenerationError):
            parse_concepts("I could not come up with anything.", MediaType.video)

    def test_no_usable_concepts_raises(self):
        with pytest.raises(GenerationError):
            parse_concepts(json.dumps([_concept("AWARENESS")]), MediaType.video)


class TestGenerateConcepts:

    @pytest.mark.asyncio
    async def test_video_prompt_and_model_settings(self, fake_classifier, analysis):
        classifier = fake_classifier(json.dumps([_concept("TOFU")]))

        concepts = await generate_concepts(analysis, MediaType.video, classifier)

        assert len(concepts) == 1
        call = classifier.calls[0]
        assert "video ads" in call["prompt"]
        assert "Acme" in call["prompt"]
        assert "Script outline" in call["prompt"]
        assert call["max_tokens"] == CONCEPT_MAX_TOKENS
        assert call["system"]

    @pytest.mark.asyncio
    async def test_static_prompt_is_used_for_static_media(self, fake_classifier, analysis):
        classifier = fake_classifier(json.dumps([_concept("MOFU", scroll_stopper="")]))

        concepts = await generate_concepts(analysis, MediaType.static, classifier)

        assert "static ads" in classifier.calls[0]["prompt"]
        assert concepts[0].media_type == MediaType.static

    @pytest.mark.asyncio
    async def test_provider_error_propagates(self, fake_classifier, analysis):
        classifier = fake_classifier(error=GenerationError("OpenAI API request timed out"))

        with pytest.raises(GenerationError):
            await generate_concepts(analysis, MediaType.video, classifier)

    def test_prompts_name_all_funnel_stages(self, analysis):
        for prompt in (build_video_concepts_prompt(analysis), build_static_concepts_prompt(analysis)):
            for stage in ("TOFU", "MOFU", "BOFU"):
                assert stage in prompt
            assert analysis["offer_details"] in prompt


class TestImagePrompt:

    def test_headline_prefers_scroll_stopper(self, concepts):
        assert concept_headline(concepts[0]) == "Anvil falling in slow motion"

    def test_headline_falls_back_to_first_hook_then_concept(self, concepts):
        assert concept_headline(concepts[1]) == "-20% this week"
        assert concept_headline({"concept": "Just the idea", "hooks": ["", ""]}) == "Just the idea"

    def test_known_colors_and_mood_are_used(self, analysis, concepts):
        client = {"name": "Acme", "primary_color": "#ff5733", "secondary_color": "#1e90ff", "brand_mood": "Bold, Desert"}

        request = build_image_prompt_request(client, analysis, concepts[0])

        assert "Primary: #ff5733" in request
        assert "Secondary: #1e90ff" in request
        assert "Mood: Bold, Desert" in request
        assert "INFER them" not in request
        assert "Headline: 'Anvil falling in slow motion'" in request
        assert "CTA button (bottom): 'Order now'" in request

    def test_missing_identity_asks_model_to_infer(self, analysis, concepts):
        request = build_image_prompt_request({"name": "Acme"}, analysis, concepts[1])

        assert "MUST INFER them" in request
        assert 'INFER from the positioning: "Reliable, playful"' in request

    @pytest.mark.asyncio
    async def test_generate_image_prompt_strips_output(self, fake_classifier, analysis, concepts):
        classifier = fake_classifier("  A professional advertising photograph...\n")

        prompt = await generate_image_prompt({"name": "Acme"}, analysis, concepts[0], classifier)

        assert prompt == "A professional advertising photograph..."
        assert classifier.calls[0]["system"] is None
