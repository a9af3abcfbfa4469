import logging

from adstudio.errors import GenerationError
from adstudio.models import FUNNEL_STAGES, ConceptData, MediaType
from adstudio.services.llm import CONCEPT_MODEL, TextClassifier, extract_json_array

logger = logging.getLogger(__name__)

CONCEPTS_PER_STAGE = 5
HOOKS_PER_CONCEPT = 3
CONCEPT_TEMPERATURE = 0.8
CONCEPT_MAX_TOKENS = 4000
IMAGE_PROMPT_TEMPERATURE = 0.7
IMAGE_PROMPT_MAX_TOKENS = 1000

STRATEGIST_SYSTEM_PROMPT = (
    "You are an expert creative strategist. Always answer with valid JSON, "
    "without markdown or any additional text."
)

_STRING_FIELDS = (
    "concept", "format", "marketing_objective", "scroll_stopper", "problem",
    "solution", "benefits", "proof", "cta", "suggested_visual", "script_outline",
)


# ─── Concept prompts ───────────────────────────────────────────────────────

def _brand_block(analysis: dict) -> str:
    return (
        f"Brand: {analysis.get('brand_name', '')}\n"
        f"Website: {analysis.get('website_url', '')}\n"
        f"Offer / products / services: {analysis.get('offer_details', '')}\n"
        f"Priority targets: {analysis.get('target_audience', '')}\n"
        f"Brand positioning and tone: {analysis.get('brand_positioning', '')}\n"
    )


def build_video_concepts_prompt(analysis: dict) -> str:
    return (
        "You are a creative strategist expert in paid social advertising (Meta Ads, TikTok Ads...) "
        "working with TOFU / MOFU / BOFU funnel logic.\n\n"
        "Your mission is to generate creative concepts for video ads for the following brand:\n\n"
        f"{_brand_block(analysis)}\n"
        "Constraints:\n"
        f"- Propose at least {CONCEPTS_PER_STAGE} concepts per funnel stage (TOFU, MOFU, BOFU).\n"
        "- Each concept must include:\n"
        "  * Concept: the creative idea\n"
        "  * Format: type of content (UGC, street interview, trend, testimonial...)\n"
        f"  * Hooks: {HOOKS_PER_CONCEPT} different opening lines, each addressing a different pain point\n"
        "  * Marketing objective: awareness, consideration, conversion\n"
        "  * Scroll stopper: visual or audio element that grabs attention in the first seconds\n"
        "  * Problem: the main pain point addressed\n"
        "  * Solution: how the product/service solves it\n"
        "  * Benefits: concrete advantages for the customer\n"
        "  * Proof: credibility elements (testimonials, statistics, studies...)\n"
        "  * CTA: clear call to action\n"
        "  * Suggested visual: visual style and recommended shots\n"
        "  * Script outline: summary of the whole video\n\n"
        "Indicative formats per stage:\n"
        "- TOFU: podcast, street interview, trend...\n"
        "- MOFU: explanatory UGC, product benefits, taglines...\n"
        "- BOFU: special offers, customer reviews, press articles...\n\n"
        "The tone must be simple, spontaneous and empathetic, like on social media, "
        "to stop the scroll and drive action.\n\n"
        f"Reply ONLY with a valid JSON array of at least {CONCEPTS_PER_STAGE * len(FUNNEL_STAGES)} objects "
        f"({CONCEPTS_PER_STAGE} per stage) in this format:\n"
        "[\n"
        "  {\n"
        '    "funnel_stage": "TOFU",\n'
        '    "concept": "Concept description",\n'
        '    "format": "Format type",\n'
        '    "hooks": ["Hook 1", "Hook 2", "Hook 3"],\n'
        '    "marketing_objective": "awareness",\n'
        '    "scroll_stopper": "Scroll stopper description",\n'
        '    "problem": "Problem description",\n'
        '    "solution": "Solution description",\n'
        '    "benefits": "Benefits description",\n'
        '    "proof": "Proof elements",\n'
        '    "cta": "Call to action",\n'
        '    "suggested_visual": "Suggested visual description",\n'
        '    "script_outline": "Summary of the full script"\n'
        "  }\n"
        "]"
    )


def build_static_concepts_prompt(analysis: dict) -> str:
    return (
        "You are a creative strategist expert in static paid advertising (Meta Ads, LinkedIn Ads...) "
        "working with TOFU / MOFU / BOFU funnel logic.\n\n"
        "Your mission is to generate creative concepts for static ads (images, carousels) "
        "for the following brand:\n\n"
        f"{_brand_block(analysis)}\n"
        "Constraints:\n"
        f"- Propose at least {CONCEPTS_PER_STAGE} concepts per funnel stage (TOFU, MOFU, BOFU).\n"
        "- Each concept must include:\n"
        "  * Concept: the creative idea\n"
        "  * Format: type of content (single image, carousel, infographic, quote, before/after...)\n"
        f"  * Hooks: {HOOKS_PER_CONCEPT} different headlines, each addressing a different pain point\n"
        "  * Marketing objective: awareness, consideration, conversion\n"
        "  * Problem: the main pain point addressed\n"
        "  * Solution: how the product/service solves it\n"
        "  * Benefits: concrete advantages for the customer\n"
        "  * Proof: credibility elements (testimonials, statistics, studies, badges...)\n"
        "  * CTA: clear call to action\n"
        "  * Suggested visual: detailed description of the static visual (composition, "
        "visual elements, hierarchy, colors, style)\n\n"
        "Indicative formats per stage:\n"
        "- TOFU: infographic, inspiring quote, shocking statistic, provocative question...\n"
        "- MOFU: benefits carousel, before/after comparison, product features, visual testimonials...\n"
        "- BOFU: promotional offer, guarantees, social proof, urgency/scarcity...\n\n"
        "The tone must be punchy, clear and persuasive, suited to static ads, "
        "to stop the scroll and drive action.\n\n"
        f"Reply ONLY with a valid JSON array of at least {CONCEPTS_PER_STAGE * len(FUNNEL_STAGES)} objects "
        f"({CONCEPTS_PER_STAGE} per stage) in this format:\n"
        "[\n"
        "  {\n"
        '    "funnel_stage": "TOFU",\n'
        '    "concept": "Concept description",\n'
        '    "format": "Format type",\n'
        '    "hooks": ["Headline 1", "Headline 2", "Headline 3"],\n'
        '    "marketing_objective": "awareness",\n'
        '    "scroll_stopper": "",\n'
        '    "problem": "Problem description",\n'
        '    "solution": "Solution description",\n'
        '    "benefits": "Benefits description",\n'
        '    "proof": "Proof elements",\n'
        '    "cta": "Call to action",\n'
        '    "suggested_visual": "Detailed description of the static visual",\n'
        '    "script_outline": ""\n'
        "  }\n"
        "]"
    )


# ─── Parsing ───────────────────────────────────────────────────────────────

def _normalize_hooks(raw) -> list[str]:
    if isinstance(raw, str):
        raw = [raw]
    if not isinstance(raw, list):
        raw = []
    hooks = [str(h).strip() for h in raw if h is not None and str(h).strip()]
    hooks = hooks[:HOOKS_PER_CONCEPT]
    return hooks + [""] * (HOOKS_PER_CONCEPT - len(hooks))


def parse_concepts(raw: str, media_type: MediaType) -> list[ConceptData]:
    """Parse the model's JSON array into ConceptData, dropping unusable items."""
    items = extract_json_array(raw)
    if items is None:
        logger.warning(f"[concepts] Unparseable concept output: {raw[:200]!r}")
        raise GenerationError("Invalid response format from OpenAI: no JSON array found")

    concepts: list[ConceptData] = []
    for item in items:
        if not isinstance(item, dict):
            continue
        stage = str(item.get("funnel_stage") or "").strip().upper()
        if stage not in FUNNEL_STAGES:
            logger.info(f"[concepts] Skipping concept with funnel_stage={stage!r}")
            continue
        fields = {f: str(item.get(f) or "").strip() for f in _STRING_FIELDS}
        concepts.append(ConceptData(
            funnel_stage=stage,
            hooks=_normalize_hooks(item.get("hooks")),
            media_type=media_type,
            **fields,
        ))

    if not concepts:
        raise GenerationError("OpenAI returned no usable concepts")
    return concepts


async def generate_concepts(
    analysis: dict,
    media_type: MediaType,
    classifier: TextClassifier,
) -> list[ConceptData]:
    """Generate TOFU/MOFU/BOFU ad concepts for an analysed brand."""
    if media_type == MediaType.video:
        prompt = build_video_concepts_prompt(analysis)
    else:
        prompt = build_static_concepts_prompt(analysis)

    raw = await classifier.complete(
        prompt,
        system=STRATEGIST_SYSTEM_PROMPT,
        model=CONCEPT_MODEL,
        temperature=CONCEPT_TEMPERATURE,
        max_tokens=CONCEPT_MAX_TOKENS,
    )
    concepts = parse_concepts(raw, media_type)

    by_stage = {s: sum(1 for c in concepts if c.funnel_stage == s) for s in FUNNEL_STAGES}
    logger.info(f"[concepts:{analysis.get('id')}] Generated {len(concepts)} {media_type.value} concepts {by_stage}")
    return concepts


# ─── Image prompt ──────────────────────────────────────────────────────────

def concept_headline(concept: dict) -> str:
    """Text the generated image should carry: scroll stopper, else first hook, else the concept."""
    hooks = [h for h in concept.get("hooks") or [] if h]
    return concept.get("scroll_stopper") or (hooks[0] if hooks else "") or concept.get("concept") or ""


def build_image_prompt_request(client: dict, analysis: dict, concept: dict) -> str:
    if client.get("primary_color"):
        brand_colors = (
            f"- Primary: {client['primary_color']}\n"
            f"  - Secondary: {client.get('secondary_color') or 'to be chosen in harmony'}\n"
            f"  - Dark: {client.get('dark_color') or 'to be defined'}\n"
            f"  - Light: {client.get('light_color') or 'to be defined'}"
        )
    else:
        brand_colors = (
            "Not specifically defined. You MUST INFER them from the brand positioning "
            "(e.g. Luxury = Black/Gold, Organic = Green/Beige, Tech = Electric blue/Gray)."
        )

    brand_mood = client.get("brand_mood") or f'INFER from the positioning: "{analysis.get("brand_positioning", "")}"'

    return (
        "You are an expert Art Director specialised in advertising (Meta Ads / Instagram / LinkedIn).\n"
        "Your goal is to write an extremely detailed, high-performing IMAGE GENERATION PROMPT "
        "(for DALL-E 3, Ideogram, Imagen or Gemini).\n\n"
        "You have the following raw data and must interpret it to fill any gaps:\n\n"
        "BRAND & ANALYSIS DATA:\n"
        f"- Name: {client.get('name', '')}\n"
        f"- Website: {analysis.get('website_url', '')}\n"
        f"- Sector/Offer: {analysis.get('offer_details', '')}\n"
        f"- Target: {analysis.get('target_audience', '')}\n"
        f"- Positioning: {analysis.get('brand_positioning', '')}\n"
        f"- Visual identity (colors): {brand_colors}\n"
        f"- Mood: {brand_mood}\n\n"
        "CREATIVE CONCEPT DATA:\n"
        f"- Funnel stage: {concept.get('funnel_stage', '')}\n"
        f"- Idea: {concept.get('concept', '')}\n"
        f"- Format: {concept.get('format', '')}\n"
        f"- Scroll stopper (strong visual element): {concept.get('scroll_stopper', '')}\n"
        f"- Initially suggested visual: {concept.get('suggested_visual', '')}\n"
        f"- CTA: {concept.get('cta', '')}\n\n"
        "---\n\n"
        "YOUR MISSION:\n"
        "Write a final, structured prompt for an image generation AI. If some visual information is "
        "missing (e.g. a color), INFER it logically from the sector and the target audience.\n\n"
        "STRUCTURE OF YOUR ANSWER (the final prompt, no title or preamble, start directly with the description):\n\n"
        '1. [ROLE & FORMAT]: "A professional advertising photograph, square 1080x1080..." or '
        '"A high-end 3D illustration..." depending on what suits the concept best.\n'
        "2. [MAIN SUBJECT]: Describe the central scene precisely. Who? What? Action? "
        "(Use the scroll stopper and the suggested visual.)\n"
        f'3. [SETTING & LIGHT]: Describe the environment and the lighting. The atmosphere must match the mood "{brand_mood}".\n'
        "4. [COLOR PALETTE]: Enforce the brand colors or the ones you inferred.\n"
        "5. [COMPOSITION & TEXT]: CRUCIAL. The image MUST contain integrated text. Give these instructions:\n"
        '"The image includes realistic, legible typographic text:\n'
        f"- Headline: '{concept_headline(concept)}'\n"
        f"- CTA button (bottom): '{concept.get('cta', '')}'\"\n"
        "Specify that the text must be spelled correctly, with a modern, legible typeface.\n"
        '6. [VISUAL STYLE]: "Photorealistic 8k render", "Corporate Memphis style", "UGC style", etc.\n\n'
        "Be creative, precise and directive. The generated image must be ready to be sponsored."
    )


async def generate_image_prompt(
    client: dict,
    analysis: dict,
    concept: dict,
    classifier: TextClassifier,
) -> str:
    """Have the chat model write an art-directed image prompt for one concept."""
    prompt = build_image_prompt_request(client, analysis, concept)
    result = await classifier.complete(
        prompt,
        model=CONCEPT_MODEL,
        temperature=IMAGE_PROMPT_TEMPERATURE,
        max_tokens=IMAGE_PROMPT_MAX_TOKENS,
    )
    return result.strip()
