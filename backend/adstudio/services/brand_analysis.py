import re
import time
import logging

import httpx

from adstudio import database
from adstudio.errors import (
    AuthenticationError,
    ClassificationError,
    ConfigurationError,
    GenerationError,
)
from adstudio.models import AnalysisResult
from adstudio.services.brand_extractor import extract_colors, normalize_page
from adstudio.services.fetcher import fetch_html
from adstudio.services.llm import (
    CLASSIFIER_MODEL,
    OpenAIChatClient,
    TextClassifier,
    extract_json_object,
)

logger = logging.getLogger(__name__)

PROMPT_TEXT_LIMIT = 4000
RAW_CONTENT_LIMIT = 5000
CLASSIFIER_TEMPERATURE = 0.3
CLASSIFIER_MAX_TOKENS = 800

SYSTEM_PROMPT = "You are a marketing and branding expert. You answer with JSON only."

_HEX_RE = re.compile(r"^#[0-9a-fA-F]{6}$")


def build_classification_prompt(colors: list[str], title: str, text: str) -> str:
    if colors:
        color_list = ", ".join(colors)
    else:
        color_list = "(none found in the page source)"

    return (
        "Analyse this website content and the colors extracted from its source code "
        "to infer the brand's identity.\n\n"
        f"Page title: {title}\n\n"
        f"Candidate brand colors, most likely first: {color_list}\n"
        "The first entries come from CSS brand variables, the header, the footer and "
        "inline SVG logos. Prefer them over the later, frequency-based entries.\n\n"
        f"Content: {text[:PROMPT_TEXT_LIMIT]}\n\n"
        "Reply ONLY with a valid JSON object in this exact shape, without markdown:\n"
        "{\n"
        '  "brandName": "Brand name",\n'
        '  "offerDetails": "Description of the offer (2-3 sentences)",\n'
        '  "targetAudience": "Priority target audience",\n'
        '  "brandPositioning": "Positioning and tone of voice",\n'
        '  "primaryColor": "Most likely primary brand color as a hex code (pick from the candidates or infer it)",\n'
        '  "secondaryColor": "A contrasting or complementary secondary color (hex)",\n'
        '  "brandMood": "The visual mood in 3-4 keywords (e.g. Minimalist, Tech, Organic, Dark, Luxurious)"\n'
        "}"
    )


def _field(data: dict, key: str) -> str:
    value = data.get(key)
    if value is None:
        return ""
    return str(value).strip()


def _hex_or_none(value) -> str | None:
    if isinstance(value, str) and _HEX_RE.match(value.strip()):
        return value.strip().lower()
    return None


async def classify_brand(
    colors: list[str],
    title: str,
    text: str,
    classifier: TextClassifier,
) -> AnalysisResult:
    """Ask the language model to name the brand, its offer, audience and palette."""
    prompt = build_classification_prompt(colors, title, text)
    try:
        content = await classifier.complete(
            prompt,
            system=SYSTEM_PROMPT,
            model=CLASSIFIER_MODEL,
            temperature=CLASSIFIER_TEMPERATURE,
            max_tokens=CLASSIFIER_MAX_TOKENS,
        )
    except GenerationError as e:
        raise ClassificationError(f"AI classification failed: {e.message}") from e

    data = extract_json_object(content)
    if data is None:
        logger.warning(f"[classify] Unparseable classifier output: {content[:200]!r}")
        raise ClassificationError("AI classification returned no parseable JSON object")

    mood = _field(data, "brandMood")
    return AnalysisResult(
        brand_name=_field(data, "brandName") or title,
        offer_details=_field(data, "offerDetails"),
        target_audience=_field(data, "targetAudience"),
        brand_positioning=_field(data, "brandPositioning"),
        raw_content=text[:RAW_CONTENT_LIMIT],
        primary_color=_hex_or_none(data.get("primaryColor")),
        secondary_color=_hex_or_none(data.get("secondaryColor")),
        brand_mood=mood or None,
    )


async def analyze_website(
    url: str,
    classifier: TextClassifier,
    *,
    fetch_timeout: float,
    http_client: httpx.AsyncClient | None = None,
) -> AnalysisResult:
    """Fetch `url`, extract its brand signals and classify them."""
    t0 = time.time()
    html = await fetch_html(url, timeout=fetch_timeout, client=http_client)

    colors = extract_colors(html)
    page = normalize_page(html)
    logger.info(
        f"[analyze] {url}: title={page.title!r}, {len(page.text)} chars text, "
        f"colors={colors[:5]}{'...' if len(colors) > 5 else ''}"
    )

    result = await classify_brand(colors, page.title, page.text, classifier)
    logger.info(f"[analyze] {url} classified as {result.brand_name!r} in {time.time() - t0:.1f}s")
    return result


async def analyze_for_user(
    access_token: str | None,
    url: str,
    *,
    fetch_timeout: float,
    classify_timeout: float,
) -> AnalysisResult:
    """Authenticate the caller, load their OpenAI key, then run the analysis."""
    user = await database.get_user_for_token(access_token)
    if user is None:
        raise AuthenticationError("Unauthorized")

    settings = await database.get_settings(user["id"])
    api_key = (settings or {}).get("openai_api_key")
    if not api_key:
        raise ConfigurationError("OpenAI API key not configured")

    classifier = OpenAIChatClient(api_key, timeout=classify_timeout)
    return await analyze_website(url, classifier, fetch_timeout=fetch_timeout)
