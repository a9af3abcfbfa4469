import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import Response
from pydantic import BaseModel

from adstudio import config, database
from adstudio.errors import ConfigurationError, NotFoundError
from adstudio.models import EDITABLE_CONCEPT_FIELDS, FUNNEL_STAGES, ImageProvider, MediaType
from adstudio.routes.deps import current_user, owned_analysis, owned_concept
from adstudio.services.concept_export import concepts_to_csv, concepts_to_text, export_filename
from adstudio.services.concept_generator import generate_concepts, generate_image_prompt
from adstudio.services.image_assets import download_image_as_png, image_filename, store_generated_image
from adstudio.services.image_generation import PROVIDER_LABELS, get_image_generator
from adstudio.services.llm import OpenAIChatClient

logger = logging.getLogger(__name__)

router = APIRouter()


class GenerateConceptsRequest(BaseModel):
    media_type: MediaType


class ConceptUpdate(BaseModel):
    concept: str | None = None
    format: str | None = None
    hooks: list[str] | None = None
    marketing_objective: str | None = None
    scroll_stopper: str | None = None
    problem: str | None = None
    solution: str | None = None
    benefits: str | None = None
    proof: str | None = None
    cta: str | None = None
    suggested_visual: str | None = None
    script_outline: str | None = None


class GenerateImageRequest(BaseModel):
    provider: ImageProvider = ImageProvider.openai


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _chat_client(settings: dict | None) -> OpenAIChatClient:
    api_key = (settings or {}).get("openai_api_key")
    if not api_key:
        raise ConfigurationError("OpenAI API key not configured")
    return OpenAIChatClient(api_key, timeout=config.AI_REQUEST_TIMEOUT)


async def _write_image_prompt(concept: dict, analysis: dict, user: dict, settings: dict | None) -> dict:
    """Generate and persist the concept's image prompt. Returns the updated concept."""
    chat = _chat_client(settings)
    client = await database.get_client(analysis["client_id"], user["id"])
    if client is None:
        raise NotFoundError("Client not found for this analysis")

    prompt = await generate_image_prompt(client, analysis, concept, chat)
    updated = await database.update_concept(
        concept["id"],
        {"generated_prompt": prompt, "prompt_generated_at": _now()},
    )
    if updated is None:
        raise HTTPException(status_code=500, detail="Failed to save generated prompt")
    logger.info(f"[concept:{concept['id']}] Image prompt generated ({len(prompt)} chars)")
    return updated


@router.get("/api/analyses/{analysis_id}/concepts")
async def list_concepts(analysis_id: str, user: dict = Depends(current_user)):
    await owned_analysis(analysis_id, user)
    return await database.list_concepts(analysis_id)


@router.post("/api/analyses/{analysis_id}/concepts", status_code=201)
async def create_concepts(analysis_id: str, request: GenerateConceptsRequest, user: dict = Depends(current_user)):
    """Generate a batch of video or static concepts for every funnel stage and store them."""
    analysis = await owned_analysis(analysis_id, user)
    chat = _chat_client(await database.get_settings(user["id"]))

    concepts = await generate_concepts(analysis, request.media_type, chat)
    rows = [c.model_dump(mode="json") for c in concepts]
    inserted = await database.insert_concepts(analysis_id, rows)
    if not inserted:
        raise HTTPException(status_code=500, detail="Failed to save generated concepts")
    return inserted


@router.delete("/api/analyses/{analysis_id}/concepts")
async def delete_stage_concepts(analysis_id: str, stage: str, user: dict = Depends(current_user)):
    """Delete all concepts of one funnel stage."""
    stage = stage.upper()
    if stage not in FUNNEL_STAGES:
        raise HTTPException(status_code=400, detail=f"stage must be one of {', '.join(FUNNEL_STAGES)}")
    await owned_analysis(analysis_id, user)

    deleted = await database.delete_concepts_by_stage(analysis_id, stage)
    logger.info(f"[analysis:{analysis_id}] Deleted {deleted} {stage} concepts")
    return {"deleted": deleted}


@router.get("/api/analyses/{analysis_id}/concepts/export")
async def export_concepts(analysis_id: str, format: str = "csv", user: dict = Depends(current_user)):
    analysis = await owned_analysis(analysis_id, user)
    concepts = await database.list_concepts(analysis_id)

    if format == "csv":
        body = concepts_to_csv(concepts)
        media_type = "text/csv; charset=utf-8"
    elif format == "txt":
        body = concepts_to_text(concepts, analysis)
        media_type = "text/plain; charset=utf-8"
    else:
        raise HTTPException(status_code=400, detail="format must be csv or txt")

    filename = export_filename(analysis, format)
    return Response(
        content=body.encode("utf-8"),
        media_type=media_type,
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.patch("/api/concepts/{concept_id}")
async def update_concept(concept_id: str, request: ConceptUpdate, user: dict = Depends(current_user)):
    await owned_concept(concept_id, user)
    changes = {k: v for k, v in request.model_dump(exclude_unset=True).items() if k in EDITABLE_CONCEPT_FIELDS}
    if not changes:
        raise HTTPException(status_code=400, detail="Nothing to update")

    updated = await database.update_concept(concept_id, changes)
    if updated is None:
        raise HTTPException(status_code=500, detail="Failed to save concept")
    return updated


@router.delete("/api/concepts/{concept_id}", status_code=204)
async def delete_concept(concept_id: str, user: dict = Depends(current_user)):
    await owned_concept(concept_id, user)
    if not await database.delete_concept(concept_id):
        raise HTTPException(status_code=500, detail="Failed to delete concept")


@router.post("/api/concepts/{concept_id}/prompt")
async def create_image_prompt(concept_id: str, user: dict = Depends(current_user)):
    """(Re)write the art-directed image prompt for a concept."""
    concept, analysis = await owned_concept(concept_id, user)
    settings = await database.get_settings(user["id"])
    return await _write_image_prompt(concept, analysis, user, settings)


@router.post("/api/concepts/{concept_id}/image")
async def create_concept_image(concept_id: str, request: GenerateImageRequest, user: dict = Depends(current_user)):
    """Render the concept with the chosen provider, writing the image prompt first if needed."""
    concept, analysis = await owned_concept(concept_id, user)
    settings = await database.get_settings(user["id"])
    generator = get_image_generator(request.provider, settings, timeout=config.IMAGE_REQUEST_TIMEOUT)

    if not concept.get("generated_prompt"):
        concept = await _write_image_prompt(concept, analysis, user, settings)

    logger.info(f"[concept:{concept_id}] Generating image with {PROVIDER_LABELS[request.provider]}")
    image = await generator.generate(concept["generated_prompt"])
    image_url = store_generated_image(concept_id, image)

    updated = await database.update_concept(
        concept_id,
        {"image_url": image_url, "image_generated_at": _now()},
    )
    if updated is None:
        raise HTTPException(status_code=500, detail="Failed to save generated image")
    return updated


@router.get("/api/concepts/{concept_id}/image")
async def download_concept_image(concept_id: str, user: dict = Depends(current_user)):
    concept, _ = await owned_concept(concept_id, user)
    if not concept.get("image_url"):
        raise NotFoundError("This concept has no generated image")

    png = await download_image_as_png(concept["image_url"], timeout=config.IMAGE_REQUEST_TIMEOUT)
    return Response(
        content=png,
        media_type="image/png",
        headers={"Content-Disposition": f'attachment; filename="{image_filename(concept)}"'},
    )
