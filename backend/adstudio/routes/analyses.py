import logging

from fastapi import APIRouter, Depends, Header, HTTPException
from pydantic import BaseModel

from adstudio import config, database
from adstudio.errors import NotFoundError
from adstudio.models import AnalysisResult
from adstudio.routes.deps import bearer_token, current_user, owned_analysis
from adstudio.services.brand_analysis import analyze_for_user

logger = logging.getLogger(__name__)

router = APIRouter()


class ScrapeRequest(BaseModel):
    url: str


class AnalysisCreate(BaseModel):
    website_url: str
    brand_name: str
    offer_details: str = ""
    target_audience: str = ""
    brand_positioning: str = ""
    ad_platform: str = "Meta"
    raw_content: str = ""
    primary_color: str | None = None
    secondary_color: str | None = None
    brand_mood: str | None = None


@router.post("/api/scrape", response_model=AnalysisResult)
async def scrape_website(request: ScrapeRequest, authorization: str | None = Header(default=None)):
    """Infer a brand's identity (offer, audience, positioning, colors, mood) from its website."""
    url = request.url.strip()
    if not url:
        raise HTTPException(status_code=400, detail="URL is required")
    if "://" not in url:
        url = "https://" + url

    return await analyze_for_user(
        bearer_token(authorization),
        url,
        fetch_timeout=config.SCRAPE_FETCH_TIMEOUT,
        classify_timeout=config.AI_REQUEST_TIMEOUT,
    )


@router.get("/api/clients/{client_id}/analyses")
async def list_analyses(client_id: str, user: dict = Depends(current_user)):
    return await database.list_analyses(client_id, user["id"])


@router.post("/api/clients/{client_id}/analyses", status_code=201)
async def create_analysis(client_id: str, request: AnalysisCreate, user: dict = Depends(current_user)):
    """Save an analysis. The visual identity goes on the client, the strategy on the analysis."""
    if await database.get_client(client_id, user["id"]) is None:
        raise NotFoundError("Client not found")

    data = request.model_dump()
    identity = {k: data.pop(k) for k in ("primary_color", "secondary_color", "brand_mood")}
    identity = {k: v for k, v in identity.items() if v}
    if identity and await database.update_client(client_id, user["id"], identity) is None:
        raise HTTPException(status_code=500, detail="Failed to update client visual identity")

    record = await database.create_analysis(client_id, user["id"], data)
    if record is None:
        raise HTTPException(status_code=500, detail="Failed to save analysis")
    logger.info(f"[analysis:{record.get('id')}] Created for client {client_id} ({request.website_url})")
    return record


@router.get("/api/analyses/{analysis_id}")
async def get_analysis(analysis_id: str, user: dict = Depends(current_user)):
    return await owned_analysis(analysis_id, user)


@router.delete("/api/analyses/{analysis_id}", status_code=204)
async def delete_analysis(analysis_id: str, user: dict = Depends(current_user)):
    if not await database.delete_analysis(analysis_id, user["id"]):
        raise NotFoundError("Analysis not found")
    logger.info(f"[analysis:{analysis_id}] Deleted")
