import logging

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel

from adstudio import database
from adstudio.errors import NotFoundError
from adstudio.routes.deps import current_user

logger = logging.getLogger(__name__)

router = APIRouter()


class ClientCreate(BaseModel):
    name: str
    website_url: str | None = None
    baseline: str | None = None
    positioning_keywords: list[str] | None = None
    primary_color: str | None = None
    secondary_color: str | None = None
    dark_color: str | None = None
    light_color: str | None = None
    brand_mood: str | None = None


class ClientUpdate(BaseModel):
    name: str | None = None
    website_url: str | None = None
    baseline: str | None = None
    positioning_keywords: list[str] | None = None
    primary_color: str | None = None
    secondary_color: str | None = None
    dark_color: str | None = None
    light_color: str | None = None
    brand_mood: str | None = None


@router.get("/api/clients")
async def list_clients(user: dict = Depends(current_user)):
    """List the user's clients with their number of analyses."""
    return await database.list_clients(user["id"])


@router.post("/api/clients", status_code=201)
async def create_client(request: ClientCreate, user: dict = Depends(current_user)):
    if not request.name.strip():
        raise HTTPException(status_code=400, detail="Client name is required")

    record = await database.create_client(user["id"], request.model_dump(exclude_none=True))
    if record is None:
        raise HTTPException(status_code=500, detail="Failed to create client")
    logger.info(f"[client:{record.get('id')}] Created {request.name!r}")
    return record


@router.get("/api/clients/{client_id}")
async def get_client(client_id: str, user: dict = Depends(current_user)):
    record = await database.get_client(client_id, user["id"])
    if record is None:
        raise NotFoundError("Client not found")
    return record


@router.patch("/api/clients/{client_id}")
async def update_client(client_id: str, request: ClientUpdate, user: dict = Depends(current_user)):
    changes = request.model_dump(exclude_unset=True)
    if not changes:
        raise HTTPException(status_code=400, detail="Nothing to update")

    record = await database.update_client(client_id, user["id"], changes)
    if record is None:
        raise NotFoundError("Client not found")
    return record


@router.delete("/api/clients/{client_id}", status_code=204)
async def delete_client(client_id: str, user: dict = Depends(current_user)):
    """Delete a client and, through the database cascade, all its analyses."""
    if not await database.delete_client(client_id, user["id"]):
        raise NotFoundError("Client not found")
    logger.info(f"[client:{client_id}] Deleted")
