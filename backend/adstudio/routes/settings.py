from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel

from adstudio import database
from adstudio.routes.deps import current_user

router = APIRouter()

API_KEY_FIELDS = ("openai_api_key", "ideogram_api_key", "google_api_key")


class SettingsUpdate(BaseModel):
    openai_api_key: str | None = None
    ideogram_api_key: str | None = None
    google_api_key: str | None = None


def mask_key(key: str | None) -> str | None:
    """Show only the last 4 characters of a stored secret."""
    if not key:
        return None
    return "•" * 8 + key[-4:]


def _public_settings(record: dict | None) -> dict:
    record = record or {}
    data = {field: mask_key(record.get(field)) for field in API_KEY_FIELDS}
    data["updated_at"] = record.get("updated_at")
    return data


@router.get("/api/settings")
async def get_settings(user: dict = Depends(current_user)):
    return _public_settings(await database.get_settings(user["id"]))


@router.put("/api/settings")
async def save_settings(request: SettingsUpdate, user: dict = Depends(current_user)):
    """Store the user's provider API keys. Empty strings clear a key; omitted keys are untouched."""
    keys = {k: v.strip() for k, v in request.model_dump(exclude_unset=True).items() if v is not None}
    record = await database.save_settings(user["id"], keys)
    if record is None:
        raise HTTPException(status_code=500, detail="Failed to save settings")
    return _public_settings(record)
