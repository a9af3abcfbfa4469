import os
import logging
from datetime import datetime, timezone
from typing import Optional

logger = logging.getLogger(__name__)

IMAGE_BUCKET = os.getenv("IMAGE_BUCKET", "concept_images")

_supabase_client = None


def get_supabase():
    """Get or create the Supabase client (service role: we scope rows by user_id ourselves)."""
    global _supabase_client
    if _supabase_client is not None:
        return _supabase_client

    url = os.getenv("SUPABASE_URL", "")
    key = os.getenv("SUPABASE_KEY", "")

    if not url or not key:
        logger.warning("SUPABASE_URL or SUPABASE_KEY not set, database disabled")
        return None

    from supabase import create_client

    _supabase_client = create_client(url, key)
    return _supabase_client


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


# ── Auth ──


async def get_user_for_token(access_token: Optional[str]) -> Optional[dict]:
    """Resolve a Supabase Auth access token to {"id": ..., "email": ...}."""
    if not access_token:
        return None

    client = get_supabase()
    if client is None:
        return None

    try:
        response = client.auth.get_user(access_token)
    except Exception as e:
        logger.info(f"Token rejected by Supabase Auth: {e}")
        return None

    user = getattr(response, "user", None) if response else None
    if user is None:
        return None
    return {"id": user.id, "email": getattr(user, "email", None)}


# ── Clients ──


async def list_clients(user_id: str) -> list[dict]:
    """List a user's clients, newest first, each with its analysis_count."""
    client = get_supabase()
    if client is None:
        return []

    try:
        result = (
            client.table("clients")
            .select("*")
            .eq("user_id", user_id)
            .order("created_at", desc=True)
            .execute()
        )
        clients = result.data or []
        if not clients:
            return []

        analyses = (
            client.table("analyses")
            .select("id, client_id")
            .in_("client_id", [c["id"] for c in clients])
            .execute()
        )
        counts: dict[str, int] = {}
        for a in analyses.data or []:
            counts[a["client_id"]] = counts.get(a["client_id"], 0) + 1
        for c in clients:
            c["analysis_count"] = counts.get(c["id"], 0)
        return clients
    except Exception as e:
        logger.error(f"Failed to list clients for {user_id}: {e}")
        return []


async def get_client(client_id: str, user_id: str) -> Optional[dict]:
    client = get_supabase()
    if client is None:
        return None

    try:
        result = (
            client.table("clients")
            .select("*")
            .eq("id", client_id)
            .eq("user_id", user_id)
            .maybe_single()
            .execute()
        )
        return result.data if result else None
    except Exception as e:
        logger.error(f"Failed to get client {client_id}: {e}")
        return None


async def create_client(user_id: str, data: dict) -> Optional[dict]:
    client = get_supabase()
    if client is None:
        return None

    try:
        row = {**data, "user_id": user_id}
        result = client.table("clients").insert(row).execute()
        return result.data[0] if result.data else None
    except Exception as e:
        logger.error(f"Failed to create client: {e}")
        return None


async def update_client(client_id: str, user_id: str, changes: dict) -> Optional[dict]:
    client = get_supabase()
    if client is None:
        return None

    try:
        result = (
            client.table("clients")
            .update({**changes, "updated_at": _now()})
            .eq("id", client_id)
            .eq("user_id", user_id)
            .execute()
        )
        return result.data[0] if result.data else None
    except Exception as e:
        logger.error(f"Failed to update client {client_id}: {e}")
        return None


async def delete_client(client_id: str, user_id: str) -> bool:
    """Delete a client. Its analyses and concepts go with it (ON DELETE CASCADE)."""
    client = get_supabase()
    if client is None:
        return False

    try:
        result = (
            client.table("clients")
            .delete()
            .eq("id", client_id)
            .eq("user_id", user_id)
            .execute()
        )
        return bool(result.data)
    except Exception as e:
        logger.error(f"Failed to delete client {client_id}: {e}")
        return False


# ── Analyses ──


async def list_analyses(client_id: str, user_id: str) -> list[dict]:
    client = get_supabase()
    if client is None:
        return []

    try:
        result = (
            client.table("analyses")
            .select("*")
            .eq("client_id", client_id)
            .eq("user_id", user_id)
            .order("created_at", desc=True)
            .execute()
        )
        return result.data or []
    except Exception as e:
        logger.error(f"Failed to list analyses for client {client_id}: {e}")
        return []


async def get_analysis(analysis_id: str, user_id: str) -> Optional[dict]:
    client = get_supabase()
    if client is None:
        return None

    try:
        result = (
            client.table("analyses")
            .select("*")
            .eq("id", analysis_id)
            .eq("user_id", user_id)
            .maybe_single()
            .execute()
        )
        return result.data if result else None
    except Exception as e:
        logger.error(f"Failed to get analysis {analysis_id}: {e}")
        return None


async def create_analysis(client_id: str, user_id: str, data: dict) -> Optional[dict]:
    client = get_supabase()
    if client is None:
        return None

    try:
        row = {**data, "client_id": client_id, "user_id": user_id}
        result = client.table("analyses").insert(row).execute()
        return result.data[0] if result.data else None
    except Exception as e:
        logger.error(f"Failed to create analysis for client {client_id}: {e}")
        return None


async def delete_analysis(analysis_id: str, user_id: str) -> bool:
    client = get_supabase()
    if client is None:
        return False

    try:
        result = (
            client.table("analyses")
            .delete()
            .eq("id", analysis_id)
            .eq("user_id", user_id)
            .execute()
        )
        return bool(result.data)
    except Exception as e:
        logger.error(f"Failed to delete analysis {analysis_id}: {e}")
        return False


# ── Concepts ──


async def list_concepts(analysis_id: str) -> list[dict]:
    client = get_supabase()
    if client is None:
        return []

    try:
        result = (
            client.table("concepts")
            .select("*")
            .eq("analysis_id", analysis_id)
            .order("created_at", desc=False)
            .execute()
        )
        return result.data or []
    except Exception as e:
        logger.error(f"Failed to list concepts for analysis {analysis_id}: {e}")
        return []


async def get_concept(concept_id: str) -> Optional[dict]:
    client = get_supabase()
    if client is None:
        return None

    try:
        result = (
            client.table("concepts")
            .select("*")
            .eq("id", concept_id)
            .maybe_single()
            .execute()
        )
        return result.data if result else None
    except Exception as e:
        logger.error(f"Failed to get concept {concept_id}: {e}")
        return None


async def insert_concepts(analysis_id: str, concepts: list[dict]) -> list[dict]:
    client = get_supabase()
    if client is None or not concepts:
        return []

    try:
        rows = [{**c, "analysis_id": analysis_id} for c in concepts]
        result = client.table("concepts").insert(rows).execute()
        return result.data or []
    except Exception as e:
        logger.error(f"Failed to insert {len(concepts)} concepts for analysis {analysis_id}: {e}")
        return []


async def update_concept(concept_id: str, changes: dict) -> Optional[dict]:
    client = get_supabase()
    if client is None:
        return None

    try:
        result = (
            client.table("concepts")
            .update(changes)
            .eq("id", concept_id)
            .execute()
        )
        return result.data[0] if result.data else None
    except Exception as e:
        logger.error(f"Failed to update concept {concept_id}: {e}")
        return None


async def delete_concept(concept_id: str) -> bool:
    client = get_supabase()
    if client is None:
        return False

    try:
        result = client.table("concepts").delete().eq("id", concept_id).execute()
        return bool(result.data)
    except Exception as e:
        logger.error(f"Failed to delete concept {concept_id}: {e}")
        return False


async def delete_concepts_by_stage(analysis_id: str, stage: str) -> int:
    """Delete every concept of one funnel stage. Returns how many were removed."""
    client = get_supabase()
    if client is None:
        return 0

    try:
        result = (
            client.table("concepts")
            .delete()
            .eq("analysis_id", analysis_id)
            .eq("funnel_stage", stage)
            .execute()
        )
        return len(result.data or [])
    except Exception as e:
        logger.error(f"Failed to delete {stage} concepts for analysis {analysis_id}: {e}")
        return 0


# ── Settings ──


async def get_settings(user_id: str) -> Optional[dict]:
    client = get_supabase()
    if client is None:
        return None

    try:
        result = (
            client.table("settings")
            .select("*")
            .eq("user_id", user_id)
            .maybe_single()
            .execute()
        )
        return result.data if result else None
    except Exception as e:
        logger.error(f"Failed to load settings for {user_id}: {e}")
        return None


async def save_settings(user_id: str, keys: dict) -> Optional[dict]:
    """Update the user's settings row, creating it on first save."""
    client = get_supabase()
    if client is None:
        return None

    updates = {**keys, "updated_at": _now()}
    try:
        existing = await get_settings(user_id)
        if existing:
            result = (
                client.table("settings")
                .update(updates)
                .eq("id", existing["id"])
                .execute()
            )
        else:
            result = (
                client.table("settings")
                .insert({"user_id": user_id, **updates})
                .execute()
            )
        return result.data[0] if result.data else None
    except Exception as e:
        logger.error(f"Failed to save settings for {user_id}: {e}")
        return None


# ── Supabase Storage helpers ──


def get_public_storage_url(path: str) -> str:
    """Get the public URL for a file in the image bucket."""
    supabase_url = os.getenv("SUPABASE_URL", "").rstrip("/")
    return f"{supabase_url}/storage/v1/object/public/{IMAGE_BUCKET}/{path}"


def upload_image(path: str, data: bytes, content_type: str) -> Optional[str]:
    """Upload image bytes to Supabase Storage and return their public URL."""
    client = get_supabase()
    if client is None:
        logger.warning("Supabase not configured, cannot upload image")
        return None

    try:
        client.storage.from_(IMAGE_BUCKET).upload(
            path,
            data,
            file_options={"content-type": content_type, "upsert": "true"},
        )
    except Exception as e:
        logger.error(f"Storage upload failed for {path}: {e}")
        return None

    logger.info(f"[storage] Uploaded {path} ({len(data)} bytes)")
    return get_public_storage_url(path)
