from fastapi import Header

from adstudio import database
from adstudio.errors import AuthenticationError, NotFoundError


def bearer_token(authorization: str | None) -> str | None:
    if not authorization:
        return None
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


async def current_user(authorization: str | None = Header(default=None)) -> dict:
    """FastAPI dependency: the Supabase user behind the request's bearer token."""
    user = await database.get_user_for_token(bearer_token(authorization))
    if user is None:
        raise AuthenticationError("Authorization required")
    return user


async def owned_analysis(analysis_id: str, user: dict) -> dict:
    analysis = await database.get_analysis(analysis_id, user["id"])
    if analysis is None:
        raise NotFoundError("Analysis not found")
    return analysis


async def owned_concept(concept_id: str, user: dict) -> tuple[dict, dict]:
    """Return (concept, analysis), checking the analysis belongs to the user."""
    concept = await database.get_concept(concept_id)
    if concept is None:
        raise NotFoundError("Concept not found")
    analysis = await database.get_analysis(concept["analysis_id"], user["id"])
    if analysis is None:
        raise NotFoundError("Concept not found")
    return concept, analysis
