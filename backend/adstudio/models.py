from enum import Enum

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

FUNNEL_STAGES = ("TOFU", "MOFU", "BOFU")


class MediaType(str, Enum):
    video = "video"
    static = "static"


class ImageProvider(str, Enum):
    openai = "openai"
    ideogram = "ideogram"
    google = "google"
    nano_banana = "nano_banana"


class AnalysisResult(BaseModel):
    """Brand identity inferred from a website. Serialised with camelCase keys."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    brand_name: str
    offer_details: str
    target_audience: str
    brand_positioning: str
    raw_content: str
    primary_color: str | None = None
    secondary_color: str | None = None
    brand_mood: str | None = None


class ConceptData(BaseModel):
    """One generated ad concept, before it is stored."""

    funnel_stage: str
    concept: str = ""
    format: str = ""
    hooks: list[str] = Field(default_factory=list)
    marketing_objective: str = ""
    scroll_stopper: str = ""
    problem: str = ""
    solution: str = ""
    benefits: str = ""
    proof: str = ""
    cta: str = ""
    suggested_visual: str = ""
    script_outline: str = ""
    media_type: MediaType


# Fields a user may change on a stored concept
EDITABLE_CONCEPT_FIELDS = (
    "concept",
    "format",
    "hooks",
    "marketing_objective",
    "scroll_stopper",
    "problem",
    "solution",
    "benefits",
    "proof",
    "cta",
    "suggested_visual",
    "script_outline",
)
