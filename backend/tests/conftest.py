import os

# Tests never talk to a real Supabase project or AI provider
os.environ["SUPABASE_URL"] = ""
os.environ["SUPABASE_KEY"] = ""
os.environ["SCRAPE_FETCH_TIMEOUT"] = "5"
os.environ["AI_REQUEST_TIMEOUT"] = "5"
os.environ["IMAGE_REQUEST_TIMEOUT"] = "5"

import pytest


class FakeClassifier:
    """TextClassifier double: returns canned text (or raises) and records prompts."""

    def __init__(self, response: str = "", error: Exception | None = None):
        self.response = response
        self.error = error
        self.calls: list[dict] = []

    async def complete(self, prompt, *, system=None, model, temperature, max_tokens):
        self.calls.append({
            "prompt": prompt,
            "system": system,
            "model": model,
            "temperature": temperature,
            "max_tokens": max_tokens,
        })
        if self.error is not None:
            raise self.error
        return self.response


@pytest.fixture
def fake_classifier():
    return FakeClassifier


@pytest.fixture
def user():
    return {"id": "user-1", "email": "owner@example.com"}


@pytest.fixture
def analysis():
    return {
        "id": "analysis-1",
        "client_id": "client-1",
        "user_id": "user-1",
        "website_url": "https://acme.example",
        "brand_name": "Acme",
        "offer_details": "Anvils and rockets for professionals.",
        "target_audience": "Coyotes",
        "brand_positioning": "Reliable, playful",
    }


@pytest.fixture
def concepts():
    return [
        {
            "id": "c1",
            "analysis_id": "analysis-1",
            "funnel_stage": "TOFU",
            "concept": 'The "big" drop',
            "format": "UGC",
            "hooks": ["Tired of missing?", "Gravity, weaponised", "One anvil, zero excuses"],
            "marketing_objective": "awareness",
            "scroll_stopper": "Anvil falling in slow motion",
            "problem": "Roadrunner keeps escaping",
            "solution": "Precision anvils",
            "benefits": "Hits every time, ships in 24h",
            "proof": "4.9/5 from 2,000 coyotes",
            "cta": "Order now",
            "suggested_visual": "Desert, wide shot",
            "script_outline": "Setup, drop, payoff",
            "media_type": "video",
        },
        {
            "id": "c2",
            "analysis_id": "analysis-1",
            "funnel_stage": "BOFU",
            "concept": "Limited launch offer",
            "format": "Promo",
            "hooks": ["-20% this week"],
            "marketing_objective": "conversion",
            "scroll_stopper": "",
            "problem": "Price",
            "solution": "Discount",
            "benefits": "Save money",
            "proof": "Press mentions",
            "cta": "Claim the offer",
            "suggested_visual": "Product on red background",
            "script_outline": "",
            "media_type": "static",
        },
    ]
