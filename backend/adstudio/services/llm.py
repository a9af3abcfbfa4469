import os
import json
import time
import logging
from typing import Protocol

import openai
from openai import AsyncOpenAI

from adstudio.errors import GenerationError

logger = logging.getLogger(__name__)

CLASSIFIER_MODEL = os.getenv("CLASSIFIER_MODEL", "gpt-4o-mini")
CONCEPT_MODEL = os.getenv("CONCEPT_MODEL", "gpt-4o")

# OpenAI pricing per million tokens, used for cost logging only
MODEL_PRICING = {
    "gpt-4o": {"input": 2.50, "output": 10.00},
    "gpt-4o-mini": {"input": 0.15, "output": 0.60},
}
DEFAULT_PRICING = {"input": 2.50, "output": 10.00}


class TextClassifier(Protocol):
    """Anything that turns a single-turn chat prompt into response text."""

    async def complete(
        self,
        prompt: str,
        *,
        system: str | None = None,
        model: str,
        temperature: float,
        max_tokens: int,
    ) -> str: ...


def _extract_usage(response) -> dict:
    """Extract token usage from an API response."""
    usage = getattr(response, "usage", None)
    tokens_in = getattr(usage, "prompt_tokens", 0) if usage else 0
    tokens_out = getattr(usage, "completion_tokens", 0) if usage else 0
    return {"tokens_in": tokens_in or 0, "tokens_out": tokens_out or 0}


def _calc_cost(tokens_in: int, tokens_out: int, model: str) -> float:
    pricing = MODEL_PRICING.get(model, DEFAULT_PRICING)
    cost = (tokens_in * pricing["input"] + tokens_out * pricing["output"]) / 1_000_000
    return round(cost, 6)


class OpenAIChatClient:
    """TextClassifier backed by the OpenAI chat completions API.

    Each user brings their own key, so a client is built per request. The
    SDK's automatic retries are disabled: a failed call fails the request.
    """

    def __init__(self, api_key: str, *, timeout: float):
        self.client = AsyncOpenAI(api_key=api_key, timeout=timeout, max_retries=0)

    async def complete(
        self,
        prompt: str,
        *,
        system: str | None = None,
        model: str,
        temperature: float,
        max_tokens: int,
    ) -> str:
        messages = []
        if system:
            messages.append({"role": "system", "content": system})
        messages.append({"role": "user", "content": prompt})

        t0 = time.time()
        try:
            response = await self.client.chat.completions.create(
                model=model,
                messages=messages,
                temperature=temperature,
                max_tokens=max_tokens,
            )
        except openai.APIStatusError as e:
            raise GenerationError(f"OpenAI API error (HTTP {e.status_code}): {e.message}") from e
        except openai.APITimeoutError as e:
            raise GenerationError("OpenAI API request timed out") from e
        except openai.APIConnectionError as e:
            raise GenerationError(f"Could not reach OpenAI API: {e}") from e
        except openai.OpenAIError as e:
            raise GenerationError(f"OpenAI API error: {e}") from e

        content = response.choices[0].message.content if response.choices else None
        u = _extract_usage(response)
        logger.info(
            f"[ai] {model} responded in {time.time() - t0:.1f}s | "
            f"tokens_in={u['tokens_in']} tokens_out={u['tokens_out']} "
            f"cost=${_calc_cost(u['tokens_in'], u['tokens_out'], model):.4f}"
        )
        if not content:
            raise GenerationError("OpenAI API response contained no message content")
        return content


# ─── Parsing JSON out of free text ─────────────────────────────────────────

def _find_json(raw: str, opener: str, kind: type):
    decoder = json.JSONDecoder()
    start = raw.find(opener)
    while start != -1:
        try:
            value, _ = decoder.raw_decode(raw, start)
        except json.JSONDecodeError:
            value = None
        if isinstance(value, kind):
            return value
        start = raw.find(opener, start + 1)
    return None


def extract_json_object(raw: str) -> dict | None:
    """Return the first JSON object embedded in `raw`, ignoring prose and fences."""
    return _find_json(raw or "", "{", dict)


def extract_json_array(raw: str) -> list | None:
    """Return the first JSON array embedded in `raw`, ignoring prose and fences."""
    return _find_json(raw or "", "[", list)
