import os
import base64
import logging
from dataclasses import dataclass
from typing import Optional, Protocol

import httpx
import openai
from openai import AsyncOpenAI
from google import genai
from google.genai import errors as genai_errors
from google.genai import types

from adstudio.errors import ConfigurationError, GenerationError
from adstudio.models import ImageProvider

logger = logging.getLogger(__name__)

OPENAI_IMAGE_MODEL = os.getenv("OPENAI_IMAGE_MODEL", "dall-e-3")
IDEOGRAM_URL = "https://api.ideogram.ai/generate"
IDEOGRAM_MODEL = os.getenv("IDEOGRAM_MODEL", "V_3")
IMAGEN_MODEL = os.getenv("IMAGEN_MODEL", "imagen-4.0-generate-001")
NANO_BANANA_MODEL = os.getenv("NANO_BANANA_MODEL", "gemini-2.5-flash-image")

# Which settings column holds the key for each provider
PROVIDER_KEY_FIELDS = {
    ImageProvider.openai: "openai_api_key",
    ImageProvider.ideogram: "ideogram_api_key",
    ImageProvider.google: "google_api_key",
    ImageProvider.nano_banana: "google_api_key",
}

PROVIDER_LABELS = {
    ImageProvider.openai: "OpenAI",
    ImageProvider.ideogram: "Ideogram",
    ImageProvider.google: "Google Imagen",
    ImageProvider.nano_banana: "Nano Banana",
}


@dataclass
class GeneratedImage:
    """Either a hosted `url` or raw `data` bytes, depending on the provider."""

    url: Optional[str] = None
    data: Optional[bytes] = None
    mime_type: str = "image/png"


class ImageGenerator(Protocol):
    async def generate(self, prompt: str) -> GeneratedImage: ...


class OpenAIImageGenerator:
    def __init__(self, api_key: str, *, timeout: float):
        self.client = AsyncOpenAI(api_key=api_key, timeout=timeout, max_retries=0)

    async def generate(self, prompt: str) -> GeneratedImage:
        try:
            response = await self.client.images.generate(
                model=OPENAI_IMAGE_MODEL,
                prompt=prompt,
                n=1,
                size="1024x1024",
                quality="standard",
            )
        except openai.APIStatusError as e:
            raise GenerationError(f"OpenAI image error (HTTP {e.status_code}): {e.message}") from e
        except openai.APIConnectionError as e:
            raise GenerationError(f"Could not reach OpenAI image API: {e}") from e
        except openai.OpenAIError as e:
            raise GenerationError(f"OpenAI image error: {e}") from e

        url = response.data[0].url if response.data else None
        if not url:
            raise GenerationError("No image URL returned by OpenAI")
        return GeneratedImage(url=url)


class IdeogramImageGenerator:
    def __init__(self, api_key: str, *, timeout: float, client: httpx.AsyncClient | None = None):
        self.api_key = api_key
        self.timeout = timeout
        self.client = client

    async def generate(self, prompt: str) -> GeneratedImage:
        payload = {
            "image_request": {
                "prompt": prompt,
                "aspect_ratio": "ASPECT_10_16",
                "model": IDEOGRAM_MODEL,
                "magic_prompt_option": "AUTO",
            }
        }
        headers = {"Content-Type": "application/json", "Api-Key": self.api_key}

        try:
            if self.client is not None:
                resp = await self.client.post(IDEOGRAM_URL, json=payload, headers=headers, timeout=self.timeout)
            else:
                async with httpx.AsyncClient(timeout=self.timeout) as client:
                    resp = await client.post(IDEOGRAM_URL, json=payload, headers=headers)
        except httpx.HTTPError as e:
            raise GenerationError(f"Could not reach Ideogram API: {e}") from e

        if not resp.is_success:
            logger.warning(f"[ideogram] HTTP {resp.status_code}: {resp.text[:300]}")
            raise GenerationError(f"Ideogram API error: HTTP {resp.status_code} - {resp.text[:300]}")

        try:
            body = resp.json()
        except ValueError as e:
            raise GenerationError(f"Ideogram API returned invalid JSON: {resp.text[:300]}") from e

        data = (body.get("data") if isinstance(body, dict) else None) or []
        url = data[0].get("url") if data and isinstance(data[0], dict) else None
        if not url:
            raise GenerationError("No image URL returned by Ideogram API")
        return GeneratedImage(url=url)


def _genai_client(api_key: str, timeout: float) -> genai.Client:
    # google-genai takes its timeout in milliseconds
    return genai.Client(api_key=api_key, http_options=types.HttpOptions(timeout=int(timeout * 1000)))


class ImagenImageGenerator:
    def __init__(self, api_key: str, *, timeout: float):
        self.client = _genai_client(api_key, timeout)

    async def generate(self, prompt: str) -> GeneratedImage:
        try:
            response = await self.client.aio.models.generate_images(
                model=IMAGEN_MODEL,
                prompt=prompt,
                config=types.GenerateImagesConfig(number_of_images=1, aspect_ratio="1:1"),
            )
        except genai_errors.APIError as e:
            raise GenerationError(f"Google Imagen error ({e.code}): {e.message}") from e

        images = response.generated_images or []
        image = images[0].image if images else None
        if image is None or not image.image_bytes:
            raise GenerationError("No image returned by Google Imagen")
        return GeneratedImage(data=image.image_bytes, mime_type=image.mime_type or "image/png")


class NanoBananaImageGenerator:
    def __init__(self, api_key: str, *, timeout: float):
        self.client = _genai_client(api_key, timeout)

    async def generate(self, prompt: str) -> GeneratedImage:
        try:
            response = await self.client.aio.models.generate_content(
                model=NANO_BANANA_MODEL,
                contents=prompt,
                config=types.GenerateContentConfig(response_modalities=["IMAGE", "TEXT"]),
            )
        except genai_errors.APIError as e:
            raise GenerationError(f"Nano Banana error ({e.code}): {e.message}") from e

        for candidate in response.candidates or []:
            if candidate.content is None:
                continue
            for part in candidate.content.parts or []:
                if part.inline_data and part.inline_data.data:
                    data = part.inline_data.data
                    if isinstance(data, str):
                        data = base64.b64decode(data)
                    return GeneratedImage(data=data, mime_type=part.inline_data.mime_type or "image/png")

        raise GenerationError("No image returned by Nano Banana")


def get_image_generator(provider: ImageProvider, settings: dict | None, *, timeout: float) -> ImageGenerator:
    """Build the adapter for `provider` with the user's stored key."""
    key_field = PROVIDER_KEY_FIELDS[provider]
    api_key = (settings or {}).get(key_field)
    if not api_key:
        raise ConfigurationError(f"{PROVIDER_LABELS[provider]} API key not configured")

    if provider == ImageProvider.openai:
        return OpenAIImageGenerator(api_key, timeout=timeout)
    if provider == ImageProvider.ideogram:
        return IdeogramImageGenerator(api_key, timeout=timeout)
    if provider == ImageProvider.google:
        return ImagenImageGenerator(api_key, timeout=timeout)
    return NanoBananaImageGenerator(api_key, timeout=timeout)
