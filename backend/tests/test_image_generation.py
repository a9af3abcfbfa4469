"""
Tests for image provider adapters and generated image handling.
"""
import io
import json
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import openai
import pytest
from google.genai import errors as genai_errors
from google.genai import types
from PIL import Image

from adstudio.errors import ConfigurationError, GenerationError
from adstudio.models import ImageProvider
from adstudio.services.image_assets import (
    download_image_as_png,
    image_filename,
    store_generated_image,
    to_png,
)
from adstudio.services.image_generation import (
    IDEOGRAM_URL,
    GeneratedImage,
    IdeogramImageGenerator,
    ImagenImageGenerator,
    NanoBananaImageGenerator,
    OpenAIImageGenerator,
    get_image_generator,
)


def _jpeg_bytes(size=(8, 8), mode="RGB") -> bytes:
    buf = io.BytesIO()
    Image.new(mode, size, color=(200, 30, 30)).save(buf, format="JPEG")
    return buf.getvalue()


class TestGetImageGenerator:

    @pytest.mark.parametrize("provider, label", [
        (ImageProvider.openai, "OpenAI"),
        (ImageProvider.ideogram, "Ideogram"),
        (ImageProvider.google, "Google Imagen"),
        (ImageProvider.nano_banana, "Nano Banana"),
    ])
    def test_missing_key_names_the_provider(self, provider, label):
        with pytest.raises(ConfigurationError) as exc_info:
            get_image_generator(provider, {"openai_api_key": ""}, timeout=5)
        assert exc_info.value.message == f"{label} API key not configured"

    def test_no_settings_row(self):
        with pytest.raises(ConfigurationError):
            get_image_generator(ImageProvider.ideogram, None, timeout=5)

    def test_builds_adapter_for_provider(self):
        settings = {"openai_api_key": "sk-test", "ideogram_api_key": "ideo-key"}

        assert isinstance(get_image_generator(ImageProvider.openai, settings, timeout=5), OpenAIImageGenerator)
        assert isinstance(get_image_generator(ImageProvider.ideogram, settings, timeout=5), IdeogramImageGenerator)


class TestIdeogram:

    @pytest.mark.asyncio
    async def test_sends_image_request_and_returns_url(self):
        seen = {}

        def handler(request: httpx.Request):
            seen["url"] = str(request.url)
            seen["key"] = request.headers["api-key"]
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json={"data": [{"url": "https://ideogram.example/img.png"}]})

        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            generator = IdeogramImageGenerator("ideo-key", timeout=5, client=client)
            image = await generator.generate("A red anvil")

        assert image.url == "https://ideogram.example/img.png"
        assert seen["url"] == IDEOGRAM_URL
        assert seen["key"] == "ideo-key"
        assert seen["body"]["image_request"]["prompt"] == "A red anvil"
        assert seen["body"]["image_request"]["aspect_ratio"] == "ASPECT_10_16"

    @pytest.mark.asyncio
    async def test_http_error_raises_generation_error(self):
        def handler(request: httpx.Request):
            return httpx.Response(422, text="prompt rejected")

        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            generator = IdeogramImageGenerator("ideo-key", timeout=5, client=client)
            with pytest.raises(GenerationError) as exc_info:
                await generator.generate("A red anvil")

        assert "422" in exc_info.value.message
        assert "prompt rejected" in exc_info.value.message

    @pytest.mark.asyncio
    async def test_empty_data_raises(self):
        def handler(request: httpx.Request):
            return httpx.Response(200, json={"data": []})

        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            generator = IdeogramImageGenerator("ideo-key", timeout=5, client=client)
            with pytest.raises(GenerationError):
                await generator.generate("A red anvil")

    @pytest.mark.asyncio
    async def test_non_json_success_body_raises(self):
        def handler(request: httpx.Request):
            return httpx.Response(200, text="<html>maintenance</html>")

        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            generator = IdeogramImageGenerator("ideo-key", timeout=5, client=client)
            with pytest.raises(GenerationError) as exc_info:
                await generator.generate("A red anvil")

        assert "invalid JSON" in exc_info.value.message


def _genai_error(code: int, message: str) -> genai_errors.APIError:
    return genai_errors.ClientError(code, {"error": {"code": code, "message": message, "status": "INVALID_ARGUMENT"}})


def _content_response(*candidates) -> types.GenerateContentResponse:
    return types.GenerateContentResponse(candidates=list(candidates))


class TestImagen:

    def _generator(self, **mock_kwargs) -> tuple[ImagenImageGenerator, AsyncMock]:
        generator = ImagenImageGenerator("google-key", timeout=5)
        generate_images = AsyncMock(**mock_kwargs)
        generator.client = MagicMock()
        generator.client.aio.models.generate_images = generate_images
        return generator, generate_images

    @pytest.mark.asyncio
    async def test_returns_first_image_bytes(self):
        response = types.GenerateImagesResponse(generated_images=[
            types.GeneratedImage(image=types.Image(image_bytes=b"first", mime_type="image/jpeg")),
            types.GeneratedImage(image=types.Image(image_bytes=b"second", mime_type="image/png")),
        ])
        generator, generate_images = self._generator(return_value=response)

        image = await generator.generate("A red anvil")

        assert image.url is None
        assert image.data == b"first"
        assert image.mime_type == "image/jpeg"
        assert generate_images.call_args.kwargs["prompt"] == "A red anvil"

    @pytest.mark.asyncio
    async def test_no_images_raises(self):
        generator, _ = self._generator(return_value=types.GenerateImagesResponse(generated_images=[]))

        with pytest.raises(GenerationError) as exc_info:
            await generator.generate("A red anvil")

        assert "No image returned" in exc_info.value.message

    @pytest.mark.asyncio
    async def test_api_error_becomes_generation_error(self):
        generator, _ = self._generator(side_effect=_genai_error(400, "Prompt blocked"))

        with pytest.raises(GenerationError) as exc_info:
            await generator.generate("A red anvil")

        assert "400" in exc_info.value.message
        assert exc_info.value.kind == "GenerationError"


class TestNanoBanana:

    def _generator(self, **mock_kwargs) -> tuple[NanoBananaImageGenerator, AsyncMock]:
        generator = NanoBananaImageGenerator("google-key", timeout=5)
        generate_content = AsyncMock(**mock_kwargs)
        generator.client = MagicMock()
        generator.client.aio.models.generate_content = generate_content
        return generator, generate_content

    @pytest.mark.asyncio
    async def test_first_inline_image_part_wins(self):
        response = _content_response(
            types.Candidate(content=None),
            types.Candidate(content=types.Content(role="model", parts=[
                types.Part(text="Here is your ad"),
                types.Part(inline_data=types.Blob(data=b"webp-bytes", mime_type="image/webp")),
                types.Part(inline_data=types.Blob(data=b"later", mime_type="image/png")),
            ])),
        )
        generator, generate_content = self._generator(return_value=response)

        image = await generator.generate("A red anvil")

        assert image.data == b"webp-bytes"
        assert image.mime_type == "image/webp"
        assert generate_content.call_args.kwargs["contents"] == "A red anvil"

    @pytest.mark.asyncio
    async def test_base64_string_data_is_decoded(self):
        part = SimpleNamespace(inline_data=SimpleNamespace(data="aW1hZ2U=", mime_type=None))
        response = SimpleNamespace(candidates=[SimpleNamespace(content=SimpleNamespace(parts=[part]))])
        generator, _ = self._generator(return_value=response)

        image = await generator.generate("A red anvil")

        assert image.data == b"image"
        assert image.mime_type == "image/png"

    @pytest.mark.asyncio
    async def test_text_only_response_raises(self):
        response = _content_response(
            types.Candidate(content=types.Content(role="model", parts=[types.Part(text="I cannot draw that")])),
        )
        generator, _ = self._generator(return_value=response)

        with pytest.raises(GenerationError) as exc_info:
            await generator.generate("A red anvil")

        assert "No image returned" in exc_info.value.message

    @pytest.mark.asyncio
    async def test_no_candidates_raises(self):
        generator, _ = self._generator(return_value=_content_response())

        with pytest.raises(GenerationError):
            await generator.generate("A red anvil")

    @pytest.mark.asyncio
    async def test_api_error_becomes_generation_error(self):
        generator, _ = self._generator(side_effect=_genai_error(429, "Quota exceeded"))

        with pytest.raises(GenerationError) as exc_info:
            await generator.generate("A red anvil")

        assert "429" in exc_info.value.message


class TestOpenAIImage:

    @pytest.mark.asyncio
    async def test_unexpected_sdk_error_becomes_generation_error(self):
        generator = OpenAIImageGenerator("sk-test", timeout=5)
        generator.client = MagicMock()
        generator.client.images.generate = AsyncMock(side_effect=openai.OpenAIError("unexpected payload"))

        with pytest.raises(GenerationError) as exc_info:
            await generator.generate("A red anvil")

        assert "unexpected payload" in exc_info.value.message

class TestStoreGeneratedImage:

    def test_hosted_url_is_returned_as_is(self):
        with patch("adstudio.database.upload_image") as mock_upload:
            url = store_generated_image("c1", GeneratedImage(url="https://cdn.example/a.png"))

        assert url == "https://cdn.example/a.png"
        mock_upload.assert_not_called()

    def test_bytes_are_uploaded_under_concept_folder(self):
        with patch("adstudio.database.upload_image", return_value="https://storage.example/c1/x.jpg") as mock_upload:
            url = store_generated_image("c1", GeneratedImage(data=b"\xff\xd8", mime_type="image/jpeg"))

        assert url == "https://storage.example/c1/x.jpg"
        path, data, content_type = mock_upload.call_args.args
        assert path.startswith("c1/")
        assert path.endswith(".jpg")
        assert data == b"\xff\xd8"
        assert content_type == "image/jpeg"

    def test_default_mime_type_is_sent_with_upload(self):
        with patch("adstudio.database.upload_image", return_value="https://storage.example/c1/x.png") as mock_upload:
            store_generated_image("c1", GeneratedImage(data=b"png"))

        path, _, content_type = mock_upload.call_args.args
        assert path.endswith(".png")
        assert content_type == "image/png"

    def test_failed_upload_raises(self):
        with patch("adstudio.database.upload_image", return_value=None):
            with pytest.raises(GenerationError):
                store_generated_image("c1", GeneratedImage(data=b"png"))


class TestPngConversion:

    def test_jpeg_becomes_png(self):
        png = to_png(_jpeg_bytes())
        img = Image.open(io.BytesIO(png))
        assert img.format == "PNG"
        assert img.size == (8, 8)

    def test_palette_image_is_converted(self):
        buf = io.BytesIO()
        Image.new("P", (4, 4)).save(buf, format="GIF")
        img = Image.open(io.BytesIO(to_png(buf.getvalue())))
        assert img.mode in ("RGB", "RGBA")

    def test_garbage_raises(self):
        with pytest.raises(GenerationError):
            to_png(b"definitely not an image")

    def test_filename_from_concept(self):
        name = image_filename({"concept": "Big drop! 50% off, today only & more words"})
        assert name.startswith("Big_drop__50__off__today_only_")
        assert name.endswith(".png")

    @pytest.mark.asyncio
    async def test_download_converts_to_png(self):
        def handler(request: httpx.Request):
            return httpx.Response(200, content=_jpeg_bytes(), headers={"content-type": "image/jpeg"})

        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            png = await download_image_as_png("https://cdn.example/a.jpg", timeout=5, client=client)

        assert png.startswith(b"\x89PNG")

    @pytest.mark.asyncio
    async def test_download_http_error(self):
        def handler(request: httpx.Request):
            return httpx.Response(404)

        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            with pytest.raises(GenerationError):
                await download_image_as_png("https://cdn.example/expired.png", timeout=5, client=client)
