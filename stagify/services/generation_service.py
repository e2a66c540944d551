"""
Image Generation Clients

GenerationClient: abstract interface to the external virtual-staging provider.
FalGenerationClient: FAL image-to-image over HTTPS (httpx).
MockGenerationClient: canned per-style results for development and tests.

The concrete client is chosen once, when the application is assembled
(build_generation_client), and handed to the request gate. Nothing in the
staging path looks a client up from global state or the environment.
"""

from __future__ import annotations

import logging
import random
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any

import httpx

from stagify.config import Settings
from stagify.models.staging_project import StagingStyle

logger = logging.getLogger(__name__)


STYLE_PROMPTS: dict[StagingStyle, str] = {
    StagingStyle.MODERN: (
        "Transform this empty room into a modern, contemporary living space. Add sleek, minimalist "
        "furniture with clean lines. Include a modern sofa in a neutral color like gray or beige, a glass "
        "coffee table, abstract wall art, and minimal decorative elements. Use materials like metal, glass, "
        "and light woods. Ensure the lighting feels bright and airy. The result should look like a high-end "
        "modern home ready for a real estate listing."
    ),
    StagingStyle.TRADITIONAL: (
        "Convert this empty room into a traditional, elegant space with classic furniture and warm, rich "
        "colors. Add a plush upholstered sofa in a deep jewel tone, a wooden coffee table with traditional "
        "details, sophisticated drapes, and classic artwork on the walls. Include elements like crown "
        "molding, a Persian rug, and warm table lamps. Create a cozy, timeless atmosphere."
    ),
    StagingStyle.MINIMALIST: (
        "Stage this empty room with a minimalist approach: simple, clean, and uncluttered. Add only "
        "essential furniture pieces with clean lines and neutral colors. Include a simple sofa in white or "
        "light gray, a sleek coffee table, and minimal decor like a single plant. Focus on open space and "
        "natural light."
    ),
    StagingStyle.SCANDINAVIAN: (
        "Transform this empty room into a Scandinavian-style space with light woods, cozy textiles, and "
        "functional design. Add a comfortable sofa in light fabric, a wooden coffee table, wool throws and "
        "pillows in muted colors, and green plants. Use a palette of whites, grays, and natural wood tones. "
        "Create a hygge-inspired cozy yet uncluttered atmosphere."
    ),
    StagingStyle.INDUSTRIAL: (
        "Convert this empty room into an industrial-style loft with raw materials and urban aesthetics. Add "
        "a leather sofa, metal coffee table, exposed brick or concrete elements, and vintage industrial "
        "lighting. Use distressed wood, metal frames, and concrete textures."
    ),
    StagingStyle.BOHEMIAN: (
        "Stage this empty room with a bohemian, eclectic vibe. Add colorful textiles, patterned rugs, "
        "mix-and-match furniture, and plenty of plants. Include a sofa with colorful throw pillows, a "
        "vintage coffee table, macrame wall hangings, and global-inspired artwork."
    ),
}


class GenerationError(Exception):
    """Raised by a client when the provider rejects or fails a request."""


@dataclass
class GenerationResult:
    image_url: str
    width: int | None = None
    height: int | None = None
    seed: int | None = None
    raw: dict[str, Any] = field(default_factory=dict)


def get_style_prompt(style: str) -> str:
    try:
        return STYLE_PROMPTS[StagingStyle(style)]
    except ValueError:
        return STYLE_PROMPTS[StagingStyle.MODERN]


class GenerationClient(ABC):
    """Interface the staging workflow depends on."""

    name: str = "base"

    @abstractmethod
    async def stage_room(self, image_url: str, style: str) -> GenerationResult:
        """Return a staged rendering of the room photo at image_url."""
        ...

    async def validate_api_key(self) -> bool:
        return True


class FalGenerationClient(GenerationClient):
    name = "fal"

    def __init__(
        self,
        api_key: str,
        base_url: str = "https://fal.run/fal-ai",
        model_path: str = "fal-ai/imageutils/image-to-image",
        timeout_seconds: float = 120.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.model_path = model_path.strip("/")
        self.timeout_seconds = timeout_seconds
        self._transport = transport

    @property
    def endpoint(self) -> str:
        return f"{self.base_url}/{self.model_path}"

    def _headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Key {self.api_key}",
            "Content-Type": "application/json",
        }

    async def _post(self, payload: dict[str, Any]) -> httpx.Response:
        async with httpx.AsyncClient(transport=self._transport, timeout=self.timeout_seconds) as client:
            return await client.post(self.endpoint, json=payload, headers=self._headers())

    async def generate_image(
        self,
        prompt: str,
        image_url: str,
        strength: float = 0.75,
        guidance_scale: float = 7.5,
        num_inference_steps: int = 25,
        seed: int | None = None,
    ) -> GenerationResult:
        payload = {
            "image_url": image_url,
            "prompt": prompt,
            "strength": strength,
            "guidance_scale": guidance_scale,
            "num_inference_steps": num_inference_steps,
            "seed": seed,
            "enable_safety_checker": True,
            "sync_mode": True,
        }
        try:
            response = await self._post(payload)
        except httpx.TimeoutException as exc:
            raise GenerationError("Generation request timed out") from exc
        except httpx.RequestError as exc:
            raise GenerationError(f"Generation request error: {exc}") from exc

        if response.status_code >= 400:
            try:
                detail = response.json().get("detail", response.reason_phrase)
            except (ValueError, AttributeError):
                detail = response.reason_phrase
            raise GenerationError(f"FAL AI API error ({response.status_code}): {detail}")

        try:
            data = response.json()
        except ValueError as exc:
            raise GenerationError(f"FAL AI returned a non-JSON response ({response.status_code})") from exc
        if not isinstance(data, dict):
            raise GenerationError("FAL AI response has an unexpected shape")

        images = data.get("images") or []
        if not isinstance(images, list) or not images:
            raise GenerationError("FAL AI response contained no images")
        image = images[0]
        if not isinstance(image, dict) or not image.get("url"):
            raise GenerationError("FAL AI response contained no images")

        return GenerationResult(
            image_url=image["url"],
            width=image.get("width"),
            height=image.get("height"),
            seed=data.get("seed"),
            raw=data,
        )

    async def stage_room(self, image_url: str, style: str) -> GenerationResult:
        logger.info("Staging room with style=%s via %s", style, self.endpoint)
        return await self.generate_image(
            prompt=get_style_prompt(style),
            image_url=image_url,
            strength=0.8,
            guidance_scale=8.0,
            num_inference_steps=30,
        )

    async def validate_api_key(self) -> bool:
        """Check the key with a one-step request to the provider."""
        try:
            response = await self._post(
                {
                    "image_url": "https://via.placeholder.com/512x512?text=Test+Image",
                    "prompt": "test",
                    "num_inference_steps": 1,
                }
            )
        except httpx.HTTPError as exc:
            logger.warning("FAL AI key validation failed: %s", exc)
            return False
        return response.is_success


MOCK_STYLE_IMAGES: dict[StagingStyle, str] = {
    StagingStyle.MODERN: "https://images.unsplash.com/photo-1586023492125-27b2c045efd7?w=1024&h=768&fit=crop",
    StagingStyle.TRADITIONAL: "https://images.unsplash.com/photo-1598300042247-d088f8ab3a91?w=1024&h=768&fit=crop",
    StagingStyle.MINIMALIST: "https://images.unsplash.com/photo-1618221195710-dd6b41faaea6?w=1024&h=768&fit=crop",
    StagingStyle.SCANDINAVIAN: "https://images.unsplash.com/photo-1618219908412-a29a1bb7b86e?w=1024&h=768&fit=crop",
    StagingStyle.INDUSTRIAL: "https://images.unsplash.com/photo-1540932239986-30128078f3c5?w=1024&h=768&fit=crop",
    StagingStyle.BOHEMIAN: "https://images.unsplash.com/photo-1567767292278-a4f21aa2d36e?w=1024&h=768&fit=crop",
}


class MockGenerationClient(GenerationClient):
    """Returns a fixed stock image per style without calling out."""

    name = "mock"

    def __init__(self):
        self.calls: list[tuple[str, str]] = []

    async def stage_room(self, image_url: str, style: str) -> GenerationResult:
        self.calls.append((image_url, style))
        try:
            url = MOCK_STYLE_IMAGES[StagingStyle(style)]
        except ValueError:
            url = MOCK_STYLE_IMAGES[StagingStyle.MODERN]
        logger.debug("[MOCK] Staging room with style=%s", style)
        return GenerationResult(image_url=url, width=1024, height=768, seed=random.randint(0, 999_999))


def build_generation_client(config: Settings) -> GenerationClient:
    """Select the generation strategy named by GENERATION_BACKEND."""
    backend = config.generation_backend.lower()
    if backend == "mock":
        return MockGenerationClient()
    if backend == "fal":
        if config.fal_api_key is None or not config.fal_api_key.get_secret_value():
            raise ValueError("FAL_API_KEY must be set when GENERATION_BACKEND is 'fal'")
        return FalGenerationClient(
            api_key=config.fal_api_key.get_secret_value(),
            base_url=config.fal_base_url,
            model_path=config.fal_model_path,
            timeout_seconds=config.generation_timeout_seconds,
        )
    raise ValueError(f"Unknown generation backend: {config.generation_backend}")
