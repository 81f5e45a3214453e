"""Image resolution for image requests: stock photo first, then a seeded placeholder."""

import logging
from dataclasses import dataclass
from typing import Literal

import httpx

from app.core.config import settings
from app.services.llm.base import BaseLLMProvider, TextReply

logger = logging.getLogger(__name__)

PLACEHOLDER_WIDTH = 800
PLACEHOLDER_HEIGHT = 600

ImageSource = Literal["stock", "ai-described-placeholder", "bare-placeholder"]


@dataclass
class ImageResult:
    image_url: str
    description: str
    source: ImageSource


class ImageLookupError(Exception):
    pass


def prompt_seed(prompt: str) -> int:
    """32-bit string hash (h = h*31 + c over UTF-16 code units), absolute value.

    Pure function of the prompt so the same request always maps to the same placeholder.
    """
    raw = prompt.encode("utf-16-le")
    h = 0
    for i in range(0, len(raw), 2):
        h = (h * 31 + int.from_bytes(raw[i:i + 2], "little")) & 0xFFFFFFFF
    if h & 0x80000000:
        h -= 1 << 32
    return abs(h)


def placeholder_url(prompt: str) -> str:
    seed = prompt_seed(prompt)
    return f"{settings.placeholder_api_url}/seed/{seed}/{PLACEHOLDER_WIDTH}/{PLACEHOLDER_HEIGHT}"


class ImageResolver:
    def __init__(
        self,
        llm: BaseLLMProvider,
        access_key: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.llm = llm
        self.access_key = settings.unsplash_access_key if access_key is None else access_key
        self.transport = transport

    async def resolve(self, prompt: str) -> ImageResult:
        """Return an image for `prompt`. Never raises; degrades to a bare placeholder URL."""
        if self.access_key:
            try:
                return await self._search_stock_photo(prompt)
            except (httpx.HTTPError, ImageLookupError, ValueError) as e:
                logger.warning(f"Unsplash search failed for '{prompt[:80]}': {e}")

        try:
            description = await self._describe(prompt)
        except Exception as e:
            logger.error(f"AI placeholder generation error: {e}")
            return ImageResult(
                image_url=placeholder_url(prompt),
                description=f"Generated image for: {prompt}",
                source="bare-placeholder",
            )

        return ImageResult(
            image_url=placeholder_url(prompt),
            description=description,
            source="ai-described-placeholder",
        )

    async def enhance_prompt(self, prompt: str) -> str:
        """Add style, lighting and composition details to an image request. Falls back to `prompt`."""
        request = (
            f'Take this image request: "{prompt}" and enhance it with artistic details. '
            "Add information about style, lighting, colors, composition, and mood to make it "
            "more specific and creative. Keep it concise but descriptive. Return only the enhanced prompt."
        )
        try:
            result = await self.llm.converse(request, [], tools=False)
        except Exception as e:
            logger.error(f"Prompt enhancement error: {e}")
            return prompt

        if isinstance(result, TextReply) and result.content.strip():
            return result.content.strip()
        return prompt

    async def _search_stock_photo(self, query: str) -> ImageResult:
        async with httpx.AsyncClient(timeout=10.0, transport=self.transport) as client:
            response = await client.get(
                f"{settings.unsplash_api_url}/search/photos",
                params={"query": query, "per_page": 1, "orientation": "landscape"},
                headers={"Authorization": f"Client-ID {self.access_key}"},
            )
            response.raise_for_status()
            data = response.json()

        results = data.get("results") or []
        if not results:
            raise ImageLookupError("No images found")

        photo = results[0]
        url = (photo.get("urls") or {}).get("regular")
        if not url:
            raise ImageLookupError("Photo has no regular URL")

        return ImageResult(
            image_url=url,
            description=photo.get("alt_description") or f"Photo related to: {query}",
            source="stock",
        )

    async def _describe(self, prompt: str) -> str:
        request = (
            f'Create a detailed, vivid description of an image based on this prompt: "{prompt}". '
            "Describe colors, composition, lighting, mood, and specific details that would make "
            "this image compelling and beautiful. Write it as if you're describing a real photograph or artwork."
        )
        result = await self.llm.converse(request, [], tools=False)
        if not isinstance(result, TextReply):
            raise ImageLookupError("Failed to generate image description")
        return result.content or "AI-generated image description"
