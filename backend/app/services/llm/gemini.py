"""Google Gemini LLM provider with fast -> quality model fallback."""

import logging

import httpx
from google import genai
from google.genai import types

from app.core.config import settings
from app.core.data_uri import decode_data_uri
from app.services.llm.base import (
    BaseLLMProvider,
    ImageRequest,
    LLMResult,
    Message,
    ProviderError,
    QuotaExceeded,
    TextReply,
    TransportError,
)
from app.services.llm.tools import GENERATE_IMAGE

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = """You are a helpful AI chat assistant. You can:
- Have natural conversations and answer questions
- Analyze uploaded images when provided
- Generate images when the user asks for one, using the generate_image function
- Provide helpful information on various topics

Be conversational and helpful in all interactions."""

HIGH_DEMAND_MESSAGE = (
    "I'm currently experiencing high demand. Please try again in a few minutes, "
    "or consider upgrading your Gemini API plan for higher quotas."
)

_QUOTA_MARKERS = ("quota", "resource_exhausted", "too many requests")


class MissingAPIKey(Exception):
    pass


def is_quota_error(error: Exception) -> bool:
    """True for quota / rate-limit failures, the only ones worth retrying on another tier."""
    if getattr(error, "code", None) == 429 or getattr(error, "status_code", None) == 429:
        return True
    text = str(error).lower()
    return any(marker in text for marker in _QUOTA_MARKERS)


def to_gemini_history(history: list[Message]) -> list[dict]:
    """Map local roles onto Gemini's: assistant -> model, anything else -> user."""
    return [
        {"role": "model" if m.role == "assistant" else "user", "parts": [{"text": m.content}]}
        for m in history
    ]


def build_user_turn(prompt: str, image_data: str | None = None) -> dict:
    parts: list = []
    if prompt:
        parts.append(types.Part(text=prompt))
    if image_data:
        mime_type, data = decode_data_uri(image_data)
        parts.append(types.Part.from_bytes(data=data, mime_type=mime_type))
    return {"role": "user", "parts": parts}


class GeminiProvider(BaseLLMProvider):
    def __init__(self, client: genai.Client | None = None):
        # Built on first use so a missing key fails the turn, not the request
        self._client = client
        # Cheapest first; the second tier is only used when the first is out of quota
        self.models = [settings.gemini_fast_model, settings.gemini_quality_model]
        generation = dict(
            system_instruction=SYSTEM_PROMPT,
            temperature=0.7,
            top_p=0.8,
            top_k=40,
            max_output_tokens=2048,
        )
        self.config = types.GenerateContentConfig(
            **generation,
            tools=[types.Tool(function_declarations=[GENERATE_IMAGE.to_gemini_schema()])],
        )
        self.text_config = types.GenerateContentConfig(**generation)

    @property
    def client(self) -> genai.Client:
        if self._client is None:
            if not settings.gemini_api_key:
                raise MissingAPIKey("CHAT_GEMINI_API_KEY is not set")
            self._client = genai.Client(api_key=settings.gemini_api_key)
        return self._client

    async def converse(
        self,
        prompt: str,
        history: list[Message] | None = None,
        image_data: str | None = None,
        tools: bool = True,
    ) -> LLMResult:
        contents = [types.Content(**m) for m in to_gemini_history(history or [])]
        contents.append(types.Content(**build_user_turn(prompt, image_data)))

        try:
            client = self.client
        except (MissingAPIKey, ValueError) as e:
            logger.error(f"Gemini client unavailable: {e}")
            return TransportError(message=str(e))

        last_error: Exception | None = None
        for model in self.models:
            try:
                response = await client.aio.models.generate_content(
                    model=model,
                    contents=contents,
                    config=self.config if tools else self.text_config,
                )
                return self._interpret(response, model)
            except httpx.TransportError as e:
                logger.error(f"Could not reach Gemini ({model}): {e}")
                return TransportError(message=str(e))
            except Exception as e:
                last_error = e
                logger.error(f"Gemini API error with {model}: {e}")
                if is_quota_error(e):
                    logger.info(f"Quota exceeded for {model}, trying fallback...")
                    continue
                break

        if last_error is not None and is_quota_error(last_error):
            return QuotaExceeded(message=HIGH_DEMAND_MESSAGE)
        return ProviderError(message=str(last_error) if last_error else "Failed to generate response")

    def _interpret(self, response, model: str) -> LLMResult:
        for call in response.function_calls or []:
            if call.name == GENERATE_IMAGE.name:
                args = dict(call.args) if call.args else {}
                image_prompt = str(args.get("prompt", "")).strip()
                if image_prompt:
                    logger.info(f"{model} requested an image: {image_prompt[:200]}")
                    return ImageRequest(prompt=image_prompt, model=model)
            logger.warning(f"Ignoring unexpected function call from {model}: {call.name}")

        usage = getattr(response, "usage_metadata", None)
        if usage:
            logger.debug(
                f"{model} tokens: prompt={usage.prompt_token_count} "
                f"response={usage.candidates_token_count} total={usage.total_token_count}"
            )
        return TextReply(content=response.text or "", model=model)
