"""Abstract LLM provider interface. All providers must implement this."""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Union


@dataclass
class Message:
    role: str  # "user" | "assistant"
    content: str


@dataclass
class TextReply:
    content: str
    model: str = ""


@dataclass
class ImageRequest:
    """The model asked for an image to be generated for `prompt`."""

    prompt: str
    model: str = ""


@dataclass
class QuotaExceeded:
    message: str


@dataclass
class ProviderError:
    message: str


@dataclass
class TransportError:
    message: str


LLMResult = Union[TextReply, ImageRequest, QuotaExceeded, ProviderError, TransportError]


class BaseLLMProvider(ABC):
    @abstractmethod
    async def converse(
        self,
        prompt: str,
        history: list[Message] | None = None,
        image_data: str | None = None,
        tools: bool = True,
    ) -> LLMResult:
        """Send one user turn with prior history. Optionally attach an image as a data URI.

        With `tools=False` the model can only answer in text.
        """
        ...
