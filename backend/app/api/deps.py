"""Shared request dependencies for the service layer."""

from fastapi import Depends

from app.services.images import ImageResolver
from app.services.llm import get_llm_provider
from app.services.llm.base import BaseLLMProvider


def get_image_resolver(llm: BaseLLMProvider = Depends(get_llm_provider)) -> ImageResolver:
    return ImageResolver(llm)
