"""Direct image generation, outside of a conversation."""

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from app.api.deps import get_image_resolver
from app.core.auth import require_user_id
from app.services.images import ImageResolver

router = APIRouter()


class ImagePrompt(BaseModel):
    prompt: str = Field(min_length=1)
    enhance: bool = False


@router.post("/generate")
async def generate_image(
    body: ImagePrompt,
    user_id: str = Depends(require_user_id),
    images: ImageResolver = Depends(get_image_resolver),
):
    """Resolve an image for a prompt, optionally enriching the prompt first."""
    prompt = await images.enhance_prompt(body.prompt) if body.enhance else body.prompt
    image = await images.resolve(prompt)
    return {
        "imageUrl": image.image_url,
        "description": image.description,
        "source": image.source,
        "prompt": prompt,
    }
