"""Sending messages: one request per user turn, no streaming."""

import logging
from typing import Literal

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel
from sqlmodel import Session

from app.api.deps import get_image_resolver
from app.core.auth import NotAuthenticated, get_current_user_id
from app.core.data_uri import decode_data_uri
from app.core.database import get_session
from app.services import store, turns
from app.services.images import ImageResolver
from app.services.llm import get_llm_provider
from app.services.llm.base import BaseLLMProvider, Message

router = APIRouter()
logger = logging.getLogger(__name__)


class HistoryItem(BaseModel):
    role: Literal["user", "assistant"]
    content: str


class SendMessageRequest(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    message: str = Field(min_length=1)
    conversation_id: str = Field(min_length=1)  # "new" starts a conversation
    image_data: str | None = None  # data:<mime>;base64,<payload>
    conversation_history: list[HistoryItem] | None = None

    @field_validator("image_data")
    @classmethod
    def check_data_uri(cls, value: str | None) -> str | None:
        if value:
            decode_data_uri(value)
        return value or None


class SendMessageResponse(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    success: bool = True
    content: str
    message_type: str
    image_url: str | None = None
    conversation_id: str


@router.post("/messages", response_model=SendMessageResponse)
async def send_message(
    request: SendMessageRequest,
    user_id: str | None = Depends(get_current_user_id),
    session: Session = Depends(get_session),
    llm: BaseLLMProvider = Depends(get_llm_provider),
    images: ImageResolver = Depends(get_image_resolver),
):
    history = None
    if request.conversation_history is not None:
        history = [Message(role=h.role, content=h.content) for h in request.conversation_history]

    try:
        result = await turns.send_message(
            session,
            llm,
            images,
            user_id=user_id,
            message=request.message,
            conversation_id=request.conversation_id,
            image_data=request.image_data,
            history=history,
        )
    except NotAuthenticated as e:
        raise HTTPException(status_code=401, detail=str(e))
    except turns.ConversationNotFound:
        raise HTTPException(status_code=404, detail="Conversation not found")
    except store.StoreError as e:
        logger.error(f"Chat API error: {e}")
        raise HTTPException(status_code=500, detail=str(e))

    return SendMessageResponse(
        content=result.content,
        message_type=result.message_type,
        image_url=result.image_url,
        conversation_id=result.conversation_id,
    )
