"""REST API for conversation history management."""

import logging
from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel
from sqlmodel import Session

from app.core.auth import get_current_user_id, require_user_id
from app.core.database import get_session
from app.models.conversation import ChatMessage, Conversation
from app.services import store

router = APIRouter()
logger = logging.getLogger(__name__)


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ConversationOut(CamelModel):
    id: str
    user_id: str
    title: str
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_record(cls, conv: Conversation) -> "ConversationOut":
        return cls(
            id=conv.id,
            user_id=conv.user_id,
            title=conv.title,
            created_at=conv.created_at,
            updated_at=conv.updated_at,
        )


class MessageOut(CamelModel):
    id: str
    conversation_id: str
    role: str
    content: str
    type: str
    image_url: str | None = None
    created_at: datetime

    @classmethod
    def from_record(cls, msg: ChatMessage) -> "MessageOut":
        return cls(
            id=msg.id,
            conversation_id=msg.conversation_id,
            role=msg.role,
            content=msg.content,
            type=msg.message_type,
            image_url=msg.image_url,
            created_at=msg.created_at,
        )


class ConversationTitle(BaseModel):
    title: str = Field(min_length=1)


@router.get("/", response_model=list[ConversationOut])
async def list_conversations(
    user_id: str | None = Depends(get_current_user_id),
    session: Session = Depends(get_session),
):
    if not user_id:
        return []
    return [ConversationOut.from_record(c) for c in store.list_conversations(session, user_id)]


@router.get("/{conversation_id}/messages", response_model=list[MessageOut])
async def list_messages(
    conversation_id: str,
    user_id: str | None = Depends(get_current_user_id),
    session: Session = Depends(get_session),
):
    if not user_id:
        return []
    return [MessageOut.from_record(m) for m in store.list_messages(session, conversation_id, user_id)]


@router.post("/", response_model=ConversationOut)
async def create_conversation(
    body: ConversationTitle,
    user_id: str = Depends(require_user_id),
    session: Session = Depends(get_session),
):
    try:
        conv = store.create_conversation(session, user_id, body.title)
    except store.StoreError as e:
        logger.error(f"Error creating conversation: {e}")
        raise HTTPException(status_code=500, detail=str(e))
    return ConversationOut.from_record(conv)


@router.patch("/{conversation_id}")
async def rename_conversation(
    conversation_id: str,
    body: ConversationTitle,
    user_id: str = Depends(require_user_id),
    session: Session = Depends(get_session),
):
    try:
        store.rename_conversation(session, conversation_id, user_id, body.title)
    except store.StoreError as e:
        logger.error(f"Error renaming conversation: {e}")
        raise HTTPException(status_code=500, detail=str(e))
    return {"success": True}


@router.delete("/{conversation_id}")
async def delete_conversation(
    conversation_id: str,
    user_id: str = Depends(require_user_id),
    session: Session = Depends(get_session),
):
    try:
        store.delete_conversation(session, conversation_id, user_id)
    except store.StoreError as e:
        logger.error(f"Error deleting conversation: {e}")
        raise HTTPException(status_code=500, detail=str(e))
    return {"success": True}
