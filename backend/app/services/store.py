"""Data access for conversations and messages, always scoped to the calling user.

Reads degrade to empty results when the database fails. Writes raise StoreError
and leave it to the caller to decide whether the failure is fatal.
"""

import logging
from datetime import datetime, timezone

from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, select

from app.models.conversation import ChatMessage, Conversation

logger = logging.getLogger(__name__)


class StoreError(Exception):
    pass


def list_conversations(session: Session, user_id: str) -> list[Conversation]:
    try:
        return list(session.exec(
            select(Conversation)
            .where(Conversation.user_id == user_id)
            .order_by(Conversation.updated_at.desc())  # type: ignore
        ).all())
    except SQLAlchemyError as e:
        logger.error(f"Error fetching conversations for {user_id}: {e}")
        return []


def get_conversation(session: Session, conversation_id: str, user_id: str) -> Conversation | None:
    """The conversation if it exists and belongs to `user_id`."""
    return session.exec(
        select(Conversation)
        .where(Conversation.id == conversation_id)
        .where(Conversation.user_id == user_id)
    ).first()


def list_messages(session: Session, conversation_id: str, user_id: str) -> list[ChatMessage]:
    try:
        if get_conversation(session, conversation_id, user_id) is None:
            logger.debug(f"Conversation {conversation_id} not found for {user_id}")
            return []
        return list(session.exec(
            select(ChatMessage)
            .where(ChatMessage.conversation_id == conversation_id)
            .order_by(ChatMessage.created_at)  # type: ignore
        ).all())
    except SQLAlchemyError as e:
        logger.error(f"Error fetching messages for {conversation_id}: {e}")
        return []


def create_conversation(session: Session, user_id: str, title: str) -> Conversation:
    conv = Conversation(user_id=user_id, title=title)
    try:
        session.add(conv)
        session.commit()
        session.refresh(conv)
    except SQLAlchemyError as e:
        session.rollback()
        raise StoreError(f"Failed to create conversation: {e}") from e
    logger.debug(f"Created conversation {conv.id} for {user_id}")
    return conv


def rename_conversation(session: Session, conversation_id: str, user_id: str, title: str) -> None:
    """Rename a conversation. Silently does nothing when the user does not own it."""
    try:
        conv = get_conversation(session, conversation_id, user_id)
        if conv is None:
            logger.debug(f"Rename: conversation {conversation_id} not found for {user_id}")
            return
        conv.title = title
        conv.updated_at = datetime.now(timezone.utc)
        session.add(conv)
        session.commit()
    except SQLAlchemyError as e:
        session.rollback()
        raise StoreError(f"Failed to rename conversation: {e}") from e


def delete_conversation(session: Session, conversation_id: str, user_id: str) -> None:
    """Delete a conversation's messages, then the conversation. No-op for other users' conversations."""
    try:
        conv = get_conversation(session, conversation_id, user_id)
        if conv is None:
            logger.debug(f"Delete: conversation {conversation_id} not found for {user_id}")
            return

        # Messages first, committed on their own
        messages = session.exec(
            select(ChatMessage).where(ChatMessage.conversation_id == conversation_id)
        ).all()
        for msg in messages:
            session.delete(msg)
        session.commit()

        session.delete(conv)
        session.commit()
    except SQLAlchemyError as e:
        session.rollback()
        raise StoreError(f"Failed to delete conversation: {e}") from e
    logger.debug(f"Deleted conversation {conversation_id} ({len(messages)} messages)")


def add_message(
    session: Session,
    conversation_id: str,
    role: str,
    content: str,
    message_type: str = "text",
    image_url: str | None = None,
) -> ChatMessage:
    msg = ChatMessage(
        conversation_id=conversation_id,
        role=role,
        content=content,
        message_type=message_type,
        image_url=image_url,
    )
    try:
        session.add(msg)
        session.commit()
        session.refresh(msg)
    except SQLAlchemyError as e:
        session.rollback()
        raise StoreError(f"Failed to save {role} message: {e}") from e
    return msg


def touch_conversation(session: Session, conversation_id: str, user_id: str) -> None:
    try:
        conv = get_conversation(session, conversation_id, user_id)
        if conv:
            conv.updated_at = datetime.now(timezone.utc)
            session.add(conv)
            session.commit()
    except SQLAlchemyError as e:
        session.rollback()
        raise StoreError(f"Failed to update conversation timestamp: {e}") from e
