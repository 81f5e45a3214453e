"""Message turn orchestration: everything that happens when a user sends a message."""

import logging
from dataclasses import dataclass

from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session

from app.core.auth import NotAuthenticated
from app.services import store
from app.services.images import ImageResolver
from app.services.llm.base import (
    BaseLLMProvider,
    ImageRequest,
    Message,
    ProviderError,
    QuotaExceeded,
    TextReply,
    TransportError,
)

logger = logging.getLogger(__name__)

NEW_CONVERSATION = "new"
TITLE_MAX_CHARS = 50

DEFAULT_REPLY = "I'm a chat assistant powered by Gemini AI. How can I help you today?"

QUOTA_REPLY = (
    "🚫 **Service Temporarily Unavailable**\n\n"
    "I'm experiencing high demand right now. Please try again in a few moments, "
    "or consider upgrading your API plan for higher quotas.\n\n"
    "*This helps ensure consistent service for all users.*"
)

PROCESSING_ERROR_REPLY = (
    "⚠️ **Processing Error**\n\n"
    "I encountered an issue while processing your request. Please try rephrasing "
    "your message or try again in a moment.\n\n"
    "*If the issue persists, please check your connection.*"
)

SERVICE_ISSUE_REPLY = (
    "⚠️ **Temporary Service Issue**\n\n"
    "I'm having trouble connecting to my AI services right now. Please try again in a moment.\n\n"
    "*This is usually a temporary issue that resolves quickly.*"
)

IMAGE_REPLY_TEMPLATE = """🎨 **Image Generated Successfully**

**Optimized Prompt:** {prompt}

{description}

*Image source: {source}*"""


class ConversationNotFound(Exception):
    pass


@dataclass
class TurnResult:
    content: str
    message_type: str
    image_url: str | None
    conversation_id: str


def title_from_message(message: str) -> str:
    if len(message) > TITLE_MAX_CHARS:
        return message[:TITLE_MAX_CHARS] + "..."
    return message


async def _assistant_reply(
    llm: BaseLLMProvider,
    images: ImageResolver,
    message: str,
    history: list[Message],
    image_data: str | None,
) -> tuple[str, str, str | None]:
    """Run the model and pick the (content, message_type, image_url) to store and return."""
    try:
        result = await llm.converse(message, history, image_data)

        if isinstance(result, TextReply):
            return result.content or DEFAULT_REPLY, "text", None

        if isinstance(result, ImageRequest):
            image = await images.resolve(result.prompt)
            content = IMAGE_REPLY_TEMPLATE.format(
                prompt=result.prompt,
                description=image.description,
                source=image.source,
            )
            return content, "image", image.image_url

        if isinstance(result, QuotaExceeded):
            logger.warning(f"All model tiers out of quota: {result.message}")
            return QUOTA_REPLY, "text", None

        if isinstance(result, ProviderError):
            logger.error(f"Model returned an error: {result.message}")
            return PROCESSING_ERROR_REPLY, "text", None

        if isinstance(result, TransportError):
            logger.error(f"Could not reach the model: {result.message}")
            return SERVICE_ISSUE_REPLY, "text", None

        raise TypeError(f"Unexpected LLM result: {result!r}")
    except Exception:
        logger.exception("AI generation error")
        return SERVICE_ISSUE_REPLY, "text", None


async def send_message(
    session: Session,
    llm: BaseLLMProvider,
    images: ImageResolver,
    user_id: str | None,
    message: str,
    conversation_id: str,
    image_data: str | None = None,
    history: list[Message] | None = None,
) -> TurnResult:
    """Persist the user's turn, get a reply, persist it and return it.

    The writes are independent commits. A failed message insert is logged and
    the turn carries on, so a conversation can end up missing a user message or
    an assistant reply. Creating the conversation is the only write that aborts
    the turn.
    """
    if not user_id:
        raise NotAuthenticated("User not authenticated")

    if conversation_id == NEW_CONVERSATION:
        conv = store.create_conversation(session, user_id, title_from_message(message))
        conversation_id = conv.id
        logger.info(f"Started conversation {conversation_id} for {user_id}")
        if history is None:
            history = []
    else:
        try:
            conv = store.get_conversation(session, conversation_id, user_id)
        except SQLAlchemyError as e:
            raise store.StoreError(f"Failed to load conversation: {e}") from e
        if conv is None:
            raise ConversationNotFound(conversation_id)
        if history is None:
            history = [
                Message(role=m.role, content=m.content)
                for m in store.list_messages(session, conversation_id, user_id)
            ]

    try:
        store.add_message(
            session,
            conversation_id,
            role="user",
            content=message,
            message_type="image" if image_data else "text",
        )
    except store.StoreError as e:
        logger.error(f"Error saving user message: {e}")

    content, message_type, image_url = await _assistant_reply(llm, images, message, history, image_data)

    try:
        store.add_message(
            session,
            conversation_id,
            role="assistant",
            content=content,
            message_type=message_type,
            image_url=image_url,
        )
    except store.StoreError as e:
        logger.error(f"Error saving AI message: {e}")

    try:
        store.touch_conversation(session, conversation_id, user_id)
    except store.StoreError as e:
        logger.error(f"Error updating conversation timestamp: {e}")

    return TurnResult(
        content=content,
        message_type=message_type,
        image_url=image_url,
        conversation_id=conversation_id,
    )
