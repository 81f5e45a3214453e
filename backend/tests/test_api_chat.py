"""Tests for the send-message endpoint."""

from unittest.mock import patch

from sqlmodel import Session, select

from app.core.config import settings
from app.models.conversation import ChatMessage, Conversation
from app.services.llm import get_llm_provider
from app.services.llm.base import ImageRequest, ProviderError, QuotaExceeded, TextReply
from app.services.llm.gemini import GeminiProvider
from app.services.turns import PROCESSING_ERROR_REPLY, QUOTA_REPLY, SERVICE_ISSUE_REPLY
from helpers import auth_headers, seed_conversation, test_engine

PNG_DATA_URI = "data:image/png;base64,iVBORw0KGgo="


def _send(client, message, conversation_id="new", user_id="user-1", **extra):
    body = {"message": message, "conversationId": conversation_id, **extra}
    return client.post("/api/chat/messages", json=body, headers=auth_headers(user_id))


def _messages(conversation_id):
    with Session(test_engine) as session:
        return session.exec(
            select(ChatMessage)
            .where(ChatMessage.conversation_id == conversation_id)
            .order_by(ChatMessage.created_at)
        ).all()


def test_send_message_new_conversation(client):
    response = _send(client, "Hello there, how are you doing today")
    assert response.status_code == 200
    data = response.json()
    assert data["success"] is True
    assert data["content"] == "Hello from Gemini"
    assert data["messageType"] == "text"
    assert data["imageUrl"] is None
    assert data["conversationId"] != "new"

    with Session(test_engine) as session:
        conv = session.get(Conversation, data["conversationId"])
        assert conv.title == "Hello there, how are you doing today"
        assert conv.user_id == "user-1"


def test_send_message_long_title_truncated(client):
    message = "x" * 60
    data = _send(client, message).json()
    with Session(test_engine) as session:
        conv = session.get(Conversation, data["conversationId"])
        assert conv.title == "x" * 50 + "..."


def test_returned_id_is_stable_for_message_listing(client):
    data = _send(client, "save me").json()
    cid = data["conversationId"]

    response = client.get(f"/api/conversations/{cid}/messages", headers=auth_headers())
    messages = response.json()
    assert [m["role"] for m in messages] == ["user", "assistant"]
    assert messages[0]["content"] == "save me"
    assert messages[1]["content"] == "Hello from Gemini"
    assert all(m["conversationId"] == cid for m in messages)


def test_send_message_existing_conversation(client, fake_llm):
    cid = seed_conversation("user-1", "Ongoing", [("user", "first"), ("assistant", "reply")])
    response = _send(client, "second", conversation_id=cid)
    assert response.json()["conversationId"] == cid
    assert len(_messages(cid)) == 4

    # No history supplied: it is rebuilt from the stored turns
    history = fake_llm.calls[0]["history"]
    assert [(m.role, m.content) for m in history] == [("user", "first"), ("assistant", "reply")]


def test_send_message_uses_supplied_history(client, fake_llm):
    history = [{"role": "user", "content": "hi"}, {"role": "assistant", "content": "hello"}]
    _send(client, "what did I say?", conversationHistory=history)
    sent = fake_llm.calls[0]["history"]
    assert [(m.role, m.content) for m in sent] == [("user", "hi"), ("assistant", "hello")]


def test_send_message_to_other_users_conversation(client):
    cid = seed_conversation("user-2", "Theirs")
    response = _send(client, "sneaky", conversation_id=cid, user_id="user-1")
    assert response.status_code == 404
    assert _messages(cid) == []


def test_send_message_requires_auth(client):
    response = client.post("/api/chat/messages", json={"message": "hi", "conversationId": "new"})
    assert response.status_code == 401


def test_send_message_empty_message_rejected(client):
    response = _send(client, "")
    assert response.status_code == 422


def test_send_message_rejects_malformed_image_data(client):
    response = _send(client, "what is this?", imageData="not-a-data-uri")
    assert response.status_code == 422


def test_send_message_with_image(client, fake_llm):
    data = _send(client, "what is this?", imageData=PNG_DATA_URI).json()
    assert fake_llm.calls[0]["image_data"] == PNG_DATA_URI

    user_turn = _messages(data["conversationId"])[0]
    assert user_turn.role == "user"
    assert user_turn.message_type == "image"


def test_quota_on_both_tiers_end_to_end(client, fake_llm):
    fake_llm.results = [QuotaExceeded(message="high demand")]
    response = _send(client, "draw a sunset over mountains")
    assert response.status_code == 200
    data = response.json()
    assert data["success"] is True
    assert data["content"] == QUOTA_REPLY
    assert "high demand" in data["content"]

    assistant = _messages(data["conversationId"])[-1]
    assert assistant.role == "assistant"
    assert assistant.content == QUOTA_REPLY


def test_provider_error_is_not_shown_raw(client, fake_llm):
    fake_llm.results = [ProviderError(message="500 INTERNAL: backend exploded")]
    data = _send(client, "hello").json()
    assert data["content"] == PROCESSING_ERROR_REPLY
    assert "exploded" not in data["content"]


def test_llm_exception_becomes_service_issue(client, fake_llm):
    fake_llm.results = [RuntimeError("connection reset")]
    response = _send(client, "hello")
    assert response.status_code == 200
    assert response.json()["content"] == SERVICE_ISSUE_REPLY


def test_image_request_returns_image(client, fake_llm, fake_images):
    fake_llm.results = [ImageRequest(prompt="a sunset over snowy mountains, golden hour")]
    data = _send(client, "draw a sunset over mountains").json()
    assert data["messageType"] == "image"
    assert data["imageUrl"] == "https://picsum.photos/seed/42/800/600"
    assert "a sunset over snowy mountains, golden hour" in data["content"]
    assert fake_images.prompts == ["a sunset over snowy mountains, golden hour"]

    assistant = _messages(data["conversationId"])[-1]
    assert assistant.message_type == "image"
    assert assistant.image_url == "https://picsum.photos/seed/42/800/600"


def test_empty_reply_falls_back_to_greeting(client, fake_llm):
    fake_llm.results = [TextReply(content="")]
    data = _send(client, "hello").json()
    assert data["content"]


def test_missing_gemini_key_still_answers(client):
    from app.main import app

    with patch.object(settings, "gemini_api_key", ""):
        app.dependency_overrides[get_llm_provider] = lambda: GeminiProvider()
        response = _send(client, "hi")

    assert response.status_code == 200
    data = response.json()
    assert data["success"] is True
    assert data["content"] == SERVICE_ISSUE_REPLY
    assert [(m.role, m.content) for m in _messages(data["conversationId"])] == [
        ("user", "hi"),
        ("assistant", SERVICE_ISSUE_REPLY),
    ]
