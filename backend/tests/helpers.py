"""Test doubles and token helpers shared by the test modules."""

from datetime import datetime, timedelta, timezone

import jwt
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, create_engine

from app.models.conversation import ChatMessage, Conversation
from app.services.images import ImageResolver, ImageResult
from app.services.llm.base import BaseLLMProvider, TextReply

TEST_JWT_SECRET = "test-secret-for-identity-provider-tokens"

# In-memory SQLite with StaticPool so all connections (including threads) share one DB
test_engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)


class FakeLLM(BaseLLMProvider):
    """Returns queued results in order, then a fixed text reply. Records every call."""

    def __init__(self, *results):
        self.results = list(results)
        self.calls = []

    async def converse(self, prompt, history=None, image_data=None, tools=True):
        self.calls.append({
            "prompt": prompt,
            "history": list(history or []),
            "image_data": image_data,
            "tools": tools,
        })
        if self.results:
            result = self.results.pop(0)
            if isinstance(result, Exception):
                raise result
            return result
        return TextReply(content="Hello from Gemini", model="fake")


class FakeImageResolver(ImageResolver):
    def __init__(self):
        super().__init__(FakeLLM(), access_key="")
        self.prompts = []

    async def resolve(self, prompt):
        self.prompts.append(prompt)
        return ImageResult(
            image_url="https://picsum.photos/seed/42/800/600",
            description=f"A picture of {prompt}",
            source="ai-described-placeholder",
        )


def make_token(user_id: str, expires_in: int = 3600, secret: str = TEST_JWT_SECRET) -> str:
    payload = {
        "sub": user_id,
        "aud": "authenticated",
        "exp": datetime.now(timezone.utc) + timedelta(seconds=expires_in),
    }
    return jwt.encode(payload, secret, algorithm="HS256")


def auth_headers(user_id: str = "user-1") -> dict:
    return {"Authorization": f"Bearer {make_token(user_id)}"}


def seed_conversation(user_id="user-1", title="Test Chat", messages=None) -> str:
    """Insert a conversation + messages directly into the test DB."""
    with Session(test_engine) as session:
        conv = Conversation(user_id=user_id, title=title)
        session.add(conv)
        session.commit()
        session.refresh(conv)

        for role, content in messages or []:
            session.add(ChatMessage(conversation_id=conv.id, role=role, content=content))
            session.commit()

        return conv.id
