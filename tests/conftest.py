"""
Shared pytest fixtures for GraphMentor tests.

Provides:
- FakeModel: stands in for a Gemini GenerativeModel (records every call)
- API client fixture with the model client and chat store overridden
"""

import pytest
from fastapi.testclient import TestClient

from graphmentor.main import app
from graphmentor.services.chat_store import InMemoryChatStore, get_chat_store
from graphmentor.services.llm_client import ModelClient, get_model_client


class FakeResponse:
    def __init__(self, text):
        self.text = text


class FakeChatSession:
    def __init__(self, model, history):
        self.model = model
        self.history = history

    async def send_message_async(self, parts):
        self.model.calls.append({"kind": "chat", "history": self.history, "parts": parts})
        return self.model.next_response()


class FakeModel:
    """Replies are consumed in order; the last one repeats."""

    def __init__(self, replies=None, error=None):
        self.replies = list(replies or ["Hello from the tutor."])
        self.error = error
        self.calls = []

    def next_response(self):
        if self.error is not None:
            raise self.error
        text = self.replies.pop(0) if len(self.replies) > 1 else self.replies[0]
        return FakeResponse(text)

    async def generate_content_async(self, parts):
        self.calls.append({"kind": "generate", "history": None, "parts": parts})
        return self.next_response()

    def start_chat(self, history):
        return FakeChatSession(self, history)


@pytest.fixture
def fake_model():
    return FakeModel()


@pytest.fixture
def model_client(fake_model):
    return ModelClient(model=fake_model)


@pytest.fixture
def chat_store():
    return InMemoryChatStore()


@pytest.fixture
def api(model_client, chat_store):
    app.dependency_overrides[get_model_client] = lambda: model_client
    app.dependency_overrides[get_chat_store] = lambda: chat_store
    with TestClient(app) as client:
        yield client
    app.dependency_overrides.clear()


def fenced(obj_json: str) -> str:
    return f"```json\n{obj_json}\n```"
