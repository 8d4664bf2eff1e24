"""Pytest configuration and shared fixtures."""

import httpx
import openai
import pytest
from fastapi.testclient import TestClient
from langchain_core.messages import AIMessage

from api.main import app, get_controller, get_store, get_tutor
from redis_store import MemoryStore
from teaching.model_gateway import ModelGateway
from teaching.session_controller import SessionController
from teaching.tutor_service import TutorService


class FakeLLM:
    """Stands in for the chat model; records every prompt it receives."""

    def __init__(self, reply="## Feedback\n✅ Nice.\n\n## Skills\nFractions, Ratios", error=None):
        self.reply = reply
        self.error = error
        self.prompts = []

    def invoke(self, messages):
        self.prompts.append(messages[-1].content)
        if self.error is not None:
            raise self.error
        return AIMessage(content=self.reply)

    @property
    def calls(self):
        return len(self.prompts)


def upstream_status_error(status=500, body=None):
    request = httpx.Request("POST", "https://api.openai.com/v1/responses")
    response = httpx.Response(status, request=request)
    return openai.APIStatusError("upstream failed", response=response, body=body)


@pytest.fixture
def fake_llm():
    return FakeLLM()


@pytest.fixture
def live_tutor(fake_llm):
    return TutorService(gateway=ModelGateway(api_key="sk-test", llm=fake_llm))


@pytest.fixture
def demo_tutor():
    return TutorService(gateway=None)


@pytest.fixture
def memory_store():
    return MemoryStore()


def _client(tutor, store):
    controller = SessionController(tutor=tutor, store=store)
    app.dependency_overrides[get_tutor] = lambda: tutor
    app.dependency_overrides[get_store] = lambda: store
    app.dependency_overrides[get_controller] = lambda: controller
    return TestClient(app)


@pytest.fixture
def client(demo_tutor, memory_store):
    """Client in demo mode (no credential)."""
    yield _client(demo_tutor, memory_store)
    app.dependency_overrides.clear()


@pytest.fixture
def live_client(live_tutor, memory_store):
    """Client whose completion calls go to the fake model."""
    yield _client(live_tutor, memory_store)
    app.dependency_overrides.clear()
