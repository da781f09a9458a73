"""
Shared fixtures: an in-memory stand-in for the Gemini backend that answers
with real ``google.genai`` response objects.
"""
import asyncio
from typing import Dict, List, Optional

import pytest
from fastapi.testclient import TestClient
from google.genai import types

from agent import Agent
from main import create_app
from settings import Settings


def make_response(*parts) -> types.GenerateContentResponse:
    """Build a one-candidate response; plain strings become text parts."""
    content_parts = [types.Part(text=p) if isinstance(p, str) else p for p in parts]
    return types.GenerateContentResponse(
        candidates=[types.Candidate(content=types.Content(role="model", parts=content_parts))]
    )


def function_call_part(name: str = "lookup_bin") -> types.Part:
    return types.Part(function_call=types.FunctionCall(name=name, args={"item": "battery"}))


class FakeConversation:
    def __init__(self):
        self.history: List[str] = []


class FakeBackend:
    model_name = "fake-model"

    def __init__(
        self,
        reply: Optional[types.GenerateContentResponse] = None,
        error: Optional[Exception] = None,
        delays: Optional[Dict[str, float]] = None,
    ):
        self.reply = reply
        self.error = error
        self.delays = delays or {}
        self.started = 0
        self.closed = False

    def start_conversation(self) -> FakeConversation:
        self.started += 1
        return FakeConversation()

    async def send_message(self, handle: FakeConversation, message: str):
        delay = self.delays.get(message, 0)
        if delay:
            await asyncio.sleep(delay)
        if self.error is not None:
            raise self.error
        handle.history.append(message)
        if self.reply is not None:
            return self.reply
        return make_response(f"echo: {message}")

    async def close(self) -> None:
        self.closed = True


@pytest.fixture
def backend() -> FakeBackend:
    return FakeBackend()


@pytest.fixture
def agent(backend: FakeBackend) -> Agent:
    return Agent(backend)


@pytest.fixture
def test_settings(tmp_path) -> Settings:
    return Settings(STATIC_DIR=str(tmp_path / "missing"), DO_DEBUG=False)


@pytest.fixture
def client(backend: FakeBackend, test_settings: Settings):
    app = create_app(backend=backend, settings=test_settings)
    with TestClient(app) as c:
        yield c
