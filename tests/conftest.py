"""Shared test fixtures for the conversation engine."""

from __future__ import annotations

from collections.abc import AsyncGenerator, Callable
from typing import Any, Sequence

import httpx
import pytest
import pytest_asyncio
from langchain_core.messages import BaseMessage

from snapsolve.chat.history import ChatHistory
from snapsolve.chat.session import SessionEngine
from snapsolve.config import Settings
from snapsolve.models.chat import ChatSession
from snapsolve.models.conf import ChatConf, ModelConfig, ModelType
from snapsolve.storage.memory import InMemoryKeyValueStore


class FakeGateway:
    """Scripted ``CompletionGateway``: pops one reply (or exception) per call."""

    def __init__(self, replies: Sequence[Any] = ()) -> None:
        self.replies: list[Any] = list(replies)
        self.calls: list[dict[str, Any]] = []

    def queue(self, *replies: Any) -> None:
        self.replies.extend(replies)

    async def complete(
        self,
        model: ModelConfig,
        messages: Sequence[BaseMessage],
        *,
        temperature: float | None = None,
        presence_penalty: float | None = None,
        json_mode: bool = False,
    ) -> str:
        self.calls.append(
            {
                "model": model,
                "messages": list(messages),
                "temperature": temperature,
                "presence_penalty": presence_penalty,
                "json_mode": json_mode,
            }
        )
        if not self.replies:
            return ""
        reply = self.replies.pop(0)
        if isinstance(reply, Exception):
            raise reply
        return reply


@pytest.fixture
def test_settings(tmp_path) -> Settings:
    return Settings(image_work_dir=tmp_path / "work")


@pytest.fixture
def store() -> InMemoryKeyValueStore:
    return InMemoryKeyValueStore()


@pytest.fixture
def history(store: InMemoryKeyValueStore, test_settings: Settings) -> ChatHistory:
    return ChatHistory(store, test_settings)


@pytest.fixture
def gateway() -> FakeGateway:
    return FakeGateway()


@pytest.fixture
def vision_model() -> ModelConfig:
    return ModelConfig(
        title="Vision",
        type=ModelType.MULTIMODAL,
        model="gpt-4o",
        api_base="https://llm.example.test/v1",
        api_key="sk-vision",
    )


@pytest.fixture
def text_model() -> ModelConfig:
    return ModelConfig(
        title="Reasoner",
        type=ModelType.TEXT,
        model="deepseek-reasoner",
        api_base="https://text.example.test/v1",
        api_key="sk-text",
    )


@pytest.fixture
def vision_conf(vision_model: ModelConfig) -> ChatConf:
    return ChatConf(models=[vision_model], active_solving_model="Vision")


@pytest.fixture
def ocr_conf(vision_model: ModelConfig, text_model: ModelConfig) -> ChatConf:
    return ChatConf(
        models=[vision_model, text_model],
        active_solving_model="Reasoner",
        active_ocr_model="Vision",
    )


@pytest.fixture
def make_engine(
    history: ChatHistory, gateway: FakeGateway, test_settings: Settings
) -> Callable[..., SessionEngine]:
    def _make(conf: ChatConf, session=None, messages=None) -> SessionEngine:
        return SessionEngine(
            conf,
            session or ChatSession(),
            messages or {},
            history=history,
            gateway=gateway,
            settings=test_settings,
        )

    return _make


Responder = Callable[[httpx.Request], httpx.Response]


class MockHTTP:
    """httpx client over a MockTransport; unrouted requests get a 404."""

    def __init__(self) -> None:
        self.routes: dict[tuple[str, str], Responder] = {}
        self.requests: list[httpx.Request] = []
        self.client = httpx.AsyncClient(transport=httpx.MockTransport(self._handle))

    def route(self, method: str, url: str, responder: Responder) -> None:
        self.routes[(method, url)] = responder

    def count(self, method: str) -> int:
        return sum(1 for request in self.requests if request.method == method)

    def _handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        url = f"{request.url.scheme}://{request.url.host}{request.url.path}"
        responder = self.routes.get((request.method, url))
        if responder is None:
            return httpx.Response(404)
        return responder(request)


@pytest_asyncio.fixture
async def mock_http() -> AsyncGenerator[MockHTTP, None]:
    http = MockHTTP()
    yield http
    await http.client.aclose()
