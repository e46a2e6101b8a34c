"""Global pytest fixtures for deterministic test environment."""

from __future__ import annotations

import math
import re
from typing import List

import pytest

from tailr_agent.core.cache import VectorCache
from tailr_agent.core.embeddings import EmbeddingProvider
from tailr_agent.providers.types import LLMResponse, TextBlock, ToolUseBlock


@pytest.fixture(autouse=True)
def _isolate_runtime_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Clear local runtime env that can leak into tests on developer machines."""
    for key in (
        "ANTHROPIC_API_KEY",
        "OPENAI_API_KEY",
        "GEMINI_API_KEY",
        "DEEPSEEK_API_KEY",
        "KIMI_API_KEY",
    ):
        monkeypatch.delenv(key, raising=False)


class FakeEncoder:
    """Bag-of-words hashing encoder: texts sharing words get similar vectors.

    Any text containing ``FAIL`` raises, to exercise per-item error handling.
    """

    dim = 32

    def __init__(self):
        self.calls: List[str] = []

    def encode(self, text, normalize_embeddings=True):  # noqa: ANN001
        self.calls.append(text)
        if "FAIL" in text:
            raise RuntimeError(f"cannot encode '{text}'")
        vector = [0.0] * self.dim
        for word in re.findall(r"[a-z0-9+#]+", text.lower()):
            vector[sum(ord(c) for c in word) % self.dim] += 1.0
        norm = math.sqrt(sum(v * v for v in vector))
        if normalize_embeddings and norm:
            vector = [v / norm for v in vector]
        return vector


class FakeClock:
    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class ScriptedProvider:
    """Returns queued responses in order and records every request."""

    def __init__(self, responses):
        self._responses = list(responses)
        self.requests = []

    async def generate(self, messages, tools, config):  # noqa: ANN001
        self.requests.append({"messages": list(messages), "tools": tools, "config": config})
        if not self._responses:
            raise AssertionError("provider called more times than scripted")
        response = self._responses.pop(0)
        if isinstance(response, BaseException):
            raise response
        return response


def text_response(text: str) -> LLMResponse:
    return LLMResponse(content=[TextBlock(text)], stop_reason="end_turn")


def tool_response(name: str, tool_input=None, call_id: str = "call_1") -> LLMResponse:
    return LLMResponse(content=[ToolUseBlock(id=call_id, name=name, input=tool_input or {})], stop_reason="tool_use")


@pytest.fixture
def fake_encoder() -> FakeEncoder:
    return FakeEncoder()


@pytest.fixture
def fake_clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def embeddings(fake_encoder: FakeEncoder) -> EmbeddingProvider:
    return EmbeddingProvider(cache=VectorCache(), model_factory=lambda name: fake_encoder)


@pytest.fixture
def scripted():
    """Factory for scripted providers plus response builders."""

    class _Scripted:
        provider = ScriptedProvider
        text = staticmethod(text_response)
        tool = staticmethod(tool_response)

    return _Scripted
