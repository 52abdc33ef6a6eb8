from __future__ import annotations

from types import SimpleNamespace

import pytest

from jobtracker.config import Settings
from jobtracker.errors import ErrorCode, ProviderError
from jobtracker.llm.router import LLMRouter
from jobtracker.types import ModelResponse


class ScriptedProvider:
    def __init__(self, outcomes: dict[str, object]):
        self.config = SimpleNamespace(base_url="https://llm.example.com/v1")
        self.outcomes = outcomes
        self.calls: list[str] = []

    def complete_text(self, *, model: str, prompt: str) -> ModelResponse:
        self.calls.append(model)
        outcome = self.outcomes[model]
        if isinstance(outcome, Exception):
            raise outcome
        return ModelResponse(content=str(outcome), model=model)

    def list_models(self) -> list[str]:
        raise RuntimeError("connection refused")


def _settings(**overrides) -> Settings:
    values = dict(ai_api_key="sk-test", ai_model="primary", ai_fallback_models="backup,primary,last")
    values.update(overrides)
    return Settings(**values)


def test_router_requires_credential() -> None:
    with pytest.raises(ProviderError) as excinfo:
        LLMRouter(Settings(ai_api_key="")).generate_text("prompt")
    assert excinfo.value.code == ErrorCode.AI_PROVIDER_NOT_CONFIGURED


def test_router_rejects_unusable_base_url() -> None:
    with pytest.raises(ProviderError) as excinfo:
        LLMRouter(Settings(ai_api_key="sk-test", ai_base_url="not-a-url")).provider()
    assert excinfo.value.code == ErrorCode.AI_PROVIDER_NOT_CONFIGURED


def test_router_uses_primary_when_it_succeeds() -> None:
    provider = ScriptedProvider({"primary": "letter"})
    response = LLMRouter(_settings(), provider=provider).generate_text("prompt")

    assert response.content == "letter"
    assert provider.calls == ["primary"]


def test_router_falls_back_in_order_on_errors_and_empty_output() -> None:
    provider = ScriptedProvider({"primary": RuntimeError("429"), "backup": "   ", "last": "final letter"})
    response = LLMRouter(_settings(), provider=provider).generate_text("prompt")

    assert response.model == "last"
    assert provider.calls == ["primary", "backup", "last"]


def test_router_raises_provider_error_when_every_model_fails() -> None:
    provider = ScriptedProvider({"primary": RuntimeError("down"), "backup": RuntimeError("down"), "last": ""})

    with pytest.raises(ProviderError) as excinfo:
        LLMRouter(_settings(), provider=provider).generate_text("prompt")

    assert excinfo.value.code == ErrorCode.AI_PROVIDER_ERROR
    assert excinfo.value.status_code == 502
    assert [attempt["model"] for attempt in excinfo.value.details["attempts"]] == ["primary", "backup", "last"]


def test_health_failure_is_provider_error() -> None:
    with pytest.raises(ProviderError) as excinfo:
        LLMRouter(_settings(), provider=ScriptedProvider({})).health()
    assert excinfo.value.code == ErrorCode.AI_PROVIDER_ERROR
