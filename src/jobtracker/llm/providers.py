from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any
from urllib.parse import urlparse

from openai import OpenAI

from jobtracker.config import Settings
from jobtracker.types import ModelResponse

logger = logging.getLogger(__name__)

CHAT_COMPLETIONS_PATH = "/chat/completions"


@dataclass(slots=True)
class ProviderConfig:
    name: str
    base_url: str
    api_key: str
    timeout_sec: int
    temperature: float = 0.7
    max_tokens: int = 1000

    @classmethod
    def from_settings(cls, settings: Settings) -> ProviderConfig:
        return cls(
            name="ai",
            base_url=settings.ai_base_url,
            api_key=settings.ai_api_key,
            timeout_sec=settings.ai_timeout_sec,
            temperature=settings.ai_temperature,
            max_tokens=settings.ai_max_tokens,
        )


def build_chat_completions_url(base_url: str | None) -> str | None:
    """Accepts a full endpoint, a bare host or a ``/v1`` base; ``None`` when unusable."""
    trimmed = (base_url or "").strip().rstrip("/")
    if not trimmed:
        return None

    parsed = urlparse(trimmed)
    if parsed.scheme not in {"http", "https"} or not parsed.netloc:
        return None

    if trimmed.endswith(CHAT_COMPLETIONS_PATH):
        return trimmed
    suffix = "" if trimmed.endswith("/v1") else "/v1"
    return f"{trimmed}{suffix}{CHAT_COMPLETIONS_PATH}"


def api_base_url(base_url: str | None) -> str | None:
    endpoint = build_chat_completions_url(base_url)
    if endpoint is None:
        return None
    return endpoint[: -len(CHAT_COMPLETIONS_PATH)]


class LLMProvider:
    def __init__(self, config: ProviderConfig, client: Any | None = None):
        self.config = config
        self.client = client or OpenAI(
            base_url=api_base_url(config.base_url),
            api_key=config.api_key,
            timeout=float(config.timeout_sec),
        )

    def complete_text(self, *, model: str, prompt: str) -> ModelResponse:
        try:
            return self._complete_via_responses(model=model, prompt=prompt)
        except Exception as exc:
            if not self._is_unsupported_responses_endpoint(exc):
                raise

            logger.warning(
                "Responses API unavailable for provider=%s base_url=%s; "
                "falling back to chat.completions (%s)",
                self.config.name,
                self.config.base_url,
                exc,
            )
            return self._complete_via_chat_completions(model=model, prompt=prompt)

    def list_models(self) -> list[str]:
        return [model.id for model in self.client.models.list()]

    def _complete_via_responses(self, *, model: str, prompt: str) -> ModelResponse:
        response = self.client.responses.create(
            model=model,
            input=[
                {
                    "role": "user",
                    "content": [{"type": "input_text", "text": prompt}],
                }
            ],
            temperature=self.config.temperature,
            max_output_tokens=self.config.max_tokens,
        )
        text = getattr(response, "output_text", "") or ""
        return ModelResponse(content=text, model=model, raw=_raw_payload(response, "responses"))

    def _complete_via_chat_completions(self, *, model: str, prompt: str) -> ModelResponse:
        response = self.client.chat.completions.create(
            model=model,
            messages=[{"role": "user", "content": prompt}],
            temperature=self.config.temperature,
            max_tokens=self.config.max_tokens,
        )
        text = self._extract_chat_text(response)
        return ModelResponse(content=text, model=model, raw=_raw_payload(response, "chat_completions"))

    @staticmethod
    def _extract_chat_text(response: Any) -> str:
        choices = getattr(response, "choices", None) or []
        if not choices:
            return ""

        message = getattr(choices[0], "message", None)
        if message is None:
            return ""

        content = getattr(message, "content", "")
        if isinstance(content, str):
            return content
        if content is None:
            return ""
        return str(content)

    @staticmethod
    def _is_unsupported_responses_endpoint(exc: Exception) -> bool:
        status_code = getattr(exc, "status_code", None)
        if status_code == 404:
            return True

        message = str(exc).strip().lower()
        if not message:
            return False

        return "not found" in message or "404" in message


def _raw_payload(response: Any, api_path: str) -> dict[str, Any]:
    raw = response.model_dump() if hasattr(response, "model_dump") else {}
    if not isinstance(raw, dict):
        raw = {"raw": raw}
    raw["api_path"] = api_path
    return raw
