from __future__ import annotations

import logging
from typing import Any

from jobtracker.config import Settings, get_settings
from jobtracker.errors import ErrorCode, ProviderError
from jobtracker.llm.providers import LLMProvider, ProviderConfig, api_base_url
from jobtracker.types import ModelResponse

logger = logging.getLogger(__name__)


class LLMRouter:
    """Non-streaming generation over the configured model list, primary first."""

    def __init__(self, settings: Settings | None = None, provider: LLMProvider | None = None):
        self.settings = settings or get_settings()
        self._provider = provider

    def provider(self) -> LLMProvider:
        if self._provider is None:
            if not self.settings.ai_api_key or api_base_url(self.settings.ai_base_url) is None:
                raise ProviderError(
                    ErrorCode.AI_PROVIDER_NOT_CONFIGURED,
                    "AI provider is not configured",
                    status_code=500,
                )
            self._provider = LLMProvider(ProviderConfig.from_settings(self.settings))
        return self._provider

    def generate_text(self, prompt: str) -> ModelResponse:
        provider = self.provider()
        models = self.settings.ai_model_list
        attempts: list[dict[str, Any]] = []

        for model in models:
            try:
                response = provider.complete_text(model=model, prompt=prompt)
            except Exception as exc:
                logger.warning("LLM text call failed model=%s error=%s", model, exc)
                attempts.append({"model": model, "error": str(exc)[:200]})
                continue

            if response.content.strip():
                if model != models[0]:
                    logger.info("Generated with fallback model=%s", model)
                return response

            logger.warning("LLM returned empty content model=%s", model)
            attempts.append({"model": model, "error": "empty response"})

        raise ProviderError(
            ErrorCode.AI_PROVIDER_ERROR,
            "AI provider failed for every configured model",
            details={"attempts": attempts},
        )

    def health(self) -> dict[str, Any]:
        provider = self.provider()
        try:
            models = provider.list_models()
        except Exception as exc:
            logger.error("AI health check failed base_url=%s error=%s", provider.config.base_url, exc)
            raise ProviderError(
                ErrorCode.AI_PROVIDER_ERROR,
                "AI provider health check failed",
                details={"error": str(exc)[:200]},
            ) from exc

        return {
            "ok": True,
            "baseUrl": api_base_url(self.settings.ai_base_url),
            "model": self.settings.ai_model,
            "modelAvailable": self.settings.ai_model in models,
            "models": models,
        }
