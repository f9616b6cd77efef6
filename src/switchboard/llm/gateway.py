"""LiteLLM gateway — async wrapper for the chat completion provider."""

from __future__ import annotations

import time
from typing import Any

import litellm
import structlog

from switchboard.config import LLMConfig

logger = structlog.get_logger()

# Suppress litellm's noisy logging
litellm.suppress_debug_info = True
litellm.drop_params = True


class LLMGateway:
    """Async wrapper around LiteLLM for multi-provider model access."""

    def __init__(self, config: LLMConfig) -> None:
        self.config = config
        self.total_tokens_used = 0
        self.total_cost = 0.0
        self.request_count = 0

    @property
    def configured(self) -> bool:
        return bool(self.config.api_key)

    async def completion(
        self,
        messages: list[dict[str, Any]],
        *,
        model: str | None = None,
        temperature: float | None = None,
        max_tokens: int | None = None,
        presence_penalty: float | None = None,
        frequency_penalty: float | None = None,
    ) -> Any:
        """Send a completion request through LiteLLM, trying fallbacks on error."""
        model = model or self.config.model
        kwargs: dict[str, Any] = {
            "model": model,
            "messages": messages,
            "temperature": self.config.temperature if temperature is None else temperature,
            "max_tokens": max_tokens or self.config.max_tokens,
            "presence_penalty": (
                self.config.presence_penalty if presence_penalty is None else presence_penalty
            ),
            "frequency_penalty": (
                self.config.frequency_penalty if frequency_penalty is None else frequency_penalty
            ),
        }
        if self.config.api_key:
            kwargs["api_key"] = self.config.api_key
        if self.config.api_base:
            kwargs["api_base"] = self.config.api_base

        start = time.monotonic()
        self.request_count += 1
        request_id = self.request_count

        logger.info("llm.request", request_id=request_id, model=model, message_count=len(messages))

        try:
            response = await litellm.acompletion(**kwargs)
            self._track_usage(response, request_id, start)
            return response

        except Exception as e:
            logger.error("llm.error", request_id=request_id, error=str(e), model=model)

            for fallback in self.config.fallback_models:
                logger.info("llm.fallback", fallback_model=fallback)
                try:
                    kwargs["model"] = fallback
                    response = await litellm.acompletion(**kwargs)
                    logger.info("llm.fallback.success", model=fallback)
                    self._track_usage(response, request_id, start)
                    return response
                except Exception as fallback_err:
                    logger.error("llm.fallback.error", model=fallback, error=str(fallback_err))

            raise

    def _track_usage(self, response: Any, request_id: int, start: float) -> None:
        usage = getattr(response, "usage", None)
        if not usage:
            return
        tokens = getattr(usage, "total_tokens", 0) or 0
        self.total_tokens_used += tokens
        try:
            cost = litellm.completion_cost(completion_response=response)
        except Exception:
            cost = 0.0  # Self-hosted models have no pricing entry
        self.total_cost += cost
        logger.info(
            "llm.response",
            request_id=request_id,
            tokens=tokens,
            cost=f"${cost:.6f}",
            duration=f"{time.monotonic() - start:.2f}s",
        )

    @property
    def stats(self) -> dict[str, Any]:
        """Return usage statistics."""
        return {
            "total_tokens": self.total_tokens_used,
            "total_cost": f"${self.total_cost:.6f}",
            "request_count": self.request_count,
            "model": self.config.model,
        }
