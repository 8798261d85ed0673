"""Text-completion port and its Gemini implementation via pydantic-ai.

Callers only depend on ``TextCompleter``. ``GeminiCompleter`` turns provider
HTTP failures into ``TransientCallError`` (429, 5xx, transport timeouts) so the
retry loop can tell retryable failures apart from permanent ones.
"""

from __future__ import annotations

from typing import Any, Optional, Protocol

import httpx
from pydantic_ai import Agent
from pydantic_ai.exceptions import ModelHTTPError

from app.core.config import settings
from app.core.errors import ConfigurationError, LearningEnvError, TransientCallError
from app.core.logging import get_logger

logger = get_logger(__name__)

QUALITY_FAST = "fast"
QUALITY_SMART = "smart"


class TextCompleter(Protocol):
    async def complete(self, prompt: str, *, quality: str = QUALITY_FAST) -> str: ...


def is_retryable_status(status: int) -> bool:
    return status == 429 or status >= 500


def _error_message(body: Any, default: str) -> str:
    """Pull the human-readable message out of a provider error payload."""
    if isinstance(body, dict):
        err = body.get("error", body)
        if isinstance(err, dict) and err.get("message"):
            return str(err["message"])
        if isinstance(err, str) and err:
            return err
        if body.get("message"):
            return str(body["message"])
    if isinstance(body, str) and body:
        return body
    return default


def _build_google_model(model_name: str, api_key: str):
    """Build the Google Gemini model provider (lazy import)."""
    from pydantic_ai.models.google import GoogleModel
    from pydantic_ai.providers.google import GoogleProvider

    provider = GoogleProvider(api_key=api_key)
    return GoogleModel(model_name, provider=provider)


class GeminiCompleter:
    """Plain-text completions; structure is recovered later by the parser."""

    def __init__(
        self,
        *,
        api_key: Optional[str] = None,
        fast_model: Optional[str] = None,
        smart_model: Optional[str] = None,
    ) -> None:
        self.api_key = api_key if api_key is not None else settings.gemini_api_key
        self.fast_model = fast_model or settings.generation.fast_model
        self.smart_model = smart_model or settings.generation.smart_model

    def model_name(self, quality: str) -> str:
        return self.smart_model if quality == QUALITY_SMART else self.fast_model

    async def complete(self, prompt: str, *, quality: str = QUALITY_FAST) -> str:
        if not self.api_key:
            raise ConfigurationError()
        name = self.model_name(quality)
        agent: Agent[None, str] = Agent[None, str](
            model=_build_google_model(name, self.api_key),
            output_type=str,
        )
        try:
            res = await agent.run(prompt)
        except ModelHTTPError as e:
            message = _error_message(e.body, f"Server error: {e.status_code}")
            if is_retryable_status(e.status_code):
                raise TransientCallError(message, status=e.status_code) from e
            raise LearningEnvError(message) from e
        except httpx.TimeoutException as e:
            raise TransientCallError("The request timed out", timed_out=True) from e
        logger.debug(f"Completion from {name}: {len(res.output)} chars")
        return res.output
