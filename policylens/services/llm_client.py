"""
LLM Client for PolicyLens
-------------------------
Thin async interface over the OpenAI chat completions API, backed either by
Azure OpenAI or OpenAI cloud. Provides only what the analysis pipeline uses:
"given a prompt, return text or fail".
"""

from __future__ import annotations

import time
from typing import Any, Dict, Optional

import structlog
from openai import AsyncOpenAI, OpenAIError

from policylens.core.config import Settings
from policylens.core.errors import ConfigurationError, LLMCallError
from policylens.models.prompts import SYSTEM_PROMPTS

# ────────────────────────────────────────────────────────────
#  Logging
# ────────────────────────────────────────────────────────────
logger = structlog.get_logger(__name__)

# Task -> sampling temperature
_TASK_TEMPERATURE: Dict[str, float] = {
    "summarize": 0.2,
    "freeform": 0.4,
    "summarize_text": 0.3,
}

DEFAULT_MAX_TOKENS = 4096

OVERLOADED_MESSAGE = (
    "The language model is currently overloaded. Please wait a while and try again."
)

# Statuses the backends use for capacity problems
_OVERLOAD_STATUSES = {503, 529}


def user_facing_error(error: Exception) -> str:
    """Message shown to callers for a backend error; capacity errors get a retry hint."""
    message = getattr(error, "message", None) or str(error)
    if "overloaded" in message.lower() or getattr(error, "status_code", None) in _OVERLOAD_STATUSES:
        return OVERLOADED_MESSAGE
    return message


# ────────────────────────────────────────────────────────────
#  Main LLM Client
# ────────────────────────────────────────────────────────────
class LLMClient:
    """Chat-completions client; Azure preferred when both are configured."""

    def __init__(self, settings: Settings, client: Optional[AsyncOpenAI] = None):
        self.settings = settings
        self.client: Optional[AsyncOpenAI] = client
        self.backend: Optional[str] = "custom" if client is not None else None
        if self.client is None and settings.llm_configured:
            self._init_client()
        elif self.client is None:
            logger.warning(
                "LLM client not configured; set OPENAI_API_KEY or AZURE_OPENAI_*"
            )

    def _init_client(self) -> None:
        s = self.settings
        if s.azure_configured:
            endpoint = (s.azure_openai_endpoint or "").rstrip("/")
            self.client = AsyncOpenAI(
                api_key=s.azure_openai_api_key,
                base_url=f"{endpoint}/openai/v1",
                default_query={"api-version": s.azure_openai_api_version},
                timeout=s.llm_timeout_sec,
            )
            self.backend = "azure"
            logger.info("Azure OpenAI client initialized", endpoint=endpoint)
        elif s.openai_api_key:
            self.client = AsyncOpenAI(api_key=s.openai_api_key, timeout=s.llm_timeout_sec)
            self.backend = "openai"
            logger.info("OpenAI client initialized")

    def is_configured(self) -> bool:
        return self.client is not None

    def ensure_configured(self) -> AsyncOpenAI:
        """Return the underlying client, or raise ``ConfigurationError``."""
        if self.client is None:
            raise ConfigurationError()
        return self.client

    @property
    def model(self) -> str:
        """Deployment name for Azure, model name for OpenAI."""
        if self.backend == "azure" and self.settings.azure_openai_deployment:
            return self.settings.azure_openai_deployment
        return self.settings.llm_model

    async def generate_completion(
        self,
        prompt: str,
        *,
        task: str = "summarize",
        json_mode: bool = False,
        max_tokens: int = DEFAULT_MAX_TOKENS,
        temperature: Optional[float] = None,
    ) -> str:
        """Return the model's text for ``prompt``; raise ``LLMCallError`` on failure."""
        client = self.ensure_configured()

        if temperature is None:
            temperature = _TASK_TEMPERATURE.get(task, 0.3)

        messages = [
            {"role": "system", "content": SYSTEM_PROMPTS.get(task, "")},
            {"role": "user", "content": prompt},
        ]
        request: Dict[str, Any] = {
            "model": self.model,
            "messages": messages,
            "max_tokens": max_tokens,
            "temperature": temperature,
        }
        if json_mode:
            request["response_format"] = {"type": "json_object"}

        t0 = time.time()
        try:
            response = await client.chat.completions.create(**request)
        except OpenAIError as e:
            message = user_facing_error(e)
            logger.error(
                "LLM request failed",
                task=task,
                model=self.model,
                error=getattr(e, "message", None) or str(e),
                error_type=type(e).__name__,
            )
            raise LLMCallError(message) from e

        content = ""
        if getattr(response, "choices", None):
            content = response.choices[0].message.content or ""
        latency_ms = int((time.time() - t0) * 1000)
        if not content.strip():
            logger.warning("Empty response received from LLM", task=task, latency_ms=latency_ms)
            raise LLMCallError("The language model returned an empty response")

        logger.info(
            "Completion received",
            task=task,
            model=self.model,
            response_length=len(content),
            latency_ms=latency_ms,
        )
        return content

    async def close(self) -> None:
        if self.client is not None:
            await self.client.close()

    def get_active_backend_info(self) -> Dict[str, Any]:
        return {
            "configured": self.is_configured(),
            "backend": self.backend,
            "model": self.model,
        }
