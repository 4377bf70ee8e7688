"""
Core configuration and settings for the PolicyLens API

All tunable knobs (timeouts, cache TTL, prompt budgets, feature flags) live on
a single ``Settings`` object built once per process from the environment and
passed to the components that need it. Invalid or non-positive numeric overrides
fall back to their defaults with a warning rather than failing startup.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import List, Optional, Sequence

import structlog
from dotenv import load_dotenv

logger = structlog.get_logger(__name__)

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) "
    "AppleWebKit/537.36 (KHTML, like Gecko) "
    "Chrome/120.0.0.0 Safari/537.36"
)

DEFAULT_ALLOWED_ORIGINS = (
    "http://localhost:5173",
    "http://localhost:3000",
)


# ────────────────────────────────────────────────────────────
#  Env helpers
# ────────────────────────────────────────────────────────────

def _env_str(name: str, default: Optional[str] = None) -> Optional[str]:
    value = os.getenv(name)
    if value is None:
        return default
    value = value.strip()
    return value or default


def _env_int(name: str, default: int, *, positive: bool = False) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        value = int(raw)
    except ValueError:
        logger.warning("Invalid integer override ignored", env_key=name, raw_value=raw)
        return default
    if positive and value <= 0:
        logger.warning("Non-positive override ignored", env_key=name, raw_value=raw)
        return default
    return value


def _env_float(name: str, default: float, *, positive: bool = False) -> float:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        value = float(raw)
    except ValueError:
        logger.warning("Invalid float override ignored", env_key=name, raw_value=raw)
        return default
    if positive and value <= 0:
        logger.warning("Non-positive override ignored", env_key=name, raw_value=raw)
        return default
    return value


def _env_list(name: str, default: Sequence[str]) -> List[str]:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return list(default)
    return [part.strip() for part in raw.split(",") if part.strip()]


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    return raw.strip().lower() in {"1", "true", "yes"}


@dataclass
class Settings:
    """Process-wide configuration for the analysis pipeline."""

    # Model backend
    openai_api_key: Optional[str] = None
    azure_openai_api_key: Optional[str] = None
    azure_openai_endpoint: Optional[str] = None
    azure_openai_deployment: Optional[str] = None
    azure_openai_api_version: str = "preview"
    llm_model: str = "gpt-4o-mini"
    llm_timeout_sec: float = 60.0

    # Key-value store (Redis protocol)
    kv_url: Optional[str] = None
    kv_token: Optional[str] = None
    cache_timeout_sec: float = 2.0

    # Feature flags
    caching_enabled: bool = True
    freeform_enabled: bool = True

    # Pipeline limits
    cache_ttl_sec: int = 24 * 3600
    extraction_timeout_sec: float = 20.0
    request_deadline_sec: float = 120.0
    max_source_chars: int = 15000
    summary_target_chars: int = 100
    fetch_user_agent: str = DEFAULT_USER_AGENT

    # HTTP surface
    allowed_origins: List[str] = field(default_factory=lambda: list(DEFAULT_ALLOWED_ORIGINS))

    @classmethod
    def from_env(cls, *, load_dotenv_file: bool = True) -> "Settings":
        if load_dotenv_file:
            load_dotenv()
        return cls(
            openai_api_key=_env_str("OPENAI_API_KEY"),
            azure_openai_api_key=_env_str("AZURE_OPENAI_API_KEY"),
            azure_openai_endpoint=_env_str("AZURE_OPENAI_ENDPOINT"),
            azure_openai_deployment=_env_str("AZURE_OPENAI_DEPLOYMENT"),
            azure_openai_api_version=_env_str("AZURE_OPENAI_API_VERSION", "preview") or "preview",
            llm_model=_env_str("LLM_MODEL", cls.llm_model) or cls.llm_model,
            llm_timeout_sec=_env_float("LLM_TIMEOUT_SEC", cls.llm_timeout_sec, positive=True),
            kv_url=_env_str("KV_URL") or _env_str("REDIS_URL"),
            kv_token=_env_str("KV_TOKEN"),
            cache_timeout_sec=_env_float("CACHE_TIMEOUT_SEC", cls.cache_timeout_sec, positive=True),
            caching_enabled=_env_bool("ENABLE_CACHE", True),
            freeform_enabled=_env_bool("ENABLE_FREEFORM", True),
            cache_ttl_sec=_env_int("CACHE_TTL_SEC", cls.cache_ttl_sec, positive=True),
            extraction_timeout_sec=_env_float("EXTRACTION_TIMEOUT_SEC", cls.extraction_timeout_sec, positive=True),
            request_deadline_sec=_env_float("REQUEST_DEADLINE_SEC", cls.request_deadline_sec, positive=True),
            max_source_chars=_env_int("MAX_SOURCE_CHARS", cls.max_source_chars, positive=True),
            summary_target_chars=_env_int("SUMMARY_TARGET_CHARS", cls.summary_target_chars, positive=True),
            fetch_user_agent=_env_str("FETCH_USER_AGENT", DEFAULT_USER_AGENT) or DEFAULT_USER_AGENT,
            allowed_origins=_env_list("ALLOWED_ORIGINS", DEFAULT_ALLOWED_ORIGINS),
        )

    @property
    def azure_configured(self) -> bool:
        return bool(
            self.azure_openai_api_key
            and self.azure_openai_endpoint
            and self.azure_openai_deployment
        )

    @property
    def llm_configured(self) -> bool:
        """True when a model credential is available."""
        return self.azure_configured or bool(self.openai_api_key)

    @property
    def cache_configured(self) -> bool:
        """Caching is effective only when enabled and a store endpoint is set."""
        return self.caching_enabled and bool(self.kv_url)
