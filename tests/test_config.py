import pytest

from policylens.core.config import DEFAULT_ALLOWED_ORIGINS, DEFAULT_USER_AGENT, Settings


ENV_KEYS = [
    "OPENAI_API_KEY",
    "AZURE_OPENAI_API_KEY",
    "AZURE_OPENAI_ENDPOINT",
    "AZURE_OPENAI_DEPLOYMENT",
    "KV_URL",
    "REDIS_URL",
    "KV_TOKEN",
    "ENABLE_CACHE",
    "ENABLE_FREEFORM",
    "CACHE_TTL_SEC",
    "CACHE_TIMEOUT_SEC",
    "EXTRACTION_TIMEOUT_SEC",
    "REQUEST_DEADLINE_SEC",
    "MAX_SOURCE_CHARS",
    "ALLOWED_ORIGINS",
]


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for key in ENV_KEYS:
        monkeypatch.delenv(key, raising=False)


def test_defaults_without_environment():
    s = Settings.from_env(load_dotenv_file=False)

    assert s.llm_configured is False
    assert s.cache_configured is False
    assert s.cache_ttl_sec == 86400
    assert s.extraction_timeout_sec == 20.0
    assert s.max_source_chars == 15000
    assert s.fetch_user_agent == DEFAULT_USER_AGENT
    assert s.allowed_origins == list(DEFAULT_ALLOWED_ORIGINS)


def test_overrides_are_read(monkeypatch):
    monkeypatch.setenv("OPENAI_API_KEY", "sk-live")
    monkeypatch.setenv("REDIS_URL", "redis://cache:6379")
    monkeypatch.setenv("ENABLE_FREEFORM", "false")
    monkeypatch.setenv("CACHE_TTL_SEC", "60")
    monkeypatch.setenv("ALLOWED_ORIGINS", "https://a.example, https://b.example")

    s = Settings.from_env(load_dotenv_file=False)

    assert s.llm_configured is True
    assert s.kv_url == "redis://cache:6379"
    assert s.cache_configured is True
    assert s.freeform_enabled is False
    assert s.cache_ttl_sec == 60
    assert s.allowed_origins == ["https://a.example", "https://b.example"]


def test_kv_url_takes_precedence_over_redis_url(monkeypatch):
    monkeypatch.setenv("KV_URL", "rediss://kv.example:6380")
    monkeypatch.setenv("REDIS_URL", "redis://cache:6379")
    assert Settings.from_env(load_dotenv_file=False).kv_url == "rediss://kv.example:6380"


def test_invalid_numbers_fall_back_to_defaults(monkeypatch):
    monkeypatch.setenv("CACHE_TTL_SEC", "a day")
    monkeypatch.setenv("REQUEST_DEADLINE_SEC", "soon")

    s = Settings.from_env(load_dotenv_file=False)

    assert s.cache_ttl_sec == 86400
    assert s.request_deadline_sec == 120.0


def test_disabling_cache_overrides_store_url(monkeypatch):
    monkeypatch.setenv("KV_URL", "redis://cache:6379")
    monkeypatch.setenv("ENABLE_CACHE", "0")
    assert Settings.from_env(load_dotenv_file=False).cache_configured is False


def test_azure_needs_key_endpoint_and_deployment(monkeypatch):
    monkeypatch.setenv("AZURE_OPENAI_API_KEY", "az-key")
    monkeypatch.setenv("AZURE_OPENAI_ENDPOINT", "https://res.openai.azure.com")
    assert Settings.from_env(load_dotenv_file=False).azure_configured is False

    monkeypatch.setenv("AZURE_OPENAI_DEPLOYMENT", "gpt-4o-mini")
    s = Settings.from_env(load_dotenv_file=False)
    assert s.azure_configured is True
    assert s.llm_configured is True


def test_non_positive_values_fall_back_to_defaults(monkeypatch):
    monkeypatch.setenv("CACHE_TTL_SEC", "0")
    monkeypatch.setenv("REQUEST_DEADLINE_SEC", "-5")
    monkeypatch.setenv("MAX_SOURCE_CHARS", "0")

    s = Settings.from_env(load_dotenv_file=False)

    assert s.cache_ttl_sec == 86400
    assert s.request_deadline_sec == 120.0
    assert s.max_source_chars == 15000


def test_cache_timeout_is_read(monkeypatch):
    monkeypatch.setenv("CACHE_TIMEOUT_SEC", "0.5")
    assert Settings.from_env(load_dotenv_file=False).cache_timeout_sec == 0.5
