"""
Tests for client configuration.
"""

import pytest

from claude_messages.config import (
    ClientConfig,
    DEFAULT_BASE_URL,
    DEFAULT_MAX_TOKENS,
    DEFAULT_MODEL,
    DEFAULT_TIMEOUT,
)
from claude_messages.exceptions import ConfigurationError
from claude_messages.models import Model


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ("ANTHROPIC_API_KEY", "CLAUDE_API_KEY", "ANTHROPIC_BASE_URL"):
        monkeypatch.delenv(name, raising=False)


class TestFromEnv:
    """Resolution of arguments and environment variables."""

    def test_defaults(self):
        config = ClientConfig.from_env(api_key="key")
        assert config.base_url == DEFAULT_BASE_URL == "https://api.anthropic.com"
        assert config.timeout == DEFAULT_TIMEOUT == 60.0
        assert config.model == DEFAULT_MODEL == "claude-3-5-sonnet-20241022"
        assert config.max_tokens == DEFAULT_MAX_TOKENS == 4096

    def test_primary_env_var(self, monkeypatch):
        monkeypatch.setenv("ANTHROPIC_API_KEY", "from-anthropic")
        monkeypatch.setenv("CLAUDE_API_KEY", "from-claude")
        assert ClientConfig.from_env().api_key == "from-anthropic"

    def test_alternative_env_var(self, monkeypatch):
        monkeypatch.setenv("CLAUDE_API_KEY", "from-claude")
        assert ClientConfig.from_env().api_key == "from-claude"

    def test_argument_wins(self, monkeypatch):
        monkeypatch.setenv("ANTHROPIC_API_KEY", "from-env")
        assert ClientConfig.from_env(api_key="explicit").api_key == "explicit"

    def test_base_url_env(self, monkeypatch):
        monkeypatch.setenv("ANTHROPIC_BASE_URL", "http://localhost:8080")
        assert ClientConfig.from_env(api_key="key").base_url == "http://localhost:8080"

    def test_missing_key(self):
        with pytest.raises(ConfigurationError, match="API key not provided"):
            ClientConfig.from_env()

    def test_model_enum(self):
        config = ClientConfig.from_env(api_key="key", model=Model.CLAUDE_3_HAIKU)
        assert config.model == "claude-3-haiku-20240307"


class TestValidate:
    """Validation of each setting."""

    def test_valid_config_returns_self(self):
        config = ClientConfig(api_key="key")
        assert config.validate() is config

    @pytest.mark.parametrize("kwargs,message", [
        ({"api_key": ""}, "API key cannot be empty"),
        ({"timeout": 0}, "Timeout must be greater than zero"),
        ({"timeout": -1.5}, "Timeout must be greater than zero"),
        ({"max_tokens": 0}, "max_tokens must be greater than zero"),
        ({"max_tokens": 500_000}, "exceeds model limit"),
        ({"base_url": "ftp://example.com"}, "http or https"),
        ({"base_url": "example.com"}, "http or https"),
    ])
    def test_invalid(self, kwargs, message):
        kwargs.setdefault("api_key", "key")
        with pytest.raises(ConfigurationError, match=message):
            ClientConfig(**kwargs).validate()

    def test_unknown_model_skips_limit(self):
        config = ClientConfig(api_key="key", model="custom-model", max_tokens=500_000)
        assert config.validate() is config

    def test_repr_hides_key(self):
        config = ClientConfig(api_key="sk-secret")
        assert "sk-secret" not in repr(config)

    def test_immutable(self):
        config = ClientConfig(api_key="key")
        with pytest.raises(Exception):
            config.timeout = 5.0
