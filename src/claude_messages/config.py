"""
Claude Messages - Client Configuration

Resolves settings from arguments and environment variables and validates
them once, when a client is built.
"""

import os
from dataclasses import dataclass
from typing import Optional, Union

import httpx

from .exceptions import ConfigurationError
from .models import Model

DEFAULT_BASE_URL = "https://api.anthropic.com"
DEFAULT_TIMEOUT = 60.0
DEFAULT_MODEL = Model.CLAUDE_3_5_SONNET.value
DEFAULT_MAX_TOKENS = 4096
API_VERSION = "2023-06-01"

API_KEY_ENV_VARS = ("ANTHROPIC_API_KEY", "CLAUDE_API_KEY")
BASE_URL_ENV_VAR = "ANTHROPIC_BASE_URL"


@dataclass(frozen=True)
class ClientConfig:
    """Immutable client settings.

    Attributes:
        api_key: Credential sent as the x-api-key header
        base_url: API root every request path is joined onto
        timeout: Default per-attempt timeout in seconds
        model: Default model
        max_tokens: Default max_tokens added to every messages request
    """

    api_key: str
    base_url: str = DEFAULT_BASE_URL
    timeout: float = DEFAULT_TIMEOUT
    model: str = DEFAULT_MODEL
    max_tokens: int = DEFAULT_MAX_TOKENS

    @classmethod
    def from_env(
        cls,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        model: Optional[Union[str, Model]] = None,
        max_tokens: Optional[int] = None,
    ) -> "ClientConfig":
        """Build a config, falling back to environment variables.

        API key: argument, then ANTHROPIC_API_KEY, then CLAUDE_API_KEY.
        Base URL: argument, then ANTHROPIC_BASE_URL, then the public API.

        Raises:
            ConfigurationError: No API key could be found
        """
        api_key = api_key or next(
            (os.getenv(name) for name in API_KEY_ENV_VARS if os.getenv(name)),
            None,
        )
        if api_key is None:
            raise ConfigurationError(
                "API key not provided. Pass api_key or set ANTHROPIC_API_KEY "
                "or CLAUDE_API_KEY"
            )

        if isinstance(model, Model):
            model = model.value

        return cls(
            api_key=api_key,
            base_url=(base_url or os.getenv(BASE_URL_ENV_VAR) or DEFAULT_BASE_URL),
            timeout=DEFAULT_TIMEOUT if timeout is None else timeout,
            model=model or DEFAULT_MODEL,
            max_tokens=DEFAULT_MAX_TOKENS if max_tokens is None else max_tokens,
        )

    def validate(self) -> "ClientConfig":
        """Check every setting, returning self for chaining.

        Raises:
            ConfigurationError: A setting is invalid
        """
        if not self.api_key:
            raise ConfigurationError("API key cannot be empty")

        if self.timeout <= 0:
            raise ConfigurationError("Timeout must be greater than zero")

        if self.max_tokens <= 0:
            raise ConfigurationError("max_tokens must be greater than zero")

        try:
            limit = Model(self.model).max_tokens
        except ValueError:
            limit = None  # unknown models are not checked
        if limit is not None and self.max_tokens > limit:
            raise ConfigurationError(
                f"max_tokens ({self.max_tokens}) exceeds model limit ({limit}) for {self.model}"
            )

        try:
            url = httpx.URL(self.base_url)
        except httpx.InvalidURL as e:
            raise ConfigurationError(f"Invalid base URL: {self.base_url}", cause=e) from e
        if url.scheme not in ("http", "https"):
            raise ConfigurationError(
                f"Base URL must use http or https scheme, got: {url.scheme or '<none>'}"
            )

        return self

    def __repr__(self) -> str:
        return (
            f"ClientConfig(base_url={self.base_url!r}, model={self.model!r}, "
            f"timeout={self.timeout}, max_tokens={self.max_tokens}, api_key='***')"
        )
