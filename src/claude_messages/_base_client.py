"""
Claude Messages - Shared Client Plumbing

Everything the sync and async clients have in common: configuration,
payload preparation, URL resolution, transport error mapping and response
classification. The I/O-bound attempt loops live in the concrete clients.
"""

import json
import logging
from typing import Any, Dict, Iterable, Mapping, Optional, Type, TypeVar, Union

import httpx
from pydantic import BaseModel, ValidationError

from . import __version__
from .config import API_VERSION, ClientConfig
from .exceptions import (
    ClaudeError, ConfigurationError, ConnectionError, InvalidResponseError,
    SerializationError, TimeoutError, TransportError,
    extract_request_id, raise_for_status,
)
from .interceptors import InterceptorChain, RequestInterceptor
from .models import ChatRequest, CountTokensRequest, Model
from .retry import DEFAULT_RETRY_POLICY, RetryPolicy

logger = logging.getLogger(__name__)

M = TypeVar("M", bound=BaseModel)

MESSAGES_PATH = "/v1/messages"
COUNT_TOKENS_PATH = "/v1/messages/count_tokens"

# Upper bound on the connect phase of any attempt (seconds)
CONNECT_TIMEOUT = 10.0


class BaseClaudeClient:
    """Configuration and request/response helpers shared by both clients."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        *,
        base_url: Optional[str] = None,
        model: Optional[Union[str, Model]] = None,
        max_tokens: Optional[int] = None,
        timeout: Optional[float] = None,
        retry_policy: Optional[RetryPolicy] = None,
        interceptors: Optional[Iterable[RequestInterceptor]] = None,
    ):
        """Initialize the client.

        Args:
            api_key: API key. Defaults to ANTHROPIC_API_KEY or CLAUDE_API_KEY
            base_url: API root. Defaults to ANTHROPIC_BASE_URL or the public API.
                A path prefix (e.g. https://proxy/anthropic) is kept and
                endpoint paths are appended to it
            model: Default model for requests
            max_tokens: max_tokens added to every messages request
            timeout: Default per-attempt timeout in seconds
            retry_policy: Backoff policy for transient failures
            interceptors: Hooks run around every HTTP call, in this order

        Raises:
            ConfigurationError: The resulting configuration is invalid
        """
        self.config = ClientConfig.from_env(
            api_key=api_key,
            base_url=base_url,
            timeout=timeout,
            model=model,
            max_tokens=max_tokens,
        ).validate()
        self.retry_policy = retry_policy or DEFAULT_RETRY_POLICY
        self.interceptors = InterceptorChain(interceptors or ())
        # Trailing slash so relative joins keep any path prefix
        self._base_url = httpx.URL(self.config.base_url.rstrip("/") + "/")

    @property
    def base_url(self) -> str:
        return self.config.base_url

    @property
    def model(self) -> str:
        return self.config.model

    @property
    def max_tokens(self) -> int:
        return self.config.max_tokens

    @property
    def timeout(self) -> float:
        return self.config.timeout

    def _headers(self) -> Dict[str, str]:
        return {
            "x-api-key": self.config.api_key,
            "anthropic-version": API_VERSION,
            "content-type": "application/json",
            "user-agent": f"claude-messages-python/{__version__}",
        }

    def _resolve_url(self, path: str) -> httpx.URL:
        try:
            return self._base_url.join(path.lstrip("/"))
        except httpx.InvalidURL as e:
            raise ConfigurationError(f"Invalid URL path '{path}': {e}", cause=e) from e

    @staticmethod
    def _to_dict(request: Union[BaseModel, Mapping[str, Any]]) -> Dict[str, Any]:
        if isinstance(request, BaseModel):
            return request.model_dump(mode="json", exclude_none=True)
        if isinstance(request, Mapping):
            return dict(request)
        raise SerializationError(
            f"Request must be a pydantic model or a mapping, got {type(request).__name__}"
        )

    def _chat_body(
        self,
        request: Union[ChatRequest, Mapping[str, Any]],
        model: Optional[Union[str, Model]] = None,
        stream: bool = False,
    ) -> Dict[str, Any]:
        """Add model, max_tokens and (optionally) the stream flag."""
        body = self._to_dict(request)
        if isinstance(model, Model):
            model = model.value
        body["model"] = model or self.config.model
        body["max_tokens"] = self.config.max_tokens
        if stream:
            body["stream"] = True
        return body

    def _count_tokens_body(
        self,
        request: Union[CountTokensRequest, ChatRequest, Mapping[str, Any]],
    ) -> Dict[str, Any]:
        if isinstance(request, ChatRequest):
            request = CountTokensRequest.from_chat_request(request)
        body = self._to_dict(request)
        body["model"] = self.config.model
        return body

    @staticmethod
    def _encode_body(body: Optional[Dict[str, Any]]) -> Optional[bytes]:
        if body is None:
            return None
        try:
            return json.dumps(body).encode("utf-8")
        except (TypeError, ValueError) as e:
            raise SerializationError(f"Failed to serialize request body: {e}", cause=e) from e

    def _effective_timeout(self, timeout: Optional[float]) -> float:
        if timeout is None:
            return self.config.timeout
        if timeout <= 0:
            raise ConfigurationError("Timeout override must be greater than zero")
        return timeout

    def _build_request(
        self,
        method: str,
        url: httpx.URL,
        content: Optional[bytes],
        timeout: float,
    ) -> httpx.Request:
        return self._client.build_request(
            method,
            url,
            content=content,
            headers=self._headers(),
            timeout=httpx.Timeout(timeout, connect=min(timeout, CONNECT_TIMEOUT)),
        )

    @staticmethod
    def _transport_error(error: httpx.HTTPError, timeout: float) -> ClaudeError:
        """Map an httpx failure onto the error taxonomy."""
        if isinstance(error, httpx.TimeoutException):
            return TimeoutError(
                f"Request timed out after {timeout}s", elapsed=timeout, cause=error
            )
        if isinstance(error, httpx.ConnectError):
            return ConnectionError(f"Connection failed: {error}", cause=error)
        return TransportError(f"HTTP request failed: {error}", cause=error)

    @staticmethod
    def _raise_for_response(response: httpx.Response):
        """Raise the classified error for a non-2xx response with a read body."""
        raise_for_status(
            response.status_code,
            response.text,
            extract_request_id(response.headers),
        )

    @staticmethod
    def _parse_response(
        response: httpx.Response,
        response_model: Optional[Type[M]],
    ) -> Union[M, Any]:
        request_id = extract_request_id(response.headers)
        try:
            if response_model is None:
                return response.json()
            return response_model.model_validate_json(response.content)
        except (ValidationError, ValueError) as e:
            raise InvalidResponseError(
                f"Failed to parse JSON response: {e}",
                status_code=response.status_code,
                request_id=request_id,
                cause=e,
            ) from e

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(base_url={self.base_url!r}, model={self.model!r})"
