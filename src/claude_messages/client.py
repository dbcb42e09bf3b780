"""
Claude Messages - Synchronous Client

Executes Messages API calls with automatic retry, interceptors and
streaming reconstruction.
"""

import logging
from typing import Any, Dict, Iterable, Mapping, Optional, Type, TypeVar, Union

import httpx
from pydantic import BaseModel

from ._base_client import BaseClaudeClient, COUNT_TOKENS_PATH, MESSAGES_PATH
from .interceptors import RequestInterceptor
from .models import ChatRequest, ChatResponse, CountTokensRequest, Model, TokenCount
from .retry import RetryPolicy, retry_sync
from .streaming import MessageStream

logger = logging.getLogger(__name__)

M = TypeVar("M", bound=BaseModel)


class ClaudeClient(BaseClaudeClient):
    """Synchronous client for the Messages API.

    Features:
    - Automatic retry with geometric backoff
    - Before/after/on-error interceptors
    - Per-call timeout overrides
    - Streaming with full message reconstruction

    Example:
        >>> client = ClaudeClient(api_key="sk-ant-...")
        >>> request = ChatRequest(messages=[MessageParam.user("Hello, Claude!")])
        >>> response = client.execute_chat(request)
        >>> print(response.text)

        # Streaming
        >>> with client.stream_chat(request) as stream:
        ...     for text in stream.text_stream:
        ...         print(text, end="", flush=True)
    """

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
        http_client: Optional[httpx.Client] = None,
    ):
        super().__init__(
            api_key,
            base_url=base_url,
            model=model,
            max_tokens=max_tokens,
            timeout=timeout,
            retry_policy=retry_policy,
            interceptors=interceptors,
        )
        # A caller-supplied client is left open on close()
        self._owns_client = http_client is None
        self._client = http_client or httpx.Client(follow_redirects=True)

    def _send(self, request: httpx.Request, timeout: float, stream: bool = False) -> httpx.Response:
        """One attempt: interceptors, transport, status classification."""
        self.interceptors.before_request(request)

        try:
            response = self._client.send(request, stream=stream)
        except httpx.HTTPError as e:
            raise self._transport_error(e, timeout) from e

        try:
            self.interceptors.after_response(response)
            if not response.is_success:
                if stream:
                    try:
                        response.read()
                    except httpx.HTTPError as e:
                        raise self._transport_error(e, timeout) from e
                self._raise_for_response(response)
        except BaseException:
            response.close()
            raise

        return response

    def execute(
        self,
        method: str,
        path: str,
        body: Optional[Dict[str, Any]] = None,
        *,
        response_model: Optional[Type[M]] = None,
        timeout: Optional[float] = None,
    ) -> Union[M, Any]:
        """Execute one logical request with retry.

        Args:
            method: HTTP method
            path: Endpoint path joined onto the base URL
            body: JSON-serializable payload (None for no body)
            response_model: Pydantic model for the 2xx body; raw JSON if None
            timeout: Per-attempt timeout override in seconds

        Raises:
            ClaudeError: The non-retryable or final error, unchanged
        """
        url = self._resolve_url(path)
        content = self._encode_body(body)
        effective_timeout = self._effective_timeout(timeout)

        @retry_sync(self.retry_policy, on_error=self.interceptors.on_error)
        def send_once():
            request = self._build_request(method, url, content, effective_timeout)
            response = self._send(request, effective_timeout)
            return self._parse_response(response, response_model)

        return send_once()

    def execute_chat(
        self,
        request: Union[ChatRequest, Mapping[str, Any]],
        *,
        model: Optional[Union[str, Model]] = None,
        timeout: Optional[float] = None,
    ) -> ChatResponse:
        """Send a messages request and return the complete response.

        Args:
            request: Request body without model/max_tokens
            model: Override the client's default model
            timeout: Per-attempt timeout override in seconds
        """
        return self.execute(
            "POST",
            MESSAGES_PATH,
            self._chat_body(request, model),
            response_model=ChatResponse,
            timeout=timeout,
        )

    def stream_chat(
        self,
        request: Union[ChatRequest, Mapping[str, Any]],
        *,
        model: Optional[Union[str, Model]] = None,
        timeout: Optional[float] = None,
    ) -> MessageStream:
        """Open a streaming messages request.

        Only establishing the connection is retried; failures after the
        first event surface from the stream as StreamError.

        Example:
            >>> with client.stream_chat(request) as stream:
            ...     final = stream.get_final_message()
        """
        url = self._resolve_url(MESSAGES_PATH)
        content = self._encode_body(self._chat_body(request, model, stream=True))
        effective_timeout = self._effective_timeout(timeout)

        @retry_sync(self.retry_policy, on_error=self.interceptors.on_error)
        def connect_once() -> httpx.Response:
            http_request = self._build_request("POST", url, content, effective_timeout)
            return self._send(http_request, effective_timeout, stream=True)

        return MessageStream(connect_once())

    def count_tokens(
        self,
        request: Union[CountTokensRequest, ChatRequest, Mapping[str, Any]],
        *,
        timeout: Optional[float] = None,
    ) -> TokenCount:
        """Count the input tokens of a request with the default model."""
        return self.execute(
            "POST",
            COUNT_TOKENS_PATH,
            self._count_tokens_body(request),
            response_model=TokenCount,
            timeout=timeout,
        )

    def close(self):
        """Close the HTTP client if this client created it."""
        if self._owns_client:
            self._client.close()

    def __enter__(self):
        return self

    def __exit__(self, *args):
        self.close()
