"""
Claude Messages - Async Client

Async counterpart of ClaudeClient for asyncio applications. One instance
can serve many concurrent tasks.
"""

import logging
from typing import Any, Dict, Iterable, Mapping, Optional, Type, TypeVar, Union

import httpx
from pydantic import BaseModel

from ._base_client import BaseClaudeClient, COUNT_TOKENS_PATH, MESSAGES_PATH
from .interceptors import RequestInterceptor
from .models import ChatRequest, ChatResponse, CountTokensRequest, Model, TokenCount
from .retry import RetryPolicy, retry_async
from .streaming import AsyncMessageStream

logger = logging.getLogger(__name__)

M = TypeVar("M", bound=BaseModel)


class AsyncClaudeClient(BaseClaudeClient):
    """Async client for the Messages API.

    Example:
        >>> async with AsyncClaudeClient() as client:
        ...     response = await client.execute_chat(request)
        ...     print(response.text)

        # Streaming
        >>> stream = await client.stream_chat(request)
        >>> async with stream:
        ...     async for text in stream.text_stream:
        ...         print(text, end="")
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
        http_client: Optional[httpx.AsyncClient] = None,
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
        self._owns_client = http_client is None
        self._client = http_client or httpx.AsyncClient(follow_redirects=True)

    async def _send(
        self,
        request: httpx.Request,
        timeout: float,
        stream: bool = False,
    ) -> httpx.Response:
        """One attempt: interceptors, transport, status classification."""
        self.interceptors.before_request(request)

        try:
            response = await self._client.send(request, stream=stream)
        except httpx.HTTPError as e:
            raise self._transport_error(e, timeout) from e

        try:
            self.interceptors.after_response(response)
            if not response.is_success:
                if stream:
                    try:
                        await response.aread()
                    except httpx.HTTPError as e:
                        raise self._transport_error(e, timeout) from e
                self._raise_for_response(response)
        except BaseException:
            await response.aclose()
            raise

        return response

    async def execute(
        self,
        method: str,
        path: str,
        body: Optional[Dict[str, Any]] = None,
        *,
        response_model: Optional[Type[M]] = None,
        timeout: Optional[float] = None,
    ) -> Union[M, Any]:
        """Execute one logical request with retry.

        See ClaudeClient.execute.
        """
        url = self._resolve_url(path)
        content = self._encode_body(body)
        effective_timeout = self._effective_timeout(timeout)

        @retry_async(self.retry_policy, on_error=self.interceptors.on_error)
        async def send_once():
            request = self._build_request(method, url, content, effective_timeout)
            response = await self._send(request, effective_timeout)
            return self._parse_response(response, response_model)

        return await send_once()

    async def execute_chat(
        self,
        request: Union[ChatRequest, Mapping[str, Any]],
        *,
        model: Optional[Union[str, Model]] = None,
        timeout: Optional[float] = None,
    ) -> ChatResponse:
        """Send a messages request and return the complete response."""
        return await self.execute(
            "POST",
            MESSAGES_PATH,
            self._chat_body(request, model),
            response_model=ChatResponse,
            timeout=timeout,
        )

    async def stream_chat(
        self,
        request: Union[ChatRequest, Mapping[str, Any]],
        *,
        model: Optional[Union[str, Model]] = None,
        timeout: Optional[float] = None,
    ) -> AsyncMessageStream:
        """Open a streaming messages request, retrying only the connection."""
        url = self._resolve_url(MESSAGES_PATH)
        content = self._encode_body(self._chat_body(request, model, stream=True))
        effective_timeout = self._effective_timeout(timeout)

        @retry_async(self.retry_policy, on_error=self.interceptors.on_error)
        async def connect_once() -> httpx.Response:
            http_request = self._build_request("POST", url, content, effective_timeout)
            return await self._send(http_request, effective_timeout, stream=True)

        return AsyncMessageStream(await connect_once())

    async def count_tokens(
        self,
        request: Union[CountTokensRequest, ChatRequest, Mapping[str, Any]],
        *,
        timeout: Optional[float] = None,
    ) -> TokenCount:
        """Count the input tokens of a request with the default model."""
        return await self.execute(
            "POST",
            COUNT_TOKENS_PATH,
            self._count_tokens_body(request),
            response_model=TokenCount,
            timeout=timeout,
        )

    async def close(self):
        """Close the HTTP client if this client created it."""
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self):
        return self

    async def __aexit__(self, *args):
        await self.close()
