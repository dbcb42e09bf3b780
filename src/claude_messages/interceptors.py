"""
Claude Messages - Request Interceptors

Pluggable observers invoked around every outbound HTTP call. Interceptors
are shared by all concurrent calls of a client, so any state they keep must
be guarded internally.
"""

import json
import logging
import threading
from collections import Counter
from typing import Any, Dict, Iterable, Optional, Tuple

import httpx

from .exceptions import ClaudeError, InterceptorError

logger = logging.getLogger(__name__)

REDACTED_HEADERS = frozenset({"x-api-key", "authorization"})


class RequestInterceptor:
    """Base class for interceptors. Override only the hooks you need.

    before_request and after_response may raise to fail the current attempt;
    the engine then treats the attempt like a transport failure. on_error is
    purely observational.
    """

    def before_request(self, request: httpx.Request) -> None:
        pass

    def after_response(self, response: httpx.Response) -> None:
        pass

    def on_error(self, error: ClaudeError) -> None:
        pass


class InterceptorChain:
    """Ordered, immutable collection of interceptors.

    Before and after hooks both run in registration order.
    """

    def __init__(self, interceptors: Iterable[RequestInterceptor] = ()):
        self._interceptors: Tuple[RequestInterceptor, ...] = tuple(interceptors)

    @property
    def interceptors(self) -> Tuple[RequestInterceptor, ...]:
        return self._interceptors

    def __len__(self) -> int:
        return len(self._interceptors)

    def __iter__(self):
        return iter(self._interceptors)

    def before_request(self, request: httpx.Request):
        """Run every before hook; a raising hook aborts the attempt.

        Raises:
            InterceptorError: after every on_error hook has seen it
        """
        for interceptor in self._interceptors:
            try:
                interceptor.before_request(request)
            except Exception as e:
                self._fail(interceptor, "before_request", e)

    def after_response(self, response: httpx.Response):
        """Run every after hook in registration order."""
        for interceptor in self._interceptors:
            try:
                interceptor.after_response(response)
            except Exception as e:
                self._fail(interceptor, "after_response", e)

    def on_error(self, error: ClaudeError):
        """Report an error to every interceptor.

        A raising on_error hook is logged and does not stop the others.
        """
        for interceptor in self._interceptors:
            try:
                interceptor.on_error(error)
            except Exception:
                logger.exception(
                    f"Interceptor {type(interceptor).__name__}.on_error raised"
                )

    def _fail(self, interceptor: RequestInterceptor, hook: str, cause: Exception):
        name = type(interceptor).__name__
        error = InterceptorError(
            f"Interceptor {name}.{hook} failed: {cause}",
            interceptor=name,
            cause=cause,
        )
        self.on_error(error)
        raise error from cause

    def __repr__(self) -> str:
        names = ", ".join(type(i).__name__ for i in self._interceptors)
        return f"InterceptorChain([{names}])"


class LoggingInterceptor(RequestInterceptor):
    """Writes request/response diagnostics through the logging module.

    Example:
        >>> client = ClaudeClient(interceptors=[LoggingInterceptor.verbose()])
    """

    def __init__(
        self,
        *,
        log_requests: bool = False,
        log_responses: bool = False,
        log_headers: bool = False,
        log_body: bool = False,
        log_errors: bool = False,
        logger: Optional[logging.Logger] = None,
    ):
        self.log_requests = log_requests
        self.log_responses = log_responses
        self.log_headers = log_headers
        self.log_body = log_body
        self.log_errors = log_errors
        self.logger = logger or logging.getLogger(__name__)

        self._lock = threading.Lock()
        self._request_count = 0

    @classmethod
    def verbose(cls, logger: Optional[logging.Logger] = None) -> "LoggingInterceptor":
        """An interceptor with every kind of logging enabled."""
        return cls(
            log_requests=True,
            log_responses=True,
            log_headers=True,
            log_body=True,
            log_errors=True,
            logger=logger,
        )

    @property
    def request_count(self) -> int:
        with self._lock:
            return self._request_count

    @staticmethod
    def _safe_headers(headers: httpx.Headers) -> Dict[str, str]:
        return {
            name: ("***" if name.lower() in REDACTED_HEADERS else value)
            for name, value in headers.items()
        }

    def before_request(self, request: httpx.Request) -> None:
        with self._lock:
            self._request_count += 1
            number = self._request_count

        if not self.log_requests:
            return

        self.logger.info(f"HTTP Request #{number}: {request.method} {request.url}")

        if self.log_headers:
            self.logger.debug(f"Request Headers: {self._safe_headers(request.headers)}")

        if self.log_body and request.content:
            try:
                body = json.dumps(json.loads(request.content), indent=2)
            except ValueError:
                body = "Invalid JSON"
            self.logger.debug(f"Request Body: {body}")

    def after_response(self, response: httpx.Response) -> None:
        if not self.log_responses:
            return

        self.logger.info(f"HTTP Response: {response.status_code} {response.request.url}")

        if self.log_headers:
            self.logger.debug(f"Response Headers: {self._safe_headers(response.headers)}")

        if self.log_body:
            # Streaming bodies are not read at this point
            try:
                self.logger.debug(f"Response Body: {response.text}")
            except httpx.ResponseNotRead:
                self.logger.debug("Response Body: <streaming>")

    def on_error(self, error: ClaudeError) -> None:
        if self.log_errors:
            self.logger.warning(f"Request failed [{error.kind.value}]: {error}")


class MetricsInterceptor(RequestInterceptor):
    """Counts requests, responses and errors. Safe for concurrent calls."""

    def __init__(self):
        self._lock = threading.Lock()
        self._requests = 0
        self._responses = 0
        self._errors = 0
        self._status_codes: Counter = Counter()
        self._error_kinds: Counter = Counter()

    def before_request(self, request: httpx.Request) -> None:
        with self._lock:
            self._requests += 1

    def after_response(self, response: httpx.Response) -> None:
        with self._lock:
            self._responses += 1
            self._status_codes[response.status_code] += 1

    def on_error(self, error: ClaudeError) -> None:
        with self._lock:
            self._errors += 1
            self._error_kinds[error.kind.value] += 1

    def snapshot(self) -> Dict[str, Any]:
        """Return a consistent copy of all counters."""
        with self._lock:
            return {
                "requests": self._requests,
                "responses": self._responses,
                "errors": self._errors,
                "status_codes": dict(self._status_codes),
                "error_kinds": dict(self._error_kinds),
            }

    def reset(self):
        with self._lock:
            self._requests = 0
            self._responses = 0
            self._errors = 0
            self._status_codes.clear()
            self._error_kinds.clear()
