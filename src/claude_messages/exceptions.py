"""
Claude Messages - Exceptions

Closed exception hierarchy for every failure the client can report.
All exceptions inherit from ClaudeError, which exposes the retry and
categorization queries the execution engine relies on.
"""

import json
from enum import Enum
from typing import Optional, Dict, Any, Mapping


# Advisory retry delays (seconds)
SERVER_ERROR_RETRY_DELAY = 1.0
NETWORK_ERROR_RETRY_DELAY = 0.5

REQUEST_ID_HEADERS = ("request-id", "x-request-id")


class ErrorKind(str, Enum):
    """The fixed set of failure kinds."""
    TRANSPORT = "transport"
    API_STATUS = "api_status"
    AUTHENTICATION = "authentication"
    RATE_LIMIT = "rate_limit"
    TIMEOUT = "timeout"
    INVALID_REQUEST = "invalid_request"
    INVALID_RESPONSE = "invalid_response"
    SERIALIZATION = "serialization"
    CONFIGURATION = "configuration"
    STREAM = "stream"


class ErrorCategory(str, Enum):
    """Coarse grouping of error kinds for handling decisions."""
    NETWORK = "network"
    AUTH = "auth"
    RATE_LIMIT = "rate_limit"
    CONFIG = "config"
    REQUEST = "request"
    SERVER = "server"
    PROCESSING = "processing"
    STREAM = "stream"


class ClaudeError(Exception):
    """Base exception for all Claude Messages errors.

    Catch this to handle any client error. Every subclass carries a single
    ErrorKind and answers is_retryable(), category and retry_delay.

    Example:
        >>> try:
        ...     response = client.execute_chat(request)
        ... except ClaudeError as e:
        ...     if e.is_retryable():
        ...         print(f"transient failure, retry in {e.retry_delay}s")
    """

    kind: ErrorKind

    def __init__(
        self,
        message: str,
        *,
        status_code: Optional[int] = None,
        request_id: Optional[str] = None,
        response_body: Optional[Dict[str, Any]] = None,
        cause: Optional[BaseException] = None,
    ):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.request_id = request_id
        self.response_body = response_body
        self.cause = cause

    def is_retryable(self) -> bool:
        """Whether the execution engine may retry after this error."""
        return False

    @property
    def category(self) -> ErrorCategory:
        raise NotImplementedError

    @property
    def retry_delay(self) -> Optional[float]:
        """Suggested wait in seconds, or None. Advisory only."""
        return None

    def is_client_error(self) -> bool:
        return False

    def is_server_error(self) -> bool:
        return False

    def is_network_error(self) -> bool:
        return self.category is ErrorCategory.NETWORK

    def is_auth_error(self) -> bool:
        return self.category is ErrorCategory.AUTH

    def is_rate_limit_error(self) -> bool:
        return self.category is ErrorCategory.RATE_LIMIT

    def user_message(self) -> str:
        """A human readable description including the request id."""
        text = f"{self.kind.value.replace('_', ' ').capitalize()} error: {self.message}"
        if self.request_id:
            text += f" (request id: {self.request_id})"
        return text

    def __str__(self) -> str:
        parts = [self.message]
        if self.status_code:
            parts.append(f"(status: {self.status_code})")
        return " ".join(parts)

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}({self.message!r}, "
            f"status_code={self.status_code}, request_id={self.request_id!r})"
        )


# ============================================================================
# Network Errors
# ============================================================================

class TransportError(ClaudeError):
    """The request never produced an HTTP response.

    Covers connection failures, protocol errors and interceptor failures.
    Always retryable.
    """

    kind = ErrorKind.TRANSPORT

    def is_retryable(self) -> bool:
        return True

    @property
    def category(self) -> ErrorCategory:
        return ErrorCategory.NETWORK

    @property
    def retry_delay(self) -> Optional[float]:
        return NETWORK_ERROR_RETRY_DELAY


class ConnectionError(TransportError):
    """Failed to connect to the API server.

    Common causes:
    - Wrong base URL
    - DNS or network issues
    - Firewall blocking connection
    """
    pass


class InterceptorError(TransportError):
    """A before/after hook of a request interceptor raised.

    Retried exactly like any other transport failure.
    """

    def __init__(self, message: str, *, interceptor: Optional[str] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.interceptor = interceptor


class TimeoutError(ClaudeError):
    """A single attempt exceeded its timeout.

    Attributes:
        elapsed: The timeout (seconds) that bounded the attempt
    """

    kind = ErrorKind.TIMEOUT

    def __init__(self, message: str, *, elapsed: Optional[float] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.elapsed = elapsed

    def is_retryable(self) -> bool:
        return True

    @property
    def category(self) -> ErrorCategory:
        return ErrorCategory.NETWORK

    @property
    def retry_delay(self) -> Optional[float]:
        return NETWORK_ERROR_RETRY_DELAY


# ============================================================================
# API Errors
# ============================================================================

class APIStatusError(ClaudeError):
    """The API answered with a status that has no dedicated exception.

    Server errors (5xx) are retryable, everything else is not.

    Attributes:
        error_type: The `error.type` field of the response body, if any
    """

    kind = ErrorKind.API_STATUS

    def __init__(
        self,
        message: str,
        *,
        status_code: int,
        error_type: Optional[str] = None,
        **kwargs
    ):
        super().__init__(message, status_code=status_code, **kwargs)
        self.error_type = error_type

    def is_retryable(self) -> bool:
        return self.is_server_error()

    def is_client_error(self) -> bool:
        return 400 <= self.status_code < 500

    def is_server_error(self) -> bool:
        return 500 <= self.status_code < 600

    @property
    def category(self) -> ErrorCategory:
        if self.is_client_error():
            if self.status_code in (401, 403):
                return ErrorCategory.AUTH
            if self.status_code == 429:
                return ErrorCategory.RATE_LIMIT
            return ErrorCategory.REQUEST
        return ErrorCategory.SERVER

    @property
    def retry_delay(self) -> Optional[float]:
        if self.is_server_error():
            return SERVER_ERROR_RETRY_DELAY
        return None

    def __str__(self) -> str:
        base = f"API error {self.status_code}: {self.message}"
        if self.error_type:
            base += f" [{self.error_type}]"
        return base


class AuthenticationError(ClaudeError):
    """Authentication failed - invalid API key or access forbidden (401/403)."""

    kind = ErrorKind.AUTHENTICATION

    @property
    def category(self) -> ErrorCategory:
        return ErrorCategory.AUTH

    def is_client_error(self) -> bool:
        return True


class RateLimitError(ClaudeError):
    """Rate limit exceeded - too many requests (429).

    Attributes:
        retry_after: Seconds the server asked us to wait (if provided)
    """

    kind = ErrorKind.RATE_LIMIT

    def __init__(
        self,
        message: str = "Rate limit exceeded",
        *,
        retry_after: Optional[float] = None,
        **kwargs
    ):
        super().__init__(message, **kwargs)
        self.retry_after = retry_after

    def is_retryable(self) -> bool:
        return True

    @property
    def category(self) -> ErrorCategory:
        return ErrorCategory.RATE_LIMIT

    @property
    def retry_delay(self) -> Optional[float]:
        return self.retry_after

    def __str__(self) -> str:
        base = super().__str__()
        if self.retry_after is not None:
            return f"{base} (retry after {self.retry_after}s)"
        return base


class InvalidRequestError(ClaudeError):
    """The request was rejected as malformed (400, 404, 422)."""

    kind = ErrorKind.INVALID_REQUEST

    @property
    def category(self) -> ErrorCategory:
        return ErrorCategory.REQUEST

    def is_client_error(self) -> bool:
        return True


# ============================================================================
# Processing Errors
# ============================================================================

class InvalidResponseError(ClaudeError):
    """A successful response body did not match the expected shape."""

    kind = ErrorKind.INVALID_RESPONSE

    @property
    def category(self) -> ErrorCategory:
        return ErrorCategory.PROCESSING


class SerializationError(ClaudeError):
    """A payload or stream event could not be encoded or decoded."""

    kind = ErrorKind.SERIALIZATION

    @property
    def category(self) -> ErrorCategory:
        return ErrorCategory.PROCESSING


class ConfigurationError(ClaudeError):
    """Invalid client setup or parameters."""

    kind = ErrorKind.CONFIGURATION

    @property
    def category(self) -> ErrorCategory:
        return ErrorCategory.CONFIG

    def is_client_error(self) -> bool:
        return True


class StreamError(ClaudeError):
    """The event stream failed or ended without a usable response."""

    kind = ErrorKind.STREAM

    @property
    def category(self) -> ErrorCategory:
        return ErrorCategory.STREAM


# ============================================================================
# Utility Functions
# ============================================================================

def extract_request_id(headers: Mapping[str, str]) -> Optional[str]:
    """Return the request id header, checking both accepted names."""
    for name in REQUEST_ID_HEADERS:
        value = headers.get(name)
        if value:
            return value
    return None


def _parse_error_body(body: str) -> Optional[Dict[str, Any]]:
    try:
        data = json.loads(body)
    except (json.JSONDecodeError, TypeError):
        return None
    return data if isinstance(data, dict) else None


def extract_retry_after(response_body: Optional[Dict[str, Any]]) -> Optional[float]:
    """Read `retry_after` seconds from a parsed 429 body."""
    if not response_body:
        return None

    error = response_body.get("error")
    candidates = []
    if isinstance(error, dict):
        candidates.append(error.get("retry_after"))
    candidates.append(response_body.get("retry_after"))

    for value in candidates:
        if value is None or isinstance(value, bool):
            continue
        try:
            return float(value)
        except (TypeError, ValueError):
            continue
    return None


def raise_for_status(
    status_code: int,
    body: str = "",
    request_id: Optional[str] = None,
):
    """Raise the exception matching an HTTP status code.

    Args:
        status_code: HTTP status code
        body: Raw response body text
        request_id: Request id from the response headers (if any)

    Raises:
        Appropriate ClaudeError subclass for any non-2xx status
    """
    if 200 <= status_code < 300:
        return

    # Try to extract error message from response
    response_body = _parse_error_body(body)
    error_type = None

    if response_body is not None:
        error = response_body.get("error")
        message = "Unknown error"
        if isinstance(error, dict):
            if isinstance(error.get("message"), str):
                message = error["message"]
            if isinstance(error.get("type"), str):
                error_type = error["type"]
    else:
        message = body

    common = dict(
        status_code=status_code,
        request_id=request_id,
        response_body=response_body,
    )

    # Map status codes to exceptions
    if status_code == 401:
        raise AuthenticationError(f"Invalid API key: {message}", **common)

    elif status_code == 403:
        raise AuthenticationError(f"Access forbidden: {message}", **common)

    elif status_code == 429:
        raise RateLimitError(
            message,
            retry_after=extract_retry_after(response_body),
            **common,
        )

    elif status_code == 400:
        raise InvalidRequestError(message, **common)

    elif status_code == 404:
        raise InvalidRequestError(f"Resource not found: {message}", **common)

    elif status_code == 422:
        raise InvalidRequestError(f"Validation error: {message}", **common)

    else:
        raise APIStatusError(message, error_type=error_type, **common)
