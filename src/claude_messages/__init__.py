"""
Claude Messages - Python client for the Messages API

Request execution with retry and interceptors, plus reconstruction of
complete responses from streamed events.

Example:
    >>> from claude_messages import ClaudeClient, ChatRequest, MessageParam
    >>>
    >>> client = ClaudeClient()
    >>> request = ChatRequest(messages=[MessageParam.user("Hello, Claude!")])
    >>> response = client.execute_chat(request)
    >>> print(response.text)

Async Example:
    >>> from claude_messages import AsyncClaudeClient
    >>>
    >>> async with AsyncClaudeClient() as client:
    ...     response = await client.execute_chat(request)
    ...     print(response.text)
"""

__version__ = "1.0.0"

# Core clients
from .client import ClaudeClient
from .async_client import AsyncClaudeClient

# Configuration
from .config import ClientConfig

# Data models
from .models import (
    # Content blocks
    TextBlock,
    ThinkingBlock,
    ToolUseBlock,
    ToolResultBlock,
    ImageBlock,
    ContentBlock,
    # Requests
    MessageParam,
    ChatRequest,
    CountTokensRequest,
    Role,
    Model,
    # Responses
    ChatResponse,
    TokenCount,
    Usage,
    StopReason,
    # Streaming
    StreamEvent,
    MessageStartEvent,
    ContentBlockStartEvent,
    ContentBlockDeltaEvent,
    ContentBlockStopEvent,
    MessageDeltaEvent,
    MessageStopEvent,
    MessageDelta,
    TextDelta,
    ThinkingDelta,
    InputJSONDelta,
    SignatureDelta,
)

# Streaming
from .streaming import (
    MessageAccumulator,
    AccumulatorState,
    MessageStream,
    AsyncMessageStream,
    accumulate,
    aaccumulate,
)

# Interceptors
from .interceptors import (
    RequestInterceptor,
    InterceptorChain,
    LoggingInterceptor,
    MetricsInterceptor,
)

# Exceptions
from .exceptions import (
    ClaudeError,
    ErrorKind,
    ErrorCategory,
    # Network
    TransportError,
    ConnectionError,
    InterceptorError,
    TimeoutError,
    # API
    APIStatusError,
    AuthenticationError,
    RateLimitError,
    InvalidRequestError,
    # Processing
    InvalidResponseError,
    SerializationError,
    ConfigurationError,
    StreamError,
)

# Retry configuration
from .retry import (
    RetryPolicy,
    DEFAULT_RETRY_POLICY,
    NO_RETRY_POLICY,
)


__all__ = [
    # Version
    "__version__",

    # Clients
    "ClaudeClient",
    "AsyncClaudeClient",
    "ClientConfig",

    # Content blocks
    "TextBlock",
    "ThinkingBlock",
    "ToolUseBlock",
    "ToolResultBlock",
    "ImageBlock",
    "ContentBlock",

    # Requests
    "MessageParam",
    "ChatRequest",
    "CountTokensRequest",
    "Role",
    "Model",

    # Responses
    "ChatResponse",
    "TokenCount",
    "Usage",
    "StopReason",

    # Streaming
    "StreamEvent",
    "MessageStartEvent",
    "ContentBlockStartEvent",
    "ContentBlockDeltaEvent",
    "ContentBlockStopEvent",
    "MessageDeltaEvent",
    "MessageStopEvent",
    "MessageDelta",
    "TextDelta",
    "ThinkingDelta",
    "InputJSONDelta",
    "SignatureDelta",
    "MessageAccumulator",
    "AccumulatorState",
    "MessageStream",
    "AsyncMessageStream",
    "accumulate",
    "aaccumulate",

    # Interceptors
    "RequestInterceptor",
    "InterceptorChain",
    "LoggingInterceptor",
    "MetricsInterceptor",

    # Exceptions
    "ClaudeError",
    "ErrorKind",
    "ErrorCategory",
    "TransportError",
    "ConnectionError",
    "InterceptorError",
    "TimeoutError",
    "APIStatusError",
    "AuthenticationError",
    "RateLimitError",
    "InvalidRequestError",
    "InvalidResponseError",
    "SerializationError",
    "ConfigurationError",
    "StreamError",

    # Retry
    "RetryPolicy",
    "DEFAULT_RETRY_POLICY",
    "NO_RETRY_POLICY",
]
