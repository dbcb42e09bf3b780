"""
Claude Messages - Streaming

Parses server-sent events into typed StreamEvents and folds them into a
complete ChatResponse with MessageAccumulator.
"""

import json
import logging
from enum import Enum
from typing import (
    AsyncIterable, AsyncIterator, Dict, Iterable, Iterator, List, Optional,
)

import httpx
from pydantic import TypeAdapter, ValidationError

from .exceptions import SerializationError, StreamError, extract_request_id
from .models import (
    ChatResponse, ContentBlock, TextBlock, ThinkingBlock, ToolUseBlock,
    StreamEvent, MessageStartEvent, ContentBlockStartEvent,
    ContentBlockDeltaEvent, ContentBlockStopEvent, MessageDeltaEvent,
    MessageStopEvent, TextDelta, ThinkingDelta, InputJSONDelta, SignatureDelta,
)

logger = logging.getLogger(__name__)

_stream_event_adapter = TypeAdapter(StreamEvent)

# Event types that carry no state
IGNORED_EVENT_TYPES = frozenset({"ping"})


# ============================================================================
# SSE Parsing
# ============================================================================

def parse_event(data: str) -> Optional[StreamEvent]:
    """Decode one SSE data payload.

    Returns None for keep-alive events.

    Raises:
        StreamError: The server sent an `error` event
        SerializationError: The payload is not a known event
    """
    try:
        payload = json.loads(data)
    except json.JSONDecodeError as e:
        raise SerializationError(f"Invalid JSON in stream event: {e}", cause=e) from e

    if not isinstance(payload, dict):
        raise SerializationError(f"Stream event is not an object: {data[:100]}")

    event_type = payload.get("type")
    if event_type in IGNORED_EVENT_TYPES:
        return None

    if event_type == "error":
        error = payload.get("error") or {}
        message = error.get("message", "Unknown stream error") if isinstance(error, dict) else str(error)
        raise StreamError(f"Server reported stream error: {message}", response_body=payload)

    try:
        return _stream_event_adapter.validate_python(payload)
    except ValidationError as e:
        raise SerializationError(
            f"Unrecognized stream event {event_type!r}: {e}",
            response_body=payload,
            cause=e,
        ) from e


def iter_sse_events(lines: Iterable[str]) -> Iterator[StreamEvent]:
    """Turn SSE lines into StreamEvents, one per `data:` line."""
    for line in lines:
        if not line or not line.startswith("data:"):
            continue

        data = line[5:].strip()
        if data == "[DONE]":
            break

        event = parse_event(data)
        if event is not None:
            yield event


async def aiter_sse_events(lines: AsyncIterable[str]) -> AsyncIterator[StreamEvent]:
    """Async variant of iter_sse_events."""
    async for line in lines:
        if not line or not line.startswith("data:"):
            continue

        data = line[5:].strip()
        if data == "[DONE]":
            break

        event = parse_event(data)
        if event is not None:
            yield event


# ============================================================================
# Accumulator
# ============================================================================

class AccumulatorState(str, Enum):
    EMPTY = "empty"
    ACCUMULATING = "accumulating"
    FINALIZED = "finalized"


class MessageAccumulator:
    """Folds an ordered sequence of StreamEvents into one ChatResponse.

    States move EMPTY -> ACCUMULATING (message_start) -> FINALIZED
    (message_stop). A new message_start restarts accumulation.

    Example:
        >>> acc = MessageAccumulator()
        >>> for event in stream:
        ...     acc.apply(event)
        ...     render(acc.message)  # partial progress
        >>> response = acc.finalize()
    """

    def __init__(self):
        self._message: Optional[ChatResponse] = None
        self._content: List[ContentBlock] = []
        self._partial_json: Dict[int, str] = {}
        self._state = AccumulatorState.EMPTY
        self._final: Optional[ChatResponse] = None

    @property
    def state(self) -> AccumulatorState:
        return self._state

    @property
    def content(self) -> List[ContentBlock]:
        """Snapshot of the content blocks assembled so far."""
        return list(self._content)

    @property
    def message(self) -> Optional[ChatResponse]:
        """Snapshot of the in-progress message, or None before message_start.

        Tool inputs whose JSON is still incomplete are left as they were.
        """
        if self._final is not None:
            return self._final
        if self._message is None:
            return None
        return self._message.model_copy(
            update={"content": self._materialize(strict=False)}
        )

    def apply(self, event: StreamEvent):
        """Apply one event.

        Raises:
            StreamError: The event is not valid in the current state
        """
        if isinstance(event, MessageStartEvent):
            self._message = event.message
            self._content = []
            self._partial_json = {}
            self._final = None
            self._state = AccumulatorState.ACCUMULATING
            return

        if self._state is AccumulatorState.EMPTY:
            raise StreamError(f"Received {event.type} before message_start")
        if self._state is AccumulatorState.FINALIZED:
            raise StreamError(f"Received {event.type} after message_stop")

        if isinstance(event, ContentBlockStartEvent):
            self._ensure_index(event.index)
            self._content[event.index] = event.content_block
            self._partial_json.pop(event.index, None)

        elif isinstance(event, ContentBlockDeltaEvent):
            self._ensure_index(event.index)
            self._apply_delta(event.index, event.delta)

        elif isinstance(event, ContentBlockStopEvent):
            pass

        elif isinstance(event, MessageDeltaEvent):
            self._apply_message_delta(event)

        elif isinstance(event, MessageStopEvent):
            self._final = self._message.model_copy(
                update={"content": self._materialize(strict=True)}
            )
            self._state = AccumulatorState.FINALIZED

        else:
            raise StreamError(f"Unsupported stream event: {event!r}")

    def finalize(self) -> ChatResponse:
        """Return the accumulated message once the input has ended.

        A message that never received message_stop is returned as-is with
        the content assembled so far.

        Raises:
            StreamError: No message_start was ever seen
        """
        if self._state is AccumulatorState.FINALIZED:
            return self._final

        if self._state is AccumulatorState.ACCUMULATING:
            logger.warning(
                f"Stream for message {self._message.id} ended without message_stop; "
                f"returning {len(self._content)} content block(s) received so far"
            )
            return self._message.model_copy(
                update={"content": self._materialize(strict=False)}
            )

        raise StreamError("Stream ended without producing a complete response")

    def _ensure_index(self, index: int):
        while len(self._content) <= index:
            self._content.append(TextBlock(text=""))

    def _apply_delta(self, index: int, delta):
        block = self._content[index]

        if isinstance(delta, TextDelta):
            # Non-text blocks are replaced by a fresh text block
            if isinstance(block, TextBlock):
                self._content[index] = block.model_copy(update={"text": block.text + delta.text})
            else:
                self._content[index] = TextBlock(text=delta.text)

        elif isinstance(delta, ThinkingDelta):
            if isinstance(block, ThinkingBlock):
                self._content[index] = block.model_copy(
                    update={"thinking": block.thinking + delta.thinking}
                )
            else:
                self._content[index] = ThinkingBlock(thinking=delta.thinking)

        elif isinstance(delta, SignatureDelta):
            if isinstance(block, ThinkingBlock):
                self._content[index] = block.model_copy(update={"signature": delta.signature})
            else:
                self._content[index] = ThinkingBlock(thinking="", signature=delta.signature)

        elif isinstance(delta, InputJSONDelta):
            if not isinstance(block, ToolUseBlock):
                raise StreamError(
                    f"input_json_delta for block {index} which is {block.type}, not tool_use"
                )
            self._partial_json[index] = self._partial_json.get(index, "") + delta.partial_json

    def _apply_message_delta(self, event: MessageDeltaEvent):
        update = {}
        delta = event.delta
        if delta.stop_reason is not None:
            update["stop_reason"] = delta.stop_reason
        if delta.stop_sequence is not None:
            update["stop_sequence"] = delta.stop_sequence

        for usage in (delta.usage, event.usage):
            if usage is not None:
                current = update.get("usage", self._message.usage)
                update["usage"] = current.model_copy(
                    update=usage.model_dump(exclude_unset=True)
                )

        if update:
            self._message = self._message.model_copy(update=update)

    def _materialize(self, strict: bool) -> List[ContentBlock]:
        content = list(self._content)
        for index, raw in self._partial_json.items():
            if not raw.strip():
                continue
            try:
                tool_input = json.loads(raw)
            except json.JSONDecodeError as e:
                if strict:
                    raise SerializationError(
                        f"Invalid tool input JSON for block {index}: {e}", cause=e
                    ) from e
                continue
            if not isinstance(tool_input, dict):
                if strict:
                    raise SerializationError(
                        f"Tool input for block {index} must be a JSON object, "
                        f"got {type(tool_input).__name__}"
                    )
                continue
            if isinstance(content[index], ToolUseBlock):
                content[index] = content[index].model_copy(update={"input": tool_input})
        return content


def accumulate(events: Iterable[StreamEvent]) -> ChatResponse:
    """Consume an event sequence and return the complete message."""
    accumulator = MessageAccumulator()
    for event in events:
        accumulator.apply(event)
    return accumulator.finalize()


async def aaccumulate(events: AsyncIterable[StreamEvent]) -> ChatResponse:
    """Consume an async event sequence and return the complete message."""
    accumulator = MessageAccumulator()
    async for event in events:
        accumulator.apply(event)
    return accumulator.finalize()


# ============================================================================
# Message Streams
# ============================================================================

class MessageStream:
    """A live streaming response.

    Iterating yields StreamEvents while feeding them into an internal
    accumulator, so `snapshot` always reflects what was consumed so far.
    Closing the stream (or leaving the `with` block) releases the connection.

    Example:
        >>> with client.stream_chat(request) as stream:
        ...     for text in stream.text_stream:
        ...         print(text, end="", flush=True)
        ...     final = stream.get_final_message()
    """

    def __init__(self, response: httpx.Response):
        self.response = response
        self.request_id = extract_request_id(response.headers)
        self._accumulator = MessageAccumulator()
        self._iterator = self._iter_events()

    def _iter_events(self) -> Iterator[StreamEvent]:
        try:
            for event in iter_sse_events(self.response.iter_lines()):
                self._accumulator.apply(event)
                yield event
        except httpx.HTTPError as e:
            raise StreamError(
                f"Stream interrupted: {e}", request_id=self.request_id, cause=e
            ) from e
        finally:
            self.response.close()

    def __iter__(self) -> Iterator[StreamEvent]:
        return self._iterator

    def __next__(self) -> StreamEvent:
        return next(self._iterator)

    @property
    def snapshot(self) -> Optional[ChatResponse]:
        """The partial message built from the events consumed so far."""
        return self._accumulator.message

    @property
    def text_stream(self) -> Iterator[str]:
        """Yield only the text of text deltas."""
        for event in self:
            if isinstance(event, ContentBlockDeltaEvent) and isinstance(event.delta, TextDelta):
                yield event.delta.text

    def get_final_message(self) -> ChatResponse:
        """Drain the remaining events and return the accumulated message."""
        for _ in self:
            pass
        return self._accumulator.finalize()

    def close(self):
        self._iterator.close()
        self.response.close()

    def __enter__(self) -> "MessageStream":
        return self

    def __exit__(self, *args):
        self.close()


class AsyncMessageStream:
    """Async counterpart of MessageStream.

    Example:
        >>> async with await client.stream_chat(request) as stream:
        ...     async for text in stream.text_stream:
        ...         print(text, end="")
    """

    def __init__(self, response: httpx.Response):
        self.response = response
        self.request_id = extract_request_id(response.headers)
        self._accumulator = MessageAccumulator()
        self._iterator = self._iter_events()

    async def _iter_events(self) -> AsyncIterator[StreamEvent]:
        try:
            async for event in aiter_sse_events(self.response.aiter_lines()):
                self._accumulator.apply(event)
                yield event
        except httpx.HTTPError as e:
            raise StreamError(
                f"Stream interrupted: {e}", request_id=self.request_id, cause=e
            ) from e
        finally:
            await self.response.aclose()

    def __aiter__(self) -> AsyncIterator[StreamEvent]:
        return self._iterator

    async def __anext__(self) -> StreamEvent:
        return await self._iterator.__anext__()

    @property
    def snapshot(self) -> Optional[ChatResponse]:
        return self._accumulator.message

    @property
    def text_stream(self) -> AsyncIterator[str]:
        return self._text_stream()

    async def _text_stream(self) -> AsyncIterator[str]:
        async for event in self:
            if isinstance(event, ContentBlockDeltaEvent) and isinstance(event.delta, TextDelta):
                yield event.delta.text

    async def get_final_message(self) -> ChatResponse:
        async for _ in self:
            pass
        return self._accumulator.finalize()

    async def close(self):
        await self._iterator.aclose()
        await self.response.aclose()

    async def __aenter__(self) -> "AsyncMessageStream":
        return self

    async def __aexit__(self, *args):
        await self.close()
