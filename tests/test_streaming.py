"""
Tests for SSE parsing and message accumulation.
"""

import json

import pytest

from claude_messages.exceptions import SerializationError, StreamError
from claude_messages.models import (
    ChatResponse,
    ContentBlockDeltaEvent,
    ContentBlockStartEvent,
    ContentBlockStopEvent,
    InputJSONDelta,
    MessageDelta,
    MessageDeltaEvent,
    MessageStartEvent,
    MessageStopEvent,
    SignatureDelta,
    StopReason,
    TextBlock,
    TextDelta,
    ThinkingBlock,
    ThinkingDelta,
    ToolUseBlock,
    Usage,
)
from claude_messages.streaming import (
    AccumulatorState,
    MessageAccumulator,
    accumulate,
    aaccumulate,
    iter_sse_events,
    parse_event,
)


def message_start(message_id="msg_1", input_tokens=10):
    return MessageStartEvent(message=ChatResponse(
        id=message_id,
        model="claude-3-5-sonnet-20241022",
        usage=Usage(input_tokens=input_tokens, output_tokens=1),
    ))


def text_start(index):
    return ContentBlockStartEvent(index=index, content_block=TextBlock(text=""))


def text_delta(index, text):
    return ContentBlockDeltaEvent(index=index, delta=TextDelta(text=text))


def hello_world_events():
    return [
        message_start(),
        text_start(0),
        text_delta(0, "Hello"),
        text_delta(0, " world"),
        ContentBlockStopEvent(index=0),
        MessageDeltaEvent(
            delta=MessageDelta(stop_reason=StopReason.END_TURN),
            usage=Usage(output_tokens=5),
        ),
        MessageStopEvent(),
    ]


class TestAccumulate:
    """Reconstruction of complete messages from events."""

    def test_hello_world(self):
        response = accumulate(hello_world_events())

        assert response.id == "msg_1"
        assert response.content == [TextBlock(text="Hello world")]
        assert response.text == "Hello world"
        assert response.stop_reason == StopReason.END_TURN
        assert response.usage.input_tokens == 10
        assert response.usage.output_tokens == 5

    def test_blocks_ordered_by_index(self):
        response = accumulate([
            message_start(),
            text_start(0),
            text_start(1),
            text_delta(1, "second"),
            text_delta(0, "first"),
            MessageStopEvent(),
        ])
        assert [block.text for block in response.content] == ["first", "second"]

    def test_message_start_only(self):
        response = accumulate([message_start()])
        assert response.id == "msg_1"
        assert response.content == []

    def test_no_events_raises(self):
        with pytest.raises(StreamError):
            accumulate([])

    def test_missing_index_filled_with_empty_text(self):
        response = accumulate([message_start(), text_delta(2, "late"), MessageStopEvent()])
        assert [block.text for block in response.content] == ["", "", "late"]

    def test_text_delta_replaces_non_text_block(self):
        response = accumulate([
            message_start(),
            ContentBlockStartEvent(
                index=0,
                content_block=ToolUseBlock(id="toolu_1", name="search"),
            ),
            text_delta(0, "plain"),
            MessageStopEvent(),
        ])
        assert response.content == [TextBlock(text="plain")]

    def test_thinking_deltas(self):
        response = accumulate([
            message_start(),
            ContentBlockStartEvent(index=0, content_block=ThinkingBlock(thinking="")),
            ContentBlockDeltaEvent(index=0, delta=ThinkingDelta(thinking="Let me ")),
            ContentBlockDeltaEvent(index=0, delta=ThinkingDelta(thinking="think")),
            text_start(1),
            text_delta(1, "42"),
            MessageStopEvent(),
        ])
        assert response.thinking == "Let me think"
        assert response.text == "42"

    def test_tool_input_json(self):
        response = accumulate([
            message_start(),
            ContentBlockStartEvent(
                index=0,
                content_block=ToolUseBlock(id="toolu_1", name="get_weather"),
            ),
            ContentBlockDeltaEvent(index=0, delta=InputJSONDelta(partial_json='{"loc')),
            ContentBlockDeltaEvent(index=0, delta=InputJSONDelta(partial_json='ation": "Paris"}')),
            ContentBlockStopEvent(index=0),
            MessageStopEvent(),
        ])
        assert response.has_tool_calls
        assert response.tool_calls[0].input == {"location": "Paris"}

    def test_invalid_tool_json_fails_on_stop(self):
        events = [
            message_start(),
            ContentBlockStartEvent(index=0, content_block=ToolUseBlock(id="t", name="x")),
            ContentBlockDeltaEvent(index=0, delta=InputJSONDelta(partial_json='{"broken')),
            MessageStopEvent(),
        ]
        with pytest.raises(SerializationError):
            accumulate(events)

    @pytest.mark.parametrize("raw", ["[1, 2]", '"just text"', "42"])
    def test_non_object_tool_json_fails_on_stop(self, raw):
        events = [
            message_start(),
            ContentBlockStartEvent(index=0, content_block=ToolUseBlock(id="t", name="x")),
            ContentBlockDeltaEvent(index=0, delta=InputJSONDelta(partial_json=raw)),
            MessageStopEvent(),
        ]
        with pytest.raises(SerializationError, match="must be a JSON object"):
            accumulate(events)

    def test_non_object_tool_json_left_out_of_snapshot(self):
        accumulator = MessageAccumulator()
        accumulator.apply(message_start())
        accumulator.apply(
            ContentBlockStartEvent(index=0, content_block=ToolUseBlock(id="t", name="x"))
        )
        accumulator.apply(
            ContentBlockDeltaEvent(index=0, delta=InputJSONDelta(partial_json="[1]"))
        )
        assert accumulator.message.tool_calls[0].input == {}

    def test_signature_completes_thinking_block(self):
        response = accumulate([
            message_start(),
            ContentBlockStartEvent(index=0, content_block=ThinkingBlock(thinking="")),
            ContentBlockDeltaEvent(index=0, delta=ThinkingDelta(thinking="hmm")),
            ContentBlockDeltaEvent(index=0, delta=SignatureDelta(signature="EqQB")),
            ContentBlockStopEvent(index=0),
            MessageStopEvent(),
        ])
        assert response.content == [ThinkingBlock(thinking="hmm", signature="EqQB")]

    def test_signature_replaces_non_thinking_block(self):
        response = accumulate([
            message_start(),
            text_start(0),
            ContentBlockDeltaEvent(index=0, delta=SignatureDelta(signature="EqQB")),
            MessageStopEvent(),
        ])
        assert response.content == [ThinkingBlock(thinking="", signature="EqQB")]

    def test_input_json_on_text_block_raises(self):
        accumulator = MessageAccumulator()
        accumulator.apply(message_start())
        accumulator.apply(text_start(0))
        with pytest.raises(StreamError):
            accumulator.apply(
                ContentBlockDeltaEvent(index=0, delta=InputJSONDelta(partial_json="{}"))
            )

    def test_message_delta_partial_updates(self):
        response = accumulate([
            message_start(),
            MessageDeltaEvent(delta=MessageDelta(stop_reason=StopReason.MAX_TOKENS)),
            MessageDeltaEvent(delta=MessageDelta(stop_sequence="END")),
            MessageDeltaEvent(usage=Usage(output_tokens=7)),
            MessageStopEvent(),
        ])
        assert response.stop_reason == StopReason.MAX_TOKENS
        assert response.stop_sequence == "END"
        assert response.usage.input_tokens == 10
        assert response.usage.output_tokens == 7

    def test_message_delta_without_fields_changes_nothing(self):
        response = accumulate([message_start(), MessageDeltaEvent(), MessageStopEvent()])
        assert response.stop_reason is None
        assert response.usage.output_tokens == 1

    def test_unterminated_stream_returns_partial(self):
        events = hello_world_events()[:4]
        response = accumulate(events)
        assert response.text == "Hello world"
        assert response.stop_reason is None

    @pytest.mark.asyncio
    async def test_async_accumulate(self):
        async def events():
            for event in hello_world_events():
                yield event

        response = await aaccumulate(events())
        assert response.text == "Hello world"


class TestMessageAccumulator:
    """State transitions and snapshots."""

    def test_states(self):
        accumulator = MessageAccumulator()
        assert accumulator.state is AccumulatorState.EMPTY
        assert accumulator.message is None

        accumulator.apply(message_start())
        assert accumulator.state is AccumulatorState.ACCUMULATING

        accumulator.apply(MessageStopEvent())
        assert accumulator.state is AccumulatorState.FINALIZED

    def test_content_before_start_raises(self):
        accumulator = MessageAccumulator()
        with pytest.raises(StreamError, match="before message_start"):
            accumulator.apply(text_delta(0, "early"))

    def test_content_after_stop_raises(self):
        accumulator = MessageAccumulator()
        accumulator.apply(message_start())
        accumulator.apply(MessageStopEvent())
        with pytest.raises(StreamError, match="after message_stop"):
            accumulator.apply(text_delta(0, "late"))

    def test_new_message_start_resets(self):
        accumulator = MessageAccumulator()
        for event in hello_world_events():
            accumulator.apply(event)

        accumulator.apply(message_start("msg_2"))
        accumulator.apply(text_start(0))
        accumulator.apply(text_delta(0, "again"))
        accumulator.apply(MessageStopEvent())

        response = accumulator.finalize()
        assert response.id == "msg_2"
        assert response.text == "again"

    def test_snapshots_track_progress(self):
        accumulator = MessageAccumulator()
        accumulator.apply(message_start())
        accumulator.apply(text_start(0))
        accumulator.apply(text_delta(0, "Hel"))

        assert accumulator.message.text == "Hel"
        snapshot = accumulator.content
        accumulator.apply(text_delta(0, "lo"))

        assert snapshot == [TextBlock(text="Hel")]
        assert accumulator.message.text == "Hello"

    def test_snapshot_ignores_incomplete_tool_json(self):
        accumulator = MessageAccumulator()
        accumulator.apply(message_start())
        accumulator.apply(
            ContentBlockStartEvent(index=0, content_block=ToolUseBlock(id="t", name="x"))
        )
        accumulator.apply(
            ContentBlockDeltaEvent(index=0, delta=InputJSONDelta(partial_json='{"a": '))
        )
        assert accumulator.message.tool_calls[0].input == {}


class TestSSEParsing:
    """Tests for turning SSE lines into events."""

    @staticmethod
    def sse_lines(*payloads):
        lines = []
        for payload in payloads:
            lines.append(f"event: {payload['type']}")
            lines.append(f"data: {json.dumps(payload)}")
            lines.append("")
        return lines

    def test_parses_known_events(self):
        lines = self.sse_lines(
            {"type": "message_start", "message": {
                "id": "msg_1", "type": "message", "role": "assistant",
                "content": [], "model": "claude-3-5-sonnet-20241022",
                "usage": {"input_tokens": 3, "output_tokens": 1},
            }},
            {"type": "ping"},
            {"type": "content_block_start", "index": 0,
             "content_block": {"type": "text", "text": ""}},
            {"type": "content_block_delta", "index": 0,
             "delta": {"type": "text_delta", "text": "Hi"}},
            {"type": "content_block_stop", "index": 0},
            {"type": "message_delta", "delta": {"stop_reason": "end_turn"},
             "usage": {"output_tokens": 2}},
            {"type": "message_stop"},
        )

        events = list(iter_sse_events(lines))
        assert [event.type for event in events] == [
            "message_start",
            "content_block_start",
            "content_block_delta",
            "content_block_stop",
            "message_delta",
            "message_stop",
        ]
        assert accumulate(events).text == "Hi"

    def test_done_marker_stops(self):
        lines = self.sse_lines({"type": "message_stop"}) + ["data: [DONE]", "data: {bad"]
        assert len(list(iter_sse_events(lines))) == 1

    def test_error_event_raises_stream_error(self):
        with pytest.raises(StreamError, match="Overloaded"):
            parse_event(json.dumps({
                "type": "error",
                "error": {"type": "overloaded_error", "message": "Overloaded"},
            }))

    def test_malformed_json(self):
        with pytest.raises(SerializationError):
            parse_event("{not json")

    def test_unknown_event_type(self):
        with pytest.raises(SerializationError):
            parse_event(json.dumps({"type": "mystery"}))

    def test_ping_returns_none(self):
        assert parse_event('{"type": "ping"}') is None

    def test_extended_thinking_stream(self):
        lines = self.sse_lines(
            {"type": "message_start", "message": {
                "id": "msg_t", "type": "message", "role": "assistant",
                "content": [], "model": "claude-3-5-sonnet-20241022",
                "usage": {"input_tokens": 3, "output_tokens": 1},
            }},
            {"type": "content_block_start", "index": 0,
             "content_block": {"type": "thinking", "thinking": ""}},
            {"type": "content_block_delta", "index": 0,
             "delta": {"type": "thinking_delta", "thinking": "hmm"}},
            {"type": "content_block_delta", "index": 0,
             "delta": {"type": "signature_delta", "signature": "EqQB"}},
            {"type": "content_block_stop", "index": 0},
            {"type": "message_stop"},
        )

        response = accumulate(iter_sse_events(lines))
        assert response.thinking == "hmm"
        assert response.content[0].signature == "EqQB"
