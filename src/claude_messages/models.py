"""
Claude Messages - Data Models

Pydantic models for the Messages API wire format: content blocks,
requests, responses and streaming events.
"""

from typing import List, Optional, Dict, Any, Union, Literal, Annotated
from pydantic import BaseModel, Field, ConfigDict
from enum import Enum


class Role(str, Enum):
    """Message roles in a conversation."""
    USER = "user"
    ASSISTANT = "assistant"


class StopReason(str, Enum):
    """Reasons why the model stopped generating."""
    END_TURN = "end_turn"
    MAX_TOKENS = "max_tokens"
    STOP_SEQUENCE = "stop_sequence"
    TOOL_USE = "tool_use"


class Model(str, Enum):
    """Known model identifiers."""
    CLAUDE_3_HAIKU = "claude-3-haiku-20240307"
    CLAUDE_3_SONNET = "claude-3-sonnet-20240229"
    CLAUDE_3_OPUS = "claude-3-opus-20240229"
    CLAUDE_3_5_SONNET = "claude-3-5-sonnet-20241022"
    CLAUDE_3_5_SONNET_0114 = "claude-3-5-sonnet-20250114"
    CLAUDE_4_SONNET = "claude-4-sonnet-20250514"

    @property
    def max_tokens(self) -> int:
        """Largest max_tokens value the model accepts."""
        return MODEL_TOKEN_LIMITS[self]


MODEL_TOKEN_LIMITS = {
    Model.CLAUDE_3_HAIKU: 200_000,
    Model.CLAUDE_3_SONNET: 200_000,
    Model.CLAUDE_3_OPUS: 200_000,
    Model.CLAUDE_3_5_SONNET: 200_000,
    Model.CLAUDE_3_5_SONNET_0114: 200_000,
    Model.CLAUDE_4_SONNET: 200_000,
}


# ============================================================================
# Content Blocks
# ============================================================================

class TextBlock(BaseModel):
    """A text content block."""
    type: Literal["text"] = "text"
    text: str
    citations: Optional[List[Dict[str, Any]]] = None

    model_config = ConfigDict(frozen=True)


class ThinkingBlock(BaseModel):
    """A thinking/reasoning content block (extended thinking models)."""
    type: Literal["thinking"] = "thinking"
    thinking: str
    signature: Optional[str] = None

    model_config = ConfigDict(frozen=True)


class ToolUseBlock(BaseModel):
    """A tool use request from the model."""
    type: Literal["tool_use"] = "tool_use"
    id: str
    name: str
    input: Dict[str, Any] = Field(default_factory=dict)

    model_config = ConfigDict(frozen=True)


class ToolResultBlock(BaseModel):
    """Result of a tool execution to send back to the model."""
    type: Literal["tool_result"] = "tool_result"
    tool_use_id: str
    content: Union[str, List[Dict[str, Any]]]
    is_error: Optional[bool] = None

    model_config = ConfigDict(frozen=True)


class ImageBlock(BaseModel):
    """An image content block."""
    type: Literal["image"] = "image"
    source: Dict[str, Any]  # {"type": "base64", "media_type": "...", "data": "..."}

    model_config = ConfigDict(frozen=True)


ContentBlock = Annotated[
    Union[TextBlock, ThinkingBlock, ToolUseBlock, ToolResultBlock, ImageBlock],
    Field(discriminator="type"),
]


# ============================================================================
# Requests
# ============================================================================

class MessageParam(BaseModel):
    """A message in the request history."""
    role: Role
    content: Union[str, List[ContentBlock]]

    model_config = ConfigDict(use_enum_values=True)

    @classmethod
    def user(cls, content: str) -> "MessageParam":
        return cls(role=Role.USER, content=content)

    @classmethod
    def assistant(cls, content: str) -> "MessageParam":
        return cls(role=Role.ASSISTANT, content=content)


class ChatRequest(BaseModel):
    """A messages request body without model and max_tokens.

    The client fills in model, max_tokens and stream before sending.
    """
    messages: List[MessageParam]
    system: Optional[Union[str, List[Dict[str, Any]]]] = None
    tools: Optional[List[Dict[str, Any]]] = None
    temperature: Optional[float] = None
    top_p: Optional[float] = None
    stop_sequences: Optional[List[str]] = None


class CountTokensRequest(BaseModel):
    """A count_tokens request body without model."""
    messages: List[MessageParam]
    system: Optional[Union[str, List[Dict[str, Any]]]] = None
    tools: Optional[List[Dict[str, Any]]] = None

    @classmethod
    def from_chat_request(cls, request: ChatRequest) -> "CountTokensRequest":
        """Count the tokens a chat request would send."""
        return cls(
            messages=request.messages,
            system=request.system,
            tools=request.tools,
        )


# ============================================================================
# API Response
# ============================================================================

class Usage(BaseModel):
    """Token usage information."""
    input_tokens: int = 0
    output_tokens: int = 0
    cache_creation_input_tokens: Optional[int] = None
    cache_read_input_tokens: Optional[int] = None


class TokenCount(BaseModel):
    """Response of the count_tokens endpoint."""
    input_tokens: int


class ChatResponse(BaseModel):
    """A complete assistant message."""
    id: str
    type: Literal["message"] = "message"
    role: Role = Role.ASSISTANT
    content: List[ContentBlock] = Field(default_factory=list)
    model: str
    stop_reason: Optional[StopReason] = None
    stop_sequence: Optional[str] = None
    usage: Usage = Field(default_factory=Usage)

    @property
    def text(self) -> str:
        """Concatenated text of all text blocks."""
        return "".join(
            block.text for block in self.content if isinstance(block, TextBlock)
        )

    @property
    def thinking(self) -> Optional[str]:
        """The first thinking block's content (if any)."""
        for block in self.content:
            if isinstance(block, ThinkingBlock):
                return block.thinking
        return None

    @property
    def tool_calls(self) -> List[ToolUseBlock]:
        """All tool use blocks."""
        return [block for block in self.content if isinstance(block, ToolUseBlock)]

    @property
    def has_tool_calls(self) -> bool:
        return len(self.tool_calls) > 0


# ============================================================================
# Streaming Events
# ============================================================================

class TextDelta(BaseModel):
    type: Literal["text_delta"] = "text_delta"
    text: str


class ThinkingDelta(BaseModel):
    type: Literal["thinking_delta"] = "thinking_delta"
    thinking: str


class InputJSONDelta(BaseModel):
    type: Literal["input_json_delta"] = "input_json_delta"
    partial_json: str


class SignatureDelta(BaseModel):
    """Closes a thinking block with its verification signature."""
    type: Literal["signature_delta"] = "signature_delta"
    signature: str


ContentDelta = Annotated[
    Union[TextDelta, ThinkingDelta, InputJSONDelta, SignatureDelta],
    Field(discriminator="type"),
]


class MessageDelta(BaseModel):
    """Terminal metadata carried by a message_delta event.

    Fields left as None do not overwrite the accumulated message.
    """
    stop_reason: Optional[StopReason] = None
    stop_sequence: Optional[str] = None
    usage: Optional[Usage] = None


class MessageStartEvent(BaseModel):
    type: Literal["message_start"] = "message_start"
    message: ChatResponse


class ContentBlockStartEvent(BaseModel):
    type: Literal["content_block_start"] = "content_block_start"
    index: int = Field(ge=0)
    content_block: ContentBlock


class ContentBlockDeltaEvent(BaseModel):
    type: Literal["content_block_delta"] = "content_block_delta"
    index: int = Field(ge=0)
    delta: ContentDelta


class ContentBlockStopEvent(BaseModel):
    type: Literal["content_block_stop"] = "content_block_stop"
    index: int = Field(ge=0)


class MessageDeltaEvent(BaseModel):
    type: Literal["message_delta"] = "message_delta"
    delta: MessageDelta = Field(default_factory=MessageDelta)
    usage: Optional[Usage] = None


class MessageStopEvent(BaseModel):
    type: Literal["message_stop"] = "message_stop"


StreamEvent = Annotated[
    Union[
        MessageStartEvent,
        ContentBlockStartEvent,
        ContentBlockDeltaEvent,
        ContentBlockStopEvent,
        MessageDeltaEvent,
        MessageStopEvent,
    ],
    Field(discriminator="type"),
]
