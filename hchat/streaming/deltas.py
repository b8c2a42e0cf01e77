"""
hchat - Canonical Deltas

Vendor-neutral incremental output units.

Every adapter turns one vendor payload into zero or one CanonicalDelta.
Thinking text travels on its own tagged field; whether it ends up inline
in the text channel is decided by ``render_text`` at the outermost layer.
"""

import time
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional

from ..core.models import FinishReason


class ThinkingMarker(str, Enum):
    """Position of a thinking fragment inside its block."""
    OPEN = "open"        # first fragment of a block
    TEXT = "text"        # continuation fragment
    CLOSE = "close"      # block ended, carries no text
    SEGMENT = "segment"  # self-contained thought (no cross-payload block)


class ThinkingOutput(str, Enum):
    """How the public text channel shows thinking."""
    INLINE = "inline"
    OMIT = "omit"


THINKING_OPEN_TAG = "<thinking>"
THINKING_CLOSE_TAG = "</thinking>\n"


@dataclass(frozen=True)
class ToolCallFragment:
    """
    One incremental piece of a tool call.

    ``id`` and ``name`` appear on the first fragment of an index;
    ``arguments_chunk`` slices must be concatenated in arrival order.
    """
    index: int
    id: Optional[str] = None
    name: Optional[str] = None
    arguments_chunk: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """OpenAI-style tool call delta."""
        result: Dict[str, Any] = {"index": self.index}
        if self.id:
            result["id"] = self.id
            result["type"] = "function"

        function: Dict[str, Any] = {}
        if self.name:
            function["name"] = self.name
        if self.arguments_chunk is not None:
            function["arguments"] = self.arguments_chunk
        if function:
            result["function"] = function

        return result


@dataclass(frozen=True)
class CanonicalDelta:
    """One incremental unit of model output."""
    content: Optional[str] = None
    thinking: Optional[str] = None
    thinking_marker: Optional[ThinkingMarker] = None
    tool_calls: Optional[List[ToolCallFragment]] = None
    finish_reason: Optional[FinishReason] = None

    @property
    def tool_call(self) -> Optional[ToolCallFragment]:
        """First tool call fragment, if any."""
        return self.tool_calls[0] if self.tool_calls else None

    @property
    def is_empty(self) -> bool:
        return (
            not self.content
            and self.thinking_marker is None
            and not self.tool_calls
            and self.finish_reason is None
        )


@dataclass(frozen=True)
class AdapterState:
    """
    Per-stream adapter state.

    Adapters never hold this on themselves; each call takes the current
    state and returns the next one, so a state value belongs to exactly
    one stream.
    """
    in_thinking_block: bool = False
    thinking_block_started: bool = False

    def __post_init__(self):
        if self.thinking_block_started and not self.in_thinking_block:
            raise ValueError("thinking_block_started requires in_thinking_block")


INITIAL_STATE = AdapterState()


# ============================================================
# Finish reasons
# ============================================================

OPENAI_FINISH_REASONS: Dict[str, FinishReason] = {
    "stop": FinishReason.STOP,
    "length": FinishReason.LENGTH,
    "tool_calls": FinishReason.TOOL_CALLS,
    "function_call": FinishReason.TOOL_CALLS,
    "content_filter": FinishReason.CONTENT_FILTER,
}

CLAUDE_FINISH_REASONS: Dict[str, FinishReason] = {
    "end_turn": FinishReason.STOP,
    "stop_sequence": FinishReason.STOP,
    "max_tokens": FinishReason.LENGTH,
    "tool_use": FinishReason.TOOL_CALLS,
}

GEMINI_FINISH_REASONS: Dict[str, FinishReason] = {
    "STOP": FinishReason.STOP,
    "MAX_TOKENS": FinishReason.LENGTH,
    "SAFETY": FinishReason.CONTENT_FILTER,
    "RECITATION": FinishReason.CONTENT_FILTER,
    "OTHER": FinishReason.STOP,
}


def map_finish_reason(
    table: Mapping[str, FinishReason],
    native: Optional[str]
) -> Optional[FinishReason]:
    """Map a vendor finish reason; unknown values become STOP, None stays None."""
    if native is None:
        return None
    return table.get(native, FinishReason.STOP)


# ============================================================
# Rendering
# ============================================================

def render_text(
    delta: CanonicalDelta,
    thinking_output: ThinkingOutput = ThinkingOutput.INLINE
) -> str:
    """
    Project a delta onto the plain-text channel.

    With INLINE, thinking markers become literal tags:
        OPEN    -> "<thinking>" + text
        TEXT    -> text
        CLOSE   -> "</thinking>\\n"
        SEGMENT -> "\\n<thinking>\\n" + text + "\\n</thinking>\\n"
    """
    thinking = ""
    marker = delta.thinking_marker
    if marker is not None and thinking_output == ThinkingOutput.INLINE:
        text = delta.thinking or ""
        if marker == ThinkingMarker.OPEN:
            thinking = THINKING_OPEN_TAG + text
        elif marker == ThinkingMarker.TEXT:
            thinking = text
        elif marker == ThinkingMarker.CLOSE:
            thinking = THINKING_CLOSE_TAG
        else:
            thinking = f"\n{THINKING_OPEN_TAG}\n{text}\n{THINKING_CLOSE_TAG}"

    return thinking + (delta.content or "")


# ============================================================
# Canonical chunk
# ============================================================

@dataclass
class StreamChunk:
    """
    Canonical chunk, one per emitted delta.

    Matches the OpenAI ``chat.completion.chunk`` shape.
    """
    id: str = field(default_factory=lambda: f"chatcmpl-{uuid.uuid4().hex[:12]}")
    object: str = "chat.completion.chunk"
    created: int = field(default_factory=lambda: int(time.time()))
    model: str = ""
    content: Optional[str] = None
    tool_calls: Optional[List[ToolCallFragment]] = None
    finish_reason: Optional[FinishReason] = None

    @classmethod
    def from_delta(
        cls,
        delta: CanonicalDelta,
        stream_id: str,
        model: str,
        created: int,
        thinking_output: ThinkingOutput = ThinkingOutput.INLINE
    ) -> "StreamChunk":
        text = render_text(delta, thinking_output)
        return cls(
            id=stream_id,
            created=created,
            model=model,
            content=text or None,
            tool_calls=delta.tool_calls,
            finish_reason=delta.finish_reason,
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert to OpenAI-compatible dictionary."""
        delta: Dict[str, Any] = {}

        if self.content is not None:
            delta["content"] = self.content

        if self.tool_calls:
            delta["tool_calls"] = [tc.to_dict() for tc in self.tool_calls]

        return {
            "id": self.id,
            "object": self.object,
            "created": self.created,
            "model": self.model,
            "choices": [{
                "index": 0,
                "delta": delta,
                "finish_reason": self.finish_reason.value if self.finish_reason else None,
            }]
        }
