"""
hchat - Streaming Module

Byte-stream to canonical-delta pipeline:
- SSE event assembly and JSON decoding
- Canonical deltas, adapter state and finish-reason tables
- Tool call reassembly
"""

from .sse import (
    SSEEvent,
    SSEParser,
    parse_event_block,
    iter_sse_events,
    iter_json_payloads,
    open_payload_stream,
)
from .deltas import (
    AdapterState,
    CanonicalDelta,
    StreamChunk,
    ThinkingMarker,
    ThinkingOutput,
    ToolCallFragment,
    INITIAL_STATE,
    map_finish_reason,
    render_text,
)
from .tool_calls import (
    ToolCallAccumulator,
    ToolCallStreamTracker,
)
from .assembler import StreamAssembler

__all__ = [
    # SSE
    "SSEEvent",
    "SSEParser",
    "parse_event_block",
    "iter_sse_events",
    "iter_json_payloads",
    "open_payload_stream",
    # Deltas
    "AdapterState",
    "CanonicalDelta",
    "StreamChunk",
    "ThinkingMarker",
    "ThinkingOutput",
    "ToolCallFragment",
    "INITIAL_STATE",
    "map_finish_reason",
    "render_text",
    # Tool Calls
    "ToolCallAccumulator",
    "ToolCallStreamTracker",
    # Assembly
    "StreamAssembler",
]
