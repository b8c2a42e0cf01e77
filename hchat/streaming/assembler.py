"""
hchat - Stream Assembler

Folds a canonical delta stream back into a single ChatCompletion.
"""

import time
import uuid
from typing import List, Optional

from ..core.models import ChatCompletion, Choice, FinishReason, Message, Role
from .deltas import CanonicalDelta, ThinkingMarker
from .tool_calls import ToolCallStreamTracker


class StreamAssembler:
    """
    Accumulates deltas of one stream.

    Usage:
        assembler = StreamAssembler(model="claude-sonnet-4", provider="claude")
        async for delta in deltas:
            assembler.add(delta)
        completion = assembler.build()
    """

    def __init__(self, model: str = "", provider: str = "", stream_id: Optional[str] = None):
        self.model = model
        self.provider = provider
        self.stream_id = stream_id or f"chatcmpl-{uuid.uuid4().hex[:12]}"
        self.created = int(time.time())
        self.tool_calls = ToolCallStreamTracker()
        self.finish_reason: Optional[FinishReason] = None
        self.delta_count = 0
        self._content: List[str] = []
        self._thinking: List[str] = []

    def add(self, delta: CanonicalDelta):
        self.delta_count += 1

        if delta.content:
            self._content.append(delta.content)

        if delta.thinking and delta.thinking_marker != ThinkingMarker.CLOSE:
            self._thinking.append(delta.thinking)

        for fragment in delta.tool_calls or []:
            self.tool_calls.update(fragment)

        if delta.finish_reason is not None:
            self.finish_reason = delta.finish_reason

    @property
    def content(self) -> str:
        return "".join(self._content)

    @property
    def thinking(self) -> str:
        return "".join(self._thinking)

    def build(self) -> ChatCompletion:
        """Build the completion seen so far."""
        tool_calls = self.tool_calls.to_tool_calls() if self.tool_calls.has_calls() else None
        message = Message(
            role=Role.ASSISTANT,
            content=self.content,
            tool_calls=tool_calls,
            thinking=self.thinking or None,
        )
        return ChatCompletion(
            id=self.stream_id,
            created=self.created,
            model=self.model,
            provider=self.provider,
            choices=[Choice(index=0, message=message, finish_reason=self.finish_reason)],
        )
