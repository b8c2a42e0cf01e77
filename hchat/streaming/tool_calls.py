"""
hchat - Tool Call Streaming

Reassembles tool calls from streamed fragments.

Tool calls arrive in pieces:
1. First fragment for an index: id and function name
2. Following fragments: slices of the arguments JSON
3. Concatenating the slices in arrival order yields the full arguments
"""

import json
import uuid
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

from ..core.models import FunctionCall, ToolCall
from .deltas import ToolCallFragment


@dataclass
class ToolCallAccumulator:
    """Accumulates the fragments of one tool call."""
    index: int
    id: Optional[str] = None
    function_name: Optional[str] = None
    arguments_buffer: str = ""

    def update(self, fragment: ToolCallFragment):
        """Apply one fragment."""
        if fragment.id:
            self.id = fragment.id
        if fragment.name:
            self.function_name = fragment.name
        if fragment.arguments_chunk:
            self.arguments_buffer += fragment.arguments_chunk

    def parsed_arguments(self) -> dict:
        """Arguments as a dict; empty arguments parse as {}."""
        if not self.arguments_buffer:
            return {}
        return json.loads(self.arguments_buffer)

    def validate(self) -> Tuple[bool, Optional[str]]:
        """
        Validate the accumulated tool call.

        Returns:
            (is_valid, error_message)
        """
        if not self.function_name:
            return False, "Missing function name"

        try:
            self.parsed_arguments()
        except json.JSONDecodeError as e:
            return False, f"Invalid arguments JSON: {e}"

        return True, None

    def to_tool_call(self) -> ToolCall:
        return ToolCall(
            id=self.id or f"call_{uuid.uuid4().hex[:24]}",
            function=FunctionCall(
                name=self.function_name or "",
                arguments=self.arguments_buffer or "{}",
            )
        )


class ToolCallStreamTracker:
    """
    Tracks every tool call of one stream, keyed by fragment index.
    """

    def __init__(self):
        self._calls: Dict[int, ToolCallAccumulator] = {}

    def update(self, fragment: ToolCallFragment):
        """Route a fragment to its accumulator, creating it on first sight."""
        if fragment.index not in self._calls:
            self._calls[fragment.index] = ToolCallAccumulator(index=fragment.index)
        self._calls[fragment.index].update(fragment)

    def get_call(self, index: int) -> Optional[ToolCallAccumulator]:
        return self._calls.get(index)

    def get_all_calls(self) -> List[ToolCallAccumulator]:
        """All tracked tool calls in index order."""
        return [self._calls[i] for i in sorted(self._calls)]

    def to_tool_calls(self) -> List[ToolCall]:
        return [call.to_tool_call() for call in self.get_all_calls()]

    def validate_all(self) -> Tuple[bool, List[str]]:
        """
        Validate all accumulated tool calls.

        Returns:
            (all_valid, list_of_errors)
        """
        errors = []
        for call in self.get_all_calls():
            is_valid, error = call.validate()
            if not is_valid:
                errors.append(f"Tool call {call.index}: {error}")
        return len(errors) == 0, errors

    def has_calls(self) -> bool:
        return bool(self._calls)
