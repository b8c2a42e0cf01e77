"""
hchat - Claude Adapter

Adapter for Anthropic Claude behind the gateway.

Claude streams discrete content blocks:

    content_block_start  {"content_block": {"type": "thinking" | "text" | "tool_use"}}
    content_block_delta  {"delta": {"type": "thinking_delta" | "text_delta" | "input_json_delta"}}
    content_block_stop
    message_stop

Thinking blocks span many deltas, so the adapter tracks whether one is
open (AdapterState) and marks its first fragment OPEN and its stop CLOSE.
"""

import json
from typing import Any, Dict, List, Tuple

from .base import AdaptResult, BaseAdapter
from ..core.models import (
    ChatCompletion,
    Choice,
    FinishReason,
    FunctionCall,
    ImageContent,
    Message,
    Provider,
    ProviderChatRequest,
    Role,
    TextContent,
    Tool,
    ToolCall,
    Usage,
)
from ..streaming.deltas import (
    CLAUDE_FINISH_REASONS,
    INITIAL_STATE,
    AdapterState,
    CanonicalDelta,
    ThinkingMarker,
    ToolCallFragment,
    map_finish_reason,
)


class ClaudeAdapter(BaseAdapter):
    """
    Adapter for Claude messages.

    Supports:
    - Chat completions and streaming
    - Extended thinking
    - Vision (base64 and URL image sources)
    - Tool use
    """

    provider = Provider.CLAUDE
    finish_reasons = CLAUDE_FINISH_REASONS
    DEFAULT_THINKING_BUDGET = 4096

    def request_target(
        self,
        request: ProviderChatRequest,
        stream: bool
    ) -> Tuple[str, Dict[str, str]]:
        return f"{self.config.base_url}/claude/messages", {}

    def auth_headers(self) -> Dict[str, str]:
        return {"Authorization": self.config.api_key}

    def build_payload(self, request: ProviderChatRequest) -> Dict[str, Any]:
        """Build Claude-specific chat payload."""
        system_content, messages = self._extract_system_message(request)

        payload: Dict[str, Any] = {
            "model": request.model,
            "system": system_content or None,
            "messages": self._convert_messages(messages),
            "max_tokens": request.max_tokens,
            "temperature": request.temperature,
            "stream": request.stream,
        }

        if request.tools:
            payload["tools"] = self._convert_tools(request.tools)
            payload["tool_choice"] = {"type": "auto"}

        if request.thinking:
            payload["thinking"] = {
                "type": "enabled",
                "budget_tokens": request.max_tokens // 2 or self.DEFAULT_THINKING_BUDGET,
            }
            # Extended thinking only accepts temperature 1
            payload["temperature"] = 1

        return self._merge_advanced(payload, request.advanced_for(self.provider))

    def adapt(self, payload: Any, model: str, state: AdapterState) -> AdaptResult:
        if not isinstance(payload, dict):
            return None, state

        event_type = payload.get("type")

        if event_type == "content_block_start":
            block = payload.get("content_block") or {}
            if block.get("type") == "thinking":
                return None, AdapterState(in_thinking_block=True, thinking_block_started=False)
            if block.get("type") == "tool_use":
                fragment = ToolCallFragment(
                    index=0,
                    id=block.get("id"),
                    name=block.get("name"),
                    arguments_chunk="",
                )
                return CanonicalDelta(tool_calls=[fragment]), state
            return None, state

        if event_type == "content_block_stop":
            if not state.in_thinking_block:
                return None, state
            if not state.thinking_block_started:
                # Empty block: bracket it in one piece
                return CanonicalDelta(thinking="", thinking_marker=ThinkingMarker.SEGMENT), INITIAL_STATE
            return CanonicalDelta(thinking_marker=ThinkingMarker.CLOSE), INITIAL_STATE

        if event_type == "content_block_delta":
            return self._adapt_block_delta(payload.get("delta") or {}, state)

        if event_type == "message_stop":
            return CanonicalDelta(finish_reason=FinishReason.STOP), state

        return None, state

    def parse_completion(self, data: Dict[str, Any], model: str) -> ChatCompletion:
        """Parse Claude response to unified format."""
        text_parts: List[str] = []
        thinking = ""
        tool_calls: List[ToolCall] = []

        for block in data.get("content") or []:
            block_type = block.get("type")
            if block_type == "text":
                text_parts.append(block.get("text", ""))
            elif block_type == "thinking":
                thinking = block.get("thinking", "")
            elif block_type == "tool_use":
                tool_calls.append(ToolCall(
                    id=block["id"],
                    function=FunctionCall(
                        name=block["name"],
                        arguments=json.dumps(block.get("input") or {}),
                    )
                ))

        usage = None
        if data.get("usage"):
            usage_data = data["usage"]
            usage = Usage(
                prompt_tokens=usage_data.get("input_tokens", 0),
                completion_tokens=usage_data.get("output_tokens", 0),
                thinking_tokens=usage_data.get("thinking_tokens"),
            )

        completion = ChatCompletion(
            model=model,
            provider=self.provider.value,
            choices=[
                Choice(
                    index=0,
                    message=Message(
                        role=Role.ASSISTANT,
                        content="".join(text_parts),
                        tool_calls=tool_calls or None,
                        thinking=thinking or None,
                    ),
                    finish_reason=map_finish_reason(
                        self.finish_reasons, data.get("stop_reason") or "end_turn"
                    ),
                )
            ],
            usage=usage,
        )
        if data.get("id"):
            completion.id = data["id"]
        return completion

    # ============================================================
    # Private helper methods
    # ============================================================

    def _adapt_block_delta(self, delta: Dict[str, Any], state: AdapterState) -> AdaptResult:
        delta_type = delta.get("type")

        if delta_type == "thinking_delta":
            text = delta.get("thinking") or ""
            if not text:
                return None, state
            if state.thinking_block_started:
                return CanonicalDelta(thinking=text, thinking_marker=ThinkingMarker.TEXT), state
            # A thinking delta always belongs to an open block
            opened = AdapterState(in_thinking_block=True, thinking_block_started=True)
            return CanonicalDelta(thinking=text, thinking_marker=ThinkingMarker.OPEN), opened

        if delta_type == "text_delta":
            text = delta.get("text") or ""
            return (CanonicalDelta(content=text) if text else None), state

        if delta_type == "input_json_delta":
            partial_json = delta.get("partial_json") or ""
            if not partial_json:
                return None, state
            fragment = ToolCallFragment(index=0, arguments_chunk=partial_json)
            return CanonicalDelta(tool_calls=[fragment]), state

        return None, state

    def _extract_system_message(
        self,
        request: ProviderChatRequest
    ) -> Tuple[str, List[Message]]:
        """
        Split system messages out of the conversation.
        Claude takes the system prompt as a separate parameter.
        """
        system_parts = [request.system] if request.system else []
        filtered_messages = []

        for msg in request.messages:
            if msg.role == Role.SYSTEM:
                if msg.text:
                    system_parts.append(msg.text)
            else:
                filtered_messages.append(msg)

        return "\n\n".join(system_parts), filtered_messages

    def _convert_messages(self, messages: List[Message]) -> List[Dict[str, Any]]:
        """Convert unified messages to Claude format."""
        result = []

        for msg in messages:
            # Claude receives tool results as user content
            if msg.role == Role.TOOL:
                result.append({
                    "role": "user",
                    "content": [{
                        "type": "tool_result",
                        "tool_use_id": msg.tool_call_id,
                        "content": msg.text,
                    }]
                })
                continue

            if msg.role == Role.ASSISTANT and msg.tool_calls:
                blocks: List[Dict[str, Any]] = []
                if msg.text:
                    blocks.append({"type": "text", "text": msg.text})
                for tc in msg.tool_calls:
                    blocks.append({
                        "type": "tool_use",
                        "id": tc.id,
                        "name": tc.function.name,
                        "input": json.loads(tc.function.arguments or "{}"),
                    })
                result.append({"role": "assistant", "content": blocks})
                continue

            result.append({
                "role": msg.role.value,
                "content": self._convert_content(msg.content),
            })

        return result

    def _convert_content(self, content: Any) -> Any:
        if content is None or isinstance(content, str):
            return content or ""

        blocks = []
        for part in content:
            if isinstance(part, TextContent):
                blocks.append({"type": "text", "text": part.text})
            elif isinstance(part, ImageContent):
                image = part.image_url
                if image.is_data_url:
                    media_type, data = image.split_data_url()
                    source = {"type": "base64", "media_type": media_type, "data": data}
                else:
                    source = {"type": "url", "url": image.url}
                blocks.append({"type": "image", "source": source})
        return blocks

    def _convert_tools(self, tools: List[Tool]) -> List[Dict[str, Any]]:
        """Convert tools to Claude format."""
        return [
            {
                "name": tool.function.name,
                "description": tool.function.description,
                "input_schema": tool.function.parameters or {
                    "type": "object",
                    "properties": {},
                },
            }
            for tool in tools
        ]
