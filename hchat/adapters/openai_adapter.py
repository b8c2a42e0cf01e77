"""
hchat - OpenAI Adapter

Adapter for OpenAI deployments behind the gateway.

The streamed payloads already have the canonical chunk shape, so the
stream side is a relabel into CanonicalDelta.
"""

from typing import Any, Dict, List, Optional, Tuple

from .base import AdaptResult, BaseAdapter
from ..core.models import (
    ChatCompletion,
    Choice,
    FunctionCall,
    Message,
    Provider,
    ProviderChatRequest,
    Role,
    ToolCall,
    Usage,
    message_to_dict,
)
from ..streaming.deltas import (
    OPENAI_FINISH_REASONS,
    AdapterState,
    CanonicalDelta,
    ToolCallFragment,
    map_finish_reason,
)


class OpenAIAdapter(BaseAdapter):
    """
    Adapter for OpenAI chat completions.

    Supports:
    - Chat completions and streaming
    - Vision (image_url parts)
    - Tool/Function calling
    """

    provider = Provider.OPENAI
    finish_reasons = OPENAI_FINISH_REASONS
    API_VERSION = "2024-10-21"

    def request_target(
        self,
        request: ProviderChatRequest,
        stream: bool
    ) -> Tuple[str, Dict[str, str]]:
        url = f"{self.config.base_url}/openai/deployments/{request.model}/chat/completions"
        return url, {"api-version": self.API_VERSION}

    def auth_headers(self) -> Dict[str, str]:
        return {"api-key": self.config.api_key}

    def build_payload(self, request: ProviderChatRequest) -> Dict[str, Any]:
        """Build OpenAI-specific chat payload."""
        payload: Dict[str, Any] = {
            "model": request.model,
            "messages": self._convert_messages(request),
            "max_tokens": request.max_tokens or 1000,
            "temperature": (
                request.temperature if request.temperature is not None else 0.7
            ),
            "tools": self._function_tools(request.tools),
            "stream": request.stream,
        }
        return self._merge_advanced(payload, request.advanced_for(self.provider))

    def adapt(self, payload: Any, model: str, state: AdapterState) -> AdaptResult:
        choices = payload.get("choices") if isinstance(payload, dict) else None
        if not choices:
            return None, state

        choice = choices[0]
        delta = choice.get("delta") or {}

        fragments: Optional[List[ToolCallFragment]] = None
        if delta.get("tool_calls"):
            fragments = []
            for tc in delta["tool_calls"]:
                function = tc.get("function") or {}
                fragments.append(ToolCallFragment(
                    index=tc.get("index", 0),
                    id=tc.get("id"),
                    name=function.get("name"),
                    arguments_chunk=function.get("arguments"),
                ))

        result = CanonicalDelta(
            content=delta.get("content") or None,
            tool_calls=fragments,
            finish_reason=map_finish_reason(self.finish_reasons, choice.get("finish_reason")),
        )
        if result.is_empty:
            return None, state
        return result, state

    def parse_completion(self, data: Dict[str, Any], model: str) -> ChatCompletion:
        """Parse OpenAI response to unified format."""
        choices = []
        for index, choice in enumerate(data.get("choices") or []):
            message_data = choice.get("message") or {}

            tool_calls = None
            if message_data.get("tool_calls"):
                tool_calls = [
                    ToolCall(
                        id=tc["id"],
                        type=tc.get("type", "function"),
                        function=FunctionCall(
                            name=tc["function"]["name"],
                            arguments=tc["function"].get("arguments") or "{}"
                        )
                    )
                    for tc in message_data["tool_calls"]
                ]

            choices.append(Choice(
                index=choice.get("index", index),
                message=Message(
                    role=Role.ASSISTANT,
                    content=message_data.get("content"),
                    tool_calls=tool_calls,
                ),
                finish_reason=map_finish_reason(
                    self.finish_reasons, choice.get("finish_reason") or "stop"
                ),
            ))

        usage = None
        if data.get("usage"):
            usage_data = data["usage"]
            details = usage_data.get("completion_tokens_details") or {}
            usage = Usage(
                prompt_tokens=usage_data.get("prompt_tokens", 0),
                completion_tokens=usage_data.get("completion_tokens", 0),
                total_tokens=usage_data.get("total_tokens", 0),
                thinking_tokens=details.get("reasoning_tokens"),
            )

        completion = ChatCompletion(
            model=data.get("model") or model,
            provider=self.provider.value,
            choices=choices,
            usage=usage,
        )
        if data.get("id"):
            completion.id = data["id"]
        if data.get("created"):
            completion.created = data["created"]
        return completion

    # ============================================================
    # Private helper methods
    # ============================================================

    def _convert_messages(self, request: ProviderChatRequest) -> List[Dict[str, Any]]:
        """System prompt first, then the conversation in OpenAI form."""
        messages = []
        if request.system:
            messages.append({"role": Role.SYSTEM.value, "content": request.system})
        messages.extend(message_to_dict(msg) for msg in request.messages)
        return messages
