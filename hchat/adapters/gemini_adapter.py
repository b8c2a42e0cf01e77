"""
hchat - Gemini Adapter

Adapter for Google Gemini behind the gateway.

Every streamed payload is a complete candidate object; a thought part is
self-contained, so no state is carried between payloads.
"""

import json
import uuid
from typing import Any, Dict, List, Optional, Tuple

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
    GEMINI_FINISH_REASONS,
    AdapterState,
    CanonicalDelta,
    ThinkingMarker,
    ToolCallFragment,
    map_finish_reason,
)


def _call_id() -> str:
    return f"call_{uuid.uuid4().hex[:8]}"


class GeminiAdapter(BaseAdapter):
    """
    Adapter for Gemini generateContent.

    Supports:
    - Chat completions and streaming
    - Thought summaries (includeThoughts)
    - Vision (inlineData and fileData)
    - Function calling
    """

    provider = Provider.GEMINI
    finish_reasons = GEMINI_FINISH_REASONS

    def request_target(
        self,
        request: ProviderChatRequest,
        stream: bool
    ) -> Tuple[str, Dict[str, str]]:
        base = f"{self.config.base_url}/models/{request.model}"
        if stream:
            return f"{base}:streamGenerateContent", {"alt": "sse", "key": self.config.api_key}
        return f"{base}:generateContent", {"key": self.config.api_key}

    def build_payload(self, request: ProviderChatRequest) -> Dict[str, Any]:
        """Build Gemini-specific chat payload."""
        system_parts = [request.system] if request.system else []
        system_parts.extend(
            msg.text for msg in request.messages
            if msg.role == Role.SYSTEM and msg.text
        )

        generation_config: Dict[str, Any] = {
            "maxOutputTokens": request.max_tokens,
            "temperature": request.temperature,
        }
        if request.thinking:
            generation_config["thinkingConfig"] = {
                "thinkingBudget": -1,
                "includeThoughts": True,
            }
            generation_config["temperature"] = 1

        payload: Dict[str, Any] = {
            "contents": self._convert_messages(request.messages),
            "generationConfig": generation_config,
        }

        if system_parts:
            payload["systemInstruction"] = {"parts": [{"text": "\n\n".join(system_parts)}]}

        if request.tools:
            payload["tools"] = [{"functionDeclarations": self._convert_tools(request.tools)}]

        return self._merge_advanced(payload, request.advanced_for(self.provider))

    def adapt(self, payload: Any, model: str, state: AdapterState) -> AdaptResult:
        candidates = payload.get("candidates") if isinstance(payload, dict) else None
        if not candidates:
            return None, state

        candidate = candidates[0]
        parts = (candidate.get("content") or {}).get("parts") or []
        finish_reason = map_finish_reason(self.finish_reasons, candidate.get("finishReason"))

        content: Optional[str] = None
        thinking: Optional[str] = None
        fragments: List[ToolCallFragment] = []

        for index, part in enumerate(parts):
            if "functionCall" in part:
                call = part["functionCall"]
                fragments.append(ToolCallFragment(
                    index=index,
                    id=_call_id(),
                    name=call.get("name"),
                    arguments_chunk=json.dumps(call.get("args") or {}),
                ))
            elif part.get("text") and content is None and thinking is None:
                if part.get("thought") is True:
                    thinking = part["text"]
                else:
                    content = part["text"]

        delta = CanonicalDelta(
            content=content,
            thinking=thinking,
            thinking_marker=ThinkingMarker.SEGMENT if thinking is not None else None,
            tool_calls=fragments or None,
            finish_reason=finish_reason,
        )
        if delta.is_empty:
            return None, state
        return delta, state

    def parse_completion(self, data: Dict[str, Any], model: str) -> ChatCompletion:
        """Parse Gemini response to unified format."""
        candidates = data.get("candidates") or []
        candidate = candidates[0] if candidates else {}
        parts = (candidate.get("content") or {}).get("parts") or []

        text_content = ""
        thinking = ""
        tool_calls: List[ToolCall] = []

        for part in parts:
            if "functionCall" in part:
                call = part["functionCall"]
                tool_calls.append(ToolCall(
                    id=_call_id(),
                    function=FunctionCall(
                        name=call["name"],
                        arguments=json.dumps(call.get("args") or {}),
                    )
                ))
            elif part.get("thought") is True:
                thinking += part.get("text", "")
            elif "text" in part:
                text_content += part["text"]

        finish_reason = map_finish_reason(
            self.finish_reasons, candidate.get("finishReason") or "STOP"
        )
        if tool_calls:
            finish_reason = FinishReason.TOOL_CALLS

        usage = None
        if data.get("usageMetadata"):
            meta = data["usageMetadata"]
            usage = Usage(
                prompt_tokens=meta.get("promptTokenCount", 0),
                completion_tokens=meta.get("candidatesTokenCount", 0),
                total_tokens=meta.get("totalTokenCount", 0),
                thinking_tokens=meta.get("thoughtsTokenCount"),
            )

        return ChatCompletion(
            model=data.get("modelVersion") or model,
            provider=self.provider.value,
            choices=[
                Choice(
                    index=0,
                    message=Message(
                        role=Role.ASSISTANT,
                        content=text_content,
                        tool_calls=tool_calls or None,
                        thinking=thinking or None,
                    ),
                    finish_reason=finish_reason,
                )
            ],
            usage=usage,
        )

    # ============================================================
    # Private helper methods
    # ============================================================

    def _convert_messages(self, messages: List[Message]) -> List[Dict[str, Any]]:
        """Convert unified messages to Gemini contents."""
        # functionResponse needs the function name, which tool results only
        # reference by call id
        call_names: Dict[str, str] = {}
        result = []

        for msg in messages:
            if msg.role == Role.SYSTEM:
                continue

            if msg.role == Role.TOOL:
                name = call_names.get(msg.tool_call_id or "", msg.tool_call_id or "")
                result.append({
                    "role": "user",
                    "parts": [{
                        "functionResponse": {
                            "name": name,
                            "response": self._tool_response(msg.text),
                        }
                    }]
                })
                continue

            role = "model" if msg.role == Role.ASSISTANT else "user"
            parts = self._convert_content(msg.content)

            for tc in msg.tool_calls or []:
                call_names[tc.id] = tc.function.name
                parts.append({
                    "functionCall": {
                        "name": tc.function.name,
                        "args": json.loads(tc.function.arguments or "{}"),
                    }
                })

            result.append({"role": role, "parts": parts})

        return result

    def _convert_content(self, content: Any) -> List[Dict[str, Any]]:
        if content is None:
            return []
        if isinstance(content, str):
            return [{"text": content}] if content else []

        parts: List[Dict[str, Any]] = []
        for part in content:
            if isinstance(part, TextContent):
                parts.append({"text": part.text})
            elif isinstance(part, ImageContent):
                image = part.image_url
                if image.is_data_url:
                    media_type, data = image.split_data_url()
                    parts.append({"inlineData": {"mimeType": media_type, "data": data}})
                else:
                    parts.append({"fileData": {"fileUri": image.url, "mimeType": "image/jpeg"}})
        return parts

    @staticmethod
    def _tool_response(text: str) -> Dict[str, Any]:
        """functionResponse.response must be an object."""
        try:
            value = json.loads(text)
        except ValueError:
            return {"content": text}
        return value if isinstance(value, dict) else {"content": value}

    def _convert_tools(self, tools: List[Tool]) -> List[Dict[str, Any]]:
        return [
            {
                "name": tool.function.name,
                "description": tool.function.description,
                "parameters": tool.function.parameters or {
                    "type": "object",
                    "properties": {},
                },
            }
            for tool in tools
        ]
