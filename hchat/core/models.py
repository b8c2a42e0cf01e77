"""
hchat - Core Data Models

Unified request/response models shared by every vendor adapter.
"""

from __future__ import annotations

import time
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Literal, Optional, Union


# ============================================================
# Enums
# ============================================================

class Provider(str, Enum):
    """Supported vendors behind the gateway."""
    OPENAI = "openai"
    CLAUDE = "claude"
    GEMINI = "gemini"


class Role(str, Enum):
    """Message roles."""
    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"
    TOOL = "tool"


class FinishReason(str, Enum):
    """Canonical finish reasons."""
    STOP = "stop"
    LENGTH = "length"
    TOOL_CALLS = "tool_calls"
    CONTENT_FILTER = "content_filter"


# ============================================================
# Content Parts (for multimodal)
# ============================================================

@dataclass
class ImageUrl:
    """Image reference: an https URL or a base64 data URL."""
    url: str
    detail: Literal["low", "high", "auto"] = "auto"

    @property
    def is_data_url(self) -> bool:
        return self.url.startswith("data:")

    def split_data_url(self) -> tuple:
        """Return (media_type, base64_data) for a data URL."""
        header, _, data = self.url.partition(",")
        media_type = header[len("data:"):].split(";")[0] or "image/jpeg"
        return media_type, data


@dataclass
class TextContent:
    """Text content part."""
    type: Literal["text"] = "text"
    text: str = ""


@dataclass
class ImageContent:
    """Image content part."""
    type: Literal["image"] = "image"
    image_url: ImageUrl = field(default_factory=lambda: ImageUrl(""))


ContentPart = Union[TextContent, ImageContent]


# ============================================================
# Tool Calling
# ============================================================

@dataclass
class FunctionDefinition:
    """Function definition for tool calling."""
    name: str
    description: str = ""
    parameters: Dict[str, Any] = field(default_factory=dict)


@dataclass
class Tool:
    """Tool definition."""
    type: Literal["function"] = "function"
    function: FunctionDefinition = field(default_factory=lambda: FunctionDefinition(""))

    @classmethod
    def define(
        cls,
        name: str,
        description: str = "",
        parameters: Optional[Dict[str, Any]] = None
    ) -> Tool:
        """Shorthand for a function tool."""
        return cls(function=FunctionDefinition(name, description, parameters or {}))


@dataclass
class FunctionCall:
    """Function call made by the model."""
    name: str
    arguments: str  # JSON string


@dataclass
class ToolCall:
    """Tool call in a response or an assistant message."""
    id: str
    type: Literal["function"] = "function"
    function: FunctionCall = field(default_factory=lambda: FunctionCall("", ""))


# ============================================================
# Messages
# ============================================================

@dataclass
class Message:
    """
    Unified message format.

    Supports:
    - Simple text messages
    - Multimodal messages (text + images)
    - Tool call messages
    - Tool result messages
    """
    role: Role
    content: Union[str, List[ContentPart], None] = None
    tool_call_id: Optional[str] = None
    tool_calls: Optional[List[ToolCall]] = None
    thinking: Optional[str] = None

    @classmethod
    def system(cls, content: str) -> Message:
        """Create a system message."""
        return cls(role=Role.SYSTEM, content=content)

    @classmethod
    def user(cls, content: Union[str, List[ContentPart]]) -> Message:
        """Create a user message."""
        return cls(role=Role.USER, content=content)

    @classmethod
    def assistant(
        cls,
        content: Optional[str] = None,
        tool_calls: Optional[List[ToolCall]] = None
    ) -> Message:
        """Create an assistant message."""
        return cls(role=Role.ASSISTANT, content=content, tool_calls=tool_calls)

    @classmethod
    def tool_result(cls, tool_call_id: str, content: str) -> Message:
        """Create a tool result message."""
        return cls(role=Role.TOOL, content=content, tool_call_id=tool_call_id)

    @property
    def text(self) -> str:
        """Concatenated text of the message, ignoring images."""
        if self.content is None:
            return ""
        if isinstance(self.content, str):
            return self.content
        return "".join(
            part.text for part in self.content
            if isinstance(part, TextContent)
        )


# ============================================================
# Request Models
# ============================================================

DEFAULT_MAX_TOKENS = 4096
DEFAULT_TEMPERATURE = 0.7


@dataclass
class ChatRequest:
    """
    Caller-facing chat request.

    Example:
        request = ChatRequest(
            model="claude-sonnet-4",
            system="You are helpful.",
            content="Hello!",
            thinking=True,
        )
    """
    model: str
    content: Union[str, List[Message]]
    system: str = ""
    stream: bool = False
    thinking: bool = False
    max_tokens: Optional[int] = None
    temperature: Optional[float] = None
    tools: Optional[List[Tool]] = None
    advanced: Optional[Dict[str, Dict[str, Any]]] = None


@dataclass
class ProviderChatRequest:
    """Normalized request handed to a vendor adapter."""
    model: str
    messages: List[Message]
    system: str = ""
    stream: bool = False
    thinking: bool = False
    max_tokens: int = DEFAULT_MAX_TOKENS
    temperature: float = DEFAULT_TEMPERATURE
    tools: Optional[List[Tool]] = None
    advanced: Optional[Dict[str, Dict[str, Any]]] = None

    @classmethod
    def from_request(cls, request: ChatRequest, stream: bool = False) -> ProviderChatRequest:
        """Apply caller-side defaults and normalize string content."""
        if isinstance(request.content, str):
            messages = [Message.user(request.content)]
        else:
            messages = list(request.content)

        return cls(
            model=request.model,
            messages=messages,
            system=request.system,
            stream=stream or request.stream,
            thinking=bool(request.thinking),
            max_tokens=request.max_tokens or DEFAULT_MAX_TOKENS,
            temperature=(
                request.temperature
                if request.temperature is not None
                else DEFAULT_TEMPERATURE
            ),
            tools=request.tools or None,
            advanced=request.advanced or None,
        )

    def advanced_for(self, provider: Provider) -> Dict[str, Any]:
        """Raw extra wire fields for one vendor."""
        if not self.advanced:
            return {}
        return dict(self.advanced.get(provider.value) or {})


# ============================================================
# Response Models
# ============================================================

@dataclass
class Usage:
    """Token usage information."""
    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0
    thinking_tokens: Optional[int] = None

    def __post_init__(self):
        if self.total_tokens == 0:
            self.total_tokens = self.prompt_tokens + self.completion_tokens


@dataclass
class Choice:
    """A single completion choice."""
    index: int
    message: Message
    finish_reason: Optional[FinishReason]


@dataclass
class ChatCompletion:
    """
    Unified chat completion.

    Shortcut properties expose the first choice directly, so
    ``completion.content`` works without indexing into ``choices``.
    """
    id: str = field(default_factory=lambda: f"chatcmpl-{uuid.uuid4().hex[:12]}")
    object: Literal["chat.completion"] = "chat.completion"
    created: int = field(default_factory=lambda: int(time.time()))
    model: str = ""
    provider: str = ""
    choices: List[Choice] = field(default_factory=list)
    usage: Optional[Usage] = None

    @property
    def message(self) -> Optional[Message]:
        return self.choices[0].message if self.choices else None

    @property
    def content(self) -> str:
        message = self.message
        return message.text if message else ""

    @property
    def thinking(self) -> Optional[str]:
        message = self.message
        return message.thinking if message else None

    @property
    def tool_calls(self) -> Optional[List[ToolCall]]:
        message = self.message
        return message.tool_calls if message else None

    @property
    def finish_reason(self) -> Optional[FinishReason]:
        return self.choices[0].finish_reason if self.choices else None


# ============================================================
# Serialization helpers
# ============================================================

def message_to_dict(msg: Message) -> Dict[str, Any]:
    """Convert Message to the OpenAI-style dictionary."""
    result: Dict[str, Any] = {"role": msg.role.value}

    if msg.content is not None:
        if isinstance(msg.content, str):
            result["content"] = msg.content
        else:
            parts = []
            for part in msg.content:
                if isinstance(part, TextContent):
                    parts.append({"type": "text", "text": part.text})
                else:
                    parts.append({
                        "type": "image_url",
                        "image_url": {
                            "url": part.image_url.url,
                            "detail": part.image_url.detail,
                        }
                    })
            result["content"] = parts

    if msg.tool_call_id:
        result["tool_call_id"] = msg.tool_call_id

    if msg.tool_calls:
        result["tool_calls"] = [tool_call_to_dict(tc) for tc in msg.tool_calls]

    return result


def tool_call_to_dict(tc: ToolCall) -> Dict[str, Any]:
    return {
        "id": tc.id,
        "type": tc.type,
        "function": {
            "name": tc.function.name,
            "arguments": tc.function.arguments,
        }
    }

