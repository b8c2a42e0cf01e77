"""
hchat - Unified LLM Streaming Client

One request shape for OpenAI, Claude and Gemini models behind the H-Chat
gateway, with vendor streams normalized into a single delta format.

Quick Start:
    from hchat import HChat, HChatConfig, ChatRequest

    async with HChat(HChatConfig(api_key="...")) as client:
        # Whole completion
        completion = await client.chat(ChatRequest(model="gpt-4o", content="Hello!"))
        print(completion.content)

        # Streaming text
        async for text in client.stream(ChatRequest(model="claude-sonnet-4", content="Hi")):
            print(text, end="", flush=True)
"""

__version__ = "0.1.0"

from .config import HChatConfig
from .client import HChat
from .adapters import resolve_provider
from .core.models import (
    ChatCompletion,
    ChatRequest,
    FinishReason,
    ImageContent,
    ImageUrl,
    Message,
    Provider,
    Role,
    TextContent,
    Tool,
    ToolCall,
    Usage,
)
from .core.errors import (
    HChatException,
    TransportError,
    SemanticError,
    StreamError,
    UnknownModelError,
    ProviderStreamError,
    StreamInterruptedError,
)
from .streaming.deltas import (
    CanonicalDelta,
    ThinkingMarker,
    ThinkingOutput,
    ToolCallFragment,
)

__all__ = [
    "__version__",
    # Client
    "HChat",
    "HChatConfig",
    "resolve_provider",
    # Models
    "ChatCompletion",
    "ChatRequest",
    "FinishReason",
    "ImageContent",
    "ImageUrl",
    "Message",
    "Provider",
    "Role",
    "TextContent",
    "Tool",
    "ToolCall",
    "Usage",
    # Errors
    "HChatException",
    "TransportError",
    "SemanticError",
    "StreamError",
    "UnknownModelError",
    "ProviderStreamError",
    "StreamInterruptedError",
    # Streaming
    "CanonicalDelta",
    "ThinkingMarker",
    "ThinkingOutput",
    "ToolCallFragment",
]
