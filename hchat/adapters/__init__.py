"""
hchat Adapters Module

Vendor adapters that translate between the unified hchat format and
each vendor's native request and streaming formats.
"""

from typing import Tuple

import httpx

from .base import BaseAdapter
from .openai_adapter import OpenAIAdapter
from .claude_adapter import ClaudeAdapter
from .gemini_adapter import GeminiAdapter
from ..config import HChatConfig
from ..core.errors import UnknownModelError
from ..core.models import Provider

__all__ = [
    "BaseAdapter",
    "OpenAIAdapter",
    "ClaudeAdapter",
    "GeminiAdapter",
    "MODEL_PREFIX_RULES",
    "ADAPTER_CLASSES",
    "resolve_provider",
    "get_adapter",
]

# Ordered (model prefix, provider) rules; first match wins.
MODEL_PREFIX_RULES: Tuple[Tuple[str, Provider], ...] = (
    ("gpt-", Provider.OPENAI),
    ("claude-", Provider.CLAUDE),
    ("gemini-", Provider.GEMINI),
)

ADAPTER_CLASSES = {
    Provider.OPENAI: OpenAIAdapter,
    Provider.CLAUDE: ClaudeAdapter,
    Provider.GEMINI: GeminiAdapter,
}


def resolve_provider(model: str) -> Provider:
    """
    Pick the vendor for a model identifier (prefixes match case-insensitively).

    Raises:
        UnknownModelError: If no prefix rule matches
    """
    lowered = model.lower()
    for prefix, provider in MODEL_PREFIX_RULES:
        if lowered.startswith(prefix):
            return provider
    raise UnknownModelError(model)


def get_adapter(
    provider: Provider,
    config: HChatConfig,
    client: httpx.AsyncClient
) -> BaseAdapter:
    """
    Factory function to get the adapter for a vendor.

    Adapters are stateless; per-stream state lives inside each
    ``stream`` call, so one instance may be reused freely.
    """
    return ADAPTER_CLASSES[provider](config, client)
