"""
hchat - Client Configuration

Client settings, built directly or loaded from the environment.
"""

import os
from dataclasses import dataclass
from typing import Optional, Union

from .streaming.deltas import ThinkingOutput

DEFAULT_BASE_URL = "https://h-chat-api.autoever.com/v2/api"
DEFAULT_TIMEOUT = 60.0


def _is_truthy(value: Optional[str]) -> bool:
    """Check if environment variable is truthy."""
    if value is None:
        return False
    return value.lower().strip() in ("1", "true", "yes", "on")


def parse_thinking_output(value: Union[str, ThinkingOutput]) -> ThinkingOutput:
    """
    Parse a thinking output mode.

    Must be one of: inline, omit.
    """
    if isinstance(value, ThinkingOutput):
        return value
    mode = value.lower().strip()
    if mode == ThinkingOutput.INLINE.value:
        return ThinkingOutput.INLINE
    if mode == ThinkingOutput.OMIT.value:
        return ThinkingOutput.OMIT
    raise ValueError("Invalid thinking_output. Use one of: inline, omit")


@dataclass
class HChatConfig:
    """
    Configuration for HChat.

    Attributes:
        api_key: Gateway API key, sent as-is to every vendor endpoint
        base_url: Gateway base URL shared by all vendors
        timeout: HTTP timeout in seconds
        debug: Emit debug logs (installs the package log handler)
        thinking_output: "inline" renders thinking as <thinking> text in
            the public text stream, "omit" drops it
    """
    api_key: str
    base_url: str = DEFAULT_BASE_URL
    timeout: float = DEFAULT_TIMEOUT
    debug: bool = False
    thinking_output: Union[str, ThinkingOutput] = ThinkingOutput.INLINE

    def __post_init__(self):
        self.base_url = self.base_url.rstrip("/")
        self.thinking_output = parse_thinking_output(self.thinking_output)

    @classmethod
    def from_env(cls, **overrides) -> "HChatConfig":
        """
        Load configuration from the environment.

        Reads HCHAT_API_KEY, HCHAT_BASE_URL, HCHAT_TIMEOUT, HCHAT_DEBUG and
        HCHAT_THINKING_OUTPUT. Keyword arguments override the environment.
        """
        values = {
            "api_key": os.getenv("HCHAT_API_KEY", ""),
            "base_url": os.getenv("HCHAT_BASE_URL", DEFAULT_BASE_URL),
            "timeout": float(os.getenv("HCHAT_TIMEOUT", str(DEFAULT_TIMEOUT))),
            "debug": _is_truthy(os.getenv("HCHAT_DEBUG")),
            "thinking_output": os.getenv("HCHAT_THINKING_OUTPUT", ThinkingOutput.INLINE.value),
        }
        values.update(overrides)
        return cls(**values)
