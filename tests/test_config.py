"""
hchat - Configuration Tests
"""

import pytest

from hchat.config import DEFAULT_BASE_URL, HChatConfig, parse_thinking_output
from hchat.streaming.deltas import ThinkingOutput


class TestHChatConfig:
    """Test direct construction."""

    def test_defaults(self):
        config = HChatConfig(api_key="k")

        assert config.base_url == DEFAULT_BASE_URL
        assert config.timeout == 60.0
        assert config.debug is False
        assert config.thinking_output == ThinkingOutput.INLINE

    def test_trailing_slash_removed(self):
        config = HChatConfig(api_key="k", base_url="https://gateway.test/v2/api/")

        assert config.base_url == "https://gateway.test/v2/api"

    def test_thinking_output_string(self):
        assert HChatConfig(api_key="k", thinking_output="OMIT").thinking_output == ThinkingOutput.OMIT

    def test_invalid_thinking_output(self):
        with pytest.raises(ValueError) as exc_info:
            HChatConfig(api_key="k", thinking_output="hidden")

        assert "inline, omit" in str(exc_info.value)


class TestParseThinkingOutput:

    @pytest.mark.parametrize("value,expected", [
        ("inline", ThinkingOutput.INLINE),
        (" Omit ", ThinkingOutput.OMIT),
        (ThinkingOutput.OMIT, ThinkingOutput.OMIT),
    ])
    def test_valid(self, value, expected):
        assert parse_thinking_output(value) == expected


class TestFromEnv:
    """Test environment loading."""

    def test_reads_environment(self, monkeypatch):
        monkeypatch.setenv("HCHAT_API_KEY", "env-key")
        monkeypatch.setenv("HCHAT_BASE_URL", "https://proxy.test/api/")
        monkeypatch.setenv("HCHAT_TIMEOUT", "15")
        monkeypatch.setenv("HCHAT_DEBUG", "yes")
        monkeypatch.setenv("HCHAT_THINKING_OUTPUT", "omit")

        config = HChatConfig.from_env()

        assert config.api_key == "env-key"
        assert config.base_url == "https://proxy.test/api"
        assert config.timeout == 15.0
        assert config.debug is True
        assert config.thinking_output == ThinkingOutput.OMIT

    def test_missing_environment(self, monkeypatch):
        for name in ("HCHAT_API_KEY", "HCHAT_BASE_URL", "HCHAT_TIMEOUT", "HCHAT_DEBUG", "HCHAT_THINKING_OUTPUT"):
            monkeypatch.delenv(name, raising=False)

        config = HChatConfig.from_env()

        assert config.api_key == ""
        assert config.base_url == DEFAULT_BASE_URL
        assert config.debug is False

    def test_overrides_win(self, monkeypatch):
        monkeypatch.setenv("HCHAT_API_KEY", "env-key")

        config = HChatConfig.from_env(api_key="explicit", debug=False)

        assert config.api_key == "explicit"

    @pytest.mark.parametrize("value", ["0", "false", "off", ""])
    def test_debug_falsy(self, monkeypatch, value):
        monkeypatch.setenv("HCHAT_DEBUG", value)

        assert HChatConfig.from_env().debug is False
