"""
hchat - Pytest Configuration

Configures:
- Integration test markers (skip by default)
- Gateway mocks built on httpx.MockTransport
- Fresh metrics registries for unit tests
"""

import json
import os
from typing import Any, Callable, Dict, Iterable, List, Optional, Union

import httpx
import pytest
from prometheus_client import CollectorRegistry

from hchat import HChat, HChatConfig
from hchat.observability.metrics import StreamMetrics


# ============================================================
# Environment Configuration
# ============================================================

def _is_truthy(value: Optional[str]) -> bool:
    """Check if environment variable is truthy."""
    if value is None:
        return False
    return value.lower() in ("1", "true", "yes", "on")


RUN_INTEGRATION = _is_truthy(os.getenv("RUN_INTEGRATION"))

TEST_BASE_URL = "https://gateway.test/v2/api"


# ============================================================
# Pytest Markers
# ============================================================

def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers",
        "integration: mark test as integration test (requires RUN_INTEGRATION=1)"
    )


def pytest_collection_modifyitems(config, items):
    """Skip integration tests unless RUN_INTEGRATION=1."""
    skip_integration = pytest.mark.skip(
        reason="Integration test - set RUN_INTEGRATION=1 to run"
    )

    for item in items:
        if "integration" in item.keywords and not RUN_INTEGRATION:
            item.add_marker(skip_integration)


# ============================================================
# SSE helpers
# ============================================================

def sse(*payloads: Union[Dict[str, Any], str]) -> str:
    """Encode payloads as SSE ``data:`` events; strings are sent verbatim."""
    events = []
    for payload in payloads:
        data = payload if isinstance(payload, str) else json.dumps(payload)
        events.append(f"data: {data}\n\n")
    return "".join(events)


def split_every(text: str, size: int) -> List[bytes]:
    """Cut text into byte chunks of ``size`` (may split UTF-8 sequences)."""
    raw = text.encode("utf-8")
    return [raw[i:i + size] for i in range(0, len(raw), size)]


class RecordingByteStream(httpx.AsyncByteStream):
    """
    Response body that yields fixed chunks and records closing.

    ``closed`` turns True once httpx releases the response, which is how
    tests observe that a cancelled stream gave its connection back.
    """

    def __init__(self, chunks: Iterable[Union[bytes, str]]):
        self.chunks = [c.encode("utf-8") if isinstance(c, str) else c for c in chunks]
        self.sent = 0
        self.closed = False

    async def __aiter__(self):
        for chunk in self.chunks:
            self.sent += 1
            yield chunk

    async def aclose(self):
        self.closed = True


class FailingByteStream(RecordingByteStream):
    """Yields its chunks, then fails the read as a dropped connection would."""

    async def __aiter__(self):
        for chunk in self.chunks:
            self.sent += 1
            yield chunk
        raise httpx.RemoteProtocolError("peer closed connection without sending complete message body")


class GatewayMock:
    """
    Records requests and answers them with queued responses.

    Usage:
        gateway.add_stream(sse({...}, "[DONE]"))
        gateway.add_json({"choices": [...]})
    """

    def __init__(self):
        self.requests: List[httpx.Request] = []
        self.responses: List[httpx.Response] = []
        self.streams: List[RecordingByteStream] = []

    def add_stream(self, body: Union[str, List[Union[bytes, str]]], status_code: int = 200):
        chunks = [body] if isinstance(body, str) else body
        stream = RecordingByteStream(chunks)
        self.streams.append(stream)
        self.responses.append(httpx.Response(
            status_code,
            headers={"content-type": "text/event-stream"},
            stream=stream,
        ))
        return stream

    def add_json(self, data: Any, status_code: int = 200, headers: Optional[Dict[str, str]] = None):
        self.responses.append(httpx.Response(status_code, json=data, headers=headers))

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if not self.responses:
            return httpx.Response(500, json={"error": {"message": "no response queued"}})
        return self.responses.pop(0)

    @property
    def last_request(self) -> httpx.Request:
        return self.requests[-1]

    def last_json(self) -> Dict[str, Any]:
        return json.loads(self.last_request.content)


# ============================================================
# Fixtures
# ============================================================

@pytest.fixture
def config():
    """Client configuration pointing at the test gateway."""
    return HChatConfig(api_key="test-key", base_url=TEST_BASE_URL)


@pytest.fixture
def registry():
    """Fresh Prometheus registry per test."""
    return CollectorRegistry()


@pytest.fixture
def metrics(registry):
    return StreamMetrics(registry)


@pytest.fixture
def gateway():
    return GatewayMock()


@pytest.fixture
def http_client(gateway):
    """httpx client whose transport is the gateway mock."""
    return httpx.AsyncClient(transport=httpx.MockTransport(gateway.handler))


@pytest.fixture
def make_client(config, http_client, metrics) -> Callable[..., HChat]:
    """
    Build an HChat wired to the gateway mock.

    Usage:
        client = make_client(on_tool_call=fragments.append)
    """
    def factory(**kwargs) -> HChat:
        kwargs.setdefault("config", config)
        kwargs.setdefault("http_client", http_client)
        kwargs.setdefault("metrics", metrics)
        return HChat(**kwargs)
    return factory


# ============================================================
# Vendor payload fixtures
# ============================================================

@pytest.fixture
def claude_thinking_events():
    """Claude stream with a thinking block followed by text."""
    return [
        {"type": "message_start", "message": {"id": "msg_1"}},
        {"type": "content_block_start", "index": 0, "content_block": {"type": "thinking", "thinking": ""}},
        {"type": "content_block_delta", "index": 0, "delta": {"type": "thinking_delta", "thinking": "a"}},
        {"type": "content_block_delta", "index": 0, "delta": {"type": "thinking_delta", "thinking": "b"}},
        {"type": "content_block_stop", "index": 0},
        {"type": "content_block_start", "index": 1, "content_block": {"type": "text", "text": ""}},
        {"type": "content_block_delta", "index": 1, "delta": {"type": "text_delta", "text": "Hello"}},
        {"type": "content_block_stop", "index": 1},
        {"type": "message_delta", "delta": {"stop_reason": "end_turn"}},
        {"type": "message_stop"},
    ]


@pytest.fixture
def claude_tool_events():
    """Claude stream with one tool_use block split over two JSON fragments."""
    return [
        {"type": "message_start", "message": {"id": "msg_2"}},
        {
            "type": "content_block_start",
            "index": 0,
            "content_block": {"type": "tool_use", "id": "toolu_1", "name": "get_weather", "input": {}},
        },
        {"type": "content_block_delta", "index": 0, "delta": {"type": "input_json_delta", "partial_json": "{\"x\":"}},
        {"type": "content_block_delta", "index": 0, "delta": {"type": "input_json_delta", "partial_json": "1}"}},
        {"type": "content_block_stop", "index": 0},
        {"type": "message_delta", "delta": {"stop_reason": "tool_use"}},
        {"type": "message_stop"},
    ]


@pytest.fixture
def openai_events():
    """OpenAI chat.completion.chunk stream."""
    def chunk(delta, finish_reason=None):
        return {
            "id": "chatcmpl-abc",
            "object": "chat.completion.chunk",
            "created": 1700000000,
            "model": "gpt-4o",
            "choices": [{"index": 0, "delta": delta, "finish_reason": finish_reason}],
        }
    return [
        chunk({"role": "assistant", "content": ""}),
        chunk({"content": "Hel"}),
        chunk({"content": "lo"}),
        chunk({}, "stop"),
    ]


@pytest.fixture
def gemini_events():
    """Gemini streamGenerateContent payloads with a thought part."""
    return [
        {"candidates": [{"content": {"role": "model", "parts": [{"text": "pondering", "thought": True}]}}]},
        {"candidates": [{"content": {"role": "model", "parts": [{"text": "Hi"}]}}]},
        {"candidates": [{"content": {"role": "model", "parts": [{"text": " there"}]}, "finishReason": "STOP"}]},
    ]


@pytest.fixture
def mock_openai_response():
    """Standard mock OpenAI chat response."""
    return {
        "id": "chatcmpl-test123",
        "object": "chat.completion",
        "created": 1234567890,
        "model": "gpt-4o",
        "choices": [
            {
                "index": 0,
                "message": {
                    "role": "assistant",
                    "content": "Hello! I'm a mock response."
                },
                "finish_reason": "stop"
            }
        ],
        "usage": {
            "prompt_tokens": 10,
            "completion_tokens": 8,
            "total_tokens": 18,
            "completion_tokens_details": {"reasoning_tokens": 2}
        }
    }


@pytest.fixture
def mock_claude_response():
    """Standard mock Claude messages response."""
    return {
        "id": "msg-test123",
        "type": "message",
        "role": "assistant",
        "content": [
            {
                "type": "text",
                "text": "Hello! I'm a mock Claude response."
            }
        ],
        "model": "claude-sonnet-4",
        "stop_reason": "end_turn",
        "usage": {
            "input_tokens": 10,
            "output_tokens": 8
        }
    }
