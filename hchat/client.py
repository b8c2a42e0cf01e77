"""
hchat - Client

Entry point for chat calls. Resolves the vendor from the model name,
normalizes the request and dispatches it to the vendor adapter.

Example:
    async with HChat(HChatConfig(api_key="...")) as client:
        async for text in client.stream(ChatRequest(model="claude-sonnet-4", content="Hi")):
            print(text, end="")
"""

import asyncio
import time
import uuid
from contextlib import aclosing
from typing import Any, AsyncIterator, Callable, Dict, Optional

import httpx
from opentelemetry import trace

from . import __version__
from .adapters import BaseAdapter, get_adapter, resolve_provider
from .config import HChatConfig
from .core.errors import HChatException
from .core.models import ChatCompletion, ChatRequest, Provider, ProviderChatRequest
from .observability.logging import get_logger, setup_logging
from .observability.metrics import StreamMetrics, StreamOutcome, get_metrics
from .observability.tracing import finish_span, start_provider_span
from .streaming.assembler import StreamAssembler
from .streaming.deltas import CanonicalDelta, StreamChunk, ToolCallFragment, render_text

logger = get_logger(__name__)

ToolCallHook = Callable[[ToolCallFragment], None]


def _new_request_id() -> str:
    return f"req_{uuid.uuid4().hex[:12]}"


class HChat:
    """
    hchat async client.

    Args:
        config: Client configuration. Defaults to HChatConfig.from_env().
        http_client: Shared httpx.AsyncClient. When omitted the client
            creates its own and closes it in aclose().
        metrics: Metrics collector. Defaults to the process-wide one.
        tracer: OpenTelemetry tracer. Defaults to the global provider's.
        on_tool_call: Called with every streamed tool call fragment.

    Every stream opens its own connection and adapter state, so one
    client may run any number of concurrent streams.
    """

    def __init__(
        self,
        config: Optional[HChatConfig] = None,
        http_client: Optional[httpx.AsyncClient] = None,
        metrics: Optional[StreamMetrics] = None,
        tracer: Optional[trace.Tracer] = None,
        on_tool_call: Optional[ToolCallHook] = None
    ):
        self.config = config or HChatConfig.from_env()
        if self.config.debug:
            setup_logging("DEBUG")

        self._owns_client = http_client is None
        self._client = http_client or httpx.AsyncClient(
            headers={"User-Agent": f"hchat-python/{__version__}"},
            timeout=self.config.timeout,
        )
        self.metrics = metrics or get_metrics()
        self.tracer = tracer
        self.on_tool_call = on_tool_call
        self._adapters: Dict[Provider, BaseAdapter] = {}

    def adapter_for(self, model: str) -> BaseAdapter:
        """
        Adapter serving ``model``.

        Raises:
            UnknownModelError: If no vendor prefix matches
        """
        provider = resolve_provider(model)
        if provider not in self._adapters:
            self._adapters[provider] = get_adapter(provider, self.config, self._client)
        return self._adapters[provider]

    # ============================================================
    # Non-streaming
    # ============================================================

    async def chat(self, request: ChatRequest) -> ChatCompletion:
        """Create a chat completion in one response."""
        adapter = self.adapter_for(request.model)
        provider = adapter.provider.value
        request_id = _new_request_id()
        log = logger.bind(request_id=request_id, provider=provider, model=request.model)

        span = start_provider_span(provider, request.model, "chat", request_id, self.tracer)
        try:
            completion = await adapter.chat(
                ProviderChatRequest.from_request(request, stream=False),
                request_id,
            )
        except Exception as e:
            status = e.status_code if isinstance(e, HChatException) else 0
            self.metrics.record_request(provider, "chat", status)
            log.debug("Chat request failed", status_code=status, error=str(e))
            finish_span(span, e)
            raise

        self.metrics.record_request(provider, "chat", 200)
        finish_span(span)
        log.debug("Chat request completed", finish_reason=completion.finish_reason)
        return completion

    # ============================================================
    # Streaming
    # ============================================================

    async def stream_deltas(self, request: ChatRequest) -> AsyncIterator[CanonicalDelta]:
        """
        Stream canonical deltas.

        Raises on the first iteration for an unknown model or a non-2xx
        answer. Closing the iterator early ends the stream quietly and
        releases the connection.
        """
        adapter = self.adapter_for(request.model)
        provider = adapter.provider.value
        request_id = _new_request_id()
        log = logger.bind(request_id=request_id, provider=provider, model=request.model)

        def on_malformed(raw: str):
            self.metrics.record_dropped_event(provider)

        span = start_provider_span(provider, request.model, "stream", request_id, self.tracer)
        started = time.perf_counter()
        responded = False
        first_token = False

        try:
            stream = adapter.stream(
                ProviderChatRequest.from_request(request, stream=True),
                request_id,
                on_malformed,
            )
            async with aclosing(stream) as deltas:
                async for delta in deltas:
                    if not responded:
                        responded = True
                        self.metrics.record_request(provider, "stream", 200)

                    if not first_token and (delta.content or delta.thinking):
                        first_token = True
                        self.metrics.record_time_to_first_token(
                            provider, request.model, time.perf_counter() - started
                        )

                    for fragment in delta.tool_calls or []:
                        log.debug(
                            "Tool call fragment",
                            index=fragment.index,
                            tool_call_id=fragment.id,
                            function_name=fragment.name,
                            arguments_chunk=fragment.arguments_chunk,
                        )
                        if self.on_tool_call is not None:
                            self.on_tool_call(fragment)

                    self.metrics.record_delta(provider)
                    yield delta

        except (GeneratorExit, asyncio.CancelledError):
            self.metrics.record_stream(provider, StreamOutcome.CANCELLED)
            log.debug("Stream cancelled by consumer")
            finish_span(span)
            raise

        except Exception as e:
            if not responded:
                status = e.status_code if isinstance(e, HChatException) else 0
                self.metrics.record_request(provider, "stream", status)
            self.metrics.record_stream(provider, StreamOutcome.FAILED)
            log.debug("Stream failed", error=str(e))
            finish_span(span, e)
            raise

        if not responded:
            self.metrics.record_request(provider, "stream", 200)
        self.metrics.record_stream(provider, StreamOutcome.COMPLETED)
        finish_span(span)

    async def stream(self, request: ChatRequest) -> AsyncIterator[str]:
        """
        Stream the response as plain text.

        Concatenating every yielded string gives the full visible output,
        thinking tags included when ``thinking_output`` is "inline".
        Tool call fragments never appear here; use ``on_tool_call`` or
        ``stream_deltas``.
        """
        async with aclosing(self.stream_deltas(request)) as deltas:
            async for delta in deltas:
                text = render_text(delta, self.config.thinking_output)
                if text:
                    yield text

    async def stream_chunks(self, request: ChatRequest) -> AsyncIterator[Dict[str, Any]]:
        """Stream OpenAI-style ``chat.completion.chunk`` dicts."""
        stream_id = f"chatcmpl-{uuid.uuid4().hex[:12]}"
        created = int(time.time())

        async with aclosing(self.stream_deltas(request)) as deltas:
            async for delta in deltas:
                chunk = StreamChunk.from_delta(
                    delta,
                    stream_id,
                    request.model,
                    created,
                    self.config.thinking_output,
                )
                yield chunk.to_dict()

    async def collect(self, request: ChatRequest) -> ChatCompletion:
        """Stream a request and fold it into one ChatCompletion."""
        provider = resolve_provider(request.model)
        assembler = StreamAssembler(model=request.model, provider=provider.value)

        async with aclosing(self.stream_deltas(request)) as deltas:
            async for delta in deltas:
                assembler.add(delta)

        return assembler.build()

    # ============================================================
    # Lifecycle
    # ============================================================

    async def aclose(self):
        """Close the HTTP client if this instance created it."""
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> "HChat":
        return self

    async def __aexit__(self, *args):
        await self.aclose()
