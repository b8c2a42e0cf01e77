"""
hchat - Vendor Adapter Base

Abstract base class for vendor adapters.
Each vendor (OpenAI, Claude, Gemini) implements this interface.
"""

from abc import ABC, abstractmethod
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Callable, Dict, List, Mapping, Optional, Tuple

import httpx

from ..config import HChatConfig
from ..core.errors import (
    StreamInterruptedError,
    error_from_stream_payload,
    handle_http_error,
    handle_transport_exception,
)
from ..core.models import (
    ChatCompletion,
    FinishReason,
    Provider,
    ProviderChatRequest,
    Tool,
)
from ..observability.logging import get_logger
from ..streaming.deltas import INITIAL_STATE, AdapterState, CanonicalDelta, render_text
from ..streaming.sse import open_payload_stream

logger = get_logger(__name__)

# (delta or None, next state)
AdaptResult = Tuple[Optional[CanonicalDelta], AdapterState]


class BaseAdapter(ABC):
    """
    Abstract base class for vendor adapters.

    Each adapter must implement:
    - request_target: URL and query parameters for a call
    - build_payload: Convert the normalized request to the vendor wire shape
    - adapt: Convert one streamed vendor payload to a canonical delta
    - parse_completion: Convert a whole vendor response to a ChatCompletion

    Adapters hold no per-stream state. ``adapt`` receives the stream's
    AdapterState and returns the next one; ``stream`` keeps that value
    local to a single call, so one adapter instance can serve any number
    of concurrent streams.
    """

    provider: Provider
    finish_reasons: Mapping[str, FinishReason] = {}

    def __init__(self, config: HChatConfig, client: httpx.AsyncClient):
        self.config = config
        self.client = client

    @abstractmethod
    def request_target(
        self,
        request: ProviderChatRequest,
        stream: bool
    ) -> Tuple[str, Dict[str, str]]:
        """
        Resolve the endpoint for a call.

        Returns:
            (url, query parameters)
        """
        pass

    @abstractmethod
    def build_payload(self, request: ProviderChatRequest) -> Dict[str, Any]:
        """Build the vendor request body."""
        pass

    @abstractmethod
    def adapt(self, payload: Any, model: str, state: AdapterState) -> AdaptResult:
        """
        Convert one decoded stream payload.

        Args:
            payload: Decoded JSON payload in the vendor's streaming shape
            model: Model identifier of the request
            state: State left by the previous payload of the same stream

        Returns:
            (delta, next_state); delta is None when the payload carries
            nothing visible
        """
        pass

    @abstractmethod
    def parse_completion(self, data: Dict[str, Any], model: str) -> ChatCompletion:
        """Convert a non-streaming vendor response."""
        pass

    def auth_headers(self) -> Dict[str, str]:
        """Vendor-specific authentication headers."""
        return {}

    def initial_state(self) -> AdapterState:
        return INITIAL_STATE

    # ============================================================
    # Calls
    # ============================================================

    async def chat(self, request: ProviderChatRequest, request_id: str = "") -> ChatCompletion:
        """Issue a non-streaming call."""
        url, params = self.request_target(request, stream=False)
        payload = self.build_payload(request)
        payload.pop("stream", None)

        try:
            response = await self.client.post(
                url,
                params=params,
                json=payload,
                headers=self.auth_headers(),
            )
        except httpx.TransportError as e:
            raise handle_transport_exception(self.provider.value, e, request_id) from e

        if response.status_code >= 400:
            raise handle_http_error(self.provider.value, response, request.model, request_id)

        return self.parse_completion(response.json(), request.model)

    @asynccontextmanager
    async def open_stream(self, request: ProviderChatRequest, request_id: str = ""):
        """
        Open a streaming call and check its status.

        Raises before yielding when the vendor answers with a non-2xx
        status, so a stream never starts on a failed request.
        """
        url, params = self.request_target(request, stream=True)
        payload = self.build_payload(request)
        payload["stream"] = True

        try:
            async with self.client.stream(
                "POST",
                url,
                params=params,
                json=payload,
                headers=self.auth_headers(),
            ) as response:
                if response.status_code >= 400:
                    await response.aread()
                    raise handle_http_error(
                        self.provider.value, response, request.model, request_id
                    )
                yield response
        except httpx.TransportError as e:
            raise handle_transport_exception(self.provider.value, e, request_id) from e

    async def stream(
        self,
        request: ProviderChatRequest,
        request_id: str = "",
        on_malformed: Optional[Callable[[str], None]] = None
    ) -> AsyncIterator[CanonicalDelta]:
        """
        Stream canonical deltas for one request.

        Each call opens its own connection and starts from a fresh
        AdapterState. Closing the generator releases the connection.

        Raises:
            HChatException subclasses; transport failures after visible
            text (thinking included when rendered inline) become
            StreamInterruptedError with the partial text
        """
        provider = self.provider.value
        state = self.initial_state()
        partial: List[str] = []

        async with self.open_stream(request, request_id) as response:
            try:
                async with open_payload_stream(response.aiter_text(), on_malformed) as payloads:
                    async for payload in payloads:
                        error = error_from_stream_payload(provider, payload, request_id)
                        if error is not None:
                            error.error.partial_content = "".join(partial) or None
                            raise error

                        delta, state = self.adapt(payload, request.model, state)
                        if delta is None:
                            continue

                        visible = render_text(delta, self.config.thinking_output)
                        if visible:
                            partial.append(visible)
                        yield delta
            except httpx.TransportError as e:
                if partial:
                    raise StreamInterruptedError(provider, "".join(partial), request_id) from e
                raise

        if state.in_thinking_block:
            logger.debug("Stream ended inside a thinking block", provider=provider)

    # ============================================================
    # Helper methods for subclasses
    # ============================================================

    @staticmethod
    def _function_tools(tools: Optional[List[Tool]]) -> Optional[List[Dict[str, Any]]]:
        """Tools in OpenAI function form."""
        if not tools:
            return None
        return [
            {
                "type": tool.type,
                "function": {
                    "name": tool.function.name,
                    "description": tool.function.description,
                    "parameters": tool.function.parameters or {"type": "object", "properties": {}},
                }
            }
            for tool in tools
        ]

    @staticmethod
    def _merge_advanced(payload: Dict[str, Any], extra: Dict[str, Any]) -> Dict[str, Any]:
        """Overlay raw vendor fields, then drop keys whose value is None."""
        payload.update(extra)
        return {key: value for key, value in payload.items() if value is not None}
