"""
hchat - Server-Sent Events Parsing

Turns decoded text fragments into SSE events and SSE events into
JSON payloads.

Pipeline:
    response.aiter_text()  ->  iter_sse_events()  ->  iter_json_payloads()

``aiter_text`` already buffers partial UTF-8 sequences, so everything
below works on ``str``. Fragments may split an event anywhere; the
parser only ever yields complete events.
"""

import json
from contextlib import aclosing, asynccontextmanager
from dataclasses import dataclass
from typing import Any, AsyncIterator, Callable, List, Optional

from ..observability.logging import get_logger

logger = get_logger(__name__)

EVENT_TERMINATOR = "\n\n"
DONE_SENTINELS = frozenset({"[DONE]", "DONE"})


@dataclass(frozen=True)
class SSEEvent:
    """One complete server-sent event."""
    data: str
    event: Optional[str] = None
    id: Optional[str] = None
    retry: Optional[int] = None

    @property
    def is_done(self) -> bool:
        """Whether this event is the end-of-stream sentinel."""
        return self.data.strip() in DONE_SENTINELS


def parse_event_block(block: str) -> Optional[SSEEvent]:
    """
    Parse one blank-line-delimited block.

    Returns None for blocks without any ``data`` line.
    """
    event_name: Optional[str] = None
    event_id: Optional[str] = None
    retry: Optional[int] = None
    data_lines: List[str] = []

    for line in block.split("\n"):
        if not line or line.startswith(":"):
            continue

        name, sep, value = line.partition(":")
        if not sep:
            continue
        value = value.lstrip()

        if name == "data":
            data_lines.append(value)
        elif name == "event":
            event_name = value
        elif name == "id":
            event_id = value
        elif name == "retry":
            try:
                retry = int(value)
            except ValueError:
                pass

    if not data_lines:
        return None

    return SSEEvent(
        data="\n".join(data_lines),
        event=event_name,
        id=event_id,
        retry=retry,
    )


class SSEParser:
    """
    Incremental SSE event assembler.

    Usage:
        parser = SSEParser()
        for fragment in fragments:
            for event in parser.feed(fragment):
                handle(event)
        for event in parser.flush():
            handle(event)
    """

    def __init__(self):
        self._buffer = ""

    @property
    def buffered(self) -> str:
        """Text waiting for an event terminator."""
        return self._buffer

    def feed(self, text: str) -> List[SSEEvent]:
        """Append a fragment and return every event it completes."""
        if not text:
            return []

        # CRLF may straddle two fragments, so normalize the joined buffer
        self._buffer = (self._buffer + text).replace("\r\n", "\n")

        blocks = self._buffer.split(EVENT_TERMINATOR)
        self._buffer = blocks.pop()
        return self._parse_blocks(blocks)

    def flush(self) -> List[SSEEvent]:
        """Parse whatever is left once the input has ended."""
        remainder, self._buffer = self._buffer, ""
        if not remainder.strip():
            return []
        return self._parse_blocks(remainder.split(EVENT_TERMINATOR))

    def _parse_blocks(self, blocks: List[str]) -> List[SSEEvent]:
        events = []
        for block in blocks:
            if not block.strip():
                continue
            event = parse_event_block(block)
            if event is not None:
                events.append(event)
        return events


async def iter_sse_events(chunks: AsyncIterator[str]) -> AsyncIterator[SSEEvent]:
    """Assemble SSE events from an async stream of decoded text."""
    parser = SSEParser()
    async for chunk in chunks:
        for event in parser.feed(chunk):
            yield event
    for event in parser.flush():
        yield event


async def iter_json_payloads(
    events: AsyncIterator[SSEEvent],
    on_malformed: Optional[Callable[[str], None]] = None
) -> AsyncIterator[Any]:
    """
    Decode SSE event data as JSON.

    Stops at the ``[DONE]`` sentinel without reading further. Payloads
    that are not valid JSON are logged and skipped.
    """
    async for event in events:
        if event.is_done:
            return

        try:
            payload = json.loads(event.data)
        except json.JSONDecodeError:
            logger.debug("Skipping malformed SSE payload", raw_data=event.data[:500])
            if on_malformed is not None:
                on_malformed(event.data)
            continue

        yield payload


@asynccontextmanager
async def open_payload_stream(
    chunks: AsyncIterator[str],
    on_malformed: Optional[Callable[[str], None]] = None
):
    """
    Decoded JSON payloads of a text stream, closed on exit.

    Both generator stages are closed when the block exits, including when
    the consumer stops early.

    Usage:
        async with open_payload_stream(response.aiter_text()) as payloads:
            async for payload in payloads:
                ...
    """
    async with aclosing(iter_sse_events(chunks)) as events:
        async with aclosing(iter_json_payloads(events, on_malformed)) as payloads:
            yield payloads
