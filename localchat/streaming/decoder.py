"""Incremental decoder for streamed chat-completion responses.

Consumes the raw byte chunks of a ``text/event-stream`` response, splits them
into ``data:`` frames and rebuilds the assistant message as it grows.

Models may interleave a reasoning section, delimited by ``<think>`` and
``</think>``, with the final answer in the same content stream. The decoder
tracks it with a two-state machine (normal / in-reasoning) and keeps the
visible text in three parts composed on read:

    prefix (through the open marker) + reasoning + [close marker + suffix]

While the section is open the visible buffer mirrors the reasoning text live;
markers split across frames are recognized by holding back a trailing partial
marker until the next fragment arrives.

Every non-empty fragment produces a ``StreamUpdate`` carrying the full visible
buffer and the live metrics (estimated tokens, tokens/sec, elapsed seconds).
"""

import codecs
import logging
import math
import time
from collections.abc import AsyncIterable, AsyncIterator, Callable

from pydantic import ValidationError

from localchat.models.schemas import CompletionChunk, StreamUpdate

logger = logging.getLogger(__name__)

OPEN_MARKER = "<think>"
CLOSE_MARKER = "</think>"
DATA_FIELD = "data:"
DONE_PAYLOAD = "[DONE]"


def estimate_tokens(fragment: str) -> int:
    """Coarse token estimate: one token per four characters, rounded up."""
    return math.ceil(len(fragment) / 4)


def _partial_marker_length(text: str, marker: str) -> int:
    """Length of the longest proper prefix of ``marker`` ending ``text``."""
    for size in range(min(len(marker) - 1, len(text)), 0, -1):
        if text.endswith(marker[:size]):
            return size
    return 0


def split_reasoning(content: str) -> tuple[str, str]:
    """Separate the reasoning section from the answer for display.

    Returns:
        ``(reasoning, answer)``. An open section without a close marker
        counts as reasoning up to the end of the text.
    """
    start = content.find(OPEN_MARKER)
    if start == -1:
        return "", content

    end = content.find(CLOSE_MARKER, start)
    if end == -1:
        return content[start + len(OPEN_MARKER):].strip(), content[:start].strip()

    reasoning = content[start + len(OPEN_MARKER):end].strip()
    answer = content[:start] + content[end + len(CLOSE_MARKER):].strip()
    return reasoning, answer


class StreamDecoder:
    """Rebuilds assistant text from a streamed completion response.

    Args:
        clock: Monotonic clock in seconds. Elapsed time is measured from
            construction, so create the decoder right before the request.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        self._started = clock()
        self._text_decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        self._line_buffer = ""
        self._pending = ""
        self._in_reasoning = False
        self._closed = False
        self._prefix = ""
        self._reasoning = ""
        self._suffix = ""
        self._finished = False
        self.token_count = 0

    @property
    def content(self) -> str:
        """The visible buffer, markers included."""
        if self._closed:
            return f"{self._prefix}{self._reasoning}{CLOSE_MARKER}{self._suffix}"
        return f"{self._prefix}{self._reasoning}"

    @property
    def reasoning(self) -> str:
        return self._reasoning

    @property
    def in_reasoning(self) -> bool:
        return self._in_reasoning

    def elapsed_seconds(self) -> float:
        return max(self._clock() - self._started, 0.0)

    def snapshot(self, done: bool = False) -> StreamUpdate:
        """Current buffer and metrics as an update event."""
        elapsed = self.elapsed_seconds()
        tokens_per_second = self.token_count / elapsed if elapsed > 0 else 0.0
        return StreamUpdate(
            content=self.content,
            reasoning=self._reasoning,
            token_count=self.token_count,
            tokens_per_second=round(tokens_per_second, 2),
            generation_time_seconds=round(elapsed, 2),
            done=done,
        )

    def feed(self, chunk: bytes | str) -> list[StreamUpdate]:
        """Process one transport chunk.

        Only complete lines are handled; a trailing partial line is kept for
        the next chunk.

        Returns:
            One update per non-empty fragment found in the completed lines.
        """
        if self._finished:
            raise RuntimeError("Cannot feed a finished stream decoder")

        if isinstance(chunk, bytes):
            chunk = self._text_decoder.decode(chunk)
        self._line_buffer += chunk

        *lines, self._line_buffer = self._line_buffer.split("\n")

        updates = []
        for line in lines:
            fragment = self._parse_line(line)
            if fragment:
                updates.append(self._apply(fragment))
        return updates

    def finish(self) -> list[StreamUpdate]:
        """Terminate the stream.

        Closes a reasoning section left open with a synthesized close marker
        (emitting one update for it) and always emits a final ``done``
        snapshot. Calling it again returns nothing.
        """
        if self._finished:
            return []
        self._finished = True

        leftover = self._line_buffer + self._text_decoder.decode(b"", final=True)
        self._line_buffer = ""
        if leftover.strip():
            logger.debug(f"Dropping incomplete trailing line: {leftover!r}")

        if self._pending:
            self._append(self._pending)
            self._pending = ""

        updates = []
        if self._in_reasoning:
            self._toggle()
            updates.append(self.snapshot())
        updates.append(self.snapshot(done=True))
        return updates

    async def aiter_updates(self, chunks: AsyncIterable[bytes]) -> AsyncIterator[StreamUpdate]:
        """Decode an async byte stream, yielding updates as they occur."""
        async for chunk in chunks:
            for update in self.feed(chunk):
                yield update
        for update in self.finish():
            yield update

    def _parse_line(self, line: str) -> str:
        stripped = line.strip()
        if not stripped:
            return ""

        payload = stripped.removeprefix(DATA_FIELD).strip()
        if payload == DONE_PAYLOAD:
            return ""

        try:
            return CompletionChunk.model_validate_json(payload).text
        except ValidationError as e:
            logger.error(f"Error parsing streaming response: {e.errors()[0]['msg']} Line: {line!r}")
            return ""

    def _apply(self, fragment: str) -> StreamUpdate:
        self.token_count += estimate_tokens(fragment)

        text = self._pending + fragment
        self._pending = ""
        while text:
            marker = CLOSE_MARKER if self._in_reasoning else OPEN_MARKER
            index = text.find(marker)
            if index == -1:
                held = _partial_marker_length(text, marker)
                if held:
                    self._pending = text[-held:]
                    text = text[:-held]
                self._append(text)
                break
            self._append(text[:index])
            self._toggle()
            text = text[index + len(marker):]

        return self.snapshot()

    def _append(self, text: str) -> None:
        if self._in_reasoning:
            self._reasoning += text
        elif self._closed:
            self._suffix += text
        else:
            self._prefix += text

    def _toggle(self) -> None:
        if self._in_reasoning:
            self._in_reasoning = False
            self._closed = True
            return

        if self._closed:
            # a new section starts after a closed one
            self._prefix = self.content
            self._reasoning = ""
            self._suffix = ""
            self._closed = False
        self._prefix += OPEN_MARKER
        self._in_reasoning = True
