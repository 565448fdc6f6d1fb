"""Shared builders for streamed frames and test doubles."""

import json

from localchat.storage.store import InMemoryStore


def frame(content: str | None) -> str:
    """One ``data:`` line carrying ``content`` as the delta text."""
    delta = {} if content is None else {"content": content}
    return f"data: {json.dumps({'choices': [{'delta': delta}]}, ensure_ascii=False)}\n"


def sse(*fragments: str, done: bool = True) -> bytes:
    """A complete event-stream body for the given fragments."""
    body = "".join(frame(fragment) for fragment in fragments)
    if done:
        body += "data: [DONE]\n\n"
    return body.encode("utf-8")


class FakeClock:
    """Monotonic clock advanced by hand."""

    def __init__(self, now: float = 0.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class RecordingStore(InMemoryStore):
    """In-memory store that remembers every write."""

    def __init__(self, initial: dict[str, str] | None = None) -> None:
        super().__init__(initial)
        self.writes: list[tuple[str, str]] = []

    def set(self, key: str, value: str) -> None:
        self.writes.append((key, value))
        super().set(key, value)


class FailingStore(InMemoryStore):
    """Store whose writes always fail."""

    def set(self, key: str, value: str) -> None:
        raise OSError("disk full")
