"""Streaming decoder for chat-completion event streams.

Responsibilities:
    - Line framing over arbitrary byte chunks
    - ``data:`` frame parsing with per-line error containment
    - ``<think>`` reasoning section tracking
    - Live token and throughput metrics
"""

from localchat.streaming.decoder import (
    CLOSE_MARKER,
    OPEN_MARKER,
    StreamDecoder,
    estimate_tokens,
    split_reasoning,
)

__all__ = [
    "CLOSE_MARKER",
    "OPEN_MARKER",
    "StreamDecoder",
    "estimate_tokens",
    "split_reasoning",
]
