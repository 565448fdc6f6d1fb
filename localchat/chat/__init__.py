"""Chat orchestration between the UI, the repository and the server.

Responsibilities:
    - Sending user messages and streaming replies into the session
    - Cancellation of the in-flight generation
    - Model discovery and session bootstrapping
"""

from localchat.chat.controller import (
    FAILURE_CONTENT,
    AbortHandle,
    BusyPolicy,
    GenerationAborted,
    GenerationController,
    SendOutcome,
    build_outgoing_messages,
)

__all__ = [
    "FAILURE_CONTENT",
    "AbortHandle",
    "BusyPolicy",
    "GenerationAborted",
    "GenerationController",
    "SendOutcome",
    "build_outgoing_messages",
]
