"""Pydantic models for chat state and the completion API.

Models:
    - ChatMessage: Individual message in a session
    - ChatSession: Titled conversation bound to one model
    - ChatState: All sessions plus the active-session pointer
    - MessagePatch: Partial message update
    - StreamUpdate: Progress event from the stream decoder
    - ChatCompletionRequest / CompletionChunk: Completion wire formats
    - AIModel: Selectable model with display name
"""

from localchat.models.schemas import (
    AIModel,
    ChatCompletionRequest,
    ChatMessage,
    ChatSession,
    ChatState,
    CompletionChunk,
    MessagePatch,
    ModelEntry,
    ModelList,
    OutgoingMessage,
    Role,
    StreamUpdate,
    new_id,
)

__all__ = [
    "AIModel",
    "ChatCompletionRequest",
    "ChatMessage",
    "ChatSession",
    "ChatState",
    "CompletionChunk",
    "MessagePatch",
    "ModelEntry",
    "ModelList",
    "OutgoingMessage",
    "Role",
    "StreamUpdate",
    "new_id",
]
