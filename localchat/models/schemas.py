"""Pydantic models for chat state, streaming frames and the completion API.

State models are frozen: every repository transition produces a new snapshot
through ``model_copy``. Field names are snake_case in Python and camelCase on
the wire, so the persisted state and the export file keep the same shape as
the original browser client.
"""

import uuid
from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


def new_id() -> str:
    """Return an opaque unique identifier for sessions and messages."""
    return str(uuid.uuid4())


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class Role(str, Enum):
    """Speaker of a chat message."""

    USER = "user"
    ASSISTANT = "assistant"
    SYSTEM = "system"


class _StateModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
    )


class ChatMessage(_StateModel):
    """A single message inside a chat session.

    Attributes:
        id: Unique message identifier, fixed at creation.
        role: The speaker (user, assistant, or system).
        content: Message text. Rewritten while an assistant reply streams.
        is_loading: True until the reply stream for this message terminates.
        error: Failure description, set only on abnormal termination.
        token_count: Estimated tokens generated so far (assistant only).
        tokens_per_second: Generation throughput (assistant only).
        generation_time_seconds: Elapsed generation time (assistant only).
    """

    id: str = Field(default_factory=new_id)
    role: Role
    content: str = ""
    is_loading: bool = False
    error: str | None = None
    token_count: int | None = None
    tokens_per_second: float | None = None
    generation_time_seconds: float | None = None


class ChatSession(_StateModel):
    """A titled conversation bound to one model.

    Attributes:
        id: Unique session identifier.
        title: Display label derived from the creation time.
        model: Identifier of the target model.
        messages: Messages in creation order.
        created_at: Creation timestamp (timezone-aware).
        system_prompt: Optional prompt prepended to every request.
    """

    id: str = Field(default_factory=new_id)
    title: str
    model: str
    messages: tuple[ChatMessage, ...] = ()
    created_at: datetime = Field(default_factory=utc_now)
    system_prompt: str | None = None

    @field_validator("created_at")
    @classmethod
    def assume_utc(cls, v: datetime) -> datetime:
        """Treat naive timestamps from older exports as UTC."""
        if v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v

    @property
    def total_tokens(self) -> int:
        return sum(message.token_count or 0 for message in self.messages)

    def find_message(self, message_id: str) -> ChatMessage | None:
        return next((m for m in self.messages if m.id == message_id), None)


class ChatState(_StateModel):
    """Full repository state: sessions newest-first plus the active pointer."""

    sessions: tuple[ChatSession, ...] = ()
    current_session_id: str | None = None

    def find_session(self, session_id: str | None) -> ChatSession | None:
        if session_id is None:
            return None
        return next((s for s in self.sessions if s.id == session_id), None)

    @property
    def current_session(self) -> ChatSession | None:
        return self.find_session(self.current_session_id)


class MessagePatch(BaseModel):
    """Partial update for a message. Only explicitly set fields are merged."""

    content: str | None = None
    is_loading: bool | None = None
    error: str | None = None
    token_count: int | None = None
    tokens_per_second: float | None = None
    generation_time_seconds: float | None = None

    def apply(self, message: ChatMessage) -> ChatMessage:
        return message.model_copy(update=self.model_dump(exclude_unset=True))


class StreamUpdate(BaseModel):
    """Progress event emitted by the stream decoder.

    Attributes:
        content: The full visible buffer reconstructed so far.
        reasoning: Text of the current reasoning section.
        token_count: Estimated tokens received so far.
        tokens_per_second: Throughput since the stream started.
        generation_time_seconds: Elapsed time since the stream started.
        done: Whether this is the final snapshot of the stream.
    """

    model_config = ConfigDict(frozen=True)

    content: str
    reasoning: str = ""
    token_count: int = Field(ge=0)
    tokens_per_second: float = Field(ge=0.0)
    generation_time_seconds: float = Field(ge=0.0)
    done: bool = False

    def to_patch(self) -> MessagePatch:
        """Build the message patch that applies this update."""
        fields = {
            "content": self.content,
            "token_count": self.token_count,
            "tokens_per_second": self.tokens_per_second,
            "generation_time_seconds": self.generation_time_seconds,
        }
        if self.done:
            fields["is_loading"] = False
        return MessagePatch(**fields)


class OutgoingMessage(BaseModel):
    """Role and content of a message sent to the completion server."""

    role: Role
    content: str


class ChatCompletionRequest(BaseModel):
    """Request body for ``POST /chat/completions``."""

    model: str
    messages: list[OutgoingMessage]
    stream: bool = True


class Delta(BaseModel):
    content: str | None = None


class ChunkChoice(BaseModel):
    delta: Delta = Field(default_factory=Delta)


class CompletionChunk(BaseModel):
    """One parsed ``data:`` frame of a streamed completion."""

    choices: list[ChunkChoice] = Field(default_factory=list)

    @property
    def text(self) -> str:
        """Incremental text carried by the first choice, or an empty string."""
        if not self.choices:
            return ""
        return self.choices[0].delta.content or ""


class ModelEntry(BaseModel):
    id: str


class ModelList(BaseModel):
    """Response body of ``GET /models``."""

    data: list[ModelEntry] = Field(default_factory=list)


class AIModel(BaseModel):
    """A selectable model with its display name."""

    id: str
    name: str
