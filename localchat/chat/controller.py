"""Generation controller: sends messages and streams replies into sessions.

Orchestrates one in-flight generation per controller:

1. Appends the user message and a loading assistant placeholder.
2. Builds the outgoing history (system prompt first, loading messages
   excluded) and opens a streaming request.
3. Feeds the response bytes through a ``StreamDecoder`` and patches the
   placeholder after every update.
4. Finalizes the placeholder on completion, cancellation or failure.

Cancellation goes through an ``AbortHandle`` owned by the controller. The
stream is consumed in an inner task so ``stop()`` interrupts a pending chunk
read immediately; ``send`` turns that into ``GenerationAborted`` and keeps
the partial reply without recording an error. Cancellation of the caller's
own task is propagated unchanged.
"""

import asyncio
import logging
import time
from collections.abc import Callable, Coroutine
from datetime import datetime
from enum import Enum
from typing import Any

import httpx

from localchat.client.chat_client import ChatClient, group_models
from localchat.models.schemas import (
    AIModel,
    ChatMessage,
    ChatSession,
    OutgoingMessage,
    Role,
)
from localchat.sessions.repository import SessionRepository
from localchat.storage.preferences import Preferences
from localchat.streaming.decoder import StreamDecoder

logger = logging.getLogger(__name__)

FAILURE_CONTENT = "Error: Unable to communicate with AI service."

Notifier = Callable[[str, str], None]


class GenerationAborted(Exception):
    """Raised when the active generation is stopped by the user."""


class SendOutcome(str, Enum):
    """How a ``send`` call ended."""

    COMPLETED = "completed"
    ABORTED = "aborted"
    FAILED = "failed"
    NO_SESSION = "no_session"
    BUSY = "busy"


class BusyPolicy(str, Enum):
    """What ``send`` does while another generation is active."""

    REJECT = "reject"
    SUPERSEDE = "supersede"


class AbortHandle:
    """Cancellation handle for one in-flight generation."""

    def __init__(self) -> None:
        self.aborted = False
        self._task: asyncio.Task | None = None
        self._finished = asyncio.Event()

    async def run(self, coro: Coroutine[Any, Any, None]) -> None:
        """Run ``coro`` in an inner task that ``abort`` can interrupt.

        Raises:
            GenerationAborted: If ``abort`` was called.
        """
        if self.aborted:
            coro.close()
            raise GenerationAborted

        self._task = asyncio.create_task(coro)
        try:
            await self._task
        except asyncio.CancelledError:
            current = asyncio.current_task()
            if self.aborted and not (current and current.cancelling()):
                raise GenerationAborted from None
            raise

    def abort(self) -> None:
        self.aborted = True
        if self._task is not None and not self._task.done():
            self._task.cancel()

    def mark_finished(self) -> None:
        self._finished.set()

    async def wait_finished(self) -> None:
        await self._finished.wait()


def build_outgoing_messages(session: ChatSession, content: str) -> list[OutgoingMessage]:
    """Request history for a new user message.

    Prior non-loading messages (role and content only), preceded by the
    session system prompt when set, followed by the new user content.
    """
    messages = [
        OutgoingMessage(role=m.role, content=m.content)
        for m in session.messages
        if not m.is_loading
    ]
    if session.system_prompt:
        messages.insert(0, OutgoingMessage(role=Role.SYSTEM, content=session.system_prompt))
    messages.append(OutgoingMessage(role=Role.USER, content=content))
    return messages


def describe_error(error: Exception) -> str:
    if isinstance(error, httpx.HTTPStatusError):
        return f"HTTP error! status: {error.response.status_code}"
    return str(error) or type(error).__name__


class GenerationController:
    """Drives chat generations against the completion server.

    Args:
        repository: Session repository receiving all state changes.
        client: Transport for the completion server.
        preferences: Default system prompt and last selected model.
        notify: Called with ``(title, description)`` for errors shown to the
            user.
        busy_policy: Behaviour of ``send`` while a generation is active.
        clock: Monotonic clock for generation metrics.
    """

    def __init__(
        self,
        repository: SessionRepository,
        client: ChatClient,
        preferences: Preferences,
        notify: Notifier | None = None,
        busy_policy: BusyPolicy = BusyPolicy.REJECT,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._repository = repository
        self._client = client
        self._preferences = preferences
        self._notify = notify or (lambda title, description: None)
        self._busy_policy = busy_policy
        self._clock = clock
        self._abort: AbortHandle | None = None
        self.models: list[AIModel] = []

    @property
    def is_generating(self) -> bool:
        return self._abort is not None

    async def send(self, content: str) -> SendOutcome:
        """Send ``content`` in the current session and stream the reply."""
        if self._repository.current_session is None:
            return SendOutcome.NO_SESSION

        if self._abort is not None:
            if self._busy_policy is BusyPolicy.REJECT:
                logger.warning("Generation already in progress, message not sent")
                return SendOutcome.BUSY
            previous = self._abort
            self.stop()
            await previous.wait_finished()

        session = self._repository.current_session
        if session is None:
            return SendOutcome.NO_SESSION

        outgoing = build_outgoing_messages(session, content)
        placeholder = ChatMessage(role=Role.ASSISTANT, is_loading=True)
        self._repository.append_message(session.id, ChatMessage(role=Role.USER, content=content))
        self._repository.append_message(session.id, placeholder)

        handle = AbortHandle()
        self._abort = handle
        try:
            await handle.run(self._stream_reply(session, placeholder.id, outgoing))
        except GenerationAborted:
            logger.info("Request was aborted")
            self._repository.patch_message(session.id, placeholder.id, is_loading=False)
            return SendOutcome.ABORTED
        except Exception as e:
            logger.error(f"Error sending message: {e}")
            self._repository.patch_message(
                session.id,
                placeholder.id,
                is_loading=False,
                error=describe_error(e),
                content=FAILURE_CONTENT,
            )
            self._notify("Error", "Failed to send message. Please try again.")
            return SendOutcome.FAILED
        finally:
            if self._abort is handle:
                self._abort = None
            handle.mark_finished()

        return SendOutcome.COMPLETED

    def stop(self) -> bool:
        """Abort the active generation, if any.

        Message state is left to the interrupted ``send``.

        Returns:
            True if a generation was active.
        """
        handle, self._abort = self._abort, None
        if handle is None:
            return False
        handle.abort()
        return True

    async def _stream_reply(
        self,
        session: ChatSession,
        message_id: str,
        outgoing: list[OutgoingMessage],
    ) -> None:
        decoder = StreamDecoder(clock=self._clock)
        async with self._client.stream_chat(session.model, outgoing) as chunks:
            async for update in decoder.aiter_updates(chunks):
                self._repository.patch_message(session.id, message_id, update.to_patch())

        logger.info(
            f"Generated {decoder.token_count} tokens in {decoder.elapsed_seconds():.2f}s"
        )

    # Session helpers

    async def fetch_models(self) -> list[AIModel]:
        """Refresh ``models`` from the server; empty list on failure."""
        try:
            entries = await self._client.list_models()
        except Exception as e:
            logger.error(f"Error fetching models: {e}")
            self._notify("Error fetching models", "Could not fetch available models.")
            return []

        self.models = group_models(entries)
        return self.models

    def create_session(self, model_id: str) -> ChatSession:
        """Start a session on ``model_id`` with the default system prompt."""
        session = ChatSession(
            title=f"Chat {datetime.now().strftime('%H:%M:%S')}",
            model=model_id,
            system_prompt=self._preferences.default_system_prompt(),
        )
        self._preferences.save_last_model(model_id)
        self._repository.create_session(session)
        return session

    def select_model(self, model_id: str) -> ChatSession:
        """Switch to ``model_id``, replacing the current session if it is empty."""
        self._preferences.save_last_model(model_id)
        current = self._repository.current_session
        if current is not None and not current.messages:
            self._repository.delete_session(current.id)
        return self.create_session(model_id)

    def preferred_model(self) -> str | None:
        """Last selected model if still available, else the first one."""
        if not self.models:
            return None
        last = self._preferences.last_model()
        if last and any(model.id == last for model in self.models):
            return last
        return self.models[0].id

    def ensure_session(self) -> ChatSession | None:
        """Make sure a session is selected after startup.

        Picks the newest session when none is current, or creates one with
        the preferred model when there are no sessions at all.
        """
        sessions = self._repository.sessions
        if sessions and self._repository.current_session_id is None:
            newest = max(sessions, key=lambda s: s.created_at)
            self._repository.set_current_session(newest.id)
        elif not sessions:
            model_id = self.preferred_model()
            if model_id:
                return self.create_session(model_id)
        return self._repository.current_session

    def save_default_system_prompt(self, system_prompt: str) -> None:
        """Store a new default prompt and use it for the current session."""
        self._preferences.save_default_system_prompt(system_prompt)
        current = self._repository.current_session
        if current is not None:
            self._repository.set_system_prompt(current.id, system_prompt)

    def sync_default_system_prompt(self, system_prompt: str | None) -> None:
        """React to a default prompt changed elsewhere.

        Only a current session without messages adopts it; conversations
        already under way keep their prompt.
        """
        system_prompt = system_prompt or ""
        current = self._repository.current_session
        if current is None or current.messages or current.system_prompt == system_prompt:
            return
        self._repository.set_system_prompt(current.id, system_prompt)
