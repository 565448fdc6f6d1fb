"""Session repository: the canonical, persisted collection of chat sessions.

Every state transition builds a new frozen ``ChatState`` snapshot, writes the
full serialized state to the key/value store under ``SESSIONS_KEY`` and then
notifies subscribers. Operations on unknown ids never raise; they return
``RepoResult.NOT_FOUND`` and leave the state (and the store) untouched.

A failed store write is logged and the in-memory transition stands: memory is
the source of truth, the store is written at most once per transition.
"""

import json
import logging
from collections.abc import Callable
from datetime import date
from enum import Enum

from pydantic import ValidationError

from localchat.models.schemas import ChatMessage, ChatSession, ChatState, MessagePatch
from localchat.storage.preferences import SESSIONS_KEY
from localchat.storage.store import KeyValueStore

logger = logging.getLogger(__name__)

StateListener = Callable[[ChatState], None]


class RepoResult(str, Enum):
    """Outcome of a repository transition."""

    OK = "ok"
    NOT_FOUND = "not_found"


def export_filename(day: date | None = None) -> str:
    """Default file name for an exported chat history."""
    day = day or date.today()
    return f"localai-chats-{day.isoformat()}.json"


class SessionRepository:
    """Holds the session list and active-session pointer.

    Args:
        store: Key/value store receiving the serialized state.
        key: Store key for the serialized state.
    """

    def __init__(self, store: KeyValueStore, key: str = SESSIONS_KEY) -> None:
        self._store = store
        self._key = key
        self._state = ChatState()
        self._listeners: list[StateListener] = []

    @property
    def state(self) -> ChatState:
        return self._state

    @property
    def sessions(self) -> tuple[ChatSession, ...]:
        return self._state.sessions

    @property
    def current_session_id(self) -> str | None:
        return self._state.current_session_id

    @property
    def current_session(self) -> ChatSession | None:
        return self._state.current_session

    def get_session(self, session_id: str) -> ChatSession | None:
        return self._state.find_session(session_id)

    def subscribe(self, callback: StateListener) -> Callable[[], None]:
        """Call ``callback`` with every new state snapshot.

        Returns:
            Callable that removes the subscription.
        """
        self._listeners.append(callback)

        def unsubscribe() -> None:
            if callback in self._listeners:
                self._listeners.remove(callback)

        return unsubscribe

    # Transitions

    def set_current_session(self, session_id: str) -> RepoResult:
        if self.get_session(session_id) is None:
            logger.warning(f"Cannot select unknown session {session_id}")
            return RepoResult.NOT_FOUND
        return self._commit(self._state.model_copy(update={"current_session_id": session_id}))

    def create_session(self, session: ChatSession) -> RepoResult:
        """Prepend ``session`` and make it current."""
        return self._commit(
            ChatState(
                sessions=(session, *self._state.sessions),
                current_session_id=session.id,
            )
        )

    def delete_session(self, session_id: str) -> RepoResult:
        """Remove a session, moving the pointer to the first remaining one if needed."""
        if self.get_session(session_id) is None:
            return RepoResult.NOT_FOUND

        sessions = tuple(s for s in self._state.sessions if s.id != session_id)
        current = self._state.current_session_id
        if current == session_id:
            current = sessions[0].id if sessions else None
        return self._commit(ChatState(sessions=sessions, current_session_id=current))

    def clear_all(self) -> RepoResult:
        return self._commit(ChatState())

    def append_message(self, session_id: str, message: ChatMessage) -> RepoResult:
        return self._update_session(
            session_id,
            lambda session: session.model_copy(
                update={"messages": (*session.messages, message)}
            ),
        )

    def patch_message(
        self,
        session_id: str,
        message_id: str,
        patch: MessagePatch | None = None,
        **fields,
    ) -> RepoResult:
        """Merge fields into one message.

        Args:
            session_id: Session holding the message.
            message_id: Message to update.
            patch: Fields to merge. Keyword arguments build one when omitted.

        Returns:
            ``NOT_FOUND`` when the session or the message does not exist.
        """
        patch = patch or MessagePatch(**fields)
        session = self.get_session(session_id)
        if session is None or session.find_message(message_id) is None:
            return RepoResult.NOT_FOUND

        messages = tuple(
            patch.apply(message) if message.id == message_id else message
            for message in session.messages
        )
        return self._update_session(
            session_id, lambda s: s.model_copy(update={"messages": messages})
        )

    def set_system_prompt(self, session_id: str, system_prompt: str) -> RepoResult:
        return self._update_session(
            session_id,
            lambda session: session.model_copy(update={"system_prompt": system_prompt}),
        )

    def load_state(self, state: ChatState) -> RepoResult:
        """Replace the whole state (import and startup hydration)."""
        if state.current_session_id is not None and state.current_session is None:
            fallback = state.sessions[0].id if state.sessions else None
            logger.warning(
                f"Current session {state.current_session_id} missing, selecting {fallback}"
            )
            state = state.model_copy(update={"current_session_id": fallback})
        return self._commit(state)

    # Persistence

    def hydrate(self) -> bool:
        """Load the persisted state from the store.

        Returns:
            True if a stored state was found and loaded.
        """
        raw = self._store.get(self._key)
        if raw is None:
            return False

        try:
            state = ChatState.model_validate_json(raw)
        except ValidationError as e:
            logger.error(f"Error loading sessions from store: {e}")
            return False

        self.load_state(state)
        logger.info(f"Loaded {len(state.sessions)} chat sessions")
        return True

    def watch_store(self) -> Callable[[], None]:
        """Follow writes to the sessions key made by another process.

        The written state replaces the in-memory one and is published to
        subscribers without being written back.

        Returns:
            Callable that stops watching.
        """
        return self._store.subscribe(self._key, self._on_store_change)

    def export_json(self) -> str:
        """Serialize the full state for download."""
        return self._serialize(self._state, indent=2)

    def import_json(self, raw: str) -> bool:
        """Replace the state with an exported document.

        Returns:
            False, without touching the state, if the document is not valid
            JSON, lacks a ``sessions`` list, or holds invalid sessions.
        """
        try:
            data = json.loads(raw)
        except json.JSONDecodeError as e:
            logger.error(f"Error importing chats: {e}")
            return False

        if not isinstance(data, dict) or not isinstance(data.get("sessions"), list):
            logger.error("Error importing chats: Invalid chat data format")
            return False

        try:
            state = ChatState.model_validate(data)
        except ValidationError as e:
            logger.error(f"Error importing chats: {e}")
            return False

        self.load_state(state)
        logger.info(f"Imported {len(state.sessions)} chat sessions")
        return True

    # Internals

    def _update_session(
        self,
        session_id: str,
        change: Callable[[ChatSession], ChatSession],
    ) -> RepoResult:
        session = self.get_session(session_id)
        if session is None:
            return RepoResult.NOT_FOUND

        updated = change(session)
        sessions = tuple(updated if s.id == session_id else s for s in self._state.sessions)
        return self._commit(self._state.model_copy(update={"sessions": sessions}))

    def _commit(self, state: ChatState) -> RepoResult:
        self._state = state
        self._persist(state)
        self._publish(state)
        return RepoResult.OK

    def _publish(self, state: ChatState) -> None:
        for callback in list(self._listeners):
            try:
                callback(state)
            except Exception:
                logger.exception("Session listener failed")

    def _on_store_change(self, raw: str | None) -> None:
        if raw is None or raw == self._serialize(self._state):
            return
        try:
            state = ChatState.model_validate_json(raw)
        except ValidationError as e:
            logger.warning(f"Ignoring invalid sessions written elsewhere: {e}")
            return
        if state.current_session_id is not None and state.current_session is None:
            state = state.model_copy(
                update={"current_session_id": state.sessions[0].id if state.sessions else None}
            )
        self._state = state
        self._publish(state)

    def _persist(self, state: ChatState) -> None:
        try:
            self._store.set(self._key, self._serialize(state))
        except (OSError, ValueError) as e:
            logger.error(f"Failed to persist chat sessions: {e}")

    @staticmethod
    def _serialize(state: ChatState, indent: int | None = None) -> str:
        return state.model_dump_json(by_alias=True, exclude_none=True, indent=indent)
