"""Pytest fixtures and shared test configuration.

Fixtures:
    - store: Recording in-memory key/value store
    - preferences: Preferences over the shared store
    - repository: Empty session repository over the shared store
    - clock: Hand-driven monotonic clock
    - session: A saved, current session with no messages
"""

import pytest

from localchat.models.schemas import ChatSession
from localchat.sessions.repository import SessionRepository
from localchat.storage.preferences import Preferences
from tests.helpers import FakeClock, RecordingStore


@pytest.fixture
def store() -> RecordingStore:
    """Return an empty store that records writes."""
    return RecordingStore()


@pytest.fixture
def preferences(store: RecordingStore) -> Preferences:
    return Preferences(store)


@pytest.fixture
def repository(store: RecordingStore) -> SessionRepository:
    """Return an empty repository persisting to ``store``."""
    return SessionRepository(store)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def session(repository: SessionRepository) -> ChatSession:
    """Create and select a session bound to a test model.

    Returns:
        The session as stored in the repository.
    """
    session = ChatSession(title="Chat 10:00:00", model="qwen/qwen3-8b")
    repository.create_session(session)
    return session
