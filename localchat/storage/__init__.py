"""Key/value persistence for sessions and preferences.

Responsibilities:
    - Synchronous string get/set with per-key change listeners
    - JSON file backend with atomic replace
    - Typed access to preference keys (system prompt, last model, API URL)
"""

from localchat.storage.preferences import (
    API_URL_KEY,
    LAST_MODEL_KEY,
    SESSIONS_KEY,
    SYSTEM_PROMPT_KEY,
    Preferences,
)
from localchat.storage.store import FileStore, InMemoryStore, KeyValueStore

__all__ = [
    "API_URL_KEY",
    "LAST_MODEL_KEY",
    "SESSIONS_KEY",
    "SYSTEM_PROMPT_KEY",
    "FileStore",
    "InMemoryStore",
    "KeyValueStore",
    "Preferences",
]
