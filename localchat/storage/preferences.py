"""User preferences kept next to the chat sessions in the key/value store."""

import logging

from localchat.storage.store import ChangeListener, KeyValueStore, Unsubscribe

logger = logging.getLogger(__name__)

SESSIONS_KEY = "localai-chat-sessions"
SYSTEM_PROMPT_KEY = "localai-system-prompt"
LAST_MODEL_KEY = "localai-last-model"
API_URL_KEY = "localai-api-url"


class Preferences:
    """Typed accessors for the preference keys.

    Args:
        store: Store shared with the session repository.
    """

    def __init__(self, store: KeyValueStore) -> None:
        self._store = store

    def default_system_prompt(self) -> str:
        return self._store.get(SYSTEM_PROMPT_KEY) or ""

    def save_default_system_prompt(self, system_prompt: str) -> None:
        """Persist the default prompt; subscribers of the key are notified."""
        self._store.set(SYSTEM_PROMPT_KEY, system_prompt)
        logger.info("Default system prompt updated")

    def on_system_prompt_change(self, callback: ChangeListener) -> Unsubscribe:
        return self._store.subscribe(SYSTEM_PROMPT_KEY, callback)

    def last_model(self) -> str:
        return self._store.get(LAST_MODEL_KEY) or ""

    def save_last_model(self, model_id: str) -> None:
        self._store.set(LAST_MODEL_KEY, model_id)

    def api_url(self, default: str) -> str:
        return self._store.get(API_URL_KEY) or default

    def save_api_url(self, url: str) -> None:
        self._store.set(API_URL_KEY, url)
