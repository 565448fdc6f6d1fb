"""Transport layer for the completion server.

Responsibilities:
    - Configuration from environment / .env
    - Streaming ``POST /chat/completions`` requests
    - Model discovery via ``GET /models`` and display-name grouping

Keeps HTTP details out of the generation controller.
"""

from localchat.client.chat_client import ChatClient, group_models
from localchat.client.config import AppConfig, get_app_config

__all__ = ["AppConfig", "ChatClient", "get_app_config", "group_models"]
