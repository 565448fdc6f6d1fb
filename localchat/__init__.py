"""Local AI chat - multi-session client for OpenAI-compatible completion servers.

Keeps a persisted collection of chat sessions and streams assistant replies
from a ``/chat/completions`` endpoint, separating ``<think>`` reasoning from
the final answer as tokens arrive.

Components:
    - storage: key/value stores and user preferences
    - sessions: session repository with persisted snapshots
    - streaming: incremental decoder for streamed completion frames
    - client: httpx transport for the completion server
    - chat: generation controller tying the pieces together
    - parsing: file attachment extraction (text and PDF)
    - ui: NiceGUI chat page
    - models: Pydantic data models
"""

__version__ = "0.1.0"
