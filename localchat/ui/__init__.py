"""NiceGUI interface for the chat client.

Responsibilities:
    - Session sidebar with create, select and delete
    - Live rendering of streamed replies with a collapsible reasoning section
    - Model selection, settings, export and import
    - File attachments inlined into the user message

Holds no chat logic of its own; everything goes through the repository and
the generation controller.
"""

from localchat.ui.chat_page import ChatApp, create_chat_app, register_pages

__all__ = ["ChatApp", "create_chat_app", "register_pages"]
