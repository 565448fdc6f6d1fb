"""NiceGUI chat interface: session sidebar, streamed replies, settings."""

import logging
from dataclasses import dataclass

from nicegui import events, ui

from localchat.chat.controller import GenerationController
from localchat.client.chat_client import ChatClient
from localchat.client.config import AppConfig, check_base_url
from localchat.models.schemas import ChatMessage, Role
from localchat.parsing.attachments import compose_message, extract_attachment_text
from localchat.parsing.pdf_parser import AttachmentError
from localchat.sessions.repository import SessionRepository, export_filename
from localchat.storage.preferences import Preferences
from localchat.storage.store import FileStore
from localchat.streaming.decoder import split_reasoning

logger = logging.getLogger(__name__)

CUSTOM_CSS = """
<style>
    body { background: #111113; }
    .message-user { background: transparent; }
    .message-assistant { background: rgba(63, 63, 70, 0.25); }
    .message-system { background: rgba(99, 102, 241, 0.12); border-left: 2px solid #6366f1; }
    .thinking-box { background: rgba(24, 24, 27, 0.6); border: 1px solid rgba(63, 63, 70, 0.4);
                    border-radius: 0.5rem; }
    .stats { color: rgba(161, 161, 170, 0.8); border-top: 1px solid rgba(63, 63, 70, 0.4); }
</style>
"""


def _notify_error(title: str, description: str) -> None:
    ui.notify(f"{title}: {description}", type="negative")


@dataclass
class ChatApp:
    """Services shared by every browser tab."""

    store: FileStore
    preferences: Preferences
    repository: SessionRepository
    client: ChatClient
    controller: GenerationController


def create_chat_app(config: AppConfig) -> ChatApp:
    """Wire store, repository, client and controller, then hydrate sessions."""
    store = FileStore(config.data_file)
    preferences = Preferences(store)
    repository = SessionRepository(store)
    repository.hydrate()
    repository.watch_store()

    client = ChatClient(preferences.api_url(config.base_url), timeout=config.timeout)
    controller = GenerationController(repository, client, preferences, notify=_notify_error)
    preferences.on_system_prompt_change(controller.sync_default_system_prompt)

    logger.info(f"Using completion server {client.base_url}, data in {config.data_file}")
    return ChatApp(store, preferences, repository, client, controller)


def render_message(message: ChatMessage) -> None:
    """Render one message with its reasoning section and statistics."""
    is_user = message.role is Role.USER
    is_system = message.role is Role.SYSTEM
    reasoning, answer = ("", message.content) if is_user or is_system else split_reasoning(message.content)

    with ui.row().classes(f"w-full px-4 py-5 gap-4 no-wrap message-{message.role.value}"):
        icon = {"user": "person", "assistant": "smart_toy", "system": "chat"}[message.role.value]
        ui.icon(icon).classes("text-2xl text-gray-400")
        with ui.column().classes("flex-1 gap-2 overflow-hidden"):
            label = {"user": "You", "assistant": "AI Assistant", "system": "System"}[message.role.value]
            ui.label(label).classes("text-sm font-medium")

            if message.is_loading:
                with ui.row().classes("items-center gap-2"):
                    ui.spinner(size="sm")
                    ui.label("Generating response...").classes("text-gray-400")

            if reasoning:
                with ui.expansion("Thinking process", icon="psychology").classes("w-full thinking-box"):
                    ui.markdown(reasoning).classes("text-sm")

            if answer:
                ui.markdown(answer).classes("w-full")

            if message.token_count and not message.is_loading:
                stats = [f"{message.token_count} tokens"]
                if message.tokens_per_second:
                    stats.append(f"{message.tokens_per_second} tokens/sec")
                if message.generation_time_seconds:
                    stats.append(f"{message.generation_time_seconds}s generation time")
                ui.label("   ".join(stats)).classes("text-xs pt-2 stats")


def register_pages(chat: ChatApp) -> None:
    """Register the chat page on the NiceGUI app."""
    repository = chat.repository
    controller = chat.controller

    @ui.page("/")
    async def chat_page() -> None:
        ui.add_head_html(CUSTOM_CSS)
        ui.dark_mode().enable()
        attachments: list[tuple[str, str]] = []

        def new_chat() -> None:
            model_id = controller.preferred_model()
            if model_id is None:
                _notify_error(
                    "No models available",
                    "Please wait for models to load or check your API connection.",
                )
                return
            controller.create_session(model_id)

        def select_model(event: events.ValueChangeEventArguments) -> None:
            current = repository.current_session
            if event.value and (current is None or event.value != current.model):
                controller.select_model(event.value)

        @ui.refreshable
        def sidebar() -> None:
            for session in repository.sessions:
                active = session.id == repository.current_session_id
                with ui.row().classes("w-full items-center no-wrap gap-1"):
                    ui.button(
                        session.title,
                        on_click=lambda s=session: repository.set_current_session(s.id),
                    ).props(f"flat no-caps align=left {'' if active else 'color=grey'}").classes(
                        "flex-1"
                    )
                    ui.button(
                        icon="delete",
                        on_click=lambda s=session: repository.delete_session(s.id),
                    ).props("flat round dense color=grey")

        @ui.refreshable
        def header_controls() -> None:
            session = repository.current_session
            if session is not None and session.system_prompt:
                ui.button(
                    f"System Prompt: {session.system_prompt[:40]}",
                    icon="chat",
                    on_click=settings.open,
                ).props("flat dense no-caps size=sm")
            if session is not None and session.total_tokens:
                ui.label(f"Σ {session.total_tokens} tokens").classes("text-sm text-gray-400")
            ui.select(
                {model.id: model.name for model in controller.models},
                value=session.model if session and session.model in {m.id for m in controller.models} else None,
                on_change=select_model,
                label="Model",
            ).classes("w-64").set_enabled(not controller.is_generating)

        @ui.refreshable
        def message_list() -> None:
            session = repository.current_session
            if session is None:
                with ui.column().classes("w-full h-64 items-center justify-center gap-3"):
                    ui.label("Create a new chat to get started.").classes("text-gray-400")
                    ui.button("New Chat", on_click=new_chat)
                return

            if not session.messages:
                with ui.column().classes("w-full h-64 items-center justify-center gap-3"):
                    ui.icon("smart_toy").classes("text-7xl")
                    ui.label("Welcome to Local AI").classes("text-3xl font-bold")
                    ui.label("Your local AI assistant. How can I help you today?").classes(
                        "text-lg text-gray-400"
                    )
                return

            if session.system_prompt:
                render_message(
                    ChatMessage(id="system-message", role=Role.SYSTEM, content=session.system_prompt)
                )
            for message in session.messages:
                render_message(message)

        @ui.refreshable
        def attachment_chips() -> None:
            for index, (name, _) in enumerate(attachments):
                ui.chip(
                    name,
                    icon="attach_file",
                    removable=True,
                    on_value_change=lambda _, i=index: remove_attachment(i),
                ).props("dense")

        def remove_attachment(index: int) -> None:
            if index < len(attachments):
                attachments.pop(index)
            attachment_chips.refresh()

        async def attach_file(event: events.UploadEventArguments) -> None:
            data = await event.file.read()
            try:
                text = extract_attachment_text(event.file.name, data, event.file.content_type)
            except AttachmentError as e:
                logger.warning(f"Error processing attachment {event.file.name}: {e}")
                _notify_error("Error processing files", f"Could not process attached files: {e}")
                return
            attachments.append((event.file.name, text))
            attachment_chips.refresh()
            uploader.reset()

        async def send() -> None:
            text = (input_field.value or "").strip()
            if (not text and not attachments) or controller.is_generating:
                return
            input_field.value = ""
            message = compose_message(text, attachments)
            attachments.clear()
            attachment_chips.refresh()
            await controller.send(message)
            update_controls()

        def stop() -> None:
            controller.stop()
            update_controls()

        def update_controls() -> None:
            generating = controller.is_generating
            send_button.set_visibility(not generating)
            stop_button.set_visibility(generating)

        def refresh_all(_state=None) -> None:
            sidebar.refresh()
            header_controls.refresh()
            message_list.refresh()
            update_controls()

        def export_chats() -> None:
            ui.download.content(repository.export_json().encode("utf-8"), export_filename())
            ui.notify("Chats exported: your chat history has been exported to a JSON file.")

        async def import_chats(event: events.UploadEventArguments) -> None:
            raw = (await event.file.read()).decode("utf-8", errors="replace")
            if repository.import_json(raw):
                ui.notify("Chats imported: your chat history has been imported successfully.")
                settings.close()
            else:
                _notify_error("Import failed", "The file format is invalid or corrupted.")

        def save_settings() -> None:
            try:
                url = check_base_url(api_url_input.value or "")
            except ValueError as e:
                _notify_error("Invalid API URL", str(e))
                return
            chat.client.base_url = url
            chat.preferences.save_api_url(url)
            controller.save_default_system_prompt(prompt_input.value or "")
            settings.close()
            ui.notify("Settings saved: your settings have been updated.")

        with ui.dialog() as settings, ui.card().classes("w-[32rem]"):
            ui.label("Settings").classes("text-lg font-semibold")
            api_url_input = ui.input("API URL", value=chat.client.base_url).classes("w-full")
            prompt_input = ui.textarea(
                "Default system prompt",
                value=chat.preferences.default_system_prompt(),
            ).classes("w-full")
            ui.separator()
            with ui.row().classes("w-full items-center gap-2"):
                ui.button("Export chats", icon="download", on_click=export_chats).props("outline")
                ui.upload(label="Import chats", on_upload=import_chats, auto_upload=True).props(
                    "accept=.json flat"
                )
            with ui.row().classes("w-full justify-end"):
                ui.button("Cancel", on_click=settings.close).props("flat")
                ui.button("Save", on_click=save_settings)

        with ui.left_drawer(value=True).classes("bg-zinc-900 p-4"):
            ui.button("New Chat", icon="add", on_click=new_chat).classes("w-full")
            with ui.scroll_area().classes("flex-grow w-full"):
                sidebar()
            ui.button(
                "Clear all chats", icon="delete_sweep", on_click=repository.clear_all
            ).props("flat color=grey").classes("w-full")

        with ui.header().classes("items-center justify-between bg-zinc-950 px-4"):
            ui.label("Local AI").classes("text-xl font-semibold")
            with ui.row().classes("items-center gap-2"):
                header_controls()
                ui.button(icon="settings", on_click=settings.open).props("flat round")

        with ui.column().classes("w-full max-w-4xl mx-auto pb-40 gap-0"):
            message_list()

        with ui.footer().classes("bg-zinc-950 px-4 py-3"):
            with ui.column().classes("w-full max-w-4xl mx-auto gap-2"):
                with ui.row().classes("gap-2"):
                    attachment_chips()
                with ui.row().classes("w-full items-end no-wrap gap-2"):
                    uploader = (
                        ui.upload(on_upload=attach_file, auto_upload=True)
                        .props("flat dense hide-upload-btn")
                        .classes("w-40")
                    )
                    input_field = (
                        ui.textarea(placeholder="Message Local AI...")
                        .props("autogrow borderless dense rows=1")
                        .classes("flex-grow")
                        .on("keydown.enter.prevent", send)
                    )
                    send_button = ui.button(icon="send", on_click=send).props("round unelevated")
                    stop_button = ui.button(icon="stop", on_click=stop).props(
                        "round unelevated color=negative"
                    )

        update_controls()
        unsubscribe = repository.subscribe(refresh_all)
        ui.context.client.on_disconnect(unsubscribe)
        # picks up sessions and prompts written by other processes
        ui.timer(1.0, chat.store.reload)

        if not controller.models:
            await controller.fetch_models()
        controller.ensure_session()
        refresh_all()
