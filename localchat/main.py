"""Main application entry point.

Serves the NiceGUI chat interface. Environment variables are loaded from a
.env file.
"""

import logging
import os
import sys

from dotenv import load_dotenv

# Load environment variables before any other imports that might need them
load_dotenv()

logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    handlers=[logging.StreamHandler(sys.stdout)],
)
logger = logging.getLogger(__name__)


def main() -> None:
    """Application entry point."""
    from nicegui import ui

    from localchat.client.config import get_app_config
    from localchat.ui.chat_page import create_chat_app, register_pages

    config = get_app_config()
    register_pages(create_chat_app(config))

    logger.info(f"Chat UI available at http://{config.host}:{config.port}/")
    ui.run(
        title="Local AI",
        favicon="🤖",
        host=config.host,
        port=config.port,
        dark=True,
        reload=False,
    )


if __name__ in {"__main__", "__mp_main__"}:
    main()
