"""Application configuration with environment variable loading.

Pydantic-based configuration for the chat client. Works with any
OpenAI-compatible server (LM Studio, llama.cpp, vLLM, LocalAI...) via the
base URL.
"""

import os
from pathlib import Path

import httpx
from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field, field_validator

# Load environment variables from .env file
load_dotenv()

DEFAULT_BASE_URL = "http://localhost:8000"
DEFAULT_DATA_FILE = "data/localchat.json"


def check_base_url(url: str) -> str:
    """Require an http(s) URL with a valid port and drop trailing slashes.

    Raises:
        ValueError: If the URL cannot address a completion server.
    """
    url = url.strip().rstrip("/")
    if not url.startswith(("http://", "https://")):
        raise ValueError("Base URL must start with http:// or https://")
    try:
        parsed = httpx.URL(url)
    except httpx.InvalidURL as e:
        raise ValueError(f"Invalid base URL: {e}") from e
    if not parsed.host:
        raise ValueError("Base URL must include a host")
    if parsed.port is not None and not 0 < parsed.port <= 65535:
        raise ValueError(f"Invalid base URL port: {parsed.port}")
    return url


class AppConfig(BaseModel):
    """Configuration for the chat client.

    Attributes:
        base_url: Completion server base URL (``/chat/completions`` and
            ``/models`` are resolved against it).
        timeout: Request timeout in seconds. None disables timeouts, so a
            slow stream is only ended by the server or the user.
        data_file: JSON file holding sessions and preferences.
        host: Interface the UI binds to.
        port: Port the UI listens on.
    """

    model_config = ConfigDict(validate_default=True)

    base_url: str = Field(
        default_factory=lambda: os.getenv("LLM_BASE_URL", DEFAULT_BASE_URL),
        description="Completion server base URL",
    )
    timeout: float | None = Field(
        default_factory=lambda: os.getenv("LLM_TIMEOUT") or None,
        description="Request timeout in seconds (None for no timeout)",
    )
    data_file: Path = Field(
        default_factory=lambda: Path(os.getenv("LOCALCHAT_DATA_FILE", DEFAULT_DATA_FILE)),
        description="Session store location",
    )
    host: str = Field(default_factory=lambda: os.getenv("HOST", "127.0.0.1"))
    port: int = Field(
        default_factory=lambda: os.getenv("PORT", "8080"),
        ge=1,
        le=65535,
    )

    @field_validator("base_url")
    @classmethod
    def normalize_base_url(cls, v: str) -> str:
        return check_base_url(v)

    @field_validator("timeout")
    @classmethod
    def validate_timeout(cls, v: float | None) -> float | None:
        if v is not None and v <= 0:
            raise ValueError("Timeout must be positive. Unset LLM_TIMEOUT to disable it")
        return v


def get_app_config() -> AppConfig:
    """Create application configuration from environment.

    Returns:
        Configured AppConfig instance.

    Raises:
        ValidationError: If an environment value is invalid.
    """
    return AppConfig()
