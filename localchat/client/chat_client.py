"""HTTP transport for OpenAI-compatible completion servers.

Thin httpx wrapper: the request body and the model list are validated with
Pydantic, the streamed response is handed back as raw byte chunks for the
stream decoder. HTTP errors surface as ``httpx.HTTPStatusError`` and network
failures as ``httpx.RequestError``.
"""

import logging
from collections import defaultdict
from collections.abc import AsyncIterator, Sequence
from contextlib import asynccontextmanager

import httpx

from localchat.models.schemas import (
    AIModel,
    ChatCompletionRequest,
    ModelEntry,
    ModelList,
    OutgoingMessage,
)

logger = logging.getLogger(__name__)


def group_models(entries: Sequence[ModelEntry]) -> list[AIModel]:
    """Build display names for the models reported by the server.

    Ids are grouped by the part before ``@`` (quantization variants of one
    model). The display name is the last path segment with dashes turned
    into spaces, suffixed with the variant when a group has several.

    Returns:
        Models sorted by display name.
    """
    groups: dict[str, list[ModelEntry]] = defaultdict(list)
    for entry in entries:
        groups[entry.id.split("@")[0]].append(entry)

    models = []
    for base_name, variants in groups.items():
        for entry in variants:
            quant = entry.id.split("@")[1] if "@" in entry.id else ""
            name = base_name.split("/")[-1].replace("-", " ") or base_name
            if len(variants) > 1 and quant:
                name += f" ({quant})"
            models.append(AIModel(id=entry.id, name=name))

    return sorted(models, key=lambda model: model.name)


class ChatClient:
    """Client for ``/chat/completions`` and ``/models``.

    Args:
        base_url: Server base URL, e.g. ``http://localhost:1234/v1``.
        timeout: Request timeout in seconds, None for no timeout.
        transport: Optional httpx transport (used by tests).
    """

    def __init__(
        self,
        base_url: str,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.base_url = base_url
        self._timeout = timeout
        self._transport = transport

    @property
    def base_url(self) -> str:
        return self._base_url

    @base_url.setter
    def base_url(self, value: str) -> None:
        self._base_url = value.rstrip("/")

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self._base_url,
            timeout=self._timeout,
            transport=self._transport,
            headers={"Content-Type": "application/json"},
        )

    async def list_models(self) -> list[ModelEntry]:
        """Fetch the models available on the server.

        Raises:
            httpx.HTTPError: On network failure or non-2xx status.
            ValueError: If the body is not a valid model list.
        """
        async with self._client() as client:
            response = await client.get("/models")
            response.raise_for_status()
            return ModelList.model_validate(response.json()).data

    @asynccontextmanager
    async def stream_chat(
        self,
        model: str,
        messages: list[OutgoingMessage],
    ) -> AsyncIterator[AsyncIterator[bytes]]:
        """Open a streaming completion request.

        Yields:
            Async iterator over the raw response body chunks.

        Raises:
            httpx.HTTPStatusError: If the server answers with a non-2xx status.
            httpx.RequestError: On connection or read failure.
        """
        body = ChatCompletionRequest(model=model, messages=messages, stream=True)
        async with self._client() as client:
            async with client.stream(
                "POST",
                "/chat/completions",
                json=body.model_dump(mode="json"),
                headers={"Accept": "text/event-stream"},
            ) as response:
                response.raise_for_status()
                logger.debug(f"Streaming completion from {model}")
                yield response.aiter_bytes()
