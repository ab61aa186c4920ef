"""HTTP adapter that hands outgoing messages to the chat backend."""

from __future__ import annotations

import httpx
import structlog

from src.models.message import OutgoingMessage
from src.services.errors import DeliveryError

logger = structlog.get_logger(__name__)


class HttpMessageTransport:
    """POSTs each message as JSON to ``{base_url}/messages``.

    Any non-2xx response or network error is raised as
    :class:`DeliveryError`, which the send queue treats as "retry later".
    """

    __slots__ = ("_client", "_owns_client")

    def __init__(
        self,
        base_url: str,
        *,
        timeout: float = 10.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(base_url=base_url, timeout=timeout)

    async def send(self, payload: OutgoingMessage) -> None:
        try:
            response = await self._client.post("/messages", json=payload.model_dump(mode="json"))
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            raise DeliveryError(f"backend rejected message: HTTP {exc.response.status_code}") from exc
        except httpx.HTTPError as exc:
            raise DeliveryError(f"backend unreachable: {exc}") from exc
        logger.debug("transport.sent", conversation_id=payload.conversation_id, status=response.status_code)

    async def close(self) -> None:
        if self._owns_client:
            await self._client.aclose()
