"""Forwarding of finished notes and digests to an external webhook."""

import logging
from typing import Any

import httpx

logger = logging.getLogger(__name__)


class WebhookNotifier:
    """Posts structured events as JSON to a webhook (e.g. n8n).

    Delivery is best effort: failures are logged and reported as ``False``,
    never raised, and nothing is retried.
    """

    def __init__(
        self,
        url: str,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.url = url
        self.timeout = timeout
        self.transport = transport

    async def send(self, event: str, payload: dict[str, Any]) -> bool:
        """
        Send one event.

        Args:
            event: Event name, e.g. ``note.processed``
            payload: JSON-serializable event data

        Returns:
            True if the webhook accepted the event
        """
        body = {"event": event, **payload}
        async with httpx.AsyncClient(transport=self.transport) as client:
            try:
                response = await client.post(self.url, json=body, timeout=self.timeout)
                response.raise_for_status()
                logger.info(f"Sent '{event}' to notification webhook")
                return True
            except httpx.HTTPStatusError as e:
                logger.error(
                    f"Notification webhook error: {e.response.status_code} for '{event}'"
                )
                return False
            except httpx.HTTPError as e:
                logger.error(f"Failed to send '{event}' to notification webhook: {e}")
                return False
