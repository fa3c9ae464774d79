"""HTTP client for the SDP signaling relay."""
from __future__ import annotations

import logging
from typing import Optional

import httpx

from ..config import settings

logger = logging.getLogger(__name__)


class SignalingError(RuntimeError):
    """The relay did not return an SDP answer."""


class SignalingClient:
    """Exchanges a local SDP offer for the remote answer through the relay route."""

    def __init__(
        self,
        *,
        relay_url: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        raw_url = (relay_url or settings.realtime_relay_url or "").strip()
        if not raw_url:
            raise RuntimeError("REALTIME_RELAY_URL missing; point it at the /api/open-ai-realtime route")
        self._relay_url = raw_url
        self._timeout = timeout if timeout is not None else settings.realtime_relay_timeout
        self._transport = transport

    @property
    def relay_url(self) -> str:
        return self._relay_url

    async def exchange(self, offer_sdp: str, model: str) -> str:
        """POST the offer and return the answer SDP."""

        logger.info("Posting SDP offer (%d bytes) to relay %s for model %s", len(offer_sdp), self._relay_url, model)
        async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as client:
            resp = await client.post(
                self._relay_url,
                params={"model": model},
                content=offer_sdp,
                headers={"Content-Type": "application/sdp"},
            )
        if not resp.is_success:
            logger.warning("Relay answered %s: %s", resp.status_code, resp.text[:200])
            raise SignalingError(f"Failed to connect to OpenAI: {resp.reason_phrase}")
        return resp.text
