"""
HTTP transport for the Trading API.

The transport is the only component that touches the network. It sends
a prepared request and hands back the raw status and body text; it does
not retry or interpret the payload.
"""
from contextlib import asynccontextmanager
from typing import Dict, Optional, Protocol

import aiohttp
from pydantic import BaseModel


class TransportResponse(BaseModel):
    """Raw HTTP reply."""
    status: int
    text: str

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300


class Transport(Protocol):
    """Anything able to deliver a Trading API request."""

    async def send(
        self, url: str, method: str, headers: Dict[str, str], body: str
    ) -> TransportResponse:
        ...


class AiohttpTransport:
    """Transport backed by a lazily created aiohttp session."""

    def __init__(self, timeout_seconds: int = 30):
        self.timeout_seconds = timeout_seconds
        self._session: Optional[aiohttp.ClientSession] = None

    @asynccontextmanager
    async def _get_session(self):
        """Get or create the aiohttp session."""
        if self._session is None or self._session.closed:
            timeout = aiohttp.ClientTimeout(total=self.timeout_seconds)
            self._session = aiohttp.ClientSession(
                timeout=timeout,
                raise_for_status=False
            )
        yield self._session

    async def send(
        self, url: str, method: str, headers: Dict[str, str], body: str
    ) -> TransportResponse:
        """
        Send one request.

        Raises:
            aiohttp.ClientError: Network errors
            asyncio.TimeoutError: Request exceeded the configured timeout
        """
        async with self._get_session() as session:
            async with session.request(
                method,
                url,
                headers=headers,
                data=body.encode("utf-8")
            ) as response:
                text = await response.text()
                return TransportResponse(status=response.status, text=text)

    async def close(self) -> None:
        """Close the HTTP session."""
        if self._session:
            await self._session.close()
            self._session = None

    async def __aenter__(self) -> "AiohttpTransport":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()
