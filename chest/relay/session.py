"""
One websocket connection to one relay.

Lifecycle:
  disconnected → connecting → subscribed → streaming → closed

connect() opens the socket, send_filter() submits a REQ (and may be called
again while streaming to add subscriptions on the same connection), and
receive() yields decoded events until the peer closes, the transport fails
or a frame cannot be decoded. Any failure lands in closed; a session is
never reopened. Reconnecting is RelaySupervisor's job.
"""

import asyncio
import logging
from enum import Enum
from typing import AsyncIterator, List, Optional

import aiohttp

from chest.schemas import SubscriptionFilter
from .errors import RelayConnectionError, RelayStateError
from .protocol import InboundEvent, parse_message

logger = logging.getLogger(__name__)


class RelayState(str, Enum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    SUBSCRIBED = "subscribed"
    STREAMING = "streaming"
    CLOSED = "closed"


_TRANSPORT_ERRORS = (aiohttp.ClientError, OSError, asyncio.TimeoutError)


class RelaySession:
    """Owns a single relay connection and the filters sent on it."""

    def __init__(
        self,
        relay_url: str,
        http_session: Optional[aiohttp.ClientSession] = None,
        connect_timeout: float = 10.0,
        heartbeat: Optional[float] = 30.0,
    ):
        self.relay_url = relay_url
        self.connect_timeout = connect_timeout
        self.heartbeat = heartbeat
        self.state = RelayState.DISCONNECTED
        self.filters: List[SubscriptionFilter] = []
        self.messages_received = 0

        self._http = http_session
        self._owns_http = http_session is None
        self._ws: Optional[aiohttp.ClientWebSocketResponse] = None
        self._closed = False

    def __repr__(self) -> str:
        return f"<RelaySession {self.relay_url} {self.state.value} filters={len(self.filters)}>"

    async def __aenter__(self) -> "RelaySession":
        await self.connect()
        return self

    async def __aexit__(self, *exc):
        await self.close()

    # ── Lifecycle ───────────────────────────────────────────────

    async def connect(self):
        if self.state != RelayState.DISCONNECTED:
            raise RelayStateError(self.relay_url, f"cannot connect from state {self.state.value}")
        self.state = RelayState.CONNECTING

        try:
            if self._http is None:
                self._http = aiohttp.ClientSession()
            self._ws = await asyncio.wait_for(
                self._http.ws_connect(self.relay_url, heartbeat=self.heartbeat),
                timeout=self.connect_timeout,
            )
        except _TRANSPORT_ERRORS as e:
            await self.close()
            raise RelayConnectionError(self.relay_url, f"connect failed: {e!r}") from e

        logger.info(f"[relay] Connected to {self.relay_url}")

    async def send_filter(self, subscription: SubscriptionFilter):
        """Submit a REQ. Allowed once connected, including while streaming."""
        if self._ws is None or self.state not in (
            RelayState.CONNECTING, RelayState.SUBSCRIBED, RelayState.STREAMING,
        ):
            raise RelayStateError(self.relay_url, f"cannot send filter in state {self.state.value}")

        try:
            await self._ws.send_str(subscription.to_json())
        except _TRANSPORT_ERRORS + (RuntimeError,) as e:
            await self.close()
            raise RelayConnectionError(self.relay_url, f"send failed: {e!r}") from e

        self.filters.append(subscription)
        if self.state == RelayState.CONNECTING:
            self.state = RelayState.SUBSCRIBED
        logger.info(
            f"[relay] Subscription {subscription.subscription_id} sent to {self.relay_url}: "
            f"{subscription.filter_object()}"
        )

    async def receive(self) -> AsyncIterator[InboundEvent]:
        """Yield (subscription_id, event) pairs in delivery order.

        Ends when the peer closes. Raises RelayProtocolError on an
        undecodable frame and RelayConnectionError on transport failure;
        either way the session is closed on exit.
        """
        if self._ws is None or self.state not in (RelayState.SUBSCRIBED, RelayState.STREAMING):
            raise RelayStateError(self.relay_url, f"cannot receive in state {self.state.value}")
        self.state = RelayState.STREAMING

        try:
            try:
                async for msg in self._ws:
                    if msg.type == aiohttp.WSMsgType.TEXT:
                        self.messages_received += 1
                        inbound = parse_message(self.relay_url, msg.data)
                        if inbound is not None:
                            yield inbound
                    elif msg.type == aiohttp.WSMsgType.ERROR:
                        raise RelayConnectionError(
                            self.relay_url, f"websocket error: {self._ws.exception()!r}"
                        )
            except _TRANSPORT_ERRORS as e:
                raise RelayConnectionError(self.relay_url, f"receive failed: {e!r}") from e
            logger.info(f"[relay] Connection closed by {self.relay_url}")
        finally:
            await self.close()

    async def close(self):
        """Release the socket (and the HTTP session if we created it). Idempotent."""
        self.state = RelayState.CLOSED
        if self._closed:
            return
        self._closed = True

        if self._ws is not None and not self._ws.closed:
            try:
                await self._ws.close()
            except _TRANSPORT_ERRORS as e:
                logger.debug(f"[relay] Error closing socket to {self.relay_url}: {e!r}")
        if self._owns_http and self._http is not None and not self._http.closed:
            await self._http.close()
