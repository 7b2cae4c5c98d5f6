"""
Supervised relay subscriptions: reconnect with exponential backoff.

A RelaySupervisor keeps one set of filters alive on one relay. Each round
opens a fresh RelaySession, resubmits the filters (under new subscription
ids after the first round) and streams events into a handler. When the
session ends, for whatever reason, the supervisor sleeps and tries again:

  delay = uniform(0, min(max_delay, base_delay * 2 ** (attempt - 1)))

The attempt counter resets once a round has received at least one frame.
With reconnect disabled the first ending is final.
"""

import asyncio
import logging
import random
from typing import Awaitable, Callable, List, Optional, Sequence

from chest.schemas import NostrEvent, SubscriptionFilter
from .errors import RelayConnectionError, RelayError, RelayProtocolError
from .session import RelaySession

logger = logging.getLogger(__name__)

EventHandler = Callable[[str, str, NostrEvent], Awaitable[None]]
SessionFactory = Callable[[str], RelaySession]


class RelaySupervisor:
    """
    Restarts a relay subscription until told to stop.

    Usage:
        supervisor = RelaySupervisor(url, filters, handler, session_factory)
        await supervisor.run()
    """

    def __init__(
        self,
        relay_url: str,
        filters: Sequence[SubscriptionFilter],
        on_event: EventHandler,
        session_factory: SessionFactory,
        reconnect_enabled: bool = True,
        base_delay: float = 1.0,
        max_delay: float = 60.0,
        max_attempts: int = 0,
        label: str = "",
        rng: Optional[random.Random] = None,
    ):
        self.relay_url = relay_url
        self.filters: List[SubscriptionFilter] = list(filters)
        self.on_event = on_event
        self.session_factory = session_factory
        self.reconnect_enabled = reconnect_enabled
        self.base_delay = base_delay
        self.max_delay = max_delay
        self.max_attempts = max_attempts
        self.label = label or relay_url
        self._rng = rng or random.Random()

        self.session: Optional[RelaySession] = None
        # Set once a round has sent every filter
        self.subscribed = asyncio.Event()
        self.sessions_opened = 0
        self.session_failures = 0
        self.running = False

    def backoff_delay(self, attempt: int) -> float:
        ceiling = min(self.max_delay, self.base_delay * (2 ** max(attempt - 1, 0)))
        return self._rng.uniform(0, ceiling)

    async def run(self):
        self.running = True
        attempt = 0
        first_round = True
        try:
            while self.running:
                if not first_round:
                    self.filters = [f.renewed() for f in self.filters]
                first_round = False

                received = await self._run_once()
                if received:
                    attempt = 0

                if not self.reconnect_enabled or not self.running:
                    return
                attempt += 1
                if self.max_attempts and attempt > self.max_attempts:
                    logger.error(f"[supervisor] {self.label}: giving up after {self.max_attempts} attempts")
                    return

                delay = self.backoff_delay(attempt)
                logger.info(f"[supervisor] {self.label}: reconnecting in {delay:.1f}s (attempt {attempt})")
                await asyncio.sleep(delay)
        finally:
            self.running = False

    def stop(self):
        self.running = False

    async def _run_once(self) -> bool:
        """One connect/subscribe/stream round. Returns whether any frame arrived."""
        session = self.session_factory(self.relay_url)
        self.session = session
        self.sessions_opened += 1
        try:
            await session.connect()
            for subscription in self.filters:
                await session.send_filter(subscription)
            self.subscribed.set()
            async for subscription_id, event in session.receive():
                await self.on_event(self.relay_url, subscription_id, event)
        except RelayProtocolError as e:
            self.session_failures += 1
            logger.error(f"[supervisor] {self.label}: malformed payload, closing session ({e})")
        except RelayConnectionError as e:
            self.session_failures += 1
            logger.error(f"[supervisor] {self.label}: connection failed ({e})")
        except RelayError as e:
            self.session_failures += 1
            logger.error(f"[supervisor] {self.label}: {e}")
        except Exception as e:
            self.session_failures += 1
            logger.error(f"[supervisor] {self.label}: unexpected error: {e}", exc_info=True)
        finally:
            await session.close()
        return session.messages_received > 0
