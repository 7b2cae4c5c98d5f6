"""
Ingestion coordinator: relays in, classified rows out.

FLOW (per relay):
  1. A primary supervisor subscribes to the configured kinds
  2. Every inbound event is classified; drops stop here
  3. Kept events are written through the dedup store (first id wins)
  4. Notes and long-form articles seen on a primary subscription queue an
     expansion: a secondary subscription on the same relay for reactions
     and zaps tagged with that event id

Expansions are keyed by (relay, event id) so an entity is subscribed at most
once per relay; the same entity seen on two relays is covered on both.

A single dispatcher drains the expansion queue and starts one secondary
supervisor per target. Secondary subscriptions stay open for as long as the
relay keeps them, so at most MAX_SECONDARY_SESSIONS run at once: when the
cap is reached the oldest one is stopped (after it has sent its filter) to
make room. Every queued target is therefore subscribed. Secondary sessions
never expand further.

Failures stay inside the task that hit them: a dead relay or a failed
insert is logged and counted, nothing else stops.
"""

import asyncio
import logging
from collections import OrderedDict
from dataclasses import asdict, dataclass
from typing import List, Optional, Set, Tuple

import aiohttp
from sqlalchemy.exc import SQLAlchemyError

from chest.config import Settings, get_settings
from chest.database import Database
from chest.relay import RelaySession, RelaySupervisor
from chest.relay.supervisor import SessionFactory
from chest.schemas import ClassifiedRecord, NostrEvent, REFERENCE_KINDS
from .classifier import classify, is_primary
from .filters import build_filter, build_initial_filters

logger = logging.getLogger(__name__)

ExpansionKey = Tuple[str, str]


@dataclass
class CoordinatorStats:
    events_received: int = 0
    events_stored: int = 0
    duplicates: int = 0
    dropped: int = 0
    storage_errors: int = 0
    expansions_requested: int = 0
    expansions_skipped: int = 0
    expansions_evicted: int = 0
    sessions_opened: int = 0
    session_failures: int = 0


class IngestionCoordinator:
    """Runs one supervised subscription per relay plus the secondary subscriptions."""

    def __init__(
        self,
        db: Database,
        settings: Optional[Settings] = None,
        session_factory: Optional[SessionFactory] = None,
    ):
        self.db = db
        self.settings = settings or get_settings()
        self.stats = CoordinatorStats()
        self.running = False

        self._session_factory = session_factory
        self._http: Optional[aiohttp.ClientSession] = None
        self._expansions: "asyncio.Queue[ExpansionKey]" = asyncio.Queue()
        self._expanded: Set[ExpansionKey] = set()
        # Live secondary subscriptions, oldest first
        self._secondaries: "OrderedDict[ExpansionKey, Tuple[RelaySupervisor, asyncio.Task]]" = OrderedDict()
        self._supervisors: List[RelaySupervisor] = []
        self._tasks: List[asyncio.Task] = []

    # ── Lifecycle ───────────────────────────────────────────────

    async def run(self):
        """Ingest until every primary subscription and secondary session has ended."""
        self.running = True
        if self._session_factory is None:
            self._http = aiohttp.ClientSession()

        relay_urls = list(dict.fromkeys(self.settings.relay_urls))
        logger.info(
            f"[coordinator] Starting on {len(relay_urls)} relays, kinds={sorted(set(self.settings.event_kinds))}, "
            f"expansion={'on' if self.settings.dynamic_expansion else 'off'}"
        )

        dispatcher: Optional[asyncio.Task] = None
        if self.settings.dynamic_expansion:
            dispatcher = asyncio.create_task(self._expansion_dispatcher(), name="chest-expansion")
        primaries = [
            asyncio.create_task(self._run_primary(url), name=f"chest-primary-{url}")
            for url in relay_urls
        ]
        self._tasks = primaries + ([dispatcher] if dispatcher else [])

        try:
            await asyncio.gather(*primaries, return_exceptions=True)
            if dispatcher is not None and self.running:
                await self._drain_expansions(dispatcher)
        finally:
            await self._shutdown()

    def stop(self):
        """Stop reconnecting and cancel every running task."""
        self.running = False
        for supervisor in list(self._supervisors):
            supervisor.stop()
        for task in self._all_tasks():
            task.cancel()

    def _all_tasks(self) -> List[asyncio.Task]:
        return self._tasks + [task for _, task in self._secondaries.values()]

    async def _drain_expansions(self, dispatcher: asyncio.Task):
        # No new targets arrive once the primaries are done; a finished
        # dispatcher means stop() was called.
        drained = asyncio.create_task(self._expansions.join())
        await asyncio.wait([drained, dispatcher], return_when=asyncio.FIRST_COMPLETED)
        drained.cancel()
        secondaries = [task for _, task in self._secondaries.values()]
        if secondaries and self.running:
            await asyncio.wait(secondaries)

    async def _shutdown(self):
        self.running = False
        tasks = self._all_tasks()
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        self._tasks = []
        self._secondaries.clear()
        if self._http is not None and not self._http.closed:
            await self._http.close()
        self._http = None
        logger.info(f"[coordinator] Stopped: {self.snapshot()}")

    def _new_session(self, relay_url: str) -> RelaySession:
        if self._session_factory is not None:
            return self._session_factory(relay_url)
        return RelaySession(
            relay_url,
            http_session=self._http,
            connect_timeout=self.settings.connect_timeout,
            heartbeat=self.settings.heartbeat,
        )

    def _make_supervisor(self, relay_url: str, filters, expand: bool, label: str) -> RelaySupervisor:
        async def on_event(url: str, subscription_id: str, event: NostrEvent):
            await self.handle_event(url, event, expand=expand)

        supervisor = RelaySupervisor(
            relay_url,
            filters,
            on_event,
            self._new_session,
            reconnect_enabled=self.settings.reconnect_enabled,
            base_delay=self.settings.reconnect_base_delay,
            max_delay=self.settings.reconnect_max_delay,
            max_attempts=self.settings.reconnect_max_attempts,
            label=label,
        )
        self._supervisors.append(supervisor)
        return supervisor

    async def _supervise(self, supervisor: RelaySupervisor):
        try:
            await supervisor.run()
        finally:
            self._supervisors.remove(supervisor)
            self.stats.sessions_opened += supervisor.sessions_opened
            self.stats.session_failures += supervisor.session_failures

    async def _run_primary(self, relay_url: str):
        filters = build_initial_filters(self.settings.event_kinds, per_kind=self.settings.per_kind_filters)
        supervisor = self._make_supervisor(
            relay_url, filters, expand=self.settings.dynamic_expansion, label=f"{relay_url} [primary]",
        )
        await self._supervise(supervisor)
        logger.warning(f"[coordinator] Primary subscription on {relay_url} ended")

    # ── Secondary subscriptions ─────────────────────────────────

    async def _expansion_dispatcher(self):
        while True:
            key = await self._expansions.get()
            try:
                while len(self._secondaries) >= self.settings.max_secondary_sessions:
                    await self._evict_oldest()
                self._start_secondary(key)
            except Exception as e:
                relay_url, target = key
                logger.error(f"[coordinator] Could not start secondary session for {target} on {relay_url}: {e}", exc_info=True)
            finally:
                self._expansions.task_done()

    def _start_secondary(self, key: ExpansionKey):
        relay_url, target = key
        supervisor = self._make_supervisor(
            relay_url,
            [build_filter(REFERENCE_KINDS, reference_target=target)],
            expand=False,
            label=f"{relay_url} [#e {target[:16]}]",
        )
        task = asyncio.create_task(self._run_secondary(key, supervisor), name=f"chest-secondary-{target[:16]}")
        self._secondaries[key] = (supervisor, task)

    async def _run_secondary(self, key: ExpansionKey, supervisor: RelaySupervisor):
        try:
            await self._supervise(supervisor)
        finally:
            entry = self._secondaries.get(key)
            if entry is not None and entry[0] is supervisor:
                del self._secondaries[key]

    async def _evict_oldest(self):
        key, (supervisor, task) = next(iter(self._secondaries.items()))
        # Let the filter reach the relay before the session is dropped
        subscribed = asyncio.create_task(supervisor.subscribed.wait())
        await asyncio.wait([subscribed, task], timeout=self.settings.connect_timeout,
                           return_when=asyncio.FIRST_COMPLETED)
        subscribed.cancel()

        if self._secondaries.get(key, (None,))[0] is supervisor:
            del self._secondaries[key]
        if task.done():
            return
        supervisor.stop()
        task.cancel()
        await asyncio.gather(task, return_exceptions=True)
        self.stats.expansions_evicted += 1
        logger.info(f"[coordinator] Closed secondary session for {key[1]} on {key[0]} to stay under the cap")

    # ── Event handling ──────────────────────────────────────────

    async def handle_event(self, relay_url: str, event: NostrEvent, expand: bool = True) -> Optional[bool]:
        """Classify, store and maybe expand one event.

        Returns True if stored, False if it was a duplicate, None if it was
        dropped or the insert failed.
        """
        self.stats.events_received += 1

        classification = classify(event)
        if classification is None:
            self.stats.dropped += 1
            return None

        record = ClassifiedRecord.from_event(event, classification)
        inserted: Optional[bool] = None
        try:
            inserted = await asyncio.to_thread(self.db.put, record)
        except SQLAlchemyError as e:
            self.stats.storage_errors += 1
            logger.error(f"[coordinator] Error inserting event {record.id} from {relay_url}: {e}")
        else:
            if inserted:
                self.stats.events_stored += 1
                logger.info(
                    f"[coordinator] Stored {record.category.value} event {record.id} "
                    f"(kind {record.kind}) from {relay_url}"
                )
            else:
                self.stats.duplicates += 1

        if expand and self.settings.dynamic_expansion and is_primary(record.category):
            self.request_expansion(relay_url, record.id)
        return inserted

    def request_expansion(self, relay_url: str, target_id: str) -> bool:
        """Queue a secondary subscription unless this relay has already had one for the target."""
        key = (relay_url, target_id)
        if key in self._expanded:
            self.stats.expansions_skipped += 1
            return False
        self._expanded.add(key)
        self.stats.expansions_requested += 1
        self._expansions.put_nowait(key)
        logger.debug(f"[coordinator] Queued expansion for {target_id} on {relay_url}")
        return True

    # ── Introspection ───────────────────────────────────────────

    @property
    def active_sessions(self) -> int:
        return sum(1 for s in self._supervisors if s.running)

    @property
    def secondary_sessions(self) -> int:
        return len(self._secondaries)

    @property
    def pending_expansions(self) -> int:
        return self._expansions.qsize()

    def snapshot(self) -> dict:
        data = asdict(self.stats)
        data["sessions_opened"] += sum(s.sessions_opened for s in self._supervisors)
        data["session_failures"] += sum(s.session_failures for s in self._supervisors)
        data["active_sessions"] = self.active_sessions
        data["secondary_sessions"] = self.secondary_sessions
        data["pending_expansions"] = self.pending_expansions
        data["running"] = self.running
        return data
