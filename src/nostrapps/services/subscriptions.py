"""Live-updating subscriptions with ordered, deduplicated delivery.

Each channel is a [Subscription][nostrapps.services.subscriptions.Subscription]
actor owning one relay subscription, the newest event per logical address,
and a single-worker [TaskQueue][nostrapps.services.subscriptions.TaskQueue]
that runs every processing step to completion before the next one starts.

Channel lifecycle:

```text
IDLE --restart()--> BACKLOG --EOSE--> LIVE --stop()--> STOPPED
                       ^                |
                       +---restart()----+
```

* **BACKLOG**: stored events are held back. Exact duplicates and events
  older than the stored entry for their address are dropped on arrival.
* **EOSE**: the first end-of-stored-events marker switches to LIVE and
  delivers every held event. Later markers are ignored.
* **LIVE**: an event is delivered when its job runs, provided it is still
  the newest for its address and has not been delivered yet.

Delivery applies the channel transform, invokes the callback (plain function
or coroutine function), and pushes the record to every
[updates()][nostrapps.services.subscriptions.Subscription.updates] iterator.

Examples:
    ```python
    subs = Subscriptions(fetcher)
    await subs.subscribe_contact_list(pubkey, on_contacts)
    async for contacts in subs.contact_list.updates():
        render(contacts)
    ```
"""

from __future__ import annotations

import asyncio
import contextlib
import inspect
from typing import TYPE_CHECKING, Any, Generic, TypeVar

from nostrapps.core.logger import Logger
from nostrapps.core.metrics import SUBSCRIPTION_DELIVERIES
from nostrapps.models.constants import EventKind, SubscriptionState
from nostrapps.models.filter import EventFilter
from nostrapps.models.records import BookmarkList, ContactList

from . import augment
from .fetcher import parse_profile


if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Awaitable, Callable, Iterable, Sequence

    from nostrapps.core.pool import RelayPool, SubscriptionHandle
    from nostrapps.models.event import Event
    from nostrapps.models.records import Profile

    from .fetcher import Fetcher


T = TypeVar("T")

BOOKMARK_KINDS = (EventKind.TEXT_NOTE, EventKind.LONG_FORM)


# ---------------------------------------------------------------------------
# Task queue
# ---------------------------------------------------------------------------


class TaskQueue:
    """Single-worker FIFO of coroutine factories.

    Jobs run one at a time, to completion, in submission order. A failing
    job is logged and the worker moves on to the next one. The worker task
    starts lazily on the first submission.
    """

    def __init__(self, name: str = "queue") -> None:
        self._queue: asyncio.Queue[Callable[[], Awaitable[None]]] = asyncio.Queue()
        self._worker: asyncio.Task[None] | None = None
        self._logger = Logger("task_queue").bind(queue=name)

    def __len__(self) -> int:
        return self._queue.qsize()

    def submit(self, job: Callable[[], Awaitable[None]]) -> None:
        """Append *job*; must be called from within the running event loop."""
        if self._worker is None or self._worker.done():
            self._worker = asyncio.get_running_loop().create_task(self._run())
        self._queue.put_nowait(job)

    async def _run(self) -> None:
        while True:
            job = await self._queue.get()
            try:
                await job()
            except asyncio.CancelledError:
                raise
            except Exception as e:  # Intentionally broad: one bad job must not stop the channel
                self._logger.exception("job_failed", error=str(e))
            finally:
                self._queue.task_done()

    async def join(self) -> None:
        """Wait until every submitted job has finished."""
        await self._queue.join()

    async def close(self) -> None:
        """Cancel the worker and discard pending jobs."""
        worker, self._worker = self._worker, None
        if worker is not None:
            worker.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await worker
        while not self._queue.empty():
            self._queue.get_nowait()
            self._queue.task_done()


# ---------------------------------------------------------------------------
# Channel
# ---------------------------------------------------------------------------


class Subscription(Generic[T]):
    """One subscription channel.

    Args:
        name: Channel name, used in logs and metrics.
        pool: Relay transport.
        relays: Relays to subscribe on.
        transform: Turns a raw event into the delivered record.
    """

    def __init__(
        self,
        name: str,
        pool: RelayPool,
        relays: Sequence[str],
        transform: Callable[[Event], Awaitable[T]],
    ) -> None:
        self.name = name
        self._pool = pool
        self._relays = list(relays)
        self._transform = transform
        self._logger = Logger("subscriptions").bind(channel=name)
        self._queue = TaskQueue(name)
        self._handle: SubscriptionHandle | None = None
        self._callback: Callable[[T], Any] | None = None
        self._latest: dict[str, Event] = {}
        self._delivered: dict[str, str] = {}
        self._listeners: list[asyncio.Queue[T]] = []
        self._state = SubscriptionState.IDLE
        self._generation = 0

    @property
    def state(self) -> SubscriptionState:
        return self._state

    @property
    def latest(self) -> dict[str, Event]:
        """Newest event held per logical address."""
        return dict(self._latest)

    async def restart(
        self, event_filter: EventFilter, callback: Callable[[T], Any] | None = None
    ) -> None:
        """Replace the relay subscription with one for *event_filter*.

        The previous handle is stopped before the new one opens; jobs it
        queued are discarded when they run, and a job already awaiting its
        transform drops its record.
        """
        await self._stop_handle()
        self._generation += 1
        generation = self._generation
        self._callback = callback
        self._latest = {}
        self._delivered = {}
        self._state = SubscriptionState.BACKLOG

        handle = self._pool.subscribe(event_filter, self._relays, close_on_eose=False)
        handle.on_event(lambda event: self._on_event(generation, event))
        handle.on_eose(lambda: self._on_eose(generation))
        self._handle = handle
        await handle.start()
        self._logger.info("subscription_restarted", generation=generation)

    async def stop(self) -> None:
        """Tear the channel down; no callback fires afterwards."""
        self._generation += 1
        await self._stop_handle()
        await self._queue.close()
        self._state = SubscriptionState.STOPPED
        self._logger.info("subscription_stopped")

    async def drain(self) -> None:
        """Wait until every queued processing job has run."""
        await self._queue.join()

    async def updates(self) -> AsyncIterator[T]:
        """Yield every record delivered from now on, across restarts."""
        queue: asyncio.Queue[T] = asyncio.Queue()
        self._listeners.append(queue)
        try:
            while True:
                yield await queue.get()
        finally:
            self._listeners.remove(queue)

    # -------------------------------------------------------------------------
    # Internals
    # -------------------------------------------------------------------------

    async def _stop_handle(self) -> None:
        handle, self._handle = self._handle, None
        if handle is not None:
            await handle.stop()

    def _on_event(self, generation: int, event: Event) -> None:
        if generation != self._generation:
            return
        key = event.dedup_key
        current = self._latest.get(key)
        if current is not None and (
            current.id == event.id or event.created_at < current.created_at
        ):
            return
        self._latest[key] = event
        self._queue.submit(lambda: self._process(generation, key, event))

    def _on_eose(self, generation: int) -> None:
        if generation != self._generation:
            return
        self._queue.submit(lambda: self._go_live(generation))

    async def _process(self, generation: int, key: str, event: Event) -> None:
        if generation != self._generation or self._state != SubscriptionState.LIVE:
            return
        if self._latest.get(key) is not event or self._delivered.get(key) == event.id:
            return
        await self._deliver(generation, key, event)

    async def _go_live(self, generation: int) -> None:
        if generation != self._generation or self._state != SubscriptionState.BACKLOG:
            return
        self._state = SubscriptionState.LIVE
        self._logger.debug("eose", held=len(self._latest))
        for key, event in list(self._latest.items()):
            if generation != self._generation:
                return
            if self._delivered.get(key) != event.id:
                await self._deliver(generation, key, event)

    async def _deliver(self, generation: int, key: str, event: Event) -> None:
        record = await self._transform(event)
        if generation != self._generation:
            return
        self._delivered[key] = event.id
        if self._callback is not None:
            result = self._callback(record)
            if inspect.isawaitable(result):
                await result
        for listener in self._listeners:
            listener.put_nowait(record)
        SUBSCRIPTION_DELIVERIES.labels(channel=self.name).inc()
        self._logger.debug("delivered", id=event.id, created_at=event.created_at)


# ---------------------------------------------------------------------------
# Channels
# ---------------------------------------------------------------------------


def _recent_first(values: Sequence[str], items: Iterable[Any], key: Callable[[Any], str]) -> list:
    """Order *items* by the position of ``key(item)`` in *values*, last first."""
    position = {value: i for i, value in enumerate(values)}
    present = [item for item in items if key(item) in position]
    return sorted(present, key=lambda item: position[key(item)], reverse=True)


class Subscriptions:
    """The profile, contact list, and bookmark list channels of one client."""

    def __init__(self, fetcher: Fetcher, relays: Sequence[str] | None = None) -> None:
        self._fetcher = fetcher
        relays = list(relays or fetcher.config.read_relays)
        pool = fetcher.pool
        self.profiles: Subscription[Profile] = Subscription(
            "profile", pool, relays, self._profile
        )
        self.contact_list: Subscription[ContactList] = Subscription(
            "contact_list", pool, relays, self._contact_list
        )
        self.bookmark_list: Subscription[BookmarkList] = Subscription(
            "bookmark_list", pool, relays, self._bookmark_list
        )

    async def subscribe_profiles(
        self, pubkeys: Iterable[str], callback: Callable[[Profile], Any] | None = None
    ) -> Subscription[Profile]:
        event_filter = EventFilter(kinds=[EventKind.METADATA], authors=list(pubkeys))
        await self.profiles.restart(event_filter, callback)
        return self.profiles

    async def subscribe_contact_list(
        self, pubkey: str, callback: Callable[[ContactList], Any] | None = None
    ) -> Subscription[ContactList]:
        event_filter = EventFilter(kinds=[EventKind.CONTACTS], authors=[pubkey])
        await self.contact_list.restart(event_filter, callback)
        return self.contact_list

    async def subscribe_bookmark_list(
        self, pubkey: str, callback: Callable[[BookmarkList], Any] | None = None
    ) -> Subscription[BookmarkList]:
        event_filter = EventFilter(kinds=[EventKind.BOOKMARKS], authors=[pubkey])
        await self.bookmark_list.restart(event_filter, callback)
        return self.bookmark_list

    async def stop(self) -> None:
        await asyncio.gather(
            self.profiles.stop(), self.contact_list.stop(), self.bookmark_list.stop()
        )

    # -------------------------------------------------------------------------
    # Transforms
    # -------------------------------------------------------------------------

    async def _profile(self, event: Event) -> Profile:
        profile = parse_profile(event)
        self._fetcher.caches.profiles.put(event.pubkey, profile)
        return profile

    async def _contact_list(self, event: Event) -> ContactList:
        pubkeys = tuple(dict.fromkeys(tag[1] for tag in event.get_tags("p") if len(tag) >= 2))
        contacts: list[Profile] = []
        if pubkeys:
            profiles = await self._fetcher.fetch_profiles(pubkeys)
            contacts = _recent_first(pubkeys, profiles.values(), lambda p: p.pubkey)
        return ContactList(event=event, contact_pubkeys=pubkeys, contacts=tuple(contacts))

    async def _bookmark_list(self, event: Event) -> BookmarkList:
        ids = tuple(dict.fromkeys(tag[1] for tag in event.get_tags("e") if len(tag) >= 2))
        bookmarks = []
        if ids:
            events = await self._fetcher.resolve_by_ids(ids, kinds=BOOKMARK_KINDS)
            notes = await augment.augment_authors(self._fetcher, events)
            bookmarks = _recent_first(ids, notes, lambda n: n.event.id)
        return BookmarkList(event=event, bookmark_ids=ids, bookmarks=tuple(bookmarks))
