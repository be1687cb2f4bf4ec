"""Fetch and merge engine.

Every read goes through [Fetcher][nostrapps.services.fetcher.Fetcher]:

1. Relay queries run concurrently through
   [collect_events()][nostrapps.services.fetcher.collect_events]; failed
   queries contribute nothing.
2. Results are merged by logical address with
   [dedup_events()][nostrapps.services.fetcher.dedup_events]: the
   newest ``created_at`` wins and ties keep the first copy seen.
3. Every event seen is recorded in the [CacheLayer][nostrapps.core.cache.CacheLayer].

On top of this sit address resolution, id lookups, profile lookups, the
ranked-then-fallback search, and the feeds of followed accounts. Feed and
search results are augmented with [nostrapps.services.augment][].

Examples:
    ```python
    fetcher = Fetcher(pool, ClientConfig())
    event = await fetcher.resolve("naddr1...")
    notes = await fetcher.search_notes("nostr", limit=10)
    ```
"""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING, Any

from nostrapps.core.cache import CacheLayer
from nostrapps.core.config import ClientConfig
from nostrapps.core.logger import Logger
from nostrapps.core.metrics import RELAY_QUERIES
from nostrapps.models.constants import EventKind
from nostrapps.models.filter import EventFilter
from nostrapps.models.records import Profile, parse_content_json
from nostrapps.nips import nip19, nip89

from . import augment


if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable, Iterable, Sequence

    from nostrapps.core.pool import RelayPool
    from nostrapps.models.address import Address
    from nostrapps.models.app import AppRegistry
    from nostrapps.models.event import Event
    from nostrapps.models.records import (
        Community,
        LiveEvent,
        LongNote,
        Note,
        ZapReceipt,
    )


_logger = Logger("fetcher")

# ---------------------------------------------------------------------------
# Merge
# ---------------------------------------------------------------------------


def dedup_events(events: Iterable[Event]) -> list[Event]:
    """Keep one event per logical address: the newest, ties keep the first seen.

    Output order is the order in which each logical address was first seen.
    """
    merged: dict[str, Event] = {}
    for event in events:
        key = event.dedup_key
        incumbent = merged.get(key)
        if incumbent is None or event.created_at > incumbent.created_at:
            merged[key] = event
    return list(merged.values())


async def collect_events(requests: Iterable[Awaitable[list[Event]]]) -> list[Event]:
    """Run relay requests concurrently and merge their results.

    Individual failures are logged and contribute nothing; if every request
    fails the result is empty. ``CancelledError`` propagates.
    """
    results = await asyncio.gather(*requests, return_exceptions=True)

    events: list[Event] = []
    for result in results:
        if isinstance(result, asyncio.CancelledError):
            raise result
        if isinstance(result, BaseException):
            _logger.warning("request_failed", error=str(result), error_type=type(result).__name__)
            continue
        events.extend(result)
    return dedup_events(events)


def sort_by_recency(events: Iterable[Event]) -> list[Event]:
    return sorted(events, key=lambda e: e.created_at, reverse=True)


class Fetcher:
    """Cached, merged reads from the relay network.

    Args:
        pool: Relay transport.
        config: Client configuration (relays, limits).
        caches: Session caches; a fresh [CacheLayer][nostrapps.core.cache.CacheLayer]
            when omitted.
    """

    def __init__(
        self,
        pool: RelayPool,
        config: ClientConfig | None = None,
        caches: CacheLayer | None = None,
    ) -> None:
        self._pool = pool
        self._config = config or ClientConfig()
        self._caches = caches if caches is not None else CacheLayer()
        self._logger = _logger

    @property
    def config(self) -> ClientConfig:
        return self._config

    @property
    def caches(self) -> CacheLayer:
        return self._caches

    @property
    def pool(self) -> RelayPool:
        return self._pool

    # -------------------------------------------------------------------------
    # Primitive queries
    # -------------------------------------------------------------------------

    async def fetch_events(
        self,
        event_filter: EventFilter,
        relays: Sequence[str] | None = None,
        *,
        operation: str = "read",
    ) -> list[Event]:
        """Query *relays* (default: read relays) and cache every result."""
        try:
            events = await self._pool.query(event_filter, relays or self._config.read_relays)
        except Exception:
            RELAY_QUERIES.labels(operation=operation, result="failed").inc()
            raise
        RELAY_QUERIES.labels(operation=operation, result="ok").inc()
        for event in events:
            self._caches.store_event(event)
        self._logger.debug("events_fetched", operation=operation, count=len(events))
        return events

    async def fetch_ranked(
        self,
        event_filter: EventFilter,
        fallback_key: Callable[[Event], Any] | None = None,
    ) -> list[Event]:
        """Fetch a result set ordered by the ranking endpoint.

        The ranked id list comes from ``pool.top`` on the search relay; those
        events are fetched and returned in rank order. When no ranking is
        available the broad query runs instead, sorted by *fallback_key*
        (default: recency), descending.
        """
        try:
            ranked = await self._pool.top(event_filter, [self._config.search_relay])
            RELAY_QUERIES.labels(operation="top", result="ok").inc()
        except Exception as e:  # Intentionally broad: ranking is optional, the broad query follows
            RELAY_QUERIES.labels(operation="top", result="failed").inc()
            self._logger.warning("ranking_failed", error=str(e))
            ranked = []

        if ranked:
            events = await collect_events([self.fetch_events(EventFilter(ids=ranked))])
            rank = {event_id: i for i, event_id in enumerate(ranked)}
            return sorted((e for e in events if e.id in rank), key=lambda e: rank[e.id])

        events = await collect_events([self.fetch_events(event_filter)])
        key = fallback_key or (lambda e: e.created_at)
        return sorted(events, key=key, reverse=True)

    # -------------------------------------------------------------------------
    # Resolution
    # -------------------------------------------------------------------------

    async def resolve(self, identifier: str) -> Event | None:
        """Decode *identifier* and resolve it.

        Raises:
            MalformedIdentifierError: If *identifier* does not decode.
        """
        return await self.resolve_by_address(nip19.parse_address(identifier))

    async def resolve_by_address(self, address: Address) -> Event | None:
        """Return the newest event *address* points to, or ``None``.

        Checks the address cache first. A hex-mode address is also tried as
        a public key (profile lookup) in parallel. The result is cached
        under the request key, its id, and its logical address.
        """
        key = address.cache_key()
        if key is not None:
            cached = self._caches.addresses.get(key)
            if cached is not None:
                return cached

        event_filter = address.to_filter()
        if event_filter is None:
            self._logger.warning("address_unusable", address=address)
            return None

        requests = [self.fetch_events(event_filter)]
        if address.hex and address.event_id:
            requests.append(
                self.fetch_events(
                    EventFilter(kinds=[EventKind.METADATA], authors=[address.event_id])
                )
            )
        events = await collect_events(requests)
        if not events:
            self._logger.info("address_not_found", key=key)
            return None

        event = events[0]
        if key is not None:
            self._caches.addresses.put(key, event)
        self._caches.store_event(event)
        return event

    async def resolve_by_ids(
        self, ids: Iterable[str], kinds: Iterable[int] | None = None
    ) -> list[Event]:
        """Return the events with the given ids, newest first.

        Cached events are used when their kind is allowed; the rest are
        queried from the events relay.
        """
        kinds = tuple(kinds) if kinds is not None else ()
        found: list[Event] = []
        missing: list[str] = []
        for event_id in dict.fromkeys(ids):
            cached = self._caches.events.get(event_id)
            if cached is not None and (not kinds or cached.kind in kinds):
                found.append(cached)
            else:
                missing.append(event_id)

        if missing:
            found.extend(
                await collect_events(
                    [
                        self.fetch_events(
                            EventFilter(ids=missing, kinds=kinds),
                            [self._config.events_relay],
                            operation="ids",
                        )
                    ]
                )
            )
        return sort_by_recency(dedup_events(found))

    async def fetch_profiles(self, pubkeys: Iterable[str]) -> dict[str, Profile]:
        """Return parsed profiles by pubkey; unknown pubkeys are absent."""
        profiles: dict[str, Profile] = {}
        missing: list[str] = []
        for pubkey in dict.fromkeys(pubkeys):
            cached = self._caches.profiles.get(pubkey)
            if cached is not None:
                profiles[pubkey] = cached
            else:
                missing.append(pubkey)

        if missing:
            events = await collect_events(
                [
                    self.fetch_events(
                        EventFilter(kinds=[EventKind.METADATA], authors=missing),
                        operation="profiles",
                    )
                ]
            )
            for event in events:
                profile = parse_profile(event)
                self._caches.profiles.put(event.pubkey, profile)
                profiles[event.pubkey] = profile
        return profiles

    async def fetch_pubkey_events(
        self,
        kind: int,
        pubkeys: Sequence[str],
        *,
        tagged: bool = False,
        limit: int | None = None,
        identifiers: Sequence[str] | None = None,
    ) -> list[Event]:
        """Events of *kind* authored by (or tagging) *pubkeys*, newest first."""
        limit = limit or self._config.default_limit
        pubkeys = list(dict.fromkeys(pubkeys))[: self._config.max_authors]
        if not pubkeys:
            return []
        tags: dict[str, Sequence[str]] = {}
        authors: Sequence[str] = ()
        if tagged:
            tags["p"] = pubkeys
        else:
            authors = pubkeys
        if identifiers:
            tags["d"] = identifiers
        event_filter = EventFilter(kinds=[kind], authors=authors, tags=tags, limit=limit)
        events = await collect_events([self.fetch_events(event_filter)])
        return sort_by_recency(events)[:limit]

    # -------------------------------------------------------------------------
    # Search
    # -------------------------------------------------------------------------

    def _search_filter(self, kind: int, query: str, limit: int | None) -> EventFilter:
        return EventFilter(kinds=[kind], search=query, limit=limit or self._config.default_limit)

    async def search_profiles(self, query: str, limit: int | None = None) -> list[Profile]:
        """Profiles matching *query*, in rank order."""
        event_filter = self._search_filter(EventKind.METADATA, query, limit)
        events = await self.fetch_ranked(event_filter)
        profiles = []
        for event in events[: event_filter.limit]:
            profile = parse_profile(event)
            self._caches.profiles.put(event.pubkey, profile)
            profiles.append(profile)
        return profiles

    async def search_notes(self, query: str, limit: int | None = None) -> list[Note]:
        event_filter = self._search_filter(EventKind.TEXT_NOTE, query, limit)
        events = sort_by_recency(await self.fetch_ranked(event_filter))[: event_filter.limit]
        return await augment.augment_authors(self, events)

    async def search_long_notes(self, query: str, limit: int | None = None) -> list[LongNote]:
        event_filter = self._search_filter(EventKind.LONG_FORM, query, limit)
        events = sort_by_recency(await self.fetch_ranked(event_filter))[: event_filter.limit]
        return await augment.augment_long_notes(self, events)

    async def search_live_events(self, query: str, limit: int | None = None) -> list[LiveEvent]:
        """Live activities matching *query*, ended ones included."""
        event_filter = self._search_filter(EventKind.LIVE_EVENT, query, limit)
        events = await self.fetch_ranked(event_filter)
        return await augment.augment_live_events(
            self, events, limit=event_filter.limit, include_ended=True
        )

    async def search_communities(self, query: str, limit: int | None = None) -> list[Community]:
        event_filter = self._search_filter(EventKind.COMMUNITY, query, limit)
        events = sort_by_recency(await self.fetch_ranked(event_filter))[: event_filter.limit]
        return await augment.augment_communities(self, events)

    # -------------------------------------------------------------------------
    # Followed feeds
    # -------------------------------------------------------------------------

    async def fetch_followed_long_notes(self, pubkeys: Sequence[str]) -> list[LongNote]:
        events = await self.fetch_pubkey_events(EventKind.LONG_FORM, pubkeys)
        return await augment.augment_long_notes(self, events)

    async def fetch_followed_highlights(self, pubkeys: Sequence[str]) -> list[Note]:
        events = await self.fetch_pubkey_events(EventKind.HIGHLIGHT, pubkeys)
        return await augment.augment_authors(self, events)

    async def fetch_followed_zaps(
        self, pubkeys: Sequence[str], min_zap: int | None = None
    ) -> list[ZapReceipt]:
        """Zaps received by *pubkeys*; *min_zap* is in sats."""
        events = await self.fetch_pubkey_events(
            EventKind.ZAP_RECEIPT, pubkeys, tagged=True, limit=200
        )
        return await augment.augment_zaps(self, events, min_zap=min_zap)

    async def fetch_followed_communities(self, pubkeys: Sequence[str]) -> list[Community]:
        """Communities in which *pubkeys* had posts approved, most active first."""
        approvals = await self.fetch_pubkey_events(
            EventKind.COMMUNITY_APPROVAL, pubkeys, limit=100
        )
        parsed = augment.parse_approvals(approvals)
        if not parsed:
            return []
        events = await self.fetch_pubkey_events(
            EventKind.COMMUNITY,
            [a.pubkey for a in parsed],
            identifiers=list(dict.fromkeys(a.identifier for a in parsed)),
        )
        return await augment.augment_communities(self, events, parsed)

    async def fetch_followed_live_events(
        self, pubkeys: Sequence[str], limit: int | None = None
    ) -> list[LiveEvent]:
        """Live activities where followed accounts participate, live first."""
        limit = limit or self._config.default_limit
        events = await self.fetch_pubkey_events(
            EventKind.LIVE_EVENT, pubkeys, tagged=True, limit=limit
        )
        return await augment.augment_live_events(self, events, contacts=pubkeys, limit=limit)

    # -------------------------------------------------------------------------
    # Handler applications
    # -------------------------------------------------------------------------

    async def fetch_app_handlers(
        self, kinds: Sequence[int] | None = None, limit: int | None = None
    ) -> AppRegistry:
        """Handler applications for *kinds* (all kinds when ``None``), in rank order.

        Without ranking, announcements are ordered by their ``published_at``
        tag, newest first.
        """
        tags = {"k": [str(k) for k in kinds]} if kinds else {}
        event_filter = EventFilter(
            kinds=[EventKind.APP_HANDLER], tags=tags, limit=limit or self._config.apps_limit
        )
        events = await self.fetch_ranked(event_filter, fallback_key=_published_at)
        profiles = await self.fetch_profiles(e.pubkey for e in events)
        return nip89.build_registry(events, profiles, kinds or None, self._config.platforms)

    async def fetch_apps(self, limit: int | None = None) -> AppRegistry:
        """The application directory: top handlers of every kind."""
        return await self.fetch_app_handlers(None, limit=limit)


def _published_at(event: Event) -> int:
    value = event.get_tag_value("published_at")
    try:
        return int(value)
    except ValueError:
        return event.created_at


def parse_profile(event: Event) -> Profile:
    """Build a [Profile][nostrapps.models.records.Profile] from a kind-0 event."""
    return Profile(
        event=event, metadata=parse_content_json(event), npub=nip19.encode_npub(event.pubkey)
    )
