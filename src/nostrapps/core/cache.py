"""Session-lifetime caches behind a get/put/has interface.

Four caches cooperate during a session:

* ``events``: raw events by id.
* ``addresses``: events by logical address (and by the key a lookup was
  made under), newest ``created_at`` wins, ties keep the incumbent.
* ``kind_apps``: handler registries by event kind.
* ``profiles``: parsed profiles by public key.

The caches are unbounded and live as long as the client. A session touches
a few thousand records at most; every access goes through
[MemoryCache][nostrapps.core.cache.MemoryCache] so an eviction policy can
be introduced without touching callers.

See Also:
    [Fetcher][nostrapps.services.fetcher.Fetcher]: Populates the caches
        from every relay query.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Generic, TypeVar

from .metrics import CACHE_LOOKUPS


if TYPE_CHECKING:
    from collections.abc import Hashable

    from nostrapps.models.app import AppRegistry
    from nostrapps.models.event import Event
    from nostrapps.models.records import Profile


K = TypeVar("K", bound="Hashable")
V = TypeVar("V")


class MemoryCache(Generic[K, V]):
    """Unbounded in-memory mapping with hit/miss accounting.

    Args:
        name: Cache name used as the ``cache`` metrics label.
    """

    def __init__(self, name: str) -> None:
        self.name = name
        self._data: dict[K, V] = {}

    def __len__(self) -> int:
        return len(self._data)

    def __contains__(self, key: object) -> bool:
        return key in self._data

    def get(self, key: K) -> V | None:
        """Return the cached value, or ``None`` on a miss."""
        value = self._data.get(key)
        CACHE_LOOKUPS.labels(cache=self.name, result="hit" if value is not None else "miss").inc()
        return value

    def put(self, key: K, value: V) -> bool:
        """Store *value* under *key*. Returns True when the entry changed."""
        self._data[key] = value
        return True

    def has(self, key: K) -> bool:
        return key in self._data

    def clear(self) -> None:
        self._data.clear()


class AddressCache(MemoryCache[str, "Event"]):
    """Event cache that only ever moves forward in time.

    A put is ignored unless the event is strictly newer than the incumbent,
    so the result is independent of the order copies arrive in.
    """

    def put(self, key: str, value: Event) -> bool:
        incumbent = self._data.get(key)
        if incumbent is not None and incumbent.created_at >= value.created_at:
            return False
        self._data[key] = value
        return True


@dataclass(slots=True)
class CacheLayer:
    """The four caches of one client session."""

    events: MemoryCache[str, Event] = field(default_factory=lambda: MemoryCache("events"))
    addresses: AddressCache = field(default_factory=lambda: AddressCache("addresses"))
    kind_apps: MemoryCache[int, AppRegistry] = field(
        default_factory=lambda: MemoryCache("kind_apps")
    )
    profiles: MemoryCache[str, Profile] = field(default_factory=lambda: MemoryCache("profiles"))

    def store_event(self, event: Event) -> None:
        """Record *event* by id and by logical address."""
        self.events.put(event.id, event)
        self.addresses.put(event.dedup_key, event)

    def clear(self) -> None:
        self.events.clear()
        self.addresses.clear()
        self.kind_apps.clear()
        self.profiles.clear()
