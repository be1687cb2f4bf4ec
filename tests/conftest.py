"""
Pytest configuration and shared fixtures for nostrapps tests.

Provides:
- A scripted in-memory relay pool and subscription handle
- An event factory producing valid, deterministic events
- A fake signer for wallet connect round trips
"""

from __future__ import annotations

import hashlib
import json
import logging
from collections.abc import Callable, Sequence

import pytest

from nostrapps.core.cache import CacheLayer
from nostrapps.core.config import ClientConfig
from nostrapps.core.exceptions import ConnectivityError
from nostrapps.models.event import Event
from nostrapps.models.filter import EventFilter
from nostrapps.services.fetcher import Fetcher


PK_ALICE = "a" * 64
PK_BOB = "b" * 64
PK_CAROL = "c" * 64
PK_WALLET = "d" * 64


# ============================================================================
# Logging Configuration
# ============================================================================


@pytest.fixture(scope="session", autouse=True)
def setup_logging() -> None:
    """Configure logging for tests."""
    logging.basicConfig(level=logging.DEBUG)


# ============================================================================
# Events
# ============================================================================


def build_event(
    kind: int,
    created_at: int = 1_700_000_000,
    *,
    pubkey: str = PK_ALICE,
    tags: Sequence[Sequence[str]] = (),
    content: str = "",
    salt: str = "",
) -> Event:
    """Build an event whose id is derived from its fields (and *salt*)."""
    payload = json.dumps([pubkey, created_at, kind, [list(t) for t in tags], content, salt])
    return Event(
        id=hashlib.sha256(payload.encode()).hexdigest(),
        pubkey=pubkey,
        created_at=created_at,
        kind=kind,
        tags=[tuple(t) for t in tags],
        content=content,
    )


@pytest.fixture
def make_event() -> Callable[..., Event]:
    """Factory for valid, deterministic events."""
    return build_event


# ============================================================================
# Relay Pool
# ============================================================================


def matches(event_filter: EventFilter, event: Event) -> bool:
    """Evaluate a NIP-01 filter (``search`` as a case-insensitive substring)."""
    if event_filter.ids and event.id not in event_filter.ids:
        return False
    if event_filter.kinds and event.kind not in event_filter.kinds:
        return False
    if event_filter.authors and event.pubkey not in event_filter.authors:
        return False
    for name, values in event_filter.tags.items():
        if not any(len(t) >= 2 and t[1] in values for t in event.get_tags(name)):
            return False
    return not (event_filter.search and event_filter.search.lower() not in event.content.lower())


class FakeSubscriptionHandle:
    """Subscription handle driven by the test through ``emit()`` and ``eose()``."""

    def __init__(self, event_filter: EventFilter, relays: Sequence[str], close_on_eose: bool):
        self.filter = event_filter
        self.relays = list(relays)
        self.close_on_eose = close_on_eose
        self.event_callbacks: list[Callable[[Event], None]] = []
        self.eose_callbacks: list[Callable[[], None]] = []
        self.started = False
        self.stopped = False
        self.on_start: Callable[[FakeSubscriptionHandle], None] | None = None

    def on_event(self, callback: Callable[[Event], None]) -> None:
        self.event_callbacks.append(callback)

    def on_eose(self, callback: Callable[[], None]) -> None:
        self.eose_callbacks.append(callback)

    async def start(self) -> None:
        self.started = True
        if self.on_start is not None:
            self.on_start(self)

    async def stop(self) -> None:
        self.stopped = True

    def emit(self, event: Event) -> None:
        if self.stopped:
            return
        for callback in self.event_callbacks:
            callback(event)

    def eose(self) -> None:
        if self.stopped:
            return
        for callback in self.eose_callbacks:
            callback()


class FakeRelayPool:
    """In-memory [RelayPool][nostrapps.core.pool.RelayPool] recording every call."""

    def __init__(self, events: Sequence[Event] = (), ranked: Sequence[str] = ()) -> None:
        self.events = list(events)
        self.ranked = list(ranked)
        self.queries: list[tuple[EventFilter, list[str]]] = []
        self.top_calls: list[EventFilter] = []
        self.subscriptions: list[FakeSubscriptionHandle] = []
        self.published: list[Event] = []
        self.fail_query = False
        self.fail_top = False
        self.auto_eose = False
        self.on_publish: Callable[[Event], None] | None = None
        self.closed = False

    async def query(self, event_filter: EventFilter, relays: Sequence[str]) -> list[Event]:
        self.queries.append((event_filter, list(relays)))
        if self.fail_query:
            raise ConnectivityError("all relays failed")
        return [e for e in self.events if matches(event_filter, e)]

    async def top(self, event_filter: EventFilter, relays: Sequence[str]) -> list[str]:
        self.top_calls.append(event_filter)
        if self.fail_top:
            raise ConnectivityError("ranking endpoint down")
        return list(self.ranked)

    def subscribe(
        self, event_filter: EventFilter, relays: Sequence[str], *, close_on_eose: bool = False
    ) -> FakeSubscriptionHandle:
        handle = FakeSubscriptionHandle(event_filter, relays, close_on_eose)
        if self.auto_eose:
            handle.on_start = lambda h: h.eose()
        self.subscriptions.append(handle)
        return handle

    async def publish(self, event: Event, relays: Sequence[str], timeout: float) -> None:
        self.published.append(event)
        if self.on_publish is not None:
            self.on_publish(event)

    async def close(self) -> None:
        self.closed = True


@pytest.fixture
def fake_pool() -> FakeRelayPool:
    return FakeRelayPool()


@pytest.fixture
def config() -> ClientConfig:
    return ClientConfig()


@pytest.fixture
def fetcher(fake_pool: FakeRelayPool, config: ClientConfig) -> Fetcher:
    return Fetcher(fake_pool, config, CacheLayer())


# ============================================================================
# Signer
# ============================================================================


class FakeSigner:
    """Signer with reversible "encryption" and unsigned events."""

    def __init__(self, public_key: str = PK_BOB) -> None:
        self._public_key = public_key
        self.signed: list[Event] = []

    @property
    def public_key(self) -> str:
        return self._public_key

    async def encrypt(self, public_key: str, plaintext: str) -> str:
        return f"enc:{public_key}:{plaintext}"

    async def decrypt(self, public_key: str, ciphertext: str) -> str:
        prefix = f"enc:{public_key}:"
        if not ciphertext.startswith(prefix):
            raise ValueError("cannot decrypt")
        return ciphertext[len(prefix) :]

    async def sign(self, kind: int, content: str, tags: Sequence[Sequence[str]]) -> Event:
        event = build_event(kind, 1_700_000_000, pubkey=self._public_key, tags=tags, content=content)
        self.signed.append(event)
        return event


@pytest.fixture
def fake_signer() -> FakeSigner:
    return FakeSigner()
