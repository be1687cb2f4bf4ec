"""Relay pool built on ``nostr_sdk``.

Implements the [RelayPool][nostrapps.core.pool.RelayPool] protocol:

* One long-lived ``Client`` per relay serves one-shot queries and publishes,
  so a slow or dead relay only delays its own share of a fetch.
* Each live subscription gets a dedicated ``Client`` connected to its
  relays and a ``HandleNotification`` handler; end-of-stored-events fires
  once every relay has sent its ``EOSE``, or after the query timeout for
  the relays that answered.

Overlay relays (Tor, I2P, Lokinet) are reached through the configured
SOCKS5 proxy with ``ConnectionMode.PROXY``; clearnet relays use verified TLS.

Examples:
    ```python
    pool = NostrSdkRelayPool(timeout=10.0)
    events = await pool.query(EventFilter(kinds=[0], authors=[pubkey]), relays)
    await pool.close()
    ```
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import socket
from datetime import timedelta
from ipaddress import AddressValueError, IPv4Address, IPv6Address
from typing import TYPE_CHECKING
from urllib.parse import urlparse

from nostr_sdk import (
    Client,
    ClientBuilder,
    ClientOptions,
    Connection,
    ConnectionMode,
    ConnectionTarget,
    HandleNotification,
    RelayMessage,
    RelayUrl,
)

from nostrapps.core.exceptions import ConnectivityError, PublishingError
from nostrapps.models.event import Event
from nostrapps.models.relay import Relay


if TYPE_CHECKING:
    from collections.abc import Callable, Sequence

    from nostr_sdk import Event as NostrEvent

    from nostrapps.models.filter import EventFilter


logger = logging.getLogger(__name__)


async def create_client(proxy_url: str | None = None) -> Client:
    """Create a read-only Nostr client, optionally routed through a SOCKS5 proxy.

    Note:
        nostr-sdk requires a numeric proxy address; hostnames are resolved
        with ``asyncio.to_thread(socket.gethostbyname)``.
    """
    builder = ClientBuilder()

    if proxy_url is not None:
        parsed = urlparse(proxy_url)
        proxy_host = parsed.hostname or "127.0.0.1"
        proxy_port = parsed.port or 9050

        bare_host = proxy_host.strip("[]")
        try:
            IPv4Address(bare_host)
        except (AddressValueError, ValueError):
            try:
                IPv6Address(bare_host)
                proxy_host = bare_host
            except (AddressValueError, ValueError):
                proxy_host = await asyncio.to_thread(socket.gethostbyname, proxy_host)

        proxy_mode = ConnectionMode.PROXY(proxy_host, proxy_port)
        conn = Connection().mode(proxy_mode).target(ConnectionTarget.ONION)
        builder = builder.opts(ClientOptions().connection(conn))

    return builder.build()


def _verified(events: Sequence[NostrEvent]) -> list[Event]:
    records: list[Event] = []
    for event in events:
        if not event.verify():
            logger.debug("event_rejected id=%s reason=invalid_signature", event.id().to_hex())
            continue
        records.append(Event.from_nostr(event))
    return records


# ---------------------------------------------------------------------------
# Subscriptions
# ---------------------------------------------------------------------------


class _NotificationHandler(HandleNotification):
    """Forwards relay notifications to a subscription handle."""

    def __init__(self, subscription: NostrSdkSubscription) -> None:
        super().__init__()
        self._subscription = subscription

    async def handle(self, relay_url: str, subscription_id: str, event: NostrEvent) -> None:
        if not event.verify():
            return
        self._subscription._emit_event(Event.from_nostr(event))

    async def handle_msg(self, relay_url: str, msg: RelayMessage) -> None:
        if msg.as_enum().is_end_of_stored_events():
            self._subscription._relay_eose(str(relay_url))


class NostrSdkSubscription:
    """[SubscriptionHandle][nostrapps.core.pool.SubscriptionHandle] over a dedicated client.

    End-of-stored-events fires once every relay has sent ``EOSE``, or
    *eose_timeout* seconds after ``start()`` for the relays that answered.
    """

    def __init__(
        self,
        event_filter: EventFilter,
        relays: Sequence[str],
        *,
        close_on_eose: bool = False,
        proxy_url: str | None = None,
        eose_timeout: float = 10.0,
    ) -> None:
        self._filter = event_filter
        self._relays = list(dict.fromkeys(relays))
        self._close_on_eose = close_on_eose
        self._proxy_url = proxy_url
        self._eose_timeout = eose_timeout
        self._event_callbacks: list[Callable[[Event], None]] = []
        self._eose_callbacks: list[Callable[[], None]] = []
        self._eose_relays: set[str] = set()
        self._eose_fired = False
        self._stopped = False
        self._client: Client | None = None
        self._task: asyncio.Task[None] | None = None
        self._eose_timer: asyncio.TimerHandle | None = None

    def on_event(self, callback: Callable[[Event], None]) -> None:
        self._event_callbacks.append(callback)

    def on_eose(self, callback: Callable[[], None]) -> None:
        self._eose_callbacks.append(callback)

    async def start(self) -> None:
        proxy = None
        if any(Relay(url).is_overlay for url in self._relays):
            proxy = self._proxy_url
        client = await create_client(proxy)
        for url in self._relays:
            await client.add_relay(RelayUrl.parse(url))
        await client.connect()
        await client.subscribe(self._filter.to_nostr(), None)
        self._client = client
        self._task = asyncio.create_task(client.handle_notifications(_NotificationHandler(self)))
        self._eose_timer = asyncio.get_running_loop().call_later(
            self._eose_timeout, self._eose_expired
        )
        logger.debug("subscription_started relays=%s filter=%s", len(self._relays), self._filter)

    async def stop(self) -> None:
        if self._stopped:
            return
        self._stopped = True
        if self._eose_timer is not None:
            self._eose_timer.cancel()
        if self._task is not None:
            self._task.cancel()
            with contextlib.suppress(asyncio.CancelledError, Exception):
                await self._task
        if self._client is not None:
            with contextlib.suppress(Exception):
                await self._client.unsubscribe_all()
            with contextlib.suppress(Exception):
                await self._client.shutdown()
        logger.debug("subscription_stopped filter=%s", self._filter)

    def _emit_event(self, event: Event) -> None:
        if self._stopped:
            return
        for callback in self._event_callbacks:
            callback(event)

    def _relay_eose(self, relay_url: str) -> None:
        if self._stopped or self._eose_fired:
            return
        self._eose_relays.add(relay_url.rstrip("/"))
        if len(self._eose_relays) < len(self._relays):
            return
        self._fire_eose()

    def _eose_expired(self) -> None:
        if self._stopped or self._eose_fired:
            return
        logger.warning(
            "eose_timeout answered=%s relays=%s filter=%s",
            len(self._eose_relays),
            len(self._relays),
            self._filter,
        )
        self._fire_eose()

    def _fire_eose(self) -> None:
        self._eose_fired = True
        if self._eose_timer is not None:
            self._eose_timer.cancel()
        for callback in self._eose_callbacks:
            callback()
        if self._close_on_eose:
            asyncio.get_running_loop().create_task(self.stop())


# ---------------------------------------------------------------------------
# Pool
# ---------------------------------------------------------------------------


class NostrSdkRelayPool:
    """[RelayPool][nostrapps.core.pool.RelayPool] backed by one client per relay.

    Args:
        timeout: Per-query timeout in seconds.
        proxy_url: SOCKS5 proxy for overlay relays; overlay relays are
            skipped when unset.
    """

    def __init__(self, *, timeout: float = 10.0, proxy_url: str | None = None) -> None:  # noqa: ASYNC109
        self._timeout = timeout
        self._proxy_url = proxy_url
        self._clients: dict[str, Client] = {}
        self._locks: dict[str, asyncio.Lock] = {}

    async def _client_for(self, url: str) -> Client:
        async with self._locks.setdefault(url, asyncio.Lock()):
            client = self._clients.get(url)
            if client is not None:
                return client
            proxy = None
            if Relay(url).is_overlay:
                if self._proxy_url is None:
                    raise ConnectivityError(f"proxy_url required for overlay relay: {url}")
                proxy = self._proxy_url
            client = await create_client(proxy)
            await client.add_relay(RelayUrl.parse(url))
            await client.connect()
            self._clients[url] = client
            return client

    async def _query_one(self, url: str, event_filter: EventFilter) -> list[Event]:
        client = await self._client_for(url)
        events = await client.fetch_events(
            event_filter.to_nostr(), timedelta(seconds=self._timeout)
        )
        return _verified(events.to_vec())

    async def query(self, event_filter: EventFilter, relays: Sequence[str]) -> list[Event]:
        """Query every relay concurrently and concatenate what they return.

        Raises:
            ConnectivityError: If every relay failed.
        """
        urls = list(dict.fromkeys(relays))
        results = await asyncio.gather(
            *(self._query_one(url, event_filter) for url in urls), return_exceptions=True
        )

        events: list[Event] = []
        failures = 0
        for url, result in zip(urls, results, strict=True):
            if isinstance(result, asyncio.CancelledError):
                raise result
            if isinstance(result, BaseException):
                failures += 1
                logger.warning("relay_query_failed relay=%s error=%s", url, result)
                continue
            events.extend(result)

        if urls and failures == len(urls):
            raise ConnectivityError(f"all {failures} relays failed")
        return events

    async def top(self, event_filter: EventFilter, relays: Sequence[str]) -> list[str]:
        """Ids of the ranked result set, in the order the endpoint sent them."""
        events = await self.query(event_filter, relays)
        return list(dict.fromkeys(event.id for event in events))

    def subscribe(
        self,
        event_filter: EventFilter,
        relays: Sequence[str],
        *,
        close_on_eose: bool = False,
    ) -> NostrSdkSubscription:
        return NostrSdkSubscription(
            event_filter,
            relays,
            close_on_eose=close_on_eose,
            proxy_url=self._proxy_url,
            eose_timeout=self._timeout,
        )

    async def publish(self, event: Event, relays: Sequence[str], timeout: float) -> None:  # noqa: ASYNC109
        """Send *event* to every relay.

        Raises:
            PublishingError: If no relay accepted the event in time.
        """
        nostr_event = event.to_nostr()

        async def send(url: str) -> bool:
            client = await self._client_for(url)
            output = await client.send_event(nostr_event)
            return bool(output.success)

        urls = list(dict.fromkeys(relays))
        try:
            async with asyncio.timeout(timeout):
                results = await asyncio.gather(*(send(url) for url in urls), return_exceptions=True)
        except TimeoutError:
            raise PublishingError(f"publish timed out after {timeout}s") from None

        accepted = 0
        for url, result in zip(urls, results, strict=True):
            if isinstance(result, asyncio.CancelledError):
                raise result
            if result is True:
                accepted += 1
            else:
                logger.warning("publish_failed relay=%s error=%s", url, result)
        if not accepted:
            raise PublishingError(f"no relay accepted event {event.id}")
        logger.debug("event_published id=%s accepted=%s", event.id, accepted)

    async def close(self) -> None:
        clients, self._clients = self._clients, {}
        for client in clients.values():
            with contextlib.suppress(Exception):
                await client.shutdown()
