"""Explicit client context wiring the engine together.

A [NostrAppsClient][nostrapps.client.NostrAppsClient] owns one relay pool,
one [CacheLayer][nostrapps.core.cache.CacheLayer], and the services built
around them. UI collaborators hold a client instead of reaching for
module-level state; two clients never share caches or subscriptions.

Examples:
    ```python
    async with NostrAppsClient.from_yaml("config/client.yaml") as client:
        event = await client.resolve("naddr1...")
        registry = await client.apps_for("naddr1...", event)
        for handler in registry.handlers:
            print(handler.name, handler.event_url)
    ```
"""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING, Any

from nostrapps.core.cache import CacheLayer
from nostrapps.core.config import ClientConfig
from nostrapps.core.logger import Logger
from nostrapps.core.yaml import load_yaml
from nostrapps.nips import nip19
from nostrapps.services.fetcher import Fetcher
from nostrapps.services.handlers import HandlerResolver
from nostrapps.services.subscriptions import Subscriptions
from nostrapps.services.wallet import WalletService
from nostrapps.utils.protocol import NostrSdkRelayPool


if TYPE_CHECKING:
    from collections.abc import Callable, Iterable, Sequence
    from types import TracebackType

    from nostrapps.core.pool import RelayPool
    from nostrapps.models.address import Address
    from nostrapps.models.app import AppRegistry
    from nostrapps.models.event import Event
    from nostrapps.models.records import (
        BookmarkList,
        Community,
        ContactList,
        LiveEvent,
        LongNote,
        Note,
        Profile,
        ZapReceipt,
    )
    from nostrapps.nips.nip47 import WalletInfo
    from nostrapps.services.subscriptions import Subscription
    from nostrapps.services.wallet import PaymentResult
    from nostrapps.utils.keys import Signer


class NostrAppsClient:
    """Entry point exposing resolution, handlers, feeds, subscriptions, payments.

    Args:
        pool: Relay transport.
        config: Client configuration; defaults apply when omitted.
        caches: Session caches; a fresh layer when omitted.

    Note:
        Use as an async context manager: exiting stops every subscription
        and closes the pool.
    """

    def __init__(
        self,
        pool: RelayPool,
        config: ClientConfig | None = None,
        caches: CacheLayer | None = None,
    ) -> None:
        self._config = config or ClientConfig()
        self._pool = pool
        self._fetcher = Fetcher(pool, self._config, caches)
        self._handlers = HandlerResolver(self._fetcher)
        self._subscriptions = Subscriptions(self._fetcher)
        self._wallet = WalletService(pool, self._config)
        self._logger = Logger("client")

    # -------------------------------------------------------------------------
    # Factory Methods
    # -------------------------------------------------------------------------

    @classmethod
    def from_dict(cls, data: dict[str, Any], pool: RelayPool | None = None) -> NostrAppsClient:
        """Build a client from a configuration mapping.

        Without *pool*, a [NostrSdkRelayPool][nostrapps.utils.protocol.NostrSdkRelayPool]
        is created with the configured timeout and proxy.
        """
        config = ClientConfig.from_dict(data)
        if pool is None:
            pool = NostrSdkRelayPool(timeout=config.fetch_timeout, proxy_url=config.proxy_url)
        return cls(pool, config)

    @classmethod
    def from_yaml(cls, config_path: str | Path, pool: RelayPool | None = None) -> NostrAppsClient:
        return cls.from_dict(load_yaml(Path(config_path)), pool)

    # -------------------------------------------------------------------------
    # Context Manager
    # -------------------------------------------------------------------------

    async def __aenter__(self) -> NostrAppsClient:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        await self.close()

    async def close(self) -> None:
        """Stop every subscription and close the relay pool."""
        await self._subscriptions.stop()
        await self._pool.close()
        self._logger.debug("client_closed")

    # -------------------------------------------------------------------------
    # Properties
    # -------------------------------------------------------------------------

    @property
    def config(self) -> ClientConfig:
        return self._config

    @property
    def caches(self) -> CacheLayer:
        return self._fetcher.caches

    @property
    def fetcher(self) -> Fetcher:
        return self._fetcher

    @property
    def subscriptions(self) -> Subscriptions:
        return self._subscriptions

    # -------------------------------------------------------------------------
    # Identifiers
    # -------------------------------------------------------------------------

    @staticmethod
    def find_identifier(text: str, *, allow_hex: bool = False) -> str:
        return nip19.find_identifier(text, allow_hex=allow_hex)

    @staticmethod
    def parse_address(value: str) -> Address:
        return nip19.parse_address(value)

    def encode_event_address(self, event: Event, relays: Iterable[str] | None = None) -> str:
        """Bech32 address of *event*, with the configured hint relays by default."""
        return nip19.encode_event_address(
            event, self._config.hint_relays if relays is None else relays
        )

    # -------------------------------------------------------------------------
    # Resolution
    # -------------------------------------------------------------------------

    async def resolve(self, identifier: str) -> Event | None:
        return await self._fetcher.resolve(identifier)

    async def resolve_by_address(self, address: Address) -> Event | None:
        return await self._fetcher.resolve_by_address(address)

    async def resolve_by_ids(
        self, ids: Iterable[str], kinds: Iterable[int] | None = None
    ) -> list[Event]:
        return await self._fetcher.resolve_by_ids(ids, kinds)

    async def fetch_profiles(self, pubkeys: Iterable[str]) -> dict[str, Profile]:
        return await self._fetcher.fetch_profiles(pubkeys)

    async def apps_for(self, target: str | Address, event: Event | None = None) -> AppRegistry:
        return await self._handlers.apps_for(target, event)

    async def fetch_apps(self, limit: int | None = None) -> AppRegistry:
        return await self._fetcher.fetch_apps(limit)

    # -------------------------------------------------------------------------
    # Search
    # -------------------------------------------------------------------------

    async def search_profiles(self, query: str, limit: int | None = None) -> list[Profile]:
        return await self._fetcher.search_profiles(query, limit)

    async def search_notes(self, query: str, limit: int | None = None) -> list[Note]:
        return await self._fetcher.search_notes(query, limit)

    async def search_long_notes(self, query: str, limit: int | None = None) -> list[LongNote]:
        return await self._fetcher.search_long_notes(query, limit)

    async def search_live_events(self, query: str, limit: int | None = None) -> list[LiveEvent]:
        return await self._fetcher.search_live_events(query, limit)

    async def search_communities(self, query: str, limit: int | None = None) -> list[Community]:
        return await self._fetcher.search_communities(query, limit)

    # -------------------------------------------------------------------------
    # Followed feeds
    # -------------------------------------------------------------------------

    async def fetch_followed_long_notes(self, pubkeys: Sequence[str]) -> list[LongNote]:
        return await self._fetcher.fetch_followed_long_notes(pubkeys)

    async def fetch_followed_highlights(self, pubkeys: Sequence[str]) -> list[Note]:
        return await self._fetcher.fetch_followed_highlights(pubkeys)

    async def fetch_followed_zaps(
        self, pubkeys: Sequence[str], min_zap: int | None = None
    ) -> list[ZapReceipt]:
        return await self._fetcher.fetch_followed_zaps(pubkeys, min_zap)

    async def fetch_followed_communities(self, pubkeys: Sequence[str]) -> list[Community]:
        return await self._fetcher.fetch_followed_communities(pubkeys)

    async def fetch_followed_live_events(
        self, pubkeys: Sequence[str], limit: int | None = None
    ) -> list[LiveEvent]:
        return await self._fetcher.fetch_followed_live_events(pubkeys, limit)

    # -------------------------------------------------------------------------
    # Subscriptions
    # -------------------------------------------------------------------------

    async def subscribe_profiles(
        self, pubkeys: Iterable[str], callback: Callable[[Profile], Any] | None = None
    ) -> Subscription[Profile]:
        return await self._subscriptions.subscribe_profiles(pubkeys, callback)

    async def subscribe_contact_list(
        self, pubkey: str, callback: Callable[[ContactList], Any] | None = None
    ) -> Subscription[ContactList]:
        return await self._subscriptions.subscribe_contact_list(pubkey, callback)

    async def subscribe_bookmark_list(
        self, pubkey: str, callback: Callable[[BookmarkList], Any] | None = None
    ) -> Subscription[BookmarkList]:
        return await self._subscriptions.subscribe_bookmark_list(pubkey, callback)

    # -------------------------------------------------------------------------
    # Payments
    # -------------------------------------------------------------------------

    async def send_payment(
        self, wallet: WalletInfo, invoice: str, signer: Signer | None = None
    ) -> PaymentResult:
        return await self._wallet.send_payment(wallet, invoice, signer)
