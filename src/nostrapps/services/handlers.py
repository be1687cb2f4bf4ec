"""Handler application lookup for a target event.

[HandlerResolver][nostrapps.services.handlers.HandlerResolver] answers "which
applications can open this?" for an identifier or address:

1. Decode the target (bech32 or 64-char hex).
2. Learn its kind: from the identifier itself, from the supplied event, or
   by resolving the address when the identifier carries no kind.
3. Look up the registry for that kind in the kind-apps cache, fetching the
   kind-31990 announcements on a miss. Only non-empty registries are cached.
4. Bind every handler's deep link to the resolved address.

See Also:
    [nostrapps.nips.nip89][]: Announcement parsing and deep link selection.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from nostrapps.core.exceptions import UnresolvedAddressError
from nostrapps.core.logger import Logger
from nostrapps.models.address import Address
from nostrapps.nips import nip19, nip89


if TYPE_CHECKING:
    from nostrapps.models.app import AppRegistry
    from nostrapps.models.event import Event

    from .fetcher import Fetcher


class HandlerResolver:
    """Resolves handler applications and deep links for target events."""

    def __init__(self, fetcher: Fetcher) -> None:
        self._fetcher = fetcher
        self._logger = Logger("handlers")

    async def apps_for(self, target: str | Address, event: Event | None = None) -> AppRegistry:
        """Return the applications able to open *target*.

        Args:
            target: Bech32 identifier, hex id, or decoded address.
            event: The target event, when the caller already holds it.

        Raises:
            MalformedIdentifierError: If *target* does not decode.
            UnresolvedAddressError: If the target's kind cannot be learned.
        """
        address = target if isinstance(target, Address) else nip19.parse_address(target)

        if event is None and address.kind is None:
            event = await self._fetcher.resolve_by_address(address)
            if event is None:
                raise UnresolvedAddressError("Failed to fetch target event")
        if event is not None:
            address = address.resolved(event)
        if address.kind is None:
            raise UnresolvedAddressError("Failed to fetch target event")

        kind_apps = self._fetcher.caches.kind_apps
        registry = kind_apps.get(address.kind)
        if registry is None:
            registry = await self._fetcher.fetch_app_handlers([address.kind])
            if registry:
                kind_apps.put(address.kind, registry)
            self._logger.debug("apps_fetched", kind=address.kind, apps=len(registry))

        links = {h.naddr: nip89.handler_url(h, address) for h in registry.handlers}
        return registry.with_links(address, links)
