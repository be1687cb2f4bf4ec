"""
NIP-89 handler announcements.

Turns kind-31990 events into [AppHandler][nostrapps.models.app.AppHandler]
records, groups them into an [AppRegistry][nostrapps.models.app.AppRegistry],
and picks the deep link a handler offers for a given address.

Handler tags:

```text
["d", "<identifier>"]
["k", "<kind>"]                     one per handled kind
["web", "<url template>", "<type>"] type in {npub, note, nevent, nprofile, naddr}
["web", "<url template>"]           default template, any identifier type
```

Templates contain ``<bech32>``, replaced with the encoded identifier.

See Also:
    [NIP-89](https://github.com/nostr-protocol/nips/blob/master/89.md):
        Recommended application handlers.
    [HandlerResolver][nostrapps.services.handlers.HandlerResolver]:
        Fetches announcements and caches registries by kind.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from nostrapps.models.app import AppHandler, AppRegistry, HandlerUrl
from nostrapps.models.constants import (
    BECH32_PLACEHOLDER,
    HANDLER_KIND_MAX,
    EventKind,
    IdentifierType,
    is_addressable_kind,
)
from nostrapps.models.records import parse_content_json

from . import nip19


if TYPE_CHECKING:
    from collections.abc import Collection, Iterable, Mapping

    from nostrapps.models.address import Address
    from nostrapps.models.event import Event
    from nostrapps.models.records import Profile


logger = logging.getLogger(__name__)


_IDENTIFIER_TYPES = frozenset(t.value for t in IdentifierType)


def parse_handler_kinds(event: Event) -> list[int]:
    """Return the unique kinds declared by ``k`` tags, in tag order."""
    kinds: list[int] = []
    for tag in event.get_tags("k"):
        if len(tag) < 2:
            continue
        try:
            kind = int(tag[1])
        except ValueError:
            continue
        if 0 <= kind <= HANDLER_KIND_MAX and kind not in kinds:
            kinds.append(kind)
    return kinds


def parse_handler_urls(event: Event, platforms: Iterable[str]) -> list[HandlerUrl]:
    """Return the URL templates declared for the recognized *platforms*."""
    urls: list[HandlerUrl] = []
    for platform in platforms:
        for tag in event.get_tags(platform):
            if len(tag) < 2:
                continue
            url_type = tag[2] if len(tag) > 2 else ""
            if url_type not in _IDENTIFIER_TYPES:
                continue
            urls.append(HandlerUrl(url=tag[1], type=IdentifierType(url_type), platform=platform))
    return urls


def parse_handler(
    event: Event,
    profiles: Mapping[str, Profile],
    filter_kinds: Collection[int] | None = None,
    platforms: Iterable[str] = ("web",),
) -> AppHandler | None:
    """Build a handler from a kind-31990 announcement.

    Args:
        event: The announcement.
        profiles: Author profiles by pubkey, used when the announcement has
            no content of its own.
        filter_kinds: Keep only these kinds; ``None`` keeps all.
        platforms: Platform tag names this client can open.

    Returns:
        The handler, or ``None`` when no handled kind survives filtering.
    """
    kinds = parse_handler_kinds(event)
    if filter_kinds is not None:
        kinds = [k for k in kinds if k in filter_kinds]
    if not kinds:
        return None

    author = profiles.get(event.pubkey)
    inherited = not event.content
    profile: Mapping[str, Any]
    if inherited:
        profile = author.metadata if author is not None else {}
    else:
        profile = parse_content_json(event)

    urls = parse_handler_urls(event, platforms)
    handler_platforms = list(dict.fromkeys(url.platform for url in urls))

    app_id = event.identifier
    if not inherited:
        name = profile.get("name") or profile.get("display_name")
        app_id = name if isinstance(name, str) and name else app_id

    return AppHandler(
        event=event,
        naddr=nip19.encode_naddr(event.kind, event.pubkey, event.identifier),
        profile=profile,
        inherited_profile=inherited,
        kinds=tuple(kinds),
        urls=tuple(urls),
        platforms=tuple(handler_platforms),
        app_id=app_id,
        author=author,
    )


def build_registry(
    events: Iterable[Event],
    profiles: Mapping[str, Profile],
    filter_kinds: Collection[int] | None = None,
    platforms: Iterable[str] = ("web",),
) -> AppRegistry:
    """Group handler announcements by app id, preserving input order."""
    platforms = tuple(platforms)
    registry = AppRegistry()
    for event in events:
        if event.kind != EventKind.APP_HANDLER:
            continue
        handler = parse_handler(event, profiles, filter_kinds, platforms)
        if handler is None:
            logger.debug("handler_skipped id=%s reason=no_kinds", event.id)
            continue
        registry.add(handler)
    return registry


def _fill(handler: AppHandler, identifier: str) -> str | None:
    """Fill the best template for *identifier*: typed first, default second."""
    url = handler.find_url(nip19.identifier_type(identifier)) or handler.find_url(
        IdentifierType.DEFAULT
    )
    if url is None:
        return None
    return url.url.replace(BECH32_PLACEHOLDER, identifier)


def _first_url(handler: AppHandler, identifiers: Iterable[str]) -> str | None:
    for identifier in identifiers:
        url = _fill(handler, identifier)
        if url:
            return url
    return None


def handler_url(handler: AppHandler, address: Address) -> str | None:
    """Return the deep link *handler* offers for *address*.

    Profiles try npub, then nprofile, then the event-id forms; addressable
    kinds try naddr, then the event-id forms; every other kind (including
    contact lists and the replaceable range) uses nevent, then note.
    """
    relays = address.relays
    by_id: list[str] = []
    if address.event_id:
        by_id = [
            nip19.encode_nevent(address.event_id, relays, address.pubkey),
            nip19.encode_note(address.event_id),
        ]

    if address.kind == EventKind.METADATA:
        by_key: list[str] = []
        if address.pubkey:
            by_key = [
                nip19.encode_npub(address.pubkey),
                nip19.encode_nprofile(address.pubkey, relays),
            ]
        return _first_url(handler, [*by_key, *by_id])

    if address.kind is not None and is_addressable_kind(address.kind):
        by_address: list[str] = []
        if address.pubkey:
            by_address = [
                nip19.encode_naddr(address.kind, address.pubkey, address.identifier or "", relays)
            ]
        return _first_url(handler, [*by_address, *by_id])

    return _first_url(handler, by_id)
