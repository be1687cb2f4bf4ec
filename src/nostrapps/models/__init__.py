"""Pure frozen dataclasses with zero network I/O for Nostr records.

The models layer is the foundation of the package. It depends on the
standard library, ``rfc3986`` for relay URL validation, and ``nostr_sdk``
only for the edge conversions of [Event][nostrapps.models.event.Event] and
[EventFilter][nostrapps.models.filter.EventFilter].

Attributes:
    Event: Immutable event record with tag helpers and logical addressing.
    EventFilter: NIP-01 relay filter.
    Address: Decoded identifier with filter and cache-key derivation.
    Relay: Validated relay URL with network type detection.
    Profile, Note, LongNote, ZapReceipt, LiveEvent, Community, ContactList,
        BookmarkList: Augmented record views.
    AppHandler, AppInfo, AppRegistry, HandlerUrl: NIP-89 handler descriptors.
    EventKind, IdentifierType, NetworkType, SubscriptionState: Enumerations.

See Also:
    [nostrapps.nips][]: Protocol codecs producing these models.
    [nostrapps.services][]: Engine consuming these models.
"""

from .address import Address
from .app import AppHandler, AppInfo, AppRegistry, HandlerUrl
from .constants import (
    EVENT_KIND_MAX,
    LIVE_EVENT_TTL,
    EventKind,
    IdentifierType,
    NetworkType,
    SubscriptionState,
    has_logical_address,
    is_addressable_kind,
    is_replaceable_kind,
)
from .event import Event
from .filter import EventFilter
from .records import (
    BookmarkList,
    Community,
    ContactList,
    LiveEvent,
    LongNote,
    Note,
    Profile,
    ZapReceipt,
    parse_content_json,
)
from .relay import Relay, normalize_relay_url


__all__ = [
    "EVENT_KIND_MAX",
    "LIVE_EVENT_TTL",
    "Address",
    "AppHandler",
    "AppInfo",
    "AppRegistry",
    "BookmarkList",
    "Community",
    "ContactList",
    "Event",
    "EventFilter",
    "EventKind",
    "HandlerUrl",
    "IdentifierType",
    "LiveEvent",
    "LongNote",
    "NetworkType",
    "Note",
    "Profile",
    "Relay",
    "SubscriptionState",
    "ZapReceipt",
    "has_logical_address",
    "is_addressable_kind",
    "is_replaceable_kind",
    "normalize_relay_url",
    "parse_content_json",
]
