"""Shared constants for the models layer.

Defines enumerations, event kind numbers, and kind-range predicates used
across the models, codecs, and services. Placing them here avoids circular
dependencies between the models and nips layers.

See Also:
    [Event][nostrapps.models.event.Event]: Uses the predicates below to
        compute its logical address.
"""

from __future__ import annotations

from enum import IntEnum, StrEnum


EVENT_KIND_MAX = 65_535

# Upper bound accepted for ``k`` tags on handler announcements
HANDLER_KIND_MAX = 10_000_000

# Live events not updated for this many seconds are treated as ended
LIVE_EVENT_TTL = 3600

# Placeholder replaced by the encoded identifier in handler URL templates
BECH32_PLACEHOLDER = "<bech32>"


class NetworkType(StrEnum):
    """Network type enum for relay classification.

    Attributes:
        CLEARNET: Public internet relay using ``wss://`` (TLS required).
        TOR: Tor hidden service identified by a ``.onion`` hostname.
        I2P: I2P eepsite identified by a ``.i2p`` hostname.
        LOKI: Lokinet service identified by a ``.loki`` hostname.
        LOCAL: Private or reserved IP address (rejected during validation).
        UNKNOWN: Hostname that could not be classified (rejected during validation).
    """

    CLEARNET = "clearnet"
    TOR = "tor"
    I2P = "i2p"
    LOKI = "loki"
    LOCAL = "local"
    UNKNOWN = "unknown"


class EventKind(IntEnum):
    """Well-known Nostr event kinds handled by this package.

    Attributes:
        METADATA: Kind 0, user profile metadata (NIP-01).
        TEXT_NOTE: Kind 1, short text note (NIP-01).
        CONTACTS: Kind 3, follow list (NIP-02).
        COMMUNITY_APPROVAL: Kind 4550, moderator approval of a post (NIP-72).
        ZAP_RECEIPT: Kind 9735, lightning zap receipt (NIP-57).
        HIGHLIGHT: Kind 9802, highlighted excerpt (NIP-84).
        NWC_REQUEST: Kind 23194, wallet connect request (NIP-47).
        NWC_RESPONSE: Kind 23195, wallet connect response (NIP-47).
        BOOKMARKS: Kind 30001, categorized bookmark list (NIP-51).
        LONG_FORM: Kind 30023, long-form article (NIP-23).
        LIVE_EVENT: Kind 30311, live activity (NIP-53).
        APP_HANDLER: Kind 31990, handler application announcement (NIP-89).
        COMMUNITY: Kind 34550, community definition (NIP-72).
    """

    METADATA = 0
    TEXT_NOTE = 1
    CONTACTS = 3
    COMMUNITY_APPROVAL = 4550
    ZAP_RECEIPT = 9735
    HIGHLIGHT = 9802
    NWC_REQUEST = 23194
    NWC_RESPONSE = 23195
    BOOKMARKS = 30001
    LONG_FORM = 30023
    LIVE_EVENT = 30311
    APP_HANDLER = 31990
    COMMUNITY = 34550


class IdentifierType(StrEnum):
    """NIP-19 identifier prefixes a handler URL template may declare.

    ``DEFAULT`` (the empty string) marks a template that accepts any
    identifier type and serves as the fallback.
    """

    DEFAULT = ""
    NPUB = "npub"
    NOTE = "note"
    NEVENT = "nevent"
    NPROFILE = "nprofile"
    NADDR = "naddr"


class SubscriptionState(StrEnum):
    """Lifecycle of a live subscription channel.

    ``IDLE`` until the first restart, ``BACKLOG`` while stored events are
    replayed, ``LIVE`` after end-of-stored-events, ``STOPPED`` once torn down.
    """

    IDLE = "idle"
    BACKLOG = "backlog"
    LIVE = "live"
    STOPPED = "stopped"


def is_replaceable_kind(kind: int) -> bool:
    """Return True for kinds where only the newest event per author is kept."""
    return kind in (EventKind.METADATA, EventKind.CONTACTS) or 10_000 <= kind < 20_000


def is_addressable_kind(kind: int) -> bool:
    """Return True for kinds whose identity includes the ``d`` tag."""
    return 30_000 <= kind < 40_000


def has_logical_address(kind: int) -> bool:
    """Return True when events of *kind* are identified by ``kind:pubkey:d``."""
    return is_replaceable_kind(kind) or is_addressable_kind(kind)
