"""
Structured address: the decoded form of a human-supplied identifier.

An [Address][nostrapps.models.address.Address] carries whatever a NIP-19
entity (or a bare hex id) tells us about the record it points to. It knows
how to derive the relay filter and the cache key used to look the record up.

See Also:
    [parse_address()][nostrapps.nips.nip19.parse_address]: Builds addresses
        from strings.
    [Fetcher.resolve_by_address()][nostrapps.services.fetcher.Fetcher.resolve_by_address]:
        Resolves an address into an event.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import TYPE_CHECKING

from .constants import EventKind, is_addressable_kind
from .filter import EventFilter


if TYPE_CHECKING:
    from .event import Event


@dataclass(frozen=True, slots=True)
class Address:
    """Decoded identifier pointing at a Nostr record.

    Attributes:
        kind: Event kind, when the identifier carries it.
        pubkey: Author public key (hex).
        event_id: Event id (hex).
        identifier: Discriminator (``d`` tag) of an addressable record.
        relays: Relay hints carried by the identifier.
        hex: True when built from an ambiguous 64-character hex string that
            may be an event id or a public key.
    """

    kind: int | None = None
    pubkey: str | None = None
    event_id: str | None = None
    identifier: str | None = None
    relays: tuple[str, ...] = ()
    hex: bool = False

    def __post_init__(self) -> None:
        object.__setattr__(self, "relays", tuple(self.relays))

    def cache_key(self) -> str | None:
        """Key used for the addressable-record cache, or ``None``."""
        if self.event_id:
            return self.event_id
        if self.pubkey and self.kind is not None:
            return f"{self.kind}:{self.pubkey}:{self.identifier or ''}"
        return None

    def to_filter(self) -> EventFilter | None:
        """Derive the relay filter that fetches this record.

        An event id wins; otherwise author plus kind (plus ``#d`` when a
        discriminator is present). Returns ``None`` when nothing usable is
        known.
        """
        if self.event_id:
            return EventFilter(ids=[self.event_id])
        if self.pubkey and self.kind is not None:
            if self.identifier is not None:
                return EventFilter(
                    kinds=[self.kind], authors=[self.pubkey], tags={"d": [self.identifier]}
                )
            return EventFilter(kinds=[self.kind], authors=[self.pubkey])
        return None

    def resolved(self, event: Event) -> Address:
        """Return a copy completed with what *event* reveals."""
        identifier = self.identifier
        if is_addressable_kind(event.kind):
            identifier = event.identifier
        event_id = self.event_id
        if event_id is None or self.hex:
            event_id = event.id
        return replace(
            self,
            kind=event.kind,
            pubkey=event.pubkey,
            event_id=event_id,
            identifier=identifier,
            hex=False,
        )

    @property
    def is_profile(self) -> bool:
        return self.kind == EventKind.METADATA
