"""
Immutable Nostr event record with tag helpers and logical addressing.

Events arrive from relays as ``nostr_sdk.Event`` objects and are copied into
a frozen dataclass of plain Python values, so caches, merge logic, and tests
never depend on the FFI types. [from_nostr()][nostrapps.models.event.Event.from_nostr]
and [to_nostr()][nostrapps.models.event.Event.to_nostr] convert at the edges;
[from_dict()][nostrapps.models.event.Event.from_dict] and
[to_dict()][nostrapps.models.event.Event.to_dict] use the NIP-01 JSON shape.

See Also:
    [nostrapps.core.cache][]: Stores events by id and by
        [dedup_key][nostrapps.models.event.Event.dedup_key].
    [nostrapps.services.fetcher][]: Merges redundant copies of the same
        logical record returned by different relays.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any

from nostr_sdk import Event as NostrEvent

from ._validation import freeze_tags, validate_hex64, validate_str_no_null, validate_timestamp
from .constants import EVENT_KIND_MAX, has_logical_address, is_addressable_kind


@dataclass(frozen=True, slots=True)
class Event:
    """Immutable Nostr event.

    Attributes:
        id: Event id, 64 lowercase hex characters.
        pubkey: Author public key, 64 lowercase hex characters.
        created_at: Unix timestamp in seconds.
        kind: Event kind (0 to 65535).
        tags: Tags as a tuple of string tuples.
        content: Raw content string.
        sig: Schnorr signature hex (empty for unsigned fixtures).

    Raises:
        TypeError: If a field has the wrong type.
        ValueError: If ids are not hex, the kind is out of range, or strings
            contain null bytes.

    Examples:
        ```python
        event = Event.from_dict(raw)
        event.get_tag_value("d")    # 'tech'
        event.dedup_key              # '34550:<pubkey>:tech'
        ```
    """

    id: str
    pubkey: str
    created_at: int
    kind: int
    tags: tuple[tuple[str, ...], ...] = ()
    content: str = ""
    sig: str = ""

    def __post_init__(self) -> None:
        validate_hex64(self.id, "id")
        validate_hex64(self.pubkey, "pubkey")
        validate_timestamp(self.created_at, "created_at")
        validate_timestamp(self.kind, "kind")
        if self.kind > EVENT_KIND_MAX:
            raise ValueError(f"kind must be <= {EVENT_KIND_MAX}, got {self.kind}")
        validate_str_no_null(self.content, "content")
        validate_str_no_null(self.sig, "sig")
        object.__setattr__(self, "tags", freeze_tags(self.tags, "tags"))

    # -------------------------------------------------------------------------
    # Tags
    # -------------------------------------------------------------------------

    def get_tags(self, name: str) -> list[tuple[str, ...]]:
        """Return every tag whose first element equals *name*, in order."""
        return [tag for tag in self.tags if tag and tag[0] == name]

    def get_tag(self, name: str) -> tuple[str, ...] | None:
        """Return the first tag named *name*, or ``None``."""
        for tag in self.tags:
            if tag and tag[0] == name:
                return tag
        return None

    def get_tag_value(self, name: str, index: int = 0, default: str = "") -> str:
        """Return element ``index + 1`` of the first tag named *name*.

        Args:
            name: Tag name (first element).
            index: Zero-based position among the tag values.
            default: Returned when the tag or the position is missing.
        """
        tag = self.get_tag(name)
        position = index + 1
        if tag is None or position >= len(tag):
            return default
        return tag[position]

    @property
    def identifier(self) -> str:
        """The ``d`` tag value (empty when absent)."""
        return self.get_tag_value("d")

    @property
    def coordinate(self) -> str:
        """The ``a``-tag coordinate ``kind:pubkey:d`` of this event.

        The ``d`` part is only filled for addressable kinds.
        """
        d = self.identifier if is_addressable_kind(self.kind) else ""
        return f"{self.kind}:{self.pubkey}:{d}"

    @property
    def dedup_key(self) -> str:
        """Logical address used to merge redundant copies.

        Replaceable and addressable kinds are keyed by their coordinate so
        newer versions supersede older ones; every other kind by its id.
        """
        if has_logical_address(self.kind):
            return self.coordinate
        return self.id

    # -------------------------------------------------------------------------
    # Conversion
    # -------------------------------------------------------------------------

    @classmethod
    def from_nostr(cls, event: NostrEvent) -> Event:
        """Copy a ``nostr_sdk.Event`` into a plain record."""
        return cls(
            id=event.id().to_hex(),
            pubkey=event.author().to_hex(),
            created_at=event.created_at().as_secs(),
            kind=event.kind().as_u16(),
            tags=[tuple(tag.as_vec()) for tag in event.tags().to_vec()],
            content=event.content(),
            sig=event.signature(),
        )

    def to_nostr(self) -> NostrEvent:
        """Rebuild a ``nostr_sdk.Event`` (requires a valid signature)."""
        return NostrEvent.from_json(json.dumps(self.to_dict()))

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Event:
        """Build an event from its NIP-01 JSON object."""
        return cls(
            id=data["id"],
            pubkey=data["pubkey"],
            created_at=data["created_at"],
            kind=data["kind"],
            tags=[tuple(tag) for tag in data.get("tags", [])],
            content=data.get("content", ""),
            sig=data.get("sig", ""),
        )

    def to_dict(self) -> dict[str, Any]:
        """Return the NIP-01 JSON object for this event."""
        return {
            "id": self.id,
            "pubkey": self.pubkey,
            "created_at": self.created_at,
            "kind": self.kind,
            "tags": [list(tag) for tag in self.tags],
            "content": self.content,
            "sig": self.sig,
        }
