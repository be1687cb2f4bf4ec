"""
NIP-19 bech32 identifiers.

Encodes and decodes the five shareable entity types
(``npub``, ``note``, ``nprofile``, ``nevent``, ``naddr``), maps them onto
[Address][nostrapps.models.address.Address], and scans free text for the
first embedded identifier.

TLV records used by the composite entities:

```text
type 0  special   nprofile: pubkey (32 bytes)
                  nevent:   event id (32 bytes)
                  naddr:    d-tag identifier (utf-8)
type 1  relay     relay URL hint (utf-8), repeatable
type 2  author    pubkey (32 bytes)
type 3  kind      unsigned 32-bit big-endian integer
```

Checksums and 8-to-5-bit regrouping come from the ``bech32`` package. The
90-character limit of BIP-173 addresses is not applied: TLV entities with a
few relay hints are routinely longer.

See Also:
    [NIP-19](https://github.com/nostr-protocol/nips/blob/master/19.md):
        Bech32-encoded entities.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from bech32 import CHARSET, bech32_encode, bech32_verify_checksum, convertbits

from nostrapps.core.exceptions import MalformedIdentifierError
from nostrapps.models._validation import is_hex64
from nostrapps.models.address import Address
from nostrapps.models.constants import EventKind, IdentifierType, is_addressable_kind


if TYPE_CHECKING:
    from collections.abc import Iterable

    from nostrapps.models.event import Event


logger = logging.getLogger(__name__)


TLV_SPECIAL = 0
TLV_RELAY = 1
TLV_AUTHOR = 2
TLV_KIND = 3

# Shape of a bech32 string: human-readable part, separator, data characters
_BECH32_CANDIDATE = re.compile(rf"[a-z]{{1,83}}1[{CHARSET}]{{6,}}")
_HEX64 = re.compile(r"\b[0-9a-fA-F]{64}\b")

_ENTITY_TYPES = frozenset(t.value for t in IdentifierType if t is not IdentifierType.DEFAULT)


@dataclass(frozen=True, slots=True)
class Nip19Entity:
    """Decoded NIP-19 entity.

    Attributes:
        type: Entity prefix (``npub``, ``note``, ``nprofile``, ``nevent``, ``naddr``).
        pubkey: Public key (npub, nprofile) or author (nevent, naddr).
        event_id: Event id (note, nevent).
        identifier: ``d`` tag value (naddr).
        kind: Event kind (naddr, optionally nevent).
        relays: Relay hints.
    """

    type: IdentifierType
    pubkey: str | None = None
    event_id: str | None = None
    identifier: str | None = None
    kind: int | None = None
    relays: tuple[str, ...] = field(default=())

    def to_address(self) -> Address:
        """Map the entity onto a structured address."""
        if self.type in (IdentifierType.NPUB, IdentifierType.NPROFILE):
            return Address(kind=EventKind.METADATA, pubkey=self.pubkey, relays=self.relays)
        if self.type == IdentifierType.NOTE:
            return Address(event_id=self.event_id)
        if self.type == IdentifierType.NEVENT:
            return Address(
                kind=self.kind, pubkey=self.pubkey, event_id=self.event_id, relays=self.relays
            )
        return Address(
            kind=self.kind, pubkey=self.pubkey, identifier=self.identifier, relays=self.relays
        )


# ---------------------------------------------------------------------------
# Bech32 framing
# ---------------------------------------------------------------------------


def _bech32_split(value: str) -> tuple[str, bytes]:
    """Validate the bech32 checksum and return ``(hrp, payload bytes)``."""
    if value.lower() != value and value.upper() != value:
        raise MalformedIdentifierError("mixed-case bech32 string")
    value = value.lower()
    pos = value.rfind("1")
    if pos < 1 or pos + 7 > len(value):
        raise MalformedIdentifierError("missing bech32 separator or checksum")
    hrp = value[:pos]
    try:
        data = [CHARSET.index(c) for c in value[pos + 1 :]]
    except ValueError:
        raise MalformedIdentifierError("invalid bech32 character") from None
    if not bech32_verify_checksum(hrp, data):
        raise MalformedIdentifierError("invalid bech32 checksum")
    payload = convertbits(data[:-6], 5, 8, False)
    if payload is None:
        raise MalformedIdentifierError("invalid bech32 padding")
    return hrp, bytes(payload)


def _bech32_join(hrp: str, payload: bytes) -> str:
    data = convertbits(payload, 8, 5, True)
    return bech32_encode(hrp, data)


# ---------------------------------------------------------------------------
# TLV
# ---------------------------------------------------------------------------


def _parse_tlv(payload: bytes) -> dict[int, list[bytes]]:
    records: dict[int, list[bytes]] = {}
    i = 0
    while i < len(payload):
        if i + 2 > len(payload):
            raise MalformedIdentifierError("truncated TLV header")
        t, length = payload[i], payload[i + 1]
        value = payload[i + 2 : i + 2 + length]
        if len(value) != length:
            raise MalformedIdentifierError("truncated TLV value")
        records.setdefault(t, []).append(value)
        i += 2 + length
    return records


def _encode_tlv(records: Iterable[tuple[int, bytes]]) -> bytes:
    out = bytearray()
    for t, value in records:
        if len(value) > 255:
            raise ValueError(f"TLV value too long ({len(value)} bytes)")
        out += bytes((t, len(value))) + value
    return bytes(out)


def _hex32(value: bytes, what: str) -> str:
    if len(value) != 32:
        raise MalformedIdentifierError(f"{what} must be 32 bytes, got {len(value)}")
    return value.hex()


def _key_bytes(value: str, what: str) -> bytes:
    if not is_hex64(value):
        raise ValueError(f"{what} must be 64 hex characters")
    return bytes.fromhex(value)


def _relay_records(relays: Iterable[str]) -> list[tuple[int, bytes]]:
    return [(TLV_RELAY, relay.encode()) for relay in relays]


# ---------------------------------------------------------------------------
# Decode
# ---------------------------------------------------------------------------


def decode(value: str) -> Nip19Entity:
    """Decode a NIP-19 identifier (optionally prefixed with ``nostr:``).

    Raises:
        MalformedIdentifierError: If *value* is not one of the five entities
            or its payload is invalid.
    """
    value = value.strip().removeprefix("nostr:")
    hrp, payload = _bech32_split(value)
    if hrp not in _ENTITY_TYPES:
        raise MalformedIdentifierError(f"unsupported identifier prefix: {hrp!r}")
    entity_type = IdentifierType(hrp)

    if entity_type == IdentifierType.NPUB:
        return Nip19Entity(entity_type, pubkey=_hex32(payload, "npub"))
    if entity_type == IdentifierType.NOTE:
        return Nip19Entity(entity_type, event_id=_hex32(payload, "note"))

    tlv = _parse_tlv(payload)
    special = tlv.get(TLV_SPECIAL)
    if not special:
        raise MalformedIdentifierError(f"{hrp} lacks its special TLV record")
    try:
        relays = tuple(v.decode() for v in tlv.get(TLV_RELAY, []))
    except UnicodeDecodeError:
        raise MalformedIdentifierError(f"{hrp} has a non-utf8 relay hint") from None
    author = _hex32(tlv[TLV_AUTHOR][0], "author") if TLV_AUTHOR in tlv else None
    kind = None
    if TLV_KIND in tlv:
        raw_kind = tlv[TLV_KIND][0]
        if len(raw_kind) != 4:
            raise MalformedIdentifierError("kind must be 4 bytes")
        kind = int.from_bytes(raw_kind, "big")

    if entity_type == IdentifierType.NPROFILE:
        return Nip19Entity(entity_type, pubkey=_hex32(special[0], "pubkey"), relays=relays)
    if entity_type == IdentifierType.NEVENT:
        return Nip19Entity(
            entity_type,
            event_id=_hex32(special[0], "event id"),
            pubkey=author,
            kind=kind,
            relays=relays,
        )

    if author is None or kind is None:
        raise MalformedIdentifierError("naddr requires author and kind")
    try:
        identifier = special[0].decode()
    except UnicodeDecodeError:
        raise MalformedIdentifierError("naddr identifier is not utf-8") from None
    return Nip19Entity(
        entity_type, pubkey=author, identifier=identifier, kind=kind, relays=relays
    )


def identifier_type(value: str) -> IdentifierType:
    """Return the entity type of a valid identifier.

    Raises:
        MalformedIdentifierError: If *value* does not decode.
    """
    return decode(value).type


# ---------------------------------------------------------------------------
# Encode
# ---------------------------------------------------------------------------


def encode_npub(pubkey: str) -> str:
    return _bech32_join(IdentifierType.NPUB, _key_bytes(pubkey, "pubkey"))


def encode_note(event_id: str) -> str:
    return _bech32_join(IdentifierType.NOTE, _key_bytes(event_id, "event id"))


def encode_nprofile(pubkey: str, relays: Iterable[str] = ()) -> str:
    records = [(TLV_SPECIAL, _key_bytes(pubkey, "pubkey")), *_relay_records(relays)]
    return _bech32_join(IdentifierType.NPROFILE, _encode_tlv(records))


def encode_nevent(
    event_id: str,
    relays: Iterable[str] = (),
    author: str | None = None,
    kind: int | None = None,
) -> str:
    records = [(TLV_SPECIAL, _key_bytes(event_id, "event id")), *_relay_records(relays)]
    if author:
        records.append((TLV_AUTHOR, _key_bytes(author, "author")))
    if kind is not None:
        records.append((TLV_KIND, kind.to_bytes(4, "big")))
    return _bech32_join(IdentifierType.NEVENT, _encode_tlv(records))


def encode_naddr(kind: int, pubkey: str, identifier: str, relays: Iterable[str] = ()) -> str:
    records = [
        (TLV_SPECIAL, identifier.encode()),
        *_relay_records(relays),
        (TLV_AUTHOR, _key_bytes(pubkey, "pubkey")),
        (TLV_KIND, kind.to_bytes(4, "big")),
    ]
    return _bech32_join(IdentifierType.NADDR, _encode_tlv(records))


def encode_event_address(event: Event, relays: Iterable[str] = ()) -> str:
    """Build the canonical shareable identifier of *event*.

    Profiles become ``npub``; replaceable and addressable kinds become
    ``naddr`` with relay hints; every other event becomes ``nevent``.
    """
    if event.kind == EventKind.METADATA:
        return encode_npub(event.pubkey)
    if 10_000 <= event.kind < 20_000 or is_addressable_kind(event.kind):
        return encode_naddr(event.kind, event.pubkey, event.identifier, relays)
    return encode_nevent(event.id, relays)


# ---------------------------------------------------------------------------
# Address parsing and text scanning
# ---------------------------------------------------------------------------


def parse_address(value: str) -> Address:
    """Decode *value* into a structured address.

    A string that is not a NIP-19 entity but is 64 hex characters yields an
    address in hex mode: the string may be an event id or a public key.

    Raises:
        MalformedIdentifierError: If *value* is neither.
    """
    try:
        return decode(value).to_address()
    except MalformedIdentifierError:
        candidate = value.strip()
        if is_hex64(candidate):
            return Address(event_id=candidate.lower(), hex=True)
        raise


def find_identifier(text: str, *, allow_hex: bool = False) -> str:
    """Return the first valid NIP-19 identifier embedded in *text*.

    Every bech32-shaped token is tried in order and the first one that
    decodes is returned whole. With ``allow_hex`` a bare 64-character hex
    token is accepted as a fallback. Returns ``""`` when nothing matches.
    """
    for match in _BECH32_CANDIDATE.finditer(text.lower()):
        candidate = match.group(0)
        try:
            decode(candidate)
        except MalformedIdentifierError:
            logger.debug("identifier_candidate_rejected candidate=%s", candidate)
            continue
        return candidate
    if allow_hex:
        match = _HEX64.search(text)
        if match:
            return match.group(0).lower()
    return ""
