"""
Augmented record views built on top of raw events.

Each record pairs an [Event][nostrapps.models.event.Event] with fields
extracted from its tags or content and with the profiles of the people it
references. Records are frozen; augmentation builds new instances rather
than mutating events.

See Also:
    [nostrapps.services.augment][]: Builds these records from fetched events.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any

from ._validation import deep_freeze
from .event import Event


logger = logging.getLogger(__name__)


def parse_content_json(event: Event) -> dict[str, Any]:
    """Parse an event's content as a JSON object.

    Malformed content, or content that is not a JSON object, yields an empty
    dict and a warning; callers never see a decoding error.
    """
    try:
        data = json.loads(event.content)
    except (json.JSONDecodeError, RecursionError):
        logger.warning("content_json_invalid id=%s kind=%s", event.id, event.kind)
        return {}
    if not isinstance(data, dict):
        logger.warning("content_json_not_object id=%s kind=%s", event.id, event.kind)
        return {}
    return data


@dataclass(frozen=True, slots=True)
class Profile:
    """Parsed kind-0 metadata of one public key.

    Attributes:
        event: The kind-0 event.
        metadata: Read-only view of the content JSON object.
        npub: Bech32 public key.
    """

    event: Event
    metadata: Mapping[str, Any] = field(default_factory=lambda: MappingProxyType({}))
    npub: str = ""

    def __post_init__(self) -> None:
        object.__setattr__(self, "metadata", deep_freeze(dict(self.metadata)))

    @property
    def pubkey(self) -> str:
        return self.event.pubkey

    def _text(self, key: str) -> str:
        value = self.metadata.get(key)
        return value if isinstance(value, str) else ""

    @property
    def name(self) -> str:
        return self._text("name")

    @property
    def display_name(self) -> str:
        return self._text("display_name")

    @property
    def picture(self) -> str:
        return self._text("picture")

    @property
    def about(self) -> str:
        return self._text("about")

    @property
    def website(self) -> str:
        return self._text("website")


@dataclass(frozen=True, slots=True)
class Note:
    """An event paired with its author's profile (``None`` if unknown)."""

    event: Event
    author: Profile | None = None


@dataclass(frozen=True, slots=True)
class LongNote:
    """Long-form article (kind 30023) with its header fields."""

    event: Event
    title: str = ""
    summary: str = ""
    published_at: int = 0
    author: Profile | None = None


@dataclass(frozen=True, slots=True)
class ZapReceipt:
    """Zap receipt (kind 9735) with the parties and the zapped event.

    Attributes:
        event: The receipt published by the lightning provider.
        amount_msat: Invoice amount in millisatoshi (0 for open invoices).
        description: Zap request embedded in the ``description`` tag.
        target_event_id: Zapped event id (``e`` tag).
        target_address: Zapped coordinate (``a`` tag), when present.
        target_pubkey: Zapped author (``p`` tag).
        provider_pubkey: Lightning provider that signed the receipt.
        sender_pubkey: Author of the zap request.
        target_event: The zapped event, when it could be fetched.
    """

    event: Event
    amount_msat: int
    description: Mapping[str, Any]
    target_event_id: str
    target_address: str = ""
    target_pubkey: str = ""
    provider_pubkey: str = ""
    sender_pubkey: str = ""
    target_event: Event | None = None
    target_profile: Profile | None = None
    provider_profile: Profile | None = None
    sender_profile: Profile | None = None

    @property
    def amount_sats(self) -> int:
        return self.amount_msat // 1000


@dataclass(frozen=True, slots=True)
class LiveEvent:
    """Live activity (kind 30311) with its host and followed participants.

    ``order`` is the start time, negated when the activity is not live so
    that live activities sort first when ordering descending.
    """

    event: Event
    title: str
    summary: str
    starts: int
    current_participants: int
    status: str
    host: str
    members: tuple[str, ...] = ()
    order: int = 0
    author: Profile | None = None
    host_profile: Profile | None = None
    member_profiles: tuple[Profile, ...] = ()

    @property
    def is_live(self) -> bool:
        return self.status == "live"


@dataclass(frozen=True, slots=True)
class Community:
    """Community definition (kind 34550) with moderation and activity.

    ``order`` is the time of the last approved post when approvals were
    supplied, otherwise the definition's ``created_at``.
    """

    event: Event
    name: str
    description: str = ""
    image: str = ""
    moderators: tuple[str, ...] = ()
    posts: int = 0
    last_post_at: int | None = None
    order: int = 0
    author: Profile | None = None
    moderator_profiles: tuple[Profile, ...] = ()


@dataclass(frozen=True, slots=True)
class ContactList:
    """Follow list (kind 3) with the followed profiles.

    ``contacts`` lists resolved profiles, most recently followed first.
    """

    event: Event
    contact_pubkeys: tuple[str, ...] = ()
    contacts: tuple[Profile, ...] = ()


@dataclass(frozen=True, slots=True)
class BookmarkList:
    """Bookmark list (kind 30001) with the bookmarked notes.

    ``bookmarks`` lists resolved notes and articles, most recently
    bookmarked first.
    """

    event: Event
    bookmark_ids: tuple[str, ...] = ()
    bookmarks: tuple[Note, ...] = ()
