"""Augmentation of fetched events into record views.

Each ``augment_*`` coroutine extracts fields from the events' tags, fetches
the profiles (and, for zaps, the target events) they reference through the
[Fetcher][nostrapps.services.fetcher.Fetcher], and returns frozen records
sorted descending by the record's ordering key.

Ordering keys:

```text
Note, LongNote   created_at
ZapReceipt       created_at
LiveEvent        starts, negated unless live (live activities first)
Community        last approved post when approvals are known, else created_at
```
"""

from __future__ import annotations

import time
from typing import TYPE_CHECKING, NamedTuple

from nostrapps.core.logger import Logger
from nostrapps.models.constants import LIVE_EVENT_TTL, EventKind
from nostrapps.models.records import Community, LiveEvent, LongNote, Note, ZapReceipt
from nostrapps.nips.nip57 import parse_zap_receipt


if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence

    from nostrapps.models.event import Event

    from .fetcher import Fetcher


_logger = Logger("augment")

ZAP_TARGET_KINDS = (
    EventKind.TEXT_NOTE,
    EventKind.LONG_FORM,
    EventKind.COMMUNITY,
    EventKind.LIVE_EVENT,
    EventKind.APP_HANDLER,
)


class Approval(NamedTuple):
    """A community post approval (kind 4550) reduced to its community coordinate."""

    created_at: int
    pubkey: str
    identifier: str


def _int(value: str, default: int = 0) -> int:
    try:
        return int(value)
    except ValueError:
        return default


def _role_tags(event: Event, role: str | None = None) -> list[tuple[str, ...]]:
    """``p`` tags carrying a role marker (position 3), optionally a given role."""
    return [
        tag
        for tag in event.get_tags("p")
        if len(tag) >= 4 and (role is None or tag[3].lower() == role)
    ]


def parse_approvals(events: Iterable[Event]) -> list[Approval]:
    """Extract community coordinates from approvals, newest first.

    Approvals whose ``a`` tag does not point at a community are skipped.
    """
    approvals: list[Approval] = []
    for event in sorted(events, key=lambda e: e.created_at, reverse=True):
        parts = event.get_tag_value("a").split(":", 2)
        if len(parts) != 3 or parts[0] != str(int(EventKind.COMMUNITY)) or not parts[1]:
            continue
        approvals.append(Approval(event.created_at, parts[1], parts[2]))
    return approvals


# ---------------------------------------------------------------------------
# Notes
# ---------------------------------------------------------------------------


async def augment_authors(fetcher: Fetcher, events: Sequence[Event]) -> list[Note]:
    """Pair each event with its author's profile."""
    profiles = await fetcher.fetch_profiles(e.pubkey for e in events)
    return [Note(event=e, author=profiles.get(e.pubkey)) for e in events]


async def augment_long_notes(fetcher: Fetcher, events: Sequence[Event]) -> list[LongNote]:
    """Extract article headers and authors."""
    profiles = await fetcher.fetch_profiles(e.pubkey for e in events)
    notes = [
        LongNote(
            event=e,
            title=e.get_tag_value("title"),
            summary=e.get_tag_value("summary"),
            published_at=_int(e.get_tag_value("published_at"), e.created_at),
            author=profiles.get(e.pubkey),
        )
        for e in events
    ]
    return sorted(notes, key=lambda n: n.event.created_at, reverse=True)


# ---------------------------------------------------------------------------
# Zaps
# ---------------------------------------------------------------------------


async def augment_zaps(
    fetcher: Fetcher, events: Sequence[Event], min_zap: int | None = None
) -> list[ZapReceipt]:
    """Parse zap receipts and resolve their targets and parties.

    Receipts without an ``e`` tag or with an undecodable invoice are dropped,
    as are receipts below *min_zap* sats when given.
    """
    parsed = []
    for event in events:
        fields = parse_zap_receipt(event)
        if fields is None:
            continue
        if min_zap is not None and fields.amount_msat // 1000 < min_zap:
            continue
        parsed.append((event, fields))
    if not parsed:
        return []

    targets = await fetcher.resolve_by_ids(
        [f.target_event_id for _, f in parsed], kinds=ZAP_TARGET_KINDS
    )
    targets_by_id = {t.id: t for t in targets}
    pubkeys = [
        pk
        for _, f in parsed
        for pk in (f.target_pubkey, f.provider_pubkey, f.sender_pubkey)
        if pk
    ]
    profiles = await fetcher.fetch_profiles(pubkeys)

    zaps = [
        ZapReceipt(
            event=event,
            amount_msat=f.amount_msat,
            description=f.description,
            target_event_id=f.target_event_id,
            target_address=f.target_address,
            target_pubkey=f.target_pubkey,
            provider_pubkey=f.provider_pubkey,
            sender_pubkey=f.sender_pubkey,
            target_event=targets_by_id.get(f.target_event_id),
            target_profile=profiles.get(f.target_pubkey),
            provider_profile=profiles.get(f.provider_pubkey),
            sender_profile=profiles.get(f.sender_pubkey),
        )
        for event, f in parsed
    ]
    _logger.debug("zaps_augmented", received=len(events), kept=len(zaps))
    return sorted(zaps, key=lambda z: z.event.created_at, reverse=True)


# ---------------------------------------------------------------------------
# Live events
# ---------------------------------------------------------------------------


async def augment_live_events(
    fetcher: Fetcher,
    events: Sequence[Event],
    *,
    contacts: Sequence[str] | None = None,
    limit: int | None = None,
    include_ended: bool = False,
    now: int | None = None,
) -> list[LiveEvent]:
    """Extract live activity fields, live ones first.

    An activity not updated for ``LIVE_EVENT_TTL`` seconds counts as ended
    whatever its ``status`` tag says. Activities without a host, and ended
    ones unless *include_ended*, are dropped. Members are the participants
    found in *contacts* (all participants when ``None``).
    """
    now = int(time.time()) if now is None else now
    contact_set = set(contacts) if contacts is not None else None

    drafts: list[tuple[Event, str, str, int, tuple[str, ...]]] = []
    for event in events:
        status = event.get_tag_value("status")
        if now - event.created_at > LIVE_EVENT_TTL:
            status = "ended"
        hosts = _role_tags(event, "host")
        if not hosts:
            continue
        if status == "ended" and not include_ended:
            continue
        members = tuple(
            dict.fromkeys(
                tag[1]
                for tag in _role_tags(event)
                if contact_set is None or tag[1] in contact_set
            )
        )
        starts = _int(event.get_tag_value("starts"))
        drafts.append((event, status, hosts[0][1], starts, members))

    profiles = await fetcher.fetch_profiles(
        pk for event, _, host, _, members in drafts for pk in (event.pubkey, host, *members)
    )

    live_events = [
        LiveEvent(
            event=event,
            title=event.get_tag_value("title"),
            summary=event.get_tag_value("summary"),
            starts=starts,
            current_participants=_int(event.get_tag_value("current_participants")),
            status=status,
            host=host,
            members=members,
            order=starts if status == "live" else -starts,
            author=profiles.get(event.pubkey),
            host_profile=profiles.get(host),
            member_profiles=tuple(profiles[m] for m in members if m in profiles),
        )
        for event, status, host, starts, members in drafts
    ]
    live_events.sort(key=lambda e: e.order, reverse=True)
    return live_events[:limit] if limit is not None else live_events


# ---------------------------------------------------------------------------
# Communities
# ---------------------------------------------------------------------------


async def augment_communities(
    fetcher: Fetcher,
    events: Sequence[Event],
    approvals: Sequence[Approval] | None = None,
) -> list[Community]:
    """Extract community fields, moderators, and (with approvals) activity."""
    moderators = {
        e.id: tuple(dict.fromkeys(tag[1] for tag in _role_tags(e, "moderator"))) for e in events
    }
    profiles = await fetcher.fetch_profiles(
        pk for e in events for pk in (e.pubkey, *moderators[e.id])
    )

    communities = []
    for event in events:
        posts = 0
        last_post_at: int | None = None
        order = event.created_at
        if approvals is not None:
            matching = [
                a
                for a in approvals
                if a.pubkey == event.pubkey and a.identifier == event.identifier
            ]
            posts = len(matching)
            if matching:
                last_post_at = max(a.created_at for a in matching)
                order = last_post_at
        mods = moderators[event.id]
        communities.append(
            Community(
                event=event,
                name=event.identifier,
                description=event.get_tag_value("description"),
                image=event.get_tag_value("image"),
                moderators=mods,
                posts=posts,
                last_post_at=last_post_at,
                order=order,
                author=profiles.get(event.pubkey),
                moderator_profiles=tuple(profiles[m] for m in mods if m in profiles),
            )
        )
    return sorted(communities, key=lambda c: c.order, reverse=True)
