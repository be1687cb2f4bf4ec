"""
Relay subscription filter (NIP-01 ``REQ`` filter).

[EventFilter][nostrapps.models.filter.EventFilter] is a frozen value object
so filters can be logged, compared in tests, and translated to
``nostr_sdk.Filter`` only at the transport edge
([to_nostr()][nostrapps.models.filter.EventFilter.to_nostr]).
"""

from __future__ import annotations

import json
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any

from nostr_sdk import Filter

from ._validation import validate_timestamp


def _as_tuple(values: Iterable[Any] | None) -> tuple[Any, ...]:
    return tuple(values) if values is not None else ()


@dataclass(frozen=True, slots=True)
class EventFilter:
    """Immutable NIP-01 filter.

    Attributes:
        ids: Event ids to match.
        kinds: Event kinds to match.
        authors: Author pubkeys to match.
        tags: Single-letter tag filters, e.g. ``{"d": ("tech",)}`` for ``#d``.
        search: NIP-50 full-text query.
        limit: Maximum number of stored events to return.

    Examples:
        ```python
        EventFilter(kinds=[34550], authors=[pubkey], tags={"d": ["tech"]}).to_dict()
        # {'kinds': [34550], 'authors': [...], '#d': ['tech']}
        ```
    """

    ids: tuple[str, ...] = ()
    kinds: tuple[int, ...] = ()
    authors: tuple[str, ...] = ()
    tags: Mapping[str, tuple[str, ...]] = field(default_factory=dict)
    search: str | None = None
    limit: int | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "ids", _as_tuple(self.ids))
        object.__setattr__(self, "kinds", _as_tuple(self.kinds))
        object.__setattr__(self, "authors", _as_tuple(self.authors))
        tags: dict[str, tuple[str, ...]] = {}
        for name, values in self.tags.items():
            if len(name) != 1 or not name.isalpha():
                raise ValueError(f"tag filter names must be a single letter, got {name!r}")
            tags[name] = _as_tuple(values)
        object.__setattr__(self, "tags", tags)
        if self.limit is not None:
            validate_timestamp(self.limit, "limit")

    @property
    def is_empty(self) -> bool:
        """True when the filter constrains nothing."""
        return not (self.ids or self.kinds or self.authors or self.tags or self.search)

    def to_dict(self) -> dict[str, Any]:
        """Return the NIP-01 JSON filter, omitting empty constraints."""
        data: dict[str, Any] = {}
        if self.ids:
            data["ids"] = list(self.ids)
        if self.kinds:
            data["kinds"] = list(self.kinds)
        if self.authors:
            data["authors"] = list(self.authors)
        for name, values in self.tags.items():
            data[f"#{name}"] = list(values)
        if self.search:
            data["search"] = self.search
        if self.limit is not None:
            data["limit"] = self.limit
        return data

    def to_nostr(self) -> Filter:
        """Translate into a ``nostr_sdk.Filter``."""
        return Filter.from_json(json.dumps(self.to_dict()))
