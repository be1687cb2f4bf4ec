"""The engine: fetching, augmentation, handlers, subscriptions, payments.

Services are the top layer of the package, depending on
[nostrapps.core][nostrapps.core], [nostrapps.nips][nostrapps.nips],
[nostrapps.utils][nostrapps.utils], and [nostrapps.models][nostrapps.models].

```text
Fetcher ----> augment
   |  \
   |   +----> HandlerResolver
   +--------> Subscriptions
WalletService (pool only)
```

Attributes:
    Fetcher: Cached, merged reads: resolution, searches, followed feeds,
        handler announcements.
    HandlerResolver: Applications able to open a target, with deep links.
    Subscriptions: Profile, contact list, and bookmark list channels.
    WalletService: Wallet connect ``pay_invoice`` round trip.

See Also:
    [NostrAppsClient][nostrapps.client.NostrAppsClient]: Wires every service
        around one relay pool and one cache layer.
"""

from .augment import (
    ZAP_TARGET_KINDS,
    Approval,
    augment_authors,
    augment_communities,
    augment_live_events,
    augment_long_notes,
    augment_zaps,
    parse_approvals,
)
from .fetcher import Fetcher, collect_events, dedup_events, parse_profile, sort_by_recency
from .handlers import HandlerResolver
from .subscriptions import Subscription, Subscriptions, TaskQueue
from .wallet import PaymentResult, WalletService


__all__ = [
    "ZAP_TARGET_KINDS",
    "Approval",
    "Fetcher",
    "HandlerResolver",
    "PaymentResult",
    "Subscription",
    "Subscriptions",
    "TaskQueue",
    "WalletService",
    "augment_authors",
    "augment_communities",
    "augment_live_events",
    "augment_long_notes",
    "augment_zaps",
    "collect_events",
    "dedup_events",
    "parse_approvals",
    "parse_profile",
    "sort_by_recency",
]
