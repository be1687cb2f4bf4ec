"""
Handler application descriptors (NIP-89).

A kind-31990 announcement becomes an [AppHandler][nostrapps.models.app.AppHandler];
handlers that belong to the same application are grouped into an
[AppInfo][nostrapps.models.app.AppInfo], and the set of applications able
to open one kind forms an [AppRegistry][nostrapps.models.app.AppRegistry].
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from typing import TYPE_CHECKING, Any

from .constants import IdentifierType


if TYPE_CHECKING:
    from .address import Address
    from .event import Event
    from .records import Profile


@dataclass(frozen=True, slots=True)
class HandlerUrl:
    """One URL template of a handler.

    Attributes:
        url: Template containing the ``<bech32>`` placeholder.
        type: Identifier type the template expects (``""`` accepts any).
        platform: Platform tag the template was declared under.
    """

    url: str
    type: IdentifierType = IdentifierType.DEFAULT
    platform: str = "web"


@dataclass(frozen=True, slots=True)
class AppHandler:
    """One handler announcement.

    Attributes:
        event: The kind-31990 event.
        naddr: Bech32 address of the announcement.
        profile: Application profile (own content or inherited).
        inherited_profile: True when the profile comes from the author's
            kind-0 metadata because the announcement has no content.
        author: Author profile, when known.
        kinds: Handled kinds, after filtering.
        platforms: Platforms with at least one usable URL template.
        urls: URL templates across all platforms.
        app_id: Grouping key of the application.
        event_url: Deep link for the event being opened, once resolved.
    """

    event: Event
    naddr: str
    profile: Mapping[str, Any]
    inherited_profile: bool
    kinds: tuple[int, ...]
    urls: tuple[HandlerUrl, ...]
    platforms: tuple[str, ...]
    app_id: str
    author: Profile | None = None
    event_url: str | None = None

    @property
    def name(self) -> str:
        value = self.profile.get("display_name") or self.profile.get("name") or ""
        return value if isinstance(value, str) else ""

    def find_url(self, identifier_type: str) -> HandlerUrl | None:
        """First template declared for *identifier_type*, if any."""
        for url in self.urls:
            if url.type == identifier_type:
                return url
        return None


@dataclass(slots=True)
class AppInfo:
    """All handlers of one application, merged under its app id."""

    app_id: str
    handlers: list[AppHandler] = field(default_factory=list)
    kinds: list[int] = field(default_factory=list)
    platforms: list[str] = field(default_factory=list)

    def add(self, handler: AppHandler) -> None:
        self.handlers.append(handler)
        self.kinds.extend(handler.kinds)
        self.platforms.extend(handler.platforms)


@dataclass(slots=True)
class AppRegistry:
    """Applications keyed by app id, in discovery (rank) order.

    Attributes:
        apps: Registry entries keyed by app id.
        address: The address the registry was resolved for, if any.
    """

    apps: dict[str, AppInfo] = field(default_factory=dict)
    address: Address | None = None

    def __len__(self) -> int:
        return len(self.apps)

    def __bool__(self) -> bool:
        return bool(self.apps)

    @property
    def handlers(self) -> list[AppHandler]:
        return [handler for app in self.apps.values() for handler in app.handlers]

    def add(self, handler: AppHandler) -> None:
        app = self.apps.get(handler.app_id)
        if app is None:
            app = self.apps[handler.app_id] = AppInfo(app_id=handler.app_id)
        app.add(handler)

    def with_links(self, address: Address, links: Mapping[str, str | None]) -> AppRegistry:
        """Return a copy bound to *address* whose handlers carry deep links.

        Args:
            address: Resolved address of the target event.
            links: Deep link per handler ``naddr``.
        """
        registry = AppRegistry(address=address)
        for app in self.apps.values():
            for handler in app.handlers:
                registry.add(replace(handler, event_url=links.get(handler.naddr)))
        return registry
