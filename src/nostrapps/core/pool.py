"""Relay pool collaborator protocols.

The engine never talks to WebSockets directly. It depends on the
[RelayPool][nostrapps.core.pool.RelayPool] protocol below; the package ships
[NostrSdkRelayPool][nostrapps.utils.protocol.NostrSdkRelayPool] as the
production implementation and the test-suite a scripted fake.

Contract:

* ``query`` returns whatever the relays sent before their EOSE (or the
  timeout); it raises only when no relay could be queried at all.
* ``top`` asks a ranking endpoint for an ordered list of event ids; an
  empty list means "no ranking available".
* ``subscribe`` returns an inert handle; callbacks must be registered before
  ``start()``. After ``stop()`` no callback fires.
* ``publish`` raises [PublishingError][nostrapps.core.exceptions.PublishingError]
  when no relay accepted the event.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol


if TYPE_CHECKING:
    from collections.abc import Callable, Sequence

    from nostrapps.models.event import Event
    from nostrapps.models.filter import EventFilter


class SubscriptionHandle(Protocol):
    """A live relay subscription."""

    def on_event(self, callback: Callable[[Event], None]) -> None: ...

    def on_eose(self, callback: Callable[[], None]) -> None: ...

    async def start(self) -> None: ...

    async def stop(self) -> None: ...


class RelayPool(Protocol):
    """Relay transport used by the fetcher, subscriptions, and wallet."""

    async def query(self, event_filter: EventFilter, relays: Sequence[str]) -> list[Event]: ...

    async def top(self, event_filter: EventFilter, relays: Sequence[str]) -> list[str]: ...

    def subscribe(
        self,
        event_filter: EventFilter,
        relays: Sequence[str],
        *,
        close_on_eose: bool = False,
    ) -> SubscriptionHandle: ...

    async def publish(self, event: Event, relays: Sequence[str], timeout: float) -> None: ...  # noqa: ASYNC109

    async def close(self) -> None: ...
