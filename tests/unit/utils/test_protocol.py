"""Unit tests for utils.protocol: the nostr_sdk relay pool adapter."""

import asyncio
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from nostrapps.core.exceptions import ConnectivityError, PublishingError
from nostrapps.models.event import Event
from nostrapps.models.filter import EventFilter
from nostrapps.utils.protocol import NostrSdkRelayPool, NostrSdkSubscription


RELAY_A = "wss://nos.lol"
RELAY_B = "wss://relay.damus.io"
FILTER = EventFilter(kinds=[1], limit=5)


def _event(id_char: str) -> Event:
    return Event(id=id_char * 64, pubkey="a" * 64, created_at=1, kind=1)


class TestQuery:
    async def test_concatenates_and_tolerates_failures(self) -> None:
        pool = NostrSdkRelayPool()
        results = {RELAY_A: [_event("1")], RELAY_B: ConnectivityError("down")}

        async def query_one(url, event_filter):
            result = results[url]
            if isinstance(result, Exception):
                raise result
            return result

        with patch.object(pool, "_query_one", side_effect=query_one):
            events = await pool.query(FILTER, [RELAY_A, RELAY_B, RELAY_A])

        assert events == [_event("1")]

    async def test_all_failed(self) -> None:
        pool = NostrSdkRelayPool()
        with (
            patch.object(pool, "_query_one", AsyncMock(side_effect=OSError("refused"))),
            pytest.raises(ConnectivityError, match="all 2 relays failed"),
        ):
            await pool.query(FILTER, [RELAY_A, RELAY_B])

    async def test_top_keeps_endpoint_order(self) -> None:
        pool = NostrSdkRelayPool()
        ranked = [_event("3"), _event("1"), _event("3"), _event("2")]
        with patch.object(pool, "_query_one", AsyncMock(return_value=ranked)):
            assert await pool.top(FILTER, [RELAY_A]) == ["3" * 64, "1" * 64, "2" * 64]

    async def test_overlay_requires_proxy(self) -> None:
        pool = NostrSdkRelayPool()
        with pytest.raises(ConnectivityError, match="proxy_url required"):
            await pool._client_for("ws://abcdefghijklmnop.onion")

    async def test_connects_run_concurrently(self) -> None:
        pool = NostrSdkRelayPool()
        fast_connected = asyncio.Event()
        slow = MagicMock(add_relay=AsyncMock(), connect=AsyncMock(side_effect=fast_connected.wait))
        fast = MagicMock(add_relay=AsyncMock(), connect=AsyncMock(side_effect=fast_connected.set))

        with patch(
            "nostrapps.utils.protocol.create_client", AsyncMock(side_effect=[slow, fast])
        ):
            async with asyncio.timeout(1):
                clients = await asyncio.gather(
                    pool._client_for(RELAY_A), pool._client_for(RELAY_B)
                )

        assert clients == [slow, fast]
        assert pool._clients == {RELAY_A: slow, RELAY_B: fast}

    async def test_one_client_per_relay(self) -> None:
        pool = NostrSdkRelayPool()
        client = MagicMock(add_relay=AsyncMock(), connect=AsyncMock())
        create = AsyncMock(return_value=client)

        with patch("nostrapps.utils.protocol.create_client", create):
            await asyncio.gather(pool._client_for(RELAY_A), pool._client_for(RELAY_A))

        create.assert_awaited_once()


class TestPublish:
    def _client(self, success: bool) -> MagicMock:
        client = MagicMock()
        client.send_event = AsyncMock(return_value=MagicMock(success=success))
        return client

    async def test_accepted_by_one_relay(self) -> None:
        pool = NostrSdkRelayPool()
        clients = {RELAY_A: self._client(True), RELAY_B: self._client(False)}
        with (
            patch.object(Event, "to_nostr", return_value=MagicMock()),
            patch.object(pool, "_client_for", AsyncMock(side_effect=clients.get)),
        ):
            await pool.publish(_event("1"), [RELAY_A, RELAY_B], timeout=1)

        clients[RELAY_A].send_event.assert_awaited_once()

    async def test_rejected_everywhere(self) -> None:
        pool = NostrSdkRelayPool()
        with (
            patch.object(Event, "to_nostr", return_value=MagicMock()),
            patch.object(pool, "_client_for", AsyncMock(return_value=self._client(False))),
            pytest.raises(PublishingError, match="no relay accepted"),
        ):
            await pool.publish(_event("1"), [RELAY_A], timeout=1)

    async def test_close_shuts_clients_down(self) -> None:
        pool = NostrSdkRelayPool()
        client = MagicMock()
        client.shutdown = AsyncMock(side_effect=RuntimeError("already closed"))
        pool._clients[RELAY_A] = client

        await pool.close()

        client.shutdown.assert_awaited_once()
        assert pool._clients == {}


class TestSubscription:
    def test_pool_builds_subscription(self) -> None:
        pool = NostrSdkRelayPool(proxy_url="socks5://127.0.0.1:9050")
        handle = pool.subscribe(FILTER, [RELAY_A], close_on_eose=True)
        assert isinstance(handle, NostrSdkSubscription)
        assert handle._eose_timeout == pool._timeout

    def test_eose_after_every_relay(self) -> None:
        handle = NostrSdkSubscription(FILTER, [RELAY_A, RELAY_B, RELAY_A])
        fired: list[bool] = []
        handle.on_eose(lambda: fired.append(True))

        handle._relay_eose(RELAY_A + "/")
        assert fired == []
        handle._relay_eose(RELAY_B)
        handle._relay_eose(RELAY_B)
        assert fired == [True]

    async def test_events_forwarded_until_stopped(self) -> None:
        handle = NostrSdkSubscription(FILTER, [RELAY_A])
        seen: list[Event] = []
        handle.on_event(seen.append)

        handle._emit_event(_event("1"))
        await handle.stop()
        handle._emit_event(_event("2"))
        handle._relay_eose(RELAY_A)

        assert seen == [_event("1")]

    async def test_close_on_eose_stops(self) -> None:
        handle = NostrSdkSubscription(FILTER, [RELAY_A], close_on_eose=True)
        handle._relay_eose(RELAY_A)
        await asyncio.sleep(0)
        assert handle._stopped

    async def test_eose_timeout_covers_silent_relay(self) -> None:
        client = MagicMock()
        for name in ("add_relay", "connect", "subscribe", "handle_notifications", "shutdown"):
            setattr(client, name, AsyncMock())
        client.unsubscribe_all = AsyncMock()
        handle = NostrSdkSubscription(FILTER, [RELAY_A, RELAY_B], eose_timeout=0.01)
        fired: list[bool] = []
        handle.on_eose(lambda: fired.append(True))

        with patch("nostrapps.utils.protocol.create_client", AsyncMock(return_value=client)):
            await handle.start()
        handle._relay_eose(RELAY_A)
        assert fired == []

        await asyncio.sleep(0.05)
        handle._relay_eose(RELAY_B)
        await handle.stop()

        assert fired == [True]
        client.shutdown.assert_awaited_once()
