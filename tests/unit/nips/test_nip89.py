"""Unit tests for nips.nip89: handler parsing, registries, deep links."""

import pytest

from nostrapps.models.address import Address
from nostrapps.models.constants import EventKind, IdentifierType
from nostrapps.models.event import Event
from nostrapps.models.records import Profile
from nostrapps.nips import nip19, nip89


PK = "a" * 64
EID = "e" * 64


def _announcement(tags, content: str = "", id_char: str = "1", pubkey: str = PK) -> Event:
    return Event(
        id=id_char * 64,
        pubkey=pubkey,
        created_at=1,
        kind=EventKind.APP_HANDLER,
        tags=list(tags),
        content=content,
    )


class TestParseHandlerKinds:
    def test_unique_in_order(self) -> None:
        event = _announcement([["k", "30023"], ["k", "1"], ["k", "30023"]])
        assert nip89.parse_handler_kinds(event) == [30023, 1]

    def test_invalid_values_skipped(self) -> None:
        event = _announcement([["k"], ["k", "abc"], ["k", "-1"], ["k", "20000000"], ["k", "7"]])
        assert nip89.parse_handler_kinds(event) == [7]


class TestParseHandlerUrls:
    def test_typed_and_default(self) -> None:
        event = _announcement(
            [
                ["web", "https://a/e/<bech32>", "nevent"],
                ["web", "https://a/<bech32>"],
                ["web", "https://a/x/<bech32>", "nsec"],
                ["ios", "app://<bech32>"],
            ]
        )
        urls = nip89.parse_handler_urls(event, ("web",))
        assert [(u.url, u.type) for u in urls] == [
            ("https://a/e/<bech32>", IdentifierType.NEVENT),
            ("https://a/<bech32>", IdentifierType.DEFAULT),
        ]


class TestParseHandler:
    def test_own_content_names_app(self) -> None:
        event = _announcement(
            [["d", "h1"], ["k", "1"], ["web", "https://a/<bech32>"]],
            content='{"name": "Snort"}',
        )
        handler = nip89.parse_handler(event, {})
        assert handler is not None
        assert handler.app_id == "Snort"
        assert handler.inherited_profile is False
        assert handler.platforms == ("web",)
        assert nip19.decode(handler.naddr).identifier == "h1"

    def test_inherits_author_profile(self) -> None:
        author = Profile(
            event=Event(id="2" * 64, pubkey=PK, created_at=1, kind=0),
            metadata={"name": "Alice app"},
        )
        event = _announcement([["d", "h1"], ["k", "1"]])
        handler = nip89.parse_handler(event, {PK: author})
        assert handler is not None
        assert handler.inherited_profile is True
        assert handler.profile["name"] == "Alice app"
        assert handler.app_id == "h1"
        assert handler.author is author

    def test_filter_kinds(self) -> None:
        event = _announcement([["d", "h1"], ["k", "1"], ["k", "30023"]])
        handler = nip89.parse_handler(event, {}, filter_kinds={30023})
        assert handler is not None
        assert handler.kinds == (30023,)

    def test_no_kind_left_excluded(self) -> None:
        event = _announcement([["d", "h1"], ["k", "1"]])
        assert nip89.parse_handler(event, {}, filter_kinds={30023}) is None


class TestBuildRegistry:
    def test_groups_and_skips(self) -> None:
        events = [
            _announcement([["d", "a"], ["k", "1"]], content='{"name": "App"}', id_char="1"),
            _announcement([["d", "b"], ["k", "7"]], content='{"name": "Other"}', id_char="2"),
            _announcement([["d", "c"], ["k", "1"]], content='{"name": "App"}', id_char="3"),
            Event(id="4" * 64, pubkey=PK, created_at=1, kind=1),
        ]
        registry = nip89.build_registry(events, {}, filter_kinds={1})
        assert list(registry.apps) == ["App"]
        assert len(registry.apps["App"].handlers) == 2


class TestHandlerUrl:
    def _handler(self, *urls):
        tags = [["d", "h"], ["k", "0"], ["k", "1"], ["k", "30023"], *urls]
        handler = nip89.parse_handler(_announcement(tags), {})
        assert handler is not None
        return handler

    def test_note_prefers_nevent_template(self) -> None:
        handler = self._handler(
            ["web", "https://a/e/<bech32>", "nevent"], ["web", "https://a/<bech32>"]
        )
        url = nip89.handler_url(handler, Address(kind=1, pubkey=PK, event_id=EID))
        expected = nip19.encode_nevent(EID, (), PK)
        assert url == f"https://a/e/{expected}"

    def test_default_template_fallback(self) -> None:
        handler = self._handler(["web", "https://a/<bech32>"])
        url = nip89.handler_url(handler, Address(kind=1, event_id=EID))
        assert url == f"https://a/{nip19.encode_nevent(EID)}"

    def test_profile_prefers_npub(self) -> None:
        handler = self._handler(["web", "https://a/p/<bech32>", "npub"])
        url = nip89.handler_url(handler, Address(kind=0, pubkey=PK, event_id=EID))
        assert url == f"https://a/p/{nip19.encode_npub(PK)}"

    def test_addressable_prefers_naddr(self) -> None:
        handler = self._handler(
            ["web", "https://a/a/<bech32>", "naddr"], ["web", "https://a/e/<bech32>", "nevent"]
        )
        address = Address(kind=30023, pubkey=PK, identifier="post", event_id=EID)
        url = nip89.handler_url(handler, address)
        assert url == f"https://a/a/{nip19.encode_naddr(30023, PK, 'post')}"

    def test_note_template_only(self) -> None:
        handler = self._handler(["web", "https://a/n/<bech32>", "note"])
        url = nip89.handler_url(handler, Address(kind=1, event_id=EID))
        assert url == f"https://a/n/{nip19.encode_note(EID)}"

    @pytest.mark.parametrize("address", [Address(kind=1, event_id=EID), Address(kind=0, pubkey=PK)])
    def test_no_matching_template(self, address: Address) -> None:
        handler = self._handler(["web", "https://a/a/<bech32>", "naddr"])
        assert nip89.handler_url(handler, address) is None
