"""Unit tests for models.address.Address and models.filter.EventFilter."""

import pytest

from nostrapps.models.address import Address
from nostrapps.models.event import Event
from nostrapps.models.filter import EventFilter


PK = "a" * 64
EID = "e" * 64


class TestEventFilter:
    def test_to_dict_omits_empty(self) -> None:
        assert EventFilter(kinds=[1]).to_dict() == {"kinds": [1]}

    def test_to_dict_tag_filters(self) -> None:
        f = EventFilter(kinds=[34550], authors=[PK], tags={"d": ["tech"]})
        assert f.to_dict() == {"kinds": [34550], "authors": [PK], "#d": ["tech"]}

    def test_search_and_limit(self) -> None:
        f = EventFilter(kinds=[1], search="nostr", limit=10)
        assert f.to_dict() == {"kinds": [1], "search": "nostr", "limit": 10}

    def test_lists_frozen(self) -> None:
        f = EventFilter(ids=["x"], tags={"e": ["y"]})
        assert f.ids == ("x",)
        assert f.tags["e"] == ("y",)

    @pytest.mark.parametrize("name", ["dd", "#d", "1", ""])
    def test_multi_letter_tag_rejected(self, name: str) -> None:
        with pytest.raises(ValueError, match="single letter"):
            EventFilter(tags={name: ["x"]})

    def test_is_empty(self) -> None:
        assert EventFilter().is_empty
        assert not EventFilter(limit=5, kinds=[1]).is_empty


class TestCacheKey:
    def test_event_id_wins(self) -> None:
        assert Address(kind=1, pubkey=PK, event_id=EID).cache_key() == EID

    def test_full_address(self) -> None:
        assert Address(kind=34550, pubkey=PK, identifier="tech").cache_key() == f"34550:{PK}:tech"

    def test_profile_address(self) -> None:
        assert Address(kind=0, pubkey=PK).cache_key() == f"0:{PK}:"

    def test_nothing_usable(self) -> None:
        assert Address(pubkey=PK).cache_key() is None


class TestToFilter:
    def test_ids(self) -> None:
        assert Address(event_id=EID, kind=1).to_filter() == EventFilter(ids=[EID])

    def test_full_address(self) -> None:
        f = Address(kind=34550, pubkey=PK, identifier="tech").to_filter()
        assert f is not None
        assert f.to_dict() == {"kinds": [34550], "authors": [PK], "#d": ["tech"]}

    def test_empty_identifier_still_filters_d(self) -> None:
        f = Address(kind=30023, pubkey=PK, identifier="").to_filter()
        assert f is not None
        assert f.to_dict()["#d"] == [""]

    def test_profile(self) -> None:
        f = Address(kind=0, pubkey=PK).to_filter()
        assert f is not None
        assert f.to_dict() == {"kinds": [0], "authors": [PK]}

    def test_unusable(self) -> None:
        assert Address(relays=["wss://nos.lol"]).to_filter() is None


class TestResolved:
    def test_fills_from_addressable_event(self) -> None:
        event = Event(id=EID, pubkey=PK, created_at=1, kind=30023, tags=[["d", "post"]])
        resolved = Address(kind=30023, pubkey=PK, identifier="post").resolved(event)
        assert resolved.event_id == EID
        assert resolved.identifier == "post"
        assert resolved.kind == 30023

    def test_hex_mode_cleared(self) -> None:
        event = Event(id="1" * 64, pubkey=PK, created_at=1, kind=0)
        resolved = Address(event_id=PK, hex=True).resolved(event)
        assert resolved.hex is False
        assert resolved.event_id == "1" * 64
        assert resolved.is_profile

    def test_keeps_relays(self) -> None:
        event = Event(id=EID, pubkey=PK, created_at=1, kind=1)
        resolved = Address(event_id=EID, relays=["wss://nos.lol"]).resolved(event)
        assert resolved.relays == ("wss://nos.lol",)
        assert resolved.pubkey == PK
