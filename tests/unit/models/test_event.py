"""Unit tests for models.event.Event."""

from dataclasses import FrozenInstanceError

import pytest

from nostrapps.models.event import Event


PK = "a" * 64
ID = "1" * 64


def _event(**overrides) -> Event:
    fields = {"id": ID, "pubkey": PK, "created_at": 100, "kind": 1}
    fields.update(overrides)
    return Event(**fields)


class TestConstruction:
    def test_tags_frozen_to_tuples(self) -> None:
        event = _event(tags=[["e", "x"], ["p", "y", "wss://r"]])
        assert event.tags == (("e", "x"), ("p", "y", "wss://r"))

    def test_immutable(self) -> None:
        event = _event()
        with pytest.raises(FrozenInstanceError):
            event.kind = 2  # type: ignore[misc]

    @pytest.mark.parametrize(
        ("field", "value", "error"),
        [
            ("id", "xyz", ValueError),
            ("id", "A" * 64, ValueError),
            ("pubkey", "0" * 63, ValueError),
            ("created_at", -1, ValueError),
            ("created_at", 1.5, TypeError),
            ("kind", True, TypeError),
            ("kind", 65536, ValueError),
            ("content", "a\x00b", ValueError),
            ("tags", "not-a-list", TypeError),
        ],
    )
    def test_invalid_fields_rejected(self, field: str, value, error: type) -> None:
        with pytest.raises(error):
            _event(**{field: value})


class TestTagHelpers:
    def test_get_tags_in_order(self) -> None:
        event = _event(tags=[["p", "1"], ["e", "2"], ["p", "3"]])
        assert event.get_tags("p") == [("p", "1"), ("p", "3")]

    def test_get_tag_first_match(self) -> None:
        event = _event(tags=[["p", "1"], ["p", "3"]])
        assert event.get_tag("p") == ("p", "1")
        assert event.get_tag("x") is None

    def test_get_tag_value_positions(self) -> None:
        event = _event(tags=[["p", "pk", "wss://relay", "host"]])
        assert event.get_tag_value("p") == "pk"
        assert event.get_tag_value("p", 2) == "host"
        assert event.get_tag_value("p", 3) == ""
        assert event.get_tag_value("p", 3, default="none") == "none"
        assert event.get_tag_value("missing", default="d") == "d"

    def test_empty_tag_ignored(self) -> None:
        event = _event(tags=[[], ["d", "x"]])
        assert event.identifier == "x"


class TestLogicalAddress:
    def test_regular_kind_keyed_by_id(self) -> None:
        assert _event(kind=1).dedup_key == ID

    @pytest.mark.parametrize("kind", [0, 3, 10000, 10002, 19999])
    def test_replaceable_kinds_ignore_d(self, kind: int) -> None:
        event = _event(kind=kind, tags=[["d", "ignored"]])
        assert event.dedup_key == f"{kind}:{PK}:"

    @pytest.mark.parametrize("kind", [30000, 30023, 34550, 39999])
    def test_addressable_kinds_use_d(self, kind: int) -> None:
        event = _event(kind=kind, tags=[["d", "tech"]])
        assert event.dedup_key == f"{kind}:{PK}:tech"

    def test_addressable_without_d(self) -> None:
        assert _event(kind=30023).dedup_key == f"30023:{PK}:"

    @pytest.mark.parametrize("kind", [2, 20000, 40000])
    def test_outside_ranges_keyed_by_id(self, kind: int) -> None:
        assert _event(kind=kind).dedup_key == ID


class TestDictConversion:
    def test_round_trip(self) -> None:
        raw = {
            "id": ID,
            "pubkey": PK,
            "created_at": 5,
            "kind": 30023,
            "tags": [["d", "post"], ["title", "Hello"]],
            "content": "body",
            "sig": "f" * 128,
        }
        event = Event.from_dict(raw)
        assert event.identifier == "post"
        assert event.to_dict() == raw

    def test_from_dict_defaults(self) -> None:
        event = Event.from_dict({"id": ID, "pubkey": PK, "created_at": 1, "kind": 1})
        assert event.tags == ()
        assert event.content == ""
        assert event.sig == ""
