"""Unit tests for nips.nip57: zap receipt parsing."""

import json
from types import SimpleNamespace
from unittest.mock import patch

import pytest

from nostrapps.models.constants import EventKind
from nostrapps.models.event import Event
from nostrapps.nips import nip57


PROVIDER = "d" * 64
SENDER = "b" * 64
TARGET_PK = "a" * 64
TARGET_ID = "e" * 64


def _receipt(tags) -> Event:
    return Event(
        id="1" * 64, pubkey=PROVIDER, created_at=1, kind=EventKind.ZAP_RECEIPT, tags=list(tags)
    )


def _decoded(amount_msat):
    return SimpleNamespace(amount_msat=amount_msat)


class TestInvoiceAmount:
    def test_amount(self) -> None:
        with patch("nostrapps.nips.nip57.bolt11.decode", return_value=_decoded(21_000)):
            assert nip57.invoice_amount_msat("lnbc210n1...") == 21_000

    def test_open_invoice_is_zero(self) -> None:
        with patch("nostrapps.nips.nip57.bolt11.decode", return_value=_decoded(None)):
            assert nip57.invoice_amount_msat("lnbc1...") == 0

    def test_undecodable(self) -> None:
        assert nip57.invoice_amount_msat("not an invoice") is None


class TestParseZapReceipt:
    def test_full_receipt(self) -> None:
        request = {"pubkey": SENDER, "kind": 9734, "content": "gm"}
        event = _receipt(
            [
                ["e", TARGET_ID],
                ["p", TARGET_PK],
                ["a", f"30023:{TARGET_PK}:post"],
                ["bolt11", "lnbc..."],
                ["description", json.dumps(request)],
            ]
        )
        with patch("nostrapps.nips.nip57.bolt11.decode", return_value=_decoded(5_000)):
            fields = nip57.parse_zap_receipt(event)

        assert fields is not None
        assert fields.amount_msat == 5_000
        assert fields.target_event_id == TARGET_ID
        assert fields.target_pubkey == TARGET_PK
        assert fields.target_address == f"30023:{TARGET_PK}:post"
        assert fields.provider_pubkey == PROVIDER
        assert fields.sender_pubkey == SENDER
        assert fields.description == request

    def test_profile_zap_dropped(self) -> None:
        event = _receipt([["p", TARGET_PK], ["bolt11", "lnbc..."]])
        with patch("nostrapps.nips.nip57.bolt11.decode", return_value=_decoded(1_000)):
            assert nip57.parse_zap_receipt(event) is None

    def test_bad_invoice_dropped(self) -> None:
        event = _receipt([["e", TARGET_ID], ["bolt11", "garbage"]])
        assert nip57.parse_zap_receipt(event) is None

    @pytest.mark.parametrize("description", ["", "{not json", "[1]", '{"pubkey": 7}'])
    def test_bad_description_leaves_sender_empty(self, description: str) -> None:
        event = _receipt([["e", TARGET_ID], ["bolt11", "lnbc..."], ["description", description]])
        with patch("nostrapps.nips.nip57.bolt11.decode", return_value=_decoded(1_000)):
            fields = nip57.parse_zap_receipt(event)
        assert fields is not None
        assert fields.sender_pubkey == ""
