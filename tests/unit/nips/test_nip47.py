"""Unit tests for nips.nip47: wallet connect URIs and payment replies."""

import pytest
from pydantic import ValidationError

from nostrapps.core.exceptions import InvalidPaymentReplyError, PaymentRejectedError
from nostrapps.nips.nip47 import (
    WalletInfo,
    build_pay_invoice_request,
    parse_payment_reply,
)


WALLET = "d" * 64
SECRET = "5" * 64


class TestWalletInfo:
    def test_from_uri(self) -> None:
        info = WalletInfo.from_uri(
            f"nostr+walletconnect://{WALLET}"
            f"?relay=wss%3A%2F%2Frelay.getalby.com%2Fv1&secret={SECRET}"
        )
        assert info.public_key == WALLET
        assert info.relay == "wss://relay.getalby.com/v1"
        assert info.secret == SECRET

    def test_legacy_scheme_without_secret(self) -> None:
        info = WalletInfo.from_uri(f"nostrwalletconnect:{WALLET}?relay=wss://nos.lol")
        assert info.public_key == WALLET
        assert info.secret is None

    def test_public_key_lowercased(self) -> None:
        assert WalletInfo(relay="wss://nos.lol", public_key=WALLET.upper()).public_key == WALLET

    def test_secret_hidden_from_repr(self) -> None:
        info = WalletInfo(relay="wss://nos.lol", public_key=WALLET, secret=SECRET)
        assert SECRET not in repr(info)

    @pytest.mark.parametrize(
        "uri",
        [
            f"https://{WALLET}?relay=wss://nos.lol",
            f"nostr+walletconnect://{WALLET}",
        ],
    )
    def test_invalid_uri(self, uri: str) -> None:
        with pytest.raises(ValueError):
            WalletInfo.from_uri(uri)

    def test_invalid_public_key(self) -> None:
        with pytest.raises(ValidationError):
            WalletInfo(relay="wss://nos.lol", public_key="xyz")


class TestPaymentReply:
    def test_request_shape(self) -> None:
        assert build_pay_invoice_request("lnbc1") == {
            "method": "pay_invoice",
            "params": {"invoice": "lnbc1"},
        }

    def test_success(self) -> None:
        reply = {"result_type": "pay_invoice", "result": {"preimage": "00ff"}}
        assert parse_payment_reply(reply) == "00ff"

    def test_wallet_error(self) -> None:
        reply = {
            "result_type": "pay_invoice",
            "error": {"code": "INSUFFICIENT_BALANCE", "message": "not enough sats"},
        }
        with pytest.raises(PaymentRejectedError, match="not enough sats"):
            parse_payment_reply(reply)

    def test_wallet_error_without_message(self) -> None:
        reply = {"result_type": "pay_invoice", "error": {"code": "OTHER"}}
        with pytest.raises(PaymentRejectedError, match="Error from the wallet"):
            parse_payment_reply(reply)

    @pytest.mark.parametrize(
        "reply",
        [
            None,
            [],
            {"result_type": "get_balance", "result": {"preimage": "00"}},
            {"result_type": "pay_invoice"},
            {"result_type": "pay_invoice", "result": {"preimage": ""}},
            {"result_type": "pay_invoice", "result": {"preimage": 7}},
        ],
    )
    def test_invalid(self, reply) -> None:
        with pytest.raises(InvalidPaymentReplyError, match="Invalid payment reply"):
            parse_payment_reply(reply)
