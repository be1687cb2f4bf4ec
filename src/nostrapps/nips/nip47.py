"""
NIP-47 Nostr Wallet Connect.

Builds ``pay_invoice`` requests and interprets wallet replies. The transport
(encrypt, sign, subscribe, publish, timeout) lives in
[WalletService][nostrapps.services.wallet.WalletService].

Connection URI:

```text
nostr+walletconnect://<wallet pubkey>?relay=wss://relay.example&secret=<hex key>
```

See Also:
    [NIP-47](https://github.com/nostr-protocol/nips/blob/master/47.md):
        Wallet connect.
"""

from __future__ import annotations

from typing import Any
from urllib.parse import parse_qs, urlparse

from pydantic import BaseModel, Field, field_validator

from nostrapps.core.exceptions import InvalidPaymentReplyError, PaymentRejectedError
from nostrapps.models._validation import is_hex64


NWC_SCHEMES = ("nostr+walletconnect", "nostrwalletconnect")

PAY_INVOICE = "pay_invoice"


class WalletInfo(BaseModel):
    """Connection details of a wallet service.

    Attributes:
        relay: Relay the wallet listens on.
        public_key: Wallet service public key (hex).
        secret: Client secret key used to sign and encrypt requests.
    """

    model_config = {"frozen": True}

    relay: str = Field(min_length=1)
    public_key: str
    secret: str | None = Field(default=None, repr=False)

    @field_validator("public_key")
    @classmethod
    def _validate_public_key(cls, value: str) -> str:
        if not is_hex64(value):
            raise ValueError("public_key must be 64 hex characters")
        return value.lower()

    @classmethod
    def from_uri(cls, uri: str) -> WalletInfo:
        """Parse a wallet connect URI.

        Raises:
            ValueError: If the scheme, pubkey, or relay is missing or invalid.
        """
        parsed = urlparse(uri.strip())
        if parsed.scheme not in NWC_SCHEMES:
            raise ValueError(f"not a wallet connect URI: {parsed.scheme!r}")
        public_key = parsed.netloc or parsed.path.lstrip("/")
        params = parse_qs(parsed.query)
        relays = params.get("relay")
        if not relays:
            raise ValueError("wallet connect URI lacks a relay")
        secrets = params.get("secret")
        return cls(relay=relays[0], public_key=public_key, secret=secrets[0] if secrets else None)


def build_pay_invoice_request(invoice: str) -> dict[str, Any]:
    """Return the JSON request asking the wallet to pay *invoice*."""
    return {"method": PAY_INVOICE, "params": {"invoice": invoice}}


def parse_payment_reply(payload: Any) -> str:
    """Interpret a decrypted wallet reply and return the payment preimage.

    Raises:
        PaymentRejectedError: If the wallet reported an error.
        InvalidPaymentReplyError: If the reply is not a ``pay_invoice``
            result carrying a preimage.
    """
    if not isinstance(payload, dict) or payload.get("result_type") != PAY_INVOICE:
        raise InvalidPaymentReplyError("Invalid payment reply")
    error = payload.get("error")
    if error:
        message = error.get("message") if isinstance(error, dict) else None
        raise PaymentRejectedError(message or "Error from the wallet")
    result = payload.get("result")
    preimage = result.get("preimage") if isinstance(result, dict) else None
    if not preimage or not isinstance(preimage, str):
        raise InvalidPaymentReplyError("Invalid payment reply")
    return preimage
