"""nostrapps exception hierarchy.

Provides typed exceptions for every error category the client surfaces, so
callers can tell a bad identifier from an unreachable relay or a rejected
payment, and so ``CancelledError`` is never swallowed by a broad catch.

Exception hierarchy:

```text
NostrAppsError (base -- never raised directly)
├── ConfigurationError          -- config validation, missing keys, bad YAML
├── ProtocolError               -- NIP parsing/validation failures
│   └── MalformedIdentifierError -- input is neither NIP-19 nor bare hex
├── UnresolvedAddressError      -- target record could not be fetched
├── ConnectivityError           -- relay unreachable, network failures
│   └── PublishingError         -- no relay accepted an event
└── PaymentError                -- wallet connect round trip failures
    ├── PaymentTimeoutError     -- no reply before the deadline
    ├── PaymentRejectedError    -- wallet answered with an error
    └── InvalidPaymentReplyError -- reply could not be understood
```

Partial relay failures are not exceptions: a query that fails on some relays
contributes nothing and is logged, see
[collect_events()][nostrapps.services.fetcher.collect_events].

See Also:
    [parse_address()][nostrapps.nips.nip19.parse_address]: Raises
        [MalformedIdentifierError][nostrapps.core.exceptions.MalformedIdentifierError].
    [HandlerResolver.apps_for()][nostrapps.services.handlers.HandlerResolver.apps_for]:
        Raises [UnresolvedAddressError][nostrapps.core.exceptions.UnresolvedAddressError].
    [WalletService.send_payment()][nostrapps.services.wallet.WalletService.send_payment]:
        Raises [PaymentError][nostrapps.core.exceptions.PaymentError] subclasses.
"""

from __future__ import annotations


class NostrAppsError(Exception):
    """Base exception for all nostrapps errors.

    Never raised directly -- always use a specific subclass.
    """


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------


class ConfigurationError(NostrAppsError):
    """Invalid or missing configuration (YAML, env vars, CLI flags).

    See Also:
        [load_yaml()][nostrapps.core.yaml.load_yaml]: YAML loading function
            that may trigger configuration errors.
    """


# ---------------------------------------------------------------------------
# Protocol
# ---------------------------------------------------------------------------


class ProtocolError(NostrAppsError):
    """NIP parsing, validation, or compliance failure."""


class MalformedIdentifierError(ProtocolError):
    """Input is neither a decodable NIP-19 entity nor a bare 64-char hex id.

    See Also:
        [decode()][nostrapps.nips.nip19.decode]: Bech32/TLV decoder.
    """


# ---------------------------------------------------------------------------
# Resolution
# ---------------------------------------------------------------------------


class UnresolvedAddressError(NostrAppsError):
    """The record an address points to could not be fetched from any relay.

    Surfaced as "not found"; the client does not retry.
    """


# ---------------------------------------------------------------------------
# Connectivity
# ---------------------------------------------------------------------------


class ConnectivityError(NostrAppsError):
    """Base for all relay/network connectivity errors."""


class PublishingError(ConnectivityError):
    """No relay accepted an event before the publish timeout."""


# ---------------------------------------------------------------------------
# Payments
# ---------------------------------------------------------------------------


class PaymentError(NostrAppsError):
    """Base for wallet connect payment failures."""


class PaymentTimeoutError(PaymentError):
    """No wallet reply arrived in time; the payment may or may not have happened."""


class PaymentRejectedError(PaymentError):
    """The wallet replied with an error object."""


class InvalidPaymentReplyError(PaymentError):
    """The wallet reply could not be decrypted or has an unexpected shape."""
