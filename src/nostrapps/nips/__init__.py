"""Nostr protocol codecs.

Attributes:
    nip19: Bech32 identifiers (npub, note, nprofile, nevent, naddr), address
        parsing, and free-text scanning.
    nip47: Wallet connect requests and replies.
    nip57: Zap receipt parsing with BOLT-11 amounts.
    nip89: Handler announcements, registries, and deep links.
"""

from .nip19 import (
    Nip19Entity,
    decode,
    encode_event_address,
    encode_naddr,
    encode_nevent,
    encode_note,
    encode_nprofile,
    encode_npub,
    find_identifier,
    identifier_type,
    parse_address,
)
from .nip47 import WalletInfo, build_pay_invoice_request, parse_payment_reply
from .nip57 import ZapFields, invoice_amount_msat, parse_zap_receipt
from .nip89 import build_registry, handler_url, parse_handler


__all__ = [
    "Nip19Entity",
    "WalletInfo",
    "ZapFields",
    "build_pay_invoice_request",
    "build_registry",
    "decode",
    "encode_event_address",
    "encode_naddr",
    "encode_nevent",
    "encode_note",
    "encode_nprofile",
    "encode_npub",
    "find_identifier",
    "handler_url",
    "identifier_type",
    "invoice_amount_msat",
    "parse_address",
    "parse_handler",
    "parse_payment_reply",
    "parse_zap_receipt",
]
