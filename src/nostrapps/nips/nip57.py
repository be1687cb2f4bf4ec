"""
NIP-57 zap receipt parsing.

Extracts the parties, the zapped target, and the paid amount from a
kind-9735 receipt. The amount is read from the BOLT-11 invoice in the
``bolt11`` tag with the ``bolt11`` package.

A receipt is dropped (``None``) when:

* it has no ``e`` tag (zaps of profiles are not shown in feeds), or
* its invoice cannot be decoded.

An invoice that decodes but carries no amount counts as zero.

See Also:
    [augment_zaps()][nostrapps.services.augment.augment_zaps]: Resolves
        targets and profiles for the parsed receipts.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

import bolt11


if TYPE_CHECKING:
    from nostrapps.models.event import Event


logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class ZapFields:
    """Fields of a zap receipt before target and profile resolution."""

    amount_msat: int
    description: dict[str, Any]
    target_event_id: str
    target_address: str
    target_pubkey: str
    provider_pubkey: str
    sender_pubkey: str


def invoice_amount_msat(invoice: str) -> int | None:
    """Return the amount of a BOLT-11 invoice in millisatoshi.

    Returns 0 for invoices without an amount and ``None`` when the invoice
    cannot be decoded.
    """
    try:
        decoded = bolt11.decode(invoice)
    except Exception as e:  # Intentionally broad: the decoder raises assorted parse errors
        logger.debug("bolt11_invalid error=%s", e)
        return None
    return int(decoded.amount_msat or 0)


def parse_zap_description(event: Event) -> dict[str, Any]:
    """Return the zap request embedded in the ``description`` tag."""
    raw = event.get_tag_value("description")
    if not raw:
        return {}
    try:
        data = json.loads(raw)
    except (json.JSONDecodeError, RecursionError):
        logger.warning("zap_description_invalid id=%s", event.id)
        return {}
    return data if isinstance(data, dict) else {}


def parse_zap_receipt(event: Event) -> ZapFields | None:
    """Extract the fields of a kind-9735 receipt, or ``None`` to drop it."""
    target_event_id = event.get_tag_value("e")
    if not target_event_id:
        return None
    amount = invoice_amount_msat(event.get_tag_value("bolt11"))
    if amount is None:
        logger.info("zap_dropped id=%s reason=invalid_invoice", event.id)
        return None
    description = parse_zap_description(event)
    sender = description.get("pubkey")
    return ZapFields(
        amount_msat=amount,
        description=description,
        target_event_id=target_event_id,
        target_address=event.get_tag_value("a"),
        target_pubkey=event.get_tag_value("p"),
        provider_pubkey=event.pubkey,
        sender_pubkey=sender if isinstance(sender, str) else "",
    )
