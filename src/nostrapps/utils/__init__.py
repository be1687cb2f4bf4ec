"""Adapters binding the engine to ``nostr_sdk``.

Attributes:
    NostrSdkRelayPool: Production [RelayPool][nostrapps.core.pool.RelayPool].
    KeysSigner: Local-key [Signer][nostrapps.utils.keys.Signer] with NIP-04.
"""

from .keys import ENV_PRIVATE_KEY, KeysSigner, Signer, load_keys_from_env
from .protocol import NostrSdkRelayPool, NostrSdkSubscription, create_client


__all__ = [
    "ENV_PRIVATE_KEY",
    "KeysSigner",
    "NostrSdkRelayPool",
    "NostrSdkSubscription",
    "Signer",
    "create_client",
    "load_keys_from_env",
]
