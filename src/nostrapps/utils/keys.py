"""Nostr key handling and event signing.

The engine never holds a private key directly: it talks to a
[Signer][nostrapps.utils.keys.Signer], which may be backed by a browser
extension, a remote bunker, or local keys. [KeysSigner][nostrapps.utils.keys.KeysSigner]
is the local implementation built on ``nostr_sdk.Keys``.

Warning:
    Private keys must **never** be stored in configuration files, source code,
    or logged to any output. Load them from environment variables or from a
    wallet connect URI held by the caller.

Examples:
    ```python
    import os

    os.environ["NOSTR_PRIVATE_KEY"] = "nsec1..."  # pragma: allowlist secret
    signer = KeysSigner.from_env()
    event = await signer.sign(1, "hello", [])
    ```
"""

from __future__ import annotations

import os
from typing import TYPE_CHECKING, Protocol

from nostr_sdk import EventBuilder, Keys, Kind, PublicKey, Tag, nip04_decrypt, nip04_encrypt

from nostrapps.models.event import Event


if TYPE_CHECKING:
    from collections.abc import Sequence


ENV_PRIVATE_KEY = "NOSTR_PRIVATE_KEY"  # pragma: allowlist secret  # Default env var name


class Signer(Protocol):
    """Signing and NIP-04 encryption collaborator."""

    @property
    def public_key(self) -> str: ...

    async def encrypt(self, public_key: str, plaintext: str) -> str: ...

    async def decrypt(self, public_key: str, ciphertext: str) -> str: ...

    async def sign(self, kind: int, content: str, tags: Sequence[Sequence[str]]) -> Event: ...


def load_keys_from_env(env_var: str = ENV_PRIVATE_KEY) -> Keys:
    """Load Nostr keys from an environment variable.

    Accepts an nsec1 bech32 or a 64-char hex private key.

    Raises:
        ValueError: If the environment variable is not set or is empty.
        nostr_sdk.NostrError: If the key value is malformed.
    """
    value = os.getenv(env_var)

    if not value:
        raise ValueError(f"{env_var} environment variable is required")

    return Keys.parse(value)


class KeysSigner:
    """[Signer][nostrapps.utils.keys.Signer] backed by local ``nostr_sdk.Keys``."""

    def __init__(self, keys: Keys) -> None:
        self._keys = keys

    @classmethod
    def from_secret(cls, secret: str) -> KeysSigner:
        """Build a signer from an nsec1 or hex private key."""
        return cls(Keys.parse(secret))

    @classmethod
    def from_env(cls, env_var: str = ENV_PRIVATE_KEY) -> KeysSigner:
        return cls(load_keys_from_env(env_var))

    @property
    def public_key(self) -> str:
        return self._keys.public_key().to_hex()

    async def encrypt(self, public_key: str, plaintext: str) -> str:
        return nip04_encrypt(self._keys.secret_key(), PublicKey.parse(public_key), plaintext)

    async def decrypt(self, public_key: str, ciphertext: str) -> str:
        return nip04_decrypt(self._keys.secret_key(), PublicKey.parse(public_key), ciphertext)

    async def sign(self, kind: int, content: str, tags: Sequence[Sequence[str]]) -> Event:
        builder = EventBuilder(Kind(kind), content).tags([Tag.parse(list(t)) for t in tags])
        return Event.from_nostr(builder.sign_with_keys(self._keys))
