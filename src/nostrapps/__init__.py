r"""nostrapps -- client-side data access for the Nostr relay network.

Resolves NIP-19 identifiers into events, merges redundant copies fetched
from many relays, finds the applications (NIP-89) able to open an event,
keeps live subscriptions ordered and deduplicated, and pays invoices over
Nostr Wallet Connect.

Architecture follows a **diamond DAG** dependency structure where imports
flow strictly downward:

```text
              services         Fetcher, handlers, subscriptions, wallet
             /   |   \
          core  nips  utils    Infrastructure, protocol codecs, nostr_sdk adapters
             \   |   /
              models           Pure frozen dataclasses (zero I/O)
```

Attributes:
    models: Pure frozen dataclasses. No network I/O.
    core: Caches, configuration, exceptions, logging, metrics, pool protocol.
    nips: NIP-19, NIP-47, NIP-57, and NIP-89 codecs.
    utils: Relay pool and signer built on ``nostr_sdk``.
    services: The engine.
    client: [NostrAppsClient][nostrapps.client.NostrAppsClient], the
        context object wiring everything together.

Note:
    For lightweight usage, import directly from subpackages::

        from nostrapps.nips import nip19
        from nostrapps.models import Address

    Top-level imports (``from nostrapps import NostrAppsClient``) use lazy
    loading and resolve on first access.
"""

import importlib
from importlib.metadata import version as _get_version


__version__ = _get_version("nostrapps")

__all__ = [
    "Address",
    "AppRegistry",
    "CacheLayer",
    "ClientConfig",
    "Event",
    "EventFilter",
    "Fetcher",
    "HandlerResolver",
    "KeysSigner",
    "Logger",
    "NostrAppsClient",
    "NostrAppsError",
    "NostrSdkRelayPool",
    "Profile",
    "Relay",
    "Subscriptions",
    "WalletInfo",
    "WalletService",
]

_LAZY_IMPORTS: dict[str, tuple[str, str]] = {
    "CacheLayer": ("nostrapps.core", "CacheLayer"),
    "ClientConfig": ("nostrapps.core", "ClientConfig"),
    "Logger": ("nostrapps.core", "Logger"),
    "NostrAppsError": ("nostrapps.core", "NostrAppsError"),
    "Address": ("nostrapps.models", "Address"),
    "AppRegistry": ("nostrapps.models", "AppRegistry"),
    "Event": ("nostrapps.models", "Event"),
    "EventFilter": ("nostrapps.models", "EventFilter"),
    "Profile": ("nostrapps.models", "Profile"),
    "Relay": ("nostrapps.models", "Relay"),
    "WalletInfo": ("nostrapps.nips", "WalletInfo"),
    "KeysSigner": ("nostrapps.utils", "KeysSigner"),
    "NostrSdkRelayPool": ("nostrapps.utils", "NostrSdkRelayPool"),
    "Fetcher": ("nostrapps.services", "Fetcher"),
    "HandlerResolver": ("nostrapps.services", "HandlerResolver"),
    "Subscriptions": ("nostrapps.services", "Subscriptions"),
    "WalletService": ("nostrapps.services", "WalletService"),
    "NostrAppsClient": ("nostrapps.client", "NostrAppsClient"),
}


def __getattr__(name: str) -> object:
    if name in _LAZY_IMPORTS:
        module_path, attr_name = _LAZY_IMPORTS[name]
        module = importlib.import_module(module_path)
        value = getattr(module, attr_name)
        globals()[name] = value  # Cache for subsequent access
        return value
    raise AttributeError(f"module 'nostrapps' has no attribute {name!r}")


def __dir__() -> list[str]:
    return __all__
