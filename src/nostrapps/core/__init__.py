"""Core layer: infrastructure shared by every engine component.

Sits in the middle of the package -- depends only on ``nostrapps.models``
and is depended upon by ``nostrapps.services``.

Attributes:
    ClientConfig: Pydantic configuration of a client.
        See [ClientConfig][nostrapps.core.config.ClientConfig].
    CacheLayer: The session caches (events, addresses, kind apps, profiles)
        behind [MemoryCache][nostrapps.core.cache.MemoryCache].
    RelayPool: Relay transport protocol consumed by the engine.
        See [RelayPool][nostrapps.core.pool.RelayPool].
    Logger: Structured logger supporting key=value and JSON output modes.
        See [Logger][nostrapps.core.logger.Logger].
    MetricsServer: Prometheus ``/metrics`` HTTP endpoint.
        See [MetricsServer][nostrapps.core.metrics.MetricsServer].
    YAML: Safe YAML loading. See [load_yaml()][nostrapps.core.yaml.load_yaml].
"""

from .cache import AddressCache, CacheLayer, MemoryCache
from .config import DEFAULT_READ_RELAYS, DEFAULT_WRITE_RELAYS, ClientConfig
from .exceptions import (
    ConfigurationError,
    ConnectivityError,
    InvalidPaymentReplyError,
    MalformedIdentifierError,
    NostrAppsError,
    PaymentError,
    PaymentRejectedError,
    PaymentTimeoutError,
    ProtocolError,
    PublishingError,
    UnresolvedAddressError,
)
from .logger import Logger, StructuredFormatter, format_kv_pairs
from .metrics import (
    CACHE_LOOKUPS,
    RELAY_QUERIES,
    SUBSCRIPTION_DELIVERIES,
    MetricsConfig,
    MetricsServer,
    start_metrics_server,
)
from .pool import RelayPool, SubscriptionHandle
from .yaml import load_yaml


__all__ = [
    "CACHE_LOOKUPS",
    "DEFAULT_READ_RELAYS",
    "DEFAULT_WRITE_RELAYS",
    "RELAY_QUERIES",
    "SUBSCRIPTION_DELIVERIES",
    "AddressCache",
    "CacheLayer",
    "ClientConfig",
    "ConfigurationError",
    "ConnectivityError",
    "InvalidPaymentReplyError",
    "Logger",
    "MalformedIdentifierError",
    "MemoryCache",
    "MetricsConfig",
    "MetricsServer",
    "NostrAppsError",
    "PaymentError",
    "PaymentRejectedError",
    "PaymentTimeoutError",
    "ProtocolError",
    "PublishingError",
    "RelayPool",
    "StructuredFormatter",
    "SubscriptionHandle",
    "UnresolvedAddressError",
    "format_kv_pairs",
    "load_yaml",
    "start_metrics_server",
]
