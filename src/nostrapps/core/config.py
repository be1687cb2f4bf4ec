"""Client configuration.

[ClientConfig][nostrapps.core.config.ClientConfig] holds every tunable of
the client: which relays are read from and written to, which endpoint
serves ranked search, timeouts, fetch limits, and the metrics endpoint.
Relay URLs are normalized on validation so the same relay never appears
twice under two spellings.

Examples:
    ```yaml
    read_relays:
      - wss://relay.nostr.band
      - wss://nos.lol
    search_relay: wss://relay.nostr.band/all
    payment_timeout: 30
    metrics:
      enabled: true
      port: 8001
    ```

    ```python
    config = ClientConfig.from_yaml("config/client.yaml")
    ```
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, ValidationError, field_validator, model_validator

from nostrapps.models.relay import normalize_relay_url

from .exceptions import ConfigurationError
from .metrics import MetricsConfig
from .yaml import load_yaml


DEFAULT_READ_RELAYS: tuple[str, ...] = (
    "wss://relay.nostr.band",
    "wss://eden.nostr.land",
    "wss://nos.lol",
    "wss://relay.nostr.bg",
    "wss://nostr.mom",
)

DEFAULT_WRITE_RELAYS: tuple[str, ...] = (*DEFAULT_READ_RELAYS, "wss://nostr.mutinywallet.com")


def _normalize_relays(values: list[str]) -> list[str]:
    """Normalize and deduplicate relay URLs, keeping the first occurrence."""
    seen: dict[str, None] = {}
    for value in values:
        seen.setdefault(normalize_relay_url(value), None)
    return list(seen)


class ClientConfig(BaseModel):
    """Configuration of a [NostrAppsClient][nostrapps.client.NostrAppsClient].

    Attributes:
        read_relays: Relays queried for every fetch.
        write_relays: Relays events are published to.
        search_relay: Endpoint answering ranked ("top") and full-text queries.
        events_relay: Aggregator used for id lookups and searches.
        hint_relays: Relay hints embedded in identifiers built by the client.
        platforms: Handler platforms this client can open.
        proxy_url: SOCKS5 proxy for overlay (Tor, I2P, Lokinet) relays.
        fetch_timeout: Per-query timeout in seconds.
        publish_timeout: Timeout for publishing one event, in seconds.
        payment_timeout: Bound on a whole wallet payment round trip.
        max_authors: Cap on pubkeys per author/tag query.
        default_limit: Default ``limit`` of feed and search queries.
        apps_limit: ``limit`` of handler announcement queries.
        metrics: Prometheus endpoint configuration.
    """

    read_relays: list[str] = Field(default_factory=lambda: list(DEFAULT_READ_RELAYS), min_length=1)
    write_relays: list[str] = Field(
        default_factory=lambda: list(DEFAULT_WRITE_RELAYS), min_length=1
    )
    search_relay: str = Field(default="wss://relay.nostr.band/all")
    events_relay: str = Field(default="wss://relay.nostr.band")
    hint_relays: list[str] = Field(default_factory=lambda: ["wss://relay.nostr.band"])
    platforms: list[str] = Field(default_factory=lambda: ["web"], min_length=1)
    proxy_url: str | None = Field(default=None, description="SOCKS5 proxy for overlay relays")
    fetch_timeout: float = Field(default=10.0, gt=0)
    publish_timeout: float = Field(default=15.0, gt=0)
    payment_timeout: float = Field(default=30.0, gt=0)
    max_authors: int = Field(default=200, ge=1)
    default_limit: int = Field(default=30, ge=1)
    apps_limit: int = Field(default=50, ge=1)
    metrics: MetricsConfig = Field(default_factory=MetricsConfig)

    @field_validator("read_relays", "write_relays", "hint_relays")
    @classmethod
    def _validate_relay_list(cls, values: list[str]) -> list[str]:
        return _normalize_relays(values)

    @field_validator("search_relay", "events_relay")
    @classmethod
    def _validate_relay(cls, value: str) -> str:
        return normalize_relay_url(value)

    @model_validator(mode="after")
    def _validate_platforms(self) -> ClientConfig:
        if any(not p for p in self.platforms):
            raise ValueError("platforms must not contain empty names")
        return self

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ClientConfig:
        """Validate a configuration mapping.

        Raises:
            ConfigurationError: If validation fails.
        """
        try:
            return cls.model_validate(data)
        except ValidationError as e:
            raise ConfigurationError(str(e)) from e

    @classmethod
    def from_yaml(cls, config_path: str | Path) -> ClientConfig:
        """Load and validate a YAML configuration file.

        Raises:
            FileNotFoundError: If the file does not exist.
            ConfigurationError: If the YAML or its values are invalid.
        """
        return cls.from_dict(load_yaml(config_path))
