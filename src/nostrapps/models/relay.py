"""
Validated relay URL with network type detection.

Relay URLs enter the package from configuration files and from relay hints
embedded in identifiers. Configured URLs are normalized through
[Relay][nostrapps.models.relay.Relay] so the same relay is never queried
twice under two spellings, and so overlay relays can be routed through the
configured SOCKS5 proxy.

See Also:
    [ClientConfig][nostrapps.core.config.ClientConfig]: Validates every
        configured relay with [normalize_relay_url()][nostrapps.models.relay.normalize_relay_url].
    [NostrSdkRelayPool][nostrapps.utils.protocol.NostrSdkRelayPool]: Uses
        [Relay.is_overlay][nostrapps.models.relay.Relay.is_overlay] to pick
        the proxy for Tor, I2P, and Lokinet relays.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from ipaddress import ip_address
from typing import Any, ClassVar

from rfc3986 import uri_reference
from rfc3986.exceptions import UnpermittedComponentError, ValidationError
from rfc3986.validators import Validator

from .constants import NetworkType


@dataclass(frozen=True, slots=True)
class Relay:
    """A relay endpoint the client reads from, searches, or publishes to.

    The URL is normalized on construction: clearnet relays get ``wss://``,
    overlay relays ``ws://``, default ports and trailing slashes are dropped.
    Paths are kept because some endpoints (``wss://relay.nostr.band/all``)
    expose different indexes under different paths.

    Attributes:
        url: Fully normalized URL including scheme.
        network: Detected ``NetworkType`` enum value.
        scheme: URL scheme (``ws`` or ``wss``).
        host: Hostname or IP address (brackets stripped for IPv6).
        port: Explicit port number, or ``None`` when using the default.
        path: URL path component, or ``None``.

    Raises:
        ValueError: If the URL is malformed, uses an unsupported scheme,
            resolves to a local/private address, or contains null bytes.

    Examples:
        ```python
        Relay("wss://relay.nostr.band/").url     # 'wss://relay.nostr.band'
        Relay("wss://relay.nostr.band/all").path  # '/all'
        Relay("wss://abc123.onion").is_overlay   # True
        ```
    """

    # Input fields
    raw_url: str = field(repr=False)

    # Computed fields (set in __post_init__)
    url: str = field(init=False)
    network: NetworkType = field(init=False)
    scheme: str = field(init=False)
    host: str = field(init=False)
    port: int | None = field(init=False)
    path: str | None = field(init=False)

    # Standard default ports for WebSocket schemes
    _PORT_WS: ClassVar[int] = 80
    _PORT_WSS: ClassVar[int] = 443

    # Overlay network TLD-to-NetworkType mapping
    _NETWORK_TLDS: ClassVar[dict[str, NetworkType]] = {
        ".onion": NetworkType.TOR,
        ".i2p": NetworkType.I2P,
        ".loki": NetworkType.LOKI,
    }

    def __post_init__(self) -> None:
        """Parse and validate the raw URL, populating all computed fields.

        Raises:
            ValueError: If the URL is invalid, local, or contains null bytes.
        """
        if "\x00" in self.raw_url:
            raise ValueError("Relay URL contains null bytes")

        parsed = self._parse(self.raw_url)

        if parsed["network"] == NetworkType.LOCAL:
            raise ValueError("Local addresses not allowed")
        if parsed["network"] == NetworkType.UNKNOWN:
            raise ValueError(f"Invalid host: '{parsed['host']}'")

        # Bypass frozen restriction to set computed fields
        object.__setattr__(self, "url", f"{parsed['scheme']}://{parsed['url_without_scheme']}")
        object.__setattr__(self, "network", parsed["network"])
        object.__setattr__(self, "scheme", parsed["scheme"])
        object.__setattr__(self, "host", parsed["host"])
        object.__setattr__(self, "port", parsed["port"])
        object.__setattr__(self, "path", parsed["path"])

    @staticmethod
    def _detect_network(host: str) -> NetworkType:
        """Classify a hostname into a network type.

        Checks overlay network TLDs first, then tests whether the host
        is a non-global IP (private, loopback, reserved), and finally validates standard
        domain name format.

        Args:
            host: Hostname or IP address string to classify.

        Returns:
            The detected NetworkType. Returns ``UNKNOWN`` for empty or
            invalid hostnames, and ``LOCAL`` for private/reserved IPs.
        """
        if not host:
            return NetworkType.UNKNOWN

        host_bare = host.lower().strip("[]")

        for tld, network in Relay._NETWORK_TLDS.items():
            if host_bare.endswith(tld):
                return network

        if host_bare in ("localhost", "localhost.localdomain"):
            return NetworkType.LOCAL

        try:
            ip = ip_address(host_bare)
            return NetworkType.CLEARNET if ip.is_global else NetworkType.LOCAL
        except ValueError:
            pass

        if "." not in host_bare:
            return NetworkType.UNKNOWN

        labels = host_bare.split(".")
        valid = all(
            label and not label.startswith("-") and not label.endswith("-") for label in labels
        )
        return NetworkType.CLEARNET if valid else NetworkType.UNKNOWN

    @staticmethod
    def _parse(raw: str) -> dict[str, Any]:
        """Parse and normalize a raw relay URL string.

        Validates the URI structure using RFC 3986, detects the network
        type, enforces the correct WebSocket scheme, normalizes the path,
        and strips default ports.

        Args:
            raw: Raw URL string (e.g., ``"ws://relay.example.com:8080/path"``).

        Returns:
            Dictionary containing ``url_without_scheme``, ``scheme``,
            ``host``, ``port``, ``path``, and ``network``.

        Raises:
            ValueError: If the scheme is not ``ws``/``wss`` or the URI is invalid.
        """
        uri = uri_reference(raw.strip()).normalize()

        validator = (
            Validator()
            .require_presence_of("scheme", "host")
            .allow_schemes("ws", "wss")
            .check_validity_of("scheme", "host", "port", "path")
        )

        try:
            validator.validate(uri)
        except UnpermittedComponentError:
            raise ValueError("Invalid scheme: must be ws or wss") from None
        except ValidationError as e:
            raise ValueError(f"Invalid URL: {e}") from None

        # Relay URLs must not contain query strings or fragments
        if uri.query:
            raise ValueError(f"Relay URL must not contain a query string: ?{uri.query}")
        if uri.fragment:
            raise ValueError(f"Relay URL must not contain a fragment: #{uri.fragment}")

        port = int(uri.port) if uri.port else None
        host = uri.host.strip("[]")

        # Collapse duplicate slashes and strip trailing slash
        path = uri.path or ""
        while "//" in path:
            path = path.replace("//", "/")
        path = path.rstrip("/") or None

        # Clearnet requires TLS; overlay networks handle encryption themselves
        network = Relay._detect_network(host)
        scheme = "wss" if network == NetworkType.CLEARNET else "ws"

        # Re-bracket IPv6 addresses for the final URL
        formatted_host = f"[{host}]" if ":" in host else host

        # Omit the port when it matches the default for the scheme
        default_port = Relay._PORT_WSS if scheme == "wss" else Relay._PORT_WS
        if port and port != default_port:
            url_without_scheme = f"{formatted_host}:{port}{path or ''}"
        else:
            url_without_scheme = f"{formatted_host}{path or ''}"

        return {
            "url_without_scheme": url_without_scheme,
            "scheme": scheme,
            "host": host,
            "port": port,
            "path": path,
            "network": network,
        }

    def __str__(self) -> str:
        return self.url

    @property
    def is_overlay(self) -> bool:
        """True for Tor, I2P, and Lokinet relays, which need a SOCKS5 proxy."""
        return self.network in (NetworkType.TOR, NetworkType.I2P, NetworkType.LOKI)


def normalize_relay_url(url: str) -> str:
    """Return the normalized form of *url*.

    Raises:
        ValueError: If the URL is not a valid public relay URL.
    """
    return Relay(url).url
