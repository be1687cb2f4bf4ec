"""CLI entry point for nostrapps.

Runs one client operation against the configured relays and prints the
result as JSON lines. ``watch`` keeps a subscription open until interrupted
and, when enabled, serves Prometheus metrics meanwhile.

Examples:
    ```bash
    python -m nostrapps resolve naddr1...
    python -m nostrapps apps "check out nostr:nevent1... !"
    python -m nostrapps search notes bitcoin --limit 5
    python -m nostrapps watch contacts npub1... --config config/client.yaml
    ```
"""

import argparse
import asyncio
import json
import logging
import signal
import sys
from pathlib import Path
from typing import Any

from nostrapps.client import NostrAppsClient
from nostrapps.core.exceptions import NostrAppsError
from nostrapps.core.logger import Logger, StructuredFormatter
from nostrapps.core.metrics import start_metrics_server
from nostrapps.core.yaml import load_yaml
from nostrapps.models.app import AppRegistry
from nostrapps.models.event import Event
from nostrapps.nips import nip19


DEFAULT_CONFIG = Path("config") / "client.yaml"

SEARCH_TARGETS = ("profiles", "notes", "long-notes", "live", "communities")

WATCH_CHANNELS = ("profile", "contacts", "bookmarks")

logger = Logger("cli")


def _emit(record: dict[str, Any]) -> None:
    print(json.dumps(record, ensure_ascii=False, default=str))  # noqa: T201


def _registry_records(registry: AppRegistry) -> list[dict[str, Any]]:
    return [
        {
            "app_id": app.app_id,
            "kinds": sorted(set(app.kinds)),
            "platforms": sorted(set(app.platforms)),
            "handlers": [
                {"naddr": h.naddr, "name": h.name, "event_url": h.event_url}
                for h in app.handlers
            ],
        }
        for app in registry.apps.values()
    ]


def _pubkey(value: str) -> str:
    address = nip19.parse_address(value)
    pubkey = address.pubkey or address.event_id
    if not pubkey:
        raise NostrAppsError(f"not a public key: {value}")
    return pubkey


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------


async def cmd_resolve(client: NostrAppsClient, args: argparse.Namespace) -> int:
    identifier = nip19.find_identifier(args.identifier, allow_hex=True)
    if not identifier:
        logger.error("identifier_not_found", text=args.identifier)
        return 1
    event = await client.resolve(identifier)
    if event is None:
        logger.error("event_not_found", identifier=identifier)
        return 1
    _emit(event.to_dict())
    return 0


async def cmd_apps(client: NostrAppsClient, args: argparse.Namespace) -> int:
    if args.identifier is None:
        registry = await client.fetch_apps(args.limit)
    else:
        identifier = nip19.find_identifier(args.identifier, allow_hex=True)
        if not identifier:
            logger.error("identifier_not_found", text=args.identifier)
            return 1
        registry = await client.apps_for(identifier)
    for record in _registry_records(registry):
        _emit(record)
    return 0


async def cmd_search(client: NostrAppsClient, args: argparse.Namespace) -> int:
    events: list[Event]
    if args.target == "profiles":
        profiles = await client.search_profiles(args.query, args.limit)
        events = [p.event for p in profiles]
    elif args.target == "notes":
        events = [n.event for n in await client.search_notes(args.query, args.limit)]
    elif args.target == "long-notes":
        events = [n.event for n in await client.search_long_notes(args.query, args.limit)]
    elif args.target == "live":
        events = [e.event for e in await client.search_live_events(args.query, args.limit)]
    else:
        events = [c.event for c in await client.search_communities(args.query, args.limit)]
    for event in events:
        _emit(event.to_dict())
    return 0


async def cmd_watch(client: NostrAppsClient, args: argparse.Namespace) -> int:
    pubkey = _pubkey(args.pubkey)

    if args.channel == "profile":
        subscription: Any = await client.subscribe_profiles([pubkey])
    elif args.channel == "contacts":
        subscription = await client.subscribe_contact_list(pubkey)
    else:
        subscription = await client.subscribe_bookmark_list(pubkey)

    metrics_config = client.config.metrics
    metrics_server = await start_metrics_server(metrics_config)
    if metrics_config.enabled:
        logger.info(
            "metrics_server_started",
            host=metrics_config.host,
            port=metrics_config.port,
            path=metrics_config.path,
        )

    stop = asyncio.Event()

    def handle_signal(sig: signal.Signals) -> None:
        logger.info("shutdown_signal", signal=sig.name)
        stop.set()

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, handle_signal, sig)

    async def forward() -> None:
        async for record in subscription.updates():
            _emit({"channel": subscription.name, "event": record.event.to_dict()})

    forwarder = asyncio.create_task(forward())
    try:
        await stop.wait()
    finally:
        forwarder.cancel()
        await asyncio.gather(forwarder, return_exceptions=True)
        await metrics_server.stop()
        if metrics_config.enabled:
            logger.info("metrics_server_stopped")
    return 0


COMMANDS = {
    "resolve": cmd_resolve,
    "apps": cmd_apps,
    "search": cmd_search,
    "watch": cmd_watch,
}


# ---------------------------------------------------------------------------
# Setup
# ---------------------------------------------------------------------------


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(prog="nostrapps", description="Nostr apps client")
    parser.add_argument(
        "--config",
        type=Path,
        default=DEFAULT_CONFIG,
        help=f"Client config path (default: {DEFAULT_CONFIG})",
    )
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default="WARNING",
        help="Log level (default: WARNING)",
    )

    sub = parser.add_subparsers(dest="command", required=True)

    resolve = sub.add_parser("resolve", help="Resolve an identifier to its event")
    resolve.add_argument("identifier", help="Bech32 identifier, hex id, or text containing one")

    apps = sub.add_parser("apps", help="List applications able to open an event")
    apps.add_argument("identifier", nargs="?", help="Target; omit to list the app directory")
    apps.add_argument("--limit", type=int, default=None, help="Directory size")

    search = sub.add_parser("search", help="Full-text search")
    search.add_argument("target", choices=SEARCH_TARGETS)
    search.add_argument("query")
    search.add_argument("--limit", type=int, default=None)

    watch = sub.add_parser("watch", help="Follow a live subscription until interrupted")
    watch.add_argument("channel", choices=WATCH_CHANNELS)
    watch.add_argument("pubkey", help="npub, nprofile, or hex public key")

    return parser.parse_args(argv)


def setup_logging(level: str) -> None:
    """Configure the root logger with structured formatting on stderr."""
    handler = logging.StreamHandler()
    handler.setFormatter(StructuredFormatter())
    logging.root.addHandler(handler)
    logging.root.setLevel(getattr(logging, level))


def _load_yaml_dict(path: Path) -> dict[str, Any]:
    """Load a YAML file as a dict, returning ``{}`` if the file does not exist."""
    if not path.exists():
        logger.info("config_not_found", path=str(path))
        return {}
    return load_yaml(path)


async def main(argv: list[str] | None = None) -> int:
    """Main entry point: parse args, build the client, run the command."""
    args = parse_args(argv)
    setup_logging(args.log_level)

    try:
        client = NostrAppsClient.from_dict(_load_yaml_dict(args.config))
        async with client:
            return await COMMANDS[args.command](client, args)
    except NostrAppsError as e:
        logger.error("command_failed", command=args.command, error=str(e))
        return 1
    except KeyboardInterrupt:
        logger.info("interrupted")
        return 130


def cli() -> None:
    """Synchronous entry point for console_scripts."""
    sys.exit(asyncio.run(main()))


if __name__ == "__main__":
    cli()
