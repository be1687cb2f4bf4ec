"""Unit tests for the nostrapps CLI (``python -m nostrapps``)."""

import argparse
import json
from pathlib import Path
from unittest.mock import patch

import pytest

from nostrapps.__main__ import (
    DEFAULT_CONFIG,
    _load_yaml_dict,
    _pubkey,
    cmd_apps,
    cmd_resolve,
    cmd_search,
    main,
    parse_args,
)
from nostrapps.client import NostrAppsClient
from nostrapps.core.exceptions import MalformedIdentifierError, NostrAppsError
from nostrapps.nips import nip19


PK_BOB = "b" * 64


@pytest.fixture
def client(fake_pool) -> NostrAppsClient:
    return NostrAppsClient(fake_pool)


def _lines(capsys: pytest.CaptureFixture[str]) -> list[dict]:
    return [json.loads(line) for line in capsys.readouterr().out.splitlines()]


class TestParseArgs:
    def test_defaults(self) -> None:
        args = parse_args(["resolve", "note1x"])
        assert args.command == "resolve"
        assert args.config == DEFAULT_CONFIG
        assert args.log_level == "WARNING"

    def test_apps_without_identifier(self) -> None:
        args = parse_args(["apps", "--limit", "3"])
        assert args.identifier is None
        assert args.limit == 3

    def test_search(self) -> None:
        args = parse_args(["--config", "x.yaml", "search", "long-notes", "bitcoin"])
        assert args.config == Path("x.yaml")
        assert args.target == "long-notes"
        assert args.query == "bitcoin"

    def test_invalid_choice(self) -> None:
        with pytest.raises(SystemExit):
            parse_args(["watch", "followers", PK_BOB])

    def test_command_required(self) -> None:
        with pytest.raises(SystemExit):
            parse_args([])


class TestHelpers:
    def test_load_missing_config(self, tmp_path: Path) -> None:
        assert _load_yaml_dict(tmp_path / "absent.yaml") == {}

    def test_pubkey_from_npub_and_hex(self) -> None:
        assert _pubkey(nip19.encode_npub(PK_BOB)) == PK_BOB
        assert _pubkey(PK_BOB) == PK_BOB

    def test_pubkey_rejects_garbage(self) -> None:
        with pytest.raises(MalformedIdentifierError):
            _pubkey("nothing")


class TestCommands:
    async def test_resolve_prints_event(self, client, fake_pool, make_event, capsys) -> None:
        note = make_event(1, content="hello")
        fake_pool.events = [note]
        args = argparse.Namespace(identifier=f"see nostr:{nip19.encode_note(note.id)}")

        assert await cmd_resolve(client, args) == 0
        assert _lines(capsys) == [note.to_dict()]

    async def test_resolve_without_identifier(self, client, capsys) -> None:
        assert await cmd_resolve(client, argparse.Namespace(identifier="plain text")) == 1
        assert capsys.readouterr().out == ""

    async def test_resolve_not_found(self, client) -> None:
        args = argparse.Namespace(identifier=nip19.encode_note("f" * 64))
        assert await cmd_resolve(client, args) == 1

    async def test_apps_directory(self, client, fake_pool, make_event, capsys) -> None:
        fake_pool.events = [
            make_event(
                31990,
                tags=[["d", "h"], ["k", "1"], ["k", "1"], ["web", "https://app/<bech32>"]],
                content='{"name": "App"}',
            )
        ]

        assert await cmd_apps(client, argparse.Namespace(identifier=None, limit=None)) == 0
        (record,) = _lines(capsys)
        assert record["app_id"] == "App"
        assert record["kinds"] == [1]
        assert record["handlers"][0]["event_url"] is None

    async def test_search_notes(self, client, fake_pool, make_event, capsys) -> None:
        note = make_event(1, content="bitcoin fixes this")
        fake_pool.events = [note]
        args = argparse.Namespace(target="notes", query="bitcoin", limit=None)

        assert await cmd_search(client, args) == 0
        assert [r["id"] for r in _lines(capsys)] == [note.id]


class TestMain:
    async def test_errors_exit_with_one(self, client, tmp_path: Path) -> None:
        config = tmp_path / "client.yaml"
        config.write_text("default_limit: 5\n")

        async def fail(client, args):
            raise NostrAppsError("boom")

        with (
            patch.object(NostrAppsClient, "from_dict", return_value=client),
            patch.dict("nostrapps.__main__.COMMANDS", {"resolve": fail}),
        ):
            code = await main(["--config", str(config), "resolve", "x"])

        assert code == 1

    async def test_runs_command_and_closes(self, client, fake_pool, tmp_path: Path) -> None:
        with patch.object(NostrAppsClient, "from_dict", return_value=client) as from_dict:
            code = await main(["--config", str(tmp_path / "none.yaml"), "resolve", "plain"])

        assert code == 1
        from_dict.assert_called_once_with({})
        assert fake_pool.closed
