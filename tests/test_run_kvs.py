import json
from pathlib import Path
from unittest.mock import MagicMock, patch

import httplib2
import pytest
from google.auth.exceptions import GoogleAuthError
from googleapiclient.errors import HttpError

import run_kvs
from src.kvs.config import KvsConfig
from src.kvs.store import Kvs


@pytest.fixture
def kvs(memory_store):
    return Kvs(memory_store)


@pytest.fixture
def patched_cli(kvs):
    """Run the CLI against the in-memory store without touching the logs."""

    async def fake_create_kvs(config):
        await kvs.init()
        return kvs

    config = KvsConfig("spreadsheet", Path("/mock/credentials.json"))
    with (
        patch("run_kvs.load_config_file", return_value=config) as mock_load,
        patch("run_kvs.create_kvs", side_effect=fake_create_kvs),
        patch("run_kvs.setup_logging") as mock_setup,
        patch("run_kvs.start_logging_listener"),
        patch("run_kvs.stop_logging_listener") as mock_stop,
    ):
        yield MagicMock(load=mock_load, setup=mock_setup, stop=mock_stop)


def test_parser_requires_a_command():
    with pytest.raises(SystemExit):
        run_kvs.build_parser().parse_args([])


def test_parser_range_prefix_defaults_to_everything():
    args = run_kvs.build_parser().parse_args(["range"])
    assert args.prefix == "[]"


@pytest.mark.asyncio
async def test_get_prints_json_value(patched_cli, capsys):
    status = await run_kvs.main(["--config_path", "cfg.txt", "get", '["config"]'])

    assert status == 0
    assert json.loads(capsys.readouterr().out) == "dark"
    patched_cli.load.assert_called_once_with(Path("cfg.txt"))
    patched_cli.stop.assert_called_once()


@pytest.mark.asyncio
async def test_get_missing_prints_null(patched_cli, capsys):
    status = await run_kvs.main(["get", '["nope"]'])

    assert status == 0
    assert capsys.readouterr().out.strip() == "null"


@pytest.mark.asyncio
async def test_range_prints_one_line_per_entry(patched_cli, capsys):
    status = await run_kvs.main(["range", '["users"]'])

    lines = capsys.readouterr().out.splitlines()
    assert status == 0
    assert [json.loads(line) for line in lines] == [
        [["users", 1], {"name": "alice"}],
        [["users", 1, "tags"], ["admin"]],
        [["users", 2], {"name": "bob"}],
    ]


@pytest.mark.asyncio
async def test_put_and_delete(patched_cli, kvs, memory_store):
    assert await run_kvs.main(["put", '["users", 3]', '{"name": "carol"}']) == 0
    assert kvs.get(["users", 3]) == {"name": "carol"}
    assert memory_store.table[-1] == ['["users",3]', '{"name":"carol"}']

    assert await run_kvs.main(["delete", '["users", 3]']) == 0
    assert kvs.get(["users", 3]) is None


@pytest.mark.asyncio
async def test_invalid_key_reports_error(patched_cli, capsys):
    status = await run_kvs.main(["get", "not json"])

    assert status == 1
    assert "Error:" in capsys.readouterr().err
    patched_cli.stop.assert_called_once()


@pytest.mark.asyncio
async def test_empty_key_reports_error(patched_cli, capsys):
    status = await run_kvs.main(["get", "[]"])

    assert status == 1
    assert "key has no elements" in capsys.readouterr().err


@pytest.fixture
def failing_cli():
    """Run the CLI with a store factory that raises the given error."""
    config = KvsConfig("spreadsheet", Path("/mock/credentials.json"))
    with (
        patch("run_kvs.load_config_file", return_value=config),
        patch("run_kvs.create_kvs") as mock_create,
        patch("run_kvs.setup_logging"),
        patch("run_kvs.start_logging_listener"),
        patch("run_kvs.stop_logging_listener") as mock_stop,
    ):
        yield MagicMock(create=mock_create, stop=mock_stop)


@pytest.mark.asyncio
async def test_sheets_http_error_reports_error(failing_cli, capsys):
    failing_cli.create.side_effect = HttpError(
        httplib2.Response({"status": 403}),
        b"forbidden",
    )

    status = await run_kvs.main(["get", '["a"]'])

    assert status == 1
    assert "Error:" in capsys.readouterr().err
    failing_cli.stop.assert_called_once()


@pytest.mark.asyncio
async def test_credentials_error_reports_error(failing_cli, capsys):
    failing_cli.create.side_effect = GoogleAuthError("bad credentials")

    status = await run_kvs.main(["get", '["a"]'])

    assert status == 1
    assert "bad credentials" in capsys.readouterr().err
    failing_cli.stop.assert_called_once()
