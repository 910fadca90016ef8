"""This module provides the command line entry point for the key-value
store.
"""

import argparse
import asyncio
import json
import sys
from pathlib import Path
from typing import Optional

from google.auth.exceptions import GoogleAuthError
from googleapiclient.errors import HttpError

from src.custom_data_structures.Trie.Trie import TrieError
from src.kvs.codec import CodecError, decode_key, decode_value
from src.kvs.config import (
    ConfigBoolParsingError,
    ConfigNotFoundError,
    load_config_file,
)
from src.kvs.logger import (
    LOG_FILE_PATH,
    setup_logging,
    start_logging_listener,
    stop_logging_listener,
)
from src.kvs.row_store import RowStoreError
from src.kvs.store import create_kvs

CONFIG_PATH = Path("config.txt")


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser of the command line interface."""
    parser = argparse.ArgumentParser(
        description="Read and write a spreadsheet-backed key-value store.",
    )
    parser.add_argument(
        "--config_path",
        type=str,
        default=str(Path(__file__).parent / CONFIG_PATH),
        help="Optional path to the config file.",
        required=False,
    )
    parser.add_argument(
        "--log_file",
        type=str,
        default=str(LOG_FILE_PATH),
        help="Where to write the log file.",
        required=False,
    )
    commands = parser.add_subparsers(dest="command", required=True)

    get_parser = commands.add_parser("get", help="Print the value of a key.")
    get_parser.add_argument("key", help='JSON array, e.g. \'["user", 1]\'')

    range_parser = commands.add_parser(
        "range",
        help="Print every entry whose key starts with a prefix.",
    )
    range_parser.add_argument(
        "prefix",
        nargs="?",
        default="[]",
        help="JSON array, all entries when omitted.",
    )

    put_parser = commands.add_parser("put", help="Store a value under a key.")
    put_parser.add_argument("key", help="JSON array.")
    put_parser.add_argument("value", help="JSON value.")

    delete_parser = commands.add_parser("delete", help="Delete a key.")
    delete_parser.add_argument("key", help="JSON array.")

    return parser


async def main(argv: Optional[list[str]] = None) -> int:
    """Run one command against the store.

    Args:
        argv (Optional[list[str]]): The arguments, sys.argv when None.

    Returns:
        int: The process exit status.

    """
    args = build_parser().parse_args(argv)

    setup_logging(Path(args.log_file))
    start_logging_listener()
    try:
        config = load_config_file(Path(args.config_path))
        kvs = await create_kvs(config)

        if args.command == "get":
            value = kvs.get(decode_key(args.key))
            print(json.dumps(value, ensure_ascii=False))
        elif args.command == "range":
            for key, value in kvs.items(decode_key(args.prefix)):
                print(json.dumps([list(key), value], ensure_ascii=False))
        elif args.command == "put":
            await kvs.put(decode_key(args.key), decode_value(args.value))
        elif args.command == "delete":
            await kvs.delete(decode_key(args.key))
        return 0

    except (
        CodecError,
        ConfigBoolParsingError,
        ConfigNotFoundError,
        FileNotFoundError,
        GoogleAuthError,
        HttpError,
        RowStoreError,
        TrieError,
        ValueError,
    ) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    finally:
        stop_logging_listener()


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
