"""Key-value store that mirrors a row store into an in-memory KeyTrie."""

import logging
import time
from datetime import datetime
from typing import Any, Optional

from src.custom_data_structures.Trie.Trie import KeyTrie

from .codec import decode_key, decode_value, encode_key, encode_value
from .config import KvsConfig
from .logger import log_operation
from .row_store import Row, RowStore, SheetsRowStore

logger = logging.getLogger(__name__)

KVS_HEADER_VALUES = ["key", "value"]


class KvEntry:
    """A decoded value together with the row that stores it."""

    def __init__(self, data: Any, row: Row) -> None:
        self.data = data
        self.row = row

    def __repr__(self) -> str:
        return f"KvEntry(data={self.data!r}, row={self.row!r})"


def validate_header(header_values: Optional[list[str]]) -> bool:
    """Return True if the header row is exactly `key`, `value`."""
    return header_values is not None and header_values == KVS_HEADER_VALUES


async def create_kvs(
    config: KvsConfig,
    row_store: Optional[RowStore] = None,
) -> "Kvs":
    """Build a key-value store and load every row into memory.

    Args:
        config (KvsConfig): The store configuration.
        row_store (Optional[RowStore]): The table to mirror. A
        SheetsRowStore is built from `config` when None.

    Returns:
        Kvs: The initialized store.

    """
    if row_store is None:
        row_store = SheetsRowStore.from_config(config)
    kvs = Kvs(row_store, log_operations=config.log_operations)
    await kvs.init()
    return kvs


class Kvs:
    """Key-value store over composite keys.

    Reads are served from the trie. Writes go to the row store first and
    are then applied to the trie.
    """

    def __init__(self, row_store: RowStore, log_operations: bool = False):
        self.trie = KeyTrie()
        self.row_store = row_store
        self.log_operations = log_operations

    def _log(self, operation: str, key: Any, start_time: float) -> None:
        if not self.log_operations:
            return
        log_operation(
            datetime.now().strftime("%Y-%m-%d %H:%M:%S"),
            operation,
            repr(key),
            (time.perf_counter() - start_time) * 1000,
        )

    async def init(self) -> None:
        """Connect to the row store, bootstrap its header and load the rows.

        Raises:
            CodecError: If a row holds a key or value that is not valid JSON.

        """
        await self.row_store.connect()

        header = await self.row_store.get_header_row()
        if not validate_header(header):
            logger.info("Writing header row %s", KVS_HEADER_VALUES)
            await self.row_store.set_header_row(KVS_HEADER_VALUES)

        loaded = 0
        for row in await self.row_store.get_rows():
            if not row.key:
                logger.warning("Skipping row %d without a key", row.row_number)
                continue
            key = decode_key(row.key)
            self.trie.set(key, KvEntry(decode_value(row.value), row))
            loaded += 1
        logger.info("Loaded %d rows into the trie", loaded)

    def get(self, key: Any) -> Any:
        """Return the value stored under `key`, or None."""
        start_time = time.perf_counter()
        entry = self.trie.get(key)
        self._log("get", key, start_time)
        if entry is None:
            return None
        return entry.data

    def get_range(self, key: Any) -> list[Any]:
        """Return the values of every key starting with `key`."""
        start_time = time.perf_counter()
        entries = self.trie.get_range(key)
        self._log("get_range", key, start_time)
        return [entry.data for entry in entries]

    def items(self, key: Any) -> list[tuple[tuple[Any, ...], Any]]:
        """Return (key, value) pairs for every key starting with `key`."""
        return [
            (entry_key, entry.data)
            for entry_key, entry in self.trie.iter_range(key)
        ]

    async def put(self, key: Any, value: Any) -> None:
        """Store `value` under `key`, adding or updating its row.

        Args:
            key (Any): A non-empty list or tuple of key segments.
            value (Any): A JSON-serializable value.

        Raises:
            CodecError: If the key or value cannot be encoded.
            TrieError: If the key is empty or invalid.

        """
        start_time = time.perf_counter()
        key_string = encode_key(key)
        data_string = encode_value(value)

        entry = self.trie.get(key)
        if entry is None or entry.row.is_deleted:
            row = await self.row_store.add_row(key_string, data_string)
            self.trie.set(key, KvEntry(value, row))
        else:
            entry.row.value = data_string
            await self.row_store.update_row(entry.row)
            self.trie.set(key, KvEntry(value, entry.row))
        self._log("put", key, start_time)

    async def delete(self, key: Any) -> None:
        """Delete the row stored under `key` and prune it from the trie.

        The in-memory entry stays readable while longer keys below it
        exist, although its row is gone. Pruning can also drop a shorter
        key whose row is still stored; that key reads as None until the
        next load, and a warning is logged for it.
        """
        start_time = time.perf_counter()
        entry = self.trie.get(key)
        if entry is None:
            return

        # Shorter keys with a live row, which the prune below may drop
        live_ancestors = []
        for length in range(1, len(key)):
            ancestor = self.trie.get(key[:length])
            if ancestor is not None and not ancestor.row.is_deleted:
                live_ancestors.append((key[:length], ancestor))

        if not entry.row.is_deleted:
            await self.row_store.delete_row(entry.row)
        self.trie.delete(key)

        for ancestor_key, ancestor in live_ancestors:
            if self.trie.get(ancestor_key) is None:
                logger.warning(
                    "Deleting %r also dropped %r from memory; "
                    "its row %d is still stored",
                    key,
                    ancestor_key,
                    ancestor.row.row_number,
                )
        self._log("delete", key, start_time)
