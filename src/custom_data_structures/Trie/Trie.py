"""This module represents the implementation of a Trie structure that's
indexed by composite keys (sequences of key segments) and used for point
lookups and prefix range scans.
"""

import math
from collections.abc import Iterator, Sequence
from typing import Any

from src.custom_data_structures.segment_map.segment_map import (
    KeyToken,
    SegmentMap,
)


class TrieError(Exception):
    """Raised when the trie is given an invalid key."""


class TrieNode:
    """Represent a node in the trie structure."""

    def __init__(self) -> None:
        """Initialize a new Trie node.

        Attributes:
            children (SegmentMap): A mapping from key segments to
            their corresponding child TrieNode instances.
            value (Any): The payload stored at this node, None when absent.

        """
        self.children = SegmentMap()
        self.value: Any = None

    def is_leaf(self) -> bool:
        """Return True if the node has no children, whatever its value."""
        return not self.children


def _check_segment(segment: Any) -> None:
    if isinstance(segment, bool) or segment is None:
        raise TrieError(f"Unsupported key segment: {segment!r}")
    if isinstance(segment, float) and not math.isfinite(segment):
        raise TrieError(f"Unsupported key segment: {segment!r}")
    if not isinstance(segment, (str, int, float, KeyToken)):
        raise TrieError(
            f"Unsupported key segment type: {type(segment).__name__}",
        )


def _as_path(key: Any, operation: str) -> Sequence[Any]:
    if not isinstance(key, (list, tuple)):
        raise TrieError(f"KeyTrie.{operation}: key is not a list or tuple")
    for segment in key:
        _check_segment(segment)
    return key


class KeyTrie:
    """Represents the composite-key trie data structure."""

    def __init__(self) -> None:
        """Initialize the root node of the Trie."""
        self.root = TrieNode()

    def set(self, key: Any, value: Any) -> None:
        """Insert or overwrite the value stored under a key.

        Args:
            key (Any): A non-empty list or tuple of key segments. A lone
            segment is treated as a one-segment key.
            value (Any): The payload. None is the same as no value.

        Raises:
            TrieError: If the key is empty or holds an unsupported segment.

        """
        if not isinstance(key, (list, tuple)):
            key = [key]
        path = _as_path(key, "set")
        if len(path) == 0:
            raise TrieError("KeyTrie.set: key has no elements")

        node = self.root
        for segment in path:
            # If the segment is not already a child, add a new TrieNode
            if segment not in node.children:
                node.children[segment] = TrieNode()
            node = node.children[segment]
        node.value = value

    def get(self, key: Any) -> Any:
        """Look up the value stored under a key.

        Args:
            key (Any): A non-empty list or tuple of key segments.

        Raises:
            TrieError: If the key is empty or not a list or tuple.

        Returns:
            Any: The stored payload, or None if there is none.

        """
        path = _as_path(key, "get")
        if len(path) == 0:
            raise TrieError("KeyTrie.get: key has no elements")

        node = self.root
        for segment in path:
            if segment not in node.children:
                return None
            node = node.children[segment]
        return node.value

    def iter_range(self, prefix: Any) -> Iterator[tuple[tuple[Any, ...], Any]]:
        """Yield every (key, value) pair whose key starts with `prefix`.

        Pairs come in pre-order: a node's own value before the values of
        its children, children visited in SegmentMap order.

        Args:
            prefix (Any): A list or tuple of key segments, possibly empty.

        Yields:
            tuple[tuple[Any, ...], Any]: The full key and its payload.

        """
        path = _as_path(prefix, "get_range")

        node = self.root
        for segment in path:
            if segment not in node.children:
                return
            node = node.children[segment]

        stack: list[tuple[TrieNode, tuple[Any, ...]]] = [(node, tuple(path))]
        while stack:
            node, node_key = stack.pop()
            if node.value is not None:
                yield node_key, node.value
            # Push in reverse so the first child is visited first
            for segment, child in reversed(list(node.children.items())):
                stack.append((child, (*node_key, segment)))

    def get_range(self, prefix: Any) -> list[Any]:
        """Return the values of every key that starts with `prefix`.

        Args:
            prefix (Any): A list or tuple of key segments. An empty prefix
            matches every key.

        Returns:
            list[Any]: The payloads in pre-order, empty if the prefix
            is not in the trie.

        """
        return [value for _, value in self.iter_range(prefix)]

    def delete(self, key: Any) -> None:
        """Delete a key, pruning nodes left without children.

        A node that still has children is kept along with its value.

        Args:
            key (Any): A list or tuple of key segments.

        """
        path = _as_path(key, "delete")

        # (parent, segment) for every step down the key
        trail: list[tuple[TrieNode, Any]] = []
        node = self.root
        for segment in path:
            if segment not in node.children:
                return
            trail.append((node, segment))
            node = node.children[segment]

        # Unwind while the node just visited has no children
        while trail and node.is_leaf():
            parent, segment = trail.pop()
            del parent.children[segment]
            node = parent
