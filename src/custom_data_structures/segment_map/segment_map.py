"""An ordered mapping used for the children of trie nodes.

Segments that look like array indices are enumerated first, in ascending
numeric order, followed by every other segment in the order it was first
inserted.
"""

import bisect
import math
from collections.abc import Iterator
from typing import Any, Optional

# Largest segment value that still enumerates as an array index
MAX_ARRAY_INDEX = 2**32 - 2


class KeyToken:
    """An opaque key segment that is only ever equal to itself."""

    def __init__(self, description: str = "") -> None:
        """Initialize the token.

        Args:
            description (str): A label used only for display purposes.

        """
        self.description = description

    def __repr__(self) -> str:
        return f"KeyToken({self.description!r})"


def array_index(segment: Any) -> Optional[int]:
    """Return the array index a segment stands for, if any.

    Args:
        segment (Any): The key segment to inspect.

    Returns:
        Optional[int]: The index for non-negative integers, integral floats
        and canonical decimal strings up to MAX_ARRAY_INDEX, else None.

    """
    if isinstance(segment, bool):
        return None

    if isinstance(segment, int):
        index = segment
    elif isinstance(segment, float):
        if not math.isfinite(segment) or not segment.is_integer():
            return None
        index = int(segment)
    elif isinstance(segment, str):
        # "0" is the only index allowed to start with a zero
        if not (segment.isascii() and segment.isdigit()):
            return None
        if segment != "0" and segment.startswith("0"):
            return None
        index = int(segment)
    else:
        return None

    if 0 <= index <= MAX_ARRAY_INDEX:
        return index
    return None


class SegmentMap:
    """Map key segments to child nodes, enumerating index-like segments first.

    Index-like segments are kept in a sorted list of
    (index, insertion sequence, segment) triples. The sequence number is
    unique, so segments themselves are never compared with each other.
    Remaining segments live in an insertion-ordered dict.
    """

    def __init__(self) -> None:
        self._indexed: list[tuple[int, int, Any]] = []
        self._indexed_values: dict[Any, Any] = {}
        self._sequence_of: dict[Any, int] = {}
        self._named: dict[Any, Any] = {}
        self._next_sequence = 0

    def __len__(self) -> int:
        return len(self._indexed_values) + len(self._named)

    def __bool__(self) -> bool:
        return bool(self._indexed_values) or bool(self._named)

    def __contains__(self, segment: Any) -> bool:
        return segment in self._indexed_values or segment in self._named

    def __getitem__(self, segment: Any) -> Any:
        if segment in self._indexed_values:
            return self._indexed_values[segment]
        return self._named[segment]

    def __setitem__(self, segment: Any, value: Any) -> None:
        """Store a value, keeping the position of an existing segment.

        Args:
            segment (Any): The key segment.
            value (Any): The value (a child node) to store.

        """
        if segment in self._indexed_values:
            self._indexed_values[segment] = value
            return

        index = array_index(segment)
        if index is None:
            self._named[segment] = value
            return

        sequence = self._next_sequence
        self._next_sequence += 1
        bisect.insort(self._indexed, (index, sequence, segment))
        self._sequence_of[segment] = sequence
        self._indexed_values[segment] = value

    def __delitem__(self, segment: Any) -> None:
        if segment not in self._indexed_values:
            del self._named[segment]
            return

        index = array_index(segment)
        sequence = self._sequence_of.pop(segment)
        # A 2-tuple sorts right before the 3-tuple it prefixes
        position = bisect.bisect_left(self._indexed, (index, sequence))
        del self._indexed[position]
        del self._indexed_values[segment]

    def __iter__(self) -> Iterator[Any]:
        for _, _, segment in self._indexed:
            yield segment
        yield from self._named

    def __repr__(self) -> str:
        return f"SegmentMap({list(self)!r})"

    def get(self, segment: Any, default: Any = None) -> Any:
        """Return the value for a segment, or `default` if it is missing."""
        if segment in self:
            return self[segment]
        return default

    def items(self) -> Iterator[tuple[Any, Any]]:
        """Yield (segment, value) pairs in enumeration order."""
        for segment in self:
            yield segment, self[segment]
