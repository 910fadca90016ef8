"""JSON encoding of keys and values stored in the row store."""

import json
from typing import Any


class CodecError(Exception):
    """Base class of key and value encoding errors."""


class KeyEncodingError(CodecError):
    """Raised when a key cannot be written as a JSON array."""


class KeyDecodingError(CodecError):
    """Raised when a stored key is not a JSON array."""


class ValueEncodingError(CodecError):
    """Raised when a value cannot be written as JSON."""


class ValueDecodingError(CodecError):
    """Raised when a stored value is not valid JSON."""


def _dumps(obj: Any) -> str:
    # Compact output matches what other writers of the sheet produce
    return json.dumps(
        obj,
        separators=(",", ":"),
        ensure_ascii=False,
        allow_nan=False,
    )


def encode_key(key: Any) -> str:
    """Encode a key path as a compact JSON array.

    Args:
        key (Any): A list or tuple of key segments.

    Raises:
        KeyEncodingError: If the key is not a sequence or holds a segment
        JSON cannot represent.

    Returns:
        str: The encoded key.

    """
    if not isinstance(key, (list, tuple)):
        raise KeyEncodingError(f"Key is not a list or tuple: {key!r}")
    try:
        return _dumps(list(key))
    except (TypeError, ValueError) as e:
        raise KeyEncodingError(f"Cannot encode key {key!r}: {e}") from e


def decode_key(text: str) -> list[Any]:
    """Decode a key path previously produced by encode_key.

    Raises:
        KeyDecodingError: If the text is not a JSON array.

    """
    try:
        key = json.loads(text)
    except json.JSONDecodeError as e:
        raise KeyDecodingError(f"Invalid JSON key {text!r}: {e}") from e
    if not isinstance(key, list):
        raise KeyDecodingError(f"Key is not a JSON array: {text!r}")
    return key


def encode_value(value: Any) -> str:
    """Encode a value as compact JSON.

    Raises:
        ValueEncodingError: If JSON cannot represent the value.

    """
    try:
        return _dumps(value)
    except (TypeError, ValueError) as e:
        raise ValueEncodingError(f"Cannot encode value {value!r}: {e}") from e


def decode_value(text: str) -> Any:
    """Decode a value previously produced by encode_value.

    Raises:
        ValueDecodingError: If the text is not valid JSON.

    """
    try:
        return json.loads(text)
    except json.JSONDecodeError as e:
        raise ValueDecodingError(f"Invalid JSON value {text!r}: {e}") from e
