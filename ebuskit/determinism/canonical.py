"""Deterministic JSON encoding and hashing for stable payload fingerprints."""

from __future__ import annotations

import hashlib
import json
from typing import Any

from ebuskit.errors import InvalidPayloadError

__all__ = ["canonical_json", "canonical_clone", "canonical_hash"]

_PAYLOAD = InvalidPayloadError.default_message

# Characters escaped inside strings so output is safe to embed in HTML.
_ESCAPES = (
    ("&", "\\u0026"),
    ("<", "\\u003c"),
    (">", "\\u003e"),
    ("\u2028", "\\u2028"),
    ("\u2029", "\\u2029"),
)


def _parse_float(text: str) -> int | float:
    number = float(text)
    if number.is_integer() and abs(number) < 1e21:
        return int(number)
    return number


def _dumps(value: Any) -> str:
    return json.dumps(
        value,
        sort_keys=True,
        separators=(",", ":"),
        ensure_ascii=False,
        allow_nan=False,
    )


def canonical_clone(value: Any) -> Any:
    """Deep-clone a JSON-compatible value through a JSON round trip.

    Integral floats become ints so equivalent numbers share one representation.
    """
    try:
        raw = _dumps(value)
    except (TypeError, ValueError, RecursionError) as exc:
        raise InvalidPayloadError(f"canonical marshal source failed: {_PAYLOAD}: {exc}") from exc
    try:
        return json.loads(raw, parse_float=_parse_float)
    except ValueError as exc:
        raise InvalidPayloadError(f"canonical decode failed: {_PAYLOAD}: {exc}") from exc


def canonical_json(value: Any) -> bytes:
    """Return a compact, key-sorted UTF-8 JSON encoding of ``value``."""
    normalized = canonical_clone(value)
    try:
        text = _dumps(normalized)
        for char, escape in _ESCAPES:
            text = text.replace(char, escape)
        return text.encode("utf-8")
    except (TypeError, ValueError) as exc:
        raise InvalidPayloadError(f"canonical marshal failed: {_PAYLOAD}: {exc}") from exc


def canonical_hash(value: Any) -> str:
    """Return the hex SHA-256 of the canonical JSON of ``value``."""
    return hashlib.sha256(canonical_json(value)).hexdigest()