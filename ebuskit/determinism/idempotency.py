"""Thread-safe store of mutation results keyed by idempotency key and fingerprint."""

from __future__ import annotations

import threading
import time
from collections.abc import Callable
from dataclasses import dataclass
from datetime import timedelta

__all__ = [
    "DEFAULT_IDEMPOTENCY_TTL",
    "IdempotencyError",
    "IdempotencyConflictError",
    "InvalidKeyError",
    "InvalidFingerprintError",
    "IdempotencyStore",
]

DEFAULT_IDEMPOTENCY_TTL = timedelta(seconds=30)


class IdempotencyError(Exception):
    """Base class for idempotency store errors."""


class IdempotencyConflictError(IdempotencyError):
    def __init__(self) -> None:
        super().__init__("determinism: idempotency key reused with different fingerprint")


class InvalidKeyError(IdempotencyError, ValueError):
    def __init__(self) -> None:
        super().__init__("determinism: idempotency key must not be empty")


class InvalidFingerprintError(IdempotencyError, ValueError):
    def __init__(self) -> None:
        super().__init__("determinism: idempotency fingerprint must not be empty")


@dataclass(frozen=True)
class _Entry:
    fingerprint: str
    value: bytes
    expires_at: float


def _normalize(key: str, fingerprint: str) -> tuple[str, str]:
    key = key.strip()
    if not key:
        raise InvalidKeyError()
    fingerprint = fingerprint.strip()
    if not fingerprint:
        raise InvalidFingerprintError()
    return key, fingerprint


class IdempotencyStore:
    """Keeps results per key; expired entries are evicted lazily on access.

    ``clock`` returns the current time in seconds (``time.monotonic`` by default).
    """

    def __init__(
        self,
        ttl: timedelta | None = None,
        clock: Callable[[], float] | None = None,
    ) -> None:
        if ttl is None or ttl <= timedelta(0):
            ttl = DEFAULT_IDEMPOTENCY_TTL
        self._ttl = ttl
        self._clock = clock or time.monotonic
        self._lock = threading.Lock()
        self._entries: dict[str, _Entry] = {}

    @property
    def ttl(self) -> timedelta:
        return self._ttl

    def _purge_expired(self, now: float) -> None:
        expired = [key for key, entry in self._entries.items() if now > entry.expires_at]
        for key in expired:
            del self._entries[key]

    def lookup(self, key: str, fingerprint: str) -> bytes | None:
        """Return the stored value, or None if absent or expired.

        Raises IdempotencyConflictError if the key holds another fingerprint.
        """
        key, fingerprint = _normalize(key, fingerprint)
        now = self._clock()
        with self._lock:
            self._purge_expired(now)
            entry = self._entries.get(key)
            if entry is None:
                return None
            if entry.fingerprint != fingerprint:
                raise IdempotencyConflictError()
            return entry.value

    def store(self, key: str, fingerprint: str, value: bytes | bytearray | None) -> None:
        key, fingerprint = _normalize(key, fingerprint)
        now = self._clock()
        with self._lock:
            self._purge_expired(now)
            self._entries[key] = _Entry(
                fingerprint=fingerprint,
                value=bytes(value) if value else b"",
                expires_at=now + self._ttl.total_seconds(),
            )

    def delete(self, key: str) -> None:
        key = key.strip()
        if not key:
            return
        with self._lock:
            self._entries.pop(key, None)

    def __len__(self) -> int:
        now = self._clock()
        with self._lock:
            self._purge_expired(now)
            return len(self._entries)