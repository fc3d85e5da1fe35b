"""Immutable, deterministic retry-delay schedules."""

from __future__ import annotations

from collections.abc import Iterable
from datetime import timedelta

from ebuskit.errors import normalize_error_mapping

__all__ = [
    "RetryScheduleError",
    "InvalidRetryCountError",
    "InvalidRetryDelayError",
    "InvalidRetryFactorError",
    "RetrySchedule",
    "fixed_retry_schedule",
    "exponential_retry_schedule",
]

_ZERO = timedelta(0)
# Largest duration a signed 64-bit nanosecond counter can hold.
_MAX_DURATION = timedelta(microseconds=(2**63 - 1) // 1000)


class RetryScheduleError(ValueError):
    """Base class for invalid retry schedule parameters."""


class InvalidRetryCountError(RetryScheduleError):
    def __init__(self) -> None:
        super().__init__("determinism: retry count must be >= 0")


class InvalidRetryDelayError(RetryScheduleError):
    def __init__(self) -> None:
        super().__init__("determinism: retry delay must be >= 0")


class InvalidRetryFactorError(RetryScheduleError):
    def __init__(self) -> None:
        super().__init__("determinism: retry factor must be >= 1")


class RetrySchedule:
    """A fixed sequence of delays, one per retry."""

    __slots__ = ("_delays",)

    def __init__(self, delays: Iterable[timedelta] = ()) -> None:
        collected = tuple(delays)
        if any(delay < _ZERO for delay in collected):
            raise InvalidRetryDelayError()
        self._delays = collected

    def __repr__(self) -> str:
        return f"RetrySchedule({list(self._delays)!r})"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, RetrySchedule):
            return NotImplemented
        return self._delays == other._delays

    def __hash__(self) -> int:
        return hash(self._delays)

    def retries(self) -> int:
        return len(self._delays)

    def delays(self) -> list[timedelta]:
        return list(self._delays)

    def delay(self, retry_index: int) -> timedelta | None:
        """Delay for the zero-based retry index (0 precedes the second attempt)."""
        if 0 <= retry_index < len(self._delays):
            return self._delays[retry_index]
        return None

    def next_retry(self, err: BaseException | None, retry_index: int) -> timedelta | None:
        """Delay before the next attempt, or None if ``err`` is not retriable or retries are spent."""
        if not normalize_error_mapping(err, "").retriable:
            return None
        return self.delay(retry_index)


def fixed_retry_schedule(retries: int, delay: timedelta) -> RetrySchedule:
    if retries < 0:
        raise InvalidRetryCountError()
    if delay < _ZERO:
        raise InvalidRetryDelayError()
    return RetrySchedule([delay] * retries)


def exponential_retry_schedule(
    retries: int,
    base_delay: timedelta,
    factor: int,
    max_delay: timedelta = _ZERO,
) -> RetrySchedule:
    """Delays grow by ``factor`` from ``base_delay``; a positive ``max_delay`` caps them."""
    if retries < 0:
        raise InvalidRetryCountError()
    if base_delay < _ZERO or max_delay < _ZERO:
        raise InvalidRetryDelayError()
    if factor < 1:
        raise InvalidRetryFactorError()

    delays = []
    current = base_delay
    for _ in range(retries):
        delays.append(max_delay if max_delay > _ZERO and current > max_delay else current)
        if factor == 1:
            continue
        if current > _ZERO and current > _MAX_DURATION / factor:
            current = _MAX_DURATION
        else:
            current *= factor
    return RetrySchedule(delays)