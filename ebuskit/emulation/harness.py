"""Deterministic virtual-clock harness for querying emulated targets."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import timedelta

from ebuskit.emulation.framework import (
    EmulatedResponse,
    EmulationError,
    Frame,
    InvalidConfigurationError,
    RequestEvent,
    Target,
    TimingConstraintError,
)

__all__ = [
    "ResponseEnvelope",
    "QueryStep",
    "Harness",
    "validate_response_envelope",
]

_ZERO = timedelta(0)


def _fmt(delay: timedelta) -> str:
    return f"{delay / timedelta(milliseconds=1):g}ms"


@dataclass(frozen=True)
class ResponseEnvelope:
    """Allowed delay window for observed responses; a zero maximum means unbounded."""

    min_delay: timedelta = _ZERO
    max_delay: timedelta = _ZERO

    def validate(self) -> None:
        if self.min_delay < _ZERO or self.max_delay < _ZERO:
            raise InvalidConfigurationError("negative response envelope")
        if self.max_delay > _ZERO and self.min_delay > self.max_delay:
            raise InvalidConfigurationError("envelope min delay exceeds max delay")


def validate_response_envelope(
    responses: Iterable[EmulatedResponse], envelope: ResponseEnvelope
) -> None:
    """Raise TimingConstraintError if any response delay lies outside ``envelope``."""
    envelope.validate()
    for idx, response in enumerate(responses):
        delay = response.respond_at - response.requested
        if delay < envelope.min_delay:
            raise TimingConstraintError(
                f"response[{idx}] delay {_fmt(delay)} below envelope min {_fmt(envelope.min_delay)}"
            )
        if envelope.max_delay > _ZERO and delay > envelope.max_delay:
            raise TimingConstraintError(
                f"response[{idx}] delay {_fmt(delay)} above envelope max {_fmt(envelope.max_delay)}"
            )


@dataclass(frozen=True)
class QueryStep:
    advance: timedelta = _ZERO
    frame: Frame = field(default_factory=Frame)


class Harness:
    """Drives a target on a virtual clock and records every response."""

    def __init__(self, target: Target | None) -> None:
        self._target = target
        self._now = _ZERO
        self._history: list[EmulatedResponse] = []

    def now(self) -> timedelta:
        return self._now

    def advance(self, delta: timedelta) -> None:
        """Move the clock forward; non-positive deltas are ignored."""
        if delta > _ZERO:
            self._now += delta

    def _require_target(self) -> Target:
        if self._target is None:
            raise InvalidConfigurationError("missing harness target")
        return self._target

    def query(self, frame: Frame) -> EmulatedResponse:
        target = self._require_target()
        response = target.emulate(RequestEvent(at=self._now, frame=frame))
        self._history.append(response)
        return response

    def run_sequence(self, steps: Iterable[QueryStep]) -> list[EmulatedResponse]:
        """Advance and query for each step in turn, stopping at the first error."""
        self._require_target()
        responses = []
        for idx, step in enumerate(steps):
            if step.advance < _ZERO:
                raise InvalidConfigurationError(f"step[{idx}] negative advance")
            self.advance(step.advance)
            try:
                responses.append(self.query(step.frame))
            except EmulationError as exc:
                raise type(exc)(f"step[{idx}]: {exc.detail}" if exc.detail else f"step[{idx}]") from exc
        return responses

    def history(self) -> list[EmulatedResponse]:
        return list(self._history)