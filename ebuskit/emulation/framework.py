"""Rule-based emulation of eBUS targets answering request frames."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import timedelta

__all__ = [
    "EmulationError",
    "NoMatchingRuleError",
    "TimingConstraintError",
    "InvalidConfigurationError",
    "RequestTargetMismatchError",
    "Frame",
    "ResponsePlan",
    "TimingConstraints",
    "Rule",
    "RequestEvent",
    "EmulatedResponse",
    "Target",
    "Matcher",
    "Builder",
    "match_primary_secondary",
    "match_primary_secondary_with_prefix",
]

_ZERO = timedelta(0)


class EmulationError(Exception):
    """Base class for target emulation errors.

    ``detail`` holds the context; the message is ``"<detail>: <base message>"``.
    """

    base_message = "target emulation error"

    def __init__(self, detail: str = "") -> None:
        self.detail = detail
        super().__init__(f"{detail}: {self.base_message}" if detail else self.base_message)


class NoMatchingRuleError(EmulationError):
    base_message = "target emulation no matching rule"


class TimingConstraintError(EmulationError):
    base_message = "target emulation timing constraint"


class InvalidConfigurationError(EmulationError, ValueError):
    base_message = "target emulation invalid configuration"


class RequestTargetMismatchError(EmulationError):
    base_message = "target emulation request target mismatch"


def _fmt(delay: timedelta) -> str:
    return f"{delay / timedelta(milliseconds=1):g}ms"


@dataclass(frozen=True)
class Frame:
    """An eBUS telegram: addresses, primary/secondary command bytes and payload."""

    source: int = 0
    target: int = 0
    primary: int = 0
    secondary: int = 0
    data: bytes = b""

    def __post_init__(self) -> None:
        object.__setattr__(self, "data", bytes(self.data))


@dataclass(frozen=True)
class ResponsePlan:
    delay: timedelta = _ZERO
    data: bytes = b""


Matcher = Callable[[Frame], bool]
Builder = Callable[[Frame], ResponsePlan]


@dataclass(frozen=True)
class TimingConstraints:
    """Allowed response delay window; a zero maximum means unbounded."""

    min_response_delay: timedelta = _ZERO
    max_response_delay: timedelta = _ZERO

    def validate(self, delay: timedelta) -> None:
        """Raise if the constraints are inconsistent or ``delay`` falls outside them."""
        low, high = self.min_response_delay, self.max_response_delay
        if low < _ZERO or high < _ZERO:
            raise InvalidConfigurationError("negative timing constraint")
        if high > _ZERO and low > high:
            raise InvalidConfigurationError("min delay exceeds max delay")
        if delay < _ZERO:
            raise TimingConstraintError("negative response delay")
        if delay < low:
            raise TimingConstraintError(f"response delay {_fmt(delay)} below min {_fmt(low)}")
        if high > _ZERO and delay > high:
            raise TimingConstraintError(f"response delay {_fmt(delay)} above max {_fmt(high)}")

    def active(self) -> bool:
        return self.min_response_delay != _ZERO or self.max_response_delay != _ZERO


@dataclass
class Rule:
    name: str = ""
    matcher: Matcher | None = None
    builder: Builder | None = None
    timing: TimingConstraints = field(default_factory=TimingConstraints)


@dataclass(frozen=True)
class RequestEvent:
    at: timedelta = _ZERO
    frame: Frame = field(default_factory=Frame)


@dataclass(frozen=True)
class EmulatedResponse:
    rule: str = ""
    requested: timedelta = _ZERO
    respond_at: timedelta = _ZERO
    frame: Frame = field(default_factory=Frame)


@dataclass
class Target:
    """An emulated device answering requests addressed to ``address``.

    Rules are tried in order; the first whose matcher accepts the frame answers.
    """

    name: str = ""
    address: int = 0
    default_timing: TimingConstraints = field(default_factory=TimingConstraints)
    rules: list[Rule] = field(default_factory=list)

    def emulate(self, event: RequestEvent) -> EmulatedResponse:
        request = event.frame
        if request.target != self.address:
            raise RequestTargetMismatchError(
                f"request target 0x{request.target:02x} does not match "
                f"emulated target 0x{self.address:02x}"
            )

        for rule in self.rules:
            if rule.matcher is None:
                raise InvalidConfigurationError(f"rule {rule.name!r} missing matcher")
            if not rule.matcher(request):
                continue
            if rule.builder is None:
                raise InvalidConfigurationError(f"rule {rule.name!r} missing builder")
            plan = rule.builder(request)

            timing = rule.timing if rule.timing.active() else self.default_timing
            timing.validate(plan.delay)

            return EmulatedResponse(
                rule=rule.name,
                requested=event.at,
                respond_at=event.at + plan.delay,
                frame=Frame(
                    source=self.address,
                    target=request.source,
                    primary=request.primary,
                    secondary=request.secondary,
                    data=bytes(plan.data),
                ),
            )

        raise NoMatchingRuleError(
            f"request pb=0x{request.primary:02x} sb=0x{request.secondary:02x}"
        )


def match_primary_secondary(primary: int, secondary: int) -> Matcher:
    """Match frames with the given primary and secondary command bytes."""

    def match(frame: Frame) -> bool:
        return frame.primary == primary and frame.secondary == secondary

    return match


def match_primary_secondary_with_prefix(primary: int, secondary: int, prefix: bytes) -> Matcher:
    """Match frames with the given command bytes whose payload starts with ``prefix``."""
    expected = bytes(prefix)

    def match(frame: Frame) -> bool:
        if frame.primary != primary or frame.secondary != secondary:
            return False
        return frame.data.startswith(expected)

    return match