"""Emulated VR90 room controller: identification, optional B509 scan id and mapped commands."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import timedelta

from ebuskit.emulation.framework import (
    Frame,
    InvalidConfigurationError,
    Matcher,
    NoMatchingRuleError,
    ResponsePlan,
    Rule,
    Target,
    TimingConstraints,
    match_primary_secondary,
    match_primary_secondary_with_prefix,
)
from ebuskit.emulation.identify_only import (
    DEFAULT_RESPONSE_DELAY,
    DEFAULT_TIMING,
    DEVICE_ID_LENGTH,
    IdentifyOnlyProfile,
    new_identify_only_target,
)

__all__ = [
    "DEFAULT_VR90_MANUFACTURER",
    "DEFAULT_VR90_DEVICE_ID",
    "DEFAULT_VR90_SOFTWARE",
    "DEFAULT_VR90_HARDWARE",
    "DEFAULT_VR90_SCAN_ID",
    "SCAN_ID_SELECTOR_START",
    "SCAN_ID_SELECTOR_END",
    "SCAN_ID_CHUNK_SIZE",
    "SCAN_ID_CHUNK_COUNT",
    "SCAN_ID_LENGTH",
    "B509_RULE_NAME",
    "VR90MappedCommand",
    "VR90Profile",
    "default_vr90_profile",
    "preset_vr90_identify_only_profile",
    "new_vr90_target",
    "normalize_scan_id",
    "is_scan_id_selector",
    "scan_id_chunk",
]

DEFAULT_VR90_MANUFACTURER = 0xB5
DEFAULT_VR90_DEVICE_ID = "B7V00"
DEFAULT_VR90_SOFTWARE = 0x0422
DEFAULT_VR90_HARDWARE = 0x5503
DEFAULT_VR90_SCAN_ID = "12345678901234567890123456AB"

SCAN_ID_SELECTOR_START = 0x24
SCAN_ID_SELECTOR_END = 0x27
SCAN_ID_CHUNK_SIZE = 8
SCAN_ID_CHUNK_COUNT = 4
SCAN_ID_LENGTH = SCAN_ID_CHUNK_SIZE * SCAN_ID_CHUNK_COUNT

B509_RULE_NAME = "vaillant-b509-scanid"

_ZERO = timedelta(0)
_PRESET_VR90_ADDRESS = 0x15


@dataclass(frozen=True)
class VR90MappedCommand:
    """A fixed reply to a command; at most one of the payload matchers may be set."""

    name: str = ""
    primary: int = 0
    secondary: int = 0
    payload_exact: bytes = b""
    payload_prefix: bytes = b""
    response_data: bytes = b""

    def __post_init__(self) -> None:
        for name in ("payload_exact", "payload_prefix", "response_data"):
            object.__setattr__(self, name, bytes(getattr(self, name)))


@dataclass(frozen=True)
class VR90Profile:
    """VR90 configuration. ``address`` is installation-specific and must be set."""

    address: int = 0
    manufacturer: int = 0
    device_id: str = ""
    software: int = 0
    hardware: int = 0
    enable_b509_discovery: bool = False
    scan_id: str = ""
    mapped_commands: tuple[VR90MappedCommand, ...] = ()
    response_delay: timedelta = _ZERO
    timing: TimingConstraints = field(default_factory=TimingConstraints)

    def __post_init__(self) -> None:
        object.__setattr__(self, "mapped_commands", tuple(self.mapped_commands))


def default_vr90_profile() -> VR90Profile:
    """Default identity and timing; the address still has to be supplied."""
    return VR90Profile(
        manufacturer=DEFAULT_VR90_MANUFACTURER,
        device_id=DEFAULT_VR90_DEVICE_ID,
        software=DEFAULT_VR90_SOFTWARE,
        hardware=DEFAULT_VR90_HARDWARE,
        scan_id=DEFAULT_VR90_SCAN_ID,
        response_delay=DEFAULT_RESPONSE_DELAY,
        timing=DEFAULT_TIMING,
    )


def preset_vr90_identify_only_profile() -> IdentifyOnlyProfile:
    return IdentifyOnlyProfile(
        name=f"vr90-minimal-0x{_PRESET_VR90_ADDRESS:02x}",
        address=_PRESET_VR90_ADDRESS,
        manufacturer=DEFAULT_VR90_MANUFACTURER,
        device_id=DEFAULT_VR90_DEVICE_ID,
        software=DEFAULT_VR90_SOFTWARE,
        hardware=DEFAULT_VR90_HARDWARE,
        response_delay=DEFAULT_RESPONSE_DELAY,
        timing=DEFAULT_TIMING,
    )


def normalize_scan_id(scan_id: str) -> str:
    """Trim, default when empty, and truncate or space-pad to the full scan id length."""
    trimmed = scan_id.strip() or DEFAULT_VR90_SCAN_ID
    return trimmed[:SCAN_ID_LENGTH].ljust(SCAN_ID_LENGTH)


def is_scan_id_selector(selector: int) -> bool:
    return SCAN_ID_SELECTOR_START <= selector <= SCAN_ID_SELECTOR_END


def scan_id_chunk(scan_id: str, selector: int) -> bytes | None:
    """Return 0x00 followed by the selected 8-byte scan id segment, or None for other selectors."""
    if not is_scan_id_selector(selector):
        return None
    raw = normalize_scan_id(scan_id).encode("utf-8").ljust(SCAN_ID_LENGTH)[:SCAN_ID_LENGTH]
    offset = (selector - SCAN_ID_SELECTOR_START) * SCAN_ID_CHUNK_SIZE
    return b"\x00" + raw[offset : offset + SCAN_ID_CHUNK_SIZE]


def _normalize_mapped_commands(
    commands: Iterable[VR90MappedCommand],
) -> tuple[VR90MappedCommand, ...]:
    normalized = []
    for idx, command in enumerate(commands):
        name = command.name.strip() or (
            f"mapped-pb-0x{command.primary:02x}-sb-0x{command.secondary:02x}-{idx}"
        )
        if command.payload_exact and command.payload_prefix:
            raise InvalidConfigurationError(
                f"vr90 mapped command[{idx}] has both exact and prefix payload matchers"
            )
        if not command.response_data:
            raise InvalidConfigurationError(f"vr90 mapped command[{idx}] empty response payload")
        normalized.append(
            VR90MappedCommand(
                name=name,
                primary=command.primary,
                secondary=command.secondary,
                payload_exact=command.payload_exact,
                payload_prefix=command.payload_prefix,
                response_data=command.response_data,
            )
        )
    return tuple(normalized)


def _normalize_profile(profile: VR90Profile) -> VR90Profile:
    has_identity_overrides = bool(
        profile.manufacturer
        or profile.device_id.strip()
        or profile.software
        or profile.hardware
    )
    if profile.address == 0:
        raise InvalidConfigurationError("vr90 profile missing address")

    manufacturer = profile.manufacturer or DEFAULT_VR90_MANUFACTURER
    device_id = profile.device_id.strip() or DEFAULT_VR90_DEVICE_ID
    software, hardware = profile.software, profile.hardware
    if not has_identity_overrides:
        software, hardware = DEFAULT_VR90_SOFTWARE, DEFAULT_VR90_HARDWARE
    delay = profile.response_delay if profile.response_delay > _ZERO else DEFAULT_RESPONSE_DELAY
    timing = profile.timing if profile.timing.active() else DEFAULT_TIMING
    scan_id = normalize_scan_id(profile.scan_id)
    timing.validate(delay)

    return VR90Profile(
        address=profile.address,
        manufacturer=manufacturer,
        device_id=device_id[:DEVICE_ID_LENGTH],
        software=software,
        hardware=hardware,
        enable_b509_discovery=profile.enable_b509_discovery,
        scan_id=scan_id,
        mapped_commands=_normalize_mapped_commands(profile.mapped_commands),
        response_delay=delay,
        timing=timing,
    )


def _mapped_matcher(command: VR90MappedCommand) -> Matcher:
    if command.payload_exact:
        payload = command.payload_exact

        def match_exact(frame: Frame) -> bool:
            return (
                frame.primary == command.primary
                and frame.secondary == command.secondary
                and frame.data == payload
            )

        return match_exact
    if command.payload_prefix:
        return match_primary_secondary_with_prefix(
            command.primary, command.secondary, command.payload_prefix
        )
    return match_primary_secondary(command.primary, command.secondary)


def _mapped_rule(command: VR90MappedCommand, delay: timedelta) -> Rule:
    payload = command.response_data

    def build(_frame: Frame) -> ResponsePlan:
        return ResponsePlan(delay=delay, data=payload)

    return Rule(name=command.name, matcher=_mapped_matcher(command), builder=build)


def _b509_rule(scan_id: str, delay: timedelta) -> Rule:
    def match(frame: Frame) -> bool:
        return (
            frame.primary == 0xB5
            and frame.secondary == 0x09
            and len(frame.data) == 1
            and is_scan_id_selector(frame.data[0])
        )

    def build(frame: Frame) -> ResponsePlan:
        chunk = scan_id_chunk(scan_id, frame.data[0])
        if chunk is None:
            raise NoMatchingRuleError(f"vr90 unsupported b509 selector 0x{frame.data[0]:02x}")
        return ResponsePlan(delay=delay, data=chunk)

    return Rule(name=B509_RULE_NAME, matcher=match, builder=build)


def new_vr90_target(profile: VR90Profile) -> Target:
    """Build a VR90 target: identify first, then B509 discovery if enabled, then mapped commands."""
    normalized = _normalize_profile(profile)
    target = new_identify_only_target(
        IdentifyOnlyProfile(
            name=f"vr90-minimal-0x{normalized.address:02x}",
            address=normalized.address,
            manufacturer=normalized.manufacturer,
            device_id=normalized.device_id,
            software=normalized.software,
            hardware=normalized.hardware,
            response_delay=normalized.response_delay,
            timing=normalized.timing,
        )
    )
    if normalized.enable_b509_discovery:
        target.rules.append(_b509_rule(normalized.scan_id, normalized.response_delay))
    target.rules.extend(
        _mapped_rule(command, normalized.response_delay) for command in normalized.mapped_commands
    )
    return target