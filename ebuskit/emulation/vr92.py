"""Emulated VR92 room controller, built on the VR90 emulation with VR92 defaults."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import timedelta

from ebuskit.emulation.framework import InvalidConfigurationError, Target, TimingConstraints
from ebuskit.emulation.identify_only import (
    DEFAULT_RESPONSE_DELAY,
    DEFAULT_TIMING,
    DEVICE_ID_LENGTH,
    IdentifyOnlyProfile,
)
from ebuskit.emulation.vr90 import (
    VR90MappedCommand,
    VR90Profile,
    _normalize_mapped_commands,
    new_vr90_target,
)

__all__ = [
    "DEFAULT_VR92_MANUFACTURER",
    "DEFAULT_VR92_DEVICE_ID",
    "DEFAULT_VR92_SOFTWARE",
    "DEFAULT_VR92_HARDWARE",
    "VR92MappedCommand",
    "VR92Profile",
    "default_vr92_profile",
    "preset_vr92_identify_only_profile",
    "new_vr92_target",
]

DEFAULT_VR92_MANUFACTURER = 0xB5
DEFAULT_VR92_DEVICE_ID = "VR_92"
DEFAULT_VR92_SOFTWARE = 0x0514
DEFAULT_VR92_HARDWARE = 0x1204

_ZERO = timedelta(0)
_PRESET_VR92_ADDRESS = 0x30

VR92MappedCommand = VR90MappedCommand


@dataclass(frozen=True)
class VR92Profile:
    """VR92 configuration. ``address`` is installation-specific and must be set."""

    address: int = 0
    manufacturer: int = 0
    device_id: str = ""
    software: int = 0
    hardware: int = 0
    enable_b509_discovery: bool = False
    scan_id: str = ""
    mapped_commands: tuple[VR92MappedCommand, ...] = ()
    response_delay: timedelta = _ZERO
    timing: TimingConstraints = field(default_factory=TimingConstraints)

    def __post_init__(self) -> None:
        object.__setattr__(self, "mapped_commands", tuple(self.mapped_commands))


def default_vr92_profile() -> VR92Profile:
    """Default identity and timing; the address and scan id still have to be supplied."""
    return VR92Profile(
        manufacturer=DEFAULT_VR92_MANUFACTURER,
        device_id=DEFAULT_VR92_DEVICE_ID,
        software=DEFAULT_VR92_SOFTWARE,
        hardware=DEFAULT_VR92_HARDWARE,
        response_delay=DEFAULT_RESPONSE_DELAY,
        timing=DEFAULT_TIMING,
    )


def preset_vr92_identify_only_profile() -> IdentifyOnlyProfile:
    return IdentifyOnlyProfile(
        name=f"vr92-minimal-0x{_PRESET_VR92_ADDRESS:02x}",
        address=_PRESET_VR92_ADDRESS,
        manufacturer=DEFAULT_VR92_MANUFACTURER,
        device_id=DEFAULT_VR92_DEVICE_ID,
        software=DEFAULT_VR92_SOFTWARE,
        hardware=DEFAULT_VR92_HARDWARE,
        response_delay=DEFAULT_RESPONSE_DELAY,
        timing=DEFAULT_TIMING,
    )


def _normalize_profile(profile: VR92Profile) -> VR92Profile:
    has_identity_overrides = bool(
        profile.manufacturer
        or profile.device_id.strip()
        or profile.software
        or profile.hardware
    )
    if profile.address == 0:
        raise InvalidConfigurationError("vr92 profile missing address")

    manufacturer = profile.manufacturer or DEFAULT_VR92_MANUFACTURER
    device_id = profile.device_id.strip() or DEFAULT_VR92_DEVICE_ID
    software, hardware = profile.software, profile.hardware
    if not has_identity_overrides:
        software, hardware = DEFAULT_VR92_SOFTWARE, DEFAULT_VR92_HARDWARE
    delay = profile.response_delay if profile.response_delay > _ZERO else DEFAULT_RESPONSE_DELAY
    timing = profile.timing if profile.timing.active() else DEFAULT_TIMING
    timing.validate(delay)

    if profile.enable_b509_discovery and not profile.scan_id.strip():
        raise InvalidConfigurationError("vr92 profile empty scan id with b509 enabled")

    return VR92Profile(
        address=profile.address,
        manufacturer=manufacturer,
        device_id=device_id[:DEVICE_ID_LENGTH],
        software=software,
        hardware=hardware,
        enable_b509_discovery=profile.enable_b509_discovery,
        scan_id=profile.scan_id,
        mapped_commands=_normalize_mapped_commands(profile.mapped_commands),
        response_delay=delay,
        timing=timing,
    )


def new_vr92_target(profile: VR92Profile) -> Target:
    """Build a VR92 target; B509 discovery requires an explicit scan id."""
    normalized = _normalize_profile(profile)
    return new_vr90_target(
        VR90Profile(
            address=normalized.address,
            manufacturer=normalized.manufacturer,
            device_id=normalized.device_id,
            software=normalized.software,
            hardware=normalized.hardware,
            enable_b509_discovery=normalized.enable_b509_discovery,
            scan_id=normalized.scan_id,
            mapped_commands=normalized.mapped_commands,
            response_delay=normalized.response_delay,
            timing=normalized.timing,
        )
    )