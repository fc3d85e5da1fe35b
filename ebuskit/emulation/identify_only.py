"""Targets that answer only the 0x07 0x04 identification query."""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass, field
from datetime import timedelta

from ebuskit.emulation.framework import (
    InvalidConfigurationError,
    ResponsePlan,
    Rule,
    Target,
    TimingConstraints,
    match_primary_secondary,
)

__all__ = [
    "DEVICE_ID_LENGTH",
    "DEFAULT_RESPONSE_DELAY",
    "DEFAULT_TIMING",
    "DEFAULT_VR71_ADDRESS",
    "DEFAULT_VR71_MANUFACTURER",
    "DEFAULT_VR71_DEVICE_ID",
    "DEFAULT_VR71_SOFTWARE",
    "DEFAULT_VR71_HARDWARE",
    "IdentifyOnlyProfile",
    "preset_vr71_identify_only_profile",
    "new_identify_only_target",
]

DEVICE_ID_LENGTH = 5

DEFAULT_VR71_ADDRESS = 0x26
DEFAULT_VR71_MANUFACTURER = 0xB5
DEFAULT_VR71_DEVICE_ID = "VR_71"
DEFAULT_VR71_SOFTWARE = 0x0100
DEFAULT_VR71_HARDWARE = 0x5904

DEFAULT_RESPONSE_DELAY = timedelta(milliseconds=8)
DEFAULT_TIMING = TimingConstraints(
    min_response_delay=timedelta(milliseconds=5),
    max_response_delay=timedelta(milliseconds=30),
)


@dataclass(frozen=True)
class IdentifyOnlyProfile:
    name: str = ""
    address: int = 0
    manufacturer: int = 0
    device_id: str = ""
    software: int = 0
    hardware: int = 0
    response_delay: timedelta = timedelta(0)
    timing: TimingConstraints = field(default_factory=TimingConstraints)

    def normalized(self) -> IdentifyOnlyProfile:
        """Return a copy with defaults filled in, or raise if the profile is unusable."""
        name = self.name.strip() or f"identify-only-0x{self.address:02x}"
        if self.address == 0:
            raise InvalidConfigurationError("identify-only profile empty address")
        if self.manufacturer == 0:
            raise InvalidConfigurationError("identify-only profile empty manufacturer")
        device_id = self.device_id.strip()
        if not device_id:
            raise InvalidConfigurationError("identify-only profile empty device id")
        delay = self.response_delay if self.response_delay > timedelta(0) else DEFAULT_RESPONSE_DELAY
        timing = self.timing if self.timing.active() else DEFAULT_TIMING
        timing.validate(delay)
        return dataclasses.replace(
            self,
            name=name,
            device_id=device_id[:DEVICE_ID_LENGTH],
            response_delay=delay,
            timing=timing,
        )

    def identification_payload(self) -> bytes:
        """Manufacturer, space-padded 5-byte device id, software and hardware (big-endian)."""
        device_id = self.device_id.encode("utf-8").ljust(DEVICE_ID_LENGTH, b" ")[:DEVICE_ID_LENGTH]
        return (
            bytes([self.manufacturer & 0xFF])
            + device_id
            + (self.software & 0xFFFF).to_bytes(2, "big")
            + (self.hardware & 0xFFFF).to_bytes(2, "big")
        )


def preset_vr71_identify_only_profile() -> IdentifyOnlyProfile:
    return IdentifyOnlyProfile(
        name=f"vr71-minimal-0x{DEFAULT_VR71_ADDRESS:02x}",
        address=DEFAULT_VR71_ADDRESS,
        manufacturer=DEFAULT_VR71_MANUFACTURER,
        device_id=DEFAULT_VR71_DEVICE_ID,
        software=DEFAULT_VR71_SOFTWARE,
        hardware=DEFAULT_VR71_HARDWARE,
        response_delay=DEFAULT_RESPONSE_DELAY,
        timing=DEFAULT_TIMING,
    )


def new_identify_only_target(profile: IdentifyOnlyProfile) -> Target:
    """Build a target with a single "identify" rule for the given profile."""
    normalized = profile.normalized()
    payload = normalized.identification_payload()

    def build(_frame):
        return ResponsePlan(delay=normalized.response_delay, data=payload)

    return Target(
        name=normalized.name,
        address=normalized.address,
        default_timing=normalized.timing,
        rules=[
            Rule(
                name="identify",
                matcher=match_primary_secondary(0x07, 0x04),
                builder=build,
            )
        ],
    )