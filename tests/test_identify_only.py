from datetime import timedelta

import pytest

from ebuskit.emulation.framework import (
    Frame,
    InvalidConfigurationError,
    NoMatchingRuleError,
    RequestEvent,
    TimingConstraintError,
    TimingConstraints,
)
from ebuskit.emulation.harness import Harness, QueryStep, ResponseEnvelope, validate_response_envelope
from ebuskit.emulation.identify_only import (
    DEFAULT_VR71_ADDRESS,
    DEFAULT_VR71_DEVICE_ID,
    DEFAULT_VR71_HARDWARE,
    DEFAULT_VR71_MANUFACTURER,
    DEFAULT_VR71_SOFTWARE,
    IdentifyOnlyProfile,
    new_identify_only_target,
    preset_vr71_identify_only_profile,
)

MS = timedelta(milliseconds=1)

VR71_PAYLOAD = bytes([0xB5]) + b"VR_71" + bytes([0x01, 0x00, 0x59, 0x04])


def test_constructor_and_payload():
    target = new_identify_only_target(
        IdentifyOnlyProfile(
            name="  custom-identify  ",
            address=0x30,
            manufacturer=0xAA,
            device_id="R71LONG",
            software=0x1234,
            hardware=0x5678,
            response_delay=9 * MS,
            timing=TimingConstraints(5 * MS, 15 * MS),
        )
    )
    assert target.name == "custom-identify"
    assert target.address == 0x30

    response = target.emulate(
        RequestEvent(at=20 * MS, frame=Frame(source=0x10, target=0x30, primary=0x07, secondary=0x04))
    )
    assert response.respond_at == 29 * MS
    assert response.frame.data == bytes([0xAA]) + b"R71LO" + bytes([0x12, 0x34, 0x56, 0x78])


@pytest.mark.parametrize(
    "profile, expected",
    [
        (IdentifyOnlyProfile(manufacturer=0xB5, device_id="VR_71"), InvalidConfigurationError),
        (IdentifyOnlyProfile(address=0x26, device_id="VR_71"), InvalidConfigurationError),
        (IdentifyOnlyProfile(address=0x26, manufacturer=0xB5, device_id="   "), InvalidConfigurationError),
        (
            IdentifyOnlyProfile(
                address=0x26,
                manufacturer=0xB5,
                device_id="VR_71",
                response_delay=2 * MS,
                timing=TimingConstraints(5 * MS, 15 * MS),
            ),
            TimingConstraintError,
        ),
    ],
    ids=["empty address", "empty manufacturer", "empty device id", "timing violation"],
)
def test_constructor_errors(profile, expected):
    with pytest.raises(expected):
        new_identify_only_target(profile)


def test_normalized_fills_defaults():
    normalized = IdentifyOnlyProfile(address=0x26, manufacturer=0xB5, device_id=" AB ").normalized()
    assert normalized.name == "identify-only-0x26"
    assert normalized.device_id == "AB"
    assert normalized.response_delay == 8 * MS
    assert normalized.timing == TimingConstraints(5 * MS, 30 * MS)


def test_short_device_id_is_space_padded():
    profile = IdentifyOnlyProfile(address=0x26, manufacturer=0xB5, device_id="AB", software=1, hardware=2)
    assert profile.identification_payload() == b"\xb5AB   \x00\x01\x00\x02"


def test_vr71_preset():
    vr71 = preset_vr71_identify_only_profile()
    assert vr71.address == DEFAULT_VR71_ADDRESS == 0x26
    assert vr71.manufacturer == DEFAULT_VR71_MANUFACTURER == 0xB5
    assert vr71.device_id == DEFAULT_VR71_DEVICE_ID == "VR_71"
    assert vr71.software == DEFAULT_VR71_SOFTWARE == 0x0100
    assert vr71.hardware == DEFAULT_VR71_HARDWARE == 0x5904
    assert vr71.name == "vr71-minimal-0x26"
    assert vr71.identification_payload() == VR71_PAYLOAD


def test_repeated_query_behavior():
    profile = preset_vr71_identify_only_profile()
    harness = Harness(new_identify_only_target(profile))
    frame = Frame(source=0x10, target=profile.address, primary=0x07, secondary=0x04)

    first = harness.query(frame)
    assert first.frame.data == VR71_PAYLOAD

    harness.advance(3 * MS)
    second = harness.query(frame)
    assert second.requested == 3 * MS
    assert second.respond_at == 11 * MS
    assert second.frame.data == VR71_PAYLOAD


def test_other_queries_unmatched():
    target = new_identify_only_target(preset_vr71_identify_only_profile())
    with pytest.raises(NoMatchingRuleError):
        target.emulate(RequestEvent(frame=Frame(source=0x10, target=0x26, primary=0x01, secondary=0x02)))


def test_smoke_vr71_within_envelope():
    profile = preset_vr71_identify_only_profile()
    harness = Harness(new_identify_only_target(profile))
    responses = harness.run_sequence(
        [QueryStep(frame=Frame(source=0x10, target=profile.address, primary=0x07, secondary=0x04))]
    )
    assert len(responses) == 1
    assert responses[0].frame.data == VR71_PAYLOAD
    validate_response_envelope(
        responses,
        ResponseEnvelope(profile.timing.min_response_delay, profile.timing.max_response_delay),
    )
    with pytest.raises(TimingConstraintError):
        validate_response_envelope(responses, ResponseEnvelope(9 * MS, 30 * MS))