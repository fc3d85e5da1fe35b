# ebuskit

Building blocks for software that works with eBUS heating installations. The package has no runtime dependencies.

- **`ebuskit.errors`** is an exception hierarchy for bus failures. Every class derives from `EbusError`:
  - `BusCollisionError`
  - `BusTimeoutError`
  - `CRCMismatchError`
  - `NACKError`
  - `NoSuchDeviceError`
  - `RetryExhaustedError`
  - `InvalidPayloadError`
  - `TransportClosedError`

  The module also has functions that classify any exception. They look through its `__cause__`/`__context__` chain and report a `Code`, a `Category`, a retriable flag and a `SourceLayer`.
- **`ebuskit.crc`** computes the eBUS CRC-8 (polynomial `0x9B`). Use `update` for one byte at a time or `checksum` for a whole iterable of bytes.
- **`ebuskit.determinism`** holds three modules:
  - `canonical`: canonical JSON encoding and hashing.
  - `idempotency`: an idempotency store whose entries expire.
  - `retry`: deterministic retry schedules.
- **`ebuskit.emulation`** holds four modules:
  - `framework`: a rule-based target emulator with timing constraints.
  - `harness`: a virtual-clock harness.
  - `identify_only`: identify-only device profiles.
  - `vr90` and `vr92`: VR90 and VR92 room-unit emulators.

## Installation

```
pip install ebuskit
```

To install the test dependencies as well:

```
pip install "ebuskit[test]"
```

## Classifying errors

```python
from ebuskit.errors import (
    BusTimeoutError,
    Category,
    NACKError,
    is_transient,
    normalize_error_mapping,
)

mapping = normalize_error_mapping(BusTimeoutError("no answer from 0x15"), "")
assert mapping.category is Category.TRANSIENT
assert mapping.retriable

assert not is_transient(NACKError("target refused"))
```

`normalize_error_code` and `normalize_error_category` return a `Code` and a `Category`. `is_transient`, `is_definitive` and `is_fatal` answer the three usual questions about an error. Errors that are not eBUS errors, and `None`, map to `Code.UNKNOWN` and `Category.UNKNOWN`.

`normalize_source_layer` maps aliases to a `SourceLayer`. For example, `"ebus-go"` and `"registry"` each map to their layer, and so do `"api"`, `"graphql"` and `"mcp"`. The match ignores case and surrounding whitespace.

`normalize_error_mapping` treats a known error passed with an empty source as coming from the `EBUSGO` layer.

## CRC

```python
from ebuskit.crc import checksum, update

crc = checksum(b"\x10\x15\x07\x04\x00")
assert update(0, 0x10) == 0x10
```

Both functions raise `ValueError` for values outside `0..255`.

## Canonical hashing

Three functions in `ebuskit.determinism.canonical` give a stable form of a JSON-compatible value:

- `canonical_clone` returns a deep copy made through a JSON round trip. Floats with integral values become ints in the copy.
- `canonical_json` returns compact UTF-8 JSON with sorted keys.
- `canonical_hash` returns the SHA-256 hex digest of that encoding.

Each of them raises `InvalidPayloadError` for a value that cannot be encoded.

```python
from ebuskit.determinism.canonical import canonical_hash

assert canonical_hash({"b": 1, "a": [1, 2]}) == canonical_hash({"a": [1, 2], "b": 1})
```

## Idempotency

`IdempotencyStore(ttl=None, clock=None)` keeps a `bytes` result under an idempotency key, together with the fingerprint of the request.

- `ttl` is a `timedelta`. The default is `DEFAULT_IDEMPOTENCY_TTL`, 30 seconds.
- `clock` returns seconds. The default is `time.monotonic`.

The store is thread-safe. It purges expired entries whenever it is accessed.

- `store(key, fingerprint, value)` saves a result.
- `lookup(key, fingerprint)` returns the stored bytes, or `None` if there is nothing stored. It raises `IdempotencyConflictError` if the key was stored with a different fingerprint.
- `delete(key)` removes an entry.
- `len(store)` counts the entries that are still live.

Keys and fingerprints are stripped of surrounding whitespace. An empty key raises `InvalidKeyError` and an empty fingerprint raises `InvalidFingerprintError`.

## Retry schedules

A `RetrySchedule` is an immutable sequence of `timedelta` delays. There are three ways to build one:

- `RetrySchedule(delays)`
- `fixed_retry_schedule(retries, delay)`
- `exponential_retry_schedule(retries, base_delay, factor, max_delay)`. A positive `max_delay` caps each delay.

Invalid parameters raise `InvalidRetryCountError`, `InvalidRetryDelayError` or `InvalidRetryFactorError`. All three are `ValueError`s.

A schedule has these methods:

- `retries()` returns the number of retries.
- `delays()` returns the delays.
- `delay(index)` returns one delay, or `None` if the index is out of range.
- `next_retry(err, index)` returns the delay only when `err` is retriable according to the error taxonomy. Otherwise it returns `None`.

```python
from datetime import timedelta
from ebuskit.determinism.retry import exponential_retry_schedule
from ebuskit.errors import BusTimeoutError

schedule = exponential_retry_schedule(4, timedelta(milliseconds=100), 2, timedelta(milliseconds=350))
assert schedule.next_retry(BusTimeoutError(), 2) == timedelta(milliseconds=350)
```

## Emulating devices

```python
from ebuskit.emulation.framework import Frame
from ebuskit.emulation.harness import Harness
from ebuskit.emulation.identify_only import (
    new_identify_only_target,
    preset_vr71_identify_only_profile,
)

profile = preset_vr71_identify_only_profile()
harness = Harness(new_identify_only_target(profile))
response = harness.query(
    Frame(source=0x10, target=profile.address, primary=0x07, secondary=0x04)
)
assert response.frame.data == profile.identification_payload()
```

### Targets and rules

A `Target` tries its `Rule`s in order, and the first rule whose matcher accepts the request answers it.

- A rule's matcher is any callable that takes a `Frame` and returns a bool. `match_primary_secondary` and `match_primary_secondary_with_prefix` build common matchers.
- A rule's builder returns a `ResponsePlan`, which holds a delay and the response data.
- The response frame mirrors the request's addresses and command bytes.

`Target.emulate` can raise four errors:

- `RequestTargetMismatchError` when the request is addressed to another target.
- `NoMatchingRuleError` when no rule accepts the request.
- `TimingConstraintError` when the delay falls outside the rule's `TimingConstraints`. If the rule has none, the target's defaults apply.
- `InvalidConfigurationError` when a rule has no matcher or no builder.

### Harness

`Harness` runs a target against a virtual clock and records its responses.

- `advance`, `now` and `query` move the clock, read it and send one request.
- `run_sequence` applies a list of `QueryStep`s.
- `history` returns the recorded responses.

`validate_response_envelope` checks recorded responses against a `ResponseEnvelope`.

### Device profiles

- `new_identify_only_target(IdentifyOnlyProfile(...))` answers only the identification query (`0x07 0x04`). That answer consists of the manufacturer, a 5-byte device id, then the software and hardware versions.
- `new_vr90_target(VR90Profile(...))` adds two optional kinds of rule:
  - B509 scan-id discovery, with selectors `0x24`–`0x27`. See `scan_id_chunk` and `normalize_scan_id`.
  - `VR90MappedCommand` replies, matched exactly, by prefix, or by command bytes only.
- `new_vr92_target(VR92Profile(...))` does the same with VR92 defaults. It requires a scan id when B509 discovery is enabled.

Start from `default_vr90_profile()` or `default_vr92_profile()`. The bus address has no default and must always be set.

## What the package does not do

The package does not open serial ports or network connections, and it does not talk to a real bus. It does not encode or decode wire telegrams (escaping, ACK/NACK handshakes, arbitration). A `Frame` is a plain data value.

There is no command-line tool.