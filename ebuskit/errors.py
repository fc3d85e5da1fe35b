"""eBUS error types and their normalized classification."""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass
from enum import Enum

__all__ = [
    "EbusError",
    "BusCollisionError",
    "BusTimeoutError",
    "CRCMismatchError",
    "NACKError",
    "NoSuchDeviceError",
    "RetryExhaustedError",
    "InvalidPayloadError",
    "TransportClosedError",
    "Code",
    "Category",
    "SourceLayer",
    "Mapping",
    "normalize_error_code",
    "normalize_error_category",
    "normalize_source_layer",
    "normalize_error_mapping",
    "is_transient",
    "is_definitive",
    "is_fatal",
]


class EbusError(Exception):
    """Base class for all eBUS errors."""

    default_message = "ebus: error"

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message if message is not None else self.default_message)


class BusCollisionError(EbusError):
    default_message = "ebus: bus collision during arbitration"


class BusTimeoutError(EbusError, TimeoutError):
    default_message = "ebus: no response within timeout window"


class CRCMismatchError(EbusError):
    default_message = "ebus: CRC validation failed"


class NACKError(EbusError):
    default_message = "ebus: target returned NACK"


class NoSuchDeviceError(EbusError):
    default_message = "ebus: no device responded at address"


class RetryExhaustedError(EbusError):
    default_message = "ebus: retries exhausted"


class InvalidPayloadError(EbusError, ValueError):
    default_message = "ebus: payload does not match expected schema"


class TransportClosedError(EbusError, ConnectionError):
    default_message = "ebus: transport connection closed"


class Code(str, Enum):
    UNKNOWN = "UNKNOWN"
    INVALID_PAYLOAD = "INVALID_PAYLOAD"
    NO_SUCH_DEVICE = "NO_SUCH_DEVICE"
    NACK = "NACK"
    TIMEOUT = "TIMEOUT"
    BUS_COLLISION = "BUS_COLLISION"
    RETRY_EXHAUSTED = "RETRY_EXHAUSTED"
    CRC_MISMATCH = "CRC_MISMATCH"
    TRANSPORT_CLOSED = "TRANSPORT_CLOSED"


class Category(str, Enum):
    UNKNOWN = "UNKNOWN"
    INVALID = "INVALID"
    TRANSIENT = "TRANSIENT"
    DEFINITIVE = "DEFINITIVE"
    FATAL = "FATAL"


class SourceLayer(str, Enum):
    UNKNOWN = "unknown"
    EBUSGO = "ebusgo"
    EBUSREG = "ebusreg"
    GATEWAY = "gateway"


@dataclass(frozen=True)
class Mapping:
    """Normalized classification of an error."""

    code: Code
    category: Category
    retriable: bool
    source_layer: SourceLayer


# Checked in this order; the first class found in the error chain wins.
_CODE_ORDER: tuple[tuple[type[EbusError], Code], ...] = (
    (InvalidPayloadError, Code.INVALID_PAYLOAD),
    (NoSuchDeviceError, Code.NO_SUCH_DEVICE),
    (NACKError, Code.NACK),
    (BusTimeoutError, Code.TIMEOUT),
    (BusCollisionError, Code.BUS_COLLISION),
    (RetryExhaustedError, Code.RETRY_EXHAUSTED),
    (CRCMismatchError, Code.CRC_MISMATCH),
    (TransportClosedError, Code.TRANSPORT_CLOSED),
)

_CATEGORY_BY_CODE = {
    Code.INVALID_PAYLOAD: Category.INVALID,
    Code.NO_SUCH_DEVICE: Category.DEFINITIVE,
    Code.NACK: Category.DEFINITIVE,
    Code.TIMEOUT: Category.TRANSIENT,
    Code.BUS_COLLISION: Category.TRANSIENT,
    Code.RETRY_EXHAUSTED: Category.TRANSIENT,
    Code.CRC_MISMATCH: Category.TRANSIENT,
    Code.TRANSPORT_CLOSED: Category.FATAL,
}

_SOURCE_ALIASES = {
    "ebusgo": SourceLayer.EBUSGO,
    "ebus-go": SourceLayer.EBUSGO,
    "ebus_go": SourceLayer.EBUSGO,
    "ebusreg": SourceLayer.EBUSREG,
    "ebus-reg": SourceLayer.EBUSREG,
    "ebus_reg": SourceLayer.EBUSREG,
    "registry": SourceLayer.EBUSREG,
    "gateway": SourceLayer.GATEWAY,
    "api": SourceLayer.GATEWAY,
    "graphql": SourceLayer.GATEWAY,
    "mcp": SourceLayer.GATEWAY,
}


def _chain(err: BaseException | None) -> Iterator[BaseException]:
    seen: set[int] = set()
    while err is not None and id(err) not in seen:
        seen.add(id(err))
        yield err
        if err.__cause__ is not None:
            err = err.__cause__
        elif not err.__suppress_context__:
            err = err.__context__
        else:
            err = None


def _is(err: BaseException | None, *classes: type[BaseException]) -> bool:
    return any(isinstance(link, classes) for link in _chain(err))


def normalize_error_code(err: BaseException | None) -> Code:
    """Return the code of the first known eBUS error in the chain of ``err``."""
    for cls, code in _CODE_ORDER:
        if _is(err, cls):
            return code
    return Code.UNKNOWN


def normalize_error_category(err: BaseException | None) -> Category:
    return _CATEGORY_BY_CODE.get(normalize_error_code(err), Category.UNKNOWN)


def normalize_source_layer(source: str) -> SourceLayer:
    return _SOURCE_ALIASES.get(source.strip().lower(), SourceLayer.UNKNOWN)


def normalize_error_mapping(err: BaseException | None, source: str = "") -> Mapping:
    """Classify ``err``; known errors without a source default to the ebusgo layer."""
    code = normalize_error_code(err)
    category = _CATEGORY_BY_CODE.get(code, Category.UNKNOWN)
    normalized_source = source.strip()
    layer = normalize_source_layer(normalized_source)
    if code is not Code.UNKNOWN and not normalized_source:
        layer = SourceLayer.EBUSGO
    return Mapping(
        code=code,
        category=category,
        retriable=category is Category.TRANSIENT,
        source_layer=layer,
    )


def is_transient(err: BaseException | None) -> bool:
    return _is(err, BusCollisionError, BusTimeoutError, CRCMismatchError, RetryExhaustedError)


def is_definitive(err: BaseException | None) -> bool:
    return _is(err, NoSuchDeviceError, NACKError)


def is_fatal(err: BaseException | None) -> bool:
    return _is(err, TransportClosedError, InvalidPayloadError)