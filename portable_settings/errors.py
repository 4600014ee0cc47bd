# =============================================================
#  portable_settings/errors.py
# =============================================================
"""Error kinds and exceptions raised by the codecs and the exchange pipeline.

The codecs raise; :mod:`portable_settings.exchange` catches at each stage
boundary and turns the exception into an :class:`ExchangeResult` carrying the
:class:`ErrorKind`, so callers never see these propagate out of an import or
export.
"""

from __future__ import annotations

from enum import Enum

__all__ = [
    "ErrorKind",
    "SettingsExchangeError",
    "DecodeError",
    "ParseError",
    "ExecutionError",
    "InvalidEnvelopeError",
    "IdentityMismatchError",
    "OwnerVersionMismatchError",
    "EngineVersionMismatchError",
    "SerializationError",
    "SerializationDepthError",
]


class ErrorKind(str, Enum):
    DECODE_ERROR = "decode_error"
    PARSE_ERROR = "parse_error"
    EXECUTION_ERROR = "execution_error"
    INVALID_ENVELOPE = "invalid_envelope"
    IDENTITY_MISMATCH = "identity_mismatch"
    OWNER_VERSION_MISMATCH = "owner_version_mismatch"
    ENGINE_VERSION_MISMATCH = "engine_version_mismatch"
    RECURSION_ERROR = "recursion_error"
    SERIALIZATION_ERROR = "serialization_error"
    INTERNAL_ERROR = "internal_error"


class SettingsExchangeError(Exception):
    """Base class; ``kind`` tells the UI which message to show."""

    kind: ErrorKind = ErrorKind.INTERNAL_ERROR

    def __init__(self, message: str = ""):
        super().__init__(message)
        self.message = message


class DecodeError(SettingsExchangeError, ValueError):
    kind = ErrorKind.DECODE_ERROR


class ParseError(SettingsExchangeError, ValueError):
    """Text is not a well-formed settings literal."""

    kind = ErrorKind.PARSE_ERROR

    def __init__(self, message: str = "", position: int | None = None):
        if position is not None:
            message = f"{message} (at offset {position})"
        super().__init__(message)
        self.position = position


class ExecutionError(SettingsExchangeError, ValueError):
    """Well-formed literal that cannot be turned into a settings value."""

    kind = ErrorKind.EXECUTION_ERROR


class InvalidEnvelopeError(SettingsExchangeError):
    kind = ErrorKind.INVALID_ENVELOPE


class IdentityMismatchError(SettingsExchangeError):
    kind = ErrorKind.IDENTITY_MISMATCH


class OwnerVersionMismatchError(SettingsExchangeError):
    kind = ErrorKind.OWNER_VERSION_MISMATCH


class EngineVersionMismatchError(SettingsExchangeError):
    kind = ErrorKind.ENGINE_VERSION_MISMATCH


class SerializationError(SettingsExchangeError, ValueError):
    kind = ErrorKind.SERIALIZATION_ERROR


class SerializationDepthError(SerializationError, RecursionError):
    """Value graph is cyclic or nested deeper than the configured limit."""

    kind = ErrorKind.RECURSION_ERROR
