# =============================================================
#  portable_settings/exchange.py
# =============================================================
"""Export and import of whole settings snapshots.

Export::

    IDLE -> SNAPSHOTTING -> SERIALIZING -> ENCODING -> IDLE

Import::

    IDLE -> DECODING -> DESERIALIZING -> VALIDATING_IDENTITY
         -> VALIDATING_OWNER_VERSION -> VALIDATING_ENGINE_VERSION
         -> COMMITTING -> IDLE

Any failing stage goes straight back to ``IDLE``; the active store is only
touched in ``COMMITTING``. Callers always get an :class:`ExchangeResult`,
never an exception.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Any, Dict, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from .config import EngineSettings
from .errors import (
    DecodeError,
    EngineVersionMismatchError,
    ErrorKind,
    IdentityMismatchError,
    InvalidEnvelopeError,
    OwnerVersionMismatchError,
    SerializationError,
    SettingsExchangeError,
)
from .hooks import HookChain
from .profiles import ControlRegistry
from .serialization import deserialize, serialize
from .transport import decode, encode

__all__ = [
    "ExportStage",
    "ImportStage",
    "ExportEnvelope",
    "ExchangeResult",
    "SettingsExchange",
]

log = logging.getLogger(__name__)


class ExportStage(str, Enum):
    IDLE = "idle"
    SNAPSHOTTING = "snapshotting"
    SERIALIZING = "serializing"
    ENCODING = "encoding"


class ImportStage(str, Enum):
    IDLE = "idle"
    DECODING = "decoding"
    DESERIALIZING = "deserializing"
    VALIDATING_IDENTITY = "validating_identity"
    VALIDATING_OWNER_VERSION = "validating_owner_version"
    VALIDATING_ENGINE_VERSION = "validating_engine_version"
    COMMITTING = "committing"


class ExportEnvelope(BaseModel):
    """Identity and version stamp wrapped around a snapshot.

    Field aliases are the keys used in the exported text.
    """

    owner_identity: str = Field(alias="addon")
    owner_version: str = Field(alias="version")
    engine_version: str = Field(alias="engineVersion")
    snapshot: Dict[Any, Any] = Field(default_factory=dict, alias="settings")

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    def to_wire(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True)


class ExchangeResult(BaseModel):
    """Outcome of an export or import; truthy on success."""

    ok: bool
    kind: Optional[ErrorKind] = None
    message: str = ""
    payload: Optional[str] = None
    stage: Optional[str] = None

    model_config = ConfigDict(frozen=True)

    def __bool__(self) -> bool:
        return self.ok

    @classmethod
    def failure(cls, kind: ErrorKind, message: str, stage: Optional[Enum] = None) -> "ExchangeResult":
        return cls(ok=False, kind=kind, message=message, stage=stage.value if stage else None)


Stage = Union[ExportStage, ImportStage]


class SettingsExchange:
    """Export/import pipeline bound to one owner's :class:`ControlRegistry`."""

    def __init__(
        self,
        controls: ControlRegistry,
        *,
        identity: str,
        owner_version: str,
        settings: EngineSettings | None = None,
        hooks: HookChain | None = None,
    ):
        self.controls = controls
        self.identity = identity
        self.owner_version = str(owner_version)
        self.settings = settings if settings is not None else EngineSettings()
        self.hooks = hooks if hooks is not None else controls.hooks
        self.stage: Stage = ExportStage.IDLE

    @property
    def engine_version(self) -> str:
        return self.settings.engine_version

    # ------------ helpers ---------------------------------------------- #

    def _enter(self, stage: Stage) -> None:
        self.stage = stage
        log.debug("[%s] %s", self.identity, stage.value)

    def _notify(self, operation: str, result: ExchangeResult) -> None:
        try:
            self.hooks.run_after(operation, result)
        except Exception as exc:
            log.warning("After-%s hook failed: %s", operation, exc, exc_info=True)

    # ------------ export ----------------------------------------------- #

    def envelope(self) -> ExportEnvelope:
        snapshot = self.controls.snapshot(exclude_session=self.settings.exclude_session_controls)
        return ExportEnvelope(
            owner_identity=self.identity,
            owner_version=self.owner_version,
            engine_version=self.engine_version,
            snapshot=snapshot,
        )

    def export(self) -> ExchangeResult:
        """Snapshot the active store and return it as printable text."""
        try:
            self.hooks.run_before("export")
            result = self._export()
        except SettingsExchangeError as exc:
            result = ExchangeResult.failure(exc.kind, exc.message, self.stage)
        except Exception as exc:
            log.warning("Export of '%s' failed unexpectedly: %s", self.identity, exc, exc_info=True)
            result = ExchangeResult.failure(ErrorKind.INTERNAL_ERROR, str(exc), self.stage)
        finally:
            self.stage = ExportStage.IDLE

        if not result.ok:
            log.warning("Export of '%s' failed (%s): %s", self.identity, result.kind.value, result.message)
        self._notify("export", result)
        return result

    def _export(self) -> ExchangeResult:
        self._enter(ExportStage.SNAPSHOTTING)
        envelope = self.envelope()

        self._enter(ExportStage.SERIALIZING)
        text = serialize(envelope.to_wire(), max_depth=self.settings.max_depth)

        self._enter(ExportStage.ENCODING)
        try:
            payload = encode(text)
        except UnicodeEncodeError as exc:
            raise SerializationError(f"encode failed: {exc}") from exc

        if self.settings.log_payloads:
            log.debug("[%s] export payload: %s", self.identity, payload)
        log.debug("[%s] exported %d characters", self.identity, len(payload))
        return ExchangeResult(ok=True, payload=payload)

    # ------------ import ----------------------------------------------- #

    def import_settings(self, text: Any) -> ExchangeResult:
        """Validate ``text`` and, only if every check passes, replace the
        active store with the snapshot it carries."""
        try:
            (text,) = self.hooks.run_before("import", text)
            result = self._import(text)
        except SettingsExchangeError as exc:
            result = ExchangeResult.failure(exc.kind, exc.message, self.stage)
        except Exception as exc:
            log.warning("Import into '%s' failed unexpectedly: %s", self.identity, exc, exc_info=True)
            result = ExchangeResult.failure(ErrorKind.INTERNAL_ERROR, str(exc), self.stage)
        finally:
            self.stage = ImportStage.IDLE

        if not result.ok:
            log.warning(
                "Import into '%s' rejected (%s): %s",
                self.identity,
                result.kind.value,
                result.message,
            )
        self._notify("import", result)
        return result

    import_ = import_settings

    def _import(self, text: Any) -> ExchangeResult:
        self._enter(ImportStage.DECODING)
        if not isinstance(text, str) or not text.strip():
            raise DecodeError("nothing to import")
        raw = decode(text)
        try:
            literal = raw.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise DecodeError(f"decoded data is not UTF-8 text: {exc}") from exc
        if not literal:
            raise DecodeError("decoded data is empty")

        self._enter(ImportStage.DESERIALIZING)
        data = deserialize(literal, max_depth=self.settings.max_depth)
        if not isinstance(data, dict):
            raise InvalidEnvelopeError(f"expected a table, got {type(data).__name__}")
        log.debug("[%s] envelope keys: %s", self.identity, ", ".join(sorted(map(str, data))))

        self._enter(ImportStage.VALIDATING_IDENTITY)
        if data.get("addon") != self.identity:
            raise IdentityMismatchError(
                f"settings belong to {data.get('addon')!r}, not {self.identity!r}"
            )

        self._enter(ImportStage.VALIDATING_OWNER_VERSION)
        if data.get("version") != self.owner_version:
            raise OwnerVersionMismatchError(
                f"imported: {data.get('version')!r}, current: {self.owner_version!r}"
            )

        self._enter(ImportStage.VALIDATING_ENGINE_VERSION)
        if data.get("engineVersion") != self.engine_version:
            raise EngineVersionMismatchError(
                f"imported: {data.get('engineVersion')!r}, current: {self.engine_version!r}"
            )

        if not isinstance(data.get("settings"), dict):
            raise InvalidEnvelopeError("envelope carries no settings table")
        envelope = ExportEnvelope.model_validate(data)

        self._enter(ImportStage.COMMITTING)
        self.controls.replace_active(envelope.snapshot)
        log.info(
            "Settings imported into the %s profile of '%s'",
            self.controls.active_profile,
            self.identity,
        )
        return ExchangeResult(ok=True)
