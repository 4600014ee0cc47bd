# =============================================================
#  portable_settings/config.py
# =============================================================
"""Engine-level knobs, loaded through *pydantic-settings*.

Every field can be overridden from the environment with the
``PORTABLE_SETTINGS_`` prefix, e.g. ``PORTABLE_SETTINGS_MAX_DEPTH=32``.
"""

from __future__ import annotations

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

__all__ = ["ENGINE_VERSION", "EngineSettings"]

# Version of the export format / exchange engine. Written into every export
# envelope and compared verbatim on import.
ENGINE_VERSION = "1.1"


class EngineSettings(BaseSettings):
    """Settings of the exchange engine itself (not of the owning app)."""

    engine_version: str = Field(
        default=ENGINE_VERSION,
        description="Engine version stamped into export envelopes.",
        json_schema_extra={"editable": False},
    )
    max_depth: int = Field(
        default=64,
        ge=1,
        le=200,
        description="Maximum nesting depth accepted by the serializer and parser.",
    )
    exclude_session_controls: bool = Field(
        default=True,
        description="Leave non-persistent controls out of export snapshots.",
    )
    log_payloads: bool = Field(
        default=False,
        description="Log encoded export payloads at DEBUG level.",
    )

    model_config = SettingsConfigDict(env_prefix="PORTABLE_SETTINGS_", extra="ignore")
