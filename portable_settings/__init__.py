# =============================================================
#  portable_settings/__init__.py
# =============================================================
"""
Portable-Settings
=================

Settings persistence and a portable export/import format for UI settings
panels.

Main ideas
~~~~~~~~~~
* Controls (checkboxes, sliders, dropdowns, input boxes) are described once
  per panel; every described control resolves to a value, falling back to its
  default.
* Values live in two **host-owned** dictionaries: a *global* store and an
  *entity* store. The ``main.useAlternateScope`` checkbox picks which one is
  active; switching refreshes every live panel.
* ``export_settings()`` turns the active store into a printable string;
  ``import_settings()`` checks owner identity, owner version and engine
  version before replacing the store in one go. Nothing is applied on failure.

Quick example
~~~~~~~~~~~~~
```python
from portable_settings import create_registry

registry = create_registry()
addon = registry.register(
    "MyAddon",
    version="1.0",
    global_store=saved_global,      # dicts owned by the host
    entity_store=saved_per_char,
    panels={
        "main": {
            "title": "My Addon Settings",
            "controls": [
                {"type": "checkbox", "name": "showMinimap",
                 "default": True, "persistent": True},
            ],
        },
    },
)

addon.values.main.showMinimap = False
blob = addon.export_settings().payload

result = addon.import_settings(blob)
if not result:
    print(result.kind, result.message)
```
"""

from __future__ import annotations

from importlib import metadata as _meta
import logging as _logging

# --------------------------------------------------------------------- #
# Version
# --------------------------------------------------------------------- #
try:  # When installed (pip/poetry)
    __version__: str = _meta.version("portable-settings-manager")
except _meta.PackageNotFoundError:  # Editable checkout / source tree
    __version__ = "0.1.0"

# --------------------------------------------------------------------- #
# Logging
# --------------------------------------------------------------------- #
_logging.getLogger(__name__).addHandler(_logging.NullHandler()) # *never* touch the root logger.

# --------------------------------------------------------------------- #
# Public re-exports
# --------------------------------------------------------------------- #
from .config import ENGINE_VERSION, EngineSettings  # noqa: E402
from .controls import ControlDescriptor, ControlKind, PanelConfig, Scope  # noqa: E402
from .errors import (  # noqa: E402
    DecodeError,
    ErrorKind,
    ExecutionError,
    ParseError,
    SerializationDepthError,
    SerializationError,
    SettingsExchangeError,
)
from .exchange import ExchangeResult, ExportEnvelope, SettingsExchange  # noqa: E402
from .hooks import HookChain  # noqa: E402
from .manager import (  # noqa: E402
    DebugSettingFilter,
    InstanceRegistry,
    SettingsInstance,
    create_registry,
)
from .profiles import ControlRegistry  # noqa: E402
from .serialization import deserialize, serialize  # noqa: E402
from .transport import ChannelCodec, decode, encode  # noqa: E402

__all__ = [
    "ENGINE_VERSION",
    "EngineSettings",
    "ControlDescriptor",
    "ControlKind",
    "PanelConfig",
    "Scope",
    "ErrorKind",
    "SettingsExchangeError",
    "DecodeError",
    "ParseError",
    "ExecutionError",
    "SerializationError",
    "SerializationDepthError",
    "ExchangeResult",
    "ExportEnvelope",
    "SettingsExchange",
    "HookChain",
    "ControlRegistry",
    "SettingsInstance",
    "InstanceRegistry",
    "DebugSettingFilter",
    "create_registry",
    "serialize",
    "deserialize",
    "encode",
    "decode",
    "ChannelCodec",
]
