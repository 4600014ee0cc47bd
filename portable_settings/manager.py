# =============================================================
#  portable_settings/manager.py
# =============================================================
from __future__ import annotations

import logging
from typing import Any, Dict, Iterator, Mapping, Optional

from .config import EngineSettings
from .controls import MAIN_PANEL
from .exchange import ExchangeResult, SettingsExchange
from .hooks import HookChain
from .profiles import ControlRegistry

__all__ = ["SettingsInstance", "InstanceRegistry", "DebugSettingFilter", "create_registry"]

log = logging.getLogger(__name__)


class _PanelAccessor:
    """Attribute style accessor for the controls of one panel."""

    def __init__(self, inst: "SettingsInstance", panel_key: str, *, writable: bool = True):
        object.__setattr__(self, "_inst", inst)
        object.__setattr__(self, "_panel", panel_key)
        object.__setattr__(self, "_writable", writable)

    def __getattr__(self, item: str):
        if item.startswith("__"):
            raise AttributeError(item)
        if self._writable:
            return self._inst.resolve(self._panel, item)
        desc = self._inst.controls.descriptor(self._panel, item)
        if desc is None:
            raise AttributeError(f"No control '{item}' on panel '{self._panel}'")
        return desc.default

    def __setattr__(self, item: str, value: Any):
        if not self._writable:
            raise AttributeError("Default values are read-only")
        self._inst.set(self._panel, item, value)

    __getitem__ = __getattr__
    __setitem__ = __setattr__


class _ValuesAccessor:
    """``inst.values.<panel>.<control>`` (or ``inst.values["panel"]["control"]``)."""

    def __init__(self, inst: "SettingsInstance", *, writable: bool = True):
        object.__setattr__(self, "_inst", inst)
        object.__setattr__(self, "_writable", writable)

    def __getattr__(self, panel_key: str) -> _PanelAccessor:
        if panel_key.startswith("__"):
            raise AttributeError(panel_key)
        return _PanelAccessor(self._inst, panel_key, writable=self._writable)

    def __setattr__(self, item: str, value: Any):
        raise AttributeError("Assign to a control, e.g. values.main.enableDebugging = True")

    __getitem__ = __getattr__


# --------------------------------------------------------------------------- #
#                          SettingsInstance                                   #
# --------------------------------------------------------------------------- #


class SettingsInstance:
    """
    Everything the engine keeps for one owning application.

    Parameters
    ----------
    identity : str
        Owner identity; exports are only accepted by an owner with the same one.
    version : str
        Owner version, compared verbatim on import.
    global_store, entity_store : dict
        Host-owned backing stores (mutated in place).
    panels : mapping, optional
        Control tree, see :meth:`ControlRegistry.configure`.
    """

    def __init__(
        self,
        *,
        identity: str,
        version: str,
        global_store: Dict[str, Any],
        entity_store: Dict[str, Any],
        panels: Mapping[str, Any] | None = None,
        settings: EngineSettings | None = None,
        hooks: HookChain | None = None,
    ):
        self.identity = identity
        self.version = str(version)
        self.settings = settings if settings is not None else EngineSettings()
        self.hooks = hooks if hooks is not None else HookChain()

        self.controls = ControlRegistry(
            global_store,
            entity_store,
            hooks=self.hooks,
            max_depth=self.settings.max_depth,
        )
        self.controls.configure(panels)
        self.exchange = SettingsExchange(
            self.controls,
            identity=identity,
            owner_version=self.version,
            settings=self.settings,
            hooks=self.hooks,
        )

    # ------------ public (value access) -------------------------------- #

    @property
    def engine_version(self) -> str:
        return self.settings.engine_version

    @property
    def values(self) -> _ValuesAccessor:
        return _ValuesAccessor(self)

    @property
    def defaults(self) -> _ValuesAccessor:
        return _ValuesAccessor(self, writable=False)

    def resolve(self, panel_key: str, control_key: str) -> Any:
        return self.controls.resolve(panel_key, control_key)

    # alias for convenience
    get = resolve

    def set(self, panel_key: str, control_key: str, value: Any) -> Any:
        return self.controls.set(panel_key, control_key, value)

    def switch_profile(self, use_alternate: bool) -> bool:
        return self.controls.switch_profile(use_alternate)

    @property
    def debug_enabled(self) -> bool:
        return bool(self.controls._resolve(MAIN_PANEL, "enableDebugging"))

    # ------------ export / import -------------------------------------- #

    def export_settings(self) -> ExchangeResult:
        return self.exchange.export()

    def import_settings(self, text: str) -> ExchangeResult:
        return self.exchange.import_settings(text)

    def __repr__(self) -> str:
        return (
            f"SettingsInstance(identity={self.identity!r}, version={self.version!r}, "
            f"profile={self.controls.active_profile!r})"
        )


class DebugSettingFilter(logging.Filter):
    """Drop DEBUG records unless the owner's ``main.enableDebugging`` is on.

    ```python
    handler.addFilter(DebugSettingFilter(inst))
    ```
    """

    def __init__(self, instance: SettingsInstance, name: str = ""):
        super().__init__(name)
        self._instance = instance

    def filter(self, record: logging.LogRecord) -> bool:
        if record.levelno > logging.DEBUG:
            return True
        return self._instance.debug_enabled


# --------------------------------------------------------------------------- #
#                           Instance registry                                 #
# --------------------------------------------------------------------------- #


class InstanceRegistry:
    """
    Owners known to this engine, keyed by identity.

    Build one with :func:`create_registry` and pass it to whoever needs it;
    there is no module-level instance.
    """

    def __init__(self, *, settings: EngineSettings | None = None):
        self._instances: Dict[str, SettingsInstance] = {}
        self.settings = settings

    # ---------- registration ------------------------------------------ #

    def register(
        self,
        identity: str,
        *,
        version: str,
        global_store: Dict[str, Any] | None = None,
        entity_store: Dict[str, Any] | None = None,
        panels: Mapping[str, Any] | None = None,
        settings: EngineSettings | None = None,
        hooks: HookChain | None = None,
    ) -> SettingsInstance:
        if not isinstance(identity, str) or not identity:
            raise ValueError("identity must be a non-empty string")
        if identity in self._instances:
            raise ValueError(f"Owner '{identity}' already registered.")

        inst = SettingsInstance(
            identity=identity,
            version=version,
            global_store=global_store if global_store is not None else {},
            entity_store=entity_store if entity_store is not None else {},
            panels=panels,
            settings=settings if settings is not None else self.settings,
            hooks=hooks,
        )
        self._instances[identity] = inst
        log.debug("Registered '%s' (%s profile active)", identity, inst.controls.active_profile)

        if inst.resolve(MAIN_PANEL, "logVersion"):
            log.info("%s version %s", identity, inst.version)
        return inst

    def unregister(self, identity: str) -> SettingsInstance:
        return self._instances.pop(identity)

    # ---------- convenience ------------------------------------------- #

    def get(self, identity: str) -> Optional[SettingsInstance]:
        return self._instances.get(identity)

    def __getitem__(self, identity: str) -> SettingsInstance:
        return self._instances[identity]

    def __contains__(self, identity: object) -> bool:
        return identity in self._instances

    def __iter__(self) -> Iterator[SettingsInstance]:
        return iter(self._instances.values())

    def __len__(self) -> int:
        return len(self._instances)

    def refresh_all(self) -> int:
        return sum(inst.controls.refresh_all() for inst in self._instances.values())


def create_registry(settings: EngineSettings | None = None) -> InstanceRegistry:
    """Return a new, empty :class:`InstanceRegistry`."""
    return InstanceRegistry(settings=settings)
