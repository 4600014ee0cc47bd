# =============================================================
#  portable_settings/profiles.py
# =============================================================
"""Control values backed by two host-owned stores.

The host hands over two plain dictionaries, a *global* store shared by every
entity and an *entity* store. Both have the shape
``{panel_key: {control_key: value}}`` and are only ever mutated in place.

Which store is active is decided by the boolean flag
``entity_store["useAlternateScope"]``: ``True`` selects the entity store. The
flag itself always lives in the entity store so it survives the switch.
"""

from __future__ import annotations

import copy
import logging
from collections.abc import Mapping
from typing import Any, Callable, Dict, Iterator, List, Optional, Tuple

from .coercion import coerce_control_value
from .controls import (
    ALTERNATE_SCOPE_KEY,
    MAIN_PANEL,
    ControlDescriptor,
    PanelConfig,
    Scope,
    builtin_main_controls,
)
from .hooks import HookChain
from .serialization import DEFAULT_MAX_DEPTH, is_serializable

__all__ = ["ControlRegistry"]

log = logging.getLogger(__name__)

Refresher = Callable[[], Any]


class ControlRegistry:
    """
    Resolve and store control values for one owner.

    Parameters
    ----------
    global_store, entity_store : dict
        Host-owned backing stores. Never replaced, only mutated.
    hooks : HookChain, optional
        Before/after hooks shared with the rest of the owner's engine.
    max_depth : int
        Nesting limit used when checking values written into a store.
    """

    def __init__(
        self,
        global_store: Dict[str, Any],
        entity_store: Dict[str, Any],
        *,
        hooks: HookChain | None = None,
        max_depth: int = DEFAULT_MAX_DEPTH,
    ):
        for name, store in (("global_store", global_store), ("entity_store", entity_store)):
            if not isinstance(store, dict):
                raise TypeError(f"{name} must be a dict, got {type(store).__name__}")
        if global_store is entity_store:
            raise ValueError("global_store and entity_store must be distinct objects")

        self.global_store = global_store
        self.entity_store = entity_store
        self.hooks = hooks if hooks is not None else HookChain()
        self.max_depth = max_depth

        self._panels: Dict[str, PanelConfig] = {}
        self._session: Dict[Tuple[str, str], Any] = {}
        self._refreshers: Dict[str, List[Refresher]] = {}

    # ------------ profile state ---------------------------------------- #

    @property
    def use_alternate(self) -> bool:
        return bool(self.entity_store.get(ALTERNATE_SCOPE_KEY, False))

    @property
    def active_store(self) -> Dict[str, Any]:
        return self.entity_store if self.use_alternate else self.global_store

    @property
    def active_profile(self) -> str:
        return "entity" if self.use_alternate else "global"

    # ------------ configuration ---------------------------------------- #

    def configure(self, panels: Mapping[str, Any] | None = None) -> None:
        """Register the control tree.

        ``panels`` maps panel keys to :class:`PanelConfig` objects or to
        ``{"title": ..., "controls": [...]}`` dictionaries. The ``main`` panel
        always ends with the built-in logging and profile controls.
        """
        built: Dict[str, PanelConfig] = {}
        panels = dict(panels or {})
        panels.setdefault(MAIN_PANEL, {})

        for key, cfg in panels.items():
            if isinstance(cfg, PanelConfig):
                data = {"key": key, "title": cfg.title, "controls": list(cfg.controls)}
            else:
                data = {"key": key, **dict(cfg)}
                data["controls"] = list(data.get("controls") or [])
            if key == MAIN_PANEL:
                data["controls"] = data["controls"] + builtin_main_controls()
            built[key] = PanelConfig.model_validate(data)

        self._panels = built
        self._session.clear()
        log.debug("Configured %d panel(s): %s", len(built), ", ".join(built))

    @property
    def panels(self) -> Dict[str, PanelConfig]:
        return dict(self._panels)

    def descriptor(
        self, panel_key: str, control_key: str, *, valueless: bool = False
    ) -> Optional[ControlDescriptor]:
        panel = self._panels.get(panel_key)
        return panel.get(control_key, valueless=valueless) if panel is not None else None

    def iter_controls(self) -> Iterator[ControlDescriptor]:
        for panel in self._panels.values():
            for ctrl in panel.controls:
                if ctrl.has_value:
                    yield ctrl

    # ------------ value access ----------------------------------------- #

    def _store_for(self, desc: ControlDescriptor) -> Dict[str, Any]:
        if desc.scope is Scope.PER_ENTITY:
            return self.entity_store
        return self.active_store

    @staticmethod
    def _is_profile_flag(panel_key: str, control_key: str) -> bool:
        return panel_key == MAIN_PANEL and control_key == ALTERNATE_SCOPE_KEY

    def resolve(self, panel_key: str, control_key: str) -> Any:
        """Current value of a control; falls back to (and seeds) the default."""
        panel_key, control_key = self.hooks.run_before("resolve", panel_key, control_key)
        value = self._resolve(panel_key, control_key)
        self.hooks.run_after("resolve", value)
        return value

    def _resolve(self, panel_key: str, control_key: str) -> Any:
        desc = self.descriptor(panel_key, control_key, valueless=True)

        if self._is_profile_flag(panel_key, control_key):
            if self.entity_store.get(ALTERNATE_SCOPE_KEY) is None:
                self.entity_store[ALTERNATE_SCOPE_KEY] = bool(desc.default) if desc else False
            return self.entity_store[ALTERNATE_SCOPE_KEY]

        if desc is None:
            panel = self.active_store.get(panel_key)
            return panel.get(control_key) if isinstance(panel, dict) else None
        if not desc.has_value:
            return None

        if not desc.persistent:
            key = (panel_key, control_key)
            if key not in self._session:
                self._session[key] = copy.deepcopy(desc.default)
            return self._session[key]

        store = self._store_for(desc)
        panel = store.get(panel_key)
        if panel is None:
            panel = store[panel_key] = {}
        elif not isinstance(panel, dict):
            log.debug("Panel '%s' in %s store is not a table; using default", panel_key, self.active_profile)
            return desc.default

        if panel.get(control_key) is None:
            if desc.default is None:
                return None
            panel[control_key] = copy.deepcopy(desc.default)
        return panel[control_key]

    def set(self, panel_key: str, control_key: str, value: Any) -> Any:
        """Write a control value and notify the control's ``on_value_change``.

        Returns the value actually stored (after coercion).
        """
        panel_key, control_key, value = self.hooks.run_before("set", panel_key, control_key, value)
        desc = self.descriptor(panel_key, control_key, valueless=True)

        if desc is not None:
            if not desc.has_value:
                raise ValueError(f"Control '{panel_key}.{control_key}' does not hold a value.")
            value = coerce_control_value(desc, value)

        if self._is_profile_flag(panel_key, control_key):
            value = bool(value)
            self.switch_profile(value)
        elif desc is None or desc.persistent:
            if not is_serializable(value, max_depth=self.max_depth):
                raise TypeError(
                    f"Value for '{panel_key}.{control_key}' cannot be stored: "
                    f"{type(value).__name__} is not serializable"
                )
            store = self.active_store if desc is None else self._store_for(desc)
            panel = store.get(panel_key)
            if not isinstance(panel, dict):
                panel = store[panel_key] = {}
            panel[control_key] = value
        else:
            self._session[(panel_key, control_key)] = value

        if desc is not None and desc.on_value_change is not None:
            desc.on_value_change(value)

        self.hooks.run_after("set", value)
        return value

    # ------------ profile switching ------------------------------------ #

    def switch_profile(self, use_alternate: bool) -> bool:
        """Select the entity store (``True``) or the global store (``False``)."""
        (use_alternate,) = self.hooks.run_before("switch_profile", use_alternate)
        use_alternate = bool(use_alternate)

        self.entity_store[ALTERNATE_SCOPE_KEY] = use_alternate
        log.debug("Profile switched to: %s", self.active_profile)
        self.refresh_all()

        self.hooks.run_after("switch_profile", use_alternate)
        return use_alternate

    # ------------ live panels ------------------------------------------ #

    def register_refresh(self, panel_key: str, callback: Refresher) -> Refresher:
        self._refreshers.setdefault(panel_key, []).append(callback)
        return callback

    def detach_panel(self, panel_key: str) -> None:
        self._refreshers.pop(panel_key, None)

    @property
    def live_panels(self) -> List[str]:
        return list(self._refreshers)

    def render_complete(self, panel_key: str) -> Dict[str, Any]:
        """Called by the UI once a panel is built.

        Resolves every value control of the panel, runs its ``on_load``
        callback and returns the resolved values.
        """
        panel = self._panels.get(panel_key)
        if panel is None:
            raise KeyError(f"Unknown panel '{panel_key}'")
        self._refreshers.setdefault(panel_key, [])

        values: Dict[str, Any] = {}
        for ctrl in panel.controls:
            if not ctrl.has_value:
                continue
            values[ctrl.control_key] = value = self.resolve(panel_key, ctrl.control_key)
            if ctrl.on_load is not None:
                ctrl.on_load(value)
        return values

    def refresh_all(self) -> int:
        """Run every refresh callback of every live panel, in order."""
        self.hooks.run_before("refresh")
        count = 0
        for panel_key, callbacks in list(self._refreshers.items()):
            for callback in list(callbacks):
                try:
                    callback()
                except Exception as exc:
                    log.warning("Refresh of panel '%s' failed: %s", panel_key, exc, exc_info=True)
                count += 1
        self.hooks.run_after("refresh", count)
        return count

    # ------------ bulk access (export / import) ------------------------ #

    def snapshot(self, *, exclude_session: bool = True) -> Dict[str, Any]:
        """Deep copy of the active store.

        The profile flag is never included. With ``exclude_session`` entries
        whose control is described as non-persistent are left out.
        """
        store = self.active_store
        snap: Dict[str, Any] = {}
        for panel_key, panel in store.items():
            if store is self.entity_store and panel_key == ALTERNATE_SCOPE_KEY:
                continue
            if exclude_session and isinstance(panel, dict):
                kept = {}
                for key, value in panel.items():
                    desc = self.descriptor(panel_key, key)
                    if desc is not None and not desc.persistent:
                        log.debug("Leaving session control '%s.%s' out of snapshot", panel_key, key)
                        continue
                    kept[key] = value
                panel = kept
            snap[panel_key] = copy.deepcopy(panel)
        return snap

    def replace_active(self, snapshot: Mapping[str, Any]) -> None:
        """Replace the whole active store with ``snapshot``.

        The new contents are fully built before the store is touched; the
        clear and the update then run back to back. The profile flag of the
        entity store is kept.
        """
        if not isinstance(snapshot, Mapping):
            raise TypeError(f"snapshot must be a mapping, got {type(snapshot).__name__}")

        store = self.active_store
        fresh = copy.deepcopy(dict(snapshot))
        if store is self.entity_store:
            fresh.pop(ALTERNATE_SCOPE_KEY, None)
            if ALTERNATE_SCOPE_KEY in store:
                fresh[ALTERNATE_SCOPE_KEY] = store[ALTERNATE_SCOPE_KEY]

        store.clear()
        store.update(fresh)
        log.debug("Replaced %s store with %d top-level key(s)", self.active_profile, len(fresh))

        # already committed; refresh faults are only logged
        try:
            self.refresh_all()
        except Exception as exc:
            log.warning(
                "Refresh after replacing the %s store failed: %s",
                self.active_profile,
                exc,
                exc_info=True,
            )
