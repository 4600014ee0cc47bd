# =============================================================
#  portable_settings/controls.py
# =============================================================
"""
Static description of the controls shown on settings panels.

Controls are authored once, usually as plain dictionaries in the owner's
panel tree::

    {
        "main": {
            "title": "My Addon Settings",
            "controls": [
                {"type": "header", "name": "exampleHeader"},
                {"type": "checkbox", "name": "exampleCheckbox",
                 "default": True, "persistent": True},
            ],
        },
    }

and validated into frozen :class:`ControlDescriptor` models.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Callable, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from .serialization import is_serializable

__all__ = [
    "ALTERNATE_SCOPE_KEY",
    "MAIN_PANEL",
    "ControlKind",
    "Scope",
    "ControlDescriptor",
    "PanelConfig",
    "builtin_main_controls",
]

MAIN_PANEL = "main"
# Lives at the top level of the entity store and selects the active store.
ALTERNATE_SCOPE_KEY = "useAlternateScope"


class ControlKind(str, Enum):
    HEADER = "header"
    CHECKBOX = "checkbox"
    DROPDOWN = "dropdown"
    SLIDER = "slider"
    BUTTON = "button"
    DESCRIPTION = "description"
    INPUT_BOX = "inputBox"

    @property
    def has_value(self) -> bool:
        return self not in (ControlKind.HEADER, ControlKind.BUTTON, ControlKind.DESCRIPTION)


class Scope(str, Enum):
    GLOBAL = "global"  # follows the active store
    PER_ENTITY = "per_entity"  # pinned to the entity store
    SESSION = "session"  # memory only


class ControlDescriptor(BaseModel):
    """One control on one panel. Immutable after configuration."""

    panel_key: str
    control_key: str = Field(alias="name")
    kind: ControlKind = Field(alias="type")
    default: Any = None
    persistent: bool = False
    scope: Scope = Scope.GLOBAL
    title: Optional[str] = None
    options: Optional[List[Any]] = None
    min_value: Optional[float] = Field(default=None, alias="min")
    max_value: Optional[float] = Field(default=None, alias="max")
    step: Optional[float] = Field(default=None, gt=0)
    skip_refresh: bool = Field(default=False, alias="skipRefresh")
    on_value_change: Optional[Callable[[Any], Any]] = Field(
        default=None, alias="onValueChange", exclude=True
    )
    on_load: Optional[Callable[[Any], Any]] = Field(default=None, alias="onLoad", exclude=True)
    on_click: Optional[Callable[..., Any]] = Field(default=None, alias="onClick", exclude=True)

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    @model_validator(mode="before")
    @classmethod
    def _session_scope(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        data = dict(data)
        if data.get("scope") in (Scope.SESSION, Scope.SESSION.value):
            data["persistent"] = False
        elif data.get("persistent") is not True:
            data["scope"] = Scope.SESSION
        return data

    @model_validator(mode="after")
    def _check_default(self) -> "ControlDescriptor":
        if self.persistent and not is_serializable(self.default):
            raise ValueError(
                f"default of persistent control '{self.panel_key}.{self.control_key}' "
                "is not serializable"
            )
        if self.kind is ControlKind.SLIDER and None not in (self.min_value, self.max_value):
            if self.min_value > self.max_value:
                raise ValueError("slider min must not exceed max")
        return self

    @property
    def has_value(self) -> bool:
        return self.kind.has_value


class PanelConfig(BaseModel):
    """A panel with its ordered controls."""

    key: str
    title: Optional[str] = None
    controls: List[ControlDescriptor] = Field(default_factory=list)

    model_config = ConfigDict(frozen=True)

    @model_validator(mode="before")
    @classmethod
    def _inject_panel_key(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        data = dict(data)
        key = data.get("key")
        controls = []
        for control in data.get("controls") or []:
            if isinstance(control, dict):
                control = {"panel_key": key, **control}
            controls.append(control)
        data["controls"] = controls
        return data

    @field_validator("controls")
    @classmethod
    def _unique_keys(cls, controls: List[ControlDescriptor]) -> List[ControlDescriptor]:
        seen = set()
        for ctrl in controls:
            if not ctrl.has_value:
                continue
            if ctrl.control_key in seen:
                raise ValueError(f"duplicate control key '{ctrl.control_key}'")
            seen.add(ctrl.control_key)
        return controls

    def get(self, control_key: str, *, valueless: bool = False) -> Optional[ControlDescriptor]:
        """Value control named ``control_key``.

        With ``valueless`` a header, button or description of that name is
        returned when no value control matches.
        """
        fallback = None
        for ctrl in self.controls:
            if ctrl.control_key != control_key:
                continue
            if ctrl.has_value:
                return ctrl
            if valueless and fallback is None:
                fallback = ctrl
        return fallback


def builtin_main_controls() -> List[Dict[str, Any]]:
    """Footer controls every ``main`` panel ends with."""
    return [
        {"type": "header", "name": "loggingHeader"},
        {"type": "checkbox", "name": "logVersion", "default": False, "persistent": True},
        {"type": "checkbox", "name": "enableDebugging", "default": False, "persistent": True},
        {"type": "header", "name": "profile"},
        {
            "type": "checkbox",
            "name": ALTERNATE_SCOPE_KEY,
            "default": False,
            "persistent": True,
            "scope": Scope.PER_ENTITY,
            "skipRefresh": True,
        },
        {"type": "inputBox", "name": "loadSettings", "default": ""},
        {"type": "button", "name": "shareSettings"},
        {"type": "description", "name": "tagline"},
    ]
