# =============================================================
#  portable_settings/coercion.py
#  Value clean-up applied before a control value is stored
# =============================================================
"""Per-kind coercion of values written through ``set``.

* checkbox  - flexible boolean parsing (``"yes"``, ``"off"``, ``1`` ...)
* slider    - numeric conversion, clamp into ``[min, max]``, snap to ``step``
* dropdown  - exact option, else the *nearest* string option
* others    - passed through untouched

The helpers are self-contained and only look at the descriptor, so the UI
layer can call :func:`coerce_control_value` for previews as well.
"""

from __future__ import annotations

import math
from difflib import get_close_matches
from enum import Enum
from typing import Any

from .controls import ControlDescriptor, ControlKind

__all__ = [
    "NumericPolicy",
    "OptionsPolicy",
    "BooleanPolicy",
    "coerce_control_value",
]

# ------------------------------------------------------------------
# enums / policy helpers
# ------------------------------------------------------------------


class NumericPolicy(str, Enum):
    CLAMP = "clamp"
    REJECT = "reject"
    BYPASS = "bypass"


class OptionsPolicy(str, Enum):
    NEAREST = "nearest"
    REJECT = "reject"
    BYPASS = "bypass"


class BooleanPolicy(str, Enum):
    BINARY = "binary"
    STRICT = "strict"
    BYPASS = "bypass"


_TRUE_VALUES = {"true", "t", "yes", "y", "on", "1", "1.0"}
_FALSE_VALUES = {"false", "f", "no", "n", "off", "0", "0.0", ""}


# ------------------------------------------------------------------
# internal helpers
# ------------------------------------------------------------------


def _fix_numeric(
    raw_val: Any,
    *,
    low: float | None,
    high: float | None,
    step: float | None,
    policy: NumericPolicy,
) -> Any | None:
    val = raw_val
    if isinstance(val, bool):
        val = int(val)
    if not isinstance(val, (int, float)):
        try:
            val = float(str(val).strip())
        except ValueError:
            return raw_val if policy is NumericPolicy.BYPASS else None
    if not math.isfinite(val):
        return None

    if policy is NumericPolicy.BYPASS:
        return val

    if policy is NumericPolicy.REJECT:
        if (low is not None and val < low) or (high is not None and val > high):
            return None
    else:
        if low is not None and val < low:
            val = low
        if high is not None and val > high:
            val = high

    if step:
        base = low if low is not None else 0
        val = base + round((val - base) / step) * step
        if high is not None and val > high:
            val -= step
        # keep 0.1-style steps from printing as 0.30000000000000004
        val = round(val, 10)

    # bounds are stored as floats; integral input stays integral
    if isinstance(val, float) and val.is_integer() and not isinstance(raw_val, float):
        val = int(val)
    return val


def _fix_options(val: Any, opts: list[Any], *, policy: OptionsPolicy) -> Any | None:
    if val in opts or policy is OptionsPolicy.BYPASS:
        return val

    if policy is OptionsPolicy.NEAREST and isinstance(val, str):
        labels = {str(o): o for o in opts}
        hit = get_close_matches(val, list(labels), n=1, cutoff=0.4)
        return labels[hit[0]] if hit else None

    # reject
    return None


def _fix_boolean(val: Any, *, policy: BooleanPolicy) -> Any | None:
    if val is None or policy is BooleanPolicy.BYPASS:
        return val
    if isinstance(val, bool):
        return val

    sval = str(val).strip().lower()
    if sval in _TRUE_VALUES:
        return True
    if sval in _FALSE_VALUES:
        return False

    if policy is BooleanPolicy.BINARY:
        return bool(val)
    return None


# ------------------------------------------------------------------
# public entry point
# ------------------------------------------------------------------


def coerce_control_value(
    descriptor: ControlDescriptor,
    value: Any,
    *,
    numeric_policy: str | NumericPolicy = "clamp",
    options_policy: str | OptionsPolicy = "nearest",
    boolean_policy: str | BooleanPolicy = "binary",
) -> Any:
    """Return ``value`` cleaned up for ``descriptor``.

    Raises
    ------
    ValueError
        The value cannot be made acceptable under the chosen policy.
    """
    kind = descriptor.kind
    fixed: Any = value

    if kind is ControlKind.CHECKBOX:
        fixed = _fix_boolean(value, policy=BooleanPolicy(boolean_policy))
    elif kind is ControlKind.SLIDER:
        fixed = _fix_numeric(
            value,
            low=descriptor.min_value,
            high=descriptor.max_value,
            step=descriptor.step,
            policy=NumericPolicy(numeric_policy),
        )
    elif kind is ControlKind.DROPDOWN and descriptor.options:
        fixed = _fix_options(value, descriptor.options, policy=OptionsPolicy(options_policy))

    if fixed is None and value is not None:
        raise ValueError(
            f"{value!r} is not acceptable for {kind.value} "
            f"'{descriptor.panel_key}.{descriptor.control_key}'"
        )
    return fixed
