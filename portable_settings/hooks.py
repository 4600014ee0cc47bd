# =============================================================
#  portable_settings/hooks.py
# =============================================================
"""Ordered before/after hooks around engine operations.

Before-hooks run in registration order and may rewrite the positional
arguments: a hook returns a replacement tuple, or ``None`` to leave them as
they are. After-hooks run in registration order, see the result and cannot
change it.

```python
hooks = HookChain()
hooks.add_before("import", lambda text: (text.strip(),))
hooks.add_after("export", lambda result: audit.append(result.ok))
```
"""

from __future__ import annotations

from collections import defaultdict
from typing import Any, Callable, Dict, List, Tuple

__all__ = ["OPERATIONS", "HookChain"]

OPERATIONS = frozenset({"resolve", "set", "switch_profile", "refresh", "export", "import"})

BeforeHook = Callable[..., Any]
AfterHook = Callable[[Any], Any]


class HookChain:
    def __init__(self):
        self._before: Dict[str, List[BeforeHook]] = defaultdict(list)
        self._after: Dict[str, List[AfterHook]] = defaultdict(list)

    # ---------- registration ------------------------------------------ #

    @staticmethod
    def _check(operation: str) -> None:
        if operation not in OPERATIONS:
            raise ValueError(
                f"Unknown operation '{operation}'; expected one of {sorted(OPERATIONS)}"
            )

    def add_before(self, operation: str, hook: BeforeHook) -> BeforeHook:
        self._check(operation)
        self._before[operation].append(hook)
        return hook

    def add_after(self, operation: str, hook: AfterHook) -> AfterHook:
        self._check(operation)
        self._after[operation].append(hook)
        return hook

    def remove(self, operation: str, hook: Callable[..., Any]) -> bool:
        self._check(operation)
        for chain in (self._before[operation], self._after[operation]):
            if hook in chain:
                chain.remove(hook)
                return True
        return False

    def clear(self) -> None:
        self._before.clear()
        self._after.clear()

    # ---------- dispatch ---------------------------------------------- #

    def run_before(self, operation: str, *args: Any) -> Tuple[Any, ...]:
        for hook in self._before.get(operation, ()):
            replaced = hook(*args)
            if replaced is None:
                continue
            if not isinstance(replaced, tuple) or len(replaced) != len(args):
                raise TypeError(
                    f"before-hook {hook!r} for '{operation}' must return None "
                    f"or a tuple of {len(args)} argument(s)"
                )
            args = replaced
        return args

    def run_after(self, operation: str, result: Any) -> None:
        for hook in self._after.get(operation, ()):
            hook(result)

    def __len__(self) -> int:
        return sum(len(c) for c in self._before.values()) + sum(
            len(c) for c in self._after.values()
        )
