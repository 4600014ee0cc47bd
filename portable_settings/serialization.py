# =============================================================
#  portable_settings/serialization.py
#  Settings value <-> table-literal text
# =============================================================
"""Text form of settings values.

A value is written as a small table literal::

    {["addon"]="MyAddon",["settings"]={["main"]={["enableDebugging"]=true}}}

Grammar accepted by :func:`deserialize`::

    expr   := string | number | 'true' | 'false' | 'nil' | table
    table  := '{' [ entry { (',' | ';') entry } [ ',' | ';' ] ] '}'
    entry  := '[' expr ']' '=' expr | expr

Parsing is done by a recursive-descent parser that only builds data. Nothing
in here hands text to ``eval``/``exec`` or any other general evaluator.

Notes
~~~~~
* Floats are written with ``%.14g``. That keeps the output identical to
  existing exports but does not round-trip every float bit for bit.
* Mapping keys that are not strings or numbers (booleans included) are
  dropped from the output. Values of unsupported types are written as ``nil``.
* Lists and tuples are written as 1-based integer-keyed tables and therefore
  come back as ``dict``.
"""

from __future__ import annotations

import logging
import math
import numbers
import re
from collections.abc import Mapping
from typing import Any, List, NamedTuple, Optional, Tuple, Union

from .errors import ExecutionError, ParseError, SerializationDepthError, SerializationError

__all__ = ["DEFAULT_MAX_DEPTH", "serialize", "deserialize", "is_serializable"]

log = logging.getLogger(__name__)

DEFAULT_MAX_DEPTH = 64

# --------------------------------------------------------------------------- #
#                              writing                                         #
# --------------------------------------------------------------------------- #

_ESCAPES = {
    '"': '\\"',
    "\\": "\\\\",
    "\n": "\\n",
    "\r": "\\r",
    "\t": "\\t",
}


def _quote(text: str) -> str:
    out = ['"']
    for ch in text:
        esc = _ESCAPES.get(ch)
        if esc is not None:
            out.append(esc)
        elif ord(ch) < 32 or ord(ch) == 127:
            # always three digits so a following digit is not swallowed
            out.append("\\%03d" % ord(ch))
        else:
            out.append(ch)
    out.append('"')
    return "".join(out)


def _format_number(value: numbers.Real) -> str:
    if isinstance(value, numbers.Integral):
        return str(int(value))
    value = float(value)
    if not math.isfinite(value):
        raise SerializationError(f"cannot serialize non-finite number {value!r}")
    return "%.14g" % value


def _key_literal(key: Any) -> Optional[str]:
    if isinstance(key, bool):
        return None
    if isinstance(key, str):
        return _quote(key)
    if isinstance(key, numbers.Real):
        if not isinstance(key, numbers.Integral) and not math.isfinite(float(key)):
            return None
        return _format_number(key)
    return None


def _write_value(value: Any, out: List[str], depth: int, max_depth: int, seen: set) -> None:
    if value is None:
        out.append("nil")
    elif isinstance(value, bool):
        out.append("true" if value else "false")
    elif isinstance(value, numbers.Real):
        out.append(_format_number(value))
    elif isinstance(value, str):
        out.append(_quote(value))
    elif isinstance(value, (Mapping, list, tuple)):
        _write_table(value, out, depth, max_depth, seen)
    else:
        log.debug("Writing unsupported value of type %s as nil", type(value).__name__)
        out.append("nil")


def _write_table(value: Any, out: List[str], depth: int, max_depth: int, seen: set) -> None:
    if depth >= max_depth:
        raise SerializationDepthError(f"value nested deeper than {max_depth} levels")
    marker = id(value)
    if marker in seen:
        raise SerializationDepthError("value contains a reference cycle")
    seen.add(marker)

    items = enumerate(value, start=1) if isinstance(value, (list, tuple)) else value.items()
    out.append("{")
    first = True
    for key, item in items:
        key_text = _key_literal(key)
        if key_text is None:
            log.debug("Dropping table key %r of unsupported type %s", key, type(key).__name__)
            continue
        if not first:
            out.append(",")
        first = False
        out.append(f"[{key_text}]=")
        _write_value(item, out, depth + 1, max_depth, seen)
    out.append("}")

    # shared (non-cyclic) sub-tables may appear more than once
    seen.discard(marker)


def serialize(value: Any, *, max_depth: int = DEFAULT_MAX_DEPTH) -> str:
    """Return the table-literal text for ``value``.

    Raises
    ------
    SerializationDepthError
        ``value`` is cyclic or nested deeper than ``max_depth``.
    SerializationError
        ``value`` contains a non-finite float.
    """
    out: List[str] = []
    try:
        _write_value(value, out, 0, max_depth, set())
    except RecursionError as exc:
        if isinstance(exc, SerializationDepthError):
            raise
        raise SerializationDepthError("interpreter recursion limit reached") from exc
    return "".join(out)


def is_serializable(value: Any, *, max_depth: int = DEFAULT_MAX_DEPTH) -> bool:
    """True if ``value`` survives :func:`serialize` without loss."""

    def _check(v: Any, depth: int, seen: set) -> bool:
        if v is None or isinstance(v, (bool, str)):
            return True
        if isinstance(v, numbers.Real):
            return isinstance(v, numbers.Integral) or math.isfinite(float(v))
        if isinstance(v, (Mapping, list, tuple)):
            if depth >= max_depth or id(v) in seen:
                return False
            seen.add(id(v))
            items = enumerate(v, start=1) if isinstance(v, (list, tuple)) else v.items()
            ok = all(_key_literal(k) is not None and _check(i, depth + 1, seen) for k, i in items)
            seen.discard(id(v))
            return ok
        return False

    try:
        return _check(value, 0, set())
    except RecursionError:
        return False


# --------------------------------------------------------------------------- #
#                              reading                                         #
# --------------------------------------------------------------------------- #


class _Literal(NamedTuple):
    value: Union[None, bool, str]


class _Number(NamedTuple):
    text: str


class _Table(NamedTuple):
    entries: List[Tuple[Optional["_Node"], "_Node"]]


_Node = Union[_Literal, _Number, _Table]

_NUMBER_RE = re.compile(r"-?(?:[0-9]+(?:\.[0-9]*)?|\.[0-9]+)(?:[eE][+-]?[0-9]+)?")
_NAME_RE = re.compile(r"[A-Za-z_][A-Za-z0-9_]*")
_DIGITS = "0123456789"
_NAMES = {"true": True, "false": False, "nil": None}
_SIMPLE_ESCAPES = {
    "n": "\n",
    "r": "\r",
    "t": "\t",
    "a": "\a",
    "b": "\b",
    "f": "\f",
    "v": "\v",
    "\\": "\\",
    '"': '"',
    "'": "'",
}


def _normalize(text: str) -> str:
    """Strip line breaks and collapse whitespace runs outside string literals.

    Inside a literal only raw CR/LF are removed; the writer never emits them.
    """
    out: List[str] = []
    quote: Optional[str] = None
    pending_space = False
    i, n = 0, len(text)
    while i < n:
        ch = text[i]
        if quote is not None:
            if ch in "\r\n":
                i += 1
                continue
            out.append(ch)
            if ch == "\\" and i + 1 < n:
                nxt = text[i + 1]
                if nxt in "\r\n":
                    # backslash-newline is an escaped line break
                    out.append("n")
                    i += 3 if text[i + 1 : i + 3] == "\r\n" else 2
                else:
                    out.append(nxt)
                    i += 2
                continue
            if ch == quote:
                quote = None
            i += 1
            continue
        if ch in "\r\n":
            i += 1
            continue
        if ch.isspace():
            pending_space = True
            i += 1
            continue
        if pending_space and out:
            out.append(" ")
        pending_space = False
        if ch in "\"'":
            quote = ch
        out.append(ch)
        i += 1
    return "".join(out)


class _Parser:
    def __init__(self, text: str, max_depth: int):
        self.text = text
        self.pos = 0
        self.max_depth = max_depth

    # ---------- helpers ----------------------------------------------- #

    def _skip_ws(self) -> None:
        while self.pos < len(self.text) and self.text[self.pos].isspace():
            self.pos += 1

    def _peek(self) -> str:
        return self.text[self.pos] if self.pos < len(self.text) else ""

    def _expect(self, ch: str) -> None:
        self._skip_ws()
        if self._peek() != ch:
            found = self._peek() or "end of input"
            raise ParseError(f"expected '{ch}' but found {found!r}", self.pos)
        self.pos += 1

    # ---------- grammar ----------------------------------------------- #

    def parse(self) -> _Node:
        self._skip_ws()
        if not self._peek():
            raise ParseError("empty input")
        node = self._expression(0)
        self._skip_ws()
        if self.pos != len(self.text):
            raise ParseError("unexpected text after value", self.pos)
        return node

    def _expression(self, depth: int) -> _Node:
        self._skip_ws()
        ch = self._peek()
        if not ch:
            raise ParseError("unexpected end of input", self.pos)
        if ch in "\"'":
            return _Literal(self._string())
        if ch == "{":
            return self._table(depth)
        if ch in _DIGITS or ch in "-.":
            return self._number()
        match = _NAME_RE.match(self.text, self.pos)
        if match:
            name = match.group()
            if name not in _NAMES:
                raise ParseError(f"unexpected name {name!r}", self.pos)
            self.pos = match.end()
            return _Literal(_NAMES[name])
        raise ParseError(f"unexpected character {ch!r}", self.pos)

    def _number(self) -> _Number:
        match = _NUMBER_RE.match(self.text, self.pos)
        if not match:
            raise ParseError("malformed number", self.pos)
        end = match.end()
        if end < len(self.text) and (self.text[end].isalnum() or self.text[end] in "_."):
            raise ParseError("malformed number", self.pos)
        self.pos = end
        return _Number(match.group())

    def _string(self) -> str:
        quote = self.text[self.pos]
        start = self.pos
        self.pos += 1
        buf: List[str] = []
        while True:
            if self.pos >= len(self.text):
                raise ParseError("unterminated string", start)
            ch = self.text[self.pos]
            self.pos += 1
            if ch == quote:
                return "".join(buf)
            if ch != "\\":
                buf.append(ch)
                continue
            if self.pos >= len(self.text):
                raise ParseError("unterminated string", start)
            esc = self.text[self.pos]
            if esc in _SIMPLE_ESCAPES:
                buf.append(_SIMPLE_ESCAPES[esc])
                self.pos += 1
            elif esc in _DIGITS:
                digits = esc
                self.pos += 1
                while len(digits) < 3 and self._peek() and self._peek() in _DIGITS:
                    digits += self._peek()
                    self.pos += 1
                code = int(digits)
                if code > 255:
                    raise ParseError(f"decimal escape too large: \\{digits}", self.pos)
                buf.append(chr(code))
            else:
                raise ParseError(f"invalid escape sequence '\\{esc}'", self.pos)

    def _table(self, depth: int) -> _Table:
        if depth >= self.max_depth:
            raise ParseError(f"tables nested deeper than {self.max_depth} levels", self.pos)
        start = self.pos
        self.pos += 1  # '{'
        entries: List[Tuple[Optional[_Node], _Node]] = []
        while True:
            self._skip_ws()
            ch = self._peek()
            if not ch:
                raise ParseError("unterminated table", start)
            if ch == "}":
                self.pos += 1
                return _Table(entries)
            if ch == "[":
                self.pos += 1
                key = self._expression(depth + 1)
                self._expect("]")
                self._expect("=")
                entries.append((key, self._expression(depth + 1)))
            else:
                entries.append((None, self._expression(depth + 1)))
            self._skip_ws()
            ch = self._peek()
            if ch in (",", ";"):
                self.pos += 1
            elif ch == "}":
                self.pos += 1
                return _Table(entries)
            elif not ch:
                raise ParseError("unterminated table", start)
            else:
                raise ParseError(f"expected ',' or '}}' but found {ch!r}", self.pos)


def _number_value(node: _Number) -> Union[int, float]:
    text = node.text
    if any(c in text for c in ".eE"):
        value = float(text)
        if not math.isfinite(value):
            raise ExecutionError(f"number out of range: {text}")
        return value
    return int(text)


def _key_value(node: _Node) -> Union[str, int, float]:
    if isinstance(node, _Number):
        return _number_value(node)
    if isinstance(node, _Table):
        raise ExecutionError("tables cannot be used as keys")
    if node.value is None:
        raise ExecutionError("table index is nil")
    if isinstance(node.value, bool):
        raise ExecutionError("boolean table keys are not supported")
    return node.value


def _evaluate(node: _Node) -> Any:
    if isinstance(node, _Literal):
        return node.value
    if isinstance(node, _Number):
        return _number_value(node)

    result: dict = {}
    next_index = 1
    for key_node, value_node in node.entries:
        if key_node is None:
            key = next_index
            next_index += 1
        else:
            key = _key_value(key_node)
        value = _evaluate(value_node)
        if value is None:
            result.pop(key, None)
        else:
            result[key] = value
    return result


def deserialize(text: str, *, max_depth: int = DEFAULT_MAX_DEPTH) -> Any:
    """Parse table-literal ``text`` back into a value.

    Raises
    ------
    ParseError
        The text is not a single well-formed literal.
    ExecutionError
        The literal is well formed but cannot be built (``nil`` or boolean
        keys, numbers out of range).
    """
    if not isinstance(text, str):
        raise ParseError(f"expected text, got {type(text).__name__}")
    try:
        tree = _Parser(_normalize(text), max_depth).parse()
    except RecursionError as exc:
        raise ParseError("tables nested too deeply") from exc
    return _evaluate(tree)
