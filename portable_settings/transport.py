# =============================================================
#  portable_settings/transport.py
# =============================================================
"""Printable transport for export payloads.

:func:`encode` / :func:`decode` are plain base64 (``A-Z a-z 0-9 + /``, ``=``
padding). Decoding is forgiving about what a clipboard or chat window may do
to the text: anything outside the alphabet (whitespace, line wraps, quotes)
is dropped first, and missing or extra padding is tolerated.

:class:`ChannelCodec` is the narrow variant for channels that cannot carry one
particular byte (``\\x00`` by default).
"""

from __future__ import annotations

import base64
import binascii
import re
from typing import Union

from .errors import DecodeError

__all__ = ["ALPHABET", "PAD", "encode", "decode", "ChannelCodec"]

ALPHABET = "ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz0123456789+/"
PAD = "="

_FOREIGN_RE = re.compile(r"[^A-Za-z0-9+/=]")


def encode(data: Union[bytes, bytearray, str]) -> str:
    """Base64-encode ``data``; text is UTF-8 encoded first."""
    if isinstance(data, str):
        data = data.encode("utf-8")
    if not isinstance(data, (bytes, bytearray)):
        raise TypeError(f"expected bytes or str, got {type(data).__name__}")
    return base64.b64encode(bytes(data)).decode("ascii")


def decode(text: str) -> bytes:
    """Invert :func:`encode`.

    Raises
    ------
    DecodeError
        ``text`` is not a string, or its symbol count cannot describe whole
        bytes.
    """
    if isinstance(text, (bytes, bytearray)):
        text = bytes(text).decode("ascii", errors="ignore")
    if not isinstance(text, str):
        raise DecodeError(f"expected text, got {type(text).__name__}")

    symbols = _FOREIGN_RE.sub("", text).replace(PAD, "")
    leftover = len(symbols) % 4
    if leftover == 1:
        raise DecodeError("truncated input: dangling base64 symbol")
    if leftover:
        symbols += PAD * (4 - leftover)
    try:
        return base64.b64decode(symbols, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise DecodeError(f"invalid base64 data: {exc}") from exc


class ChannelCodec:
    """Escape a sentinel byte for channels that cannot carry it.

    ``encode`` replaces every ``sentinel`` with ``replacement``; ``decode``
    collapses ``replacement`` back. Inputs that already contain
    ``replacement`` do not round-trip.
    """

    def __init__(self, sentinel: bytes = b"\x00", replacement: bytes = b"\x01\x01"):
        if not sentinel or not replacement:
            raise ValueError("sentinel and replacement must be non-empty")
        if sentinel in replacement:
            raise ValueError("replacement must not contain the sentinel")
        self.sentinel = sentinel
        self.replacement = replacement

    def encode(self, data: bytes) -> bytes:
        return data.replace(self.sentinel, self.replacement)

    def decode(self, data: bytes) -> bytes:
        return data.replace(self.replacement, self.sentinel)

    def __repr__(self) -> str:
        return f"ChannelCodec(sentinel={self.sentinel!r}, replacement={self.replacement!r})"
