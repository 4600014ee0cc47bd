# =============================================================
#  tests/test_transport.py
# =============================================================
import pytest

from portable_settings.errors import DecodeError
from portable_settings.transport import ChannelCodec, decode, encode


def test_known_vector():
    assert encode(b"Hello") == "SGVsbG8="
    assert decode("SGVsbG8=") == b"Hello"


def test_text_is_utf8_encoded():
    assert encode("Hello") == "SGVsbG8="
    assert decode(encode("ünï ✓")).decode("utf-8") == "ünï ✓"


def test_empty_input():
    assert encode(b"") == ""
    assert decode("") == b""


@pytest.mark.parametrize(
    "raw, text",
    [(b"a", "YQ=="), (b"ab", "YWI="), (b"abc", "YWJj"), (b"abcd", "YWJjZA==")],
)
def test_padding_by_length(raw, text):
    assert encode(raw) == text
    assert decode(text) == raw


def test_nul_and_all_bytes_survive():
    for raw in (b"\x00", b"\x00\x00\x00", b"=\x00=", bytes(range(256))):
        assert decode(encode(raw)) == raw


def test_output_alphabet_only():
    text = encode(bytes(range(256)) * 3)
    assert set(text) <= set("ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz0123456789+/=")


def test_foreign_characters_are_ignored():
    assert decode("SGVs\nbG8=  ") == b"Hello"
    assert decode('  "SGVs bG8="\r\n') == b"Hello"


def test_missing_or_misplaced_padding():
    assert decode("SGVsbG8") == b"Hello"
    assert decode("YQ") == b"a"
    assert decode("SG=VsbG8=") == b"Hello"


def test_bytes_input_accepted():
    assert decode(b"SGVsbG8=") == b"Hello"


@pytest.mark.parametrize("text", ["A", "SGVsb", "YWJjZ"])
def test_dangling_symbol(text):
    with pytest.raises(DecodeError):
        decode(text)


def test_non_text_rejected():
    with pytest.raises(DecodeError):
        decode(123)
    with pytest.raises(TypeError):
        encode(123)


# --- ChannelCodec ------------------------------------------------------>


def test_channel_codec_replaces_nul():
    codec = ChannelCodec()
    assert codec.encode(b"a\x00b\x00") == b"a\x01\x01b\x01\x01"
    assert codec.decode(b"a\x01\x01b\x01\x01") == b"a\x00b\x00"
    assert b"\x00" not in codec.encode(bytes(range(256)))


def test_channel_codec_custom_sentinel():
    codec = ChannelCodec(b"|", b"\\p")
    assert codec.decode(codec.encode(b"x|y")) == b"x|y"
    assert "sentinel=b'|'" in repr(codec)


@pytest.mark.parametrize("sentinel, replacement", [(b"", b"\x01"), (b"\x00", b""), (b"\x00", b"\x00\x01")])
def test_channel_codec_rejects_bad_pairs(sentinel, replacement):
    with pytest.raises(ValueError):
        ChannelCodec(sentinel, replacement)
