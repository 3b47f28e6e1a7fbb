import pytest

from iodine.encoding import (
    DOWNCODECCHECK1,
    LABEL_LEN,
    Encoder,
    build_hostname,
    inline_dotify,
    inline_undotify,
    unpack_data,
)

LOWER32 = "abcdefghijklmnopqrstuvwxyz012345"
HEX = "0123456789abcdef"
TOP = b"t.example.com"


@pytest.fixture
def b32():
    return Encoder("Base32", LOWER32)


@pytest.fixture
def hexenc():
    return Encoder("Hex", HEX)


@pytest.mark.parametrize(
    "alphabet, raw, enc",
    [
        (LOWER32, 5, 8),
        (bytes(range(64)), 3, 4),
        (bytes(range(128)), 7, 8),
    ],
)
def test_block_sizes(alphabet, raw, enc):
    encoder = Encoder("x", alphabet)
    assert (encoder.blocksize_raw, encoder.blocksize_encoded) == (raw, enc)


@pytest.mark.parametrize("alphabet", ["abc", "aabb", "a"])
def test_bad_alphabet_rejected(alphabet):
    with pytest.raises(ValueError):
        Encoder("bad", alphabet)


def test_hex_layout(hexenc):
    assert hexenc.encode(b"\x1f\xa0") == (b"1fa0", 2)


@pytest.mark.parametrize("length", range(0, 20))
def test_round_trip(b32, length):
    data = bytes((i * 37 + 11) & 0xFF for i in range(length))
    encoded, consumed = b32.encode(data)
    assert consumed == length
    assert b32.decode(encoded) == data


def test_round_trip_check_pattern(b32):
    encoded, _ = b32.encode(DOWNCODECCHECK1)
    assert b32.decode(encoded) == DOWNCODECCHECK1
    assert len(DOWNCODECCHECK1) == 48


@pytest.mark.parametrize("maxlen", range(0, 12))
def test_encode_maxlen(b32, maxlen):
    data = bytes(range(1, 20))
    encoded, consumed = b32.encode(data, maxlen)
    assert len(encoded) <= maxlen
    assert consumed <= len(data)
    assert b32.decode(encoded) == data[:consumed]


def test_decode_stops_at_nul(b32):
    first, _ = b32.encode(b"hello")
    second, _ = b32.encode(b"world")
    assert b32.decode(first + b"\0" + second) == b"hello"


def test_decode_maxlen(b32):
    encoded, _ = b32.encode(b"abcdefghij")
    assert b32.decode(encoded, 3) == b"abc"


def test_dotify_short_unchanged():
    assert inline_dotify(b"abc") == b"abc"


def test_dotify_splits_labels():
    text = b"x" * (LABEL_LEN * 2 + 5)
    result = inline_dotify(text)
    assert [len(p) for p in result.split(b".")] == [LABEL_LEN, LABEL_LEN, 5]


def test_dotify_full_label_gets_trailing_dot():
    result = inline_dotify(b"y" * LABEL_LEN)
    assert result.endswith(b".")
    assert result.count(b".") == 1


@pytest.mark.parametrize("length", [0, 1, 56, 57, 58, 200])
def test_undotify_reverses_dotify(length):
    text = bytes(ord("a") + i % 26 for i in range(length))
    assert inline_undotify(inline_dotify(text)) == text


def test_dotify_maxlen():
    text = b"z" * 150
    result = inline_dotify(text, 60)
    assert len(result) == 60
    assert result == inline_dotify(text)[:60]


def test_undotify_removes_all_dots():
    text = b"ab.cd..ef."
    result = inline_undotify(text)
    assert b"." not in result
    assert len(result) == len(text) - text.count(b".")


def test_build_hostname_fits_and_unpacks(b32):
    data = bytes(range(256)) * 2
    hostname, consumed = build_hostname(data, TOP, b32, 255)
    assert hostname.endswith(b"." + TOP)
    assert len(hostname) <= 255
    assert 0 < consumed < len(data)
    assert all(len(label) <= 63 for label in hostname.split(b"."))
    payload = hostname[: -(len(TOP) + 1)]
    assert unpack_data(payload, b32) == data[:consumed]


def test_build_hostname_small_data(b32):
    hostname, consumed = build_hostname(b"hi", "t.example.com", b32)
    assert consumed == 2
    assert unpack_data(hostname[: -(len(TOP) + 1)], b32) == b"hi"


def test_build_hostname_empty_data(b32):
    hostname, consumed = build_hostname(b"", TOP, b32)
    assert hostname == b"." + TOP
    assert consumed == 0


def test_build_hostname_topdomain_too_long(b32):
    with pytest.raises(ValueError):
        build_hostname(b"data", b"a" * 300, b32, 255)


def test_unpack_data_ignores_dots(b32):
    encoded, _ = b32.encode(b"some payload bytes")
    dotted = encoded[:5] + b"." + encoded[5:]
    assert unpack_data(dotted, b32) == b"some payload bytes"


def test_unpack_data_maxlen(b32):
    encoded, _ = b32.encode(b"0123456789")
    assert unpack_data(encoded, b32, 4) == b"0123"