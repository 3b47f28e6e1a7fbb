"""DNS-safe binary-to-text codecs and hostname packing helpers."""

from __future__ import annotations

import math
from collections.abc import Iterable

# Data labels are split every 57 characters, leaving room in a 63-byte label.
LABEL_LEN = 57

# All-0, all-1, 01010101, 10101010 (four times each) followed by 32 random
# bytes; used to check that a downstream codec passes every bit pattern.
DOWNCODECCHECK1 = bytes.fromhex(
    "00000000ffffffff55555555aaaaaaaa"
    "8163c8d2c77cb2175f4fcec9492d5221"
    "61a9712025b30673e6d84430795057bf"
)

Text = bytes | bytearray | str


def _as_bytes(value: Text) -> bytes:
    if isinstance(value, str):
        return value.encode("latin-1")
    return bytes(value)


class Encoder:
    """A codec packing bytes into characters of a power-of-two alphabet.

    Bits are taken most significant first; a trailing partial character is
    padded with zero bits.  Characters outside the alphabet decode to zero.
    """

    def __init__(
        self,
        name: str,
        alphabet: Text,
        *,
        aliases: Iterable[Text] = (),
        places_dots: bool = False,
        eats_dots: bool = False,
    ) -> None:
        chars = _as_bytes(alphabet)
        size = len(chars)
        bits = size.bit_length() - 1
        if size < 2 or 1 << bits != size:
            raise ValueError("alphabet length must be a power of two")
        if len(set(chars)) != size:
            raise ValueError("alphabet contains duplicate characters")

        self.name = name
        self.alphabet = chars
        self.bits = bits
        self.places_dots = places_dots
        self.eats_dots = eats_dots

        block_bits = math.lcm(bits, 8)
        self.blocksize_raw = block_bits // 8
        self.blocksize_encoded = block_bits // bits

        self._mask = size - 1
        reverse = bytearray(256)
        for alias in aliases:
            for index, char in enumerate(_as_bytes(alias)):
                reverse[char] = index
        for index, char in enumerate(chars):
            reverse[char] = index
        self._reverse = bytes(reverse)

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r})"

    def encode(self, data: Text, maxlen: int | None = None) -> tuple[bytes, int]:
        """Encode as many whole bytes of data as fit in maxlen characters.

        Returns the encoded text and the number of input bytes it holds.
        """
        data = _as_bytes(data)
        count = len(data)
        if maxlen is not None:
            count = min(count, max(0, maxlen) * self.bits // 8)

        raw, enc, bits = self.blocksize_raw, self.blocksize_encoded, self.bits
        out = bytearray()
        for start in range(0, count, raw):
            block = data[start:min(start + raw, count)]
            value = int.from_bytes(block.ljust(raw, b"\0"), "big")
            nchars = -(-8 * len(block) // bits)
            shifts = range((enc - 1) * bits, (enc - 1 - nchars) * bits, -bits)
            out.extend(self.alphabet[(value >> shift) & self._mask] for shift in shifts)
        return bytes(out), count

    def decode(self, text: Text, maxlen: int | None = None) -> bytes:
        """Decode text, stopping at a NUL character or after maxlen bytes."""
        text = _as_bytes(text).split(b"\0", 1)[0]
        raw, enc, bits = self.blocksize_raw, self.blocksize_encoded, self.bits
        out = bytearray()
        for start in range(0, len(text), enc):
            chunk = text[start:start + enc]
            value = 0
            for char in chunk:
                value = (value << bits) | self._reverse[char]
            value <<= (enc - len(chunk)) * bits
            out.extend(value.to_bytes(raw, "big")[: len(chunk) * bits // 8])
        if maxlen is not None:
            del out[max(0, maxlen):]
        return bytes(out)


def inline_dotify(text: Text, maxlen: int | None = None) -> bytes:
    """Insert a dot after every full run of 57 characters."""
    text = _as_bytes(text)
    pieces = []
    for start in range(0, len(text), LABEL_LEN):
        chunk = text[start:start + LABEL_LEN]
        pieces.append(chunk + b"." if len(chunk) == LABEL_LEN else chunk)
    result = b"".join(pieces)
    return result if maxlen is None else result[: max(0, maxlen)]


def inline_undotify(text: Text) -> bytes:
    """Remove every dot from text."""
    return _as_bytes(text).replace(b".", b"")


def build_hostname(
    data: Text,
    topdomain: Text,
    encoder: Encoder,
    maxlen: int = 255,
    buflen: int = 4096,
) -> tuple[bytes, int]:
    """Encode a prefix of data into a hostname under topdomain.

    Room is left for a five-character header in front of the result.
    Returns the hostname and the number of data bytes it carries.
    """
    top = _as_bytes(topdomain)
    space = min(maxlen, buflen) - len(top) - 8
    if space < 0:
        raise ValueError("no room for data in front of the top domain")
    if not encoder.places_dots:
        space -= space // LABEL_LEN

    encoded, consumed = encoder.encode(data, space)
    if not encoder.places_dots:
        encoded = inline_dotify(encoded, buflen)
    if not encoded.endswith(b"."):
        encoded += b"."
    return encoded + top, consumed


def unpack_data(text: Text, encoder: Encoder, maxlen: int | None = None) -> bytes:
    """Decode dotted encoded text back to bytes."""
    if not encoder.eats_dots:
        text = inline_undotify(text)
    return encoder.decode(text, maxlen)