"""Base32 codec using a lowercase, DNS-safe alphabet."""

from __future__ import annotations

from .encoding import Encoder, Text

_ALPHABET = b"abcdefghijklmnopqrstuvwxyz012345"
_ALPHABET_UPPER = b"ABCDEFGHIJKLMNOPQRSTUVWXYZ012345"

_REVERSE = {char: index for index, char in enumerate(_ALPHABET_UPPER)}
_REVERSE.update({char: index for index, char in enumerate(_ALPHABET)})


class Base32Encoder(Encoder):
    """Five bits per character; decoding also accepts uppercase."""

    def __init__(self) -> None:
        super().__init__("Base32", _ALPHABET, aliases=(_ALPHABET_UPPER,))

    def encode(self, data: Text, maxlen: int | None = None) -> tuple[bytes, int]:
        """Encode whole bytes of data into at most maxlen lowercase characters."""
        return super().encode(data, maxlen)

    def decode(self, text: Text, maxlen: int | None = None) -> bytes:
        """Decode Base32 text in either case into at most maxlen bytes."""
        return super().decode(text, maxlen)


BASE32 = Base32Encoder()


def b32_5to8(value: int) -> str:
    """Return the character for the low five bits of value."""
    return chr(_ALPHABET[value & 31])


def b32_8to5(char: str | int) -> int:
    """Return the five-bit value of a Base32 character, 0 if it is not one."""
    code = ord(char) if isinstance(char, str) else char
    return _REVERSE.get(code, 0)