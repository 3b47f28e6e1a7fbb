"""Base128 codec using letters, digits and high Latin-1 characters."""

from __future__ import annotations

from .encoding import Encoder, Text

# No '-' (only valid mid-label) and no 254-255, which some DNS systems
# treat specially; accented Latin-1 characters fill out the set.
_ALPHABET = (
    b"abcdefghijklmnopqrstuvwxyzABCDEFGHIJKLMNOPQRSTUVWXYZ0123456789"
    + bytes(range(0xBC, 0xFE))
)


class Base128Encoder(Encoder):
    """Seven bits per character."""

    def __init__(self) -> None:
        super().__init__("Base128", _ALPHABET)

    def encode(self, data: Text, maxlen: int | None = None) -> tuple[bytes, int]:
        """Encode whole bytes of data into at most maxlen characters."""
        return super().encode(data, maxlen)

    def decode(self, text: Text, maxlen: int | None = None) -> bytes:
        """Decode Base128 text into at most maxlen bytes."""
        return super().decode(text, maxlen)


BASE128 = Base128Encoder()