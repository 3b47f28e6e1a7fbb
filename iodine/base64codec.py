"""Base64 codec with a DNS-friendlier alphabet."""

from __future__ import annotations

from .encoding import Encoder, Text

# The "unofficial" character is last, so an all-ones pattern exercises it.
_ALPHABET = b"abcdefghijklmnopqrstuvwxyzABCDEFGHIJKLMNOPQRSTUVWXYZ-0123456789+"


class Base64Encoder(Encoder):
    """Six bits per character; case-sensitive."""

    def __init__(self) -> None:
        super().__init__("Base64", _ALPHABET)

    def encode(self, data: Text, maxlen: int | None = None) -> tuple[bytes, int]:
        """Encode whole bytes of data into at most maxlen characters."""
        return super().encode(data, maxlen)

    def decode(self, text: Text, maxlen: int | None = None) -> bytes:
        """Decode Base64 text into at most maxlen bytes."""
        return super().decode(text, maxlen)


BASE64 = Base64Encoder()