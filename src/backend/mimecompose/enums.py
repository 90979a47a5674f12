"""
Enumerations shared by the mimecompose headers and codecs.
"""

from enum import Enum


class TransferEncoding(str, Enum):
    """Content-Transfer-Encoding values, keyed by their wire token."""

    SEVEN_BIT = "7bit"
    QUOTED_PRINTABLE = "quoted-printable"
    BASE64 = "base64"
    EIGHT_BIT = "8bit"
    BINARY = "binary"

    def __str__(self) -> str:
        return self.value

    @classmethod
    def default(cls) -> "TransferEncoding":
        """7bit is the encoding assumed when none is declared (RFC 2045 6.1)."""
        return cls.SEVEN_BIT

    @classmethod
    def parse(cls, token: str) -> "TransferEncoding":
        """
        Parse a wire token. Matching is case-sensitive.

        Raises:
            ValueError: If the token is not one of the known encodings
        """
        for encoding in cls:
            if encoding.value == token:
                return encoding
        raise ValueError(f"Unknown transfer encoding: {token!r}")

