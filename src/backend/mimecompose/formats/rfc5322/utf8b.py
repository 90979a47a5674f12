"""
RFC 2047 encoded words in the "UTF8-B" form: `=?utf-8?b?<base64>?=`.

Used for display names and free-text header values that carry non-ASCII
characters.
"""

import base64
import binascii
import re
from typing import Optional

ENCODED_WORD_RE = re.compile(r"^=\?utf-8\?b\?(.*)\?=$", re.IGNORECASE | re.DOTALL)


def is_ascii(text: str) -> bool:
    """Check whether the text only contains 7-bit characters."""
    return all(ord(char) < 128 for char in text)


def encode(text: str) -> str:
    """
    Encode text as a UTF8-B encoded word when it is not plain ASCII.

    Examples:
        >>> encode("Kayo")
        'Kayo'
        >>> encode("Каи")
        '=?utf-8?b?0JrQsNC4?='
    """
    if is_ascii(text):
        return text
    payload = base64.b64encode(text.encode("utf-8")).decode("ascii")
    return f"=?utf-8?b?{payload}?="


def decode(text: str) -> Optional[str]:
    """
    Decode a UTF8-B encoded word.

    Text which is not an encoded word is returned unchanged.

    Returns:
        The decoded text, or None if the encoded word is malformed
    """
    match = ENCODED_WORD_RE.match(text)
    if not match:
        return text
    try:
        raw = base64.b64decode(match.group(1), validate=True)
        return raw.decode("utf-8")
    except (binascii.Error, UnicodeDecodeError):
        return None
