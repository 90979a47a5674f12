"""
MIME bodies and their transfer encodings.
"""

from .body import (
    MultiPart,
    MultiPartBuilder,
    MultiPartKind,
    Part,
    SinglePart,
    SinglePartBuilder,
    make_boundary,
)
from .encoder import EncoderStream, codec_for

__all__ = [
    "SinglePart",
    "SinglePartBuilder",
    "MultiPart",
    "MultiPartBuilder",
    "MultiPartKind",
    "Part",
    "make_boundary",
    "EncoderStream",
    "codec_for",
]
