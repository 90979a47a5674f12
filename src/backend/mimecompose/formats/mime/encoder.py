"""
Content-Transfer-Encoding codecs and the stream adapter applying them.

A codec turns the chunks of one body into transport-safe bytes. Codecs keep
state between chunks (the length of the current output line), so a fresh
instance is needed for every body.
"""

import base64
import binascii
import inspect
import logging
import re
from typing import AsyncIterable, AsyncIterator, Iterable, Optional, Union

from mimecompose.conf import get_settings
from mimecompose.enums import TransferEncoding
from mimecompose.errors import CodingError, SourceError

logger = logging.getLogger(__name__)

CRLF = b"\r\n"
LINE_BREAK_RE = re.compile(rb"\r?\n")

Chunk = Union[bytes, bytearray, memoryview, str]
ChunkProducer = Union[Chunk, Iterable[Chunk], AsyncIterable[Chunk]]


def to_bytes(chunk: Chunk) -> bytes:
    """Normalize a chunk to bytes, strings are UTF-8 encoded."""
    if isinstance(chunk, str):
        return chunk.encode("utf-8")
    if isinstance(chunk, (bytes, bytearray, memoryview)):
        return bytes(chunk)
    raise TypeError(f"Body chunks must be bytes or str, got {type(chunk).__name__}")


def is_static(body) -> bool:
    """Whether the body is a value which can be rendered in one go."""
    return isinstance(body, (bytes, bytearray, memoryview, str))


class EncoderCodec:
    """Base class of the transfer-encoding codecs."""

    def encode_chunk(self, chunk: bytes) -> bytes:
        """
        Encode one chunk of the body.

        Raises:
            CodingError: If the chunk cannot be represented in this encoding
        """
        raise NotImplementedError

    def encode_all(self, data: bytes) -> bytes:
        """Encode a whole body as a single chunk."""
        return self.encode_chunk(data)


class BinaryCodec(EncoderCodec):
    """Identity codec."""

    def encode_chunk(self, chunk: bytes) -> bytes:
        return chunk


class EightBitCodec(EncoderCodec):
    """
    Line wrapper for 8bit data.

    Inserts CRLF so that no output line is longer than `max_length` bytes.
    Line breaks found in the input reset the running line length, which is
    carried over from one chunk to the next. So is a CR ending a chunk: it
    only counts as content if the next chunk does not start with LF.
    """

    def __init__(self, max_length: Optional[int] = None):
        self.max_length = max_length or get_settings().max_line_length
        self.line_bytes = 0
        self.pending_cr = False

    def encode_chunk(self, chunk: bytes) -> bytes:
        out = bytearray()
        start, end = 0, len(chunk)

        if self.pending_cr and chunk:
            self.pending_cr = False
            if chunk[0] != 0x0A:
                self.line_bytes += 1

        while start < end:
            newline = chunk.find(b"\n", start)
            stop = end if newline == -1 else newline
            length = stop - start
            # A CR ending the line is part of the terminator, not of the content
            ends_with_cr = length > 0 and chunk[stop - 1] == 0x0D
            if ends_with_cr:
                length -= 1
            room = max(self.max_length - self.line_bytes, 0)

            if length <= room:
                if newline == -1:
                    out += chunk[start:end]
                    self.line_bytes += length
                    self.pending_cr = ends_with_cr
                    start = end
                else:
                    out += chunk[start : newline + 1]
                    self.line_bytes = 0
                    start = newline + 1
            else:
                out += chunk[start : start + room]
                out += CRLF
                self.line_bytes = 0
                start += room

        return bytes(out)


class SevenBitCodec(EncoderCodec):
    """7bit codec: refuses any non-ASCII byte, wraps lines like 8bit."""

    def __init__(self, max_length: Optional[int] = None):
        self.line_wrapper = EightBitCodec(max_length)

    def encode_chunk(self, chunk: bytes) -> bytes:
        if not chunk.isascii():
            raise CodingError("Non-ASCII data cannot be sent as 7bit")
        return self.line_wrapper.encode_chunk(chunk)


class QuotedPrintableCodec(EncoderCodec):
    """
    Quoted-printable codec.

    Each chunk is encoded on its own. CRLF pairs are kept as hard line
    breaks, lone CR and LF bytes are escaped, and soft line breaks keep lines
    within 76 columns.
    """

    def encode_chunk(self, chunk: bytes) -> bytes:
        lines = (
            LINE_BREAK_RE.sub(CRLF, binascii.b2a_qp(line, quotetabs=False, istext=False))
            for line in chunk.split(CRLF)
        )
        return CRLF.join(lines)


class Base64Codec(EncoderCodec):
    """Base64 codec, the encoded text wrapped at a fixed width."""

    def __init__(self, line_length: Optional[int] = None):
        self.line_wrapper = EightBitCodec(line_length or get_settings().base64_line_length)

    def encode_chunk(self, chunk: bytes) -> bytes:
        return self.line_wrapper.encode_chunk(base64.b64encode(chunk))


CODECS = {
    TransferEncoding.SEVEN_BIT: SevenBitCodec,
    TransferEncoding.QUOTED_PRINTABLE: QuotedPrintableCodec,
    TransferEncoding.BASE64: Base64Codec,
    TransferEncoding.EIGHT_BIT: EightBitCodec,
    TransferEncoding.BINARY: BinaryCodec,
}


def codec_for(encoding: Optional[TransferEncoding]) -> EncoderCodec:
    """
    Return a fresh codec for the declared encoding.

    Bodies without a declared encoding are passed through unchanged.
    """
    if encoding is None:
        return BinaryCodec()
    return CODECS[TransferEncoding(encoding)]()


async def chunk_source(body: ChunkProducer) -> AsyncIterator[bytes]:
    """
    Iterate over the chunks of a body.

    The body is either a single `bytes`/`str` value, a synchronous iterable of
    chunks or an asynchronous one.
    """
    if is_static(body):
        yield to_bytes(body)
    elif hasattr(body, "__aiter__"):
        try:
            async for chunk in body:
                yield to_bytes(chunk)
        finally:
            if inspect.isasyncgen(body):
                await body.aclose()
    elif hasattr(body, "__iter__"):
        for chunk in body:
            yield to_bytes(chunk)
    else:
        raise TypeError(f"Unsupported body type: {type(body).__name__}")


class EncoderStream:
    """
    Async iterator yielding the encoded chunks of a body.

    Failures of the underlying producer are raised as `SourceError`, chunks
    refused by the codec as `CodingError`.
    """

    def __init__(self, source: ChunkProducer, codec: EncoderCodec):
        self.source = chunk_source(source)
        self.codec = codec

    @classmethod
    def wrap(cls, encoding: Optional[TransferEncoding], source: ChunkProducer) -> "EncoderStream":
        """Wrap a body with the codec of the given encoding."""
        return cls(source, codec_for(encoding))

    def __aiter__(self) -> "EncoderStream":
        return self

    async def __anext__(self) -> bytes:
        try:
            chunk = await self.source.__anext__()
        except StopAsyncIteration:
            raise
        except Exception as e:
            logger.error("Body producer failed: %s", str(e))
            raise SourceError(e) from e

        try:
            return self.codec.encode_chunk(chunk)
        except CodingError:
            logger.error("Transfer encoding refused a body chunk")
            raise

    async def aclose(self) -> None:
        """Release the underlying producer."""
        await self.source.aclose()
