"""
MIME entities: single parts carrying one encoded body and multiparts
carrying an ordered list of child parts.

Parts are built once through their builders and are not modified afterwards.
They can be rendered at once with `format()` when every body is a static
value, or pulled chunk by chunk from the async generator returned by
`stream()`.
"""

import logging
import secrets
from enum import Enum
from typing import AsyncIterator, Iterable, Optional, Tuple, Union

from mimecompose.conf import get_settings
from mimecompose.enums import TransferEncoding
from mimecompose.formats.mime.encoder import (
    ChunkProducer,
    EncoderStream,
    codec_for,
    is_static,
    to_bytes,
)
from mimecompose.formats.rfc5322.headers import (
    ContentTransferEncoding,
    ContentType,
    Header,
    Headers,
)

logger = logging.getLogger(__name__)

CRLF = b"\r\n"


def make_boundary(length: Optional[int] = None) -> str:
    """Generate a random boundary from the URL-safe base64 alphabet."""
    length = length or get_settings().boundary_length
    return secrets.token_urlsafe(length)[:length]


class SinglePartBuilder:
    """Collects the headers of a single part until its body is given."""

    def __init__(self):
        self._headers = Headers()

    def header(self, header: Header) -> "SinglePartBuilder":
        """Set a header, replacing a previous one of the same name."""
        self._headers.set(header)
        return self

    def body(self, body: ChunkProducer) -> "SinglePart":
        """Finish the part with its body."""
        return SinglePart(self._headers.copy(), body)


class SinglePart:
    """
    Leaf MIME part: headers and one body.

    The body is a `str`/`bytes` value or a byte-chunk producer (a sync or
    async iterable of chunks). It is encoded with the transfer encoding
    declared in the part's own headers.

    Example:
        >>> part = (
        ...     SinglePart.quoted_printable()
        ...     .header(ContentType.parse("text/plain; charset=utf8"))
        ...     .body("Привет, мир!")
        ... )
    """

    def __init__(self, headers: Headers, body: ChunkProducer):
        self._headers = headers
        self._body = body

    @classmethod
    def builder(cls) -> SinglePartBuilder:
        """Builder without any preset header."""
        return SinglePartBuilder()

    @classmethod
    def with_encoding(cls, encoding: TransferEncoding) -> SinglePartBuilder:
        """Builder with the `Content-Transfer-Encoding` header preset."""
        return cls.builder().header(ContentTransferEncoding(encoding))

    @classmethod
    def seven_bit(cls) -> SinglePartBuilder:
        """Builder for a 7bit part."""
        return cls.with_encoding(TransferEncoding.SEVEN_BIT)

    @classmethod
    def quoted_printable(cls) -> SinglePartBuilder:
        """Builder for a quoted-printable part."""
        return cls.with_encoding(TransferEncoding.QUOTED_PRINTABLE)

    @classmethod
    def base64(cls) -> SinglePartBuilder:
        """Builder for a base64 part."""
        return cls.with_encoding(TransferEncoding.BASE64)

    @classmethod
    def eight_bit(cls) -> SinglePartBuilder:
        """Builder for an 8bit part."""
        return cls.with_encoding(TransferEncoding.EIGHT_BIT)

    @classmethod
    def binary(cls) -> SinglePartBuilder:
        """Builder for a binary part."""
        return cls.with_encoding(TransferEncoding.BINARY)

    @property
    def headers(self) -> Headers:
        return self._headers.copy()

    @property
    def body(self) -> ChunkProducer:
        return self._body

    @property
    def encoding(self) -> Optional[TransferEncoding]:
        """The declared transfer encoding, None when the header is absent."""
        header = self._headers.get(ContentTransferEncoding)
        return header.encoding if header is not None else None

    @property
    def is_streaming(self) -> bool:
        """Whether the body is a chunk producer rather than a static value."""
        return not is_static(self._body)

    def format(self) -> bytes:
        """
        Render the part at once: headers, blank line, encoded body, CRLF.

        Raises:
            TypeError: If the body is a chunk producer
            CodingError: If the body cannot be sent with the declared encoding
        """
        if self.is_streaming:
            raise TypeError("A part with a streaming body can only be rendered with stream()")
        body = codec_for(self.encoding).encode_all(to_bytes(self._body))
        return self._headers.render().encode("utf-8") + CRLF + body + CRLF

    def as_bytes(self) -> bytes:
        return self.format()

    def as_string(self) -> str:
        return self.format().decode("utf-8")

    def __bytes__(self) -> bytes:
        return self.format()

    def __str__(self) -> str:
        return self.as_string()

    def __repr__(self) -> str:
        return f"SinglePart({self._headers!r})"

    async def stream(self) -> AsyncIterator[bytes]:
        """
        Render the part lazily.

        The first chunk is the header block and its blank line, then come the
        encoded body chunks and a final CRLF.

        Raises:
            CodingError: If a chunk cannot be sent with the declared encoding
            SourceError: If the body producer fails
        """
        yield self._headers.render().encode("utf-8") + CRLF

        encoder = EncoderStream.wrap(self.encoding, self._body)
        try:
            async for chunk in encoder:
                yield chunk
        finally:
            await encoder.aclose()

        yield CRLF


class MultiPartKind(str, Enum):
    """Subtypes of multipart bodies that can be built."""

    MIXED = "mixed"
    """Unrelated parts, e.g. a message and its attachments."""

    ALTERNATIVE = "alternative"
    """Variants of the same content, e.g. plain text and HTML."""

    RELATED = "related"
    """Content and the resources it refers to, e.g. HTML and inline images."""

    def __str__(self) -> str:
        return self.value

    @property
    def mime_type(self) -> str:
        return f"multipart/{self.value}"

    def to_content_type(self, boundary: Optional[str] = None) -> ContentType:
        """Content type of this kind, with a random boundary unless given."""
        return ContentType(self.mime_type, (("boundary", boundary or make_boundary()),))

    @classmethod
    def from_content_type(cls, content_type: ContentType) -> Optional["MultiPartKind"]:
        """Infer the kind of a content type; unknown subtypes give None."""
        if content_type.maintype != "multipart":
            return None
        try:
            return cls(content_type.subtype)
        except ValueError:
            return None


class MultiPartBuilder:
    """Collects the headers of a multipart until its first part is given."""

    def __init__(self):
        self._headers = Headers()

    def header(self, header: Header) -> "MultiPartBuilder":
        """Set a header, replacing a previous one of the same name."""
        self._headers.set(header)
        return self

    def kind(self, kind: MultiPartKind) -> "MultiPartBuilder":
        """Set the `Content-Type` of the given kind, keeping a boundary already set."""
        current = self._headers.get(ContentType)
        boundary = current.get_param("boundary") if current is not None else None
        return self.header(MultiPartKind(kind).to_content_type(boundary))

    def boundary(self, boundary: str) -> "MultiPartBuilder":
        """Use a custom boundary for the current content type (mixed if none)."""
        content_type = self._headers.get(ContentType)
        if content_type is None:
            content_type = MultiPartKind.MIXED.to_content_type()
        return self.header(content_type.with_param("boundary", boundary))

    def build(self) -> "MultiPart":
        """Finish a multipart without any part."""
        return MultiPart(self._headers.copy())

    def part(self, part: "Part") -> "MultiPart":
        return self.build().part(part)

    def singlepart(self, part: SinglePart) -> "MultiPart":
        return self.build().singlepart(part)

    def multipart(self, part: "MultiPart") -> "MultiPart":
        return self.build().multipart(part)


class MultiPart:
    """
    Composite MIME part: headers and an ordered list of child parts.

    The `Content-Type` header must be a `multipart/*` type carrying a
    `boundary` parameter. Adding a child returns a new multipart.
    """

    def __init__(self, headers: Headers, parts: Iterable["Part"] = ()):
        content_type = headers.get(ContentType)
        if (
            content_type is None
            or content_type.maintype != "multipart"
            or not content_type.get_param("boundary")
        ):
            raise ValueError("A multipart needs a multipart Content-Type with a boundary")
        self._headers = headers
        self._parts: Tuple[Part, ...] = tuple(parts)

    @classmethod
    def builder(cls) -> MultiPartBuilder:
        return MultiPartBuilder()

    @classmethod
    def mixed(cls) -> MultiPartBuilder:
        """Builder of a `multipart/mixed` part."""
        return cls.builder().kind(MultiPartKind.MIXED)

    @classmethod
    def alternative(cls) -> MultiPartBuilder:
        """Builder of a `multipart/alternative` part."""
        return cls.builder().kind(MultiPartKind.ALTERNATIVE)

    @classmethod
    def related(cls) -> MultiPartBuilder:
        """Builder of a `multipart/related` part."""
        return cls.builder().kind(MultiPartKind.RELATED)

    def part(self, part: "Part") -> "MultiPart":
        """Return a new multipart with `part` appended."""
        if not isinstance(part, (SinglePart, MultiPart)):
            raise TypeError(f"Expected a SinglePart or a MultiPart, got {type(part).__name__}")
        return MultiPart(self._headers, self._parts + (part,))

    def singlepart(self, part: SinglePart) -> "MultiPart":
        if not isinstance(part, SinglePart):
            raise TypeError(f"Expected a SinglePart, got {type(part).__name__}")
        return self.part(part)

    def multipart(self, part: "MultiPart") -> "MultiPart":
        if not isinstance(part, MultiPart):
            raise TypeError(f"Expected a MultiPart, got {type(part).__name__}")
        return self.part(part)

    @property
    def content_type(self) -> ContentType:
        return self._headers.get(ContentType)

    @property
    def boundary(self) -> str:
        return self.content_type.get_param("boundary")

    @property
    def kind(self) -> Optional[MultiPartKind]:
        return MultiPartKind.from_content_type(self.content_type)

    @property
    def headers(self) -> Headers:
        return self._headers.copy()

    @property
    def parts(self) -> Tuple["Part", ...]:
        return self._parts

    @property
    def is_streaming(self) -> bool:
        return any(part.is_streaming for part in self._parts)

    def format(self) -> bytes:
        """
        Render the multipart at once.

        Raises:
            TypeError: If a descendant part has a streaming body
            CodingError: If a body cannot be sent with its declared encoding
        """
        delimiter = b"--" + self.boundary.encode("ascii")
        out = bytearray(self._headers.render().encode("utf-8"))
        out += CRLF
        for part in self._parts:
            out += delimiter + CRLF
            out += part.format()
        out += delimiter + b"--" + CRLF
        return bytes(out)

    def as_bytes(self) -> bytes:
        return self.format()

    def as_string(self) -> str:
        return self.format().decode("utf-8")

    def __bytes__(self) -> bytes:
        return self.format()

    def __str__(self) -> str:
        return self.as_string()

    def __repr__(self) -> str:
        return f"MultiPart({self._headers!r}, parts={len(self._parts)})"

    async def stream(self) -> AsyncIterator[bytes]:
        """
        Render the multipart lazily.

        The opening delimiter of the first child is sent along with the
        header block; each following delimiter (or the closing one) is sent
        once the previous child is done. Children are streamed in order.
        """
        delimiter = b"--" + self.boundary.encode("ascii")
        head = self._headers.render().encode("utf-8") + CRLF
        if self._parts:
            head += delimiter + CRLF
        yield head

        last = len(self._parts) - 1
        for index, part in enumerate(self._parts):
            logger.debug("Streaming part %d of multipart %s", index, self.boundary)
            child = part.stream()
            try:
                async for chunk in child:
                    yield chunk
            finally:
                await child.aclose()
            if index < last:
                yield delimiter + CRLF

        yield delimiter + b"--" + CRLF


Part = Union[SinglePart, MultiPart]
