"""
Typed message headers and the ordered container holding them.

Every header type knows its wire name, how to render its value and how to
parse it back from a received value. A `Headers` container keeps at most one
header per name: setting a header replaces the previous one of the same name
at its original position.
"""

import re
from dataclasses import dataclass, field
from datetime import datetime
from email.utils import format_datetime, parsedate_to_datetime
from typing import ClassVar, Dict, Iterable, Iterator, Optional, Tuple, Type, Union

from mimecompose.enums import TransferEncoding
from mimecompose.errors import InvalidUtf8bError, MissingPartsError
from mimecompose.formats.rfc5322 import utf8b
from mimecompose.formats.rfc5322.address import Mailbox, Mailboxes

CRLF = "\r\n"

# RFC 2045 token: any printable ASCII except SPACE and tspecials
TOKEN_RE = re.compile(r"^[!#$%&'*+\-.^_`|~0-9A-Za-z]+$")
PARAM_RE = re.compile(r';\s*([^=;\s]+)\s*=\s*("(?:[^"\\]|\\.)*"|[^;]*)')


def quote_param(value: str) -> str:
    """Quote a parameter value, escaping backslashes and double quotes."""
    escaped = value.replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'


def unquote_param(value: str) -> str:
    """Reverse `quote_param`; unquoted values are only stripped."""
    value = value.strip()
    if len(value) >= 2 and value[0] == value[-1] == '"':
        return re.sub(r"\\(.)", r"\1", value[1:-1])
    return value


class Header:
    """Base class of all headers."""

    header_name: ClassVar[str] = ""

    def value(self) -> str:
        """Return the wire value of the header."""
        raise NotImplementedError

    @classmethod
    def parse(cls, raw: str) -> "Header":
        """Build the header from a received value."""
        raise NotImplementedError

    def render(self) -> str:
        """Render the `Name: value` line, CRLF terminated."""
        return f"{self.header_name}: {self.value()}{CRLF}"

    def __str__(self) -> str:
        return self.value()


@dataclass(frozen=True)
class RawHeader(Header):
    """Header with an arbitrary name and a preformatted value."""

    field_name: str
    text: str

    @property
    def header_name(self) -> str:  # pylint: disable=invalid-overridden-method
        return self.field_name

    def value(self) -> str:
        return self.text


# Address headers


@dataclass(frozen=True)
class MailboxesHeader(Header):
    """Header holding a list of mailboxes."""

    mailboxes: Mailboxes

    def __post_init__(self):
        object.__setattr__(self, "mailboxes", Mailboxes.from_value(self.mailboxes))

    def value(self) -> str:
        return self.mailboxes.render()

    @classmethod
    def parse(cls, raw: str) -> "MailboxesHeader":
        """
        Parse a comma-separated list; UTF8-B names are decoded.

        Raises:
            MailboxError: If an entry is invalid or the list is empty
        """
        if not raw.strip():
            raise MissingPartsError(raw)
        return cls(Mailboxes.parse(raw))

    def merge(self, other: Mailboxes) -> "MailboxesHeader":
        """Return a header of the same type with `other` appended."""
        return type(self)(self.mailboxes + other)


class From(MailboxesHeader):
    """`From:` header."""

    header_name = "From"


class ReplyTo(MailboxesHeader):
    """`Reply-To:` header."""

    header_name = "Reply-To"


class To(MailboxesHeader):
    """`To:` header."""

    header_name = "To"


class Cc(MailboxesHeader):
    """`Cc:` header."""

    header_name = "Cc"


class Bcc(MailboxesHeader):
    """`Bcc:` header."""

    header_name = "Bcc"


@dataclass(frozen=True)
class Sender(Header):
    """`Sender:` header, a single mailbox."""

    header_name: ClassVar[str] = "Sender"

    mailbox: Mailbox

    def __post_init__(self):
        object.__setattr__(self, "mailbox", Mailbox.from_value(self.mailbox))

    def value(self) -> str:
        return self.mailbox.render_display_name()

    @classmethod
    def parse(cls, raw: str) -> "Sender":
        if not raw.strip():
            raise MissingPartsError(raw)
        return cls(Mailboxes.parse(raw).first())


# Textual headers


@dataclass(frozen=True)
class TextHeader(Header):
    """Free-text header; non-ASCII text is sent as a UTF8-B encoded word."""

    text: str

    def value(self) -> str:
        return utf8b.encode(self.text)

    @classmethod
    def parse(cls, raw: str) -> "TextHeader":
        decoded = utf8b.decode(raw.strip())
        if decoded is None:
            raise InvalidUtf8bError(raw)
        return cls(decoded)


class Subject(TextHeader):
    """`Subject:` header."""

    header_name = "Subject"


class Comments(TextHeader):
    """`Comments:` header."""

    header_name = "Comments"


class Keywords(TextHeader):
    """`Keywords:` header."""

    header_name = "Keywords"


class MessageId(TextHeader):
    """`Message-ID:` header."""

    header_name = "Message-ID"


class InReplyTo(TextHeader):
    """`In-Reply-To:` header."""

    header_name = "In-Reply-To"


class References(TextHeader):
    """`References:` header."""

    header_name = "References"


class UserAgent(TextHeader):
    """`User-Agent:` header."""

    header_name = "User-Agent"


@dataclass(frozen=True)
class Date(Header):
    """`Date:` header."""

    header_name: ClassVar[str] = "Date"

    date: datetime

    def value(self) -> str:
        return format_datetime(self.date)

    @classmethod
    def parse(cls, raw: str) -> "Date":
        return cls(parsedate_to_datetime(raw.strip()))


# MIME headers


@dataclass(frozen=True)
class MimeVersion(Header):
    """`MIME-Version:` header."""

    header_name: ClassVar[str] = "MIME-Version"

    major: int = 1
    minor: int = 0

    def value(self) -> str:
        return f"{self.major}.{self.minor}"

    @classmethod
    def parse(cls, raw: str) -> "MimeVersion":
        parts = raw.strip().split(".")
        if len(parts) != 2:
            raise ValueError(f"Invalid MIME version: {raw!r}")
        return cls(int(parts[0]), int(parts[1]))


MIME_VERSION_1_0 = MimeVersion(1, 0)


@dataclass(frozen=True)
class ContentTransferEncoding(Header):
    """`Content-Transfer-Encoding:` header."""

    header_name: ClassVar[str] = "Content-Transfer-Encoding"

    encoding: TransferEncoding = TransferEncoding.SEVEN_BIT

    def __post_init__(self):
        if not isinstance(self.encoding, TransferEncoding):
            object.__setattr__(self, "encoding", TransferEncoding.parse(self.encoding))

    def value(self) -> str:
        return self.encoding.value

    @classmethod
    def parse(cls, raw: str) -> "ContentTransferEncoding":
        return cls(TransferEncoding.parse(raw.strip()))


@dataclass(frozen=True)
class ContentType(Header):
    """
    `Content-Type:` header.

    Attributes:
        mime_type: The `type/subtype` pair, lower-cased
        params: Parameters in emission order
    """

    header_name: ClassVar[str] = "Content-Type"
    ALWAYS_QUOTED: ClassVar[Tuple[str, ...]] = ("boundary",)

    mime_type: str
    params: Tuple[Tuple[str, str], ...] = field(default_factory=tuple)

    def __post_init__(self):
        mime_type = self.mime_type.strip().lower()
        if mime_type.count("/") != 1 or not all(mime_type.split("/")):
            raise ValueError(f"Invalid media type: {self.mime_type!r}")
        object.__setattr__(self, "mime_type", mime_type)
        object.__setattr__(
            self, "params", tuple((name.lower(), value) for name, value in self.params)
        )

    @property
    def maintype(self) -> str:
        """The `type` half of the media type."""
        return self.mime_type.split("/")[0]

    @property
    def subtype(self) -> str:
        """The `subtype` half of the media type."""
        return self.mime_type.split("/")[1]

    def get_param(self, name: str) -> Optional[str]:
        """Return the value of a parameter, if present."""
        name = name.lower()
        for key, value in self.params:
            if key == name:
                return value
        return None

    def with_param(self, name: str, value: str) -> "ContentType":
        """Return a copy with the parameter set, replacing any previous value."""
        name = name.lower()
        params = [(key, val) for key, val in self.params if key != name]
        params.append((name, value))
        return ContentType(self.mime_type, tuple(params))

    def value(self) -> str:
        rendered = [self.mime_type]
        for name, value in self.params:
            if name in self.ALWAYS_QUOTED or not TOKEN_RE.match(value):
                value = quote_param(value)
            rendered.append(f"{name}={value}")
        return "; ".join(rendered)

    @classmethod
    def parse(cls, raw: str) -> "ContentType":
        """
        Parse `type/subtype; name=value; ...`.

        Examples:
            >>> ContentType.parse('text/plain; charset=utf8').get_param("charset")
            'utf8'
        """
        mime_type, _, rest = raw.partition(";")
        params = tuple(
            (name, unquote_param(value))
            for name, value in PARAM_RE.findall(";" + rest if rest else "")
        )
        return cls(mime_type, params)


@dataclass(frozen=True)
class ContentDisposition(Header):
    """`Content-Disposition:` header, `inline` or `attachment`."""

    header_name: ClassVar[str] = "Content-Disposition"

    disposition: str = "inline"
    filename: Optional[str] = None

    @classmethod
    def inline(cls) -> "ContentDisposition":
        """Content shown within the message."""
        return cls("inline")

    @classmethod
    def attachment(cls, filename: Optional[str] = None) -> "ContentDisposition":
        """Content delivered as an attached file."""
        return cls("attachment", filename)

    def value(self) -> str:
        if self.filename is None:
            return self.disposition
        return f"{self.disposition}; filename={quote_param(utf8b.encode(self.filename))}"

    @classmethod
    def parse(cls, raw: str) -> "ContentDisposition":
        disposition, _, rest = raw.partition(";")
        filename = None
        for name, value in PARAM_RE.findall(";" + rest if rest else ""):
            if name.lower() == "filename":
                filename = utf8b.decode(unquote_param(value))
                if filename is None:
                    raise InvalidUtf8bError(value)
        return cls(disposition.strip().lower(), filename)


@dataclass(frozen=True)
class ContentLocation(Header):
    """`Content-Location:` header."""

    header_name: ClassVar[str] = "Content-Location"

    location: str

    def value(self) -> str:
        return self.location

    @classmethod
    def parse(cls, raw: str) -> "ContentLocation":
        return cls(raw.strip())


@dataclass(frozen=True)
class ContentId(Header):
    """`Content-ID:` header, angle brackets added when missing."""

    header_name: ClassVar[str] = "Content-ID"

    content_id: str

    def value(self) -> str:
        content_id = self.content_id.strip()
        if not content_id.startswith("<"):
            content_id = f"<{content_id}"
        if not content_id.endswith(">"):
            content_id = f"{content_id}>"
        return content_id

    @classmethod
    def parse(cls, raw: str) -> "ContentId":
        return cls(raw.strip().lstrip("<").rstrip(">"))


HeaderKey = Union[str, Type[Header], Header]


def _key(key: HeaderKey) -> str:
    if isinstance(key, str):
        return key.lower()
    return key.header_name.lower()


class Headers:
    """
    Ordered header container, one header per (case-insensitive) name.
    """

    def __init__(self, headers: Iterable[Header] = ()):
        self._headers: Dict[str, Header] = {}
        for header in headers:
            self.set(header)

    def set(self, header: Header) -> None:
        """Store a header, replacing one of the same name in place."""
        if not isinstance(header, Header):
            raise TypeError(f"Expected a Header, got {type(header).__name__}")
        self._headers[_key(header)] = header

    def get(self, key: HeaderKey) -> Optional[Header]:
        """
        Return the header stored under the name of `key`, if any.

        Asking for a header class parses a `RawHeader` stored under that name
        into the class.

        Raises:
            ValueError: If the raw value is not valid for the requested class
        """
        header = self._headers.get(_key(key))
        if (
            isinstance(header, RawHeader)
            and isinstance(key, type)
            and issubclass(key, Header)
            and not issubclass(key, RawHeader)
        ):
            return key.parse(header.text)
        return header

    def remove(self, key: HeaderKey) -> Optional[Header]:
        """Remove and return the header stored under the name of `key`."""
        return self._headers.pop(_key(key), None)

    def copy(self) -> "Headers":
        """Shallow copy; header values are immutable."""
        return Headers(self._headers.values())

    def __contains__(self, key: HeaderKey) -> bool:
        return _key(key) in self._headers

    def __iter__(self) -> Iterator[Header]:
        return iter(self._headers.values())

    def __len__(self) -> int:
        return len(self._headers)

    def __eq__(self, other) -> bool:
        if not isinstance(other, Headers):
            return NotImplemented
        return list(self._headers.items()) == list(other._headers.items())

    def __repr__(self) -> str:
        return f"Headers({list(self._headers.values())!r})"

    def render(self) -> str:
        """Render one `Name: value` line per header, without the blank line."""
        return "".join(header.render() for header in self._headers.values())

    def __str__(self) -> str:
        return self.render()
