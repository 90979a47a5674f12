"""
Top-level messages: a header block and an optional body.

The body of a message is either absent, a raw text/bytes payload (or a
producer of such chunks), or a MIME part. Parts render their own headers and
the blank line that follows them, so the header block of the message and the
headers of its root part form a single block on the wire.

Example:
    >>> message = (
    ...     MessageBuilder()
    ...     .from_("Каи <kayo@example.com>")
    ...     .to("pony@domain.tld")
    ...     .subject("Happy new year")
    ...     .body("Be happy!")
    ... )
    >>> message.as_string().splitlines()[0]
    'From: =?utf-8?b?0JrQsNC4?= <kayo@example.com>'
"""

import logging
from datetime import datetime, timezone
from typing import Any, AsyncIterator, Type, Union

from mimecompose.errors import SourceError
from mimecompose.formats.mime.body import MultiPart, Part, SinglePart
from mimecompose.formats.mime.encoder import ChunkProducer, chunk_source, is_static, to_bytes
from mimecompose.formats.rfc5322.address import Mailboxes
from mimecompose.formats.rfc5322.headers import (
    MIME_VERSION_1_0,
    Bcc,
    Cc,
    Date,
    From,
    Header,
    Headers,
    InReplyTo,
    MailboxesHeader,
    MessageId,
    MimeVersion,
    References,
    ReplyTo,
    Sender,
    Subject,
    To,
    UserAgent,
)

logger = logging.getLogger(__name__)

CRLF = b"\r\n"

Body = Union[None, ChunkProducer, SinglePart, MultiPart]


class MessageBuilder:
    """
    Collects the headers of a message until its body is given.

    The address-list methods (`from_`, `reply_to`, `to`, `cc`, `bcc`) append to
    a header already set, while `header()` always replaces.
    """

    def __init__(self):
        self._headers = Headers()

    @classmethod
    def just_now(cls) -> "MessageBuilder":
        """Builder with the `Date` header set to the current instant."""
        return cls().date_now()

    def header(self, header: Header) -> "MessageBuilder":
        """Set a header, replacing a previous one of the same name."""
        self._headers.set(header)
        return self

    def _merge(self, header_class: Type[MailboxesHeader], mailboxes: Any) -> "MessageBuilder":
        mailboxes = Mailboxes.from_value(mailboxes)
        current = self._headers.get(header_class)
        if current is None:
            return self.header(header_class(mailboxes))
        return self.header(current.merge(mailboxes))

    def from_(self, mailboxes: Any) -> "MessageBuilder":
        """Add author mailboxes to `From`."""
        return self._merge(From, mailboxes)

    def reply_to(self, mailboxes: Any) -> "MessageBuilder":
        """Add mailboxes to `Reply-To`."""
        return self._merge(ReplyTo, mailboxes)

    def to(self, mailboxes: Any) -> "MessageBuilder":
        """Add recipient mailboxes to `To`."""
        return self._merge(To, mailboxes)

    def cc(self, mailboxes: Any) -> "MessageBuilder":
        """Add recipient mailboxes to `Cc`."""
        return self._merge(Cc, mailboxes)

    def bcc(self, mailboxes: Any) -> "MessageBuilder":
        """Add recipient mailboxes to `Bcc`."""
        return self._merge(Bcc, mailboxes)

    def sender(self, mailbox: Any) -> "MessageBuilder":
        return self.header(Sender(mailbox))

    def subject(self, subject: str) -> "MessageBuilder":
        return self.header(Subject(subject))

    def date(self, date: datetime) -> "MessageBuilder":
        return self.header(Date(date))

    def date_now(self) -> "MessageBuilder":
        """Set the `Date` header to the current instant (UTC)."""
        return self.date(datetime.now(timezone.utc))

    def message_id(self, message_id: str) -> "MessageBuilder":
        return self.header(MessageId(message_id))

    def in_reply_to(self, message_id: str) -> "MessageBuilder":
        return self.header(InReplyTo(message_id))

    def references(self, references: str) -> "MessageBuilder":
        return self.header(References(references))

    def user_agent(self, user_agent: str) -> "MessageBuilder":
        return self.header(UserAgent(user_agent))

    def mime_1_0(self) -> "MessageBuilder":
        """Set `MIME-Version: 1.0`."""
        return self.header(MIME_VERSION_1_0)

    def build(self) -> "Message":
        """Finish a message without a body."""
        return Message(self._headers.copy(), None, split=True)

    def body(self, body: ChunkProducer) -> "Message":
        """
        Finish the message with a raw body.

        The body is sent as-is after the blank line ending the headers. A
        static value is checked now; producers are only checked when streamed.
        """
        if not is_static(body) and not hasattr(body, "__iter__") and not hasattr(body, "__aiter__"):
            raise TypeError(f"Unsupported body type: {type(body).__name__}")
        return Message(self._headers.copy(), body, split=True)

    def mime_body(self, part: Part) -> "Message":
        """
        Finish the message with a MIME part.

        `MIME-Version: 1.0` is added when no version was set.
        """
        if not isinstance(part, (SinglePart, MultiPart)):
            raise TypeError(f"Expected a SinglePart or a MultiPart, got {type(part).__name__}")
        headers = self._headers.copy()
        if MimeVersion not in headers:
            headers.set(MIME_VERSION_1_0)
        return Message(headers, part, split=False)

    def singlepart(self, part: SinglePart) -> "Message":
        if not isinstance(part, SinglePart):
            raise TypeError(f"Expected a SinglePart, got {type(part).__name__}")
        return self.mime_body(part)

    def multipart(self, part: MultiPart) -> "Message":
        if not isinstance(part, MultiPart):
            raise TypeError(f"Expected a MultiPart, got {type(part).__name__}")
        return self.mime_body(part)


class Message:
    """
    A composed message.

    Attributes:
        headers: Top-level headers
        body: None, a raw payload or a MIME part
        split: Whether a blank line must separate the headers from the body,
            false for MIME parts which render their own
    """

    def __init__(self, headers: Headers, body: Body = None, split: bool = True):
        self._headers = headers
        self._body = body
        self._split = split

    @classmethod
    def builder(cls) -> MessageBuilder:
        return MessageBuilder()

    @property
    def headers(self) -> Headers:
        return self._headers.copy()

    @property
    def body(self) -> Body:
        return self._body

    @property
    def split(self) -> bool:
        return self._split

    @property
    def is_mime(self) -> bool:
        """Whether the body is a MIME part."""
        return isinstance(self._body, (SinglePart, MultiPart))

    @property
    def is_streaming(self) -> bool:
        if self.is_mime:
            return self._body.is_streaming
        return self._body is not None and not is_static(self._body)

    def _head(self) -> bytes:
        head = self._headers.render().encode("utf-8")
        if self._split:
            head += CRLF
        return head

    def format(self) -> bytes:
        """
        Render the message at once.

        Raises:
            TypeError: If the body, or a part within it, is a chunk producer
            CodingError: If a part body cannot be sent with its encoding
        """
        head = self._head()
        if self._body is None:
            return head
        if self.is_mime:
            return head + self._body.format()
        if not is_static(self._body):
            raise TypeError("A message with a streaming body can only be rendered with stream()")
        return head + to_bytes(self._body)

    def as_bytes(self) -> bytes:
        return self.format()

    def as_string(self) -> str:
        return self.format().decode("utf-8")

    def __bytes__(self) -> bytes:
        return self.format()

    def __str__(self) -> str:
        return self.as_string()

    def __repr__(self) -> str:
        return f"Message({self._headers!r}, split={self._split})"

    async def stream(self) -> AsyncIterator[bytes]:
        """
        Render the message lazily.

        The header block comes first, then the raw body chunks as produced or
        the chunks of the MIME part. Joining all chunks gives `format()`.

        Raises:
            SourceError: If a body producer fails
            CodingError: If a part body cannot be sent with its encoding
        """
        yield self._head()

        if self._body is None:
            return

        if self.is_mime:
            chunks = self._body.stream()
            try:
                async for chunk in chunks:
                    yield chunk
            finally:
                await chunks.aclose()
            return

        chunks = chunk_source(self._body)
        try:
            while True:
                try:
                    chunk = await chunks.__anext__()
                except StopAsyncIteration:
                    break
                except Exception as e:
                    logger.error("Message body producer failed: %s", str(e))
                    raise SourceError(e) from e
                yield chunk
        finally:
            await chunks.aclose()
