"""
Composition and streaming of RFC 5322 / MIME messages.

Messages are assembled with builders from typed headers, mailboxes and MIME
parts, then rendered at once or streamed chunk by chunk.
"""

from mimecompose.enums import TransferEncoding
from mimecompose.errors import (
    CodingError,
    EncoderError,
    InvalidDomainError,
    InvalidUserError,
    InvalidUtf8bError,
    MailboxError,
    MimeComposeError,
    MissingPartsError,
    SourceError,
    UnbalancedError,
)
from mimecompose.formats.mime.body import (
    MultiPart,
    MultiPartBuilder,
    MultiPartKind,
    Part,
    SinglePart,
    SinglePartBuilder,
)
from mimecompose.formats.rfc5322.address import Address, Mailbox, Mailboxes
from mimecompose.formats.rfc5322.message import Message, MessageBuilder

__all__ = [
    # Addresses
    "Address",
    "Mailbox",
    "Mailboxes",
    # Bodies
    "TransferEncoding",
    "SinglePart",
    "SinglePartBuilder",
    "MultiPart",
    "MultiPartBuilder",
    "MultiPartKind",
    "Part",
    # Messages
    "Message",
    "MessageBuilder",
    # Errors
    "MimeComposeError",
    "MailboxError",
    "MissingPartsError",
    "UnbalancedError",
    "InvalidUserError",
    "InvalidDomainError",
    "InvalidUtf8bError",
    "EncoderError",
    "CodingError",
    "SourceError",
]
