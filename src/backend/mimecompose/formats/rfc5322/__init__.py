"""
RFC5322 email format package.

This package provides addresses, UTF8-B encoded words and typed headers.
Messages are built with `mimecompose.formats.rfc5322.message`.
"""

from .address import Address, Mailbox, Mailboxes
from .headers import (
    Bcc,
    Cc,
    ContentDisposition,
    ContentId,
    ContentLocation,
    ContentTransferEncoding,
    ContentType,
    Date,
    From,
    Header,
    Headers,
    InReplyTo,
    MessageId,
    MimeVersion,
    RawHeader,
    References,
    ReplyTo,
    Sender,
    Subject,
    To,
    UserAgent,
)

__all__ = [
    # Addresses
    "Address",
    "Mailbox",
    "Mailboxes",
    # Headers
    "Header",
    "Headers",
    "RawHeader",
    "From",
    "ReplyTo",
    "To",
    "Cc",
    "Bcc",
    "Sender",
    "Subject",
    "Date",
    "MessageId",
    "InReplyTo",
    "References",
    "UserAgent",
    "MimeVersion",
    "ContentType",
    "ContentTransferEncoding",
    "ContentDisposition",
    "ContentLocation",
    "ContentId",
]
