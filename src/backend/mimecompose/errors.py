"""
Error hierarchy for the mimecompose library.

Validation errors are raised while building addresses and mailboxes, encoder
errors while rendering a message or one of its parts.
"""


class MimeComposeError(Exception):
    """Base exception class for all mimecompose errors."""


class MailboxError(MimeComposeError, ValueError):
    """Raised when an address, a mailbox or a mailbox list cannot be built."""

    message = "Invalid mailbox"

    def __init__(self, value=None, message=None):
        self.value = value
        super().__init__(message or self.message)


class MissingPartsError(MailboxError):
    """The address has no `@` or one of its halves is empty."""

    message = "Missing domain or user"


class UnbalancedError(MailboxError):
    """An angle bracket of the mailbox has no counterpart."""

    message = "Unbalanced angle bracket"


class InvalidUserError(MailboxError):
    """The user part of the address is not a valid token."""

    message = "Invalid email user"


class InvalidDomainError(MailboxError):
    """The domain is neither a DNS name nor an address literal."""

    message = "Invalid email domain"


class InvalidUtf8bError(MailboxError):
    """A display name in `=?utf-8?b?...?=` form could not be decoded."""

    message = "Invalid UTF8-B data"


class EncoderError(MimeComposeError):
    """Raised when a body cannot be rendered to transport-safe bytes."""


class CodingError(EncoderError):
    """The transfer-encoding codec refused a chunk."""

    def __init__(self, message="Coding error"):
        super().__init__(message)


class SourceError(EncoderError):
    """
    The byte-chunk producer behind a body failed.

    The original exception is available as `source` and as `__cause__`.
    """

    def __init__(self, source: BaseException):
        self.source = source
        super().__init__(f"Source error: {source}")
