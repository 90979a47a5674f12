"""
Email addresses and mailboxes.

An `Address` is the canonical `user@domain` form, a `Mailbox` pairs it with an
optional display name and `Mailboxes` keeps an ordered list of them, as used in
`From`, `To` and the other address-list headers.

Only the address grammar needed to compose mail is implemented. Quoted local
parts, comments and group syntax are not accepted.
"""

import ipaddress
import re
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import Any, Iterable, Optional, Union

import idna

from mimecompose.errors import (
    InvalidDomainError,
    InvalidUserError,
    InvalidUtf8bError,
    MissingPartsError,
    UnbalancedError,
)
from mimecompose.formats.rfc5322 import utf8b

# Same as the WHATWG "valid e-mail address" user part, quoted strings excluded
USER_RE = re.compile(r"^[a-z0-9.!#$%&'*+/=?^_`{|}~-]+$", re.IGNORECASE)
DOMAIN_RE = re.compile(
    r"^[a-z0-9](?:[a-z0-9-]{0,61}[a-z0-9])?(?:\.[a-z0-9](?:[a-z0-9-]{0,61}[a-z0-9])?)*$",
    re.IGNORECASE,
)
# Address literal, IPv4 or IPv6 (RFC 5321 4.1.3)
LITERAL_RE = re.compile(r"^\[([a-f0-9:.]+)\]$", re.IGNORECASE)


def check_user(user: str) -> None:
    """Raise InvalidUserError if `user` is not a valid local part."""
    if not USER_RE.match(user):
        raise InvalidUserError(user)


def _check_domain_ascii(domain: str) -> bool:
    if DOMAIN_RE.match(domain):
        return True
    literal = LITERAL_RE.match(domain)
    if literal:
        try:
            ipaddress.ip_address(literal.group(1))
        except ValueError:
            return False
        return True
    return False


def to_ascii_domain(domain: str) -> str:
    """
    Convert an internationalized domain to its ASCII (IDNA) form.

    Raises:
        InvalidDomainError: If the domain cannot be converted
    """
    try:
        return idna.encode(domain, uts46=True).decode("ascii")
    except (idna.IDNAError, UnicodeError) as e:
        raise InvalidDomainError(domain) from e


def check_domain(domain: str) -> None:
    """
    Raise InvalidDomainError if `domain` is not a valid mail domain.

    The plain ASCII check runs first; the IDNA conversion is only attempted
    when it fails.
    """
    if _check_domain_ascii(domain):
        return
    if not _check_domain_ascii(to_ascii_domain(domain)):
        raise InvalidDomainError(domain)


@dataclass(frozen=True, order=True)
class Address:
    """
    Email address in canonical form (`user@domain`).

    Attributes:
        user: Local part
        domain: Domain part, a DNS name or a bracketed IP literal
    """

    user: str
    domain: str

    def __post_init__(self):
        check_user(self.user)
        check_domain(self.domain)

    def __str__(self) -> str:
        return f"{self.user}@{self.domain}"

    @property
    def ascii_domain(self) -> str:
        """The domain in its ASCII (IDNA) form."""
        if _check_domain_ascii(self.domain):
            return self.domain
        return to_ascii_domain(self.domain)

    @classmethod
    def parse(cls, value: str) -> "Address":
        """
        Parse an address from its `user@domain` text.

        The split happens on the last `@`.

        Raises:
            MissingPartsError: If there is no `@` or a half is empty
            InvalidUserError: If the user part is invalid
            InvalidDomainError: If the domain part is invalid
        """
        if not value or "@" not in value:
            raise MissingPartsError(value)
        user, domain = value.rsplit("@", 1)
        if not user or not domain:
            raise MissingPartsError(value)
        return cls(user=user, domain=domain)

    @classmethod
    def from_value(cls, value: Union[str, Mapping, "Address"]) -> "Address":
        """Build an address from a string or a `{"user", "domain"}` mapping."""
        if isinstance(value, Address):
            return value
        if isinstance(value, str):
            return cls.parse(value)
        if isinstance(value, Mapping):
            try:
                return cls(user=value["user"], domain=value["domain"])
            except KeyError as e:
                raise MissingPartsError(value) from e
        raise TypeError(f"Cannot build an address from {type(value).__name__}")

    def to_value(self) -> str:
        """Serializable form of the address."""
        return str(self)


@dataclass(frozen=True)
class Mailbox:
    """
    Email address with an optional addressee name.

    Attributes:
        name: Display name of the sender or recipient
        address: Email address
    """

    name: Optional[str]
    address: Address

    def __post_init__(self):
        if not isinstance(self.address, Address):
            raise TypeError("Mailbox address must be an Address")

    @property
    def display_name(self) -> Optional[str]:
        """The trimmed name, or None when it is blank."""
        if self.name is None:
            return None
        name = self.name.strip()
        return name or None

    def __str__(self) -> str:
        name = self.display_name
        if name:
            return f"{name} <{self.address}>"
        return str(self.address)

    def render_display_name(self) -> str:
        """
        Header-ready form of the mailbox.

        A name carrying non-ASCII characters is emitted as a UTF8-B encoded
        word, e.g. `=?utf-8?b?0JrQsNC4?= <kayo@example.com>`.
        """
        name = self.display_name
        if name:
            return f"{utf8b.encode(name)} <{self.address}>"
        return str(self.address)

    @classmethod
    def parse(cls, value: str) -> "Mailbox":
        """
        Parse `name <user@domain>` or a bare `user@domain`.

        Names in UTF8-B form are decoded.

        Raises:
            UnbalancedError: If an angle bracket has no counterpart
            InvalidUtf8bError: If the name is a malformed encoded word
            MailboxError: Any error raised while parsing the address
        """
        addr_open = value.find("<")
        addr_close = value.find(">")

        if addr_open != -1 and addr_close > addr_open:
            address = Address.parse(value[addr_open + 1 : addr_close].strip())
            name = value[:addr_open].strip()
            if not name:
                return cls(name=None, address=address)
            decoded = utf8b.decode(name)
            if decoded is None:
                raise InvalidUtf8bError(name)
            return cls(name=decoded, address=address)

        if addr_open != -1 or addr_close != -1:
            raise UnbalancedError(value)

        return cls(name=None, address=Address.parse(value.strip()))

    @classmethod
    def from_value(cls, value: Any) -> "Mailbox":
        """
        Build a mailbox from a string, a `{"name", "email"}` mapping or a
        `(name, email)` pair.
        """
        if isinstance(value, Mailbox):
            return value
        if isinstance(value, str):
            return cls.parse(value)
        if isinstance(value, Address):
            return cls(name=None, address=value)
        if isinstance(value, Mapping):
            email = value.get("email", value.get("address"))
            if email is None:
                raise MissingPartsError(value)
            return cls(name=value.get("name") or None, address=Address.from_value(email))
        if isinstance(value, (tuple, list)) and len(value) == 2:
            name, email = value
            return cls(name=name or None, address=Address.from_value(email))
        raise TypeError(f"Cannot build a mailbox from {type(value).__name__}")

    def to_value(self) -> dict:
        """Serializable form of the mailbox."""
        return {"name": self.name, "email": str(self.address)}


class Mailboxes(Sequence):
    """
    Ordered list of mailboxes.

    Duplicates are kept: the order is the emission order of the header.
    """

    __slots__ = ("_items",)

    def __init__(self, mailboxes: Iterable[Mailbox] = ()):
        items = tuple(mailboxes)
        for mailbox in items:
            if not isinstance(mailbox, Mailbox):
                raise TypeError("Mailboxes only hold Mailbox values")
        self._items = items

    def __getitem__(self, index):
        if isinstance(index, slice):
            return Mailboxes(self._items[index])
        return self._items[index]

    def __len__(self) -> int:
        return len(self._items)

    def __eq__(self, other) -> bool:
        if isinstance(other, Mailboxes):
            return self._items == other._items
        if isinstance(other, (list, tuple)):
            return list(self._items) == list(other)
        return NotImplemented

    def __hash__(self) -> int:
        return hash(self._items)

    def __add__(self, other) -> "Mailboxes":
        return Mailboxes(self._items + tuple(Mailboxes.from_value(other)))

    def __repr__(self) -> str:
        return f"Mailboxes({list(self._items)!r})"

    def __str__(self) -> str:
        return ", ".join(str(mailbox) for mailbox in self._items)

    def render(self) -> str:
        """Header-ready form, names encoded as UTF8-B where needed."""
        return ", ".join(mailbox.render_display_name() for mailbox in self._items)

    def first(self) -> Optional[Mailbox]:
        """Return the first mailbox, if any."""
        return self._items[0] if self._items else None

    def with_mailbox(self, mailbox: Mailbox) -> "Mailboxes":
        """Return a new list with `mailbox` appended."""
        return Mailboxes(self._items + (mailbox,))

    @classmethod
    def parse(cls, value: str) -> "Mailboxes":
        """
        Parse a comma-separated mailbox list.

        The source is split on every comma, so a quoted display name holding a
        comma is not supported.
        """
        return cls(Mailbox.parse(item.strip()) for item in value.split(","))

    @classmethod
    def from_value(cls, value: Any) -> "Mailboxes":
        """Build a list from a string, a single mailbox or an iterable of them."""
        if isinstance(value, Mailboxes):
            return value
        if isinstance(value, str):
            return cls.parse(value)
        if isinstance(value, (Mailbox, Address, Mapping)):
            return cls([Mailbox.from_value(value)])
        return cls(Mailbox.from_value(item) for item in value)
