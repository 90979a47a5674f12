"""
Mimecompose factories
"""

import factory

from mimecompose.formats.rfc5322.address import Address, Mailbox, Mailboxes


class AddressFactory(factory.Factory):
    """A factory to random email addresses for testing purposes."""

    class Meta:
        model = Address

    user = factory.Sequence(lambda n: f"user{n!s}")
    domain = factory.Sequence(lambda n: f"example{n}.com")


class MailboxFactory(factory.Factory):
    """A factory to random mailboxes with a display name."""

    class Meta:
        model = Mailbox

    name = factory.Faker("name")
    address = factory.SubFactory(AddressFactory)

    class Params:
        # Non-ASCII display name, rendered as an encoded word
        international = factory.Trait(name=factory.Faker("name", locale="ru_RU"))
        anonymous = factory.Trait(name=None)


def make_mailboxes(count: int = 2, **kwargs) -> Mailboxes:
    """Build a list of `count` random mailboxes."""
    return Mailboxes(MailboxFactory.build_batch(count, **kwargs))
