"""Fixtures for tests in the mimecompose package"""
# pylint: disable=redefined-outer-name

from datetime import datetime, timezone

import pytest

from mimecompose import factories
from mimecompose.conf import configure_logging, reset_settings

configure_logging()


@pytest.fixture(autouse=True)
def settings_env(monkeypatch):
    """Run every test with settings re-read from a clean environment."""
    for name in (
        "MIMECOMPOSE_MAX_LINE_LENGTH",
        "MIMECOMPOSE_BASE64_LINE_LENGTH",
        "MIMECOMPOSE_BOUNDARY_LENGTH",
    ):
        monkeypatch.delenv(name, raising=False)
    reset_settings()
    yield monkeypatch
    reset_settings()


@pytest.fixture
def fixed_date():
    """The date used by the reference renderings."""
    return datetime(1994, 11, 15, 8, 12, 31, tzinfo=timezone.utc)


@pytest.fixture
def mailbox():
    """Create a mailbox with an ASCII display name."""
    return factories.MailboxFactory(name="Maria Garcia")


@pytest.fixture
def international_mailbox():
    """Create a mailbox with a non-ASCII display name."""
    return factories.MailboxFactory(international=True)


async def _collect(stream) -> bytes:
    return b"".join([chunk async for chunk in stream])


async def _chunks(stream) -> list:
    return [chunk async for chunk in stream]


@pytest.fixture
def collect():
    """Coroutine function joining every chunk of an async stream."""
    return _collect


@pytest.fixture
def chunks_of():
    """Coroutine function listing the chunks of an async stream."""
    return _chunks
