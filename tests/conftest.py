import os

import pytest

from tests.fixtures.chat_doubles import (
    FakeCredentialSource,
    FakeTransport,
    RecordingDispatcher,
    tester_credential,
)

# Plain console output: no debug field dumps in assertions on log text
os.environ.setdefault("DEBUG", "false")


@pytest.fixture
def transport() -> FakeTransport:
    return FakeTransport()


@pytest.fixture
def credentials() -> FakeCredentialSource:
    return FakeCredentialSource(tester_credential())


@pytest.fixture
def dispatcher() -> RecordingDispatcher:
    return RecordingDispatcher()
