import os

import pytest

from nomyo.crypto.entropy import EntropySource
from nomyo.crypto.rsa import RsaOaepCipher
from nomyo.events import Event
from nomyo.models.keys import KeyPair


class RecordingObserver:
    """Collects emitted events for assertions."""

    def __init__(self) -> None:
        self.events: list[tuple[Event, dict]] = []

    def __call__(self, event: Event, /, **fields) -> None:
        self.events.append((event, fields))

    def names(self) -> list[Event]:
        return [event for event, _ in self.events]

    def fields_for(self, event: Event) -> list[dict]:
        return [fields for name, fields in self.events if name == event]


@pytest.fixture(scope="session")
def client_key_pair() -> KeyPair:
    """2048-bit pair shared across the session; generation is slow."""
    return RsaOaepCipher.generate_key_pair(2048)


@pytest.fixture(scope="session")
def router_key_pair() -> KeyPair:
    return RsaOaepCipher.generate_key_pair(2048)


@pytest.fixture
def observer() -> RecordingObserver:
    return RecordingObserver()


@pytest.fixture
def entropy() -> EntropySource:
    return EntropySource(os.urandom)
