"""
Structured events emitted by the protocol core.

The core never logs directly. It calls an injected ``EventObserver``; the
default one forwards to structlog. Event fields never contain key material or
plaintext.
"""

from enum import StrEnum
from typing import Any, Protocol

import structlog


class Event(StrEnum):
    KEY_PAIR_GENERATED = "key_pair_generated"
    KEYS_LOADED = "keys_loaded"
    KEYS_SAVED = "keys_saved"
    KEY_PERMISSIONS_FAILED = "key_permissions_failed"
    PRIVATE_KEY_UNENCRYPTED = "private_key_unencrypted"
    IDENTITY_LOAD_FAILED = "identity_load_failed"
    INSECURE_TRANSPORT = "insecure_transport"
    SERVER_KEY_FETCHED = "server_key_fetched"
    PAYLOAD_ENCRYPTED = "payload_encrypted"
    PACKAGE_SERIALIZED = "package_serialized"
    RESPONSE_DECRYPTED = "response_decrypted"
    DECRYPTION_FAILED = "decryption_failed"
    MEMORY_PROTECTION = "memory_protection"


_LEVELS: dict[Event, str] = {
    Event.KEY_PAIR_GENERATED: "info",
    Event.KEYS_LOADED: "info",
    Event.KEYS_SAVED: "info",
    Event.KEY_PERMISSIONS_FAILED: "warning",
    Event.PRIVATE_KEY_UNENCRYPTED: "warning",
    Event.IDENTITY_LOAD_FAILED: "warning",
    Event.INSECURE_TRANSPORT: "warning",
}


class EventObserver(Protocol):
    def __call__(self, event: Event, /, **fields: Any) -> None: ...


class StructlogObserver:
    """Forwards events to a structlog logger at the level registered for each event."""

    def __init__(self, logger: Any = None) -> None:
        self._logger = logger if logger is not None else structlog.get_logger("nomyo")

    def __call__(self, event: Event, /, **fields: Any) -> None:
        level = _LEVELS.get(event, "debug")
        getattr(self._logger, level)(str(event), **fields)


class NullObserver:
    """Discards every event."""

    def __call__(self, event: Event, /, **fields: Any) -> None:
        return None
