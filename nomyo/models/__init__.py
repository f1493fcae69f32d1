"""
Domain models for nomyo.

These are immutable (frozen) dataclasses representing the protocol's data.
"""

from nomyo.models.envelope import (
    KEY_ALGORITHM,
    NONCE_SIZE,
    PACKAGE_ALGORITHM,
    PACKAGE_VERSION,
    PAYLOAD_ALGORITHM,
    EncryptedPackage,
    EncryptedPayload,
)
from nomyo.models.keys import KeyPair, KeyState

__all__ = [
    # Envelope
    "EncryptedPackage",
    "EncryptedPayload",
    "PACKAGE_VERSION",
    "PACKAGE_ALGORITHM",
    "KEY_ALGORITHM",
    "PAYLOAD_ALGORITHM",
    "NONCE_SIZE",
    # Keys
    "KeyPair",
    "KeyState",
]
