"""
Asymmetric identity models.
"""

from dataclasses import dataclass
from enum import StrEnum

from cryptography.hazmat.primitives.asymmetric.rsa import RSAPrivateKey, RSAPublicKey


class KeyState(StrEnum):
    """Key Manager lifecycle."""

    UNINITIALIZED = "uninitialized"
    READY = "ready"
    PERSISTED = "persisted"


@dataclass(frozen=True, slots=True)
class KeyPair:
    """RSA identity. The private half never leaves the Key Manager unencrypted unless asked."""

    public_key: RSAPublicKey
    private_key: RSAPrivateKey

    @property
    def key_size(self) -> int:
        return self.private_key.key_size

    def __repr__(self) -> str:
        return f"KeyPair(<RSA-{self.key_size}>)"
