"""
Cryptographic operations for nomyo.

This module provides:
- AES-256-GCM payload encryption
- RSA-OAEP key wrapping and password-protected key serialization
- Client identity management
- The single secure random source
"""

from nomyo.crypto.aes import AesGcmCipher
from nomyo.crypto.entropy import EntropySource
from nomyo.crypto.key_manager import KeyManager
from nomyo.crypto.rsa import RsaOaepCipher

__all__ = [
    "AesGcmCipher",
    "RsaOaepCipher",
    "KeyManager",
    "EntropySource",
]
