"""
Secret memory handling.

This module provides:
- Secure memory providers (page-locking, zero-only, disabled)
- SecretScope, which zeroes a buffer on every exit path
- SecureBytes, an owned secret container
"""

from nomyo.memory.context import SecretScope
from nomyo.memory.provider import (
    LockingSecureMemory,
    NoSecureMemory,
    ProtectionInfo,
    ProtectionMethod,
    SecureMemory,
    ZeroingSecureMemory,
)
from nomyo.memory.secure_bytes import SecureBytes

__all__ = [
    "SecureMemory",
    "ProtectionInfo",
    "ProtectionMethod",
    "ZeroingSecureMemory",
    "LockingSecureMemory",
    "NoSecureMemory",
    "SecretScope",
    "SecureBytes",
]
