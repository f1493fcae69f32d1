"""
Secure memory providers.

A provider zeroes secret buffers on demand and describes what protection it
offers. The variant is chosen once, by whoever constructs the client; callers
only ever see the ``SecureMemory`` protocol.
"""

from dataclasses import dataclass
from enum import StrEnum
from typing import Protocol, runtime_checkable

from nomyo.exceptions import ConfigurationError
from nomyo.memory import platform


class ProtectionMethod(StrEnum):
    LOCK = "lock"
    ZERO_ONLY = "zero-only"
    NONE = "none"


@dataclass(frozen=True, kw_only=True, slots=True)
class ProtectionInfo:
    """
    Attributes:
        can_lock: Buffers are pinned in RAM before being zeroed.
        is_platform_secure: The OS enforces the protection, not just this process.
        method: Protection method in use.
        details: Human-readable description.
    """

    can_lock: bool
    is_platform_secure: bool
    method: ProtectionMethod
    details: str


@runtime_checkable
class SecureMemory(Protocol):
    """Interface every secure memory provider implements."""

    def zero(self, buffer: bytearray) -> None:
        """Overwrite ``buffer`` with zeros in place."""
        ...

    def get_protection_info(self) -> ProtectionInfo:
        ...


class ZeroingSecureMemory:
    """Overwrites buffers with zeros. No page locking."""

    def __init__(self) -> None:
        self._info = ProtectionInfo(
            can_lock=False,
            is_platform_secure=False,
            method=ProtectionMethod.ZERO_ONLY,
            details=(
                f"{platform.SYSTEM or 'Unknown'} (CPython): memory locking not used. "
                "Secrets are zeroed immediately after use; the interpreter may still hold copies."
            ),
        )

    def zero(self, buffer: bytearray) -> None:
        platform.memzero(buffer)

    def get_protection_info(self) -> ProtectionInfo:
        return self._info


class LockingSecureMemory:
    """
    Pins a buffer's pages (mlock / VirtualLock) before zeroing it, so the
    plaintext cannot be paged to swap mid-wipe.

    Raises:
        ConfigurationError: At construction, if the platform has no locking primitive.
    """

    def __init__(self) -> None:
        if not platform.can_lock():
            msg = "Memory locking is not available on this platform"
            raise ConfigurationError(msg, platform=platform.SYSTEM)
        self._info = ProtectionInfo(
            can_lock=True,
            is_platform_secure=True,
            method=ProtectionMethod.LOCK,
            details=f"{platform.SYSTEM}: buffers are page-locked, then zeroed.",
        )

    def zero(self, buffer: bytearray) -> None:
        # A refused lock (RLIMIT_MEMLOCK) must not skip the wipe.
        locked = platform.lock(buffer)
        try:
            platform.memzero(buffer)
        finally:
            if locked:
                platform.unlock(buffer)

    def get_protection_info(self) -> ProtectionInfo:
        return self._info


class NoSecureMemory:
    """Leaves buffers untouched. Selected only by explicit opt-out."""

    _INFO = ProtectionInfo(
        can_lock=False,
        is_platform_secure=False,
        method=ProtectionMethod.NONE,
        details="Secure memory disabled: secrets are left to the garbage collector.",
    )

    def zero(self, buffer: bytearray) -> None:
        return None

    def get_protection_info(self) -> ProtectionInfo:
        return self._INFO
