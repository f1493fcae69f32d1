from unittest.mock import patch

import pytest

from nomyo.exceptions import ConfigurationError
from nomyo.memory import platform
from nomyo.memory.provider import (
    LockingSecureMemory,
    NoSecureMemory,
    ProtectionMethod,
    SecureMemory,
    ZeroingSecureMemory,
)


def test_memzero_clears_bytearray() -> None:
    data = bytearray(b"sensitive")
    platform.memzero(data)

    assert data == bytearray(9)


def test_memzero_handles_empty_bytearray() -> None:
    data = bytearray()
    platform.memzero(data)

    assert len(data) == 0


def test_memzero_clears_buffer_with_live_export() -> None:
    data = bytearray(b"sensitive")
    view = memoryview(data)
    platform.memzero(data)

    assert bytes(view) == bytes(9)
    view.release()


def test_zeroing_provider_zeros_and_reports_zero_only() -> None:
    memory = ZeroingSecureMemory()
    data = bytearray(b"secret")
    memory.zero(data)
    info = memory.get_protection_info()

    assert data == bytearray(6)
    assert info.method == ProtectionMethod.ZERO_ONLY
    assert not info.can_lock
    assert isinstance(memory, SecureMemory)


def test_no_provider_leaves_buffer_untouched() -> None:
    memory = NoSecureMemory()
    data = bytearray(b"secret")
    memory.zero(data)

    assert data == bytearray(b"secret")
    assert memory.get_protection_info().method == ProtectionMethod.NONE


@pytest.mark.skipif(not platform.can_lock(), reason="no page-locking primitive")
def test_locking_provider_zeros_and_reports_lock() -> None:
    memory = LockingSecureMemory()
    data = bytearray(b"secret" * 100)
    memory.zero(data)
    info = memory.get_protection_info()

    assert data == bytearray(600)
    assert info.method == ProtectionMethod.LOCK
    assert info.can_lock
    assert info.is_platform_secure


def test_locking_provider_zeros_even_when_lock_refused() -> None:
    with patch.object(platform, "can_lock", return_value=True):
        memory = LockingSecureMemory()
    data = bytearray(b"secret")

    with patch.object(platform, "lock", return_value=False), patch.object(
        platform, "unlock"
    ) as unlock:
        memory.zero(data)

    assert data == bytearray(6)
    unlock.assert_not_called()


def test_locking_provider_unavailable_raises() -> None:
    with patch.object(platform, "can_lock", return_value=False), pytest.raises(
        ConfigurationError
    ):
        LockingSecureMemory()
