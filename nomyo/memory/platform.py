"""Native page-locking and zeroing primitives, bound once at import."""

import ctypes
import ctypes.util
import platform
from collections.abc import Callable

SYSTEM = platform.system()

_lock_impl: Callable[[int, int], bool] | None = None
_unlock_impl: Callable[[int, int], bool] | None = None


def _bind_windows() -> None:
    global _lock_impl, _unlock_impl
    kernel32 = ctypes.windll.kernel32
    virtual_lock = kernel32.VirtualLock
    virtual_unlock = kernel32.VirtualUnlock
    for fn in (virtual_lock, virtual_unlock):
        fn.argtypes = [ctypes.c_void_p, ctypes.c_size_t]
        fn.restype = ctypes.c_bool

    def _lock(addr: int, size: int) -> bool:
        return bool(virtual_lock(addr, size))

    def _unlock(addr: int, size: int) -> bool:
        return bool(virtual_unlock(addr, size))

    _lock_impl, _unlock_impl = _lock, _unlock


def _bind_posix() -> None:
    global _lock_impl, _unlock_impl
    path = ctypes.util.find_library("c") or ("libc.so.6" if SYSTEM == "Linux" else "libc.dylib")
    libc = ctypes.CDLL(path, use_errno=True)
    for fn in (libc.mlock, libc.munlock):
        fn.argtypes = [ctypes.c_void_p, ctypes.c_size_t]
        fn.restype = ctypes.c_int

    def _lock(addr: int, size: int) -> bool:
        return libc.mlock(addr, size) == 0

    def _unlock(addr: int, size: int) -> bool:
        return libc.munlock(addr, size) == 0

    _lock_impl, _unlock_impl = _lock, _unlock


try:
    if SYSTEM == "Windows":
        _bind_windows()
    elif SYSTEM in ("Linux", "Darwin"):
        _bind_posix()
except (OSError, AttributeError):
    _lock_impl = _unlock_impl = None


def can_lock() -> bool:
    """Whether this platform exposes a page-locking primitive."""
    return _lock_impl is not None and _unlock_impl is not None


def _address(buffer: bytearray) -> int:
    return ctypes.addressof((ctypes.c_char * len(buffer)).from_buffer(buffer))


def memzero(buffer: bytearray) -> None:
    """Overwrite ``buffer`` in place with zero bytes."""
    if len(buffer) == 0:
        return
    try:
        ctypes.memset(_address(buffer), 0, len(buffer))
    except (TypeError, ValueError, BufferError):
        # from_buffer refuses exported buffers; slice assignment still reaches the same memory
        buffer[:] = bytes(len(buffer))


def lock(buffer: bytearray) -> bool:
    """Pin ``buffer``'s pages in RAM. Returns False if the kernel refuses."""
    if _lock_impl is None or len(buffer) == 0:
        return False
    try:
        return _lock_impl(_address(buffer), len(buffer))
    except (TypeError, ValueError, BufferError, OSError):
        return False


def unlock(buffer: bytearray) -> None:
    if _unlock_impl is None or len(buffer) == 0:
        return
    try:
        _unlock_impl(_address(buffer), len(buffer))
    except (TypeError, ValueError, BufferError, OSError):
        return
