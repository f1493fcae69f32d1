"""Owned container for long-lived secrets (symmetric keys, key passwords)."""

import hmac
from typing import Self

from nomyo.memory.provider import SecureMemory, ZeroingSecureMemory

_DEFAULT_MEMORY = ZeroingSecureMemory()


class SecureBytes:
    """
    A private copy of secret bytes, wiped through a ``SecureMemory`` provider.

    The wipe happens on ``clear()``, on leaving a ``with`` block, or at
    garbage collection, whichever comes first. After that every read raises
    ``RuntimeError``.
    """

    __slots__ = ("_buf", "_wiped", "_memory")

    def __init__(self, data: bytes | bytearray, *, memory: SecureMemory | None = None) -> None:
        self._buf = bytearray(data)
        self._wiped = False
        self._memory = memory if memory is not None else _DEFAULT_MEMORY

    @classmethod
    def from_string(
        cls, s: str, encoding: str = "utf-8", *, memory: SecureMemory | None = None
    ) -> Self:
        """Encode ``s``; the temporary encoded buffer is wiped before returning."""
        scratch = bytearray(s.encode(encoding))
        try:
            return cls(scratch, memory=memory)
        finally:
            (memory or _DEFAULT_MEMORY).zero(scratch)

    def __enter__(self) -> Self:
        return self

    def __exit__(self, *_: object) -> None:
        self.clear()

    def __del__(self) -> None:
        self.clear()

    def clear(self) -> None:
        """Wipe the buffer. Idempotent."""
        if not self._wiped:
            self._memory.zero(self._buf)
            self._wiped = True

    @property
    def is_cleared(self) -> bool:
        return self._wiped

    @property
    def buffer(self) -> bytearray:
        """The live backing buffer, for APIs that accept bytes-like input without copying."""
        return self._live()

    def __bytes__(self) -> bytes:
        # Immutable copy; cannot be wiped.
        return bytes(self._live())

    def __len__(self) -> int:
        return len(self._buf)

    def __bool__(self) -> bool:
        return not self._wiped and bool(self._buf)

    def __repr__(self) -> str:
        state = "cleared" if self._wiped else f"{len(self._buf)} bytes"
        return f"SecureBytes(<{state}>)"

    def __eq__(self, other: object) -> bool:
        if isinstance(other, SecureBytes):
            theirs: bytes | bytearray | None = None if other._wiped else other._buf
        elif isinstance(other, (bytes, bytearray)):
            theirs = other
        else:
            return NotImplemented
        if self._wiped or theirs is None:
            return False
        return hmac.compare_digest(self._buf, theirs)

    __hash__ = None  # type: ignore[assignment]

    def _live(self) -> bytearray:
        if self._wiped:
            msg = "SecureBytes has been cleared"
            raise RuntimeError(msg)
        return self._buf
