"""
Scoped secret context.

Guarantees a secret buffer is zeroed exactly once when the scope ends, whether
the inner operation returns, raises, or is cancelled.

Example:
    ```python
    scope = SecretScope(bytearray(key_bytes), memory)
    wrapped = scope.use(lambda key: rsa.encrypt_key(key, server_key))

    async with SecretScope(plaintext, memory) as buf:
        await send(buf)
    ```
"""

from collections.abc import Awaitable, Callable
from typing import TypeVar

from nomyo.memory.provider import SecureMemory

T = TypeVar("T")


class SecretScope:
    """Owns a secret ``bytearray`` for the duration of one operation."""

    __slots__ = ("_buffer", "_memory", "_zeroed")

    def __init__(self, buffer: bytearray, memory: SecureMemory) -> None:
        if not isinstance(buffer, bytearray):
            msg = "SecretScope requires a mutable bytearray"
            raise TypeError(msg)
        self._buffer = buffer
        self._memory = memory
        self._zeroed = False

    @property
    def is_zeroed(self) -> bool:
        return self._zeroed

    def use(self, fn: Callable[[bytearray], T]) -> T:
        """Run ``fn`` on the buffer, then zero it."""
        try:
            return fn(self._buffer)
        finally:
            self._release()

    async def use_async(self, fn: Callable[[bytearray], Awaitable[T]]) -> T:
        """Await ``fn`` on the buffer, then zero it. Zeroing also runs on cancellation."""
        try:
            return await fn(self._buffer)
        finally:
            self._release()

    def __enter__(self) -> bytearray:
        return self._buffer

    def __exit__(self, *_: object) -> None:
        self._release()

    async def __aenter__(self) -> bytearray:
        return self._buffer

    async def __aexit__(self, *_: object) -> None:
        self._release()

    def _release(self) -> None:
        if self._zeroed:
            return
        self._zeroed = True
        self._memory.zero(self._buffer)
