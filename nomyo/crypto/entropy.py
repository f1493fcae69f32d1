"""The single cryptographically secure random source used for keys, nonces, salts and IVs."""

import os
from collections.abc import Callable

from nomyo.exceptions import ConfigurationError


class EntropySource:
    """
    Wraps one CSPRNG. There is no fallback: if the source cannot produce bytes
    at construction time, construction fails.
    """

    __slots__ = ("_read",)

    def __init__(self, read: Callable[[int], bytes] = os.urandom) -> None:
        """
        Args:
            read: Callable returning ``n`` random bytes. Defaults to ``os.urandom``.

        Raises:
            ConfigurationError: If the source is unusable.
        """
        try:
            sample = read(1)
        except (NotImplementedError, OSError) as e:
            msg = "No cryptographically secure random source available"
            raise ConfigurationError(msg) from e
        if len(sample) != 1:
            msg = "Random source returned the wrong number of bytes"
            raise ConfigurationError(msg)
        self._read = read

    def token_bytes(self, n: int) -> bytes:
        data = self._read(n)
        if len(data) != n:
            msg = f"Random source returned {len(data)} bytes, expected {n}"
            raise ConfigurationError(msg)
        return data
