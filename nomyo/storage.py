"""
Persistence collaborators for the client identity.

A ``KeyStore`` holds two PEM artifacts: the (optionally password-wrapped)
private key and the public key.
"""

import os
from pathlib import Path
from typing import Protocol, runtime_checkable

from nomyo.events import Event, EventObserver, NullObserver
from nomyo.exceptions import ConfigurationError

PRIVATE_KEY_FILE = "private_key.pem"
PUBLIC_KEY_FILE = "public_key.pem"
PRIVATE_KEY_MODE = 0o600
PUBLIC_KEY_MODE = 0o644


@runtime_checkable
class KeyStore(Protocol):
    """Where an identity is read from and written to."""

    @property
    def description(self) -> str:
        """Non-secret label for events and error messages."""
        ...

    def exists(self) -> bool:
        """True when a private key is present."""
        ...

    def read(self) -> tuple[str, str | None]:
        """
        Returns:
            Tuple of (private_key_pem, public_key_pem or None if absent).

        Raises:
            OSError: If the private key cannot be read.
        """
        ...

    def write(self, private_pem: str, public_pem: str) -> None:
        ...


class FileKeyStore:
    """
    Keys as two PEM files: private owner-only (0600), public world-readable (0644).

    A failure to restrict permissions (e.g. on filesystems without POSIX modes)
    is reported as a warning event; the key is still usable. Pass
    ``strict_permissions=True`` to make it fatal.
    """

    def __init__(
        self,
        directory: Path | str,
        *,
        strict_permissions: bool = False,
        observer: EventObserver | None = None,
    ) -> None:
        directory = Path(directory)
        self.private_key_path = directory / PRIVATE_KEY_FILE
        self.public_key_path = directory / PUBLIC_KEY_FILE
        self._strict = strict_permissions
        self._emit = observer if observer is not None else NullObserver()

    @classmethod
    def from_paths(
        cls,
        private_key_path: Path | str,
        public_key_path: Path | str | None = None,
        *,
        strict_permissions: bool = False,
        observer: EventObserver | None = None,
    ) -> "FileKeyStore":
        """Use explicit file paths. The public key defaults to a sibling ``public_key.pem``."""
        private_key_path = Path(private_key_path)
        store = cls(
            private_key_path.parent,
            strict_permissions=strict_permissions,
            observer=observer,
        )
        store.private_key_path = private_key_path
        if public_key_path is not None:
            store.public_key_path = Path(public_key_path)
        return store

    @property
    def description(self) -> str:
        return str(self.private_key_path.parent)

    def exists(self) -> bool:
        return self.private_key_path.is_file()

    def read(self) -> tuple[str, str | None]:
        private_pem = self.private_key_path.read_text(encoding="utf-8")
        public_pem = None
        if self.public_key_path.is_file():
            public_pem = self.public_key_path.read_text(encoding="utf-8")
        return private_pem, public_pem

    def write(self, private_pem: str, public_pem: str) -> None:
        self.private_key_path.parent.mkdir(parents=True, exist_ok=True)
        self.public_key_path.parent.mkdir(parents=True, exist_ok=True)

        self._write_file(self.private_key_path, private_pem, PRIVATE_KEY_MODE)
        self._write_file(self.public_key_path, public_pem, PUBLIC_KEY_MODE)

    def _write_file(self, path: Path, content: str, mode: int) -> None:
        # Create with the final mode so the private key is never briefly world-readable.
        fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, mode)
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(content)
        try:
            os.chmod(path, mode)
        except OSError as e:
            if self._strict:
                msg = "Could not restrict key file permissions"
                raise ConfigurationError(msg, path=str(path), mode=oct(mode)) from e
            self._emit(
                Event.KEY_PERMISSIONS_FAILED,
                path=str(path),
                mode=oct(mode),
                error=type(e).__name__,
            )


class InMemoryKeyStore:
    """Holds the PEM artifacts in process memory, for environments without a filesystem."""

    def __init__(self) -> None:
        self._private_pem: str | None = None
        self._public_pem: str | None = None

    @property
    def description(self) -> str:
        return "<memory>"

    def exists(self) -> bool:
        return self._private_pem is not None

    def read(self) -> tuple[str, str | None]:
        if self._private_pem is None:
            msg = "No key stored"
            raise FileNotFoundError(msg)
        return self._private_pem, self._public_pem

    def write(self, private_pem: str, public_pem: str) -> None:
        self._private_pem = private_pem
        self._public_pem = public_pem
