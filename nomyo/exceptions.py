"""
nomyo exception hierarchy.

All exceptions inherit from NomyoError for easy catching.
"""

from typing import Any


class NomyoError(Exception):
    """Base exception for all nomyo errors."""

    def __init__(self, message: str, **context: Any) -> None:
        super().__init__(message)
        self.message = message
        self.context = context

    def __str__(self) -> str:
        if self.context:
            ctx = ", ".join(f"{k}={v!r}" for k, v in self.context.items())
            return f"{self.message} ({ctx})"
        return self.message


class ConfigurationError(NomyoError):
    """Bad input shape or setup mistake. Never retried."""


class InvalidKeyLengthError(ConfigurationError):
    """Symmetric key material has the wrong length."""

    def __init__(self, message: str, *, expected: int, actual: int) -> None:
        super().__init__(message, expected=expected, actual=actual)
        self.expected = expected
        self.actual = actual


class PayloadTooLargeError(ConfigurationError):
    """Serialized payload exceeds the configured ceiling."""

    def __init__(self, message: str, *, size: int, limit: int) -> None:
        super().__init__(message, size=size, limit=limit)
        self.size = size
        self.limit = limit


class MalformedPackageError(ConfigurationError):
    """Encrypted package is not valid JSON or lacks a required field."""


class NoKeyAvailableError(ConfigurationError):
    """No key pair has been generated or loaded yet."""


class KeyLoadError(ConfigurationError):
    """Key material could not be read or imported."""


class CryptoError(NomyoError):
    """Cryptographic primitive failed. Collapsed before reaching callers."""


class DecryptionError(CryptoError):
    """Ciphertext could not be authenticated or decrypted."""


class KeyDecryptionError(CryptoError):
    """Password-protected private key could not be unwrapped."""

    def __init__(self, message: str = "Failed to decrypt private key") -> None:
        super().__init__(message)


class SecurityError(NomyoError):
    """Security guarantee could not be upheld. Messages are deliberately generic."""


class InsecureChannelError(SecurityError):
    """Refused to fetch key material over an unencrypted channel."""


class APIConnectionError(NomyoError):
    """Network-level error (connection failed, timeout, bad server response)."""


class APIError(NomyoError):
    """Remote endpoint answered with a non-success status."""

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        error_details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, status_code=status_code)
        self.status_code = status_code
        self.error_details = error_details or {}


class AuthenticationError(APIError):
    """Invalid API key or authentication failed (401)."""

    def __init__(self, message: str, *, error_details: dict[str, Any] | None = None) -> None:
        super().__init__(message, status_code=401, error_details=error_details)


class InvalidRequestError(APIError):
    """Request rejected as malformed (400)."""

    def __init__(self, message: str, *, error_details: dict[str, Any] | None = None) -> None:
        super().__init__(message, status_code=400, error_details=error_details)


class RateLimitError(APIError):
    """Rate limited by the router (429)."""

    def __init__(
        self,
        message: str = "Rate limit exceeded",
        *,
        retry_after: int | None = None,
        error_details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, status_code=429, error_details=error_details)
        self.retry_after = retry_after


class ServerError(APIError):
    """Server-side error (5xx)."""

    def __init__(
        self,
        message: str,
        *,
        status_code: int = 500,
        error_details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, status_code=status_code, error_details=error_details)
