"""
nomyo Python client.

End-to-end encrypted chat completions through a nomyo router. Payloads are
sealed with AES-256-GCM under a per-request key wrapped for the router's RSA
key; responses come back sealed for this client's own key pair.

Example:
    ```python
    from nomyo import ClientConfig, SecureCompletionClient

    config = ClientConfig(router_url="https://api.nomyo.ai:12434", api_key="...")

    async with SecureCompletionClient(config) as client:
        response = await client.send_secure_request(
            {
                "model": "Qwen/Qwen3-0.6B",
                "messages": [{"role": "user", "content": "Hello"}],
            }
        )
        print(response["choices"][0]["message"]["content"])
    ```
"""

from nomyo.client import SecureCompletionClient, generate_request_id
from nomyo.config import ClientConfig
from nomyo.events import Event, EventObserver, NullObserver, StructlogObserver
from nomyo.exceptions import (
    APIConnectionError,
    APIError,
    AuthenticationError,
    ConfigurationError,
    CryptoError,
    DecryptionError,
    InsecureChannelError,
    InvalidKeyLengthError,
    InvalidRequestError,
    KeyDecryptionError,
    KeyLoadError,
    MalformedPackageError,
    NoKeyAvailableError,
    NomyoError,
    PayloadTooLargeError,
    RateLimitError,
    SecurityError,
    ServerError,
)
from nomyo.memory import (
    LockingSecureMemory,
    NoSecureMemory,
    ProtectionInfo,
    ProtectionMethod,
    SecureMemory,
    ZeroingSecureMemory,
)
from nomyo.storage import FileKeyStore, InMemoryKeyStore, KeyStore

__version__ = "0.1.0"

__all__ = [
    # Main client
    "SecureCompletionClient",
    "ClientConfig",
    "generate_request_id",
    # Key storage
    "KeyStore",
    "FileKeyStore",
    "InMemoryKeyStore",
    # Secure memory
    "SecureMemory",
    "ZeroingSecureMemory",
    "LockingSecureMemory",
    "NoSecureMemory",
    "ProtectionInfo",
    "ProtectionMethod",
    # Events
    "Event",
    "EventObserver",
    "StructlogObserver",
    "NullObserver",
    # Exceptions
    "NomyoError",
    "ConfigurationError",
    "InvalidKeyLengthError",
    "PayloadTooLargeError",
    "MalformedPackageError",
    "NoKeyAvailableError",
    "KeyLoadError",
    "CryptoError",
    "DecryptionError",
    "KeyDecryptionError",
    "SecurityError",
    "InsecureChannelError",
    "APIConnectionError",
    "APIError",
    "AuthenticationError",
    "InvalidRequestError",
    "RateLimitError",
    "ServerError",
]
