"""
nomyo client configuration.
"""

from dataclasses import dataclass, field
from pathlib import Path
from urllib.parse import urlsplit

from nomyo.exceptions import ConfigurationError

DEFAULT_ROUTER_URL = "https://api.nomyo.ai:12434"
DEFAULT_MAX_PAYLOAD_SIZE = 10 * 1024 * 1024
SUPPORTED_KEY_SIZES = (2048, 4096)


@dataclass(frozen=True, kw_only=True)
class ClientConfig:
    """
    Attributes:
        router_url: Base URL of the router. Trailing slash is stripped.
        allow_http: Permit plain HTTP. Only for local development.
        secure_memory: Zero secret buffers after use.
        key_size: RSA modulus size in bits for generated identities.
        api_key: Default bearer credential sent with secure requests.
        timeout: Timeout in seconds for the key fetch and the submission.
        max_payload_size: Largest serialized payload accepted, in bytes.
        key_dir: Directory holding the persisted identity.
        persist_keys: Write auto-generated identities to ``key_dir``.
        strict_key_permissions: Fail instead of warn when key file
            permissions cannot be restricted.
    """

    router_url: str = DEFAULT_ROUTER_URL
    allow_http: bool = False
    secure_memory: bool = True
    key_size: int = 4096
    api_key: str | None = field(default=None, repr=False)
    timeout: float = 60.0
    max_payload_size: int = DEFAULT_MAX_PAYLOAD_SIZE
    key_dir: Path = Path("client_keys")
    persist_keys: bool = True
    strict_key_permissions: bool = False

    def __post_init__(self) -> None:
        object.__setattr__(self, "router_url", self.router_url.rstrip("/"))
        object.__setattr__(self, "key_dir", Path(self.key_dir))

        parts = urlsplit(self.router_url)
        if parts.scheme not in ("http", "https") or not parts.netloc:
            msg = "router_url must be an absolute http(s) URL"
            raise ConfigurationError(msg, router_url=self.router_url)
        if self.key_size not in SUPPORTED_KEY_SIZES:
            msg = "key_size must be 2048 or 4096"
            raise ConfigurationError(msg, key_size=self.key_size)
        if self.timeout <= 0:
            msg = "timeout must be positive"
            raise ConfigurationError(msg)
        if self.max_payload_size <= 0:
            msg = "max_payload_size must be positive"
            raise ConfigurationError(msg)

    @property
    def is_secure_transport(self) -> bool:
        """True when the router is reached over TLS."""
        return urlsplit(self.router_url).scheme == "https"
