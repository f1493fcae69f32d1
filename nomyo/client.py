"""
Secure completion client.

Composes the key manager, the ciphers and secure memory into the hybrid
request/response envelope protocol:

1. ensure an identity exists (load, else generate),
2. encrypt the JSON payload under a fresh AES-256-GCM key wrapped for the
   router's RSA key,
3. send it with the protocol headers,
4. decrypt the router's envelope with the local private key.
"""

import asyncio
import json
import uuid
from contextlib import AbstractContextManager, nullcontext
from pathlib import Path
from typing import Any, Self
from urllib.parse import quote

import httpx
from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives.asymmetric.rsa import RSAPublicKey

from nomyo.api.http_client import AsyncHttpClient, Endpoint, raise_for_status
from nomyo.config import ClientConfig
from nomyo.crypto.aes import AesGcmCipher
from nomyo.crypto.codec import canonical_json, utf8_decode
from nomyo.crypto.entropy import EntropySource
from nomyo.crypto.key_manager import KeyManager
from nomyo.crypto.rsa import RsaOaepCipher
from nomyo.events import Event, EventObserver, StructlogObserver
from nomyo.exceptions import (
    APIConnectionError,
    ConfigurationError,
    InsecureChannelError,
    KeyLoadError,
    NomyoError,
    PayloadTooLargeError,
    SecurityError,
)
from nomyo.memory.context import SecretScope
from nomyo.memory.provider import NoSecureMemory, ProtectionInfo, SecureMemory, ZeroingSecureMemory
from nomyo.memory.secure_bytes import SecureBytes
from nomyo.models.envelope import EncryptedPackage, EncryptedPayload
from nomyo.storage import FileKeyStore, KeyStore

DECRYPTION_FAILED_MESSAGE = "Decryption failed: integrity check or authentication failed"

# encodeURIComponent's unreserved set
_URI_COMPONENT_SAFE = "-_.!~*'()"


def generate_request_id() -> str:
    return f"nomyo-{uuid.uuid4().hex}"


class SecureCompletionClient:
    """
    Async client for end-to-end encrypted requests to a nomyo router.

    Example:
        ```python
        async with SecureCompletionClient(ClientConfig(api_key="...")) as client:
            response = await client.send_secure_request(
                {"model": "x", "messages": [{"role": "user", "content": "hi"}]}
            )
        ```

    Args:
        config: Client configuration. Uses defaults if not provided.
        secure_memory: Memory provider. Defaults to zero-only, or none when
            ``config.secure_memory`` is false.
        observer: Receives structured events. Defaults to structlog.
        transport: Optional httpx transport for testing.
        key_store: Where the identity is loaded from and persisted to.
            Defaults to ``config.key_dir`` on disk.
        entropy: Random source for keys, nonces, salts and IVs.
    """

    def __init__(
        self,
        config: ClientConfig | None = None,
        *,
        secure_memory: SecureMemory | None = None,
        observer: EventObserver | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        key_store: KeyStore | None = None,
        entropy: EntropySource | None = None,
    ) -> None:
        self._config = config or ClientConfig()
        self._emit = observer if observer is not None else StructlogObserver()

        if secure_memory is None:
            enabled = self._config.secure_memory
            secure_memory = ZeroingSecureMemory() if enabled else NoSecureMemory()
        self._memory = secure_memory

        entropy = entropy if entropy is not None else EntropySource()
        self._aes = AesGcmCipher(entropy, self._memory)
        self._rsa = RsaOaepCipher(entropy)
        self._keys = KeyManager(self._rsa, self._emit)
        if key_store is None:
            key_store = self._file_store(self._config.key_dir)
        self._key_store = key_store
        self._http = AsyncHttpClient(self._config, transport=transport)
        self._identity_lock = asyncio.Lock()

        if not self._config.is_secure_transport:
            self._emit(
                Event.INSECURE_TRANSPORT,
                router_url=self._config.router_url,
                allow_http=self._config.allow_http,
            )
        info = self._memory.get_protection_info()
        self._emit(Event.MEMORY_PROTECTION, method=str(info.method), details=info.details)

    async def __aenter__(self) -> Self:
        await self._http.__aenter__()
        return self

    async def __aexit__(
        self, exc_type: type | None, exc_val: BaseException | None, exc_tb: object
    ) -> None:
        await self.close()

    async def close(self) -> None:
        """Close the HTTP client. The identity stays in memory."""
        await self._http.close()

    @property
    def config(self) -> ClientConfig:
        return self._config

    @property
    def key_manager(self) -> KeyManager:
        return self._keys

    @property
    def protection_info(self) -> ProtectionInfo:
        return self._memory.get_protection_info()

    # Identity

    async def generate_keys(
        self,
        password: str | None = None,
        *,
        persist: bool | None = None,
        key_dir: Path | str | None = None,
    ) -> None:
        """
        Generate a new identity of ``config.key_size`` bits.

        Args:
            password: Wrap the persisted private key with this password.
            persist: Write the keys. Defaults to ``config.persist_keys``.
            key_dir: Directory to write to instead of the configured key store.
        """
        if persist is None:
            persist = self._config.persist_keys
        store = None
        if persist:
            store = self._file_store(key_dir) if key_dir is not None else self._key_store

        async with self._identity_lock:
            with self._password(password) as secret:
                await asyncio.to_thread(
                    self._keys.generate, self._config.key_size, store=store, password=secret
                )

    async def load_keys(
        self,
        private_key_path: Path | str,
        public_key_path: Path | str | None = None,
        password: str | None = None,
    ) -> None:
        """
        Load an identity from PEM files.

        Raises:
            KeyLoadError: If the files are unreadable or the password is wrong.
        """
        store = FileKeyStore.from_paths(
            private_key_path,
            public_key_path,
            strict_permissions=self._config.strict_key_permissions,
            observer=self._emit,
        )
        async with self._identity_lock:
            with self._password(password) as secret:
                await asyncio.to_thread(self._keys.load, store, secret)

    async def ensure_keys(self) -> None:
        """
        Make sure an identity is held: load it from the key store, else generate one.

        Concurrent callers are serialized so only one identity is ever created.
        A freshly generated identity is persisted only when persistence is
        enabled and the store does not already hold keys.
        """
        if self._keys.has_keys:
            return
        async with self._identity_lock:
            if self._keys.has_keys:
                return

            store = self._key_store
            occupied = store.exists()
            if occupied:
                try:
                    await asyncio.to_thread(self._keys.load, store)
                    return
                except KeyLoadError as e:
                    self._emit(
                        Event.IDENTITY_LOAD_FAILED,
                        store=store.description,
                        error=type(e).__name__,
                    )

            persist_to = store if self._config.persist_keys and not occupied else None
            await asyncio.to_thread(self._keys.generate, self._config.key_size, store=persist_to)

    # Protocol

    async def fetch_server_public_key(self) -> str:
        """
        Fetch the router's RSA public key.

        Returns:
            The PEM-encoded key.

        Raises:
            InsecureChannelError: If the router URL is not HTTPS and HTTP was not allowed.
            APIConnectionError: On network failure, non-200 status or an invalid key.
        """
        pem, _ = await self._fetch_server_key()
        return pem

    async def encrypt_payload(self, payload: dict[str, Any]) -> bytes:
        """
        Encrypt a JSON object into a serialized envelope for the router.

        Raises:
            ConfigurationError: If the payload is not a JSON-serializable object.
            PayloadTooLargeError: If the serialized payload exceeds ``config.max_payload_size``.
            InsecureChannelError: If the router key would be fetched over plain HTTP.
            APIConnectionError: If the router key cannot be fetched.
        """
        if not isinstance(payload, dict):
            msg = "Payload must be a JSON object"
            raise ConfigurationError(msg, type=type(payload).__name__)

        await self.ensure_keys()

        try:
            plaintext = bytearray(canonical_json(payload))
        except (TypeError, ValueError) as e:
            msg = "Payload is not JSON serializable"
            raise ConfigurationError(msg) from e

        size = len(plaintext)
        limit = self._config.max_payload_size
        if size > limit:
            self._memory.zero(plaintext)
            msg = f"Payload too large: {size} bytes (max: {limit})"
            raise PayloadTooLargeError(msg, size=size, limit=limit)
        self._emit(Event.PAYLOAD_ENCRYPTED, size=size)

        with self._aes.generate_key() as aes_key:
            ciphertext, nonce = SecretScope(plaintext, self._memory).use(
                lambda data: self._aes.encrypt(data, aes_key)
            )
            _, server_key = await self._fetch_server_key()
            wrapped_key = SecretScope(self._aes.export_key(aes_key), self._memory).use(
                lambda raw: self._rsa.encrypt_key(raw, server_key)
            )

        package = EncryptedPackage(
            encrypted_payload=EncryptedPayload(ciphertext=ciphertext, nonce=nonce),
            encrypted_aes_key=wrapped_key,
        )
        body = package.to_bytes()
        self._emit(Event.PACKAGE_SERIALIZED, size=len(body))
        return body

    def decrypt_response(self, package_bytes: bytes, request_id: str) -> dict[str, Any]:
        """
        Decrypt an envelope addressed to this client.

        Args:
            package_bytes: Serialized envelope from the router.
            request_id: Identifier of the originating request, echoed in ``_metadata``.

        Returns:
            The decrypted JSON object with ``_metadata`` attached.

        Raises:
            MalformedPackageError: If the envelope is not JSON or lacks required fields.
            NoKeyAvailableError: If no identity is loaded.
            SecurityError: For every cryptographic or content failure, with one fixed message.
        """
        fields = EncryptedPackage.parse_fields(package_bytes)
        private_key = self._keys.get_private_key()

        try:
            package = EncryptedPackage.from_fields(fields)
            raw_key = bytearray(self._rsa.decrypt_key(package.encrypted_aes_key, private_key))
            response = SecretScope(raw_key, self._memory).use(
                lambda raw: self._decrypt_payload(package.encrypted_payload, raw)
            )
        except (NomyoError, ValueError, TypeError, KeyError, RecursionError) as e:
            self._emit(Event.DECRYPTION_FAILED, error=type(e).__name__)
            raise SecurityError(DECRYPTION_FAILED_MESSAGE) from None

        metadata = response.get("_metadata")
        response["_metadata"] = {
            **(metadata if isinstance(metadata, dict) else {}),
            "payload_id": request_id,
            "processed_at": package.processed_at,
            "is_encrypted": True,
            "encryption_algorithm": package.algorithm,
        }
        self._emit(Event.RESPONSE_DECRYPTED, payload_id=request_id)
        return response

    async def send_secure_request(
        self,
        payload: dict[str, Any],
        request_id: str | None = None,
        api_key: str | None = None,
    ) -> dict[str, Any]:
        """
        Encrypt ``payload``, submit it, and decrypt the router's answer.

        Args:
            payload: JSON object to send.
            request_id: Opaque request identifier. Generated when omitted.
            api_key: Bearer credential. Overrides ``config.api_key``.

        Raises:
            APIConnectionError: On timeout or transport failure.
            AuthenticationError, InvalidRequestError, RateLimitError, ServerError, APIError:
                Translated from the router's HTTP status.
            SecurityError: If the response cannot be authenticated.
        """
        request_id = request_id or generate_request_id()
        await self.ensure_keys()
        body = await self.encrypt_payload(payload)

        headers = {
            "X-Payload-ID": request_id,
            "X-Public-Key": quote(self._keys.get_public_key_pem(), safe=_URI_COMPONENT_SAFE),
            "Content-Type": "application/octet-stream",
        }
        credential = api_key or self._config.api_key
        if credential:
            headers["Authorization"] = f"Bearer {credential}"

        response = await self._http.post(Endpoint.SECURE_COMPLETION, content=body, headers=headers)
        raise_for_status(response)
        return self.decrypt_response(response.content, request_id)

    async def _fetch_server_key(self) -> tuple[str, RSAPublicKey]:
        if not self._config.is_secure_transport:
            if not self._config.allow_http:
                msg = (
                    "Server public key must be fetched over HTTPS to prevent MITM attacks. "
                    "For local development, use ClientConfig(allow_http=True)."
                )
                raise InsecureChannelError(msg)
            self._emit(Event.INSECURE_TRANSPORT, router_url=self._config.router_url)

        response = await self._http.get(Endpoint.PUBLIC_KEY)
        if response.status_code != httpx.codes.OK:
            msg = f"Failed to fetch server's public key: HTTP {response.status_code}"
            raise APIConnectionError(msg)

        try:
            pem = utf8_decode(response.content)
            key = self._rsa.import_public_key(pem)
        except (ValueError, UnsupportedAlgorithm) as e:
            raise APIConnectionError("Server returned invalid public key format") from e

        self._emit(Event.SERVER_KEY_FETCHED, secure=self._config.is_secure_transport)
        return pem, key

    def _decrypt_payload(self, payload: EncryptedPayload, raw_key: bytearray) -> dict[str, Any]:
        with self._aes.import_key(raw_key) as aes_key:
            plaintext = bytearray(self._aes.decrypt(payload.ciphertext, payload.nonce, aes_key))
        return SecretScope(plaintext, self._memory).use(_parse_response)

    def _password(self, password: str | None) -> AbstractContextManager[SecureBytes | None]:
        if password is None:
            return nullcontext()
        return SecureBytes.from_string(password, memory=self._memory)

    def _file_store(self, directory: Path | str) -> FileKeyStore:
        return FileKeyStore(
            directory,
            strict_permissions=self._config.strict_key_permissions,
            observer=self._emit,
        )


def _parse_response(plaintext: bytearray) -> dict[str, Any]:
    response = json.loads(utf8_decode(plaintext))
    if not isinstance(response, dict):
        msg = "Decrypted response is not a JSON object"
        raise ValueError(msg)
    return response
