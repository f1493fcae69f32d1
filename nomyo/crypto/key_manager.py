"""
Client identity management.

Owns the long-lived RSA key pair for the life of the process:

Uninitialized --generate/load--> Ready --save--> Persisted

The key pair is read-only once Ready, so concurrent requests may share it.
There is no rotation or revocation; callers needing that must layer it on top.
"""

from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives.asymmetric.rsa import RSAPrivateKey, RSAPublicKey

from nomyo.crypto.rsa import RsaOaepCipher
from nomyo.events import Event, EventObserver, NullObserver
from nomyo.exceptions import KeyDecryptionError, KeyLoadError, NoKeyAvailableError
from nomyo.memory.secure_bytes import SecureBytes
from nomyo.models.keys import KeyPair, KeyState
from nomyo.storage import KeyStore


class KeyManager:
    """
    Generates, loads, persists and serves the client key pair.

    Example:
        manager = KeyManager()
        manager.generate(4096, store=FileKeyStore("client_keys"), password=secret)
        pem = manager.get_public_key_pem()
    """

    def __init__(
        self,
        rsa: RsaOaepCipher | None = None,
        observer: EventObserver | None = None,
    ) -> None:
        """
        Args:
            rsa: Asymmetric cipher used to create and (de)serialize keys.
            observer: Receives lifecycle events.
        """
        self._rsa = rsa if rsa is not None else RsaOaepCipher()
        self._emit = observer if observer is not None else NullObserver()
        self._key_pair: KeyPair | None = None
        self._public_key_pem: str | None = None
        self._state = KeyState.UNINITIALIZED

    @property
    def state(self) -> KeyState:
        return self._state

    @property
    def has_keys(self) -> bool:
        return self._key_pair is not None

    def generate(
        self,
        bits: int = 4096,
        *,
        store: KeyStore | None = None,
        password: SecureBytes | None = None,
    ) -> None:
        """
        Generate a new key pair, replacing any held one.

        Args:
            bits: RSA modulus size, 2048 or 4096.
            store: Persist the new pair here when given.
            password: Wrap the persisted private key with this password.
        """
        key_pair = self._rsa.generate_key_pair(bits)
        self._key_pair = key_pair
        self._public_key_pem = self._rsa.export_public_key(key_pair.public_key)
        self._state = KeyState.READY
        self._emit(Event.KEY_PAIR_GENERATED, key_size=bits)

        if store is not None:
            self.save(store, password=password)

    def load(self, store: KeyStore, password: SecureBytes | None = None) -> None:
        """
        Load the key pair held by ``store``.

        When the store has no public key, it is derived from the private key.

        Raises:
            KeyLoadError: If the store cannot be read or the key cannot be imported.
                A wrong password is reported with the same generic message as a corrupt key.
        """
        try:
            private_pem, public_pem = self._read(store)
            private_key = self._rsa.import_private_key(private_pem, password)
            if public_pem is not None:
                public_key = self._rsa.import_public_key(public_pem)
            else:
                public_key = private_key.public_key()
                public_pem = self._rsa.export_public_key(public_key)
        except KeyDecryptionError as e:
            raise KeyLoadError("Failed to decrypt private key", store=store.description) from e
        except (ValueError, UnsupportedAlgorithm) as e:
            msg = "Failed to import key material"
            raise KeyLoadError(msg, store=store.description) from e

        if public_key.public_numbers() != private_key.public_key().public_numbers():
            msg = "Public key does not match private key"
            raise KeyLoadError(msg, store=store.description)

        self._key_pair = KeyPair(public_key=public_key, private_key=private_key)
        self._public_key_pem = public_pem
        self._state = KeyState.READY
        self._emit(Event.KEYS_LOADED, store=store.description, key_size=private_key.key_size)

    def save(self, store: KeyStore, password: SecureBytes | None = None) -> None:
        """
        Write the held key pair to ``store``.

        Raises:
            NoKeyAvailableError: If no key pair is held.
        """
        key_pair = self._require_key_pair()
        private_pem = self._rsa.export_private_key(key_pair.private_key, password)
        store.write(private_pem, self.get_public_key_pem())
        self._state = KeyState.PERSISTED

        if password is None:
            self._emit(Event.PRIVATE_KEY_UNENCRYPTED, store=store.description)
        self._emit(Event.KEYS_SAVED, store=store.description, encrypted=password is not None)

    def get_public_key_pem(self) -> str:
        self._require_key_pair()
        if self._public_key_pem is None:
            self._public_key_pem = self._rsa.export_public_key(self._key_pair.public_key)
        return self._public_key_pem

    def get_public_key(self) -> RSAPublicKey:
        return self._require_key_pair().public_key

    def get_private_key(self) -> RSAPrivateKey:
        """For internal use by the orchestrator."""
        return self._require_key_pair().private_key

    def _require_key_pair(self) -> KeyPair:
        if self._key_pair is None:
            msg = "No key pair available. Generate or load keys first."
            raise NoKeyAvailableError(msg, state=str(self._state))
        return self._key_pair

    @staticmethod
    def _read(store: KeyStore) -> tuple[str, str | None]:
        try:
            return store.read()
        except OSError as e:
            msg = "Failed to read keys"
            raise KeyLoadError(msg, store=store.description) from e
