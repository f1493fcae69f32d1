"""
AES-256-GCM payload encryption.

Nonces are drawn from the entropy source inside ``encrypt``; there is no way
to pass one in, so a key/nonce pair can never be reused by a caller.
"""

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from nomyo.crypto.entropy import EntropySource
from nomyo.exceptions import DecryptionError, InvalidKeyLengthError
from nomyo.memory.provider import SecureMemory
from nomyo.memory.secure_bytes import SecureBytes

KEY_SIZE = 32
NONCE_SIZE = 12
TAG_SIZE = 16


class AesGcmCipher:
    """
    Symmetric cipher for request and response payloads.

    Keys are ``SecureBytes`` so they can be wiped as soon as a request is done.

    Example:
        cipher = AesGcmCipher()
        with cipher.generate_key() as key:
            ciphertext, nonce = cipher.encrypt(b"data", key)
            assert cipher.decrypt(ciphertext, nonce, key) == b"data"
    """

    def __init__(
        self,
        entropy: EntropySource | None = None,
        memory: SecureMemory | None = None,
    ) -> None:
        """
        Args:
            entropy: Random source for keys and nonces. Defaults to ``os.urandom``.
            memory: Provider used to wipe keys this cipher creates.
        """
        self._entropy = entropy if entropy is not None else EntropySource()
        self._memory = memory

    def generate_key(self) -> SecureBytes:
        """Generate a fresh 256-bit key."""
        return SecureBytes(self._entropy.token_bytes(KEY_SIZE), memory=self._memory)

    def encrypt(self, plaintext: bytes | bytearray, key: SecureBytes) -> tuple[bytes, bytes]:
        """
        Encrypt under a fresh random 96-bit nonce.

        Args:
            plaintext: Data to encrypt.
            key: 32-byte key.

        Returns:
            Tuple of (ciphertext with 16-byte tag appended, nonce).
        """
        _check_key_length(len(key))
        nonce = self._entropy.token_bytes(NONCE_SIZE)
        ciphertext = AESGCM(key.buffer).encrypt(nonce, plaintext, None)
        return ciphertext, nonce

    @staticmethod
    def decrypt(ciphertext: bytes, nonce: bytes, key: SecureBytes) -> bytes:
        """
        Decrypt and authenticate.

        Raises:
            DecryptionError: If the tag does not verify or the inputs are malformed.
        """
        _check_key_length(len(key))
        if len(nonce) != NONCE_SIZE or len(ciphertext) < TAG_SIZE:
            raise DecryptionError("AES-GCM decryption failed")
        try:
            return AESGCM(key.buffer).decrypt(nonce, ciphertext, None)
        except InvalidTag as e:
            raise DecryptionError("AES-GCM decryption failed") from e

    @staticmethod
    def export_key(key: SecureBytes) -> bytearray:
        """Copy the raw key into a fresh buffer the caller is responsible for zeroing."""
        return bytearray(key.buffer)

    def import_key(self, data: bytes | bytearray) -> SecureBytes:
        """
        Raises:
            InvalidKeyLengthError: If ``data`` is not exactly 32 bytes.
        """
        _check_key_length(len(data))
        return SecureBytes(data, memory=self._memory)


def _check_key_length(length: int) -> None:
    if length != KEY_SIZE:
        msg = f"Invalid AES key length: expected {KEY_SIZE} bytes, got {length}"
        raise InvalidKeyLengthError(msg, expected=KEY_SIZE, actual=length)
