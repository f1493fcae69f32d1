"""
RSA-OAEP key wrapping and key serialization.

Public keys travel as SPKI PEM, private keys as PKCS8 PEM. A password-protected
private key is stored as ``salt(16) || iv(16) || AES-256-CBC(pkcs8)`` inside a
``PRIVATE KEY`` PEM block, with the AES key derived by PBKDF2-HMAC-SHA256
(100,000 iterations).
"""

from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives import hashes, padding, serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from cryptography.hazmat.primitives.asymmetric import padding as asym_padding
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC

from nomyo.config import SUPPORTED_KEY_SIZES
from nomyo.crypto.codec import pem_decode, pem_encode
from nomyo.crypto.entropy import EntropySource
from nomyo.exceptions import ConfigurationError, DecryptionError, KeyDecryptionError
from nomyo.memory.secure_bytes import SecureBytes
from nomyo.models.keys import KeyPair

PUBLIC_EXPONENT = 65537
PBKDF2_ITERATIONS = 100_000
SALT_SIZE = 16
IV_SIZE = 16
_DERIVED_KEY_SIZE = 32
_PRIVATE_KEY_LABEL = "PRIVATE KEY"

_OAEP = asym_padding.OAEP(
    mgf=asym_padding.MGF1(algorithm=hashes.SHA256()),
    algorithm=hashes.SHA256(),
    label=None,
)


class RsaOaepCipher:
    """Asymmetric operations for wrapping per-request AES keys."""

    def __init__(self, entropy: EntropySource | None = None) -> None:
        """
        Args:
            entropy: Random source for PBKDF2 salts and CBC IVs.
        """
        self._entropy = entropy if entropy is not None else EntropySource()

    @staticmethod
    def generate_key_pair(bits: int = 4096) -> KeyPair:
        """
        Generate an RSA key pair with public exponent 65537.

        Raises:
            ConfigurationError: If ``bits`` is not 2048 or 4096.
        """
        if bits not in SUPPORTED_KEY_SIZES:
            msg = "RSA key size must be 2048 or 4096"
            raise ConfigurationError(msg, key_size=bits)
        private_key = rsa.generate_private_key(public_exponent=PUBLIC_EXPONENT, key_size=bits)
        return KeyPair(public_key=private_key.public_key(), private_key=private_key)

    @staticmethod
    def encrypt_key(key_bytes: bytes | bytearray, public_key: rsa.RSAPublicKey) -> bytes:
        """Wrap raw key bytes with RSA-OAEP (SHA-256, MGF1-SHA-256)."""
        # The backend only takes immutable bytes; this copy cannot be zeroed.
        return public_key.encrypt(bytes(key_bytes), _OAEP)

    @staticmethod
    def decrypt_key(wrapped: bytes, private_key: rsa.RSAPrivateKey) -> bytes:
        """
        Unwrap key bytes.

        Raises:
            DecryptionError: For any failure. The cause is not distinguished.
        """
        try:
            return private_key.decrypt(wrapped, _OAEP)
        except ValueError as e:
            raise DecryptionError("RSA-OAEP decryption failed") from e

    @staticmethod
    def export_public_key(public_key: rsa.RSAPublicKey) -> str:
        return public_key.public_bytes(
            encoding=serialization.Encoding.PEM,
            format=serialization.PublicFormat.SubjectPublicKeyInfo,
        ).decode("ascii")

    @staticmethod
    def import_public_key(pem: str) -> rsa.RSAPublicKey:
        """
        Raises:
            ValueError: If ``pem`` is not an SPKI PEM RSA public key.
        """
        key = serialization.load_pem_public_key(pem.encode("ascii"))
        if not isinstance(key, rsa.RSAPublicKey):
            msg = "Public key is not an RSA key"
            raise ValueError(msg)
        return key

    def export_private_key(
        self,
        private_key: rsa.RSAPrivateKey,
        password: SecureBytes | None = None,
    ) -> str:
        """
        Serialize as PKCS8 PEM, password-wrapped when ``password`` is given.
        """
        if password is None:
            return private_key.private_bytes(
                encoding=serialization.Encoding.PEM,
                format=serialization.PrivateFormat.PKCS8,
                encryption_algorithm=serialization.NoEncryption(),
            ).decode("ascii")

        der = bytearray(
            private_key.private_bytes(
                encoding=serialization.Encoding.DER,
                format=serialization.PrivateFormat.PKCS8,
                encryption_algorithm=serialization.NoEncryption(),
            )
        )
        salt = self._entropy.token_bytes(SALT_SIZE)
        iv = self._entropy.token_bytes(IV_SIZE)
        with _derive_key(password, salt) as derived:
            padder = padding.PKCS7(algorithms.AES.block_size).padder()
            padded = padder.update(der) + padder.finalize()
            encryptor = Cipher(algorithms.AES(derived.buffer), modes.CBC(iv)).encryptor()
            ciphertext = encryptor.update(padded) + encryptor.finalize()
        der[:] = bytes(len(der))
        return pem_encode(salt + iv + ciphertext, _PRIVATE_KEY_LABEL)

    @staticmethod
    def import_private_key(
        pem: str,
        password: SecureBytes | None = None,
    ) -> rsa.RSAPrivateKey:
        """
        Load a PKCS8 PEM private key, unwrapping it first when ``password`` is given.

        Raises:
            KeyDecryptionError: If the password is wrong or the blob is corrupt.
            ValueError: If an unprotected key cannot be parsed.
        """
        if password is None:
            key = serialization.load_pem_private_key(pem.encode("ascii"), password=None)
        else:
            key = _unwrap_private_key(pem, password)
        if not isinstance(key, rsa.RSAPrivateKey):
            msg = "Private key is not an RSA key"
            raise ValueError(msg)
        return key


def _derive_key(password: SecureBytes, salt: bytes) -> SecureBytes:
    kdf = PBKDF2HMAC(
        algorithm=hashes.SHA256(),
        length=_DERIVED_KEY_SIZE,
        salt=salt,
        iterations=PBKDF2_ITERATIONS,
    )
    return SecureBytes(kdf.derive(password.buffer))


def _unwrap_private_key(pem: str, password: SecureBytes) -> rsa.RSAPrivateKey:
    # Every failure below maps to the same error so a wrong password cannot be told
    # apart from a corrupt file.
    try:
        blob = pem_decode(pem, _PRIVATE_KEY_LABEL)
        if len(blob) <= SALT_SIZE + IV_SIZE:
            raise ValueError("Encrypted private key too short")
        salt, iv = blob[:SALT_SIZE], blob[SALT_SIZE : SALT_SIZE + IV_SIZE]
        ciphertext = blob[SALT_SIZE + IV_SIZE :]
        with _derive_key(password, salt) as derived:
            decryptor = Cipher(algorithms.AES(derived.buffer), modes.CBC(iv)).decryptor()
            padded = bytearray(decryptor.update(ciphertext) + decryptor.finalize())
        unpadder = padding.PKCS7(algorithms.AES.block_size).unpadder()
        der = bytearray(unpadder.update(padded) + unpadder.finalize())
        padded[:] = bytes(len(padded))
        try:
            return serialization.load_der_private_key(bytes(der), password=None)
        finally:
            der[:] = bytes(len(der))
    except (ValueError, TypeError, UnsupportedAlgorithm) as e:
        raise KeyDecryptionError() from e
