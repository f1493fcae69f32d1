"""
Wire envelope for hybrid-encrypted payloads.

```
{
  "version": "1.0",
  "algorithm": "hybrid-aes256-rsa4096",
  "encrypted_payload": {"ciphertext": "<base64>", "nonce": "<base64>"},
  "encrypted_aes_key": "<base64>",
  "key_algorithm": "RSA-OAEP-SHA256",
  "payload_algorithm": "AES-256-GCM"
}
```
"""

import json
from dataclasses import dataclass
from typing import Any

from nomyo.crypto.codec import b64decode, b64encode, utf8_encode
from nomyo.exceptions import MalformedPackageError

PACKAGE_VERSION = "1.0"
PACKAGE_ALGORITHM = "hybrid-aes256-rsa4096"
KEY_ALGORITHM = "RSA-OAEP-SHA256"
PAYLOAD_ALGORITHM = "AES-256-GCM"
NONCE_SIZE = 12

_REQUIRED_FIELDS = ("version", "algorithm", "encrypted_payload", "encrypted_aes_key")
_REQUIRED_PAYLOAD_FIELDS = ("ciphertext", "nonce")


@dataclass(frozen=True, kw_only=True)
class EncryptedPayload:
    """
    Attributes:
        ciphertext: AES-GCM output with the 16-byte tag appended.
        nonce: 12-byte GCM nonce.
    """

    ciphertext: bytes
    nonce: bytes

    def to_dict(self) -> dict[str, str]:
        return {"ciphertext": b64encode(self.ciphertext), "nonce": b64encode(self.nonce)}


@dataclass(frozen=True, kw_only=True)
class EncryptedPackage:
    """
    One request or response envelope. Transient: built, serialized, discarded.

    Attributes:
        encrypted_payload: Symmetric ciphertext and nonce.
        encrypted_aes_key: AES key wrapped with the recipient's RSA key.
        version: Envelope format version.
        algorithm: Combined scheme identifier.
        key_algorithm: Key-wrapping algorithm.
        payload_algorithm: Payload cipher.
        processed_at: Server timestamp, present on responses only.
    """

    encrypted_payload: EncryptedPayload
    encrypted_aes_key: bytes
    version: str = PACKAGE_VERSION
    algorithm: str = PACKAGE_ALGORITHM
    key_algorithm: str = KEY_ALGORITHM
    payload_algorithm: str = PAYLOAD_ALGORITHM
    processed_at: Any = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "version": self.version,
            "algorithm": self.algorithm,
            "encrypted_payload": self.encrypted_payload.to_dict(),
            "encrypted_aes_key": b64encode(self.encrypted_aes_key),
            "key_algorithm": self.key_algorithm,
            "payload_algorithm": self.payload_algorithm,
        }
        if self.processed_at is not None:
            data["processed_at"] = self.processed_at
        return data

    def to_bytes(self) -> bytes:
        return utf8_encode(json.dumps(self.to_dict(), separators=(",", ":")))

    @classmethod
    def parse_fields(cls, data: bytes | bytearray) -> dict[str, Any]:
        """
        Parse and structurally validate envelope JSON without decoding binary fields.

        Raises:
            MalformedPackageError: On empty input, invalid JSON, or missing fields.
        """
        if not data:
            msg = "Empty encrypted response"
            raise MalformedPackageError(msg)
        try:
            fields = json.loads(bytes(data).decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError, RecursionError) as e:
            msg = "Invalid encrypted package format: malformed JSON"
            raise MalformedPackageError(msg) from e
        if not isinstance(fields, dict):
            msg = "Invalid encrypted package format: expected a JSON object"
            raise MalformedPackageError(msg)

        for name in _REQUIRED_FIELDS:
            if name not in fields:
                msg = f"Missing required field in encrypted package: {name}"
                raise MalformedPackageError(msg, field=name)
        payload = fields["encrypted_payload"]
        if not isinstance(payload, dict):
            msg = "Invalid encrypted package format: encrypted_payload must be an object"
            raise MalformedPackageError(msg)
        for name in _REQUIRED_PAYLOAD_FIELDS:
            if name not in payload:
                msg = f"Missing field in encrypted_payload: {name}"
                raise MalformedPackageError(msg, field=name)
        return fields

    @classmethod
    def from_fields(cls, fields: dict[str, Any]) -> "EncryptedPackage":
        """
        Decode the binary fields of an already-validated envelope.

        Raises:
            ValueError: If a binary field is not base64 or the nonce has the wrong size.
        """
        payload = fields["encrypted_payload"]
        nonce = b64decode(payload["nonce"])
        if len(nonce) != NONCE_SIZE:
            msg = f"Nonce must be {NONCE_SIZE} bytes"
            raise ValueError(msg)
        return cls(
            encrypted_payload=EncryptedPayload(
                ciphertext=b64decode(payload["ciphertext"]),
                nonce=nonce,
            ),
            encrypted_aes_key=b64decode(fields["encrypted_aes_key"]),
            version=fields["version"],
            algorithm=fields["algorithm"],
            key_algorithm=fields.get("key_algorithm", KEY_ALGORITHM),
            payload_algorithm=fields.get("payload_algorithm", PAYLOAD_ALGORITHM),
            processed_at=fields.get("processed_at"),
        )

    @classmethod
    def from_bytes(cls, data: bytes | bytearray) -> "EncryptedPackage":
        return cls.from_fields(cls.parse_fields(data))
