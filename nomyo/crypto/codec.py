"""Stateless byte encodings: base64, UTF-8, PEM and canonical JSON."""

import base64
import binascii
import json
import re
from typing import Any

_PEM_LINE_LENGTH = 64
_PEM_BLOCK = re.compile(
    r"-----BEGIN (?P<label>[A-Z ]+)-----(?P<body>.*?)-----END (?P=label)-----",
    re.DOTALL,
)


def b64encode(data: bytes | bytearray) -> str:
    return base64.b64encode(data).decode("ascii")


def b64decode(text: str) -> bytes:
    """
    Strict base64 decode.

    Raises:
        ValueError: If ``text`` is not valid base64.
    """
    try:
        return base64.b64decode(text, validate=True)
    except (binascii.Error, ValueError, TypeError) as e:
        msg = "Invalid base64 data"
        raise ValueError(msg) from e


def utf8_encode(text: str) -> bytes:
    return text.encode("utf-8")


def utf8_decode(data: bytes | bytearray) -> str:
    return bytes(data).decode("utf-8")


def pem_encode(data: bytes | bytearray, label: str) -> str:
    """Wrap DER (or any binary) data in a PEM block with 64-column lines."""
    body = b64encode(data)
    lines = [body[i : i + _PEM_LINE_LENGTH] for i in range(0, len(body), _PEM_LINE_LENGTH)]
    return "\n".join([f"-----BEGIN {label}-----", *lines, f"-----END {label}-----"]) + "\n"


def pem_decode(pem: str, label: str) -> bytes:
    """
    Extract the binary contents of the first PEM block carrying ``label``.

    Raises:
        ValueError: If no such block exists or its body is not base64.
    """
    for match in _PEM_BLOCK.finditer(pem):
        if match.group("label") == label:
            return b64decode("".join(match.group("body").split()))
    msg = f"No PEM block labelled {label!r}"
    raise ValueError(msg)


def canonical_json(payload: Any) -> bytes:
    """
    Compact UTF-8 JSON, matching what the router expects on the wire.

    Raises:
        ValueError: For NaN or infinite floats, which have no JSON form.
        TypeError: For values JSON cannot represent.
    """
    text = json.dumps(payload, separators=(",", ":"), ensure_ascii=False, allow_nan=False)
    return text.encode("utf-8")
