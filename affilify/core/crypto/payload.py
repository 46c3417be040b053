"""
Ciphertext Encodings
====================

Each tier produces its own string encoding. They are NOT interchangeable:

    native   base64( JSON {"iv": hex, "encryptedData": hex, "authTag": hex} )
    web      base64( iv(12) || ciphertext || tag(16) )
    fallback base64( latin-1 bytes of text XOR cycling key )
             or base64( UTF-8 bytes ) + "~" when a code point exceeds U+00FF

Optionally a ciphertext carries a tier tag, ``<letter><version>$``, e.g.
``n1$eyJpdiI6...``. ``$`` is outside the base64 alphabet, so tagged and
untagged payloads never collide.
"""

from __future__ import annotations

import base64
import binascii
import json
from enum import Enum
from typing import Final, Optional, Tuple

from affilify.security.constants import (
    TAG_LENGTH_BYTES,
    TIER_TAG_SEPARATOR,
    TIER_TAG_VERSION,
    WEB_IV_LENGTH_BYTES,
)

_TAG_LENGTH: Final[int] = 3  # letter, version digit, separator
# Suffix of XOR payloads whose plaintext needed UTF-8; outside the base64 alphabet
_UTF8_MARKER: Final[str] = "~"


class Tier(str, Enum):
    """Implementation strength; the value is the tag letter."""
    NATIVE = "n"
    WEB = "w"
    FALLBACK = "x"


class PayloadError(ValueError):
    """Encoded ciphertext is malformed."""
    pass


# native: base64 JSON envelope

def encode_native_envelope(iv: bytes, encrypted: bytes, auth_tag: bytes) -> str:
    envelope = json.dumps(
        {"iv": iv.hex(), "encryptedData": encrypted.hex(), "authTag": auth_tag.hex()},
        separators=(",", ":"),
    )
    return base64.b64encode(envelope.encode("utf-8")).decode("ascii")


def decode_native_envelope(payload: str) -> Tuple[bytes, bytes, bytes]:
    """
    Parse a native envelope.

    Returns:
        (iv, encrypted, auth_tag)

    Raises:
        PayloadError: If the payload is not a well-formed envelope
    """
    try:
        envelope = json.loads(base64.b64decode(payload, validate=True).decode("utf-8"))
        return (
            bytes.fromhex(envelope["iv"]),
            bytes.fromhex(envelope["encryptedData"]),
            bytes.fromhex(envelope["authTag"]),
        )
    except (KeyError, TypeError, ValueError) as e:
        raise PayloadError(f"Invalid native envelope: {type(e).__name__}") from e


# web: base64 of iv || ciphertext+tag

def encode_web_payload(iv: bytes, ciphertext: bytes) -> str:
    return base64.b64encode(iv + ciphertext).decode("ascii")


def decode_web_payload(payload: str) -> Tuple[bytes, bytes]:
    """
    Split a web payload into (iv, ciphertext-with-tag).

    Raises:
        PayloadError: If the payload is not base64 or too short
    """
    try:
        raw = base64.b64decode(payload, validate=True)
    except (binascii.Error, ValueError) as e:
        raise PayloadError("Invalid web payload: not base64") from e
    if len(raw) < WEB_IV_LENGTH_BYTES + TAG_LENGTH_BYTES:
        raise PayloadError("Invalid web payload: too short")
    return raw[:WEB_IV_LENGTH_BYTES], raw[WEB_IV_LENGTH_BYTES:]


# fallback: XOR with cycling key

def _xor(text: str, secret_key: str) -> str:
    # An empty key leaves the text unchanged
    if not secret_key:
        return text
    key_length = len(secret_key)
    return "".join(
        chr(ord(char) ^ ord(secret_key[i % key_length]))
        for i, char in enumerate(text)
    )


def xor_encrypt(text: str, secret_key: str) -> str:
    """
    XOR each code point with the cycling key, then base64.

    The XORed string is rendered as latin-1 whenever every code point fits
    in a byte. Otherwise it is UTF-8 encoded and the payload ends with
    ``_UTF8_MARKER``, which base64 output never contains.
    """
    mixed = _xor(text, secret_key)
    try:
        return base64.b64encode(mixed.encode("latin-1")).decode("ascii")
    except UnicodeEncodeError:
        raw = mixed.encode("utf-8", "surrogatepass")
        return base64.b64encode(raw).decode("ascii") + _UTF8_MARKER


def xor_decrypt(payload: str, secret_key: str) -> str:
    """Reverse xor_encrypt. Never raises for any string input."""
    raw = _lenient_b64decode(payload)
    if payload.endswith(_UTF8_MARKER):
        try:
            return _xor(raw.decode("utf-8", "surrogatepass"), secret_key)
        except UnicodeDecodeError:
            pass
    return _xor(raw.decode("latin-1"), secret_key)


def _lenient_b64decode(payload: str) -> bytes:
    # Drop characters outside the alphabet and repair the padding
    cleaned = "".join(c for c in payload if c.isascii() and (c.isalnum() or c in "+/"))
    if len(cleaned) % 4 == 1:
        cleaned = cleaned[:-1]
    return base64.b64decode(cleaned + "=" * (-len(cleaned) % 4))


# tier tag

def tag_payload(tier: Tier, payload: str) -> str:
    return f"{tier.value}{TIER_TAG_VERSION}{TIER_TAG_SEPARATOR}{payload}"


def split_tag(payload: str) -> Tuple[Optional[Tier], str]:
    """
    Separate the tier tag from a payload.

    Returns:
        (tier, body); tier is None for untagged payloads

    Raises:
        PayloadError: If the payload carries a tag with an unknown tier or version
    """
    if len(payload) < _TAG_LENGTH or payload[_TAG_LENGTH - 1] != TIER_TAG_SEPARATOR:
        return None, payload

    letter, version = payload[0], payload[1]
    try:
        tier = Tier(letter)
    except ValueError as e:
        raise PayloadError(f"Unknown tier tag: {letter!r}") from e
    if version != str(TIER_TAG_VERSION):
        raise PayloadError(f"Unsupported tier tag version: {version!r}")
    return tier, payload[_TAG_LENGTH:]
