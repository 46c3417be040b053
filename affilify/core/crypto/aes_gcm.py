"""
AES-256-GCM Authenticated Encryption
====================================

Thin wrapper over ``cryptography``'s AESGCM used by the native and web tiers.

The two tiers differ only in IV length (16 bytes native, 12 bytes web).
The 128-bit authentication tag is appended to the ciphertext by AESGCM;
``AesGcmResult.tag`` and ``join_tag`` convert to and from the detached form used by
the native envelope.

WARNING:
    - Never reuse (key, nonce) pairs
    - Always verify tag before using plaintext
"""

from __future__ import annotations

import secrets
from dataclasses import dataclass
from typing import Final, Optional

from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from affilify.security.constants import KEY_LENGTH_BYTES, TAG_LENGTH_BYTES

AES_KEY_SIZE: Final[int] = KEY_LENGTH_BYTES
AES_TAG_SIZE: Final[int] = TAG_LENGTH_BYTES


@dataclass(frozen=True, slots=True)
class AesGcmResult:
    """
    Immutable result of AES-GCM encryption.

    Attributes:
        ciphertext: Encrypted data with appended authentication tag
        nonce: Nonce used for this encryption (stored with ciphertext)
    """

    ciphertext: bytes
    nonce: bytes

    @property
    def tag(self) -> bytes:
        return self.ciphertext[-AES_TAG_SIZE:]

    @property
    def body(self) -> bytes:
        return self.ciphertext[:-AES_TAG_SIZE]

    def __repr__(self) -> str:
        return f"AesGcmResult(ciphertext_len={len(self.ciphertext)}, nonce_len={len(self.nonce)})"


class AesGcmCipher:
    """
    AES-256-GCM with a caller-supplied key and a fresh random nonce.

    Usage:
        cipher = AesGcmCipher(nonce_size=12)
        result = cipher.encrypt(b"text", key)
        plaintext = cipher.decrypt(result.ciphertext, result.nonce, key)
    """

    __slots__ = ("_nonce_size",)

    def __init__(self, nonce_size: int = 12) -> None:
        if nonce_size < 12:
            raise ValueError("Nonce must be at least 12 bytes")
        self._nonce_size = nonce_size

    @property
    def nonce_size(self) -> int:
        return self._nonce_size

    def generate_nonce(self) -> bytes:
        """Generate a cryptographically secure random nonce."""
        return secrets.token_bytes(self._nonce_size)

    def encrypt(
        self,
        plaintext: bytes,
        key: bytes,
        nonce: Optional[bytes] = None,
        aad: Optional[bytes] = None,
    ) -> AesGcmResult:
        """
        Encrypt plaintext using AES-256-GCM.

        Args:
            plaintext: Data to encrypt (can be empty)
            key: 32-byte key
            nonce: Nonce to use; a fresh random one when omitted
            aad: Additional Authenticated Data

        Raises:
            ValueError: If key or nonce has the wrong size
        """
        if len(key) != AES_KEY_SIZE:
            raise ValueError(f"Key must be exactly {AES_KEY_SIZE} bytes")
        if nonce is None:
            nonce = self.generate_nonce()
        elif len(nonce) != self._nonce_size:
            raise ValueError(f"Nonce must be exactly {self._nonce_size} bytes")

        ciphertext = AESGCM(key).encrypt(nonce, plaintext, aad)

        return AesGcmResult(ciphertext=ciphertext, nonce=nonce)

    def decrypt(
        self,
        ciphertext: bytes,
        nonce: bytes,
        key: bytes,
        aad: Optional[bytes] = None,
    ) -> bytes:
        """
        Decrypt ciphertext using AES-256-GCM with integrity verification.

        Raises:
            ValueError: If parameters are invalid
            cryptography.exceptions.InvalidTag: If authentication fails
        """
        if len(key) != AES_KEY_SIZE:
            raise ValueError(f"Key must be exactly {AES_KEY_SIZE} bytes")
        if len(nonce) != self._nonce_size:
            raise ValueError(f"Nonce must be exactly {self._nonce_size} bytes")
        if len(ciphertext) < AES_TAG_SIZE:
            raise ValueError("Ciphertext too short (missing authentication tag)")

        return AESGCM(key).decrypt(nonce, ciphertext, aad)

    @staticmethod
    def join_tag(body: bytes, tag: bytes) -> bytes:
        """Rebuild AESGCM input from a detached tag."""
        if len(tag) != AES_TAG_SIZE:
            raise ValueError(f"Tag must be exactly {AES_TAG_SIZE} bytes")
        return body + tag

