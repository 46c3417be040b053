"""
Key Derivation Functions
========================

Derive the 32-byte AES key from a caller-supplied secret string.

Implements:
    - scrypt for the native tier
    - PBKDF2-HMAC-SHA256 for the web tier

Both use a fixed salt (``CryptoConfig.kdf_salt``) so the same secret always
yields the same key. That keeps stored ciphertexts decryptable without
storing a salt, at the cost of enabling precomputation against the secret.
"""

from __future__ import annotations

from typing import Final

from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC
from cryptography.hazmat.primitives.kdf.scrypt import Scrypt

from affilify.security.constants import (
    DEFAULT_KDF_SALT,
    DEFAULT_PBKDF2_ITERATIONS,
    KEY_LENGTH_BYTES,
)

# scrypt parameters (N=16384, r=8, p=1)
SCRYPT_N: Final[int] = 2 ** 14
SCRYPT_R: Final[int] = 8
SCRYPT_P: Final[int] = 1


def derive_key_scrypt(
    secret: str,
    salt: bytes = DEFAULT_KDF_SALT.encode(),
    length: int = KEY_LENGTH_BYTES,
    n: int = SCRYPT_N,
    r: int = SCRYPT_R,
    p: int = SCRYPT_P,
) -> bytes:
    """
    Derive a key from a secret using scrypt.

    Args:
        secret: Caller-supplied secret string (UTF-8 encoded)
        salt: Salt bytes
        length: Output key length
        n: CPU/memory cost
        r: Block size
        p: Parallelism

    Returns:
        Derived key bytes
    """
    kdf = Scrypt(salt=salt, length=length, n=n, r=r, p=p)
    return kdf.derive(secret.encode("utf-8"))


def derive_key_pbkdf2(
    secret: str,
    salt: bytes = DEFAULT_KDF_SALT.encode(),
    length: int = KEY_LENGTH_BYTES,
    iterations: int = DEFAULT_PBKDF2_ITERATIONS,
) -> bytes:
    """
    Derive a key from a secret using PBKDF2-HMAC-SHA256.

    Args:
        secret: Caller-supplied secret string (UTF-8 encoded)
        salt: Salt bytes
        length: Output key length
        iterations: PBKDF2 iteration count

    Returns:
        Derived key bytes
    """
    kdf = PBKDF2HMAC(
        algorithm=hashes.SHA256(),
        length=length,
        salt=salt,
        iterations=iterations,
    )
    return kdf.derive(secret.encode("utf-8"))
