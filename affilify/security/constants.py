"""
Crypto Constants
================

Algorithm parameters and wire-format constants shared by the crypto layer.
Existing ciphertexts depend on these values; changing any of them breaks
decryption of stored data.
"""

from typing import Final

# Encryption (AES-256-GCM)
KEY_LENGTH_BYTES: Final[int] = 32  # 256 bits
NATIVE_IV_LENGTH_BYTES: Final[int] = 16
WEB_IV_LENGTH_BYTES: Final[int] = 12  # 96 bits, the Web Crypto default for GCM
TAG_LENGTH_BYTES: Final[int] = 16  # 128 bits

# Key derivation
DEFAULT_KDF_SALT: Final[str] = "salt"
DEFAULT_PBKDF2_ITERATIONS: Final[int] = 100_000

# Weak-tier random strings
FALLBACK_ALPHABET: Final[str] = (
    "ABCDEFGHIJKLMNOPQRSTUVWXYZ"
    "abcdefghijklmnopqrstuvwxyz"
    "0123456789"
)

# UUID v4
UUID_TEMPLATE: Final[str] = "xxxxxxxx-xxxx-4xxx-yxxx-xxxxxxxxxxxx"

# Optional tier tag prefixed to ciphertexts: "<letter><version>$"
TIER_TAG_VERSION: Final[int] = 1
TIER_TAG_SEPARATOR: Final[str] = "$"

# API keys
API_KEY_PREFIX: Final[str] = "aff_"
API_KEY_RANDOM_BYTES: Final[int] = 32
API_SECRET_RANDOM_BYTES: Final[int] = 64
API_KEY_VISIBLE_CHARS: Final[int] = 12
