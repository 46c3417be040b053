"""
AFFILIFY Cryptographic Layer
============================

Random strings, SHA-256, UUIDs and text encryption that work in browser,
edge and full server runtimes.

Architecture:
    1. Environment classifier selects the runtime (browser / edge / node)
    2. Capability providers implement each tier (native, web, fallback)
    3. CryptoFacade walks an ordered fallback ladder per operation

Tiers:
    - native:   os.urandom, hashlib, scrypt + AES-256-GCM
    - web:      Web Crypto semantics, PBKDF2 + AES-256-GCM
    - fallback: ``random`` and XOR; always succeeds, provides no security

WARNING: ciphertexts are only decryptable by the tier that produced them.
"""

from affilify.core.crypto.facade import (
    CryptoFacade,
    decrypt_text,
    encrypt_text,
    generate_random_string,
    generate_uuid,
    get_default_facade,
    reset_default_facade,
    sha256_hash,
)
from affilify.core.crypto.payload import PayloadError, Tier
from affilify.core.crypto.providers import (
    CapabilityProvider,
    NativeProvider,
    ProviderSet,
    UniversalFallback,
    WebCryptoProvider,
)
from affilify.core.crypto.result import CryptoError, DecryptionError, PrimitiveUnavailableError

__all__ = [
    "CryptoFacade",
    "get_default_facade",
    "reset_default_facade",
    "generate_random_string",
    "sha256_hash",
    "generate_uuid",
    "encrypt_text",
    "decrypt_text",
    "CapabilityProvider",
    "NativeProvider",
    "WebCryptoProvider",
    "UniversalFallback",
    "ProviderSet",
    "Tier",
    "PayloadError",
    "CryptoError",
    "DecryptionError",
    "PrimitiveUnavailableError",
]
