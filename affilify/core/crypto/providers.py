"""
Capability Providers
====================

One provider per implementation tier, chosen per runtime instead of
branching inside every crypto function:

    NativeProvider      full server runtime (os.urandom, hashlib, scrypt)
    WebCryptoProvider   Web Crypto semantics (PBKDF2, 12-byte IV, raw concat)
    UniversalFallback   pure arithmetic on ``random``; cannot fail

The strong providers share the ``CapabilityProvider`` protocol. The
fallback deliberately does not: its operations are weaker substitutes with
different output shapes, not alternative implementations of the same
primitive.
"""

from __future__ import annotations

import hashlib
import os
import random
import secrets
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Final, List, Optional, Protocol, Tuple, runtime_checkable

from affilify.core.config import CryptoConfig
from affilify.core.crypto.aes_gcm import AesGcmCipher
from affilify.core.crypto.kdf import derive_key_pbkdf2, derive_key_scrypt
from affilify.core.crypto.payload import (
    Tier,
    decode_native_envelope,
    decode_web_payload,
    encode_native_envelope,
    encode_web_payload,
    xor_decrypt,
    xor_encrypt,
)
from affilify.core.crypto.result import PrimitiveUnavailableError
from affilify.core.environment import RuntimeEnvironment
from affilify.security.constants import (
    FALLBACK_ALPHABET,
    NATIVE_IV_LENGTH_BYTES,
    UUID_TEMPLATE,
    WEB_IV_LENGTH_BYTES,
)


@runtime_checkable
class CapabilityProvider(Protocol):
    """Strong crypto primitives available in a runtime."""

    name: str
    tier: Tier

    def secure_random_bytes(self, n: int) -> bytes: ...

    def digest_sha256(self, data: bytes) -> str: ...

    def encrypt_aead(self, text: str, secret_key: str) -> str: ...

    def decrypt_aead(self, payload: str, secret_key: str) -> str: ...

    def native_uuid(self) -> str: ...


class NativeProvider:
    """
    Full server runtime.

    Encryption: scrypt-derived key, 16-byte IV, AES-256-GCM, output is the
    base64 JSON envelope ``{"iv", "encryptedData", "authTag"}``.
    """

    name = "native"
    tier = Tier.NATIVE

    def __init__(self, config: Optional[CryptoConfig] = None) -> None:
        self._config = config or CryptoConfig()
        self._cipher = AesGcmCipher(nonce_size=NATIVE_IV_LENGTH_BYTES)

    def secure_random_bytes(self, n: int) -> bytes:
        return os.urandom(n)

    def digest_sha256(self, data: bytes) -> str:
        return hashlib.sha256(data).hexdigest()

    def native_uuid(self) -> str:
        return str(uuid.uuid4())

    def _derive_key(self, secret_key: str) -> bytes:
        return derive_key_scrypt(
            secret_key,
            salt=self._config.salt_bytes,
            n=self._config.scrypt_n,
            r=self._config.scrypt_r,
            p=self._config.scrypt_p,
        )

    def encrypt_aead(self, text: str, secret_key: str) -> str:
        key = self._derive_key(secret_key)
        iv = self.secure_random_bytes(NATIVE_IV_LENGTH_BYTES)
        result = self._cipher.encrypt(text.encode("utf-8"), key, nonce=iv)
        return encode_native_envelope(result.nonce, result.body, result.tag)

    def decrypt_aead(self, payload: str, secret_key: str) -> str:
        iv, encrypted, auth_tag = decode_native_envelope(payload)
        key = self._derive_key(secret_key)
        plaintext = self._cipher.decrypt(AesGcmCipher.join_tag(encrypted, auth_tag), iv, key)
        return plaintext.decode("utf-8")


class WebCryptoProvider:
    """
    Web Crypto semantics, used in browsers and edge runtimes.

    Encryption: PBKDF2-HMAC-SHA256 key, 12-byte IV, AES-256-GCM, output is
    base64 of ``iv || ciphertext || tag``.

    Args:
        config: Crypto configuration
        has_random_uuid: Whether the runtime exposes ``crypto.randomUUID``
    """

    name = "web"
    tier = Tier.WEB

    def __init__(self, config: Optional[CryptoConfig] = None, has_random_uuid: bool = True) -> None:
        self._config = config or CryptoConfig()
        self._cipher = AesGcmCipher(nonce_size=WEB_IV_LENGTH_BYTES)
        self._has_random_uuid = has_random_uuid

    def secure_random_bytes(self, n: int) -> bytes:
        return secrets.token_bytes(n)

    def digest_sha256(self, data: bytes) -> str:
        digest = hashlib.sha256(data).digest()
        return "".join(f"{byte:02x}" for byte in digest)

    def native_uuid(self) -> str:
        if not self._has_random_uuid:
            raise PrimitiveUnavailableError("crypto.randomUUID is not available")
        return str(uuid.uuid4())

    def _derive_key(self, secret_key: str) -> bytes:
        return derive_key_pbkdf2(
            secret_key,
            salt=self._config.salt_bytes,
            iterations=self._config.pbkdf2_iterations,
        )

    def encrypt_aead(self, text: str, secret_key: str) -> str:
        key = self._derive_key(secret_key)
        result = self._cipher.encrypt(text.encode("utf-8"), key)
        return encode_web_payload(result.nonce, result.ciphertext)

    def decrypt_aead(self, payload: str, secret_key: str) -> str:
        iv, ciphertext = decode_web_payload(payload)
        key = self._derive_key(secret_key)
        return self._cipher.decrypt(ciphertext, iv, key).decode("utf-8")


class UniversalFallback:
    """
    Weakest tier: no external dependencies, never raises.

    Uses the non-cryptographic ``random`` module. Random strings are
    ``2 * length`` characters from a 62-symbol alphabet (unlike the hex
    output of the strong tiers); encryption is an unauthenticated XOR.
    """

    name = "fallback"
    tier = Tier.FALLBACK

    def __init__(self, rng: Optional[random.Random] = None) -> None:
        self._rng = rng or random.Random()

    def random_string(self, length: int) -> str:
        return "".join(self._rng.choice(FALLBACK_ALPHABET) for _ in range(length * 2))

    def synthesize_uuid(self) -> str:
        def _digit(placeholder: str) -> str:
            r = self._rng.randrange(16)
            # Variant bits 10xx for the "y" position
            value = r if placeholder == "x" else (r & 0x3) | 0x8
            return format(value, "x")

        return "".join(
            _digit(c) if c in "xy" else c
            for c in UUID_TEMPLATE
        )

    def encrypt(self, text: str, secret_key: str) -> str:
        return xor_encrypt(text, secret_key)

    def decrypt(self, payload: str, secret_key: str) -> str:
        return xor_decrypt(payload, secret_key)


class Operation(str, Enum):
    """Crypto operations with their own provider ladders."""
    RANDOM_STRING = "generate_random_string"
    SHA256 = "sha256_hash"
    UUID = "generate_uuid"
    ENCRYPT = "encrypt_text"


# Strong tiers tried per (operation, runtime), and whether the universal
# fallback closes the ladder.
_LADDERS: Final[Dict[Tuple[Operation, RuntimeEnvironment], Tuple[Tuple[Tier, ...], bool]]] = {
    (Operation.RANDOM_STRING, RuntimeEnvironment.BROWSER): ((Tier.WEB,), True),
    (Operation.RANDOM_STRING, RuntimeEnvironment.NODE): ((Tier.NATIVE,), True),
    (Operation.RANDOM_STRING, RuntimeEnvironment.EDGE): ((), True),

    # SHA-256 has no weaker substitute, only alternate API paths
    (Operation.SHA256, RuntimeEnvironment.BROWSER): ((Tier.WEB,), False),
    (Operation.SHA256, RuntimeEnvironment.NODE): ((Tier.NATIVE, Tier.WEB), False),
    (Operation.SHA256, RuntimeEnvironment.EDGE): ((Tier.WEB,), False),

    (Operation.UUID, RuntimeEnvironment.BROWSER): ((Tier.WEB,), True),
    (Operation.UUID, RuntimeEnvironment.NODE): ((Tier.NATIVE, Tier.WEB), True),
    (Operation.UUID, RuntimeEnvironment.EDGE): ((Tier.WEB,), True),

    (Operation.ENCRYPT, RuntimeEnvironment.BROWSER): ((Tier.WEB,), True),
    (Operation.ENCRYPT, RuntimeEnvironment.NODE): ((Tier.NATIVE,), True),
    (Operation.ENCRYPT, RuntimeEnvironment.EDGE): ((Tier.WEB,), True),
}


@dataclass
class ProviderSet:
    """
    The providers injected into a CryptoFacade.

    Replace any member to simulate a runtime or a failing primitive.
    """

    native: CapabilityProvider = field(default_factory=NativeProvider)
    web: CapabilityProvider = field(default_factory=WebCryptoProvider)
    fallback: UniversalFallback = field(default_factory=UniversalFallback)

    @classmethod
    def from_config(cls, config: CryptoConfig) -> ProviderSet:
        return cls(native=NativeProvider(config), web=WebCryptoProvider(config))

    def by_tier(self, tier: Tier) -> CapabilityProvider:
        if tier is Tier.NATIVE:
            return self.native
        if tier is Tier.WEB:
            return self.web
        raise PrimitiveUnavailableError(f"No strong provider for tier {tier.name}")

    def ladder(self, operation: Operation, runtime: RuntimeEnvironment) -> Tuple[List[CapabilityProvider], bool]:
        """
        Ordered strong providers for an operation in a runtime.

        Returns:
            (providers, ends_with_fallback)
        """
        tiers, ends_with_fallback = _LADDERS[(operation, runtime)]
        return [self.by_tier(tier) for tier in tiers], ends_with_fallback

    def tier_of(self, provider_name: str) -> Tier:
        """Tier of the provider registered under ``provider_name``."""
        for provider in (self.native, self.web, self.fallback):
            if provider.name == provider_name:
                return provider.tier
        raise KeyError(f"Unknown provider: {provider_name}")
