"""
Crypto Facade
=============

Single entry point for random strings, SHA-256, UUIDs and text encryption
that works in browser, edge and full server runtimes.

Every operation walks a provider ladder (see providers.py): the strongest
primitive available in the runtime first, then weaker ones, ending on the
universal fallback where one exists. Primitive failures never reach the
caller.

Ciphertext tiers are not interchangeable. With ``CryptoConfig.tag_ciphertext``
enabled, ciphertexts carry their tier and decrypting one with the wrong key
or in a runtime without its tier raises DecryptionError instead of returning
XOR garbage.
"""

from __future__ import annotations

import functools
import logging
import threading
from typing import List, Optional

from affilify.core.config import AffilifyConfig, CryptoConfig
from affilify.core.crypto.payload import PayloadError, Tier, split_tag, tag_payload
from affilify.core.crypto.providers import CapabilityProvider, Operation, ProviderSet
from affilify.core.crypto.result import (
    CryptoError,
    DecryptionError,
    Step,
    run_ladder,
    run_ladder_async,
)
from affilify.core.environment import CURRENT_ENVIRONMENT, EnvironmentInfo
from affilify.core.logging import get_secure_logger


def _require_str(name: str, value: object) -> None:
    if not isinstance(value, str):
        raise TypeError(f"{name} must be a string, got {type(value).__name__}")


def _random_hex(provider: CapabilityProvider, length: int) -> str:
    return provider.secure_random_bytes(length).hex()


class CryptoFacade:
    """
    Environment-aware crypto operations.

    Usage:
        facade = CryptoFacade(detect_environment())
        token = facade.generate_random_string(16)
        digest = await facade.sha256_hash("affilify")
        sealed = await facade.encrypt_text("payload", secret)
        assert await facade.decrypt_text(sealed, secret) == "payload"

    Args:
        environment: Runtime facts, computed once at startup
        config: Crypto configuration (defaults to the global configuration)
        providers: Provider implementations (defaults built from config)
        logger: Logger for fallback events
    """

    __slots__ = ("_environment", "_config", "_providers", "_logger")

    def __init__(
        self,
        environment: Optional[EnvironmentInfo] = None,
        config: Optional[CryptoConfig] = None,
        providers: Optional[ProviderSet] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self._environment = environment or CURRENT_ENVIRONMENT
        self._config = config or AffilifyConfig.get_instance().crypto
        self._providers = providers or ProviderSet.from_config(self._config)
        self._logger = logger or get_secure_logger(__name__)

    @property
    def environment(self) -> EnvironmentInfo:
        return self._environment

    @property
    def config(self) -> CryptoConfig:
        return self._config

    def _ladder(self, operation: Operation) -> tuple[List[CapabilityProvider], bool]:
        return self._providers.ladder(operation, self._environment.runtime)

    # random strings

    def generate_random_string(self, length: Optional[int] = None) -> str:
        """
        Generate a random string.

        Strong tiers return ``2 * length`` lowercase hex characters. The
        universal fallback returns ``2 * length`` characters from
        [A-Za-z0-9].

        Raises:
            TypeError, ValueError: If length is not a positive integer
        """
        if length is None:
            length = self._config.random_string_length
        if isinstance(length, bool) or not isinstance(length, int):
            raise TypeError("length must be an integer")
        if length < 1:
            raise ValueError("length must be positive")

        providers, with_fallback = self._ladder(Operation.RANDOM_STRING)
        steps = [Step(p.name, functools.partial(_random_hex, p, length)) for p in providers]
        if with_fallback:
            fallback = self._providers.fallback
            steps.append(Step(fallback.name, functools.partial(fallback.random_string, length)))

        return run_ladder(Operation.RANDOM_STRING.value, steps, self._logger).unwrap()

    # hashing

    async def sha256_hash(self, message: str) -> str:
        """
        SHA-256 of the UTF-8 encoded message as 64 lowercase hex characters.

        Raises:
            TypeError: If message is not a string
            CryptoError: If every digest API path failed
        """
        _require_str("message", message)
        data = message.encode("utf-8")

        providers, _ = self._ladder(Operation.SHA256)
        steps = [Step(p.name, functools.partial(p.digest_sha256, data)) for p in providers]

        result = await run_ladder_async(Operation.SHA256.value, steps, self._logger)
        if not result.ok:
            raise CryptoError("SHA-256 is unavailable in this runtime") from result.error
        return result.value

    # UUIDs

    def generate_uuid(self) -> str:
        """Generate a v4 UUID string."""
        providers, with_fallback = self._ladder(Operation.UUID)
        steps = [Step(p.name, p.native_uuid) for p in providers]
        if with_fallback:
            fallback = self._providers.fallback
            steps.append(Step(fallback.name, fallback.synthesize_uuid))

        return run_ladder(Operation.UUID.value, steps, self._logger).unwrap()

    # encryption

    def _encrypt_steps(self, text: str, secret_key: str) -> List[Step[str]]:
        providers, with_fallback = self._ladder(Operation.ENCRYPT)
        steps = [Step(p.name, functools.partial(p.encrypt_aead, text, secret_key)) for p in providers]
        if with_fallback:
            fallback = self._providers.fallback
            steps.append(Step(fallback.name, functools.partial(fallback.encrypt, text, secret_key)))
        return steps

    def _decrypt_steps(self, payload: str, secret_key: str) -> List[Step[str]]:
        providers, with_fallback = self._ladder(Operation.ENCRYPT)
        steps = [Step(p.name, functools.partial(p.decrypt_aead, payload, secret_key)) for p in providers]
        if with_fallback:
            fallback = self._providers.fallback
            steps.append(Step(fallback.name, functools.partial(fallback.decrypt, payload, secret_key)))
        return steps

    async def encrypt_text(self, text: str, secret_key: str) -> str:
        """
        Encrypt text with the strongest tier available in this runtime.

        The output encoding depends on the tier (see payload.py); decrypt it
        in a runtime that uses the same tier.
        """
        _require_str("text", text)
        _require_str("secret_key", secret_key)

        steps = self._encrypt_steps(text, secret_key)
        result = await run_ladder_async(Operation.ENCRYPT.value, steps, self._logger)
        ciphertext = result.unwrap()
        if self._config.tag_ciphertext:
            return tag_payload(self._providers.tier_of(result.provider), ciphertext)
        return ciphertext

    async def decrypt_text(self, encrypted_text: str, secret_key: str) -> str:
        """
        Decrypt text produced by encrypt_text in the same tier.

        Untagged payloads whose strong decrypt fails (wrong key, tampering,
        another tier's encoding) fall through to the XOR fallback and come
        back as garbage rather than an error.

        Raises:
            DecryptionError: Tagged payloads only, when the tier is not
                available here, the tag is malformed or authentication fails
        """
        _require_str("encrypted_text", encrypted_text)
        _require_str("secret_key", secret_key)

        if self._config.tag_ciphertext:
            try:
                tier, body = split_tag(encrypted_text)
            except PayloadError as e:
                raise DecryptionError(str(e)) from e
            if tier is not None:
                return await self._decrypt_tagged(tier, body, secret_key)

        steps = self._decrypt_steps(encrypted_text, secret_key)
        result = await run_ladder_async("decrypt_text", steps, self._logger)
        return result.unwrap()

    async def _decrypt_tagged(self, tier: Tier, body: str, secret_key: str) -> str:
        fallback = self._providers.fallback
        if tier is Tier.FALLBACK:
            return fallback.decrypt(body, secret_key)

        providers, _ = self._ladder(Operation.ENCRYPT)
        matching = [p for p in providers if p.tier is tier]
        if not matching:
            raise DecryptionError(
                f"Ciphertext from the {tier.name.lower()} tier cannot be decrypted "
                f"in the {self._environment.runtime.name.lower()} runtime"
            )

        steps = [Step(p.name, functools.partial(p.decrypt_aead, body, secret_key)) for p in matching]
        result = await run_ladder_async("decrypt_text", steps, self._logger)
        if not result.ok:
            raise DecryptionError(
                f"Decryption failed for {tier.name.lower()} tier ciphertext"
            ) from result.error
        return result.value


_default_facade: Optional[CryptoFacade] = None
_default_lock = threading.Lock()


def get_default_facade() -> CryptoFacade:
    """Get or create the process-wide facade for the current environment."""
    global _default_facade
    if _default_facade is None:
        with _default_lock:
            if _default_facade is None:
                _default_facade = CryptoFacade(CURRENT_ENVIRONMENT)
    return _default_facade


def reset_default_facade() -> None:
    """Drop the process-wide facade. Use only for testing."""
    global _default_facade
    with _default_lock:
        _default_facade = None


def generate_random_string(length: Optional[int] = None) -> str:
    return get_default_facade().generate_random_string(length)


async def sha256_hash(message: str) -> str:
    return await get_default_facade().sha256_hash(message)


def generate_uuid() -> str:
    return get_default_facade().generate_uuid()


async def encrypt_text(text: str, secret_key: str) -> str:
    return await get_default_facade().encrypt_text(text, secret_key)


async def decrypt_text(encrypted_text: str, secret_key: str) -> str:
    return await get_default_facade().decrypt_text(encrypted_text, secret_key)
