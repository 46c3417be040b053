"""
API Key Generation
==================

Issues the credentials handed to Enterprise customers:

    api key     "aff_" + 64 hex characters (32 random bytes)
    api secret  128 hex characters (64 random bytes), for webhook signing

Keys are shown once at creation; afterwards only the masked form is
displayed and the SHA-256 fingerprint is used for lookups.
"""

from __future__ import annotations

from typing import Optional

from affilify.core.crypto.facade import CryptoFacade, get_default_facade
from affilify.security.constants import (
    API_KEY_PREFIX,
    API_KEY_RANDOM_BYTES,
    API_KEY_VISIBLE_CHARS,
    API_SECRET_RANDOM_BYTES,
)


def generate_api_key(facade: Optional[CryptoFacade] = None) -> str:
    """Generate a new API key with the ``aff_`` prefix."""
    facade = facade or get_default_facade()
    return f"{API_KEY_PREFIX}{facade.generate_random_string(API_KEY_RANDOM_BYTES)}"


def generate_api_secret(facade: Optional[CryptoFacade] = None) -> str:
    """Generate a new API secret for webhook verification."""
    facade = facade or get_default_facade()
    return facade.generate_random_string(API_SECRET_RANDOM_BYTES)


def mask_api_key(api_key: str) -> str:
    """
    Mask an API key for display.

    Returns:
        The first 12 characters followed by "..."
    """
    return f"{api_key[:API_KEY_VISIBLE_CHARS]}..."


def is_api_key(value: str) -> bool:
    """Check whether a string has the shape of an issued API key."""
    return (
        isinstance(value, str)
        and value.startswith(API_KEY_PREFIX)
        and len(value) > len(API_KEY_PREFIX)
        and value[len(API_KEY_PREFIX):].isalnum()
    )


async def fingerprint_api_key(api_key: str, facade: Optional[CryptoFacade] = None) -> str:
    """SHA-256 fingerprint of an API key, used to look keys up without storing them."""
    if not is_api_key(api_key):
        raise ValueError("Not an AFFILIFY API key")
    facade = facade or get_default_facade()
    return await facade.sha256_hash(api_key)
