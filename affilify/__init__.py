"""
AFFILIFY Crypto Layer
=====================

Cross-environment crypto utilities for the AFFILIFY application: random
tokens, SHA-256 fingerprints, UUIDs and at-rest text encryption that keep
working in browser, edge and full server runtimes.

Notice:
- No secrets are logged
- Primitive failures fall back to weaker tiers instead of raising
- Fallback tiers are NOT suitable for production secrets
"""

from affilify.core.config import AffilifyConfig
from affilify.core.logging import get_secure_logger
from affilify.core.environment import (
    CURRENT_ENVIRONMENT,
    NOOP,
    EnvironmentInfo,
    detect_environment,
    run_in_environment,
)
from affilify.core.crypto import (
    CryptoFacade,
    decrypt_text,
    encrypt_text,
    generate_random_string,
    generate_uuid,
    sha256_hash,
)

__version__ = "0.1.0"

__all__ = [
    "AffilifyConfig",
    "get_secure_logger",
    "CURRENT_ENVIRONMENT",
    "NOOP",
    "EnvironmentInfo",
    "detect_environment",
    "run_in_environment",
    "CryptoFacade",
    "generate_random_string",
    "sha256_hash",
    "generate_uuid",
    "encrypt_text",
    "decrypt_text",
    "__version__",
]
