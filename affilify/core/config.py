"""
Configuration Module
====================

Provides immutable, environment-aware configuration for the crypto layer.

Features:
- Immutable configuration after initialization
- Environment variable override support
- No secrets in default values
- Type-safe configuration access
"""

from __future__ import annotations

import hashlib
import os
from dataclasses import dataclass, fields
from typing import Final, Any, Optional

from affilify.security.constants import DEFAULT_KDF_SALT, DEFAULT_PBKDF2_ITERATIONS


# Keys that must never be sourced from the environment
_SENSITIVE_KEYS: Final[frozenset[str]] = frozenset({
    "password", "secret", "token", "api_key",
    "private", "credential", "auth",
})

_TRUE_VALUES: Final[frozenset[str]] = frozenset({"1", "true", "yes", "on"})


def _is_sensitive_key(key: str) -> bool:
    """Check if a configuration key might contain sensitive data."""
    key_lower = key.lower()
    return any(sensitive in key_lower for sensitive in _SENSITIVE_KEYS)


def _as_bool(value: str) -> bool:
    return value.strip().lower() in _TRUE_VALUES


def _coerce(default: Any, raw: str) -> Any:
    """Convert an environment string to the type of a field default."""
    if isinstance(default, bool):
        return _as_bool(raw)
    if isinstance(default, int):
        return int(raw)
    return raw


@dataclass(frozen=True, slots=True)
class RuntimeConfig:
    """
    Names of the environment variables read by the environment classifier.

    ``runtime_var`` signals a restricted edge runtime when it equals
    ``edge_value``; ``mode_var`` carries the development/production mode.
    """

    runtime_var: str = "NEXT_RUNTIME"
    runtime_override_var: str = "AFFILIFY_RUNTIME"
    edge_value: str = "edge"
    mode_var: str = "NODE_ENV"
    mode_override_var: str = "AFFILIFY_ENV"

    def __post_init__(self) -> None:
        for field_name in ("runtime_var", "mode_var", "edge_value"):
            if not getattr(self, field_name):
                raise ValueError(f"{field_name} cannot be empty")


@dataclass(frozen=True, slots=True)
class CryptoConfig:
    """Immutable crypto configuration."""

    # Web tier key derivation (PBKDF2-HMAC-SHA256)
    pbkdf2_iterations: int = DEFAULT_PBKDF2_ITERATIONS

    # Native tier key derivation (scrypt)
    scrypt_n: int = 2 ** 14
    scrypt_r: int = 8
    scrypt_p: int = 1

    # Fixed salt shared by both KDFs; existing ciphertexts depend on it
    kdf_salt: str = DEFAULT_KDF_SALT

    random_string_length: int = 32

    # Prefix ciphertexts with the producing tier and fail loudly on mismatch
    tag_ciphertext: bool = False

    def __post_init__(self) -> None:
        """Validate crypto settings."""
        if self.pbkdf2_iterations < 1:
            raise ValueError("PBKDF2 iterations must be positive")
        if self.scrypt_n < 2 or self.scrypt_n & (self.scrypt_n - 1):
            raise ValueError("scrypt_n must be a power of two greater than 1")
        if self.scrypt_r < 1 or self.scrypt_p < 1:
            raise ValueError("scrypt_r and scrypt_p must be positive")
        if not self.kdf_salt:
            raise ValueError("KDF salt cannot be empty")
        if self.random_string_length < 1:
            raise ValueError("Default random string length must be positive")

    @property
    def salt_bytes(self) -> bytes:
        return self.kdf_salt.encode("utf-8")


@dataclass(frozen=True, slots=True)
class LoggingConfig:
    """Immutable logging configuration."""

    level: str = "INFO"
    format: str = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
    date_format: str = "%H:%M:%S"
    enable_console: bool = True
    enable_json: bool = False
    # Rotating file output is enabled only when a directory is given
    log_dir: Optional[str] = None
    max_file_size: int = 10 * 1024 * 1024
    backup_count: int = 5

    def __post_init__(self) -> None:
        """Validate logging settings."""
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        if self.level.upper() not in valid_levels:
            raise ValueError(f"Invalid log level: {self.level}")
        if self.max_file_size < 1 or self.backup_count < 0:
            raise ValueError("Invalid log rotation settings")


class AffilifyConfig:
    """
    Centralized, immutable configuration loader with environment override support.

    - Immutable configuration after initialization
    - Environment variable overrides (prefixed with AFFILIFY_)
    - Type-safe access to configuration values

    Usage:
        config = AffilifyConfig.load()
        iterations = config.crypto.pbkdf2_iterations
    """

    __slots__ = ("_runtime", "_crypto", "_logging", "_frozen", "_config_hash")

    _instance: Optional[AffilifyConfig] = None

    def __init__(
        self,
        runtime: Optional[RuntimeConfig] = None,
        crypto: Optional[CryptoConfig] = None,
        logging: Optional[LoggingConfig] = None,
    ) -> None:
        """Initialize configuration. Use AffilifyConfig.load() for standard initialization."""
        object.__setattr__(self, "_frozen", False)
        object.__setattr__(self, "_runtime", runtime or RuntimeConfig())
        object.__setattr__(self, "_crypto", crypto or CryptoConfig())
        object.__setattr__(self, "_logging", logging or LoggingConfig())
        object.__setattr__(self, "_config_hash", self._compute_hash())
        object.__setattr__(self, "_frozen", True)

    def _compute_hash(self) -> str:
        """Compute a hash of the configuration for integrity checking."""
        config_str = f"{self._runtime}|{self._crypto}|{self._logging}"
        return hashlib.sha256(config_str.encode()).hexdigest()[:16]

    @property
    def runtime(self) -> RuntimeConfig:
        return self._runtime

    @property
    def crypto(self) -> CryptoConfig:
        return self._crypto

    @property
    def logging(self) -> LoggingConfig:
        return self._logging

    @property
    def config_hash(self) -> str:
        """Get configuration integrity hash."""
        return self._config_hash

    @classmethod
    def load(cls, env_prefix: str = "AFFILIFY") -> AffilifyConfig:
        """
        Load configuration with environment variable overrides.

        Variables are named ``<PREFIX>_<SECTION>__<FIELD>`` and are coerced
        to the type of the field's default. Unknown fields are ignored.

        Examples:
            AFFILIFY_LOGGING__LEVEL=DEBUG
            AFFILIFY_CRYPTO__PBKDF2_ITERATIONS=200000
            AFFILIFY_CRYPTO__TAG_CIPHERTEXT=true

        Raises:
            ValueError: If an override cannot be coerced or fails validation
        """
        env_overrides = cls._parse_env_overrides(env_prefix)

        sections: dict[str, Any] = {}
        for section, section_cls in _SECTIONS.items():
            kwargs = {
                f.name: _coerce(f.default, env_overrides[f"{section}.{f.name}"])
                for f in fields(section_cls)
                if f"{section}.{f.name}" in env_overrides
            }
            sections[section] = section_cls(**kwargs) if kwargs else None

        return cls(**sections)

    @staticmethod
    def _parse_env_overrides(prefix: str) -> dict[str, str]:
        """Parse environment variables with the given prefix."""
        overrides: dict[str, str] = {}
        prefix_upper = f"{prefix.upper()}_"

        for key, value in os.environ.items():
            if key.startswith(prefix_upper):
                # AFFILIFY_SECTION__KEY -> section.key
                config_key = key[len(prefix_upper):].lower().replace("__", ".")

                if _is_sensitive_key(config_key):
                    continue

                overrides[config_key] = value

        return overrides

    @classmethod
    def get_instance(cls) -> AffilifyConfig:
        """
        Get or create the singleton configuration instance.

        Returns:
            The global AffilifyConfig instance
        """
        if cls._instance is None:
            cls._instance = cls.load()
        return cls._instance

    @classmethod
    def reset_instance(cls) -> None:
        """Reset the singleton instance. Use only for testing."""
        cls._instance = None

    def __repr__(self) -> str:
        return f"AffilifyConfig(hash={self._config_hash})"

    def __setattr__(self, name: str, value: Any) -> None:
        """Prevent modification after initialization."""
        if hasattr(self, "_frozen") and self._frozen:
            raise AttributeError("AffilifyConfig is immutable after initialization")
        super().__setattr__(name, value)


_SECTIONS: Final[dict[str, type]] = {
    "runtime": RuntimeConfig,
    "crypto": CryptoConfig,
    "logging": LoggingConfig,
}
