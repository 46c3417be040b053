"""
Secure Logging Module
=====================

Provides logging with secret filtering for the crypto layer.

Features:
- Redaction of credentials, key material and ciphertexts
- Optional structured (JSON) output
- Rotating log files with size limits
- No key material, plaintext or ciphertext in log lines
"""

from __future__ import annotations

import json
import logging
import re
import sys
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any, Final, Iterable, Mapping, Optional, Pattern


_REDACTED: Final[str] = "[REDACTED]"

# Applied in order; each entry is (pattern, replacement)
_REDACTIONS: Final[tuple[tuple[Pattern[str], str], ...]] = (
    # key=value style credentials keep their name
    (re.compile(
        r'(?i)\b(password|passwd|pwd|secret(?:[_-]?key)?|private[_-]?key|api[_-]?key|token|bearer)'
        r'(\s*[=:]\s*)["\']?[^\s"\',]+["\']?'
    ), r"\1\2" + _REDACTED),
    # Fields of a decoded native envelope
    (re.compile(r'"(iv|encryptedData|authTag)"\s*:\s*"[^"]*"'), r'"\1": "' + _REDACTED + '"'),
    # Tier-tagged ciphertexts
    (re.compile(r'\b[nwx]1\$[A-Za-z0-9+/]+={0,2}'), _REDACTED),
    # Issued API keys (hex on strong tiers, alphanumeric on the weak one)
    (re.compile(r'\baff_[A-Za-z0-9]{8,}'), "aff_" + _REDACTED),
    # Bare base64 payloads and hex key material
    (re.compile(r'[A-Za-z0-9+/]{40,}={0,2}'), _REDACTED),
    (re.compile(r'\b(?:0x)?[0-9a-fA-F]{32,}\b'), _REDACTED),
)


def redact(text: str, extra_patterns: Iterable[Pattern[str]] = ()) -> str:
    """Replace credentials, key material and ciphertexts in ``text``."""
    for pattern, replacement in _REDACTIONS:
        text = pattern.sub(replacement, text)
    for pattern in extra_patterns:
        text = pattern.sub(_REDACTED, text)
    return text


class SecureLogFilter(logging.Filter):
    """
    Redacts key material, ciphertexts and credentials from log records.

    Records are never dropped; the message and any string arguments are
    rewritten in place before formatting.
    """

    def __init__(self, name: str = "", extra_patterns: Iterable[Pattern[str]] = ()) -> None:
        super().__init__(name)
        self._extra_patterns = tuple(extra_patterns)

    def filter(self, record: logging.LogRecord) -> bool:
        if isinstance(record.msg, str):
            record.msg = redact(record.msg, self._extra_patterns)

        if isinstance(record.args, Mapping):
            record.args = {key: self._scrub(value) for key, value in record.args.items()}
        elif isinstance(record.args, tuple):
            record.args = tuple(self._scrub(arg) for arg in record.args)

        return True

    def _scrub(self, value: Any) -> Any:
        return redact(value, self._extra_patterns) if isinstance(value, str) else value


class StructuredLogFormatter(logging.Formatter):
    """One JSON object per record, including the fallback-ladder fields when set."""

    LADDER_FIELDS: Final[tuple[str, ...]] = ("operation", "provider")

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "location": f"{record.module}.{record.funcName}:{record.lineno}",
        }
        entry.update(
            (field, getattr(record, field))
            for field in self.LADDER_FIELDS
            if hasattr(record, field)
        )
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(entry, default=str)


class SecureRotatingFileHandler(RotatingFileHandler):
    """
    Rotating file handler that creates its directory and refuses
    traversal sequences in the log path.
    """

    def __init__(
        self,
        filename: str | Path,
        mode: str = "a",
        maxBytes: int = 10 * 1024 * 1024,
        backupCount: int = 5,
        encoding: str = "utf-8",
    ) -> None:
        if ".." in Path(filename).parts:
            raise ValueError("Log path cannot contain path traversal sequences")

        log_path = Path(filename).resolve()
        log_path.parent.mkdir(parents=True, exist_ok=True)

        super().__init__(
            str(log_path),
            mode=mode,
            maxBytes=maxBytes,
            backupCount=backupCount,
            encoding=encoding,
        )


def get_secure_logger(
    name: str,
    level: Optional[str] = None,
    enable_console: Optional[bool] = None,
    enable_json: Optional[bool] = None,
    log_dir: Optional[Path] = None,
) -> logging.Logger:
    """
    Create a logger with automatic secret filtering.

    Unspecified options are taken from ``AffilifyConfig.get_instance().logging``.

    Args:
        name: Logger name (typically __name__)
        level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        enable_console: Whether to output to stderr
        enable_json: Whether to use JSON format
        log_dir: Directory for rotating log files (none: no file output)

    Returns:
        Configured logger instance
    """
    logger = logging.getLogger(name)

    # Avoid adding handlers multiple times
    if logger.handlers:
        return logger

    from affilify.core.config import AffilifyConfig

    settings = AffilifyConfig.get_instance().logging
    level = level or settings.level
    enable_console = settings.enable_console if enable_console is None else enable_console
    enable_json = settings.enable_json if enable_json is None else enable_json
    if log_dir is None and settings.log_dir:
        log_dir = Path(settings.log_dir)

    logger.setLevel(getattr(logging, level.upper()))

    secure_filter = SecureLogFilter()
    # Records are sanitized before reaching any handler, propagated ones included
    logger.addFilter(secure_filter)

    if enable_console:
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setLevel(logging.DEBUG)
        if enable_json:
            console_handler.setFormatter(StructuredLogFormatter())
        else:
            console_handler.setFormatter(logging.Formatter(settings.format, datefmt=settings.date_format))
        console_handler.addFilter(secure_filter)
        logger.addHandler(console_handler)

    if log_dir is not None:
        file_handler = SecureRotatingFileHandler(
            filename=Path(log_dir) / f"{name.replace('.', '_')}.log",
            maxBytes=settings.max_file_size,
            backupCount=settings.backup_count,
        )
        file_handler.setLevel(logging.DEBUG)
        if enable_json:
            file_handler.setFormatter(StructuredLogFormatter())
        else:
            file_handler.setFormatter(logging.Formatter(
                "%(asctime)s | %(levelname)-8s | %(name)s | %(funcName)s:%(lineno)d | %(message)s",
                datefmt="%Y-%m-%d %H:%M:%S",
            ))
        file_handler.addFilter(secure_filter)
        logger.addHandler(file_handler)

    if not logger.handlers:
        logger.addHandler(logging.NullHandler())

    return logger
