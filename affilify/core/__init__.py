"""
Core module - Contains configuration, logging, environment detection and crypto.
"""

from affilify.core.config import AffilifyConfig
from affilify.core.logging import get_secure_logger, SecureLogFilter

__all__ = ["AffilifyConfig", "get_secure_logger", "SecureLogFilter"]
