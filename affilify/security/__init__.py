"""
Security module - API credential helpers and crypto constants.

Import submodules directly (``affilify.security.api_keys``); the crypto
core depends on ``affilify.security.constants``, so this package must not
import the crypto facade at load time.
"""
