"""Pluggable crypto provider system.

Exports the abstract base class, the structured error type, and the
registry loader.
"""

from keybridge.crypto.base import CryptoProvider, CryptoProviderError
from keybridge.crypto.registry import load_crypto_provider

__all__ = [
    "CryptoProvider",
    "CryptoProviderError",
    "load_crypto_provider",
]
