"""Crypto provider registry.

Loads the configured crypto provider by name and returns an
initialised :class:`CryptoProvider` instance.  Supports built-in
providers (``native``, ``openssl``) and custom providers via the
``ext:`` prefix.

Usage::

    from keybridge.crypto.registry import load_crypto_provider

    provider = load_crypto_provider(settings.crypto, key_file_mode=0o600)
    pem = provider.generate_key(path, "rsa", 2048)
"""

from __future__ import annotations

import importlib
import logging
from typing import TYPE_CHECKING

from keybridge.crypto.base import CryptoProvider, CryptoProviderError

if TYPE_CHECKING:
    from keybridge.config.settings import CryptoSettings

log = logging.getLogger(__name__)

# Maps config string -> (module_path, class_name)
_BUILTIN_PROVIDERS: dict[str, tuple[str, str]] = {
    "native": ("keybridge.crypto.native", "NativeCryptoProvider"),
    "openssl": ("keybridge.crypto.openssl", "OpenSSLCryptoProvider"),
}

_REQUIRED_METHODS = ("generate_key", "create_request", "sign_message")


def load_crypto_provider(
    crypto_settings: CryptoSettings,
    *,
    key_file_mode: int = 0o600,
) -> CryptoProvider:
    """Load and return the configured crypto provider.

    Raises
    ------
    CryptoProviderError
        If the provider cannot be loaded.

    """
    name = crypto_settings.provider

    if name in _BUILTIN_PROVIDERS:
        mod_path, cls_name = _BUILTIN_PROVIDERS[name]
        cls = _import_class(mod_path, cls_name, name)
    elif name.startswith("ext:"):
        module_path, _, cls_name = name[4:].rpartition(".")
        if not module_path:
            msg = (
                f"Invalid external crypto provider '{name[4:]}': must be fully "
                "qualified (e.g. 'mypackage.module.ClassName')"
            )
            raise CryptoProviderError(msg)
        cls = _import_class(module_path, cls_name, name)
    else:
        msg = (
            f"Unknown crypto provider '{name}'; "
            f"built-in options: {sorted(_BUILTIN_PROVIDERS)}. "
            f"Use 'ext:mypackage.module.ClassName' for custom providers."
        )
        raise CryptoProviderError(msg)

    _validate_class(cls, name)
    provider = cls(crypto_settings, key_file_mode=key_file_mode)
    log.debug("Loaded crypto provider: %s", name)
    return provider


def _import_class(module_path: str, cls_name: str, label: str) -> type:
    try:
        module = importlib.import_module(module_path)
        return getattr(module, cls_name)
    except (ImportError, AttributeError) as exc:
        msg = f"Failed to load crypto provider '{label}': {exc}"
        raise CryptoProviderError(msg) from exc


def _validate_class(cls: type, label: str) -> None:
    """Verify that a provider class implements the required operations."""
    if not (isinstance(cls, type) and issubclass(cls, CryptoProvider)):
        msg = f"Crypto provider '{label}' is not a subclass of CryptoProvider"
        raise CryptoProviderError(msg)

    for method_name in _REQUIRED_METHODS:
        method = getattr(cls, method_name, None)
        if method is None or getattr(method, "__isabstractmethod__", False):
            msg = f"Crypto provider '{label}' does not implement '{method_name}()'"
            raise CryptoProviderError(msg)
