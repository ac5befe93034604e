"""Per-invocation collaborators handed to every command handler."""

from __future__ import annotations

from typing import TYPE_CHECKING

from keybridge.core.namespace import Namespace
from keybridge.crypto.registry import load_crypto_provider

if TYPE_CHECKING:
    from keybridge.config.settings import BackendSettings
    from keybridge.core.requests import CommandRequest
    from keybridge.crypto.base import CryptoProvider


class HandlerContext:
    """Settings plus the crypto provider for one invocation.

    The provider is loaded on first use, so commands that never touch
    cryptography (Inspect, Attach, Persist, ImportCertificate,
    GetTruststore) run even when the provider is misconfigured.
    Tests inject a provider directly.
    """

    def __init__(
        self,
        settings: BackendSettings,
        provider: CryptoProvider | None = None,
    ) -> None:
        self.settings = settings
        self._provider = provider

    @property
    def provider(self) -> CryptoProvider:
        if self._provider is None:
            self._provider = load_crypto_provider(
                self.settings.crypto,
                key_file_mode=self.settings.keystore.key_file_mode,
            )
        return self._provider

    def namespace(self, request: CommandRequest) -> Namespace:
        """Bind the request's location and mutable flag for resolution."""
        return Namespace(
            location=request.location,
            mutable=request.mutable,
            suffix=self.settings.keystore.staging_suffix,
        )
