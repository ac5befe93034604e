"""Abstract base class for crypto providers.

Every command that needs cryptography delegates to a
:class:`CryptoProvider`.  Providers (built-in and custom) must inherit
from it and implement the three operations the keystore commands use:

- :meth:`~CryptoProvider.generate_key` writes a new private key at a
  path and returns its PEM text when the key is exportable.
- :meth:`~CryptoProvider.create_request` builds a PEM PKCS#10 request
  signed by an existing key.
- :meth:`~CryptoProvider.sign_message` produces a PEM CMS (PKCS#7)
  signed message with the content attached.

Providers report failures with :class:`CryptoProviderError`; the
command handlers wrap its text into their own error without parsing it.
"""

from __future__ import annotations

import abc
import contextlib
import logging
import os
import tempfile
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from pathlib import Path

    from keybridge.config.settings import CryptoSettings

log = logging.getLogger(__name__)


class CryptoProviderError(Exception):
    """Raised by crypto providers on any operation failure.

    Parameters
    ----------
    detail:
        Human-readable description of the failure (tool diagnostics,
        library error text).

    """

    def __init__(self, detail: str) -> None:
        self.detail = detail
        super().__init__(detail)


class CryptoProvider(abc.ABC):
    """Base class for all crypto provider implementations.

    Parameters
    ----------
    crypto_settings:
        The ``crypto`` configuration section.
    key_file_mode:
        Permission bits applied to generated private key files.

    """

    def __init__(self, crypto_settings: CryptoSettings, *, key_file_mode: int = 0o600) -> None:
        self._settings = crypto_settings
        self._key_file_mode = key_file_mode

    @abc.abstractmethod
    def generate_key(
        self,
        path: Path,
        key_type: str,
        key_size: int,
        pin: str | None = None,
    ) -> str | None:
        """Generate a private key and store it at *path*.

        Parameters
        ----------
        path:
            Destination file.  Its parent directory already exists.
        key_type:
            Normalized key type (``"rsa"``).
        key_size:
            Modulus size in bits.
        pin:
            Optional passphrase encrypting the stored key.

        Returns
        -------
        str | None
            The PEM text of the stored key, or ``None`` when the key
            cannot be exported.

        Raises
        ------
        CryptoProviderError
            On any generation failure.

        """

    @abc.abstractmethod
    def create_request(
        self,
        key_path: Path,
        subject: list[tuple[str, str]],
        pin: str | None = None,
    ) -> bytes:
        """Build a PKCS#10 request for *subject* signed with the key.

        *subject* is the ordered list of ``(attribute, value)`` RDN
        components.  Returns the PEM-encoded request.

        Raises
        ------
        CryptoProviderError
            On any failure (unreadable key, wrong pin, bad subject).

        """

    @abc.abstractmethod
    def sign_message(
        self,
        key_path: Path,
        cert_path: Path,
        payload: bytes,
        pin: str | None = None,
    ) -> str:
        """Sign *payload* as a CMS message with the content attached.

        Returns the PEM-encoded CMS / PKCS#7 structure.

        Raises
        ------
        CryptoProviderError
            On any signing failure.

        """

    def check_rsa_key_size(self, key_size: int) -> None:
        """Reject modulus sizes outside the configured bounds."""
        low = self._settings.min_rsa_key_size
        high = self._settings.max_rsa_key_size
        if not low <= key_size <= high:
            msg = f"RSA key size {key_size} is outside the allowed range {low}-{high}"
            raise CryptoProviderError(msg)

    def write_key_file(self, path: Path, data: bytes) -> None:
        """Atomically write private key *data* to *path*.

        The key is written to a temporary sibling created with the
        configured mode and renamed over *path*, so a reader never sees
        a partially written key.
        """
        fd, tmp = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.")
        try:
            with os.fdopen(fd, "wb") as fh:
                fh.write(data)
            os.chmod(tmp, self._key_file_mode)
            os.replace(tmp, path)
        except OSError as exc:
            with contextlib.suppress(OSError):
                os.unlink(tmp)
            msg = f"cannot write key file {path}: {exc}"
            raise CryptoProviderError(msg) from exc

