"""OpenSSL crypto provider -- drives the ``openssl`` command-line tool.

Each operation runs one ``openssl`` subcommand:

- key generation: ``openssl genpkey -algorithm RSA``
- certificate requests: ``openssl req -new -subj /CN=.../O=...``
- CMS signing: ``openssl cms -sign -binary -nodetach``

A key passphrase is never placed on the command line; it is passed
through the child's environment (``-pass env:`` / ``-passin env:``).
Tool diagnostics from stderr are wrapped into
:class:`CryptoProviderError` verbatim.
"""

from __future__ import annotations

import contextlib
import logging
import os
import subprocess
import tempfile
from typing import TYPE_CHECKING

from keybridge.crypto.base import CryptoProvider, CryptoProviderError
from keybridge.crypto.subject import subject_to_openssl

if TYPE_CHECKING:
    from pathlib import Path

log = logging.getLogger(__name__)

_PIN_ENV_VAR = "KEYBRIDGE_KEY_PIN"


class OpenSSLCryptoProvider(CryptoProvider):
    """Crypto provider backed by the ``openssl`` binary."""

    def _run(
        self,
        args: list[str],
        *,
        pin: str | None = None,
        stdin: bytes | None = None,
    ) -> bytes:
        """Run ``openssl <args>`` and return its stdout.

        Raises :class:`CryptoProviderError` when the binary is missing,
        times out, or exits non-zero.
        """
        cmd = [self._settings.openssl_binary, *args]
        env = None
        if pin:
            env = dict(os.environ)
            env[_PIN_ENV_VAR] = pin

        log.debug("Running %s", " ".join(cmd))
        try:
            proc = subprocess.run(  # noqa: S603
                cmd,
                input=stdin,
                capture_output=True,
                timeout=self._settings.timeout_seconds,
                env=env,
                check=False,
            )
        except FileNotFoundError as exc:
            msg = f"openssl binary not found: {self._settings.openssl_binary}"
            raise CryptoProviderError(msg) from exc
        except subprocess.TimeoutExpired as exc:
            msg = f"openssl {args[0]} timed out after {self._settings.timeout_seconds}s"
            raise CryptoProviderError(msg) from exc

        if proc.returncode != 0:
            diagnostics = proc.stderr.decode("utf-8", errors="replace").strip()
            msg = f"openssl {args[0]} failed (exit {proc.returncode}): {diagnostics}"
            raise CryptoProviderError(msg)
        return proc.stdout

    @staticmethod
    def _passin(pin: str | None) -> list[str]:
        return ["-passin", f"env:{_PIN_ENV_VAR}"] if pin else []

    # -- keys ---------------------------------------------------------------

    def generate_key(self, path, key_type, key_size, pin=None):
        if key_type != "rsa":
            msg = f"openssl provider cannot generate '{key_type}' keys"
            raise CryptoProviderError(msg)
        self.check_rsa_key_size(key_size)

        args = [
            "genpkey",
            "-algorithm",
            "RSA",
            "-pkeyopt",
            f"rsa_keygen_bits:{key_size}",
            "-pkeyopt",
            f"rsa_keygen_pubexp:{self._settings.rsa_public_exponent}",
        ]
        if pin:
            args += ["-aes256", "-pass", f"env:{_PIN_ENV_VAR}"]

        pem = self._run(args, pin=pin)
        self.write_key_file(path, pem)
        log.info("Generated %d-bit RSA key at %s via openssl", key_size, path)
        return pem.decode("ascii")

    # -- requests -----------------------------------------------------------

    def create_request(self, key_path, subject, pin=None):
        return self._run(
            [
                "req",
                "-new",
                "-key",
                str(key_path),
                "-subj",
                subject_to_openssl(subject),
                f"-{self._settings.hash_algorithm}",
                "-outform",
                "PEM",
                *self._passin(pin),
            ],
            pin=pin,
        )

    # -- CMS ----------------------------------------------------------------

    def sign_message(self, key_path, cert_path, payload, pin=None):
        # openssl cms reads the content from a file in -binary mode
        fd, content_path = tempfile.mkstemp(prefix="keybridge-cms-")
        try:
            with os.fdopen(fd, "wb") as fh:
                fh.write(payload)
            out = self._run(
                [
                    "cms",
                    "-sign",
                    "-binary",
                    "-nodetach",
                    "-in",
                    content_path,
                    "-signer",
                    str(cert_path),
                    "-inkey",
                    str(key_path),
                    "-md",
                    self._settings.hash_algorithm,
                    "-outform",
                    "PEM",
                    *self._passin(pin),
                ],
                pin=pin,
            )
        finally:
            with contextlib.suppress(OSError):
                os.unlink(content_path)
        return out.decode("ascii")
