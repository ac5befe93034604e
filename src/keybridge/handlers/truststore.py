"""GetTruststore: return the configured trust-anchor bundle."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import TYPE_CHECKING

from keybridge.core.errors import ReadError
from keybridge.core.results import TruststoreResult
from keybridge.core.types import ObjectKind

if TYPE_CHECKING:
    from keybridge.core.requests import TruststoreRequest
    from keybridge.handlers.context import HandlerContext

log = logging.getLogger(__name__)

_CERT_SUFFIXES = (".pem", ".crt")


def _bundle_files(entry: Path) -> list[Path]:
    if entry.is_dir():
        return sorted(p for p in entry.iterdir() if p.suffix in _CERT_SUFFIXES and p.is_file())
    return [entry]


def get_truststore(request: TruststoreRequest, ctx: HandlerContext) -> TruststoreResult:  # noqa: ARG001
    """Concatenate every configured PEM file into one bundle.

    Directories contribute their ``*.pem`` and ``*.crt`` files in name
    order.
    """
    parts: list[str] = []
    for entry in ctx.settings.truststore.paths:
        for path in _bundle_files(Path(entry)):
            try:
                text = path.read_text(encoding="utf-8")
            except (OSError, UnicodeDecodeError) as exc:
                raise ReadError(ObjectKind.TRUST_ANCHORS, path, exc) from exc
            if text.strip():
                parts.append(text.strip() + "\n")
    log.debug("Truststore bundle has %d file(s)", len(parts))
    return TruststoreResult(trusted_certificates="".join(parts))
