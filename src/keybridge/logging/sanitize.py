"""Sensitive data sanitization for log output.

Provides :func:`sanitize_for_logs` which redacts key material (PEM
bodies, key passphrases) from request and response bodies before they
are written to logs.  PEM BEGIN/END markers are preserved so the type
of object is still visible.
"""

from __future__ import annotations

import re
from typing import Any

REDACTED = "[REDACTED]"

# Attributes whose values are secrets regardless of format
_SECRET_ATTRS = frozenset({"KeyPin"})

# Regex matching the base64 body inside PEM blocks
_PEM_BODY_RE = re.compile(
    r"(-----BEGIN [A-Z0-9 ]+-----)"
    r"([\s\S]*?)"
    r"(-----END [A-Z0-9 ]+-----)",
)


def sanitize_pem(pem: str) -> str:
    """Replace the base64 body of PEM blocks with ``[REDACTED]``."""

    def _redact(m) -> str:
        return f"{m.group(1)}\n{REDACTED}\n{m.group(3)}"

    return _PEM_BODY_RE.sub(_redact, pem)


def sanitize_for_logs(data: Any) -> Any:  # noqa: ANN401
    """Recursively sanitize sensitive material in *data*.

    Handles dicts (secret attributes, PEM strings in values), lists,
    and plain strings.  Non-sensitive data passes through unchanged.
    """
    if isinstance(data, dict):
        return {
            k: REDACTED if k in _SECRET_ATTRS and data[k] else sanitize_for_logs(v)
            for k, v in data.items()
        }

    if isinstance(data, (list, tuple)):
        return type(data)(sanitize_for_logs(item) for item in data)

    if isinstance(data, str):
        if "-----BEGIN " in data:
            return sanitize_pem(data)
        return data

    return data
