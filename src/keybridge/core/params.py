"""Request attribute validation and loose-truth normalization.

Usage::

    from keybridge.core.params import parse_bool, require

    require("GenerateKey", body, ("PrivateKeyName", "KeyType"))
    mutable = parse_bool(body.get("Mutable"))
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Any

from keybridge.core.errors import MalformedRequest, MissingParameter

_TRUE_STRINGS = frozenset({"1", "true", "yes", "on", "enabled"})


def parse_bool(value: Any) -> bool:  # noqa: ANN401
    """Normalize a loosely-typed truth value.

    ``True``, the integer ``1`` and the strings ``1``, ``true``, ``yes``,
    ``on`` and ``enabled`` (any case, surrounding whitespace ignored) are
    true.  Everything else, including ``None`` and unrecognized strings,
    is false.  Never raises.
    """
    if isinstance(value, bool):
        return value
    if isinstance(value, int):
        return value == 1
    if isinstance(value, str):
        return value.strip().lower() in _TRUE_STRINGS
    return False


def is_present(value: Any) -> bool:  # noqa: ANN401
    """Return whether an attribute value counts as supplied."""
    if value is None:
        return False
    if isinstance(value, str):
        return value != ""
    return True


def require(command: str, request: Mapping[str, Any], attributes: Iterable[str]) -> None:
    """Raise :class:`MissingParameter` for the first absent attribute.

    An attribute is missing when it is not in *request*, is ``None``,
    or is the empty string.
    """
    for attr in attributes:
        if not is_present(request.get(attr)):
            raise MissingParameter(command, attr)


def optional_str(request: Mapping[str, Any], attribute: str) -> str | None:
    """Return *attribute* as a string, or ``None`` when not supplied."""
    value = request.get(attribute)
    if not is_present(value):
        return None
    return value if isinstance(value, str) else str(value)


def optional_content(command: str, request: Mapping[str, Any], attribute: str) -> str | None:
    """Return object content (PEM or base64 text) for *attribute*.

    Unlike :func:`optional_str` nothing is coerced: a non-string value
    raises :class:`MalformedRequest`.
    """
    value = request.get(attribute)
    if not is_present(value):
        return None
    if not isinstance(value, str):
        msg = f"{command} {attribute} must be a string, got {type(value).__name__}"
        raise MalformedRequest(msg)
    return value
