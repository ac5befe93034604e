"""Typed per-command results and their wire serialization.

Handlers return one of the frozen dataclasses below.  :func:`to_wire`
turns any of them into the JSON object written to the response
channel.  Field metadata drives the mapping:

- ``wire``: the attribute name for a scalar field.  ``None`` values
  are omitted from the response.
- ``per_kind``: the field is a ``{ObjectKind: value}`` mapping that is
  flattened into one attribute per kind, named by the given
  :class:`~keybridge.core.types.ObjectKind` property
  (``exists_attr`` or ``content_attr``).
"""

from __future__ import annotations

from dataclasses import dataclass, field, fields
from typing import Any

from keybridge.core.types import ObjectKind

UNSET_ENROLLMENT_ID = "<unset>"


def _wire(name: str) -> Any:  # noqa: ANN401
    return field(metadata={"wire": name})


def _per_kind(attr: str) -> Any:  # noqa: ANN401
    return field(default_factory=dict, metadata={"per_kind": attr})


@dataclass(frozen=True)
class CommandResult:
    """Base class for all results.  Carries no attributes of its own."""


@dataclass(frozen=True)
class InspectResult(CommandResult):
    enrollment_id: str = field(default=UNSET_ENROLLMENT_ID, metadata={"wire": "EnrollmentID"})
    exists: dict[ObjectKind, bool] = _per_kind("exists_attr")


@dataclass(frozen=True)
class AttachResult(CommandResult):
    contents: dict[ObjectKind, str] = _per_kind("content_attr")


@dataclass(frozen=True)
class GenerateKeyResult(CommandResult):
    private_key: str | None = _wire("PrivateKey")


@dataclass(frozen=True)
class CertificateRequestResult(CommandResult):
    certificate_request: str = _wire("CertificateRequest")


@dataclass(frozen=True)
class CmsResult(CommandResult):
    cms: str = _wire("CMS")


@dataclass(frozen=True)
class TruststoreResult(CommandResult):
    trusted_certificates: str = _wire("TrustedCertificates")


@dataclass(frozen=True)
class ErrorResult(CommandResult):
    error: str = _wire("Error")


def to_wire(result: CommandResult) -> dict[str, Any]:
    """Serialize *result* to the response object."""
    wire: dict[str, Any] = {}
    for f in fields(result):
        value = getattr(result, f.name)
        per_kind = f.metadata.get("per_kind")
        if per_kind is not None:
            for kind, item in value.items():
                wire[getattr(ObjectKind(kind), per_kind)] = item
        elif value is not None:
            wire[f.metadata["wire"]] = value
    return wire
