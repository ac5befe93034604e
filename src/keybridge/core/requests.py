"""Typed per-command requests.

The raw request body is a loosely-typed JSON object.  Each command
converts it exactly once, at the dispatch boundary, into one of the
frozen dataclasses below: required attributes are checked by
:func:`~keybridge.core.params.require`, loose truth values are
normalized, and absent optional attributes become ``None`` or empty
collections.  Handlers never look at the raw body.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Any, ClassVar

from keybridge.core.params import optional_content, optional_str, parse_bool, require
from keybridge.core.types import PERSISTABLE_KINDS, ObjectKind

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping


def _names(body: Mapping[str, Any], kinds: Iterable[ObjectKind]) -> dict[ObjectKind, str]:
    names: dict[ObjectKind, str] = {}
    for kind in kinds:
        name = optional_str(body, kind.name_attr)
        if name is not None:
            names[kind] = name
    return names


@dataclass(frozen=True)
class CommandRequest:
    """Attributes every command may receive.

    Attributes
    ----------
    location:
        Keystore root for this invocation (``Location`` or the
        configured default).
    mutable:
        Normalized ``Mutable`` flag; selects the staging namespace.
    enrollment_id:
        Opaque ``EnrollmentID`` supplied by the orchestrator, if any.

    """

    command: ClassVar[str] = ""
    required: ClassVar[tuple[str, ...]] = ()

    location: Path
    mutable: bool
    enrollment_id: str | None

    @classmethod
    def parse(cls, body: Mapping[str, Any], *, default_location: str | Path) -> CommandRequest:
        """Validate *body* and build the typed request."""
        require(cls.command, body, cls.required)
        location = optional_str(body, "Location")
        return cls(
            location=Path(location if location is not None else default_location),
            mutable=parse_bool(body.get("Mutable")),
            enrollment_id=optional_str(body, "EnrollmentID"),
            **cls._fields(body),
        )

    @classmethod
    def _fields(cls, body: Mapping[str, Any]) -> dict[str, Any]:  # noqa: ARG003
        return {}


@dataclass(frozen=True)
class InspectRequest(CommandRequest):
    command: ClassVar[str] = "Inspect"

    names: dict[ObjectKind, str] = field(default_factory=dict)

    @classmethod
    def _fields(cls, body):
        return {"names": _names(body, ObjectKind)}


@dataclass(frozen=True)
class AttachRequest(CommandRequest):
    command: ClassVar[str] = "Attach"

    names: dict[ObjectKind, str] = field(default_factory=dict)
    flagged: frozenset[ObjectKind] = frozenset()

    @classmethod
    def _fields(cls, body):
        return {
            "names": _names(body, ObjectKind),
            "flagged": frozenset(k for k in ObjectKind if parse_bool(body.get(k.exists_attr))),
        }


@dataclass(frozen=True)
class GenerateKeyRequest(CommandRequest):
    command: ClassVar[str] = "GenerateKey"
    required: ClassVar[tuple[str, ...]] = ("PrivateKeyName", "KeyType")

    private_key_name: str = ""
    key_type: str = ""
    key_param: Any = None
    key_pin: str | None = None

    @classmethod
    def _fields(cls, body):
        key_param = body.get("KeyParam")
        return {
            "private_key_name": optional_str(body, "PrivateKeyName"),
            "key_type": optional_str(body, "KeyType"),
            "key_param": key_param if key_param != "" else None,
            "key_pin": optional_str(body, "KeyPin"),
        }


@dataclass(frozen=True)
class CertificateRequestRequest(CommandRequest):
    command: ClassVar[str] = "CreateCertificateRequest"
    required: ClassVar[tuple[str, ...]] = ("PrivateKeyName", "Subject")

    private_key_name: str = ""
    subject: str = ""
    key_pin: str | None = None

    @classmethod
    def _fields(cls, body):
        return {
            "private_key_name": optional_str(body, "PrivateKeyName"),
            "subject": optional_str(body, "Subject"),
            "key_pin": optional_str(body, "KeyPin"),
        }


@dataclass(frozen=True)
class PersistRequest(CommandRequest):
    command: ClassVar[str] = "Persist"

    names: dict[ObjectKind, str] = field(default_factory=dict)
    contents: dict[ObjectKind, str] = field(default_factory=dict)

    @classmethod
    def _fields(cls, body):
        contents: dict[ObjectKind, str] = {}
        for kind in PERSISTABLE_KINDS:
            content = optional_content(cls.command, body, kind.content_attr)
            if content is not None:
                contents[kind] = content
        return {"names": _names(body, PERSISTABLE_KINDS), "contents": contents}


@dataclass(frozen=True)
class ImportCertificateRequest(CommandRequest):
    command: ClassVar[str] = "ImportCertificate"
    required: ClassVar[tuple[str, ...]] = ("CertificateName", "ChainName", "PrivateKeyName")

    names: dict[ObjectKind, str] = field(default_factory=dict)

    @classmethod
    def _fields(cls, body):
        return {"names": _names(body, ObjectKind)}


@dataclass(frozen=True)
class CreateCmsRequest(CommandRequest):
    command: ClassVar[str] = "CreateCMS"
    required: ClassVar[tuple[str, ...]] = (
        "PrivateKeyName",
        "CertificateRequest",
        "CertificateName",
    )

    private_key_name: str = ""
    certificate_name: str = ""
    certificate_request: str = ""
    key_pin: str | None = None

    @classmethod
    def _fields(cls, body):
        return {
            "private_key_name": optional_str(body, "PrivateKeyName"),
            "certificate_name": optional_str(body, "CertificateName"),
            "certificate_request": optional_content(cls.command, body, "CertificateRequest"),
            "key_pin": optional_str(body, "KeyPin"),
        }


@dataclass(frozen=True)
class TruststoreRequest(CommandRequest):
    command: ClassVar[str] = "GetTruststore"
