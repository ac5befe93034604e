"""Enumerated types for the keystore object model.

:class:`ObjectKind` is a ``StrEnum`` so its ``.value`` is the
plain wire prefix used by every per-kind request and response attribute
(``<Kind>Name``, ``<Kind>Exists`` and the ``<Kind>`` content itself).
"""

from __future__ import annotations

from enum import StrEnum


class ObjectKind(StrEnum):
    PRIVATE_KEY = "PrivateKey"
    CERTIFICATE = "Certificate"
    CHAIN = "Chain"
    CERTIFICATE_REQUEST = "CertificateRequest"
    CERTIFICATE_REQUEST_TEMPLATE = "CertificateRequestTemplate"
    TRUST_ANCHORS = "TrustAnchors"

    @property
    def name_attr(self) -> str:
        """Request attribute carrying the object's logical name."""
        return f"{self.value}Name"

    @property
    def exists_attr(self) -> str:
        """Attribute carrying the object's existence flag."""
        return f"{self.value}Exists"

    @property
    def content_attr(self) -> str:
        """Attribute carrying the object's content (PEM text)."""
        return self.value


# Kinds that Persist may write, in processing order.
PERSISTABLE_KINDS: tuple[ObjectKind, ...] = (
    ObjectKind.CERTIFICATE,
    ObjectKind.CHAIN,
    ObjectKind.CERTIFICATE_REQUEST,
    ObjectKind.PRIVATE_KEY,
)

# Kinds promoted by ImportCertificate.  The order is fixed and the moves
# are not atomic as a set.
IMPORT_ORDER: tuple[ObjectKind, ...] = (
    ObjectKind.PRIVATE_KEY,
    ObjectKind.CERTIFICATE,
    ObjectKind.CHAIN,
)


class KeyType(StrEnum):
    RSA = "rsa"
