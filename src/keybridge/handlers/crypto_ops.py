"""Crypto commands: GenerateKey, CreateCertificateRequest and CreateCMS.

Each command resolves its object paths, then hands the work to the
configured crypto provider.  Provider failures are wrapped into the
command's own error with the provider's text appended unparsed.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from keybridge.core.errors import (
    DirectoryCreateError,
    KeyGenerationError,
    MissingParameter,
    RequestGenerationError,
    SigningError,
    UnsupportedKeyType,
)
from keybridge.core.results import CertificateRequestResult, CmsResult, GenerateKeyResult
from keybridge.core.types import KeyType
from keybridge.crypto.base import CryptoProviderError
from keybridge.crypto.subject import body_to_der, parse_subject, strip_armor, subject_to_openssl

if TYPE_CHECKING:
    from keybridge.core.requests import (
        CertificateRequestRequest,
        CreateCmsRequest,
        GenerateKeyRequest,
    )
    from keybridge.handlers.context import HandlerContext

log = logging.getLogger(__name__)


def _key_size(key_param: Any) -> int:  # noqa: ANN401
    """Interpret ``KeyParam`` for RSA as a modulus size in bits."""
    if isinstance(key_param, int) and not isinstance(key_param, bool):
        return key_param
    if isinstance(key_param, str) and key_param.strip().isdigit():
        return int(key_param.strip())
    msg = f"KeyParam for rsa must be a key size in bits, got {key_param!r}"
    raise KeyGenerationError(msg)


def generate_key(request: GenerateKeyRequest, ctx: HandlerContext) -> GenerateKeyResult:
    """Generate a private key at the resolved ``PrivateKeyName`` path."""
    key_type = request.key_type.strip().lower()
    if key_type != KeyType.RSA:
        raise UnsupportedKeyType(request.key_type)
    if request.key_param is None:
        raise MissingParameter(request.command, "KeyParam")
    key_size = _key_size(request.key_param)

    path = ctx.namespace(request).path(request.private_key_name)
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        raise DirectoryCreateError(path.parent, exc) from exc

    try:
        pem = ctx.provider.generate_key(path, key_type, key_size, request.key_pin)
    except CryptoProviderError as exc:
        msg = f"Failed to generate {key_type} key at {path}: {exc.detail}"
        raise KeyGenerationError(msg) from exc
    return GenerateKeyResult(private_key=pem)


def create_certificate_request(
    request: CertificateRequestRequest,
    ctx: HandlerContext,
) -> CertificateRequestResult:
    """Build a PKCS#10 request and return its body without PEM armor."""
    try:
        rdns = parse_subject(request.subject)
    except ValueError as exc:
        msg = f"Invalid Subject: {exc}"
        raise RequestGenerationError(msg) from exc

    key_path = ctx.namespace(request).path(request.private_key_name)
    log.info("Creating certificate request for %s with %s", subject_to_openssl(rdns), key_path)
    try:
        pem = ctx.provider.create_request(key_path, rdns, request.key_pin)
    except CryptoProviderError as exc:
        msg = f"Failed to create certificate request with {key_path}: {exc.detail}"
        raise RequestGenerationError(msg) from exc
    return CertificateRequestResult(certificate_request=strip_armor(pem.decode("ascii")))


def create_cms(request: CreateCmsRequest, ctx: HandlerContext) -> CmsResult:
    """Sign the DER certificate request as an attached CMS message."""
    try:
        payload = body_to_der(request.certificate_request)
    except ValueError as exc:
        msg = f"CertificateRequest is {exc}"
        raise SigningError(msg) from exc

    ns = ctx.namespace(request)
    key_path = ns.path(request.private_key_name)
    cert_path = ns.path(request.certificate_name)
    try:
        cms = ctx.provider.sign_message(key_path, cert_path, payload, request.key_pin)
    except CryptoProviderError as exc:
        msg = f"Failed to sign with {key_path} and {cert_path}: {exc.detail}"
        raise SigningError(msg) from exc
    return CmsResult(cms=cms)
