"""Native crypto provider -- everything in-process via ``cryptography``.

Generates RSA keys, builds PKCS#10 requests with
:class:`~cryptography.x509.CertificateSigningRequestBuilder`, and
produces CMS signed messages with the PKCS#7 signature builder.  No
external tool is invoked.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from cryptography import x509
from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import ec, rsa
from cryptography.hazmat.primitives.serialization import pkcs7
from cryptography.x509.oid import NameOID

from keybridge.crypto.base import CryptoProvider, CryptoProviderError

if TYPE_CHECKING:
    from pathlib import Path

    from cryptography.hazmat.primitives.asymmetric.types import PrivateKeyTypes

log = logging.getLogger(__name__)

_HASH_ALGORITHMS = {
    "sha256": hashes.SHA256,
    "sha384": hashes.SHA384,
    "sha512": hashes.SHA512,
}

_NAME_OIDS = {
    "CN": NameOID.COMMON_NAME,
    "O": NameOID.ORGANIZATION_NAME,
    "OU": NameOID.ORGANIZATIONAL_UNIT_NAME,
    "C": NameOID.COUNTRY_NAME,
    "ST": NameOID.STATE_OR_PROVINCE_NAME,
    "L": NameOID.LOCALITY_NAME,
    "STREET": NameOID.STREET_ADDRESS,
    "DC": NameOID.DOMAIN_COMPONENT,
    "UID": NameOID.USER_ID,
    "SN": NameOID.SURNAME,
    "GN": NameOID.GIVEN_NAME,
    "SERIALNUMBER": NameOID.SERIAL_NUMBER,
    "EMAILADDRESS": NameOID.EMAIL_ADDRESS,
    "E": NameOID.EMAIL_ADDRESS,
}


def build_name(rdns: list[tuple[str, str]]) -> x509.Name:
    """Build an :class:`x509.Name` from parsed ``(attribute, value)`` pairs."""
    attributes = []
    for attr, value in rdns:
        oid = _NAME_OIDS.get(attr.upper())
        if oid is None:
            msg = f"unsupported subject attribute '{attr}'"
            raise CryptoProviderError(msg)
        try:
            attributes.append(x509.NameAttribute(oid, value))
        except ValueError as exc:
            msg = f"invalid subject attribute {attr}={value}: {exc}"
            raise CryptoProviderError(msg) from exc
    return x509.Name(attributes)


class NativeCryptoProvider(CryptoProvider):
    """Crypto provider backed by the ``cryptography`` library."""

    def _hash(self) -> hashes.HashAlgorithm:
        return _HASH_ALGORITHMS.get(self._settings.hash_algorithm, hashes.SHA256)()

    # -- keys ---------------------------------------------------------------

    def generate_key(self, path, key_type, key_size, pin=None):
        if key_type != "rsa":
            msg = f"native provider cannot generate '{key_type}' keys"
            raise CryptoProviderError(msg)
        self.check_rsa_key_size(key_size)

        try:
            key = rsa.generate_private_key(
                public_exponent=self._settings.rsa_public_exponent,
                key_size=key_size,
            )
        except ValueError as exc:
            msg = f"RSA key generation failed: {exc}"
            raise CryptoProviderError(msg) from exc

        encryption: serialization.KeySerializationEncryption
        if pin:
            encryption = serialization.BestAvailableEncryption(pin.encode("utf-8"))
        else:
            encryption = serialization.NoEncryption()
        pem = key.private_bytes(
            serialization.Encoding.PEM,
            serialization.PrivateFormat.PKCS8,
            encryption,
        )
        self.write_key_file(path, pem)
        log.info("Generated %d-bit RSA key at %s", key_size, path)
        return pem.decode("ascii")

    def _load_key(self, key_path: Path, pin: str | None) -> PrivateKeyTypes:
        try:
            data = key_path.read_bytes()
        except OSError as exc:
            msg = f"cannot read private key {key_path}: {exc}"
            raise CryptoProviderError(msg) from exc
        try:
            return serialization.load_pem_private_key(
                data,
                password=pin.encode("utf-8") if pin else None,
            )
        except (ValueError, TypeError, UnsupportedAlgorithm) as exc:
            msg = f"cannot load private key {key_path}: {exc}"
            raise CryptoProviderError(msg) from exc

    def _load_certificate(self, cert_path: Path) -> x509.Certificate:
        try:
            return x509.load_pem_x509_certificate(cert_path.read_bytes())
        except OSError as exc:
            msg = f"cannot read certificate {cert_path}: {exc}"
            raise CryptoProviderError(msg) from exc
        except ValueError as exc:
            msg = f"cannot load certificate {cert_path}: {exc}"
            raise CryptoProviderError(msg) from exc

    # -- requests -----------------------------------------------------------

    def create_request(self, key_path, subject, pin=None):
        key = self._load_key(key_path, pin)
        name = build_name(subject)
        try:
            csr = x509.CertificateSigningRequestBuilder().subject_name(name).sign(key, self._hash())
        except (ValueError, TypeError) as exc:
            msg = f"cannot sign certificate request: {exc}"
            raise CryptoProviderError(msg) from exc
        return csr.public_bytes(serialization.Encoding.PEM)

    # -- CMS ----------------------------------------------------------------

    def sign_message(self, key_path, cert_path, payload, pin=None):
        key = self._load_key(key_path, pin)
        if not isinstance(key, (rsa.RSAPrivateKey, ec.EllipticCurvePrivateKey)):
            msg = f"CMS signing requires an RSA or EC key, got {type(key).__name__}"
            raise CryptoProviderError(msg)
        cert = self._load_certificate(cert_path)
        try:
            cms = (
                pkcs7.PKCS7SignatureBuilder()
                .set_data(payload)
                .add_signer(cert, key, self._hash())
                .sign(serialization.Encoding.PEM, [pkcs7.PKCS7Options.Binary])
            )
        except (ValueError, TypeError) as exc:
            msg = f"CMS signing failed: {exc}"
            raise CryptoProviderError(msg) from exc
        return cms.decode("ascii")
