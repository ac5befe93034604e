"""Subject and PEM armor helpers shared by the crypto providers.

Subjects arrive as a ``,``-delimited list of RDN components
(``CN=host.example,O=Example``); a literal comma inside a value is
written ``\\,``.  Providers consume the parsed ``(attribute, value)``
list, or the OpenSSL ``-subj`` form ``/CN=host.example/O=Example``.
"""

from __future__ import annotations

import base64
import binascii
import re

_UNESCAPED_COMMA_RE = re.compile(r"(?<!\\),")
_PEM_ARMOR_RE = re.compile(r"^-----(BEGIN|END) [A-Z0-9 ]+-----\s*$")
_ESCAPED_SLASH = "\\/"


def parse_subject(subject: str) -> list[tuple[str, str]]:
    """Split *subject* into ordered ``(attribute, value)`` pairs.

    Empty components are ignored.  Raises :class:`ValueError` for a
    component without ``=`` or with an empty attribute name, or when
    no component remains.
    """
    rdns: list[tuple[str, str]] = []
    for component in _UNESCAPED_COMMA_RE.split(subject):
        component = component.strip()
        if not component:
            continue
        attr, sep, value = component.partition("=")
        attr = attr.strip()
        if not sep or not attr:
            msg = f"invalid subject component '{component}'"
            raise ValueError(msg)
        rdns.append((attr, value.strip().replace("\\,", ",")))
    if not rdns:
        msg = f"subject '{subject}' has no components"
        raise ValueError(msg)
    return rdns


def subject_to_openssl(rdns: list[tuple[str, str]]) -> str:
    """Render parsed RDNs in OpenSSL ``-subj`` form (``/CN=a/O=b``)."""
    return "".join(f"/{attr}={value.replace('/', _ESCAPED_SLASH)}" for attr, value in rdns)


def strip_armor(pem: str) -> str:
    """Return the base64 body of a PEM block without its BEGIN/END lines."""
    lines = [
        line.strip()
        for line in pem.strip().splitlines()
        if line.strip() and not _PEM_ARMOR_RE.match(line.strip())
    ]
    return "\n".join(lines)


def body_to_der(text: str) -> bytes:
    """Decode a PEM block or a bare base64 body into DER bytes.

    Raises :class:`ValueError` when *text* is not valid base64.
    """
    body = "".join(strip_armor(text).split())
    try:
        der = base64.b64decode(body, validate=True)
    except binascii.Error as exc:
        msg = f"not valid base64: {exc}"
        raise ValueError(msg) from exc
    if not der:
        msg = "empty body"
        raise ValueError(msg)
    return der
