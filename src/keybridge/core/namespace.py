"""Object namespace resolution.

A logical object name resolves under a *location* (the keystore root
for the invocation).  While an enrollment is in progress the caller
sets ``Mutable`` and every name resolves to a staged sibling carrying
the staging suffix, so nothing touches the live object until
ImportCertificate promotes it::

    resolve("k.pem", "/store")                 -> /store/k.pem
    resolve("k.pem", "/store", mutable=True)   -> /store/k.pem.staged

Resolution is a pure function of its arguments: no I/O, no counters.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

DEFAULT_STAGING_SUFFIX = ".staged"


def resolve(
    name: str,
    location: str | Path,
    mutable: bool = False,
    suffix: str = DEFAULT_STAGING_SUFFIX,
) -> Path:
    """Return the physical path of *name* under *location*.

    Callers only resolve non-empty names; a request without the
    corresponding ``<Kind>Name`` attribute skips resolution entirely.
    """
    if mutable:
        return Path(location) / f"{name}{suffix}"
    return Path(location) / name


@dataclass(frozen=True)
class Namespace:
    """Resolution context bound to one request.

    Holds the request's location, mutable flag and the configured
    staging suffix.  :meth:`staged` and :meth:`live` ignore the bound
    flag so a single request can address both sides of a promotion.
    """

    location: Path
    mutable: bool = False
    suffix: str = DEFAULT_STAGING_SUFFIX

    def path(self, name: str) -> Path:
        return resolve(name, self.location, self.mutable, self.suffix)

    def staged(self, name: str) -> Path:
        return resolve(name, self.location, True, self.suffix)

    def live(self, name: str) -> Path:
        return resolve(name, self.location, False, self.suffix)
