"""Store commands: Inspect, Attach, Persist and ImportCertificate.

These commands only touch the filesystem.  The keystore lifecycle
(absent, staged, persisted) lives entirely on disk and is re-derived on
every call; nothing is cached between invocations.
"""

from __future__ import annotations

import logging
import os
from typing import TYPE_CHECKING

from keybridge.core.errors import MoveError, ReadError, WriteError
from keybridge.core.results import (
    UNSET_ENROLLMENT_ID,
    AttachResult,
    CommandResult,
    InspectResult,
)
from keybridge.core.types import IMPORT_ORDER, PERSISTABLE_KINDS, ObjectKind

if TYPE_CHECKING:
    from pathlib import Path

    from keybridge.core.requests import (
        AttachRequest,
        ImportCertificateRequest,
        InspectRequest,
        PersistRequest,
    )
    from keybridge.handlers.context import HandlerContext

log = logging.getLogger(__name__)

_PUBLIC_FILE_MODE = 0o644


def inspect(request: InspectRequest, ctx: HandlerContext) -> InspectResult:
    """Report which objects exist, one boolean for every kind."""
    ns = ctx.namespace(request)
    exists: dict[ObjectKind, bool] = {}
    for kind in ObjectKind:
        name = request.names.get(kind)
        exists[kind] = name is not None and ns.path(name).exists()
    return InspectResult(
        enrollment_id=request.enrollment_id or UNSET_ENROLLMENT_ID,
        exists=exists,
    )


def attach(request: AttachRequest, ctx: HandlerContext) -> AttachResult:
    """Return the content of every object flagged as existing.

    A kind is read only when its ``<Kind>Exists`` flag is set, its
    name is given and the file is present.
    """
    ns = ctx.namespace(request)
    contents: dict[ObjectKind, str] = {}
    for kind in ObjectKind:
        name = request.names.get(kind)
        if kind not in request.flagged or name is None:
            continue
        path = ns.path(name)
        if not path.exists():
            log.debug("%s flagged but absent at %s", kind, path)
            continue
        try:
            contents[kind] = path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            raise ReadError(kind, path, exc) from exc
    return AttachResult(contents=contents)


def _write_once(path: Path, content: str, mode: int) -> bool:
    """Create *path* with *content* unless something is already there.

    Returns ``False`` when the write was skipped.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    try:
        fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_EXCL, mode)
    except FileExistsError:
        return False
    with os.fdopen(fd, "w", encoding="utf-8") as fh:
        fh.write(content)
    return True


def persist(request: PersistRequest, ctx: HandlerContext) -> CommandResult:
    """Write supplied objects, never overwriting an existing one."""
    ns = ctx.namespace(request)
    for kind in PERSISTABLE_KINDS:
        content = request.contents.get(kind)
        name = request.names.get(kind)
        if content is None or name is None:
            continue
        path = ns.path(name)
        if path.exists():
            log.info("%s already present at %s; write skipped", kind, path)
            continue
        mode = (
            ctx.settings.keystore.key_file_mode
            if kind is ObjectKind.PRIVATE_KEY
            else _PUBLIC_FILE_MODE
        )
        try:
            written = _write_once(path, content, mode)
        except OSError as exc:
            raise WriteError(kind, path, exc) from exc
        if written:
            log.info("Persisted %s at %s", kind, path)
        else:
            log.info("%s appeared at %s; write skipped", kind, path)
    return CommandResult()


def import_certificate(request: ImportCertificateRequest, ctx: HandlerContext) -> CommandResult:
    """Promote staged objects to their live paths.

    PrivateKey, Certificate and Chain are moved one by one in that
    order.  The set is not moved atomically: a failure part way leaves
    the earlier kinds promoted and the later ones staged, and a repeat
    call picks up whatever is still staged.
    """
    ns = ctx.namespace(request)
    for kind in IMPORT_ORDER:
        name = request.names.get(kind)
        if name is None:
            continue
        src = ns.staged(name)
        if not src.exists():
            log.debug("No staged %s at %s", kind, src)
            continue
        dst = ns.live(name)
        try:
            os.replace(src, dst)
        except OSError as exc:
            raise MoveError(kind, src, exc) from exc
        log.info("Promoted %s %s -> %s", kind, src, dst)
    return CommandResult()
