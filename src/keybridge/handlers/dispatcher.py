"""Command dispatcher.

Maps a command name to its typed request and handler, runs it, and
turns the outcome into the response object plus an exit status::

    response, status = execute("Inspect", {"PrivateKeyName": "k.pem"}, ctx)
    # response == {"PrivateKeyExists": False, ..., "EnrollmentID": "<unset>"}
    # status == 0

Every failure -- unknown command, malformed body, any
:class:`~keybridge.core.errors.KeystoreError`, or an unexpected
exception -- becomes ``{"Error": "<message>"}`` with status 1.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from typing import TYPE_CHECKING, Any

from keybridge.core.errors import KeystoreError, MalformedRequest, UnknownCommand
from keybridge.core.requests import (
    AttachRequest,
    CertificateRequestRequest,
    CommandRequest,
    CreateCmsRequest,
    GenerateKeyRequest,
    ImportCertificateRequest,
    InspectRequest,
    PersistRequest,
    TruststoreRequest,
)
from keybridge.core.results import CommandResult, ErrorResult, to_wire
from keybridge.crypto.base import CryptoProviderError
from keybridge.handlers import crypto_ops, store, truststore
from keybridge.logging.sanitize import sanitize_for_logs
from keybridge.logging.setup import bind_command_context

if TYPE_CHECKING:
    from keybridge.handlers.context import HandlerContext

log = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_FAILURE = 1

Handler = Callable[[Any, "HandlerContext"], CommandResult]

COMMANDS: dict[str, tuple[type[CommandRequest], Handler]] = {
    "Inspect": (InspectRequest, store.inspect),
    "Attach": (AttachRequest, store.attach),
    "GenerateKey": (GenerateKeyRequest, crypto_ops.generate_key),
    "CreateCertificateRequest": (CertificateRequestRequest, crypto_ops.create_certificate_request),
    "Persist": (PersistRequest, store.persist),
    "ImportCertificate": (ImportCertificateRequest, store.import_certificate),
    "CreateCMS": (CreateCmsRequest, crypto_ops.create_cms),
    "GetTruststore": (TruststoreRequest, truststore.get_truststore),
}


def dispatch(command: str, body: Any, ctx: HandlerContext) -> CommandResult:  # noqa: ANN401
    """Validate *body* for *command* and run its handler.

    Raises
    ------
    UnknownCommand
        If *command* is not in :data:`COMMANDS`.  Nothing else runs.
    MalformedRequest
        If *body* is not a JSON object.
    KeystoreError
        Whatever the handler raises.

    """
    entry = COMMANDS.get(command)
    if entry is None:
        raise UnknownCommand(command)
    if not isinstance(body, Mapping):
        msg = f"{command} request body must be a JSON object, got {type(body).__name__}"
        raise MalformedRequest(msg)

    request_cls, handler = entry
    request = request_cls.parse(body, default_location=ctx.settings.keystore.default_location)
    bind_command_context(command, request.enrollment_id)
    log.debug("Request: %s", sanitize_for_logs(dict(body)))
    return handler(request, ctx)


def execute(command: str, body: Any, ctx: HandlerContext) -> tuple[dict[str, Any], int]:  # noqa: ANN401
    """Run *command* and return ``(response, exit_status)``."""
    bind_command_context(command)
    try:
        result = dispatch(command, body, ctx)
    except KeystoreError as exc:
        log.error("%s failed: %s", command, exc.detail)
        return to_wire(ErrorResult(error=exc.detail)), EXIT_FAILURE
    except CryptoProviderError as exc:
        log.error("%s failed: %s", command, exc.detail)
        return to_wire(ErrorResult(error=exc.detail)), EXIT_FAILURE
    except Exception as exc:
        log.exception("%s failed unexpectedly", command)
        return to_wire(ErrorResult(error=f"{command} failed: {exc}")), EXIT_FAILURE

    response = to_wire(result)
    log.debug("Response: %s", sanitize_for_logs(response))
    return response, EXIT_OK
