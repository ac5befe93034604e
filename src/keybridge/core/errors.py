"""Error taxonomy for keystore commands.

Every failure that a command can report is a :class:`KeystoreError`.
The dispatcher renders any of them as the wire error object::

    {"Error": "<human-readable message>"}

together with a non-zero exit status.  None of these errors is retried
inside the backend; the orchestrator owns retry policy.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from pathlib import Path

    from keybridge.core.types import ObjectKind


class KeystoreError(Exception):
    """Base class for every error a command reports to its caller.

    Parameters
    ----------
    detail:
        Human-readable description of the failure.  This is the text
        placed in the ``Error`` attribute of the response.

    """

    def __init__(self, detail: str) -> None:
        self.detail = detail
        super().__init__(detail)


class MissingParameter(KeystoreError):
    """A required request attribute is absent or empty."""

    def __init__(self, command: str, attribute: str) -> None:
        self.command = command
        self.attribute = attribute
        super().__init__(f"{command} requires {attribute}")


class UnknownCommand(KeystoreError):
    """The command name is not in the dispatch table."""

    def __init__(self, command: str) -> None:
        self.command = command
        super().__init__(f"Unsupported API command '{command}'")


class MalformedRequest(KeystoreError):
    """The request body is not a JSON object."""


class UnsupportedKeyType(KeystoreError):
    """GenerateKey was asked for a key type the backend cannot produce."""

    def __init__(self, key_type: str) -> None:
        self.key_type = key_type
        super().__init__(f"Unsupported key type '{key_type}'")


class DirectoryCreateError(KeystoreError):
    """The parent directory of a key could not be created."""

    def __init__(self, directory: Path, reason: object) -> None:
        self.directory = directory
        super().__init__(f"Failed to create directory {directory}: {reason}")


class KeyGenerationError(KeystoreError):
    """The crypto provider failed to generate a key."""


class RequestGenerationError(KeystoreError):
    """The crypto provider failed to build a certificate request."""


class SigningError(KeystoreError):
    """The crypto provider failed to produce a CMS message."""


class _ObjectIOError(KeystoreError):
    """Failure touching one keystore object of a given kind."""

    _verb = "access"

    def __init__(self, kind: ObjectKind | str, path: Path | str, reason: object) -> None:
        self.kind = kind
        self.path = path
        super().__init__(f"Failed to {self._verb} {kind} at {path}: {reason}")


class ReadError(_ObjectIOError):
    """A keystore object flagged as existing could not be read."""

    _verb = "read"


class WriteError(_ObjectIOError):
    """A keystore object could not be written."""

    _verb = "write"


class MoveError(_ObjectIOError):
    """A staged object could not be promoted to its live location."""

    _verb = "move"
