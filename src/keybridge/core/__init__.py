"""Keystore object model: kinds, namespace resolution, validation, errors."""

from keybridge.core.errors import KeystoreError, MissingParameter, UnknownCommand
from keybridge.core.namespace import DEFAULT_STAGING_SUFFIX, Namespace, resolve
from keybridge.core.params import parse_bool, require
from keybridge.core.types import ObjectKind

__all__ = [
    "DEFAULT_STAGING_SUFFIX",
    "KeystoreError",
    "MissingParameter",
    "Namespace",
    "ObjectKind",
    "UnknownCommand",
    "parse_bool",
    "require",
    "resolve",
]
