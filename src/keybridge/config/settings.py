"""Typed, frozen dataclasses for every configuration section.

This module is the **single source of truth** for default values.
JSON Schema defaults exist only for documentation -- these builders
are what the backend actually reads.

Access pattern::

    from keybridge.config import get_config

    ks = get_config().settings.keystore
    print(ks.default_location, ks.staging_suffix)
"""

from __future__ import annotations

from dataclasses import dataclass

from keybridge.core.namespace import DEFAULT_STAGING_SUFFIX

# ---------------------------------------------------------------------------
# Keystore
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class KeystoreSettings:
    """Where objects live and how staged objects are named."""

    default_location: str
    staging_suffix: str
    key_file_mode: int


def _build_keystore(data: dict | None) -> KeystoreSettings:
    d = data or {}
    mode = d.get("key_file_mode", 0o600)
    return KeystoreSettings(
        default_location=d.get("default_location", "/var/lib/keybridge"),
        staging_suffix=d.get("staging_suffix", DEFAULT_STAGING_SUFFIX),
        key_file_mode=int(mode, 8) if isinstance(mode, str) else mode,
    )


# ---------------------------------------------------------------------------
# Crypto provider
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class CryptoSettings:
    """Crypto provider selection and key-generation limits."""

    provider: str
    openssl_binary: str
    hash_algorithm: str
    rsa_public_exponent: int
    min_rsa_key_size: int
    max_rsa_key_size: int
    timeout_seconds: int


def _build_crypto(data: dict | None) -> CryptoSettings:
    d = data or {}
    return CryptoSettings(
        provider=d.get("provider", "native"),
        openssl_binary=d.get("openssl_binary", "openssl"),
        hash_algorithm=d.get("hash_algorithm", "sha256"),
        rsa_public_exponent=d.get("rsa_public_exponent", 65537),
        min_rsa_key_size=d.get("min_rsa_key_size", 2048),
        max_rsa_key_size=d.get("max_rsa_key_size", 8192),
        timeout_seconds=d.get("timeout_seconds", 120),
    )


# ---------------------------------------------------------------------------
# Truststore
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class TruststoreSettings:
    """PEM files or directories returned by GetTruststore."""

    paths: tuple[str, ...]


def _build_truststore(data: dict | None) -> TruststoreSettings:
    d = data or {}
    return TruststoreSettings(paths=tuple(d.get("paths", [])))


# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class LoggingSettings:
    """Backend logging configuration (level, format, optional file)."""

    level: str
    format: str
    file: str | None
    max_file_size_bytes: int
    backup_count: int


def _build_logging(data: dict | None) -> LoggingSettings:
    d = data or {}
    return LoggingSettings(
        level=d.get("level", "WARNING"),
        format=d.get("format", "text"),
        file=d.get("file"),
        max_file_size_bytes=d.get("max_file_size_bytes", 10485760),
        backup_count=d.get("backup_count", 5),
    )


# ---------------------------------------------------------------------------
# Root
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class BackendSettings:
    """Root of the typed settings tree."""

    keystore: KeystoreSettings
    crypto: CryptoSettings
    truststore: TruststoreSettings
    logging: LoggingSettings


def build_settings(data: dict) -> BackendSettings:
    """Build the full typed settings tree from raw config data.

    Called once during :class:`BackendConfig` initialization after
    schema validation and environment-variable resolution.
    """
    return BackendSettings(
        keystore=_build_keystore(data.get("keystore")),
        crypto=_build_crypto(data.get("crypto")),
        truststore=_build_truststore(data.get("truststore")),
        logging=_build_logging(data.get("logging")),
    )
