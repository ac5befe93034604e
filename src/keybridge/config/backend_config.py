"""keybridge configuration loader.

Lifecycle::

    # 1. CLI creates the singleton (once per invocation)
    BackendConfig(config_file="/etc/keybridge/config.yaml")

    # 2. Any module retrieves it afterwards
    from keybridge.config import get_config
    cfg = get_config()
    cfg.settings.keystore.default_location  # typed access

    # 3. Extension / dynamic access
    cfg.get("crypto.provider", default="native")

The configuration file is optional: ``BackendConfig(config_file=None)``
yields the built-in defaults.  YAML (``.yaml``/``.yml``) and JSON files
are accepted.
"""

from __future__ import annotations

import json
import logging
import os
import re
from pathlib import Path
from typing import Any

import yaml
from jsonschema import Draft202012Validator

from keybridge.config.settings import BackendSettings, build_settings

_SCHEMA_PATH = Path(__file__).parent / "schema.json"

_ENV_RE = re.compile(
    r"^\$\{([^}:]+?)(?::-(.*))?\}$",
    re.DOTALL,
)

_CLASS_PATH_RE = re.compile(
    r"^[a-zA-Z_][a-zA-Z0-9_]*(\.[a-zA-Z_][a-zA-Z0-9_]*)+$",
)

_BUILTIN_PROVIDERS = frozenset({"native", "openssl"})

log = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Module-level singleton reference
# ---------------------------------------------------------------------------
_instance: BackendConfig | None = None


def get_config() -> BackendConfig:
    """Return the initialised configuration singleton.

    Raises :class:`RuntimeError` if :class:`BackendConfig` has not been
    created yet (i.e. the CLI entry point has not run).
    """
    if _instance is None:
        msg = (
            "Configuration not initialised. "
            "BackendConfig must be created before calling get_config()."
        )
        raise RuntimeError(msg)
    return _instance


# ---------------------------------------------------------------------------
# Validation error collector
# ---------------------------------------------------------------------------


class ConfigValidationError(Exception):
    """Raised when loading, schema or cross-field validation fails."""

    def __init__(self, errors: list[str]) -> None:
        """Store *errors* and build a human-readable message."""
        self.errors = errors
        body = "\n".join(f"  - {e}" for e in errors)
        super().__init__(f"Configuration validation failed:\n{body}")


# ---------------------------------------------------------------------------
# Environment variable resolution
# ---------------------------------------------------------------------------


def _resolve_value(value: str, path: str) -> str:
    """Replace ``${VAR}`` or ``${VAR:-default}`` with env var value."""
    match = _ENV_RE.match(value)
    if match is None:
        return value
    var_name = match.group(1)
    fallback = match.group(2)
    resolved = os.environ.get(var_name)
    if resolved is not None:
        return resolved
    if fallback is not None:
        return fallback
    raise ConfigValidationError(
        [
            f"Environment variable '${{{var_name}}}' referenced "
            f"at '{path}' is not set and has no default",
        ],
    )


def _resolve_env_vars(
    data: Any,  # noqa: ANN401
    path: str = "",
) -> None:
    """Walk *data* in-place and resolve ``${VAR}``/``${VAR:-default}`` strings."""
    if isinstance(data, dict):
        for key in data:
            child_path = f"{path}.{key}" if path else key
            if isinstance(data[key], str):
                data[key] = _resolve_value(data[key], child_path)
            elif isinstance(data[key], (dict, list)):
                _resolve_env_vars(data[key], child_path)
    elif isinstance(data, list):
        for idx, item in enumerate(data):
            child_path = f"{path}[{idx}]"
            if isinstance(item, str):
                data[idx] = _resolve_value(item, child_path)
            elif isinstance(item, (dict, list)):
                _resolve_env_vars(item, child_path)


def _read_config_file(path: Path) -> dict:
    """Parse a YAML or JSON configuration file into a dict."""
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ConfigValidationError([f"cannot read {path}: {exc}"]) from exc

    try:
        if path.suffix in (".yaml", ".yml"):
            data = yaml.safe_load(text)
        else:
            data = json.loads(text)
    except (yaml.YAMLError, json.JSONDecodeError) as exc:
        raise ConfigValidationError([f"cannot parse {path}: {exc}"]) from exc

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigValidationError(
            [f"{path} must contain a mapping at the top level"],
        )
    return data


# ---------------------------------------------------------------------------
# Config class
# ---------------------------------------------------------------------------


class BackendConfig:
    """Central configuration for one backend invocation.

    The JSON schema is bundled at ``config/schema.json``.  After
    construction the typed settings tree is available at
    :pyattr:`settings` and the raw dict via :pyattr:`data` /
    :pymeth:`get`.
    """

    def __init__(self, *, config_file: str | Path | None = None) -> None:
        """Load, validate and materialise the configuration.

        Parameters
        ----------
        config_file:
            Path to the YAML/JSON configuration file, or ``None`` to
            use built-in defaults only.

        """
        global _instance  # noqa: PLW0603

        self._source = str(config_file) if config_file is not None else None
        self._data: dict = {}
        self._load()
        self._validate_schema()
        self.additional_checks()
        self._settings: BackendSettings = build_settings(self._data)
        _instance = self

    # -- lifecycle ----------------------------------------------------------

    def _load(self) -> None:
        """Load config file then resolve ``${VAR}`` env-var references.

        Runs env-var resolution **before** schema validation so that
        substituted values are checked against enum constraints.
        """
        if self._source is not None:
            self._data = _read_config_file(Path(self._source))
        _resolve_env_vars(self._data)

    def _validate_schema(self) -> None:
        schema = json.loads(_SCHEMA_PATH.read_text(encoding="utf-8"))
        validator = Draft202012Validator(schema)
        errors = [
            f"{'.'.join(str(p) for p in err.absolute_path) or '<root>'}: {err.message}"
            for err in sorted(validator.iter_errors(self._data), key=lambda e: str(list(e.path)))
        ]
        if errors:
            raise ConfigValidationError(errors)

    # -- typed access -------------------------------------------------------

    @property
    def settings(self) -> BackendSettings:
        """Fully-typed, frozen settings tree."""
        return self._settings

    @property
    def data(self) -> dict:
        """Raw configuration data after env-var resolution."""
        return self._data

    def get(self, dotted: str, default: Any = None) -> Any:  # noqa: ANN401
        """Return the raw value at *dotted* path, or *default*."""
        node: Any = self._data
        for part in dotted.split("."):
            if not isinstance(node, dict) or part not in node:
                return default
            node = node[part]
        return node

    # -- cross-field validation ---------------------------------------------

    def additional_checks(self) -> None:
        """Semantic & cross-field validation run after the schema check."""
        errors: list[str] = []
        warnings: list[str] = []

        keystore = self._data.get("keystore") or {}
        crypto = self._data.get("crypto") or {}
        truststore = self._data.get("truststore") or {}

        # -- keystore --
        suffix = keystore.get("staging_suffix", ".staged")
        if not suffix:
            errors.append(
                "keystore.staging_suffix must not be empty -- staged and live "
                "objects would resolve to the same path",
            )
        elif "/" in suffix or os.sep in suffix:
            errors.append(
                f"keystore.staging_suffix must not contain a path separator (got '{suffix}')",
            )

        # -- crypto --
        provider = crypto.get("provider", "native")
        if provider not in _BUILTIN_PROVIDERS:
            if not provider.startswith("ext:"):
                errors.append(
                    f"crypto.provider '{provider}' is unknown. "
                    f"Built-in providers: {sorted(_BUILTIN_PROVIDERS)}. "
                    "Use 'ext:package.module.ClassName' for custom providers.",
                )
            elif not _CLASS_PATH_RE.match(provider[4:]):
                errors.append(
                    f"crypto.provider '{provider}' is not a valid fully "
                    "qualified Python class path "
                    "(expected 'ext:package.module.ClassName')",
                )

        min_rsa = crypto.get("min_rsa_key_size", 2048)
        max_rsa = crypto.get("max_rsa_key_size", 8192)
        if min_rsa > max_rsa:
            errors.append(
                f"crypto.min_rsa_key_size ({min_rsa}) must be <= "
                f"crypto.max_rsa_key_size ({max_rsa})",
            )

        # -- truststore --
        if not truststore.get("paths"):
            warnings.append(
                "truststore.paths is empty -- GetTruststore will return an empty bundle",
            )

        for w in warnings:
            log.info("Config warning: %s", w)

        if errors:
            raise ConfigValidationError(errors)

    # -- helpers ------------------------------------------------------------

    @classmethod
    def reset(cls) -> None:
        """Reset the singleton -- testing only."""
        global _instance  # noqa: PLW0603
        _instance = None

    def __repr__(self) -> str:
        """Return a developer-friendly representation."""
        return f"<BackendConfig config_file={self._source or '<defaults>'}>"
