"""Tests for keybridge.config -- loading, schema and cross-field validation."""

from __future__ import annotations

import json

import pytest
import yaml

from keybridge.config import BackendConfig, ConfigValidationError, get_config
from keybridge.config.settings import build_settings


def _write(tmp_path, data, name="config.yaml"):
    path = tmp_path / name
    if name.endswith(".json"):
        path.write_text(json.dumps(data), encoding="utf-8")
    else:
        path.write_text(yaml.safe_dump(data), encoding="utf-8")
    return path


class TestDefaults:
    def test_no_file(self):
        cfg = BackendConfig(config_file=None)
        assert cfg.settings.keystore.staging_suffix == ".staged"
        assert cfg.settings.keystore.key_file_mode == 0o600
        assert cfg.settings.crypto.provider == "native"
        assert cfg.settings.truststore.paths == ()
        assert cfg.settings.logging.level == "WARNING"

    def test_build_settings_empty(self):
        s = build_settings({})
        assert s.crypto.min_rsa_key_size == 2048
        assert s.crypto.hash_algorithm == "sha256"

    def test_octal_string_mode(self):
        s = build_settings({"keystore": {"key_file_mode": "0640"}})
        assert s.keystore.key_file_mode == 0o640


class TestLoading:
    def test_yaml(self, tmp_config_file, config_data):
        cfg = BackendConfig(config_file=tmp_config_file)
        assert cfg.settings.keystore.default_location == config_data["keystore"]["default_location"]
        assert get_config() is cfg

    def test_json(self, tmp_path):
        path = _write(tmp_path, {"truststore": {"paths": ["/etc/ssl/ca.pem"]}}, "config.json")
        cfg = BackendConfig(config_file=path)
        assert cfg.settings.truststore.paths == ("/etc/ssl/ca.pem",)

    def test_empty_yaml(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("", encoding="utf-8")
        assert BackendConfig(config_file=path).settings.crypto.provider == "native"

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigValidationError, match="cannot read"):
            BackendConfig(config_file=tmp_path / "absent.yaml")

    def test_top_level_must_be_mapping(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("- a\n- b\n", encoding="utf-8")
        with pytest.raises(ConfigValidationError, match="mapping"):
            BackendConfig(config_file=path)

    def test_dotted_get(self, tmp_config_file):
        cfg = BackendConfig(config_file=tmp_config_file)
        assert cfg.get("crypto.provider") == "native"
        assert cfg.get("crypto.nope", default=5) == 5

    def test_get_config_uninitialised(self):
        with pytest.raises(RuntimeError, match="not initialised"):
            get_config()


class TestEnvVars:
    def test_resolved(self, tmp_path, monkeypatch):
        monkeypatch.setenv("KB_STORE", "/srv/keys")
        path = _write(tmp_path, {"keystore": {"default_location": "${KB_STORE}"}})
        assert BackendConfig(config_file=path).settings.keystore.default_location == "/srv/keys"

    def test_default_used(self, tmp_path, monkeypatch):
        monkeypatch.delenv("KB_LEVEL", raising=False)
        path = _write(tmp_path, {"logging": {"level": "${KB_LEVEL:-DEBUG}"}})
        assert BackendConfig(config_file=path).settings.logging.level == "DEBUG"

    def test_unset_without_default(self, tmp_path, monkeypatch):
        monkeypatch.delenv("KB_MISSING", raising=False)
        path = _write(tmp_path, {"keystore": {"default_location": "${KB_MISSING}"}})
        with pytest.raises(ConfigValidationError, match="KB_MISSING"):
            BackendConfig(config_file=path)


class TestValidation:
    def test_schema_rejects_unknown_section(self, tmp_path):
        path = _write(tmp_path, {"server": {"port": 1}})
        with pytest.raises(ConfigValidationError, match="server"):
            BackendConfig(config_file=path)

    def test_schema_rejects_bad_hash(self, tmp_path):
        path = _write(tmp_path, {"crypto": {"hash_algorithm": "md5"}})
        with pytest.raises(ConfigValidationError, match="hash_algorithm"):
            BackendConfig(config_file=path)

    def test_empty_staging_suffix(self, tmp_path):
        path = _write(tmp_path, {"keystore": {"staging_suffix": ""}})
        with pytest.raises(ConfigValidationError, match="staging_suffix must not be empty"):
            BackendConfig(config_file=path)

    def test_suffix_with_separator(self, tmp_path):
        path = _write(tmp_path, {"keystore": {"staging_suffix": "/staged"}})
        with pytest.raises(ConfigValidationError, match="path separator"):
            BackendConfig(config_file=path)

    def test_unknown_provider(self, tmp_path):
        path = _write(tmp_path, {"crypto": {"provider": "pkcs11"}})
        with pytest.raises(ConfigValidationError, match="crypto.provider 'pkcs11' is unknown"):
            BackendConfig(config_file=path)

    def test_ext_provider_path_checked(self, tmp_path):
        path = _write(tmp_path, {"crypto": {"provider": "ext:NoModule"}})
        with pytest.raises(ConfigValidationError, match="fully qualified"):
            BackendConfig(config_file=path)

    def test_ext_provider_accepted(self, tmp_path):
        path = _write(tmp_path, {"crypto": {"provider": "ext:corp.pki.HsmProvider"}})
        assert BackendConfig(config_file=path).settings.crypto.provider == "ext:corp.pki.HsmProvider"

    def test_rsa_bounds(self, tmp_path):
        path = _write(tmp_path, {"crypto": {"min_rsa_key_size": 4096, "max_rsa_key_size": 2048}})
        with pytest.raises(ConfigValidationError, match="min_rsa_key_size"):
            BackendConfig(config_file=path)

    def test_errors_collected(self, tmp_path):
        path = _write(
            tmp_path,
            {
                "keystore": {"staging_suffix": ""},
                "crypto": {"provider": "pkcs11"},
            },
        )
        with pytest.raises(ConfigValidationError) as exc_info:
            BackendConfig(config_file=path)
        assert len(exc_info.value.errors) == 2
