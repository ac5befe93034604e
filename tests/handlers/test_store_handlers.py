"""Tests for keybridge.handlers.store -- Inspect, Attach, Persist, ImportCertificate."""

from __future__ import annotations

import os
import stat
from unittest.mock import patch

import pytest

from keybridge.core.errors import MalformedRequest, MissingParameter, MoveError, ReadError, WriteError
from keybridge.core.requests import (
    AttachRequest,
    ImportCertificateRequest,
    InspectRequest,
    PersistRequest,
)
from keybridge.core.results import to_wire
from keybridge.core.types import ObjectKind
from keybridge.handlers.store import attach, import_certificate, inspect, persist


def _run(handler, request_cls, body, ctx):
    request = request_cls.parse(body, default_location=ctx.settings.keystore.default_location)
    return to_wire(handler(request, ctx))


# ===========================================================================
# Inspect
# ===========================================================================


class TestInspect:
    def test_absent_key(self, ctx, store):
        out = _run(inspect, InspectRequest, {"PrivateKeyName": "k.pem", "Location": str(store)}, ctx)
        assert out == {
            "PrivateKeyExists": False,
            "CertificateExists": False,
            "ChainExists": False,
            "CertificateRequestExists": False,
            "CertificateRequestTemplateExists": False,
            "TrustAnchorsExists": False,
            "EnrollmentID": "<unset>",
        }

    def test_every_kind_reported_without_names(self, ctx, store):
        out = _run(inspect, InspectRequest, {"Location": str(store)}, ctx)
        for kind in ObjectKind:
            assert out[kind.exists_attr] is False

    def test_present_objects(self, ctx, store):
        (store / "k.pem").write_text("KEY")
        (store / "c.pem").write_text("CERT")
        out = _run(
            inspect,
            InspectRequest,
            {
                "Location": str(store),
                "PrivateKeyName": "k.pem",
                "CertificateName": "c.pem",
                "ChainName": "chain.pem",
                "EnrollmentID": "enr-42",
            },
            ctx,
        )
        assert out["PrivateKeyExists"] is True
        assert out["CertificateExists"] is True
        assert out["ChainExists"] is False
        assert out["EnrollmentID"] == "enr-42"

    def test_mutable_context_looks_at_staged_path(self, ctx, store):
        (store / "k.pem").write_text("LIVE")
        body = {"Location": str(store), "PrivateKeyName": "k.pem", "Mutable": "true"}
        assert _run(inspect, InspectRequest, body, ctx)["PrivateKeyExists"] is False

        (store / "k.pem.staged").write_text("STAGED")
        assert _run(inspect, InspectRequest, body, ctx)["PrivateKeyExists"] is True

    def test_default_location(self, ctx, settings, tmp_path):
        default = tmp_path / "default-store"
        default.mkdir()
        (default / "c.pem").write_text("CERT")
        out = _run(inspect, InspectRequest, {"CertificateName": "c.pem"}, ctx)
        assert settings.keystore.default_location == str(default)
        assert out["CertificateExists"] is True


# ===========================================================================
# Attach
# ===========================================================================


class TestAttach:
    def test_reads_flagged_objects(self, ctx, store):
        (store / "c.pem").write_text("CERT-PEM")
        (store / "chain.pem").write_text("CHAIN-PEM")
        out = _run(
            attach,
            AttachRequest,
            {
                "Location": str(store),
                "CertificateExists": True,
                "CertificateName": "c.pem",
                "ChainExists": "false",
                "ChainName": "chain.pem",
            },
            ctx,
        )
        assert out == {"Certificate": "CERT-PEM"}

    def test_flag_without_name_skipped(self, ctx, store):
        out = _run(attach, AttachRequest, {"Location": str(store), "CertificateExists": True}, ctx)
        assert out == {}

    def test_flagged_but_absent_skipped(self, ctx, store):
        out = _run(
            attach,
            AttachRequest,
            {"Location": str(store), "PrivateKeyExists": "1", "PrivateKeyName": "k.pem"},
            ctx,
        )
        assert out == {}

    def test_staged_content_in_mutable_context(self, ctx, store):
        (store / "k.pem").write_text("LIVE")
        (store / "k.pem.staged").write_text("STAGED")
        out = _run(
            attach,
            AttachRequest,
            {
                "Location": str(store),
                "Mutable": "on",
                "PrivateKeyExists": True,
                "PrivateKeyName": "k.pem",
            },
            ctx,
        )
        assert out == {"PrivateKey": "STAGED"}

    def test_unreadable_object(self, ctx, store):
        (store / "c.pem").write_text("CERT")
        body = {"Location": str(store), "CertificateExists": True, "CertificateName": "c.pem"}
        with (
            patch("pathlib.Path.read_text", side_effect=PermissionError("denied")),
            pytest.raises(ReadError, match="Failed to read Certificate"),
        ):
            _run(attach, AttachRequest, body, ctx)


# ===========================================================================
# Persist
# ===========================================================================


class TestPersist:
    def test_writes_new_objects(self, ctx, store):
        out = _run(
            persist,
            PersistRequest,
            {
                "Location": str(store),
                "Certificate": "CERT",
                "CertificateName": "c.pem",
                "Chain": "CHAIN",
                "ChainName": "sub/chain.pem",
            },
            ctx,
        )
        assert out == {}
        assert (store / "c.pem").read_text() == "CERT"
        assert (store / "sub" / "chain.pem").read_text() == "CHAIN"

    def test_existing_object_not_overwritten(self, ctx, store):
        (store / "c.pem").write_text("ORIGINAL")
        out = _run(
            persist,
            PersistRequest,
            {"Location": str(store), "Certificate": "<PEM>", "CertificateName": "c.pem"},
            ctx,
        )
        assert out == {}
        assert (store / "c.pem").read_text() == "ORIGINAL"

    def test_idempotent(self, ctx, store):
        body = {"Location": str(store), "Certificate": "CERT", "CertificateName": "c.pem"}
        _run(persist, PersistRequest, body, ctx)
        _run(persist, PersistRequest, body, ctx)
        assert (store / "c.pem").read_text() == "CERT"

    def test_content_without_name_ignored(self, ctx, store):
        _run(persist, PersistRequest, {"Location": str(store), "Certificate": "CERT"}, ctx)
        assert list(store.iterdir()) == []

    def test_mutable_writes_staged(self, ctx, store):
        _run(
            persist,
            PersistRequest,
            {
                "Location": str(store),
                "Mutable": True,
                "Certificate": "CERT",
                "CertificateName": "c.pem",
            },
            ctx,
        )
        assert (store / "c.pem.staged").read_text() == "CERT"
        assert not (store / "c.pem").exists()

    @pytest.mark.skipif(os.name != "posix", reason="POSIX permissions")
    def test_private_key_mode(self, ctx, store):
        _run(
            persist,
            PersistRequest,
            {"Location": str(store), "PrivateKey": "KEY", "PrivateKeyName": "k.pem"},
            ctx,
        )
        mode = stat.S_IMODE((store / "k.pem").stat().st_mode)
        assert mode & 0o077 == 0

    def test_write_failure(self, ctx, store):
        body = {"Location": str(store), "Certificate": "CERT", "CertificateName": "c.pem"}
        with (
            patch("keybridge.handlers.store.os.open", side_effect=OSError("disk full")),
            pytest.raises(WriteError, match="Failed to write Certificate"),
        ):
            _run(persist, PersistRequest, body, ctx)

    def test_non_string_content_rejected(self, ctx, store):
        body = {"Location": str(store), "Certificate": True, "CertificateName": "c.pem"}
        with pytest.raises(MalformedRequest, match="Persist Certificate must be a string, got bool"):
            _run(persist, PersistRequest, body, ctx)
        assert not (store / "c.pem").exists()


# ===========================================================================
# ImportCertificate
# ===========================================================================


class TestImportCertificate:
    _NAMES = {
        "PrivateKeyName": "k.pem",
        "CertificateName": "c.pem",
        "ChainName": "chain.pem",
    }

    def test_noop_when_nothing_staged(self, ctx, store):
        out = _run(import_certificate, ImportCertificateRequest, {"Location": str(store), **self._NAMES}, ctx)
        assert out == {}
        assert list(store.iterdir()) == []

    def test_only_private_key_staged(self, ctx, store):
        (store / "k.pem.staged").write_text("NEW-KEY")
        out = _run(import_certificate, ImportCertificateRequest, {"Location": str(store), **self._NAMES}, ctx)
        assert out == {}
        assert (store / "k.pem").read_text() == "NEW-KEY"
        assert not (store / "k.pem.staged").exists()
        assert not (store / "c.pem").exists()

    def test_replaces_live_objects(self, ctx, store):
        for name in ("k.pem", "c.pem", "chain.pem"):
            (store / name).write_text("OLD")
            (store / f"{name}.staged").write_text("NEW")
        _run(import_certificate, ImportCertificateRequest, {"Location": str(store), **self._NAMES}, ctx)
        for name in ("k.pem", "c.pem", "chain.pem"):
            assert (store / name).read_text() == "NEW"
            assert not (store / f"{name}.staged").exists()

    def test_ignores_mutable_flag(self, ctx, store):
        (store / "c.pem.staged").write_text("NEW")
        _run(
            import_certificate,
            ImportCertificateRequest,
            {"Location": str(store), "Mutable": "true", **self._NAMES},
            ctx,
        )
        assert (store / "c.pem").read_text() == "NEW"

    @pytest.mark.parametrize("missing", ["CertificateName", "ChainName", "PrivateKeyName"])
    def test_every_name_required(self, ctx, store, missing):
        (store / "k.pem.staged").write_text("NEW")
        body = {"Location": str(store), **self._NAMES}
        del body[missing]
        with pytest.raises(MissingParameter, match=f"ImportCertificate requires {missing}"):
            _run(import_certificate, ImportCertificateRequest, body, ctx)
        assert (store / "k.pem.staged").exists()
        assert not (store / "k.pem").exists()

    def test_partial_import_then_resume(self, ctx, store):
        for name in ("k.pem", "c.pem", "chain.pem"):
            (store / f"{name}.staged").write_text(f"NEW-{name}")
        body = {"Location": str(store), **self._NAMES}

        real_replace = os.replace
        calls = []

        def flaky_replace(src, dst):
            calls.append(src)
            if len(calls) == 2:
                raise OSError("interrupted")
            return real_replace(src, dst)

        with (
            patch("keybridge.handlers.store.os.replace", side_effect=flaky_replace),
            pytest.raises(MoveError, match="Failed to move Certificate"),
        ):
            _run(import_certificate, ImportCertificateRequest, body, ctx)

        assert (store / "k.pem").read_text() == "NEW-k.pem"
        assert (store / "c.pem.staged").exists()
        assert (store / "chain.pem.staged").exists()

        _run(import_certificate, ImportCertificateRequest, body, ctx)
        assert (store / "c.pem").read_text() == "NEW-c.pem"
        assert (store / "chain.pem").read_text() == "NEW-chain.pem"
