"""Tests for the HTTP upload front-end."""

from __future__ import annotations

import io
import os
import time
import zipfile
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from conftest import build_pdf
from pdf2skill.server import Settings, content_disposition, create_app, load_settings


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    return Settings(output_dir=tmp_path / "out", upload_dir=tmp_path / "uploads")


@pytest.fixture
def client(settings) -> TestClient:
    return TestClient(create_app(settings))


def pdf_part(sample_pdf_bytes: bytes, filename: str = "pump-manual.pdf", content_type: str = "application/pdf"):
    return ("pdfs", (filename, sample_pdf_bytes, content_type))


# ── Settings Tests ────────────────────────────────────────────────


class TestLoadSettings:
    """Test environment-driven configuration."""

    def test_defaults(self, monkeypatch, tmp_path):
        for var in ("PDF2SKILL_OUTPUT_DIR", "PDF2SKILL_UPLOAD_DIR", "COMPILE_TOKEN",
                    "OUTPUT_TTL_HOURS", "MAX_UPLOAD_MB", "MAX_UPLOAD_FILES"):
            monkeypatch.delenv(var, raising=False)
        monkeypatch.chdir(tmp_path)
        settings = load_settings()
        assert settings.output_dir == tmp_path / "web-output"
        assert settings.upload_dir == tmp_path / "tmp-uploads"
        assert settings.compile_token == ""
        assert settings.output_ttl_hours == 24
        assert settings.max_upload_mb == 100
        assert settings.max_upload_files == 10

    def test_environment_overrides(self, monkeypatch, tmp_path):
        monkeypatch.setenv("PDF2SKILL_OUTPUT_DIR", str(tmp_path / "o"))
        monkeypatch.setenv("COMPILE_TOKEN", " secret ")
        monkeypatch.setenv("MAX_UPLOAD_FILES", "3")
        settings = load_settings()
        assert settings.output_dir == tmp_path / "o"
        assert settings.compile_token == "secret"
        assert settings.max_upload_files == 3

    def test_invalid_integer_uses_default(self, monkeypatch):
        monkeypatch.setenv("OUTPUT_TTL_HOURS", "soon")
        assert load_settings().output_ttl_hours == 24


class TestContentDisposition:
    def test_ascii_name(self):
        header = content_disposition("pump.zip")
        assert header == "attachment; filename=\"pump.zip\"; filename*=UTF-8''pump.zip"

    def test_cjk_name_has_ascii_fallback(self):
        header = content_disposition("液压.zip")
        assert 'filename="skill-pack.zip"' in header
        assert "filename*=UTF-8''%E6%B6%B2%E5%8E%8B.zip" in header
        header.encode("latin-1")


# ── Endpoint Tests ────────────────────────────────────────────────


class TestHealth:
    def test_health(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json() == {"ok": True}


class TestCompileEndpoint:
    """Test successful compiles."""

    def test_returns_zip(self, client, settings, sample_pdf_bytes):
        response = client.post(
            "/api/compile",
            files=[pdf_part(sample_pdf_bytes)],
            data={"name": "Pump Manual", "lang": "en", "maxChunks": "8", "minScore": "60"},
        )
        assert response.status_code == 200
        assert response.headers["content-type"] == "application/zip"
        assert 'filename="pump-manual.zip"' in response.headers["content-disposition"]
        assert response.headers["cache-control"] == "no-store"

        with zipfile.ZipFile(io.BytesIO(response.content)) as zf:
            assert "SKILL.md" in zf.namelist()
            index = zf.read("skills/index.md").decode("utf-8")
        assert "Routing score cutoff: 60" in index
        assert (settings.output_dir / "pump-manual.zip").read_bytes() == response.content
        assert (settings.output_dir / "pump-manual" / "SKILL.md").is_file()

    def test_uploads_removed_after_compile(self, client, settings, sample_pdf_bytes):
        client.post("/api/compile", files=[pdf_part(sample_pdf_bytes)], data={"name": "pump"})
        assert list(settings.upload_dir.iterdir()) == []

    def test_default_name(self, client, sample_pdf_bytes):
        response = client.post("/api/compile", files=[pdf_part(sample_pdf_bytes)])
        assert response.status_code == 200
        assert 'filename="pdf-skill-pack.zip"' in response.headers["content-disposition"]

    def test_cjk_name(self, client, settings, sample_pdf_bytes):
        response = client.post(
            "/api/compile", files=[pdf_part(sample_pdf_bytes)], data={"name": "液压 手册"}
        )
        assert response.status_code == 200
        assert "filename*=UTF-8''" in response.headers["content-disposition"]
        assert (settings.output_dir / "液压-手册.zip").is_file()

    def test_multiple_files(self, client, sample_pdf_bytes):
        response = client.post(
            "/api/compile",
            files=[pdf_part(sample_pdf_bytes, "a.pdf"), pdf_part(sample_pdf_bytes, "b.pdf")],
            data={"name": "pair"},
        )
        assert response.status_code == 200
        with zipfile.ZipFile(io.BytesIO(response.content)) as zf:
            excerpt = zf.read("references/source_excerpt.md").decode("utf-8")
        assert "## Source: a.pdf" in excerpt
        assert "## Source: b.pdf" in excerpt

    def test_non_numeric_max_chunks_uses_default(self, client, sample_pdf_bytes):
        response = client.post(
            "/api/compile",
            files=[pdf_part(sample_pdf_bytes)],
            data={"name": "pump", "maxChunks": "lots"},
        )
        assert response.status_code == 200

    def test_expired_outputs_swept(self, client, settings, sample_pdf_bytes):
        settings.output_dir.mkdir(parents=True)
        stale = settings.output_dir / "stale.zip"
        stale.write_bytes(b"zip")
        stamp = time.time() - 48 * 60 * 60
        os.utime(stale, (stamp, stamp))

        client.post("/api/compile", files=[pdf_part(sample_pdf_bytes)], data={"name": "pump"})

        assert not stale.exists()


class TestCompileAuth:
    """Test the optional compile token."""

    @pytest.fixture
    def client(self, tmp_path) -> TestClient:
        settings = Settings(
            output_dir=tmp_path / "out", upload_dir=tmp_path / "uploads", compile_token="secret"
        )
        return TestClient(create_app(settings))

    def test_missing_token(self, client, sample_pdf_bytes):
        response = client.post("/api/compile", files=[pdf_part(sample_pdf_bytes)])
        assert response.status_code == 401
        assert response.json() == {"error": "Unauthorized"}

    def test_wrong_token(self, client, sample_pdf_bytes):
        response = client.post(
            "/api/compile", files=[pdf_part(sample_pdf_bytes)], headers={"x-compile-token": "nope"}
        )
        assert response.status_code == 401

    def test_header_token(self, client, sample_pdf_bytes):
        response = client.post(
            "/api/compile", files=[pdf_part(sample_pdf_bytes)], headers={"x-compile-token": "secret"}
        )
        assert response.status_code == 200

    def test_query_token(self, client, sample_pdf_bytes):
        response = client.post("/api/compile?token=secret", files=[pdf_part(sample_pdf_bytes)])
        assert response.status_code == 200

    def test_token_checked_before_form_parsing(self, client):
        response = client.post("/api/compile", data={"pdfs": "not-a-file"})
        assert response.status_code == 401
        assert response.json() == {"error": "Unauthorized"}

    def test_unauthorized_not_cached(self, client):
        response = client.post("/api/compile", data={"name": "pump"})
        assert response.status_code == 401
        assert response.headers["cache-control"] == "no-store"

    def test_health_needs_no_token(self, client):
        assert client.get("/health").status_code == 200

    def test_malformed_form_with_token(self, client):
        response = client.post(
            "/api/compile", data={"pdfs": "not-a-file"}, headers={"x-compile-token": "secret"}
        )
        assert response.status_code == 400
        assert response.json()["error"].startswith("Invalid request")


class TestCompileErrors:
    """Test rejected requests and failed compiles."""

    def test_no_files(self, client):
        response = client.post("/api/compile", data={"name": "pump"})
        assert response.status_code == 400
        assert "at least one PDF" in response.json()["error"]

    def test_non_pdf_rejected(self, client):
        response = client.post(
            "/api/compile", files=[("pdfs", ("notes.txt", b"plain text", "text/plain"))]
        )
        assert response.status_code == 400
        assert "Only PDF is allowed" in response.json()["error"]

    def test_pdf_name_with_wrong_content_type_rejected(self, client, sample_pdf_bytes):
        response = client.post(
            "/api/compile",
            files=[pdf_part(sample_pdf_bytes, content_type="application/octet-stream")],
        )
        assert response.status_code == 400

    def test_too_many_files(self, tmp_path, sample_pdf_bytes):
        settings = Settings(
            output_dir=tmp_path / "out", upload_dir=tmp_path / "uploads", max_upload_files=1
        )
        client = TestClient(create_app(settings))
        response = client.post(
            "/api/compile",
            files=[pdf_part(sample_pdf_bytes, "a.pdf"), pdf_part(sample_pdf_bytes, "b.pdf")],
        )
        assert response.status_code == 400
        assert "Too many files" in response.json()["error"]

    def test_invalid_name(self, client, sample_pdf_bytes):
        response = client.post(
            "/api/compile", files=[pdf_part(sample_pdf_bytes)], data={"name": "!!!"}
        )
        assert response.status_code == 400
        assert response.json() == {"error": "Skill name is invalid."}

    def test_zero_max_chunks(self, client, sample_pdf_bytes):
        response = client.post(
            "/api/compile", files=[pdf_part(sample_pdf_bytes)], data={"maxChunks": "0"}
        )
        assert response.status_code == 400

    def test_oversized_upload(self, tmp_path, sample_pdf_bytes):
        settings = Settings(
            output_dir=tmp_path / "out", upload_dir=tmp_path / "uploads", max_upload_mb=0
        )
        client = TestClient(create_app(settings))
        response = client.post("/api/compile", files=[pdf_part(sample_pdf_bytes)])
        assert response.status_code == 413
        assert list(settings.upload_dir.iterdir()) == []

    def test_pdf_without_enough_text(self, client, settings):
        response = client.post(
            "/api/compile",
            files=[pdf_part(build_pdf(["Hi"]), "tiny.pdf")],
            data={"name": "tiny"},
        )
        assert response.status_code == 500
        assert "semantic chunks" in response.json()["error"]
        assert list(settings.upload_dir.iterdir()) == []
        assert not (settings.output_dir / "tiny.zip").exists()

    def test_errors_not_cached(self, client):
        response = client.post("/api/compile", data={"name": "pump"})
        assert response.headers["cache-control"] == "no-store"
