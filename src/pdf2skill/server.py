"""HTTP upload front-end for the skill-pack compiler.

This FastAPI app:
- accepts PDF uploads on ``POST /api/compile``,
- compiles them in-process under a per-name lock,
- answers with the pack's zip and discards the uploads on every path,
- sweeps expired outputs before each compile.

Configuration is read from environment variables (see ``load_settings``).
"""

from __future__ import annotations

import logging
import os
import shutil
import tempfile
from dataclasses import dataclass
from pathlib import Path
from urllib.parse import quote

from fastapi import FastAPI, File, Form, Request, UploadFile
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, Response

from . import extract_text
from .compiler import CompileConfig, SourceText, compile_sources, sanitize_skill_name
from .errors import CompileError
from .keywords import resolve_language_mode
from .render import write_pack
from .store import OutputStore

logger = logging.getLogger(__name__)

DEFAULT_SKILL_NAME = "pdf-skill-pack"
COPY_BUFFER_BYTES = 1024 * 1024


@dataclass(frozen=True)
class Settings:
    """Server configuration."""
    output_dir: Path
    upload_dir: Path
    compile_token: str = ""
    output_ttl_hours: int = 24
    max_upload_mb: int = 100
    max_upload_files: int = 10


def _env_int(name: str, default: int) -> int:
    raw = (os.environ.get(name) or "").strip()
    if not raw:
        return int(default)
    try:
        return int(raw)
    except ValueError:
        return int(default)


def load_settings() -> Settings:
    """Read settings from ``PDF2SKILL_*``, ``COMPILE_TOKEN``, ``OUTPUT_TTL_HOURS`` and ``MAX_UPLOAD_*``."""
    cwd = Path.cwd()
    return Settings(
        output_dir=Path(os.environ.get("PDF2SKILL_OUTPUT_DIR", str(cwd / "web-output"))).expanduser(),
        upload_dir=Path(os.environ.get("PDF2SKILL_UPLOAD_DIR", str(cwd / "tmp-uploads"))).expanduser(),
        compile_token=(os.environ.get("COMPILE_TOKEN") or "").strip(),
        output_ttl_hours=_env_int("OUTPUT_TTL_HOURS", 24),
        max_upload_mb=_env_int("MAX_UPLOAD_MB", 100),
        max_upload_files=_env_int("MAX_UPLOAD_FILES", 10),
    )


class ApiError(Exception):
    """An error answered as ``{"error": message}`` with the given status."""

    def __init__(self, status_code: int, message: str):
        super().__init__(message)
        self.status_code = status_code
        self.message = message


def _parse_int(value: str | None, default: int) -> int:
    try:
        return int(str(value).strip())
    except (TypeError, ValueError):
        return default


def is_pdf_upload(upload: UploadFile) -> bool:
    name = (upload.filename or "").lower()
    content_type = (upload.content_type or "").lower()
    return name.endswith(".pdf") and "pdf" in content_type


def content_disposition(filename: str) -> str:
    """Attachment header with an ASCII fallback and the UTF-8 name for CJK slugs."""
    fallback = filename if filename.isascii() else "skill-pack.zip"
    return f"attachment; filename=\"{fallback}\"; filename*=UTF-8''{quote(filename)}"


def _save_upload(upload: UploadFile, target: Path, limit_bytes: int) -> None:
    written = 0
    with open(target, "wb") as out:
        while True:
            block = upload.file.read(COPY_BUFFER_BYTES)
            if not block:
                break
            written += len(block)
            if written > limit_bytes:
                raise ApiError(413, f"File too large: {upload.filename}")
            out.write(block)


def create_app(settings: Settings | None = None) -> FastAPI:
    """Build the FastAPI app around an OutputStore rooted at ``settings.output_dir``."""
    settings = settings or load_settings()
    store = OutputStore(settings.output_dir, ttl_hours=settings.output_ttl_hours)

    app = FastAPI(title="pdf2skill")
    app.state.settings = settings
    app.state.store = store

    @app.exception_handler(ApiError)
    async def _api_error(_request: Request, exc: ApiError) -> JSONResponse:
        return JSONResponse(status_code=exc.status_code, content={"error": exc.message})

    @app.exception_handler(RequestValidationError)
    async def _invalid_request(_request: Request, exc: RequestValidationError) -> JSONResponse:
        errors = exc.errors()
        detail = errors[0].get("msg", "malformed form") if errors else "malformed form"
        return JSONResponse(status_code=400, content={"error": f"Invalid request: {detail}"})

    # Registered first so it runs inside _no_store_api; checked before the
    # body is parsed.
    @app.middleware("http")
    async def _require_token(request: Request, call_next):
        if settings.compile_token and request.url.path.startswith("/api/"):
            candidate = (
                request.headers.get("x-compile-token")
                or request.query_params.get("token")
                or ""
            ).strip()
            if candidate != settings.compile_token:
                return JSONResponse(status_code=401, content={"error": "Unauthorized"})
        return await call_next(request)

    @app.middleware("http")
    async def _no_store_api(request: Request, call_next):
        response = await call_next(request)
        if request.url.path.startswith("/api/"):
            response.headers["Cache-Control"] = "no-store"
        return response

    @app.get("/health")
    def health() -> dict[str, bool]:
        return {"ok": True}

    @app.post("/api/compile")
    def compile_upload(
        pdfs: list[UploadFile] | None = File(None),
        name: str | None = Form(None),
        lang: str | None = Form(None),
        maxChunks: str | None = Form(None),
        minScore: str | None = Form(None),
    ) -> Response:
        store.sweep()

        files = pdfs or []
        if not files:
            raise ApiError(400, "Please upload at least one PDF file.")
        if len(files) > settings.max_upload_files:
            raise ApiError(400, f"Too many files: at most {settings.max_upload_files} allowed.")
        for upload in files:
            if not is_pdf_upload(upload):
                raise ApiError(400, f"Invalid file type: {upload.filename}. Only PDF is allowed.")

        skill_name = sanitize_skill_name(name or DEFAULT_SKILL_NAME)
        if not skill_name:
            raise ApiError(400, "Skill name is invalid.")

        max_chunks = _parse_int(maxChunks, 24)
        if max_chunks < 1:
            raise ApiError(400, "maxChunks must be a positive integer.")

        config = CompileConfig(
            skill_name=skill_name,
            language_mode=resolve_language_mode(lang),
            max_chunks=max_chunks,
            min_score=_parse_int(minScore, 55),
        )

        settings.upload_dir.mkdir(parents=True, exist_ok=True)
        request_dir = Path(tempfile.mkdtemp(prefix="upload-", dir=settings.upload_dir))
        try:
            limit_bytes = settings.max_upload_mb * 1024 * 1024
            sources: list[SourceText] = []
            for idx, upload in enumerate(files):
                target = request_dir / f"{idx:02d}.pdf"
                _save_upload(upload, target, limit_bytes)
                sources.append(SourceText(name=upload.filename or target.name, text=extract_text(target)))

            with store.lock(skill_name) as root:
                pack = compile_sources(sources, config)
                result = write_pack(pack, root)
                payload = result.zip_path.read_bytes()
        except (CompileError, RuntimeError) as e:
            # pymupdf reports unreadable PDFs as RuntimeError subclasses
            logger.error("Compile failed for %s: %s", skill_name, e)
            raise ApiError(500, str(e) or "Compile failed")
        finally:
            shutil.rmtree(request_dir, ignore_errors=True)

        logger.info("Compiled %s from %d upload(s)", skill_name, len(files))
        return Response(
            content=payload,
            media_type="application/zip",
            headers={"Content-Disposition": content_disposition(f"{skill_name}.zip")},
        )

    return app
