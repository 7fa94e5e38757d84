"""
src/diastudio/proxy.py

HTTP proxy between the browser form and the remote text-to-dialogue model.

POST /api/generate-audio
  multipart fields: text_input, audio_prompt_input (optional file),
  max_new_tokens, cfg_scale, temperature, top_p, cfg_filter_top_k, speed_factor
  200 {"success": true, "audioDataUrl": "..."}
  500 {"success": false, "error": "...", "details": "..."}

Numeric fields are parsed permissively and forwarded even when they do not
parse (NaN). With Settings.strict_params they are rejected with 400 instead.
"""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Any, Optional

from fastapi import FastAPI, Request
from fastapi.responses import FileResponse, JSONResponse
from starlette.datastructures import UploadFile

from diastudio.base import AudioPrompt, GenerationRequest, GenerationResult
from diastudio.config import Settings, load_settings
from diastudio.output import decode_output
from diastudio.params import (
    ParameterError,
    build_model_input,
    build_request,
    param_table,
    validate_request,
)
from diastudio.presets import presets_payload
from diastudio.providers import Provider, get_provider

log = logging.getLogger(__name__)

STATIC_DIR = Path(__file__).parent / "static"

GENERATE_FAILED = "Failed to generate audio"
INVALID_PARAMS = "Invalid generation parameters"


async def read_audio_prompt(value: Any) -> Optional[AudioPrompt]:
    """
    Returns None when no usable file part was sent. Browsers submit an empty
    part (no filename, no bytes) when the file input was left blank.
    """
    if not isinstance(value, UploadFile):
        return None
    data = await value.read()
    if not data and not (value.filename or ""):
        return None
    mime = (value.content_type or "").strip() or "application/octet-stream"
    return AudioPrompt(data=data, mime=mime, filename=value.filename or "")


async def read_generation_form(request: Request) -> GenerationRequest:
    form = await request.form()
    prompt = await read_audio_prompt(form.get("audio_prompt_input"))
    fields = {k: v for k, v in form.items() if not isinstance(v, UploadFile)}
    return build_request(fields, audio_prompt=prompt)


def generate(req: GenerationRequest, provider: Provider) -> GenerationResult:
    """Blocking: builds the model input, calls the provider, decodes the output."""
    model_input = build_model_input(req)
    log.info("%s input: %s", provider.name, model_input)

    output = provider.run(model_input)
    log.info("%s output: %r", provider.name, output)

    try:
        decoded = decode_output(output)
    except Exception:
        log.error("unrecognized %s output shape: %r", provider.name, output)
        raise
    log.debug("decoded output shape=%s", decoded.shape)
    return GenerationResult.ok(decoded.url)


def create_app(settings: Optional[Settings] = None, provider: Optional[Provider] = None) -> FastAPI:
    settings = settings or load_settings()
    app = FastAPI(title="DiaStudio")
    app.state.settings = settings
    app.state.provider = provider

    def _provider() -> Provider:
        # Resolved lazily so a missing API token fails the request, not startup.
        if app.state.provider is None:
            app.state.provider = get_provider(settings.provider, settings)
        return app.state.provider

    @app.get("/")
    async def index() -> FileResponse:
        return FileResponse(STATIC_DIR / "index.html", media_type="text/html")

    @app.get("/healthz")
    async def healthz() -> dict:
        return {"ok": True, "provider": settings.provider}

    @app.get("/api/parameters")
    async def parameters() -> dict:
        return {"parameters": param_table()}

    @app.get("/api/presets")
    async def presets() -> dict:
        return {"presets": presets_payload()}

    @app.post("/api/generate-audio")
    async def generate_audio(request: Request) -> JSONResponse:
        try:
            req = await read_generation_form(request)
            if settings.strict_params:
                validate_request(req)
            result = await asyncio.to_thread(generate, req, _provider())
        except ParameterError as e:
            log.warning("rejected generation request: %s", e)
            result = GenerationResult.fail(INVALID_PARAMS, str(e), status=400)
        except Exception as e:
            log.exception("Error generating audio: %s", e)
            result = GenerationResult.fail(GENERATE_FAILED, str(e) or type(e).__name__)
        return JSONResponse(result.to_payload(), status_code=result.status_code)

    return app
