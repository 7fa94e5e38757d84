#!/usr/bin/env python3
"""
src/diastudio/serve_cli.py

`diastudio serve`: run the generation proxy (FastAPI app) under uvicorn.

Registrar:
- diastudio.main calls register_serve_subcommand(subparsers).
"""

from __future__ import annotations

import argparse
import dataclasses
import json
import sys
from typing import Any

from diastudio.config import load_settings
from diastudio.providers import ProviderError, get_provider, list_providers


def _stable_json_dumps(obj: Any) -> str:
    return json.dumps(obj, sort_keys=True, ensure_ascii=False, separators=(",", ":"))


def cmd_serve(args: argparse.Namespace) -> int:
    import uvicorn

    from diastudio.proxy import create_app

    settings = load_settings()
    overrides = {}
    if getattr(args, "host", None):
        overrides["host"] = str(args.host)
    if getattr(args, "port", None):
        overrides["port"] = int(args.port)
    if getattr(args, "provider", None):
        overrides["provider"] = str(args.provider).strip().lower()
    if getattr(args, "strict", False):
        overrides["strict_params"] = True
    settings = dataclasses.replace(settings, **overrides)

    # Fail fast on an unknown provider name; a missing API token is reported per request.
    provider = None
    try:
        provider = get_provider(settings.provider, settings)
    except ProviderError as e:
        if settings.provider not in list_providers():
            sys.stdout.write(_stable_json_dumps({"ok": False, "reason": "bad_provider", "error": str(e)}) + "\n")
            return 2
        sys.stderr.write(f"warning: {e}\n")

    app = create_app(settings, provider)

    sys.stdout.write(_stable_json_dumps({
        "ok": True,
        "provider": settings.provider,
        "strict_params": settings.strict_params,
        "url": f"http://{settings.host}:{settings.port}/",
    }) + "\n")
    sys.stdout.flush()

    uvicorn.run(app, host=settings.host, port=settings.port, log_level=settings.log_level.lower())
    return 0


def register_serve_subcommand(subparsers: argparse._SubParsersAction) -> None:
    serve = subparsers.add_parser("serve", help="Run the generation proxy (HTTP)")
    serve.add_argument("--host", default=None, help="Bind host (default: DIASTUDIO_HOST or 127.0.0.1)")
    serve.add_argument("--port", default=None, type=int, help="Bind port (default: DIASTUDIO_PORT or 8000)")
    serve.add_argument("--provider", default=None, choices=list_providers(), help="Model provider")
    serve.add_argument("--strict", action="store_true", help="Reject malformed numeric fields with 400")
    serve.set_defaults(func=cmd_serve)
