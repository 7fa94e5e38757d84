"""
src/diastudio/generate_cli.py

`diastudio generate`: submit text (+ optional audio prompt) to a running proxy.
`diastudio presets`: show parameter defaults and presets.

Registrar:
- diastudio.main calls register_generate_subcommand(subparsers).
"""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path
from typing import Any, Dict

from diastudio.client import DEFAULT_SERVER, DiaStudioClient, fetch_audio_bytes, guess_extension
from diastudio.params import DEFAULT_TEXT, PARAMS, default_params, param_table
from diastudio.presets import apply_preset, list_presets, presets_payload


def _stable_json_dumps(obj: Any) -> str:
    return json.dumps(obj, sort_keys=True, ensure_ascii=False, separators=(",", ":"))


def _emit(obj: Dict[str, Any]) -> None:
    sys.stdout.write(_stable_json_dumps(obj) + "\n")


def resolve_params(args: argparse.Namespace) -> Dict[str, Any]:
    """defaults <- preset <- explicit --flags"""
    params = default_params()
    if getattr(args, "preset", None):
        params = apply_preset(params, args.preset)
    for p in PARAMS:
        v = getattr(args, p.name, None)
        if v is not None:
            params[p.name] = v
    return params


def cmd_generate(args: argparse.Namespace) -> int:
    text = args.text if args.text is not None else DEFAULT_TEXT
    if args.text_file:
        text = Path(args.text_file).expanduser().read_text(encoding="utf-8")

    audio_prompt = Path(args.audio_prompt).expanduser() if args.audio_prompt else None
    if audio_prompt is not None and not audio_prompt.is_file():
        _emit({"ok": False, "reason": "audio_prompt_not_found", "path": str(audio_prompt)})
        return 2

    params = resolve_params(args)
    client = DiaStudioClient(args.server)
    result = client.generate(text, params, audio_prompt=audio_prompt)

    if not result.success:
        _emit({"ok": False, "status": result.status_code, **result.to_payload()})
        return 2

    out: Dict[str, Any] = {"ok": True, "params": params}
    url = result.audio_url or ""
    out["audio_url"] = url if not url.startswith("data:") else url[:64] + "..."

    if args.out:
        dest = Path(args.out).expanduser()
        if dest.is_dir():
            dest = dest / f"dialogue{guess_extension(url)}"
        dest.parent.mkdir(parents=True, exist_ok=True)
        dest.write_bytes(fetch_audio_bytes(url))
        out["out"] = str(dest)

    _emit(out)
    return 0


def cmd_presets(args: argparse.Namespace) -> int:
    if args.json:
        _emit({"parameters": param_table(), "presets": presets_payload()})
        return 0
    for p in PARAMS:
        print(f"{p.name:18s} default={p.default:<6g} range={p.min:g}..{p.max:g} step={p.step:g}")
    print("")
    for pr in presets_payload():
        kv = ", ".join(f"{k}={v:g}" for k, v in sorted(pr["overrides"].items()))
        print(f"{pr['name']:10s} {pr['label']:14s} {kv}")
    return 0


def register_generate_subcommand(subparsers: argparse._SubParsersAction) -> None:
    g = subparsers.add_parser("generate", help="Generate dialogue audio through a running proxy")
    g.add_argument("--text", default=None, help="Dialogue script ([S1]/[S2] speaker tags)")
    g.add_argument("--text-file", dest="text_file", default=None, help="Read the script from a file")
    g.add_argument("--audio-prompt", dest="audio_prompt", default=None, help="Reference audio clip")
    g.add_argument("--preset", default=None, choices=list_presets(), help="Apply a parameter preset")
    for p in PARAMS:
        g.add_argument(
            f"--{p.name.replace('_', '-')}",
            dest=p.name,
            type=int if p.kind == "int" else float,
            default=None,
            help=f"{p.label} (default {p.default:g}, advisory range {p.min:g}..{p.max:g})",
        )
    g.add_argument("--server", default=DEFAULT_SERVER, help="Proxy base URL")
    g.add_argument("--out", default=None, help="Save the generated audio to this file or directory")
    g.set_defaults(func=cmd_generate)

    pr = subparsers.add_parser("presets", help="Show parameter defaults and presets")
    pr.add_argument("--json", action="store_true")
    pr.set_defaults(func=cmd_presets)
