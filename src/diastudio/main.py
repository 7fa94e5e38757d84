#!/usr/bin/env python3
from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import Any, List, Optional

from dotenv import load_dotenv

from diastudio.config import load_settings
from diastudio.generate_cli import register_generate_subcommand
from diastudio.logging_setup import setup_logging
from diastudio.play_cli import register_play_subcommand
from diastudio.serve_cli import register_serve_subcommand


def eprint(*args: Any) -> None:
    print(*args, file=sys.stderr)


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="diastudio", description="Text-to-dialogue generation studio")
    p.add_argument("--env", default=".env", help="Path to a .env file (optional)")
    p.add_argument("--log-level", dest="log_level", default=None, help="DEBUG/INFO/WARNING (default: DIASTUDIO_LOG_LEVEL)")

    sub = p.add_subparsers(dest="cmd", required=True)

    register_serve_subcommand(sub)
    register_generate_subcommand(sub)
    register_play_subcommand(sub)

    return p


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    load_dotenv(args.env)

    settings = load_settings()
    log_dir = Path(settings.log_dir).expanduser() if settings.log_dir else None
    try:
        setup_logging(level=args.log_level or settings.log_level, log_dir=log_dir)
    except OSError as e:
        eprint(f"warning: file logging disabled: {e}")
        setup_logging(level=args.log_level or settings.log_level)

    return int(args.func(args))


if __name__ == "__main__":
    raise SystemExit(main())
