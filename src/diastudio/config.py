"""
src/diastudio/config.py

Environment-driven settings.

The CLI calls load_dotenv() before load_settings(), so a local .env file can
supply any of these. Parsing is tolerant: garbage falls back to the default.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Optional, Tuple

DEFAULT_REPLICATE_MODEL = (
    "zsxkib/dia:2119e338ca5c0dacd3def83158d6c80d431f2ac1024146d8cca9220b74385599"
)
DEFAULT_REPLICATE_API_BASE = "https://api.replicate.com/v1"


def _env_str(name: str, default: str = "") -> str:
    v = os.environ.get(name)
    return (v if v is not None else default).strip()


def _env_int(name: str, default: int) -> int:
    v = (os.environ.get(name) or "").strip()
    if not v:
        return default
    try:
        return int(v)
    except Exception:
        return default


def _env_float(name: str, default: float) -> float:
    v = (os.environ.get(name) or "").strip()
    if not v:
        return default
    try:
        return float(v)
    except Exception:
        return default


def _env_bool(name: str, default: bool = False) -> bool:
    v = (os.environ.get(name) or "").strip().lower()
    if not v:
        return default
    return v in ("1", "true", "yes", "on")


@dataclass(frozen=True)
class Settings:
    provider: str = "replicate"

    replicate_api_token: str = ""
    replicate_model: str = DEFAULT_REPLICATE_MODEL
    replicate_api_base: str = DEFAULT_REPLICATE_API_BASE

    connect_timeout_s: float = 10.0
    read_timeout_s: float = 300.0
    poll_interval_s: float = 1.0

    # Reject malformed numeric form fields with 400 instead of forwarding NaN.
    strict_params: bool = False

    host: str = "127.0.0.1"
    port: int = 8000

    log_level: str = "INFO"
    log_dir: Optional[str] = None

    @property
    def timeout(self) -> Tuple[float, float]:
        """requests timeout tuple: (connect, read)."""
        return (self.connect_timeout_s, self.read_timeout_s)


def load_settings() -> Settings:
    return Settings(
        provider=(_env_str("DIASTUDIO_PROVIDER", "replicate") or "replicate").lower(),
        replicate_api_token=_env_str("REPLICATE_API_TOKEN"),
        replicate_model=_env_str("DIASTUDIO_REPLICATE_MODEL", DEFAULT_REPLICATE_MODEL) or DEFAULT_REPLICATE_MODEL,
        replicate_api_base=(
            _env_str("DIASTUDIO_REPLICATE_API_BASE", DEFAULT_REPLICATE_API_BASE) or DEFAULT_REPLICATE_API_BASE
        ).rstrip("/"),
        connect_timeout_s=max(0.1, _env_float("DIASTUDIO_CONNECT_TIMEOUT", 10.0)),
        read_timeout_s=max(0.1, _env_float("DIASTUDIO_READ_TIMEOUT", 300.0)),
        poll_interval_s=max(0.0, _env_float("DIASTUDIO_POLL_INTERVAL", 1.0)),
        strict_params=_env_bool("DIASTUDIO_STRICT_PARAMS", False),
        host=_env_str("DIASTUDIO_HOST", "127.0.0.1") or "127.0.0.1",
        port=_env_int("DIASTUDIO_PORT", 8000),
        log_level=(_env_str("DIASTUDIO_LOG_LEVEL", "INFO") or "INFO").upper(),
        log_dir=_env_str("DIASTUDIO_LOG_DIR") or None,
    )
