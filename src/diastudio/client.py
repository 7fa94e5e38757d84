"""
src/diastudio/client.py

Small HTTP client for a running DiaStudio proxy, plus helpers to fetch the
audio a generation points at (http(s) URL, data: URI, or local path).
"""

from __future__ import annotations

import base64
import mimetypes
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Tuple
from urllib.parse import unquote_to_bytes

import requests

from diastudio.base import GenerationResult

DEFAULT_SERVER = "http://127.0.0.1:8000"


def parse_data_uri(uri: str) -> Tuple[str, bytes]:
    """data:<mime>[;base64],<payload> -> (mime, bytes)"""
    if not uri.startswith("data:") or "," not in uri:
        raise ValueError("not a data: URI")
    header, payload = uri[5:].split(",", 1)
    parts = header.split(";")
    mime = parts[0] or "text/plain"
    if "base64" in parts[1:]:
        return mime, base64.b64decode(payload)
    return mime, unquote_to_bytes(payload)


def fetch_audio_bytes(src: str, *, timeout: Tuple[float, float] = (10.0, 120.0)) -> bytes:
    s = (src or "").strip()
    if not s:
        raise ValueError("empty audio source")
    if s.startswith("data:"):
        return parse_data_uri(s)[1]
    if s.startswith(("http://", "https://")):
        r = requests.get(s, timeout=timeout)
        r.raise_for_status()
        return r.content
    return Path(s).expanduser().read_bytes()


def guess_extension(src: str) -> str:
    if src.startswith("data:"):
        mime = src[5:].split(";", 1)[0].split(",", 1)[0]
        return mimetypes.guess_extension(mime) or ".bin"
    suffix = Path(src.split("?", 1)[0]).suffix
    return suffix or ".wav"


class DiaStudioClient:
    def __init__(
        self,
        base_url: str = DEFAULT_SERVER,
        *,
        timeout: Tuple[float, float] = (10.0, 600.0),
        session: Optional[requests.Session] = None,
    ) -> None:
        self.base_url = (base_url or DEFAULT_SERVER).strip().rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()

    def generate(
        self,
        text: str,
        params: Mapping[str, Any],
        *,
        audio_prompt: Optional[Path] = None,
    ) -> GenerationResult:
        data: Dict[str, str] = {"text_input": text}
        for k, v in params.items():
            data[k] = str(v)

        files = None
        if audio_prompt is not None:
            p = Path(audio_prompt).expanduser()
            mime = mimetypes.guess_type(p.name)[0] or "application/octet-stream"
            files = {"audio_prompt_input": (p.name, p.read_bytes(), mime)}

        try:
            r = self.session.post(
                f"{self.base_url}/api/generate-audio",
                data=data,
                files=files,
                timeout=self.timeout,
            )
        except requests.exceptions.RequestException as e:
            return GenerationResult.fail("Request failed", str(e), status=503)

        try:
            obj = r.json()
        except ValueError:
            snippet = (r.text or "").strip().replace("\n", " ")[:200]
            status = r.status_code if r.status_code >= 400 else 502
            return GenerationResult.fail("Non-JSON response", f"{r.status_code}: {snippet}", status=status)
        return GenerationResult.from_payload(obj, status=r.status_code)

    def presets(self) -> Any:
        r = self.session.get(f"{self.base_url}/api/presets", timeout=self.timeout)
        r.raise_for_status()
        return r.json().get("presets", [])
