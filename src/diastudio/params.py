"""
src/diastudio/params.py

Generation parameters: the advisory parameter table shown to users, the
permissive form-value parsers, and the mapping of a GenerationRequest onto
the remote model's input schema.

Bounds here are UI affordances. Nothing in the permissive path enforces them;
validate_request() is only used when strict mode is switched on.
"""

from __future__ import annotations

import base64
import math
import re
from dataclasses import asdict, dataclass
from typing import Any, Dict, List, Mapping, Optional

from diastudio.base import AudioPrompt, GenerationRequest


class ParameterError(ValueError):
    """Raised by strict validation when a submitted field is unusable."""


@dataclass(frozen=True)
class ParamSpec:
    name: str
    label: str
    kind: str  # "int" | "float"
    default: float
    min: float
    max: float
    step: float


PARAMS: List[ParamSpec] = [
    ParamSpec("max_new_tokens", "Max New Tokens", "int", 860, 100, 3072, 1),
    ParamSpec("cfg_scale", "CFG Scale", "float", 1.0, 0.1, 10, 0.1),
    ParamSpec("temperature", "Temperature", "float", 1.0, 0.1, 2, 0.1),
    ParamSpec("top_p", "Top P", "float", 0.8, 0.1, 1, 0.1),
    ParamSpec("cfg_filter_top_k", "CFG Filter Top K", "int", 15, 1, 50, 1),
    ParamSpec("speed_factor", "Speed Factor", "float", 0.8, 0.1, 2, 0.1),
]

PARAM_NAMES = [p.name for p in PARAMS]

DEFAULT_TEXT = (
    "[S1] Dia is an open weights text to dialogue model. [S2] You get full control over scripts and voices. "
    "[S1] Wow. Amazing. (laughs) [S2] Try it now on Git hub or Hugging Face."
)

_INT_PREFIX = re.compile(r"^\s*([+-]?[0-9]+)")
_FLOAT_PREFIX = re.compile(r"^\s*([+-]?(?:[0-9]+\.?[0-9]*|\.[0-9]+)(?:[eE][+-]?[0-9]+)?)")


def get_param_spec(name: str) -> ParamSpec:
    for p in PARAMS:
        if p.name == name:
            return p
    raise KeyError(name)


def default_params() -> Dict[str, Any]:
    return {p.name: (int(p.default) if p.kind == "int" else float(p.default)) for p in PARAMS}


def param_table() -> List[Dict[str, Any]]:
    return [asdict(p) for p in PARAMS]


# ---------------------------------------------------------------------------
# Permissive parsing
# ---------------------------------------------------------------------------

def parse_int(raw: Any) -> Any:
    """Leading-integer parse. "12.7" -> 12, "abc" -> nan, None -> nan."""
    if isinstance(raw, bool):
        return float("nan")
    if isinstance(raw, int):
        return raw
    m = _INT_PREFIX.match(str(raw)) if raw is not None else None
    if not m:
        return float("nan")
    return int(m.group(1))


def parse_float(raw: Any) -> float:
    """Leading-float parse. "0.8x" -> 0.8, "" -> nan, None -> nan."""
    if isinstance(raw, bool):
        return float("nan")
    if isinstance(raw, (int, float)):
        return float(raw)
    if raw is None:
        return float("nan")
    s = str(raw).strip()
    if s.lstrip("+-").startswith("Infinity"):
        return float("-inf") if s.startswith("-") else float("inf")
    m = _FLOAT_PREFIX.match(s)
    if not m:
        return float("nan")
    return float(m.group(1))


def parse_param(name: str, raw: Any) -> Any:
    spec = get_param_spec(name)
    return parse_int(raw) if spec.kind == "int" else parse_float(raw)


def is_number(v: Any) -> bool:
    return isinstance(v, (int, float)) and not isinstance(v, bool) and math.isfinite(v)


def build_request(
    fields: Mapping[str, Any],
    *,
    audio_prompt: Optional[AudioPrompt] = None,
) -> GenerationRequest:
    text = fields.get("text_input")
    return GenerationRequest(
        text=None if text is None else str(text),
        audio_prompt=audio_prompt,
        **{name: parse_param(name, fields.get(name)) for name in PARAM_NAMES},
    )


def validate_request(req: GenerationRequest) -> None:
    problems: List[str] = []
    if not (req.text or "").strip():
        problems.append("text_input is required")
    for p in PARAMS:
        v = getattr(req, p.name)
        if not is_number(v):
            problems.append(f"{p.name} is not a number")
    if problems:
        raise ParameterError("; ".join(problems))


# ---------------------------------------------------------------------------
# Remote input schema
# ---------------------------------------------------------------------------

def audio_data_uri(data: bytes, mime: str) -> str:
    b64 = base64.b64encode(data).decode("ascii")
    return f"data:{mime};base64,{b64}"


def build_model_input(req: GenerationRequest) -> Dict[str, Any]:
    out: Dict[str, Any] = {"text": req.text}
    for name in PARAM_NAMES:
        out[name] = getattr(req, name)
    if req.audio_prompt is not None:
        out["audio_prompt"] = audio_data_uri(req.audio_prompt.data, req.audio_prompt.mime)
    return out
