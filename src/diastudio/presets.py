from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping


@dataclass(frozen=True)
class PresetSpec:
    name: str
    label: str
    overrides: Dict[str, float] = field(default_factory=dict)


_PRESETS: Dict[str, PresetSpec] = {
    "natural": PresetSpec(
        name="natural",
        label="Natural",
        overrides={"temperature": 0.7, "top_p": 0.9, "cfg_scale": 1.5},
    ),
    "creative": PresetSpec(
        name="creative",
        label="Creative",
        overrides={"temperature": 1.3, "top_p": 0.95, "cfg_scale": 2.5},
    ),
    "slow": PresetSpec(
        name="slow",
        label="Slow & Clear",
        overrides={"speed_factor": 0.7, "temperature": 0.5},
    ),
    "fast": PresetSpec(
        name="fast",
        label="Fast Pace",
        overrides={"speed_factor": 1.2, "temperature": 0.8},
    ),
}


def get_preset(name: str) -> PresetSpec:
    n = (name or "").strip().lower()
    p = _PRESETS.get(n)
    if p is None:
        raise KeyError(f"Unknown preset: {name!r}. Available: {', '.join(list_presets())}")
    return p


def list_presets() -> List[str]:
    return sorted(_PRESETS.keys())


def apply_preset(params: Mapping[str, Any], name: str) -> Dict[str, Any]:
    """Return a copy of params with the preset's keys overridden; other keys untouched."""
    out = dict(params)
    out.update(get_preset(name).overrides)
    return out


def presets_payload() -> List[Dict[str, Any]]:
    return [
        {"name": p.name, "label": p.label, "overrides": dict(p.overrides)}
        for p in (_PRESETS[k] for k in list_presets())
    ]
