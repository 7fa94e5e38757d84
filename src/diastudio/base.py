from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional


@dataclass(frozen=True)
class AudioPrompt:
    data: bytes
    mime: str = "application/octet-stream"
    filename: str = ""


@dataclass(frozen=True)
class GenerationRequest:
    """One form submission, normalized.

    Numeric fields hold float("nan") when the submitted text did not parse;
    text may be None when the field was missing.
    """

    text: Optional[str]
    max_new_tokens: Any
    cfg_scale: float
    temperature: float
    top_p: float
    cfg_filter_top_k: Any
    speed_factor: float
    audio_prompt: Optional[AudioPrompt] = None


@dataclass(frozen=True)
class GenerationResult:
    """Either a playable audio URL or a failure message, never both."""

    audio_url: Optional[str] = None
    error: Optional[str] = None
    details: Optional[str] = None
    status: int = 200

    @classmethod
    def ok(cls, audio_url: str) -> "GenerationResult":
        return cls(audio_url=audio_url)

    @classmethod
    def fail(cls, error: str, details: Optional[str] = None, *, status: int = 500) -> "GenerationResult":
        return cls(error=error, details=details, status=status)

    @property
    def success(self) -> bool:
        return self.audio_url is not None and self.error is None

    @property
    def status_code(self) -> int:
        return self.status if not self.success else 200

    def to_payload(self) -> Dict[str, Any]:
        if self.success:
            return {"success": True, "audioDataUrl": self.audio_url}
        out: Dict[str, Any] = {"success": False, "error": self.error or "Unknown error"}
        if self.details is not None:
            out["details"] = self.details
        return out

    @classmethod
    def from_payload(cls, obj: Any, *, status: int = 200) -> "GenerationResult":
        if not isinstance(obj, dict):
            return cls.fail("Malformed response", f"expected a JSON object, got {type(obj).__name__}", status=status)
        if obj.get("success") is True and isinstance(obj.get("audioDataUrl"), str):
            return cls.ok(obj["audioDataUrl"])
        details = obj.get("details")
        return cls.fail(
            str(obj.get("error") or "Unknown error"),
            str(details) if details is not None else None,
            status=status if status >= 400 else 500,
        )
