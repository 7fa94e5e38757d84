from __future__ import annotations

from typing import List, Optional

from diastudio.config import Settings, load_settings

from .base import Provider, ProviderError


def list_providers() -> List[str]:
    # Keep stable ordering for CLI/help output
    return [
        "replicate",
        "stub",
    ]


def get_provider(name: str | None = None, settings: Optional[Settings] = None) -> Provider:
    settings = settings or load_settings()
    n = (name or settings.provider or "replicate").strip().lower()

    if n == "replicate":
        from .replicate_provider import ReplicateProvider

        if not settings.replicate_api_token:
            raise ProviderError(
                "Replicate provider not configured. Missing: REPLICATE_API_TOKEN. "
                "Set it and retry, or use DIASTUDIO_PROVIDER=stub."
            )
        return ReplicateProvider(
            api_token=settings.replicate_api_token,
            model=settings.replicate_model,
            api_base=settings.replicate_api_base,
            timeout=settings.timeout,
            poll_interval_s=settings.poll_interval_s,
        )

    if n == "stub":
        from .stub_provider import StubProvider

        return StubProvider()

    raise ProviderError(f"Unknown provider: {n}. Available: {', '.join(list_providers())}")
