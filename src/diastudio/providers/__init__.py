"""
src/diastudio/providers/__init__.py

Provider registry for DiaStudio.

Providers are selected by name (usually via DIASTUDIO_PROVIDER env var).
"""

from __future__ import annotations

from .base import Provider, ProviderError
from .registry import get_provider, list_providers

__all__ = [
    "ProviderError",
    "Provider",
    "get_provider",
    "list_providers",
]
