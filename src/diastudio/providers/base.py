from __future__ import annotations

import abc
from typing import Any, Dict


class ProviderError(RuntimeError):
    """Raised when a provider cannot be constructed or fails generation."""


class Provider(abc.ABC):
    """Remote (or local) text-to-dialogue model.

    run() takes the model input schema built by diastudio.params.build_model_input
    and returns the raw output, whatever shape it has. Normalizing it into a URL
    is the caller's job (diastudio.output).
    """

    name: str

    @abc.abstractmethod
    def run(self, model_input: Dict[str, Any]) -> Any:
        raise NotImplementedError
