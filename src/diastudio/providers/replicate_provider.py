from __future__ import annotations

import logging
import time
from typing import Any, Dict, Optional, Tuple

import requests

from diastudio.providers.base import Provider, ProviderError

log = logging.getLogger(__name__)

_PENDING = ("starting", "processing")
_TERMINAL_FAILED = ("failed", "canceled")


def _parse_model_ref(model: str) -> Tuple[str, Optional[str]]:
    """
    "owner/name:version" -> ("owner/name", "version")
    "owner/name"         -> ("owner/name", None)
    """
    ref = (model or "").strip()
    if not ref or "/" not in ref.split(":", 1)[0]:
        raise ProviderError(f"invalid Replicate model reference: {model!r} (expected owner/name[:version])")
    if ":" in ref:
        name, version = ref.split(":", 1)
        return name, (version or None)
    return ref, None


def _snippet(r: requests.Response) -> str:
    return (r.text or "").strip().replace("\n", " ")[:200]


class ReplicateProvider(Provider):
    """
    HTTP client for the Replicate predictions API.

    Notes:
      - One prediction per run(); no retries. A failed call surfaces as ProviderError.
      - Sends "Prefer: wait" so short predictions come back completed; otherwise
        polls urls.get until the prediction leaves starting/processing.
      - Per-request timeouts only (requests connect/read). There is no overall deadline.
    """

    name = "replicate"

    def __init__(
        self,
        *,
        api_token: str,
        model: str,
        api_base: str = "https://api.replicate.com/v1",
        timeout: Tuple[float, float] = (10.0, 300.0),
        poll_interval_s: float = 1.0,
        session: Optional[requests.Session] = None,
    ) -> None:
        self.api_token = (api_token or "").strip()
        self.model = model
        self.api_base = (api_base or "").strip().rstrip("/")
        self.timeout = timeout
        self.poll_interval_s = float(poll_interval_s)
        self.session = session or requests.Session()

    def _headers(self) -> Dict[str, str]:
        return {
            "Authorization": f"Bearer {self.api_token}",
            "Content-Type": "application/json",
            "Prefer": "wait",
            "User-Agent": "diastudio/0.1",
        }

    def _create_url_and_body(self, model_input: Dict[str, Any]) -> Tuple[str, Dict[str, Any]]:
        name, version = _parse_model_ref(self.model)
        if version:
            return f"{self.api_base}/predictions", {"version": version, "input": model_input}
        return f"{self.api_base}/models/{name}/predictions", {"input": model_input}

    def _json(self, r: requests.Response, what: str) -> Dict[str, Any]:
        if r.status_code >= 400:
            raise ProviderError(f"replicate {what} returned {r.status_code}: {_snippet(r)}")
        try:
            obj = r.json()
        except ValueError:
            raise ProviderError(f"replicate {what} returned non-JSON response")
        if not isinstance(obj, dict):
            raise ProviderError(f"replicate {what} returned unexpected JSON shape (expected object)")
        return obj

    def _create(self, model_input: Dict[str, Any]) -> Dict[str, Any]:
        url, body = self._create_url_and_body(model_input)
        try:
            r = self.session.post(url, json=body, headers=self._headers(), timeout=self.timeout)
        except requests.exceptions.InvalidJSONError as e:
            raise ProviderError(f"model input is not valid JSON (NaN or infinite parameter?): {e}") from e
        except requests.exceptions.RequestException as e:
            raise ProviderError(f"replicate request failed: {e}") from e
        return self._json(r, "create prediction")

    def _poll(self, prediction: Dict[str, Any]) -> Dict[str, Any]:
        while str(prediction.get("status") or "") in _PENDING:
            get_url = (prediction.get("urls") or {}).get("get")
            if not get_url:
                raise ProviderError("replicate prediction is pending but has no urls.get to poll")
            if self.poll_interval_s > 0:
                time.sleep(self.poll_interval_s)
            try:
                r = self.session.get(get_url, headers=self._headers(), timeout=self.timeout)
            except requests.exceptions.RequestException as e:
                raise ProviderError(f"replicate poll failed: {e}") from e
            prediction = self._json(r, "get prediction")
            log.debug("prediction %s status=%s", prediction.get("id"), prediction.get("status"))
        return prediction

    def run(self, model_input: Dict[str, Any]) -> Any:
        if not self.api_token:
            raise ProviderError("REPLICATE_API_TOKEN is required for the replicate provider")

        prediction = self._poll(self._create(model_input))
        status = str(prediction.get("status") or "")

        if status in _TERMINAL_FAILED:
            err = prediction.get("error") or "no error message"
            raise ProviderError(f"replicate prediction {prediction.get('id')} {status}: {err}")
        if status != "succeeded":
            raise ProviderError(f"replicate prediction {prediction.get('id')} ended with unexpected status {status!r}")

        return prediction.get("output")
