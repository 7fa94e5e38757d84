from __future__ import annotations

import math
from typing import Any, Dict, List, Optional

import pytest
import requests

from diastudio.config import Settings
from diastudio.providers import ProviderError, get_provider, list_providers
from diastudio.providers.replicate_provider import ReplicateProvider, _parse_model_ref


class FakeResponse:
    def __init__(self, status_code: int = 200, payload: Any = None, text: str = "") -> None:
        self.status_code = status_code
        self._payload = payload
        self.text = text

    def json(self) -> Any:
        if self._payload is None:
            raise ValueError("no json")
        return self._payload


class FakeSession:
    def __init__(self, post: FakeResponse, gets: Optional[List[FakeResponse]] = None) -> None:
        self._post = post
        self._gets = list(gets or [])
        self.posted: List[Dict[str, Any]] = []
        self.got: List[str] = []

    def post(self, url: str, json: Any = None, headers: Any = None, timeout: Any = None) -> FakeResponse:
        self.posted.append({"url": url, "json": json, "headers": headers, "timeout": timeout})
        if isinstance(self._post, Exception):
            raise self._post
        return self._post

    def get(self, url: str, headers: Any = None, timeout: Any = None) -> FakeResponse:
        self.got.append(url)
        return self._gets.pop(0)


def _provider(session: FakeSession, model: str = "zsxkib/dia:abc123") -> ReplicateProvider:
    return ReplicateProvider(
        api_token="r8_test",
        model=model,
        api_base="https://api.replicate.test/v1",
        poll_interval_s=0.0,
        session=session,  # type: ignore[arg-type]
    )


def test_parse_model_ref():
    assert _parse_model_ref("zsxkib/dia:abc") == ("zsxkib/dia", "abc")
    assert _parse_model_ref("nari-labs/dia") == ("nari-labs/dia", None)
    with pytest.raises(ProviderError):
        _parse_model_ref("dia")


def test_versioned_model_posts_to_predictions():
    session = FakeSession(FakeResponse(201, {"id": "p1", "status": "succeeded", "output": "https://r/a.wav"}))
    out = _provider(session).run({"text": "hi"})
    assert out == "https://r/a.wav"

    call = session.posted[0]
    assert call["url"] == "https://api.replicate.test/v1/predictions"
    assert call["json"] == {"version": "abc123", "input": {"text": "hi"}}
    assert call["headers"]["Authorization"] == "Bearer r8_test"
    assert call["headers"]["Prefer"] == "wait"


def test_unversioned_model_uses_model_endpoint():
    session = FakeSession(FakeResponse(201, {"id": "p1", "status": "succeeded", "output": ["https://r/a.wav"]}))
    out = _provider(session, model="nari-labs/dia").run({"text": "hi"})
    assert out == ["https://r/a.wav"]
    assert session.posted[0]["url"] == "https://api.replicate.test/v1/models/nari-labs/dia/predictions"
    assert session.posted[0]["json"] == {"input": {"text": "hi"}}


def test_pending_prediction_is_polled_until_done():
    pending = {"id": "p1", "status": "starting", "urls": {"get": "https://api.replicate.test/v1/predictions/p1"}}
    processing = dict(pending, status="processing")
    done = {"id": "p1", "status": "succeeded", "output": {"audio": "https://r/a.wav"}}
    session = FakeSession(FakeResponse(201, pending), [FakeResponse(200, processing), FakeResponse(200, done)])

    assert _provider(session).run({"text": "hi"}) == {"audio": "https://r/a.wav"}
    assert session.got == [pending["urls"]["get"]] * 2


def test_failed_prediction_raises():
    session = FakeSession(FakeResponse(201, {"id": "p9", "status": "failed", "error": "CUDA out of memory"}))
    with pytest.raises(ProviderError, match="p9 failed: CUDA out of memory"):
        _provider(session).run({"text": "hi"})


def test_http_error_raises_with_snippet():
    session = FakeSession(FakeResponse(422, {"detail": "bad input"}, text='{"detail": "bad input"}'))
    with pytest.raises(ProviderError, match="422"):
        _provider(session).run({"text": "hi"})


def test_non_json_reply_raises():
    session = FakeSession(FakeResponse(200, None, text="<html>"))
    with pytest.raises(ProviderError, match="non-JSON"):
        _provider(session).run({"text": "hi"})


def test_network_error_is_wrapped_without_retry():
    session = FakeSession(requests.exceptions.ConnectionError("refused"))  # type: ignore[arg-type]
    with pytest.raises(ProviderError, match="request failed"):
        _provider(session).run({"text": "hi"})
    assert len(session.posted) == 1


def test_nan_input_is_reported_as_invalid_json():
    # A real session serializes json= itself and refuses NaN.
    provider = ReplicateProvider(api_token="t", model="a/b:c", api_base="http://127.0.0.1:9")
    with pytest.raises(ProviderError, match="not valid JSON"):
        provider.run({"text": "hi", "temperature": math.nan})


def test_registry():
    assert list_providers() == ["replicate", "stub"]
    with pytest.raises(ProviderError, match="REPLICATE_API_TOKEN"):
        get_provider("replicate", Settings(replicate_api_token=""))
    p = get_provider("replicate", Settings(replicate_api_token="t"))
    assert isinstance(p, ReplicateProvider)
    assert get_provider("stub", Settings()).name == "stub"
    with pytest.raises(ProviderError, match="Unknown provider"):
        get_provider("nope", Settings())
