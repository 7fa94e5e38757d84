"""
src/diastudio/output.py

Normalize whatever the remote model returns into one playable audio URL.

The remote contract is not stable: depending on client and model version the
output is a plain string, a list of strings, a file object exposing `url`
(as an attribute or a method), or a dict of named outputs. MATCHERS lists the
accepted shapes in priority order; decode_output() walks it and reports which
shape matched.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Mapping, Optional, Tuple

from diastudio.providers.base import ProviderError

log = logging.getLogger(__name__)

INVALID_OUTPUT_MESSAGE = "API did not return a valid audio file URL."

_HTTP_PREFIXES = ("http://", "https://")

# A matcher returns the extracted URL, or None when the shape does not apply.
MatchFn = Callable[[Any], Optional[str]]


class InvalidOutputError(ProviderError):
    """Raised when no matcher can extract a URL from the remote output."""

    def __init__(self, message: str = INVALID_OUTPUT_MESSAGE) -> None:
        super().__init__(message)


@dataclass(frozen=True)
class Matcher:
    shape: str
    match: MatchFn


@dataclass(frozen=True)
class DecodedOutput:
    url: str
    shape: str


def _nonempty_str(v: Any) -> Optional[str]:
    if isinstance(v, str) and v:
        return v
    return None


def _match_string(output: Any) -> Optional[str]:
    return _nonempty_str(output)


def _match_sequence(output: Any) -> Optional[str]:
    if not isinstance(output, (list, tuple)) or not output:
        return None
    try:
        return decode_output(output[0]).url
    except InvalidOutputError:
        return None


def _match_url_attribute(output: Any) -> Optional[str]:
    if isinstance(output, (str, bytes, Mapping)):
        return None
    try:
        value = getattr(output, "url", None)
    except Exception as e:
        log.debug("url attribute raised: %s", e)
        return None
    return _nonempty_str(value)


def _match_url_method(output: Any) -> Optional[str]:
    if isinstance(output, (str, bytes, Mapping)):
        return None
    try:
        fn = getattr(output, "url", None)
        if not callable(fn):
            return None
        value = fn()
    except Exception as e:
        log.debug("url() raised: %s", e)
        return None
    return _nonempty_str(value)


def _match_mapping(output: Any) -> Optional[str]:
    if not isinstance(output, Mapping):
        return None
    for v in output.values():
        if isinstance(v, str) and v.startswith(_HTTP_PREFIXES):
            return v
    return None


MATCHERS: Tuple[Matcher, ...] = (
    Matcher("string", _match_string),
    Matcher("sequence", _match_sequence),
    Matcher("url_attribute", _match_url_attribute),
    Matcher("url_method", _match_url_method),
    Matcher("mapping", _match_mapping),
)


def decode_output(output: Any) -> DecodedOutput:
    for m in MATCHERS:
        url = m.match(output)
        if url is not None:
            return DecodedOutput(url=url, shape=m.shape)
    raise InvalidOutputError()


def extract_audio_url(output: Any) -> str:
    return decode_output(output).url
