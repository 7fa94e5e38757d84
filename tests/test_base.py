from __future__ import annotations

from diastudio.base import GenerationResult


def test_success_payload():
    r = GenerationResult.ok("https://cdn.example/a.wav")
    assert r.success
    assert r.status_code == 200
    assert r.to_payload() == {"success": True, "audioDataUrl": "https://cdn.example/a.wav"}


def test_failure_payload_omits_missing_details():
    r = GenerationResult.fail("Failed to generate audio")
    assert not r.success
    assert r.status_code == 500
    assert r.to_payload() == {"success": False, "error": "Failed to generate audio"}


def test_from_payload_round_trip():
    ok = GenerationResult.from_payload({"success": True, "audioDataUrl": "u"})
    assert ok == GenerationResult.ok("u")

    bad = GenerationResult.from_payload({"success": False, "error": "e", "details": "d"}, status=500)
    assert bad.to_payload() == {"success": False, "error": "e", "details": "d"}
    assert bad.status_code == 500


def test_from_payload_rejects_non_object():
    r = GenerationResult.from_payload(["nope"])
    assert not r.success
