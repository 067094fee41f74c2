from __future__ import annotations

import pytest

from paynotify.core.dedup import DuplicateSuppressor, compute_fingerprint, normalize_for_fingerprint


def test_normalize_collapses_whitespace_and_case() -> None:
    assert normalize_for_fingerprint("  SCB   เงินเข้า\n500 บาท ") == "scb เงินเข้า 500 บาท"


def test_fingerprint_modes() -> None:
    text = normalize_for_fingerprint("เงินเข้า 500 บาท")

    assert compute_fingerprint("com.scb.phone", text, "off") is None
    assert compute_fingerprint("a", text, "global") == compute_fingerprint("b", text, "global")
    assert compute_fingerprint("a", text, "per_source") != compute_fingerprint("b", text, "per_source")


def test_unsupported_mode_raises() -> None:
    with pytest.raises(ValueError):
        compute_fingerprint("a", "text", "sometimes")


def test_suppressor_expires_fingerprints_after_ttl() -> None:
    suppressor = DuplicateSuppressor(ttl_ms=300_000)

    assert suppressor.check_and_mark("fp", 0) is False
    assert suppressor.check_and_mark("fp", 1_000) is True
    assert suppressor.check_and_mark("fp", 300_000) is False
    assert len(suppressor) == 1


def test_post_time_is_part_of_the_fingerprint() -> None:
    text = normalize_for_fingerprint("เงินเข้า 100.00 บาท")

    first = compute_fingerprint("com.scb.phone", text, "per_source", posted_at_ms=1_000)

    assert first == compute_fingerprint("com.scb.phone", text, "per_source", posted_at_ms=1_000)
    assert first != compute_fingerprint("com.scb.phone", text, "per_source", posted_at_ms=120_000)
    assert first != compute_fingerprint("com.scb.phone", text, "per_source")
