import json

import pytest

from botgate.validation.errors import MalformedVerdictBody
from botgate.validation.verdict import (
    Verdict,
    bot_signal,
    extract_rewrite_url,
    verdict_for_status,
)


@pytest.mark.parametrize(
    "status,expected",
    [
        (200, Verdict.ALLOW),
        (301, Verdict.BLOCK),
        (302, Verdict.BLOCK),
        (401, Verdict.BLOCK),
        (403, Verdict.BLOCK),
        (400, Verdict.AUTH_ERROR),
        (404, Verdict.FAIL_OPEN),
        (500, Verdict.FAIL_OPEN),
        (503, Verdict.FAIL_OPEN),
        (204, Verdict.FAIL_OPEN),
    ],
)
def test_status_table(status: int, expected: Verdict) -> None:
    assert verdict_for_status(status) is expected


def test_manifest_refines_allow_only() -> None:
    assert verdict_for_status(200, has_manifest=True) is Verdict.ALLOW_WITH_HEADERS
    assert verdict_for_status(403, has_manifest=True) is Verdict.BLOCK
    assert verdict_for_status(500, has_manifest=True) is Verdict.FAIL_OPEN


def test_extract_rewrite_url() -> None:
    body = json.dumps({"url": "https://example.com/challenge"}).encode()
    assert extract_rewrite_url(body) == "https://example.com/challenge"


@pytest.mark.parametrize(
    "body",
    [b"", b"<html>blocked</html>", b"[1, 2]", b'{"url": ""}', b'{"url": 7}', b'{"other": "x"}', b"\xff\xfe"],
)
def test_extract_rewrite_url_rejects_malformed_bodies(body: bytes) -> None:
    with pytest.raises(MalformedVerdictBody):
        extract_rewrite_url(body)


def test_bot_signal_only_when_flagged() -> None:
    assert bot_signal({}) is None
    signal = bot_signal(
        {"x-datadome-isbot": "1", "x-datadome-botname": "Scrapy", "x-datadome-botfamily": "scraper"}
    )
    assert signal is not None
    assert signal.name == "Scrapy"
    assert signal.family == "scraper"
