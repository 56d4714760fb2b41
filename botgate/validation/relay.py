from __future__ import annotations

import re
from typing import List, Optional, Tuple

import httpx

HeaderPairs = List[Tuple[str, str]]

_SET_COOKIE = "set-cookie"
# Hop-by-hop and framing headers belong to one connection; never copy them
# from a decision-service or fetched response onto ours.
UNRELAYABLE_HEADERS = frozenset(
    {"content-length", "transfer-encoding", "connection", "content-encoding", "keep-alive"}
)


def parse_manifest(value: Optional[str]) -> List[str]:
    """
    Split a manifest header value into header names.

    The value comes from an external service: anything missing or garbled
    yields fewer names, never an exception.
    """
    if not value or not isinstance(value, str):
        return []
    seen: dict[str, str] = {}
    for token in value.split(" "):
        name = token.strip()
        if name and name.lower() not in seen:
            seen[name.lower()] = name
    return list(seen.values())


def _domain_pattern(suffix: str) -> re.Pattern[str]:
    return re.compile(
        r"(?P<lead>(?:^|;)\s*)domain=" + re.escape(suffix) + r"(?=\s*(?:;|$))",
        re.IGNORECASE,
    )


def fix_cookie_domain(cookie: str, rejected_suffix: str, host: Optional[str]) -> str:
    """Swap a rejected public-suffix Domain attribute for the request host."""
    if not rejected_suffix or not host:
        return cookie
    return _domain_pattern(rejected_suffix).sub(lambda m: f"{m.group('lead')}Domain={host}", cookie, count=1)


def relay_headers(
    response_headers: httpx.Headers,
    *,
    manifest_header: str,
    request_host: Optional[str],
    rejected_cookie_domain: str,
) -> HeaderPairs:
    relayed: HeaderPairs = []
    for name in parse_manifest(response_headers.get(manifest_header)):
        if name.lower() in UNRELAYABLE_HEADERS:
            continue
        if name.lower() == _SET_COOKIE:
            for cookie in response_headers.get_list(name):
                relayed.append((name, fix_cookie_domain(cookie, rejected_cookie_domain, request_host)))
            continue
        value = response_headers.get(name)
        if value is None:
            continue
        relayed.append((name, value))
    return relayed
