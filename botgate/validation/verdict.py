from __future__ import annotations

import json
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Mapping, Optional

from botgate.validation.errors import MalformedVerdictBody


class Verdict(Enum):
    ALLOW = "allow"
    ALLOW_WITH_HEADERS = "allow_with_headers"
    BLOCK = "block"
    AUTH_ERROR = "auth_error"
    FAIL_OPEN = "fail_open"


# Decision-service status -> verdict. Anything missing fails open.
STATUS_VERDICTS: Dict[int, Verdict] = {
    200: Verdict.ALLOW,
    301: Verdict.BLOCK,
    302: Verdict.BLOCK,
    401: Verdict.BLOCK,
    403: Verdict.BLOCK,
    400: Verdict.AUTH_ERROR,
}

# Verdicts that relay manifest headers onto the outgoing response.
RELAYING = frozenset({Verdict.ALLOW, Verdict.ALLOW_WITH_HEADERS, Verdict.BLOCK})


def verdict_for_status(status_code: int, *, has_manifest: bool = False) -> Verdict:
    verdict = STATUS_VERDICTS.get(status_code, Verdict.FAIL_OPEN)
    if verdict is Verdict.ALLOW and has_manifest:
        return Verdict.ALLOW_WITH_HEADERS
    return verdict


def extract_rewrite_url(body: bytes) -> str:
    """Pull the challenge/blocking page URL out of a blocking response body."""
    try:
        data = json.loads(body.decode("utf-8") if body else "")
    except (UnicodeDecodeError, ValueError) as exc:
        raise MalformedVerdictBody(f"blocking response is not JSON: {exc}") from exc
    if not isinstance(data, dict):
        raise MalformedVerdictBody("blocking response is not a JSON object")
    url = data.get("url")
    if not isinstance(url, str) or not url.strip():
        raise MalformedVerdictBody("blocking response carries no url")
    return url.strip()


@dataclass(frozen=True)
class BotSignal:
    name: Optional[str]
    family: Optional[str]


def bot_signal(headers: Mapping[str, str]) -> Optional[BotSignal]:
    # Informational only; never feeds back into the verdict.
    if not headers.get("x-datadome-isbot"):
        return None
    return BotSignal(
        name=headers.get("x-datadome-botname"),
        family=headers.get("x-datadome-botfamily"),
    )
