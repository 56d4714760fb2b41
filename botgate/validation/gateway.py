from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Optional

import httpx
from starlette.requests import Request

from botgate.config import Settings
from botgate.observability.metrics import (
    bot_detection_report,
    decision_failure_report,
    decision_latency_observe,
    verdict_report,
)
from botgate.validation.client import RemoteValidator, ValidatorResponse
from botgate.validation.descriptor import build_descriptor, is_excluded_path
from botgate.validation.encoding import stringify
from botgate.validation.errors import DecisionServiceError, MalformedVerdictBody
from botgate.validation.race import Sleep
from botgate.validation.relay import HeaderPairs, relay_headers
from botgate.validation.verdict import (
    RELAYING,
    Verdict,
    bot_signal,
    extract_rewrite_url,
    verdict_for_status,
)

_log = logging.getLogger(__name__)


class Action(Enum):
    NOOP = "noop"  # hand the request to the app untouched
    PASS = "pass"  # hand it to the app, then decorate the response
    REWRITE = "rewrite"  # serve rewrite_url instead of the app


@dataclass(frozen=True)
class GatewayOutcome:
    action: Action
    verdict: Optional[Verdict] = None
    headers: HeaderPairs = field(default_factory=list)
    rewrite_url: Optional[str] = None
    latency_ms: Optional[int] = None


NOOP = GatewayOutcome(Action.NOOP)


def _fail_open(verdict: Verdict = Verdict.FAIL_OPEN) -> GatewayOutcome:
    verdict_report(verdict.value)
    return GatewayOutcome(Action.NOOP, verdict)


class BotGateway:
    """
    Per-request inspection against the decision service.

    ``inspect`` never raises for decision-service problems: timeouts, transport
    errors, unknown statuses, auth errors and malformed blocking bodies all
    come back as a NOOP outcome (fail-open).
    """

    def __init__(
        self,
        settings: Settings,
        client: Optional[httpx.AsyncClient] = None,
        *,
        clock: Callable[[], float] = time.time,
        sleep: Sleep = asyncio.sleep,
        timer: Callable[[], float] = time.perf_counter,
    ) -> None:
        self.settings = settings
        self._clock = clock
        self._validator = RemoteValidator(settings, client, sleep=sleep, timer=timer)
        self._bypass = tuple(settings.bypass_prefixes())

    @property
    def client(self) -> httpx.AsyncClient:
        return self._validator.client

    def should_inspect(self, path: str) -> bool:
        if not self.settings.ENABLED:
            return False
        if any(path.startswith(prefix) for prefix in self._bypass):
            return False
        return not is_excluded_path(path)

    async def inspect(self, request: Request) -> GatewayOutcome:
        if not self.should_inspect(request.url.path):
            return NOOP

        body = stringify(build_descriptor(request, self.settings, clock=self._clock))
        try:
            resp = await self._validator.validate(body)
        except DecisionServiceError as exc:
            _log.warning("decision service failed open (%s): %s", exc.reason, exc)
            decision_failure_report(exc.reason)
            return _fail_open()

        decision_latency_observe(resp.elapsed_ms)
        host = request.headers.get("host") or request.url.hostname
        return self.interpret(resp, request_host=host)

    def interpret(self, resp: ValidatorResponse, *, request_host: Optional[str]) -> GatewayOutcome:
        s = self.settings
        verdict = verdict_for_status(
            resp.status_code,
            has_manifest=bool(resp.headers.get(s.MANIFEST_HEADER)),
        )

        if verdict is Verdict.AUTH_ERROR:
            # Our own key is wrong; blocking every visitor would be worse.
            _log.error("decision service rejected our credentials (status 400)")
            decision_failure_report("auth_error")
            return _fail_open(Verdict.AUTH_ERROR)

        if verdict not in RELAYING:
            _log.warning("decision service returned unrecognized status %s", resp.status_code)
            decision_failure_report("unrecognized_status")
            return _fail_open()

        rewrite_url: Optional[str] = None
        if verdict is Verdict.BLOCK:
            signal = bot_signal(resp.headers)
            if signal is not None:
                _log.info("bot detected name=%s family=%s", signal.name, signal.family)
                bot_detection_report(signal.family)
            try:
                rewrite_url = extract_rewrite_url(resp.body)
            except MalformedVerdictBody as exc:
                _log.warning("blocking response unusable, failing open: %s", exc)
                decision_failure_report(exc.reason)
                return _fail_open()

        headers = relay_headers(
            resp.headers,
            manifest_header=s.MANIFEST_HEADER,
            request_host=request_host,
            rejected_cookie_domain=s.REJECTED_COOKIE_DOMAIN,
        )
        headers.append((s.LATENCY_HEADER, str(resp.elapsed_ms)))

        verdict_report(verdict.value)
        return GatewayOutcome(
            action=Action.REWRITE if rewrite_url else Action.PASS,
            verdict=verdict,
            headers=headers,
            rewrite_url=rewrite_url,
            latency_ms=resp.elapsed_ms,
        )

    async def fetch_rewrite_target(self, url: str) -> httpx.Response:
        return await self.client.get(url, headers={"Accept": "text/html,application/json"})
