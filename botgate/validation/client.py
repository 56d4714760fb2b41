from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Callable, Optional

import httpx

from botgate.config import Settings
from botgate.net.http_client import get_http_client
from botgate.validation.errors import DecisionTransportError
from botgate.validation.race import Sleep, first_completed

_log = logging.getLogger(__name__)

FORM_CONTENT_TYPE = "application/x-www-form-urlencoded"


@dataclass(frozen=True)
class ValidatorResponse:
    status_code: int
    headers: httpx.Headers
    body: bytes
    elapsed_ms: int


class RemoteValidator:
    """
    Single POST to the decision service, raced against DECISION_TIMEOUT_MS.

    Raises DecisionTimeout when the deadline wins and DecisionTransportError
    on any failure to get an answer. No retries. Without an injected client
    the shared one is looked up per call, so a restart that closes it does
    not strand this validator.
    """

    def __init__(
        self,
        settings: Settings,
        client: Optional[httpx.AsyncClient] = None,
        *,
        sleep: Sleep = asyncio.sleep,
        timer: Callable[[], float] = time.perf_counter,
    ) -> None:
        self._settings = settings
        self._client = client
        self._sleep = sleep
        self._timer = timer

    @property
    def client(self) -> httpx.AsyncClient:
        if self._client is not None:
            return self._client
        return get_http_client(self._settings)

    def _headers(self) -> dict[str, str]:
        return {
            "Content-Type": FORM_CONTENT_TYPE,
            "User-Agent": self._settings.DECISION_USER_AGENT,
        }

    async def _post(self, body: str) -> httpx.Response:
        try:
            return await self.client.post(
                self._settings.DECISION_ENDPOINT,
                content=body.encode("utf-8"),
                headers=self._headers(),
            )
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            # A closed client raises RuntimeError, not an httpx error.
            raise DecisionTransportError(f"decision service unreachable: {exc}") from exc

    async def validate(self, body: str, *, timeout_s: Optional[float] = None) -> ValidatorResponse:
        deadline = self._settings.decision_timeout_s if timeout_s is None else timeout_s
        start = self._timer()
        resp = await first_completed(self._post(body), deadline, sleep=self._sleep)
        elapsed_ms = int((self._timer() - start) * 1000)

        _log.debug(
            "decision service replied status=%s elapsed_ms=%s headers=%s",
            resp.status_code,
            elapsed_ms,
            dict(resp.headers),
        )
        return ValidatorResponse(
            status_code=resp.status_code,
            headers=resp.headers,
            body=resp.content,
            elapsed_ms=elapsed_ms,
        )
