from __future__ import annotations

import logging
from typing import Optional

import httpx
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import RedirectResponse, Response
from starlette.types import ASGIApp

from botgate.config import Settings, get_settings
from botgate.validation.gateway import Action, BotGateway, GatewayOutcome
from botgate.validation.relay import UNRELAYABLE_HEADERS

_log = logging.getLogger(__name__)

_SET_COOKIE = "set-cookie"


def decorate(response: Response, outcome: GatewayOutcome) -> Response:
    for name, value in outcome.headers:
        if name.lower() == _SET_COOKIE:
            response.headers.append(name, value)
        else:
            response.headers[name] = value
    return response


class BotProtectionMiddleware(BaseHTTPMiddleware):
    """
    Consult the decision service before the request reaches the app.

    - NOOP: static asset, bypassed path, or fail-open; the app answers untouched.
    - PASS: the app answers; relayed decision headers are added.
    - REWRITE: the page at the decision service's URL is served instead.
    """

    def __init__(
        self,
        app: ASGIApp,
        gateway: Optional[BotGateway] = None,
        settings: Optional[Settings] = None,
    ) -> None:
        super().__init__(app)
        self._gateway = gateway or BotGateway(settings or get_settings())

    async def _rewrite(self, url: str) -> Response:
        try:
            fetched = await self._gateway.fetch_rewrite_target(url)
        except (httpx.HTTPError, RuntimeError) as exc:
            _log.warning("rewrite target unreachable, redirecting instead: %s", exc)
            return RedirectResponse(url, status_code=302)

        response = Response(content=fetched.content, status_code=fetched.status_code)
        for name, value in fetched.headers.multi_items():
            if name.lower() not in UNRELAYABLE_HEADERS:
                response.headers.append(name, value)
        return response

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        outcome = await self._gateway.inspect(request)
        if outcome.verdict is not None:
            request.state.botgate_verdict = outcome.verdict.value

        if outcome.action is Action.REWRITE and outcome.rewrite_url:
            response = await self._rewrite(outcome.rewrite_url)
        else:
            response = await call_next(request)

        if outcome.action is Action.NOOP:
            return response
        return decorate(response, outcome)


def install_bot_protection(
    app, settings: Optional[Settings] = None, gateway: Optional[BotGateway] = None
) -> None:
    app.add_middleware(BotProtectionMiddleware, gateway=gateway, settings=settings)
