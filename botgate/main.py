# botgate/main.py
from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI

from botgate.config import APP_VERSION, Settings, get_settings
from botgate.logging_json import install_json_logging
from botgate.middleware.bot_protection import install_bot_protection
from botgate.middleware.request_id import RequestIDMiddleware
from botgate.net.http_client import close_http_client
from botgate.routes.system import router as system_router
from botgate.validation.gateway import BotGateway

_log = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings: Settings = app.state.settings
    if not settings.SERVER_KEY:
        _log.warning("no decision-service key configured; every verdict will be an auth error")
    try:
        yield
    finally:
        try:
            await close_http_client()
        except Exception as exc:
            _log.debug("http client shutdown failed: %s", exc)


def create_app(
    settings: Optional[Settings] = None,
    gateway: Optional[BotGateway] = None,
) -> FastAPI:
    if gateway is not None:
        settings = gateway.settings
    settings = settings or get_settings()

    if settings.LOG_JSON:
        install_json_logging(settings.LOG_LEVEL)

    app = FastAPI(
        title="botgate",
        description="Inline bot-detection gateway.",
        version=APP_VERSION,
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.include_router(system_router)

    # Added last runs first: request ids wrap the bot check so its logs carry them.
    install_bot_protection(app, settings=settings, gateway=gateway)
    app.add_middleware(RequestIDMiddleware)
    return app
