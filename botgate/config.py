# botgate/config.py
from __future__ import annotations

import os
from typing import List

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

APP_VERSION = os.getenv("APP_VERSION", "0.1.0")

DEFAULT_DECISION_ENDPOINT = "http://api-cloudflare.datadome.co/validate-request/"


def _csv_to_list(value: str) -> List[str]:
    items = [part.strip() for part in value.split(",")]
    return [item for item in items if item]


class Settings(BaseSettings):
    # --- Identity / Build ---
    APP_NAME: str = Field(default="botgate")
    ENV: str = Field(default=os.environ.get("ENV", "dev"))

    # --- Master switch ---
    ENABLED: bool = Field(default=True)

    # --- Decision service ---
    SERVER_KEY: str = Field(
        default="",
        validation_alias=AliasChoices("BOTGATE_SERVER_KEY", "DATADOME_SERVER_KEY", "SERVER_KEY"),
    )
    DECISION_ENDPOINT: str = Field(default=DEFAULT_DECISION_ENDPOINT)
    # Deadline for the validation call; the request fails open past it.
    DECISION_TIMEOUT_MS: int = Field(default=500, ge=1, le=10000)
    # Transport timeout for httpx; bounds calls abandoned by the deadline.
    HTTP_TIMEOUT_S: float = Field(default=5.0, gt=0, le=60)
    DECISION_USER_AGENT: str = Field(default="DataDome")

    # --- Descriptor identity ---
    MODULE_NAME: str = Field(default="botgate")
    MODULE_VERSION: str = Field(default=APP_VERSION)
    SERVER_NAME: str = Field(default="botgate")
    SERVER_REGION: str = Field(default="sfo1")
    CLIENT_ID_COOKIE: str = Field(default="datadome")

    # --- Header relay ---
    MANIFEST_HEADER: str = Field(default="x-datadome-headers")
    LATENCY_HEADER: str = Field(default="x-datadome-latency")
    # Public suffix that user agents refuse as a cookie domain.
    REJECTED_COOKIE_DOMAIN: str = Field(default=".vercel.app")

    # --- Routing ---
    BYPASS_PATH_PREFIXES: str = Field(default="/healthz,/metrics")  # comma-separated

    # --- Logging ---
    LOG_JSON: bool = Field(default=True)
    LOG_LEVEL: str = Field(default="INFO")

    model_config = SettingsConfigDict(
        extra="ignore",
        env_file=".env",
        env_file_encoding="utf-8",
        populate_by_name=True,
    )

    def bypass_prefixes(self) -> List[str]:
        return _csv_to_list(self.BYPASS_PATH_PREFIXES)

    @property
    def decision_timeout_s(self) -> float:
        return self.DECISION_TIMEOUT_MS / 1000.0


def get_settings() -> Settings:
    return Settings()
