from __future__ import annotations

import os
from dataclasses import dataclass, field
from dotenv import load_dotenv

# Load .env if present (local development)
load_dotenv(override=False)

DEFAULT_APP_ID = "industrial-pricing-app"


@dataclass(frozen=True)
class Settings:
    app_env: str
    database_url: str | None
    backend: str
    app_id: str
    initial_auth_token: str | None
    auth_tokens: dict[str, str] = field(default_factory=dict)
    refresh_seconds: float = 2.0
    log_level: str = "INFO"


def _parse_auth_tokens(raw: str | None) -> dict[str, str]:
    """Parse ``token:uid,token:uid`` pairs for the in-memory auth provider."""
    tokens: dict[str, str] = {}
    for pair in (raw or "").split(","):
        token, sep, uid = pair.strip().partition(":")
        if sep and token.strip() and uid.strip():
            tokens[token.strip()] = uid.strip()
    return tokens


def get_settings() -> Settings:
    database_url = os.getenv("DATABASE_URL") or None
    backend = os.getenv("MATPRICE_BACKEND") or ("postgres" if database_url else "memory")
    return Settings(
        app_env=os.getenv("APP_ENV", "local"),
        database_url=database_url,
        backend=backend.strip().lower(),
        app_id=os.getenv("APP_ID") or DEFAULT_APP_ID,
        initial_auth_token=os.getenv("INITIAL_AUTH_TOKEN") or None,
        auth_tokens=_parse_auth_tokens(os.getenv("MATPRICE_AUTH_TOKENS")),
        refresh_seconds=float(os.getenv("MATPRICE_REFRESH_SECONDS", "2")),
        log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
    )
