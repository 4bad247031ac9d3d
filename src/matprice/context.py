from __future__ import annotations

import logging
from dataclasses import dataclass
from functools import partial
from typing import Callable

from .config import Settings, get_settings
from .providers.base import AuthProvider, DocumentStore
from .utils import collection_path

logger = logging.getLogger(__name__)

BACKENDS = ("memory", "postgres")


@dataclass
class AppContext:
    """Process-wide provider access, built once and passed to every component.

    The document store is shared by every browser session of the process;
    auth state is per session, so the context hands out a fresh auth provider
    per session through ``new_auth``.
    """

    settings: Settings
    store: DocumentStore
    auth_factory: Callable[[], AuthProvider]
    is_open: bool = False

    @property
    def materials_path(self) -> str:
        return collection_path(self.settings.app_id)

    def new_auth(self) -> AuthProvider:
        return self.auth_factory()

    @classmethod
    def from_settings(cls, settings: Settings | None = None) -> "AppContext":
        settings = settings or get_settings()
        if settings.backend == "memory":
            from .providers.memory import InMemoryAuthProvider, InMemoryDocumentStore

            return cls(
                settings=settings,
                store=InMemoryDocumentStore(),
                auth_factory=partial(InMemoryAuthProvider, tokens=settings.auth_tokens),
            )
        if settings.backend == "postgres":
            from .providers.postgres import PostgresAuthProvider, PostgresDocumentStore

            return cls(
                settings=settings,
                store=PostgresDocumentStore(settings.database_url),
                auth_factory=partial(PostgresAuthProvider, settings.database_url),
            )
        raise ValueError(f"MATPRICE_BACKEND must be one of: {'/'.join(BACKENDS)} (got {settings.backend!r})")

    def open(self) -> "AppContext":
        if self.is_open:
            return self
        if self.settings.backend == "postgres":
            from .providers.postgres import ensure_schema

            ensure_schema(self.settings.database_url)
        self.is_open = True
        logger.info(
            "context opened env=%s backend=%s path=%s",
            self.settings.app_env,
            self.settings.backend,
            self.materials_path,
        )
        return self

    def close(self) -> None:
        if not self.is_open:
            return
        self.store.close()
        self.is_open = False
        logger.info("context closed backend=%s", self.settings.backend)

    def __enter__(self) -> "AppContext":
        return self.open()

    def __exit__(self, *exc_info: object) -> None:
        self.close()
