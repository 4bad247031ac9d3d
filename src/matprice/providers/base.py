from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from typing import Any, Callable, Optional, Protocol

logger = logging.getLogger(__name__)

Unsubscribe = Callable[[], None]


@dataclass(frozen=True)
class Identity:
    uid: str
    is_anonymous: bool = True


@dataclass(frozen=True)
class Document:
    id: str
    fields: dict[str, Any] = field(default_factory=dict)


class _ServerTimestamp:
    """Field value placeholder resolved by the store at write time."""

    _instance: Optional["_ServerTimestamp"] = None

    def __new__(cls) -> "_ServerTimestamp":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "SERVER_TIMESTAMP"


SERVER_TIMESTAMP = _ServerTimestamp()


class AuthProvider(Protocol):
    def sign_in_anonymously(self) -> Identity: ...

    def sign_in_with_token(self, token: str) -> Identity: ...

    def sign_out(self) -> None: ...

    def subscribe(self, on_change: Callable[[Identity | None], None]) -> Unsubscribe: ...


class DocumentStore(Protocol):
    def subscribe_to_collection(
        self,
        path: str,
        on_snapshot: Callable[[list[Document]], None],
        on_error: Callable[[Exception], None],
    ) -> Unsubscribe: ...

    def add_document(self, path: str, fields: dict[str, Any]) -> str: ...

    def delete_document(self, path: str, doc_id: str) -> None: ...

    def close(self) -> None: ...


class BaseAuthProvider:
    """Identity holder with change listeners shared by the concrete providers.

    Listeners fire immediately with the current identity on subscribe, then on
    every change.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._current: Identity | None = None
        self._listeners: list[Callable[[Identity | None], None]] = []

    @property
    def current(self) -> Identity | None:
        with self._lock:
            return self._current

    def subscribe(self, on_change: Callable[[Identity | None], None]) -> Unsubscribe:
        with self._lock:
            self._listeners.append(on_change)
            current = self._current
        on_change(current)

        def unsubscribe() -> None:
            with self._lock:
                if on_change in self._listeners:
                    self._listeners.remove(on_change)

        return unsubscribe

    def sign_out(self) -> None:
        self._set_current(None)

    def _set_current(self, identity: Identity | None) -> None:
        with self._lock:
            if identity == self._current:
                return
            self._current = identity
            listeners = list(self._listeners)
        for listener in listeners:
            try:
                listener(identity)
            except Exception:
                logger.exception("auth state listener failed")
