from __future__ import annotations

import logging
import threading
from typing import Any, Callable, Mapping
from uuid import uuid4

from ..errors import AuthError
from ..utils import utc_now
from .base import SERVER_TIMESTAMP, BaseAuthProvider, Document, Identity, Unsubscribe

logger = logging.getLogger(__name__)


class InMemoryAuthProvider(BaseAuthProvider):
    """Process-local auth provider.

    Anonymous sign-in mints a fresh uid; token sign-in accepts only the tokens
    in ``tokens`` (token -> uid).
    """

    def __init__(self, tokens: Mapping[str, str] | None = None) -> None:
        super().__init__()
        self._tokens = dict(tokens or {})

    def sign_in_anonymously(self) -> Identity:
        identity = Identity(uid=uuid4().hex, is_anonymous=True)
        self._set_current(identity)
        return identity

    def sign_in_with_token(self, token: str) -> Identity:
        uid = self._tokens.get((token or "").strip())
        if not uid:
            raise AuthError("invalid or expired auth token")
        identity = Identity(uid=uid, is_anonymous=False)
        self._set_current(identity)
        return identity


class InMemoryDocumentStore:
    """Thread-safe in-process document store with live collection listeners.

    Listeners are called on the writer's thread with the full contents of the
    collection (insertion order). Each write and its delivery happen under the
    store lock, so every listener sees snapshots in commit order.
    """

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._collections: dict[str, dict[str, dict[str, Any]]] = {}
        self._listeners: dict[str, list[Callable[[list[Document]], None]]] = {}

    def documents(self, path: str) -> list[Document]:
        with self._lock:
            docs = self._collections.get(path, {})
            return [Document(id=doc_id, fields=dict(fields)) for doc_id, fields in docs.items()]

    def _notify(self, path: str) -> None:
        # caller holds the lock; listeners only enqueue
        listeners = list(self._listeners.get(path, []))
        snapshot = self.documents(path)
        for listener in listeners:
            listener(list(snapshot))

    def subscribe_to_collection(
        self,
        path: str,
        on_snapshot: Callable[[list[Document]], None],
        on_error: Callable[[Exception], None],
    ) -> Unsubscribe:
        with self._lock:
            self._listeners.setdefault(path, []).append(on_snapshot)
            # reads cannot fail in memory; on_error is part of the store contract
            on_snapshot(self.documents(path))

        def unsubscribe() -> None:
            with self._lock:
                listeners = self._listeners.get(path, [])
                if on_snapshot in listeners:
                    listeners.remove(on_snapshot)

        return unsubscribe

    def add_document(self, path: str, fields: dict[str, Any]) -> str:
        doc_id = uuid4().hex[:20]
        now = utc_now()
        resolved = {k: (now if v is SERVER_TIMESTAMP else v) for k, v in fields.items()}
        with self._lock:
            self._collections.setdefault(path, {})[doc_id] = resolved
            logger.debug("added document path=%s id=%s", path, doc_id)
            self._notify(path)
        return doc_id

    def delete_document(self, path: str, doc_id: str) -> None:
        with self._lock:
            removed = self._collections.get(path, {}).pop(doc_id, None)
            if removed is not None:
                logger.debug("deleted document path=%s id=%s", path, doc_id)
                self._notify(path)

    def listener_count(self, path: str) -> int:
        with self._lock:
            return len(self._listeners.get(path, []))

    def close(self) -> None:
        with self._lock:
            self._listeners.clear()
