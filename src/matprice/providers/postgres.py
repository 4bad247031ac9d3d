from __future__ import annotations

import logging
import threading
from typing import Any, Callable
from uuid import uuid4

import psycopg
from psycopg import sql
from psycopg.rows import dict_row
from psycopg.types.json import Jsonb

from ..errors import AuthError, StoreWriteError, SubscriptionError
from ..utils import json_dumps
from .base import SERVER_TIMESTAMP, BaseAuthProvider, Document, Identity, Unsubscribe

logger = logging.getLogger(__name__)

NOTIFY_CHANNEL = "matprice_documents"

SCHEMA_STATEMENTS = (
    """
    CREATE TABLE IF NOT EXISTS documents (
        path TEXT NOT NULL,
        id TEXT NOT NULL,
        fields JSONB NOT NULL,
        created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
        PRIMARY KEY (path, id)
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS app_users (
        uid TEXT PRIMARY KEY,
        auth_token TEXT UNIQUE,
        is_anonymous BOOLEAN NOT NULL DEFAULT TRUE,
        created_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
    )
    """,
)


def _connect(database_url: str | None, **kwargs: Any) -> psycopg.Connection:
    if not database_url:
        raise RuntimeError("DATABASE_URL is not set")
    return psycopg.connect(database_url, row_factory=dict_row, **kwargs)


def ensure_schema(database_url: str | None) -> None:
    with _connect(database_url) as conn:
        for statement in SCHEMA_STATEMENTS:
            conn.execute(statement)


# -------------------------
# Auth
# -------------------------
class PostgresAuthProvider(BaseAuthProvider):
    """Identities backed by the ``app_users`` table.

    Anonymous sign-in registers a new uid; token sign-in resolves an existing
    ``auth_token`` row.
    """

    def __init__(self, database_url: str | None) -> None:
        super().__init__()
        self._database_url = database_url

    def sign_in_anonymously(self) -> Identity:
        uid = uuid4().hex
        try:
            with _connect(self._database_url) as conn:
                conn.execute(
                    "INSERT INTO app_users (uid, is_anonymous) VALUES (%s, TRUE)",
                    (uid,),
                )
        except psycopg.Error as e:
            raise AuthError(f"anonymous sign-in failed: {e}") from e

        identity = Identity(uid=uid, is_anonymous=True)
        self._set_current(identity)
        return identity

    def sign_in_with_token(self, token: str) -> Identity:
        try:
            with _connect(self._database_url) as conn:
                row = conn.execute(
                    "SELECT uid, is_anonymous FROM app_users WHERE auth_token = %s",
                    ((token or "").strip(),),
                ).fetchone()
        except psycopg.Error as e:
            raise AuthError(f"token sign-in failed: {e}") from e

        if not row:
            raise AuthError("invalid or expired auth token")
        identity = Identity(uid=row["uid"], is_anonymous=bool(row["is_anonymous"]))
        self._set_current(identity)
        return identity

    def grant_token(self, token: str, uid: str | None = None) -> str:
        """Attach ``token`` to ``uid`` (a new non-anonymous user when omitted)."""
        uid = uid or uuid4().hex
        with _connect(self._database_url) as conn:
            conn.execute(
                """
                INSERT INTO app_users (uid, auth_token, is_anonymous)
                VALUES (%s, %s, FALSE)
                ON CONFLICT (uid) DO UPDATE SET
                    auth_token = EXCLUDED.auth_token,
                    is_anonymous = FALSE
                """,
                (uid, token),
            )
        return uid


# -------------------------
# Documents
# -------------------------
class PostgresDocumentStore:
    """Document collections stored as JSONB rows.

    Every write notifies ``NOTIFY_CHANNEL`` with the collection path; each
    subscription runs a listener thread that re-reads the collection whenever
    its path is notified and hands the full snapshot to ``on_snapshot``.
    """

    def __init__(self, database_url: str | None, *, poll_timeout: float = 1.0) -> None:
        self._database_url = database_url
        self._poll_timeout = poll_timeout
        self._lock = threading.Lock()
        self._stops: set[threading.Event] = set()

    @staticmethod
    def _fetch(conn: psycopg.Connection, path: str) -> list[Document]:
        rows = conn.execute(
            "SELECT id, fields FROM documents WHERE path = %s ORDER BY created_at, id",
            (path,),
        ).fetchall()
        return [Document(id=r["id"], fields=dict(r["fields"] or {})) for r in rows]

    def _listen(
        self,
        path: str,
        on_snapshot: Callable[[list[Document]], None],
        on_error: Callable[[Exception], None],
        stop: threading.Event,
    ) -> None:
        try:
            with _connect(self._database_url, autocommit=True) as conn:
                conn.execute(sql.SQL("LISTEN {}").format(sql.Identifier(NOTIFY_CHANNEL)))
                on_snapshot(self._fetch(conn, path))
                while not stop.is_set():
                    changed = any(
                        n.payload == path
                        for n in conn.notifies(timeout=self._poll_timeout, stop_after=1)
                    )
                    if changed and not stop.is_set():
                        on_snapshot(self._fetch(conn, path))
        except Exception as e:
            # callback failures end the listener too
            if stop.is_set():
                return
            logger.exception("collection listener failed path=%s", path)
            on_error(SubscriptionError(f"live read failed: {e}"))
        finally:
            with self._lock:
                self._stops.discard(stop)

    def subscribe_to_collection(
        self,
        path: str,
        on_snapshot: Callable[[list[Document]], None],
        on_error: Callable[[Exception], None],
    ) -> Unsubscribe:
        stop = threading.Event()
        with self._lock:
            self._stops.add(stop)
        thread = threading.Thread(
            target=self._listen,
            args=(path, on_snapshot, on_error, stop),
            name=f"matprice-listen:{path}",
            daemon=True,
        )
        thread.start()
        return stop.set

    def add_document(self, path: str, fields: dict[str, Any]) -> str:
        plain = {k: v for k, v in fields.items() if v is not SERVER_TIMESTAMP}
        stamped = [k for k, v in fields.items() if v is SERVER_TIMESTAMP]
        doc_id = uuid4().hex[:20]

        try:
            with _connect(self._database_url) as conn:
                conn.execute(
                    """
                    INSERT INTO documents (path, id, fields)
                    VALUES (
                        %s, %s,
                        %s || COALESCE(
                            (SELECT jsonb_object_agg(k, to_jsonb(NOW())) FROM unnest(%s::text[]) AS k),
                            '{}'::jsonb
                        )
                    )
                    """,
                    (path, doc_id, Jsonb(plain, dumps=json_dumps), stamped),
                )
                conn.execute("SELECT pg_notify(%s, %s)", (NOTIFY_CHANNEL, path))
        except psycopg.Error as e:
            raise StoreWriteError(f"add_document failed: {e}") from e
        return doc_id

    def delete_document(self, path: str, doc_id: str) -> None:
        try:
            with _connect(self._database_url) as conn:
                conn.execute("DELETE FROM documents WHERE path = %s AND id = %s", (path, doc_id))
                conn.execute("SELECT pg_notify(%s, %s)", (NOTIFY_CHANNEL, path))
        except psycopg.Error as e:
            raise StoreWriteError(f"delete_document failed: {e}") from e

    def close(self) -> None:
        with self._lock:
            stops = list(self._stops)
        for stop in stops:
            stop.set()
