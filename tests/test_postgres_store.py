"""PostgreSQL backend tests; they need a disposable database in TEST_DATABASE_URL."""

import os
import threading
from uuid import uuid4

import psycopg
import pytest
from psycopg.rows import dict_row

from matprice.errors import AuthError
from matprice.providers.base import SERVER_TIMESTAMP
from matprice.providers.postgres import PostgresAuthProvider, PostgresDocumentStore, ensure_schema
from matprice.subscriber import materials_from_documents

DATABASE_URL = os.getenv("TEST_DATABASE_URL")

pytestmark = pytest.mark.skipif(not DATABASE_URL, reason="TEST_DATABASE_URL is not set")


@pytest.fixture
def path():
    return f"artifacts/test-{uuid4().hex[:8]}/public/data/materials"


@pytest.fixture
def store(path):
    ensure_schema(DATABASE_URL)
    s = PostgresDocumentStore(DATABASE_URL, poll_timeout=0.2)
    yield s
    s.close()
    with psycopg.connect(DATABASE_URL) as conn:
        conn.execute("DELETE FROM documents WHERE path = %s", (path,))


def _wait_for(snapshots, changed, predicate, timeout=5.0):
    for _ in range(int(timeout / 0.05)):
        if snapshots and predicate(snapshots[-1]):
            return snapshots[-1]
        changed.wait(0.05)
        changed.clear()
    pytest.fail(f"condition not met, last snapshot={snapshots[-1] if snapshots else None}")


class TestPostgresDocumentStore:
    def test_add_then_read_back(self, store, path):
        doc_id = store.add_document(
            path,
            {"name": "Copper", "price": 9.5, "unit": "kg", "category": "Metals", "ownerId": "u", "createdAt": SERVER_TIMESTAMP},
        )
        with psycopg.connect(DATABASE_URL, row_factory=dict_row) as conn:
            docs = PostgresDocumentStore._fetch(conn, path)

        [m] = materials_from_documents(docs)
        assert m.id == doc_id
        assert m.price == 9.5
        assert m.created_at is not None

    def test_live_subscription(self, store, path):
        snapshots = []
        errors = []
        changed = threading.Event()

        def on_snapshot(docs):
            snapshots.append(docs)
            changed.set()

        unsubscribe = store.subscribe_to_collection(path, on_snapshot, errors.append)
        _wait_for(snapshots, changed, lambda s: s == [])

        doc_id = store.add_document(path, {"name": "a"})
        _wait_for(snapshots, changed, lambda s: [d.id for d in s] == [doc_id])

        store.delete_document(path, doc_id)
        _wait_for(snapshots, changed, lambda s: s == [])

        unsubscribe()
        assert errors == []


class TestPostgresAuthProvider:
    def test_anonymous_and_token(self):
        ensure_schema(DATABASE_URL)
        auth = PostgresAuthProvider(DATABASE_URL)
        anon = auth.sign_in_anonymously()
        assert anon.is_anonymous

        token = uuid4().hex
        uid = auth.grant_token(token)
        identity = auth.sign_in_with_token(token)
        assert identity.uid == uid
        assert identity.is_anonymous is False

    def test_unknown_token(self):
        ensure_schema(DATABASE_URL)
        with pytest.raises(AuthError):
            PostgresAuthProvider(DATABASE_URL).sign_in_with_token(uuid4().hex)
