from datetime import datetime, timezone
from functools import partial

import pytest

from matprice.config import Settings
from matprice.context import AppContext
from matprice.providers.memory import InMemoryAuthProvider, InMemoryDocumentStore
from matprice.schemas import Material
from matprice.tracker import MaterialTracker

GOOD_TOKEN = "good-token"
GOOD_UID = "user-42"


class RecordingStore(InMemoryDocumentStore):
    """In-memory store that remembers every write it was asked to make."""

    def __init__(self):
        super().__init__()
        self.added = []
        self.deleted = []

    def add_document(self, path, fields):
        self.added.append((path, dict(fields)))
        return super().add_document(path, fields)

    def delete_document(self, path, doc_id):
        self.deleted.append((path, doc_id))
        super().delete_document(path, doc_id)


class CapturingStore:
    """Store that keeps every subscriber's callbacks so a test can fire them late."""

    def __init__(self):
        self.callbacks = []

    def subscribe_to_collection(self, path, on_snapshot, on_error):
        self.callbacks.append((on_snapshot, on_error))
        on_snapshot([])
        return lambda: None

    def close(self):
        pass


def make_settings(**overrides):
    values = dict(
        app_env="test",
        database_url=None,
        backend="memory",
        app_id="test-app",
        initial_auth_token=None,
        auth_tokens={GOOD_TOKEN: GOOD_UID},
    )
    values.update(overrides)
    return Settings(**values)


def make_context(**overrides):
    settings = make_settings(**overrides)
    return AppContext(
        settings=settings,
        store=RecordingStore(),
        auth_factory=partial(InMemoryAuthProvider, tokens=settings.auth_tokens),
    ).open()


@pytest.fixture
def ctx():
    context = make_context()
    yield context
    context.close()


@pytest.fixture
def store(ctx):
    return ctx.store


@pytest.fixture
def tracker(ctx):
    t = MaterialTracker(ctx).start()
    yield t
    t.close()


# ---------------------------------------------------------------------------
# Helpers re-used across multiple test modules
# ---------------------------------------------------------------------------

def ts(seconds):
    return datetime.fromtimestamp(seconds, tz=timezone.utc)


def material(id, name="Steel bar", price=10.0, unit="kg", category="Metals", created_at=None, owner_id="u1"):
    return Material(
        id=id,
        name=name,
        price=price,
        unit=unit,
        category=category,
        created_at=created_at,
        owner_id=owner_id,
    )


def fields(name="Steel bar", price=10.0, unit="kg", category="Metals", created_at=None, owner_id="u1"):
    out = {"name": name, "price": price, "unit": unit, "category": category, "ownerId": owner_id}
    if created_at is not None:
        out["createdAt"] = created_at
    return out
