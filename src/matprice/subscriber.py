from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from functools import partial
from typing import Iterable, Union

from pydantic import ValidationError

from .channel import Channel
from .context import AppContext
from .providers.base import Document, Identity, Unsubscribe
from .schemas import Material

logger = logging.getLogger(__name__)

# Missing timestamps sort as oldest
_OLDEST = datetime.min.replace(tzinfo=timezone.utc)


@dataclass(frozen=True)
class SnapshotEvent:
    materials: tuple[Material, ...]


@dataclass(frozen=True)
class SubscriptionFailed:
    error: Exception


RecordEvent = Union[SnapshotEvent, SubscriptionFailed]


def _timestamp(material: Material) -> datetime:
    ts = material.created_at
    if ts is None:
        return _OLDEST
    if ts.tzinfo is None:
        # naive values are treated as UTC
        return ts.replace(tzinfo=timezone.utc)
    return ts


def sort_materials(materials: Iterable[Material]) -> list[Material]:
    """Newest first; records without ``created_at`` last; ties by id."""
    by_id = sorted(materials, key=lambda m: m.id)
    return sorted(by_id, key=_timestamp, reverse=True)


def materials_from_documents(docs: Iterable[Document]) -> list[Material]:
    materials: list[Material] = []
    for doc in docs:
        try:
            materials.append(Material.model_validate({**doc.fields, "id": doc.id}))
        except ValidationError as e:
            logger.warning("skipping malformed material id=%s: %s", doc.id, e.errors(include_url=False))
    return materials


class RecordStoreSubscriber:
    """Keeps exactly one live subscription on the materials collection.

    Every snapshot is converted, sorted and published on ``channel`` as a
    ``SnapshotEvent``; subscription errors are published as
    ``SubscriptionFailed``. Callbacks still in flight from a subscription that
    has been closed are dropped.
    """

    def __init__(self, ctx: AppContext, channel: Channel[RecordEvent]) -> None:
        self._ctx = ctx
        self._channel = channel
        self._unsubscribe: Unsubscribe | None = None
        self._generation = 0

    @property
    def active(self) -> bool:
        return self._unsubscribe is not None

    def _on_snapshot(self, generation: int, docs: list[Document]) -> None:
        if generation != self._generation:
            logger.debug("dropping snapshot from closed subscription")
            return
        materials = sort_materials(materials_from_documents(docs))
        logger.debug("snapshot received: %d documents, %d materials", len(docs), len(materials))
        self._channel.publish(SnapshotEvent(materials=tuple(materials)))

    def _on_error(self, generation: int, error: Exception) -> None:
        if generation != self._generation:
            logger.debug("dropping error from closed subscription: %s", error)
            return
        logger.error("materials subscription failed: %s", error)
        self._channel.publish(SubscriptionFailed(error=error))

    def bind(self, identity: Identity | None) -> None:
        if identity is None:
            self.close()
            return
        if self.active:
            return

        self._generation += 1
        generation = self._generation
        path = self._ctx.materials_path
        logger.info("subscribing to %s uid=%s", path, identity.uid)
        self._unsubscribe = self._ctx.store.subscribe_to_collection(
            path,
            partial(self._on_snapshot, generation),
            partial(self._on_error, generation),
        )

    def close(self) -> None:
        if self._unsubscribe is None:
            return
        self._generation += 1
        self._unsubscribe()
        self._unsubscribe = None
        logger.info("unsubscribed from %s", self._ctx.materials_path)
