from __future__ import annotations

import logging
from typing import Any

from .context import AppContext
from .errors import StoreWriteError
from .providers.base import SERVER_TIMESTAMP

logger = logging.getLogger(__name__)


class MutationGateway:
    """Create/delete requests against the shared materials collection.

    Nothing is applied locally: the next snapshot is the only way a write
    shows up in the record list.
    """

    def __init__(self, ctx: AppContext) -> None:
        self._ctx = ctx

    def create(self, fields: dict[str, Any], owner_id: str) -> str:
        doc = {
            "name": fields["name"],
            "price": fields["price"],
            "unit": fields["unit"],
            "category": fields["category"],
            "createdAt": SERVER_TIMESTAMP,
            "ownerId": owner_id,
        }
        path = self._ctx.materials_path
        try:
            doc_id = self._ctx.store.add_document(path, doc)
        except StoreWriteError:
            logger.exception("failed to create material name=%s owner=%s", doc["name"], owner_id)
            raise
        except Exception as e:
            logger.exception("failed to create material name=%s owner=%s", doc["name"], owner_id)
            raise StoreWriteError(f"create failed: {e}") from e

        logger.info("created material id=%s name=%s price=%s", doc_id, doc["name"], doc["price"])
        return doc_id

    def remove(self, doc_id: str) -> None:
        path = self._ctx.materials_path
        try:
            self._ctx.store.delete_document(path, doc_id)
        except StoreWriteError:
            logger.exception("failed to delete material id=%s", doc_id)
            raise
        except Exception as e:
            logger.exception("failed to delete material id=%s", doc_id)
            raise StoreWriteError(f"delete failed: {e}") from e

        logger.info("deleted material id=%s", doc_id)
