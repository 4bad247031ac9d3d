from __future__ import annotations

import logging
import math
from dataclasses import dataclass, fields, replace
from typing import Any

from .errors import (
    INVALID_PRICE_MESSAGE,
    SAVE_FAILED_MESSAGE,
    ErrorSlot,
    InvalidDraftError,
    StoreWriteError,
)
from .gateway import MutationGateway
from .providers.base import Identity
from .schemas import CATEGORIES, UNITS

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FormDraft:
    name: str = ""
    price: str = ""
    unit: str = "kg"
    category: str = "Metals"


DRAFT_FIELDS = tuple(f.name for f in fields(FormDraft))


def parse_price(raw: Any) -> float:
    """Parse the price text of a draft; reject anything that is not a finite,
    non-negative number."""
    text = "" if raw is None else str(raw).strip()
    try:
        value = float(text)
    except ValueError as e:
        raise InvalidDraftError(f"price is not a number: {text!r}") from e
    if not math.isfinite(value) or value < 0:
        raise InvalidDraftError(f"price must be a finite non-negative number: {text!r}")
    return value


class FormController:
    """Owns the new-material draft and submits it through the gateway.

    Submitting is a silent no-op without a signed-in identity or with an empty
    name/price. A price that does not parse is rejected with a banner message
    and the draft is kept. While a create is in flight further submits are
    ignored.
    """

    def __init__(self, gateway: MutationGateway, errors: ErrorSlot) -> None:
        self._gateway = gateway
        self._errors = errors
        self._pending = False
        self.draft = FormDraft()

    @property
    def pending(self) -> bool:
        """True while ``submit`` is inside ``gateway.create``; re-entrant submits are refused."""
        return self._pending

    def update(self, field: str, value: Any) -> FormDraft:
        if field not in DRAFT_FIELDS:
            raise KeyError(field)
        value = "" if value is None else str(value)
        if field == "unit" and value not in UNITS:
            raise ValueError(f"unit must be one of: {', '.join(UNITS)}")
        if field == "category" and value not in CATEGORIES:
            raise ValueError(f"category must be one of: {', '.join(CATEGORIES)}")
        self.draft = replace(self.draft, **{field: value})
        return self.draft

    def reset(self) -> None:
        self.draft = FormDraft()

    def submit(self, identity: Identity | None) -> bool:
        if self._pending:
            logger.info("submit ignored: a create is already in flight")
            return False

        draft = self.draft
        if identity is None or not draft.name.strip() or not draft.price.strip():
            return False

        try:
            price = parse_price(draft.price)
        except InvalidDraftError as e:
            logger.warning("rejected draft: %s", e)
            self._errors.set(INVALID_PRICE_MESSAGE)
            return False

        self._pending = True
        try:
            self._gateway.create(
                {
                    "name": draft.name.strip(),
                    "price": price,
                    "unit": draft.unit,
                    "category": draft.category,
                },
                owner_id=identity.uid,
            )
        except StoreWriteError:
            self._errors.set(SAVE_FAILED_MESSAGE)
            return False
        finally:
            self._pending = False

        self.reset()
        return True
