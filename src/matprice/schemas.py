from __future__ import annotations

from datetime import datetime
from typing import Literal, Optional, get_args

from pydantic import BaseModel, ConfigDict, Field, confloat, field_validator

Unit = Literal["kg", "ton", "m", "m²", "unit"]
Category = Literal["Metals", "Polymers", "Construction", "Chemicals", "Electronics"]

UNITS: tuple[str, ...] = get_args(Unit)
CATEGORIES: tuple[str, ...] = get_args(Category)

# Filter sentinel meaning "every category"
ALL_CATEGORIES = "All"


class MaterialFields(BaseModel):
    """Field values of one stored material document (camelCase on the wire)."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    name: str = Field(min_length=1, max_length=200)
    price: confloat(ge=0, allow_inf_nan=False)
    unit: Unit
    category: Category
    created_at: Optional[datetime] = Field(default=None, alias="createdAt")
    owner_id: Optional[str] = Field(default=None, alias="ownerId")

    @field_validator("name")
    @classmethod
    def name_not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("name must not be blank")
        return v


class Material(MaterialFields):
    id: str = Field(min_length=1)

    @property
    def is_synced(self) -> bool:
        """False until the store has echoed back the server timestamp."""
        return self.created_at is not None
