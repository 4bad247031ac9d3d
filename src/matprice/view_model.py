from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Sequence

from .schemas import ALL_CATEGORIES, Material


@dataclass
class FilterState:
    search_term: str = ""
    filter_category: str = ALL_CATEGORIES


@dataclass(frozen=True)
class Summary:
    total_items: int
    category_count: int


def filter_materials(
    materials: Iterable[Material],
    search_term: str = "",
    filter_category: str = ALL_CATEGORIES,
) -> list[Material]:
    """Materials whose name contains ``search_term`` (case-insensitive) and
    whose category matches ``filter_category`` (``ALL_CATEGORIES`` matches all).

    Pure; input order is preserved and the result is a fresh list.
    """
    needle = (search_term or "").casefold()
    return [
        m
        for m in materials
        if needle in m.name.casefold()
        and (filter_category == ALL_CATEGORIES or m.category == filter_category)
    ]


def apply_filters(materials: Iterable[Material], state: FilterState) -> list[Material]:
    return filter_materials(materials, state.search_term, state.filter_category)


def summarize(materials: Sequence[Material]) -> Summary:
    return Summary(
        total_items=len(materials),
        category_count=len({m.category for m in materials}),
    )
