from __future__ import annotations

import json
import logging
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Iterable

ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

from matprice.config import get_settings
from matprice.context import AppContext
from matprice.errors import AuthError, ErrorSlot, StoreWriteError
from matprice.forms import parse_price
from matprice.gateway import MutationGateway
from matprice.schemas import CATEGORIES, UNITS
from matprice.session import SessionBootstrapper

logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MaterialSeed:
    name: str
    price: float
    unit: str = "kg"
    category: str = "Metals"


def _load_json(path: Path) -> list[dict[str, Any]]:
    raw = json.loads(path.read_text(encoding="utf-8"))

    # Accept either:
    #  - list[dict]
    #  - {"materials": [...]}
    if isinstance(raw, list):
        items = raw
    elif isinstance(raw, dict) and isinstance(raw.get("materials"), list):
        items = raw["materials"]
    else:
        raise ValueError("materials seed must be a list OR {'materials': [...]}")

    out: list[dict[str, Any]] = []
    for i, it in enumerate(items):
        if not isinstance(it, dict):
            raise ValueError(f"Invalid item at index {i}: not an object")
        out.append(it)
    return out


def _to_seed(item: dict[str, Any]) -> MaterialSeed:
    name = str(item.get("name") or "").strip()
    if not name:
        raise ValueError(f"Missing required key: name in item={item}")

    unit = str(item.get("unit") or "kg").strip()
    category = str(item.get("category") or "Metals").strip()
    if unit not in UNITS:
        raise ValueError(f"Unknown unit {unit!r} in item={item}")
    if category not in CATEGORIES:
        raise ValueError(f"Unknown category {category!r} in item={item}")

    return MaterialSeed(name=name, price=parse_price(item.get("price")), unit=unit, category=category)


def seed_materials(ctx: AppContext, seeds: Iterable[MaterialSeed]) -> int:
    errors = ErrorSlot()
    session = SessionBootstrapper(ctx, errors)
    identity = session.start()
    if identity is None:
        raise AuthError(errors.message or "sign-in failed")

    gateway = MutationGateway(ctx)
    n = 0
    try:
        for seed in seeds:
            try:
                gateway.create(
                    {"name": seed.name, "price": seed.price, "unit": seed.unit, "category": seed.category},
                    owner_id=identity.uid,
                )
                n += 1
            except StoreWriteError:
                logger.warning("skipped material name=%s", seed.name)
                continue
    finally:
        session.stop()
    return n


def main() -> None:
    import argparse

    p = argparse.ArgumentParser()
    p.add_argument("--path", default="data/materials_seed.json", help="Path to materials_seed.json")
    args = p.parse_args()

    path = Path(args.path)
    if not path.exists():
        raise FileNotFoundError(f"Seed file not found: {path}")

    items = _load_json(path)
    seeds = [_to_seed(it) for it in items]

    settings = get_settings()
    if settings.backend == "memory":
        logger.warning("MATPRICE_BACKEND=memory: seeded records vanish when this process exits")

    with AppContext.from_settings(settings) as ctx:
        n = seed_materials(ctx, seeds)
    print(f"OK: added {n} materials to {ctx.materials_path}")


if __name__ == "__main__":
    main()
