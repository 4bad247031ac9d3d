import importlib.util
import sys
from pathlib import Path

import pytest

from matprice.errors import AuthError, InvalidDraftError

from tests.conftest import make_context

SCRIPT = Path(__file__).resolve().parents[1] / "scripts" / "seed_materials.py"


@pytest.fixture(scope="module")
def seed_module():
    spec = importlib.util.spec_from_file_location("seed_materials", SCRIPT)
    module = importlib.util.module_from_spec(spec)
    sys.modules[spec.name] = module
    try:
        spec.loader.exec_module(module)
        yield module
    finally:
        sys.modules.pop(spec.name, None)


class TestSeedMaterials:
    def test_loads_bundled_seed_file(self, seed_module):
        items = seed_module._load_json(SCRIPT.parents[1] / "data" / "materials_seed.json")
        seeds = [seed_module._to_seed(it) for it in items]
        assert seeds[0] == seed_module.MaterialSeed(
            name="Stainless Steel 304", price=120.5, unit="kg", category="Metals"
        )
        assert len(seeds) == 6

    def test_rejects_bad_items(self, seed_module):
        with pytest.raises(ValueError):
            seed_module._to_seed({"name": "", "price": 1})
        with pytest.raises(ValueError):
            seed_module._to_seed({"name": "x", "price": 1, "unit": "gallon"})
        with pytest.raises(InvalidDraftError):
            seed_module._to_seed({"name": "x", "price": "-3"})

    def test_seeds_through_gateway(self, seed_module):
        ctx = make_context()
        seeds = [
            seed_module.MaterialSeed(name="A", price=1.0),
            seed_module.MaterialSeed(name="B", price=2.0, unit="ton", category="Polymers"),
        ]
        assert seed_module.seed_materials(ctx, seeds) == 2
        names = sorted(d.fields["name"] for d in ctx.store.documents(ctx.materials_path))
        assert names == ["A", "B"]

    def test_auth_failure(self, seed_module):
        ctx = make_context(initial_auth_token="forged")
        with pytest.raises(AuthError):
            seed_module.seed_materials(ctx, [])
