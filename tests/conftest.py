import itertools
import sys
from pathlib import Path
from typing import Iterable

import pytest

SRC_DIR = Path(__file__).resolve().parents[1] / "src"
if str(SRC_DIR) not in sys.path:
    sys.path.insert(0, str(SRC_DIR))

from dropsim_core.config import Settings, get_settings  # noqa: E402
from dropsim_core.models.product import Product  # noqa: E402
from reproducibility.deterministic_rng import SimulationRNG  # noqa: E402


class ScriptedRandom:
    """RandomSource test double that replays ``values`` in a loop."""

    def __init__(self, values: Iterable[float]):
        self.values = list(values)
        if not self.values:
            raise ValueError("ScriptedRandom needs at least one value")
        self._cycle = itertools.cycle(self.values)
        self.calls = 0

    def random(self) -> float:
        self.calls += 1
        return next(self._cycle)


def scripted_rng(events=(0.99,), demand=(0.0,), drift=(0.5,)) -> SimulationRNG:
    """No event, first product on the fallback path, metrics that do not move."""
    return SimulationRNG(
        events=ScriptedRandom(events),
        demand=ScriptedRandom(demand),
        drift=ScriptedRandom(drift),
    )


@pytest.fixture(autouse=True)
def clear_settings_cache(monkeypatch):
    # Ensure clean settings on every test
    for name in ("DROPSIM_CONFIG_PATH", "DROPSIM_SESSION_ID"):
        monkeypatch.delenv(name, raising=False)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def settings(tmp_path) -> Settings:
    """Defaults with instant debounce and an isolated snapshot directory."""
    return Settings(
        persistence={"debounce_seconds": 0.0, "max_retries": 2, "snapshot_dir": tmp_path},
        simulation={"master_seed": 1234, "base_tick_seconds": 0.01},
    )


@pytest.fixture
def make_rng():
    return scripted_rng


@pytest.fixture
def scripted():
    return ScriptedRandom


@pytest.fixture
def products():
    return [
        Product(id="A", name="Alpha", category="general", cost=10, selling_price=30),
        Product(id="B", name="Beta", category="general", cost=5, selling_price=20),
    ]


@pytest.fixture
def single_product():
    return [Product(id="P1", name="Solo", category="general", cost=10, selling_price=25)]
