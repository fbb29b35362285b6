from pathlib import Path

import pytest
from pydantic import ValidationError as PydanticValidationError

from dropsim_core.config import (
    InventoryPolicy,
    MarketingDrawdown,
    Settings,
    SimulationSettings,
    get_settings,
)


def test_defaults():
    s = get_settings()
    assert s.session_id == "default"
    assert s.simulation.base_tick_seconds == 2.0
    assert s.simulation.event_probability == 0.10
    assert s.simulation.shipping_per_order == 5.0
    assert s.simulation.starting_inventory == 15
    assert s.simulation.inventory_policy is InventoryPolicy.UNCAPPED
    assert s.simulation.marketing_drawdown is MarketingDrawdown.EXPENSE_SHARE
    assert s.actions.restock_quantity == 20
    assert s.actions.restock_unit_cost == 15.0
    assert s.actions.marketing_increment == 100.0
    assert s.persistence.debounce_seconds == 1.0


def test_get_settings_is_cached():
    assert get_settings() is get_settings()


def test_env_overrides_nested_sections(monkeypatch):
    monkeypatch.setenv("DROPSIM_SIMULATION__MASTER_SEED", "99")
    monkeypatch.setenv("DROPSIM_SIMULATION__INVENTORY_POLICY", "capped")
    monkeypatch.setenv("DROPSIM_LOGGING__LEVEL", "DEBUG")
    get_settings.cache_clear()
    s = get_settings()
    assert s.simulation.master_seed == 99
    assert s.simulation.inventory_policy is InventoryPolicy.CAPPED
    assert s.logging.level == "DEBUG"


def test_yaml_overlay_precedence(monkeypatch, tmp_path: Path):
    overlay = tmp_path / "overlay.yaml"
    overlay.write_text(
        "session_id: from-yaml\n"
        "simulation:\n"
        "  event_probability: 0.5\n"
        "  marketing_drawdown: spend\n",
        encoding="utf-8",
    )
    monkeypatch.setenv("DROPSIM_CONFIG_PATH", str(overlay))
    get_settings.cache_clear()
    s = get_settings()
    assert s.session_id == "from-yaml"
    assert s.simulation.event_probability == 0.5
    assert s.simulation.marketing_drawdown is MarketingDrawdown.SPEND

    # Env wins over the overlay
    monkeypatch.setenv("DROPSIM_SESSION_ID", "from-env")
    get_settings.cache_clear()
    assert get_settings().session_id == "from-env"


def test_missing_overlay_is_ignored(monkeypatch, tmp_path: Path):
    monkeypatch.setenv("DROPSIM_CONFIG_PATH", str(tmp_path / "nope.yaml"))
    get_settings.cache_clear()
    assert get_settings().session_id == "default"


def test_invalid_values_are_rejected():
    with pytest.raises(PydanticValidationError):
        SimulationSettings(default_speed=3)
    with pytest.raises(PydanticValidationError):
        SimulationSettings(event_probability=1.5)
    with pytest.raises(PydanticValidationError):
        Settings(logging={"destination": "syslog"})
