"""
Configuration Tests

YAML loading, section merging, environment overrides and the shipped
config files.
"""

import pytest

from green_corridor.config import ConfigManager
from green_corridor.interlock import IntersectionRegistry
from green_corridor.models import RoadNode
from green_corridor.security import AuthorizedFleet


@pytest.fixture
def config_dir(tmp_path):
    (tmp_path / "corridor.yaml").write_text(
        "corridor:\n"
        "  proximityThresholdM: 300\n"
        "routing:\n"
        "  graphFile: maps/city.graphml\n"
    )
    (tmp_path / "fleet.yaml").write_text(
        "AMB-777:\n"
        "  name: Test Ambulance\n"
    )
    return tmp_path


class TestConfigManager:
    """Test loading and lookup"""

    def test_sections_merged_over_defaults(self, config_dir):
        cfg = ConfigManager(config_dir, use_env=False)

        assert cfg.get('corridor.proximityThresholdM') == 300
        assert cfg.get('corridor.ttiThresholdSec') == 20
        assert cfg.get('signalApi.mode') == 'http'

    def test_other_files_stored_under_stem(self, config_dir):
        cfg = ConfigManager(config_dir, use_env=False)
        assert cfg.get('fleet') == {"AMB-777": {"name": "Test Ambulance"}}

    def test_missing_key_default(self, config_dir):
        cfg = ConfigManager(config_dir, use_env=False)

        assert cfg.get('corridor.nope') is None
        assert cfg.get('corridor.nope', 42) == 42

    def test_missing_directory_uses_defaults(self, tmp_path):
        cfg = ConfigManager(tmp_path / "absent", use_env=False)
        assert cfg.get('routing.graphFile') == 'data/sample_city.graphml'

    def test_resolve_path(self, config_dir):
        cfg = ConfigManager(config_dir, use_env=False)
        assert cfg.resolve_path('routing.graphFile') == config_dir.parent / "maps" / "city.graphml"

    def test_set_runtime_value(self, config_dir):
        cfg = ConfigManager(config_dir, use_env=False)
        cfg.set('signalApi.mode', 'local')
        assert cfg.get_signal_api_config()['mode'] == 'local'

    def test_env_overrides(self, config_dir, monkeypatch):
        monkeypatch.setenv("PROXIMITY_THRESHOLD_METERS", "750")
        monkeypatch.setenv("SIGNAL_API_MODE", "local")
        monkeypatch.setenv("VELOCITY_SMOOTHING_WINDOW", "not-a-number")

        cfg = ConfigManager(config_dir)

        assert cfg.get('corridor.proximityThresholdM') == 750.0
        assert cfg.get('signalApi.mode') == 'local'
        assert cfg.get('corridor.smoothingWindow') == 5

    def test_reload(self, config_dir):
        cfg = ConfigManager(config_dir, use_env=False)
        (config_dir / "corridor.yaml").write_text("corridor:\n  ttiThresholdSec: 15\n")

        cfg.reload()

        assert cfg.get('corridor.ttiThresholdSec') == 15
        assert cfg.get('corridor.proximityThresholdM') == 500


class TestShippedConfig:
    """The files under backend/config build working components"""

    @pytest.fixture
    def cfg(self):
        return ConfigManager(use_env=False)

    def test_intersections(self, cfg):
        registry = IntersectionRegistry.from_config(cfg.get('intersections'))
        assert registry.ids == ["INT-MAIN", "INT-NORTH", "INT-EAST"]

    def test_fleet(self, cfg):
        fleet = AuthorizedFleet(cfg.get('fleet'))
        assert fleet.is_authorized("AMB-001")
        assert fleet.is_authorized("AMB_SIM_01")
        assert not fleet.is_authorized("ROGUE-1")

    def test_graph_file_exists(self, cfg):
        assert cfg.resolve_path('routing.graphFile').exists()

    def test_fallback_signal(self, cfg):
        node = RoadNode(**cfg.get('corridor.fallbackSignal'))
        assert node.is_intersection
