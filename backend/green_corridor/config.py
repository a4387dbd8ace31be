"""
Configuration Management System

This module provides centralized configuration management using YAML and JSON files.
Supports dot-notation access, environment variable overrides and hot reloading.
"""

import os
import yaml
import json
from pathlib import Path
from typing import Dict, Any, Optional

from dotenv import load_dotenv


# Built-in defaults, used for any key the config files leave out
DEFAULT_CONFIG: Dict[str, Any] = {
    'corridor': {
        'proximityThresholdM': 500,
        'ttiThresholdSec': 20,
        'smoothingWindow': 5,
        'fallbackSignal': {'id': 'default', 'lat': 26.9124, 'lon': 75.7873, 'tag': 'signal'},
    },
    'routing': {
        'graphFile': 'data/sample_city.graphml',
        'defaultEdgeLength': 1.0,
        'mergeManagedIntersections': False,
    },
    'signal': {
        'defaultIntersection': 'INT-MAIN',
        'immediateThresholdSec': 20,
        'earlyActivationBufferSec': 10,
    },
    'signalApi': {
        'mode': 'http',
        'url': 'http://localhost:8000',
        'securityToken': 'SURAKSHA_SECURE_TOKEN_2024',
        'bridgeVehicleId': None,
        'timeoutSec': 5,
    },
}

# Environment variable -> dot-notation key
ENV_OVERRIDES = {
    'PROXIMITY_THRESHOLD_METERS': ('corridor.proximityThresholdM', float),
    'TTI_THRESHOLD_SECONDS': ('corridor.ttiThresholdSec', float),
    'VELOCITY_SMOOTHING_WINDOW': ('corridor.smoothingWindow', int),
    'GRAPH_FILE': ('routing.graphFile', str),
    'SIGNAL_API_MODE': ('signalApi.mode', str),
    'SIGNAL_API_URL': ('signalApi.url', str),
    'SECURITY_TOKEN': ('signalApi.securityToken', str),
    'BRIDGE_VEHICLE_ID': ('signalApi.bridgeVehicleId', str),
}


def _deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    """Merge override into a copy of base, recursing into nested dicts"""
    merged = dict(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


class ConfigManager:
    """
    Manage application configuration from YAML and JSON files

    Provides:
    - Load all config files on startup
    - Dot notation access: config.get('corridor.proximityThresholdM')
    - Environment variable overrides (see ENV_OVERRIDES)
    - Hot reload capability
    - Default values for missing keys
    """

    def __init__(self, config_dir: str = None, use_env: bool = True):
        """
        Initialize configuration manager

        Args:
            config_dir: Path to config directory (default: backend/config)
            use_env: Apply environment variable overrides
        """
        if config_dir:
            self.config_dir = Path(config_dir)
        else:
            # Find config dir relative to this file
            self.config_dir = Path(__file__).parent.parent / "config"

        self.use_env = use_env
        self.configs: Dict[str, Any] = {}
        self._load_all_configs()

    @property
    def base_dir(self) -> Path:
        """Directory relative paths in the config are resolved against"""
        return self.config_dir.parent

    def _load_all_configs(self):
        """Load all configuration files from config directory"""
        self.configs = _deep_merge({}, DEFAULT_CONFIG)

        if not self.config_dir.exists():
            print(f"   [WARN] Config directory not found: {self.config_dir}, using defaults")
        else:
            # Load YAML configs
            for yaml_file in sorted(self.config_dir.glob("*.yaml")):
                with open(yaml_file, 'r') as f:
                    data = yaml.safe_load(f) or {}
                self._merge_file(yaml_file.stem, data)
                print(f"   [CONFIG] Loaded: {yaml_file.name}")

            # Load JSON configs
            for json_file in sorted(self.config_dir.glob("*.json")):
                with open(json_file, 'r') as f:
                    data = json.load(f)
                self._merge_file(json_file.stem, data)
                print(f"   [CONFIG] Loaded: {json_file.name}")

        if self.use_env:
            load_dotenv()
            self._apply_env_overrides()

    def _merge_file(self, name: str, data: Any):
        """
        Merge one file into the config tree

        A file whose top-level keys are known sections (corridor.yaml holding
        'corridor:' and 'routing:') is merged section by section; anything
        else is stored under the file stem.
        """
        if isinstance(data, dict) and data and all(k in DEFAULT_CONFIG for k in data):
            self.configs = _deep_merge(self.configs, data)
        elif isinstance(data, dict) and isinstance(self.configs.get(name), dict):
            self.configs[name] = _deep_merge(self.configs[name], data)
        else:
            self.configs[name] = data

    def _apply_env_overrides(self):
        """Override config values from environment variables"""
        for env_var, (key, cast) in ENV_OVERRIDES.items():
            raw = os.getenv(env_var)
            if raw is None or raw == "":
                continue
            try:
                self.set(key, cast(raw))
            except ValueError:
                print(f"   [WARN] Ignoring {env_var}={raw!r}: expected {cast.__name__}")

    def get(self, key: str, default: Any = None) -> Any:
        """
        Get configuration value by dot notation key

        Examples:
            config.get('corridor.ttiThresholdSec')
            config.get('signalApi.url')

        Args:
            key: Dot-separated key path
            default: Default value if key not found

        Returns:
            Configuration value or default
        """
        keys = key.split('.')
        value = self.configs

        for k in keys:
            if isinstance(value, dict) and k in value:
                value = value[k]
            else:
                return default
        return value

    def get_corridor_config(self) -> Dict[str, Any]:
        """Get corridor engine configuration section"""
        return self.configs.get('corridor', {})

    def get_signal_config(self) -> Dict[str, Any]:
        """Get signal interlock configuration section"""
        return self.configs.get('signal', {})

    def get_signal_api_config(self) -> Dict[str, Any]:
        """Get signal priority API client configuration section"""
        return self.configs.get('signalApi', {})

    def resolve_path(self, key: str) -> Optional[Path]:
        """Resolve a path-valued key against the backend directory"""
        value = self.get(key)
        if not value:
            return None
        path = Path(value)
        return path if path.is_absolute() else self.base_dir / path

    def reload(self):
        """Reload all configuration files"""
        print("[CONFIG] Reloading configuration...")
        self.configs.clear()
        self._load_all_configs()
        print("[OK] Configuration reloaded")

    def set(self, key: str, value: Any):
        """
        Set a configuration value (runtime only, not persisted)

        Args:
            key: Dot-separated key path
            value: Value to set
        """
        keys = key.split('.')
        config = self.configs

        for k in keys[:-1]:
            if k not in config or not isinstance(config[k], dict):
                config[k] = {}
            config = config[k]

        config[keys[-1]] = value


# Global configuration instance, created on first use
config: Optional[ConfigManager] = None


def get_config() -> ConfigManager:
    """Get the global configuration instance"""
    global config
    if config is None:
        config = ConfigManager()
    return config
