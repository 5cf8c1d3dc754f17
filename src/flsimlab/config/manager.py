"""Configuration management for the simulation lab"""

import json
from typing import Any, Dict, Optional

import yaml

from flsimlab.config.settings import SimulationSettings


class ConfigManager:
    """Nested simulation configuration read from a YAML or JSON file.

    Keys are addressed with dots (``clients.count``), matching the
    sections understood by SimulationSettings.from_dict.
    """

    def __init__(self, config_path: Optional[str] = None):
        """Initialize configuration manager.

        Args:
            config_path: File to load; ``.json`` files are parsed as JSON,
                anything else as YAML
        """
        self.config: Dict[str, Any] = {}
        if config_path:
            self.load(config_path)

    def load(self, config_path: str) -> Dict[str, Any]:
        """Replace the configuration with the contents of a file"""
        with open(config_path, 'r') as f:
            if config_path.endswith('.json'):
                loaded = json.load(f)
            else:
                loaded = yaml.safe_load(f)
        self.config = loaded or {}
        return self.config

    def set(self, key: str, value: Any) -> None:
        """Set a value by dotted key, creating sections as needed"""
        *sections, name = key.split('.')
        config = self.config
        for section in sections:
            if not isinstance(config.get(section), dict):
                config[section] = {}
            config = config[section]
        config[name] = value

    def apply_overrides(self, overrides: Dict[str, Any]) -> None:
        """Set every dotted key whose value is not None"""
        for key, value in overrides.items():
            if value is not None:
                self.set(key, value)

    def load_settings(self) -> SimulationSettings:
        """Build validated SimulationSettings from the configuration"""
        return SimulationSettings.from_dict(self.config)
