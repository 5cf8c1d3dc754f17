"""Configuration package.

Provides:
- SimulationSettings and PhaseDelays dataclasses
- ConfigManager for YAML/JSON configuration files
"""

from flsimlab.config.settings import PhaseDelays, SimulationSettings
from flsimlab.config.manager import ConfigManager

__all__ = [
    'PhaseDelays',
    'SimulationSettings',
    'ConfigManager'
]
