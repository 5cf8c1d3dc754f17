"""
Custom exceptions for the FL simulation engine.

Every failure here is a usage precondition violation; nothing is retried.
"""

from typing import Any, Dict, Optional


class SimulationError(Exception):
    """Base exception for all simulation engine errors."""

    def __init__(self, message: str, error_code: Optional[str] = None,
                 context: Optional[Dict[str, Any]] = None):
        self.message = message
        self.error_code = error_code
        self.context = context or {}
        super().__init__(self.message)

    def __str__(self) -> str:
        if self.error_code:
            return f"[{self.error_code}] {self.message}"
        return self.message


class AlreadyRunning(SimulationError):
    """Raised when a simulation is started while another run is active."""

    def __init__(self, message: str = "Simulation is already running",
                 current_round: Optional[int] = None):
        self.current_round = current_round
        super().__init__(message, "ALREADY_RUNNING",
                         {"current_round": current_round})


class ConfigurationLocked(AlreadyRunning):
    """Raised when configuration is changed while a run is active.

    The running simulation keeps the configuration captured at start, so
    changes are rejected instead of being queued for the next run.
    """

    def __init__(self, setting: str, current_round: Optional[int] = None):
        self.setting = setting
        super().__init__(
            f"Cannot change '{setting}' while the simulation is running",
            current_round=current_round
        )
        self.error_code = "CONFIG_LOCKED"
        self.context["setting"] = setting


class InvalidConfiguration(SimulationError, ValueError):
    """Raised when a configuration value is out of range or of the wrong type."""

    def __init__(self, message: str, config_key: Optional[str] = None,
                 actual_value: Optional[Any] = None):
        self.config_key = config_key
        self.actual_value = actual_value

        context = {
            "config_key": config_key,
            "actual_value": actual_value
        }

        super().__init__(message, "CONFIG_ERROR", context)
