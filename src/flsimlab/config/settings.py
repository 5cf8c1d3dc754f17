"""Simulation settings and phase pacing"""

from dataclasses import dataclass, field, fields, replace
from typing import Any, Dict, Optional

from flsimlab.exceptions import InvalidConfiguration
from flsimlab.types import FLMode, HyperParams
from flsimlab.utils.validation import (
    validate_delay,
    validate_hyper_params,
    validate_mode,
    validate_num_clients,
    validate_seed,
    validate_total_rounds,
)


@dataclass(frozen=True)
class PhaseDelays:
    """Simulated delay in seconds after each phase transition.

    `training` applies once per client, since clients train one after
    the other.
    """
    startup: float = 0.6
    distributing: float = 0.8
    training: float = 0.5
    aggregating: float = 0.7
    evaluating: float = 0.5

    @classmethod
    def instant(cls) -> "PhaseDelays":
        """All-zero delays, for tests and batch runs"""
        return cls(0.0, 0.0, 0.0, 0.0, 0.0)

    def scaled(self, factor: float) -> "PhaseDelays":
        """Multiply every delay by factor"""
        factor = validate_delay(factor, "factor")
        return PhaseDelays(**{
            f.name: getattr(self, f.name) * factor for f in fields(self)
        })

    def validate(self) -> "PhaseDelays":
        for f in fields(self):
            validate_delay(getattr(self, f.name), f.name)
        return self

    def to_dict(self) -> Dict[str, float]:
        return {f.name: getattr(self, f.name) for f in fields(self)}


@dataclass
class SimulationSettings:
    """Configuration for one simulation engine"""
    # Scenario
    mode: FLMode = FLMode.HORIZONTAL
    total_rounds: int = 10

    # Clients
    num_clients: int = 3
    balanced: bool = True

    # Training settings
    learning_rate: float = 0.01
    local_epochs: int = 3
    batch_size: int = 32

    # Reproducibility and pacing
    seed: Optional[int] = None
    delays: PhaseDelays = field(default_factory=PhaseDelays)

    @property
    def hyper_params(self) -> HyperParams:
        return HyperParams(
            learning_rate=self.learning_rate,
            local_epochs=self.local_epochs,
            batch_size=self.batch_size
        )

    def validate(self) -> "SimulationSettings":
        """Return a normalized copy, raising InvalidConfiguration on bad values"""
        params = validate_hyper_params(self.hyper_params)
        return replace(
            self,
            mode=validate_mode(self.mode),
            total_rounds=validate_total_rounds(self.total_rounds),
            num_clients=validate_num_clients(self.num_clients),
            balanced=bool(self.balanced),
            learning_rate=params.learning_rate,
            local_epochs=params.local_epochs,
            batch_size=params.batch_size,
            seed=validate_seed(self.seed),
            delays=self.delays.validate()
        )

    @classmethod
    def from_dict(cls, config: Dict[str, Any]) -> "SimulationSettings":
        """Build settings from a nested config mapping.

        Recognized sections are `simulation`, `clients`, `hyperparams`
        and `delays`; missing keys keep their defaults.
        """
        config = config or {}
        sim = config.get('simulation') or {}
        clients = config.get('clients') or {}
        hyper = config.get('hyperparams') or {}
        delays = config.get('delays') or {}

        defaults = cls()
        known_delays = {f.name for f in fields(PhaseDelays)}
        unknown = sorted(set(delays) - known_delays)
        if unknown:
            raise InvalidConfiguration(
                f"Unknown delay keys: {unknown}",
                config_key="delays",
                actual_value=unknown
            )

        settings = cls(
            mode=sim.get('mode', defaults.mode),
            total_rounds=sim.get('total_rounds', defaults.total_rounds),
            seed=sim.get('seed', defaults.seed),
            num_clients=clients.get('count', defaults.num_clients),
            balanced=clients.get('balanced', defaults.balanced),
            learning_rate=hyper.get('learning_rate', defaults.learning_rate),
            local_epochs=hyper.get('local_epochs', defaults.local_epochs),
            batch_size=hyper.get('batch_size', defaults.batch_size),
            delays=replace(defaults.delays, **delays)
        )
        return settings.validate()

    def to_dict(self) -> Dict[str, Any]:
        return {
            'simulation': {
                'mode': validate_mode(self.mode).value,
                'total_rounds': self.total_rounds,
                'seed': self.seed
            },
            'clients': {
                'count': self.num_clients,
                'balanced': self.balanced
            },
            'hyperparams': {
                'learning_rate': self.learning_rate,
                'local_epochs': self.local_epochs,
                'batch_size': self.batch_size
            },
            'delays': self.delays.to_dict()
        }
