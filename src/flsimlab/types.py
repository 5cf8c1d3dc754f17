"""Core data types for the FL simulation engine.

All snapshot types are frozen dataclasses holding tuples, so a snapshot
handed to a consumer can be kept around without ever changing under it.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Tuple
import logging


class FLMode(Enum):
    """Federated learning scenario shown by the simulation"""
    HORIZONTAL = "horizontal"
    VERTICAL = "vertical"

    @property
    def label(self) -> str:
        return self.value.capitalize()


class PhaseType(Enum):
    """Phases of a simulated round"""
    IDLE = "idle"
    DISTRIBUTING = "distributing"
    TRAINING = "training"
    AGGREGATING = "aggregating"
    EVALUATING = "evaluating"
    COMPLETE = "complete"


class LogLevel(Enum):
    """Levels used in the simulation log trace"""
    INFO = "INFO"
    WARN = "WARN"
    DEBUG = "DEBUG"

    @property
    def logging_level(self) -> int:
        """Matching stdlib logging level"""
        return {
            LogLevel.INFO: logging.INFO,
            LogLevel.WARN: logging.WARNING,
            LogLevel.DEBUG: logging.DEBUG,
        }[self]


@dataclass(frozen=True)
class ClientConfig:
    """One virtual participant"""
    id: int
    label: str
    sample_size: int
    color: str


@dataclass(frozen=True)
class HyperParams:
    """Local training hyperparameters.

    batch_size does not feed the metric model; it is carried for
    configuration and the log trace.
    """
    learning_rate: float = 0.01
    local_epochs: int = 3
    batch_size: int = 32


@dataclass(frozen=True)
class ClientRoundMetrics:
    """Per-client result within a round"""
    client_id: int
    accuracy: float
    loss: float


@dataclass(frozen=True)
class RoundMetrics:
    """Result of one completed round"""
    round: int
    global_accuracy: float
    global_loss: float
    client_metrics: Tuple[ClientRoundMetrics, ...] = ()


@dataclass(frozen=True)
class LogEntry:
    """Single line of the simulation log trace"""
    timestamp: str
    level: LogLevel
    message: str

    def to_dict(self) -> dict:
        return {
            'timestamp': self.timestamp,
            'level': self.level.value,
            'message': self.message
        }


@dataclass(frozen=True)
class SimulationPhase:
    """Current phase and the clients highlighted in it"""
    type: PhaseType = PhaseType.IDLE
    active_clients: Tuple[int, ...] = ()
    round: int = 0


@dataclass(frozen=True)
class SimulationState:
    """Snapshot of the engine state"""
    is_running: bool = False
    phase: SimulationPhase = field(default_factory=SimulationPhase)
    current_round: int = 0
    total_rounds: int = 10
    metrics: Tuple[RoundMetrics, ...] = ()
    logs: Tuple[LogEntry, ...] = ()
