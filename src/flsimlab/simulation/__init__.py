"""Simulation package for the FL lab.

Provides:
- Virtual client generation
- Closed-form round metric model
- Phased simulation engine
- Metrics reporting
"""

from flsimlab.simulation.clients import CLIENT_COLORS, generate_client_configs
from flsimlab.simulation.model import simulate_round
from flsimlab.simulation.metrics import MetricsReport, format_accuracy, format_loss
from flsimlab.simulation.engine import SimulationEngine, run_simulation

__all__ = [
    'CLIENT_COLORS',
    'generate_client_configs',
    'simulate_round',
    'MetricsReport',
    'format_accuracy',
    'format_loss',
    'SimulationEngine',
    'run_simulation'
]
