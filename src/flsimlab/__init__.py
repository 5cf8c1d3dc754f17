"""FL Simulation Lab: a synthetic federated learning simulation engine.

Virtual clients go through rounds of parameter distribution, local
training, FedAvg aggregation and evaluation. Metrics come from a
closed-form improvement model with bounded noise, and every phase
transition is published as an immutable state snapshot for dashboards.

Main modules:
- types: snapshot data types
- simulation: client generation, metric model, engine, reporting
- config: settings, pacing and config files
- logging: simulation log trace
- exceptions: error taxonomy
"""

__version__ = "0.1.0"
__author__ = "FL Simulation Lab Team"
