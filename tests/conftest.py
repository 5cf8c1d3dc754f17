"""
Pytest configuration and shared fixtures for the simulation lab tests.
"""

import asyncio
import os
import sys

import pytest

sys.path.insert(0, os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))), 'src'))

from flsimlab.config import PhaseDelays, SimulationSettings
from flsimlab.logging import SimulationLogger
from flsimlab.simulation import SimulationEngine


class PhaseHook:
    """Injected sleep that runs an action at a chosen suspension point.

    The action fires once, while the engine is suspended in the first
    phase for which `trigger(state)` is true.
    """

    def __init__(self, trigger=None, action=None):
        self.engine = None
        self.trigger = trigger
        self.action = action
        self.delays = []

    async def __call__(self, delay):
        self.delays.append(delay)
        if self.trigger is not None and self.trigger(self.engine.state):
            action, self.trigger = self.action, None
            action(self.engine)
        await asyncio.sleep(0)


@pytest.fixture
def quiet_logger():
    """Simulation logger without console output"""
    logger = SimulationLogger("flsimlab.test", enable_console=False)
    yield logger
    logger.close()


@pytest.fixture
def make_engine(quiet_logger):
    """Factory for engines with instant delays and a fixed seed"""
    def factory(hook=None, seed=7, **overrides):
        settings = SimulationSettings(delays=PhaseDelays.instant(), seed=seed, **overrides)
        engine = SimulationEngine(settings, sleep=hook, logger=quiet_logger)
        if hook is not None:
            hook.engine = engine
        return engine
    return factory
