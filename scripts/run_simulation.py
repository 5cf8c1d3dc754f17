"""Command-line runner for the FL simulation lab.

Runs one synthetic federated learning simulation and prints the
per-round metrics table. Ctrl-C stops the run gracefully.
"""

import argparse
import asyncio
import logging
import os
import signal
import sys
from dataclasses import replace

# Add src to path
sys.path.insert(0, os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))), 'src'))

from flsimlab.config import ConfigManager, SimulationSettings
from flsimlab.exceptions import SimulationError
from flsimlab.logging import SimLoggerFactory
from flsimlab.simulation import MetricsReport, SimulationEngine
from flsimlab.types import PhaseType


def build_settings(args) -> SimulationSettings:
    """Apply command-line overrides on top of the config file"""
    path = args.config if args.config and os.path.exists(args.config) else None
    manager = ConfigManager(path)
    manager.apply_overrides({
        'simulation.mode': args.mode,
        'simulation.total_rounds': args.rounds,
        'simulation.seed': args.seed,
        'clients.count': args.clients,
        'clients.balanced': False if args.unbalanced else None,
        'hyperparams.learning_rate': args.lr,
        'hyperparams.local_epochs': args.epochs,
        'hyperparams.batch_size': args.batch_size,
    })
    settings = manager.load_settings()

    if args.speed is not None:
        settings = replace(settings, delays=settings.delays.scaled(args.speed))
    return settings


async def run(engine: SimulationEngine):
    """Run the engine, stopping it on SIGINT"""
    loop = asyncio.get_running_loop()
    try:
        loop.add_signal_handler(signal.SIGINT, engine.stop)
    except NotImplementedError:
        # Windows event loops have no signal handlers; Ctrl-C aborts instead
        return await engine.start()
    try:
        return await engine.start()
    finally:
        loop.remove_signal_handler(signal.SIGINT)


def main(argv=None):
    parser = argparse.ArgumentParser(description='Run a synthetic FL simulation')
    parser.add_argument('--config', type=str, default='config.yaml',
                       help='Configuration file path')
    parser.add_argument('--mode', type=str, default=None,
                       choices=['horizontal', 'vertical'],
                       help='FL scenario (overrides config)')
    parser.add_argument('--rounds', type=int, default=None,
                       help='Number of rounds (overrides config)')
    parser.add_argument('--clients', type=int, default=None,
                       help='Number of clients (overrides config)')
    parser.add_argument('--unbalanced', action='store_true',
                       help='Draw skewed client sample sizes')
    parser.add_argument('--lr', type=float, default=None,
                       help='Learning rate (overrides config)')
    parser.add_argument('--epochs', type=int, default=None,
                       help='Local epochs (overrides config)')
    parser.add_argument('--batch-size', type=int, default=None,
                       help='Batch size (overrides config)')
    parser.add_argument('--seed', type=int, default=None,
                       help='Random seed')
    parser.add_argument('--speed', type=float, default=None,
                       help='Delay scale factor (0 runs instantly)')
    parser.add_argument('--verbose', action='store_true',
                       help='Show per-client debug lines')
    args = parser.parse_args(argv)

    SimLoggerFactory.configure(
        default_level=logging.DEBUG if args.verbose else logging.INFO
    )

    try:
        engine = SimulationEngine(build_settings(args))
    except SimulationError as e:
        parser.error(str(e))

    final_state = asyncio.run(run(engine))

    report = MetricsReport.from_state(final_state)
    summary = report.get_summary(final_state, engine.clients)

    print()
    if final_state.metrics:
        print(report.get_dataframe().to_string(index=False))
    print(f"\nRounds: {summary['round']} | Accuracy: {summary['accuracy']} | "
          f"Loss: {summary['loss']} | Clients: {summary['clients']}")

    SimLoggerFactory.close_all()
    return 0 if final_state.phase.type == PhaseType.COMPLETE else 1


if __name__ == '__main__':
    sys.exit(main())
