"""Simulation engine for phased FL rounds.

Drives the round loop:
1. Distributing - global parameters go to every client
2. Training - clients train one after another
3. Aggregating - FedAvg over all client results
4. Evaluating - new round metrics are appended

Every transition replaces the state snapshot in one step, records a log
entry and notifies subscribers before the engine suspends for the
phase's simulated delay. Cancellation is cooperative: stop() and reset()
mark the current run's token and the loop exits at its next checkpoint
without touching state again.
"""

import asyncio
from dataclasses import dataclass, replace
from datetime import datetime
from typing import Awaitable, Callable, List, Optional, Tuple, Union

import numpy as np

from flsimlab.config.settings import PhaseDelays, SimulationSettings
from flsimlab.exceptions import AlreadyRunning, ConfigurationLocked, InvalidConfiguration
from flsimlab.logging import SimLoggerFactory, SimulationLogger
from flsimlab.simulation.clients import generate_client_configs
from flsimlab.simulation.metrics import format_accuracy, format_loss
from flsimlab.simulation.model import simulate_round
from flsimlab.types import (
    ClientConfig,
    FLMode,
    HyperParams,
    LogEntry,
    LogLevel,
    PhaseType,
    RoundMetrics,
    SimulationPhase,
    SimulationState,
)
from flsimlab.utils.validation import (
    validate_hyper_params,
    validate_mode,
    validate_num_clients,
    validate_total_rounds,
)


Observer = Callable[[SimulationState], None]
SleepFn = Callable[[float], Awaitable[None]]


class _RunToken:
    """Cancellation flag owned by a single run.

    final_state holds the snapshot committed by the stop() or reset()
    that cancelled the run; it is what that run's start() returns.
    """

    __slots__ = ('cancelled', 'final_state')

    def __init__(self):
        self.cancelled = False
        self.final_state: Optional[SimulationState] = None

    def cancel(self) -> None:
        self.cancelled = True


@dataclass(frozen=True)
class _RunConfig:
    """Configuration captured when a run starts"""
    mode: FLMode
    clients: Tuple[ClientConfig, ...]
    hyper_params: HyperParams
    total_rounds: int
    delays: PhaseDelays


class SimulationEngine:
    """Federated learning simulation engine.

    Owns the authoritative SimulationState of one simulation. Consumers
    read `state` or subscribe to snapshots; configuration can only change
    while no run is active.
    """

    def __init__(
        self,
        settings: Optional[SimulationSettings] = None,
        rng: Union[np.random.RandomState, int, None] = None,
        sleep: Optional[SleepFn] = None,
        clock: Optional[Callable[[], datetime]] = None,
        logger: Optional[SimulationLogger] = None
    ):
        """Initialize simulation engine.

        Args:
            settings: Initial configuration (defaults match the dashboard)
            rng: RandomState or seed; falls back to settings.seed
            sleep: Awaitable used for simulated delays
            clock: Wall-clock source for log timestamps
            logger: Simulation logger instance
        """
        self._settings = (settings or SimulationSettings()).validate()

        if rng is None:
            rng = np.random.RandomState(self._settings.seed)
        elif not isinstance(rng, np.random.RandomState):
            rng = np.random.RandomState(rng)
        self._rng = rng

        self._sleep = sleep or asyncio.sleep
        self._clock = clock or datetime.now
        self.logger = logger or SimLoggerFactory.get_engine_logger()

        self._clients: Tuple[ClientConfig, ...] = tuple(generate_client_configs(
            self._settings.num_clients, self._settings.balanced, self._rng
        ))
        self._state = SimulationState(total_rounds=self._settings.total_rounds)
        self._token: Optional[_RunToken] = None
        self._log_round = 0
        self._observers: List[Observer] = []

    # Read-only views

    @property
    def state(self) -> SimulationState:
        return self._state

    @property
    def is_running(self) -> bool:
        return self._state.is_running

    @property
    def settings(self) -> SimulationSettings:
        return self._settings

    @property
    def clients(self) -> Tuple[ClientConfig, ...]:
        return self._clients

    @property
    def mode(self) -> FLMode:
        return self._settings.mode

    @property
    def hyper_params(self) -> HyperParams:
        return self._settings.hyper_params

    @property
    def total_rounds(self) -> int:
        return self._settings.total_rounds

    @property
    def num_clients(self) -> int:
        return self._settings.num_clients

    @property
    def balanced(self) -> bool:
        return self._settings.balanced

    # Observers

    def subscribe(self, callback: Observer) -> Callable[[], None]:
        """Register a callback receiving every new snapshot.

        Returns:
            Function that removes the callback
        """
        self._observers.append(callback)

        def unsubscribe() -> None:
            if callback in self._observers:
                self._observers.remove(callback)

        return unsubscribe

    def _notify(self) -> None:
        state = self._state
        for callback in list(self._observers):
            try:
                callback(state)
            except Exception:
                self.logger.exception(f"Observer {callback!r} failed",
                                      round_num=self._log_round)

    def _entry(self, level: LogLevel, message: str) -> LogEntry:
        # Round tag comes from this engine; the logger can be shared
        return self.logger.record(level, message, moment=self._clock(),
                                  round_num=self._log_round)

    def _commit(self, *entries: LogEntry, **changes) -> SimulationState:
        """Replace the snapshot, appending log entries, and notify observers"""
        if entries:
            changes['logs'] = self._state.logs + entries
        self._state = replace(self._state, **changes)
        self._notify()
        return self._state

    # Configuration

    def _ensure_idle(self, setting: str) -> None:
        if self._state.is_running:
            raise ConfigurationLocked(setting, current_round=self._state.current_round)

    def set_mode(self, mode: Union[FLMode, str]) -> None:
        """Select horizontal or vertical FL"""
        self._ensure_idle('mode')
        self._settings = replace(self._settings, mode=validate_mode(mode))

    def update_clients(self, count: int, balanced: bool) -> Tuple[ClientConfig, ...]:
        """Regenerate the client set.

        The previous set is replaced as a whole, never edited in place.
        """
        self._ensure_idle('clients')
        count = validate_num_clients(count)
        balanced = bool(balanced)

        self._clients = tuple(generate_client_configs(count, balanced, self._rng))
        self._settings = replace(self._settings, num_clients=count, balanced=balanced)
        return self._clients

    def set_hyper_params(
        self,
        hyper_params: Optional[HyperParams] = None,
        **changes
    ) -> HyperParams:
        """Replace hyperparameters, or update selected fields by keyword"""
        self._ensure_idle('hyper_params')
        params = hyper_params or self.hyper_params
        if changes:
            unknown = sorted(set(changes) - {'learning_rate', 'local_epochs', 'batch_size'})
            if unknown:
                raise InvalidConfiguration(
                    f"Unknown hyperparameters: {unknown}",
                    config_key="hyper_params",
                    actual_value=unknown
                )
            params = replace(params, **changes)

        params = validate_hyper_params(params)
        self._settings = replace(
            self._settings,
            learning_rate=params.learning_rate,
            local_epochs=params.local_epochs,
            batch_size=params.batch_size
        )
        return params

    def set_total_rounds(self, total_rounds: int) -> None:
        """Set the number of rounds used by the next run"""
        self._ensure_idle('total_rounds')
        self._settings = replace(
            self._settings, total_rounds=validate_total_rounds(total_rounds)
        )

    def set_delays(self, delays: PhaseDelays) -> None:
        """Change the simulated pacing"""
        self._ensure_idle('delays')
        self._settings = replace(self._settings, delays=delays.validate())

    # Control

    def _begin_run(self) -> Tuple[_RunToken, _RunConfig]:
        """Synchronous part of start: checks, captures config, resets state"""
        if self._state.is_running:
            raise AlreadyRunning(current_round=self._state.current_round)

        run = _RunConfig(
            mode=self.mode,
            clients=self._clients,
            hyper_params=self.hyper_params,
            total_rounds=self.total_rounds,
            delays=self._settings.delays
        )
        token = _RunToken()
        self._token = token

        params = run.hyper_params
        self._log_round = 0
        self._state = SimulationState(
            is_running=True,
            phase=SimulationPhase(PhaseType.IDLE, (), 0),
            current_round=0,
            total_rounds=run.total_rounds
        )
        self._commit(
            self._entry(
                LogLevel.INFO,
                f"flwr: Starting {run.mode.label} FL simulation with {len(run.clients)} clients"
            ),
            self._entry(
                LogLevel.INFO,
                f"flwr: Strategy FedAvg | LR={params.learning_rate} | "
                f"Epochs={params.local_epochs} | Batch={params.batch_size}"
            ),
            self._entry(LogLevel.INFO, f"flwr: Total rounds: {run.total_rounds}")
        )
        return token, run

    async def start(self) -> SimulationState:
        """Run a full simulation.

        Returns:
            Final snapshot (complete, or idle if stopped or reset)

        Raises:
            AlreadyRunning: a run is already active
        """
        token, run = self._begin_run()
        return await self._run(token, run)

    def launch(self) -> "asyncio.Task[SimulationState]":
        """Start a simulation as a task on the running event loop.

        The start checks happen before this returns, so AlreadyRunning is
        raised here rather than inside the task.
        """
        loop = asyncio.get_running_loop()
        token, run = self._begin_run()
        return loop.create_task(self._run(token, run))

    def stop(self) -> SimulationState:
        """Stop the current run and force the idle phase"""
        token = self._token
        if token is not None:
            token.cancel()

        state = self._commit(
            self._entry(LogLevel.WARN, "flwr: Simulation stopped by user"),
            is_running=False,
            phase=SimulationPhase(PhaseType.IDLE, (), self._state.current_round)
        )
        if token is not None and token.final_state is None:
            token.final_state = state
        return state

    def reset(self) -> SimulationState:
        """Cancel any run and return to an empty idle state"""
        token = self._token
        self._token = None
        if token is not None:
            token.cancel()

        self._log_round = 0
        self._state = SimulationState(total_rounds=self.total_rounds)
        if token is not None and token.final_state is None:
            token.final_state = self._state
        self._notify()
        return self._state

    # Round loop

    async def _pause(self, delay: float) -> None:
        await self._sleep(delay)

    def _stopped_state(self, token: _RunToken) -> SimulationState:
        """Snapshot a cancelled run ends with, even if a newer run owns state"""
        if token.final_state is not None:
            return token.final_state
        return self._state

    async def _run(self, token: _RunToken, run: _RunConfig) -> SimulationState:
        try:
            return await self._run_rounds(token, run)
        except asyncio.CancelledError:
            if not token.cancelled:
                self.stop()
            raise

    async def _run_rounds(self, token: _RunToken, run: _RunConfig) -> SimulationState:
        client_ids = tuple(c.id for c in run.clients)
        num_clients = len(run.clients)
        params = run.hyper_params
        previous: Optional[RoundMetrics] = None

        await self._pause(run.delays.startup)

        for round_num in range(1, run.total_rounds + 1):
            if token.cancelled:
                return self._stopped_state(token)

            self._log_round = round_num
            self._commit(
                self._entry(
                    LogLevel.INFO,
                    f"flwr: FitRound {round_num}: distributing global parameters "
                    f"to {num_clients} clients"
                ),
                current_round=round_num,
                phase=SimulationPhase(PhaseType.DISTRIBUTING, client_ids, round_num)
            )
            await self._pause(run.delays.distributing)

            for client in run.clients:
                if token.cancelled:
                    return self._stopped_state(token)
                self._commit(
                    self._entry(
                        LogLevel.DEBUG,
                        f"flwr: Client {client.id + 1} training on {client.sample_size} "
                        f"samples ({params.local_epochs} epochs)"
                    ),
                    phase=SimulationPhase(PhaseType.TRAINING, (client.id,), round_num)
                )
                await self._pause(run.delays.training)

            if token.cancelled:
                return self._stopped_state(token)

            self._commit(
                self._entry(
                    LogLevel.INFO,
                    f"flwr: FitRound {round_num} received {num_clients} results: "
                    f"aggregating with FedAvg"
                ),
                phase=SimulationPhase(PhaseType.AGGREGATING, client_ids, round_num)
            )
            await self._pause(run.delays.aggregating)

            if token.cancelled:
                return self._stopped_state(token)

            metrics = simulate_round(
                round_num, run.clients, params, run.mode,
                previous=previous, rng=self._rng
            )
            previous = metrics

            self._commit(
                self._entry(
                    LogLevel.INFO,
                    f"flwr: EvalRound {round_num}: accuracy: "
                    f"{format_accuracy(metrics.global_accuracy)}, "
                    f"loss: {format_loss(metrics.global_loss)}"
                ),
                phase=SimulationPhase(PhaseType.EVALUATING, (), round_num),
                metrics=self._state.metrics + (metrics,)
            )
            await self._pause(run.delays.evaluating)

        if token.cancelled:
            return self._stopped_state(token)

        self._commit(
            self._entry(
                LogLevel.INFO,
                f"flwr: Simulation complete after {run.total_rounds} rounds"
            ),
            is_running=False,
            phase=SimulationPhase(PhaseType.COMPLETE, (), run.total_rounds)
        )
        return self._state


def run_simulation(
    settings: Optional[SimulationSettings] = None,
    **engine_kwargs
) -> SimulationState:
    """Convenience function to run one simulation to completion.

    Args:
        settings: Simulation configuration
        **engine_kwargs: Extra SimulationEngine arguments (rng, sleep, ...)

    Returns:
        Final simulation state
    """
    engine = SimulationEngine(settings, **engine_kwargs)
    return asyncio.run(engine.start())
