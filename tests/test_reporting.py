"""Tests for metrics reporting and simulation logging."""

import asyncio
import logging
import os
from datetime import datetime

import pytest

from flsimlab.logging import SimLoggerFactory, SimulationLogger, format_timestamp
from flsimlab.simulation import MetricsReport, format_accuracy, format_loss
from flsimlab.types import (
    ClientRoundMetrics,
    LogLevel,
    RoundMetrics,
    SimulationState,
)


def make_metrics(round_num, accuracy, loss, clients=2):
    """Helper to build RoundMetrics with uniform client values."""
    return RoundMetrics(
        round=round_num,
        global_accuracy=accuracy,
        global_loss=loss,
        client_metrics=tuple(
            ClientRoundMetrics(client_id=i, accuracy=accuracy, loss=loss)
            for i in range(clients)
        )
    )


class TestFormatting:
    """Tests for shared number formatting"""

    def test_format_accuracy(self):
        assert format_accuracy(0.4234) == "42.3%"
        assert format_accuracy(0.99) == "99.0%"

    def test_format_loss(self):
        assert format_loss(1.94123456) == "1.9412"


class TestMetricsReport:
    """Tests for MetricsReport"""

    def test_dataframe(self):
        """Chart frame has one row per round"""
        report = MetricsReport([make_metrics(1, 0.1009, 1.94123), make_metrics(2, 0.2567, 1.5)])
        df = report.get_dataframe()

        assert list(df.columns) == ['round', 'label', 'accuracy', 'loss']
        assert list(df['label']) == ['R1', 'R2']
        assert list(df['accuracy']) == [10.1, 25.7]
        assert df['loss'].iloc[0] == pytest.approx(1.9412)

    def test_empty_dataframe(self):
        """No metrics gives an empty frame with the same columns"""
        df = MetricsReport([]).get_dataframe()
        assert df.empty
        assert list(df.columns) == ['round', 'label', 'accuracy', 'loss']

    def test_client_dataframe(self):
        """Per-client frame is long-form"""
        report = MetricsReport([make_metrics(1, 0.2, 1.0, clients=3), make_metrics(2, 0.3, 0.9, clients=3)])
        df = report.get_client_dataframe()

        assert len(df) == 6
        assert list(df[df['round'] == 2]['client_id']) == [0, 1, 2]

    def test_summary_before_metrics(self, make_engine):
        """Placeholders are shown before the first evaluation"""
        engine = make_engine(total_rounds=5)
        summary = MetricsReport.from_state(engine.state).get_summary(engine.state, engine.clients)

        assert summary['accuracy'] == "—"
        assert summary['loss'] == "—"
        assert summary['round'] == "0/5"
        assert summary['clients'] == 3
        assert all(d['accuracy'] is None for d in summary['client_details'])

    def test_summary_after_run(self, make_engine):
        """Summary reflects the latest round"""
        engine = make_engine(total_rounds=3)
        final = asyncio.run(engine.start())
        latest = final.metrics[-1]

        summary = MetricsReport.from_state(final).get_summary(final, engine.clients)

        assert summary['accuracy'] == format_accuracy(latest.global_accuracy)
        assert summary['loss'] == format_loss(latest.global_loss)
        assert summary['round'] == "3/3"
        assert summary['completed_rounds'] == 3
        assert summary['best_accuracy'] == max(m.global_accuracy for m in final.metrics)
        assert [d['label'] for d in summary['client_details']] == ["Client 1", "Client 2", "Client 3"]
        assert all(d['accuracy'].endswith('%') for d in summary['client_details'])

    def test_latest(self):
        """latest returns the last round or None"""
        assert MetricsReport([]).latest() is None
        m = make_metrics(1, 0.5, 0.5)
        assert MetricsReport.from_state(SimulationState(metrics=(m,))).latest() is m


class TestSimulationLogger:
    """Tests for SimulationLogger"""

    def test_record_timestamp(self):
        """Entries use 24-hour HH:MM:SS"""
        logger = SimulationLogger("flsimlab.test.ts", enable_console=False,
                                  clock=lambda: datetime(2024, 1, 2, 21, 7, 9))
        entry = logger.info("hello")

        assert entry.timestamp == "21:07:09"
        assert entry.level == LogLevel.INFO
        assert entry.to_dict() == {'timestamp': "21:07:09", 'level': "INFO", 'message': "hello"}
        logger.close()

    def test_explicit_moment(self):
        """A given moment overrides the clock"""
        logger = SimulationLogger("flsimlab.test.moment", enable_console=False)
        entry = logger.record(LogLevel.DEBUG, "x", moment=datetime(2024, 1, 1, 0, 0, 1))

        assert entry.timestamp == "00:00:01"
        logger.close()

    def test_level_mapping(self):
        """WARN entries are mirrored as WARNING"""
        assert LogLevel.WARN.logging_level == logging.WARNING
        assert LogLevel.DEBUG.logging_level == logging.DEBUG
        assert format_timestamp(datetime(2024, 1, 1, 9, 5, 3)) == "09:05:03"

    def test_file_logging(self, tmp_path):
        """Mirrored lines include the round number"""
        logger = SimulationLogger("flsimlab_file", log_dir=str(tmp_path), enable_console=False)
        logger.set_round(3)
        logger.warn("stopping")
        logger.close()

        with open(os.path.join(str(tmp_path), "flsimlab_file.log")) as f:
            content = f.read()
        assert "R3 | WARNING | stopping" in content

    def test_explicit_round(self, tmp_path):
        """A round passed to record overrides current_round"""
        logger = SimulationLogger("flsimlab_round", log_dir=str(tmp_path), enable_console=False)
        logger.set_round(3)
        logger.record(LogLevel.INFO, "evaluated", round_num=5)
        logger.info("fallback")
        logger.close()

        with open(os.path.join(str(tmp_path), "flsimlab_round.log")) as f:
            content = f.read()
        assert "R5 | INFO | evaluated" in content
        assert "R3 | INFO | fallback" in content

    def test_factory_caches_loggers(self):
        """Factory returns one logger per name"""
        SimLoggerFactory.close_all()
        SimLoggerFactory.configure(default_level=logging.WARNING)
        try:
            first = SimLoggerFactory.get_engine_logger()
            assert SimLoggerFactory.get_engine_logger() is first
            assert first.level == logging.WARNING
        finally:
            SimLoggerFactory.close_all()
            SimLoggerFactory.configure()
