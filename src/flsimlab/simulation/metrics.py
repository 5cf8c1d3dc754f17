"""Metrics reporting for simulated federated learning runs"""

from typing import Dict, Optional, Sequence

import numpy as np
import pandas as pd

from flsimlab.types import ClientConfig, RoundMetrics, SimulationState


PLACEHOLDER = "—"


def format_accuracy(accuracy: float) -> str:
    """Accuracy as a percentage with one decimal, e.g. '42.3%'"""
    return f"{accuracy * 100:.1f}%"


def format_loss(loss: float) -> str:
    """Loss with four decimals"""
    return f"{loss:.4f}"


class MetricsReport:
    """Read-only view over the round metrics of a run"""

    def __init__(self, metrics: Sequence[RoundMetrics]):
        """Initialize report over an ordered metrics sequence"""
        self.metrics = tuple(metrics)

    @classmethod
    def from_state(cls, state: SimulationState) -> "MetricsReport":
        return cls(state.metrics)

    def latest(self) -> Optional[RoundMetrics]:
        """Most recent round, or None before the first evaluation"""
        return self.metrics[-1] if self.metrics else None

    def get_dataframe(self) -> pd.DataFrame:
        """Chart series: one row per round, accuracy in percent"""
        return pd.DataFrame({
            'round': [m.round for m in self.metrics],
            'label': [f"R{m.round}" for m in self.metrics],
            'accuracy': [round(m.global_accuracy * 100, 1) for m in self.metrics],
            'loss': [round(m.global_loss, 4) for m in self.metrics]
        }, columns=['round', 'label', 'accuracy', 'loss'])

    def get_client_dataframe(self) -> pd.DataFrame:
        """Long-form per-client metrics, one row per (round, client)"""
        rows = [
            {
                'round': m.round,
                'client_id': cm.client_id,
                'accuracy': cm.accuracy,
                'loss': cm.loss
            }
            for m in self.metrics
            for cm in m.client_metrics
        ]
        return pd.DataFrame(rows, columns=['round', 'client_id', 'accuracy', 'loss'])

    def latest_client_accuracy(self) -> Dict[int, float]:
        """Accuracy per client id in the latest round"""
        latest = self.latest()
        if latest is None:
            return {}
        return {cm.client_id: cm.accuracy for cm in latest.client_metrics}

    def get_summary(
        self,
        state: SimulationState,
        clients: Sequence[ClientConfig]
    ) -> dict:
        """Values for the "Current Stats" and "Client Details" panels.

        Args:
            state: Engine snapshot
            clients: Configured clients

        Returns:
            Dictionary of display strings and raw aggregates
        """
        latest = self.latest()
        per_client = self.latest_client_accuracy()
        accuracies = [m.global_accuracy for m in self.metrics]

        return {
            'accuracy': format_accuracy(latest.global_accuracy) if latest else PLACEHOLDER,
            'loss': format_loss(latest.global_loss) if latest else PLACEHOLDER,
            'round': f"{state.current_round}/{state.total_rounds}",
            'clients': len(clients),
            'completed_rounds': len(self.metrics),
            'best_accuracy': max(accuracies) if accuracies else 0.0,
            'avg_accuracy': float(np.mean(accuracies)) if accuracies else 0.0,
            'client_details': [
                {
                    'label': c.label,
                    'color': c.color,
                    'sample_size': c.sample_size,
                    'accuracy': (
                        format_accuracy(per_client[c.id]) if c.id in per_client else None
                    )
                }
                for c in clients
            ]
        }
