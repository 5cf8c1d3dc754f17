"""Virtual client generation"""

from typing import List, Optional

import numpy as np

from flsimlab.types import ClientConfig


BASE_SAMPLES = 500

# HSL tokens consumed by the dashboard; cycles past five clients
CLIENT_COLORS = (
    "200 85% 50%",
    "280 70% 55%",
    "35 90% 55%",
    "140 60% 45%",
    "350 75% 55%",
)


def client_label(client_id: int) -> str:
    return f"Client {client_id + 1}"


def generate_client_configs(
    count: int,
    balanced: bool,
    rng: Optional[np.random.RandomState] = None
) -> List[ClientConfig]:
    """Build the virtual participants for a run.

    Balanced clients all hold BASE_SAMPLES samples. Unbalanced clients
    draw floor(BASE_SAMPLES * (0.4 + U * 1.2)) with U uniform in [0, 1),
    independently per client.

    Args:
        count: Number of clients (validated upstream)
        balanced: Equal sample sizes when True
        rng: Random source for unbalanced sizes

    Returns:
        Clients ordered by id
    """
    rng = rng or np.random.RandomState()
    clients = []

    for i in range(count):
        if balanced:
            sample_size = BASE_SAMPLES
        else:
            sample_size = int(np.floor(BASE_SAMPLES * (0.4 + rng.random_sample() * 1.2)))

        clients.append(ClientConfig(
            id=i,
            label=client_label(i),
            sample_size=sample_size,
            color=CLIENT_COLORS[i % len(CLIENT_COLORS)]
        ))

    return clients
