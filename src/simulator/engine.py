"""Run a synthetic population through the decision service.

Each simulated user gets a deterministic id and a seeded random draw of
attributes, then asks the decision service for a variation. Bucketing itself
is hash based, so repeated runs with the same config and datafile produce the
same assignments.
"""

import random
from collections import Counter
from dataclasses import dataclass, field

from src.ab.decision import DecisionService
from src.simulator.config import SimulationConfig


@dataclass(frozen=True)
class Assignment:
    user_id: str
    variation_key: str | None
    attributes: dict = field(default_factory=dict)


def simulate_assignments(
    decision_service: DecisionService,
    experiment_key: str,
    config: SimulationConfig | None = None,
) -> list[Assignment]:
    """Return one assignment per simulated user, in user order."""
    if config is None:
        config = SimulationConfig()

    rng = random.Random(config.seed)
    assignments: list[Assignment] = []
    for i in range(config.num_users):
        user_id = f"{config.user_prefix}{i:05d}"
        attributes = {name: rng.choice(values) for name, values in config.attribute_pools}
        variation_key = decision_service.get_variation(experiment_key, user_id, attributes)
        assignments.append(Assignment(user_id, variation_key, attributes))
    return assignments


def summarize(assignments: list[Assignment]) -> dict[str | None, int]:
    """Count users per variation key; None counts users with no variation."""
    return dict(Counter(a.variation_key for a in assignments))
