"""Parameters for simulating a user population against a datafile.

Attribute pools describe what synthetic users look like; each user draws one
value per attribute. The defaults cover the attributes used by typical
browser / device targeting audiences.
"""

from dataclasses import dataclass


@dataclass(frozen=True)
class SimulationConfig:
    num_users: int = 2000
    # Random seed for reproducible attribute draws
    seed: int = 42
    user_prefix: str = "user_"

    # (attribute name, possible values)
    attribute_pools: tuple[tuple[str, tuple], ...] = (
        ("browser_type", ("chrome", "firefox", "safari", "edge")),
        ("device_model", ("iphone", "nexus5", "pixel", "desktop")),
    )

    def __post_init__(self):
        if self.num_users < 0:
            raise ValueError(f"num_users must be non-negative, got {self.num_users}")
        for name, values in self.attribute_pools:
            if not values:
                raise ValueError(f"Attribute pool {name!r} has no values")
