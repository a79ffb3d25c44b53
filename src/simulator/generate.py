"""CLI entrypoint: simulate a population against a datafile and print the split.

Usage:
    python -m src.simulator.generate --datafile datafile.json --experiment checkout_flow
    python -m src.simulator.generate --datafile datafile.json --experiment checkout_flow --users 5000
    python -m src.simulator.generate ... --db data/profiles.duckdb   # persist sticky decisions
"""

import argparse
import logging
from pathlib import Path

from src.ab.decision import DecisionService
from src.datafile.project_config import ProjectConfig
from src.simulator.config import SimulationConfig
from src.simulator.engine import simulate_assignments, summarize
from src.warehouse.db import get_connection
from src.warehouse.profile_store import DuckDBUserProfileStore


def main(args: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(description="Simulate experiment assignments")
    parser.add_argument("--datafile", required=True, help="Path to datafile JSON")
    parser.add_argument("--experiment", required=True, help="Experiment key")
    parser.add_argument("--users", type=int, default=2000, help="Number of users")
    parser.add_argument("--seed", type=int, default=42, help="Random seed")
    parser.add_argument("--db", type=str, default=None, help="DuckDB path for sticky decisions")
    parser.add_argument("--log-level", default="WARNING", help="Engine log level")
    opts = parser.parse_args(args)

    logging.basicConfig(level=opts.log_level.upper(), format="%(levelname)s %(name)s: %(message)s")

    project_config = ProjectConfig.from_datafile(Path(opts.datafile).read_text())
    experiment = project_config.get_experiment_from_key(opts.experiment)
    print(f"Experiment: {experiment.key} ({experiment.id}), status {experiment.status}")
    previous = 0
    for entry in experiment.traffic_allocation:
        variation = project_config.get_variation_from_id(entry.entity_id)
        name = variation.key if variation else "(no variation)"
        print(f"  {name}: {(entry.end_of_range - previous) / 100:.2f}% traffic")
        previous = entry.end_of_range

    store = None
    conn = None
    if opts.db:
        conn = get_connection(opts.db)
        store = DuckDBUserProfileStore(conn)

    try:
        config = SimulationConfig(num_users=opts.users, seed=opts.seed)
        service = DecisionService(project_config, user_profile_store=store)
        print(f"Simulating {config.num_users} users (seed={config.seed})...")
        assignments = simulate_assignments(service, experiment.key, config)

        print("Assignment breakdown:")
        counts = summarize(assignments)
        for key, count in sorted(counts.items(), key=lambda item: (item[0] is None, item[0] or "")):
            label = key if key is not None else "(none)"
            print(f"  {label}: {count} ({count / max(len(assignments), 1):.1%})")

        if store is not None:
            print(f"\nStored decisions in {opts.db}: {store.count()}")
    finally:
        if conn is not None:
            conn.close()
    print("Done.")


if __name__ == "__main__":
    main()
