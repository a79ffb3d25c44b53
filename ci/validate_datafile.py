"""CI validation: verify a datafile satisfies the engine's structural invariants.

Run this before publishing a datafile. It reports every problem it finds
rather than stopping at the first, and exits non-zero if there are any.

Usage:
    python -m ci.validate_datafile --datafile datafile.json

Run it from the repository root so that ``src`` is importable.
"""

import argparse
import json
import sys
from pathlib import Path

from src.core.errors import ConditionParseError
from src.datafile.schemas import MAX_TRAFFIC_VALUE, OVERLAPPING_POLICY, RANDOM_POLICY
from src.targeting.conditions import parse_conditions

REQUIRED_TOP_KEYS = {"experiments", "groups", "audiences", "events"}
GROUP_POLICIES = (RANDOM_POLICY, OVERLAPPING_POLICY)


def _check_ranges(ranges: list, owner: str) -> list[str]:
    errors = []
    previous = 0
    for entry in ranges:
        end = entry.get("endOfRange")
        if not isinstance(end, int) or isinstance(end, bool):
            errors.append(f"{owner} has non-integer endOfRange: {end!r}")
            continue
        if end < 0 or end > MAX_TRAFFIC_VALUE:
            errors.append(f"{owner} endOfRange {end} outside [0, {MAX_TRAFFIC_VALUE}]")
        if end < previous:
            errors.append(f"{owner} trafficAllocation not sorted by endOfRange")
        previous = end
    return errors


def _check_experiment(exp: dict, audience_ids: set, seen_variation_ids: set) -> list[str]:
    errors = []
    key = exp.get("key", "UNKNOWN")
    owner = f"Experiment {key}"

    variations = exp.get("variations") or []
    if not variations:
        errors.append(f"{owner} has no variations")

    variation_ids = set()
    variation_keys = set()
    for v in variations:
        if v["id"] in seen_variation_ids:
            errors.append(f"{owner} reuses variation id {v['id']}")
        seen_variation_ids.add(v["id"])
        variation_ids.add(v["id"])
        variation_keys.add(v["key"])

    ranges = exp.get("trafficAllocation") or []
    errors.extend(_check_ranges(ranges, owner))
    for entry in ranges:
        entity_id = entry.get("entityId")
        if entity_id and entity_id not in variation_ids:
            errors.append(f"{owner} allocates traffic to unknown variation {entity_id}")

    for audience_id in exp.get("audienceIds") or []:
        if audience_id not in audience_ids:
            errors.append(f"{owner} references unknown audience {audience_id}")

    for user_id, variation_key in (exp.get("forcedVariations") or {}).items():
        if variation_key not in variation_keys:
            errors.append(
                f"{owner} forces user {user_id} into unknown variation {variation_key}"
            )
    return errors


def validate(data: dict) -> list[str]:
    """Return a list of validation errors (empty = pass)."""
    errors = []

    # --- Top-level structure ---
    for key in sorted(REQUIRED_TOP_KEYS):
        if key not in data:
            errors.append(f"Missing top-level key: {key}")

    if errors:
        return errors  # Can't continue without structure

    # --- Audiences ---
    audience_ids = set()
    for audience in data["audiences"]:
        audience_ids.add(audience["id"])
        try:
            parse_conditions(audience.get("conditions"))
        except ConditionParseError as exc:
            errors.append(f"Audience {audience['id']} has invalid conditions: {exc}")

    # --- Experiments, including those nested in groups ---
    seen_variation_ids: set = set()
    group_ids = {group.get("id") for group in data["groups"]}
    for exp in data["experiments"]:
        errors.extend(_check_experiment(exp, audience_ids, seen_variation_ids))
        group_id = exp.get("groupId")
        if group_id and group_id not in group_ids:
            errors.append(
                f"Experiment {exp.get('key', 'UNKNOWN')} references unknown group {group_id}"
            )

    for group in data["groups"]:
        group_id = group.get("id", "UNKNOWN")
        if group.get("policy") not in GROUP_POLICIES:
            errors.append(f"Group {group_id} has invalid policy: {group.get('policy')!r}")

        member_ids = {exp["id"] for exp in group.get("experiments") or []}
        ranges = group.get("trafficAllocation") or []
        errors.extend(_check_ranges(ranges, f"Group {group_id}"))
        for entry in ranges:
            entity_id = entry.get("entityId")
            if entity_id and entity_id not in member_ids:
                errors.append(f"Group {group_id} allocates traffic to non-member {entity_id}")

        for exp in group.get("experiments") or []:
            errors.extend(_check_experiment(exp, audience_ids, seen_variation_ids))

    # --- Events ---
    experiment_ids = {exp["id"] for exp in data["experiments"]}
    for group in data["groups"]:
        experiment_ids.update(exp["id"] for exp in group.get("experiments") or [])
    for event in data["events"]:
        for experiment_id in event.get("experimentIds") or []:
            if experiment_id not in experiment_ids:
                errors.append(f"Event {event['key']} references unknown experiment {experiment_id}")

    return errors


def main() -> None:
    parser = argparse.ArgumentParser(description="Validate a datafile")
    parser.add_argument("--datafile", required=True, help="Path to datafile JSON")
    opts = parser.parse_args()

    path = Path(opts.datafile)
    if not path.exists():
        print(f"FAIL: {opts.datafile} not found.")
        sys.exit(1)

    data = json.loads(path.read_text())
    errors = validate(data)

    if errors:
        print(f"FAIL: {len(errors)} validation error(s):")
        for e in errors:
            print(f"  - {e}")
        sys.exit(1)

    grouped = sum(len(g.get("experiments") or []) for g in data["groups"])
    print("PASS: Datafile invariants validated")
    print(f"  Experiments: {len(data['experiments']) + grouped} ({grouped} in groups)")
    print(f"  Audiences: {len(data['audiences'])}")
    print(f"  Events: {len(data['events'])}")


if __name__ == "__main__":
    main()
