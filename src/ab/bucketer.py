"""Deterministic hash-based bucketing.

A user's bucket is derived from MurmurHash3 (seed 1) of a bucketing id, the
user id concatenated with an experiment or group id. The unsigned 32-bit hash
is scaled into [0, 10000) and matched against traffic allocation ranges.

This guarantees:
- Consistency: the same (user, experiment) pair always lands in the same bucket
- Agreement: any client implementing the same hash and scaling agrees with us
- No coordination: assignment needs nothing but the datafile

Bucketing a user, in order:
  1. forced variation for the user, if one is declared
  2. for experiments in a "random" group, pick the group member for the user;
     if it is not the requested experiment, the user gets nothing
  3. pick the variation from the experiment's own traffic allocation
"""

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field

from src.ab.murmur import murmur3_32
from src.core.errors import BucketingIdError
from src.core.logger import Logger, LogLevel, NoOpLogger
from src.datafile.schemas import MAX_TRAFFIC_VALUE, Group, TrafficAllocation, Variation

HASH_SEED = 1
MAX_HASH_VALUE = 2**32


def generate_bucket_value(bucketing_id: str) -> int:
    """Map a bucketing id to an integer bucket in [0, MAX_TRAFFIC_VALUE)."""
    try:
        hash_value = murmur3_32(bucketing_id.encode("utf-8"), HASH_SEED)
    except (AttributeError, UnicodeEncodeError) as exc:
        raise BucketingIdError(bucketing_id, exc) from exc
    ratio = hash_value / MAX_HASH_VALUE
    return int(ratio * MAX_TRAFFIC_VALUE)


def find_bucket(bucket_value: int, traffic_allocation: Sequence[TrafficAllocation]) -> str | None:
    """Return the entity owning ``bucket_value``, or None if no range does."""
    for entry in traffic_allocation:
        if bucket_value < entry.end_of_range:
            # An empty entity id marks deliberately unallocated traffic
            return entry.entity_id or None
    return None


@dataclass(frozen=True)
class BucketerParams:
    experiment_key: str
    experiment_id: str
    user_id: str
    traffic_allocation: Sequence[TrafficAllocation]
    group: Group | None = None
    forced_variations: Mapping[str, str] = field(default_factory=dict)
    experiment_variation_key_map: Mapping[tuple[str, str], Variation] = field(default_factory=dict)
    variation_id_map: Mapping[str, Variation] = field(default_factory=dict)


class Bucketer:
    def __init__(self, logger: Logger | None = None):
        self.logger = logger or NoOpLogger()

    def generate_bucket_value(self, bucketing_id: str) -> int:
        return generate_bucket_value(bucketing_id)

    def bucket(self, params: BucketerParams) -> str | None:
        """Return the variation id the user is bucketed into, or None."""
        if params.user_id in params.forced_variations:
            return self.forced_bucket(
                params.user_id,
                params.forced_variations,
                params.experiment_key,
                params.experiment_variation_key_map,
            )

        group = params.group
        if group is not None and group.is_random:
            bucketed_experiment_id = self.bucket_user_into_experiment(group, params.user_id)
            if bucketed_experiment_id is None:
                self.logger.log(
                    LogLevel.INFO,
                    f"User {params.user_id} is not in any experiment of group {group.id}.",
                )
                return None
            if bucketed_experiment_id != params.experiment_id:
                self.logger.log(
                    LogLevel.INFO,
                    f"User {params.user_id} is not in experiment {params.experiment_key} "
                    f"of group {group.id}.",
                )
                return None
            self.logger.log(
                LogLevel.INFO,
                f"User {params.user_id} is in experiment {params.experiment_key} of group {group.id}.",
            )

        bucket_value = self.generate_bucket_value(f"{params.user_id}{params.experiment_id}")
        self.logger.log(
            LogLevel.DEBUG,
            f"Assigned variation bucket {bucket_value} to user {params.user_id}.",
        )

        variation_id = find_bucket(bucket_value, params.traffic_allocation)
        if variation_id is None:
            self.logger.log(
                LogLevel.INFO,
                f"User {params.user_id} is in no variation of experiment {params.experiment_key}.",
            )
            return None

        variation = params.variation_id_map.get(variation_id)
        variation_key = variation.key if variation else variation_id
        self.logger.log(
            LogLevel.INFO,
            f"User {params.user_id} is in variation {variation_key} of experiment "
            f"{params.experiment_key}.",
        )
        return variation_id

    def forced_bucket(
        self,
        user_id: str,
        forced_variations: Mapping[str, str],
        experiment_key: str,
        experiment_variation_key_map: Mapping[tuple[str, str], Variation],
    ) -> str | None:
        """Return the id of the user's forced variation if it exists in the datafile."""
        forced_variation_key = forced_variations[user_id]
        variation = experiment_variation_key_map.get((experiment_key, forced_variation_key))
        if variation is None:
            self.logger.log(
                LogLevel.ERROR,
                f"Variation key {forced_variation_key} is not in datafile. "
                f"Not activating user {user_id}.",
            )
            return None
        self.logger.log(
            LogLevel.INFO,
            f"User {user_id} is forced in variation {forced_variation_key}.",
        )
        return variation.id

    def bucket_user_into_experiment(self, group: Group, user_id: str) -> str | None:
        """Return the id of the group member the user falls into, or None."""
        bucket_value = self.generate_bucket_value(f"{user_id}{group.id}")
        self.logger.log(
            LogLevel.DEBUG,
            f"Assigned experiment bucket {bucket_value} to user {user_id}.",
        )
        return find_bucket(bucket_value, group.traffic_allocation)
