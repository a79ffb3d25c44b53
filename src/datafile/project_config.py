"""Project config: O(1) lookup indices over a parsed datafile.

``ProjectConfig.from_datafile`` parses the raw document and builds every
index in a single pass. The result is read-only and may be shared between
threads; refreshing configuration means building a new ``ProjectConfig`` and
swapping the reference, never mutating this one.

Experiments declared inside groups are copied into the flat experiment list
with their ``group_id`` set, so callers treat grouped and ungrouped
experiments the same way.
"""

import json
from collections.abc import Mapping
from types import MappingProxyType

from pydantic import ValidationError

from src.core.errors import ConfigLookupError, DatafileError, LookupKind
from src.datafile.schemas import (
    Attribute,
    Audience,
    Datafile,
    Event,
    Experiment,
    Group,
    TrafficAllocation,
    Variation,
)


def _key_by(items, attr: str) -> Mapping:
    return MappingProxyType({getattr(item, attr): item for item in items})


class ProjectConfig:
    def __init__(self, datafile: Datafile):
        self.datafile = datafile
        self.revision = datafile.revision

        flattened = list(datafile.experiments)
        for group in datafile.groups:
            for experiment in group.experiments:
                flattened.append(experiment.model_copy(update={"group_id": group.id}))
        self.experiments: tuple[Experiment, ...] = tuple(flattened)

        self.experiment_key_map = _key_by(self.experiments, "key")
        self.experiment_id_map = _key_by(self.experiments, "id")
        self.group_id_map = _key_by(datafile.groups, "id")
        self.audience_id_map = _key_by(datafile.audiences, "id")
        self.event_key_map = _key_by(datafile.events, "key")
        self.attribute_key_map = _key_by(datafile.dimensions + datafile.attributes, "key")

        variation_id_map: dict[str, Variation] = {}
        experiment_variation_key_map: dict[tuple[str, str], Variation] = {}
        for experiment in self.experiments:
            for variation in experiment.variations:
                variation_id_map[variation.id] = variation
                experiment_variation_key_map[(experiment.key, variation.key)] = variation
        self.variation_id_map = MappingProxyType(variation_id_map)
        # (experiment key, variation key) -> variation, for validating forced variations
        self.experiment_variation_key_map = MappingProxyType(experiment_variation_key_map)

        self._check_references()

    @classmethod
    def from_datafile(cls, datafile: Mapping | str | bytes) -> "ProjectConfig":
        """Parse a datafile (decoded or JSON text) and index it."""
        if isinstance(datafile, (str, bytes)):
            try:
                datafile = json.loads(datafile)
            except ValueError as exc:
                raise DatafileError(f"Datafile is not valid JSON: {exc}") from exc
        try:
            parsed = Datafile.model_validate(datafile)
        except ValidationError as exc:
            raise DatafileError(f"Datafile is invalid: {exc}") from exc
        return cls(parsed)

    def _check_references(self) -> None:
        for experiment in self.experiments:
            variation_ids = {v.id for v in experiment.variations}
            for entry in experiment.traffic_allocation:
                if entry.entity_id and entry.entity_id not in variation_ids:
                    raise DatafileError(
                        f"Experiment {experiment.key} allocates traffic to unknown "
                        f"variation {entry.entity_id}"
                    )
            for audience_id in experiment.audience_ids:
                if audience_id not in self.audience_id_map:
                    raise DatafileError(
                        f"Experiment {experiment.key} references unknown audience {audience_id}"
                    )
            if experiment.group_id and experiment.group_id not in self.group_id_map:
                raise DatafileError(
                    f"Experiment {experiment.key} references unknown group {experiment.group_id}"
                )

    # --- Experiments ---

    def get_experiment_from_key(self, experiment_key: str) -> Experiment:
        try:
            return self.experiment_key_map[experiment_key]
        except KeyError:
            raise ConfigLookupError(LookupKind.UNKNOWN_EXPERIMENT, experiment_key) from None

    def get_experiment_from_id(self, experiment_id: str) -> Experiment:
        try:
            return self.experiment_id_map[experiment_id]
        except KeyError:
            raise ConfigLookupError(LookupKind.UNKNOWN_EXPERIMENT, experiment_id) from None

    def is_running(self, experiment_key: str) -> bool:
        return self.get_experiment_from_key(experiment_key).is_running

    def get_traffic_allocation(self, experiment_key: str) -> tuple[TrafficAllocation, ...]:
        return self.get_experiment_from_key(experiment_key).traffic_allocation

    def get_audiences_for_experiment(self, experiment_key: str) -> list[Audience]:
        experiment = self.get_experiment_from_key(experiment_key)
        return [self.audience_id_map[audience_id] for audience_id in experiment.audience_ids]

    # --- Groups ---

    def get_group(self, group_id: str) -> Group:
        try:
            return self.group_id_map[group_id]
        except KeyError:
            raise ConfigLookupError(LookupKind.UNKNOWN_GROUP, group_id) from None

    # --- Variations ---

    def get_variation_from_id(self, variation_id: str) -> Variation | None:
        return self.variation_id_map.get(variation_id)

    def get_variation_from_key(self, experiment_key: str, variation_key: str) -> Variation | None:
        return self.experiment_variation_key_map.get((experiment_key, variation_key))

    # --- Events and attributes ---

    def get_event(self, event_key: str) -> Event:
        try:
            return self.event_key_map[event_key]
        except KeyError:
            raise ConfigLookupError(LookupKind.UNKNOWN_EVENT, event_key) from None

    def get_event_id(self, event_key: str) -> str | None:
        event = self.event_key_map.get(event_key)
        return event.id if event else None

    def get_experiment_ids_for_event(self, event_key: str) -> tuple[str, ...]:
        return self.get_event(event_key).experiment_ids

    def get_attribute(self, attribute_key: str) -> Attribute | None:
        return self.attribute_key_map.get(attribute_key)

    def get_attribute_id(self, attribute_key: str) -> str | None:
        attribute = self.attribute_key_map.get(attribute_key)
        return attribute.id if attribute else None
