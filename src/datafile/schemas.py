"""Typed models for the parts of the datafile the engine consumes.

Datafile JSON uses camelCase keys (``trafficAllocation``, ``endOfRange``);
models expose snake_case fields and accept either spelling. All models are
frozen: once a project config is built nothing in it changes.

Traffic allocation ranges partition the bucket space [0, 10000). Each entry
owns the values below its ``end_of_range`` that the previous entry did not
claim, so ranges must be sorted ascending.
"""

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

from src.targeting.conditions import Condition, parse_conditions

MAX_TRAFFIC_VALUE = 10000
RUNNING_STATUS = "Running"
RANDOM_POLICY = "random"
OVERLAPPING_POLICY = "overlapping"


class DatafileModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
        extra="ignore",
        coerce_numbers_to_str=True,
        arbitrary_types_allowed=True,
    )


class TrafficAllocation(DatafileModel):
    entity_id: str
    end_of_range: int


def _check_ranges(ranges: tuple[TrafficAllocation, ...], owner: str) -> None:
    previous = 0
    for entry in ranges:
        if entry.end_of_range < 0 or entry.end_of_range > MAX_TRAFFIC_VALUE:
            raise ValueError(
                f"{owner}: endOfRange {entry.end_of_range} outside [0, {MAX_TRAFFIC_VALUE}]"
            )
        if entry.end_of_range < previous:
            raise ValueError(f"{owner}: trafficAllocation must be sorted by endOfRange")
        previous = entry.end_of_range


class Variation(DatafileModel):
    id: str
    key: str


class Experiment(DatafileModel):
    id: str
    key: str
    status: str
    variations: tuple[Variation, ...] = ()
    traffic_allocation: tuple[TrafficAllocation, ...] = ()
    audience_ids: tuple[str, ...] = ()
    # user id -> variation key, declared in the datafile
    forced_variations: dict[str, str] = Field(default_factory=dict)
    layer_id: str | None = None
    group_id: str | None = None

    @model_validator(mode="after")
    def _check_experiment(self):
        _check_ranges(self.traffic_allocation, f"Experiment {self.key}")
        keys = [v.key for v in self.variations]
        if len(keys) != len(set(keys)):
            raise ValueError(f"Experiment {self.key}: variation keys must be unique")
        ids = [v.id for v in self.variations]
        if len(ids) != len(set(ids)):
            raise ValueError(f"Experiment {self.key}: variation ids must be unique")
        return self

    @property
    def is_running(self) -> bool:
        return self.status == RUNNING_STATUS


class Group(DatafileModel):
    id: str
    policy: str
    traffic_allocation: tuple[TrafficAllocation, ...] = ()
    experiments: tuple[Experiment, ...] = ()

    @field_validator("policy")
    @classmethod
    def _check_policy(cls, value: str) -> str:
        if value not in (RANDOM_POLICY, OVERLAPPING_POLICY):
            raise ValueError(f"Unknown group policy {value!r}")
        return value

    @model_validator(mode="after")
    def _check_group(self):
        _check_ranges(self.traffic_allocation, f"Group {self.id}")
        return self

    @property
    def is_random(self) -> bool:
        return self.policy == RANDOM_POLICY


class Audience(DatafileModel):
    id: str
    name: str = ""
    conditions: Condition

    @field_validator("conditions", mode="before")
    @classmethod
    def _parse_conditions(cls, value) -> Condition:
        return parse_conditions(value)


class Event(DatafileModel):
    id: str
    key: str
    experiment_ids: tuple[str, ...] = ()


class Attribute(DatafileModel):
    id: str
    key: str
    segment_id: str | None = None


class Datafile(DatafileModel):
    version: str | None = None
    revision: str | None = None
    project_id: str | None = None
    account_id: str | None = None
    experiments: tuple[Experiment, ...] = ()
    groups: tuple[Group, ...] = ()
    audiences: tuple[Audience, ...] = ()
    events: tuple[Event, ...] = ()
    attributes: tuple[Attribute, ...] = ()
    # v1 datafiles call attribute definitions "dimensions"
    dimensions: tuple[Attribute, ...] = ()
