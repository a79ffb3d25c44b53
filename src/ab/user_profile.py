"""Sticky bucketing records and the store contract.

A user profile remembers which variation a user was bucketed into for each
experiment, so later decisions return the same variation even after traffic
allocation changes. Profiles cross the store boundary as plain dicts:

  {"user_id": "u1", "experiment_bucket_map": {"111127": {"variation_id": "111128"}}}

Stores are supplied by the application. The engine only reads profiles and
asks for them to be saved; ordering and durability are the store's concern.
"""

from typing import Protocol

from pydantic import BaseModel, ConfigDict, Field


class Decision(BaseModel):
    model_config = ConfigDict(frozen=True)

    variation_id: str


class UserProfile(BaseModel):
    model_config = ConfigDict(frozen=True)

    user_id: str
    experiment_bucket_map: dict[str, Decision] = Field(default_factory=dict)

    @classmethod
    def from_record(cls, record: dict) -> "UserProfile":
        return cls.model_validate(record)

    def to_record(self) -> dict:
        return self.model_dump()

    def get_variation_for_experiment(self, experiment_id: str) -> str | None:
        decision = self.experiment_bucket_map.get(experiment_id)
        return decision.variation_id if decision else None

    def with_variation(self, experiment_id: str, variation_id: str) -> "UserProfile":
        """Return a copy of the profile recording a new decision."""
        bucket_map = dict(self.experiment_bucket_map)
        bucket_map[experiment_id] = Decision(variation_id=variation_id)
        return self.model_copy(update={"experiment_bucket_map": bucket_map})


class UserProfileStore(Protocol):
    def lookup(self, user_id: str) -> dict | None: ...

    def save(self, profile: dict) -> None: ...


class InMemoryUserProfileStore:
    """Process-local store keeping profile records in a dict."""

    def __init__(self):
        self.profiles: dict[str, dict] = {}

    def lookup(self, user_id: str) -> dict | None:
        return self.profiles.get(user_id)

    def save(self, profile: dict) -> None:
        self.profiles[profile["user_id"]] = profile
