"""Exception hierarchy for the decision engine.

Caller mistakes (unknown keys, malformed datafiles, bad inputs) surface as
exceptions and propagate to whoever called the engine. Failures of the
pluggable user-profile store are never raised from here; the decision
service logs and absorbs them.
"""

from enum import Enum


class EngineError(Exception):
    """Base class for every error raised by the engine."""


class LookupKind(str, Enum):
    UNKNOWN_EXPERIMENT = "experiment"
    UNKNOWN_EVENT = "event"
    UNKNOWN_GROUP = "group"


class ConfigLookupError(EngineError, LookupError):
    """A caller-supplied key or id does not exist in the project config."""

    def __init__(self, kind: LookupKind, key: str):
        self.kind = kind
        self.key = key
        super().__init__(f"{kind.value.capitalize()} {key!r} is not in datafile")


class DatafileError(EngineError, ValueError):
    """The datafile could not be turned into a project config."""


class ConditionParseError(DatafileError):
    """An audience condition tree is not valid AND/OR/NOT over leaves."""


class BucketingIdError(EngineError, ValueError):
    """The bucketing id could not be hashed."""

    def __init__(self, bucketing_id, cause: Exception):
        self.bucketing_id = bucketing_id
        super().__init__(f"Unable to generate hash for bucketing ID {bucketing_id!r}: {cause}")


class InvalidInputError(EngineError, ValueError):
    """User id or attributes passed to the engine are malformed."""
