"""Decision service: which variation of an experiment does a user get?

``get_variation`` walks a fixed chain of gates, stopping at the first one
that produces an answer:

  1. the experiment must be running
  2. a forced variation set at runtime with ``set_forced_variation``
  3. the experiment's whitelist (``forcedVariations`` in the datafile)
  4. a sticky decision from the user profile store, if one is configured
  5. audience targeting
  6. hash-based bucketing
  7. the new decision is saved to the user profile store

The whole chain runs synchronously within the call. Everything it reads is
immutable except the profile store, whose failures are logged and otherwise
ignored.
"""

from collections.abc import Mapping

from pydantic import ValidationError

from src.ab.bucketer import Bucketer, BucketerParams
from src.ab.user_profile import UserProfile, UserProfileStore
from src.core.logger import Logger, LogLevel, StandardLogger
from src.core.validators import validate_attributes, validate_user_id
from src.datafile.project_config import ProjectConfig
from src.datafile.schemas import Experiment, Variation
from src.targeting import audience


class DecisionService:
    def __init__(
        self,
        project_config: ProjectConfig,
        logger: Logger | None = None,
        user_profile_store: UserProfileStore | None = None,
        bucketer: Bucketer | None = None,
    ):
        self.config = project_config
        self.logger = logger or StandardLogger()
        self.user_profile_store = user_profile_store
        self.bucketer = bucketer or Bucketer(self.logger)
        # user id -> {experiment id -> variation id}
        self._forced_variation_map: dict[str, dict[str, str]] = {}

    def get_variation(
        self,
        experiment_key: str,
        user_id: str,
        attributes: Mapping | None = None,
    ) -> str | None:
        """Return the key of the variation the user is in, or None."""
        validate_user_id(user_id)
        attributes = validate_attributes(attributes)
        experiment = self.config.get_experiment_from_key(experiment_key)

        if not experiment.is_running:
            self.logger.log(LogLevel.INFO, f"Experiment {experiment_key} is not running.")
            return None

        forced_variation = self.get_forced_variation(experiment_key, user_id)
        if forced_variation is not None:
            return forced_variation

        if user_id in experiment.forced_variations:
            variation_id = self.bucketer.forced_bucket(
                user_id,
                experiment.forced_variations,
                experiment.key,
                self.config.experiment_variation_key_map,
            )
            return self._variation_key(variation_id)

        profile = self._lookup_user_profile(user_id)
        if profile is not None:
            stored = self._get_stored_variation(experiment, profile)
            if stored is not None:
                self.logger.log(
                    LogLevel.INFO,
                    f"Returning previously activated variation {stored.key} of experiment "
                    f"{experiment_key} for user {user_id} from user profile.",
                )
                return stored.key

        audiences = self.config.get_audiences_for_experiment(experiment_key)
        if not audience.evaluate(audiences, attributes):
            self.logger.log(
                LogLevel.INFO,
                f"User {user_id} does not meet conditions to be in experiment {experiment_key}.",
            )
            return None

        variation_id = self.bucketer.bucket(self._build_bucketer_params(experiment, user_id))
        variation = self._get_variation(variation_id)
        if variation is None:
            return None

        self._save_user_profile(user_id, profile, experiment, variation)
        return variation.key

    # --- Runtime forced variations ---

    def set_forced_variation(
        self, experiment_key: str, user_id: str, variation_key: str | None
    ) -> bool:
        """Force a user into a variation; a None key removes the override."""
        experiment = self.config.get_experiment_from_key(experiment_key)

        if variation_key is None:
            user_overrides = self._forced_variation_map.get(user_id, {})
            removed = user_overrides.pop(experiment.id, None)
            if not user_overrides:
                self._forced_variation_map.pop(user_id, None)
            if removed is not None:
                self.logger.log(
                    LogLevel.DEBUG,
                    f"Variation mapped to experiment {experiment_key} has been removed "
                    f"for user {user_id}.",
                )
            return True

        variation = self.config.get_variation_from_key(experiment_key, variation_key)
        if variation is None:
            self.logger.log(
                LogLevel.ERROR,
                f"Variation key {variation_key} is not in experiment {experiment_key}.",
            )
            return False

        self._forced_variation_map.setdefault(user_id, {})[experiment.id] = variation.id
        self.logger.log(
            LogLevel.DEBUG,
            f"Set variation {variation.id} for experiment {experiment.id} and user "
            f"{user_id} in the forced variation map.",
        )
        return True

    def get_forced_variation(self, experiment_key: str, user_id: str) -> str | None:
        """Return the key of the variation forced at runtime, if any."""
        experiment = self.config.get_experiment_from_key(experiment_key)
        variation_id = self._forced_variation_map.get(user_id, {}).get(experiment.id)
        if variation_id is None:
            return None

        variation = self.config.get_variation_from_id(variation_id)
        if variation is None:
            return None
        self.logger.log(
            LogLevel.INFO,
            f"Variation {variation.key} is mapped to experiment {experiment_key} and user "
            f"{user_id} in the forced variation map.",
        )
        return variation.key

    # --- Helpers ---

    def _build_bucketer_params(self, experiment: Experiment, user_id: str) -> BucketerParams:
        group = self.config.get_group(experiment.group_id) if experiment.group_id else None
        return BucketerParams(
            experiment_key=experiment.key,
            experiment_id=experiment.id,
            user_id=user_id,
            traffic_allocation=experiment.traffic_allocation,
            group=group,
            experiment_variation_key_map=self.config.experiment_variation_key_map,
            variation_id_map=self.config.variation_id_map,
        )

    def _variation_key(self, variation_id: str | None) -> str | None:
        variation = self._get_variation(variation_id)
        return variation.key if variation else None

    def _get_variation(self, variation_id: str | None) -> Variation | None:
        if variation_id is None:
            return None
        variation = self.config.get_variation_from_id(variation_id)
        if variation is None:
            self.logger.log(
                LogLevel.ERROR,
                f"Bucketed into an invalid variation ID {variation_id}. Returning None.",
            )
        return variation

    def _get_stored_variation(self, experiment: Experiment, profile: UserProfile) -> Variation | None:
        variation_id = profile.get_variation_for_experiment(experiment.id)
        if variation_id is None:
            return None
        variation = self.config.get_variation_from_id(variation_id)
        if variation is None:
            self.logger.log(
                LogLevel.INFO,
                f"User {profile.user_id} was previously bucketed into variation with ID "
                f"{variation_id} for experiment {experiment.key}, but no matching variation "
                f"was found. Re-bucketing user.",
            )
        return variation

    def _lookup_user_profile(self, user_id: str) -> UserProfile | None:
        if self.user_profile_store is None:
            return None
        try:
            record = self.user_profile_store.lookup(user_id)
        except Exception as exc:
            self.logger.log(
                LogLevel.ERROR,
                f"Error while looking up user profile for user ID {user_id}: {exc}.",
            )
            return None
        if record is None:
            return None
        try:
            return UserProfile.from_record(record)
        except ValidationError as exc:
            self.logger.log(
                LogLevel.ERROR,
                f"User profile for user ID {user_id} is malformed: {exc}.",
            )
            return None

    def _save_user_profile(
        self,
        user_id: str,
        profile: UserProfile | None,
        experiment: Experiment,
        variation: Variation,
    ) -> None:
        if self.user_profile_store is None:
            return
        if profile is None:
            profile = UserProfile(user_id=user_id)
        profile = profile.with_variation(experiment.id, variation.id)
        try:
            self.user_profile_store.save(profile.to_record())
        except Exception as exc:
            self.logger.log(
                LogLevel.ERROR,
                f"Error while saving user profile for user ID {user_id}: {exc}.",
            )
            return
        self.logger.log(
            LogLevel.INFO,
            f"Saved variation {variation.key} of experiment {experiment.key} for user {user_id}.",
        )
