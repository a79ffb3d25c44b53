"""Tests for the CI datafile validation script."""

from ci.validate_datafile import validate


class TestValidate:
    def test_valid_datafile_passes(self, datafile):
        assert validate(datafile) == []

    def test_missing_top_level_key(self, datafile):
        del datafile["groups"]
        errors = validate(datafile)
        assert any("Missing top-level key: groups" in e for e in errors)

    def test_unsorted_ranges(self, datafile):
        datafile["experiments"][0]["trafficAllocation"].reverse()
        errors = validate(datafile)
        assert any("not sorted by endOfRange" in e for e in errors)

    def test_end_of_range_out_of_bounds(self, datafile):
        datafile["experiments"][1]["trafficAllocation"][1]["endOfRange"] = 12000
        errors = validate(datafile)
        assert any("endOfRange 12000 outside" in e for e in errors)

    def test_non_integer_end_of_range(self, datafile):
        datafile["experiments"][0]["trafficAllocation"][0]["endOfRange"] = "4000"
        errors = validate(datafile)
        assert any("non-integer endOfRange" in e for e in errors)

    def test_unknown_traffic_entity(self, datafile):
        datafile["experiments"][0]["trafficAllocation"][0]["entityId"] = "999"
        errors = validate(datafile)
        assert any("unknown variation 999" in e for e in errors)

    def test_unknown_audience(self, datafile):
        datafile["experiments"][0]["audienceIds"] = ["404"]
        errors = validate(datafile)
        assert any("unknown audience 404" in e for e in errors)

    def test_whitelist_names_unknown_variation(self, datafile):
        datafile["experiments"][1]["forcedVariations"]["user3"] = "variationNotInDatafile"
        errors = validate(datafile)
        assert any("forces user user3 into unknown variation" in e for e in errors)

    def test_duplicate_variation_ids(self, datafile):
        datafile["experiments"][1]["variations"][0]["id"] = "111128"
        datafile["experiments"][1]["trafficAllocation"][0]["entityId"] = "111128"
        errors = validate(datafile)
        assert any("reuses variation id 111128" in e for e in errors)

    def test_invalid_group_policy(self, datafile):
        datafile["groups"][0]["policy"] = "sequential"
        errors = validate(datafile)
        assert any("invalid policy" in e for e in errors)

    def test_group_traffic_to_non_member(self, datafile):
        datafile["groups"][0]["trafficAllocation"][1]["entityId"] = "111127"
        errors = validate(datafile)
        assert any("non-member 111127" in e for e in errors)

    def test_grouped_experiments_are_checked(self, datafile):
        datafile["groups"][0]["experiments"][0]["audienceIds"] = ["404"]
        errors = validate(datafile)
        assert any("Experiment groupExperiment1 references unknown audience" in e for e in errors)

    def test_unparseable_conditions(self, datafile):
        datafile["audiences"][0]["conditions"] = '["not", {"name": "a", "value": 1}, {"name": "b", "value": 2}]'
        errors = validate(datafile)
        assert any("Audience 11154 has invalid conditions" in e for e in errors)

    def test_event_references_unknown_experiment(self, datafile):
        datafile["events"][0]["experimentIds"] = ["31337"]
        errors = validate(datafile)
        assert any("Event testEvent references unknown experiment 31337" in e for e in errors)

    def test_experiment_references_unknown_group(self, datafile):
        datafile["experiments"][0]["groupId"] = "6969"
        errors = validate(datafile)
        assert any("Experiment testExperiment references unknown group 6969" in e for e in errors)
