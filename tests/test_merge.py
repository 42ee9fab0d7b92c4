"""Tests for merging generated content into user-owned data."""

import copy

import pytest

from contracts.generation import GenerationMode
from pipeline.merge import has_value, is_blank, merge, merge_object_fill, merge_targeted, smart_merge


@pytest.fixture
def nested():
    return {
        "coreProblem": {"title": "Fragmented transport data", "description": ""},
        "causes": [
            {"title": "No shared standard", "description": "Operators publish in incompatible formats."},
            {"title": "", "description": ""},
        ],
        "consequences": [],
    }


class TestIsBlank:
    def test_blank_values(self):
        assert is_blank(None)
        assert is_blank("")
        assert is_blank("  \n")

    def test_non_blank_values(self):
        assert not is_blank("x")
        assert not is_blank(0)
        assert not is_blank([])


class TestSmartMerge:
    """Test fill and enhance merges."""

    def test_fill_is_idempotent(self, nested):
        assert merge(nested, nested, GenerationMode.FILL) == nested

    def test_user_text_wins(self):
        original = {"title": "My title", "description": ""}
        generated = {"title": "AI title", "description": "AI desc"}
        assert merge(original, generated, "fill") == {"title": "My title", "description": "AI desc"}

    def test_whitespace_counts_as_empty(self):
        assert smart_merge({"title": "   "}, {"title": "Generated"}) == {"title": "Generated"}

    def test_arrays_merge_by_position(self):
        original = [{"title": "Kept", "description": ""}]
        generated = [
            {"title": "Ignored", "description": "Filled"},
            {"title": "New one", "description": "Added"},
            {"title": "New two", "description": "Added"},
        ]
        merged = merge(original, generated, GenerationMode.FILL)

        assert merged == [
            {"title": "Kept", "description": "Filled"},
            {"title": "New one", "description": "Added"},
            {"title": "New two", "description": "Added"},
        ]

    def test_original_items_survive_shorter_reply(self):
        original = [{"title": "A"}, {"title": "B"}]
        assert merge(original, [{"title": "X"}], GenerationMode.ENHANCE) == [{"title": "A"}, {"title": "B"}]

    def test_generated_keys_added(self):
        assert smart_merge({"title": "T"}, {"title": "X", "indicator": "5 pilots by 2027"}) == {
            "title": "T",
            "indicator": "5 pilots by 2027",
        }

    def test_original_not_mutated(self, nested):
        before = copy.deepcopy(nested)
        merge(nested, {"coreProblem": {"title": "X", "description": "Y"}}, GenerationMode.FILL)
        assert nested == before

    def test_missing_sides(self):
        assert smart_merge(None, {"a": "b"}) == {"a": "b"}
        assert smart_merge({"a": "b"}, None) == {"a": "b"}

    def test_regenerate_replaces(self, nested):
        generated = {"coreProblem": {"title": "New", "description": "New"}}
        assert merge(nested, generated, GenerationMode.REGENERATE) is generated


class TestTargetedMerge:
    """Test targeted fills of list items."""

    @pytest.fixture
    def risks(self):
        return [
            {"id": "RISK1", "title": "Supplier delay", "description": "Late delivery."},
            {"id": "RISK2", "title": "", "description": ""},
            {"id": "RISK3", "title": "Low uptake", "description": "Few users."},
            {"id": "", "title": "", "description": ""},
        ]

    def test_only_target_indices_change(self, risks):
        generated = [
            {"id": "RISK9", "title": "Staff turnover", "description": "Key staff may leave."},
            {"id": "RISK8", "title": "Cost overrun", "description": "Prices may rise."},
        ]
        merged = merge(risks, generated, GenerationMode.TARGETED_FILL, empty_indices=[1, 3])

        assert merged[0] == risks[0]
        assert merged[2] == risks[2]
        assert merged[1] == {"id": "RISK2", "title": "Staff turnover", "description": "Key staff may leave."}
        assert merged[3] == {"id": "RISK8", "title": "Cost overrun", "description": "Prices may rise."}

    def test_short_reply_leaves_rest_untouched(self, risks):
        merged = merge_targeted(risks, [{"title": "Only one"}], [1, 3])

        assert merged[1]["title"] == "Only one"
        assert merged[3] == risks[3]

    def test_single_object_reply(self, risks):
        merged = merge_targeted(risks, {"title": "Wrapped"}, [3])
        assert merged[3]["title"] == "Wrapped"

    def test_out_of_range_index_ignored(self, risks):
        assert merge_targeted(risks, [{"title": "X"}], [10]) == risks

    def test_string_items(self):
        assert merge_targeted(["keep", ""], ["filled"], [1]) == ["keep", "filled"]

    def test_empty_lists_in_slot_are_replaced(self):
        activities = [
            {"id": "WP1", "title": "Baseline", "tasks": [{"id": "T1.1", "title": "Survey"}], "milestones": []},
            {"id": "WP2", "title": "", "tasks": [], "milestones": [], "deliverables": [{"id": "", "title": ""}]},
        ]
        generated = [{
            "id": "WPX",
            "title": "Pilots",
            "tasks": [{"id": "T2.1", "title": "Pilot routes"}],
            "milestones": [{"id": "M2.1", "description": "Pilots live"}],
            "deliverables": [{"id": "D2.1", "title": "Pilot report"}],
        }]

        merged = merge(activities, generated, GenerationMode.TARGETED_FILL, empty_indices=[1])

        assert merged[1]["id"] == "WP2"
        assert merged[1]["title"] == "Pilots"
        assert merged[1]["tasks"] == [{"id": "T2.1", "title": "Pilot routes"}]
        assert merged[1]["milestones"] == [{"id": "M2.1", "description": "Pilots live"}]
        assert merged[1]["deliverables"] == [{"id": "D2.1", "title": "Pilot report"}]
        assert merged[0] == activities[0]

    def test_filled_nested_content_in_slot_kept(self):
        slot = {"id": "WP2", "title": "", "tasks": [{"id": "T2.1", "title": "Existing task"}], "level": 0}
        merged = merge_targeted([slot], [{"title": "Pilots", "tasks": [], "level": 3}], [0])

        assert merged[0] == {"id": "WP2", "title": "Pilots", "tasks": [{"id": "T2.1", "title": "Existing task"}], "level": 0}

    def test_empty_object_item_replaced(self):
        assert merge_targeted([{}, []], [{"title": "A"}, ["b"]], [0, 1]) == [{"title": "A"}, ["b"]]

    def test_has_value(self):
        assert has_value("x")
        assert has_value(0)
        assert has_value(False)
        assert has_value([{"title": "x"}])
        assert not has_value([])
        assert not has_value({"title": "", "tasks": []})
        assert not has_value("  ")
        assert not has_value(None)


class TestObjectFill:
    """Test overlaying generated fields onto an object section."""

    def test_only_empty_fields_filled(self):
        original = {"mainAim": "", "stateOfTheArt": "Existing text", "projectTitle": "Title"}
        generated = {"mainAim": "To do this.", "stateOfTheArt": "Replacement"}
        merged = merge_object_fill(original, generated, ["mainAim", "stateOfTheArt"])

        assert merged == {"mainAim": "To do this.", "stateOfTheArt": "Existing text", "projectTitle": "Title"}

    def test_unrequested_fields_ignored(self):
        merged = merge_object_fill({"mainAim": ""}, {"mainAim": "Aim", "extra": "x"}, ["mainAim"])
        assert merged == {"mainAim": "Aim"}
