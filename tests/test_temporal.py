"""Tests for date arithmetic and schedule envelope enforcement."""

import copy
from datetime import date

import pytest

from exceptions import InvariantViolation
from pipeline.temporal import (
    add_months,
    check_envelope,
    clamp_schedule,
    enforce_envelope,
    parse_date,
    project_end_date,
    project_envelope,
    sanitize_dependencies,
)

START = date(2026, 1, 1)
END = date(2027, 12, 31)


def task(task_id, start, end, dependencies=None):
    return {
        "id": task_id,
        "title": f"Task {task_id}",
        "description": "",
        "startDate": start,
        "endDate": end,
        "dependencies": dependencies or [],
    }


@pytest.fixture
def activities():
    return [
        {
            "id": "WP1",
            "title": "Baseline analysis",
            "tasks": [
                task("T1.1", "2025-06-01", "2026-03-01"),
                task("T1.2", "2026-02-01", "2028-05-01", [{"predecessorId": "T1.1", "type": "FS"}]),
            ],
            "milestones": [{"id": "M1.1", "description": "Baseline report", "date": "2029-01-01"}],
            "deliverables": [],
        },
        {
            "id": "WP2",
            "title": "Dissemination and exploitation",
            "tasks": [task("T2.1", "2026-03-01", "2026-06-30")],
            "milestones": [],
            "deliverables": [],
        },
        {
            "id": "WP3",
            "title": "Project management",
            "tasks": [task("T3.1", "2026-04-01", "2027-06-30")],
            "milestones": [],
            "deliverables": [],
        },
    ]


def all_dates(activities):
    for wp in activities:
        for item in wp["tasks"]:
            yield parse_date(item["startDate"])
            yield parse_date(item["endDate"])
        for milestone in wp["milestones"]:
            yield parse_date(milestone["date"])


class TestDateArithmetic:
    """Test calendar-correct month arithmetic."""

    def test_end_date_clamps_short_month(self):
        assert project_end_date(date(2026, 1, 31), 1) == date(2026, 2, 27)

    def test_two_year_project(self):
        assert project_end_date(START, 24) == END

    def test_leap_year(self):
        assert add_months(date(2024, 1, 31), 1) == date(2024, 2, 29)

    def test_year_rollover(self):
        assert add_months(date(2026, 11, 15), 3) == date(2027, 2, 15)

    def test_parse_date(self):
        assert parse_date("2026-05-04") == date(2026, 5, 4)
        assert parse_date("2026-05-04T10:00:00Z") == date(2026, 5, 4)
        assert parse_date("May 2026") is None
        assert parse_date("") is None
        assert parse_date(None) is None


class TestProjectEnvelope:
    """Test reading the project window from the idea."""

    def test_envelope(self):
        document = {"projectIdea": {"startDate": "2026-01-01", "durationMonths": 24}}
        assert project_envelope(document) == (START, END, 24)

    def test_default_duration(self):
        document = {"projectIdea": {"startDate": "2026-01-01"}}
        assert project_envelope(document, default_duration=12) == (START, date(2026, 12, 31), 12)

    def test_invalid_duration_falls_back(self):
        document = {"projectIdea": {"startDate": "2026-01-01", "durationMonths": "two years"}}
        assert project_envelope(document)[2] == 24

    def test_no_start_date(self, empty_document):
        assert project_envelope(empty_document) is None
        assert project_envelope({}) is None


class TestEnforceEnvelope:
    """Test clamping of generated schedules."""

    def test_every_date_within_envelope(self, activities):
        result = enforce_envelope(activities, START, END)
        for value in all_dates(result):
            assert START <= value <= END

    def test_milestone_clamped(self, activities):
        result = enforce_envelope(activities, START, END)
        assert result[0]["milestones"][0]["date"] == "2027-12-31"

    def test_impossible_finish_to_start_relaxed(self, activities):
        result = enforce_envelope(activities, START, END)
        assert result[0]["tasks"][1]["dependencies"][0]["type"] == "SS"

    def test_last_two_work_packages_span_project(self, activities):
        result = enforce_envelope(activities, START, END)
        for wp in result[-2:]:
            assert wp["tasks"][0]["startDate"] == "2026-01-01"
            assert wp["tasks"][-1]["endDate"] == "2027-12-31"
        assert result[0]["tasks"][0]["startDate"] == "2026-01-01"

    def test_horizontal_spanning_can_be_disabled(self, activities):
        result = enforce_envelope(activities, START, END, span_horizontal=False)
        assert result[1]["tasks"][0]["startDate"] == "2026-03-01"
        assert result[1]["tasks"][0]["endDate"] == "2026-06-30"

    def test_inverted_task_fixed(self):
        activities = [{"id": "WP1", "tasks": [task("T1.1", "2027-05-01", "2027-03-01")], "milestones": []}]
        result = enforce_envelope(activities, START, END, span_horizontal=False)
        assert result[0]["tasks"][0]["startDate"] == "2027-03-01"

    def test_input_not_mutated(self, activities):
        original = copy.deepcopy(activities)
        enforce_envelope(activities, START, END)
        assert activities == original

    def test_no_op_without_envelope(self, activities):
        assert enforce_envelope(activities, None, None) is activities
        assert enforce_envelope([], START, END) == []

    def test_valid_schedule_unchanged(self):
        activities = [{
            "id": "WP1",
            "tasks": [
                task("T1.1", "2026-01-01", "2026-06-30"),
                task("T1.2", "2026-07-01", "2026-12-31", [{"predecessorId": "T1.1", "type": "FS"}]),
            ],
            "milestones": [{"id": "M1.1", "description": "", "date": "2026-06-30"}],
        }]
        assert enforce_envelope(activities, START, END, span_horizontal=False) == activities

    def test_impossible_calendar_dates_repaired(self):
        activities = [{
            "id": "WP1",
            "tasks": [task("T1.1", "2026-02-30", "2031-01-01")],
            "milestones": [{"id": "M1.1", "description": "Pilot report", "date": "2026-13-01"}],
        }]
        result = enforce_envelope(activities, START, END, span_horizontal=False)

        assert result[0]["tasks"][0]["startDate"] == "2026-01-01"
        assert result[0]["tasks"][0]["endDate"] == "2027-12-31"
        assert result[0]["milestones"][0]["date"] == "2027-12-31"
        for value in all_dates(result):
            assert START <= value <= END

    def test_missing_dates_filled(self):
        activities = [{
            "id": "WP1",
            "tasks": [{"id": "T1.1", "title": "Survey", "endDate": "2026-06-30"}, {"id": "T1.2", "startDate": "2026-07-01"}],
            "milestones": [{"id": "M1.1", "description": "Survey done"}],
        }]
        result = enforce_envelope(activities, START, END, span_horizontal=False)

        assert result[0]["tasks"][0]["startDate"] == "2026-01-01"
        assert result[0]["tasks"][1]["endDate"] == "2027-12-31"
        assert result[0]["milestones"][0]["date"] == "2027-12-31"


class TestClampSchedule:
    """Test the counted date repair on its own."""

    def test_counts_repairs(self):
        activities = [{
            "tasks": [
                task("T1.1", "2026-02-30", "2026-06-30"),
                task("T1.2", "2026-03-01", ""),
                task("T1.3", "2025-01-01", "2026-04-30"),
            ],
            "milestones": [{"id": "M1.1", "date": "not a date"}, {"id": "M1.2", "date": "2026-06-30"}],
        }]
        assert clamp_schedule(activities, START, END) == 4
        assert activities[0]["tasks"][1]["endDate"] == "2027-12-31"
        assert activities[0]["milestones"][1]["date"] == "2026-06-30"

    def test_valid_schedule_needs_no_repair(self):
        activities = [{"tasks": [task("T1.1", "2026-01-01", "2026-06-30")], "milestones": []}]
        assert clamp_schedule(activities, START, END) == 0


class TestCheckEnvelope:
    def test_repaired_schedule_passes(self, activities):
        check_envelope(enforce_envelope(activities, START, END), START, END)

    def test_out_of_range_date_raises(self, activities):
        with pytest.raises(InvariantViolation, match="WP1/T1.1.*2025-06-01"):
            check_envelope(activities, START, END)

    def test_unparseable_date_raises(self):
        activities = [{"id": "WP1", "tasks": [task("T1.1", "2026-01-01", "2026-02-30")]}]
        with pytest.raises(InvariantViolation, match="WP1/T1.1"):
            check_envelope(activities, START, END)


class TestSanitizeDependencies:
    """Test Finish-to-Start repair on its own."""

    def test_counts_fixes(self):
        activities = [{
            "tasks": [
                task("T1.1", "2026-01-01", "2026-06-30"),
                task("T1.2", "2026-06-30", "2026-12-31", [{"predecessorId": "T1.1", "type": "FS"}]),
                task("T1.3", "2026-02-01", "2026-03-31", [{"predecessorId": "T1.1", "type": "SS"}]),
            ],
        }]
        assert sanitize_dependencies(activities) == 1
        assert activities[0]["tasks"][1]["dependencies"][0]["type"] == "SS"
        assert activities[0]["tasks"][2]["dependencies"][0]["type"] == "SS"

    def test_unknown_predecessor_left_alone(self):
        activities = [{"tasks": [task("T1.1", "2026-01-01", "2026-06-30", [{"predecessorId": "T9.9", "type": "FS"}])]}]
        assert sanitize_dependencies(activities) == 0
