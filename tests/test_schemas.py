"""Tests for section bindings and the contract-derived output shapes."""

import json

import pytest

from contracts.document import DocumentModel, ProjectIdea, Risk, WorkPackage
from exceptions import UnknownSectionError
from schemas.sections import WORK_PACKAGE_SCAFFOLD, SectionKind
from schemas.shape import TEXT_HINT_HEADER, Shape, contract_schema, to_json_schema, to_text_hint


def wire_fields(model):
    return list(model().model_dump(by_alias=True))


class TestSectionBindings:
    """Test the section table."""

    @pytest.mark.parametrize("section", list(SectionKind))
    def test_every_section_bound_to_a_contract(self, section):
        assert issubclass(section.shape.model, DocumentModel)
        assert section.chapter.startswith("chapter")

    def test_list_sections(self):
        assert SectionKind.RISKS.is_list
        assert SectionKind.CAUSES.is_list
        assert not SectionKind.PROJECT_MANAGEMENT.is_list
        assert not SectionKind.READINESS_LEVELS.is_list

    def test_unknown_key(self):
        with pytest.raises(UnknownSectionError):
            SectionKind.from_key("budget")


class TestContractSchemas:
    """Test that generation schemas follow the document contracts."""

    def test_risk_items_match_contract(self):
        schema = to_json_schema(SectionKind.RISKS.shape)

        assert schema["type"] == "array"
        assert list(schema["items"]["properties"]) == wire_fields(Risk)
        assert schema["items"]["required"] == wire_fields(Risk)
        assert schema["items"]["properties"]["likelihood"]["enum"] == ["low", "medium", "high"]

    def test_activities_match_contract(self):
        item = to_json_schema(SectionKind.ACTIVITIES.shape)["items"]
        task = item["properties"]["tasks"]["items"]

        assert list(item["properties"]) == wire_fields(WorkPackage)
        assert task["properties"]["startDate"] == {"type": "string", "description": "YYYY-MM-DD"}
        assert task["properties"]["dependencies"]["items"]["properties"]["type"]["enum"] == ["FS", "SS", "FF", "SF"]

    def test_references_inlined(self):
        for section in SectionKind:
            rendered = json.dumps(to_json_schema(section.shape))
            assert "$ref" not in rendered
            assert "$defs" not in rendered
            assert "anyOf" not in rendered

    def test_optional_level_is_nullable(self):
        level = to_json_schema(SectionKind.READINESS_LEVELS.shape)["properties"]["TRL"]["properties"]["level"]
        assert level == {"type": "integer", "nullable": True}

    def test_idea_leaves_out_user_timeframe(self):
        properties = SectionKind.PROJECT_IDEA.shape.properties
        assert "startDate" not in properties
        assert "durationMonths" not in properties
        assert set(properties) < set(wire_fields(ProjectIdea))

    def test_scaffold_fields(self):
        assert to_json_schema(WORK_PACKAGE_SCAFFOLD)["items"]["required"] == ["id", "title"]

    def test_cached_schema_not_mutated(self):
        before = json.dumps(contract_schema(Risk))
        to_json_schema(Shape(Risk, fields=("id",)))["properties"]["id"]["type"] = "integer"
        assert json.dumps(contract_schema(Risk)) == before


class TestShape:
    """Test shape views."""

    def test_subset_keeps_requested_order(self):
        shape = SectionKind.PROJECT_IDEA.shape.subset(["stateOfTheArt", "unknown", "mainAim"])
        assert list(shape.properties) == ["stateOfTheArt", "mainAim"]
        assert shape.kind == "object"

    def test_subset_cannot_widen(self):
        shape = SectionKind.MAIN_AIM.shape.subset(["mainAim", "projectTitle"])
        assert list(shape.properties) == ["mainAim"]

    def test_text_hint(self):
        hint = to_text_hint(SectionKind.ACTIVITIES.shape)

        assert hint.startswith(TEXT_HINT_HEADER)
        body = json.loads(hint[len(TEXT_HINT_HEADER):])
        assert body["type"] == "array"
        assert body["items"]["properties"]["milestones"]["items"]["properties"]["date"] == "string (YYYY-MM-DD)"
